"""Demo schema, also the default schema of the `confweave` CLI."""

from __future__ import annotations

from dataclasses import field
from enum import Enum

from confweave.schema import config


class Backend(Enum):
    Vulkan = "vulkan"
    Metal = "metal"
    Dx12 = "dx12"


@config
class DisplayConfig:
    brightness: float = 1.0
    fullscreen: bool = False
    size: tuple[int, int] = (1024, 768)


@config
class LoggingConfig:
    file_path: str = "new_project.log"
    output_level: str = "warn"
    logging_level: str = "debug"


@config
class InnerInnerConfig:
    seed: int = 58123


@config
class InnerConfig:
    inner_inner: InnerInnerConfig = field(default_factory=InnerInnerConfig)


@config
class GameConfig:
    title: str = "Amethyst game"
    backend: Backend = Backend.Vulkan
    display: DisplayConfig = field(default_factory=DisplayConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    inner: InnerConfig = field(default_factory=InnerConfig)
    inner_inner: InnerInnerConfig = field(default_factory=InnerInnerConfig)
