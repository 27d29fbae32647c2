"""Loading typed configuration from YAML files, and writing it back.

Only the root document can make a load fail: a missing, unreadable or
unparseable root file (or one whose top level is not a mapping) raises
`ConfigError`. Every problem below the root is recovered field by field.

Env expansion syntax (opt-in with `expand_env=True`):
  - `${ENV_VAR}` inside string and path values.
  - A missing or empty variable defaults the field that references it.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any, Generic, Mapping, TypeVar

import yaml
from dotenv import load_dotenv

from confweave.context import FieldDiagnostic, LoadContext
from confweave.document import Node, parse_document, read_document, render_document, write_document
from confweave.errors import ConfigError, ErrorKind
from confweave.observability.logging import get_logger
from confweave.schema import schema_converter

T = TypeVar("T")

log = get_logger(__name__)


@dataclass(frozen=True)
class LoadReport(Generic[T]):
    """A loaded value together with every field that fell back to its default."""

    value: T
    diagnostics: tuple[FieldDiagnostic, ...] = ()

    @property
    def defaulted_paths(self) -> list[str]:
        return [d.path for d in self.diagnostics]

    @property
    def errors(self) -> tuple[FieldDiagnostic, ...]:
        """Diagnostics for values that were present but unusable."""

        return tuple(d for d in self.diagnostics if d.kind is not ErrorKind.MISSING_FIELD)

    @property
    def ok(self) -> bool:
        return not self.errors


def _load_dotenv_if_present(dotenv_path: Path) -> None:
    if dotenv_path.exists():
        # Do not override already-set environment variables.
        load_dotenv(dotenv_path, override=False)


def _convert_root(
    schema: type[T],
    root: Node,
    *,
    base_dir: Path,
    expand_env: bool,
    source: str | None,
) -> LoadReport[T]:
    converter = schema_converter(schema)
    if root is None:
        root = {}
    if not isinstance(root, Mapping):
        raise ConfigError("Config root must be a mapping/object", path=source)

    diagnostics: list[FieldDiagnostic] = []
    ctx = LoadContext.root(base_dir, expand_env=expand_env, diagnostics=diagnostics)
    value = converter.from_mapping(ctx, root)
    return LoadReport(value=value, diagnostics=tuple(diagnostics))


def load_with_report(
    schema: type[T],
    path: str | Path,
    *,
    expand_env: bool = False,
    dotenv_path: str | Path | None = None,
) -> LoadReport[T]:
    """Load a YAML file into `schema` and report which fields were defaulted.

    Args:
        schema: A `@config` class.
        path: Root YAML file. Extern files are looked up next to it.
        expand_env: Expand `${ENV_VAR}` in string values.
        dotenv_path: Optional `.env` file loaded before expansion.

    Raises:
        ConfigError: If the root file is missing, unreadable, not valid YAML,
            or its top level is not a mapping.
    """

    config_path = Path(path).expanduser().resolve()
    if not config_path.is_file():
        raise ConfigError("Config file not found", path=str(config_path))

    if dotenv_path is not None:
        _load_dotenv_if_present(Path(dotenv_path))

    try:
        root = read_document(config_path)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse YAML config: {exc}", path=str(config_path)) from exc
    except UnicodeDecodeError as exc:
        raise ConfigError(f"Config file is not UTF-8 text: {exc}", path=str(config_path)) from exc
    except OSError as exc:
        raise ConfigError(f"Failed to read config: {exc}", path=str(config_path)) from exc

    report = _convert_root(
        schema,
        root,
        base_dir=config_path.parent,
        expand_env=expand_env,
        source=str(config_path),
    )
    log.info(
        "config_loaded",
        path=str(config_path),
        schema=schema.__qualname__,
        defaulted=len(report.diagnostics),
        errors=len(report.errors),
    )
    return report


def load(
    schema: type[T],
    path: str | Path,
    *,
    expand_env: bool = False,
    dotenv_path: str | Path | None = None,
) -> T:
    """Load a YAML file into `schema`. See `load_with_report`."""

    return load_with_report(schema, path, expand_env=expand_env, dotenv_path=dotenv_path).value


def loads(
    schema: type[T],
    text: str,
    *,
    base_dir: str | Path = ".",
    expand_env: bool = False,
) -> T:
    """Load from YAML text; extern files resolve against `base_dir`."""

    try:
        root = parse_document(text)
    except yaml.YAMLError as exc:
        raise ConfigError(f"Failed to parse YAML config: {exc}") from exc
    return _convert_root(schema, root, base_dir=Path(base_dir), expand_env=expand_env, source=None).value


def from_document(
    schema: type[T],
    node: Node,
    *,
    base_dir: str | Path = ".",
    expand_env: bool = False,
) -> T:
    """Convert an already-parsed document."""

    return _convert_root(schema, node, base_dir=Path(base_dir), expand_env=expand_env, source=None).value


def defaults(schema: type[T]) -> T:
    return schema_converter(schema).default()


def to_document(value: Any) -> Node:
    return schema_converter(type(value)).to_node(value)


def dumps(value: Any) -> str:
    """Render a configuration value as one YAML document (extern fields inline)."""

    return render_document(to_document(value))


def write(path: str | Path, value: Any) -> None:
    """Write `value` to `path` as a single consolidated YAML file.

    Fields that were loaded from extern files are written inline; the extern
    files themselves are left untouched.

    Raises:
        ConfigError: If the file cannot be written.
    """

    out = Path(path).expanduser()
    node = to_document(value)
    try:
        write_document(out, node)
    except OSError as exc:
        raise ConfigError(f"Failed to write config: {exc}", path=str(out)) from exc
    log.info("config_written", path=str(out), schema=type(value).__qualname__)
