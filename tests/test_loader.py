from __future__ import annotations

from pathlib import Path

import pytest

from confweave import ConfigError, defaults, from_document, load, load_with_report, loads, to_document, write
from confweave.errors import ErrorKind
from confweave.sample import Backend, DisplayConfig, GameConfig, InnerConfig, InnerInnerConfig, LoggingConfig


def _write(tmp_path: Path, text: str, name: str = "game.yml") -> Path:
    p = tmp_path / name
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(text.lstrip(), encoding="utf-8")
    return p


def test_load_reads_present_fields_and_defaults_the_rest(tmp_path: Path) -> None:
    p = _write(
        tmp_path,
        """
title: X
backend: Dx12
display:
  brightness: 0.25
""",
    )

    cfg = load(GameConfig, p)
    assert cfg.title == "X"
    assert cfg.backend is Backend.Dx12
    assert cfg.display == DisplayConfig(brightness=0.25)
    assert cfg.logging == LoggingConfig()
    assert cfg.inner.inner_inner.seed == 58123


def test_empty_file_loads_as_defaults(tmp_path: Path) -> None:
    p = _write(tmp_path, "")

    assert load(GameConfig, p) == GameConfig.default()
    assert loads(GameConfig, "{}") == defaults(GameConfig)


def test_defaults_are_recursive() -> None:
    cfg = GameConfig.default()

    assert cfg.display == DisplayConfig()
    assert cfg.display.size == (1024, 768)
    assert cfg.inner == InnerConfig(inner_inner=InnerInnerConfig(seed=58123))
    assert cfg.inner_inner.seed == 58123


def test_missing_root_file_is_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigError) as ei:
        load(GameConfig, tmp_path / "nope.yml")

    assert "not found" in str(ei.value)
    assert "nope.yml" in str(ei.value)


def test_unparseable_root_file_is_error(tmp_path: Path) -> None:
    p = _write(tmp_path, "title: [unclosed\n")

    with pytest.raises(ConfigError) as ei:
        load(GameConfig, p)

    assert "parse" in str(ei.value)


def test_non_utf8_root_file_is_error(tmp_path: Path) -> None:
    p = tmp_path / "game.yml"
    p.write_bytes(b"title: \xff\n")

    with pytest.raises(ConfigError) as ei:
        load(GameConfig, p)

    assert "UTF-8" in str(ei.value)
    assert "game.yml" in str(ei.value)


def test_non_mapping_root_is_error(tmp_path: Path) -> None:
    p = _write(tmp_path, "- a\n- b\n")

    with pytest.raises(ConfigError) as ei:
        load(GameConfig, p)

    assert "mapping" in str(ei.value)


def test_wrong_shape_defaults_only_that_field(tmp_path: Path) -> None:
    p = _write(
        tmp_path,
        """
title: 42
display:
  brightness: bright
  fullscreen: true
  size: [640, 480]
""",
    )

    cfg = load(GameConfig, p)
    assert cfg.title == "Amethyst game"
    assert cfg.display.brightness == 1.0
    assert cfg.display.fullscreen is True
    assert cfg.display.size == (640, 480)


def test_oversized_array_falls_back_to_whole_default(tmp_path: Path) -> None:
    p = _write(
        tmp_path,
        """
display:
  size: [1, 2, 3]
""",
    )

    report = load_with_report(GameConfig, p)
    assert report.value.display.size == (1024, 768)
    assert [(d.path, d.kind) for d in report.errors] == [("display.size", ErrorKind.MALFORMED)]


def test_report_lists_defaulted_fields(tmp_path: Path) -> None:
    p = _write(
        tmp_path,
        """
backend: OpenGL
display: 5
""",
    )

    report = load_with_report(GameConfig, p)
    assert report.value == GameConfig.default()
    assert not report.ok
    assert [(d.path, d.kind) for d in report.errors] == [
        ("backend", ErrorKind.TYPE_MISMATCH),
        ("display", ErrorKind.TYPE_MISMATCH),
    ]
    assert "title" in report.defaulted_paths
    assert "logging" in report.defaulted_paths


def test_write_then_load_round_trips(tmp_path: Path) -> None:
    cfg = GameConfig(
        title="Round trip",
        backend=Backend.Metal,
        display=DisplayConfig(brightness=0.5, fullscreen=True, size=(800, 600)),
        logging=LoggingConfig(file_path="out.log", output_level="error", logging_level="info"),
        inner=InnerConfig(inner_inner=InnerInnerConfig(seed=1)),
        inner_inner=InnerInnerConfig(seed=2),
    )

    out = tmp_path / "nested" / "game.yml"
    cfg.write(out)

    assert GameConfig.load(out) == cfg
    assert from_document(GameConfig, to_document(cfg)) == cfg


def test_written_document_keeps_declaration_order(tmp_path: Path) -> None:
    out = tmp_path / "game.yml"
    write(out, GameConfig.default())

    keys = [line.split(":")[0] for line in out.read_text(encoding="utf-8").splitlines() if not line.startswith(" ")]
    assert keys == ["title", "backend", "display", "logging", "inner", "inner_inner"]


def test_write_failure_is_config_error(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")

    with pytest.raises(ConfigError):
        write(blocker / "game.yml", GameConfig.default())


def test_env_expansion_is_opt_in(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CONFWEAVE_TITLE", "From env")
    p = _write(
        tmp_path,
        """
title: ${CONFWEAVE_TITLE}
logging:
  file_path: ${CONFWEAVE_TITLE}/game.log
""",
    )

    assert load(GameConfig, p).title == "${CONFWEAVE_TITLE}"

    cfg = load(GameConfig, p, expand_env=True)
    assert cfg.title == "From env"
    assert cfg.logging.file_path == "From env/game.log"


def test_missing_env_var_defaults_field(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("CONFWEAVE_MISSING", raising=False)
    p = _write(
        tmp_path,
        """
title: ${CONFWEAVE_MISSING}
backend: Metal
""",
    )

    report = load_with_report(GameConfig, p, expand_env=True)
    assert report.value.title == "Amethyst game"
    assert report.value.backend is Backend.Metal
    assert [(d.path, d.kind) for d in report.errors] == [("title", ErrorKind.MALFORMED)]


def test_dotenv_file_feeds_env_expansion(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    # setenv then delenv so the value loaded from .env is removed afterwards.
    monkeypatch.setenv("CONFWEAVE_DOTENV_TITLE", "placeholder")
    monkeypatch.delenv("CONFWEAVE_DOTENV_TITLE")

    env = tmp_path / ".env"
    env.write_text("CONFWEAVE_DOTENV_TITLE=From dotenv\n", encoding="utf-8")
    p = _write(tmp_path, "title: ${CONFWEAVE_DOTENV_TITLE}\n")

    cfg = load(GameConfig, p, expand_env=True, dotenv_path=env)
    assert cfg.title == "From dotenv"


def test_repo_sample_config_loadable() -> None:
    root = Path(__file__).resolve().parents[1]

    cfg = load(GameConfig, root / "configs" / "game.yaml")
    assert cfg.title == "Demo game"
    assert cfg.backend is Backend.Metal
    assert cfg.display == DisplayConfig(brightness=0.8, fullscreen=False, size=(1920, 1080))
    assert cfg.logging == LoggingConfig(file_path="logs/demo.log", output_level="info", logging_level="debug")
    assert cfg.inner.inner_inner.seed == 7
    assert cfg.inner_inner.seed == 58123
