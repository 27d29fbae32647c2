from __future__ import annotations

import json
import logging

import pytest

from confweave import from_document
from confweave.errors import ErrorKind
from confweave.observability.logging import JsonFormatter, get_logger
from confweave.sample import GameConfig


def test_kv_logger_attaches_keywords_as_extra(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.INFO, logger="confweave.test")

    get_logger("confweave.test").info("config_loaded", path="a.yml", defaulted=2)

    record = caplog.records[-1]
    assert record.getMessage() == "config_loaded"
    assert record.path == "a.yml"  # type: ignore[attr-defined]
    assert record.defaulted == 2  # type: ignore[attr-defined]


def test_json_formatter_renders_extras() -> None:
    record = logging.LogRecord("confweave.test", logging.WARNING, __file__, 1, "field_defaulted", None, None)
    record.path = "display.size"
    record.kind = ErrorKind.MALFORMED
    record.obj = object()

    payload = json.loads(JsonFormatter().format(record))
    assert payload["level"] == "WARNING"
    assert payload["message"] == "field_defaulted"
    assert payload["path"] == "display.size"
    assert payload["kind"] == "malformed"
    assert payload["obj"].startswith("<object")


def test_engine_logs_defaulted_fields(caplog: pytest.LogCaptureFixture) -> None:
    caplog.set_level(logging.DEBUG, logger="confweave")

    from_document(GameConfig, {"backend": "OpenGL"})

    warnings = [r for r in caplog.records if r.levelno == logging.WARNING and r.getMessage() == "field_defaulted"]
    assert [r.path for r in warnings] == ["backend"]  # type: ignore[attr-defined]
    assert warnings[0].kind == "type_mismatch"  # type: ignore[attr-defined]

    missing = [r for r in caplog.records if r.levelno == logging.DEBUG and r.getMessage() == "field_defaulted"]
    assert "title" in [r.path for r in missing]  # type: ignore[attr-defined]


def test_package_logger_has_null_handler() -> None:
    handlers = logging.getLogger("confweave").handlers

    assert any(isinstance(h, logging.NullHandler) for h in handlers)
