from __future__ import annotations

from enum import Enum


class ConfweaveError(Exception):
    """Base exception for this project."""


class ConfigError(ConfweaveError):
    """Raised when a configuration file cannot be loaded or written at all."""

    def __init__(self, message: str, *, path: str | None = None):
        super().__init__(f"{path}: {message}" if path else message)
        self.path = path


class SchemaError(ConfweaveError, TypeError):
    """Raised when a schema declaration cannot be turned into a field table."""


class ErrorKind(str, Enum):
    TYPE_MISMATCH = "type_mismatch"
    MISSING_FIELD = "missing_field"
    EXTERN_NOT_FOUND = "extern_not_found"
    MALFORMED = "malformed"
    IO = "io"


class ConversionError(ConfweaveError):
    """A single field could not be converted.

    Always recovered by the schema engine, which substitutes the field's
    declared default.
    """

    def __init__(self, kind: ErrorKind, message: str, *, path: str = ""):
        super().__init__(f"{path or '<root>'}: {message}")
        self.kind = kind
        self.path = path
        self.message = message
