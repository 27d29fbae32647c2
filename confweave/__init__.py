"""Schema-driven YAML configuration.

- Typed schemas declared with `@config`; every field carries a default.
- Bad or missing values fall back to their defaults field by field.
- `field: extern` splits a config across files (`<field>/config.yml` or
  `<field>.yml` next to the referencing file).
"""

from __future__ import annotations

import logging

from confweave.context import FieldDiagnostic, LoadContext
from confweave.convert import Converter, Convertible, converter_for, register_converter
from confweave.errors import ConfigError, ConfweaveError, ConversionError, ErrorKind, SchemaError
from confweave.loader import (
    LoadReport,
    defaults,
    dumps,
    from_document,
    load,
    load_with_report,
    loads,
    to_document,
    write,
)
from confweave.schema import config, is_schema

__all__ = [
    "ConfigError",
    "ConfweaveError",
    "ConversionError",
    "Converter",
    "Convertible",
    "ErrorKind",
    "FieldDiagnostic",
    "LoadContext",
    "LoadReport",
    "SchemaError",
    "__version__",
    "config",
    "converter_for",
    "defaults",
    "dumps",
    "from_document",
    "is_schema",
    "load",
    "load_with_report",
    "loads",
    "register_converter",
    "to_document",
    "write",
]

__version__ = "0.1.0"

# Silent unless the application configures logging.
logging.getLogger(__name__).addHandler(logging.NullHandler())
