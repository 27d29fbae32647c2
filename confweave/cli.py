from __future__ import annotations

import argparse
import importlib
import sys
from typing import Any

from confweave.errors import ConfigError, ConfweaveError
from confweave.loader import defaults, dumps, load_with_report, write
from confweave.observability.logging import configure_logging, get_logger
from confweave.schema import is_schema

DEFAULT_SCHEMA = "confweave.sample:GameConfig"


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="confweave", description="Typed YAML configuration loader")
    p.add_argument("--schema", default=DEFAULT_SCHEMA, help="Schema class as module:Class")
    p.add_argument("--log-level", default="WARNING", help="Log level")

    sub = p.add_subparsers(dest="command", required=True)

    sub.add_parser("defaults", help="Print the default document for the schema")

    def _load_args(sp: argparse.ArgumentParser) -> None:
        sp.add_argument("config", help="Root YAML config path")
        sp.add_argument("--expand-env", action="store_true", help="Expand ${ENV_VAR} in string values")
        sp.add_argument("--dotenv", default=None, help="Optional .env file loaded before expansion")

    show = sub.add_parser("show", help="Load a config and print the consolidated document")
    _load_args(show)

    check = sub.add_parser("check", help="Load a config and list defaulted fields")
    _load_args(check)
    check.add_argument("--strict", action="store_true", help="Exit 1 if any present value was unusable")

    consolidate = sub.add_parser("consolidate", help="Load a config and write it as one file")
    _load_args(consolidate)
    consolidate.add_argument("output", help="Output YAML path")

    return p


def _import_schema(spec: str) -> type[Any]:
    module_name, sep, attr = spec.partition(":")
    if not sep or not module_name or not attr:
        raise ConfigError("Schema must look like module:Class", path=spec)
    try:
        module = importlib.import_module(module_name)
    except ImportError as exc:
        raise ConfigError(f"Cannot import schema module: {exc}", path=spec) from exc
    schema = getattr(module, attr, None)
    if not is_schema(schema):
        raise ConfigError("Not a @config schema class", path=spec)
    return schema


def _run(args: argparse.Namespace) -> int:
    schema = _import_schema(args.schema)
    log = get_logger("confweave.cli")

    if args.command == "defaults":
        sys.stdout.write(dumps(defaults(schema)))
        return 0

    report = load_with_report(schema, args.config, expand_env=args.expand_env, dotenv_path=args.dotenv)

    if args.command == "show":
        sys.stdout.write(dumps(report.value))
        return 0

    if args.command == "consolidate":
        write(args.output, report.value)
        log.info("consolidated", source=args.config, output=args.output)
        return 0

    for diag in report.diagnostics:
        sys.stdout.write(f"{diag.path}: {diag.kind.value}: {diag.message}\n")
    if args.strict and not report.ok:
        return 1
    return 0


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)
    configure_logging(level=args.log_level)

    try:
        return _run(args)
    except ConfweaveError as exc:
        get_logger("confweave.cli").error("config_error", error=str(exc))
        sys.stderr.write(f"error: {exc}\n")
        return 2
