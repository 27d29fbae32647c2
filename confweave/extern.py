"""Resolution of `extern` markers.

A mapping value that is exactly the string ``extern`` is replaced by the
contents of a separate file, searched in this order::

    <base_dir>/<name>/config.yml
    <base_dir>/<name>/config.yaml
    <base_dir>/<name>.yml
    <base_dir>/<name>.yaml

Lookups inside the loaded file are relative to the directory that holds it.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from confweave.context import LoadContext
from confweave.document import DOCUMENT_SUFFIXES, Node, read_document
from confweave.errors import ErrorKind
from confweave.observability.logging import get_logger

EXTERN_MARKER = "extern"

log = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class ExternTarget:
    node: Node
    path: Path
    base_dir: Path


def is_extern(node: Any) -> bool:
    return isinstance(node, str) and node == EXTERN_MARKER


def candidate_paths(base_dir: Path, name: str) -> list[Path]:
    return [base_dir / name / f"config{suffix}" for suffix in DOCUMENT_SUFFIXES] + [
        base_dir / f"{name}{suffix}" for suffix in DOCUMENT_SUFFIXES
    ]


def resolve_extern(ctx: LoadContext, name: str) -> ExternTarget:
    """Load the file backing the extern field `name`.

    Args:
        ctx: Context of the mapping that holds the marker.
        name: Field name; also the file/directory name searched for.

    Raises:
        ConversionError: `EXTERN_NOT_FOUND` when no candidate exists, `IO` when
            the file cannot be read, `MALFORMED` when it is not valid UTF-8 YAML.
    """

    field_ctx = ctx.child(name)
    for candidate in candidate_paths(ctx.base_dir, name):
        if not candidate.is_file():
            continue
        try:
            node = read_document(candidate)
        except yaml.YAMLError as exc:
            raise field_ctx.error(ErrorKind.MALFORMED, f"invalid YAML in {candidate}: {exc}") from exc
        except UnicodeDecodeError as exc:
            raise field_ctx.error(ErrorKind.MALFORMED, f"{candidate} is not UTF-8 text: {exc}") from exc
        except OSError as exc:
            raise field_ctx.error(ErrorKind.IO, f"cannot read {candidate}: {exc}") from exc

        log.debug("extern_resolved", path=field_ctx.path, file=str(candidate))
        return ExternTarget(node=node, path=candidate, base_dir=candidate.parent)

    raise field_ctx.error(
        ErrorKind.EXTERN_NOT_FOUND,
        f"no extern file for {name!r} under {ctx.base_dir}",
    )
