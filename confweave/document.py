"""YAML document I/O.

Nodes are the plain values `yaml.safe_load` produces: mappings are `dict`,
sequences are `list`, scalars are `str`/`int`/`float`/`bool`. `None` stands
for an absent node. An explicit `null` behaves like a missing key except in
`T | None` fields, which read it as `None`.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Union

import yaml

Node = Union[str, int, float, bool, list[Any], dict[str, Any], None]

DOCUMENT_SUFFIXES: tuple[str, ...] = (".yml", ".yaml")


def parse_document(text: str) -> Node:
    if not text.strip():
        return None
    return yaml.safe_load(text)


def read_document(path: Path) -> Node:
    return parse_document(path.read_text(encoding="utf-8"))


def render_document(node: Node) -> str:
    return yaml.safe_dump(
        node,
        default_flow_style=False,
        sort_keys=False,
        allow_unicode=True,
    )


def write_document(path: Path, node: Node) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_document(node), encoding="utf-8")
