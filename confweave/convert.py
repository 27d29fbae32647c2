"""Converters between YAML nodes and typed field values.

A converter knows three things about one type: its zero value, how to build
a value from a node, and how to render a value back into a node. Failures are
reported by raising `ConversionError`; the schema engine turns those into
defaults.
"""

from __future__ import annotations

import os
import re
import types
from enum import Enum
from pathlib import Path
from typing import (
    Any,
    Callable,
    Generic,
    Mapping,
    Protocol,
    Sequence,
    TypeVar,
    Union,
    get_args,
    get_origin,
    runtime_checkable,
)

from confweave.context import LoadContext
from confweave.document import Node
from confweave.errors import ErrorKind, SchemaError

T = TypeVar("T")
E = TypeVar("E", bound=Enum)

_ENV_PATTERN = re.compile(r"\$\{([A-Za-z_][A-Za-z0-9_]*)\}")


class Converter(Protocol[T]):
    def default(self) -> T:
        ...

    def from_node(self, ctx: LoadContext, node: Node) -> T:
        ...

    def to_node(self, value: T) -> Node:
        ...


@runtime_checkable
class Convertible(Protocol):
    """Contract for user types that load themselves.

    Any class providing these three members can be used as a field type.
    Classes declared with `@config` satisfy it automatically.
    """

    @classmethod
    def default(cls) -> Any:
        ...

    @classmethod
    def from_node(cls, ctx: LoadContext, node: Node) -> Any:
        ...

    def to_node(self) -> Node:
        ...


def describe_node(node: Node) -> str:
    if node is None:
        return "nothing"
    if isinstance(node, bool):
        return "a boolean"
    if isinstance(node, int):
        return "an integer"
    if isinstance(node, float):
        return "a float"
    if isinstance(node, str):
        return "a string"
    if isinstance(node, list):
        return "a sequence"
    if isinstance(node, Mapping):
        return "a mapping"
    return type(node).__name__


def require_node(ctx: LoadContext, node: Node) -> Any:
    if node is None:
        raise ctx.error(ErrorKind.MISSING_FIELD, "missing value")
    return node


def expand_env(value: str, ctx: LoadContext) -> str:
    """Replace `${NAME}` with the environment value; missing or empty is an error."""

    def repl(match: re.Match[str]) -> str:
        name = match.group(1)
        resolved = os.environ.get(name)
        if not resolved:
            raise ctx.error(ErrorKind.MALFORMED, f"environment variable {name!r} is missing or empty")
        return resolved

    return _ENV_PATTERN.sub(repl, value)


class ScalarConverter(Generic[T]):
    def __init__(
        self,
        label: str,
        accepts: tuple[type, ...],
        cast: Callable[[Any], T],
        zero: T,
        *,
        allow_bool: bool = False,
    ):
        self.label = label
        self.accepts = accepts
        self.cast = cast
        self.zero = zero
        self.allow_bool = allow_bool

    def default(self) -> T:
        return self.zero

    def from_node(self, ctx: LoadContext, node: Node) -> T:
        node = require_node(ctx, node)
        # bool is an int subclass; only the bool converter takes it.
        if isinstance(node, bool) and not self.allow_bool:
            raise ctx.error(ErrorKind.TYPE_MISMATCH, f"expected {self.label}, got a boolean")
        if not isinstance(node, self.accepts):
            raise ctx.error(ErrorKind.TYPE_MISMATCH, f"expected {self.label}, got {describe_node(node)}")
        return self.cast(node)

    def to_node(self, value: T) -> Node:
        return self.cast(value)

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.label!r})"


class StrConverter(ScalarConverter[str]):
    def __init__(self) -> None:
        super().__init__("a string", (str,), str, "")

    def from_node(self, ctx: LoadContext, node: Node) -> str:
        value = super().from_node(ctx, node)
        return expand_env(value, ctx) if ctx.expand_env else value


class PathConverter:
    def default(self) -> Path:
        return Path()

    def from_node(self, ctx: LoadContext, node: Node) -> Path:
        node = require_node(ctx, node)
        if not isinstance(node, str):
            raise ctx.error(ErrorKind.TYPE_MISMATCH, f"expected a path string, got {describe_node(node)}")
        return Path(expand_env(node, ctx) if ctx.expand_env else node)

    def to_node(self, value: Path) -> Node:
        return str(value)


class TupleConverter:
    """Fixed-length sequence; each position has its own converter."""

    def __init__(self, items: Sequence[Converter[Any]]):
        self.items = tuple(items)

    def default(self) -> tuple[Any, ...]:
        return tuple(c.default() for c in self.items)

    def from_node(self, ctx: LoadContext, node: Node) -> tuple[Any, ...]:
        node = require_node(ctx, node)
        if not isinstance(node, list):
            raise ctx.error(ErrorKind.TYPE_MISMATCH, f"expected a sequence, got {describe_node(node)}")
        if len(node) != len(self.items):
            raise ctx.error(
                ErrorKind.MALFORMED,
                f"expected exactly {len(self.items)} items, got {len(node)}",
            )
        return tuple(c.from_node(ctx.item(i), v) for i, (c, v) in enumerate(zip(self.items, node)))

    def to_node(self, value: Sequence[Any]) -> Node:
        return [c.to_node(v) for c, v in zip(self.items, value)]


class ListConverter:
    def __init__(self, item: Converter[Any], *, container: Callable[[list[Any]], Any] = list):
        self.item = item
        self.container = container

    def default(self) -> Any:
        return self.container([])

    def from_node(self, ctx: LoadContext, node: Node) -> Any:
        node = require_node(ctx, node)
        if not isinstance(node, list):
            raise ctx.error(ErrorKind.TYPE_MISMATCH, f"expected a sequence, got {describe_node(node)}")
        return self.container([self.item.from_node(ctx.item(i), v) for i, v in enumerate(node)])

    def to_node(self, value: Sequence[Any]) -> Node:
        return [self.item.to_node(v) for v in value]


class MappingConverter:
    def __init__(self, item: Converter[Any]):
        self.item = item

    def default(self) -> dict[str, Any]:
        return {}

    def from_node(self, ctx: LoadContext, node: Node) -> dict[str, Any]:
        node = require_node(ctx, node)
        if not isinstance(node, Mapping):
            raise ctx.error(ErrorKind.TYPE_MISMATCH, f"expected a mapping, got {describe_node(node)}")
        out: dict[str, Any] = {}
        for k, v in node.items():
            if not isinstance(k, str):
                raise ctx.error(ErrorKind.TYPE_MISMATCH, f"mapping keys must be strings, got {k!r}")
            out[k] = self.item.from_node(ctx.child(k), v)
        return out

    def to_node(self, value: Mapping[str, Any]) -> Node:
        return {k: self.item.to_node(v) for k, v in value.items()}


class OptionalConverter:
    """`T | None`: `None` renders as null, and an explicit null reads back as `None`.

    A key that is missing altogether still takes the field's declared default.
    """

    accepts_null = True

    def __init__(self, inner: Converter[Any]):
        self.inner = inner

    def default(self) -> None:
        return None

    def from_node(self, ctx: LoadContext, node: Node) -> Any:
        if node is None:
            return None
        return self.inner.from_node(ctx, node)

    def to_node(self, value: Any) -> Node:
        return None if value is None else self.inner.to_node(value)


class EnumConverter(Generic[E]):
    """Maps enum members to and from their declared names (case-sensitive)."""

    def __init__(self, enum_cls: type[E]):
        self.enum_cls = enum_cls

    def default(self) -> E:
        return next(iter(self.enum_cls))

    def from_node(self, ctx: LoadContext, node: Node) -> E:
        node = require_node(ctx, node)
        if not isinstance(node, str):
            raise ctx.error(ErrorKind.TYPE_MISMATCH, f"expected a variant name, got {describe_node(node)}")
        member = self.enum_cls.__members__.get(node)
        if member is None:
            names = ", ".join(self.enum_cls.__members__)
            raise ctx.error(
                ErrorKind.TYPE_MISMATCH,
                f"{node!r} is not a {self.enum_cls.__name__} variant (expected one of: {names})",
            )
        return member

    def to_node(self, value: E) -> Node:
        return value.name


class ConvertibleConverter:
    """Delegates to a class implementing `Convertible`."""

    def __init__(self, cls: type[Any]):
        self.cls = cls

    def default(self) -> Any:
        return self.cls.default()

    def from_node(self, ctx: LoadContext, node: Node) -> Any:
        return self.cls.from_node(ctx, node)

    def to_node(self, value: Any) -> Node:
        return value.to_node()


_REGISTRY: dict[Any, Converter[Any]] = {
    bool: ScalarConverter("a boolean", (bool,), bool, False, allow_bool=True),
    int: ScalarConverter("an integer", (int,), int, 0),
    float: ScalarConverter("a number", (int, float), float, 0.0),
    str: StrConverter(),
    Path: PathConverter(),
}


def register_converter(tp: Any, converter: Converter[Any]) -> None:
    """Make `tp` usable as a field type (or override a built-in adapter)."""

    _REGISTRY[tp] = converter


def _is_convertible(tp: Any) -> bool:
    return isinstance(tp, type) and all(
        callable(getattr(tp, name, None)) for name in ("default", "from_node", "to_node")
    )


def converter_for(tp: Any) -> Converter[Any]:
    """Resolve a field annotation to its converter.

    Raises:
        SchemaError: If the annotation names a type no converter handles.
    """

    if tp in _REGISTRY:
        return _REGISTRY[tp]

    origin = get_origin(tp)
    args = get_args(tp)

    # Parameterized generics pass isinstance(tp, type) on some interpreters.
    if origin is None and isinstance(tp, type):
        schema_converter = vars(tp).get("__config_converter__")
        if schema_converter is not None:
            return schema_converter
        if issubclass(tp, Enum):
            return EnumConverter(tp)
        if _is_convertible(tp):
            return ConvertibleConverter(tp)

    if origin is tuple:
        if len(args) == 2 and args[1] is Ellipsis:
            return ListConverter(converter_for(args[0]), container=tuple)
        if not args:
            raise SchemaError(f"tuple fields need item types, e.g. tuple[int, int]: {tp!r}")
        return TupleConverter([converter_for(a) for a in args])
    if origin is list:
        if not args:
            raise SchemaError(f"list fields need an item type, e.g. list[str]: {tp!r}")
        return ListConverter(converter_for(args[0]))
    if origin is dict:
        if len(args) != 2 or args[0] is not str:
            raise SchemaError(f"mapping fields must be dict[str, T]: {tp!r}")
        return MappingConverter(converter_for(args[1]))
    if origin is Union or origin is types.UnionType:
        members = [a for a in args if a is not type(None)]
        if len(members) == 1 and len(args) == 2:
            return OptionalConverter(converter_for(members[0]))
        raise SchemaError(f"only optional unions (T | None) are supported: {tp!r}")

    raise SchemaError(f"unsupported config field type: {tp!r}")
