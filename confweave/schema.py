"""Schema declaration and the field-by-field loading engine.

A schema is an annotated class decorated with `@config`::

    @config
    class DisplayConfig:
        brightness: float = 1.0
        fullscreen: bool = False
        size: tuple[int, int] = (1024, 768)

Loading walks the declared fields in order. A field whose key is missing,
whose value has the wrong shape, or whose extern file cannot be found takes
its declared default; the rest of the document still loads.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Generic, Mapping, TypeVar, get_type_hints

from confweave.context import LoadContext
from confweave.convert import Converter, converter_for, describe_node
from confweave.document import Node
from confweave.errors import ConversionError, ErrorKind, SchemaError
from confweave.extern import is_extern, resolve_extern
from confweave.observability.logging import get_logger

T = TypeVar("T")

# Members added to every schema class; fields may not shadow them.
_RESERVED_NAMES = frozenset({"default", "from_node", "to_node", "load", "loads", "write"})

log = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class FieldSpec:
    name: str
    converter: Converter[Any]
    default_factory: Callable[[], Any]

    def default(self) -> Any:
        return self.default_factory()


def _default_factory(f: dataclasses.Field[Any]) -> Callable[[], Any]:
    if f.default is not dataclasses.MISSING:
        value = f.default
        return lambda: value
    if f.default_factory is not dataclasses.MISSING:
        return f.default_factory
    raise SchemaError(f"field {f.name!r} must declare a default")


def _build_fields(cls: type[Any]) -> tuple[FieldSpec, ...]:
    try:
        hints = get_type_hints(cls)
    except NameError as exc:
        raise SchemaError(f"{cls.__qualname__}: cannot resolve field annotations: {exc}") from exc

    specs: list[FieldSpec] = []
    for f in dataclasses.fields(cls):
        try:
            converter = converter_for(hints[f.name])
        except SchemaError as exc:
            raise SchemaError(f"{cls.__qualname__}.{f.name}: {exc}") from exc
        specs.append(FieldSpec(name=f.name, converter=converter, default_factory=_default_factory(f)))
    return tuple(specs)


def _log_defaulted(err: ConversionError) -> None:
    if err.kind is ErrorKind.MISSING_FIELD:
        log.debug("field_defaulted", path=err.path, kind=err.kind.value)
    else:
        log.warning("field_defaulted", path=err.path, kind=err.kind.value, reason=err.message)


class SchemaConverter(Generic[T]):
    """Converter for a `@config` class.

    The field table is resolved on first use, so schemas may refer to classes
    declared later in the same module.
    """

    def __init__(self, cls: type[T]):
        self.cls = cls
        self._fields: tuple[FieldSpec, ...] | None = None

    @property
    def fields(self) -> tuple[FieldSpec, ...]:
        if self._fields is None:
            self._fields = _build_fields(self.cls)
        return self._fields

    def default(self) -> T:
        return self.cls()

    def from_node(self, ctx: LoadContext, node: Node) -> T:
        if node is None:
            return self.default()
        if not isinstance(node, Mapping):
            raise ctx.error(ErrorKind.TYPE_MISMATCH, f"expected a mapping, got {describe_node(node)}")
        return self.from_mapping(ctx, node)

    def from_mapping(self, ctx: LoadContext, mapping: Mapping[str, Any]) -> T:
        values = {spec.name: self._load_field(ctx, mapping, spec) for spec in self.fields}
        return self.cls(**values)

    def _load_field(self, ctx: LoadContext, mapping: Mapping[str, Any], spec: FieldSpec) -> Any:
        node = mapping.get(spec.name)
        present = spec.name in mapping
        field_ctx = ctx.child(spec.name)
        try:
            if is_extern(node):
                target = resolve_extern(ctx, spec.name)
                node = target.node
                present = node is not None
                field_ctx = ctx.child(spec.name, base_dir=target.base_dir)
            # An explicit null is a value only for converters that accept it.
            if node is None and not (present and getattr(spec.converter, "accepts_null", False)):
                raise field_ctx.error(ErrorKind.MISSING_FIELD, "missing value")
            return spec.converter.from_node(field_ctx, node)
        except ConversionError as exc:
            ctx.record(exc)
            _log_defaulted(exc)
            return spec.default()

    def to_node(self, value: T) -> Node:
        return {spec.name: spec.converter.to_node(getattr(value, spec.name)) for spec in self.fields}

    def __repr__(self) -> str:
        return f"SchemaConverter({self.cls.__qualname__})"


def is_schema(tp: Any) -> bool:
    return isinstance(tp, type) and isinstance(vars(tp).get("__config_converter__"), SchemaConverter)


def schema_converter(tp: type[T]) -> SchemaConverter[T]:
    if not is_schema(tp):
        raise SchemaError(f"{tp!r} is not a @config schema")
    return vars(tp)["__config_converter__"]


def _default(cls: type[T]) -> T:
    return schema_converter(cls).default()


def _from_node(cls: type[T], ctx: LoadContext, node: Node) -> T:
    return schema_converter(cls).from_node(ctx, node)


def _to_node(self: Any) -> Node:
    return schema_converter(type(self)).to_node(self)


def _load(cls: type[T], path: str | Path, **options: Any) -> T:
    from confweave.loader import load

    return load(cls, path, **options)


def _loads(cls: type[T], text: str, **options: Any) -> T:
    from confweave.loader import loads

    return loads(cls, text, **options)


def _write(self: Any, path: str | Path) -> None:
    from confweave.loader import write

    write(path, self)


def config(cls: type[T] | None = None, /, *, frozen: bool = True) -> Any:
    """Declare a configuration schema.

    The class becomes a dataclass (frozen by default) and gains `default()`,
    `from_node()`, `load()`, `loads()`, `to_node()` and `write()`.

    Raises:
        SchemaError: If a field has no default or shadows one of those names.
    """

    def wrap(cls: type[T]) -> type[T]:
        dc = dataclass(frozen=frozen)(cls)
        for f in dataclasses.fields(dc):
            if f.name in _RESERVED_NAMES:
                raise SchemaError(f"{cls.__qualname__}.{f.name}: field name is reserved")
            if not f.init:
                raise SchemaError(f"{cls.__qualname__}.{f.name}: init=False fields are not supported")
            if f.default is dataclasses.MISSING and f.default_factory is dataclasses.MISSING:
                raise SchemaError(f"{cls.__qualname__}.{f.name}: field must declare a default")

        dc.__config_converter__ = SchemaConverter(dc)  # type: ignore[attr-defined]
        dc.default = classmethod(_default)  # type: ignore[attr-defined]
        dc.from_node = classmethod(_from_node)  # type: ignore[attr-defined]
        dc.load = classmethod(_load)  # type: ignore[attr-defined]
        dc.loads = classmethod(_loads)  # type: ignore[attr-defined]
        dc.to_node = _to_node  # type: ignore[attr-defined]
        dc.write = _write  # type: ignore[attr-defined]
        return dc

    if cls is None:
        return wrap
    return wrap(cls)
