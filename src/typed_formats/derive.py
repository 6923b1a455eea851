"""Derive (de)serialization logic from Python type annotations.

Annotations map onto formats as follows:

- ``bool`` → BOOL, ``int`` → I64, ``float`` → F64, ``str`` → STR,
  ``bytes`` → BYTES, ``None`` → UNIT;
- the ``U8`` … ``I128``, ``F32`` and ``Char`` aliases select a precise
  primitive kind;
- ``Optional[T]`` → OPTION, ``list[T]`` / ``set[T]`` / ``tuple[T, ...]`` →
  SEQ, ``dict[K, V]`` → MAP, ``tuple[A, B]`` → TUPLE and
  ``Annotated[list[T], Fixed(n)]`` → TUPLEARRAY;
- classes that implement the contract (including everything decorated with
  ``serializable`` and every ``TaggedUnion``) are referenced by name.

Anything else is reported as ``UnsupportedType`` when it is traced.
"""

from __future__ import annotations

import collections.abc
import dataclasses
import enum
import types
from dataclasses import dataclass
from functools import lru_cache, partial
from typing import Annotated, Any, Callable, ClassVar, Union, get_args, get_origin, get_type_hints

from typed_formats.errors import UnknownVariantIndex, UnsupportedType
from typed_formats.formats import PrimitiveKind
from typed_formats.serde import (
    Deserializer,
    DeserializeFn,
    SeqSerializer,
    Serialize,
    Serializer,
    StructSerializer,
    VariantAccess,
)

U8 = Annotated[int, PrimitiveKind.U8]
U16 = Annotated[int, PrimitiveKind.U16]
U32 = Annotated[int, PrimitiveKind.U32]
U64 = Annotated[int, PrimitiveKind.U64]
U128 = Annotated[int, PrimitiveKind.U128]
I8 = Annotated[int, PrimitiveKind.I8]
I16 = Annotated[int, PrimitiveKind.I16]
I32 = Annotated[int, PrimitiveKind.I32]
I64 = Annotated[int, PrimitiveKind.I64]
I128 = Annotated[int, PrimitiveKind.I128]
F32 = Annotated[float, PrimitiveKind.F32]
F64 = Annotated[float, PrimitiveKind.F64]
Char = Annotated[str, PrimitiveKind.CHAR]


@dataclass(frozen=True)
class Fixed:
    """Marks a sequence annotation as a fixed-size array."""

    size: int


# Write a value to a serializer
Writer = Callable[[Any, Serializer], None]

STYLES = ("struct", "tuple", "newtype", "unit")

_PLAIN_KINDS: dict[type, PrimitiveKind] = {
    bool: PrimitiveKind.BOOL,
    int: PrimitiveKind.I64,
    float: PrimitiveKind.F64,
    str: PrimitiveKind.STR,
    bytes: PrimitiveKind.BYTES,
    type(None): PrimitiveKind.UNIT,
}

_SEQ_ORIGINS = (
    list,
    set,
    frozenset,
    collections.abc.Sequence,
    collections.abc.MutableSequence,
    collections.abc.Set,
    collections.abc.MutableSet,
)
_MAP_ORIGINS = (dict, collections.abc.Mapping, collections.abc.MutableMapping)


# ---- Writers ----


def _write_primitive(kind: PrimitiveKind, value: Any, serializer: Serializer) -> None:
    serializer.serialize_primitive(kind, value)


def _write_option(inner: Writer, value: Any, serializer: Serializer) -> None:
    if value is None:
        serializer.serialize_none()
    else:
        serializer.serialize_some(partial(inner, value))


def _write_elements(out: SeqSerializer, writers: list[Writer], values: list[Any]) -> None:
    for write, value in zip(writers, values):
        out.serialize_element(partial(write, value))
    out.end()


def _write_seq(inner: Writer, value: Any, serializer: Serializer) -> None:
    items = list(value)
    _write_elements(serializer.serialize_seq(len(items)), [inner] * len(items), items)


def _write_array(inner: Writer, size: int, value: Any, serializer: Serializer) -> None:
    items = list(value)
    if len(items) != size:
        raise ValueError(f"Expected an array of {size} elements, got {len(items)}")
    _write_elements(serializer.serialize_array(size), [inner] * size, items)


def _write_tuple(writers: list[Writer], value: Any, serializer: Serializer) -> None:
    items = list(value)
    if len(items) != len(writers):
        raise ValueError(f"Expected a tuple of {len(writers)} elements, got {len(items)}")
    _write_elements(serializer.serialize_tuple(len(writers)), writers, items)


def _write_map(key: Writer, value_writer: Writer, value: Any, serializer: Serializer) -> None:
    out = serializer.serialize_map(len(value))
    for k, v in value.items():
        out.serialize_entry(partial(key, k), partial(value_writer, v))
    out.end()


def _write_contract(value: Any, serializer: Serializer) -> None:
    value.serialize(serializer)


def _write_unsupported(hint: Any, value: Any, serializer: Serializer) -> None:
    raise UnsupportedType(f"No format for {_describe(hint)}")


def _write_inferred(value: Any, serializer: Serializer) -> None:
    infer_writer(value)(value, serializer)


def writer_for(hint: Any) -> Writer:
    """Return the function writing values annotated with ``hint``."""
    if hint is None:
        return partial(_write_primitive, PrimitiveKind.UNIT)
    origin = get_origin(hint)
    if origin is Annotated:
        base, *extras = get_args(hint)
        for extra in extras:
            if isinstance(extra, PrimitiveKind):
                return partial(_write_primitive, extra)
            if isinstance(extra, Fixed):
                return partial(_write_array, writer_for(_element_hint(base)), extra.size)
        return writer_for(base)
    if isinstance(hint, type) and hint in _PLAIN_KINDS:
        return partial(_write_primitive, _PLAIN_KINDS[hint])
    if origin is Union or origin is types.UnionType:
        inner = _optional_hint(hint)
        if inner is None:
            return partial(_write_unsupported, hint)
        return partial(_write_option, writer_for(inner))
    if origin is tuple:
        args = get_args(hint)
        if len(args) == 2 and args[1] is Ellipsis:
            return partial(_write_seq, writer_for(args[0]))
        return partial(_write_tuple, [writer_for(arg) for arg in args])
    if origin in _SEQ_ORIGINS:
        return partial(_write_seq, writer_for(_element_hint(hint)))
    if origin in _MAP_ORIGINS:
        key, value = get_args(hint) or (Any, Any)
        return partial(_write_map, writer_for(key), writer_for(value))
    if isinstance(hint, type) and hasattr(hint, "serialize"):
        return _write_contract
    return partial(_write_unsupported, hint)


def infer_writer(value: Any) -> Writer:
    """Return a writer chosen from a value's runtime type, without annotations."""
    if isinstance(value, Serialize):
        return _write_contract
    kind = _PLAIN_KINDS.get(type(value))
    if kind is not None:
        return partial(_write_primitive, kind)
    if isinstance(value, (list, set, frozenset)):
        return partial(_write_seq, _write_inferred)
    if isinstance(value, tuple):
        return partial(_write_tuple, [_write_inferred] * len(value))
    if isinstance(value, dict):
        return partial(_write_map, _write_inferred, _write_inferred)
    return partial(_write_unsupported, type(value))


def serialize_value(value: Any, serializer: Serializer, hint: Any = None) -> None:
    """Write ``value`` using its annotation, or its runtime type when none is given."""
    write = infer_writer(value) if hint is None else writer_for(hint)
    write(value, serializer)


# ---- Readers ----


def _read_unsupported(hint: Any, deserializer: Deserializer) -> Any:
    raise UnsupportedType(f"No format for {_describe(hint)}")


def _read_primitive(kind: PrimitiveKind, deserializer: Deserializer) -> Any:
    return deserializer.deserialize_primitive(kind)


def _read_option(inner: DeserializeFn, deserializer: Deserializer) -> Any:
    return deserializer.deserialize_option(inner)


def _read_seq(inner: DeserializeFn, build: Callable[[list[Any]], Any], deserializer: Deserializer) -> Any:
    return build(deserializer.deserialize_seq(inner))


def _read_array(
    inner: DeserializeFn, size: int, build: Callable[[list[Any]], Any], deserializer: Deserializer
) -> Any:
    return build(deserializer.deserialize_array(inner, size))


def _read_tuple(reads: list[DeserializeFn], deserializer: Deserializer) -> Any:
    return tuple(deserializer.deserialize_tuple(reads))


def _read_map(key: DeserializeFn, value: DeserializeFn, deserializer: Deserializer) -> Any:
    return dict(deserializer.deserialize_map(key, value))


def reader_for(hint: Any) -> DeserializeFn:
    """Return the function reading values annotated with ``hint``."""
    if hint is None:
        return partial(_read_primitive, PrimitiveKind.UNIT)
    origin = get_origin(hint)
    if origin is Annotated:
        base, *extras = get_args(hint)
        for extra in extras:
            if isinstance(extra, PrimitiveKind):
                return partial(_read_primitive, extra)
            if isinstance(extra, Fixed):
                return partial(
                    _read_array, reader_for(_element_hint(base)), extra.size, _builder_for(base)
                )
        return reader_for(base)
    if isinstance(hint, type) and hint in _PLAIN_KINDS:
        return partial(_read_primitive, _PLAIN_KINDS[hint])
    if origin is Union or origin is types.UnionType:
        inner = _optional_hint(hint)
        if inner is None:
            return partial(_read_unsupported, hint)
        return partial(_read_option, reader_for(inner))
    if origin is tuple:
        args = get_args(hint)
        if len(args) == 2 and args[1] is Ellipsis:
            return partial(_read_seq, reader_for(args[0]), tuple)
        return partial(_read_tuple, [reader_for(arg) for arg in args])
    if origin in _SEQ_ORIGINS:
        return partial(_read_seq, reader_for(_element_hint(hint)), _builder_for(hint))
    if origin in _MAP_ORIGINS:
        key, value = get_args(hint) or (Any, Any)
        return partial(_read_map, reader_for(key), reader_for(value))
    if isinstance(hint, type) and hasattr(hint, "deserialize"):
        return hint.deserialize
    return partial(_read_unsupported, hint)


# ---- Hint helpers ----


def _describe(hint: Any) -> str:
    if isinstance(hint, type):
        return f"type '{hint.__qualname__}'"
    return repr(hint)


def _optional_hint(hint: Any) -> Any:
    """Return ``T`` for ``Optional[T]``, or None for unions that have no format."""
    args = get_args(hint)
    others = [arg for arg in args if arg is not type(None)]
    if len(others) == 1 and len(others) < len(args):
        return others[0]
    return None


def _element_hint(hint: Any) -> Any:
    args = get_args(hint)
    if get_origin(hint) is tuple and len(args) == 2 and args[1] is Ellipsis:
        return args[0]
    return args[0] if args else Any


def _builder_for(hint: Any) -> Callable[[list[Any]], Any]:
    origin = get_origin(hint) or hint
    if origin in (set, collections.abc.Set, collections.abc.MutableSet):
        return set
    if origin in (frozenset, tuple):
        return origin
    return list


@lru_cache(maxsize=None)
def _field_hints(cls: type) -> tuple[tuple[str, Any], ...]:
    """Resolve the annotated fields of a dataclass, in declaration order.

    Resolution is deferred to first use so that classes can refer to
    themselves and to classes declared later in the same module.
    """
    localns = {klass.__name__: klass for klass in cls.__mro__}
    hints = get_type_hints(cls, localns=localns, include_extras=True)
    return tuple((f.name, hints[f.name]) for f in dataclasses.fields(cls))


def _check_style(cls: type, style: str) -> None:
    if style not in STYLES:
        raise ValueError(f"Unknown style '{style}' for '{cls.__name__}', expected one of {STYLES}")
    count = len(dataclasses.fields(cls))
    if style == "newtype" and count != 1:
        raise TypeError(f"Newtype '{cls.__name__}' must have exactly one field, found {count}")
    if style == "unit" and count != 0:
        raise TypeError(f"Unit '{cls.__name__}' must not have fields, found {count}")


def _write_struct_fields(out: StructSerializer, value: Any) -> None:
    for name, hint in _field_hints(type(value)):
        out.serialize_field(name, partial(writer_for(hint), getattr(value, name)))
    out.end()


# ---- Structs ----


def _serialize_struct(self: Any, serializer: Serializer) -> None:
    cls = type(self)
    name, style = cls.__serde_name__, cls.__serde_style__
    fields = _field_hints(cls)
    if style == "unit":
        serializer.serialize_unit_struct(name)
    elif style == "newtype":
        field_name, hint = fields[0]
        serializer.serialize_newtype_struct(name, partial(writer_for(hint), getattr(self, field_name)))
    elif style == "tuple":
        _write_elements(
            serializer.serialize_tuple_struct(name, len(fields)),
            [writer_for(hint) for _, hint in fields],
            [getattr(self, field_name) for field_name, _ in fields],
        )
    else:
        _write_struct_fields(serializer.serialize_struct(name, len(fields)), self)


def _deserialize_struct(cls: type, deserializer: Deserializer) -> Any:
    name, style = cls.__serde_name__, cls.__serde_style__
    fields = _field_hints(cls)
    if style == "unit":
        deserializer.deserialize_unit_struct(name)
        return cls()
    if style == "newtype":
        return cls(deserializer.deserialize_newtype_struct(name, reader_for(fields[0][1])))
    if style == "tuple":
        return cls(*deserializer.deserialize_tuple_struct(name, [reader_for(h) for _, h in fields]))
    return cls(**deserializer.deserialize_struct(name, [(f, reader_for(h)) for f, h in fields]))


# ---- Enums ----


def _serialize_enum_member(self: enum.Enum, serializer: Serializer) -> None:
    members = list(type(self))
    serializer.serialize_unit_variant(type(self).__serde_name__, members.index(self), self.name)


def _visit_enum_member(members: list[enum.Enum], index: int, access: VariantAccess) -> Any:
    if index >= len(members):
        raise UnknownVariantIndex(index)
    member = members[index]
    access.unit_variant(member.name)
    return member


def _deserialize_enum(cls: type, deserializer: Deserializer) -> Any:
    return deserializer.deserialize_enum(cls.__serde_name__, partial(_visit_enum_member, list(cls)))


def serializable(cls: type | None = None, *, style: str = "struct", name: str | None = None) -> Any:
    """Class decorator deriving ``serialize`` and ``deserialize``.

    Args:
        cls: A dataclass (plain classes are turned into dataclasses) or an
            ``enum.Enum`` subclass, whose members become unit variants.
        style: ``struct`` (named fields), ``tuple`` (positional fields),
            ``newtype`` (one wrapped value) or ``unit`` (no fields).
            Ignored for enums.
        name: Container name recorded in formats; defaults to the class name.
    """

    def wrap(klass: type) -> type:
        klass.__serde_name__ = name or klass.__name__
        if issubclass(klass, enum.Enum):
            klass.serialize = _serialize_enum_member
            klass.deserialize = classmethod(_deserialize_enum)
            return klass
        if not dataclasses.is_dataclass(klass):
            klass = dataclass(klass)
        _check_style(klass, style)
        klass.__serde_style__ = style
        klass.serialize = _serialize_struct
        klass.deserialize = classmethod(_deserialize_struct)
        return klass

    if cls is None:
        return wrap
    return wrap(cls)


# ---- Tagged unions ----


def _union_of(cls: type) -> type:
    for base in cls.__mro__:
        if TaggedUnion in base.__bases__:
            return base
    raise TypeError(f"'{cls.__name__}' is not part of a tagged union")


def _visit_variant(variants: list[type], index: int, access: VariantAccess) -> Any:
    if index >= len(variants):
        raise UnknownVariantIndex(index)
    variant = variants[index]
    name, style = variant.__serde_variant__, variant.__serde_style__
    fields = _field_hints(variant)
    if style == "unit":
        access.unit_variant(name)
        return variant()
    if style == "newtype":
        return variant(access.newtype_variant(name, reader_for(fields[0][1])))
    if style == "tuple":
        return variant(*access.tuple_variant(name, [reader_for(h) for _, h in fields]))
    return variant(**access.struct_variant(name, [(f, reader_for(h)) for f, h in fields]))


class TaggedUnion:
    """Base class for enums whose variants carry data.

    Direct subclasses are unions. Their own subclasses are the variants: they
    are turned into dataclasses and indexed in declaration order.

        class Shape(TaggedUnion):
            pass

        class Circle(Shape):
            radius: F64

        class Nothing(Shape, style="unit"):
            pass
    """

    __serde_name__: ClassVar[str]
    __serde_variants__: ClassVar[list[type]]
    __serde_variant__: ClassVar[str]
    __serde_style__: ClassVar[str]
    __serde_index__: ClassVar[int]

    def __init_subclass__(cls, style: str | None = None, name: str | None = None, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if TaggedUnion in cls.__bases__:
            cls.__serde_name__ = name or cls.__name__
            cls.__serde_variants__ = []
            return
        union = _union_of(cls)
        dataclass(cls)
        _check_style(cls, style or "struct")
        cls.__serde_style__ = style or "struct"
        cls.__serde_variant__ = name or cls.__name__
        cls.__serde_index__ = len(union.__serde_variants__)
        union.__serde_variants__.append(cls)

    def serialize(self, serializer: Serializer) -> None:
        cls = type(self)
        name, index, variant = cls.__serde_name__, cls.__serde_index__, cls.__serde_variant__
        fields = _field_hints(cls)
        style = cls.__serde_style__
        if style == "unit":
            serializer.serialize_unit_variant(name, index, variant)
        elif style == "newtype":
            field_name, hint = fields[0]
            serializer.serialize_newtype_variant(
                name, index, variant, partial(writer_for(hint), getattr(self, field_name))
            )
        elif style == "tuple":
            _write_elements(
                serializer.serialize_tuple_variant(name, index, variant, len(fields)),
                [writer_for(hint) for _, hint in fields],
                [getattr(self, field_name) for field_name, _ in fields],
            )
        else:
            _write_struct_fields(
                serializer.serialize_struct_variant(name, index, variant, len(fields)), self
            )

    @classmethod
    def deserialize(cls, deserializer: Deserializer) -> Any:
        union = _union_of(cls)
        return deserializer.deserialize_enum(
            union.__serde_name__, partial(_visit_variant, union.__serde_variants__)
        )
