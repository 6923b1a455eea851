"""Format definitions for the typed_formats library.

Three vocabularies share one node hierarchy:

- formats describe the shape of a single value (``U32``, ``OptionFormat``,
  ``TypeName`` ...);
- container formats describe a named top-level type (``Struct``,
  ``EnumFormat`` ...);
- variant formats describe the payload of one enum variant.

While a trace is running, shapes that are not known yet are represented by
``Variable`` cells. ``unify`` binds them as observations arrive and
``reduce`` produces a ``Variable``-free copy once tracing is over.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterator

from typed_formats.errors import InconsistentFormat


class PrimitiveKind(Enum):
    """Primitive shapes of the serialization data model."""

    UNIT = "UNIT"
    BOOL = "BOOL"
    I8 = "I8"
    I16 = "I16"
    I32 = "I32"
    I64 = "I64"
    I128 = "I128"
    U8 = "U8"
    U16 = "U16"
    U32 = "U32"
    U64 = "U64"
    U128 = "U128"
    F32 = "F32"
    F64 = "F64"
    CHAR = "CHAR"
    STR = "STR"
    BYTES = "BYTES"

    @property
    def is_integer(self) -> bool:
        """Return whether this kind is a signed or unsigned integer."""
        return self.value[0] in "IU" and self.value[1:].isdigit()


# Mapping from document tags to PrimitiveKind values
PRIMITIVE_KIND_NAMES: dict[str, PrimitiveKind] = {pk.value: pk for pk in PrimitiveKind}


class Shape:
    """Base class for every node of the format IR."""

    def children(self) -> Iterator[Shape]:
        """Yield the direct sub-shapes of this node."""
        return iter(())

    def walk(self) -> Iterator[Shape]:
        """Yield this node and all its descendants, following bound variables."""
        yield self
        for child in self.children():
            yield from child.walk()

    def is_unknown(self) -> bool:
        """Return whether nothing is known about this shape yet."""
        return False

    def contains_unknown(self) -> bool:
        """Return whether an unbound placeholder remains anywhere below."""
        return any(isinstance(node, Variable) and node.value is None for node in self.walk())

    def type_names(self) -> list[str]:
        """Return the container names referenced below this node, in order."""
        return [node.name for node in self.walk() if isinstance(node, TypeName)]

    def reduce(self) -> Shape:
        """Return a copy where bound variables are replaced by their content."""
        return self

    def _unify_same(self, other: Shape, location: tuple[str, ...]) -> None:
        """Unify with a node of the same class."""


class Variable(Shape):
    """Mutable placeholder for a shape that has not been observed yet."""

    __slots__ = ("value",)

    def __init__(self, value: Shape | None = None) -> None:
        self.value = value

    def children(self) -> Iterator[Shape]:
        if self.value is not None:
            yield self.value

    def is_unknown(self) -> bool:
        resolved = resolve(self)
        return isinstance(resolved, Variable) or resolved.is_unknown()

    def reduce(self) -> Shape:
        resolved = resolve(self)
        if isinstance(resolved, Variable):
            return Variable()
        return resolved.reduce()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Shape):
            return NotImplemented
        mine = resolve(self)
        theirs = resolve(other)
        if isinstance(mine, Variable) or isinstance(theirs, Variable):
            return isinstance(mine, Variable) and isinstance(theirs, Variable)
        return mine == theirs

    __hash__ = None  # type: ignore[assignment]

    def __repr__(self) -> str:
        resolved = resolve(self)
        if isinstance(resolved, Variable):
            return "UNKNOWN"
        return repr(resolved)


def resolve(shape: Shape) -> Shape:
    """Follow bound variables to the underlying shape or the last unbound cell."""
    while isinstance(shape, Variable) and shape.value is not None:
        shape = shape.value
    return shape


def unify(left: Shape, right: Shape, location: tuple[str, ...] = ()) -> None:
    """Make two observations describe the same shape.

    Unbound variables on either side are bound to the other side. Enum variant
    tables are merged. Any structural disagreement raises InconsistentFormat
    with the path to the first diverging node.
    """
    left = resolve(left)
    right = resolve(right)
    if left is right:
        return
    if isinstance(right, Variable):
        right.value = left
        return
    if isinstance(left, Variable):
        left.value = right
        return
    if type(left) is not type(right):
        raise InconsistentFormat(left.reduce(), right.reduce(), location)
    left._unify_same(right, location)


def _unify_sequences(
    left: Shape,
    right: Shape,
    mine: tuple[Shape, ...],
    theirs: tuple[Shape, ...],
    location: tuple[str, ...],
) -> None:
    if len(mine) != len(theirs):
        raise InconsistentFormat(left.reduce(), right.reduce(), location)
    for position, (a, b) in enumerate(zip(mine, theirs)):
        unify(a, b, location + (str(position),))


def _unify_named(
    left: Shape,
    right: Shape,
    mine: tuple[Named, ...],
    theirs: tuple[Named, ...],
    location: tuple[str, ...],
) -> None:
    if [f.name for f in mine] != [f.name for f in theirs]:
        raise InconsistentFormat(left.reduce(), right.reduce(), location)
    for a, b in zip(mine, theirs):
        unify(a.value, b.value, location + (a.name,))


def _reduce_named(fields: tuple[Named, ...]) -> tuple[Named, ...]:
    return tuple(Named(f.name, f.value.reduce()) for f in fields)


@dataclass(frozen=True)
class Named:
    """A (name, shape) pair: a struct field or an enum variant."""

    name: str
    value: Shape


# ---- Formats ----


@dataclass(frozen=True, repr=False)
class Primitive(Shape):
    """A primitive value such as ``U32`` or ``STR``."""

    kind: PrimitiveKind

    def _unify_same(self, other: Shape, location: tuple[str, ...]) -> None:
        assert isinstance(other, Primitive)
        if self.kind is not other.kind:
            raise InconsistentFormat(self, other, location)

    def __repr__(self) -> str:
        return self.kind.value


UNIT = Primitive(PrimitiveKind.UNIT)
BOOL = Primitive(PrimitiveKind.BOOL)
I8 = Primitive(PrimitiveKind.I8)
I16 = Primitive(PrimitiveKind.I16)
I32 = Primitive(PrimitiveKind.I32)
I64 = Primitive(PrimitiveKind.I64)
I128 = Primitive(PrimitiveKind.I128)
U8 = Primitive(PrimitiveKind.U8)
U16 = Primitive(PrimitiveKind.U16)
U32 = Primitive(PrimitiveKind.U32)
U64 = Primitive(PrimitiveKind.U64)
U128 = Primitive(PrimitiveKind.U128)
F32 = Primitive(PrimitiveKind.F32)
F64 = Primitive(PrimitiveKind.F64)
CHAR = Primitive(PrimitiveKind.CHAR)
STR = Primitive(PrimitiveKind.STR)
BYTES = Primitive(PrimitiveKind.BYTES)


@dataclass(frozen=True)
class TypeName(Shape):
    """Weak reference to another registry entry, by name."""

    name: str

    def _unify_same(self, other: Shape, location: tuple[str, ...]) -> None:
        assert isinstance(other, TypeName)
        if self.name != other.name:
            raise InconsistentFormat(self, other, location)


@dataclass(frozen=True)
class OptionFormat(Shape):
    """An optional value."""

    format: Shape

    def children(self) -> Iterator[Shape]:
        yield self.format

    def reduce(self) -> Shape:
        return OptionFormat(self.format.reduce())

    def _unify_same(self, other: Shape, location: tuple[str, ...]) -> None:
        assert isinstance(other, OptionFormat)
        unify(self.format, other.format, location)


@dataclass(frozen=True)
class Seq(Shape):
    """A variable-length sequence of values of the same shape."""

    format: Shape

    def children(self) -> Iterator[Shape]:
        yield self.format

    def reduce(self) -> Shape:
        return Seq(self.format.reduce())

    def _unify_same(self, other: Shape, location: tuple[str, ...]) -> None:
        assert isinstance(other, Seq)
        unify(self.format, other.format, location)


@dataclass(frozen=True)
class MapFormat(Shape):
    """A map from keys of one shape to values of another."""

    key: Shape
    value: Shape

    def children(self) -> Iterator[Shape]:
        yield self.key
        yield self.value

    def reduce(self) -> Shape:
        return MapFormat(self.key.reduce(), self.value.reduce())

    def _unify_same(self, other: Shape, location: tuple[str, ...]) -> None:
        assert isinstance(other, MapFormat)
        unify(self.key, other.key, location)
        unify(self.value, other.value, location)


@dataclass(frozen=True)
class TupleFormat(Shape):
    """An anonymous tuple of heterogeneous values."""

    formats: tuple[Shape, ...]

    def children(self) -> Iterator[Shape]:
        yield from self.formats

    def reduce(self) -> Shape:
        return TupleFormat(tuple(f.reduce() for f in self.formats))

    def _unify_same(self, other: Shape, location: tuple[str, ...]) -> None:
        assert isinstance(other, TupleFormat)
        _unify_sequences(self, other, self.formats, other.formats, location)


@dataclass(frozen=True)
class TupleArray(Shape):
    """A fixed-size array of values of the same shape."""

    content: Shape
    size: int

    def children(self) -> Iterator[Shape]:
        yield self.content

    def reduce(self) -> Shape:
        return TupleArray(self.content.reduce(), self.size)

    def _unify_same(self, other: Shape, location: tuple[str, ...]) -> None:
        assert isinstance(other, TupleArray)
        if self.size != other.size:
            raise InconsistentFormat(self.reduce(), other.reduce(), location)
        unify(self.content, other.content, location)


# ---- Container formats ----


@dataclass(frozen=True)
class UnitStruct(Shape):
    """A struct without fields, e.g. ``struct Marker;``."""


@dataclass(frozen=True)
class NewTypeStruct(Shape):
    """A struct wrapping exactly one unnamed value."""

    format: Shape

    def children(self) -> Iterator[Shape]:
        yield self.format

    def reduce(self) -> Shape:
        return NewTypeStruct(self.format.reduce())

    def _unify_same(self, other: Shape, location: tuple[str, ...]) -> None:
        assert isinstance(other, NewTypeStruct)
        unify(self.format, other.format, location)


@dataclass(frozen=True)
class TupleStruct(Shape):
    """A struct with unnamed, positional fields."""

    formats: tuple[Shape, ...]

    def children(self) -> Iterator[Shape]:
        yield from self.formats

    def reduce(self) -> Shape:
        return TupleStruct(tuple(f.reduce() for f in self.formats))

    def _unify_same(self, other: Shape, location: tuple[str, ...]) -> None:
        assert isinstance(other, TupleStruct)
        _unify_sequences(self, other, self.formats, other.formats, location)


@dataclass(frozen=True)
class Struct(Shape):
    """A struct with named fields, in declaration order."""

    fields: tuple[Named, ...]

    def children(self) -> Iterator[Shape]:
        for f in self.fields:
            yield f.value

    def reduce(self) -> Shape:
        return Struct(_reduce_named(self.fields))

    def _unify_same(self, other: Shape, location: tuple[str, ...]) -> None:
        assert isinstance(other, Struct)
        _unify_named(self, other, self.fields, other.fields, location)


@dataclass(frozen=True)
class EnumFormat(Shape):
    """An enum: variants indexed by their discriminant.

    During tracing the variant table grows as discriminants are probed; once
    reduced it is ordered by index.
    """

    variants: dict[int, Named]

    def children(self) -> Iterator[Shape]:
        for variant in self.variants.values():
            yield variant.value

    def reduce(self) -> Shape:
        return EnumFormat({
            index: Named(self.variants[index].name, self.variants[index].value.reduce())
            for index in sorted(self.variants)
        })

    def get_variant(self, name: str) -> tuple[int, Shape] | None:
        """Get (index, variant format) by variant name."""
        for index, variant in self.variants.items():
            if variant.name == name:
                return index, variant.value
        return None

    def is_contiguous(self) -> bool:
        """Return whether the indices are exactly ``0 .. len - 1``."""
        return sorted(self.variants) == list(range(len(self.variants)))

    def _unify_same(self, other: Shape, location: tuple[str, ...]) -> None:
        assert isinstance(other, EnumFormat)
        for index, variant in other.variants.items():
            existing = self.variants.get(index)
            if existing is None:
                self.variants[index] = variant
                continue
            if existing.name != variant.name:
                raise InconsistentFormat(existing.name, variant.name, location + (str(index),))
            unify(existing.value, variant.value, location + (existing.name,))


# ---- Variant formats ----


@dataclass(frozen=True)
class UnitVariant(Shape):
    """A variant without payload."""


@dataclass(frozen=True)
class NewTypeVariant(Shape):
    """A variant carrying exactly one unnamed value."""

    format: Shape

    def children(self) -> Iterator[Shape]:
        yield self.format

    def reduce(self) -> Shape:
        return NewTypeVariant(self.format.reduce())

    def _unify_same(self, other: Shape, location: tuple[str, ...]) -> None:
        assert isinstance(other, NewTypeVariant)
        unify(self.format, other.format, location)


@dataclass(frozen=True)
class TupleVariant(Shape):
    """A variant carrying positional values."""

    formats: tuple[Shape, ...]

    def children(self) -> Iterator[Shape]:
        yield from self.formats

    def reduce(self) -> Shape:
        return TupleVariant(tuple(f.reduce() for f in self.formats))

    def _unify_same(self, other: Shape, location: tuple[str, ...]) -> None:
        assert isinstance(other, TupleVariant)
        _unify_sequences(self, other, self.formats, other.formats, location)


@dataclass(frozen=True)
class StructVariant(Shape):
    """A variant carrying named fields."""

    fields: tuple[Named, ...]

    def children(self) -> Iterator[Shape]:
        for f in self.fields:
            yield f.value

    def reduce(self) -> Shape:
        return StructVariant(_reduce_named(self.fields))

    def _unify_same(self, other: Shape, location: tuple[str, ...]) -> None:
        assert isinstance(other, StructVariant)
        _unify_named(self, other, self.fields, other.fields, location)


CONTAINER_FORMATS = (UnitStruct, NewTypeStruct, TupleStruct, Struct, EnumFormat)
VARIANT_FORMATS = (UnitVariant, NewTypeVariant, TupleVariant, StructVariant)
