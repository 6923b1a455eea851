"""Serializer that records formats while a value writes itself."""

from __future__ import annotations

from typing import Any, Callable, ContextManager

from typed_formats.errors import UnsupportedType
from typed_formats.formats import (
    MapFormat,
    Named,
    NewTypeStruct,
    NewTypeVariant,
    OptionFormat,
    Primitive,
    PrimitiveKind,
    Seq,
    Shape,
    Struct,
    StructVariant,
    TupleArray,
    TupleFormat,
    TupleStruct,
    TupleVariant,
    TypeName,
    UnitStruct,
    UnitVariant,
    Variable,
)
from typed_formats.serde import (
    MapSerializer,
    SeqSerializer,
    SerializeFn,
    Serializer,
    StructSerializer,
)
from typed_formats.tracing.context import TraceContext
from typed_formats.tracing.value import Some, VariantValue


class TracingSerializer(Serializer):
    """Serializer recording the shape of every write into ``slot``.

    After a write, ``value`` holds the recorded value (see
    ``typed_formats.tracing.value``). Named containers are unified into the
    session registry and their payloads are kept as samples.
    """

    def __init__(self, context: TraceContext, slot: Shape) -> None:
        self._context = context
        self._slot = slot
        self.value: Any = None

    def write_nested(self, slot: Shape, write: SerializeFn) -> Any:
        """Run a nested write into another slot and return its recorded value."""
        nested = TracingSerializer(self._context, slot)
        write(nested)
        return nested.value

    def _set_value(self, value: Any) -> None:
        self.value = value

    def _refer(self, name: str) -> None:
        self._context.unify(self._slot, TypeName(name))

    def serialize_primitive(self, kind: PrimitiveKind, value: Any) -> None:
        self._context.unify(self._slot, Primitive(kind))
        self.value = value

    def serialize_none(self) -> None:
        self._context.unify(self._slot, OptionFormat(Variable()))
        self.value = None

    def serialize_some(self, write: SerializeFn) -> None:
        inner = Variable()
        self._context.unify(self._slot, OptionFormat(inner))
        self.value = Some(self.write_nested(inner, write))

    def serialize_unit_struct(self, name: str) -> None:
        self._refer(name)
        self._context.record(name, UnitStruct())
        self._context.samples.record(name, None)
        self.value = None

    def serialize_newtype_struct(self, name: str, write: SerializeFn) -> None:
        self._refer(name)
        inner = Variable()
        self._context.record(name, NewTypeStruct(inner))
        with self._context.scope(name):
            self.value = self.write_nested(inner, write)
        self._context.samples.record(name, self.value)

    def serialize_seq(self, length: int) -> SeqSerializer:
        inner = Variable()
        self._context.unify(self._slot, Seq(inner))
        return _ElementSerializer(
            self, length, lambda position: inner, self._context.crumb, self._set_value
        )

    def serialize_tuple(self, length: int) -> SeqSerializer:
        formats = tuple(Variable() for _ in range(length))
        self._context.unify(self._slot, TupleFormat(formats))
        return _ElementSerializer(
            self, length, formats.__getitem__, self._context.crumb, self._set_value
        )

    def serialize_array(self, length: int) -> SeqSerializer:
        content = Variable()
        self._context.unify(self._slot, TupleArray(content, length))
        return _ElementSerializer(
            self, length, lambda position: content, self._context.crumb, self._set_value
        )

    def serialize_tuple_struct(self, name: str, length: int) -> SeqSerializer:
        self._refer(name)
        formats = tuple(Variable() for _ in range(length))
        self._context.record(name, TupleStruct(formats))

        def finish(values: list[Any]) -> None:
            self.value = values
            self._context.samples.record(name, values)

        return _ElementSerializer(
            self,
            length,
            formats.__getitem__,
            lambda label: self._context.scope(name, label),
            finish,
        )

    def serialize_map(self, length: int) -> MapSerializer:
        key, value = Variable(), Variable()
        self._context.unify(self._slot, MapFormat(key, value))
        return _EntrySerializer(self, length, key, value)

    def serialize_struct(self, name: str, length: int) -> StructSerializer:
        self._refer(name)

        def finish(fields: tuple[Named, ...], values: list[Any]) -> None:
            self._context.record(name, Struct(fields))
            self._context.samples.record(name, values)
            self.value = values

        return _FieldSerializer(self, length, lambda label: self._context.scope(name, label), finish)

    def serialize_unit_variant(self, name: str, index: int, variant: str) -> None:
        self._refer(name)
        self._context.record_variant(name, index, variant, UnitVariant())
        self.value = VariantValue(index, None)

    def serialize_newtype_variant(
        self, name: str, index: int, variant: str, write: SerializeFn
    ) -> None:
        self._refer(name)
        inner = Variable()
        self._context.record_variant(name, index, variant, NewTypeVariant(inner))
        with self._context.scope(name, variant):
            self.value = VariantValue(index, self.write_nested(inner, write))

    def serialize_tuple_variant(
        self, name: str, index: int, variant: str, length: int
    ) -> SeqSerializer:
        self._refer(name)
        formats = tuple(Variable() for _ in range(length))
        self._context.record_variant(name, index, variant, TupleVariant(formats))
        return _ElementSerializer(
            self,
            length,
            formats.__getitem__,
            lambda label: self._context.scope(name, variant, label),
            lambda values: self._set_value(VariantValue(index, values)),
        )

    def serialize_struct_variant(
        self, name: str, index: int, variant: str, length: int
    ) -> StructSerializer:
        self._refer(name)

        def finish(fields: tuple[Named, ...], values: list[Any]) -> None:
            self._context.record_variant(name, index, variant, StructVariant(fields))
            self.value = VariantValue(index, values)

        return _FieldSerializer(
            self, length, lambda label: self._context.scope(name, variant, label), finish
        )


class _ElementSerializer(SeqSerializer):
    """Collects the elements of sequences, tuples, arrays and tuple containers."""

    def __init__(
        self,
        owner: TracingSerializer,
        length: int,
        slot_for: Callable[[int], Shape],
        scope: Callable[[str], ContextManager[None]],
        finish: Callable[[list[Any]], None],
    ) -> None:
        self._owner = owner
        self._length = length
        self._slot_for = slot_for
        self._scope = scope
        self._finish = finish
        self._values: list[Any] = []

    def serialize_element(self, write: SerializeFn) -> None:
        position = len(self._values)
        if position >= self._length:
            raise UnsupportedType(f"More elements than the declared length {self._length}")
        with self._scope(str(position)):
            self._values.append(self._owner.write_nested(self._slot_for(position), write))

    def end(self) -> None:
        if len(self._values) != self._length:
            raise UnsupportedType(
                f"Declared {self._length} elements but wrote {len(self._values)}"
            )
        self._finish(self._values)


class _EntrySerializer(MapSerializer):
    """Collects the entries of a map."""

    def __init__(self, owner: TracingSerializer, length: int, key: Shape, value: Shape) -> None:
        self._owner = owner
        self._length = length
        self._key = key
        self._value = value
        self._entries: list[tuple[Any, Any]] = []

    def serialize_entry(self, write_key: SerializeFn, write_value: SerializeFn) -> None:
        position = len(self._entries)
        if position >= self._length:
            raise UnsupportedType(f"More entries than the declared length {self._length}")
        with self._owner._context.crumb(str(position)):
            key = self._owner.write_nested(self._key, write_key)
            value = self._owner.write_nested(self._value, write_value)
        self._entries.append((key, value))

    def end(self) -> None:
        if len(self._entries) != self._length:
            raise UnsupportedType(
                f"Declared {self._length} entries but wrote {len(self._entries)}"
            )
        self._owner.value = self._entries


class _FieldSerializer(StructSerializer):
    """Collects the fields of structs and struct variants, in write order."""

    def __init__(
        self,
        owner: TracingSerializer,
        length: int,
        scope: Callable[[str], ContextManager[None]],
        finish: Callable[[tuple[Named, ...], list[Any]], None],
    ) -> None:
        self._owner = owner
        self._length = length
        self._scope = scope
        self._finish = finish
        self._fields: list[Named] = []
        self._values: list[Any] = []

    def serialize_field(self, name: str, write: SerializeFn) -> None:
        if len(self._fields) >= self._length:
            raise UnsupportedType(f"More fields than the declared length {self._length}")
        slot = Variable()
        with self._scope(name):
            self._values.append(self._owner.write_nested(slot, write))
        self._fields.append(Named(name, slot))

    def end(self) -> None:
        if len(self._fields) != self._length:
            raise UnsupportedType(
                f"Declared {self._length} fields but wrote {len(self._fields)}"
            )
        self._finish(tuple(self._fields), self._values)
