"""Deserializer that records formats while a type builds itself from synthetic data."""

from __future__ import annotations

from typing import Any, Sequence

from typed_formats.errors import RecursionLimitExceeded, UnknownVariantIndex, UnsupportedType
from typed_formats.formats import (
    EnumFormat,
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
from typed_formats.serde import Deserializer, DeserializeFn, EnumVisitor, VariantAccess
from typed_formats.tracing.context import TraceContext
from typed_formats.tracing.value import ValueDeserializer


def _is_known(slot: Shape) -> bool:
    return not slot.is_unknown()


class TracingDeserializer(Deserializer):
    """Deserializer answering with synthetic values and recording what is asked.

    Exploration stops at recursion points whose inner format is already known:
    options read as ``None``, sequences and maps as empty.
    """

    def __init__(self, context: TraceContext, slot: Shape) -> None:
        self._context = context
        self._slot = slot

    def read_nested(self, slot: Shape, read: DeserializeFn) -> Any:
        """Run a nested read from another slot."""
        return read(TracingDeserializer(self._context, slot))

    def _refer(self, name: str) -> None:
        self._context.unify(self._slot, TypeName(name))

    def _replay(self, name: str, enabled: bool) -> ValueDeserializer | None:
        if self._context.has_sample(name, enabled):
            return ValueDeserializer(self._context.sample(name))
        return None

    def deserialize_primitive(self, kind: PrimitiveKind) -> Any:
        self._context.unify(self._slot, Primitive(kind))
        return self._context.config.default_value(kind)

    def deserialize_option(self, read: DeserializeFn) -> Any:
        inner = Variable()
        self._context.unify(self._slot, OptionFormat(inner))
        if _is_known(inner):
            return None
        return self.read_nested(inner, read)

    def deserialize_unit_struct(self, name: str) -> None:
        self._refer(name)
        self._context.record(name, UnitStruct())
        return None

    def deserialize_newtype_struct(self, name: str, read: DeserializeFn) -> Any:
        self._refer(name)
        inner = Variable()
        self._context.record(name, NewTypeStruct(inner))
        replay = self._replay(name, self._context.config.record_samples_for_newtype_structs)
        if replay is not None:
            return read(replay)
        with self._context.container(name):
            return self.read_nested(inner, read)

    def deserialize_seq(self, read: DeserializeFn) -> list[Any]:
        inner = Variable()
        self._context.unify(self._slot, Seq(inner))
        if _is_known(inner):
            return []
        with self._context.crumb("0"):
            return [self.read_nested(inner, read)]

    def _read_elements(self, slots: Sequence[Shape], reads: Sequence[DeserializeFn]) -> list[Any]:
        values = []
        for position, (slot, read) in enumerate(zip(slots, reads)):
            with self._context.crumb(str(position)):
                values.append(self.read_nested(slot, read))
        return values

    def deserialize_tuple(self, reads: Sequence[DeserializeFn]) -> tuple[Any, ...]:
        formats = tuple(Variable() for _ in reads)
        self._context.unify(self._slot, TupleFormat(formats))
        return tuple(self._read_elements(formats, reads))

    def deserialize_array(self, read: DeserializeFn, size: int) -> list[Any]:
        content = Variable()
        self._context.unify(self._slot, TupleArray(content, size))
        return self._read_elements([content] * size, [read] * size)

    def deserialize_tuple_struct(self, name: str, reads: Sequence[DeserializeFn]) -> tuple[Any, ...]:
        self._refer(name)
        formats = tuple(Variable() for _ in reads)
        self._context.record(name, TupleStruct(formats))
        replay = self._replay(name, self._context.config.record_samples_for_tuple_structs)
        if replay is not None:
            return replay.deserialize_tuple_struct(name, reads)
        values = []
        for position, (slot, read) in enumerate(zip(formats, reads)):
            with self._context.within(name, str(position)):
                values.append(self.read_nested(slot, read))
        return tuple(values)

    def deserialize_map(
        self, read_key: DeserializeFn, read_value: DeserializeFn
    ) -> list[tuple[Any, Any]]:
        key, value = Variable(), Variable()
        self._context.unify(self._slot, MapFormat(key, value))
        if _is_known(key) and _is_known(value):
            return []
        with self._context.crumb("0"):
            return [(self.read_nested(key, read_key), self.read_nested(value, read_value))]

    def deserialize_struct(
        self, name: str, fields: Sequence[tuple[str, DeserializeFn]]
    ) -> dict[str, Any]:
        self._refer(name)
        slots = tuple(Named(field_name, Variable()) for field_name, _ in fields)
        self._context.record(name, Struct(slots))
        replay = self._replay(name, self._context.config.record_samples_for_structs)
        if replay is not None:
            return replay.deserialize_struct(name, fields)
        values = {}
        for slot, (field_name, read) in zip(slots, fields):
            with self._context.within(name, field_name):
                values[field_name] = self.read_nested(slot.value, read)
        return values

    def deserialize_enum(self, name: str, visitor: EnumVisitor) -> Any:
        self._refer(name)
        self._context.record(name, EnumFormat({}))
        self._context.capture_visitor(name, visitor)
        index = self._context.variant_index(name)
        try:
            return visitor(index, _TracingVariantAccess(self, name, index))
        except UnknownVariantIndex as exc:
            if exc.enum_name is not None:
                raise
            exc.enum_name = name
            if not self._context.is_active(name):
                raise
            # Every variant of this enum leads back into itself
            raise RecursionLimitExceeded(
                self._context.config.max_depth, self._context.location() + (name,)
            ) from exc

    def deserialize_any(self) -> Any:
        raise UnsupportedType("deserialize_any has no format: the shape depends on the data")


class _TracingVariantAccess(VariantAccess):
    """Records the payload of the variant picked by an enum visitor."""

    def __init__(self, owner: TracingDeserializer, name: str, index: int) -> None:
        self._owner = owner
        self._context = owner._context
        self._name = name
        self._index = index

    def _record(self, variant: str, payload: Shape) -> None:
        self._context.record_variant(self._name, self._index, variant, payload)

    def unit_variant(self, variant: str) -> None:
        self._record(variant, UnitVariant())
        return None

    def newtype_variant(self, variant: str, read: DeserializeFn) -> Any:
        inner = Variable()
        self._record(variant, NewTypeVariant(inner))
        with self._context.variant(self._name, self._index, variant):
            return self._owner.read_nested(inner, read)

    def tuple_variant(self, variant: str, reads: Sequence[DeserializeFn]) -> tuple[Any, ...]:
        formats = tuple(Variable() for _ in reads)
        self._record(variant, TupleVariant(formats))
        with self._context.variant(self._name, self._index, variant):
            return tuple(self._owner._read_elements(formats, reads))

    def struct_variant(
        self, variant: str, fields: Sequence[tuple[str, DeserializeFn]]
    ) -> dict[str, Any]:
        slots = tuple(Named(field_name, Variable()) for field_name, _ in fields)
        self._record(variant, StructVariant(slots))
        values = {}
        with self._context.variant(self._name, self._index, variant):
            for slot, (field_name, read) in zip(slots, fields):
                with self._context.crumb(field_name):
                    values[field_name] = self._owner.read_nested(slot.value, read)
        return values
