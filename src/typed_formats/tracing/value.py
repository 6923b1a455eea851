"""Values recorded while tracing serialization, and their replay.

A recorded value mirrors the contract calls that produced it:

- primitives are kept as is, units and ``None`` options as ``None``;
- ``Some(value)`` wraps a present option;
- sequences, tuples, arrays, tuple structs and struct fields become lists;
- maps become lists of (key, value) pairs;
- newtype structs are their payload;
- enum values are ``VariantValue(index, payload)``.

``ValueDeserializer`` replays such a value through a type's own
deserialization logic, which is how samples stand in for synthetic values.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Sequence

from typed_formats.errors import UnsupportedType
from typed_formats.formats import PrimitiveKind
from typed_formats.serde import Deserializer, DeserializeFn, EnumVisitor, VariantAccess


@dataclass(frozen=True)
class Some:
    """A present optional value."""

    value: Any


@dataclass(frozen=True)
class VariantValue:
    """An enum value: the variant index and its payload."""

    index: int
    value: Any


class Samples:
    """Recorded container payloads, keyed by container name."""

    def __init__(self) -> None:
        self._values: dict[str, Any] = {}

    def record(self, name: str, value: Any) -> None:
        """Remember the latest payload observed for a container."""
        self._values[name] = value

    def value(self, name: str) -> Any:
        """Get the recorded payload for a container, raising if absent."""
        return self._values[name]

    def names(self) -> list[str]:
        return list(self._values)

    def __contains__(self, name: str) -> bool:
        return name in self._values

    def __len__(self) -> int:
        return len(self._values)


class ValueDeserializer(Deserializer):
    """Deserializer reading from a recorded value instead of synthetic data."""

    def __init__(self, value: Any) -> None:
        self._value = value

    def _nested(self, value: Any) -> ValueDeserializer:
        return ValueDeserializer(value)

    def deserialize_primitive(self, kind: PrimitiveKind) -> Any:
        return self._value

    def deserialize_option(self, read: DeserializeFn) -> Any:
        if self._value is None:
            return None
        return read(self._nested(self._value.value))

    def deserialize_unit_struct(self, name: str) -> None:
        return None

    def deserialize_newtype_struct(self, name: str, read: DeserializeFn) -> Any:
        return read(self)

    def deserialize_seq(self, read: DeserializeFn) -> list[Any]:
        return [read(self._nested(item)) for item in self._value]

    def deserialize_tuple(self, reads: Sequence[DeserializeFn]) -> tuple[Any, ...]:
        return tuple(read(self._nested(item)) for read, item in zip(reads, self._value))

    def deserialize_array(self, read: DeserializeFn, size: int) -> list[Any]:
        return [read(self._nested(item)) for item in self._value[:size]]

    def deserialize_tuple_struct(self, name: str, reads: Sequence[DeserializeFn]) -> tuple[Any, ...]:
        return self.deserialize_tuple(reads)

    def deserialize_map(self, read_key: DeserializeFn, read_value: DeserializeFn) -> list[tuple[Any, Any]]:
        return [
            (read_key(self._nested(key)), read_value(self._nested(value)))
            for key, value in self._value
        ]

    def deserialize_struct(
        self, name: str, fields: Sequence[tuple[str, DeserializeFn]]
    ) -> dict[str, Any]:
        return {
            field_name: read(self._nested(item))
            for (field_name, read), item in zip(fields, self._value)
        }

    def deserialize_enum(self, name: str, visitor: EnumVisitor) -> Any:
        return visitor(self._value.index, _ValueVariantAccess(self._value.value))

    def deserialize_any(self) -> Any:
        raise UnsupportedType("deserialize_any cannot replay a recorded value")


class _ValueVariantAccess(VariantAccess):
    def __init__(self, payload: Any) -> None:
        self._payload = ValueDeserializer(payload)

    def unit_variant(self, variant: str) -> None:
        return None

    def newtype_variant(self, variant: str, read: DeserializeFn) -> Any:
        return read(self._payload)

    def tuple_variant(self, variant: str, reads: Sequence[DeserializeFn]) -> tuple[Any, ...]:
        return self._payload.deserialize_tuple(reads)

    def struct_variant(self, variant: str, fields: Sequence[tuple[str, DeserializeFn]]) -> dict[str, Any]:
        return self._payload.deserialize_struct(variant, fields)
