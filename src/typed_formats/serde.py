"""Generic (de)serialization contract.

Types become traceable by writing themselves to a ``Serializer`` and by
reading themselves from a ``Deserializer``. Nested values are passed as
callbacks so that the receiving side decides when, and how often, they run:

    class Pair:
        def serialize(self, serializer: Serializer) -> None:
            fields = serializer.serialize_struct("Pair", 2)
            fields.serialize_field("a", lambda s: s.serialize_u32(self.a))
            fields.serialize_field("b", lambda s: s.serialize_str(self.b))
            fields.end()

        @classmethod
        def deserialize(cls, deserializer: Deserializer) -> Pair:
            values = deserializer.deserialize_struct("Pair", [
                ("a", lambda d: d.deserialize_u32()),
                ("b", lambda d: d.deserialize_str()),
            ])
            return cls(**values)

Enum logic is handed a variant index and must raise ``UnknownVariantIndex``
for an index it does not define. Most types get these methods from
``typed_formats.derive`` instead of writing them by hand.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, Protocol, Sequence, runtime_checkable

from typed_formats.formats import PrimitiveKind

SerializeFn = Callable[["Serializer"], None]
DeserializeFn = Callable[["Deserializer"], Any]
EnumVisitor = Callable[[int, "VariantAccess"], Any]


@runtime_checkable
class Serialize(Protocol):
    """A value that can write itself to a Serializer."""

    def serialize(self, serializer: Serializer) -> None: ...


class SeqSerializer(ABC):
    """Receives the elements of a sequence, tuple or array, then ``end``."""

    @abstractmethod
    def serialize_element(self, write: SerializeFn) -> None: ...

    @abstractmethod
    def end(self) -> None: ...


class MapSerializer(ABC):
    """Receives the entries of a map, then ``end``."""

    @abstractmethod
    def serialize_entry(self, write_key: SerializeFn, write_value: SerializeFn) -> None: ...

    @abstractmethod
    def end(self) -> None: ...


class StructSerializer(ABC):
    """Receives the fields of a struct or struct variant, then ``end``."""

    @abstractmethod
    def serialize_field(self, name: str, write: SerializeFn) -> None: ...

    @abstractmethod
    def end(self) -> None: ...


class Serializer(ABC):
    """Write side of the contract."""

    @abstractmethod
    def serialize_primitive(self, kind: PrimitiveKind, value: Any) -> None:
        """Write one primitive value of the given kind."""

    def serialize_unit(self) -> None:
        self.serialize_primitive(PrimitiveKind.UNIT, None)

    def serialize_bool(self, value: bool) -> None:
        self.serialize_primitive(PrimitiveKind.BOOL, value)

    def serialize_i8(self, value: int) -> None:
        self.serialize_primitive(PrimitiveKind.I8, value)

    def serialize_i16(self, value: int) -> None:
        self.serialize_primitive(PrimitiveKind.I16, value)

    def serialize_i32(self, value: int) -> None:
        self.serialize_primitive(PrimitiveKind.I32, value)

    def serialize_i64(self, value: int) -> None:
        self.serialize_primitive(PrimitiveKind.I64, value)

    def serialize_i128(self, value: int) -> None:
        self.serialize_primitive(PrimitiveKind.I128, value)

    def serialize_u8(self, value: int) -> None:
        self.serialize_primitive(PrimitiveKind.U8, value)

    def serialize_u16(self, value: int) -> None:
        self.serialize_primitive(PrimitiveKind.U16, value)

    def serialize_u32(self, value: int) -> None:
        self.serialize_primitive(PrimitiveKind.U32, value)

    def serialize_u64(self, value: int) -> None:
        self.serialize_primitive(PrimitiveKind.U64, value)

    def serialize_u128(self, value: int) -> None:
        self.serialize_primitive(PrimitiveKind.U128, value)

    def serialize_f32(self, value: float) -> None:
        self.serialize_primitive(PrimitiveKind.F32, value)

    def serialize_f64(self, value: float) -> None:
        self.serialize_primitive(PrimitiveKind.F64, value)

    def serialize_char(self, value: str) -> None:
        self.serialize_primitive(PrimitiveKind.CHAR, value)

    def serialize_str(self, value: str) -> None:
        self.serialize_primitive(PrimitiveKind.STR, value)

    def serialize_bytes(self, value: bytes) -> None:
        self.serialize_primitive(PrimitiveKind.BYTES, value)

    @abstractmethod
    def serialize_none(self) -> None: ...

    @abstractmethod
    def serialize_some(self, write: SerializeFn) -> None: ...

    @abstractmethod
    def serialize_unit_struct(self, name: str) -> None: ...

    @abstractmethod
    def serialize_newtype_struct(self, name: str, write: SerializeFn) -> None: ...

    @abstractmethod
    def serialize_seq(self, length: int) -> SeqSerializer: ...

    @abstractmethod
    def serialize_tuple(self, length: int) -> SeqSerializer: ...

    @abstractmethod
    def serialize_array(self, length: int) -> SeqSerializer:
        """Begin a fixed-size array whose elements all share one shape."""

    @abstractmethod
    def serialize_tuple_struct(self, name: str, length: int) -> SeqSerializer: ...

    @abstractmethod
    def serialize_map(self, length: int) -> MapSerializer: ...

    @abstractmethod
    def serialize_struct(self, name: str, length: int) -> StructSerializer: ...

    @abstractmethod
    def serialize_unit_variant(self, name: str, index: int, variant: str) -> None: ...

    @abstractmethod
    def serialize_newtype_variant(
        self, name: str, index: int, variant: str, write: SerializeFn
    ) -> None: ...

    @abstractmethod
    def serialize_tuple_variant(
        self, name: str, index: int, variant: str, length: int
    ) -> SeqSerializer: ...

    @abstractmethod
    def serialize_struct_variant(
        self, name: str, index: int, variant: str, length: int
    ) -> StructSerializer: ...


class VariantAccess(ABC):
    """Handed to an enum visitor to read the payload of the selected variant."""

    @abstractmethod
    def unit_variant(self, variant: str) -> None: ...

    @abstractmethod
    def newtype_variant(self, variant: str, read: DeserializeFn) -> Any: ...

    @abstractmethod
    def tuple_variant(self, variant: str, reads: Sequence[DeserializeFn]) -> tuple[Any, ...]: ...

    @abstractmethod
    def struct_variant(
        self, variant: str, fields: Sequence[tuple[str, DeserializeFn]]
    ) -> dict[str, Any]: ...


class Deserializer(ABC):
    """Read side of the contract."""

    @abstractmethod
    def deserialize_primitive(self, kind: PrimitiveKind) -> Any:
        """Read one primitive value of the given kind."""

    def deserialize_unit(self) -> None:
        return self.deserialize_primitive(PrimitiveKind.UNIT)

    def deserialize_bool(self) -> bool:
        return self.deserialize_primitive(PrimitiveKind.BOOL)

    def deserialize_i8(self) -> int:
        return self.deserialize_primitive(PrimitiveKind.I8)

    def deserialize_i16(self) -> int:
        return self.deserialize_primitive(PrimitiveKind.I16)

    def deserialize_i32(self) -> int:
        return self.deserialize_primitive(PrimitiveKind.I32)

    def deserialize_i64(self) -> int:
        return self.deserialize_primitive(PrimitiveKind.I64)

    def deserialize_i128(self) -> int:
        return self.deserialize_primitive(PrimitiveKind.I128)

    def deserialize_u8(self) -> int:
        return self.deserialize_primitive(PrimitiveKind.U8)

    def deserialize_u16(self) -> int:
        return self.deserialize_primitive(PrimitiveKind.U16)

    def deserialize_u32(self) -> int:
        return self.deserialize_primitive(PrimitiveKind.U32)

    def deserialize_u64(self) -> int:
        return self.deserialize_primitive(PrimitiveKind.U64)

    def deserialize_u128(self) -> int:
        return self.deserialize_primitive(PrimitiveKind.U128)

    def deserialize_f32(self) -> float:
        return self.deserialize_primitive(PrimitiveKind.F32)

    def deserialize_f64(self) -> float:
        return self.deserialize_primitive(PrimitiveKind.F64)

    def deserialize_char(self) -> str:
        return self.deserialize_primitive(PrimitiveKind.CHAR)

    def deserialize_str(self) -> str:
        return self.deserialize_primitive(PrimitiveKind.STR)

    def deserialize_bytes(self) -> bytes:
        return self.deserialize_primitive(PrimitiveKind.BYTES)

    @abstractmethod
    def deserialize_option(self, read: DeserializeFn) -> Any: ...

    @abstractmethod
    def deserialize_unit_struct(self, name: str) -> None: ...

    @abstractmethod
    def deserialize_newtype_struct(self, name: str, read: DeserializeFn) -> Any: ...

    @abstractmethod
    def deserialize_seq(self, read: DeserializeFn) -> list[Any]: ...

    @abstractmethod
    def deserialize_tuple(self, reads: Sequence[DeserializeFn]) -> tuple[Any, ...]: ...

    @abstractmethod
    def deserialize_array(self, read: DeserializeFn, size: int) -> list[Any]: ...

    @abstractmethod
    def deserialize_tuple_struct(
        self, name: str, reads: Sequence[DeserializeFn]
    ) -> tuple[Any, ...]: ...

    @abstractmethod
    def deserialize_map(
        self, read_key: DeserializeFn, read_value: DeserializeFn
    ) -> list[tuple[Any, Any]]:
        """Read a map as a list of (key, value) pairs."""

    @abstractmethod
    def deserialize_struct(
        self, name: str, fields: Sequence[tuple[str, DeserializeFn]]
    ) -> dict[str, Any]: ...

    @abstractmethod
    def deserialize_enum(self, name: str, visitor: EnumVisitor) -> Any: ...

    @abstractmethod
    def deserialize_any(self) -> Any:
        """Read a value whose shape is only known to the data itself."""
