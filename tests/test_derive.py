"""Tests for contract implementations derived from annotations."""

from __future__ import annotations

import enum
from typing import Annotated, Optional, Union

import pytest

from typed_formats import formats
from typed_formats.derive import U8, U64, Fixed, TaggedUnion, reader_for, serializable
from typed_formats.errors import UnsupportedType
from typed_formats.formats import (
    EnumFormat,
    Named,
    NewTypeStruct,
    NewTypeVariant,
    OptionFormat,
    Seq,
    Struct,
    TupleArray,
    TypeName,
    UnitVariant,
)
from typed_formats.tracing import Samples, Some, Tracer, ValueDeserializer, VariantValue, trace


@serializable(name="account_id", style="newtype")
class AccountId:
    value: U64


@serializable
class Account:
    id: AccountId
    owner: Optional[str]
    tags: set[str]
    history: tuple[int, ...]


@serializable
class Mixed:
    either: Union[int, str]


class Size(TaggedUnion, name="size"):
    pass


class Small(Size, style="unit"):
    pass


class Big(Size, style="newtype", name="LARGE"):
    amount: U8


@serializable
class Level(enum.Enum):
    LOW = "low"
    HIGH = "high"


class TestSerializable:
    """Tests for the serializable decorator."""

    def test_makes_dataclass(self):
        """Test plain classes are turned into dataclasses."""
        account = Account(AccountId(1), None, set(), ())
        assert account.id == AccountId(1)

    def test_name_override(self):
        """Test the recorded container name can be overridden."""
        _, registry = trace(Account)

        assert registry.list_names() == ["Account", "account_id"]
        assert registry["account_id"] == NewTypeStruct(formats.U64)
        assert registry["Account"] == Struct((
            Named("id", TypeName("account_id")),
            Named("owner", OptionFormat(formats.STR)),
            Named("tags", Seq(formats.STR)),
            Named("history", Seq(formats.I64)),
        ))

    def test_collection_builders(self):
        """Test sets and homogeneous tuples are rebuilt with their own type."""
        fmt, values = Tracer().trace_type(Account)

        assert fmt == TypeName("Account")
        assert values == [Account(AccountId(0), "", {""}, (0,))]

    def test_unknown_style(self):
        """Test an unknown style is rejected."""
        with pytest.raises(ValueError):

            @serializable(style="record")
            class Bad:
                x: int

    def test_newtype_needs_one_field(self):
        """Test a newtype must wrap exactly one field."""
        with pytest.raises(TypeError):

            @serializable(style="newtype")
            class Bad:
                x: int
                y: int

    def test_unit_has_no_fields(self):
        """Test a unit struct cannot have fields."""
        with pytest.raises(TypeError):

            @serializable(style="unit")
            class Bad:
                x: int

    def test_enum_members_are_unit_variants(self):
        """Test enum members become unit variants in declaration order."""
        _, registry = trace(Level)

        assert registry["Level"] == EnumFormat({
            0: Named("LOW", UnitVariant()),
            1: Named("HIGH", UnitVariant()),
        })

    def test_enum_member_value(self):
        """Test enum members are written as their variant index."""
        fmt, value = Tracer().trace_value(Samples(), Level.HIGH)

        assert fmt == TypeName("Level")
        assert value == VariantValue(1, None)


class TestTaggedUnion:
    """Tests for TaggedUnion."""

    def test_variants_indexed_in_order(self):
        """Test variants are registered in declaration order."""
        assert Size.__serde_variants__ == [Small, Big]
        assert Small.__serde_index__ == 0
        assert Big.__serde_index__ == 1

    def test_names(self):
        """Test union and variant names can be overridden."""
        _, registry = trace(Size)

        assert registry["size"] == EnumFormat({
            0: Named("Small", UnitVariant()),
            1: Named("LARGE", NewTypeVariant(formats.U8)),
        })

    def test_variants_are_dataclasses(self):
        """Test variants compare by value."""
        assert Big(3) == Big(3)
        assert Big(3) != Big(4)

    def test_bad_variant_style(self):
        """Test a variant with a mismatched style is rejected."""
        with pytest.raises(TypeError):

            class Wrong(Size, style="unit"):
                x: int


class TestHints:
    """Tests for writers and readers chosen from annotations."""

    def test_optional_hint(self):
        """Test tracing a value under an Optional hint."""
        tracer = Tracer()

        assert tracer.trace_value(Samples(), 5, hint=Optional[U8]) == (OptionFormat(formats.U8), Some(5))

    def test_fixed_array_hint(self):
        """Test a fixed-size array hint records its size."""
        tracer = Tracer()
        fmt, value = tracer.trace_value(Samples(), [1, 2], hint=Annotated[list[U8], Fixed(2)])

        assert fmt == TupleArray(formats.U8, 2)
        assert value == [1, 2]

    def test_union_unsupported(self):
        """Test unions other than Optional have no format."""
        with pytest.raises(UnsupportedType) as excinfo:
            trace(Mixed)

        assert excinfo.value.path == ("Mixed", "either")

    def test_union_writer_unsupported(self):
        """Test writing through a union hint fails."""
        with pytest.raises(UnsupportedType):
            Tracer().trace_value(Samples(), 1, hint=Union[int, str])

    def test_reader_replays_value(self):
        """Test derived readers rebuild values from recorded form."""
        read = reader_for(Account)

        account = read(ValueDeserializer([5, Some("ann"), ["x"], [1, 2]]))

        assert account == Account(AccountId(5), "ann", {"x"}, (1, 2))

    def test_writer_for_none(self):
        """Test a None hint writes the unit primitive."""
        fmt, value = Tracer().trace_value(Samples(), None, hint=type(None))

        assert fmt == formats.UNIT
        assert value is None

    def test_plain_list_hint(self):
        """Test list hints record a sequence of their element format."""
        fmt, _ = Tracer().trace_value(Samples(), [True], hint=list[bool])

        assert fmt == Seq(formats.BOOL)
