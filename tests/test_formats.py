"""Tests for the format IR and unification."""

import pytest

from typed_formats import formats
from typed_formats.errors import InconsistentFormat
from typed_formats.formats import (
    EnumFormat,
    MapFormat,
    Named,
    NewTypeVariant,
    OptionFormat,
    PrimitiveKind,
    Seq,
    Struct,
    TupleArray,
    TupleFormat,
    TypeName,
    UnitVariant,
    Variable,
    resolve,
    unify,
)


class TestPrimitiveKind:
    """Tests for PrimitiveKind."""

    def test_is_integer(self):
        """Test integer detection for all kinds."""
        integers = {kind for kind in PrimitiveKind if kind.is_integer}
        assert integers == {
            PrimitiveKind.I8, PrimitiveKind.I16, PrimitiveKind.I32, PrimitiveKind.I64,
            PrimitiveKind.I128, PrimitiveKind.U8, PrimitiveKind.U16, PrimitiveKind.U32,
            PrimitiveKind.U64, PrimitiveKind.U128,
        }

    def test_primitive_repr_is_tag(self):
        """Test that primitives print as their document tag."""
        assert repr(formats.U32) == "U32"
        assert repr(formats.BYTES) == "BYTES"


class TestVariable:
    """Tests for Variable placeholders."""

    def test_unbound_variable(self):
        """Test an unbound variable is unknown."""
        var = Variable()
        assert var.is_unknown()
        assert var.contains_unknown()
        assert repr(var) == "UNKNOWN"

    def test_bound_variable_equals_content(self):
        """Test a bound variable compares equal to what it is bound to."""
        var = Variable()
        unify(var, formats.U64)
        assert var == formats.U64
        assert formats.U64 == var
        assert resolve(var) is formats.U64
        assert not var.is_unknown()

    def test_chained_variables(self):
        """Test unification through a chain of variables."""
        a, b = Variable(), Variable()
        unify(a, b)
        unify(b, formats.STR)
        assert a == formats.STR
        assert a.reduce() == formats.STR

    def test_reduce_removes_variables(self):
        """Test reduce returns a variable-free copy."""
        inner = Variable()
        shape = OptionFormat(Seq(inner))
        unify(inner, TypeName("Node"))
        reduced = shape.reduce()
        assert reduced == OptionFormat(Seq(TypeName("Node")))
        assert not any(isinstance(node, Variable) for node in reduced.walk())


class TestUnify:
    """Tests for unify."""

    def test_unify_same_primitive(self):
        """Test unifying identical primitives is a no-op."""
        unify(formats.U32, formats.U32)

    def test_unify_mismatched_primitives(self):
        """Test a primitive mismatch reports both shapes and the location."""
        with pytest.raises(InconsistentFormat) as excinfo:
            unify(formats.U32, formats.STR, ("Shared", "x"))
        exc = excinfo.value
        assert exc.expected == formats.U32
        assert exc.found == formats.STR
        assert exc.location == ("Shared", "x")
        assert exc.name == "Shared"
        assert str(exc) == "Inconsistent formats at Shared.x: U32 vs STR"

    def test_unify_different_classes(self):
        """Test unifying a sequence with an option fails."""
        with pytest.raises(InconsistentFormat):
            unify(Seq(formats.U8), OptionFormat(formats.U8))

    def test_unify_nested_binds_inner(self):
        """Test unification binds variables nested in compound formats."""
        key, value = Variable(), Variable()
        unify(MapFormat(key, value), MapFormat(formats.STR, Seq(formats.I32)))
        assert key == formats.STR
        assert value == Seq(formats.I32)

    def test_unify_tuple_length_mismatch(self):
        """Test tuples of different lengths do not unify."""
        with pytest.raises(InconsistentFormat):
            unify(TupleFormat((formats.U8,)), TupleFormat((formats.U8, formats.U8)))

    def test_unify_tuple_position_location(self):
        """Test a tuple element mismatch reports the element position."""
        with pytest.raises(InconsistentFormat) as excinfo:
            unify(
                TupleFormat((formats.U8, formats.U8)),
                TupleFormat((formats.U8, formats.BOOL)),
                ("Pair",),
            )
        assert excinfo.value.location == ("Pair", "1")

    def test_unify_array_size_mismatch(self):
        """Test fixed-size arrays must agree on their size."""
        with pytest.raises(InconsistentFormat):
            unify(TupleArray(formats.U8, 4), TupleArray(formats.U8, 8))

    def test_unify_struct_field_names(self):
        """Test structs with different field names do not unify."""
        left = Struct((Named("a", formats.U8),))
        right = Struct((Named("b", formats.U8),))
        with pytest.raises(InconsistentFormat):
            unify(left, right, ("S",))

    def test_unify_struct_field_location(self):
        """Test a field mismatch reports the field name."""
        left = Struct((Named("a", formats.U8), Named("b", formats.U8)))
        right = Struct((Named("a", formats.U8), Named("b", formats.CHAR)))
        with pytest.raises(InconsistentFormat) as excinfo:
            unify(left, right, ("S",))
        assert excinfo.value.location == ("S", "b")


class TestEnumFormat:
    """Tests for EnumFormat."""

    def test_unify_merges_variants(self):
        """Test unification grows the variant table."""
        left = EnumFormat({0: Named("A", UnitVariant())})
        right = EnumFormat({1: Named("B", NewTypeVariant(formats.U8))})
        unify(left, right, ("E",))
        assert sorted(left.variants) == [0, 1]
        assert left.get_variant("B") == (1, NewTypeVariant(formats.U8))

    def test_unify_variant_name_mismatch(self):
        """Test two variants with the same index must have the same name."""
        left = EnumFormat({0: Named("A", UnitVariant())})
        right = EnumFormat({0: Named("B", UnitVariant())})
        with pytest.raises(InconsistentFormat) as excinfo:
            unify(left, right, ("E",))
        assert excinfo.value.location == ("E", "0")

    def test_reduce_sorts_by_index(self):
        """Test reduced enums list their variants by index."""
        shape = EnumFormat({1: Named("B", UnitVariant()), 0: Named("A", UnitVariant())})
        assert list(shape.reduce().variants) == [0, 1]

    def test_is_contiguous(self):
        """Test index gap detection."""
        assert EnumFormat({}).is_contiguous()
        assert EnumFormat({0: Named("A", UnitVariant()), 1: Named("B", UnitVariant())}).is_contiguous()
        assert not EnumFormat({0: Named("A", UnitVariant()), 2: Named("C", UnitVariant())}).is_contiguous()

    def test_type_names(self):
        """Test referenced container names are collected from variants."""
        shape = EnumFormat({
            0: Named("A", NewTypeVariant(TypeName("X"))),
            1: Named("B", NewTypeVariant(Seq(TypeName("Y")))),
        })
        assert shape.type_names() == ["X", "Y"]
