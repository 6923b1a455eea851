"""Tests for the registry document lexer and parser."""

import pytest

from typed_formats import formats
from typed_formats.formats import (
    EnumFormat,
    MapFormat,
    Named,
    NewTypeStruct,
    NewTypeVariant,
    OptionFormat,
    Seq,
    Struct,
    StructVariant,
    TupleArray,
    TupleFormat,
    TupleStruct,
    TupleVariant,
    TypeName,
    UnitStruct,
    UnitVariant,
)
from typed_formats.parsing import RegistryParser
from typed_formats.parsing.registry_lexer import RegistryLexer, quote, unquote


class TestRegistryLexer:
    """Tests for the registry lexer."""

    def test_tokenize_struct(self):
        """Test tokenizing a struct entry."""
        lexer = RegistryLexer()
        lexer.build()

        tokens = lexer.tokenize("Pair: STRUCT { a: U32 }")
        token_types = [t.type for t in tokens]

        assert token_types == [
            "IDENTIFIER",
            "COLON",
            "STRUCT",
            "LBRACE",
            "IDENTIFIER",
            "COLON",
            "PRIMITIVE",
            "RBRACE",
        ]

    def test_unit_is_own_token(self):
        """Test UNIT is kept apart from the other primitives."""
        lexer = RegistryLexer()
        lexer.build()

        tokens = lexer.tokenize("UNIT BOOL")
        assert [(t.type, t.value) for t in tokens] == [("UNIT", "UNIT"), ("PRIMITIVE", "BOOL")]

    def test_comments_ignored(self):
        """Test that comments and newlines are not tokenized."""
        lexer = RegistryLexer()
        lexer.build()

        tokens = lexer.tokenize("# generated\nMarker: UNITSTRUCT  # trailing\n")
        assert [t.type for t in tokens] == ["IDENTIFIER", "COLON", "UNITSTRUCT"]

    def test_quoted_name(self):
        """Test quoted names are decoded."""
        lexer = RegistryLexer()
        lexer.build()

        tokens = lexer.tokenize(r'"my \"odd\" name"')
        assert tokens[0].type == "STRING"
        assert tokens[0].value == 'my "odd" name'

    def test_illegal_character(self):
        """Test error on illegal character."""
        lexer = RegistryLexer()
        lexer.build()

        with pytest.raises(SyntaxError):
            lexer.tokenize("Pair: STRUCT @")


class TestQuoting:
    """Tests for name quoting."""

    def test_plain_identifier(self):
        """Test identifiers are written as is."""
        assert quote("Pair") == "Pair"
        assert quote("snake_case_1") == "snake_case_1"

    def test_tag_is_quoted(self):
        """Test names colliding with tags are quoted."""
        assert quote("STRUCT") == '"STRUCT"'
        assert quote("U8") == '"U8"'

    def test_non_identifier_is_quoted(self):
        """Test names that are not identifiers are quoted."""
        assert quote("my type") == '"my type"'
        assert quote("1st") == '"1st"'

    def test_unquote_reverses_quote(self):
        """Test escapes survive a quote/unquote cycle."""
        name = 'a "b" \\ c'
        assert unquote(quote(name)) == name


class TestRegistryParser:
    """Tests for the registry parser."""

    def test_parse_struct(self):
        """Test parsing a struct."""
        parser = RegistryParser()
        registry = parser.parse("Pair: STRUCT { a: U32, b: STR, }")

        assert registry["Pair"] == Struct((Named("a", formats.U32), Named("b", formats.STR)))

    def test_parse_containers(self):
        """Test parsing every container kind."""
        parser = RegistryParser()
        registry = parser.parse(
            """
            Marker: UNITSTRUCT
            Id: NEWTYPESTRUCT(U64)
            Point: TUPLESTRUCT(F32, F32)
            Empty: STRUCT {}
            """
        )

        assert registry.list_names() == ["Marker", "Id", "Point", "Empty"]
        assert registry["Marker"] == UnitStruct()
        assert registry["Id"] == NewTypeStruct(formats.U64)
        assert registry["Point"] == TupleStruct((formats.F32, formats.F32))
        assert registry["Empty"] == Struct(())

    def test_parse_formats(self):
        """Test parsing every format kind."""
        parser = RegistryParser()
        registry = parser.parse(
            """
            All: STRUCT {
              unit: UNIT,
              opt: OPTION(TYPENAME(All)),
              seq: SEQ(BYTES),
              map: MAP(STR, I128),
              tuple: TUPLE(BOOL, CHAR),
              empty: TUPLE(),
              array: TUPLEARRAY(U8, 32),
            }
            """
        )

        assert registry["All"] == Struct((
            Named("unit", formats.UNIT),
            Named("opt", OptionFormat(TypeName("All"))),
            Named("seq", Seq(formats.BYTES)),
            Named("map", MapFormat(formats.STR, formats.I128)),
            Named("tuple", TupleFormat((formats.BOOL, formats.CHAR))),
            Named("empty", TupleFormat(())),
            Named("array", TupleArray(formats.U8, 32)),
        ))

    def test_parse_enum(self):
        """Test parsing an enum with every variant kind."""
        parser = RegistryParser()
        registry = parser.parse(
            """
            Shape: ENUM {
              0: Circle STRUCT { radius: F64 },
              1: Rect TUPLE(F32, F32),
              2: Label NEWTYPE(STR),
              3: Empty UNIT,
            }
            """
        )

        assert registry["Shape"] == EnumFormat({
            0: Named("Circle", StructVariant((Named("radius", formats.F64),))),
            1: Named("Rect", TupleVariant((formats.F32, formats.F32))),
            2: Named("Label", NewTypeVariant(formats.STR)),
            3: Named("Empty", UnitVariant()),
        })

    def test_parse_quoted_names(self):
        """Test quoted container, field and variant names."""
        parser = RegistryParser()
        registry = parser.parse(
            '"STRUCT": STRUCT { "my field": TYPENAME("odd name") }\n'
            '"odd name": ENUM { 0: "UNIT" UNIT }\n'
        )

        assert registry["STRUCT"] == Struct((Named("my field", TypeName("odd name")),))
        assert registry["odd name"] == EnumFormat({0: Named("UNIT", UnitVariant())})

    def test_parse_unknown(self):
        """Test UNKNOWN parts parse into an incomplete registry."""
        parser = RegistryParser()
        registry = parser.parse("Id: NEWTYPESTRUCT(UNKNOWN)")

        assert not registry.is_complete()

    def test_parse_empty(self):
        """Test an empty document gives an empty registry."""
        parser = RegistryParser()
        assert len(parser.parse("# nothing here\n")) == 0

    def test_parser_reuse(self):
        """Test a parser can parse several documents."""
        parser = RegistryParser()
        first = parser.parse("A: UNITSTRUCT")
        second = parser.parse("B: UNITSTRUCT")

        assert first.list_names() == ["A"]
        assert second.list_names() == ["B"]

    def test_duplicate_container(self):
        """Test a container defined twice is rejected."""
        parser = RegistryParser()
        with pytest.raises(SyntaxError):
            parser.parse("A: UNITSTRUCT\nA: UNITSTRUCT")

    def test_duplicate_variant_index(self):
        """Test a variant index used twice is rejected."""
        parser = RegistryParser()
        with pytest.raises(SyntaxError):
            parser.parse("E: ENUM { 0: A UNIT, 0: B UNIT }")

    def test_syntax_error(self):
        """Test malformed input raises SyntaxError."""
        parser = RegistryParser()
        with pytest.raises(SyntaxError):
            parser.parse("Pair: STRUCT { a U32 }")

    def test_syntax_error_at_end(self):
        """Test truncated input raises SyntaxError."""
        parser = RegistryParser()
        with pytest.raises(SyntaxError):
            parser.parse("Pair: STRUCT { a: U32,")
