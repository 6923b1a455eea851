"""Parser for the registry document."""

from __future__ import annotations

from typing import Any

import ply.yacc as yacc

from typed_formats.formats import (
    PRIMITIVE_KIND_NAMES,
    EnumFormat,
    MapFormat,
    Named,
    NewTypeStruct,
    NewTypeVariant,
    OptionFormat,
    Primitive,
    PrimitiveKind,
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
    Variable,
)
from typed_formats.parsing.registry_lexer import RegistryLexer
from typed_formats.registry import Registry


class RegistryParser:
    """Parser for registry documents.

    A document is a list of ``name: CONTAINER`` entries:

        Pair: STRUCT {
          a: U32,
          b: STR,
        }
        Color: ENUM {
          0: Red UNIT,
          1: Green UNIT,
        }
    """

    tokens = RegistryLexer.tokens

    def __init__(self) -> None:
        self.lexer = RegistryLexer()
        self.lexer.build()
        self.parser: yacc.LRParser = None  # type: ignore

    def p_document(self, p: yacc.YaccProduction) -> None:
        """document : entry_list"""
        p[0] = p[1]

    def p_document_empty(self, p: yacc.YaccProduction) -> None:
        """document :"""
        p[0] = []

    def p_entry_list_single(self, p: yacc.YaccProduction) -> None:
        """entry_list : entry"""
        p[0] = [p[1]]

    def p_entry_list_multiple(self, p: yacc.YaccProduction) -> None:
        """entry_list : entry_list entry"""
        p[0] = p[1] + [p[2]]

    def p_entry(self, p: yacc.YaccProduction) -> None:
        """entry : name COLON container"""
        p[0] = (p[1], p[3], p.lineno(2))

    def p_name(self, p: yacc.YaccProduction) -> None:
        """name : IDENTIFIER
                | STRING"""
        p[0] = p[1]

    # ---- Containers ----

    def p_container_unit(self, p: yacc.YaccProduction) -> None:
        """container : UNITSTRUCT"""
        p[0] = UnitStruct()

    def p_container_newtype(self, p: yacc.YaccProduction) -> None:
        """container : NEWTYPESTRUCT LPAREN format RPAREN"""
        p[0] = NewTypeStruct(p[3])

    def p_container_tuple(self, p: yacc.YaccProduction) -> None:
        """container : TUPLESTRUCT LPAREN format_list RPAREN"""
        p[0] = TupleStruct(p[3])

    def p_container_struct(self, p: yacc.YaccProduction) -> None:
        """container : STRUCT LBRACE field_list RBRACE"""
        p[0] = Struct(p[3])

    def p_container_enum(self, p: yacc.YaccProduction) -> None:
        """container : ENUM LBRACE variant_list RBRACE"""
        variants: dict[int, Named] = {}
        for index, variant, lineno in p[3]:
            if index in variants:
                raise SyntaxError(f"Duplicate variant index {index} (line {lineno})")
            variants[index] = variant
        p[0] = EnumFormat(variants)

    # ---- Fields and variants ----

    def p_field_list_empty(self, p: yacc.YaccProduction) -> None:
        """field_list :"""
        p[0] = ()

    def p_field_list_items(self, p: yacc.YaccProduction) -> None:
        """field_list : fields
                      | fields COMMA"""
        p[0] = tuple(p[1])

    def p_fields_single(self, p: yacc.YaccProduction) -> None:
        """fields : field"""
        p[0] = [p[1]]

    def p_fields_multiple(self, p: yacc.YaccProduction) -> None:
        """fields : fields COMMA field"""
        p[0] = p[1] + [p[3]]

    def p_field(self, p: yacc.YaccProduction) -> None:
        """field : name COLON format"""
        p[0] = Named(p[1], p[3])

    def p_variant_list_empty(self, p: yacc.YaccProduction) -> None:
        """variant_list :"""
        p[0] = []

    def p_variant_list_items(self, p: yacc.YaccProduction) -> None:
        """variant_list : variants
                        | variants COMMA"""
        p[0] = p[1]

    def p_variants_single(self, p: yacc.YaccProduction) -> None:
        """variants : variant"""
        p[0] = [p[1]]

    def p_variants_multiple(self, p: yacc.YaccProduction) -> None:
        """variants : variants COMMA variant"""
        p[0] = p[1] + [p[3]]

    def p_variant(self, p: yacc.YaccProduction) -> None:
        """variant : INTEGER COLON name variant_format"""
        p[0] = (p[1], Named(p[3], p[4]), p.lineno(1))

    def p_variant_format_unit(self, p: yacc.YaccProduction) -> None:
        """variant_format : UNIT"""
        p[0] = UnitVariant()

    def p_variant_format_newtype(self, p: yacc.YaccProduction) -> None:
        """variant_format : NEWTYPE LPAREN format RPAREN"""
        p[0] = NewTypeVariant(p[3])

    def p_variant_format_tuple(self, p: yacc.YaccProduction) -> None:
        """variant_format : TUPLE LPAREN format_list RPAREN"""
        p[0] = TupleVariant(p[3])

    def p_variant_format_struct(self, p: yacc.YaccProduction) -> None:
        """variant_format : STRUCT LBRACE field_list RBRACE"""
        p[0] = StructVariant(p[3])

    def p_variant_format_unknown(self, p: yacc.YaccProduction) -> None:
        """variant_format : UNKNOWN"""
        p[0] = Variable()

    # ---- Formats ----

    def p_format_list_empty(self, p: yacc.YaccProduction) -> None:
        """format_list :"""
        p[0] = ()

    def p_format_list_items(self, p: yacc.YaccProduction) -> None:
        """format_list : formats"""
        p[0] = tuple(p[1])

    def p_formats_single(self, p: yacc.YaccProduction) -> None:
        """formats : format"""
        p[0] = [p[1]]

    def p_formats_multiple(self, p: yacc.YaccProduction) -> None:
        """formats : formats COMMA format"""
        p[0] = p[1] + [p[3]]

    def p_format_unit(self, p: yacc.YaccProduction) -> None:
        """format : UNIT"""
        p[0] = Primitive(PrimitiveKind.UNIT)

    def p_format_primitive(self, p: yacc.YaccProduction) -> None:
        """format : PRIMITIVE"""
        p[0] = Primitive(PRIMITIVE_KIND_NAMES[p[1]])

    def p_format_unknown(self, p: yacc.YaccProduction) -> None:
        """format : UNKNOWN"""
        p[0] = Variable()

    def p_format_typename(self, p: yacc.YaccProduction) -> None:
        """format : TYPENAME LPAREN name RPAREN"""
        p[0] = TypeName(p[3])

    def p_format_option(self, p: yacc.YaccProduction) -> None:
        """format : OPTION LPAREN format RPAREN"""
        p[0] = OptionFormat(p[3])

    def p_format_seq(self, p: yacc.YaccProduction) -> None:
        """format : SEQ LPAREN format RPAREN"""
        p[0] = Seq(p[3])

    def p_format_map(self, p: yacc.YaccProduction) -> None:
        """format : MAP LPAREN format COMMA format RPAREN"""
        p[0] = MapFormat(p[3], p[5])

    def p_format_tuple(self, p: yacc.YaccProduction) -> None:
        """format : TUPLE LPAREN format_list RPAREN"""
        p[0] = TupleFormat(p[3])

    def p_format_tuple_array(self, p: yacc.YaccProduction) -> None:
        """format : TUPLEARRAY LPAREN format COMMA INTEGER RPAREN"""
        p[0] = TupleArray(p[3], p[5])

    def p_error(self, p: yacc.YaccProduction) -> None:
        if p:
            raise SyntaxError(f"Syntax error at '{p.value}' (line {p.lineno})")
        else:
            raise SyntaxError("Syntax error at end of input")

    def build(self, **kwargs: Any) -> None:
        """Build the parser."""
        self.parser = yacc.yacc(module=self, **kwargs)

    def parse(self, data: str) -> Registry:
        """Parse a registry document and return the Registry it describes."""
        if self.parser is None:
            self.build(debug=False, write_tables=False)

        self.lexer.lexer.lineno = 1
        entries = self.parser.parse(data, lexer=self.lexer.lexer)

        registry = Registry()
        for name, container, lineno in entries or []:
            if name in registry:
                raise SyntaxError(f"Duplicate container '{name}' (line {lineno})")
            registry.register(name, container)
        return registry
