"""Parsing module for registry documents."""

from typed_formats.parsing.registry_lexer import RegistryLexer, quote, unquote
from typed_formats.parsing.registry_parser import RegistryParser

__all__ = [
    "RegistryLexer",
    "RegistryParser",
    "quote",
    "unquote",
]
