"""Lexer for the registry document."""

import ply.lex as lex

from typed_formats.formats import PrimitiveKind


class RegistryLexer:
    """Lexer for tokenizing registry documents."""

    # Tags; UNIT doubles as the unit primitive and the unit variant
    reserved = {
        "UNITSTRUCT": "UNITSTRUCT",
        "NEWTYPESTRUCT": "NEWTYPESTRUCT",
        "TUPLESTRUCT": "TUPLESTRUCT",
        "STRUCT": "STRUCT",
        "ENUM": "ENUM",
        "NEWTYPE": "NEWTYPE",
        "TUPLE": "TUPLE",
        "OPTION": "OPTION",
        "SEQ": "SEQ",
        "MAP": "MAP",
        "TUPLEARRAY": "TUPLEARRAY",
        "TYPENAME": "TYPENAME",
        "UNKNOWN": "UNKNOWN",
        "UNIT": "UNIT",
    }
    reserved.update({kind.value: "PRIMITIVE" for kind in PrimitiveKind if kind is not PrimitiveKind.UNIT})

    # Token list
    tokens = [
        "IDENTIFIER",
        "STRING",
        "INTEGER",
        "LBRACE",
        "RBRACE",
        "LPAREN",
        "RPAREN",
        "COLON",
        "COMMA",
    ] + sorted(set(reserved.values()))

    # Simple tokens
    t_LBRACE = r"\{"
    t_RBRACE = r"\}"
    t_LPAREN = r"\("
    t_RPAREN = r"\)"
    t_COLON = r":"
    t_COMMA = r","

    # Ignored characters (spaces, tabs, and newlines)
    t_ignore = " \t\r"

    # Comments
    t_ignore_COMMENT = r"\#[^\n]*"

    def __init__(self) -> None:
        self.lexer: lex.Lexer = None  # type: ignore

    def t_STRING(self, t: lex.LexToken) -> lex.LexToken:
        r'"(?:[^"\\\n]|\\.)*"'
        t.value = unquote(t.value)
        return t

    def t_INTEGER(self, t: lex.LexToken) -> lex.LexToken:
        r"\d+"
        t.value = int(t.value)
        return t

    def t_IDENTIFIER(self, t: lex.LexToken) -> lex.LexToken:
        r"[a-zA-Z_][a-zA-Z0-9_]*"
        # Check if it's a tag
        t.type = self.reserved.get(t.value, "IDENTIFIER")
        return t

    def t_NEWLINE(self, t: lex.LexToken) -> None:
        r"\n+"
        t.lexer.lineno += len(t.value)

    def t_error(self, t: lex.LexToken) -> None:
        raise SyntaxError(f"Illegal character '{t.value[0]}' at line {t.lineno}")

    def build(self, **kwargs) -> None:  # type: ignore
        """Build the lexer."""
        self.lexer = lex.lex(module=self, **kwargs)

    def input(self, data: str) -> None:
        """Set the input string to tokenize."""
        self.lexer.input(data)

    def token(self) -> lex.LexToken | None:
        """Return the next token."""
        return self.lexer.token()

    def tokenize(self, data: str) -> list[lex.LexToken]:
        """Tokenize the input and return all tokens."""
        self.input(data)
        tokens = []
        while True:
            tok = self.token()
            if tok is None:
                break
            tokens.append(tok)
        return tokens


def unquote(text: str) -> str:
    """Decode a double-quoted name."""
    body = text[1:-1]
    out = []
    chars = iter(body)
    for char in chars:
        if char == "\\":
            char = next(chars)
            out.append({"n": "\n", "t": "\t"}.get(char, char))
        else:
            out.append(char)
    return "".join(out)


def quote(name: str) -> str:
    """Encode a name, quoting it when it is not a plain identifier or is a tag."""
    if name.isidentifier() and name.isascii() and name not in RegistryLexer.reserved:
        return name
    escaped = name.replace("\\", "\\\\").replace('"', '\\"').replace("\n", "\\n").replace("\t", "\\t")
    return f'"{escaped}"'
