"""Lexer for the query expression language."""

import ply.lex as lex

from typed_documents.errors import SchemaSyntaxError


class QueryLexer:
    """Lexer for tokenizing query expressions."""

    reserved = {
        "select": "SELECT",
        "where": "WHERE",
        "and": "AND",
        "in": "IN",
        "order": "ORDER",
        "by": "BY",
        "asc": "ASC",
        "desc": "DESC",
        "limit": "LIMIT",
        "offset": "OFFSET",
        "true": "TRUE",
        "false": "FALSE",
        "null": "NULL",
    }

    tokens = [
        "IDENTIFIER",
        "STRING",
        "INTEGER",
        "FLOAT",
        "EQ",
        "LT",
        "LE",
        "GT",
        "GE",
        "ARRAY_CONTAINS_ANY",
        "ARRAY_CONTAINS",
        "STAR",
        "COMMA",
        "LBRACKET",
        "RBRACKET",
    ] + list(reserved.values())

    t_EQ = r"=="
    t_LE = r"<="
    t_GE = r">="
    t_LT = r"<"
    t_GT = r">"
    t_STAR = r"\*"
    t_COMMA = r","
    t_LBRACKET = r"\["
    t_RBRACKET = r"\]"

    t_ignore = " \t"

    def __init__(self) -> None:
        self.lexer: lex.Lexer = None  # type: ignore

    # Function rules are tried in definition order, so the hyphenated
    # operators must come before IDENTIFIER.
    def t_ARRAY_CONTAINS_ANY(self, t: lex.LexToken) -> lex.LexToken:
        r"array-contains-any"
        return t

    def t_ARRAY_CONTAINS(self, t: lex.LexToken) -> lex.LexToken:
        r"array-contains"
        return t

    def t_FLOAT(self, t: lex.LexToken) -> lex.LexToken:
        r"-?\d+\.\d+"
        t.value = float(t.value)
        return t

    def t_INTEGER(self, t: lex.LexToken) -> lex.LexToken:
        r"-?\d+"
        t.value = int(t.value)
        return t

    def t_STRING(self, t: lex.LexToken) -> lex.LexToken:
        r'"([^"\\]|\\.)*"|\'([^\'\\]|\\.)*\''
        t.value = t.value[1:-1].encode("latin-1", "backslashreplace").decode("unicode_escape")
        return t

    def t_IDENTIFIER(self, t: lex.LexToken) -> lex.LexToken:
        r"`[^`\n]+`|[a-zA-Z_][a-zA-Z0-9_]*(\.[a-zA-Z_][a-zA-Z0-9_]*)*"
        # Backquoted keys are never keywords: `order`, `limit`
        if t.value.startswith("`"):
            t.value = t.value[1:-1]
            return t
        t.type = self.reserved.get(t.value.lower(), "IDENTIFIER")
        return t

    def t_NEWLINE(self, t: lex.LexToken) -> None:
        r"\n+"
        t.lexer.lineno += len(t.value)

    def t_error(self, t: lex.LexToken) -> None:
        raise SchemaSyntaxError(
            f"Illegal character '{t.value[0]}' at position {t.lexpos}"
        )

    def build(self, **kwargs) -> None:  # type: ignore
        """Build the lexer."""
        self.lexer = lex.lex(module=self, **kwargs)

    def tokenize(self, data: str) -> list[lex.LexToken]:
        """Tokenize the input and return all tokens."""
        self.lexer.input(data)
        tokens = []
        while True:
            tok = self.lexer.token()
            if tok is None:
                break
            tokens.append(tok)
        return tokens
