"""Parser for the schema definition language.

Example::

    document Task in tasks {
        assignee: Employee,
        reviewer: Employee
    }
    document Employee in "staff-members" key eid
    reference Employee.manager: Employee
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import ply.yacc as yacc

from typed_documents.errors import SchemaSyntaxError
from typed_documents.metadata import DEFAULT_ID_KEY
from typed_documents.parsing.schema_lexer import SchemaLexer


@dataclass
class ReferenceSpec:
    """Specification for a reference field before registration."""

    owner: str
    field_name: str
    referent: str
    lineno: int = 0


@dataclass
class DocumentSpec:
    """Specification for a document type before registration."""

    name: str
    collection_name: str
    id_key: str = DEFAULT_ID_KEY
    references: list[ReferenceSpec] = field(default_factory=list)
    lineno: int = 0


class SchemaParser:
    """Parser for schema definitions."""

    tokens = SchemaLexer.tokens
    start = "schema"

    def __init__(self) -> None:
        self.lexer = SchemaLexer()
        self.lexer.build()
        self.parser: yacc.LRParser = None  # type: ignore

    def p_schema(self, p: yacc.YaccProduction) -> None:
        """schema : statement_list"""
        p[0] = p[1]

    def p_statement_list_multiple(self, p: yacc.YaccProduction) -> None:
        """statement_list : statement_list statement"""
        p[0] = p[1] + [p[2]]

    def p_statement_list_empty(self, p: yacc.YaccProduction) -> None:
        """statement_list : """
        p[0] = []

    def p_statement(self, p: yacc.YaccProduction) -> None:
        """statement : document_def
                     | reference_def"""
        p[0] = p[1]

    def p_document_def(self, p: yacc.YaccProduction) -> None:
        """document_def : DOCUMENT IDENTIFIER IN collection_name key_clause body"""
        name = p[2]
        references = [
            ReferenceSpec(owner=name, field_name=field_name, referent=referent, lineno=lineno)
            for field_name, referent, lineno in p[6]
        ]
        p[0] = DocumentSpec(
            name=name,
            collection_name=p[4],
            id_key=p[5],
            references=references,
            lineno=p.lineno(1),
        )

    def p_collection_name(self, p: yacc.YaccProduction) -> None:
        """collection_name : IDENTIFIER
                           | STRING"""
        p[0] = p[1]

    def p_key_clause(self, p: yacc.YaccProduction) -> None:
        """key_clause : KEY IDENTIFIER"""
        p[0] = p[2]

    def p_key_clause_default(self, p: yacc.YaccProduction) -> None:
        """key_clause : """
        p[0] = DEFAULT_ID_KEY

    def p_body(self, p: yacc.YaccProduction) -> None:
        """body : LBRACE field_list RBRACE
                | LBRACE field_list COMMA RBRACE"""
        p[0] = p[2]

    def p_body_empty_braces(self, p: yacc.YaccProduction) -> None:
        """body : LBRACE RBRACE"""
        p[0] = []

    def p_body_empty(self, p: yacc.YaccProduction) -> None:
        """body : """
        p[0] = []

    def p_field_list_single(self, p: yacc.YaccProduction) -> None:
        """field_list : field"""
        p[0] = [p[1]]

    def p_field_list_multiple(self, p: yacc.YaccProduction) -> None:
        """field_list : field_list field
                      | field_list COMMA field"""
        p[0] = p[1] + [p[len(p) - 1]]

    def p_field(self, p: yacc.YaccProduction) -> None:
        """field : IDENTIFIER COLON IDENTIFIER"""
        p[0] = (p[1], p[3], p.lineno(1))

    def p_reference_def(self, p: yacc.YaccProduction) -> None:
        """reference_def : REFERENCE IDENTIFIER DOT IDENTIFIER COLON IDENTIFIER"""
        p[0] = ReferenceSpec(owner=p[2], field_name=p[4], referent=p[6], lineno=p.lineno(1))

    def p_error(self, p: yacc.YaccProduction) -> None:
        if p:
            raise SchemaSyntaxError(f"Syntax error at '{p.value}' (line {p.lineno})")
        raise SchemaSyntaxError("Syntax error at end of input")

    def build(self, **kwargs: Any) -> None:
        """Build the parser."""
        self.parser = yacc.yacc(module=self, **kwargs)

    def parse(self, data: str) -> list[DocumentSpec | ReferenceSpec]:
        """Parse schema text into document and reference specs, in source order."""
        if self.parser is None:
            self.build(debug=False, write_tables=False)

        self.lexer.lexer.lineno = 1
        specs = self.parser.parse(data, lexer=self.lexer.lexer, tracking=True)
        if specs is None:
            specs = []
        return specs
