"""Parser for the query expression language.

Grammar (every clause optional, in this order)::

    select name, age | select *
    where age >= 18 and status in ["open", "held"]
    order by age desc, name
    limit 10
    offset 20

Keys that collide with keywords can be backquoted: ``where `order` == 1``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

import ply.yacc as yacc

from typed_documents.errors import SchemaSyntaxError
from typed_documents.order_by import OrderBy, OrderByDirection
from typed_documents.parsing.query_lexer import QueryLexer
from typed_documents.where import Where, WhereOperator


@dataclass
class QueryExpression:
    """Parsed query clauses before they are applied to a builder.

    ``select`` is None when the expression has no select clause and an empty
    list for ``select *``.
    """

    select: list[str] | None = None
    where: list[Where] = field(default_factory=list)
    order_by: list[OrderBy] = field(default_factory=list)
    limit: int | None = None
    offset: int | None = None

    @property
    def is_empty(self) -> bool:
        return (
            self.select is None
            and not self.where
            and not self.order_by
            and self.limit is None
            and self.offset is None
        )


OPERATOR_TOKENS = {
    "EQ": WhereOperator.EQUAL_TO,
    "LT": WhereOperator.LESS_THAN,
    "LE": WhereOperator.LESS_THAN_OR_EQUAL_TO,
    "GT": WhereOperator.GREATER_THAN,
    "GE": WhereOperator.GREATER_THAN_OR_EQUAL_TO,
    "IN": WhereOperator.IN,
    "ARRAY_CONTAINS": WhereOperator.ARRAY_CONTAINS,
    "ARRAY_CONTAINS_ANY": WhereOperator.ARRAY_CONTAINS_ANY,
}


class QueryParser:
    """Parser for query expressions."""

    tokens = QueryLexer.tokens
    start = "query"

    def __init__(self) -> None:
        self.lexer = QueryLexer()
        self.lexer.build()
        self.parser: yacc.LRParser = None  # type: ignore

    def p_query(self, p: yacc.YaccProduction) -> None:
        """query : select_clause where_clause order_clause limit_clause offset_clause"""
        p[0] = QueryExpression(
            select=p[1], where=p[2], order_by=p[3], limit=p[4], offset=p[5]
        )

    # Select

    def p_select_clause_star(self, p: yacc.YaccProduction) -> None:
        """select_clause : SELECT STAR"""
        p[0] = []

    def p_select_clause_keys(self, p: yacc.YaccProduction) -> None:
        """select_clause : SELECT key_list"""
        p[0] = p[2]

    def p_select_clause_empty(self, p: yacc.YaccProduction) -> None:
        """select_clause : """
        p[0] = None

    def p_key_list_single(self, p: yacc.YaccProduction) -> None:
        """key_list : IDENTIFIER"""
        p[0] = [p[1]]

    def p_key_list_multiple(self, p: yacc.YaccProduction) -> None:
        """key_list : key_list COMMA IDENTIFIER"""
        p[0] = p[1] + [p[3]]

    # Where

    def p_where_clause(self, p: yacc.YaccProduction) -> None:
        """where_clause : WHERE condition_list"""
        p[0] = p[2]

    def p_where_clause_empty(self, p: yacc.YaccProduction) -> None:
        """where_clause : """
        p[0] = []

    def p_condition_list_single(self, p: yacc.YaccProduction) -> None:
        """condition_list : condition"""
        p[0] = [p[1]]

    def p_condition_list_multiple(self, p: yacc.YaccProduction) -> None:
        """condition_list : condition_list AND condition"""
        p[0] = p[1] + [p[3]]

    def p_condition(self, p: yacc.YaccProduction) -> None:
        """condition : IDENTIFIER operator value"""
        p[0] = Where(key=p[1], operator=p[2], value=p[3])

    def p_operator(self, p: yacc.YaccProduction) -> None:
        """operator : EQ
                    | LT
                    | LE
                    | GT
                    | GE
                    | IN
                    | ARRAY_CONTAINS
                    | ARRAY_CONTAINS_ANY"""
        p[0] = OPERATOR_TOKENS[p.slice[1].type]

    def p_value_literal(self, p: yacc.YaccProduction) -> None:
        """value : STRING
                 | INTEGER
                 | FLOAT"""
        p[0] = p[1]

    def p_value_true(self, p: yacc.YaccProduction) -> None:
        """value : TRUE"""
        p[0] = True

    def p_value_false(self, p: yacc.YaccProduction) -> None:
        """value : FALSE"""
        p[0] = False

    def p_value_null(self, p: yacc.YaccProduction) -> None:
        """value : NULL"""
        p[0] = None

    def p_value_list(self, p: yacc.YaccProduction) -> None:
        """value : LBRACKET value_list RBRACKET"""
        p[0] = p[2]

    def p_value_list_empty(self, p: yacc.YaccProduction) -> None:
        """value : LBRACKET RBRACKET"""
        p[0] = []

    def p_value_list_single(self, p: yacc.YaccProduction) -> None:
        """value_list : value"""
        p[0] = [p[1]]

    def p_value_list_multiple(self, p: yacc.YaccProduction) -> None:
        """value_list : value_list COMMA value"""
        p[0] = p[1] + [p[3]]

    # Order by

    def p_order_clause(self, p: yacc.YaccProduction) -> None:
        """order_clause : ORDER BY order_list"""
        p[0] = p[3]

    def p_order_clause_empty(self, p: yacc.YaccProduction) -> None:
        """order_clause : """
        p[0] = []

    def p_order_list_single(self, p: yacc.YaccProduction) -> None:
        """order_list : order_item"""
        p[0] = [p[1]]

    def p_order_list_multiple(self, p: yacc.YaccProduction) -> None:
        """order_list : order_list COMMA order_item"""
        p[0] = p[1] + [p[3]]

    def p_order_item(self, p: yacc.YaccProduction) -> None:
        """order_item : IDENTIFIER
                      | IDENTIFIER ASC"""
        p[0] = OrderBy(key=p[1], direction=OrderByDirection.ASCENDING)

    def p_order_item_desc(self, p: yacc.YaccProduction) -> None:
        """order_item : IDENTIFIER DESC"""
        p[0] = OrderBy(key=p[1], direction=OrderByDirection.DESCENDING)

    # Pagination

    def p_limit_clause(self, p: yacc.YaccProduction) -> None:
        """limit_clause : LIMIT INTEGER"""
        p[0] = self._non_negative(p, "limit")

    def p_limit_clause_empty(self, p: yacc.YaccProduction) -> None:
        """limit_clause : """
        p[0] = None

    def p_offset_clause(self, p: yacc.YaccProduction) -> None:
        """offset_clause : OFFSET INTEGER"""
        p[0] = self._non_negative(p, "offset")

    @staticmethod
    def _non_negative(p: yacc.YaccProduction, clause: str) -> int:
        if p[2] < 0:
            raise SchemaSyntaxError(
                f"Negative {clause} {p[2]} (position {p.lexpos(2)})"
            )
        return p[2]

    def p_offset_clause_empty(self, p: yacc.YaccProduction) -> None:
        """offset_clause : """
        p[0] = None

    def p_error(self, p: yacc.YaccProduction) -> None:
        if p:
            raise SchemaSyntaxError(f"Syntax error at '{p.value}' (position {p.lexpos})")
        raise SchemaSyntaxError("Syntax error at end of query")

    def build(self, **kwargs: Any) -> None:
        """Build the parser."""
        self.parser = yacc.yacc(module=self, **kwargs)

    def parse(self, data: str) -> QueryExpression:
        """Parse a query expression."""
        if self.parser is None:
            self.build(debug=False, write_tables=False)

        self.lexer.lexer.lineno = 1
        result = self.parser.parse(data, lexer=self.lexer.lexer)
        if result is None:
            return QueryExpression()
        return result
