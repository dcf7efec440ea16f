"""Parsing module for the schema and query expression languages."""

import threading

from typed_documents.parsing.query_parser import QueryExpression, QueryParser
from typed_documents.parsing.schema_parser import DocumentSpec, ReferenceSpec, SchemaParser

# ply lexers and parsers carry per-input state, so each thread gets its own
_local = threading.local()


def _query_parser() -> QueryParser:
    parser = getattr(_local, "query_parser", None)
    if parser is None:
        parser = _local.query_parser = QueryParser()
    return parser


def parse_query(text: str) -> QueryExpression:
    """Parse a query expression with this thread's parser instance."""
    return _query_parser().parse(text)


__all__ = [
    "DocumentSpec",
    "QueryExpression",
    "QueryParser",
    "ReferenceSpec",
    "SchemaParser",
    "parse_query",
]
