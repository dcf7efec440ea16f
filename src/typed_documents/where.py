"""Filter predicates."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any


class WhereOperator(Enum):
    """Filter operators understood by adapters."""

    EQUAL_TO = "=="
    LESS_THAN = "<"
    LESS_THAN_OR_EQUAL_TO = "<="
    GREATER_THAN = ">"
    GREATER_THAN_OR_EQUAL_TO = ">="
    IN = "in"
    ARRAY_CONTAINS = "array-contains"
    ARRAY_CONTAINS_ANY = "array-contains-any"


@dataclass(frozen=True)
class Where:
    """A single filter predicate.

    The value is opaque here and forwarded to the adapter untouched.
    """

    key: str
    operator: WhereOperator
    value: Any


def create_where(key: str, operator: WhereOperator | str, value: Any) -> Where:
    """Create a Where, accepting either an operator or its token ('==', 'in', ...)."""
    return Where(key=key, operator=WhereOperator(operator), value=value)


def is_sequence_value(value: Any) -> bool:
    """Return whether a filter value should be treated as a list of candidates."""
    return isinstance(value, (list, tuple, set, frozenset))


def decompose_where_record(record: Mapping[str, Any]) -> list[Where]:
    """Split a {key: value} record into predicates.

    List-like values become 'in' predicates, anything else becomes '=='.
    """
    wheres = []
    for key, value in record.items():
        if is_sequence_value(value):
            wheres.append(Where(key, WhereOperator.IN, list(value)))
        else:
            wheres.append(Where(key, WhereOperator.EQUAL_TO, value))
    return wheres
