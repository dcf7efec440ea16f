"""Copy-on-write query builder."""

from __future__ import annotations

import copy
from collections.abc import Iterable, Mapping
from typing import Any, TypeVar

from typed_documents.order_by import (
    OrderBy,
    OrderByDirection,
    create_order_by,
    decompose_order_by_record,
)
from typed_documents.parsing import parse_query
from typed_documents.query import Query
from typed_documents.where import (
    Where,
    WhereOperator,
    create_where,
    decompose_where_record,
)

B = TypeVar("B", bound="QueryBuilder")


class QueryBuilder:
    """Fluent builder of Query values.

    Every refining call returns a new builder whose ``version`` is one greater
    than its parent; the receiver is never modified. The only exception is a
    ``where``/``order_by`` call with an empty record (or ``apply`` with an
    empty expression), which returns the same instance.
    """

    def __init__(self) -> None:
        self._version = 0
        self._select: list[str] = []
        self._where: list[Where] = []
        self._order_by: list[OrderBy] = []
        self._limit: int | None = None
        self._offset: int | None = None

    @property
    def version(self) -> int:
        """Number of refining calls applied since the original builder."""
        return self._version

    def _derive(self: B, **changes: Any) -> B:
        """Return a copy with the given state replaced and the version bumped.

        Subclass state (e.g. a collection's adapter) is carried over as is.
        """
        clone = copy.copy(self)
        clone._select = list(self._select)
        clone._where = list(self._where)
        clone._order_by = list(self._order_by)
        clone._version = self._version + 1
        for name, value in changes.items():
            setattr(clone, f"_{name}", value)
        return clone

    def select(self: B, keys: str | Iterable[str] = "*") -> B:
        """Set the projection. '*' or an empty list selects all fields."""
        if isinstance(keys, str):
            select = [] if keys == "*" else [keys]
        else:
            select = list(keys)
        return self._derive(select=select)

    def where(self: B, key: str | Mapping[str, Any], *args: Any) -> B:
        """Append filter predicates.

        Accepted forms::

            where("status", "open")               # equality
            where("age", ">=", 18)                # explicit operator
            where({"status": "open", "tag": ["a", "b"]})  # record

        In the record form a list value means 'in', anything else '=='.
        """
        if isinstance(key, Mapping):
            if args:
                raise TypeError("where() with a record takes no further arguments")
            wheres = decompose_where_record(key)
            if not wheres:
                return self
            return self._derive(where=self._where + wheres)

        if len(args) == 1:
            operator, value = WhereOperator.EQUAL_TO, args[0]
        elif len(args) == 2:
            operator, value = args
        else:
            raise TypeError(
                f"where() takes a record, (key, value) or (key, operator, value); "
                f"got {len(args) + 1} arguments"
            )
        return self._derive(where=self._where + [create_where(key, operator, value)])

    def where_equal_to(self: B, key: str, value: Any) -> B:
        return self.where(key, WhereOperator.EQUAL_TO, value)

    def where_less_than(self: B, key: str, value: Any) -> B:
        return self.where(key, WhereOperator.LESS_THAN, value)

    def where_less_than_or_equal_to(self: B, key: str, value: Any) -> B:
        return self.where(key, WhereOperator.LESS_THAN_OR_EQUAL_TO, value)

    def where_greater_than(self: B, key: str, value: Any) -> B:
        return self.where(key, WhereOperator.GREATER_THAN, value)

    def where_greater_than_or_equal_to(self: B, key: str, value: Any) -> B:
        return self.where(key, WhereOperator.GREATER_THAN_OR_EQUAL_TO, value)

    def where_array_contains(self: B, key: str, value: Any) -> B:
        return self.where(key, WhereOperator.ARRAY_CONTAINS, value)

    def where_in(self: B, key: str, values: Iterable[Any]) -> B:
        return self.where(key, WhereOperator.IN, list(values))

    def where_array_contains_any(self: B, key: str, values: Iterable[Any]) -> B:
        return self.where(key, WhereOperator.ARRAY_CONTAINS_ANY, list(values))

    def order_by(
        self: B,
        key: str | Mapping[str, OrderByDirection | str],
        direction: OrderByDirection | str = OrderByDirection.ASCENDING,
    ) -> B:
        """Append ordering clauses, from a key and direction or a {key: direction} record."""
        if isinstance(key, Mapping):
            orders = decompose_order_by_record(key)
            if not orders:
                return self
            return self._derive(order_by=self._order_by + orders)
        return self._derive(order_by=self._order_by + [create_order_by(key, direction)])

    def order_by_ascending(self: B, key: str) -> B:
        return self.order_by(key, OrderByDirection.ASCENDING)

    def order_by_descending(self: B, key: str) -> B:
        return self.order_by(key, OrderByDirection.DESCENDING)

    def limit(self: B, limit: int | None) -> B:
        return self._derive(limit=limit)

    def offset(self: B, offset: int | None) -> B:
        return self._derive(offset=offset)

    def apply(self: B, expression: str) -> B:
        """Apply a query expression in one step.

        Example::

            builder.apply('where age >= 18 and status in ["a", "b"] order by age desc limit 10')

        Predicates and ordering clauses are appended; select, limit and offset
        replace the current values when present.
        """
        parsed = parse_query(expression)
        if parsed.is_empty:
            return self

        changes: dict[str, Any] = {
            "where": self._where + parsed.where,
            "order_by": self._order_by + parsed.order_by,
        }
        if parsed.select is not None:
            changes["select"] = list(parsed.select)
        if parsed.limit is not None:
            changes["limit"] = parsed.limit
        if parsed.offset is not None:
            changes["offset"] = parsed.offset
        return self._derive(**changes)

    def to_query(self) -> Query:
        """Snapshot the accumulated state as an immutable Query."""
        return Query(
            select=tuple(self._select),
            where=tuple(self._where),
            order_by=tuple(self._order_by),
            limit=self._limit,
            offset=self._offset,
        )
