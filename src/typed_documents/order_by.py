"""Ordering clauses."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum


class OrderByDirection(Enum):
    """Sort directions."""

    ASCENDING = "asc"
    DESCENDING = "desc"


@dataclass(frozen=True)
class OrderBy:
    """A single ordering clause."""

    key: str
    direction: OrderByDirection = OrderByDirection.ASCENDING


def create_order_by(
    key: str, direction: OrderByDirection | str = OrderByDirection.ASCENDING
) -> OrderBy:
    """Create an OrderBy, accepting either a direction or its token ('asc', 'desc')."""
    return OrderBy(key=key, direction=OrderByDirection(direction))


def decompose_order_by_record(
    record: Mapping[str, OrderByDirection | str],
) -> list[OrderBy]:
    """Split a {key: direction} record into ordering clauses."""
    return [create_order_by(key, direction) for key, direction in record.items()]
