"""Immutable query value object."""

from __future__ import annotations

from dataclasses import dataclass

from typed_documents.order_by import OrderBy
from typed_documents.where import Where


@dataclass(frozen=True)
class Query:
    """Declarative request handed to an adapter.

    An empty ``select`` means all fields; an empty ``where`` means no filter.
    """

    select: tuple[str, ...] = ()
    where: tuple[Where, ...] = ()
    order_by: tuple[OrderBy, ...] = ()
    limit: int | None = None
    offset: int | None = None
