"""Storage adapter and normalizer contracts."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Awaitable
from typing import Any

from typed_documents.metadata import MetadataSnapshot
from typed_documents.query import Query


class Adapter(ABC):
    """Executes queries and writes against a concrete document store.

    Every method receives the resolved metadata node of the collection it
    operates on. The store performs the actual filtering, ordering and
    pagination described by the Query.
    """

    @abstractmethod
    async def count(self, metadata: MetadataSnapshot, query: Query) -> int:
        """Count documents matching the query's filters."""

    @abstractmethod
    async def fetch(self, metadata: MetadataSnapshot, query: Query) -> list[Any]:
        """Fetch all documents matching the query."""

    @abstractmethod
    def stream(self, metadata: MetadataSnapshot, query: Query) -> AsyncIterator[Any]:
        """Return a lazy, single-pass iterator over matching documents."""

    @abstractmethod
    async def create(self, metadata: MetadataSnapshot, document: Any) -> None:
        """Insert a document, assigning its id if it has none."""

    @abstractmethod
    async def update(self, metadata: MetadataSnapshot, document: Any) -> None:
        """Overwrite a stored document."""

    @abstractmethod
    async def delete(self, metadata: MetadataSnapshot, document: Any) -> None:
        """Remove a stored document."""


class Normalizer(ABC):
    """Translates between store-native records and typed documents."""

    @abstractmethod
    def normalize(self, metadata: MetadataSnapshot, snapshot: Any) -> Any | Awaitable[Any]:
        """Build a typed document from a store-native snapshot.

        Reference fields are resolved recursively through ``metadata.references``.
        """

    @abstractmethod
    def denormalize(
        self, metadata: MetadataSnapshot, document: Any
    ) -> dict[str, Any] | Awaitable[dict[str, Any]]:
        """Convert a typed document into store-native data.

        Reference fields become store handles and the id key is removed.
        """
