"""Collection: a query builder bound to an adapter and a metadata node."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Mapping
from typing import Any

from typed_documents.adapter import Adapter
from typed_documents.errors import MutatedCollectionError, NotFoundError
from typed_documents.metadata import MetadataSnapshot
from typed_documents.query_builder import QueryBuilder

logger = logging.getLogger(__name__)


class Collection(QueryBuilder):
    """Repository API for one document collection.

    Refining calls (``where``, ``order_by``, ...) return new collections that
    keep the same adapter and metadata. Identity-scoped operations (``find``,
    ``create``, ``update``, ``delete``) are only allowed on the original,
    unrefined collection.
    """

    def __init__(self, adapter: Adapter, metadata: MetadataSnapshot) -> None:
        super().__init__()
        self.adapter = adapter
        self.metadata = metadata

    def __repr__(self) -> str:
        return f"Collection({self.metadata.collection_name!r}, version={self.version})"

    def _validate_version(self) -> None:
        """Ensure this is the original collection.

        Raises:
            MutatedCollectionError: If any refining call was applied.
        """
        if self.version > 0:
            raise MutatedCollectionError(self.version)

    async def first(self) -> Any:
        """Fetch the first document matching the current query.

        Raises:
            NotFoundError: If nothing matches.
        """
        documents = await self.limit(1).fetch()
        if not documents:
            raise NotFoundError(self.metadata.collection_name)
        return documents[0]

    async def find(self, where: Any) -> Any:
        """Find one document by id, or by a {key: value} record.

        Example::

            task = await tasks.find("t-1")
            task = await tasks.find({"status": "open", "tag": ["a", "b"]})

        Raises:
            MutatedCollectionError: If called on a refined collection.
            NotFoundError: If nothing matches.
        """
        self._validate_version()

        if not isinstance(where, Mapping):
            where = {self.metadata.id_key: where}
        return await self.where(where).first()

    async def count(self, where: Mapping[str, Any] | None = None) -> int:
        """Count documents matching the current query plus an optional record."""
        query = self.where(where) if where else self
        return await self.adapter.count(self.metadata, query.to_query())

    async def fetch(self) -> list[Any]:
        """Fetch all documents matching the current query."""
        query = self.to_query()
        logger.debug("Fetching from %r: %r", self.metadata.collection_name, query)
        return await self.adapter.fetch(self.metadata, query)

    def stream(self) -> AsyncIterator[Any]:
        """Stream documents matching the current query."""
        return self.adapter.stream(self.metadata, self.to_query())

    def __aiter__(self) -> AsyncIterator[Any]:
        return self.stream().__aiter__()

    # Write operations

    async def create(self, document: Any) -> None:
        """Insert a document into the collection.

        Raises:
            MutatedCollectionError: If called on a refined collection.
        """
        self._validate_version()
        await self.adapter.create(self.metadata, document)

    async def update(self, document: Any) -> None:
        """Overwrite a stored document.

        Raises:
            MutatedCollectionError: If called on a refined collection.
        """
        self._validate_version()
        await self.adapter.update(self.metadata, document)

    async def delete(self, document: Any) -> None:
        """Remove a document from the collection.

        Raises:
            MutatedCollectionError: If called on a refined collection.
        """
        self._validate_version()
        await self.adapter.delete(self.metadata, document)
