"""DocumentMapper: registry, resolved metadata and adapter wired together."""

from __future__ import annotations

import logging
from typing import Any

from typed_documents.adapter import Adapter, Normalizer
from typed_documents.collection import Collection
from typed_documents.errors import AdapterNotConfiguredError, UnresolvedMetadataError
from typed_documents.memory import MemoryAdapter, MemoryStore
from typed_documents.metadata import MetadataGraph, MetadataRegistry, MetadataSnapshot

logger = logging.getLogger(__name__)


class DocumentMapper:
    """Entry point handing out collections for declared document types.

    Typical start-up::

        registry = MetadataRegistry()
        registry.add_document("tasks", "id", Task)
        mapper = DocumentMapper(registry)
        mapper.configure_memory()
        mapper.resolve()
        tasks = mapper.collection(Task)

    Resolution is explicit: collections are only available after ``resolve()``
    and become unavailable again when the registry changes, until ``resolve()``
    is called again.
    """

    def __init__(
        self, registry: MetadataRegistry | None = None, adapter: Adapter | None = None
    ) -> None:
        self.registry = registry if registry is not None else MetadataRegistry()
        self._adapter = adapter
        self._graph: MetadataGraph | None = None
        self._collections: dict[tuple[Any, int], Collection] = {}

    # Adapter

    def configure_adapter(self, adapter: Adapter) -> None:
        """Set the default adapter."""
        self._adapter = adapter
        logger.debug("Configured adapter %s", type(adapter).__name__)

    def configure_memory(
        self, store: MemoryStore | None = None, normalizer: Normalizer | None = None
    ) -> MemoryAdapter:
        """Use an in-memory store as the default adapter and return it."""
        adapter = MemoryAdapter(store, normalizer)
        self.configure_adapter(adapter)
        return adapter

    @property
    def adapter(self) -> Adapter:
        """The default adapter.

        Raises:
            AdapterNotConfiguredError: If no adapter has been configured.
        """
        if self._adapter is None:
            raise AdapterNotConfiguredError()
        return self._adapter

    # Metadata

    def resolve(self) -> MetadataGraph:
        """Resolve the registry into a fresh snapshot graph.

        Safe to call repeatedly; cached collections are dropped because they
        point at nodes of the previous graph.
        """
        self._graph = self.registry.resolve_all()
        self._collections.clear()
        return self._graph

    @property
    def graph(self) -> MetadataGraph:
        """The current snapshot graph.

        Raises:
            UnresolvedMetadataError: If ``resolve()`` was never called, or the
                registry changed since.
        """
        if self._graph is None:
            raise UnresolvedMetadataError("Metadata not resolved; call resolve() first")
        if self.registry.is_stale(self._graph):
            raise UnresolvedMetadataError(
                "Declarations changed since the last resolve; call resolve() again"
            )
        return self._graph

    def snapshot(self, document_type: Any) -> MetadataSnapshot:
        """Get the resolved metadata node for a document type."""
        return self.graph.get_or_raise(document_type)

    def collection(self, document_type: Any, adapter: Adapter | None = None) -> Collection:
        """Get the collection for a document type.

        One collection instance is kept per (document type, adapter) pair.
        """
        if adapter is None:
            adapter = self.adapter
        metadata = self.snapshot(document_type)

        key = (document_type, id(adapter))
        collection = self._collections.get(key)
        if collection is None or collection.adapter is not adapter:
            collection = Collection(adapter, metadata)
            self._collections[key] = collection
        return collection
