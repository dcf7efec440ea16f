"""In-memory document store with its adapter and normalizer.

Documents are kept as plain dicts keyed by collection name and id. References
to other documents are stored as ``DocumentRef`` handles, the way a document
database stores native document references.
"""

from __future__ import annotations

import copy
import inspect
import logging
import operator
import uuid
from collections.abc import AsyncIterator, Mapping
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Callable

from typed_documents.adapter import Adapter, Normalizer
from typed_documents.errors import AdapterError
from typed_documents.metadata import MetadataSnapshot
from typed_documents.order_by import OrderByDirection
from typed_documents.query import Query
from typed_documents.where import Where, WhereOperator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DocumentRef:
    """Store-native handle to a document in another collection."""

    collection_name: str
    id: str


@dataclass
class StoredDocument:
    """Store-native snapshot: the document id and its stored fields."""

    id: str
    data: dict[str, Any]


class MemoryStore:
    """Collections of documents held in process memory."""

    def __init__(self) -> None:
        self._collections: dict[str, dict[str, dict[str, Any]]] = {}

    def collection(self, collection_name: str) -> dict[str, dict[str, Any]]:
        """Get the id -> data mapping for a collection, creating it if needed."""
        return self._collections.setdefault(collection_name, {})

    def get(self, ref: DocumentRef) -> StoredDocument | None:
        """Look up a document by reference handle."""
        data = self._collections.get(ref.collection_name, {}).get(ref.id)
        if data is None:
            return None
        return StoredDocument(id=ref.id, data=data)

    def put(self, collection_name: str, doc_id: str, data: dict[str, Any]) -> None:
        """Insert or overwrite a document."""
        self.collection(collection_name)[doc_id] = data

    def remove(self, collection_name: str, doc_id: str) -> bool:
        """Remove a document, returning whether it existed."""
        return self._collections.get(collection_name, {}).pop(doc_id, None) is not None

    def list_collections(self) -> list[str]:
        """List collection names in creation order."""
        return list(self._collections.keys())

    @staticmethod
    def generate_id() -> str:
        """Generate a new document id."""
        return uuid.uuid4().hex


class MemoryNormalizer(Normalizer):
    """Normalizer for MemoryStore records."""

    def __init__(self, store: MemoryStore) -> None:
        self.store = store

    def normalize(
        self,
        metadata: MetadataSnapshot,
        snapshot: StoredDocument,
        resolved: dict[DocumentRef, Any] | None = None,
    ) -> Any:
        """Build a document instance, resolving references recursively.

        ``resolved`` memoises documents already built during this call, so
        documents that reference each other come back as the same objects
        instead of recursing forever.
        """
        if resolved is None:
            resolved = {}
        ref = DocumentRef(metadata.collection_name, snapshot.id)
        if ref in resolved:
            return resolved[ref]

        document_type = metadata.document_type
        document = document_type.__new__(document_type)
        resolved[ref] = document

        for key, value in snapshot.data.items():
            setattr(document, key, copy.deepcopy(value))
        if getattr(document, metadata.id_key, None) is None:
            setattr(document, metadata.id_key, snapshot.id)

        for field_name, referent in metadata.references.items():
            value = getattr(document, field_name, None)
            if not isinstance(value, DocumentRef):
                continue
            stored = self.store.get(value)
            if stored is None:
                logger.debug("Dangling reference %s.%s -> %r", metadata.collection_name, field_name, value)
                setattr(document, field_name, None)
            else:
                setattr(document, field_name, self.normalize(referent, stored, resolved))

        return document

    def denormalize(self, metadata: MetadataSnapshot, document: Any) -> dict[str, Any]:
        """Convert a document into stored data.

        Referenced documents (or their raw ids) become DocumentRef handles,
        and the id key is dropped since the store keys documents by id.
        """
        data: dict[str, Any] = {}
        for key, value in vars(document).items():
            if key == metadata.id_key:
                continue
            referent = metadata.references.get(key)
            if referent is not None:
                data[key] = to_document_ref(referent, value)
            else:
                data[key] = copy.deepcopy(value)

        for key in metadata.references:
            data.setdefault(key, None)
        return data


def to_document_ref(referent: MetadataSnapshot, value: Any) -> DocumentRef | None:
    """Convert a referenced document, or its id, into a DocumentRef."""
    if value is None or isinstance(value, DocumentRef):
        return value
    if isinstance(value, referent.document_type):
        value = getattr(value, referent.id_key)
    return DocumentRef(referent.collection_name, value)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _comparable(left: Any, right: Any) -> bool:
    """Range comparisons only apply between values of the same kind."""
    if _is_number(left) and _is_number(right):
        return True
    if left is None or right is None:
        return False
    return type(left) is type(right)


def _ranged(compare: Callable[[Any, Any], bool]) -> Callable[[Any, Any], bool]:
    return lambda field_value, value: _comparable(field_value, value) and compare(field_value, value)


def _array_contains(field_value: Any, value: Any) -> bool:
    return isinstance(field_value, list) and value in field_value


def _array_contains_any(field_value: Any, values: Any) -> bool:
    return isinstance(field_value, list) and any(v in field_value for v in values)


MATCHERS: dict[WhereOperator, Callable[[Any, Any], bool]] = {
    WhereOperator.EQUAL_TO: operator.eq,
    WhereOperator.LESS_THAN: _ranged(operator.lt),
    WhereOperator.LESS_THAN_OR_EQUAL_TO: _ranged(operator.le),
    WhereOperator.GREATER_THAN: _ranged(operator.gt),
    WhereOperator.GREATER_THAN_OR_EQUAL_TO: _ranged(operator.ge),
    WhereOperator.IN: lambda field_value, values: field_value in values,
    WhereOperator.ARRAY_CONTAINS: _array_contains,
    WhereOperator.ARRAY_CONTAINS_ANY: _array_contains_any,
}

MULTI_VALUE_OPERATORS = (WhereOperator.IN, WhereOperator.ARRAY_CONTAINS_ANY)


def _sort_key(value: Any) -> tuple:
    """Order values by kind first, then by value, like a document database."""
    if value is None:
        return (0,)
    if isinstance(value, bool):
        return (1, value)
    if _is_number(value):
        return (2, value)
    if isinstance(value, (datetime, date)):
        return (3, value)
    if isinstance(value, str):
        return (4, value)
    if isinstance(value, DocumentRef):
        return (5, value.collection_name, value.id)
    if isinstance(value, list):
        return (6, tuple(_sort_key(v) for v in value))
    if isinstance(value, Mapping):
        return (7, tuple((k, _sort_key(v)) for k, v in sorted(value.items())))
    return (8, repr(value))


class MemoryAdapter(Adapter):
    """Adapter that evaluates queries against a MemoryStore."""

    def __init__(
        self, store: MemoryStore | None = None, normalizer: Normalizer | None = None
    ) -> None:
        self.store = store if store is not None else MemoryStore()
        self.normalizer = normalizer if normalizer is not None else MemoryNormalizer(self.store)

    # Reading

    def _field_value(
        self, metadata: MetadataSnapshot, stored: StoredDocument, key: str
    ) -> tuple[bool, Any]:
        """Return (present, value) for a possibly dotted key."""
        if key == metadata.id_key:
            return True, stored.id

        current: Any = stored.data
        for part in key.split("."):
            if not isinstance(current, Mapping) or part not in current:
                return False, None
            current = current[part]
        return True, current

    def _where_value(self, metadata: MetadataSnapshot, where: Where) -> Any:
        """Translate reference filter values into DocumentRef handles."""
        referent = metadata.references.get(where.key)
        if referent is None:
            return where.value
        if where.operator in MULTI_VALUE_OPERATORS:
            return [to_document_ref(referent, v) for v in where.value]
        return to_document_ref(referent, where.value)

    def _select(
        self, metadata: MetadataSnapshot, query: Query, paginate: bool = True
    ) -> list[StoredDocument]:
        """Run a query and return matching snapshots.

        Raises:
            AdapterError: If the limit or offset is negative.
        """
        for name, value in (("limit", query.limit), ("offset", query.offset)):
            if value is not None and value < 0:
                raise AdapterError(f"Query {name} must not be negative, got {value}")

        filters = [
            (where.key, MATCHERS[where.operator], self._where_value(metadata, where))
            for where in query.where
        ]

        results: list[StoredDocument] = []
        for doc_id, data in self.store.collection(metadata.collection_name).items():
            stored = StoredDocument(id=doc_id, data=data)
            for key, matches, value in filters:
                present, field_value = self._field_value(metadata, stored, key)
                if not present or not matches(field_value, value):
                    break
            else:
                results.append(stored)

        # Stable sorts applied from the last clause to the first
        for order in reversed(query.order_by):
            results = [s for s in results if self._field_value(metadata, s, order.key)[0]]
            results.sort(
                key=lambda s: _sort_key(self._field_value(metadata, s, order.key)[1]),
                reverse=order.direction is OrderByDirection.DESCENDING,
            )

        if paginate:
            if query.offset:
                results = results[query.offset:]
            if query.limit is not None:
                results = results[:query.limit]

        if query.select:
            results = [
                StoredDocument(
                    id=s.id,
                    data={k: v for k, v in s.data.items() if k in query.select},
                )
                for s in results
            ]
        return results

    async def _normalize(self, metadata: MetadataSnapshot, stored: StoredDocument) -> Any:
        document = self.normalizer.normalize(metadata, stored)
        if inspect.isawaitable(document):
            document = await document
        return document

    async def count(self, metadata: MetadataSnapshot, query: Query) -> int:
        return len(self._select(metadata, Query(where=query.where), paginate=False))

    async def fetch(self, metadata: MetadataSnapshot, query: Query) -> list[Any]:
        return [await self._normalize(metadata, s) for s in self._select(metadata, query)]

    async def stream(self, metadata: MetadataSnapshot, query: Query) -> AsyncIterator[Any]:
        for stored in self._select(metadata, query):
            yield await self._normalize(metadata, stored)

    # Writing

    async def _denormalize(self, metadata: MetadataSnapshot, document: Any) -> dict[str, Any]:
        data = self.normalizer.denormalize(metadata, document)
        if inspect.isawaitable(data):
            data = await data
        return data

    def _require_id(self, metadata: MetadataSnapshot, document: Any) -> str:
        doc_id = getattr(document, metadata.id_key, None)
        if doc_id is None:
            raise AdapterError(
                f"Document of '{metadata.collection_name}' has no '{metadata.id_key}' value"
            )
        return doc_id

    async def create(self, metadata: MetadataSnapshot, document: Any) -> None:
        data = await self._denormalize(metadata, document)
        doc_id = getattr(document, metadata.id_key, None)
        if doc_id is None:
            doc_id = self.store.generate_id()
            setattr(document, metadata.id_key, doc_id)
        self.store.put(metadata.collection_name, doc_id, data)
        logger.debug("Created %s/%s", metadata.collection_name, doc_id)

    async def update(self, metadata: MetadataSnapshot, document: Any) -> None:
        doc_id = self._require_id(metadata, document)
        data = await self._denormalize(metadata, document)
        self.store.put(metadata.collection_name, doc_id, data)
        logger.debug("Updated %s/%s", metadata.collection_name, doc_id)

    async def delete(self, metadata: MetadataSnapshot, document: Any) -> None:
        doc_id = self._require_id(metadata, document)
        removed = self.store.remove(metadata.collection_name, doc_id)
        logger.debug("Deleted %s/%s (existed: %s)", metadata.collection_name, doc_id, removed)
