"""Typed Documents - declare document types and query them through adapters."""

from typed_documents.adapter import Adapter, Normalizer
from typed_documents.collection import Collection
from typed_documents.errors import (
    AdapterError,
    AdapterNotConfiguredError,
    AlreadyMappedError,
    CollectionError,
    DuplicateReferenceError,
    MetadataError,
    MutatedCollectionError,
    NotFoundError,
    SchemaSyntaxError,
    TypedDocumentsError,
    UndecoratedTypeError,
    UnresolvedMetadataError,
)
from typed_documents.mapper import DocumentMapper
from typed_documents.memory import DocumentRef, MemoryAdapter, MemoryNormalizer, MemoryStore
from typed_documents.metadata import (
    DEFAULT_ID_KEY,
    EntityDescriptor,
    MetadataGraph,
    MetadataRegistry,
    MetadataSnapshot,
    ReferenceDescriptor,
)
from typed_documents.order_by import OrderBy, OrderByDirection
from typed_documents.query import Query
from typed_documents.query_builder import QueryBuilder
from typed_documents.schema import Schema
from typed_documents.where import Where, WhereOperator

__all__ = [
    # Main API
    "DocumentMapper",
    "Schema",
    "Collection",
    "QueryBuilder",
    "Query",
    # Metadata
    "DEFAULT_ID_KEY",
    "EntityDescriptor",
    "MetadataGraph",
    "MetadataRegistry",
    "MetadataSnapshot",
    "ReferenceDescriptor",
    # Query parts
    "OrderBy",
    "OrderByDirection",
    "Where",
    "WhereOperator",
    # Storage
    "Adapter",
    "Normalizer",
    "DocumentRef",
    "MemoryAdapter",
    "MemoryNormalizer",
    "MemoryStore",
    # Errors
    "TypedDocumentsError",
    "MetadataError",
    "AlreadyMappedError",
    "DuplicateReferenceError",
    "UndecoratedTypeError",
    "UnresolvedMetadataError",
    "CollectionError",
    "MutatedCollectionError",
    "NotFoundError",
    "AdapterError",
    "AdapterNotConfiguredError",
    "SchemaSyntaxError",
]

__version__ = "0.1.0"
