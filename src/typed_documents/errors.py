"""Error types raised by the typed_documents library."""

from __future__ import annotations

from typing import Any


def type_name(document_type: Any) -> str:
    """Return a readable name for a document type identity."""
    return getattr(document_type, "__qualname__", None) or getattr(
        document_type, "__name__", repr(document_type)
    )


class TypedDocumentsError(Exception):
    """Base class for all library errors."""


# Metadata


class MetadataError(TypedDocumentsError, ValueError):
    """A document declaration is invalid or incomplete."""


class AlreadyMappedError(MetadataError):
    """A document type was mapped to a collection twice."""

    def __init__(self, document_type: Any, collection_name: str | None) -> None:
        self.document_type = document_type
        self.collection_name = collection_name
        super().__init__(
            f"Type '{type_name(document_type)}' already mapped to "
            f"'{collection_name}' collection"
        )


class DuplicateReferenceError(MetadataError):
    """A reference field was declared twice on the same document type."""

    def __init__(self, document_type: Any, field_name: str, referent_type: Any) -> None:
        self.document_type = document_type
        self.field_name = field_name
        self.referent_type = referent_type
        super().__init__(
            f"Field '{field_name}' of '{type_name(document_type)}' already has "
            f"reference to '{type_name(referent_type)}'"
        )


class UndecoratedTypeError(MetadataError):
    """A type is used as a document but has no complete declaration."""

    def __init__(self, document_type: Any) -> None:
        self.document_type = document_type
        super().__init__(
            f"Type '{type_name(document_type)}' is not declared as a document"
        )


class UnresolvedMetadataError(MetadataError):
    """Metadata was requested before resolving, or after declarations changed."""


# Collections


class CollectionError(TypedDocumentsError):
    """A collection operation was used incorrectly."""


class MutatedCollectionError(CollectionError):
    """An identity-scoped operation was issued through a refined builder."""

    def __init__(self, version: int) -> None:
        self.version = version
        super().__init__(
            f"Collection already mutated (version {version}). "
            "Use the original instance of the collection."
        )


class NotFoundError(CollectionError, LookupError):
    """No document matched the query."""

    def __init__(self, collection_name: str | None = None) -> None:
        self.collection_name = collection_name
        if collection_name:
            super().__init__(f"Document not found in '{collection_name}'")
        else:
            super().__init__("Document not found")


# Adapters


class AdapterError(TypedDocumentsError):
    """The storage adapter cannot serve the request."""


class AdapterNotConfiguredError(AdapterError):
    """No default adapter has been configured."""

    def __init__(self) -> None:
        super().__init__("Adapter not configured")


# Parsing


class SchemaSyntaxError(TypedDocumentsError, SyntaxError):
    """Schema or query expression text is malformed."""
