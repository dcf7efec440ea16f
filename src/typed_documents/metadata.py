"""Document metadata registry and snapshot graph resolution."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from typed_documents.errors import (
    AlreadyMappedError,
    DuplicateReferenceError,
    UndecoratedTypeError,
    type_name,
)

logger = logging.getLogger(__name__)

DEFAULT_ID_KEY = "id"


@dataclass(frozen=True)
class ReferenceDescriptor:
    """A reference field pointing at another document type."""

    field_name: str
    referent_type: Any


@dataclass(eq=False)
class EntityDescriptor:
    """Raw declaration of a document type, possibly still incomplete.

    A descriptor can exist with references but no collection or id key when a
    reference was declared before its owner's document declaration. That is
    legal while registering and rejected by validation.
    """

    document_type: Any
    collection_name: str | None = None
    id_key: str | None = None
    references: list[ReferenceDescriptor] = field(default_factory=list)

    @property
    def is_complete(self) -> bool:
        """Return whether both the collection name and id key are set."""
        return self.collection_name is not None and self.id_key is not None

    def get_reference(self, field_name: str) -> ReferenceDescriptor | None:
        """Get a reference by field name."""
        for reference in self.references:
            if reference.field_name == field_name:
                return reference
        return None


@dataclass(frozen=True, eq=False)
class MetadataSnapshot:
    """Resolved node of the metadata graph.

    ``references`` maps each reference field to the referent's node in the
    same graph. Nodes never own each other, and cycles are allowed.
    """

    document_type: Any
    collection_name: str
    id_key: str
    references: Mapping[str, MetadataSnapshot] = field(repr=False)

    def __repr__(self) -> str:
        refs = ", ".join(
            f"{name}->{node.collection_name}" for name, node in self.references.items()
        )
        return (
            f"MetadataSnapshot({type_name(self.document_type)!r}, "
            f"collection={self.collection_name!r}, id_key={self.id_key!r}, "
            f"references=[{refs}])"
        )


class MetadataGraph(Mapping):
    """Read-only mapping of document type to resolved snapshot node."""

    def __init__(self, nodes: dict[Any, MetadataSnapshot], revision: int) -> None:
        self._nodes = nodes
        self.revision = revision

    def __getitem__(self, document_type: Any) -> MetadataSnapshot:
        return self._nodes[document_type]

    def __iter__(self) -> Iterator[Any]:
        return iter(self._nodes)

    def __len__(self) -> int:
        return len(self._nodes)

    def get_or_raise(self, document_type: Any) -> MetadataSnapshot:
        """Get a node by document type, raising if the type is not mapped."""
        node = self._nodes.get(document_type)
        if node is None:
            raise UndecoratedTypeError(document_type)
        return node

    def snapshots(self) -> list[MetadataSnapshot]:
        """Return all nodes in registration order."""
        return list(self._nodes.values())


class MetadataRegistry:
    """Registry of document declarations.

    Declarations may arrive in any order. Nothing is checked for completeness
    until ``validate_all`` or ``resolve_all`` is called. The registry is meant
    to be filled by a single writer during start-up and then resolved; it is
    not safe to mutate it while another thread resolves.
    """

    def __init__(self) -> None:
        self._descriptors: dict[Any, EntityDescriptor] = {}
        self._revision = 0

    @property
    def revision(self) -> int:
        """Counter bumped by every change to the declarations."""
        return self._revision

    def _get_or_create(self, document_type: Any) -> EntityDescriptor:
        descriptor = self._descriptors.get(document_type)
        if descriptor is None:
            descriptor = EntityDescriptor(document_type=document_type)
            self._descriptors[document_type] = descriptor
        return descriptor

    def add_document(self, collection_name: str, id_key: str, document_type: Any) -> None:
        """Map a document type to a collection and its id key.

        Raises:
            AlreadyMappedError: If the type already has a collection or id key.
        """
        descriptor = self._get_or_create(document_type)
        if descriptor.collection_name is not None or descriptor.id_key is not None:
            raise AlreadyMappedError(document_type, descriptor.collection_name)

        descriptor.collection_name = collection_name
        descriptor.id_key = id_key
        self._revision += 1
        logger.debug(
            "Mapped %s to collection %r (id key %r)",
            type_name(document_type), collection_name, id_key,
        )

    def add_reference(self, document_type: Any, field_name: str, referent_type: Any) -> None:
        """Declare that a field of a document type references another type.

        Raises:
            DuplicateReferenceError: If the field already has a reference.
        """
        descriptor = self._get_or_create(document_type)
        existing = descriptor.get_reference(field_name)
        if existing is not None:
            raise DuplicateReferenceError(document_type, field_name, existing.referent_type)

        descriptor.references.append(ReferenceDescriptor(field_name, referent_type))
        self._revision += 1
        logger.debug(
            "Added reference %s.%s -> %s",
            type_name(document_type), field_name, type_name(referent_type),
        )

    def get_document(self, document_type: Any) -> EntityDescriptor:
        """Get the descriptor for a type, raising KeyError if absent."""
        descriptor = self._descriptors.get(document_type)
        if descriptor is None:
            raise KeyError(f"Document metadata for '{type_name(document_type)}' not found")
        return descriptor

    def get_reference(self, document_type: Any, field_name: str) -> ReferenceDescriptor:
        """Get a reference descriptor, raising KeyError if absent."""
        reference = self.get_document(document_type).get_reference(field_name)
        if reference is None:
            raise KeyError(
                f"Reference '{field_name}' of '{type_name(document_type)}' not found"
            )
        return reference

    def list_types(self) -> list[Any]:
        """List all registered document types in registration order."""
        return list(self._descriptors.keys())

    def validate_all(self) -> None:
        """Check that every declaration is complete.

        Descriptors are checked in registration order and the first failure is
        reported.

        Raises:
            UndecoratedTypeError: If a type lacks a collection or id key, or a
                reference points to a type that was never registered.
        """
        for descriptor in self._descriptors.values():
            if not descriptor.is_complete:
                raise UndecoratedTypeError(descriptor.document_type)

            for reference in descriptor.references:
                if reference.referent_type not in self._descriptors:
                    raise UndecoratedTypeError(reference.referent_type)

    def resolve_all(self) -> MetadataGraph:
        """Validate and build the linked snapshot graph.

        Resolution runs in two passes so that forward, self and mutual
        references all resolve to the same node objects:

        Pass 1: create one node per descriptor with an empty reference map.
        Pass 2: wire every reference to the already-created referent node.
        """
        self.validate_all()

        nodes: dict[Any, MetadataSnapshot] = {}
        wiring: list[tuple[dict[str, MetadataSnapshot], ReferenceDescriptor]] = []

        # Pass 1: create nodes
        for document_type, descriptor in self._descriptors.items():
            references: dict[str, MetadataSnapshot] = {}
            nodes[document_type] = MetadataSnapshot(
                document_type=document_type,
                collection_name=descriptor.collection_name,
                id_key=descriptor.id_key,
                references=MappingProxyType(references),
            )
            wiring.extend((references, ref) for ref in descriptor.references)

        # Pass 2: wire edges
        for references, ref in wiring:
            references[ref.field_name] = nodes[ref.referent_type]

        logger.debug(
            "Resolved %d document(s) with %d reference(s) at revision %d",
            len(nodes), len(wiring), self._revision,
        )
        return MetadataGraph(nodes, self._revision)

    def is_stale(self, graph: MetadataGraph) -> bool:
        """Return whether declarations changed since the graph was resolved."""
        return graph.revision != self._revision

    def clear_all(self) -> None:
        """Remove every declaration."""
        self._descriptors.clear()
        self._revision += 1

    def __contains__(self, document_type: Any) -> bool:
        return document_type in self._descriptors

    def __len__(self) -> int:
        return len(self._descriptors)
