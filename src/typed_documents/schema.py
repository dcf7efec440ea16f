"""Schema class for declaring documents from the schema language."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

from typed_documents.metadata import MetadataGraph, MetadataRegistry
from typed_documents.parsing import DocumentSpec, ReferenceSpec, SchemaParser

logger = logging.getLogger(__name__)


class Schema:
    """Parsed document declarations registered into a metadata registry."""

    def __init__(self, registry: MetadataRegistry, types: dict[str, Any]) -> None:
        """Initialize a schema.

        Args:
            registry: Registry holding the declarations.
            types: Document type identity for every name used in the schema.
        """
        self.registry = registry
        self.types = types

    @classmethod
    def parse(
        cls,
        text: str,
        types: Mapping[str, Any] | None = None,
        registry: MetadataRegistry | None = None,
    ) -> Schema:
        """Parse schema text and register its declarations.

        Names are bound to document types in a first pass, before anything is
        registered, so documents and references may appear in any order and
        may refer to each other.

        Args:
            text: Schema language source.
            types: Classes to use for named types. Names missing here get a
                freshly generated class.
            registry: Registry to register into. A new one is created when
                omitted.

        Returns:
            A new Schema instance.
        """
        specs = SchemaParser().parse(text)
        if registry is None:
            registry = MetadataRegistry()

        # Phase 1: bind a type identity for every name
        bound: dict[str, Any] = {}
        supplied = dict(types or {})

        def bind(name: str) -> Any:
            if name not in bound:
                bound[name] = supplied.get(name) or type(name, (), {"__module__": __name__})
            return bound[name]

        for spec in specs:
            if isinstance(spec, DocumentSpec):
                bind(spec.name)
                for ref in spec.references:
                    bind(ref.referent)
            else:
                bind(spec.owner)
                bind(spec.referent)

        # Phase 2: register declarations in source order
        for spec in specs:
            if isinstance(spec, DocumentSpec):
                registry.add_document(spec.collection_name, spec.id_key, bound[spec.name])
                for ref in spec.references:
                    cls._register_reference(registry, bound, ref)
            else:
                cls._register_reference(registry, bound, spec)

        logger.debug("Parsed schema with %d statement(s), %d type(s)", len(specs), len(bound))
        return cls(registry, bound)

    @staticmethod
    def _register_reference(
        registry: MetadataRegistry, bound: dict[str, Any], spec: ReferenceSpec
    ) -> None:
        registry.add_reference(bound[spec.owner], spec.field_name, bound[spec.referent])

    def get_type(self, name: str) -> Any:
        """Get the document type bound to a name.

        Raises:
            KeyError: If the name is not used in the schema.
        """
        document_type = self.types.get(name)
        if document_type is None:
            raise KeyError(f"Type '{name}' not found")
        return document_type

    def list_types(self) -> list[str]:
        """List all type names used in the schema."""
        return list(self.types.keys())

    def resolve(self) -> MetadataGraph:
        """Validate and resolve the registry into a snapshot graph."""
        return self.registry.resolve_all()
