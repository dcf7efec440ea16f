"""Command-line schema checker."""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from typed_documents.errors import TypedDocumentsError, type_name
from typed_documents.metadata import MetadataGraph
from typed_documents.query_builder import QueryBuilder
from typed_documents.schema import Schema


def print_graph(graph: MetadataGraph) -> None:
    """Print every resolved document with its references."""
    for node in graph.snapshots():
        print(f"{type_name(node.document_type)} -> {node.collection_name} (key: {node.id_key})")
        for field_name, referent in node.references.items():
            print(
                f"  {field_name} -> {type_name(referent.document_type)} "
                f"({referent.collection_name})"
            )
    print(f"\n({len(graph)} document{'s' if len(graph) != 1 else ''})")


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    arg_parser = argparse.ArgumentParser(
        description="Validate and resolve a document schema"
    )
    arg_parser.add_argument(
        "schema_file",
        type=Path,
        help="Path to the schema definition file",
    )
    arg_parser.add_argument(
        "-c", "--query",
        type=str,
        help="Also parse a query expression and print the resulting query",
    )
    arg_parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    args = arg_parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    if not args.schema_file.exists():
        print(f"Error: File not found: {args.schema_file}", file=sys.stderr)
        return 1

    try:
        schema = Schema.parse(args.schema_file.read_text())
        graph = schema.resolve()
        print_graph(graph)

        if args.query:
            query = QueryBuilder().apply(args.query).to_query()
            print(f"\n{query}")
    except TypedDocumentsError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
