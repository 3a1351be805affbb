#!/usr/bin/env python3
"""
Load Graph Script

Validates a graph payload against a schema and bulk-loads it into the
configured graph database. The database is wiped first.

Usage:
    # Validate, then load
    python scripts/load_graph.py --schema assets/schema.md --graph data/graph.json

    # Only validate
    python scripts/load_graph.py --schema assets/schema.json --graph data/graph.json --validate-only

    # Load without validating (schema not needed)
    python scripts/load_graph.py --graph data/graph.json --skip-validation
"""

import sys
import json
import argparse
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from config.settings import get_settings
from lpgraph.errors import LPGraphError
from lpgraph.graph.loader import GraphLoader
from lpgraph.graph.neo4j_client import Neo4jClient
from lpgraph.graph.schema import ValidationResult
from lpgraph.graph.schema_loader import SchemaLoader
from lpgraph.graph.validator import SchemaValidator

console = Console()


def main():
    parser = argparse.ArgumentParser(description="Validate and load a graph payload")
    parser.add_argument(
        "--schema",
        default=None,
        help="Schema file, .json or .md (default: SCHEMA_PATH from settings)"
    )
    parser.add_argument(
        "--graph",
        required=True,
        help="Graph payload JSON file (array of node/relationship elements)"
    )
    parser.add_argument(
        "--validate-only",
        action="store_true",
        help="Validate and report, do not touch the database"
    )
    parser.add_argument(
        "--skip-validation",
        action="store_true",
        help="Load without validating first"
    )

    args = parser.parse_args()

    settings = get_settings()
    schema_path = args.schema or settings.schema_path

    console.print(f"\n[bold]lpgraph - Graph Loader[/bold]")
    console.print(f"Graph: [cyan]{args.graph}[/]")
    console.print(f"Database: [cyan]{settings.graph_db_uri}[/]")

    graph_path = Path(args.graph)
    if not graph_path.exists():
        console.print(f"\n[red]Error: Graph file not found: {graph_path}[/]")
        sys.exit(1)

    try:
        payload = json.loads(graph_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        console.print(f"\n[red]Error: Graph file is not valid JSON: {e}[/]")
        sys.exit(1)

    if not args.skip_validation:
        if not schema_path:
            console.print("\n[red]Error: no schema given (use --schema or set SCHEMA_PATH)[/]")
            sys.exit(1)

        console.print(f"Schema: [cyan]{schema_path}[/]")
        try:
            schema = SchemaLoader().load_file(schema_path)
            result = SchemaValidator(schema).validate(payload)
        except LPGraphError as e:
            console.print(f"\n[red]Error: {e}[/]")
            sys.exit(1)

        print_validation(result)
        if not result.valid:
            console.print("\n[red]Validation failed, nothing was loaded.[/]\n")
            sys.exit(2)

    if args.validate_only:
        console.print("\n[bold green]Done![/]\n")
        return

    load(payload)
    console.print("\n[bold green]Done![/]\n")


def print_validation(result: ValidationResult):
    """Print validation stats, errors and warnings"""
    stats = result.stats
    console.print(f"\n[bold]Validation:[/]")
    console.print(f"  Elements: {stats.total_elements}")
    console.print(f"  Nodes: {stats.validated_nodes}/{stats.total_nodes} valid")
    console.print(f"  Relationships: {stats.validated_relations}/{stats.total_relations} valid")

    if result.errors:
        table = Table(title=f"{len(result.errors)} errors")
        table.add_column("Element")
        table.add_column("Kind", style="red")
        table.add_column("Message")
        for error in result.errors[:50]:
            table.add_row(f"{error.element_type} {error.element_id}", error.error_kind.value, error.message)
        console.print(table)

    for warning in result.warnings[:20]:
        console.print(f"  [yellow]![/] {warning}")
    if len(result.warnings) > 20:
        console.print(f"  [dim]... and {len(result.warnings) - 20} more warnings[/]")


def load(payload):
    """Wipe the database and load the payload"""
    console.print("\n[bold]Loading into graph database...[/]")
    console.print("[yellow]Existing data will be deleted.[/]")

    settings = get_settings()

    try:
        with Neo4jClient() as client, Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console
        ) as progress:
            task = progress.add_task("Wiping database and creating elements...", total=None)
            loader = GraphLoader(
                client,
                external_id_key=settings.external_id_property,
                legacy_id_fallback=settings.legacy_id_fallback
            )
            result = loader.load(payload)
            progress.update(task, completed=True, description="✓ Load finished")
    except LPGraphError as e:
        console.print(f"[red]Load failed: {e}[/]")
        sys.exit(1)

    console.print(f"  Nodes created: {result.nodes_created}")
    console.print(f"  Relationships created: {result.relationships_created}")
    if result.relationships_skipped:
        console.print(f"  [yellow]Relationships skipped: {result.relationships_skipped}[/]")
    for warning in result.warnings:
        console.print(f"  [yellow]![/] {warning}")


if __name__ == "__main__":
    main()
