#!/usr/bin/env python3
"""
Run Query Script

Runs ad-hoc Cypher against the configured graph database, routed to a
read or write transaction by the intent classifier.

Usage:
    # Run one query
    python scripts/run_query.py --query "MATCH (n) RETURN n LIMIT 5"

    # Interactive mode with the safety gate on
    python scripts/run_query.py --interactive --hardened
"""

import sys
import json
import argparse
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from rich.console import Console
from rich.panel import Panel
from rich.syntax import Syntax
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

from config.settings import get_settings
from lpgraph.errors import LPGraphError, UnsafeQueryError
from lpgraph.graph.neo4j_client import Neo4jClient
from lpgraph.query.executor import QueryExecutor

console = Console()


def main():
    parser = argparse.ArgumentParser(description="Run ad-hoc Cypher queries")
    parser.add_argument("--query", help="Run a single query")
    parser.add_argument("--interactive", "-i", action="store_true", help="Interactive mode")
    parser.add_argument("--hardened", action="store_true", help="Enable the safety gate (default: from settings)")

    args = parser.parse_args()

    settings = get_settings()
    hardened = args.hardened or settings.hardened_mode

    console.print("\n[bold]lpgraph - Query Runner[/bold]")
    console.print(f"Database: [cyan]{settings.graph_db_uri}[/]")
    console.print(f"Hardened mode: [cyan]{'on' if hardened else 'off'}[/]\n")

    if not args.query and not args.interactive:
        parser.print_help()
        sys.exit(1)

    client = Neo4jClient()
    executor = QueryExecutor(client, hardened_mode=hardened)

    try:
        if args.interactive:
            interactive_mode(executor)
        else:
            run_single_query(args.query, executor)
    finally:
        client.close()


def run_single_query(query: str, executor: QueryExecutor):
    """Run one query and print its rows"""
    console.print(Panel(Syntax(query, "cypher", word_wrap=True), title="Query", border_style="blue"))

    try:
        result = executor.run(query)
    except UnsafeQueryError as e:
        console.print(f"[red]Blocked:[/] {e}")
        return
    except LPGraphError as e:
        console.print(f"[red]Error:[/] {e}")
        return

    console.print(f"Intent: [cyan]{result.intent.value}[/], rows: [cyan]{result.count}[/]")
    for row in result.results[:25]:
        console.print(json.dumps(row, default=str, ensure_ascii=False))
    if result.count > 25:
        console.print(f"[dim]... {result.count - 25} more rows[/]")
    console.print()


def interactive_mode(executor: QueryExecutor):
    """Interactive query mode"""
    console.print("[bold]Interactive Mode[/] - Type 'quit' to exit\n")

    while True:
        try:
            query = console.input("[bold blue]cypher>[/] ")

            if query.lower() in ['quit', 'exit', 'q']:
                break

            if not query.strip():
                continue

            run_single_query(query, executor)

        except KeyboardInterrupt:
            console.print("\n")
            break

    console.print("Goodbye!")


if __name__ == "__main__":
    main()
