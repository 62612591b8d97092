#!/usr/bin/env python3
"""
kbgraph: build a backlink graph and search index from a markdown corpus

Usage:
    kbgraph build ./content              # Build artifacts into ./_kbgraph
    kbgraph build ./content --strict     # Fail on duplicate titles
    kbgraph search "query"               # Query a built search index
    kbgraph links notes/apple            # Forward links and backlinks of one document
"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import NoReturn

import click

from . import __version__ as KBGRAPH_VERSION
from ._logging import configure_logging
from .config import (
    DEFAULT_OUTPUT_DIR,
    GRAPH_ARTIFACT,
    SEARCH_ARTIFACT,
    ConfigurationError,
    get_corpus_root,
)
from .errors import BuildError

# ─────────────────────────────────────────────────────────────────────────────
# Output Formatting
# ─────────────────────────────────────────────────────────────────────────────


def format_table(rows: list[dict], columns: list[str], max_widths: dict | None = None) -> str:
    """Format rows as a simple table."""
    if not rows:
        return ""

    max_widths = max_widths or {}

    def cell(row: dict, col: str) -> str:
        val = str(row.get(col, ""))
        limit = max_widths.get(col, 50)
        return val[: limit - 3] + "..." if len(val) > limit else val

    widths = {col: max(len(col), *(len(cell(row, col)) for row in rows)) for col in columns}

    header = "  ".join(col.upper().ljust(widths[col]) for col in columns)
    separator = "  ".join("-" * widths[col] for col in columns)
    lines = [header, separator]
    for row in rows:
        lines.append("  ".join(cell(row, col).ljust(widths[col]) for col in columns))
    return "\n".join(lines)


def output(data, as_json: bool = False):
    """Output data as JSON or formatted text."""
    if as_json:
        click.echo(json.dumps(data, indent=2, default=str))
    else:
        click.echo(data)


def fail(message: str, exit_code: int = 1) -> NoReturn:
    click.echo(f"Error: {message}", err=True)
    sys.exit(exit_code)


# ─────────────────────────────────────────────────────────────────────────────
# Main CLI Group
# ─────────────────────────────────────────────────────────────────────────────


@click.group()
@click.version_option(version=KBGRAPH_VERSION, prog_name="kbgraph")
@click.option("--verbose", "-v", is_flag=True, help="Log debug details to stderr")
def cli(verbose: bool):
    """kbgraph: link graph and search index builder for markdown knowledge bases.

    \b
    Quick start:
      kbgraph build ./content          # Write graph.json + search-index.json
      kbgraph search "deployment"      # Query the built index
      kbgraph links guides/setup       # Show links and backlinks
    """
    configure_logging("DEBUG" if verbose else None)


# ─────────────────────────────────────────────────────────────────────────────
# Build Command
# ─────────────────────────────────────────────────────────────────────────────


@cli.command()
@click.argument("corpus", required=False, type=click.Path(path_type=Path))
@click.option(
    "--output-dir", "-o",
    type=click.Path(file_okay=False, path_type=Path),
    help="Artifact directory (default: _kbgraph, or KBGRAPH_OUTPUT_DIR)",
)
@click.option(
    "--strict/--lenient",
    default=None,
    help="Fail on duplicate titles (strict) or keep the smallest identifier (lenient, default)",
)
@click.option("--include-drafts", is_flag=True, help="Include documents with status: draft")
@click.option("--include-archived", is_flag=True, help="Include documents with status: archived")
@click.option("--base-url", help="URL prefix for search result links (e.g. /docs)")
@click.option("--workers", type=click.IntRange(min=1), help="Threads for per-document processing")
@click.option("--dry-run", is_flag=True, help="Build in memory and report, without writing artifacts")
@click.option("--json", "as_json", is_flag=True, help="Output the build report as JSON")
def build(
    corpus: Path | None,
    output_dir: Path | None,
    strict: bool | None,
    include_drafts: bool,
    include_archived: bool,
    base_url: str | None,
    workers: int | None,
    dry_run: bool,
    as_json: bool,
):
    """Build the link graph and search index for a corpus.

    CORPUS defaults to KBGRAPH_CORPUS_ROOT. Options not given on the command
    line fall back to the corpus's .kbconfig file.

    \b
    Exit status:
      0  success (warnings may have been printed)
      1  invalid configuration
      2  corpus could not be read
      3  a document violates the front-matter schema
      4  duplicate titles in strict mode
      5  artifacts could not be written

    \b
    Examples:
      kbgraph build ./content -o public/_kbgraph
      kbgraph build ./content --strict --json
    """
    from .publisher import build as run_build

    try:
        corpus_root = corpus or get_corpus_root()
        report = run_build(
            corpus_root,
            output_dir=output_dir,
            strict=strict,
            include_drafts=include_drafts or None,
            include_archived=include_archived or None,
            base_url=base_url,
            workers=workers,
            dry_run=dry_run or None,
        )
    except (BuildError, ConfigurationError) as e:
        fail(str(e), e.exit_code)

    if as_json:
        output(report.model_dump(mode="json"), as_json=True)
        return

    click.echo(
        f"Built {report.nodes} nodes, {report.edges} edges and {report.terms} search terms "
        f"from {report.documents} documents"
    )

    if report.warnings:
        click.echo(f"\n⚠ Warnings ({len(report.warnings)}):")
        for warning in report.warnings:
            click.echo(f"  - {warning.describe()}")

    if report.dry_run:
        click.echo("\nDry run: no artifacts written")
    else:
        click.echo(f"\nGraph: {report.graph_path}")
        click.echo(f"Search index: {report.search_index_path}")


# ─────────────────────────────────────────────────────────────────────────────
# Query Commands
# ─────────────────────────────────────────────────────────────────────────────


_index_dir_option = click.option(
    "--index-dir", "-d",
    type=click.Path(file_okay=False, path_type=Path),
    default=DEFAULT_OUTPUT_DIR,
    envvar="KBGRAPH_OUTPUT_DIR",
    show_default=True,
    help="Directory holding built artifacts",
)


@cli.command()
@click.argument("query")
@_index_dir_option
@click.option("--limit", "-n", default=10, type=click.IntRange(min=1), help="Max results")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def search(query: str, index_dir: Path, limit: int, as_json: bool):
    """Search a built index.

    \b
    Examples:
      kbgraph search "deployment"
      kbgraph search "docker compose" -n 5 --json
    """
    from .indexer import search as run_search
    from .publisher import load_search_artifact

    try:
        index = load_search_artifact(index_dir / SEARCH_ARTIFACT)
    except (OSError, ValueError) as e:
        fail(f"Cannot load search index: {e}")

    hits = run_search(index, query, limit=limit)

    if as_json:
        output([hit.model_dump() for hit in hits], as_json=True)
        return

    if not hits:
        click.echo("No results found.")
        return

    rows = [
        {"id": hit.id, "title": hit.title, "score": hit.score, "fields": ",".join(hit.fields)}
        for hit in hits
    ]
    click.echo(format_table(rows, ["id", "title", "score", "fields"], {"id": 40, "title": 40}))


@cli.command()
@click.argument("document_id")
@_index_dir_option
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
def links(document_id: str, index_dir: Path, as_json: bool):
    """Show forward links and backlinks of a document.

    \b
    Examples:
      kbgraph links notes/apple
      kbgraph links notes/apple --json
    """
    from .publisher import load_graph_artifact

    try:
        graph = load_graph_artifact(index_dir / GRAPH_ARTIFACT)
    except (OSError, ValueError) as e:
        fail(f"Cannot load graph: {e}")

    if document_id not in graph.nodes:
        fail(f"Document not found in graph: {document_id}")

    outgoing = graph.links_from(document_id)
    incoming = graph.backlinks_to(document_id)

    if as_json:
        output({"id": document_id, "links": outgoing, "backlinks": incoming}, as_json=True)
        return

    node = graph.nodes[document_id]
    click.echo(f"{node.title} ({document_id})")
    click.echo(f"\nLinks to ({len(outgoing)}):")
    for target in outgoing:
        click.echo(f"  - {target}")
    click.echo(f"\nLinked from ({len(incoming)}):")
    for source in incoming:
        click.echo(f"  - {source}")


if __name__ == "__main__":
    cli()
