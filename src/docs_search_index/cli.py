"""Command line interface for building and querying documentation search indices."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from docs_search_index.builder import IndexBuilder
from docs_search_index.config import AppConfig
from docs_search_index.engine import SearchIndex
from docs_search_index.errors import ArtifactLoadError, BuildInputError
from docs_search_index.models import Category


console = Console()
app = typer.Typer(help="docs-search-index - build and query documentation search indices")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _load_index(index: Optional[Path]) -> SearchIndex:
    config = AppConfig(index_path=index if index is not None else AppConfig().index_path)
    resolved = config.resolve_index_path(Path.cwd())
    try:
        return SearchIndex.load(resolved)
    except ArtifactLoadError as exc:
        console.print(f"[red]Cannot load search index:[/red] {escape(str(exc))}")
        raise typer.Exit(code=1) from exc


@app.command()
def build(
    source: Path = typer.Argument(..., help="Directory with RST documentation pages.", resolve_path=True),
    output: Path = typer.Option(None, "--output", "-o", help="Search index artifact path"),
    max_chars: int = typer.Option(
        AppConfig().max_text_chars, "--max-chars", help="Split entry text longer than this (0 disables)"
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Build a search index from a documentation directory."""
    _setup_logging(verbose)
    config = AppConfig(
        index_path=output if output is not None else AppConfig().index_path,
        max_text_chars=max_chars,
    )
    resolved = config.resolve_index_path(Path.cwd())

    builder = IndexBuilder(max_text_chars=config.max_text_chars)
    try:
        count = builder.build(source, resolved)
    except BuildInputError as exc:
        console.print(f"[red]Build failed:[/red] {escape(str(exc))}")
        raise typer.Exit(code=1) from exc

    console.print(f"Wrote {count} entries to [bold]{escape(str(resolved))}[/bold]")


@app.command()
def query(
    text: str = typer.Argument(..., help="Query text"),
    index: Path = typer.Option(None, "--index", "-i", help="Search index artifact path"),
    limit: int = typer.Option(AppConfig().limit, min=0, help="Number of results to display"),
    category: Optional[Category] = typer.Option(None, help="Only return entries of this category"),
    highlight: bool = typer.Option(False, "--highlight", help="Mark matched words in snippets"),
    as_json: bool = typer.Option(False, "--json", help="Print results as JSON lines"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Search an index for matching entries."""
    _setup_logging(verbose)
    search_index = _load_index(index)
    config = AppConfig()
    results = search_index.search(
        text, category=category, limit=limit, snippet_chars=config.snippet_chars, highlight=highlight
    )

    if as_json:
        for result in results:
            record = {
                "location": result.location,
                "page": result.page,
                "title": result.title,
                "snippet": result.snippet,
                "category": result.category.value,
                "match": result.match,
            }
            typer.echo(json.dumps(record, ensure_ascii=False))
        return

    if not results:
        console.print("[yellow]No matches found.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Location")
    table.add_column("Title")
    table.add_column("Category")
    table.add_column("Snippet")

    for result in results:
        snippet = result.snippet.replace("\n", " ")
        table.add_row(
            escape(result.location), escape(result.title), result.category.value, escape(snippet)
        )

    console.print(table)


@app.command()
def stats(
    index: Path = typer.Option(None, "--index", "-i", help="Search index artifact path"),
) -> None:
    """Show entry counts per category."""
    search_index = _load_index(index)

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Category")
    table.add_column("Entries", justify="right")
    for category, count in search_index.categories().items():
        table.add_row(category.value, str(count))

    console.print(table)
    console.print(f"Total: {len(search_index)} entries")
