#!/usr/bin/env python3
"""
Entity merge operator CLI.

Thin wrapper around EntityMergeService backed by the SQL repository.

Usage:
    python -m entity_merge.main scan --type hotel
    python -m entity_merge.main merge SOURCE_ID TARGET_ID --strategy merge_content --actor alice
    python -m entity_merge.main undo REDIRECT_ID --actor alice
    python -m entity_merge.main resolve ENTITY_ID
"""

import sys
from pathlib import Path

import click
from loguru import logger
from rich.console import Console
from rich.table import Table

from entity_merge.errors import EntityMergeError
from entity_merge.types import EntityType, MergeStrategy
from entity_merge.utils.logging import setup_logging

console = Console()

CONFIDENCE_STYLES = {"high": "green", "medium": "yellow", "low": "red"}


def get_service():
    """Build the service lazily so --help works without a database."""
    from entity_merge.service import EntityMergeService
    from entity_merge.storage.sql import SqlEntityRepository

    return EntityMergeService(SqlEntityRepository())


def fail(error: Exception) -> None:
    console.print(f"[red]{error}[/red]")
    sys.exit(1)


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.option("--log-file", type=click.Path(path_type=Path), default=None,
              help="Also log to this file (merge audit goes to *.audit.log beside it)")
def cli(debug, log_file):
    """Entity duplicate detection & canonicalization"""
    if debug or log_file:
        setup_logging(level="DEBUG" if debug else None, log_file=log_file)


@cli.command()
@click.option("--type", "entity_type", type=click.Choice([t.value for t in EntityType]), default=None,
              help="Only scan one entity type")
@click.option("--limit", type=int, default=100, help="Maximum pairs to display")
def scan(entity_type, limit):
    """List probable duplicate pairs."""
    pairs = get_service().find_duplicates(entity_type)

    table = Table(title=f"Duplicate candidates ({len(pairs)})")
    table.add_column("Type")
    table.add_column("Entity A")
    table.add_column("Entity B")
    table.add_column("Match")
    table.add_column("Similarity", justify="right")
    table.add_column("Confidence")
    table.add_column("Action")

    for pair in pairs[:limit]:
        style = CONFIDENCE_STYLES[pair.confidence.value]
        table.add_row(
            pair.entity_type.value,
            f"{pair.entity_a.name} [dim]({pair.entity_a.id}, {pair.entity_a.status.value})[/dim]",
            f"{pair.entity_b.name} [dim]({pair.entity_b.id}, {pair.entity_b.status.value})[/dim]",
            pair.match_type.value,
            f"{pair.similarity:.0%}",
            f"[{style}]{pair.confidence.value}[/{style}]",
            pair.suggested_action.value,
        )

    console.print(table)


@cli.command()
def stats():
    """Show duplicate counts by type and confidence."""
    result = get_service().stats()

    table = Table(title="Duplicate Statistics")
    table.add_column("Group")
    table.add_column("Pairs", justify="right")
    for entity_type, count in result.by_type.items():
        table.add_row(entity_type, str(count))
    for confidence, count in result.by_confidence.items():
        table.add_row(f"confidence: {confidence}", str(count))
    table.add_row("[bold]total[/bold]", f"[bold]{result.total}[/bold]")

    console.print(table)
    if not result.feature_enabled:
        console.print("[yellow]Entity merge is disabled. Set ENABLE_ENTITY_MERGE=true to enable.[/yellow]")


@cli.command()
@click.argument("source_id")
@click.argument("target_id")
@click.option("--strategy", type=click.Choice([s.value for s in MergeStrategy]),
              default=MergeStrategy.KEEP_TARGET.value, show_default=True)
@click.option("--actor", required=True, help="Who is performing the merge")
def merge(source_id, target_id, strategy, actor):
    """Merge SOURCE_ID into TARGET_ID."""
    try:
        result = get_service().merge(source_id, target_id, strategy, actor)
    except EntityMergeError as e:
        logger.debug(f"merge failed: {e!r}")
        fail(e)

    console.print(
        f"[green]✓ Merged {source_id} into {target_id}[/green] "
        f"(redirect {result.redirect_id}, {len(result.blocks)} blocks on target)"
    )


@cli.command()
@click.argument("redirect_id")
@click.option("--actor", required=True, help="Who is undoing the merge")
def undo(redirect_id, actor):
    """Undo the merge that created REDIRECT_ID."""
    try:
        undone = get_service().undo(redirect_id, actor)
    except EntityMergeError as e:
        fail(e)

    if undone:
        console.print(f"[green]✓ Undid merge {redirect_id}[/green]")
    else:
        console.print(f"[yellow]Redirect {redirect_id} not found or already undone[/yellow]")


@cli.command()
@click.argument("entity_id")
@click.option("--max-depth", type=int, default=None, help="Maximum redirect hops to follow")
def resolve(entity_id, max_depth):
    """Print the canonical id for ENTITY_ID."""
    console.print(get_service().resolve(entity_id, max_depth))


@cli.command()
@click.option("--all", "include_inactive", is_flag=True, help="Include undone merges")
@click.option("--limit", type=int, default=50)
def history(include_inactive, limit):
    """Show recent merges."""
    redirects = get_service().history(include_inactive=include_inactive, limit=limit)

    table = Table(title="Merge History")
    table.add_column("Redirect")
    table.add_column("Type")
    table.add_column("From")
    table.add_column("To")
    table.add_column("Merged")
    table.add_column("By")
    table.add_column("Status")

    for redirect in redirects:
        status = "[green]active[/green]" if redirect.is_active else "[dim]inactive[/dim]"
        table.add_row(
            redirect.id,
            redirect.entity_type.value,
            f"{redirect.from_slug} ({redirect.from_id})",
            f"{redirect.to_slug} ({redirect.to_id})",
            redirect.merged_at.strftime("%Y-%m-%d %H:%M"),
            redirect.merged_by,
            status,
        )

    console.print(table)


if __name__ == "__main__":
    cli()
