#!/usr/bin/env python3
"""
Feedwire - RSS Ingestion Engine
===============================

Command line interface over the ingestion engine's operational surface.

Usage:
    python main.py --help                     # Show all commands
    python main.py check-config               # Validate configuration
    python main.py init-db                    # Initialize database
    python main.py list-feeds                 # Show configured feeds
    python main.py import-all                 # Run one batch now
    python main.py import-feed "KRQE News"    # Import a single registered feed
    python main.py import-url URL NAME        # One-off import of any feed URL
    python main.py counts                     # Stored drafts per feed
    python main.py clear-feed NAME            # Delete stored drafts of a feed
    python main.py run-scheduler              # Run the recurring importer
"""

import sys
import asyncio
import logging
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent))

from feedwire.config.settings import get_settings
from feedwire.database.schema import DatabaseSchema
from feedwire.database.connection import DatabaseConnection
from feedwire.processing.pipeline import BatchSummary
from feedwire.services.ingestion_service import create_ingestion_service
from feedwire.utils.logging import configure_application_logging
from feedwire.utils.exceptions import FeedwireError, AlreadyRunningError

console = Console()
logger = logging.getLogger(__name__)


@click.group(invoke_without_command=True)
@click.option('--debug', is_flag=True, help='Enable debug logging')
@click.pass_context
def cli(ctx, debug):
    """Feedwire - imports news feed entries as draft articles."""
    ctx.ensure_object(dict)
    ctx.obj['debug'] = debug

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())
        return

    try:
        settings = get_settings()
        configure_application_logging(
            log_level="DEBUG" if debug else settings.get_effective_log_level(),
            log_file=settings.logging.file_path,
            enable_console=settings.logging.console_logging,
            structured_logging=settings.logging.structured_logging,
            max_file_size_mb=settings.logging.max_file_size_mb,
            backup_count=settings.logging.backup_count,
        )
    except FeedwireError as e:
        console.print(f"[bold red]❌ Configuration error: {e}[/bold red]")
        sys.exit(1)


@cli.command()
def check_config():
    """Validate configuration and environment variables."""
    console.print("[bold blue]🔧 Checking Feedwire Configuration[/bold blue]")

    try:
        settings = get_settings(reload=True)
    except FeedwireError as e:
        console.print(f"[bold red]❌ Configuration error: {e}[/bold red]")
        sys.exit(1)

    table = Table(title="Configuration Status")
    table.add_column("Component", style="cyan")
    table.add_column("Details")

    table.add_row("Database", f"{settings.database.path} (pool {settings.database.pool_size})")
    table.add_row("Logging", f"{settings.get_effective_log_level()} -> {settings.logging.file_path or 'console only'}")
    table.add_row(
        "Ingestion",
        f"timeout {settings.ingestion.request_timeout}s, {settings.ingestion.parallel_feeds} parallel, "
        f"cache {settings.ingestion.cache_ttl_seconds}s",
    )
    table.add_row(
        "Scheduler",
        f"every {settings.scheduler.interval_minutes:g} min, auto start {settings.scheduler.auto_start}",
    )
    enabled = sum(1 for feed in settings.feeds if feed.enabled)
    table.add_row("Feeds", f"{len(settings.feeds)} configured, {enabled} enabled")

    console.print(table)
    console.print("[bold green]✅ All configuration checks passed![/bold green]")


@cli.command()
def init_db():
    """Initialize database with schema."""
    console.print("[bold blue]🗄️ Initializing Feedwire Database[/bold blue]")

    try:
        settings = get_settings()
        schema = DatabaseSchema(settings.database.path)
        schema.create_tables()

        if not schema.verify_schema():
            console.print("[bold red]❌ Database schema verification failed[/bold red]")
            sys.exit(1)

        db = DatabaseConnection(settings.database.path, pool_size=1)
        try:
            info = db.get_database_info()
        finally:
            db.close_all_connections()

        info_table = Table(title="Database Information")
        info_table.add_column("Property", style="cyan")
        info_table.add_column("Value", style="green")
        info_table.add_row("Database Path", settings.database.path)
        info_table.add_row("Size", f"{info['database_size_mb']:.2f} MB")
        info_table.add_row("Articles", str(info['table_counts']['articles']))

        console.print("[bold green]✅ Database initialized successfully![/bold green]")
        console.print(info_table)

    except Exception as e:
        console.print(f"[bold red]❌ Database initialization error: {e}[/bold red]")
        sys.exit(1)


@cli.command()
def list_feeds():
    """Show configured feeds."""
    settings = get_settings()

    table = Table(title="Configured Feeds")
    table.add_column("Name", style="cyan")
    table.add_column("URL")
    table.add_column("Enabled")
    table.add_column("Max Items", justify="right")
    table.add_column("Keywords")
    table.add_column("Category")

    for feed in settings.feeds:
        keywords = ", ".join(feed.keywords[:4]) + (" …" if len(feed.keywords) > 4 else "")
        table.add_row(
            feed.name,
            feed.url,
            "✅" if feed.enabled else "⏸️",
            str(feed.max_items),
            keywords or "(any)",
            feed.category,
        )

    console.print(table)


@cli.command()
def import_all():
    """Run one import batch across all enabled feeds."""
    console.print("[bold blue]📥 Importing all enabled feeds[/bold blue]")

    try:
        summary = asyncio.run(_with_service(lambda service: service.import_all()))
    except AlreadyRunningError as e:
        console.print(f"[yellow]⏳ {e.user_message}[/yellow]")
        sys.exit(2)

    _print_batch(summary)
    if not summary.success:
        sys.exit(1)


@cli.command()
@click.argument('name')
def import_feed(name):
    """Import a single registered feed by NAME."""
    try:
        result = asyncio.run(_with_service(lambda service: service.import_feed(name)))
    except FeedwireError as e:
        console.print(f"[bold red]❌ {e.user_message}[/bold red]")
        sys.exit(1)

    _print_results([result])


@cli.command()
@click.argument('url')
@click.argument('name')
@click.option('--max-items', type=click.IntRange(min=1), help='Import cap (default from configuration)')
def import_url(url, name, max_items):
    """One-off import of the feed at URL, stored under NAME."""
    result = asyncio.run(
        _with_service(lambda service: service.import_from_url(url, name, max_items=max_items))
    )
    _print_results([result])
    if not result.success:
        sys.exit(1)


@cli.command()
def counts():
    """Show stored draft counts per feed."""
    post_counts = asyncio.run(_with_service(_counts))

    table = Table(title="Stored Articles by Feed")
    table.add_column("Feed", style="cyan")
    table.add_column("Articles", justify="right", style="green")

    for feed_name, count in sorted(post_counts.items()):
        table.add_row(feed_name, str(count))

    console.print(table)


@cli.command()
@click.argument('name')
@click.option('--yes', is_flag=True, help='Do not ask for confirmation')
def clear_feed(name, yes):
    """Delete every stored article imported from feed NAME."""
    if not yes and not click.confirm(f"Delete all stored articles from '{name}'?"):
        console.print("[yellow]Clear cancelled[/yellow]")
        return

    try:
        deleted = asyncio.run(_with_service(lambda service: _clear(service, name)))
    except FeedwireError as e:
        console.print(f"[bold red]❌ {e.user_message}[/bold red]")
        sys.exit(1)

    console.print(f"[bold green]🧹 Deleted {deleted} articles from {name}[/bold green]")


@cli.command()
@click.option('--run-now', is_flag=True, help='Run a batch immediately before waiting for the timer')
def run_scheduler(run_now):
    """Run the recurring importer until interrupted."""
    asyncio.run(_run_scheduler(run_now))


async def _run_scheduler(run_now: bool) -> None:
    settings = get_settings()
    service = create_ingestion_service(settings)

    try:
        await service.start()
        console.print(
            f"[bold green]⏰ Scheduler running, importing every "
            f"{settings.scheduler.interval_minutes:g} minutes (Ctrl+C to stop)[/bold green]"
        )

        if run_now:
            _print_batch(await service.trigger_import())

        while service.is_scheduler_running():
            await asyncio.sleep(60)
            stats = service.get_stats()
            logger.debug(
                f"Scheduler alive: {stats.total_runs_executed} runs, "
                f"{stats.total_items_imported} items imported"
            )
    finally:
        await service.shutdown()


async def _with_service(action):
    service = create_ingestion_service()
    try:
        return await action(service)
    finally:
        await service.shutdown()


async def _counts(service):
    return service.get_feed_post_counts()


async def _clear(service, name):
    return service.clear_feed_posts(name)


def _print_results(results) -> None:
    table = Table(title="Feed Import Results")
    table.add_column("Feed", style="cyan")
    table.add_column("Status")
    table.add_column("Imported", justify="right", style="green")
    table.add_column("Skipped", justify="right")
    table.add_column("Time", justify="right")
    table.add_column("Errors")

    for result in results:
        table.add_row(
            result.feed_name,
            "✅" if result.success else "❌",
            str(result.imported),
            str(result.skipped),
            f"{result.duration_seconds:.1f}s",
            "; ".join(result.errors[:2]),
        )

    console.print(table)


def _print_batch(summary: BatchSummary) -> None:
    if summary.results:
        _print_results(summary.results)

    if summary.success:
        console.print(
            f"[bold green]✅ {summary.successful_feeds}/{summary.total_feeds} feeds, "
            f"{summary.total_imported} imported, {summary.total_skipped} skipped "
            f"in {summary.total_duration_seconds:.1f}s[/bold green]"
        )
    else:
        console.print(f"[bold red]❌ Batch failed: {summary.error}[/bold red]")


if __name__ == "__main__":
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]👋 Feedwire interrupted by user[/yellow]")
        sys.exit(130)
    except Exception as e:
        console.print(f"\n[bold red]❌ Unexpected error: {e}[/bold red]")
        sys.exit(1)
