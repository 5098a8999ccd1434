"""Command-line interface for template-driven schema sync and search.

Usage:
    template-sync sync
    template-sync diff
    template-sync watch
    template-sync search STATE=Delhi,Haryana CITY=Gurgaon
    template-sync distinct STATE
    template-sync --config /etc/app/template_sync.toml --profile prod sync

Commands:
    sync      - Run one synchronization cycle and report the outcome
    diff      - Show the pending change-set without applying it
    watch     - Synchronize on every template change until interrupted
    search    - Filter rows on allow-listed fields
    distinct  - List distinct values of one field
"""

import argparse
import asyncio
import logging
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path

from rich.console import Console
from rich.table import Table

from template_sync.config.loader import load_sync_config
from template_sync.config.models import SyncConfig
from template_sync.errors import TemplateSyncError
from template_sync.factory import ProfileNotFoundError, SyncService, build_service, get_adapter

console = Console()


# ============================================================================
# Helpers
# ============================================================================


def _parse_filters(items: list[str]) -> dict[str, list[str]]:
    """Parse ``FIELD=V1,V2`` arguments into a filter request.

    Repeated fields accumulate values.

    Raises:
        ValueError: If an item has no ``=``.
    """
    filters: dict[str, list[str]] = {}
    for item in items:
        name, sep, raw = item.partition("=")
        if not sep or not name:
            raise ValueError(f"Expected FIELD=VALUE[,VALUE...], got: {item!r}")
        filters.setdefault(name, []).extend(v for v in raw.split(",") if v)
    return filters


def _load_config(args: argparse.Namespace) -> SyncConfig:
    return load_sync_config(Path(args.config) if args.config else None)


async def _with_service(
    args: argparse.Namespace,
    action: Callable[[SyncService], Awaitable[int]],
) -> int:
    """Build the service for the selected profile, run *action*, clean up."""
    try:
        config = _load_config(args)
        client = get_adapter(config, args.profile)
    except (FileNotFoundError, ProfileNotFoundError, ValueError) as e:
        console.print(f"[red]Error:[/red] {e}")
        return 1

    service = build_service(config, client)
    try:
        return await action(service)
    except TemplateSyncError as e:
        console.print(f"[red]Error:[/red] {e}")
        return 1
    finally:
        await service.close()


# ============================================================================
# Async command implementations
# ============================================================================


async def _async_sync(service: SyncService) -> int:
    outcome = await service.synchronizer.start()
    if outcome.success:
        if outcome.table_created:
            console.print("Table created", style="green")
        console.print(outcome.applied.format_report())
        return 0

    console.print(f"[red]Sync failed[/red] ({outcome.error_type}): {outcome.error}")
    if not outcome.applied.is_empty:
        console.print("Partially applied before failure:")
        console.print(outcome.applied.format_report())
    return 1


async def _async_diff(service: SyncService) -> int:
    change_set = await service.synchronizer.preview()
    console.print(change_set.format_report())
    return 0


async def _async_watch(service: SyncService) -> int:
    outcome = await service.watcher.start()
    if outcome is not None and not outcome.success:
        console.print(f"[yellow]Initial sync failed:[/yellow] {outcome.error}")
    console.print("Watching for template changes (Ctrl+C to stop)...", style="dim")
    await service.watcher.wait()
    return 0


def _print_rows(rows: list[dict]) -> None:
    if not rows:
        console.print("No rows found", style="dim")
        return
    table = Table(show_header=True, header_style="bold")
    for column in rows[0]:
        table.add_column(column)
    for row in rows:
        table.add_row(*("" if v is None else str(v) for v in row.values()))
    console.print(table)
    console.print(f"{len(rows)} row(s)", style="dim")


# ============================================================================
# Command handlers
# ============================================================================


def cmd_sync(args: argparse.Namespace) -> int:
    """Run one synchronization cycle."""
    return asyncio.run(_with_service(args, _async_sync))


def cmd_diff(args: argparse.Namespace) -> int:
    """Show the pending change-set."""
    return asyncio.run(_with_service(args, _async_diff))


def cmd_watch(args: argparse.Namespace) -> int:
    """Watch the template and synchronize on change until interrupted."""
    try:
        return asyncio.run(_with_service(args, _async_watch))
    except KeyboardInterrupt:
        console.print("Stopped", style="dim")
        return 0


def cmd_search(args: argparse.Namespace) -> int:
    """Filter rows on allow-listed fields."""
    try:
        filters = _parse_filters(args.filters)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        return 1

    async def action(service: SyncService) -> int:
        _print_rows(await service.queries.search(filters))
        return 0

    return asyncio.run(_with_service(args, action))


def cmd_distinct(args: argparse.Namespace) -> int:
    """List distinct values of one field."""

    async def action(service: SyncService) -> int:
        for value in await service.queries.distinct_values(args.field):
            console.print(value)
        return 0

    return asyncio.run(_with_service(args, action))


# ============================================================================
# Main entry point
# ============================================================================


def main() -> int:
    """Main CLI entry point.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    parser = argparse.ArgumentParser(
        prog="template-sync",
        description="Keep a table in sync with a spreadsheet template and search it",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to template_sync.toml (default: ./template_sync.toml)",
    )
    parser.add_argument(
        "--profile",
        default=None,
        help="Database profile (default: TEMPLATE_SYNC_PROFILE or the only profile)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    p_sync = subparsers.add_parser("sync", help="Run one synchronization cycle")
    p_sync.set_defaults(func=cmd_sync)

    p_diff = subparsers.add_parser("diff", help="Show pending schema changes")
    p_diff.set_defaults(func=cmd_diff)

    p_watch = subparsers.add_parser("watch", help="Synchronize on every template change")
    p_watch.set_defaults(func=cmd_watch)

    p_search = subparsers.add_parser("search", help="Filter rows on allow-listed fields")
    p_search.add_argument(
        "filters",
        nargs="*",
        help="FIELD=VALUE[,VALUE...] (values OR-ed within a field, fields AND-ed)",
    )
    p_search.set_defaults(func=cmd_search)

    p_distinct = subparsers.add_parser("distinct", help="List distinct values of a field")
    p_distinct.add_argument("field", help="Field name")
    p_distinct.set_defaults(func=cmd_distinct)

    args = parser.parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
