"""CLI for the Backup Rotator."""

import asyncio
import json
import sys
from typing import Dict, List, Optional

import click
from rich.panel import Panel

from shared.cli import console, create_table, error, handle_errors, info, print_table, success, warning
from shared.logger import setup_logger

from .catalog import BackupSummary, DynamoDBCatalogClient
from .config import (
    ENV_MIN_COUNT,
    ENV_NAME_PREFIX,
    ENV_REGION,
    ENV_RETENTION,
    ENV_TABLES,
    RetentionConfig,
)
from .errors import InvalidConfiguration, PartialCycleFailure
from .policy import outdated_boundary
from .rotator import CycleReport, RotationOrchestrator, TableState, utc_now

STATE_STYLES = {
    TableState.DONE: "green",
    TableState.SKIPPED: "yellow",
    TableState.FAILED: "red",
}


def load_config(
    tables: Optional[str],
    retention_seconds: Optional[str],
    min_retained_count: Optional[str],
    region: Optional[str],
    prefix: Optional[str],
) -> RetentionConfig:
    """Build the config from option values, reusing the environment parser."""
    values = {
        ENV_TABLES: tables or "",
        ENV_RETENTION: retention_seconds or "",
        ENV_MIN_COUNT: min_retained_count or "",
        ENV_REGION: region or "",
        ENV_NAME_PREFIX: prefix or "",
    }
    return RetentionConfig.from_env(values)


def display_report(report: CycleReport) -> None:
    """
    Display per-table results of a rotation cycle.

    Args:
        report: Cycle report to display
    """
    table = create_table(title="Backup Rotation")
    table.add_column("Table", style="cyan")
    table.add_column("State")
    table.add_column("New Backup", style="dim")
    table.add_column("Outdated", justify="right")
    table.add_column("Recent", justify="right")
    table.add_column("Deleted", justify="right")
    table.add_column("Details")

    for result in report.results:
        style = STATE_STYLES.get(result.state, "white")
        details = result.reason
        if result.error is not None:
            failed_at = result.failed_at.value if result.failed_at else "unknown"
            details = f"[red]{result.error}[/red] (after {failed_at})"

        table.add_row(
            result.table_name,
            f"[{style}]{result.state.value}[/{style}]",
            result.created_backup.backup_name if result.created_backup else "-",
            str(result.outdated_count),
            str(result.recent_count),
            str(len(result.deleted)),
            details,
        )

    print_table(table)
    info(f"Duration: {report.duration_seconds:.2f}s")


def display_backups(table_name: str, backups: List[BackupSummary], boundary) -> None:
    """Display a table's backups, marking the ones past the boundary."""
    table = create_table(title=f"Backups of {table_name}")
    table.add_column("Created", style="cyan")
    table.add_column("Name")
    table.add_column("Status", style="magenta")
    table.add_column("Size", justify="right", style="green")
    table.add_column("Retention")

    for backup in sorted(backups, key=lambda b: b.creation_time, reverse=True):
        outdated = backup.creation_time < boundary
        table.add_row(
            backup.creation_time.isoformat(timespec="seconds"),
            backup.backup_name,
            backup.backup_status,
            _format_size(backup.size_bytes),
            "[red]outdated[/red]" if outdated else "[green]recent[/green]",
        )

    print_table(table)


def config_options(func):
    """Options shared by the commands, each bound to its environment variable."""
    options = [
        click.option(
            "--retention-seconds",
            envvar=ENV_RETENTION,
            help="Age in seconds after which a backup is outdated [default: 604800]",
        ),
        click.option(
            "--min-retained-count",
            envvar=ENV_MIN_COUNT,
            help="Recent backups required before outdated ones are deleted [default: 7]",
        ),
        click.option("--region", envvar=ENV_REGION, help="AWS region [default: ap-northeast-1]"),
        click.option("--prefix", envvar=ENV_NAME_PREFIX, help="Backup name prefix [default: Scheduled]"),
        click.option("--page-size", type=click.IntRange(min=1), help="ListBackups page size"),
        click.option("--verbose", "-v", is_flag=True, help="Verbose output"),
    ]
    for option in reversed(options):
        func = option(func)
    return func


@click.group()
def main() -> None:
    """Backup Rotator - Scheduled DynamoDB on-demand backups with retention."""
    pass


@main.command()
@click.option("--tables", envvar=ENV_TABLES, help="Comma-separated table names")
@config_options
@handle_errors
def run(
    tables: Optional[str],
    retention_seconds: Optional[str],
    min_retained_count: Optional[str],
    region: Optional[str],
    prefix: Optional[str],
    page_size: Optional[int],
    verbose: bool,
) -> None:
    """
    Back up every table and prune outdated backups.

    Examples:

        \b
        # Rotate two tables with the default 7 day retention
        backup-rotator run --tables users,orders

        \b
        # Keep 3 days, but never fewer than 10 recent backups
        backup-rotator run --tables users --retention-seconds 259200 --min-retained-count 10

        \b
        # Configuration from the environment
        TABLES=users,orders BACKUP_RETENTION=86400 backup-rotator run
    """
    log_level = "DEBUG" if verbose else "INFO"
    setup_logger(__name__, level=log_level)

    try:
        config = load_config(tables, retention_seconds, min_retained_count, region, prefix)
    except InvalidConfiguration as e:
        error(str(e))
        sys.exit(1)

    info(f"Rotating backups for: {', '.join(config.table_names)}")
    catalog = DynamoDBCatalogClient(region=config.region, page_size=page_size)
    report = asyncio.run(RotationOrchestrator(config, catalog).run_cycle())

    display_report(report)

    try:
        report.raise_for_failures()
    except PartialCycleFailure as e:
        error(str(e))
        if report.succeeded:
            warning(f"{len(report.succeeded)} other table(s) completed their rotation")
        sys.exit(1)

    success(f"Backup rotation completed, {report.deleted_total} outdated backup(s) deleted")


@main.command("list")
@click.argument("table_name")
@config_options
@click.option(
    "--output",
    "-o",
    type=click.Choice(["rich", "json"], case_sensitive=False),
    default="rich",
    show_default=True,
    help="Output format",
)
@handle_errors
def list_backups(
    table_name: str,
    retention_seconds: Optional[str],
    min_retained_count: Optional[str],
    region: Optional[str],
    prefix: Optional[str],
    page_size: Optional[int],
    verbose: bool,
    output: str,
) -> None:
    """
    List the backups of TABLE_NAME without changing anything.

    Examples:

        \b
        # Show which backups the next run would treat as outdated
        backup-rotator list users

        \b
        # JSON output
        backup-rotator list users --output json
    """
    log_level = "DEBUG" if verbose else "INFO"
    setup_logger(__name__, level=log_level)

    try:
        config = load_config(table_name, retention_seconds, min_retained_count, region, prefix)
    except InvalidConfiguration as e:
        error(str(e))
        sys.exit(1)

    catalog = DynamoDBCatalogClient(region=config.region, page_size=page_size)
    boundary = outdated_boundary(config.retention_seconds, utc_now())
    backups = asyncio.run(catalog.list_all_backups(table_name))

    outdated = [b for b in backups if b.creation_time < boundary]
    recent_count = len(backups) - len(outdated)

    if output == "json":
        data: Dict[str, object] = {
            "table": table_name,
            "boundary": boundary.isoformat(),
            "recent_count": recent_count,
            "outdated_count": len(outdated),
            "backups": [
                {
                    "arn": b.backup_arn,
                    "name": b.backup_name,
                    "created": b.creation_time.isoformat(),
                    "status": b.backup_status,
                    "size_bytes": b.size_bytes,
                    "outdated": b.creation_time < boundary,
                }
                for b in backups
            ],
        }
        click.echo(json.dumps(data, indent=2))
        return

    if not backups:
        console.print(
            Panel(
                f"[yellow]No backups found for {table_name}[/yellow]",
                title="[yellow]No Backups[/yellow]",
                border_style="yellow",
            )
        )
        return

    display_backups(table_name, backups, boundary)
    info(f"Boundary: {boundary.isoformat(timespec='seconds')}")
    info(f"Recent: {recent_count}, outdated: {len(outdated)}, minimum kept: {config.min_retained_count}")


def _format_size(size_bytes: Optional[int]) -> str:
    """Format bytes to human-readable size."""
    if size_bytes is None:
        return "-"
    size = float(size_bytes)
    for unit in ["B", "KB", "MB", "GB", "TB"]:
        if size < 1024.0:
            return f"{size:.2f} {unit}"
        size /= 1024.0
    return f"{size:.2f} PB"


if __name__ == "__main__":
    main()
