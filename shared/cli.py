"""Console helpers shared by the tool CLIs."""

import functools
import sys
from typing import Any, Callable, Optional

import click
from rich.console import Console
from rich.table import Table

console = Console()


def info(message: str) -> None:
    """Print an informational message."""
    console.print(f"[cyan]ℹ[/cyan] {message}")


def success(message: str) -> None:
    """Print a success message."""
    console.print(f"[green]✓[/green] {message}")


def warning(message: str) -> None:
    """Print a warning message."""
    console.print(f"[yellow]⚠[/yellow] {message}")


def error(message: str) -> None:
    """Print an error message."""
    console.print(f"[red]✗[/red] {message}")


def create_table(title: Optional[str] = None) -> Table:
    """
    Create a table with the common tool styling.

    Args:
        title: Optional table title

    Returns:
        Empty rich Table
    """
    return Table(title=title, show_header=True, header_style="bold magenta")


def print_table(table: Table) -> None:
    """Render a table to the console."""
    console.print(table)


def handle_errors(func: Callable) -> Callable:
    """
    Decorator for click commands: report unexpected errors and exit non-zero.

    click's own exits (sys.exit, click.exceptions) pass through untouched.
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except KeyboardInterrupt:
            error("Interrupted")
            sys.exit(130)
        except (click.exceptions.ClickException, click.exceptions.Abort, click.exceptions.Exit):
            raise
        except Exception as e:
            error(f"Error: {e}")
            sys.exit(1)

    return wrapper
