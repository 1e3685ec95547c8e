"""Console helpers shared by the tool CLIs."""

import functools
import sys
from typing import Any, Callable, Optional

import click
from rich.console import Console
from rich.table import Table

console = Console()
err_console = Console(stderr=True)


def info(message: str) -> None:
    """Print an informational line."""
    console.print(f"[cyan]ℹ[/cyan] {message}")


def success(message: str) -> None:
    """Print a success line."""
    console.print(f"[bold green]✓[/bold green] {message}")


def warning(message: str) -> None:
    """Print a warning line."""
    console.print(f"[bold yellow]⚠[/bold yellow] {message}")


def error(message: str) -> None:
    """Print an error line to stderr."""
    err_console.print(f"[bold red]✗[/bold red] {message}")


def create_table(title: Optional[str] = None) -> Table:
    """Create a rich table with the common style."""
    return Table(title=title, show_header=True, header_style="bold magenta")


def print_table(table: Table) -> None:
    """Print a rich table."""
    console.print(table)


def handle_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    """
    Turn uncaught exceptions of a CLI command into an error line and exit code.

    Click's own exceptions (usage errors, ``sys.exit``) pass through untouched.
    """

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return func(*args, **kwargs)
        except (click.ClickException, click.exceptions.Exit, click.exceptions.Abort, SystemExit):
            raise
        except KeyboardInterrupt:
            error("Interrupted")
            sys.exit(130)
        except Exception as e:
            error(f"Unexpected error: {e}")
            sys.exit(1)

    return wrapper
