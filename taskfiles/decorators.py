"""Decorators for taskfiles CLI commands."""

import functools
import logging
from typing import Callable, Any
import typer
from rich.console import Console
from rich.markup import escape

from .errors import FilesError, NotFoundError

logger = logging.getLogger(__name__)
console = Console()


def handle_files_errors(func: Callable) -> Callable:
    """
    Decorator to handle common file serving errors in CLI commands.

    Centralizes error reporting for:
    - NotFoundError: Virtual path does not match an attachment
    - FilesError: Bad input, containment or I/O failures
    - FileNotFoundError / PermissionError: Host path problems
    - ValueError: Invalid arguments
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs) -> Any:
        try:
            return func(*args, **kwargs)
        except NotFoundError as e:
            console.print(f"[bold red]Error:[/bold red] {escape(e.message)}")
            console.print("[yellow]Tip: List attachments with 'taskfiles attachments'[/yellow]")
            raise typer.Exit(code=1)
        except FilesError as e:
            console.print(f"[bold red]Error:[/bold red] {escape(e.message)}")
            raise typer.Exit(code=1)
        except FileNotFoundError as e:
            console.print(f"[bold red]Error:[/bold red] File not found: {escape(str(e))}")
            raise typer.Exit(code=1)
        except PermissionError as e:
            console.print(f"[bold red]Error:[/bold red] Permission denied: {escape(str(e))}")
            raise typer.Exit(code=1)
        except ValueError as e:
            console.print(f"[bold red]Error:[/bold red] Invalid input: {escape(str(e))}")
            raise typer.Exit(code=1)
        except KeyboardInterrupt:
            console.print("\n[yellow]Operation cancelled by user[/yellow]")
            raise typer.Exit(code=130)

    return wrapper
