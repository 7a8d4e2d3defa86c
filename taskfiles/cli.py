import asyncio
import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from .config import (
    add_attachment,
    get_config_path,
    load_config,
    remove_attachment,
    update_config,
)
from .decorators import handle_files_errors
from .errors import FilesError
from .files import Files
from .listing import printable

# Initialize Rich Console
console = Console()

# Configure logging to use Rich's RichHandler
logging.basicConfig(
    level=logging.INFO,  # Set to INFO by default, DEBUG if verbose
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True)]
)
logger = logging.getLogger(__name__)

app = typer.Typer()


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose mode"),
):
    """
    taskfiles - serve attached directories by virtual name.

    Browse, tail and download files of task sandboxes without exposing
    their real paths.
    """
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        console.print("[bold green]Verbose mode enabled.[/bold green]")


def parse_attachments(values: List[str]) -> Dict[str, str]:
    """Parse NAME=PATH pairs given on the command line."""
    attachments = {}
    for value in values:
        name, sep, host_path = value.partition("=")
        if not sep or not name or not host_path:
            raise ValueError(f"Expected NAME=PATH, got '{value}'")
        attachments[name] = host_path
    return attachments


def configured_files() -> Files:
    """Files service with the attachments from the config file."""
    config = load_config()
    files = Files(max_pages=config.read.max_pages)
    for name, host_path in config.attachments.items():
        try:
            files.attach(host_path, name)
        except (FilesError, ValueError) as e:
            logger.warning(f"Skipping attachment '{name}': {e}")
    return files


@app.command()
@handle_files_errors
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Host to bind to (defaults from config)"),
    port: Optional[int] = typer.Option(None, "--port", help="Port to bind to (defaults from config)"),
    attach: List[str] = typer.Option([], "--attach", "-a", help="Extra attachment as NAME=PATH (repeatable)"),
    reload: bool = typer.Option(False, "--reload", help="Enable auto-reload for development"),
):
    """
    Start the file server.

    Configuration:
        Defaults are loaded from ~/.config/taskfiles/config.json.
        Command-line options override config file values.

    Examples:
        # Serve configured attachments
        taskfiles serve

        # Serve a sandbox for one-time use
        taskfiles serve --attach sandbox=/var/task/7 --port 8080
    """
    config = load_config()
    extra = parse_attachments(attach)

    server_host = host if host is not None else config.server.host
    server_port = port if port is not None else config.server.port

    try:
        import uvicorn
    except ImportError:
        console.print("[red]Error: uvicorn is not installed[/red]")
        console.print("[yellow]Install with: pip install uvicorn[/yellow]")
        raise typer.Exit(code=1)

    from .server import create_app

    app_instance = create_app(config, extra)

    console.print("[blue]Starting taskfiles server...[/blue]")
    console.print(f"[green]Server running at http://{server_host}:{server_port}/files[/green]")
    console.print("[dim]Press Ctrl+C to stop[/dim]")

    try:
        uvicorn.run(
            app_instance,
            host=server_host,
            port=server_port,
            reload=reload,
            log_level=config.server.log_level,
        )
    except KeyboardInterrupt:
        console.print("\n[yellow]Server stopped[/yellow]")


@app.command(name="attach")
@handle_files_errors
def attach_command(
    name: str = typer.Argument(..., help="Virtual name, e.g. 'sandbox'"),
    host_path: Path = typer.Argument(..., help="Host file or directory to expose"),
):
    """Persist an attachment in the config file."""
    # Validate the path the same way the server will
    attachment = Files().attach(str(host_path), name)
    add_attachment(attachment.name, attachment.real_path)
    console.print(f"[green]✓ Attached {attachment.real_path} as '{attachment.name}'[/green]")


@app.command(name="detach")
@handle_files_errors
def detach_command(name: str = typer.Argument(..., help="Virtual name to remove")):
    """Remove a persisted attachment."""
    remove_attachment(name)
    console.print(f"[green]✓ Detached '{name}'[/green]")


@app.command()
def attachments():
    """Show configured attachments."""
    config = load_config()

    if not config.attachments:
        console.print("[yellow]No attachments configured[/yellow]")
        return

    table = Table(title="Attachments")
    table.add_column("Name", style="cyan")
    table.add_column("Host path", style="white")
    for name, host_path in sorted(config.attachments.items()):
        table.add_row(name, host_path)
    console.print(table)


@app.command()
@handle_files_errors
def ls(path: str = typer.Argument(..., help="Virtual directory path")):
    """List a virtual directory."""
    entries = configured_files().browse(path)

    table = Table(title=path)
    table.add_column("Mode", style="dim")
    table.add_column("Size", justify="right")
    table.add_column("Modified", style="dim")
    table.add_column("Path", style="cyan")
    for entry in entries:
        modified = datetime.fromtimestamp(entry.mtime).strftime("%Y-%m-%d %H:%M")
        shown = escape(printable(entry.path))
        name = f"[bold blue]{shown}/[/bold blue]" if entry.is_directory else shown
        table.add_row(entry.mode, str(entry.size), modified, name)
    console.print(table)


@app.command()
@handle_files_errors
def cat(
    path: str = typer.Argument(..., help="Virtual file path"),
    offset: int = typer.Option(0, "--offset", "-o", min=0, help="Byte offset to start at"),
    length: Optional[int] = typer.Option(None, "--length", "-n", min=0, help="Bytes to read (capped)"),
):
    """Print a bounded range of a virtual file."""
    result = asyncio.run(configured_files().read(path, offset, length))
    console.print(result.data.decode("utf-8", errors="replace"), end="", markup=False, highlight=False)
    logger.debug(f"Served {result.length} bytes at offset {result.offset}")


@app.command()
@handle_files_errors
def config(
    host: Optional[str] = typer.Option(None, "--host", help="Default server host"),
    port: Optional[int] = typer.Option(None, "--port", help="Default server port"),
    log_level: Optional[str] = typer.Option(None, "--log-level", help="uvicorn log level"),
    max_pages: Optional[int] = typer.Option(None, "--max-pages", help="Read cap in memory pages"),
    show: bool = typer.Option(False, "--show", help="Show current configuration"),
):
    """View or update the configuration."""
    if any(value is not None for value in (host, port, log_level, max_pages)):
        update_config(
            server_host=host,
            server_port=port,
            server_log_level=log_level,
            read_max_pages=max_pages,
        )
        console.print(f"[green]Configuration saved to {get_config_path()}[/green]")
        show = True

    if show:
        current = load_config()
        console.print(f"[bold]Config file:[/bold] {get_config_path()}")
        console.print(f"  server.host: {current.server.host}")
        console.print(f"  server.port: {current.server.port}")
        console.print(f"  server.log_level: {current.server.log_level}")
        console.print(f"  read.max_pages: {current.read.max_pages}")
        console.print(f"  attachments: {len(current.attachments)}")
    else:
        console.print("[dim]Use --show to view the configuration[/dim]")


if __name__ == "__main__":
    app()
