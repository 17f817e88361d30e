"""CLI commands for polyinit."""

import sys
from pathlib import Path

import typer
from loguru import logger
from pydantic import ValidationError
from rich.console import Console
from rich.table import Table

from polyinit import __logo__, __version__
from polyinit.daemon.status import Status

app = typer.Typer(
    name="polyinit",
    help=f"{__logo__} polyinit - run a program as a native service on any Linux init system",
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool):
    if value:
        console.print(f"{__logo__} polyinit v{__version__}")
        raise typer.Exit()


def _configure_logging(verbose: bool) -> None:
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if verbose else "WARNING")


@app.callback()
def main(
    ctx: typer.Context,
    config: Path = typer.Option(
        None, "--config", "-c", help="Service description (JSON); defaults to ./polyinit.json"
    ),
    env: list[str] = typer.Option(
        [], "--env", "-e", help="Environment variable (or PREFIX_*) to pass to the service"
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Verbose output"),
    version: bool = typer.Option(None, "--version", "-v", callback=version_callback, is_eager=True),
):
    """polyinit - run a program as a native service."""
    _configure_logging(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["env"] = env


# ============================================================================
# Service lifecycle
# ============================================================================


def _get_daemon_manager(ctx: typer.Context):
    """Create a DaemonManager from the configured service description."""
    from polyinit.config.loader import load_config
    from polyinit.daemon import DaemonManager

    config = load_config(ctx.obj["config"])
    return DaemonManager(config, env_passthrough=ctx.obj["env"])


def _manager_or_exit(ctx: typer.Context):
    try:
        return _get_daemon_manager(ctx)
    except (RuntimeError, OSError, ValidationError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


def _run_daemon_action(ctx: typer.Context, action: str, success_msg: str) -> None:
    """Run a daemon manager action with standard error handling."""
    dm = _manager_or_exit(ctx)
    try:
        getattr(dm, action)()
        console.print(f"[green]✓[/green] {success_msg.format(name=dm.config.name)}")
    except (RuntimeError, OSError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)


@app.command()
def install(ctx: typer.Context):
    """Install the program as a native background service."""
    dm = _manager_or_exit(ctx)
    try:
        service_file = dm.install()
    except (RuntimeError, OSError) as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    console.print(f"[green]✓[/green] Service installed ({dm.platform}): {service_file}")
    console.print("Start with: [cyan]polyinit start[/cyan]")


@app.command()
def uninstall(ctx: typer.Context):
    """Remove the service descriptor and its registration."""
    _run_daemon_action(ctx, "uninstall", "Service {name} uninstalled")


@app.command()
def start(ctx: typer.Context):
    """Start the service via the init system."""
    _run_daemon_action(ctx, "start", "Service {name} started")


@app.command()
def stop(ctx: typer.Context):
    """Stop the service via the init system."""
    _run_daemon_action(ctx, "stop", "Service {name} stopped")


@app.command()
def restart(ctx: typer.Context):
    """Restart the service."""
    _run_daemon_action(ctx, "restart", "Service {name} restarted")


_STATUS_STYLE = {
    Status.RUNNING: "[green]running[/green]",
    Status.STOPPED: "[yellow]stopped[/yellow]",
    Status.UNKNOWN: "[dim]unknown[/dim]",
}


@app.command()
def status(ctx: typer.Context):
    """Show service status."""
    dm = _manager_or_exit(ctx)
    info = dm.get_info()

    table = Table(title="Service Status")
    table.add_column("Property", style="cyan")
    table.add_column("Value")

    table.add_row("Service", info.name)
    table.add_row("Init system", info.platform)
    table.add_row("Installed", "[green]yes[/green]" if info.installed else "[red]no[/red]")
    table.add_row("Status", _STATUS_STYLE[info.status])
    table.add_row("Service file", str(info.service_file) if info.service_file else "-")
    if info.error:
        table.add_row("Error", f"[red]{info.error}[/red]")

    console.print(table)
    if info.error:
        raise typer.Exit(1)


@app.command()
def render(ctx: typer.Context):
    """Print the descriptor that install would write."""
    dm = _manager_or_exit(ctx)
    try:
        text = dm.render()
    except RuntimeError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    typer.echo(text, nl=False)


@app.command()
def detect():
    """Show which init systems are detected on this host."""
    from polyinit.daemon.errors import NoServiceSystemDetected
    from polyinit.daemon.registry import default_registry

    registry = default_registry()
    table = Table(title="Init Systems")
    table.add_column("Backend", style="cyan")
    table.add_column("Detected")

    for backend in registry.backends:
        found = backend.detect()
        table.add_row(backend.name, "[green]yes[/green]" if found else "[dim]no[/dim]")
    console.print(table)

    try:
        selected = registry.select()
    except NoServiceSystemDetected as e:
        console.print(f"[red]{e}[/red]")
        raise typer.Exit(1)
    console.print(f"Selected: [cyan]{selected.name}[/cyan]")
    console.print(f"Interactive: {'yes' if selected.interactive() else 'no'}")
