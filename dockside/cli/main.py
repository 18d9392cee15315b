"""Command line entry point for dockside."""

import sys
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from ..core.config import load_config
from ..core.errors import DocksideError
from ..core.log import configure_logging, get_logger
from ..core.types import HarnessConfig
from ..runtime.docker import DockerRuntime

app = typer.Typer(
    name="dockside",
    help="Containerized servers for integration tests",
    no_args_is_help=True,
    rich_markup_mode="markdown",
)
console = Console()
logger = get_logger(__name__)


def _harness_config(ctx: typer.Context) -> HarnessConfig:
    ctx.ensure_object(dict)
    if "config" not in ctx.obj:
        ctx.obj["config"] = load_config(config_file=ctx.obj.get("config_file"))
    return ctx.obj["config"]


def _runtime(ctx: typer.Context) -> DockerRuntime:
    config = _harness_config(ctx)
    return DockerRuntime(config.runtime, config.timeouts)


@app.callback()
def main(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0, "--verbose", "-v", count=True, help="Increase verbosity level"
    ),
    config_file: Optional[Path] = typer.Option(
        None, "--config", "-c", help="Configuration file path"
    ),
) -> None:
    """Dockside: containerized servers for integration tests."""
    ctx.ensure_object(dict)
    ctx.obj["config_file"] = config_file
    level = "DEBUG" if verbose >= 2 else "INFO" if verbose == 1 else "WARNING"
    configure_logging(level=level, enable_console=True)


@app.command()
def version() -> None:
    """Show version information."""
    from .. import __version__
    import docker
    import pydantic

    table = Table(title="Dockside Version Information")
    table.add_column("Component", style="cyan")
    table.add_column("Version", style="green")
    table.add_row("dockside", __version__)
    table.add_row("docker SDK", docker.__version__)
    table.add_row("pydantic", pydantic.VERSION)
    console.print(table)


@app.command()
def config(ctx: typer.Context) -> None:
    """Show the effective configuration."""
    try:
        current = _harness_config(ctx)
    except DocksideError as e:
        console.print(f"[red]Error loading configuration: {e}[/red]")
        raise typer.Exit(1)

    table = Table(title="Dockside Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")
    table.add_row("Engine", current.runtime.base_url or "(environment)")
    table.add_row("Pull Policy", current.runtime.pull_policy.value)
    table.add_row("External Host", current.runtime.external_host)
    table.add_row("Network", current.runtime.network or "(default)")
    table.add_row("Concurrent Start", str(current.concurrent_start))
    table.add_row("Max Workers", str(current.max_workers))
    table.add_row("Readiness Base Interval", f"{current.readiness.base_interval}s")
    table.add_row("Readiness Multiplier", str(current.readiness.multiplier))
    table.add_row("Readiness Max Interval", f"{current.readiness.max_interval}s")
    table.add_row("Readiness Max Attempts", str(current.readiness.max_attempts))
    table.add_row("Container Stop Timeout", f"{current.timeouts.container_stop}s")
    table.add_row("Log Level", current.log_level)
    console.print(table)


@app.command()
def servers() -> None:
    """List the built-in server kinds."""
    from ..servers import BUILTIN_SERVERS

    table = Table(title="Built-in Servers")
    table.add_column("Server", style="cyan")
    table.add_column("Image", style="green")
    table.add_column("Port", justify="right")
    for server_cls in BUILTIN_SERVERS:
        config_cls = server_cls.config_type
        table.add_row(
            server_cls.__name__,
            f"{config_cls.IMAGE}:{config_cls.DEFAULT_VERSION}",
            str(config_cls.CONTAINER_PORT),
        )
    console.print(table)


@app.command()
def doctor(ctx: typer.Context) -> None:
    """Check that the container engine is reachable."""
    runtime = _runtime(ctx)
    if runtime.ping():
        console.print("[green]Docker engine is reachable[/green]")
        return
    console.print("[red]Docker engine is not reachable[/red]")
    raise typer.Exit(1)


@app.command()
def prune(
    ctx: typer.Context,
    run_id: Optional[str] = typer.Option(
        None, "--run-id", help="Only remove containers of this run"
    ),
) -> None:
    """Remove containers left behind by interrupted runs."""
    try:
        removed = _runtime(ctx).prune(run_id)
    except DocksideError as e:
        console.print(f"[red]Prune failed: {e}[/red]")
        raise typer.Exit(1)
    if not removed:
        console.print("No leftover containers")
        return
    for name in removed:
        console.print(f"Removed [cyan]{name}[/cyan]")


def cli_main() -> None:
    """Entry point for the CLI."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(130)
    except (DocksideError, OSError) as e:
        logger.error("Unexpected error: %s", e)
        console.print(f"[red]Unexpected error: {e}[/red]")
        sys.exit(1)


if __name__ == "__main__":
    cli_main()
