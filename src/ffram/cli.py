"""CLI entry point for ff-ramdisk using Typer."""

from __future__ import annotations

import asyncio
import json
import secrets
import signal
import sys
from importlib.resources import files
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.table import Table
from rich.text import Text

from ffram import __version__
from ffram.config import Configuration, ConfigurationError
from ffram.events import EventBus
from ffram.logger import configure_logging, generate_log_filename, get_latest_log_file, get_logs_directory
from ffram.models import ProfileNotFoundError, RunOutcome
from ffram.orchestrator import Orchestrator
from ffram.profiles import resolve_default_profile
from ffram.ui import TerminalUI
from ffram.volume import plan_staging

# Exit code for a run interrupted with Ctrl+C
EXIT_INTERRUPTED = 130

_LEVEL_STYLES = {
    "debug": "dim",
    "info": "green",
    "warning": "yellow",
    "error": "red",
    "critical": "bold red",
}
_ENTRY_KEYS = ("timestamp", "level", "logger", "event")
_RECENT_LOGS = 10

app = typer.Typer(
    name="ff-ramdisk",
    help="Run Firefox from a RAM disk copy of its profile and sync changes back on exit",
    no_args_is_help=True,
)

console = Console()

ConfigOption = Annotated[
    Path | None,
    typer.Option(
        "--config",
        "-c",
        help="Path to config file (default: ~/.config/ff-ramdisk/config.yaml)",
    ),
]


def _version_callback(value: bool) -> None:
    """Print version and exit if --version flag is provided."""
    if value:
        console.print(f"ff-ramdisk {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version_flag: Annotated[
        bool,
        typer.Option("--version", "-v", callback=_version_callback, is_eager=True, help="Show version and exit"),
    ] = False,
) -> None:
    """ff-ramdisk profile staging."""


def _load_config(config: Path | None) -> Configuration:
    """Load configuration, exiting with a message on errors.

    Without --config a missing default file means built-in defaults.
    """
    if config is None:
        config = Configuration.get_default_config_path()
        if not config.exists():
            return Configuration()

    try:
        return Configuration.from_yaml(config)
    except ConfigurationError as e:
        console.print("[bold red]Configuration error:[/bold red]")
        for error in e.errors:
            console.print(f"  {error.path}: {error.message}")
        sys.exit(1)


@app.command()
def run(config: ConfigOption = None) -> None:
    """Stage the default Firefox profile, run Firefox, and sync back on exit."""
    cfg = _load_config(config)
    exit_code = asyncio.run(_async_run(cfg))
    sys.exit(exit_code)


async def _async_run(cfg: Configuration) -> int:
    """Run the staging workflow with the terminal UI attached.

    A Ctrl+C cancels the run: running tools (and Firefox) are terminated
    and nothing is synced back.

    Returns:
        Exit code: 0=completed, 1=failed, 130=interrupted
    """
    # Logging is configured before any component binds a logger
    run_id = secrets.token_hex(4)
    log_file = get_logs_directory() / generate_log_filename(run_id)
    configure_logging(cfg.log_file_level, cfg.log_cli_level, log_file)

    event_bus = EventBus()
    orchestrator = Orchestrator(cfg, event_bus=event_bus, run_id=run_id)

    ui = TerminalUI(console=console)
    ui_task = asyncio.create_task(ui.consume_events(event_bus.subscribe()))
    ui.start()

    loop = asyncio.get_running_loop()
    main_task: asyncio.Task[RunOutcome] = asyncio.create_task(orchestrator.run())

    def sigint_handler() -> None:
        console.print("\n[yellow]Interrupt received, abandoning run...[/yellow]")
        main_task.cancel()

    loop.add_signal_handler(signal.SIGINT, sigint_handler)
    try:
        outcome = await main_task
        return 0 if outcome.success else 1
    except asyncio.CancelledError:
        console.print("[yellow]Run interrupted; profile changes on the RAM disk were not synced back[/yellow]")
        return EXIT_INTERRUPTED
    finally:
        loop.remove_signal_handler(signal.SIGINT)
        event_bus.close()
        await ui_task
        console.print(f"[dim]Log file: {log_file}[/dim]")


@app.command()
def plan(config: ConfigOption = None) -> None:
    """Show the staging plan without creating or copying anything."""
    cfg = _load_config(config)

    try:
        source_path, size_bytes = resolve_default_profile(cfg.firefox.profiles_root)
    except ProfileNotFoundError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        sys.exit(1)

    staging = plan_staging(source_path, size_bytes, cfg.ramdisk)

    table = Table(title="Staging plan", show_header=False)
    table.add_column(style="bold")
    table.add_column()
    table.add_row("Profile", str(staging.source_path))
    table.add_row("Profile size", f"{staging.source_size_bytes:,} bytes")
    table.add_row("Volume", staging.volume_name)
    table.add_row("Mount point", str(staging.mount_point))
    table.add_row("Mounted", "yes" if staging.mount_point.exists() else "no")
    table.add_row("Capacity", f"{staging.capacity_mb} MB ({staging.capacity_blocks:,} blocks)")
    table.add_row("Staged copy", str(staging.staged_path))
    table.add_row("Sync-back excludes", ", ".join(cfg.sync_back.excludes) or "(none)")
    console.print(table)


@app.command()
def init(
    force: Annotated[
        bool,
        typer.Option("--force", "-f", help="Overwrite existing configuration file"),
    ] = False,
) -> None:
    """Initialize default configuration file.

    Creates ~/.config/ff-ramdisk/config.yaml with default settings.
    Use --force to overwrite an existing configuration.
    """
    config_path = Configuration.get_default_config_path()

    if config_path.exists() and not force:
        console.print(f"[yellow]Configuration file already exists:[/yellow] {config_path}")
        console.print("Use --force to overwrite")
        raise typer.Exit(1)

    config_path.parent.mkdir(parents=True, exist_ok=True)
    default_config = files("ffram").joinpath("default-config.yaml").read_text()
    config_path.write_text(default_config)

    console.print(f"[green]Created configuration file:[/green] {config_path}")


def _format_entry(entry: dict[str, object]) -> Text:
    """Render one structlog JSON entry as a single console line."""
    timestamp = str(entry.get("timestamp", ""))
    # 2025-03-01T14:05:09.123456Z -> 14:05:09
    clock = timestamp.partition("T")[2].split(".")[0] or timestamp
    level = str(entry.get("level", "info"))

    text = Text()
    text.append(f"{clock} ", style="dim")
    text.append(f"{level.upper():<8}", style=_LEVEL_STYLES.get(level, "white"))
    text.append(f" {entry.get('logger', '')}", style="blue")
    text.append(f" {entry.get('event', '')}")

    extra = " ".join(f"{key}={value}" for key, value in entry.items() if key not in _ENTRY_KEYS)
    if extra:
        text.append(f" {extra}", style="dim")
    return text


def _display_log_file(log_file: Path) -> None:
    """Pretty-print a JSON-lines run log; unparsable lines are shown raw."""
    console.print(f"[bold]{log_file}[/bold]")

    try:
        lines = log_file.read_text(encoding="utf-8").splitlines()
    except OSError as e:
        console.print(f"[bold red]Cannot read log file:[/bold red] {e}")
        sys.exit(1)

    for number, line in enumerate(lines, start=1):
        if not line.strip():
            continue
        try:
            entry = json.loads(line)
        except json.JSONDecodeError:
            console.print(Text(f"{number}: {line}", style="dim"))
            continue
        console.print(_format_entry(entry))


@app.command()
def logs(
    last: Annotated[
        bool,
        typer.Option("--last", "-l", help="Show the most recent run log"),
    ] = False,
) -> None:
    """List run logs, or show the latest one with --last."""
    logs_dir = get_logs_directory()

    if last:
        latest = get_latest_log_file()
        if latest is None:
            console.print(f"[yellow]No log files found[/yellow] in {logs_dir}")
            sys.exit(1)
        _display_log_file(latest)
        return

    log_files = sorted(logs_dir.glob("run-*.log"), reverse=True) if logs_dir.exists() else []
    if not log_files:
        console.print(f"[yellow]No log files found[/yellow] in {logs_dir}")
        return

    table = Table(title=str(logs_dir))
    table.add_column("Log file")
    table.add_column("Size", justify="right")
    for log_file in log_files[:_RECENT_LOGS]:
        table.add_row(log_file.name, f"{log_file.stat().st_size:,} B")
    console.print(table)
    if len(log_files) > _RECENT_LOGS:
        console.print(f"[dim]{len(log_files) - _RECENT_LOGS} older log file(s) not shown[/dim]")


if __name__ == "__main__":
    app()
