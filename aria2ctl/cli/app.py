"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

import typer
from rich.console import Console
from rich.logging import RichHandler

from aria2ctl import __version__
from aria2ctl.api.client import Aria2Client
from aria2ctl.core.supervisor import ProcessSupervisor
from aria2ctl.exceptions import Aria2CtlError, LocalContractViolation
from aria2ctl.models.queue import PositionOrigin
from aria2ctl.models.settings import ClientSettings
from aria2ctl.storage.config_manager import ConfigManager
from aria2ctl.utils.structured_logger import create_structured_logger

from .formatters import (
    format_error_with_suggestions,
    print_config,
    print_file_table,
    print_json_panel,
    print_name_list,
    print_peer_table,
    print_server_table,
    print_task_status,
    print_task_table,
    print_uri_table,
)

console = Console()

logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=True,
        )
    ],
)
log = logging.getLogger("aria2ctl")

app = typer.Typer(
    name="aria2ctl",
    help=(
        "Control an aria2 download daemon over JSON-RPC. Use 'aria2ctl"
        " <command> --help' for more info."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)


def get_config_dir() -> Path:
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "aria2ctl"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"

TASK_LISTS = ("active", "waiting", "stopped")


def _fail(error: Aria2CtlError) -> typer.Exit:
    console.print(format_error_with_suggestions(error))
    return typer.Exit(code=1)


def _settings(ctx: typer.Context) -> ClientSettings:
    """Loads the configuration once per invocation, with CLI overrides applied."""
    state = ctx.obj
    if state.get("settings") is None:
        try:
            state["settings"] = ConfigManager(state["config_file"]).load_config(
                state["overrides"]
            )
        except Aria2CtlError as e:
            raise _fail(e) from e
    return state["settings"]


def _run(ctx: typer.Context, operation: Callable[[Aria2Client], Awaitable[Any]]) -> Any:
    """Runs one client operation against the configured daemon."""
    settings = _settings(ctx)

    async def _run_async():
        async with Aria2Client.from_settings(
            settings, rpc_logger=ctx.obj["rpc_logger"]
        ) as client:
            return await operation(client)

    try:
        return asyncio.run(_run_async())
    except Aria2CtlError as e:
        raise _fail(e) from e


def _parse_options(pairs: Optional[list[str]]) -> Optional[dict[str, str]]:
    """Turns repeated ``key=value`` arguments into an options mapping."""
    if not pairs:
        return None
    options: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise _fail(
                LocalContractViolation(f"Option {pair!r} is not in key=value form.")
            )
        options[key.strip()] = value
    return options


def _done(message: str) -> None:
    console.print(f"[green]✓ {message}[/green]")


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-vv for debug).",
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    config_file: Path = typer.Option(
        CONFIG_FILE, "--config", help="Path to the configuration file."
    ),
    host: Optional[str] = typer.Option(None, "--host", help="RPC host."),
    port: Optional[int] = typer.Option(None, "--port", help="RPC port."),
    path: Optional[str] = typer.Option(None, "--path", help="RPC path."),
    secret: Optional[str] = typer.Option(
        None, "--secret", help="RPC secret token (aria2c --rpc-secret)."
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the current configuration."
    ),
    log_dir: Optional[Path] = typer.Option(
        None, "--log-dir", help="Also write JSON-lines RPC event logs here."
    ),
):
    """aria2 control client"""
    if version:
        console.print(f"[bold]aria2ctl[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    log_level = "WARNING"
    if verbose == 1:
        log_level = "INFO"
    elif verbose >= 2:
        log_level = "DEBUG"
    logging.getLogger("aria2ctl").setLevel(log_level)

    base_logger, rpc_logger, supervisor_logger = create_structured_logger(
        log_dir=log_dir, enable_json=log_dir is not None
    )
    ctx.call_on_close(base_logger.close)

    overrides = {
        key: value
        for key, value in {
            "host": host,
            "port": port,
            "path": path,
            "secret": secret,
        }.items()
        if value is not None
    }
    log.debug(f"Using configuration file '{config_file}'.")
    ctx.obj = {
        "config_file": config_file,
        "overrides": overrides,
        "settings": None,
        "rpc_logger": rpc_logger,
        "supervisor_logger": supervisor_logger,
    }

    if show_config:
        settings = _settings(ctx)
        print_config(config_file, settings.model_dump())
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def init(
    ctx: typer.Context,
    executable: Optional[str] = typer.Option(
        None, "--executable", help="Path to aria2c, for the 'start' command."
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing configuration."
    ),
):
    """Write a configuration file from the global connection options."""
    config_file: Path = ctx.obj["config_file"]
    if (
        config_file.exists()
        and not force
        and not typer.confirm("Configuration file already exists. Overwrite it?")
    ):
        raise typer.Abort()

    settings = dict(ctx.obj["overrides"])
    if executable:
        settings["executable"] = executable
    try:
        ConfigManager(config_file).save_new_config(settings)
    except Aria2CtlError as e:
        raise _fail(e) from e
    console.print(f"\n[bold green]✓ Configuration saved to '{config_file}'[/bold green]")


@app.command()
def add(
    ctx: typer.Context,
    uris: list[str] = typer.Argument(  # noqa: B008
        ..., help="URIs of one resource (mirrors), or a single magnet link."
    ),
    option: Optional[list[str]] = typer.Option(  # noqa: B008
        None, "--option", "-o", help="Daemon option as key=value. Repeatable."
    ),
    position: Optional[int] = typer.Option(
        None, "--position", "-p", help="Insert at this index of the waiting queue."
    ),
):
    """Add a download from URIs."""
    options = _parse_options(option)
    gid = _run(ctx, lambda client: client.add_uri(uris, options, position))
    console.print(gid)


@app.command(name="add-torrent")
def add_torrent(
    ctx: typer.Context,
    torrent: Path = typer.Argument(..., help="Path to a .torrent file."),
    option: Optional[list[str]] = typer.Option(  # noqa: B008
        None, "--option", "-o", help="Daemon option as key=value. Repeatable."
    ),
):
    """Add a BitTorrent download from a .torrent file."""
    options = _parse_options(option)
    gid = _run(ctx, lambda client: client.add_torrent(torrent, options))
    console.print(gid)


@app.command()
def remove(
    ctx: typer.Context,
    gid: str = typer.Argument(..., help="GID of the download."),
    force: bool = typer.Option(
        False, "--force", "-f", help="Remove immediately, skipping cleanup."
    ),
):
    """Remove a download."""
    if force:
        _run(ctx, lambda client: client.force_remove(gid))
    else:
        _run(ctx, lambda client: client.remove(gid))
    _done(f"Removed {gid}.")


@app.command()
def pause(
    ctx: typer.Context,
    gid: Optional[str] = typer.Argument(None, help="GID of the download."),
    all_tasks: bool = typer.Option(False, "--all", "-a", help="Pause every download."),
    force: bool = typer.Option(
        False, "--force", "-f", help="Pause without contacting peers or trackers."
    ),
):
    """Pause one download, or all of them."""
    if all_tasks:
        if force:
            _run(ctx, lambda client: client.force_pause_all())
        else:
            _run(ctx, lambda client: client.pause_all())
        _done("Paused all downloads.")
        return
    if gid is None:
        raise _fail(LocalContractViolation("Give a GID or --all."))
    if force:
        _run(ctx, lambda client: client.force_pause(gid))
    else:
        _run(ctx, lambda client: client.pause(gid))
    _done(f"Paused {gid}.")


@app.command()
def unpause(
    ctx: typer.Context,
    gid: Optional[str] = typer.Argument(None, help="GID of the download."),
    all_tasks: bool = typer.Option(
        False, "--all", "-a", help="Resume every paused download."
    ),
):
    """Resume one paused download, or all of them."""
    if all_tasks:
        _run(ctx, lambda client: client.unpause_all())
        _done("Resumed all downloads.")
        return
    if gid is None:
        raise _fail(LocalContractViolation("Give a GID or --all."))
    _run(ctx, lambda client: client.unpause(gid))
    _done(f"Resumed {gid}.")


@app.command()
def status(
    ctx: typer.Context,
    gid: str = typer.Argument(..., help="GID of the download."),
    key: Optional[list[str]] = typer.Option(  # noqa: B008
        None, "--key", "-k", help="Only fetch these fields. Repeatable."
    ),
):
    """Show the status of one download."""
    task = _run(ctx, lambda client: client.tell_status(gid, key))
    print_task_status(task)


@app.command(name="list")
def list_command(
    ctx: typer.Context,
    which: str = typer.Argument("active", help="One of: active, waiting, stopped."),
    offset: int = typer.Option(
        0, "--offset", help="Window start; negative counts from the back."
    ),
    num: int = typer.Option(1000, "--num", "-n", help="Maximum number of downloads."),
    key: Optional[list[str]] = typer.Option(  # noqa: B008
        None, "--key", "-k", help="Only fetch these fields. Repeatable."
    ),
):
    """List active, waiting or stopped downloads."""
    which = which.lower()
    if which not in TASK_LISTS:
        raise _fail(
            LocalContractViolation(
                f"Unknown list {which!r}. Use one of: {', '.join(TASK_LISTS)}."
            )
        )
    if which == "active":
        tasks = _run(ctx, lambda client: client.tell_active(key))
    elif which == "waiting":
        tasks = _run(ctx, lambda client: client.tell_waiting(offset, num, key))
    else:
        tasks = _run(ctx, lambda client: client.tell_stopped(offset, num, key))
    print_task_table(tasks, which.capitalize())


@app.command()
def move(
    ctx: typer.Context,
    gid: str = typer.Argument(..., help="GID of the download."),
    offset: int = typer.Argument(
        ..., help="Offset from the origin. Put '--' before negative values."
    ),
    origin: str = typer.Option(
        "current", "--from", help="Origin of the offset: begin, current or end."
    ),
):
    """Move a download within the waiting queue."""
    try:
        resolved_origin = PositionOrigin(origin.lower())
    except ValueError:
        raise _fail(
            LocalContractViolation(
                f"Unknown origin {origin!r}. Use one of: begin, current, end."
            )
        ) from None
    new_position = _run(
        ctx, lambda client: client.change_position(gid, offset, resolved_origin)
    )
    _done(f"{gid} is now at position {new_position}.")


@app.command()
def uris(ctx: typer.Context, gid: str = typer.Argument(..., help="GID.")):
    """List the URIs of a download."""
    print_uri_table(_run(ctx, lambda client: client.get_uris(gid)))


@app.command()
def files(ctx: typer.Context, gid: str = typer.Argument(..., help="GID.")):
    """List the files of a download."""
    print_file_table(_run(ctx, lambda client: client.get_files(gid)))


@app.command()
def peers(ctx: typer.Context, gid: str = typer.Argument(..., help="GID.")):
    """List the peers of a BitTorrent download."""
    print_peer_table(_run(ctx, lambda client: client.get_peers(gid)))


@app.command()
def servers(ctx: typer.Context, gid: str = typer.Argument(..., help="GID.")):
    """List the servers a download is connected to."""
    print_server_table(_run(ctx, lambda client: client.get_servers(gid)))


@app.command()
def purge(ctx: typer.Context):
    """Forget all completed, errored and removed downloads."""
    _run(ctx, lambda client: client.purge_download_result())
    _done("Purged download results.")


@app.command(name="remove-result")
def remove_result(ctx: typer.Context, gid: str = typer.Argument(..., help="GID.")):
    """Forget one completed, errored or removed download."""
    _run(ctx, lambda client: client.remove_download_result(gid))
    _done(f"Removed result of {gid}.")


@app.command(name="version")
def version_command(ctx: typer.Context):
    """Show the daemon's version and enabled features."""
    print_json_panel(_run(ctx, lambda client: client.get_version()), "aria2 version")


@app.command(name="session-info")
def session_info(ctx: typer.Context):
    """Show the daemon's session information."""
    print_json_panel(_run(ctx, lambda client: client.get_session_info()), "Session")


@app.command(name="save-session")
def save_session(ctx: typer.Context):
    """Ask the daemon to save its session file."""
    _run(ctx, lambda client: client.save_session())
    _done("Session saved.")


@app.command()
def shutdown(
    ctx: typer.Context,
    force: bool = typer.Option(
        False, "--force", "-f", help="Shut down without contacting peers or trackers."
    ),
):
    """Shut the daemon down."""
    if force:
        _run(ctx, lambda client: client.force_shutdown())
    else:
        _run(ctx, lambda client: client.shutdown())
    _done("Daemon is shutting down.")


@app.command()
def methods(ctx: typer.Context):
    """List the RPC methods the daemon offers."""
    print_name_list(_run(ctx, lambda client: client.list_methods()), "Methods")


@app.command()
def notifications(ctx: typer.Context):
    """List the RPC notifications the daemon can send."""
    print_name_list(
        _run(ctx, lambda client: client.list_notifications()), "Notifications"
    )


@app.command()
def start(
    ctx: typer.Context,
    executable: Optional[str] = typer.Option(
        None, "--executable", help="Path to aria2c (overrides the configuration)."
    ),
    arg: Optional[list[str]] = typer.Option(  # noqa: B008
        None, "--arg", help="Argument for aria2c. Repeatable."
    ),
    cwd: Optional[str] = typer.Option(None, "--cwd", help="Working directory."),
    show_window: bool = typer.Option(
        False, "--show-window", help="Leave the daemon's console window visible."
    ),
):
    """Start the daemon unless it is already running."""
    settings = _settings(ctx)
    supervisor = ProcessSupervisor(supervisor_logger=ctx.obj["supervisor_logger"])
    try:
        process = supervisor.ensure_running(
            executable=executable or settings.executable or None,
            args=arg or settings.arguments or None,
            working_directory=cwd or settings.working_directory or None,
            hide_window=settings.hide_window and not show_window,
        )
    except Aria2CtlError as e:
        raise _fail(e) from e

    if process is None:
        console.print("[yellow]aria2c is already running.[/yellow]")
    else:
        _done(f"Started aria2c (pid {process.pid}).")
