"""
Functions for formatting and displaying data in the console using Rich.
"""

import json
from pathlib import Path
from typing import Any, Sequence

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from aria2ctl.models.task import (
    FileDescriptor,
    PeerDescriptor,
    ServerDescriptor,
    TaskDescriptor,
    TaskStatus,
    UriDescriptor,
)
from aria2ctl.utils.formatting import format_eta, format_size, format_speed

STATUS_COLORS = {
    TaskStatus.ACTIVE: "green",
    TaskStatus.WAITING: "cyan",
    TaskStatus.PAUSED: "yellow",
    TaskStatus.ERROR: "red",
    TaskStatus.COMPLETE: "blue",
    TaskStatus.REMOVED: "dim",
}


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "TransportFault": [
            "• Check that aria2c is running with --enable-rpc.",
            "• Verify --host, --port and --path match the daemon's RPC settings.",
            "• Run `aria2ctl start` to launch a local daemon.",
        ],
        "ProtocolFault": [
            "• The daemon rejected the request. Check the GID and arguments.",
            "• If the daemon uses --rpc-secret, pass it with --secret.",
        ],
        "LocalContractViolation": [
            "• Check the command's arguments with --help.",
        ],
        "ConfigurationError": [
            "• Inspect the configuration with `aria2ctl --show-config`.",
            "• Run `aria2ctl init --force` to write a fresh configuration.",
        ],
        "SupervisorError": [
            "• Check the executable path in the configuration.",
            "• Make sure aria2c is installed and executable.",
        ],
    }

    suggestions = suggestions_map.get(
        error_type, ["• Run the command with -vv for detailed logs."]
    )

    error_text = Text()
    error_text.append(f"{error_type}: ", style="bold red")
    error_text.append(error_msg)

    suggestion_text = Text("\n".join(suggestions))

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(suggestion_text)

    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def print_config(config_path: Path, config_data: dict[str, Any]):
    """Displays the current configuration, hiding sensitive data."""
    console = Console()
    content = ""
    for key, value in config_data.items():
        if key == "secret" and value:
            value = "[hidden]"
        elif isinstance(value, list):
            value = " ".join(value)
        content += f"{key} = {escape(str(value))}\n"

    console.print(
        Panel(
            content.strip(),
            title=f"Configuration ([dim]{config_path}[/dim])",
            border_style="cyan",
        )
    )


def _status_text(task: TaskDescriptor) -> Text:
    if task.status is None:
        return Text("?", style="dim")
    return Text(task.status.value, style=STATUS_COLORS[task.status])


def print_task_table(tasks: Sequence[TaskDescriptor], title: str):
    """Displays a list of downloads, one row per task, in the daemon's order."""
    console = Console()
    if not tasks:
        console.print(f"[dim]No {title.lower()} downloads.[/dim]")
        return

    table = Table(title=title, box=box.SIMPLE_HEAVY)
    table.add_column("GID", style="bold cyan", no_wrap=True)
    table.add_column("Status")
    table.add_column("Name", overflow="fold")
    table.add_column("Progress", justify="right")
    table.add_column("Size", justify="right")
    table.add_column("Speed", justify="right", style="green")
    table.add_column("ETA", justify="right", style="dim")

    for task in tasks:
        table.add_row(
            task.gid,
            _status_text(task),
            task.name,
            f"{task.progress:.1%}",
            format_size(task.total_length),
            format_speed(task.download_speed),
            format_eta(task),
        )
    console.print(table)


def print_task_status(task: TaskDescriptor):
    """Displays the details of one download."""
    console = Console()
    if task.is_unknown:
        console.print(
            f"[yellow]⚠️  Could not query {task.gid} ({task.lookup_error}); "
            "the daemon may not know this download.[/yellow]"
        )
        return

    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()

    table.add_row("GID:", task.gid)
    table.add_row("Status:", _status_text(task))
    table.add_row("Name:", task.name)
    table.add_row(
        "Progress:",
        f"{format_size(task.completed_length)} / {format_size(task.total_length)}"
        f" ({task.progress:.1%})",
    )
    table.add_row(
        "Speed:",
        f"↓ {format_speed(task.download_speed)}  ↑ {format_speed(task.upload_speed)}",
    )
    table.add_row("ETA:", format_eta(task))
    table.add_row("Connections:", str(task.connections))
    if task.dir:
        table.add_row("Directory:", f"[dim]{task.dir}[/dim]")
    if task.info_hash:
        table.add_row("Info Hash:", task.info_hash)
    if task.status == TaskStatus.ERROR:
        table.add_row(
            "Error:", f"[red]{task.error_message} (code {task.error_code})[/red]"
        )
    if task.followed_by:
        table.add_row("Followed By:", ", ".join(task.followed_by))

    console.print(Panel(table, title=f"Download {task.gid}", border_style="cyan"))


def print_uri_table(uris: Sequence[UriDescriptor]):
    console = Console()
    table = Table(box=box.SIMPLE)
    table.add_column("URI", overflow="fold")
    table.add_column("Status", style="cyan")
    for uri in uris:
        table.add_row(uri.uri, uri.status.value if uri.status else "")
    console.print(table)


def print_file_table(files: Sequence[FileDescriptor]):
    console = Console()
    table = Table(box=box.SIMPLE)
    table.add_column("#", style="dim", justify="right")
    table.add_column("Path", overflow="fold")
    table.add_column("Size", justify="right")
    table.add_column("Done", justify="right")
    table.add_column("Selected", justify="center")
    for f in files:
        done = f.completed_length / f.length if f.length else 0.0
        table.add_row(
            str(f.index),
            f.path or "[dim](not yet known)[/dim]",
            format_size(f.length),
            f"{done:.1%}",
            "✓" if f.selected else "✗",
        )
    console.print(table)


def print_peer_table(peers: Sequence[PeerDescriptor]):
    console = Console()
    if not peers:
        console.print("[dim]No connected peers.[/dim]")
        return
    table = Table(box=box.SIMPLE)
    table.add_column("Address", style="cyan")
    table.add_column("Down", justify="right", style="green")
    table.add_column("Up", justify="right")
    table.add_column("Seeder", justify="center")
    for peer in peers:
        table.add_row(
            f"{peer.ip}:{peer.port}",
            format_speed(peer.download_speed),
            format_speed(peer.upload_speed),
            "✓" if peer.seeder else "",
        )
    console.print(table)


def print_server_table(servers: Sequence[ServerDescriptor]):
    console = Console()
    if not servers:
        console.print("[dim]No connected servers.[/dim]")
        return
    table = Table(box=box.SIMPLE)
    table.add_column("File", style="dim", justify="right")
    table.add_column("URI", overflow="fold")
    table.add_column("Current URI", overflow="fold")
    table.add_column("Speed", justify="right", style="green")
    for entry in servers:
        for server in entry.servers:
            table.add_row(
                str(entry.index),
                server.uri,
                server.current_uri,
                format_speed(server.download_speed),
            )
    console.print(table)


def print_json_panel(data: Any, title: str):
    """Displays a result the client passes through without interpreting it."""
    console = Console()
    console.print(
        Panel(
            Text(json.dumps(data, indent=2, sort_keys=True)),
            title=title,
            border_style="cyan",
            expand=False,
        )
    )


def print_name_list(names: Sequence[str], title: str):
    console = Console()
    console.print(f"[bold]{title}[/bold] ([cyan]{len(names)}[/cyan])")
    for name in names:
        console.print(f"  {name}", markup=False, highlight=False)
