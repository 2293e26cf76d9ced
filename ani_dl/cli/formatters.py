"""
Console rendering helpers: sizes, durations, tables and panels.
"""

from pathlib import Path
from typing import Any

from rich import box
from rich.console import Console, Group
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ani_dl.models.stats import DownloadStats


def format_size(bytes_size: float) -> str:
    """Renders a byte count with a binary unit, e.g. 2048 -> '2.0 KB'."""
    size = float(bytes_size)
    for unit in ("B", "KB", "MB", "GB"):
        if size < 1024:
            return f"{size:.1f} {unit}" if unit != "B" else f"{int(size)} B"
        size /= 1024
    return f"{size:.1f} TB"


def format_duration(seconds: float) -> str:
    """Formats a duration in seconds as e.g. '1h 02m 07s' or '42s'."""
    minutes, secs = divmod(int(seconds), 60)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}h {minutes:02d}m {secs:02d}s"
    if minutes:
        return f"{minutes}m {secs:02d}s"
    return f"{secs}s"


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Wraps an error, plus hints on what to try next, in a red panel."""
    name = type(error).__name__

    hints_by_error = {
        "NoSourceFoundError": [
            "• This episode may not be available in the selected mode.",
            "• Try the other mode with --dub / --sub.",
        ],
        "SegmentFetchError": [
            "• A stream segment could not be downloaded; no file was written.",
            "• The stream link may have expired. Run the download again.",
            "• Lower `batch_size` in the config if the server throttles requests.",
        ],
        "InvalidPlaylistError": [
            "• The stream URL did not return an HLS playlist.",
            "• The provider may have changed its player. Try another episode.",
        ],
        "ApiError": [
            "• The AllAnime API could not be reached or changed its schema.",
            "• Check `api_url` and `referer` with `ani-dl --show-config`.",
        ],
        "ConfigurationError": [
            "• Fix the reported value in the configuration file.",
            "• Run `ani-dl init --force` to write a fresh default config.",
        ],
        "ClientResponseError": [
            "• The connection to the provider failed.",
            "• The provider might be temporarily unavailable.",
        ],
        "TimeoutError": [
            "• A request timed out, which may indicate network throttling.",
            "• Increase `segment_timeout` in the config.",
        ],
    }

    hints = hints_by_error.get(name, ["• Re-run with -vv to see debug logs."])

    parts = [
        Text.assemble((f"{name}: ", "bold red"), str(error)),
        Text(""),
        Text("What to try", style="bold yellow"),
        Text("\n".join(hints)),
    ]
    if context:
        parts += [Text(""), Text(f"Context: {context}", style="dim")]

    return Panel(
        Group(*parts),
        title="[bold red]Error[/bold red]",
        border_style="red",
        expand=False,
    )


def print_config(config_path: Path, config_data: dict[str, Any]):
    """Displays the current configuration."""
    console = Console()
    content = "\n".join(f"{key} = {value}" for key, value in sorted(config_data.items()))
    console.print(
        Panel(
            content,
            title=f"Configuration ([dim]{config_path}[/dim])",
            border_style="cyan",
        )
    )


def print_search_results(results: list[dict[str, Any]], mode: str):
    """Displays show search results as a numbered table."""
    console = Console()
    table = Table(title=f"Search Results ({mode})", box=box.SIMPLE_HEAVY)
    table.add_column("#", style="dim", justify="right")
    table.add_column("Title", style="cyan")
    table.add_column("Episodes", justify="right", style="green")
    table.add_column("ID", style="dim")
    for i, show in enumerate(results, 1):
        table.add_row(str(i), show["name"], str(show["episodes"]), show["id"])
    console.print(table)


def print_summary_panel(stats: DownloadStats):
    """Prints per-session totals, listing each failed episode with its reason."""
    console = Console()

    rows = Table(show_header=False, box=None, padding=(0, 2))
    rows.add_column(style="bold cyan", justify="right", width=16)
    rows.add_column(style="white", justify="left")

    rows.add_row(
        "✓ Downloaded:", f"[bold green]{stats.episodes_downloaded}[/bold green]"
    )
    if stats.episodes_skipped:
        rows.add_row("○ Skipped:", f"[yellow]{stats.episodes_skipped}[/yellow]")
    if stats.episodes_failed:
        rows.add_row("✗ Failed:", f"[bold red]{stats.episodes_failed}[/bold red]")
        for episode, reason in stats.failures.items():
            rows.add_row("", f"[dim]Episode {escape(episode)}: {escape(reason)}[/dim]")

    rows.add_row("", "")
    elapsed = stats.elapsed_seconds
    rows.add_row("Size:", f"[cyan]{format_size(stats.total_size_downloaded)}[/cyan]")
    speed = stats.total_size_downloaded / elapsed if elapsed > 0 else 0
    rows.add_row("Speed:", f"[magenta]{format_size(speed)}/s[/magenta]")
    rows.add_row("Elapsed:", f"[blue]{format_duration(elapsed)}[/blue]")

    border = "red" if stats.episodes_failed else "green"
    console.print()
    console.print(
        Panel(
            rows,
            title="[bold]Session Summary[/bold]",
            border_style=border,
            box=box.DOUBLE,
            expand=False,
            padding=(1, 2),
        )
    )
    console.print()
