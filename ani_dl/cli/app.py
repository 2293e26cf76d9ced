"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import logging
import os
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler

from ani_dl import __version__
from ani_dl.api.client import AllAnimeClient
from ani_dl.core.download_manager import EpisodeDownloadManager
from ani_dl.exceptions import AniDlError
from ani_dl.hls import download_hls
from ani_dl.media import Downloader, close_connection_pool, get_connection_pool
from ani_dl.models.config import AppConfig
from ani_dl.storage.config_manager import ConfigManager
from ani_dl.utils.episodes import select_episodes
from ani_dl.utils.path import show_dirname

from .formatters import (
    format_error_with_suggestions,
    print_config,
    print_search_results,
    print_summary_panel,
)
from .progress_manager import ProgressManager

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
log = logging.getLogger("ani_dl")

app = typer.Typer(
    name="ani-dl",
    help="Search AllAnime and download episodes, fetching HLS streams natively.",
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)


def get_config_dir() -> Path:
    if os.name == "nt":
        base_dir = Path(os.getenv("APPDATA", "~\\AppData\\Roaming"))
    else:
        base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "ani-dl"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"


def _load_config(cli_options: dict | None = None) -> AppConfig:
    try:
        return ConfigManager(CONFIG_FILE).load_config(cli_options)
    except AniDlError as e:
        console.print(format_error_with_suggestions(e))
        raise typer.Exit(code=1) from e


def _mode(dub: bool) -> str | None:
    return "dub" if dub else None


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
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the effective configuration."
    ),
):
    """ani-dl anime downloader"""
    if version:
        console.print(f"[bold]ani-dl[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    log_level = "INFO"
    if verbose >= 2:
        log_level = "DEBUG"
    logging.getLogger("ani_dl").setLevel(log_level)

    if show_config:
        config = _load_config()
        print_config(CONFIG_FILE, config.model_dump(exclude={"config_path"}))
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


@app.command()
def init(
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing config without asking."
    ),
):
    """Write a configuration file with default settings."""
    if (
        CONFIG_FILE.exists()
        and not force
        and not typer.confirm("Configuration file already exists. Overwrite it?")
    ):
        raise typer.Abort()

    ConfigManager(CONFIG_FILE).save_new_config()
    console.print(f"[bold green]✓ Configuration saved to '{CONFIG_FILE}'[/bold green]")


@app.command()
def search(
    query: str = typer.Argument(..., help="Show title to search for."),
    dub: bool = typer.Option(False, "--dub", help="Search dubbed releases."),
):
    """Search for shows by title."""
    config = _load_config({"mode": "dub"} if dub else None)

    async def _search_async():
        client = AllAnimeClient(config)
        try:
            return await client.search_shows(query, config.mode)
        finally:
            await client.close()

    results = asyncio.run(_search_async())
    if not results:
        console.print("[red]✗ No results found![/red]")
        raise typer.Exit(code=1)
    print_search_results(results, config.mode)


@app.command(name="download")
def download_command(
    query: str = typer.Argument(..., help="Show title to search for."),
    episodes: str = typer.Option(
        "all",
        "-e",
        "--episodes",
        help="Episodes to download, e.g. '5', '1-10' or '1,3,7-9'.",
    ),
    dub: bool = typer.Option(False, "--dub", help="Download dubbed episodes."),
    download_dir: Path | None = typer.Option(
        None, "-d", "--download-dir", help="Base directory for downloads."
    ),
    pick: int | None = typer.Option(
        None, "--pick", "-p", help="Search result number to use without prompting."
    ),
):
    """Search a show and download a range of its episodes."""
    cli_options = {
        key: value
        for key, value in {
            "mode": _mode(dub),
            "download_dir": str(download_dir) if download_dir else None,
        }.items()
        if value is not None
    }
    config = _load_config(cli_options)

    async def _download_async():
        session = await get_connection_pool(config.batch_size)
        client = AllAnimeClient(config, session=session)
        try:
            console.print("[cyan]Searching for anime...[/cyan]")
            results = await client.search_shows(query, config.mode)
            if not results:
                console.print("[red]✗ No results found![/red]")
                raise typer.Exit(code=1)
            show = _choose_show(results, pick, config.mode)

            console.print("[cyan]Fetching episodes...[/cyan]")
            available = await client.fetch_episode_list(show["id"], config.mode)
            try:
                selected = select_episodes(episodes, available)
            except ValueError as e:
                console.print(f"[red]✗ {e}[/red]")
                raise typer.Exit(code=1) from e
            if not selected:
                console.print("[red]✗ No matching episodes found![/red]")
                raise typer.Exit(code=1)

            output_dir = Path(config.download_dir) / show_dirname(show["name"])
            async with ProgressManager(console) as progress_manager:
                manager = EpisodeDownloadManager(
                    config,
                    client,
                    session,
                    Downloader(session, config.user_agent),
                    progress_factory=lambda ep: progress_manager.callback_for(
                        f"Episode {ep}"
                    ),
                )
                return await manager.download_episodes(show["id"], selected, output_dir)
        except AniDlError as e:
            console.print(format_error_with_suggestions(e))
            raise typer.Exit(code=1) from e
        finally:
            await close_connection_pool()

    stats = asyncio.run(_download_async())
    print_summary_panel(stats)
    if stats.episodes_failed:
        raise typer.Exit(code=1)


def _choose_show(results: list[dict], pick: int | None, mode: str) -> dict:
    if pick is None and len(results) == 1:
        return results[0]
    if pick is None:
        print_search_results(results, mode)
        pick = typer.prompt("Select anime", type=int, default=1)
    if not 1 <= pick <= len(results):
        console.print(f"[red]✗ Selection must be between 1 and {len(results)}.[/red]")
        raise typer.Exit(code=1)
    return results[pick - 1]


@app.command(name="hls")
def hls_command(
    url: str = typer.Argument(..., help="Master (or media) playlist URL."),
    output: Path = typer.Argument(..., help="Output file path."),
    referer: str | None = typer.Option(
        None, "--referer", "-r", help="Referer header to send with every request."
    ),
):
    """Download an HLS stream into a single file."""
    config = _load_config()

    async def _hls_async():
        session = await get_connection_pool(config.batch_size)
        try:
            return await download_hls(session, url, output, referer, config)
        except AniDlError as e:
            console.print(format_error_with_suggestions(e, {"url": url}))
            raise typer.Exit(code=1) from e
        finally:
            await close_connection_pool()

    path = asyncio.run(_hls_async())
    console.print(f"[bold green]✓ Saved to '{path}'[/bold green]")
