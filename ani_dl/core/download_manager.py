"""
The orchestrator for downloading a batch of episodes of one show: resolves each
episode's sources and routes the result to the HLS pipeline or the single-file
downloader.
"""

import asyncio
import logging
from pathlib import Path
from typing import Callable, Optional

import aiohttp
from rich.markup import escape

from ani_dl.api.client import AllAnimeClient
from ani_dl.exceptions import AniDlError
from ani_dl.hls.fetcher import BatchCallback
from ani_dl.hls.orchestrator import HlsDownloadOrchestrator
from ani_dl.media import Downloader, probe_video_url
from ani_dl.models.config import AppConfig
from ani_dl.models.stats import DownloadStats
from ani_dl.resolver.sources import ResolvedTarget, SourceResolver
from ani_dl.utils.path import episode_filename

log = logging.getLogger(__name__)

# Builds a per-episode segment progress callback, given the episode string
ProgressFactory = Callable[[str], Optional[BatchCallback]]


class EpisodeDownloadManager:
    """
    Downloads episodes one at a time.

    A failure in one episode is recorded and the batch moves on to the next one;
    the caller decides from the stats whether the session succeeded.
    """

    def __init__(
        self,
        config: AppConfig,
        api_client: AllAnimeClient,
        session: aiohttp.ClientSession,
        downloader: Downloader,
        progress_factory: Optional[ProgressFactory] = None,
    ):
        self.config = config
        self.api_client = api_client
        self.session = session
        self.downloader = downloader
        self.resolver = SourceResolver(session, config)
        self.progress_factory = progress_factory
        self.stats = DownloadStats()

    async def download_episodes(
        self, show_id: str, episodes: list[str], output_dir: Path
    ) -> DownloadStats:
        """Downloads each episode into output_dir and returns the session stats."""
        if not episodes:
            log.info("No episodes selected. Nothing to do.")
            return self.stats

        for episode in episodes:
            log.info(f"[bold blue]Downloading episode {escape(episode)}...[/bold blue]")
            try:
                await self.download_episode(show_id, episode, output_dir)
            except (AniDlError, aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
                log.error(f"[red]✗ Episode {escape(episode)} failed: {escape(str(e))}[/red]")
                self.stats.record_failure(episode, str(e))
        return self.stats

    async def download_episode(self, show_id: str, episode: str, output_dir: Path) -> None:
        """Resolves and downloads a single episode."""
        output_path = Path(output_dir) / episode_filename(episode)
        if output_path.exists():
            log.info(f"[dim]Skipping '{output_path.name}': file already exists.[/dim]")
            self.stats.record_skip()
            return

        response = await self.api_client.fetch_episode_sources(
            show_id, episode, self.config.mode
        )
        target = await self.resolver.resolve(response)
        log.info(f"[green]→ Found video link: {target.url}[/green]")

        if target.is_hls:
            size = await self._download_hls(target, output_path, episode)
        else:
            size = await self._download_direct(target, output_path, episode)

        if size is None:
            return
        self.stats.record_success(size)

        if target.subtitle_url:
            await self.downloader.download_subtitle(
                target.subtitle_url, output_path.with_suffix(".vtt"), target.referer
            )

    async def _download_hls(
        self, target: ResolvedTarget, output_path: Path, episode: str
    ) -> int:
        on_batch = self.progress_factory(episode) if self.progress_factory else None
        orchestrator = HlsDownloadOrchestrator(self.session, self.config, on_batch)
        path = await orchestrator.download(target.url, output_path, target.referer)
        return path.stat().st_size

    async def _download_direct(
        self, target: ResolvedTarget, output_path: Path, episode: str
    ) -> Optional[int]:
        if not await probe_video_url(
            self.session,
            target.url,
            self.config.user_agent,
            target.referer,
            timeout=self.config.playlist_timeout,
        ):
            log.warning(
                f"[yellow]✗ Source for episode {escape(episode)} does not serve "
                "video content; skipping.[/yellow]"
            )
            self.stats.record_failure(episode, "source does not serve video content")
            return None

        return await self.downloader.download_file(
            target.url, output_path, referer=target.referer
        )
