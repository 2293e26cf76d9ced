"""
Drives a single HLS download from master playlist URL to output file.
"""

import logging
from enum import Enum
from pathlib import Path
from typing import Optional
from urllib.parse import urljoin

import aiohttp

from ani_dl.exceptions import InvalidPlaylistError
from ani_dl.models.config import AppConfig
from ani_dl.utils.http import build_headers, fetch_text

from .assembler import SegmentAssembler
from .fetcher import BatchCallback, SegmentFetcher
from .playlist import MasterPlaylist, MediaPlaylist, parse_playlist, select_best_variant

log = logging.getLogger(__name__)


class DownloadState(Enum):
    """States of an HLS download."""

    IDLE = "idle"
    FETCHING_MASTER = "fetching_master"
    SELECTING_VARIANT = "selecting_variant"
    FETCHING_MEDIA = "fetching_media"
    FETCHING_SEGMENTS = "fetching_segments"
    ASSEMBLING = "assembling"
    COMPLETE = "complete"
    FAILED = "failed"


class HlsDownloadOrchestrator:
    """
    Composes playlist parsing, variant selection, segment fetching and assembly.

    Any error moves the orchestrator to FAILED and is re-raised unchanged. There
    are no retries and no resumption from partial progress.
    """

    def __init__(
        self,
        session: aiohttp.ClientSession,
        config: AppConfig,
        on_batch: Optional[BatchCallback] = None,
    ):
        self.session = session
        self.config = config
        self.on_batch = on_batch
        self.fetcher = SegmentFetcher(
            session,
            user_agent=config.user_agent,
            batch_size=config.batch_size,
            timeout=config.segment_timeout,
        )
        self.assembler = SegmentAssembler()
        self._state = DownloadState.IDLE

    @property
    def state(self) -> DownloadState:
        return self._state

    def _transition(self, new_state: DownloadState) -> None:
        log.debug(f"HLS download: {self._state.value} -> {new_state.value}")
        self._state = new_state

    async def download(
        self, master_url: str, output_path: Path, referer: Optional[str] = None
    ) -> Path:
        """
        Downloads the best variant of the stream at master_url into output_path.

        Returns:
            The path of the written file.
        """
        try:
            return await self._run(master_url, Path(output_path), referer)
        except BaseException:
            self._transition(DownloadState.FAILED)
            raise

    async def _run(
        self, master_url: str, output_path: Path, referer: Optional[str]
    ) -> Path:
        log.info(f"[cyan]→ Downloading HLS stream: {master_url}[/cyan]")

        self._transition(DownloadState.FETCHING_MASTER)
        playlist = parse_playlist(await self._fetch_playlist(master_url, referer))

        self._transition(DownloadState.SELECTING_VARIANT)
        if isinstance(playlist, MasterPlaylist):
            variant = select_best_variant(playlist)
            log.info(
                f"[cyan]→ Selected stream: {variant.resolution} "
                f"({round(variant.bandwidth / 1000)}kbps)[/cyan]"
            )
            media_url = urljoin(master_url, variant.uri)

            self._transition(DownloadState.FETCHING_MEDIA)
            media = parse_playlist(await self._fetch_playlist(media_url, referer))
            if not isinstance(media, MediaPlaylist):
                raise InvalidPlaylistError(
                    f"Expected a media playlist at {media_url}, got another master playlist."
                )
        else:
            log.debug("URL already points at a media playlist; no variant to select.")
            media_url = master_url
            media = playlist
            self._transition(DownloadState.FETCHING_MEDIA)

        log.info(f"[cyan]→ Found {len(media)} segments to download[/cyan]")

        self._transition(DownloadState.FETCHING_SEGMENTS)
        buffer = await self.fetcher.fetch_all(
            media, media_url, referer=referer, on_batch=self.on_batch
        )

        self._transition(DownloadState.ASSEMBLING)
        log.info(f"[green]→ Combining {len(media)} segments...[/green]")
        await self.assembler.write(buffer, output_path)

        self._transition(DownloadState.COMPLETE)
        log.info(f"[green]✓ Successfully downloaded: {output_path.name}[/green]")
        return output_path

    async def _fetch_playlist(self, url: str, referer: Optional[str]) -> str:
        headers = build_headers(self.config.user_agent, referer)
        return await fetch_text(
            self.session, url, headers, timeout=self.config.playlist_timeout
        )
