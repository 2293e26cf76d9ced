"""
HLS Layer.

This package parses playlists, fetches segments under bounded concurrency and
reassembles them into one output file in playlist order.
"""

from pathlib import Path
from typing import Optional

import aiohttp

from ani_dl.models.config import AppConfig

from .assembler import SegmentAssembler
from .fetcher import SegmentBuffer, SegmentFetcher
from .orchestrator import DownloadState, HlsDownloadOrchestrator
from .playlist import (
    MasterPlaylist,
    MediaPlaylist,
    Segment,
    Variant,
    parse_playlist,
    select_best_variant,
)


async def download_hls(
    session: aiohttp.ClientSession,
    master_url: str,
    output_path: Path,
    referer: Optional[str] = None,
    config: Optional[AppConfig] = None,
) -> Path:
    """Downloads the best variant of an HLS stream into a single file."""
    orchestrator = HlsDownloadOrchestrator(session, config or AppConfig())
    return await orchestrator.download(master_url, output_path, referer)


__all__ = [
    "DownloadState",
    "HlsDownloadOrchestrator",
    "MasterPlaylist",
    "MediaPlaylist",
    "Segment",
    "SegmentAssembler",
    "SegmentBuffer",
    "SegmentFetcher",
    "Variant",
    "download_hls",
    "parse_playlist",
    "select_best_variant",
]
