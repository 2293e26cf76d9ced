"""
Media Layer.

This package handles single-file downloads for direct (non-HLS) sources and
subtitles, plus the plausibility probe run before them.
"""

from .downloader import Downloader, close_connection_pool, get_connection_pool
from .integrity import probe_video_url

__all__ = [
    "Downloader",
    "close_connection_pool",
    "get_connection_pool",
    "probe_video_url",
]
