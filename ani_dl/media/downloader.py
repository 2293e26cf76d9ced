"""
Handles single-file downloads over HTTP (direct video files and subtitles) and the
shared connection pool used by every network component.
"""

import asyncio
import logging
import os
from pathlib import Path
from typing import Callable, Optional

import aiofiles
import aiohttp

from ani_dl.models.config import DEFAULT_USER_AGENT
from ani_dl.utils.http import build_headers
from ani_dl.utils.path import create_dir

log = logging.getLogger(__name__)

_connection_pool: aiohttp.ClientSession | None = None
_pool_lock = asyncio.Lock()

PART_SUFFIX = ".part"


async def get_connection_pool(max_connections: int = 16) -> aiohttp.ClientSession:
    """
    Gets or creates a shared aiohttp ClientSession.

    This function ensures that only one connection pool is created for the
    lifetime of the application run.
    """
    global _connection_pool
    async with _pool_lock:
        if _connection_pool and not _connection_pool.closed:
            return _connection_pool

        connector = aiohttp.TCPConnector(
            limit=max_connections * 2,
            limit_per_host=max_connections,
            ttl_dns_cache=600,  # 10 minutes
            enable_cleanup_closed=True,
        )
        _connection_pool = aiohttp.ClientSession(connector=connector)
        log.debug(f"Created connection pool with limit_per_host={max_connections}")

    return _connection_pool


async def close_connection_pool() -> None:
    """Closes the shared global connection pool."""
    global _connection_pool
    async with _pool_lock:
        if _connection_pool and not _connection_pool.closed:
            await _connection_pool.close()
            _connection_pool = None
            log.debug("Shared connection pool closed.")


class Downloader:
    """A single-attempt streaming file downloader."""

    CHUNK_SIZE = 262144  # 256 KB

    def __init__(
        self,
        session: aiohttp.ClientSession,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: aiohttp.ClientTimeout | None = None,
    ):
        self.session = session
        self.user_agent = user_agent
        self.timeout = timeout or aiohttp.ClientTimeout(
            total=None, sock_connect=15, sock_read=90
        )

    async def download_file(
        self,
        url: str,
        destination_path: Path,
        referer: Optional[str] = None,
        on_progress: Optional[Callable[[int, int], None]] = None,
    ) -> int:
        """
        Streams a URL to destination_path.

        The body is written to a '.part' sibling and renamed into place once
        complete, so an interrupted download never leaves a file at
        destination_path.

        Args:
            on_progress: Called with (bytes_downloaded, total_bytes) after each
                chunk; total_bytes is 0 when the server sends no Content-Length.

        Returns:
            The number of bytes written.
        """
        destination_path = Path(destination_path)
        part_path = destination_path.with_name(destination_path.name + PART_SUFFIX)
        await asyncio.to_thread(create_dir, destination_path.parent)

        bytes_downloaded = 0
        try:
            async with self.session.get(
                url,
                headers=build_headers(self.user_agent, referer),
                timeout=self.timeout,
                allow_redirects=True,
            ) as response:
                response.raise_for_status()
                total = int(response.headers.get("Content-Length", 0))

                async with aiofiles.open(part_path, "wb") as f:
                    async for chunk in response.content.iter_chunked(self.CHUNK_SIZE):
                        await f.write(chunk)
                        bytes_downloaded += len(chunk)
                        if on_progress:
                            on_progress(bytes_downloaded, total)
            await asyncio.to_thread(os.replace, part_path, destination_path)
        except BaseException:
            await asyncio.to_thread(_remove_if_exists, part_path)
            raise

        log.debug(
            f"Downloaded {bytes_downloaded} bytes to "
            f"'{os.path.basename(destination_path)}'"
        )
        return bytes_downloaded

    async def download_subtitle(
        self, url: str, destination_path: Path, referer: Optional[str] = None
    ) -> bool:
        """
        Downloads a subtitle file. Failures are logged, not raised, since a missing
        subtitle should not cost the episode.
        """
        try:
            await self.download_file(url, destination_path, referer=referer)
            return True
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            log.warning(f"[yellow]Failed to download subtitle: {e}[/yellow]")
            return False


def _remove_if_exists(path: Path) -> None:
    if path.exists():
        path.unlink()
