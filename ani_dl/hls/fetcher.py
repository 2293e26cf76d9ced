"""
Fetches the segments of a media playlist in fixed-size concurrent batches into an
index-addressed buffer, so output order never depends on completion order.
"""

import asyncio
import logging
from typing import Callable, Iterator, Optional
from urllib.parse import urljoin

import aiohttp

from ani_dl.exceptions import AssemblyError, SegmentFetchError
from ani_dl.utils.http import build_headers

from .playlist import MediaPlaylist

log = logging.getLogger(__name__)

# Called after each batch with (segments_done, segments_total)
BatchCallback = Callable[[int, int], None]

_HTML_MARKERS = (b"<!doctype html", b"<html")


class SegmentBuffer:
    """
    A pre-sized, write-once slot per segment index.

    Each slot is written by exactly one fetch task, so no locking is needed.
    """

    def __init__(self, size: int):
        self._slots: list[Optional[bytes]] = [None] * size

    def __len__(self) -> int:
        return len(self._slots)

    def put(self, index: int, data: bytes) -> None:
        if self._slots[index] is not None:
            raise AssemblyError(f"Segment slot {index} was written twice.")
        self._slots[index] = data

    def is_complete(self) -> bool:
        return all(self._slots)

    @property
    def total_bytes(self) -> int:
        return sum(len(slot) for slot in self._slots if slot)

    def __iter__(self) -> Iterator[bytes]:
        """Yields slots in index order, refusing to skip an empty one."""
        for index, slot in enumerate(self._slots):
            if not slot:
                raise AssemblyError(f"Segment slot {index} is empty at assembly time.")
            yield slot


class SegmentFetcher:
    """Bounded-concurrency fetcher for the ordered segments of a media playlist."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        user_agent: str,
        batch_size: int = 10,
        timeout: float = 30.0,
    ):
        """
        Args:
            session: Shared aiohttp session used for every segment request.
            user_agent: Browser user agent sent with each request.
            batch_size: Number of segments fetched concurrently per batch.
            timeout: Total timeout in seconds for each individual segment request.
        """
        self.session = session
        self.user_agent = user_agent
        self.batch_size = batch_size
        self.timeout = timeout

    async def fetch_all(
        self,
        playlist: MediaPlaylist,
        base_url: str,
        referer: Optional[str] = None,
        on_batch: Optional[BatchCallback] = None,
    ) -> SegmentBuffer:
        """
        Downloads every segment of the playlist.

        on_batch is called with (0, total) before the first batch and again
        after each completed batch.

        Each batch runs to completion, successes and failures alike, before the
        next one starts. If any segment in the batch failed, the lowest failing
        index is raised once the whole batch has settled.

        Raises:
            SegmentFetchError: On the first failing segment.
        """
        total = len(playlist.segments)
        buffer = SegmentBuffer(total)
        headers = build_headers(self.user_agent, referer)
        if on_batch:
            on_batch(0, total)

        for start in range(0, total, self.batch_size):
            batch = playlist.segments[start : start + self.batch_size]
            end = start + len(batch)
            log.debug(f"Fetching segments {start + 1}-{end}/{total}")

            results = await asyncio.gather(
                *(
                    self._fetch_into(
                        buffer, start + offset, urljoin(base_url, seg.uri), headers
                    )
                    for offset, seg in enumerate(batch)
                ),
                return_exceptions=True,
            )

            for result in results:
                if isinstance(result, BaseException):
                    raise result

            if on_batch:
                on_batch(end, total)

        return buffer

    async def _fetch_into(
        self, buffer: SegmentBuffer, index: int, url: str, headers: dict[str, str]
    ) -> None:
        try:
            async with self.session.get(
                url, headers=headers, timeout=aiohttp.ClientTimeout(total=self.timeout)
            ) as r:
                r.raise_for_status()
                data = await r.read()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            log.debug(f"Segment {index} ({url}) failed: {e!r}")
            raise SegmentFetchError(index, url, str(e) or type(e).__name__) from e

        if not data:
            raise SegmentFetchError(index, url, "empty response body")
        if data[:64].lstrip().lower().startswith(_HTML_MARKERS):
            raise SegmentFetchError(index, url, "response is an HTML page, not media")

        buffer.put(index, data)
