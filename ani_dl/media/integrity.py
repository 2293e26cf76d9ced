"""
Checks whether a direct URL plausibly serves video content before downloading it.
"""

import asyncio
import logging
from typing import Optional

import aiohttp

from ani_dl.utils.http import build_headers

log = logging.getLogger(__name__)

_VIDEO_CONTENT_TYPES = (
    "video/",
    "application/octet-stream",
    "binary/octet-stream",
    "application/vnd.apple.mpegurl",
    "application/x-mpegurl",
)
_LARGE_BODY_BYTES = 1_000_000


async def probe_video_url(
    session: aiohttp.ClientSession,
    url: str,
    user_agent: str,
    referer: Optional[str] = None,
    timeout: float = 10.0,
) -> bool:
    """
    Probes a URL with a HEAD request, falling back to a 1 KB ranged GET when the
    server rejects HEAD.

    Returns:
        True if the response looks like video (or an HLS playlist), False if it
        looks like an HTML page or cannot be reached.
    """
    headers = build_headers(user_agent, referer)
    client_timeout = aiohttp.ClientTimeout(total=timeout)
    try:
        async with session.head(
            url, headers=headers, timeout=client_timeout, allow_redirects=True
        ) as r:
            content_type = r.headers.get("Content-Type", "").lower()
            content_length = int(r.headers.get("Content-Length", 0) or 0)
            status = r.status

        if _looks_like_video(url, content_type, content_length):
            log.debug(f"Valid video content detected ({content_type}, {content_length} bytes)")
            return True

        if status >= 400:
            async with session.get(
                url,
                headers={**headers, "Range": "bytes=0-1023"},
                timeout=client_timeout,
            ) as r:
                content_type = r.headers.get("Content-Type", "").lower()
                head = (await r.content.read(1024)).lower()

            if content_type.startswith("video/") or "octet-stream" in content_type:
                log.debug(f"Valid video content detected via GET ({content_type})")
                return True
            if b"<!doctype html" in head or b"<html" in head:
                log.warning("[yellow]✗ URL returns HTML content instead of video[/yellow]")
                return False

        log.warning(
            f"[yellow]✗ Content type: {content_type or 'unknown'}, "
            f"Size: {content_length} bytes[/yellow]"
        )
        return False
    except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
        log.warning(f"[yellow]⚠ Could not validate URL: {e}[/yellow]")
        return False


def _looks_like_video(url: str, content_type: str, content_length: int) -> bool:
    if content_type.startswith(_VIDEO_CONTENT_TYPES):
        return True
    if content_type.startswith("text/plain") and "m3u8" in url:
        return True
    return content_length > _LARGE_BODY_BYTES
