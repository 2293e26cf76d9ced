"""
Small helpers shared by every component that talks HTTP through aiohttp.
"""

from typing import Any, Optional

import aiohttp


def build_headers(user_agent: str, referer: Optional[str] = None) -> dict[str, str]:
    """Builds the browser-like header set sent with every request."""
    headers = {"User-Agent": user_agent}
    if referer:
        headers["Referer"] = referer
    return headers


async def fetch_text(
    session: aiohttp.ClientSession,
    url: str,
    headers: dict[str, str],
    timeout: float,
) -> str:
    """GETs a URL and returns its body as text. HTTP errors are raised."""
    async with session.get(
        url, headers=headers, timeout=aiohttp.ClientTimeout(total=timeout)
    ) as r:
        r.raise_for_status()
        return await r.text()


async def fetch_json(
    session: aiohttp.ClientSession,
    url: str,
    headers: dict[str, str],
    timeout: float,
    params: Optional[dict[str, str]] = None,
) -> Any:
    """
    GETs a URL and decodes its body as JSON regardless of the advertised content
    type, since the provider often serves JSON as text/html.
    """
    async with session.get(
        url,
        headers=headers,
        params=params,
        timeout=aiohttp.ClientTimeout(total=timeout),
    ) as r:
        r.raise_for_status()
        return await r.json(content_type=None)
