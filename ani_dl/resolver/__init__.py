"""
Source Resolution Layer.

This package turns the source list of an episode into one fetchable URL,
decoding the provider's obfuscated identifiers along the way.
"""

from typing import Any, Optional

import aiohttp

from ani_dl.models.config import AppConfig

from .decoder import SourceIdDecoder
from .sources import ResolvedTarget, Source, SourceResolver, parse_sources


async def resolve_source(
    session: aiohttp.ClientSession,
    api_response: Any,
    config: Optional[AppConfig] = None,
) -> ResolvedTarget:
    """Resolves a raw episode API response into a ResolvedTarget."""
    return await SourceResolver(session, config or AppConfig()).resolve(api_response)


__all__ = [
    "ResolvedTarget",
    "Source",
    "SourceIdDecoder",
    "SourceResolver",
    "parse_sources",
    "resolve_source",
]
