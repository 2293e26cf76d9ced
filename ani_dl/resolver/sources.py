"""
Resolves the candidate sources of an episode into a single fetchable target.

Sources are tried in three tiers of decreasing reliability: encoded provider
sources, direct download URLs, then iframe embeds. Within a tier, candidates are
tried by descending priority. Tier order always outranks priority.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Sequence

import aiohttp

from ani_dl.exceptions import DecodeError, NoSourceFoundError
from ani_dl.models.config import AppConfig
from ani_dl.utils.http import build_headers, fetch_json

from .decoder import SourceIdDecoder, is_encoded

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class Source:
    """One candidate source as listed by the episode API."""

    source_url: str = ""
    source_name: str = ""
    priority: float = 0
    download_url: Optional[str] = None

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> "Source":
        downloads = raw.get("downloads") or {}
        download_url = raw.get("downloadUrl")
        if not download_url and isinstance(downloads, dict):
            download_url = downloads.get("downloadUrl")
        priority = raw.get("priority")
        return cls(
            source_url=str(raw.get("sourceUrl") or ""),
            source_name=str(raw.get("sourceName") or "unknown"),
            priority=priority if isinstance(priority, (int, float)) else 0,
            download_url=str(download_url) if download_url else None,
        )


@dataclass(frozen=True)
class ResolvedTarget:
    """The URL handed to the download stage, plus the headers it needs."""

    url: str
    referer: Optional[str] = None
    subtitle_url: Optional[str] = None

    @property
    def is_hls(self) -> bool:
        return "m3u8" in self.url


def parse_sources(api_response: Any) -> list[Source]:
    """
    Extracts Source records from a raw episode API response.

    Raises:
        NoSourceFoundError: If the response has no 'data.episode.sourceUrls' list.
    """
    try:
        raw_sources = api_response["data"]["episode"]["sourceUrls"]
    except (KeyError, TypeError) as e:
        raise NoSourceFoundError("No episode data in API response.") from e
    if not isinstance(raw_sources, list):
        raise NoSourceFoundError("Malformed 'sourceUrls' in API response.")
    return [Source.from_api(raw) for raw in raw_sources if isinstance(raw, dict)]


TierEvaluator = Callable[[Sequence[Source]], Awaitable[Optional[ResolvedTarget]]]


class SourceResolver:
    """Walks the source tiers in order and returns the first usable target."""

    def __init__(self, session: aiohttp.ClientSession, config: AppConfig):
        self.session = session
        self.config = config
        self.decoder = SourceIdDecoder(config.provider_base)
        self._tiers: tuple[tuple[str, TierEvaluator], ...] = (
            ("encoded", self._encoded_tier),
            ("download", self._download_tier),
            ("embed", self._embed_tier),
        )

    async def resolve(self, api_response: Any) -> ResolvedTarget:
        """Resolves a raw episode API response."""
        return await self.resolve_sources(parse_sources(api_response))

    async def resolve_sources(self, sources: Sequence[Source]) -> ResolvedTarget:
        """
        Resolves a list of candidate sources.

        Raises:
            NoSourceFoundError: If every tier is exhausted without a result.
        """
        if not sources:
            raise NoSourceFoundError("No sources in response (empty list).")

        log.debug(f"Resolving {len(sources)} candidate source(s)")
        ranked = sorted(sources, key=lambda s: s.priority, reverse=True)
        for name, tier in self._tiers:
            target = await tier(ranked)
            if target:
                log.debug(f"Resolved source via {name} tier: {target.url}")
                return target

        raise NoSourceFoundError("No usable source found in any tier.")

    async def _encoded_tier(self, sources: Sequence[Source]) -> Optional[ResolvedTarget]:
        for source in sources:
            if not is_encoded(source.source_url):
                continue
            log.info(
                f"[cyan]→ Found encoded source from {source.source_name} "
                f"(priority: {source.priority})[/cyan]"
            )
            try:
                target = await self._resolve_encoded(source)
            except DecodeError as e:
                log.warning(f"[yellow]→ Failed to decode {source.source_name}: {e}[/yellow]")
                continue
            except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
                log.warning(
                    f"[yellow]→ Failed to fetch links for {source.source_name}: "
                    f"{e!r}[/yellow]"
                )
                continue
            if target:
                return target
            log.warning(
                f"[yellow]→ No video links found for {source.source_name}[/yellow]"
            )
        return None

    async def _resolve_encoded(self, source: Source) -> Optional[ResolvedTarget]:
        url = self.decoder.to_url(source.source_url)
        log.debug(f"Decoded {source.source_name} to {url}")
        data = await fetch_json(
            self.session,
            url,
            build_headers(self.config.user_agent, self.config.referer),
            timeout=self.config.playlist_timeout,
        )
        links = data.get("links") if isinstance(data, dict) else None
        if not isinstance(links, list) or not links:
            return None
        first = links[0]
        link = first.get("link") if isinstance(first, dict) else None
        if not isinstance(link, str) or not link:
            return None
        return ResolvedTarget(
            url=link,
            referer=self.config.referer,
            subtitle_url=_english_subtitle(first),
        )

    async def _download_tier(self, sources: Sequence[Source]) -> Optional[ResolvedTarget]:
        for source in sources:
            if source.download_url:
                log.info(
                    f"[yellow]→ Using download URL from {source.source_name}[/yellow]"
                )
                return ResolvedTarget(url=source.download_url, referer=self.config.referer)
        return None

    async def _embed_tier(self, sources: Sequence[Source]) -> Optional[ResolvedTarget]:
        for source in sources:
            if source.source_url and not is_encoded(source.source_url):
                log.info(
                    f"[yellow]→ Using iframe embed from {source.source_name} "
                    "(may not work)[/yellow]"
                )
                url = source.source_url
                if url.startswith("//"):
                    url = f"https:{url}"
                return ResolvedTarget(url=url, referer=self.config.referer)
        return None


def _english_subtitle(link: dict[str, Any]) -> Optional[str]:
    subtitles = link.get("subtitles")
    if not isinstance(subtitles, list):
        return None
    for subtitle in subtitles:
        if isinstance(subtitle, dict) and subtitle.get("lang") == "en" and subtitle.get("src"):
            return subtitle["src"]
    return None
