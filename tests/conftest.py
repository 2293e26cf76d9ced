"""Shared test fixtures: local aiohttp servers standing in for the provider and CDN."""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass, field
from typing import Any, AsyncIterator

import aiohttp
import pytest
import pytest_asyncio
from aiohttp import web
from aiohttp.test_utils import TestServer

from ani_dl.models.config import AppConfig
from ani_dl.resolver.decoder import ENCODED_MARKER, SourceIdDecoder

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

_ENCODE_TABLE = {char: pair for pair, char in SourceIdDecoder.table.items()}


def encode_path(path: str) -> str:
    """Inverse of SourceIdDecoder.decode, for building encoded sources."""
    return ENCODED_MARKER + "".join(_ENCODE_TABLE[char] for char in path)


def segment_payload(index: int) -> bytes:
    """Distinguishable bytes for segment `index`, of varying length."""
    return f"<SEG {index:03d}>".encode() * (index % 3 + 1)


MASTER_PLAYLIST = """\
#EXTM3U
#EXT-X-VERSION:3
#EXT-X-STREAM-INF:BANDWIDTH=800000,RESOLUTION=854x480
low/index.m3u8
#EXT-X-STREAM-INF:BANDWIDTH=1200000,RESOLUTION=1280x720
high/index.m3u8
"""


def media_playlist(count: int) -> str:
    lines = ["#EXTM3U", "#EXT-X-VERSION:3", "#EXT-X-TARGETDURATION:10"]
    for i in range(count):
        lines.append("#EXTINF:10.0,")
        lines.append(f"seg{i}.ts")
    lines.append("#EXT-X-ENDLIST")
    return "\n".join(lines) + "\n"


# ---------------------------------------------------------------------------
# Stream server
# ---------------------------------------------------------------------------


@dataclass
class StreamState:
    """Knobs and observations for the fake CDN."""

    segment_count: int = 25
    fail_index: int | None = None
    in_flight: int = 0
    max_in_flight: int = 0
    segment_requests: list[str] = field(default_factory=list)
    completion_order: list[int] = field(default_factory=list)
    referers: set[str] = field(default_factory=set)
    user_agents: set[str] = field(default_factory=set)


def build_stream_app(state: StreamState) -> web.Application:
    async def master(request: web.Request) -> web.Response:
        return web.Response(text=MASTER_PLAYLIST, content_type="application/vnd.apple.mpegurl")

    async def media(request: web.Request) -> web.Response:
        return web.Response(
            text=media_playlist(state.segment_count),
            content_type="application/vnd.apple.mpegurl",
        )

    async def segment(request: web.Request) -> web.Response:
        index = int(request.match_info["index"])
        state.segment_requests.append(request.match_info["variant"])
        state.referers.add(request.headers.get("Referer", ""))
        state.user_agents.add(request.headers.get("User-Agent", ""))
        state.in_flight += 1
        state.max_in_flight = max(state.max_in_flight, state.in_flight)
        try:
            # Later segments of a batch finish first.
            await asyncio.sleep(0.002 * (10 - index % 10))
            if index == state.fail_index:
                raise web.HTTPNotFound()
            state.completion_order.append(index)
            return web.Response(body=segment_payload(index), content_type="video/mp2t")
        finally:
            state.in_flight -= 1

    async def html_page(request: web.Request) -> web.Response:
        return web.Response(text="<!DOCTYPE html><html></html>", content_type="text/html")

    app = web.Application()
    app.router.add_get("/master.m3u8", master)
    app.router.add_get("/{variant}/index.m3u8", media)
    app.router.add_get("/{variant}/seg{index:\\d+}.ts", segment)
    app.router.add_get("/page.html", html_page)
    return app


@pytest.fixture()
def stream_state() -> StreamState:
    return StreamState()


@pytest_asyncio.fixture()
async def stream_server(stream_state: StreamState) -> AsyncIterator[TestServer]:
    server = TestServer(build_stream_app(stream_state))
    await server.start_server()
    yield server
    await server.close()


@pytest_asyncio.fixture()
async def http_session() -> AsyncIterator[aiohttp.ClientSession]:
    async with aiohttp.ClientSession() as session:
        yield session


# ---------------------------------------------------------------------------
# Provider server (GraphQL API + video-link endpoint)
# ---------------------------------------------------------------------------


@dataclass
class ProviderState:
    """Episode sources served by the fake provider, keyed by episode string."""

    shows: list[dict[str, Any]] = field(
        default_factory=lambda: [
            {
                "_id": "show-1",
                "name": "Frieren",
                "availableEpisodes": {"sub": 3, "dub": 1},
            }
        ]
    )
    episodes: dict[str, list[str]] = field(
        default_factory=lambda: {"sub": ["2", "10", "1"], "dub": ["1"]}
    )
    sources: dict[str, list[dict[str, Any]]] = field(default_factory=dict)
    links: dict[str, Any] = field(default_factory=dict)
    queries: list[dict[str, str]] = field(default_factory=list)
    referers: list[str] = field(default_factory=list)


def build_provider_app(state: ProviderState) -> web.Application:
    async def api(request: web.Request) -> web.Response:
        state.queries.append(dict(request.query))
        state.referers.append(request.headers.get("Referer", ""))
        query = request.query.get("query", "")
        variables = json.loads(request.query.get("variables", "{}"))

        if "shows(" in query:
            data = {"shows": {"edges": state.shows}}
        elif "availableEpisodesDetail" in query:
            data = {"show": {"_id": variables["showId"], "availableEpisodesDetail": state.episodes}}
        elif "sourceUrls" in query:
            episode = variables["episodeString"]
            data = {
                "episode": {
                    "episodeString": episode,
                    "sourceUrls": state.sources.get(episode, []),
                }
            }
        else:
            return web.json_response({"errors": [{"message": "unknown query"}]}, status=400)
        # The provider serves JSON with a text/html content type.
        return web.json_response({"data": data}, content_type="text/html")

    async def clock(request: web.Request) -> web.Response:
        state.referers.append(request.headers.get("Referer", ""))
        key = request.query.get("id", "")
        if key not in state.links:
            raise web.HTTPInternalServerError()
        return web.json_response(state.links[key])

    app = web.Application()
    app.router.add_get("/api", api)
    app.router.add_get("/apivtwo/clock.json", clock)
    return app


@pytest.fixture()
def provider_state() -> ProviderState:
    return ProviderState()


@pytest_asyncio.fixture()
async def provider_server(provider_state: ProviderState) -> AsyncIterator[TestServer]:
    server = TestServer(build_provider_app(provider_state))
    await server.start_server()
    yield server
    await server.close()


@pytest.fixture()
def provider_config(provider_server: TestServer) -> AppConfig:
    base = str(provider_server.make_url("/")).rstrip("/")
    return AppConfig(
        api_url=f"{base}/api",
        provider_base=base,
        referer="https://allmanga.to",
        segment_timeout=5,
        playlist_timeout=5,
    )
