"""Tests for batched segment fetching and the index-addressed buffer."""

from __future__ import annotations

import aiohttp
import pytest
from aiohttp.test_utils import TestServer

from ani_dl.exceptions import AssemblyError, SegmentFetchError
from ani_dl.hls.fetcher import SegmentBuffer, SegmentFetcher
from ani_dl.hls.playlist import MediaPlaylist, Segment
from tests.conftest import StreamState, segment_payload

USER_AGENT = "test-agent/1.0"


def _playlist(count: int) -> MediaPlaylist:
    return MediaPlaylist(
        segments=tuple(Segment(uri=f"seg{i}.ts", duration=10.0) for i in range(count))
    )


def _media_url(server: TestServer) -> str:
    return str(server.make_url("/high/index.m3u8"))


# ---------------------------------------------------------------------------
# SegmentBuffer
# ---------------------------------------------------------------------------


class TestSegmentBuffer:
    def test_iterates_in_index_order(self) -> None:
        buffer = SegmentBuffer(3)
        buffer.put(2, b"c")
        buffer.put(0, b"a")
        buffer.put(1, b"b")
        assert buffer.is_complete()
        assert list(buffer) == [b"a", b"b", b"c"]
        assert buffer.total_bytes == 3

    def test_double_write_rejected(self) -> None:
        buffer = SegmentBuffer(2)
        buffer.put(0, b"a")
        with pytest.raises(AssemblyError):
            buffer.put(0, b"again")

    def test_empty_slot_refused_on_iteration(self) -> None:
        buffer = SegmentBuffer(3)
        buffer.put(0, b"a")
        buffer.put(2, b"c")
        assert not buffer.is_complete()
        with pytest.raises(AssemblyError, match="1"):
            list(buffer)

    def test_len(self) -> None:
        assert len(SegmentBuffer(7)) == 7


# ---------------------------------------------------------------------------
# SegmentFetcher
# ---------------------------------------------------------------------------


class TestSegmentFetcher:
    @pytest.mark.asyncio
    async def test_fetches_all_segments_in_playlist_order(
        self,
        stream_server: TestServer,
        stream_state: StreamState,
        http_session: aiohttp.ClientSession,
    ) -> None:
        fetcher = SegmentFetcher(http_session, USER_AGENT, batch_size=10, timeout=5)
        buffer = await fetcher.fetch_all(_playlist(25), _media_url(stream_server))

        assert list(buffer) == [segment_payload(i) for i in range(25)]
        assert sorted(stream_state.completion_order) == list(range(25))
        # Completion order inside a batch is reversed by the server delays.
        assert stream_state.completion_order[:10] != list(range(10))

    @pytest.mark.asyncio
    async def test_reports_progress_per_batch(
        self, stream_server: TestServer, http_session: aiohttp.ClientSession
    ) -> None:
        calls: list[tuple[int, int]] = []
        fetcher = SegmentFetcher(http_session, USER_AGENT, batch_size=10, timeout=5)
        await fetcher.fetch_all(
            _playlist(25),
            _media_url(stream_server),
            on_batch=lambda done, total: calls.append((done, total)),
        )
        assert calls == [(0, 25), (10, 25), (20, 25), (25, 25)]

    @pytest.mark.asyncio
    async def test_concurrency_bounded_by_batch_size(
        self,
        stream_server: TestServer,
        stream_state: StreamState,
        http_session: aiohttp.ClientSession,
    ) -> None:
        fetcher = SegmentFetcher(http_session, USER_AGENT, batch_size=4, timeout=5)
        await fetcher.fetch_all(_playlist(25), _media_url(stream_server))
        assert 1 <= stream_state.max_in_flight <= 4

    @pytest.mark.asyncio
    async def test_sends_user_agent_and_referer(
        self,
        stream_server: TestServer,
        stream_state: StreamState,
        http_session: aiohttp.ClientSession,
    ) -> None:
        fetcher = SegmentFetcher(http_session, USER_AGENT, timeout=5)
        await fetcher.fetch_all(
            _playlist(3), _media_url(stream_server), referer="https://allmanga.to"
        )
        assert stream_state.user_agents == {USER_AGENT}
        assert stream_state.referers == {"https://allmanga.to"}

    @pytest.mark.asyncio
    async def test_failed_segment_aborts_after_batch_settles(
        self,
        stream_server: TestServer,
        stream_state: StreamState,
        http_session: aiohttp.ClientSession,
    ) -> None:
        stream_state.fail_index = 12
        calls: list[tuple[int, int]] = []
        fetcher = SegmentFetcher(http_session, USER_AGENT, batch_size=10, timeout=5)

        with pytest.raises(SegmentFetchError) as exc_info:
            await fetcher.fetch_all(
                _playlist(25),
                _media_url(stream_server),
                on_batch=lambda done, total: calls.append((done, total)),
            )

        assert exc_info.value.index == 12
        assert exc_info.value.url.endswith("/high/seg12.ts")
        # Only the first batch completed; the failing batch ran fully, the third never started.
        assert calls == [(0, 25), (10, 25)]
        assert len(stream_state.segment_requests) == 20
        assert set(stream_state.completion_order) == set(range(20)) - {12}

    @pytest.mark.asyncio
    async def test_lowest_failing_index_is_reported(
        self, stream_server: TestServer, http_session: aiohttp.ClientSession
    ) -> None:
        playlist = MediaPlaylist(
            segments=(
                Segment(uri="seg0.ts", duration=1.0),
                Segment(uri="missing-a.ts", duration=1.0),
                Segment(uri="missing-b.ts", duration=1.0),
            )
        )
        fetcher = SegmentFetcher(http_session, USER_AGENT, timeout=5)
        with pytest.raises(SegmentFetchError) as exc_info:
            await fetcher.fetch_all(playlist, _media_url(stream_server))
        assert exc_info.value.index == 1

    @pytest.mark.asyncio
    async def test_html_body_counts_as_failure(
        self, stream_server: TestServer, http_session: aiohttp.ClientSession
    ) -> None:
        playlist = MediaPlaylist(segments=(Segment(uri="/page.html", duration=1.0),))
        fetcher = SegmentFetcher(http_session, USER_AGENT, timeout=5)
        with pytest.raises(SegmentFetchError, match="HTML"):
            await fetcher.fetch_all(playlist, _media_url(stream_server))

    @pytest.mark.asyncio
    async def test_unreachable_host_wrapped(self, http_session: aiohttp.ClientSession) -> None:
        fetcher = SegmentFetcher(http_session, USER_AGENT, timeout=2)
        with pytest.raises(SegmentFetchError) as exc_info:
            await fetcher.fetch_all(_playlist(1), "http://127.0.0.1:9/index.m3u8")
        assert exc_info.value.index == 0
        assert isinstance(exc_info.value.__cause__, aiohttp.ClientError)
