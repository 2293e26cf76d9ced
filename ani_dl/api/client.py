"""
Async client for the AllAnime GraphQL API.
"""

import json
import logging
import time
from typing import Any, Dict, List, Optional

import aiohttp

from ani_dl.exceptions import ApiError
from ani_dl.models.config import AppConfig
from ani_dl.utils.http import build_headers

log = logging.getLogger(__name__)

SEARCH_GQL = (
    "query( $search: SearchInput $limit: Int $page: Int "
    "$translationType: VaildTranslationTypeEnumType "
    "$countryOrigin: VaildCountryOriginEnumType ) "
    "{ shows( search: $search limit: $limit page: $page "
    "translationType: $translationType countryOrigin: $countryOrigin ) "
    "{ edges { _id name availableEpisodes __typename } }}"
)

EPISODES_LIST_GQL = (
    "query ($showId: String!) { show( _id: $showId ) { _id availableEpisodesDetail }}"
)

EPISODE_EMBED_GQL = (
    "query ($showId: String!, $translationType: VaildTranslationTypeEnumType!, "
    "$episodeString: String!) { episode( showId: $showId "
    "translationType: $translationType episodeString: $episodeString ) "
    "{ episodeString sourceUrls }}"
)


class AllAnimeClient:
    """
    Async client for the AllAnime GraphQL endpoint.

    Queries are sent as GET requests with the JSON-encoded variables and the
    GraphQL document in the query string, which is what the provider expects.
    """

    def __init__(self, config: AppConfig, session: Optional[aiohttp.ClientSession] = None):
        """
        Args:
            config: Application configuration holding the API URL and headers.
            session: An existing session to share. If omitted, the client creates
                and owns one.
        """
        self.config = config
        self._session = session
        self._owns_session = session is None

    async def _initialize_session(self) -> aiohttp.ClientSession:
        """Ensures an active aiohttp session is available."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=60, connect=15, sock_read=30),
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Closes the session if this client created it."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()

    async def graphql(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        """
        Executes a GraphQL query and returns the decoded JSON response.

        Raises:
            ApiError: If the request fails or the body is not a JSON object.
        """
        session = await self._initialize_session()
        params = {
            "variables": json.dumps(variables, separators=(",", ":")),
            "query": query,
        }
        headers = build_headers(self.config.user_agent, self.config.referer)

        start_time = time.monotonic()
        try:
            async with session.get(
                self.config.api_url, params=params, headers=headers
            ) as r:
                duration_ms = (time.monotonic() - start_time) * 1000
                log.debug(f"API responded with {r.status} in {duration_ms:.0f}ms")
                r.raise_for_status()
                data = await r.json(content_type=None)
        except aiohttp.ClientResponseError as e:
            raise ApiError(f"API request failed with status {e.status}: {e.message}") from e
        except (aiohttp.ClientError, ValueError) as e:
            raise ApiError(f"API request failed: {e}") from e

        if not isinstance(data, dict):
            raise ApiError("API returned an unexpected response shape.")
        if data.get("errors"):
            log.debug(f"API reported errors: {data['errors']}")
        return data

    # Public API Methods
    async def search_shows(self, query: str, mode: str = "sub") -> List[Dict[str, Any]]:
        """
        Searches shows by title.

        Returns:
            A list of {'id', 'name', 'episodes'} dictionaries, where 'episodes' is
            the number of episodes available in the given mode.
        """
        variables = {
            "search": {"allowAdult": False, "allowUnknown": False, "query": query},
            "limit": 40,
            "page": 1,
            "translationType": mode,
            "countryOrigin": "ALL",
        }
        response = await self.graphql(SEARCH_GQL, variables)
        edges = ((response.get("data") or {}).get("shows") or {}).get("edges") or []
        return [
            {
                "id": show["_id"],
                "name": show.get("name", "Unknown"),
                "episodes": (show.get("availableEpisodes") or {}).get(mode, 0),
            }
            for show in edges
            if isinstance(show, dict) and show.get("_id")
        ]

    async def fetch_episode_list(self, show_id: str, mode: str = "sub") -> List[str]:
        """Returns the episode strings available in the given mode, sorted numerically."""
        response = await self.graphql(EPISODES_LIST_GQL, {"showId": show_id})
        detail = ((response.get("data") or {}).get("show") or {}).get(
            "availableEpisodesDetail"
        ) or {}
        episodes = [str(ep) for ep in detail.get(mode) or []]
        return sorted(episodes, key=_episode_sort_key)

    async def fetch_episode_sources(
        self, show_id: str, episode: str, mode: str = "sub"
    ) -> Dict[str, Any]:
        """Returns the raw episode response carrying 'data.episode.sourceUrls'."""
        variables = {
            "showId": show_id,
            "translationType": mode,
            "episodeString": episode,
        }
        response = await self.graphql(EPISODE_EMBED_GQL, variables)
        sources = ((response.get("data") or {}).get("episode") or {}).get("sourceUrls")
        log.info(
            f"[cyan]Found {len(sources or [])} source(s) for episode {episode}[/cyan]"
        )
        return response


def _episode_sort_key(episode: str) -> tuple[int, float, str]:
    try:
        return 0, float(episode), episode
    except ValueError:
        return 1, 0.0, episode
