"""Conference tRPC API client with a read-through cache."""

from __future__ import annotations

import json
import logging
from typing import Any, Awaitable, Callable

import httpx

from .cache import CatalogCache
from .models import Day, Location, Talk

logger = logging.getLogger(__name__)

BASE_URL = "https://ethcc.io/api/trpc"
CONFERENCE_ID = "ethcc"
EDITION_ID = "ethcc-8"
CACHE_TTL = 3600  # 1 hour


class ConferenceAPIError(Exception):
    """Raised when the conference API answers with an error."""


class ConferenceClient:
    """Reads talks, days and locations from the conference API.

    Every lookup goes through the cache first. Fresh responses are written
    back with the configured TTL.
    """

    def __init__(
        self,
        cache: CatalogCache,
        http_client: httpx.AsyncClient | None = None,
        base_url: str = BASE_URL,
        conference_id: str = CONFERENCE_ID,
        edition_id: str = EDITION_ID,
        ttl: float = CACHE_TTL,
    ) -> None:
        self.cache = cache
        self._http = http_client or httpx.AsyncClient(timeout=30.0)
        self.base_url = base_url.rstrip("/")
        self.conference_id = conference_id
        self.edition_id = edition_id
        self.ttl = ttl

    def _key(self, kind: str, *parts: str) -> str:
        return ":".join([kind, self.conference_id, self.edition_id, *parts])

    async def _query(self, router: str, procedure: str, input: dict[str, Any]) -> Any:
        """Run a tRPC query and unwrap result.data.json."""
        url = f"{self.base_url}/{router}.{procedure}"
        response = await self._http.get(
            url, params={"input": json.dumps({"json": input})}
        )
        if response.status_code >= 400:
            raise ConferenceAPIError(
                f"Conference API error: {response.status_code} "
                f"{response.reason_phrase} for {router}.{procedure}"
            )
        data = response.json()
        return data["result"]["data"]["json"]

    async def _cached(self, key: str, fetcher: Callable[[], Awaitable[Any]]) -> Any:
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        data = await fetcher()
        if data is not None:
            self.cache.put(key, data, self.ttl)
        return data

    def _edition(self, **extra: Any) -> dict[str, Any]:
        return {"conferenceId": self.conference_id, "editionId": self.edition_id, **extra}

    async def fetch_talks(self) -> list[Talk]:
        raw = await self._cached(
            self._key("talks"),
            lambda: self._query("talksRouter", "getTalks", self._edition()),
        )
        return [Talk.from_api(item) for item in raw or []]

    async def fetch_talk_by_slug(self, slug: str) -> Talk | None:
        """Look up one talk. Any upstream failure reads as not found."""

        async def fetch() -> Any:
            try:
                return await self._query(
                    "talksRouter", "getTalk", self._edition(slug=slug)
                )
            except (ConferenceAPIError, httpx.HTTPError, KeyError, ValueError) as e:
                logger.warning(f"Talk lookup failed for {slug!r}: {e}")
                return None

        raw = await self._cached(self._key("talk", slug), fetch)
        return Talk.from_api(raw) if raw else None

    async def fetch_days(self) -> list[Day]:
        raw = await self._cached(
            self._key("days"),
            lambda: self._query("talksRouter", "getDays", self._edition()),
        )
        return [Day.from_api(item) for item in raw or []]

    async def fetch_locations(self) -> list[Location]:
        raw = await self._cached(
            self._key("locations"),
            lambda: self._query("talksRouter", "getLocations", self._edition()),
        )
        return [Location.from_api(item) for item in raw or []]

    async def aclose(self) -> None:
        await self._http.aclose()
