"""X/Twitter profile scraping via the Apify tweet scraper actor."""

import logging
import re
from dataclasses import dataclass, field
from typing import Any

import httpx

logger = logging.getLogger(__name__)

APIFY_ACTOR = "apidojo~tweet-scraper"
APIFY_BASE = "https://api.apify.com/v2/acts"

# The sync run endpoint blocks up to 300s.
SCRAPE_TIMEOUT = 310.0

HANDLE_RE = re.compile(r"^\w{1,15}$")


class ScraperError(Exception):
    """Raised when the scrape provider fails or answers unexpectedly."""


@dataclass
class ScrapedTweet:
    text: str
    created_at: str = ""
    like_count: int = 0
    retweet_count: int = 0


@dataclass
class ScrapeResult:
    handle: str
    tweets: list[ScrapedTweet] = field(default_factory=list)

    @property
    def tweet_count(self) -> int:
        return len(self.tweets)


def _is_no_results(items: list[Any]) -> bool:
    if not items:
        return True
    return len(items) == 1 and isinstance(items[0], dict) and items[0].get("noResults") is True


class ApifyScraper:
    """Fetches a profile's latest tweets.

    Uses the synchronous run endpoint, which blocks until the actor finishes
    (up to 300s upstream). A profile with no data returns an empty result
    instead of raising, since retrying cannot help.
    """

    def __init__(
        self,
        api_token: str,
        http_client: httpx.AsyncClient | None = None,
        actor: str = APIFY_ACTOR,
        base_url: str = APIFY_BASE,
    ) -> None:
        if not api_token:
            raise ValueError("APIFY_API_TOKEN is required for profile scraping")
        self._token = api_token
        self._http = http_client or httpx.AsyncClient(timeout=SCRAPE_TIMEOUT)
        self._url = f"{base_url}/{actor}/run-sync-get-dataset-items"

    async def scrape(self, handle: str, max_items: int = 50) -> ScrapeResult:
        """Scrape the latest tweets of a handle.

        Raises:
            ValueError: If the handle is not a valid X/Twitter handle.
            ScraperError: On HTTP errors or a non-list response body.
        """
        clean = handle.lstrip("@").strip()
        if not HANDLE_RE.match(clean):
            raise ValueError(f'Invalid Twitter handle: "{handle}"')

        response = await self._http.post(
            self._url,
            params={"token": self._token},
            json={"twitterHandles": [clean], "maxItems": max_items, "sort": "Latest"},
            timeout=SCRAPE_TIMEOUT,
        )
        if response.status_code >= 400:
            raise ScraperError(
                f"Apify API error ({response.status_code}): {response.text[:200]}"
            )

        raw = response.json()
        if not isinstance(raw, list):
            logger.error(f"Apify returned non-list body: {str(raw)[:500]}")
            raise ScraperError(
                "Apify returned an unexpected response. Check your Apify plan and API token."
            )

        if _is_no_results(raw):
            logger.info(f"@{clean}: no results (profile may not exist or be private)")
            return ScrapeResult(handle=clean)

        tweets = [
            ScrapedTweet(
                text=str(item.get("text") or item.get("fullText") or ""),
                created_at=str(item.get("createdAt") or ""),
                like_count=int(item.get("likeCount") or item.get("favoriteCount") or 0),
                retweet_count=int(item.get("retweetCount") or 0),
            )
            for item in raw
            if isinstance(item, dict) and (item.get("text") or item.get("fullText"))
        ]
        logger.info(f"@{clean}: {len(raw)} items from Apify, {len(tweets)} with tweet text")
        return ScrapeResult(handle=clean, tweets=tweets)

    async def aclose(self) -> None:
        await self._http.aclose()
