"""Tests for the Apify scraper client."""

import json

import httpx
import pytest

from talkplanner.providers import ApifyScraper, ScraperError


def make_scraper(handler, requests=None) -> ApifyScraper:
    def record(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        return handler(request)

    http = httpx.AsyncClient(transport=httpx.MockTransport(record))
    return ApifyScraper("tok", http_client=http)


def test_requires_token():
    with pytest.raises(ValueError, match="APIFY_API_TOKEN"):
        ApifyScraper("")


@pytest.mark.asyncio
async def test_scrape_parses_tweets():
    requests = []
    items = [
        {"text": "Shipping a zk prover", "createdAt": "2025-06-01", "likeCount": 5},
        {"fullText": "MEV thoughts", "favoriteCount": 2, "retweetCount": 1},
        {"id": "no-text"},
    ]
    scraper = make_scraper(lambda r: httpx.Response(200, json=items), requests)

    result = await scraper.scrape("@alice", max_items=20)
    await scraper.aclose()

    assert result.handle == "alice"
    assert [t.text for t in result.tweets] == ["Shipping a zk prover", "MEV thoughts"]
    assert result.tweets[1].like_count == 2
    assert result.tweet_count == 2

    request = requests[0]
    assert request.url.path.endswith("/apidojo~tweet-scraper/run-sync-get-dataset-items")
    assert request.url.params["token"] == "tok"
    assert json.loads(request.content) == {
        "twitterHandles": ["alice"],
        "maxItems": 20,
        "sort": "Latest",
    }


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [[], [{"noResults": True}]])
async def test_no_results_is_empty(body):
    scraper = make_scraper(lambda r: httpx.Response(200, json=body))

    result = await scraper.scrape("ghost")
    await scraper.aclose()

    assert result.tweets == []


@pytest.mark.asyncio
async def test_http_error():
    scraper = make_scraper(lambda r: httpx.Response(402, text="Payment required"))

    with pytest.raises(ScraperError, match=r"\(402\): Payment required"):
        await scraper.scrape("alice")
    await scraper.aclose()


@pytest.mark.asyncio
async def test_non_list_body():
    scraper = make_scraper(lambda r: httpx.Response(200, json={"error": "quota"}))

    with pytest.raises(ScraperError, match="unexpected response"):
        await scraper.scrape("alice")
    await scraper.aclose()


@pytest.mark.asyncio
async def test_invalid_handle_makes_no_request():
    requests = []
    scraper = make_scraper(lambda r: httpx.Response(200, json=[]), requests)

    with pytest.raises(ValueError, match="Invalid Twitter handle"):
        await scraper.scrape("not a handle!")
    await scraper.aclose()

    assert requests == []
