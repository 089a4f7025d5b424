"""Tests for the profile analysis task."""

import json
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from talkplanner.providers.scraper import ScrapedTweet, ScraperError, ScrapeResult
from talkplanner.session import SessionConfig, SessionManager
from talkplanner.tasks import PROFILE_ANALYSIS, Profile, TaskEngine, TaskFailure
from talkplanner.tasks.profile import (
    FALLBACK_TOPICS,
    ProfileAnalysisTask,
    fallback_profile,
    parse_summary,
)

TWEETS = [
    ScrapedTweet(text="Shipping a new zk rollup prover today"),
    ScrapedTweet(text="MEV is a tax on every user"),
    ScrapedTweet(text="gm"),
]

SUMMARY = json.dumps({
    "interests": ["Zero-knowledge proofs", "MEV", "Rollups"],
    "summary": "Builds ZK infrastructure and cares about MEV.",
})


class Listener:
    def __init__(self) -> None:
        self.events = []
        self.outcomes = []

    async def on_progress(self, session_key, event):
        self.events.append(event)

    async def on_complete(self, session_key, outcome):
        self.outcomes.append(outcome)


@pytest.fixture
def sessions(tmp_path: Path) -> SessionManager:
    return SessionManager(SessionConfig(sessions_dir=tmp_path / "sessions"))


@pytest.fixture
def listener() -> Listener:
    return Listener()


@pytest.fixture
def scraper() -> AsyncMock:
    mock = AsyncMock()
    mock.scrape.return_value = ScrapeResult(handle="alice", tweets=list(TWEETS))
    return mock


@pytest.fixture
def llm() -> AsyncMock:
    mock = AsyncMock()
    mock.generate.return_value = SUMMARY
    return mock


@pytest.fixture
def engine(sessions, listener, scraper, llm, json_logger) -> TaskEngine:
    engine = TaskEngine(sessions, listener=listener, sleep=AsyncMock(), json_logger=json_logger)
    engine.register(ProfileAnalysisTask(scraper, llm))
    return engine


class TestParseSummary:
    def test_plain_json(self):
        topics, summary = parse_summary(SUMMARY)
        assert topics == ["Zero-knowledge proofs", "MEV", "Rollups"]
        assert summary.startswith("Builds ZK")

    def test_fenced_json(self):
        assert parse_summary(f"```json\n{SUMMARY}\n```") is not None

    def test_caps_topics(self):
        content = json.dumps({"interests": [f"t{i}" for i in range(15)], "summary": "s"})
        topics, _ = parse_summary(content)
        assert len(topics) == 10

    def test_malformed(self):
        assert parse_summary("Sure! Here are the interests: DeFi") is None
        assert parse_summary(json.dumps({"topics": []})) is None
        assert parse_summary("[1, 2]") is None


def test_fallback_profile():
    profile = fallback_profile("alice", 7)
    assert profile.topics == FALLBACK_TOPICS
    assert profile.best_effort is True
    assert profile.summary.startswith("Best-effort profile:")
    assert profile.items_analyzed == 7


@pytest.mark.asyncio
async def test_successful_analysis(engine, sessions, listener, llm):
    sessions.set_fact("s1", "pending_subject", "alice")

    outcome = await engine.start("s1", PROFILE_ANALYSIS, {"subject": "alice"}).wait()

    assert isinstance(outcome, Profile)
    assert outcome.topics == ["Zero-knowledge proofs", "MEV", "Rollups"]
    assert outcome.items_analyzed == 3
    assert sessions.get_fact("s1", "profile") == outcome.to_dict()

    # Short tweets are not sent to the model
    prompt = llm.generate.await_args.args[1]
    assert "MEV is a tax" in prompt
    assert "\ngm" not in prompt

    steps = [(e["step"], e["status"]) for e in listener.events]
    assert steps == [
        ("scrape", "running"),
        ("scrape", "complete"),
        ("analyze", "running"),
        ("analyze", "complete"),
        ("done", "complete"),
    ]
    assert listener.events[-1]["percent"] == 1.0
    assert listener.outcomes == [outcome]


@pytest.mark.asyncio
async def test_zero_items_fails_without_summarizing(engine, scraper, llm, listener):
    scraper.scrape.return_value = ScrapeResult(handle="vitalik")

    outcome = await engine.start("s1", PROFILE_ANALYSIS, {"subject": "vitalik"}).wait()

    assert isinstance(outcome, TaskFailure)
    assert outcome.subject_key == "vitalik"
    assert outcome.reason.startswith("No tweets found for @vitalik")
    llm.generate.assert_not_awaited()
    assert listener.events[-1]["status"] == "error"
    assert listener.outcomes == [outcome]


@pytest.mark.asyncio
async def test_only_short_tweets(engine, scraper, llm):
    scraper.scrape.return_value = ScrapeResult(
        handle="bob", tweets=[ScrapedTweet(text="gm"), ScrapedTweet(text="wagmi")]
    )

    outcome = await engine.start("s1", PROFILE_ANALYSIS, {"subject": "bob"}).wait()

    assert isinstance(outcome, TaskFailure)
    assert outcome.reason.startswith("No usable tweet content")
    llm.generate.assert_not_awaited()


@pytest.mark.asyncio
async def test_malformed_summary_falls_back(engine, llm, sessions):
    llm.generate.return_value = "I think they like crypto"
    sessions.set_fact("s1", "pending_subject", "alice")

    outcome = await engine.start("s1", PROFILE_ANALYSIS, {"subject": "alice"}).wait()

    assert isinstance(outcome, Profile)
    assert outcome.best_effort is True
    assert outcome.topics == FALLBACK_TOPICS


@pytest.mark.asyncio
async def test_scrape_retries_then_fails(engine, scraper, llm):
    scraper.scrape.side_effect = ScraperError("Apify API error (502): bad gateway")

    outcome = await engine.start("s1", PROFILE_ANALYSIS, {"subject": "alice"}).wait()

    assert isinstance(outcome, TaskFailure)
    assert outcome.step == "scrape-tweets"
    assert "502" in outcome.reason
    assert scraper.scrape.await_count == 4
    llm.generate.assert_not_awaited()


@pytest.mark.asyncio
async def test_superseded_profile_not_merged(engine, sessions):
    sessions.set_fact("s1", "pending_subject", "someone-else")

    outcome = await engine.start("s1", PROFILE_ANALYSIS, {"subject": "alice"}).wait()

    assert isinstance(outcome, Profile)
    assert sessions.get_fact("s1", "profile") is None
