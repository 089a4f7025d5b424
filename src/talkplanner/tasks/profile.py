"""Profile analysis task: scrape a handle's tweets, summarize interests."""

from __future__ import annotations

import json
import logging
from typing import Any, Protocol

from ..providers.scraper import ScrapeResult
from .engine import Task, TaskContext
from .models import Profile, TaskFailure, TaskOutcome
from .policy import RetryPolicy

logger = logging.getLogger(__name__)

PROFILE_ANALYSIS = "profile_analysis"

MAX_TOPICS = 10
MIN_TWEET_LENGTH = 10

# Upstream "3 retries" / "2 retries" plus the first attempt.
SCRAPE_POLICY = RetryPolicy(max_attempts=4, base_delay=5.0, backoff_multiplier=2.0, timeout=300.0)
SUMMARIZE_POLICY = RetryPolicy(max_attempts=3, base_delay=3.0, backoff_multiplier=2.0, timeout=120.0)

FALLBACK_TOPICS = ["Ethereum", "blockchain"]

SUMMARY_SYSTEM_PROMPT = """You are analyzing a Twitter/X user's tweets to understand their professional interests, especially related to blockchain, crypto, Ethereum, and technology.

Extract the user's top interests and topics they care about. Focus on topics that would be relevant to attending an Ethereum conference (EthCC).

Return ONLY a valid JSON object with this exact structure:
{
  "interests": ["topic1", "topic2", "topic3"],
  "summary": "2-3 sentence summary of their professional interests"
}

Rules:
- Maximum 10 interests
- Each interest should be 1-4 words (e.g. "DeFi protocols", "Zero-knowledge proofs", "MEV", "Account abstraction")
- The summary should be concise and professional
- If the tweets aren't related to crypto/tech, still extract whatever professional interests are visible
- Return ONLY the JSON, no markdown, no explanation"""


class Scraper(Protocol):
    async def scrape(self, handle: str, max_items: int = 50) -> ScrapeResult: ...


class TextGenerator(Protocol):
    async def generate(self, system: str, prompt: str) -> str: ...


def parse_summary(content: str) -> tuple[list[str], str] | None:
    """Parse the model's JSON answer into (topics, summary).

    Returns:
        None if the answer is not the expected JSON object.
    """
    json_str = content.strip()
    if json_str.startswith("```"):
        # Drop markdown fences
        lines = [line for line in json_str.split("\n") if not line.startswith("```")]
        json_str = "\n".join(lines).strip()

    try:
        data = json.loads(json_str)
    except json.JSONDecodeError as e:
        logger.warning(f"Failed to parse summary response: {e}")
        return None

    if not isinstance(data, dict):
        return None
    interests = data.get("interests")
    summary = data.get("summary")
    if not isinstance(interests, list) or not isinstance(summary, str):
        logger.warning("Invalid summary structure: missing 'interests' or 'summary'")
        return None

    topics = [str(i).strip() for i in interests if str(i).strip()]
    return topics[:MAX_TOPICS], summary.strip()


def fallback_profile(handle: str, items_analyzed: int) -> Profile:
    """Generic profile used when the model answer is unusable."""
    return Profile(
        subject_key=handle,
        topics=list(FALLBACK_TOPICS),
        summary=(
            f"Best-effort profile: based on @{handle}'s tweets, they appear "
            "interested in blockchain and crypto topics."
        ),
        items_analyzed=items_analyzed,
        best_effort=True,
    )


class ProfileAnalysisTask(Task):
    """Scrape, summarize, then merge the profile into session facts."""

    def __init__(
        self,
        scraper: Scraper,
        llm: TextGenerator,
        max_items: int = 50,
        scrape_policy: RetryPolicy = SCRAPE_POLICY,
        summarize_policy: RetryPolicy = SUMMARIZE_POLICY,
    ) -> None:
        self.scraper = scraper
        self.llm = llm
        self.max_items = max_items
        self.scrape_policy = scrape_policy
        self.summarize_policy = summarize_policy

    @property
    def kind(self) -> str:
        return PROFILE_ANALYSIS

    async def run(self, ctx: TaskContext, params: dict[str, Any]) -> TaskOutcome:
        handle = str(params["subject"])

        async def scrape() -> ScrapeResult:
            await ctx.report_progress(
                "scrape", "running", f"Fetching latest tweets from @{handle}...", 0.1
            )
            result = await self.scraper.scrape(handle, self.max_items)
            await ctx.report_progress(
                "scrape", "complete",
                f"Fetched {result.tweet_count} tweets from @{handle}", 0.4,
            )
            return result

        scraped = await ctx.step("scrape-tweets", scrape, self.scrape_policy)

        # An empty scrape cannot be fixed by retrying or summarizing.
        texts = [t.text for t in scraped.tweets if len(t.text) > MIN_TWEET_LENGTH]
        if not texts:
            if scraped.tweet_count == 0:
                reason = (
                    f"No tweets found for @{handle}. The account may not exist, "
                    "be private, or have no tweets."
                )
            else:
                reason = (
                    f"No usable tweet content found for @{handle}. The account may be "
                    "private or only has very short tweets."
                )
            await ctx.report_progress("scrape", "error", reason)
            return TaskFailure(subject_key=handle, reason=reason, step="scrape-tweets")

        logger.info(f"Summarizing {len(texts)}/{scraped.tweet_count} tweets from @{handle}")

        async def summarize() -> Profile:
            await ctx.report_progress(
                "analyze", "running", "Analyzing interests from tweets...", 0.5
            )
            content = await self.llm.generate(
                SUMMARY_SYSTEM_PROMPT,
                f"Tweets from @{handle}:\n\n" + "\n---\n".join(texts),
            )
            parsed = parse_summary(content)
            if parsed is None:
                profile = fallback_profile(handle, scraped.tweet_count)
            else:
                topics, summary = parsed
                profile = Profile(
                    subject_key=handle,
                    topics=topics,
                    summary=summary,
                    items_analyzed=scraped.tweet_count,
                )
            await ctx.report_progress(
                "analyze", "complete",
                f"Identified {len(profile.topics)} interests from {profile.items_analyzed} tweets",
                0.9,
            )
            return profile

        profile = await ctx.step("summarize-interests", summarize, self.summarize_policy)

        merged = await ctx.merge_state(
            {"profile": profile.to_dict()},
            only_if={"pending_subject": handle},
        )
        if not merged:
            logger.info(f"Profile for @{handle} superseded, not stored in session facts")

        await ctx.report_progress("done", "complete", "Analysis complete!", 1.0)
        return profile
