"""Clients for external providers (scraping, text generation)."""

from .llm import GroqLLMClient
from .scraper import ApifyScraper, ScrapedTweet, ScraperError, ScrapeResult

__all__ = ["ApifyScraper", "GroqLLMClient", "ScrapeResult", "ScrapedTweet", "ScraperError"]
