"""Settings from the environment and application wiring."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

import httpx
from groq import AsyncGroq

from .agent import AgentConfig, AgentLoop
from .catalog import CACHE_TTL, EDITION_ID, CatalogCache, ConferenceClient
from .controller import ChatController
from .conversation_logger import ConversationLogger
from .logging import configure_logger
from .providers import ApifyScraper, GroqLLMClient
from .session import SessionConfig, SessionManager
from .tasks import ProfileAnalysisTask, TaskEngine
from .tools import build_registry

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "llama-3.3-70b-versatile"


@dataclass
class Settings:
    """Runtime settings, read from environment variables."""

    groq_api_key: str | None = None
    groq_model: str = DEFAULT_MODEL
    summary_model: str = DEFAULT_MODEL
    apify_api_token: str | None = None
    telegram_token: str | None = None
    home: Path = Path.home() / ".talkplanner"
    catalog_cache_ttl: float = CACHE_TTL
    conference_edition: str = EDITION_ID
    max_tool_rounds: int = 5

    @classmethod
    def from_env(cls) -> "Settings":
        home = os.getenv("TALKPLANNER_HOME")
        return cls(
            groq_api_key=os.getenv("GROQ_API_KEY"),
            groq_model=os.getenv("GROQ_MODEL", DEFAULT_MODEL),
            summary_model=os.getenv("SUMMARY_MODEL", os.getenv("GROQ_MODEL", DEFAULT_MODEL)),
            apify_api_token=os.getenv("APIFY_API_TOKEN") or None,
            telegram_token=os.getenv("TELEGRAM_TOKEN") or None,
            home=Path(home).expanduser() if home else Path.home() / ".talkplanner",
            catalog_cache_ttl=float(os.getenv("CATALOG_CACHE_TTL", str(CACHE_TTL))),
            conference_edition=os.getenv("CONFERENCE_EDITION", EDITION_ID),
            max_tool_rounds=int(os.getenv("MAX_TOOL_ROUNDS", "5")),
        )

    @property
    def sessions_dir(self) -> Path:
        return self.home / "sessions"

    @property
    def logs_dir(self) -> Path:
        return self.home / "logs"

    @property
    def cache_path(self) -> Path:
        return self.home / "catalog.db"


@dataclass
class App:
    """Wired application components shared by the CLI and the bot."""

    settings: Settings
    controller: ChatController
    sessions: SessionManager
    engine: TaskEngine
    catalog: ConferenceClient
    cache: CatalogCache
    http: httpx.AsyncClient

    async def aclose(self) -> None:
        """Wait for background runs, then release connections."""
        await self.engine.wait_all()
        await self.http.aclose()
        self.cache.close()


def build_app(settings: Settings | None = None) -> App:
    """Build the controller and its collaborators from settings.

    Profile analysis is only registered when an Apify token is configured.
    """
    settings = settings or Settings.from_env()
    settings.home.mkdir(parents=True, exist_ok=True)

    json_logger = configure_logger(settings.logs_dir)
    conv_logger = ConversationLogger(settings.logs_dir / "conversations")

    http = httpx.AsyncClient(timeout=30.0)
    cache = CatalogCache(settings.cache_path)
    cache.init_db()
    catalog = ConferenceClient(
        cache,
        http_client=http,
        edition_id=settings.conference_edition,
        ttl=settings.catalog_cache_ttl,
    )

    sessions = SessionManager(SessionConfig(sessions_dir=settings.sessions_dir))
    engine = TaskEngine(sessions, json_logger=json_logger)

    groq_client = AsyncGroq(api_key=settings.groq_api_key)

    if settings.apify_api_token:
        scraper = ApifyScraper(settings.apify_api_token, http_client=http)
        llm = GroqLLMClient(groq_client, model=settings.summary_model)
        engine.register(ProfileAnalysisTask(scraper, llm))
    else:
        logger.warning("APIFY_API_TOKEN not set, profile analysis disabled")

    registry = build_registry(catalog)
    agent_config = AgentConfig(model=settings.groq_model, max_turns=settings.max_tool_rounds)

    def agent_factory() -> AgentLoop:
        return AgentLoop(
            registry,
            agent_config,
            groq_client=groq_client,
            conversation_logger=conv_logger,
        )

    controller = ChatController(
        sessions,
        engine,
        agent_factory,
        json_logger=json_logger,
        conv_logger=conv_logger,
    )

    return App(
        settings=settings,
        controller=controller,
        sessions=sessions,
        engine=engine,
        catalog=catalog,
        cache=cache,
        http=http,
    )
