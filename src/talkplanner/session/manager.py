"""Session manager for per-session history, facts and live connections."""

import asyncio
import hashlib
import json
import logging
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Awaitable, Callable

from .models import Message

logger = logging.getLogger(__name__)

# A live push target. Receives protocol events as plain dicts.
Sink = Callable[[dict[str, Any]], Awaitable[None]]


@dataclass
class SessionState:
    """State for a single session."""

    session_key: str
    created_at: float = field(default_factory=time.time)
    last_activity: float = field(default_factory=time.time)
    messages: list[Message] = field(default_factory=list)
    facts: dict[str, Any] = field(default_factory=dict)
    # Ids of ``messages``, kept in step by add_message and clear_messages.
    message_ids: set[str] = field(default_factory=set, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        self.message_ids = {m.id for m in self.messages}

    def add_message(self, message: Message) -> bool:
        """Append unless the id is already present."""
        if message.id in self.message_ids:
            return False
        self.messages.append(message)
        self.message_ids.add(message.id)
        return True

    def clear_messages(self) -> None:
        self.messages.clear()
        self.message_ids.clear()

    def touch(self) -> None:
        """Update last activity timestamp."""
        self.last_activity = time.time()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "session_key": self.session_key,
            "created_at": self.created_at,
            "last_activity": self.last_activity,
            "messages": [m.to_dict() for m in self.messages],
            "facts": self.facts,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SessionState":
        """Create from dictionary."""
        return cls(
            session_key=data["session_key"],
            created_at=data.get("created_at", time.time()),
            last_activity=data.get("last_activity", time.time()),
            messages=[Message.from_dict(m) for m in data.get("messages", [])],
            facts=data.get("facts", {}),
        )


@dataclass
class SessionConfig:
    """Configuration for session manager."""

    sessions_dir: Path | None = None

    def __post_init__(self) -> None:
        if self.sessions_dir is None:
            self.sessions_dir = Path.home() / ".talkplanner" / "sessions"


class SessionManager:
    """Owns session state, per-session locks and live connections.

    Every storage method is synchronous and has no await point, so under
    asyncio each call is atomic. Callers that need several mutations to
    appear as one (read, decide, write) hold ``get_lock(session_key)``.

    Message ids are the only consistency mechanism between the turn path
    and background deliveries: ``append_message`` refuses an id that is
    already present.
    """

    BUSY_MESSAGE = "⏳ I'm still working on your previous message. Give me a moment."

    def __init__(self, config: SessionConfig | None = None) -> None:
        self.config = config or SessionConfig()
        self._sessions: dict[str, SessionState] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._busy: set[str] = set()
        self._sinks: dict[str, list[Sink]] = {}

        # Ensure sessions directory exists
        assert self.config.sessions_dir is not None
        self.config.sessions_dir.mkdir(parents=True, exist_ok=True)

    def _session_file(self, session_key: str) -> Path:
        """Get the file path for a session.

        The readable part of the name is lossy, so a digest of the full key
        keeps keys like "a.b" and "a_b" in separate files.
        """
        assert self.config.sessions_dir is not None
        safe_key = "".join(c if c.isalnum() or c in "-_" else "_" for c in session_key)
        digest = hashlib.sha1(session_key.encode("utf-8")).hexdigest()[:10]
        return self.config.sessions_dir / f"{safe_key}-{digest}.json"

    def _load_session(self, session_key: str) -> SessionState | None:
        """Load session from disk."""
        path = self._session_file(session_key)
        if not path.exists():
            return None

        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
                return SessionState.from_dict(data)
        except (json.JSONDecodeError, KeyError) as e:
            logger.warning(f"Ignoring unreadable session file {path}: {e}")
            return None

    def save(self, session_key: str) -> None:
        """Persist a session to disk."""
        session = self._sessions.get(session_key)
        if session is None:
            return
        path = self._session_file(session_key)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(session.to_dict(), f, indent=2, ensure_ascii=False)

    def get_session(self, session_key: str) -> SessionState:
        """Get or create a session for session_key."""
        if session_key not in self._sessions:
            # Try loading from disk
            session = self._load_session(session_key)
            if session is None:
                session = SessionState(session_key=session_key)
            self._sessions[session_key] = session

        return self._sessions[session_key]

    def get_lock(self, session_key: str) -> asyncio.Lock:
        """Get the lock serializing multi-step mutations of a session."""
        if session_key not in self._locks:
            self._locks[session_key] = asyncio.Lock()
        return self._locks[session_key]

    # -- user turn guard --------------------------------------------------

    def is_busy(self, session_key: str) -> bool:
        """Check if a session is currently processing a user turn."""
        return session_key in self._busy

    def acquire(self, session_key: str) -> tuple[bool, str | None]:
        """Mark a reasoning turn as in progress.

        Returns (acquired, error_message). Background deliveries do not
        take this guard, so they are never blocked by an open turn.
        """
        if self.is_busy(session_key):
            return False, self.BUSY_MESSAGE

        self._busy.add(session_key)
        self.get_session(session_key).touch()
        return True, None

    def release(self, session_key: str) -> None:
        """Release the turn guard and persist the session."""
        self._busy.discard(session_key)
        self.save(session_key)

    # -- history ------------------------------------------------------------

    def has_message(self, session_key: str, message_id: str) -> bool:
        return message_id in self.get_session(session_key).message_ids

    def append_message(self, session_key: str, message: Message) -> bool:
        """Append a message unless its id is already present.

        Returns:
            True if appended, False if a message with the same id exists.
        """
        session = self.get_session(session_key)
        if not session.add_message(message):
            return False
        session.touch()
        return True

    def get_messages(
        self,
        session_key: str,
        limit: int = 20,
        for_llm: bool = False,
    ) -> list[Any]:
        """Get message history for a session.

        Args:
            session_key: The session identifier.
            limit: Maximum number of messages to return (most recent).
            for_llm: If True, return {"role", "content"} dicts with text
                parts only (Groq API format), skipping messages without text.

        Returns:
            List of Message objects, or dicts when for_llm is set.
        """
        if limit <= 0:
            return []

        messages = self.get_session(session_key).messages[-limit:]

        if for_llm:
            return [
                {"role": m.role, "content": m.content}
                for m in messages
                if m.content
            ]

        return list(messages)

    # -- derived facts --------------------------------------------------------

    def get_fact(self, session_key: str, key: str, default: Any = None) -> Any:
        return self.get_session(session_key).facts.get(key, default)

    def set_fact(self, session_key: str, key: str, value: Any) -> None:
        session = self.get_session(session_key)
        session.facts[key] = value
        session.touch()

    def clear_fact(self, session_key: str, key: str) -> bool:
        session = self.get_session(session_key)
        if key not in session.facts:
            return False
        del session.facts[key]
        session.touch()
        return True

    def merge_facts(
        self,
        session_key: str,
        patch: dict[str, Any],
        only_if: dict[str, Any] | None = None,
    ) -> bool:
        """Merge a patch into the facts bag.

        Args:
            session_key: The session identifier.
            patch: Keys to overwrite.
            only_if: Optional expected values. The merge is skipped unless
                every listed fact currently has that value.

        Returns:
            True if the patch was applied.
        """
        session = self.get_session(session_key)
        if only_if:
            for key, expected in only_if.items():
                if session.facts.get(key) != expected:
                    return False
        session.facts.update(patch)
        session.touch()
        self.save(session_key)
        return True

    def clear(self, session_key: str) -> None:
        """Truncate history and facts. Live connections stay attached."""
        session = self.get_session(session_key)
        session.clear_messages()
        session.facts.clear()
        session.touch()
        self.save(session_key)

    # -- live connections -------------------------------------------------------

    def connect(self, session_key: str, sink: Sink) -> None:
        """Attach a live push target to a session."""
        sinks = self._sinks.setdefault(session_key, [])
        if sink not in sinks:
            sinks.append(sink)

    def disconnect(self, session_key: str, sink: Sink) -> None:
        sinks = self._sinks.get(session_key)
        if sinks and sink in sinks:
            sinks.remove(sink)
        if not sinks:
            self._sinks.pop(session_key, None)

    def sinks(self, session_key: str) -> list[Sink]:
        return list(self._sinks.get(session_key, []))

    async def push(self, session_key: str, event: dict[str, Any]) -> int:
        """Send an event to every live connection of a session.

        A sink that raises is logged and disconnected.

        Returns:
            Number of sinks that received the event.
        """
        delivered = 0
        for sink in self.sinks(session_key):
            try:
                await sink(event)
                delivered += 1
            except Exception:
                logger.exception(f"Push to session {session_key} failed, disconnecting sink")
                self.disconnect(session_key, sink)
        return delivered
