"""Conversational session controller.

Routes each inbound turn to one of three paths: a fixed refusal, a
background profile analysis, or a tool-calling agent turn. Background
completions come back through ``on_progress`` and ``on_complete`` and are
written into the same session with deterministic message ids.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable

from .agent import AgentLoop, IntentKind, StopReason, build_profile_block, classify
from .conversation_logger import ConversationLogger, get_conversation_logger
from .logging import JSONLLogger, get_logger
from .session import Message, SessionManager, Sink
from .session.models import (
    ASSISTANT,
    USER,
    error_message_id,
    new_message_id,
    profile_message_id,
)
from .tasks import PROFILE_ANALYSIS, Profile, TaskEngine, TaskFailure, TaskOutcome

logger = logging.getLogger(__name__)

REFUSAL_MESSAGE = (
    "I can only help you plan your EthCC schedule. "
    "Ask me about talks, tracks, speakers or your calendar."
)
ANALYSIS_STARTED_MESSAGE = (
    "🔍 Looking at @{handle}'s recent posts to learn your interests. "
    "I'll post the results here when they're ready. Meanwhile, keep asking about talks!"
)
ABORTED_MESSAGE = "Stopped."
PROFILE_CACHED_PREFIX = "I already analyzed @{handle} in this chat.\n\n"

AgentFactory = Callable[[], AgentLoop]


@dataclass
class TurnReply:
    """Reply to an inbound turn.

    ``kind`` is one of "refusal", "analysis_started", "profile_cached",
    "busy", "agent" or "aborted". ``ics`` carries a calendar file generated during the turn.
    """

    text: str
    kind: str
    parts: list[dict[str, Any]] = field(default_factory=list)
    ics: str | None = None
    stop_reason: StopReason | None = None
    turns: int = 0


def format_profile_message(profile: Profile) -> str:
    lines = [
        f"✅ Analyzed {profile.items_analyzed} posts from @{profile.subject_key}.",
        "",
        profile.summary,
        "",
        "Interests: " + ", ".join(profile.topics),
        "",
        "Ask me to recommend talks based on these interests!",
    ]
    return "\n".join(lines)


def format_failure_message(failure: TaskFailure) -> str:
    return (
        f"❌ I couldn't analyze @{failure.subject_key}: {failure.reason}\n\n"
        "You can tell me your interests directly instead "
        '(e.g. "I\'m into DeFi and ZK proofs").'
    )


class ChatController:
    """Entry point for user turns and background task events."""

    def __init__(
        self,
        sessions: SessionManager,
        engine: TaskEngine,
        agent_factory: AgentFactory,
        json_logger: JSONLLogger | None = None,
        conv_logger: ConversationLogger | None = None,
        history_limit: int = 20,
    ) -> None:
        self.sessions = sessions
        self.engine = engine
        self.agent_factory = agent_factory
        self.json_logger = json_logger or get_logger()
        self.conv_logger = conv_logger or get_conversation_logger()
        self.history_limit = history_limit
        self._turns: dict[str, asyncio.Task] = {}
        self._aborting: set[str] = set()
        engine.set_listener(self)

    # -- user turns -----------------------------------------------------------

    async def handle_turn(self, session_key: str, text: str) -> TurnReply:
        """Handle one inbound user message."""
        intent = classify(text)

        if intent.kind is IntentKind.REFUSE:
            self.conv_logger.log_refusal(session_key, text)
            self.json_logger.log("refusal", session_key=session_key)
            return TurnReply(text=REFUSAL_MESSAGE, kind="refusal")

        # Without a registered analysis task the text goes to the agent.
        # A correction needs an earlier handle to correct.
        if (
            intent.kind is IntentKind.ANALYZE_PROFILE
            and intent.subject
            and PROFILE_ANALYSIS in self.engine.list_kinds()
            and (intent.pattern != "correction" or self._has_subject(session_key))
        ):
            return await self._start_analysis(session_key, text, intent.subject, intent.pattern)

        return await self._run_agent(session_key, text)

    async def _start_analysis(
        self, session_key: str, text: str, handle: str, pattern: str | None
    ) -> TurnReply:
        run = None
        active = []

        async with self.sessions.get_lock(session_key):
            profile = self.sessions.get_fact(session_key, "profile")
            cached = self._cached_profile(session_key, handle, profile)
            if cached is not None:
                reply = PROFILE_CACHED_PREFIX.format(handle=handle) + format_profile_message(cached)
            else:
                reply = ANALYSIS_STARTED_MESSAGE.format(handle=handle)
                if profile and profile.get("subjectKey") != handle:
                    self.sessions.clear_fact(session_key, "profile")
                self.sessions.set_fact(session_key, "pending_subject", handle)

            self.sessions.append_message(session_key, Message.text(USER, text))
            self.sessions.append_message(session_key, Message.text(ASSISTANT, reply))

            if cached is None:
                active = [
                    h
                    for h in self.engine.active_runs(session_key, PROFILE_ANALYSIS)
                    if h.run.params.get("subject") == handle
                ]
                run = active[0] if active else self.engine.start(
                    session_key, PROFILE_ANALYSIS, {"subject": handle}
                )
            self.sessions.save(session_key)

        self.conv_logger.log_user_message(session_key, text)
        self.conv_logger.log_assistant_message(session_key, reply)
        if run is None:
            self.json_logger.log("profile_cached", session_key=session_key, subject=handle)
            return TurnReply(text=reply, kind="profile_cached")

        self.json_logger.log(
            "analysis_started",
            session_key=session_key,
            run_id=run.run_id,
            subject=handle,
            pattern=pattern,
            reused=bool(active),
        )
        return TurnReply(text=reply, kind="analysis_started")

    def _has_subject(self, session_key: str) -> bool:
        return bool(
            self.sessions.get_fact(session_key, "pending_subject")
            or self.sessions.get_fact(session_key, "profile")
        )

    def _cached_profile(
        self, session_key: str, handle: str, profile: dict[str, Any] | None
    ) -> Profile | None:
        """Profile of ``handle`` already delivered to this session, if any."""
        if not profile or profile.get("subjectKey") != handle:
            return None
        if not self.sessions.has_message(session_key, profile_message_id(handle)):
            return None
        if self.engine.active_runs(session_key, PROFILE_ANALYSIS):
            return None
        return Profile.from_dict(profile)

    async def _run_agent(self, session_key: str, text: str) -> TurnReply:
        acquired, busy_message = self.sessions.acquire(session_key)
        if not acquired:
            return TurnReply(text=busy_message or SessionManager.BUSY_MESSAGE, kind="busy")

        start = time.time()
        try:
            history = self.sessions.get_messages(
                session_key, limit=self.history_limit, for_llm=True
            )
            profile_block = build_profile_block(self.sessions.get_fact(session_key, "profile"))

            agent = self.agent_factory()
            task = asyncio.create_task(
                agent.run(
                    text,
                    session_key=session_key,
                    history=history,
                    profile_block=profile_block,
                )
            )
            self._turns[session_key] = task
            try:
                result = await task
            except asyncio.CancelledError:
                if session_key not in self._aborting:
                    raise
                self._aborting.discard(session_key)
                self.sessions.append_message(session_key, Message.text(USER, text))
                self.json_logger.log("turn_aborted", session_key=session_key)
                return TurnReply(text=ABORTED_MESSAGE, kind="aborted")
            finally:
                self._turns.pop(session_key, None)

            self.sessions.append_message(session_key, Message.text(USER, text))
            self.sessions.append_message(
                session_key,
                Message(id=new_message_id(), role=ASSISTANT, parts=tuple(result.parts)),
            )

            duration_ms = (time.time() - start) * 1000
            self.json_logger.log_turn(
                session_key, "chat", message_length=len(text), duration_ms=duration_ms
            )
            self.json_logger.log_agent_stop(
                result.stop_reason.value, session_key=session_key, turns=result.turns
            )

            ics = None
            for call in result.tool_calls:
                metadata = call.get("metadata") or {}
                if call.get("success") and "ics" in metadata:
                    ics = metadata["ics"]

            return TurnReply(
                text=result.response,
                kind="agent",
                parts=result.parts,
                ics=ics,
                stop_reason=result.stop_reason,
                turns=result.turns,
            )
        finally:
            self.sessions.release(session_key)

    def abort(self, session_key: str) -> bool:
        """Cancel the in-flight agent turn of a session.

        Background runs are not affected and still deliver their result.
        """
        task = self._turns.get(session_key)
        if task is None or task.done():
            return False
        self._aborting.add(session_key)
        task.cancel()
        return True

    def clear(self, session_key: str) -> None:
        """Drop history and facts for a session."""
        self.sessions.clear(session_key)
        self.json_logger.log("session_cleared", session_key=session_key)

    # -- live connections -------------------------------------------------------

    def connect(self, session_key: str, sink: Sink) -> None:
        self.sessions.connect(session_key, sink)

    def disconnect(self, session_key: str, sink: Sink) -> None:
        self.sessions.disconnect(session_key, sink)

    # -- background task events ---------------------------------------------------

    async def on_progress(self, session_key: str, event: dict[str, Any]) -> None:
        await self.sessions.push(session_key, event)

    async def on_complete(self, session_key: str, outcome: TaskOutcome) -> None:
        """Write a finished run into the session exactly once."""
        if isinstance(outcome, Profile):
            message = Message.text(
                ASSISTANT,
                format_profile_message(outcome),
                message_id=profile_message_id(outcome.subject_key),
            )
            event: dict[str, Any] = {"type": "complete", "result": outcome.to_dict()}
        else:
            message = Message.text(
                ASSISTANT,
                format_failure_message(outcome),
                message_id=error_message_id(outcome.subject_key),
            )
            event = {"type": "error", "reason": outcome.reason}

        async with self.sessions.get_lock(session_key):
            appended = self.sessions.append_message(session_key, message)
            self.sessions.save(session_key)
            history = [m.to_dict() for m in self.sessions.get_session(session_key).messages]

        self.json_logger.log_delivery(
            session_key, message.id, appended, sinks=len(self.sessions.sinks(session_key))
        )
        if appended:
            self.conv_logger.log_assistant_message(
                session_key, message.content, message_id=message.id
            )
        else:
            logger.info(f"Duplicate delivery {message.id} for session {session_key}, not appended")

        # Live connections always hear about the finished run.
        await self.sessions.push(session_key, event)
        await self.sessions.push(
            session_key,
            {
                "type": "history",
                "messages": history,
                "appended": message.to_dict() if appended else None,
            },
        )
