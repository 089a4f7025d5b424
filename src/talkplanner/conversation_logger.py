"""Conversation transcript logger.

Writes one JSONL file per session and day under logs/ in the working
directory: user turns, assistant replies, LLM round-trips, tool calls and
background deliveries, in the order they happened.
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any


class ConversationLogger:
    """Logs complete conversations for analysis."""

    def __init__(self, log_dir: Path | str | None = None) -> None:
        """Initialize the conversation logger.

        Args:
            log_dir: Directory to store logs. Defaults to ./logs in cwd.
        """
        if log_dir is None:
            log_dir = Path.cwd() / "logs"
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)

    def _get_log_file(self, session_key: str) -> Path:
        date_str = datetime.now().strftime("%Y-%m-%d")
        return self.log_dir / f"{date_str}_{session_key}.jsonl"

    def _write(self, session_key: str, entry: dict[str, Any]) -> None:
        entry["timestamp"] = datetime.now(timezone.utc).isoformat()
        entry["session_key"] = session_key

        with open(self._get_log_file(session_key), "a", encoding="utf-8") as f:
            f.write(json.dumps(entry, ensure_ascii=False, default=str) + "\n")

    def log_user_message(self, session_key: str, content: str) -> None:
        self._write(session_key, {"event": "user_message", "role": "user", "content": content})

    def log_assistant_message(self, session_key: str, content: str, message_id: str | None = None) -> None:
        """Log an assistant message (final response or background delivery)."""
        entry: dict[str, Any] = {
            "event": "assistant_message",
            "role": "assistant",
            "content": content,
        }
        if message_id:
            entry["message_id"] = message_id
        self._write(session_key, entry)

    def log_refusal(self, session_key: str, content: str) -> None:
        """Log a turn refused by the injection check."""
        self._write(session_key, {"event": "refusal", "content": content[:500]})

    def log_tool_call(
        self,
        session_key: str,
        tool_name: str,
        tool_args: dict[str, Any],
        tool_call_id: str | None = None,
    ) -> None:
        self._write(session_key, {
            "event": "tool_call",
            "tool_name": tool_name,
            "tool_args": tool_args,
            "tool_call_id": tool_call_id,
        })

    def log_tool_result(
        self,
        session_key: str,
        tool_name: str,
        success: bool,
        output: str,
        error: str | None = None,
        tool_call_id: str | None = None,
        duration_ms: float | None = None,
    ) -> None:
        entry: dict[str, Any] = {
            "event": "tool_result",
            "tool_name": tool_name,
            "success": success,
            "output": output[:2000] if output else "",  # Truncate long outputs
            "tool_call_id": tool_call_id,
        }
        if error:
            entry["error"] = error
        if duration_ms is not None:
            entry["duration_ms"] = duration_ms

        self._write(session_key, entry)

    def log_llm_request(
        self,
        session_key: str,
        model: str,
        messages_count: int,
        has_tools: bool,
    ) -> None:
        self._write(session_key, {
            "event": "llm_request",
            "model": model,
            "messages_count": messages_count,
            "has_tools": has_tools,
        })

    def log_llm_response(
        self,
        session_key: str,
        has_content: bool,
        tool_calls_count: int,
        finish_reason: str | None = None,
    ) -> None:
        self._write(session_key, {
            "event": "llm_response",
            "has_content": has_content,
            "tool_calls_count": tool_calls_count,
            "finish_reason": finish_reason,
        })

    def log_agent_stop(
        self,
        session_key: str,
        stop_reason: str,
        turns: int,
        tool_calls_total: int,
    ) -> None:
        self._write(session_key, {
            "event": "agent_stop",
            "stop_reason": stop_reason,
            "turns": turns,
            "tool_calls_total": tool_calls_total,
        })


# Global instance
_conversation_logger: ConversationLogger | None = None


def get_conversation_logger(log_dir: Path | str | None = None) -> ConversationLogger:
    """Get or create the global conversation logger."""
    global _conversation_logger
    if _conversation_logger is None:
        _conversation_logger = ConversationLogger(log_dir=log_dir)
    return _conversation_logger


def reset_conversation_logger() -> None:
    """Reset the global conversation logger (for testing)."""
    global _conversation_logger
    _conversation_logger = None
