"""Message model for session history."""

import time
import uuid
from dataclasses import dataclass, field
from typing import Any

USER = "user"
ASSISTANT = "assistant"


def new_message_id() -> str:
    """Generate an id for a normal turn message."""
    return f"msg-{uuid.uuid4().hex[:12]}"


def profile_message_id(subject: str) -> str:
    """Deterministic id for a completed profile analysis."""
    return f"twitter-profile-{subject}"


def error_message_id(subject: str) -> str:
    """Deterministic id for a failed profile analysis."""
    return f"twitter-error-{subject}"


def text_part(text: str) -> dict[str, Any]:
    return {"type": "text", "text": text}


def reasoning_part(text: str) -> dict[str, Any]:
    return {"type": "reasoning", "text": text}


def tool_invocation_part(
    tool_call_id: str, tool_name: str, args: dict[str, Any]
) -> dict[str, Any]:
    return {
        "type": "tool-invocation",
        "toolCallId": tool_call_id,
        "toolName": tool_name,
        "args": args,
    }


def tool_result_part(
    tool_call_id: str, tool_name: str, success: bool, output: str
) -> dict[str, Any]:
    return {
        "type": "tool-result",
        "toolCallId": tool_call_id,
        "toolName": tool_name,
        "success": success,
        "output": output,
    }


@dataclass(frozen=True)
class Message:
    """A message in a session's history. Immutable once appended.

    Attributes:
        id: Unique within the session. Background deliveries use
            deterministic ids so repeated delivery is a no-op.
        role: 'user' or 'assistant'.
        parts: Ordered typed parts (text, reasoning, tool-invocation,
            tool-result).
        created_at: Unix timestamp.
    """

    id: str
    role: str
    parts: tuple[dict[str, Any], ...] = ()
    created_at: float = field(default_factory=time.time)

    @classmethod
    def text(cls, role: str, text: str, message_id: str | None = None) -> "Message":
        """Build a single-text-part message."""
        return cls(id=message_id or new_message_id(), role=role, parts=(text_part(text),))

    @property
    def content(self) -> str:
        """Concatenated text parts."""
        return "\n".join(p["text"] for p in self.parts if p.get("type") == "text")

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "role": self.role,
            "parts": list(self.parts),
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Message":
        return cls(
            id=data["id"],
            role=data["role"],
            parts=tuple(data.get("parts", [])),
            created_at=data.get("created_at", time.time()),
        )
