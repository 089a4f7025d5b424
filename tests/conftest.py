"""Shared fixtures."""

from pathlib import Path

import pytest

from talkplanner.catalog.models import Speaker, Talk
from talkplanner.conversation_logger import ConversationLogger
from talkplanner.logging import JSONLLogger


@pytest.fixture
def make_talk():
    """Factory for Talk records with sensible defaults."""

    def _make(
        id: str,
        title: str = "Untitled",
        start: str = "2025-06-30T10:00:00",
        end: str = "2025-06-30T10:20:00",
        description: str = "",
        track: str = "Core Protocol",
        type: str = "Talk",
        room: str = "main-stage",
        speakers: tuple[Speaker, ...] = (),
    ) -> Talk:
        return Talk(
            id=id,
            slug=f"talk-{id}",
            title=title,
            start=start,
            end=end,
            room=room,
            description=description,
            track=track,
            type=type,
            speakers=speakers,
        )

    return _make


@pytest.fixture
def json_logger(tmp_path: Path) -> JSONLLogger:
    return JSONLLogger(log_dir=tmp_path / "logs")


@pytest.fixture
def conv_logger(tmp_path: Path) -> ConversationLogger:
    return ConversationLogger(tmp_path / "conversations")
