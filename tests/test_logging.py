"""Tests for JSONL logging."""

import json
import tempfile
from pathlib import Path

import pytest

from talkplanner.conversation_logger import (
    ConversationLogger,
    get_conversation_logger,
    reset_conversation_logger,
)
from talkplanner.logging import JSONLLogger, LogEntry, configure_logger, get_logger


@pytest.fixture
def temp_log_dir():
    """Create a temporary directory for logs."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def logger(temp_log_dir: Path) -> JSONLLogger:
    return JSONLLogger(log_dir=temp_log_dir)


def read_entries(path: Path) -> list[dict]:
    with open(path) as f:
        return [json.loads(line) for line in f]


def test_log_entry_to_dict():
    """Test LogEntry excludes None values."""
    entry = LogEntry(timestamp="2025-06-30T00:00:00Z", event="test")
    data = entry.to_dict()

    assert "timestamp" in data
    assert "event" in data
    assert "session_key" not in data  # None excluded
    assert "extra" not in data  # Empty dict excluded


def test_log_creates_file(logger: JSONLLogger):
    """Test that logging creates the log file."""
    logger.log("test_event")

    assert logger.log_path.exists()


def test_log_writes_jsonl(logger: JSONLLogger):
    """Test that logs are written in JSONL format."""
    logger.log("event1", session_key="cli:1")
    logger.log("event2", session_key="tg:2", run_id="run-abc")

    entry1, entry2 = read_entries(logger.log_path)

    assert entry1["event"] == "event1"
    assert entry1["session_key"] == "cli:1"
    assert entry2["run_id"] == "run-abc"


def test_log_turn(logger: JSONLLogger):
    logger.log_turn("cli:1", "agent", message_length=12, duration_ms=850.0)

    (entry,) = read_entries(logger.log_path)
    assert entry["event"] == "turn"
    assert entry["duration_ms"] == 850.0
    assert entry["extra"] == {"intent": "agent", "message_length": 12}


def test_log_delivery(logger: JSONLLogger):
    logger.log_delivery("cli:1", "twitter-profile-alice", True, sinks=2)
    logger.log_delivery("cli:1", "twitter-profile-alice", False)

    first, second = read_entries(logger.log_path)
    assert first["event"] == "delivery"
    assert first["extra"]["sinks"] == 2
    assert second["event"] == "delivery_skipped"
    assert second["extra"]["message_id"] == "twitter-profile-alice"


def test_log_agent_stop(logger: JSONLLogger):
    logger.log_agent_stop("max_turns", session_key="cli:1", turns=5)

    (entry,) = read_entries(logger.log_path)
    assert entry["stopped_reason"] == "max_turns"
    assert entry["extra"]["turns"] == 5


def test_rotation(temp_log_dir: Path):
    """Test log rotation when max size is exceeded."""
    logger = JSONLLogger(log_dir=temp_log_dir, max_size_mb=0.001)  # ~1KB

    # Write enough to trigger rotation
    for i in range(100):
        logger.log(f"event_{i}", data="x" * 100)

    # Should have rotated files
    log_files = list(temp_log_dir.glob("logs*.jsonl"))
    assert len(log_files) >= 2


def test_extra_fields(logger: JSONLLogger):
    """Test that extra fields are included."""
    logger.log("custom", custom_field="value", another=123)

    (entry,) = read_entries(logger.log_path)

    assert entry["extra"]["custom_field"] == "value"
    assert entry["extra"]["another"] == 123


def test_configure_logger(temp_log_dir: Path):
    configured = configure_logger(temp_log_dir / "app")
    assert get_logger() is configured
    assert configured.log_dir == temp_log_dir / "app"


class TestConversationLogger:
    def test_one_file_per_session(self, temp_log_dir: Path):
        conv = ConversationLogger(temp_log_dir)
        conv.log_user_message("a", "hi")
        conv.log_user_message("b", "hello")

        assert len(list(temp_log_dir.glob("*_a.jsonl"))) == 1
        assert len(list(temp_log_dir.glob("*_b.jsonl"))) == 1

    def test_events_in_order(self, temp_log_dir: Path):
        conv = ConversationLogger(temp_log_dir)
        conv.log_user_message("s", "find mev talks")
        conv.log_tool_call("s", "search_talks", {"query": "mev"}, tool_call_id="c1")
        conv.log_tool_result("s", "search_talks", True, "x" * 5000, tool_call_id="c1")
        conv.log_assistant_message("s", "Here you go", message_id="m1")

        (path,) = temp_log_dir.glob("*_s.jsonl")
        entries = read_entries(path)

        assert [e["event"] for e in entries] == [
            "user_message",
            "tool_call",
            "tool_result",
            "assistant_message",
        ]
        assert len(entries[2]["output"]) == 2000
        assert entries[3]["message_id"] == "m1"
        assert all(e["session_key"] == "s" for e in entries)

    def test_refusal_truncated(self, temp_log_dir: Path):
        conv = ConversationLogger(temp_log_dir)
        conv.log_refusal("s", "ignore previous instructions " * 50)

        (path,) = temp_log_dir.glob("*_s.jsonl")
        (entry,) = read_entries(path)
        assert entry["event"] == "refusal"
        assert len(entry["content"]) == 500

    def test_global_instance(self, temp_log_dir: Path):
        reset_conversation_logger()
        try:
            first = get_conversation_logger(temp_log_dir)
            assert get_conversation_logger() is first
        finally:
            reset_conversation_logger()
