"""Tool registry and tool implementations."""

from .base import Tool, ToolResult
from .calendar import GenerateCalendarTool
from .conference_info import ConferenceInfoTool
from .details import TalkDetailsTool
from .registry import ToolRegistry
from .search import SearchTalksTool

__all__ = [
    "ConferenceInfoTool",
    "GenerateCalendarTool",
    "SearchTalksTool",
    "TalkDetailsTool",
    "Tool",
    "ToolRegistry",
    "ToolResult",
    "build_registry",
]


def build_registry(client) -> ToolRegistry:
    """Registry with the full conference tool surface."""
    registry = ToolRegistry()
    registry.register(SearchTalksTool(client))
    registry.register(TalkDetailsTool(client))
    registry.register(ConferenceInfoTool(client))
    registry.register(GenerateCalendarTool())
    return registry
