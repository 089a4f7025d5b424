"""Calendar export tool."""

import json
from typing import Any

from ..catalog.calendar import CalendarEntry, build_calendar
from .base import Tool, ToolResult

ENTRY_FIELDS = ("title", "start", "end", "room", "speakers", "description")


def _parse_entry(index: int, raw: Any) -> tuple[CalendarEntry | None, str | None]:
    if not isinstance(raw, dict):
        return None, f"talks[{index}] must be an object"
    for key in ("title", "start", "end"):
        if not isinstance(raw.get(key), str) or not raw[key].strip():
            return None, f"talks[{index}] is missing '{key}'"
    values = {k: raw.get(k) for k in ENTRY_FIELDS if isinstance(raw.get(k), str)}
    return CalendarEntry(**values), None


class GenerateCalendarTool(Tool):
    """Build an .ics file from talks taken from search results."""

    @property
    def name(self) -> str:
        return "generate_calendar_file"

    @property
    def description(self) -> str:
        return (
            "Generate an .ics calendar file for selected talks. Use data directly "
            "from search_talks output (title, start, end, room, speakers); no need "
            "to call get_talk_details first."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "talks": {
                    "type": "array",
                    "description": "Talks to add to the calendar",
                    "items": {
                        "type": "object",
                        "properties": {
                            "title": {"type": "string"},
                            "start": {"type": "string", "description": "ISO timestamp e.g. 2025-06-30T15:25:00"},
                            "end": {"type": "string", "description": "ISO timestamp e.g. 2025-06-30T15:45:00"},
                            "room": {"type": "string"},
                            "speakers": {
                                "type": "string",
                                "description": "Comma-separated speakers, e.g. 'Alice (Org1), Bob (Org2)'",
                            },
                            "description": {"type": "string"},
                        },
                        "required": ["title", "start", "end"],
                    },
                },
            },
            "required": ["talks"],
        }

    async def execute(self, talks: list[Any], **kwargs: Any) -> ToolResult:
        if not talks:
            return ToolResult(success=False, output="", error="'talks' must not be empty")

        entries: list[CalendarEntry] = []
        for i, raw in enumerate(talks):
            entry, error = _parse_entry(i, raw)
            if entry is None:
                return ToolResult(success=False, output="", error=error)
            entries.append(entry)

        ics = build_calendar(entries)
        payload = {
            "icsContent": ics,
            "eventCount": len(entries),
            "message": (
                f"Generated calendar with {len(entries)} event(s). "
                "Use the download button to save the .ics file."
            ),
        }
        return ToolResult(
            success=True,
            output=json.dumps(payload, ensure_ascii=False),
            metadata={"ics": ics, "event_count": len(entries)},
        )
