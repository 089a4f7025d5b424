"""Conference metadata tool."""

from __future__ import annotations

import asyncio
import json
from typing import TYPE_CHECKING, Any

from ..catalog.search import filter_real_talks, unique_tracks
from .base import Tool, ToolResult

if TYPE_CHECKING:
    from ..catalog import ConferenceClient


class ConferenceInfoTool(Tool):
    """List tracks, days and venues."""

    def __init__(self, client: ConferenceClient) -> None:
        self.client = client

    @property
    def name(self) -> str:
        return "get_conference_info"

    @property
    def description(self) -> str:
        return (
            "Get conference information: available tracks, days, and venues. "
            "Only use when the user explicitly asks about tracks, days, or rooms."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {"type": "object", "properties": {}, "required": []}

    async def execute(self, **kwargs: Any) -> ToolResult:
        talks, days, locations = await asyncio.gather(
            self.client.fetch_talks(),
            self.client.fetch_days(),
            self.client.fetch_locations(),
        )
        talks = filter_real_talks(talks)
        info = {
            "tracks": unique_tracks(talks),
            "days": [d.date for d in days],
            "venues": [
                {"name": loc.title, "floor": loc.floor, "capacity": loc.capacity}
                for loc in sorted(locations, key=lambda loc: loc.order)
            ],
            "totalTalks": len(talks),
        }
        return ToolResult(success=True, output=json.dumps(info, ensure_ascii=False))
