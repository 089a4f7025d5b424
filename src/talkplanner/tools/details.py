"""Single talk lookup tool."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from .base import Tool, ToolResult

if TYPE_CHECKING:
    from ..catalog import ConferenceClient

NOT_FOUND = "Talk not found. Check the slug and try again."


class TalkDetailsTool(Tool):
    """Fetch full details for one talk by slug."""

    def __init__(self, client: ConferenceClient) -> None:
        self.client = client

    @property
    def name(self) -> str:
        return "get_talk_details"

    @property
    def description(self) -> str:
        return (
            "Get full details for a specific talk by its slug. Only use when the user "
            "wants more info about a particular talk, with the exact slug from "
            "search_talks output. Never guess slugs."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "slug": {
                    "type": "string",
                    "description": "The talk slug (e.g. 'aave-v4-supercharged-defi')",
                },
            },
            "required": ["slug"],
        }

    async def execute(self, slug: str, **kwargs: Any) -> ToolResult:
        if not slug.strip():
            return ToolResult(success=False, output="", error="Slug cannot be empty")

        talk = await self.client.fetch_talk_by_slug(slug.strip())
        if talk is None:
            return ToolResult(success=True, output=NOT_FOUND)

        details = {
            "title": talk.title,
            "description": talk.description,
            "track": talk.track,
            "type": talk.type,
            "date": talk.date,
            "start": talk.start,
            "end": talk.end,
            "speakers": [
                {"name": s.display_name, "organization": s.organization}
                for s in talk.speakers
            ],
            "room": talk.room,
            "slug": talk.slug,
        }
        return ToolResult(success=True, output=json.dumps(details, ensure_ascii=False))
