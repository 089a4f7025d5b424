"""Talk search tool."""

from __future__ import annotations

import json
import re
from typing import TYPE_CHECKING, Any

from ..catalog.search import (
    filter_by_date,
    filter_by_track,
    filter_real_talks,
    format_talk_for_ai,
    rank_by_interests,
    search_by_query,
    tokenize,
)
from .base import Tool, ToolResult

if TYPE_CHECKING:
    from ..catalog import ConferenceClient

DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")
MAX_LIMIT = 50

NO_RESULTS = (
    "No talks found matching your criteria. Try broadening your search or "
    "check available tracks with get_conference_info."
)


class SearchTalksTool(Tool):
    """Search talks by keywords, interests, track and date."""

    def __init__(self, client: ConferenceClient, default_limit: int = 15) -> None:
        self.client = client
        self.default_limit = default_limit

    @property
    def name(self) -> str:
        return "search_talks"

    @property
    def description(self) -> str:
        return (
            "Search conference talks by keyword, interests, track, or date. Use this "
            "when the user asks about talks, sessions, or wants recommendations "
            "based on their interests. Results include title, start, end, room, "
            "speakers and slug."
        )

    @property
    def parameters(self) -> dict[str, Any]:
        return {
            "type": "object",
            "properties": {
                "query": {
                    "type": "string",
                    "description": (
                        "Free-text search (e.g. 'ZK proofs', 'MEV', 'Vitalik'). Each word "
                        "is matched independently; words under 3 chars are ignored."
                    ),
                },
                "interests": {
                    "type": "array",
                    "items": {"type": "string"},
                    "description": (
                        "List of interest phrases. Talks matching more interests rank "
                        "higher. Use instead of query for profile-based recommendations."
                    ),
                },
                "track": {
                    "type": "string",
                    "description": "Filter by track name (e.g. 'DeFi', 'Zero Knowledge', 'Security')",
                },
                "date": {
                    "type": "string",
                    "description": "Filter by date in YYYY-MM-DD format",
                },
                "limit": {
                    "type": "integer",
                    "description": f"Max results to return (default {self.default_limit})",
                },
                "offset": {
                    "type": "integer",
                    "description": "Number of results to skip, for paging (default 0)",
                },
            },
            "required": [],
        }

    async def execute(
        self,
        query: str | None = None,
        interests: list[str] | None = None,
        track: str | None = None,
        date: str | None = None,
        limit: int | None = None,
        offset: int = 0,
        **kwargs: Any,
    ) -> ToolResult:
        """Run a search.

        Filters apply in order: date, track, then query or interests. With
        neither query nor interests the results are in schedule order.
        """
        if date and not DATE_RE.match(date):
            return ToolResult(
                success=False,
                output="",
                error=f"Invalid date '{date}'. Use YYYY-MM-DD.",
            )
        if interests is not None and not all(isinstance(i, str) for i in interests):
            return ToolResult(success=False, output="", error="'interests' must be a list of strings")

        limit = self.default_limit if limit is None else min(max(1, limit), MAX_LIMIT)
        offset = max(0, offset)

        talks = filter_real_talks(await self.client.fetch_talks())
        if date:
            talks = filter_by_date(talks, date)
        if track:
            talks = filter_by_track(talks, track)

        matched: dict[str, list[str]] | None = None
        interests = [i for i in (interests or []) if tokenize(i)]
        if interests:
            ranking = rank_by_interests(talks, interests)
            talks = ranking.talks
            matched = ranking.matched_interests
        elif query and tokenize(query):
            talks = search_by_query(talks, query)
        else:
            talks = sorted(talks, key=lambda t: t.start)

        page = talks[offset:offset + limit]
        if not page:
            return ToolResult(success=True, output=NO_RESULTS, metadata={"total": len(talks)})

        results = []
        for talk in page:
            item = format_talk_for_ai(talk)
            if matched is not None:
                item["matchedInterests"] = matched.get(talk.id, [])
            results.append(item)

        payload: dict[str, Any] = {
            "talks": results,
            "totalMatches": len(talks),
            "showing": len(results),
            "offset": offset,
        }
        return ToolResult(
            success=True,
            output=json.dumps(payload, ensure_ascii=False),
            metadata={"total": len(talks)},
        )
