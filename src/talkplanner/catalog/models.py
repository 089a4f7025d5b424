"""Data models for the conference catalog."""

from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Speaker:
    """A speaker attributed to a talk."""

    display_name: str
    organization: str = ""
    slug: str = ""

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Speaker":
        return cls(
            display_name=str(data.get("displayName") or ""),
            organization=str(data.get("organization") or ""),
            slug=str(data.get("slug") or ""),
        )


@dataclass(frozen=True)
class Talk:
    """A scheduled talk, workshop or other agenda item.

    Attributes:
        id: Upstream identifier.
        slug: URL-friendly name, used for detail lookups.
        title: Talk title.
        start: ISO timestamp without offset (e.g. '2025-06-30T15:25:00').
        end: ISO timestamp without offset.
        room: Stage slug the talk is held in.
        description: Free-text abstract.
        track: Track name (e.g. 'DeFi').
        type: 'Talk', 'Workshop', 'Demo' or an admin type like 'Custom'.
        speakers: Attributed speakers, in upstream order.
    """

    id: str
    slug: str
    title: str
    start: str
    end: str
    room: str = ""
    description: str = ""
    track: str = ""
    type: str = "Talk"
    speakers: tuple[Speaker, ...] = field(default_factory=tuple)

    @property
    def date(self) -> str:
        return self.start.split("T")[0]

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Talk":
        """Build a Talk from the upstream tRPC payload."""
        props = data.get("extendedProps") or {}
        speakers = tuple(
            Speaker.from_api(s) for s in props.get("speakersData") or []
        )
        return cls(
            id=str(data.get("id") or ""),
            slug=str(data.get("slug") or ""),
            title=str(data.get("title") or ""),
            start=str(data.get("start") or ""),
            end=str(data.get("end") or ""),
            room=str(data.get("resourceId") or ""),
            description=str(props.get("description") or ""),
            track=str(props.get("track") or ""),
            type=str(props.get("type") or ""),
            speakers=speakers,
        )


@dataclass(frozen=True)
class Day:
    """A conference day."""

    id: str
    date: str

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Day":
        return cls(id=str(data.get("id") or ""), date=str(data.get("date") or ""))


@dataclass(frozen=True)
class Location:
    """A venue room or stage."""

    id: str
    slug: str
    title: str
    floor: str = ""
    capacity: int = 0
    order: int = 0

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "Location":
        return cls(
            id=str(data.get("id") or ""),
            slug=str(data.get("slug") or ""),
            title=str(data.get("title") or ""),
            floor=str(data.get("floor") or ""),
            capacity=int(data.get("capacity") or 0),
            order=int(data.get("order") or 0),
        )
