"""iCalendar export for selected talks."""

import re
from dataclasses import dataclass

PRODID = "-//Talk Planner//EN"
CALENDAR_NAME = "My EthCC Schedule"
TZID = "Europe/Paris"
VENUE = "Palais des Festivals, Cannes"
UID_DOMAIN = "talkplanner"

VTIMEZONE_EUROPE_PARIS = "\r\n".join([
    "BEGIN:VTIMEZONE",
    "TZID:Europe/Paris",
    "BEGIN:DAYLIGHT",
    "TZOFFSETFROM:+0100",
    "TZOFFSETTO:+0200",
    "TZNAME:CEST",
    "DTSTART:19700329T020000",
    "RRULE:FREQ=YEARLY;BYMONTH=3;BYDAY=-1SU",
    "END:DAYLIGHT",
    "BEGIN:STANDARD",
    "TZOFFSETFROM:+0200",
    "TZOFFSETTO:+0100",
    "TZNAME:CET",
    "DTSTART:19701025T030000",
    "RRULE:FREQ=YEARLY;BYMONTH=10;BYDAY=-1SU",
    "END:STANDARD",
    "END:VTIMEZONE",
])


@dataclass
class CalendarEntry:
    """A talk as selected for export."""

    title: str
    start: str
    end: str
    room: str | None = None
    speakers: str | None = None
    description: str | None = None


def escape_ics(text: str) -> str:
    """Escape backslash, semicolon, comma and newlines for ICS text values."""
    text = re.sub(r"([\\;,])", r"\\\1", text)
    return text.replace("\n", "\\n")


def _compact(iso: str) -> str:
    return iso.replace("-", "").replace(":", "")


def event_uid(entry: CalendarEntry) -> str:
    """Stable UID from the start time and the slugified title."""
    slug = re.sub(r"\s+", "-", entry.title).lower()[:40]
    return f"{_compact(entry.start)}-{slug}@{UID_DOMAIN}"


def build_event(entry: CalendarEntry) -> str:
    description_parts = [entry.description] if entry.description else []
    if entry.speakers:
        description_parts.append(f"Speakers: {entry.speakers}")
    location = f"{entry.room}, {VENUE}" if entry.room else VENUE

    lines = [
        "BEGIN:VEVENT",
        f"UID:{event_uid(entry)}",
        f"DTSTART;TZID={TZID}:{_compact(entry.start)}",
        f"DTEND;TZID={TZID}:{_compact(entry.end)}",
        f"SUMMARY:{escape_ics(entry.title)}",
    ]
    if description_parts:
        description = "\n".join(description_parts)
        lines.append(f"DESCRIPTION:{escape_ics(description)}")
    lines.append(f"LOCATION:{escape_ics(location)}")
    lines.append("END:VEVENT")
    return "\r\n".join(lines)


def build_calendar(entries: list[CalendarEntry]) -> str:
    """Build a VCALENDAR document with one VEVENT per entry."""
    return "\r\n".join([
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:{PRODID}",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
        f"X-WR-CALNAME:{CALENDAR_NAME}",
        f"X-WR-TIMEZONE:{TZID}",
        VTIMEZONE_EUROPE_PARIS,
        *(build_event(e) for e in entries),
        "END:VCALENDAR",
    ])
