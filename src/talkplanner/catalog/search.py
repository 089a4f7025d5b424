"""Relevance search over the talk catalog.

Pure functions only: nothing here performs I/O or keeps state.

Scoring: the query is split on whitespace into lower-case tokens, and tokens
shorter than MIN_TOKEN_LENGTH are ignored. Each token adds the weight of the
first field that contains it, checked in this order:

    title (3) > track (2) > speakers (2) > description (1)

A token contributes at most once per talk.
"""

from dataclasses import dataclass, field
from typing import Any

from .models import Talk

MIN_TOKEN_LENGTH = 3

TITLE_WEIGHT = 3
TRACK_WEIGHT = 2
SPEAKER_WEIGHT = 2
DESCRIPTION_WEIGHT = 1

REAL_TALK_TYPES = frozenset({"Talk", "Workshop", "Demo"})


def tokenize(query: str) -> list[str]:
    """Split a query into lower-case tokens of at least MIN_TOKEN_LENGTH chars."""
    return [w for w in query.lower().split() if len(w) >= MIN_TOKEN_LENGTH]


def _weighted_fields(talk: Talk) -> list[tuple[str, int]]:
    speakers = " ".join(
        f"{s.display_name} {s.organization}" for s in talk.speakers
    )
    return [
        (talk.title.lower(), TITLE_WEIGHT),
        (talk.track.lower(), TRACK_WEIGHT),
        (speakers.lower(), SPEAKER_WEIGHT),
        (talk.description.lower(), DESCRIPTION_WEIGHT),
    ]


def score_talk(talk: Talk, tokens: list[str]) -> int:
    """Score a talk against pre-tokenized query terms."""
    fields = _weighted_fields(talk)
    score = 0
    for token in tokens:
        for text, weight in fields:
            if token in text:
                score += weight
                break
    return score


def _scored(talks: list[Talk], tokens: list[str]) -> list[tuple[Talk, int]]:
    if not tokens:
        return []
    pairs = [(talk, score_talk(talk, tokens)) for talk in talks]
    return [(talk, score) for talk, score in pairs if score > 0]


def search_by_query(talks: list[Talk], query: str) -> list[Talk]:
    """Rank talks against a free-text query.

    Talks scoring 0 are dropped. Results are ordered by score, highest
    first, with ties broken by start time. A query without usable tokens
    matches nothing.
    """
    scored = _scored(talks, tokenize(query))
    scored.sort(key=lambda pair: (-pair[1], pair[0].start))
    return [talk for talk, _ in scored]


@dataclass
class InterestRanking:
    """Result of ranking talks against several interests.

    Attributes:
        talks: Union of talks matching any interest, best first.
        matched_interests: Talk id -> interests that matched it, in the
            order the interests were given.
        scores: Talk id -> score summed across interests.
    """

    talks: list[Talk] = field(default_factory=list)
    matched_interests: dict[str, list[str]] = field(default_factory=dict)
    scores: dict[str, int] = field(default_factory=dict)


def rank_by_interests(talks: list[Talk], interests: list[str]) -> InterestRanking:
    """Rank talks by how many distinct interests they match.

    Each interest is scored independently. A talk matching more interests
    always ranks above one matching fewer, whatever the raw field weights.
    Ties break on the summed score, then on start time.
    """
    by_id: dict[str, Talk] = {}
    matched: dict[str, list[str]] = {}
    totals: dict[str, int] = {}

    for interest in interests:
        for talk, score in _scored(talks, tokenize(interest)):
            by_id.setdefault(talk.id, talk)
            hits = matched.setdefault(talk.id, [])
            if interest not in hits:
                hits.append(interest)
            totals[talk.id] = totals.get(talk.id, 0) + score

    ranked = sorted(
        by_id.values(),
        key=lambda t: (-len(matched[t.id]), -totals[t.id], t.start),
    )
    return InterestRanking(talks=ranked, matched_interests=matched, scores=totals)


def search_by_interests(talks: list[Talk], interests: list[str]) -> list[Talk]:
    """Union of per-interest matches, ranked by interest coverage."""
    return rank_by_interests(talks, interests).talks


def filter_by_track(talks: list[Talk], track: str) -> list[Talk]:
    t = track.lower()
    return [talk for talk in talks if t in talk.track.lower()]


def filter_by_date(talks: list[Talk], date: str) -> list[Talk]:
    return [talk for talk in talks if talk.start.startswith(date)]


def filter_real_talks(talks: list[Talk]) -> list[Talk]:
    """Drop agenda filler (lunch, doors, ...), keeping talks, workshops and demos."""
    return [talk for talk in talks if talk.type in REAL_TALK_TYPES]


def unique_tracks(talks: list[Talk]) -> list[str]:
    return sorted({talk.track for talk in talks})


def _time_of(iso: str) -> str:
    # Slice rather than parse: timestamps carry no offset.
    _, _, time = iso.partition("T")
    return time[:5]


def format_talk_for_ai(talk: Talk) -> dict[str, Any]:
    """Compact representation of a talk for tool output."""
    return {
        "title": talk.title,
        "slug": talk.slug,
        "track": talk.track,
        "date": talk.date,
        "time": f"{_time_of(talk.start)}-{_time_of(talk.end)}",
        "start": talk.start,
        "end": talk.end,
        "speakers": ", ".join(
            f"{s.display_name} ({s.organization})" for s in talk.speakers
        ),
        "description": talk.description[:120],
        "room": talk.room,
    }
