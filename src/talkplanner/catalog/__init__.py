"""Conference catalog: models, search, export and cached API access."""

from .cache import CatalogCache
from .calendar import CalendarEntry, build_calendar
from .client import CACHE_TTL, EDITION_ID, ConferenceAPIError, ConferenceClient
from .models import Day, Location, Speaker, Talk
from .search import (
    InterestRanking,
    filter_by_date,
    filter_by_track,
    filter_real_talks,
    format_talk_for_ai,
    rank_by_interests,
    search_by_interests,
    search_by_query,
    unique_tracks,
)

__all__ = [
    "CACHE_TTL",
    "EDITION_ID",
    "CalendarEntry",
    "CatalogCache",
    "ConferenceAPIError",
    "ConferenceClient",
    "Day",
    "InterestRanking",
    "Location",
    "Speaker",
    "Talk",
    "build_calendar",
    "filter_by_date",
    "filter_by_track",
    "filter_real_talks",
    "format_talk_for_ai",
    "rank_by_interests",
    "search_by_interests",
    "search_by_query",
    "unique_tracks",
]
