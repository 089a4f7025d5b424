"""Pattern-based intent detection for inbound user text.

Two checks run before the reasoning loop:

- Injection detection: any match means the turn is refused outright.
- Handle extraction: an ordered cascade of patterns, first match wins,
  that finds an X/Twitter handle the user wants analyzed.

Both are heuristics. Ambiguous text falls through to the normal chat path.
"""

import re
from dataclasses import dataclass
from enum import Enum

INJECTION_PATTERNS: list[re.Pattern[str]] = [
    re.compile(p, re.IGNORECASE)
    for p in (
        # Role override
        r"\b(ignore|disregard|forget|override)\s+(all\s+|any\s+|the\s+|your\s+)*"
        r"(previous|prior|above|earlier|preceding|original|system)\s+"
        r"(instructions?|prompts?|rules|messages|directions)",
        r"\byou\s+are\s+now\s+(an?|in|my)\s+",
        r"\byou\s+are\s+no\s+longer\s+(bound|restricted|limited|an?\s+assistant)\b",
        r"\b(act|behave|respond)\s+as\s+(if\s+you\s+(are|were)\s+)?(an?\s+)?"
        r"(unrestricted|unfiltered|uncensored|jailbroken|different)\b",
        r"\bpretend\s+(that\s+)?you\s+(are|have)\s+(no|not|an?\s+unrestricted)\b",
        r"\bnew\s+instructions\s*:",
        r"\b(developer|god|sudo)\s+mode\b",
        # System prompt disclosure
        r"\b(reveal|show|print|repeat|output|display|leak|tell\s+me)\s+(me\s+)?"
        r"(your|the)\s+(full\s+|entire\s+|hidden\s+|initial\s+|original\s+)?"
        r"(system\s+prompt|system\s+message|instructions|prompt)\b",
        r"\bwhat\s+(is|are|was|were)\s+your\s+(system\s+prompt|instructions|initial\s+prompt)\b",
        # Known jailbreak tokens
        r"\bdo\s+anything\s+now\b",
        r"\bDAN\s+mode\b",
        r"\bjailbr(eak|oken)\b",
        r"<\|?(im_start|im_end|system)\|?>",
        r"\[/?(INST|SYS|SYSTEM)\]",
    )
]

_HANDLE = r"@?(\w{1,15})"
# A bare word only counts as a handle when it ends the clause.
_CLAUSE_END = r"\s*(?:[.!,;]|$)"

HANDLE_PATTERNS: list[tuple[str, re.Pattern[str]]] = [
    (
        "url",
        re.compile(
            r"(?:https?://)?(?:www\.|mobile\.)?\b(?:twitter|x)\.com/@?(\w{1,15})\b",
            re.IGNORECASE,
        ),
    ),
    (
        "possessive",
        re.compile(
            r"\bmy\s+(?:twitter|x|tweets|handle|account|profile)"
            r"(?:\s+(?:handle|account|profile|username|name))?"
            r"\s*(?:is|:|=)\s*@(\w{1,15})\b",
            re.IGNORECASE,
        ),
    ),
    (
        # Accounts and profiles get described ("is private"), handles get named.
        "possessive",
        re.compile(
            r"\bmy\s+(?:(?:twitter|x)(?:\s+(?:handle|username|name))?|handle|username)"
            r"\s*(?:is|:|=)\s*(\w{1,15})" + _CLAUSE_END,
            re.IGNORECASE | re.MULTILINE,
        ),
    ),
    (
        "analyze",
        re.compile(
            r"\b(?:analy[sz]e|check\s+out|check|look\s+at|scan)\s+(?:my\s+)?"
            r"(?:(?:twitter|x)\s+)?(?:(?:profile|account|handle)\s+)?@(\w{1,15})\b",
            re.IGNORECASE,
        ),
    ),
    (
        "correction",
        re.compile(
            r"^\s*(?:no,?\s+)?(?:it'?s\s+actually|actually\s+it'?s|actually|try|use)\s+"
            + _HANDLE
            + r"\s*[.!]?\s*$",
            re.IGNORECASE,
        ),
    ),
]

# Words that follow "is", "try" or "use" in ordinary chat and are never handles
# unless written with an "@".
BARE_HANDLE_STOPWORDS = frozenset({
    "again", "it", "that", "this", "these", "those", "something", "another",
    "later", "harder", "me", "them", "one", "both", "all", "more", "less",
    "private", "public", "protected", "locked", "suspended", "deleted", "gone",
    "new", "old", "empty", "inactive", "down", "fine", "great", "ok", "okay",
})


class IntentKind(Enum):
    """What the controller should do with a turn."""

    REFUSE = "refuse"
    ANALYZE_PROFILE = "analyze_profile"
    CHAT = "chat"


@dataclass(frozen=True)
class Intent:
    """Decision for an inbound turn."""

    kind: IntentKind
    subject: str | None = None
    pattern: str | None = None


def detect_injection(text: str) -> bool:
    """Return True if the text looks like an instruction-override attempt."""
    return any(p.search(text) for p in INJECTION_PATTERNS)


def normalize_handle(raw: str) -> str:
    return raw.strip().lstrip("@").strip().lower()


def match_handle(text: str) -> tuple[str, str] | None:
    """Return (pattern_name, handle) for the first matching pattern."""
    for name, pattern in HANDLE_PATTERNS:
        match = pattern.search(text)
        if match:
            handle = normalize_handle(match.group(1))
            bare = name != "url" and "@" not in match.group(0)
            if bare and handle in BARE_HANDLE_STOPWORDS:
                continue
            if handle:
                return name, handle
    return None


def extract_handle(text: str) -> str | None:
    """Extract a normalized handle from the text, or None."""
    found = match_handle(text)
    return found[1] if found else None


def classify(text: str) -> Intent:
    """Classify a turn. The injection check always runs first."""
    if detect_injection(text):
        return Intent(IntentKind.REFUSE)

    found = match_handle(text)
    if found:
        name, handle = found
        return Intent(IntentKind.ANALYZE_PROFILE, subject=handle, pattern=name)

    return Intent(IntentKind.CHAT)
