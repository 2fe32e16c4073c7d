"""
Event title extraction from free-form user requests.

When the model proposes a placeholder title ("New Event", "Meeting", ...)
we rebuild one from what the user actually typed:

    "schedule a dentist appointment tomorrow at 3pm" -> "Dentist Appointment"

This is a heuristic, not a grammar. It always returns a non-empty title of at
most MAX_TITLE_LENGTH characters.
"""

import re

FALLBACK_TITLE = "New Event"
MAX_TITLE_LENGTH = 60

# Placeholder titles that carry no information about the event
GENERIC_EVENT_TITLES = frozenset({
    "new event",
    "event",
    "untitled",
    "untitled event",
    "no title",
    "meeting",
    "new meeting",
    "appointment",
    "new appointment",
    "reminder",
    "calendar event",
    "my event",
})

_FILLER_PREFIXES = [
    "schedule a ",
    "schedule an ",
    "schedule ",
    "add a ",
    "add an ",
    "add ",
    "create a ",
    "create an ",
    "create ",
    "book a ",
    "book an ",
    "book ",
    "set up a ",
    "set up an ",
    "set up ",
    "put a ",
    "put ",
    "plan a ",
    "plan ",
    "remind me to ",
    "remind me about ",
    "remind me of ",
    "add an event called ",
    "add an event for ",
    "add a meeting called ",
    "add a meeting with ",
    "create an event called ",
    "create an event for ",
    "create a meeting called ",
    "create a meeting with ",
    "schedule an event called ",
    "schedule an event for ",
    "schedule a meeting called ",
    "schedule a meeting about ",
    "schedule a meeting for ",
    "schedule a call with ",
    "schedule a meeting with ",
    "set up a meeting with ",
    "set up a call with ",
    "put on my calendar ",
    "add to my calendar ",
    "can you schedule a ",
    "can you schedule ",
    "can you add a ",
    "can you add ",
    "can you create a ",
    "can you book a ",
    "please schedule a ",
    "please schedule ",
    "please add a ",
    "please add ",
    "please create a ",
    "i need to schedule a ",
    "i need to schedule ",
    "i want to schedule a ",
    "i want to schedule ",
    "i have a ",
    "i have an ",
    "new event ",
    "event: ",
    "meeting: ",
]

# Longest first so "schedule a meeting with " wins over "schedule a "
FILLER_PREFIXES = sorted(_FILLER_PREFIXES, key=len, reverse=True)

_WEEKDAYS = r"(?:mon|tues|wednes|thurs|fri|satur|sun)day"
_MONTHS = r"(?:jan|feb|mar|apr|may|jun|jul|aug|sep|sept|oct|nov|dec)[a-z]*\.?"
_CLOCK = r"\d{1,2}(?::\d{2})?\s*(?:am|pm|a\.m\.|p\.m\.)?"

TRAILING_CLAUSE_PATTERNS = [
    re.compile(rf"(?:^|\s+)(?:at|@)\s+{_CLOCK}(?:\s|$|[.,!?]).*$", re.IGNORECASE),
    re.compile(r"(?:^|\s+)at\s+(?:noon|midnight)\b.*$", re.IGNORECASE),
    re.compile(rf"(?:^|\s+)(?:from|between)\s+{_CLOCK}(?:\s|$|[.,!?]).*$", re.IGNORECASE),
    re.compile(rf"(?:^|\s+)on\s+(?:next\s+)?{_WEEKDAYS}\b.*$", re.IGNORECASE),
    re.compile(rf"(?:^|\s+)on\s+(?:the\s+)?\d{{1,2}}(?:st|nd|rd|th)?\b.*$", re.IGNORECASE),
    re.compile(rf"(?:^|\s+)on\s+{_MONTHS}\s+\d{{1,2}}\b.*$", re.IGNORECASE),
    re.compile(r"(?:^|\s+)on\s+\d{1,4}[/-]\d{1,2}(?:[/-]\d{1,4})?\b.*$", re.IGNORECASE),
    re.compile(
        r"(?:^|\s+)(?:today|tonight|tomorrow|tmrw|the\s+day\s+after\s+tomorrow)\b.*$",
        re.IGNORECASE,
    ),
    re.compile(
        rf"(?:^|\s+)(?:this|next)\s+(?:{_WEEKDAYS}|week|weekend|month|morning|afternoon|evening)\b.*$",
        re.IGNORECASE,
    ),
    re.compile(rf"(?:^|\s+){_WEEKDAYS}\s+(?:at|morning|afternoon|evening)\b.*$", re.IGNORECASE),
    re.compile(
        r"(?:^|\s+)for\s+(?:\d+(?:\.\d+)?|an?|one|two|half\s+an?)\s*"
        r"(?:minutes?|mins?|hours?|hrs?|h)\b.*$",
        re.IGNORECASE,
    ),
    re.compile(r"(?:^|\s+)in\s+(?:the\s+)?(?:morning|afternoon|evening)\b.*$", re.IGNORECASE),
    re.compile(r"(?:^|\s+)in\s+\d+\s+(?:minutes?|hours?|days?|weeks?)\b.*$", re.IGNORECASE),
]

MINOR_WORDS = frozenset({"a", "an", "the", "and", "or", "but", "in", "on", "at", "to", "for", "of", "with"})

_TRAILING_PUNCTUATION = " \t\r\n.,;:!?-"


def is_generic_title(title: str | None) -> bool:
    """True when the title is empty or a known low-information placeholder."""
    if title is None:
        return True
    normalized = title.strip().lower()
    return not normalized or normalized in GENERIC_EVENT_TITLES


def strip_filler_prefix(text: str) -> str:
    """Remove the first matching filler prefix, if any."""
    lowered = text.lower()
    for prefix in FILLER_PREFIXES:
        if lowered.startswith(prefix):
            return text[len(prefix):]
    return text


def strip_trailing_clauses(text: str) -> str:
    """Cut time/date clauses off the end until none remain."""
    changed = True
    while changed and text:
        changed = False
        for pattern in TRAILING_CLAUSE_PATTERNS:
            match = pattern.search(text)
            if match:
                text = text[:match.start()]
                changed = True
    return text


def title_case(text: str) -> str:
    words = text.split()
    cased = []
    for index, word in enumerate(words):
        if index > 0 and word.lower() in MINOR_WORDS:
            cased.append(word.lower())
        else:
            cased.append(word[:1].upper() + word[1:])
    result = " ".join(cased)
    return result[:1].upper() + result[1:]


def extract_title(raw_message: str | None) -> str:
    """Derive a clean event title from a user's request."""
    text = (raw_message or "").strip()
    text = strip_filler_prefix(text)
    text = strip_trailing_clauses(text)
    text = text.rstrip(_TRAILING_PUNCTUATION).strip()
    text = title_case(text)

    if len(text) < 2:
        return FALLBACK_TITLE
    return text[:MAX_TITLE_LENGTH].rstrip()
