"""
Best-effort parsing of model-emitted dates and times.

Models are asked for ``YYYY-MM-DD`` / ``HH:MM`` but routinely answer with
"February 19, 2026" or "3pm". Parsing never raises: an unreadable date
becomes today and an unreadable time becomes noon, because creating an event
at a slightly wrong time is better than refusing the request.

Note that ``03/04/2026`` is read as March 4th: MM/DD is tried before DD/MM.
"""

import logging
import re
from datetime import date, datetime, time, tzinfo
from typing import NamedTuple

logger = logging.getLogger(__name__)

DATE_FORMATS = [
    "%Y-%m-%d",
    "%m/%d/%Y",
    "%d/%m/%Y",
    "%B %d, %Y",
    "%b %d, %Y",
    "%Y-%m-%dT%H:%M",
]

TIME_FORMATS = [
    "%H:%M",  # HH:mm and H:mm
    "%H:%M:%S",
    "%I:%M %p",
    "%I:%M%p",
    "%I%p",
    "%I %p",
    "%I:%M",
]

NOON = (12, 0)

_MANUAL_TIME = re.compile(
    r"(?P<hour>\d{1,2})(?:[:.h](?P<minute>\d{2}))?\s*(?P<meridiem>[ap])?\.?\s*m?\.?",
    re.IGNORECASE,
)


class ParsedTime(NamedTuple):
    hour: int
    minute: int
    is_fallback: bool = False

    def as_time(self) -> time:
        return time(self.hour, self.minute)


def parse_date(text: str | None, today: date | None = None) -> date:
    """Parse a date string, falling back to ``today``."""
    today = today or date.today()
    if not text:
        return today

    candidate = text.strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(candidate, fmt).date()
        except ValueError:
            continue

    try:
        return datetime.fromisoformat(candidate.replace("Z", "+00:00")).date()
    except ValueError:
        pass

    logger.warning(f"Unrecognised date '{text}', using {today.isoformat()}")
    return today


def _parse_time_manually(text: str) -> ParsedTime | None:
    match = _MANUAL_TIME.search(text)
    if not match:
        return None

    hour = int(match.group("hour"))
    minute = int(match.group("minute") or 0)
    meridiem = (match.group("meridiem") or "").lower()

    if meridiem == "p" and hour < 12:
        hour += 12
    elif meridiem == "a" and hour == 12:
        hour = 0

    if hour > 23 or minute > 59:
        return None
    return ParsedTime(hour, minute)


def parse_time(text: str | None) -> ParsedTime:
    """Parse a time of day, falling back to noon."""
    if not text:
        return ParsedTime(*NOON, is_fallback=True)

    candidate = " ".join(text.strip().split())
    for fmt in TIME_FORMATS:
        try:
            parsed = datetime.strptime(candidate, fmt)
            return ParsedTime(parsed.hour, parsed.minute)
        except ValueError:
            continue

    manual = _parse_time_manually(candidate)
    if manual is not None:
        return manual

    logger.warning(f"Unrecognised time '{text}', defaulting to noon")
    return ParsedTime(*NOON, is_fallback=True)


def combine(date_text: str | None, time_text: str | None, tz: tzinfo, today: date | None = None) -> datetime:
    """Resolve model date/time strings into an aware local datetime."""
    day = parse_date(date_text, today=today)
    clock = parse_time(time_text)
    return datetime.combine(day, clock.as_time(), tzinfo=tz)
