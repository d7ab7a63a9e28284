"""
Date handling for data operations.

The LLM passes dates through from user text, so they arrive in whatever
shape the user typed: "2025-05-07", "May 7th", "7 May 2025", "yesterday".
parse_game_date() accepts the common forms and refuses to guess: a value
like "05/07/2025" could be May 7 or July 5, so it is rejected as ambiguous
instead of being silently resolved.
"""

from __future__ import annotations

import re
from datetime import date, timedelta

MONTHS = {
    name: index
    for index, names in enumerate(
        [
            ("january", "jan"),
            ("february", "feb"),
            ("march", "mar"),
            ("april", "apr"),
            ("may",),
            ("june", "jun"),
            ("july", "jul"),
            ("august", "aug"),
            ("september", "sep", "sept"),
            ("october", "oct"),
            ("november", "nov"),
            ("december", "dec"),
        ],
        start=1,
    )
    for name in names
}

RELATIVE_DAYS = {"today": 0, "tonight": 0, "yesterday": -1, "last night": -1, "tomorrow": 1}

_ISO_RE = re.compile(r"^(\d{4})-(\d{1,2})-(\d{1,2})$")
_COMPACT_RE = re.compile(r"^(\d{4})(\d{2})(\d{2})$")
_NUMERIC_RE = re.compile(r"^(\d{1,2})[/.](\d{1,2})(?:[/.](\d{2}|\d{4}))?$")
_MONTH_FIRST_RE = re.compile(r"^([a-z]+)\.?\s+(\d{1,2})(?:st|nd|rd|th)?(?:,?\s+(\d{4}))?$")
_DAY_FIRST_RE = re.compile(r"^(\d{1,2})(?:st|nd|rd|th)?\s+(?:of\s+)?([a-z]+)\.?(?:,?\s+(\d{4}))?$")


class DateParseError(ValueError):
    """Raised when a date string is invalid or ambiguous."""


def current_season(today: date | None = None) -> int:
    """
    ESPN season year for ``today``.

    ESPN labels a season by the calendar year it ends in: the 2024-25 season
    is 2025. Seasons tip off in October.
    """
    today = today or date.today()
    return today.year + 1 if today.month >= 10 else today.year


def _build(year: int, month: int, day: int, original: str) -> date:
    try:
        return date(year, month, day)
    except ValueError as e:
        raise DateParseError(f"Invalid date: {original!r} ({e})") from e


def _most_recent(month: int, day: int, today: date, original: str) -> date:
    """Resolve a month/day with no year to its latest occurrence on or before today."""
    # Eight years always contains a leap year, so Feb 29 resolves too
    for year in range(today.year, today.year - 8, -1):
        try:
            candidate = date(year, month, day)
        except ValueError:
            continue
        if candidate <= today:
            return candidate
    raise DateParseError(f"Invalid date: {original!r}")


def _month_number(name: str, original: str) -> int:
    month = MONTHS.get(name)
    if month is None:
        raise DateParseError(f"Unrecognized month in date: {original!r}")
    return month


def _expand_year(raw: str) -> int:
    year = int(raw)
    return year + 2000 if len(raw) == 2 else year


def parse_game_date(text: str, today: date | None = None) -> date:
    """
    Parse a user-supplied date.

    Accepted forms:
        2025-05-07, 20250507, today, yesterday, tomorrow,
        May 7, May 7th, May 7 2025, May 7th, 2025, 7 May 2025,
        numeric month/day forms when unambiguous (e.g. 5/17/2025, 17.05.2025)

    A date given without a year resolves to its most recent occurrence not
    after ``today``.

    Raises:
        DateParseError: If the text is empty, unrecognized, impossible, or
                        ambiguous (e.g. 05/07/2025)
    """
    today = today or date.today()
    original = text
    cleaned = " ".join((text or "").strip().lower().split())
    if not cleaned:
        raise DateParseError("No date provided")

    if cleaned in RELATIVE_DAYS:
        return today + timedelta(days=RELATIVE_DAYS[cleaned])

    match = _ISO_RE.match(cleaned) or _COMPACT_RE.match(cleaned)
    if match:
        year, month, day = (int(part) for part in match.groups())
        return _build(year, month, day, original)

    match = _MONTH_FIRST_RE.match(cleaned)
    if match:
        month = _month_number(match.group(1), original)
        day = int(match.group(2))
        if match.group(3):
            return _build(int(match.group(3)), month, day, original)
        return _most_recent(month, day, today, original)

    match = _DAY_FIRST_RE.match(cleaned)
    if match:
        month = _month_number(match.group(2), original)
        day = int(match.group(1))
        if match.group(3):
            return _build(int(match.group(3)), month, day, original)
        return _most_recent(month, day, today, original)

    match = _NUMERIC_RE.match(cleaned)
    if match:
        first, second = int(match.group(1)), int(match.group(2))
        if first <= 12 and second <= 12 and first != second:
            raise DateParseError(
                f"Ambiguous date {original!r}: could be month/day or day/month. "
                "Use YYYY-MM-DD or spell out the month."
            )
        # Month-first unless the first field can only be a day
        month, day = (second, first) if first > 12 else (first, second)
        if match.group(3):
            return _build(_expand_year(match.group(3)), month, day, original)
        return _most_recent(month, day, today, original)

    raise DateParseError(
        f"Unrecognized date format: {original!r}. Use YYYY-MM-DD or a form like 'May 7, 2025'."
    )


def espn_date(value: date) -> str:
    """Format a date the way ESPN's scoreboard expects (YYYYMMDD)."""
    return value.strftime("%Y%m%d")
