"""
Date normalization for broker trade exports.

Broker exports disagree on date layout, and values such as "03-04-2024" are
genuinely ambiguous. Candidate layouts are tried in a fixed priority order and
the first range-valid reading wins; DD-MM-YYYY goes first because most of the
supported dialects default to it.
"""

import logging
import re
import warnings
from datetime import date, datetime
from typing import Optional

import pandas as pd


logger = logging.getLogger(__name__)

MIN_YEAR = 2000
MAX_YEAR = 2100

_NON_DATE_CHARS = re.compile(r"[^\d\-/]")

_SEP = r"[-/]"

# (layout name, pattern, group order as (day, month, year) indexes)
_CANDIDATE_PATTERNS = [
    ("DD-MM-YYYY", re.compile(rf"^(\d{{1,2}}){_SEP}(\d{{1,2}}){_SEP}(\d{{4}})$"), (0, 1, 2)),
    ("YYYY-MM-DD", re.compile(rf"^(\d{{4}}){_SEP}(\d{{1,2}}){_SEP}(\d{{1,2}})$"), (2, 1, 0)),
    ("MM-DD-YYYY", re.compile(rf"^(\d{{1,2}}){_SEP}(\d{{1,2}}){_SEP}(\d{{4}})$"), (1, 0, 2)),
    ("DD-YYYY-MM", re.compile(rf"^(\d{{1,2}}){_SEP}(\d{{4}}){_SEP}(\d{{1,2}})$"), (0, 2, 1)),
    ("YYYY-DD-MM", re.compile(rf"^(\d{{4}}){_SEP}(\d{{1,2}}){_SEP}(\d{{1,2}})$"), (1, 2, 0)),
]

# Named-month layouts seen in exports ("Sep 3, 2025", "15 Mar 2024", ...)
_NAMED_MONTH_FORMATS = [
    "%b %d, %Y",
    "%B %d, %Y",
    "%d %b %Y",
    "%d %B %Y",
    "%d-%b-%Y",
    "%d-%b-%y",
]


def _in_range(day: int, month: int, year: int) -> bool:
    if not (1 <= day <= 31 and 1 <= month <= 12 and MIN_YEAR <= year <= MAX_YEAR):
        return False
    # 31-02-2024 is range-valid but not a calendar date; let later layouts try
    try:
        date(year, month, day)
    except ValueError:
        return False
    return True


def _format(day: int, month: int, year: int) -> str:
    return f"{year:04d}-{month:02d}-{day:02d}"


def _strip_time(value: str) -> str:
    """Drop a trailing time component ("2024-03-15 09:15", "2024-03-15T09:15")."""
    return value.split(" ")[0].split("T")[0].strip()


def _match_candidates(cleaned: str) -> Optional[str]:
    for _name, pattern, (day_idx, month_idx, year_idx) in _CANDIDATE_PATTERNS:
        match = pattern.match(cleaned)
        if not match:
            continue
        parts = [int(g) for g in match.groups()]
        day, month, year = parts[day_idx], parts[month_idx], parts[year_idx]
        if _in_range(day, month, year):
            return _format(day, month, year)
    return None


def _fallback_parse(value: str) -> Optional[str]:
    """Last-resort parse of the untouched string."""
    for fmt in _NAMED_MONTH_FORMATS:
        try:
            parsed = datetime.strptime(value, fmt)
        except ValueError:
            continue
        if _in_range(parsed.day, parsed.month, parsed.year):
            return _format(parsed.day, parsed.month, parsed.year)

    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        try:
            parsed = pd.to_datetime(value, errors="coerce")
        except (ValueError, TypeError, OverflowError):
            return None

    if parsed is None or pd.isna(parsed):
        return None
    if _in_range(parsed.day, parsed.month, parsed.year):
        return _format(parsed.day, parsed.month, parsed.year)
    return None


def _normalize_text(text: str) -> Optional[str]:
    cleaned = _NON_DATE_CHARS.sub("", _strip_time(text))
    result = _match_candidates(cleaned) if cleaned else None
    if result is None:
        result = _fallback_parse(text)
    return result


def looks_like_date(value) -> bool:
    """True if normalize_date would parse value. Logs nothing."""
    if value is None:
        return False
    text = str(value).strip()
    return bool(text) and _normalize_text(text) is not None


def normalize_date(value) -> Optional[str]:
    """
    Normalize a free-form date/time value to ``YYYY-MM-DD``.

    Candidate layouts are tried in order: DD-MM-YYYY, YYYY-MM-DD, MM-DD-YYYY,
    DD-YYYY-MM, YYYY-DD-MM, each validated for day 1-31, month 1-12 and year
    2000-2100. Named-month layouts and a generic parse are the fallback.

    Args:
        value: Date string, or a date/datetime object

    Returns:
        Canonical date string, or None if the value cannot be parsed.
        Never raises.

    Example:
        >>> normalize_date("15-03-2024")
        '2024-03-15'
    """
    if isinstance(value, datetime):
        value = value.date()
    if isinstance(value, date):
        if MIN_YEAR <= value.year <= MAX_YEAR:
            return value.isoformat()
        return None

    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None

    result = _normalize_text(text)
    if result is None:
        logger.warning('Could not parse date: "%s"', text)
    return result


def parse_trade_date(value) -> Optional[date]:
    """Like normalize_date, but returns a date object."""
    normalized = normalize_date(value)
    if normalized is None:
        return None
    return date.fromisoformat(normalized)
