"""Date parsing and date-bucket labels.

Bucket labels (``granularity`` -> example):

- ``day``: ``2024-04-01``
- ``week``: ``Week 14 - 2024`` (week = ceil((days since Jan 1 + weekday of
  Jan 1, Sunday=0, + 1) / 7))
- ``month``: ``Apr-24``
- ``quarter``: ``2024-Q2``
- ``year``: ``2024``
- ``financialYear``: ``FY-2024`` (April starts the financial year)

Unparsable input buckets to ``"(blank)"``. Labels are produced with a fixed
English month table so results never depend on the process locale.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime, timedelta
from typing import Any

from dateutil import parser as date_parser

from .vocab import BLANK_LABEL

MONTH_ABBR: tuple[str, ...] = (
    "Jan",
    "Feb",
    "Mar",
    "Apr",
    "May",
    "Jun",
    "Jul",
    "Aug",
    "Sep",
    "Oct",
    "Nov",
    "Dec",
)
_MONTH_INDEX = {m.lower(): i + 1 for i, m in enumerate(MONTH_ABBR)}

# Financial years start in April (month index 3 when counting from zero).
FY_START_MONTH = 4

_ISO_RE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})(?:[T ].*)?$")
_COMPACT_RE = re.compile(r"^(\d{4})(\d{2})(\d{2})$")
_DMY_NAMED_RE = re.compile(r"^(\d{1,2})-([A-Za-z]{3,9})-(\d{2}|\d{4})$")

# Deterministic defaults for fields dateutil cannot infer from the input.
_PARSE_DEFAULT = datetime(1900, 1, 1)

# Matched case-insensitively; filters rebuild the canonical label from the date.
_BUCKET_LABEL_RES: dict[str, re.Pattern[str]] = {
    "day": re.compile(r"^(\d{4})-(\d{2})-(\d{2})$"),
    "week": re.compile(r"^Week (\d{1,2}) - (\d{4})$", re.IGNORECASE),
    "month": re.compile(r"^([A-Za-z]{3})-(\d{2})$"),
    "quarter": re.compile(r"^(\d{4})-Q([1-4])$", re.IGNORECASE),
    "year": re.compile(r"^(\d{4})$"),
    "financialYear": re.compile(r"^FY-(\d{4})$", re.IGNORECASE),
}


def _safe_date(year: int, month: int, day: int) -> date | None:
    try:
        return date(year, month, day)
    except ValueError:
        return None


def _two_digit_year(year: int) -> int:
    return 2000 + year if year < 50 else 1900 + year


def parse_date(value: Any) -> date | None:
    """Parse a voucher date into a :class:`datetime.date`.

    Accepts ISO ``YYYY-MM-DD`` (optionally followed by a time), compact
    ``YYYYMMDD``, Tally's ``D-MMM-YY`` / ``D-MMM-YYYY`` with a
    case-insensitive month name, and finally anything ``dateutil`` can read.
    Returns ``None`` when nothing matches.
    """

    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, int):
        value = str(value)
    if isinstance(value, float):
        if not math.isfinite(value) or not value.is_integer():
            return None
        value = str(int(value))
    if not isinstance(value, str):
        return None

    s = value.strip()
    if not s:
        return None

    m = _ISO_RE.match(s)
    if m:
        return _safe_date(int(m.group(1)), int(m.group(2)), int(m.group(3)))

    m = _COMPACT_RE.match(s)
    if m:
        return _safe_date(int(m.group(1)), int(m.group(2)), int(m.group(3)))

    m = _DMY_NAMED_RE.match(s)
    if m:
        month = _MONTH_INDEX.get(m.group(2)[:3].lower())
        if month is None:
            return None
        year = int(m.group(3))
        if len(m.group(3)) == 2:
            year = _two_digit_year(year)
        return _safe_date(year, month, int(m.group(1)))

    # Bare numbers are never dates here; dateutil would read "100" as a year.
    if s.isdigit():
        return None
    try:
        return date_parser.parse(s, default=_PARSE_DEFAULT).date()
    except (ValueError, OverflowError):
        return None


def week_number(d: date) -> int:
    jan1 = date(d.year, 1, 1)
    # Sunday=0 weekday numbering.
    jan1_weekday = (jan1.weekday() + 1) % 7
    return math.ceil(((d - jan1).days + jan1_weekday + 1) / 7)


def financial_year(d: date) -> int:
    return d.year - 1 if d.month < FY_START_MONTH else d.year


def bucket_date(d: date, granularity: str) -> str:
    """Return the bucket label of ``d`` for ``granularity``."""

    if granularity == "week":
        return f"Week {week_number(d)} - {d.year}"
    if granularity == "month":
        return f"{MONTH_ABBR[d.month - 1]}-{d.year % 100:02d}"
    if granularity == "quarter":
        return f"{d.year}-Q{(d.month - 1) // 3 + 1}"
    if granularity == "year":
        return str(d.year)
    if granularity == "financialYear":
        return f"FY-{financial_year(d)}"
    return d.isoformat()


def bucket_value(value: Any, granularity: str) -> str:
    """Parse ``value`` and bucket it; unparsable input yields ``"(blank)"``."""

    d = parse_date(value)
    if d is None:
        return BLANK_LABEL
    return bucket_date(d, granularity)


def is_bucket_label(label: str, granularity: str) -> bool:
    rx = _BUCKET_LABEL_RES.get(granularity)
    return bool(rx and rx.match(label))


def label_to_date(label: str) -> date | None:
    """Map a bucket label (any granularity) or raw date back to a date.

    The result is the first day of the bucket, which is enough to order
    labels chronologically.
    """

    s = label.strip()
    m = _BUCKET_LABEL_RES["week"].match(s)
    if m:
        start = _safe_date(int(m.group(2)), 1, 1)
        return start + timedelta(days=7 * (int(m.group(1)) - 1)) if start else None
    m = _BUCKET_LABEL_RES["month"].match(s)
    if m:
        month = _MONTH_INDEX.get(m.group(1).lower())
        return _safe_date(_two_digit_year(int(m.group(2))), month, 1) if month else None
    m = _BUCKET_LABEL_RES["quarter"].match(s)
    if m:
        return _safe_date(int(m.group(1)), (int(m.group(2)) - 1) * 3 + 1, 1)
    m = _BUCKET_LABEL_RES["year"].match(s)
    if m:
        return _safe_date(int(m.group(1)), 1, 1)
    m = _BUCKET_LABEL_RES["financialYear"].match(s)
    if m:
        return _safe_date(int(m.group(1)), FY_START_MONTH, 1)
    return parse_date(s)


__all__ = [
    "MONTH_ABBR",
    "bucket_date",
    "bucket_value",
    "financial_year",
    "is_bucket_label",
    "label_to_date",
    "parse_date",
    "week_number",
]
