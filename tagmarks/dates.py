"""
Date parsing for query arguments.

Dates in queries are calendar days in the local timezone. A query
argument is tried against each converter in DATE_CONVERTERS in order;
the first one that succeeds wins.
"""

import calendar
import re
from datetime import date, datetime, timedelta
from typing import Callable, Optional

ABSOLUTE_DATE_FORMATS = ("%Y/%m/%d", "%Y-%m-%d")

_AGO_RE = re.compile(
    r"^(?P<n>\d+|an?|one)\s*(?P<unit>day|week|month|year)s?\s+ago$"
)
_DURATION_RE = re.compile(
    r"^P(?:(?P<years>\d+)Y)?(?:(?P<months>\d+)M)?(?:(?P<weeks>\d+)W)?(?:(?P<days>\d+)D)?"
    r"(?:T(?:(?P<hours>\d+)H)?(?:(?P<minutes>\d+)M)?(?:(?P<seconds>\d+)S)?)?$"
)


def strip_time(dt: Optional[datetime]) -> Optional[date]:
    """Local calendar date of a timestamp; None stays None."""
    if dt is None:
        return None
    return dt.astimezone().date()


def months_before(d: date, months: int) -> date:
    """Same day `months` calendar months earlier, clamped to month end."""
    total = d.year * 12 + (d.month - 1) - months
    year, month = divmod(total, 12)
    month += 1
    day = min(d.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def parse_absolute_date(text: str) -> date:
    """
    Parse a year/month/day date: 2021/06/15 or 2021-06-15.

    Raises:
        ValueError: If text is not such a date
    """
    text = text.strip()
    for fmt in ABSOLUTE_DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            pass
    raise ValueError(f"Not a yyyy/mm/dd date: {text!r}")


def parse_relative_date(text: str, today: Optional[date] = None) -> date:
    """
    Parse a date relative to today.

    Accepts:
    - today, yesterday
    - N days/weeks/months/years ago (also "a week ago")
    - ISO 8601 duration back from now: P3D (3 days), P1W (1 week),
      P1M, P1Y, PT12H, P1DT12H, etc.

    Raises:
        ValueError: If text is not a relative date
    """
    today = today or date.today()
    text = text.strip().lower()

    if text == "today":
        return today
    if text == "yesterday":
        return today - timedelta(days=1)

    try:
        return _relative_to(text, today)
    except OverflowError:
        raise ValueError(f"Date out of range: {text!r}") from None


def _relative_to(text: str, today: date) -> date:
    m = _AGO_RE.match(text)
    if m:
        n = m.group("n")
        n = int(n) if n.isdigit() else 1
        unit = m.group("unit")
        if unit == "day":
            return today - timedelta(days=n)
        if unit == "week":
            return today - timedelta(weeks=n)
        if unit == "month":
            return months_before(today, n)
        return months_before(today, 12 * n)

    m = _DURATION_RE.match(text.upper())
    if m and text.upper() not in ("P", "PT"):
        parts = {k: int(v) if v else 0 for k, v in m.groupdict().items()}
        start = months_before(today, parts["years"] * 12 + parts["months"])
        moment = datetime.combine(start, datetime.now().time()) - timedelta(
            weeks=parts["weeks"],
            days=parts["days"],
            hours=parts["hours"],
            minutes=parts["minutes"],
            seconds=parts["seconds"],
        )
        return moment.date()

    raise ValueError(f"Not a relative date: {text!r}")


DateConverter = Callable[[str], date]

# Tried in order; the first converter that doesn't raise wins
DATE_CONVERTERS: tuple[DateConverter, ...] = (
    parse_absolute_date,
    parse_relative_date,
)


def parse_date(text: str) -> date:
    """
    Convert a query argument to a date using the first converter that works.

    Raises:
        ValueError: If no converter accepts the text
    """
    for convert in DATE_CONVERTERS:
        try:
            return convert(text)
        except ValueError:
            continue
    raise ValueError(f"unable to convert '{text}' to a date")
