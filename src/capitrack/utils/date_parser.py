"""Date parsing utilities."""

import re
from datetime import date, datetime, timedelta
from typing import Optional, Union
from dateutil import parser as date_parser
from dateutil.relativedelta import relativedelta

DateInput = Union[str, int, float, date, datetime]

# Excel's day zero, after accounting for its fictitious 1900-02-29
EXCEL_EPOCH = date(1899, 12, 30)
DAY_FIRST = "DD/MM/YYYY"
MONTH_FIRST = "MM/DD/YYYY"

_ISO_RE = re.compile(r"^(\d{4})[-/.](\d{1,2})[-/.](\d{1,2})(?:[T ].*)?$")
_NUMERIC_RE = re.compile(r"^(\d{1,2})[/.-](\d{1,2})[/.-](\d{4})(?: .*)?$")


def parse_date(date_str: str) -> date:
    """Parse a user-supplied date string into a date object.

    Supports absolute dates ("2024-01-15", "January 15, 2024") and a few
    relative forms: "today", "yesterday", "tomorrow", and "last/this/next"
    followed by "month" or "year" (first day of that period).

    Args:
        date_str: Date string

    Returns:
        Date object

    Raises:
        ValueError: If date string cannot be parsed
    """
    date_str = date_str.strip().lower()
    today = date.today()

    relative_dates = {
        "today": today,
        "yesterday": today - timedelta(days=1),
        "tomorrow": today + timedelta(days=1),
    }
    if date_str in relative_dates:
        return relative_dates[date_str]

    offsets = {"last ": -1, "this ": 0, "next ": 1}
    for prefix, offset in offsets.items():
        if date_str.startswith(prefix):
            period = date_str[len(prefix):]
            if period == "month":
                return (today + relativedelta(months=offset)).replace(day=1)
            if period == "year":
                return today.replace(month=1, day=1) + relativedelta(years=offset)

    try:
        return date_parser.parse(date_str).date()
    except (ValueError, TypeError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{date_str}': {e}")


def parse_transaction_date(value: DateInput, preferred_format: Optional[str] = None) -> date:
    """Parse a spreadsheet date cell into a date object.

    Handles:
    - date/datetime cells
    - Excel serial numbers (e.g. 45000)
    - ISO 8601: "2024-03-15", "2024/03/15", "2024-03-15T00:00:00"
    - "15/03/2024" and "03/15/2024"; when both readings are valid the
      preferred format decides, defaulting to day-first
    - anything else dateutil understands, read day-first

    Args:
        value: Cell value
        preferred_format: DAY_FIRST or MONTH_FIRST, for ambiguous dates

    Returns:
        Date object

    Raises:
        ValueError: If the value cannot be parsed
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, bool):
        raise ValueError(f"Could not parse date '{value}'")
    if isinstance(value, (int, float)):
        return _from_excel_serial(value)

    if value is None or not str(value).strip():
        raise ValueError("Empty date string")
    text = str(value).strip()

    if text.isdigit():
        return _from_excel_serial(int(text))

    match = _ISO_RE.match(text)
    if match:
        year, month, day = (int(part) for part in match.groups())
        return _build_date(text, year, month, day)

    match = _NUMERIC_RE.match(text)
    if match:
        first, second, year = (int(part) for part in match.groups())
        if preferred_format == MONTH_FIRST and first <= 12:
            return _build_date(text, year, first, second)
        if preferred_format == DAY_FIRST and second <= 12:
            return _build_date(text, year, second, first)
        if first > 12:
            return _build_date(text, year, second, first)
        if second > 12:
            return _build_date(text, year, first, second)
        # Ambiguous, day-first as in the exports we receive
        return _build_date(text, year, second, first)

    try:
        return date_parser.parse(text, dayfirst=True).date()
    except (ValueError, TypeError, OverflowError) as e:
        raise ValueError(f"Could not parse date '{text}': {e}")


def _from_excel_serial(serial: Union[int, float]) -> date:
    if not 0 < serial < 100000:
        raise ValueError(f"Could not parse date '{serial}': not an Excel serial date")
    return EXCEL_EPOCH + timedelta(days=int(serial))


def _build_date(text: str, year: int, month: int, day: int) -> date:
    try:
        return date(year, month, day)
    except ValueError as e:
        raise ValueError(f"Could not parse date '{text}': {e}")
