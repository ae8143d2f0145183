from __future__ import annotations

import math
import re
from datetime import date, datetime, timedelta, timezone
from typing import Iterable, Optional


# Formats seen in hand-made CSVs and spreadsheet exports, tried in order.
DATE_FORMATS = ("%Y-%m-%d", "%d/%m/%Y", "%d-%m-%Y", "%d/%m/%y", "%Y/%m/%d")

# Excel's day zero, accounting for its phantom 1900-02-29.
EXCEL_EPOCH = date(1899, 12, 30)

# Largest amount the expenses.amount column (Numeric(10, 2)) holds.
MAX_AMOUNT = 99_999_999.99


def parse_date(value: object) -> Optional[date]:
    """
    Coerce a date-like value to a date.

    Accepts date/datetime objects, ISO dates, ISO datetimes (the date part is
    kept) and the DATE_FORMATS variants. Numbers are Excel serials. Returns
    None when nothing matches or the serial is not a representable date.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not math.isfinite(value):
            return None
        if value <= 0:
            return None
        try:
            return EXCEL_EPOCH + timedelta(days=int(value))
        except OverflowError:
            return None

    text = str(value).strip()
    if not text:
        return None
    if "T" in text:
        text = text.split("T", 1)[0]
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    return None


def parse_datetime(value: object) -> Optional[datetime]:
    """Coerce an ISO timestamp (``Z`` suffix allowed) to an aware UTC datetime."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    text = str(value).strip()
    if not text:
        return None
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        return as_utc(datetime.fromisoformat(text))
    except (OverflowError, ValueError):
        parsed = parse_date(text)
        if parsed is None:
            return None
        return datetime(parsed.year, parsed.month, parsed.day, tzinfo=timezone.utc)


def as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes; everything stored is UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_amount(value: object) -> Optional[float]:
    """Parse a money amount, allowing "1,234.56" and a leading currency sign.

    Returns None for text that is not a number, for NaN or infinities, and
    for magnitudes above MAX_AMOUNT.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        raw = value
    else:
        raw = str(value).strip().replace(",", "").lstrip("$")
        if not raw:
            return None
    try:
        result = float(raw)
    except (OverflowError, ValueError):
        return None
    if not math.isfinite(result) or abs(result) > MAX_AMOUNT:
        return None
    return result


def initials(name: str) -> str:
    """First letters of the first two words, uppercased: "Alex Chen" -> "AC"."""
    letters = [word[0] for word in name.split() if word]
    return "".join(letters).upper()[:2]


def username_from_name(name: str) -> str:
    return re.sub(r"[^a-z0-9]", "", name.lower())


def next_id(existing_ids: Iterable[object]) -> str:
    """Next numeric id as a string; non-numeric ids are ignored."""
    numeric = []
    for value in existing_ids:
        try:
            numeric.append(int(str(value)))
        except (TypeError, ValueError):
            continue
    return str(max(numeric) + 1) if numeric else "1"
