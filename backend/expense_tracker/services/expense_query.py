from __future__ import annotations

import calendar
import math
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

from expense_tracker.errors import ValidationError
from expense_tracker.services.parsing import parse_amount, parse_date


DateRange = Tuple[date, date]

DATE_PRESETS = ("all", "today", "yesterday", "thisWeek", "lastWeek", "thisMonth", "lastMonth", "thisYear", "custom")
REPORT_PERIODS = ("thisMonth", "lastMonth", "thisYear", "lastYear", "last12Months")
SORT_FIELDS = ("date", "amount", "description", "user", "category")


@dataclass
class ExpenseFilters:
    search: str = ""
    category_id: str = ""
    subcategory_id: str = ""
    user_id: str = ""
    location: str = ""
    date_preset: str = "all"
    start_date: Optional[date] = None
    end_date: Optional[date] = None


def _month_bounds(year: int, month: int) -> DateRange:
    return date(year, month, 1), date(year, month, calendar.monthrange(year, month)[1])


def _previous_month(day: date) -> Tuple[int, int]:
    return (day.year - 1, 12) if day.month == 1 else (day.year, day.month - 1)


def date_range_from_preset(
    preset: str,
    today: date,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> Optional[DateRange]:
    """Inclusive (start, end) for a filter preset; None means no date filter."""
    if preset == "all":
        return None
    if preset == "today":
        return today, today
    if preset == "yesterday":
        yesterday = today - timedelta(days=1)
        return yesterday, yesterday
    if preset in ("thisWeek", "lastWeek"):
        # Weeks run Sunday to Saturday.
        sunday = today - timedelta(days=(today.weekday() + 1) % 7)
        if preset == "lastWeek":
            sunday -= timedelta(days=7)
        return sunday, sunday + timedelta(days=6)
    if preset == "thisMonth":
        return _month_bounds(today.year, today.month)
    if preset == "lastMonth":
        return _month_bounds(*_previous_month(today))
    if preset == "thisYear":
        return date(today.year, 1, 1), date(today.year, 12, 31)
    if preset == "custom":
        return (start, end) if start and end else None
    raise ValidationError(f"Unknown date preset: {preset!r}")


def report_period(preset: str, today: date) -> DateRange:
    if preset == "thisMonth":
        return _month_bounds(today.year, today.month)
    if preset == "lastMonth":
        return _month_bounds(*_previous_month(today))
    if preset == "thisYear":
        return date(today.year, 1, 1), date(today.year, 12, 31)
    if preset == "lastYear":
        return date(today.year - 1, 1, 1), date(today.year - 1, 12, 31)
    if preset == "last12Months":
        month_index = today.year * 12 + today.month - 1 - 11
        start = date(month_index // 12, month_index % 12 + 1, 1)
        return start, _month_bounds(today.year, today.month)[1]
    raise ValidationError(f"Unknown report period: {preset!r}")


def _contains(value: Optional[str], needle: str) -> bool:
    return bool(value) and needle in value.lower()


def filter_expenses(
    expenses: Sequence[dict],
    users: Sequence[dict],
    categories: Sequence[dict],
    filters: ExpenseFilters,
    today: Optional[date] = None,
) -> List[dict]:
    users_by_id = {user["id"]: user for user in users}
    categories_by_id = {category["id"]: category for category in categories}
    subcategory_names: Dict[str, str] = {
        sub["id"]: sub["name"] for category in categories for sub in category.get("subcategories") or []
    }
    date_range = date_range_from_preset(filters.date_preset, today or date.today(), filters.start_date, filters.end_date)
    if date_range is None and filters.date_preset == "all" and (filters.start_date or filters.end_date):
        date_range = (filters.start_date or date.min, filters.end_date or date.max)

    search = filters.search.strip().lower()
    location = filters.location.strip().lower()

    matched = []
    for expense in expenses:
        if filters.user_id and expense.get("userId") != filters.user_id:
            continue
        if filters.category_id and expense.get("categoryId") != filters.category_id:
            continue
        if filters.subcategory_id and expense.get("subcategoryId") != filters.subcategory_id:
            continue
        if location and not (
            _contains(expense.get("storeLocation"), location) or _contains(expense.get("storeName"), location)
        ):
            continue
        if search:
            user = users_by_id.get(expense.get("userId")) or {}
            category = categories_by_id.get(expense.get("categoryId")) or {}
            haystack = (
                expense.get("description"),
                category.get("name"),
                subcategory_names.get(expense.get("subcategoryId")),
                user.get("name"),
                expense.get("storeName"),
                expense.get("storeLocation"),
            )
            if not any(_contains(value, search) for value in haystack):
                continue
        if date_range is not None:
            expense_date = parse_date(expense.get("date"))
            if expense_date is None or not date_range[0] <= expense_date <= date_range[1]:
                continue
        matched.append(expense)
    return matched


def sort_expenses(
    expenses: Sequence[dict],
    sort_by: str = "date",
    order: str = "desc",
    users: Sequence[dict] = (),
    categories: Sequence[dict] = (),
) -> List[dict]:
    if sort_by not in SORT_FIELDS:
        raise ValidationError(f"Unknown sort field: {sort_by!r}. Expected one of: {', '.join(SORT_FIELDS)}")
    if order not in ("asc", "desc"):
        raise ValidationError(f"Sort order must be 'asc' or 'desc', got {order!r}")

    user_names = {user["id"]: user["name"] for user in users}
    category_names = {category["id"]: category["name"] for category in categories}
    keys = {
        "date": lambda e: parse_date(e.get("date")) or date.min,
        "amount": lambda e: parse_amount(e.get("amount")) or 0.0,
        "description": lambda e: (e.get("description") or "").lower(),
        "user": lambda e: user_names.get(e.get("userId"), "").lower(),
        "category": lambda e: category_names.get(e.get("categoryId"), "").lower(),
    }
    # sorted() is stable in both directions.
    return sorted(expenses, key=keys[sort_by], reverse=order == "desc")


def unique_locations(expenses: Sequence[dict]) -> List[str]:
    seen = set()
    for expense in expenses:
        for value in (expense.get("storeLocation"), expense.get("storeName")):
            if value and value.strip():
                seen.add(value.strip())
    return sorted(seen, key=str.lower)


def paginate(items: Sequence[dict], page: int = 1, page_size: int = 20) -> Dict[str, object]:
    if page < 1 or page_size < 1:
        raise ValidationError("page and page_size must be positive")
    total = len(items)
    pages = max(1, math.ceil(total / page_size))
    start = (page - 1) * page_size
    return {
        "items": list(items[start:start + page_size]),
        "total": total,
        "page": page,
        "page_size": page_size,
        "pages": pages,
    }
