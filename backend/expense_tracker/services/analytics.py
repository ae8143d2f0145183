"""
Dashboard and report aggregates.

Everything here is a sum, a count or a percentage over the expense dicts
LocalStore returns. Amounts are rounded to cents on the way out.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date
from typing import Dict, List, Optional, Sequence

from expense_tracker.services.parsing import parse_amount, parse_date


MAX_REPORT_MONTHS = 25


def _amount(expense: dict) -> float:
    return parse_amount(expense.get("amount")) or 0.0


def _money(value: float) -> float:
    return round(value, 2)


def _for_user(expenses: Sequence[dict], user_id: Optional[str]) -> List[dict]:
    if not user_id:
        return list(expenses)
    return [expense for expense in expenses if expense.get("userId") == user_id]


def _month_key(expense: dict) -> str:
    expense_date = parse_date(expense.get("date"))
    return expense_date.strftime("%Y-%m") if expense_date else ""


def dashboard_stats(expenses: Sequence[dict], today: date, user_id: Optional[str] = None) -> dict:
    selected = _for_user(expenses, user_id)
    this_year = str(today.year)
    this_month = today.strftime("%Y-%m")
    previous = date(today.year - 1, 12, 1) if today.month == 1 else date(today.year, today.month - 1, 1)
    previous_month = previous.strftime("%Y-%m")

    year_expenses = [expense for expense in selected if _month_key(expense).startswith(this_year)]
    current_month_total = sum(_amount(e) for e in selected if _month_key(e) == this_month)
    previous_month_total = sum(_amount(e) for e in selected if _month_key(e) == previous_month)
    if previous_month_total > 0:
        monthly_change = (current_month_total - previous_month_total) / previous_month_total * 100
    else:
        monthly_change = 0.0

    dates = [d for d in (parse_date(e.get("date")) for e in selected) if d is not None]
    return {
        "total_spent": _money(sum(_amount(e) for e in selected)),
        "expense_count": len(selected),
        "current_year": this_year,
        "current_year_total": _money(sum(_amount(e) for e in year_expenses)),
        "current_year_count": len(year_expenses),
        "current_month_total": _money(current_month_total),
        "previous_month_total": _money(previous_month_total),
        "monthly_change": round(monthly_change, 1),
        "first_date": min(dates) if dates else None,
        "last_date": max(dates) if dates else None,
    }


def category_breakdown(
    expenses: Sequence[dict],
    categories: Sequence[dict],
    user_id: Optional[str] = None,
) -> List[dict]:
    selected = _for_user(expenses, user_id)
    grand_total = sum(_amount(e) for e in selected)
    totals: Dict[str, float] = defaultdict(float)
    counts: Dict[str, int] = defaultdict(int)
    for expense in selected:
        totals[expense.get("categoryId")] += _amount(expense)
        counts[expense.get("categoryId")] += 1

    rows = []
    for category in categories:
        total = totals.get(category["id"], 0.0)
        if total <= 0:
            continue
        rows.append(
            {
                "category_id": category["id"],
                "name": category["name"],
                "icon": category.get("icon") or "Tag",
                "color": category.get("color") or "text-blue-600",
                "total": _money(total),
                "count": counts[category["id"]],
                "percentage": round(total / grand_total * 100, 1) if grand_total > 0 else 0.0,
            }
        )
    rows.sort(key=lambda row: row["total"], reverse=True)
    return rows


def subcategory_breakdown(
    expenses: Sequence[dict],
    categories: Sequence[dict],
    category_id: str,
    user_id: Optional[str] = None,
) -> List[dict]:
    category = next((c for c in categories if c["id"] == category_id), None)
    if category is None:
        return []

    selected = [e for e in _for_user(expenses, user_id) if e.get("categoryId") == category_id]
    category_total = sum(_amount(e) for e in selected)
    rows = []
    for sub in category.get("subcategories") or []:
        matching = [e for e in selected if e.get("subcategoryId") == sub["id"]]
        total = sum(_amount(e) for e in matching)
        if total <= 0:
            continue
        rows.append(
            {
                "subcategory_id": sub["id"],
                "name": sub["name"],
                "total": _money(total),
                "count": len(matching),
                "percentage": round(total / category_total * 100, 1) if category_total > 0 else 0.0,
            }
        )
    rows.sort(key=lambda row: row["total"], reverse=True)
    return rows


def month_range(start: date, end: date) -> List[str]:
    """Inclusive ``YYYY-MM`` labels from ``start`` to ``end``, at most MAX_REPORT_MONTHS."""
    months = []
    year, month = start.year, start.month
    while (year, month) <= (end.year, end.month) and len(months) < MAX_REPORT_MONTHS:
        months.append(f"{year:04d}-{month:02d}")
        year, month = (year + 1, 1) if month == 12 else (year, month + 1)
    return months


def monthly_report(
    expenses: Sequence[dict],
    users: Sequence[dict],
    categories: Sequence[dict],
    start: date,
    end: date,
    user_id: Optional[str] = None,
    category_id: Optional[str] = None,
) -> dict:
    """
    Spreadsheet-style report: one row per subcategory, one column per month.

    Only expenses of active users count. Rows and user totals with nothing
    spent are left out; both are sorted by total, largest first.
    """
    active_users = [user for user in users if user.get("isActive", True)]
    active_ids = {user["id"] for user in active_users}

    selected = []
    for expense in expenses:
        if expense.get("userId") not in active_ids:
            continue
        if user_id and expense.get("userId") != user_id:
            continue
        if category_id and expense.get("categoryId") != category_id:
            continue
        expense_date = parse_date(expense.get("date"))
        if expense_date is None or not start <= expense_date <= end:
            continue
        selected.append(expense)

    months = month_range(start, end)
    if category_id:
        subcategories = [
            sub for category in categories if category["id"] == category_id for sub in category.get("subcategories") or []
        ]
    else:
        subcategories = [sub for category in categories for sub in category.get("subcategories") or []]

    rows = []
    for sub in subcategories:
        matching = [e for e in selected if e.get("subcategoryId") == sub["id"]]
        total = sum(_amount(e) for e in matching)
        if total <= 0:
            continue
        by_month: Dict[str, float] = defaultdict(float)
        for expense in matching:
            by_month[_month_key(expense)] += _amount(expense)
        rows.append(
            {
                "subcategory_id": sub["id"],
                "category_id": sub.get("categoryId") or "",
                "name": sub["name"],
                "monthly_totals": [_money(by_month.get(month, 0.0)) for month in months],
                "total": _money(total),
            }
        )
    rows.sort(key=lambda row: row["total"], reverse=True)

    month_totals: Dict[str, float] = defaultdict(float)
    for expense in selected:
        month_totals[_month_key(expense)] += _amount(expense)

    user_rows = []
    for user in active_users:
        matching = [e for e in selected if e.get("userId") == user["id"]]
        total = sum(_amount(e) for e in matching)
        if total > 0:
            user_rows.append({"user_id": user["id"], "name": user["name"], "total": _money(total), "count": len(matching)})
    user_rows.sort(key=lambda row: row["total"], reverse=True)

    return {
        "start_date": start,
        "end_date": end,
        "months": months,
        "rows": rows,
        "monthly_totals": [_money(month_totals.get(month, 0.0)) for month in months],
        "user_totals": user_rows,
        "grand_total": _money(sum(_amount(e) for e in selected)),
    }
