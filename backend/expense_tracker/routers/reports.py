from __future__ import annotations

from datetime import date
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query, status

from expense_tracker.db import get_session
from expense_tracker.schemas import (
    CategoryBreakdownItem,
    DashboardStatsOut,
    MonthlyReportOut,
    SubcategoryBreakdownItem,
)
from expense_tracker.services import analytics
from expense_tracker.services.expense_query import report_period
from expense_tracker.services.store import LocalStore


router = APIRouter()


@router.get("/dashboard", response_model=DashboardStatsOut)
async def dashboard(user_id: Optional[str] = Query(default=None, alias="userId")) -> dict:
    with get_session() as session:
        expenses = LocalStore(session).get_expenses()
    return analytics.dashboard_stats(expenses, date.today(), user_id)


@router.get("/categories", response_model=List[CategoryBreakdownItem])
async def categories(user_id: Optional[str] = Query(default=None, alias="userId")) -> List[dict]:
    with get_session() as session:
        store = LocalStore(session)
        return analytics.category_breakdown(store.get_expenses(), store.get_categories(), user_id)


@router.get("/categories/{category_id}/subcategories", response_model=List[SubcategoryBreakdownItem])
async def subcategories(category_id: str, user_id: Optional[str] = Query(default=None, alias="userId")) -> List[dict]:
    with get_session() as session:
        store = LocalStore(session)
        store.require("categories", category_id)
        return analytics.subcategory_breakdown(store.get_expenses(), store.get_categories(), category_id, user_id)


@router.get("/monthly", response_model=MonthlyReportOut)
async def monthly(
    start_date: Optional[date] = Query(default=None, alias="startDate"),
    end_date: Optional[date] = Query(default=None, alias="endDate"),
    period: str = "thisYear",
    user_id: Optional[str] = Query(default=None, alias="userId"),
    category_id: Optional[str] = Query(default=None, alias="categoryId"),
) -> dict:
    """
    Month-by-month totals per subcategory.

    ``startDate``/``endDate`` win when both are given; otherwise ``period``
    picks the range (thisMonth, lastMonth, thisYear, lastYear, last12Months).
    """
    if start_date and end_date:
        if start_date > end_date:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="startDate must not be after endDate",
            )
        start, end = start_date, end_date
    else:
        start, end = report_period(period, date.today())

    with get_session() as session:
        store = LocalStore(session)
        return analytics.monthly_report(
            store.get_expenses(),
            store.get_users(),
            store.get_categories(),
            start,
            end,
            user_id=user_id,
            category_id=category_id,
        )
