from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from typing import List, Optional, Union

from fastapi import APIRouter, HTTPException, Query, Response, status

from expense_tracker.db import get_session
from expense_tracker.errors import ValidationError
from expense_tracker.models import Expense, ExpenseAttachment
from expense_tracker.schemas import AttachmentCreate, AttachmentOut, ExpenseCreate, ExpenseOut, ExpensePage, ExpenseUpdate
from expense_tracker.services.expense_query import ExpenseFilters, filter_expenses, paginate, sort_expenses, unique_locations
from expense_tracker.services.parsing import next_id
from expense_tracker.services.store import LocalStore, attachment_to_dict


router = APIRouter()


def check_references(store: LocalStore, expense: dict) -> None:
    """The user, category and subcategory of a new or edited expense must exist."""
    if store.get("users", expense["userId"]) is None:
        raise ValidationError(f"User {expense['userId']!r} not found")
    category = store.get("categories", expense["categoryId"])
    if category is None:
        raise ValidationError(f"Category {expense['categoryId']!r} not found")
    if not any(sub["id"] == expense["subcategoryId"] for sub in category["subcategories"]):
        raise ValidationError(
            f"Subcategory {expense['subcategoryId']!r} not found in category {category['name']!r}"
        )


def _new_attachment(payload: AttachmentCreate) -> dict:
    return {
        "id": uuid.uuid4().hex,
        "name": payload.name,
        "type": payload.type,
        "size": payload.size,
        "dataUrl": payload.data_url,
        "uploadedAt": datetime.now(timezone.utc).isoformat(),
    }


def _expense_from_payload(payload: ExpenseCreate, expense_id: str) -> dict:
    data = payload.model_dump(by_alias=True, exclude={"attachments"})
    data["id"] = expense_id
    data["date"] = payload.date.isoformat()
    data["createdAt"] = datetime.now(timezone.utc).isoformat()
    data["attachments"] = [_new_attachment(attachment) for attachment in payload.attachments]
    return data


@router.get("/expenses", response_model=Union[ExpensePage, List[ExpenseOut]])
async def list_expenses(
    user_id: Optional[str] = Query(default=None, alias="userId"),
    category_id: Optional[str] = Query(default=None, alias="categoryId"),
    subcategory_id: Optional[str] = Query(default=None, alias="subcategoryId"),
    search: str = "",
    location: str = "",
    date_preset: str = Query(default="all", alias="datePreset"),
    start_date: Optional[date] = Query(default=None, alias="startDate"),
    end_date: Optional[date] = Query(default=None, alias="endDate"),
    sort_by: str = Query(default="date", alias="sortBy"),
    sort_order: str = Query(default="desc", alias="sortOrder"),
    page: Optional[int] = Query(default=None, ge=1),
    page_size: Optional[int] = Query(default=None, alias="pageSize", ge=1, le=500),
):
    """
    List expenses with the expenses-page filters applied.

    Without ``page``/``pageSize`` the whole filtered list comes back as a
    plain array; with either one, an ExpensePage envelope is returned.
    """
    with get_session() as session:
        store = LocalStore(session)
        expenses = store.get_expenses()
        users = store.get_users()
        categories = store.get_categories()

    filters = ExpenseFilters(
        search=search,
        category_id=category_id or "",
        subcategory_id=subcategory_id or "",
        user_id=user_id or "",
        location=location,
        date_preset=date_preset,
        start_date=start_date,
        end_date=end_date,
    )
    matched = filter_expenses(expenses, users, categories, filters)
    ordered = sort_expenses(matched, sort_by, sort_order, users, categories)
    if page is None and page_size is None:
        return ordered
    return paginate(ordered, page or 1, page_size or 20)


@router.get("/expenses/locations", response_model=List[str])
async def list_locations() -> List[str]:
    with get_session() as session:
        return unique_locations(LocalStore(session).get_expenses())


@router.get("/expenses/{expense_id}", response_model=ExpenseOut)
async def get_expense(expense_id: str) -> dict:
    with get_session() as session:
        expense = LocalStore(session).get("expenses", expense_id)
    if expense is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Expense not found")
    return expense


@router.post("/expenses", response_model=ExpenseOut, status_code=status.HTTP_201_CREATED)
async def create_expense(payload: ExpenseCreate) -> dict:
    with get_session() as session:
        store = LocalStore(session)
        expense = _expense_from_payload(payload, next_id(e["id"] for e in store.get_expenses()))
        check_references(store, expense)
        return store.put("expenses", expense)


@router.post("/expenses/bulk", response_model=List[ExpenseOut], status_code=status.HTTP_201_CREATED)
async def create_expenses_bulk(payload: List[ExpenseCreate]) -> List[dict]:
    """Create several expenses at once; one bad reference rejects the whole batch."""
    with get_session() as session:
        store = LocalStore(session)
        taken = [e["id"] for e in store.get_expenses()]
        created = []
        for item in payload:
            expense = _expense_from_payload(item, next_id(taken))
            taken.append(expense["id"])
            check_references(store, expense)
            created.append(store.put("expenses", expense))
        return created


@router.put("/expenses/{expense_id}", response_model=ExpenseOut)
async def update_expense(expense_id: str, payload: ExpenseUpdate) -> dict:
    with get_session() as session:
        store = LocalStore(session)
        expense = store.require("expenses", expense_id)
        changes = payload.model_dump(by_alias=True, exclude_unset=True)
        if changes.get("date") is not None:
            changes["date"] = changes["date"].isoformat()
        # Optional text fields may be cleared with null; the rest may not.
        optional = {"notes", "storeName", "storeLocation"}
        expense.update({key: value for key, value in changes.items() if value is not None or key in optional})
        check_references(store, expense)
        return store.put("expenses", expense)


@router.delete("/expenses/{expense_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_expense(expense_id: str) -> Response:
    with get_session() as session:
        if not LocalStore(session).delete("expenses", expense_id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Expense not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/expenses", status_code=status.HTTP_204_NO_CONTENT)
async def clear_expenses() -> Response:
    with get_session() as session:
        LocalStore(session).clear("expenses")
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# Attachments

@router.post("/expenses/{expense_id}/attachments", response_model=AttachmentOut, status_code=status.HTTP_201_CREATED)
async def add_attachment(expense_id: str, payload: AttachmentCreate) -> dict:
    with get_session() as session:
        expense = session.get(Expense, expense_id)
        if expense is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Expense not found")
        attachment = ExpenseAttachment(
            id=uuid.uuid4().hex,
            expense_id=expense_id,
            name=payload.name,
            type=payload.type,
            size=payload.size,
            data_url=payload.data_url,
            uploaded_at=datetime.now(timezone.utc),
        )
        session.add(attachment)
        session.flush()
        return attachment_to_dict(attachment)


@router.get("/attachments/{attachment_id}", response_model=AttachmentOut)
async def get_attachment(attachment_id: str) -> dict:
    with get_session() as session:
        attachment = session.get(ExpenseAttachment, attachment_id)
        if attachment is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Attachment not found")
        return attachment_to_dict(attachment)


@router.delete("/attachments/{attachment_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_attachment(attachment_id: str) -> Response:
    with get_session() as session:
        attachment = session.get(ExpenseAttachment, attachment_id)
        if attachment is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Attachment not found")
        session.delete(attachment)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
