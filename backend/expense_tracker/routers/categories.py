from __future__ import annotations

from typing import Iterable, List

from fastapi import APIRouter, HTTPException, Response, status
from sqlalchemy import select

from expense_tracker.db import get_session
from expense_tracker.errors import ConflictError
from expense_tracker.models import Expense
from expense_tracker.schemas import CategoryCreate, CategoryOut, CategoryUpdate, SubcategoryDraft
from expense_tracker.services.parsing import next_id
from expense_tracker.services.store import LocalStore


router = APIRouter()


def all_subcategory_ids(categories: Iterable[dict]) -> List[str]:
    return [sub["id"] for category in categories for sub in category["subcategories"]]


def build_subcategories(drafts: List[SubcategoryDraft], category_id: str, taken_ids: List[str]) -> List[dict]:
    """Turn drafts into stored rows, numbering any draft that has no id."""
    taken = list(taken_ids)
    rows = []
    for draft in drafts:
        sub_id = draft.id or next_id(taken)
        taken.append(sub_id)
        rows.append({"id": sub_id, "name": draft.name.strip(), "categoryId": category_id})
    return rows


@router.get("", response_model=List[CategoryOut])
async def list_categories() -> List[dict]:
    with get_session() as session:
        return LocalStore(session).get_categories()


@router.get("/{category_id}", response_model=CategoryOut)
async def get_category(category_id: str) -> dict:
    with get_session() as session:
        category = LocalStore(session).get("categories", category_id)
    if category is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")
    return category


@router.post("", response_model=CategoryOut, status_code=status.HTTP_201_CREATED)
async def create_category(payload: CategoryCreate) -> dict:
    with get_session() as session:
        store = LocalStore(session)
        categories = store.get_categories()
        category_id = payload.id or next_id(category["id"] for category in categories)
        if any(category["id"] == category_id for category in categories):
            raise ConflictError(f"Category id '{category_id}' already exists")
        clash = {draft.id for draft in payload.subcategories if draft.id} & set(all_subcategory_ids(categories))
        if clash:
            raise ConflictError(f"Subcategory ids already used by another category: {', '.join(sorted(clash))}")

        category = {
            "id": category_id,
            "name": payload.name.strip(),
            "icon": payload.icon,
            "color": payload.color,
            "subcategories": build_subcategories(payload.subcategories, category_id, all_subcategory_ids(categories)),
        }
        return store.put("categories", category)


@router.put("/{category_id}", response_model=CategoryOut)
async def update_category(category_id: str, payload: CategoryUpdate) -> dict:
    with get_session() as session:
        store = LocalStore(session)
        categories = store.get_categories()
        category = next((c for c in categories if c["id"] == category_id), None)
        if category is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")

        for field in ("name", "icon", "color"):
            value = getattr(payload, field)
            if value is not None:
                category[field] = value
        if payload.subcategories is not None:
            others = [c for c in categories if c["id"] != category_id]
            category["subcategories"] = build_subcategories(
                payload.subcategories, category_id, all_subcategory_ids(categories)
            )
            clash = set(all_subcategory_ids(others)) & {sub["id"] for sub in category["subcategories"]}
            if clash:
                raise ConflictError(f"Subcategory ids already used by another category: {', '.join(sorted(clash))}")
        return store.put("categories", category)


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_category(category_id: str) -> Response:
    """Delete a category, its subcategories and every expense filed under it."""
    with get_session() as session:
        store = LocalStore(session)
        if not store.delete("categories", category_id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")
        for expense in session.execute(select(Expense).where(Expense.category_id == category_id)).scalars().all():
            session.delete(expense)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
