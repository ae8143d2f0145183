from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query, Response, status

from expense_tracker.db import get_session
from expense_tracker.errors import ConflictError
from expense_tracker.schemas import SubcategoryCreate, SubcategoryOut, SubcategoryUpdate
from expense_tracker.services.parsing import next_id
from expense_tracker.services.store import LocalStore


router = APIRouter()


def _locate(categories: List[dict], subcategory_id: str) -> tuple[dict, dict]:
    for category in categories:
        for sub in category["subcategories"]:
            if sub["id"] == subcategory_id:
                return category, sub
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Subcategory not found")


def _category(categories: List[dict], category_id: str) -> dict:
    for category in categories:
        if category["id"] == category_id:
            return category
    raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")


@router.get("", response_model=List[SubcategoryOut])
async def list_subcategories(category_id: Optional[str] = Query(default=None, alias="categoryId")) -> List[dict]:
    with get_session() as session:
        categories = LocalStore(session).get_categories()
    if category_id:
        categories = [_category(categories, category_id)]
    return [sub for category in categories for sub in category["subcategories"]]


@router.get("/{subcategory_id}", response_model=SubcategoryOut)
async def get_subcategory(subcategory_id: str) -> dict:
    with get_session() as session:
        categories = LocalStore(session).get_categories()
    return _locate(categories, subcategory_id)[1]


@router.post("", response_model=SubcategoryOut, status_code=status.HTTP_201_CREATED)
async def create_subcategory(payload: SubcategoryCreate) -> dict:
    with get_session() as session:
        store = LocalStore(session)
        categories = store.get_categories()
        category = _category(categories, payload.category_id)
        taken = [sub["id"] for c in categories for sub in c["subcategories"]]
        sub_id = payload.id or next_id(taken)
        if sub_id in taken:
            raise ConflictError(f"Subcategory id '{sub_id}' already exists")

        sub = {"id": sub_id, "name": payload.name.strip(), "categoryId": category["id"]}
        category["subcategories"].append(sub)
        store.put("categories", category)
    return sub


@router.put("/{subcategory_id}", response_model=SubcategoryOut)
async def update_subcategory(subcategory_id: str, payload: SubcategoryUpdate) -> dict:
    """Rename a subcategory, or move it to another category."""
    with get_session() as session:
        store = LocalStore(session)
        categories = store.get_categories()
        category, sub = _locate(categories, subcategory_id)
        if payload.name is not None:
            sub["name"] = payload.name.strip()

        if payload.category_id and payload.category_id != category["id"]:
            target = _category(categories, payload.category_id)
            category["subcategories"] = [s for s in category["subcategories"] if s["id"] != subcategory_id]
            sub["categoryId"] = target["id"]
            target["subcategories"].append(sub)
            # Flush the removal first so the row is re-parented, not duplicated.
            store.put("categories", category)
            store.put("categories", target)
        else:
            store.put("categories", category)
    return sub


@router.delete("/{subcategory_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_subcategory(subcategory_id: str) -> Response:
    with get_session() as session:
        store = LocalStore(session)
        categories = store.get_categories()
        category, _ = _locate(categories, subcategory_id)
        category["subcategories"] = [s for s in category["subcategories"] if s["id"] != subcategory_id]
        store.put("categories", category)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
