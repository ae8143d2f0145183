from __future__ import annotations

from typing import List

from fastapi import APIRouter, HTTPException, Response, status
from sqlalchemy import select

from expense_tracker.db import get_session
from expense_tracker.errors import ConflictError
from expense_tracker.models import Expense
from expense_tracker.schemas import UserCreate, UserOut, UserUpdate
from expense_tracker.services.parsing import initials, next_id
from expense_tracker.services.store import LocalStore


router = APIRouter()


def _check_unique(users: List[dict], username: str, email: str, exclude_id: str | None = None) -> None:
    for user in users:
        if user["id"] == exclude_id:
            continue
        if user["username"].lower() == username.lower():
            raise ConflictError(f"Username '{username}' is already taken")
        if user["email"].lower() == email.lower():
            raise ConflictError(f"Email '{email}' is already in use")


@router.get("", response_model=List[UserOut])
async def list_users() -> List[dict]:
    with get_session() as session:
        return LocalStore(session).get_users()


@router.get("/{user_id}", response_model=UserOut)
async def get_user(user_id: str) -> dict:
    with get_session() as session:
        user = LocalStore(session).get("users", user_id)
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


@router.post("", response_model=UserOut, status_code=status.HTTP_201_CREATED)
async def create_user(payload: UserCreate) -> dict:
    with get_session() as session:
        store = LocalStore(session)
        users = store.get_users()
        _check_unique(users, payload.username, payload.email)

        data = payload.model_dump(by_alias=True)
        data["id"] = payload.id or next_id(user["id"] for user in users)
        if store.get("users", data["id"]) is not None:
            raise ConflictError(f"User id '{data['id']}' already exists")
        data["avatar"] = payload.avatar or initials(payload.name)
        return store.put("users", data)


@router.put("/{user_id}", response_model=UserOut)
async def update_user(user_id: str, payload: UserUpdate) -> dict:
    """Partial update: only fields present in the body change."""
    with get_session() as session:
        store = LocalStore(session)
        user = store.require("users", user_id)
        changes = payload.model_dump(by_alias=True, exclude_unset=True)
        # Defaults may be cleared with null; identity fields may not.
        user.update({key: value for key, value in changes.items() if value is not None or key.startswith("default")})
        _check_unique(store.get_users(), user["username"], user["email"], exclude_id=user_id)
        if not user.get("avatar"):
            user["avatar"] = initials(user["name"])
        return store.put("users", user)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_user(user_id: str) -> Response:
    """Delete a user together with every expense they recorded."""
    with get_session() as session:
        store = LocalStore(session)
        if not store.delete("users", user_id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
        for expense in session.execute(select(Expense).where(Expense.user_id == user_id)).scalars().all():
            session.delete(expense)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
