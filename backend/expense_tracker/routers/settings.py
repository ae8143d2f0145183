from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter

from expense_tracker.db import get_session
from expense_tracker.schemas import UseCaseOut
from expense_tracker.services.use_cases import get_use_case, list_use_cases
from expense_tracker.services.store import LocalStore


router = APIRouter()


@router.get("", response_model=Dict[str, Any])
async def get_settings() -> dict:
    with get_session() as session:
        return LocalStore(session).get_settings()


@router.put("", response_model=Dict[str, Any])
async def update_settings(payload: Dict[str, Any]) -> dict:
    """Merge the given keys into the stored settings (e.g. fontSize, auth)."""
    with get_session() as session:
        store = LocalStore(session)
        merged = store.get_settings()
        merged.update(payload)
        store.set_settings(merged)
    return merged


@router.get("/credentials", response_model=Dict[str, Any])
async def get_credentials() -> dict:
    with get_session() as session:
        return LocalStore(session).get_credentials()


@router.put("/credentials", response_model=Dict[str, Any])
async def update_credentials(payload: Dict[str, Any]) -> dict:
    with get_session() as session:
        store = LocalStore(session)
        merged = store.get_credentials()
        merged.update(payload)
        store.set_credentials(merged)
    return merged


@router.get("/use-cases", response_model=List[UseCaseOut])
async def use_cases() -> List[dict]:
    return list_use_cases()


@router.get("/use-case", response_model=UseCaseOut)
async def current_use_case() -> dict:
    with get_session() as session:
        credentials = LocalStore(session).get_credentials()
    return get_use_case(credentials.get("useCase", ""))
