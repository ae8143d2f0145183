from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from fastapi import APIRouter, HTTPException, Query, Request, status
from fastapi.responses import PlainTextResponse
from starlette.datastructures import UploadFile

from expense_tracker.config import settings
from expense_tracker.db import get_session
from expense_tracker.errors import BackupError
from expense_tracker.schemas import (
    BackupFileResult,
    BackupLocation,
    BackupLocationCreate,
    DefaultLocationUpdate,
    RestoreResult,
)
from expense_tracker.services import backup
from expense_tracker.services.store import LocalStore


router = APIRouter()


@router.get("/full", response_model=dict)
async def full_backup() -> dict:
    with get_session() as session:
        return backup.create_full_backup(LocalStore(session))


@router.get("/blank", response_model=dict)
async def blank_backup() -> dict:
    return backup.create_blank_backup()


@router.get("/readable", response_class=PlainTextResponse)
async def readable_backup() -> PlainTextResponse:
    with get_session() as session:
        doc = backup.create_full_backup(LocalStore(session))
    filename = backup.default_backup_filename("readable")
    return PlainTextResponse(
        backup.format_readable_backup(doc),
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/restore", response_model=RestoreResult)
async def restore_backup(request: Request) -> dict:
    """
    Replace all data with a backup document.

    Accepts either a JSON body or a multipart upload with the backup in a
    ``file`` field. Repairs made while restoring are returned as warnings.
    """
    content_type = request.headers.get("content-type", "")
    if content_type.startswith("multipart/form-data"):
        form = await request.form()
        upload = form.get("file")
        if not isinstance(upload, UploadFile):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Upload the backup in a 'file' field.")
        raw = await upload.read()
        try:
            doc = backup.load_backup_text(raw.decode("utf-8"))
        except UnicodeDecodeError:
            raise BackupError("Backup file must be UTF-8 encoded JSON")
    else:
        try:
            doc = await request.json()
        except ValueError as exc:
            raise BackupError(f"Backup is not valid JSON: {exc}") from exc

    with get_session() as session:
        summary = backup.restore_from_backup(LocalStore(session), doc)

    return {
        "success": True,
        "message": "Backup restored successfully",
        "users": summary.users,
        "categories": summary.categories,
        "subcategories": summary.subcategories,
        "expenses": summary.expenses,
        "warnings": summary.warnings,
    }


@router.post("/files", response_model=BackupFileResult, status_code=status.HTTP_201_CREATED)
async def write_backup_file(
    kind: str = Query(default="full", pattern="^(full|blank)$"),
    directory: Optional[str] = None,
) -> dict:
    """Write a backup into ``directory`` (default: the default location, then EXPENSE_BACKUP_DIR)."""
    with get_session() as session:
        store = LocalStore(session)
        target_dir = directory or backup.get_default_backup_location(store) or settings.backup_dir
        doc = backup.create_full_backup(store) if kind == "full" else backup.create_blank_backup()
        path = backup.write_backup_file(doc, Path(target_dir), backup.default_backup_filename(kind))
        backup.save_backup_location(store, str(Path(target_dir)))

    return {"path": str(path), "filename": path.name, "bytes_written": path.stat().st_size}


@router.get("/locations", response_model=List[BackupLocation])
async def list_locations() -> List[dict]:
    with get_session() as session:
        return backup.get_backup_locations(LocalStore(session))


@router.post("/locations", response_model=List[BackupLocation])
async def save_location(payload: BackupLocationCreate) -> List[dict]:
    with get_session() as session:
        return backup.save_backup_location(LocalStore(session), payload.path, payload.name)


@router.get("/locations/default", response_model=dict)
async def get_default_location() -> dict:
    with get_session() as session:
        return {"path": backup.get_default_backup_location(LocalStore(session))}


@router.put("/locations/default", response_model=dict)
async def set_default_location(payload: DefaultLocationUpdate) -> dict:
    with get_session() as session:
        store = LocalStore(session)
        backup.set_default_backup_location(store, payload.path)
        backup.save_backup_location(store, payload.path)
    return {"path": payload.path}
