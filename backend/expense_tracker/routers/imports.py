from __future__ import annotations

import logging
from datetime import date

from fastapi import APIRouter, File, HTTPException, UploadFile, status
from fastapi.responses import Response

from expense_tracker.db import get_session
from expense_tracker.schemas import ExcelConversionResult, ImportResult
from expense_tracker.services import csv_io, excel_import
from expense_tracker.services.backup import flatten_subcategories
from expense_tracker.services.store import LocalStore


logger = logging.getLogger(__name__)

router = APIRouter()

CSV_CONTENT_TYPES = ("text/csv", "application/vnd.ms-excel", "application/octet-stream", "text/plain")
XLSX_CONTENT_TYPES = (
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/octet-stream",
)


def _csv_response(text: str, filename: str) -> Response:
    return Response(
        content=text,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


async def _read_csv_upload(file: UploadFile) -> str:
    if file.content_type not in CSV_CONTENT_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported content type: {file.content_type}",
        )
    raw_bytes = await file.read()
    try:
        return raw_bytes.decode("utf-8-sig")
    except UnicodeDecodeError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="CSV must be UTF-8 encoded.",
        )


# Exports

@router.get("/exports/expenses.csv")
async def export_expenses() -> Response:
    with get_session() as session:
        store = LocalStore(session)
        text = csv_io.export_expenses_csv(store.get_expenses(), store.get_users(), store.get_categories())
    return _csv_response(text, f"expenses-{date.today().isoformat()}.csv")


@router.get("/exports/categories.csv")
async def export_categories() -> Response:
    with get_session() as session:
        text = csv_io.export_categories_csv(LocalStore(session).get_categories())
    return _csv_response(text, f"categories-{date.today().isoformat()}.csv")


@router.get("/exports/users.csv")
async def export_users() -> Response:
    with get_session() as session:
        text = csv_io.export_users_csv(LocalStore(session).get_users())
    return _csv_response(text, f"users-{date.today().isoformat()}.csv")


# CSV imports

@router.post("/imports/expenses", response_model=ImportResult)
async def import_expenses(file: UploadFile = File(...)) -> dict:
    """
    Import expenses from a CSV export.

    - Header and row shape are checked strictly; a malformed row rejects the file (400).
    - Users, categories and subcategories are then resolved by id or by name;
      rows that do not resolve are reported in ``errors`` and skipped.
    - Imported rows are upserted by id; attachments of existing expenses are kept.
    """
    rows = csv_io.parse_expenses_csv(await _read_csv_upload(file))
    with get_session() as session:
        store = LocalStore(session)
        valid, errors = csv_io.validate_expense_import(rows, store.get_users(), store.get_categories())
        for expense in valid:
            # CSV rows carry no attachments; keep the stored ones.
            existing = store.get("expenses", expense["id"])
            if existing is not None:
                expense["attachments"] = existing.get("attachments") or []
            store.put("expenses", expense)

    logger.info("Imported %d expenses from %s (%d rows rejected)", len(valid), file.filename, len(errors))
    return {"imported": len(valid), "errors": errors}


@router.post("/imports/categories", response_model=ImportResult)
async def import_categories(file: UploadFile = File(...)) -> dict:
    """Replace the category taxonomy with the categories in a CSV file."""
    rows = csv_io.parse_categories_csv(await _read_csv_upload(file))
    categories, errors = csv_io.validate_category_import(rows)
    with get_session() as session:
        LocalStore(session).set_categories(categories)

    logger.info(
        "Imported %d categories with %d subcategories from %s",
        len(categories),
        len(flatten_subcategories(categories)),
        file.filename,
    )
    return {"imported": len(categories), "errors": errors}


@router.post("/imports/users", response_model=ImportResult)
async def import_users(file: UploadFile = File(...)) -> dict:
    """Add the users in a CSV file; duplicates of existing users are reported, not imported."""
    rows = csv_io.parse_users_csv(await _read_csv_upload(file))
    with get_session() as session:
        store = LocalStore(session)
        valid, errors = csv_io.validate_user_import(rows, store.get_users())
        for user in valid:
            store.put("users", user)

    logger.info("Imported %d users from %s (%d rows rejected)", len(valid), file.filename, len(errors))
    return {"imported": len(valid), "errors": errors}


@router.get("/imports/templates/{kind}")
async def csv_template(kind: str) -> Response:
    builder = csv_io.TEMPLATES.get(kind)
    if builder is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"No template for {kind!r}. Expected one of: {', '.join(csv_io.TEMPLATES)}",
        )
    return _csv_response(builder(), f"{kind}-template.csv")


# Excel

@router.post("/imports/excel", response_model=ExcelConversionResult)
async def convert_excel(file: UploadFile = File(...)) -> dict:
    """
    Convert a workbook into a backup document.

    Nothing is written to the store: the returned ``backup`` can be reviewed
    and then posted to /api/backups/restore.
    """
    if file.content_type not in XLSX_CONTENT_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported content type: {file.content_type}",
        )
    result = excel_import.parse_workbook(await file.read())
    document = excel_import.generate_backup_document(result.data) if result.success else None
    return {
        "success": result.success,
        "errors": result.errors,
        "warnings": result.warnings,
        "backup": document,
    }


@router.get("/imports/excel/template")
async def excel_template() -> Response:
    return Response(
        content=excel_import.template_bytes(),
        media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        headers={"Content-Disposition": f'attachment; filename="{excel_import.TEMPLATE_FILENAME}"'},
    )
