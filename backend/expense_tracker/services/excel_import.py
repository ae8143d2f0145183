"""
Convert a spreadsheet workbook into a restorable backup document.

The workbook needs Users, Categories and Expenses sheets (a Subcategories
sheet is optional). Sheet names and column headers are matched loosely:
sheet names against a small alias list, headers after normalising to
lowercase alphanumerics, so "Store Name", "store_name" and "StoreName" all
read as ``storename``.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from io import BytesIO
from typing import Any, Dict, List, Optional, Union

import openpyxl
from openpyxl.workbook.workbook import Workbook

from expense_tracker.services import fixtures
from expense_tracker.services.backup import BACKUP_VERSION, create_blank_backup
from expense_tracker.services.csv_io import CATEGORY_COLORS, USER_COLORS
from expense_tracker.services.parsing import initials, parse_amount, parse_date, parse_datetime, username_from_name


logger = logging.getLogger(__name__)

SHEET_ALIASES = {
    "users": ["users", "user", "people", "team", "members"],
    "categories": ["categories", "category", "cats"],
    "subcategories": ["subcategories", "subcategory", "subs", "sub_categories"],
    "expenses": ["expenses", "expense", "transactions", "spending"],
}
REQUIRED_SHEETS = ("users", "categories", "expenses")

TEMPLATE_FILENAME = "expense-tracker-excel-template.xlsx"


@dataclass
class ExcelParseResult:
    success: bool
    data: Optional[Dict[str, List[dict]]] = None
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def _normalise_header(value: Any) -> str:
    return "".join(ch for ch in str(value or "").lower() if ch.isalnum())


def _cell_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _first(row: Dict[str, Any], *keys: str) -> Any:
    """First non-blank value among ``keys``; raw cell values are kept."""
    for key in keys:
        value = row.get(key)
        if value is not None and _cell_text(value) != "":
            return value
    return None


def _text(row: Dict[str, Any], *keys: str) -> str:
    return _cell_text(_first(row, *keys))


def _sheet_rows(worksheet) -> List[Dict[str, Any]]:
    rows = list(worksheet.iter_rows(values_only=True))
    if len(rows) < 2:
        return []
    headers = [_normalise_header(cell) for cell in rows[0]]

    records = []
    for row_number, row in enumerate(rows[1:], start=2):
        if not any(_cell_text(cell) for cell in row):
            continue
        record: Dict[str, Any] = {"_rowNumber": row_number}
        for index, header in enumerate(headers):
            if header:
                record[header] = row[index] if index < len(row) else None
        records.append(record)
    return records


def _extract_sheets(workbook: Workbook, errors: List[str], warnings: List[str]) -> Dict[str, List[dict]]:
    by_name = {name.lower(): name for name in workbook.sheetnames}
    sheets: Dict[str, List[dict]] = {}
    for kind, aliases in SHEET_ALIASES.items():
        actual = next((by_name[alias] for alias in aliases if alias in by_name), None)
        if actual is None:
            message = f'sheet "{kind}" not found. Expected one of: {", ".join(aliases)}'
            if kind in REQUIRED_SHEETS:
                errors.append(f"Required {message}")
            else:
                warnings.append(f"Optional {message}")
            sheets[kind] = []
            continue
        sheets[kind] = _sheet_rows(workbook[actual])
    return sheets


def _convert_users(rows: List[dict], errors: List[str], warnings: List[str]) -> List[dict]:
    users = []
    used_usernames = set()
    used_emails = set()
    for index, row in enumerate(rows, start=1):
        row_number = row["_rowNumber"]
        name = _text(row, "name", "fullname", "username")
        if not name:
            errors.append(f"Users row {row_number}: Name is required")
            continue

        username = (_text(row, "username", "user") or username_from_name(name)).lower()
        email = (_text(row, "email", "emailaddress") or f"{username}@example.com").lower()
        if username in used_usernames:
            errors.append(f'Users row {row_number}: Duplicate username "{username}"')
            continue
        if email in used_emails:
            errors.append(f'Users row {row_number}: Duplicate email "{email}"')
            continue

        color = _text(row, "color", "backgroundcolor") or "bg-blue-500"
        if color not in USER_COLORS:
            warnings.append(f'Users row {row_number}: Invalid color "{color}", using default')
            color = "bg-blue-500"

        avatar = _text(row, "avatar", "initials") or initials(name) or "U"
        users.append(
            {
                "id": _text(row, "id", "userid") or str(index),
                "name": name,
                "username": username,
                "email": email,
                "avatar": avatar[:2].upper(),
                "color": color,
                "isActive": True,
                "defaultCategoryId": _text(row, "defaultcategoryid", "categoryid") or None,
                "defaultSubcategoryId": _text(row, "defaultsubcategoryid", "subcategoryid") or None,
                "defaultStoreLocation": _text(row, "defaultstorelocation", "location") or None,
            }
        )
        used_usernames.add(username)
        used_emails.add(email)
    return users


def _convert_categories(
    category_rows: List[dict],
    subcategory_rows: List[dict],
    errors: List[str],
    warnings: List[str],
) -> List[dict]:
    categories: Dict[str, dict] = {}
    for row in category_rows:
        row_number = row["_rowNumber"]
        category_id = _text(row, "id", "categoryid")
        name = _text(row, "name", "categoryname")
        if not category_id or not name:
            errors.append(f"Categories row {row_number}: ID and Name are required")
            continue

        color = _text(row, "color", "textcolor") or "text-blue-600"
        if color not in CATEGORY_COLORS:
            warnings.append(f'Categories row {row_number}: Invalid color "{color}", using default')
            color = "text-blue-600"

        categories[category_id] = {
            "id": category_id,
            "name": name,
            "icon": _text(row, "icon", "iconname") or "Tag",
            "color": color,
            "subcategories": [],
        }

    for row in subcategory_rows:
        row_number = row["_rowNumber"]
        sub_id = _text(row, "id", "subcategoryid")
        name = _text(row, "name", "subcategoryname")
        category_id = _text(row, "categoryid", "parentcategoryid")
        if not sub_id or not name or not category_id:
            errors.append(f"Subcategories row {row_number}: ID, Name, and Category ID are required")
            continue
        category = categories.get(category_id)
        if category is None:
            errors.append(f'Subcategories row {row_number}: Category ID "{category_id}" not found')
            continue
        category["subcategories"].append({"id": sub_id, "name": name, "categoryId": category_id})
    return list(categories.values())


def _convert_expenses(
    rows: List[dict],
    users: List[dict],
    categories: List[dict],
    errors: List[str],
) -> List[dict]:
    user_ids = {user["id"] for user in users}
    categories_by_id = {category["id"]: category for category in categories}
    now = datetime.now(timezone.utc).isoformat()

    expenses = []
    for row in rows:
        prefix = f"Expenses row {row['_rowNumber']}"
        user_id = _text(row, "userid", "user")
        category_id = _text(row, "categoryid", "category")
        subcategory_id = _text(row, "subcategoryid", "subcategory")
        description = _text(row, "description", "desc", "item")
        amount = parse_amount(_first(row, "amount", "cost", "price"))
        expense_date = parse_date(_first(row, "date", "expensedate", "transactiondate"))

        if not user_id:
            errors.append(f"{prefix}: User ID is required")
            continue
        if not category_id:
            errors.append(f"{prefix}: Category ID is required")
            continue
        if not subcategory_id:
            errors.append(f"{prefix}: Subcategory ID is required")
            continue
        if not description:
            errors.append(f"{prefix}: Description is required")
            continue
        if amount is None or amount <= 0:
            errors.append(f"{prefix}: Valid amount is required")
            continue
        if expense_date is None:
            errors.append(f"{prefix}: Valid date is required")
            continue

        if user_id not in user_ids:
            errors.append(f'{prefix}: User ID "{user_id}" not found')
            continue
        category = categories_by_id.get(category_id)
        if category is None:
            errors.append(f'{prefix}: Category ID "{category_id}" not found')
            continue
        if not any(sub["id"] == subcategory_id for sub in category["subcategories"]):
            errors.append(f'{prefix}: Subcategory ID "{subcategory_id}" not found in category "{category["name"]}"')
            continue

        created_at = parse_datetime(_first(row, "createdat", "created"))
        expenses.append(
            {
                "id": _text(row, "id", "expenseid") or f"exp-{uuid.uuid4().hex[:12]}",
                "userId": user_id,
                "categoryId": category_id,
                "subcategoryId": subcategory_id,
                "amount": amount,
                "description": description,
                "notes": _text(row, "notes", "note", "comments") or None,
                "storeName": _text(row, "storename", "store", "vendor", "merchant") or None,
                "storeLocation": _text(row, "storelocation", "location", "address") or None,
                "date": expense_date.isoformat(),
                "createdAt": created_at.isoformat() if created_at else now,
            }
        )
    return expenses


def parse_workbook(source: Union[str, bytes, BytesIO]) -> ExcelParseResult:
    """Read a workbook from a path, raw bytes or a file object and convert it."""
    errors: List[str] = []
    warnings: List[str] = []
    try:
        if isinstance(source, bytes):
            source = BytesIO(source)
        workbook = openpyxl.load_workbook(source, read_only=True, data_only=True)
    except Exception as exc:
        logger.warning("Could not open workbook: %s", exc)
        return ExcelParseResult(success=False, errors=[f"Failed to parse Excel file: {exc}"])

    try:
        sheets = _extract_sheets(workbook, errors, warnings)
    finally:
        workbook.close()
    if errors:
        return ExcelParseResult(success=False, errors=errors, warnings=warnings)

    users = _convert_users(sheets["users"], errors, warnings)
    categories = _convert_categories(sheets["categories"], sheets["subcategories"], errors, warnings)
    expenses = _convert_expenses(sheets["expenses"], users, categories, errors)
    for warning in warnings:
        logger.warning("Excel import: %s", warning)
    if errors:
        return ExcelParseResult(success=False, errors=errors, warnings=warnings)

    logger.info(
        "Converted workbook: %d users, %d categories, %d expenses",
        len(users),
        len(categories),
        len(expenses),
    )
    return ExcelParseResult(
        success=True,
        data={"users": users, "categories": categories, "expenses": expenses},
        errors=errors,
        warnings=warnings,
    )


def generate_backup_document(data: Dict[str, List[dict]]) -> Dict[str, Any]:
    """
    Wrap converted workbook data in a backup document.

    Categories are written flat and their subcategories go to the top-level
    ``subcategories`` list; restore re-nests them.
    """
    now = datetime.now(timezone.utc).isoformat()
    doc = create_blank_backup()
    doc["version"] = BACKUP_VERSION
    doc["users"] = data["users"]
    doc["categories"] = [
        {
            "id": category["id"],
            "name": category["name"],
            "icon": category["icon"],
            "color": category["color"],
            "createdAt": now,
            "updatedAt": now,
        }
        for category in data["categories"]
    ]
    doc["subcategories"] = [
        {"id": sub["id"], "name": sub["name"], "categoryId": category["id"], "createdAt": now, "updatedAt": now}
        for category in data["categories"]
        for sub in category["subcategories"]
    ]
    doc["expenses"] = data["expenses"]
    doc["useCase"] = fixtures.DEFAULT_USE_CASE
    return doc


def build_template_workbook() -> Workbook:
    workbook = openpyxl.Workbook()
    users = workbook.active
    users.title = "Users"
    users.append(["ID", "Name", "Username", "Email", "Avatar", "Color",
                  "Default Category ID", "Default Subcategory ID", "Default Store Location"])
    users.append([1, "Alex Chen", "alexc", "alex.chen@example.com", "AC", "bg-emerald-500", 1, 1, "Downtown"])
    users.append([2, "Sarah Johnson", "sarahj", "sarah.johnson@example.com", "SJ", "bg-blue-500", 2, 5, "Uptown"])
    users.append([3, "Mike Rodriguez", "miker", "mike.rodriguez@example.com", "MR", "bg-purple-500", 3, 9, "Bellevue"])

    categories = workbook.create_sheet("Categories")
    categories.append(["ID", "Name", "Icon", "Color"])
    for category in fixtures.DEFAULT_CATEGORIES:
        categories.append([int(category["id"]), category["name"], category["icon"], category["color"]])

    subcategories = workbook.create_sheet("Subcategories")
    subcategories.append(["ID", "Name", "Category ID"])
    for category in fixtures.DEFAULT_CATEGORIES:
        for sub in category["subcategories"]:
            subcategories.append([int(sub["id"]), sub["name"], int(category["id"])])

    expenses = workbook.create_sheet("Expenses")
    expenses.append(["ID", "User ID", "Category ID", "Subcategory ID", "Amount", "Description", "Notes",
                     "Store Name", "Store Location", "Date", "Created At"])
    expenses.append([1, 1, 1, 1, 89.45, "Weekly grocery shopping", "Bought fresh vegetables and meat",
                     "Whole Foods Market", "Downtown", "2025-01-18", "2025-01-18T10:30:00Z"])
    expenses.append([2, 1, 4, 13, 45.00, "Gas for car", "Filled up the tank",
                     "Shell Station", "Main Street", "2025-01-17", "2025-01-17T18:45:00Z"])
    expenses.append([3, 2, 2, 5, 125.50, "Monthly electricity bill", "Higher than usual due to winter heating",
                     "City Electric", "", "2025-01-15", "2025-01-15T08:00:00Z"])
    expenses.append([4, 2, 3, 12, 15.99, "Netflix subscription", "Monthly streaming service",
                     "Netflix", "Online", "2025-01-14", "2025-01-14T20:00:00Z"])
    expenses.append([5, 3, 1, 2, 67.32, "Lunch ingredients", "Bought items for meal prep",
                     "Trader Joes", "Bellevue", "2025-01-16", "2025-01-16T15:30:00Z"])
    return workbook


def template_bytes() -> bytes:
    buffer = BytesIO()
    build_template_workbook().save(buffer)
    return buffer.getvalue()
