"""
CSV export and import for expenses, categories and users.

Each entity follows the same two-step import:

- parse_*_csv(text): strict. Checks the header row and the per-row required
  fields, raising ValidationError("Row N: ...") on the first bad row.
- validate_*_import(rows, ...): lenient. Resolves references and applies
  fallbacks, returning (valid_items, errors) so one bad row does not sink
  the whole file.

Row numbers count the header as row 1.
"""

from __future__ import annotations

import csv
import logging
import re
import uuid
from datetime import datetime, timezone
from io import StringIO
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from expense_tracker.errors import ValidationError
from expense_tracker.services.parsing import initials, next_id, parse_amount, parse_date


logger = logging.getLogger(__name__)

EXPENSE_HEADERS = [
    "ID",
    "User ID",
    "User Name",
    "Username",
    "Email",
    "Category ID",
    "Category Name",
    "Subcategory ID",
    "Subcategory Name",
    "Amount",
    "Description",
    "Store Name",
    "Store Location",
    "Date",
    "Created At",
]

CATEGORY_HEADERS = [
    "Category ID",
    "Category Name",
    "Category Icon",
    "Category Color",
    "Subcategory ID",
    "Subcategory Name",
]

USER_HEADERS = [
    "User ID",
    "Name",
    "Username",
    "Email",
    "Avatar",
    "Color",
    "Default Category ID",
    "Default Subcategory ID",
    "Default Store Location",
]

CATEGORY_ICONS = frozenset(
    """
    UtensilsCrossed Utensils Car Music ShoppingBag Receipt Heart Home Plane Book Coffee Gamepad2 Shirt
    Fuel Phone Wifi Zap Briefcase GraduationCap Baby PawPrint Wrench Gift Camera Dumbbell Tag
    Wine Pizza Cake Apple Beef Fish Salad IceCreamCone Cookie ChefHat Bike Bus Train
    Ship Truck ParkingCircle Navigation MapPin Compass Headphones Radio Tv Monitor Joystick Video
    Film Mic Speaker Volume2 ShoppingCart Store Package CreditCard Wallet ScanLine Watch
    Activity PersonStanding Footprints Thermometer Stethoscope Pill Cross Shield Lightbulb
    Smartphone Laptop WashingMachine Refrigerator Sofa Bed Building Building2 Factory Calculator
    FileText Folder Mail Users UserCheck BookOpen Library PenTool Edit Globe Award Trophy
    Map Luggage Binoculars Tent Mountain Palmtree Sun DollarSign PiggyBank TrendingUp TrendingDown
    BarChart3 PieChart Coins Tablet Keyboard Mouse Printer HardDrive Bluetooth Scissors Brush
    Sparkles Droplets Moon Eye Smile Star Flower Leaf Dog Cat Bird Rabbit Squirrel
    Bug Turtle Bone Palette Guitar Piano Puzzle Dice1 Target Telescope Microscope
    Circle Square Triangle Diamond Bookmark Flag Bell Clock Calendar Hash Plus
    """.split()
)

_PALETTE = (
    "red", "orange", "amber", "yellow", "lime", "green", "emerald", "teal", "cyan",
    "sky", "blue", "indigo", "violet", "purple", "fuchsia", "pink", "rose", "slate",
)
CATEGORY_COLORS = frozenset(f"text-{name}-600" for name in _PALETTE)
USER_COLORS = frozenset(f"bg-{name}-500" for name in _PALETTE)

USERNAME_RE = re.compile(r"^[A-Za-z0-9_]{3,20}$")
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def _write_csv(headers: Sequence[str], rows: Iterable[Sequence[object]]) -> str:
    buffer = StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(headers)
    writer.writerows(rows)
    return buffer.getvalue()


def _format_amount(value: object) -> str:
    amount = parse_amount(value) or 0.0
    return f"{amount:.2f}".rstrip("0").rstrip(".")


def _read_rows(text: str, expected: Sequence[str]) -> List[Tuple[int, Dict[str, str]]]:
    """
    Read ``text`` into (row_number, {header: value}) pairs.

    Headers match case-insensitively in any order. Blank lines are skipped but
    still counted, so row numbers match what a spreadsheet shows.
    """
    rows = [row for row in csv.reader(StringIO(text.strip()))]
    if len([row for row in rows if any(cell.strip() for cell in row)]) < 2:
        raise ValidationError("CSV file must contain at least a header row and one data row")

    header = [cell.strip().lower() for cell in rows[0]]
    missing = [name for name in expected if name.lower() not in header]
    if missing:
        raise ValidationError(f"Missing required columns: {', '.join(missing)}")
    positions = {name: header.index(name.lower()) for name in expected}

    parsed = []
    for row_number, row in enumerate(rows[1:], start=2):
        if not any(cell.strip() for cell in row):
            continue
        if len(row) < len(expected):
            raise ValidationError(f"Row {row_number}: Insufficient columns")
        values = {}
        for name, index in positions.items():
            values[name] = row[index].strip() if index < len(row) else ""
        parsed.append((row_number, values))
    return parsed


def _find(items: Iterable[dict], key: str, value: str) -> Optional[dict]:
    if not value:
        return None
    wanted = value.lower()
    for item in items:
        if str(item.get(key) or "").lower() == wanted:
            return item
    return None


# Expenses

def export_expenses_csv(expenses: Sequence[dict], users: Sequence[dict], categories: Sequence[dict]) -> str:
    users_by_id = {user["id"]: user for user in users}
    categories_by_id = {category["id"]: category for category in categories}

    rows = []
    for expense in expenses:
        user = users_by_id.get(expense.get("userId")) or {}
        category = categories_by_id.get(expense.get("categoryId")) or {}
        subcategory = next(
            (sub for sub in category.get("subcategories") or [] if sub["id"] == expense.get("subcategoryId")),
            {},
        )
        rows.append(
            [
                expense["id"],
                expense.get("userId") or "",
                user.get("name", ""),
                user.get("username", ""),
                user.get("email", ""),
                expense.get("categoryId") or "",
                category.get("name", ""),
                expense.get("subcategoryId") or "",
                subcategory.get("name", ""),
                _format_amount(expense.get("amount")),
                expense.get("description") or "",
                expense.get("storeName") or "",
                expense.get("storeLocation") or "",
                expense.get("date") or "",
                expense.get("createdAt") or "",
            ]
        )
    return _write_csv(EXPENSE_HEADERS, rows)


def parse_expenses_csv(text: str) -> List[dict]:
    parsed = []
    for row_number, values in _read_rows(text, EXPENSE_HEADERS):
        amount = parse_amount(values["Amount"])
        row = {
            "rowNumber": row_number,
            "id": values["ID"],
            "userId": values["User ID"],
            "userName": values["User Name"],
            "userUsername": values["Username"],
            "userEmail": values["Email"],
            "categoryId": values["Category ID"],
            "categoryName": values["Category Name"],
            "subcategoryId": values["Subcategory ID"],
            "subcategoryName": values["Subcategory Name"],
            "amount": amount or 0.0,
            "description": values["Description"],
            "storeName": values["Store Name"],
            "storeLocation": values["Store Location"],
            "date": values["Date"],
            "createdAt": values["Created At"],
        }
        if (
            not row["userId"]
            or not row["categoryId"]
            or not row["subcategoryId"]
            or not row["description"]
            or row["amount"] <= 0
            or not row["date"]
        ):
            raise ValidationError(f"Row {row_number}: Missing required data")
        expense_date = parse_date(row["date"])
        if expense_date is None:
            raise ValidationError(f"Row {row_number}: Invalid date format")
        row["date"] = expense_date.isoformat()
        parsed.append(row)
    return parsed


def validate_expense_import(
    rows: Sequence[dict],
    users: Sequence[dict],
    categories: Sequence[dict],
) -> Tuple[List[dict], List[str]]:
    valid: List[dict] = []
    errors: List[str] = []
    now = datetime.now(timezone.utc).isoformat()

    for index, row in enumerate(rows):
        row_number = row.get("rowNumber", index + 2)

        user = (
            _find(users, "id", row.get("userId", ""))
            or _find(users, "name", row.get("userName", ""))
            or _find(users, "username", row.get("userUsername", ""))
            or _find(users, "email", row.get("userEmail", ""))
        )
        if user is None:
            errors.append(f"Row {row_number}: User not found")
            continue

        category = _find(categories, "id", row.get("categoryId", "")) or _find(
            categories, "name", row.get("categoryName", "")
        )
        if category is None:
            errors.append(f"Row {row_number}: Category not found")
            continue

        subs = category.get("subcategories") or []
        subcategory = _find(subs, "id", row.get("subcategoryId", "")) or _find(
            subs, "name", row.get("subcategoryName", "")
        )
        if subcategory is None:
            errors.append(f"Row {row_number}: Subcategory not found")
            continue

        valid.append(
            {
                "id": row.get("id") or str(uuid.uuid4()),
                "userId": user["id"],
                "categoryId": category["id"],
                "subcategoryId": subcategory["id"],
                "amount": row["amount"],
                "description": row["description"],
                "storeName": row.get("storeName") or None,
                "storeLocation": row.get("storeLocation") or None,
                "date": row["date"],
                "createdAt": row.get("createdAt") or now,
            }
        )
    return valid, errors


# Categories

def export_categories_csv(categories: Sequence[dict]) -> str:
    rows = []
    for category in categories:
        base = [category["id"], category["name"], category.get("icon") or "", category.get("color") or ""]
        subs = category.get("subcategories") or []
        if not subs:
            rows.append(base + ["", ""])
        for sub in subs:
            rows.append(base + [sub["id"], sub["name"]])
    return _write_csv(CATEGORY_HEADERS, rows)


def parse_categories_csv(text: str) -> List[dict]:
    parsed = []
    for row_number, values in _read_rows(text, CATEGORY_HEADERS):
        row = {
            "rowNumber": row_number,
            "id": values["Category ID"],
            "name": values["Category Name"],
            "icon": values["Category Icon"] or "Tag",
            "color": values["Category Color"] or "text-blue-600",
            "subcategoryId": values["Subcategory ID"],
            "subcategoryName": values["Subcategory Name"],
        }
        if not row["id"] or not row["name"]:
            raise ValidationError(f"Row {row_number}: Category ID and Name are required")
        if row["subcategoryId"] and not row["subcategoryName"]:
            raise ValidationError(f"Row {row_number}: Subcategory name is required when subcategory ID is provided")
        parsed.append(row)
    return parsed


def validate_category_import(rows: Sequence[dict]) -> Tuple[List[dict], List[str]]:
    """
    Group rows into categories by name and renumber everything from 1.

    Incoming ids are discarded: a category CSV replaces the taxonomy, so the
    result always has ids "1".."n" for categories and subcategories alike.
    Repeated subcategory names within a category are skipped and reported.
    """
    categories: Dict[str, dict] = {}
    errors: List[str] = []
    next_sub_id = 1

    for row in rows:
        icon = row.get("icon") if row.get("icon") in CATEGORY_ICONS else "Tag"
        color = row.get("color") if row.get("color") in CATEGORY_COLORS else "text-blue-600"

        key = row["name"].lower()
        category = categories.get(key)
        if category is None:
            category = {
                "id": str(len(categories) + 1),
                "name": row["name"],
                "icon": icon,
                "color": color,
                "subcategories": [],
            }
            categories[key] = category

        sub_name = row.get("subcategoryName") or ""
        if row.get("subcategoryId") and sub_name:
            if _find(category["subcategories"], "name", sub_name) is not None:
                errors.append(
                    f"Row {row.get('rowNumber')}: Duplicate subcategory \"{sub_name}\" in \"{category['name']}\" was skipped"
                )
                continue
            category["subcategories"].append({"id": str(next_sub_id), "name": sub_name, "categoryId": category["id"]})
            next_sub_id += 1
    return list(categories.values()), errors


def category_template() -> str:
    return _write_csv(
        CATEGORY_HEADERS,
        [
            ["1", "Food & Dining", "UtensilsCrossed", "text-orange-600", "1", "Groceries"],
            ["1", "Food & Dining", "UtensilsCrossed", "text-orange-600", "2", "Restaurants"],
            ["2", "Transportation", "Car", "text-blue-600", "3", "Gas"],
            ["2", "Transportation", "Car", "text-blue-600", "4", "Public Transit"],
            ["3", "Entertainment", "Music", "text-purple-600", "5", "Movies"],
        ],
    )


# Users

def export_users_csv(users: Sequence[dict]) -> str:
    rows = [
        [
            user["id"],
            user["name"],
            user["username"],
            user["email"],
            user.get("avatar") or "",
            user.get("color") or "",
            user.get("defaultCategoryId") or "",
            user.get("defaultSubcategoryId") or "",
            user.get("defaultStoreLocation") or "",
        ]
        for user in users
    ]
    return _write_csv(USER_HEADERS, rows)


def parse_users_csv(text: str) -> List[dict]:
    parsed = []
    for row_number, values in _read_rows(text, USER_HEADERS):
        row = {
            "rowNumber": row_number,
            "id": values["User ID"],
            "name": values["Name"],
            "username": values["Username"],
            "email": values["Email"],
            "avatar": values["Avatar"],
            "color": values["Color"] or "bg-blue-500",
            "defaultCategoryId": values["Default Category ID"],
            "defaultSubcategoryId": values["Default Subcategory ID"],
            "defaultStoreLocation": values["Default Store Location"],
        }
        if not row["name"] or not row["username"] or not row["email"]:
            raise ValidationError(f"Row {row_number}: Name, Username, and Email are required")
        if not USERNAME_RE.match(row["username"]):
            raise ValidationError(
                f"Row {row_number}: Username must be 3-20 characters, letters, numbers, and underscores only"
            )
        if not EMAIL_RE.match(row["email"]):
            raise ValidationError(f"Row {row_number}: Invalid email format")
        parsed.append(row)
    return parsed


def validate_user_import(rows: Sequence[dict], existing_users: Sequence[dict]) -> Tuple[List[dict], List[str]]:
    valid: List[dict] = []
    errors: List[str] = []
    used_usernames = set()
    used_emails = set()
    existing_usernames = {str(user.get("username") or "").lower() for user in existing_users}
    existing_emails = {str(user.get("email") or "").lower() for user in existing_users}
    taken_ids = [user.get("id") for user in existing_users]

    for index, row in enumerate(rows):
        row_number = row.get("rowNumber", index + 2)
        name = row["name"].strip()
        username = row["username"].strip().lower()
        email = row["email"].strip().lower()

        if username in used_usernames:
            errors.append(f'Row {row_number}: Duplicate username "{username}"')
            continue
        if email in used_emails:
            errors.append(f'Row {row_number}: Duplicate email "{email}"')
            continue
        if username in existing_usernames:
            errors.append(f'Row {row_number}: Username "{username}" already exists')
            continue
        if email in existing_emails:
            errors.append(f'Row {row_number}: Email "{email}" already exists')
            continue

        color = row.get("color")
        if color not in USER_COLORS:
            logger.warning("User import row %s: invalid color %r, using default", row_number, color)
            color = "bg-blue-500"

        avatar = (row.get("avatar") or "").strip()
        if not avatar or len(avatar) > 2:
            avatar = initials(name)

        user_id = next_id(taken_ids)
        taken_ids.append(user_id)
        valid.append(
            {
                "id": user_id,
                "name": name,
                "username": username,
                "email": email,
                "avatar": avatar,
                "color": color,
                "isActive": True,
                "defaultCategoryId": row.get("defaultCategoryId") or None,
                "defaultSubcategoryId": row.get("defaultSubcategoryId") or None,
                "defaultStoreLocation": row.get("defaultStoreLocation") or None,
            }
        )
        used_usernames.add(username)
        used_emails.add(email)
    return valid, errors


def user_template() -> str:
    return _write_csv(
        USER_HEADERS,
        [
            ["1", "Alex Chen", "alexc", "alex.chen@example.com", "AC", "bg-emerald-500", "1", "1", "Downtown Seattle"],
            ["2", "Sarah Johnson", "sarahj", "sarah.johnson@example.com", "SJ", "bg-blue-500", "2", "3", "Capitol Hill"],
            ["3", "Mike Rodriguez", "miker", "mike.rodriguez@example.com", "MR", "bg-purple-500", "3", "5", "Bellevue"],
            ["4", "Emma Wilson", "emmaw", "emma.wilson@example.com", "EW", "bg-pink-500", "1", "2", "Queen Anne"],
        ],
    )


def expense_template() -> str:
    return _write_csv(
        EXPENSE_HEADERS,
        [
            [
                "", "1", "Alex Chen", "alexc", "alex.chen@example.com", "1", "Groceries", "1", "Fresh Produce",
                "45.67", "Weekly fresh vegetables", "Whole Foods Market", "Downtown", "2025-01-15", "",
            ],
        ],
    )


TEMPLATES = {
    "expenses": expense_template,
    "categories": category_template,
    "users": user_template,
}
