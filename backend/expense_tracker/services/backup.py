"""
Full backup and restore of the local store.

A backup is one JSON document holding every store plus the singleton
documents (credentials, settings) and the selected use case:

    {version, timestamp, users, categories, subcategories, expenses,
     credentials, settings, useCase}

Restore is forgiving. Documents produced by older releases, by the Excel
converter (flat categories plus flat subcategories) or edited by hand are
repaired row by row; each repair is logged and reported back as a warning.
Only a structurally broken document is rejected outright.
"""

from __future__ import annotations

import copy
import json
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from expense_tracker.errors import BackupError
from expense_tracker.services import fixtures
from expense_tracker.services.parsing import initials, next_id, parse_amount, parse_date, parse_datetime, username_from_name
from expense_tracker.services.store import LocalStore
from expense_tracker.services.use_cases import get_use_case


logger = logging.getLogger(__name__)

BACKUP_VERSION = "1.0.0"
MAX_BACKUP_LOCATIONS = 10

BACKUP_LOCATIONS_KEY = "backup_locations"
DEFAULT_BACKUP_LOCATION_KEY = "default_backup_location"

FILENAME_PATTERNS = {
    "full": "expense-tracker-backup-{day}.json",
    "readable": "expense-tracker-readable-{day}.txt",
    "blank": "expense-tracker-blank-{day}.json",
}


@dataclass
class RestoreSummary:
    users: int = 0
    categories: int = 0
    subcategories: int = 0
    expenses: int = 0
    warnings: List[str] = field(default_factory=list)

    def warn(self, message: str) -> None:
        logger.warning("Restore: %s", message)
        self.warnings.append(message)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def flatten_subcategories(categories: Sequence[dict]) -> List[dict]:
    rows = []
    for category in categories:
        for sub in category.get("subcategories") or []:
            rows.append({"id": sub["id"], "name": sub["name"], "categoryId": category["id"]})
    return rows


def create_full_backup(store: LocalStore) -> Dict[str, Any]:
    categories = store.get_categories()
    credentials = store.get_credentials()
    return {
        "version": BACKUP_VERSION,
        "timestamp": _now_iso(),
        "users": store.get_users(),
        "categories": categories,
        "subcategories": flatten_subcategories(categories),
        "expenses": store.get_expenses(),
        "credentials": credentials,
        "settings": store.get_settings(),
        "useCase": credentials.get("useCase") or fixtures.DEFAULT_USE_CASE,
    }


def create_blank_backup() -> Dict[str, Any]:
    return {
        "version": BACKUP_VERSION,
        "timestamp": _now_iso(),
        "users": [],
        "categories": [],
        "subcategories": [],
        "expenses": [],
        "credentials": copy.deepcopy(fixtures.DEFAULT_CREDENTIALS),
        "settings": copy.deepcopy(fixtures.DEFAULT_SETTINGS),
        "useCase": fixtures.DEFAULT_USE_CASE,
    }


def validate_backup(doc: Any) -> List[str]:
    """Return the structural problems with ``doc``; an empty list means restorable."""
    if not isinstance(doc, dict):
        return ["Backup must be a JSON object"]

    problems = []
    version = doc.get("version")
    if not version:
        problems.append("Missing backup version")
    elif str(version).split(".", 1)[0] != "1":
        problems.append(f"Unsupported backup version: {version}")
    if not doc.get("timestamp"):
        problems.append("Missing backup timestamp")

    for key in ("users", "categories", "expenses"):
        if not isinstance(doc.get(key), list):
            problems.append(f"'{key}' must be a list")
    for key in ("credentials", "settings"):
        if not isinstance(doc.get(key), dict):
            problems.append(f"'{key}' must be an object")

    # Documents written before these fields existed omit them.
    if "subcategories" in doc and not isinstance(doc["subcategories"], list):
        problems.append("'subcategories' must be a list when present")
    if "useCase" in doc and not isinstance(doc["useCase"], str):
        problems.append("'useCase' must be a string when present")
    return problems


# Reconstruction

def _mappings(rows: Any, label: str, summary: RestoreSummary) -> List[dict]:
    kept = []
    for index, row in enumerate(rows or [], start=1):
        if isinstance(row, dict):
            kept.append(dict(row))
        else:
            summary.warn(f"{label} entry {index} is not an object and was skipped")
    return kept


def _assign_ids(rows: List[dict], label: str, summary: RestoreSummary, taken: Optional[set] = None) -> List[dict]:
    """Stringify ids, fill missing ones and keep the first row for each id."""
    seen = set() if taken is None else taken
    missing = []
    kept = []
    for row in rows:
        raw = row.get("id")
        if raw is None or str(raw).strip() == "":
            missing.append(row)
            kept.append(row)
            continue
        row["id"] = str(raw).strip()
        if row["id"] in seen:
            summary.warn(f"Duplicate {label} id {row['id']} was skipped")
            continue
        seen.add(row["id"])
        kept.append(row)

    for row in missing:
        row["id"] = next_id(seen)
        seen.add(row["id"])
        summary.warn(f"{label} {row.get('name') or row.get('description') or ''!r} had no id; assigned {row['id']}")
    return kept


def _rebuild_users(rows: Any, summary: RestoreSummary) -> List[dict]:
    users = []
    usernames = set()
    emails = set()
    for row in _assign_ids(_mappings(rows, "User", summary), "user", summary):
        name = str(row.get("name") or "").strip()
        if not name:
            summary.warn(f"User {row['id']} has no name and was skipped")
            continue

        username = str(row.get("username") or "").strip()
        if not username:
            username = username_from_name(name) or f"user{row['id']}"
            summary.warn(f"User {row['id']} had no username; using {username!r}")
        email = str(row.get("email") or "").strip()
        if not email:
            email = f"{username}@example.com"
            summary.warn(f"User {row['id']} had no email; using {email!r}")

        if username.lower() in usernames or email.lower() in emails:
            summary.warn(f"User {row['id']} duplicates an earlier username or email and was skipped")
            continue
        usernames.add(username.lower())
        emails.add(email.lower())

        users.append(
            {
                "id": row["id"],
                "name": name,
                "username": username,
                "email": email,
                "avatar": row.get("avatar") or initials(name),
                "color": row.get("color") or "bg-blue-500",
                "isActive": _flag(row.get("isActive"), default=True),
                "defaultCategoryId": _optional_id(row.get("defaultCategoryId")),
                "defaultSubcategoryId": _optional_id(row.get("defaultSubcategoryId")),
                "defaultStoreLocation": row.get("defaultStoreLocation") or None,
            }
        )
    return users


def _flag(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, str):
        text = value.strip().lower()
        if not text:
            return default
        return text not in ("false", "0", "no", "off")
    return bool(value)


def _optional_id(value: Any) -> Optional[str]:
    if value is None or str(value).strip() == "":
        return None
    return str(value).strip()


def _rebuild_categories(rows: Any, flat_rows: Any, summary: RestoreSummary) -> List[dict]:
    categories = []
    for row in _assign_ids(_mappings(rows, "Category", summary), "category", summary):
        name = str(row.get("name") or "").strip()
        if not name:
            summary.warn(f"Category {row['id']} has no name and was skipped")
            continue
        nested = row.get("subcategories")
        if nested is not None and not isinstance(nested, list):
            summary.warn(f"Category {row['id']} subcategories were not a list and were ignored")
            nested = None
        categories.append(
            {
                "id": row["id"],
                "name": name,
                "icon": row.get("icon") or "Tag",
                "color": row.get("color") or "text-blue-600",
                "subcategories": _mappings(nested, f"Category {row['id']} subcategory", summary),
            }
        )

    by_id = {category["id"]: category for category in categories}
    flat = _mappings(flat_rows, "Subcategory", summary)
    for sub in flat:
        parent_id = _optional_id(sub.get("categoryId"))
        parent = by_id.get(parent_id) if parent_id else None
        if parent is None:
            summary.warn(f"Subcategory {sub.get('id')!r} points at missing category {parent_id!r} and was skipped")
            continue
        nested_ids = {str(existing.get("id")) for existing in parent["subcategories"]}
        if sub.get("id") is not None and str(sub["id"]) in nested_ids:
            continue
        parent["subcategories"].append(sub)
    if flat:
        logger.info("Restore: merged %d flat subcategory rows into their categories", len(flat))

    taken: set = set()
    for category in categories:
        rebuilt = []
        for sub in _assign_ids(category["subcategories"], "subcategory", summary, taken):
            sub_name = str(sub.get("name") or "").strip()
            if not sub_name:
                summary.warn(f"Subcategory {sub['id']} has no name and was skipped")
                continue
            rebuilt.append({"id": sub["id"], "name": sub_name, "categoryId": category["id"]})
        category["subcategories"] = rebuilt
    return categories


def _rebuild_expenses(rows: Any, summary: RestoreSummary, restored_at: str) -> List[dict]:
    expenses = []
    attachment_ids: set = set()
    for row in _assign_ids(_mappings(rows, "Expense", summary), "expense", summary):
        expense_id = row["id"]
        amount = parse_amount(row.get("amount"))
        if amount is None:
            summary.warn(f"Expense {expense_id} has an invalid amount {row.get('amount')!r} and was skipped")
            continue
        if not isinstance(row.get("amount"), (int, float)):
            summary.warn(f"Expense {expense_id} amount {row.get('amount')!r} was converted to {amount}")

        expense_date = parse_date(row.get("date"))
        if expense_date is None:
            summary.warn(f"Expense {expense_id} has an invalid date {row.get('date')!r} and was skipped")
            continue

        description = str(row.get("description") or "").strip()
        if not description:
            summary.warn(f"Expense {expense_id} has no description and was skipped")
            continue

        created_at = parse_datetime(row.get("createdAt"))
        expense = {
            "id": expense_id,
            "userId": str(row.get("userId") or ""),
            "categoryId": str(row.get("categoryId") or ""),
            "subcategoryId": str(row.get("subcategoryId") or ""),
            "amount": amount,
            "description": description,
            "notes": row.get("notes") or None,
            "storeName": row.get("storeName") or None,
            "storeLocation": row.get("storeLocation") or None,
            "date": expense_date.isoformat(),
            "createdAt": created_at.isoformat() if created_at else restored_at,
        }
        attachments = _rebuild_attachments(row.get("attachments"), expense_id, summary, attachment_ids)
        if attachments:
            expense["attachments"] = attachments
        expenses.append(expense)
    return expenses


def _rebuild_attachments(rows: Any, expense_id: str, summary: RestoreSummary, taken: set) -> List[dict]:
    attachments = _assign_ids(_mappings(rows, f"Expense {expense_id} attachment", summary), "attachment", summary, taken)
    for attachment in attachments:
        size = parse_amount(attachment.get("size"))
        if size is None or size < 0:
            if attachment.get("size") is not None:
                summary.warn(f"Attachment {attachment['id']} has an invalid size {attachment.get('size')!r}; using 0")
            size = 0
        attachment["size"] = int(size)
    return attachments


def reconstruct_backup(doc: Dict[str, Any], summary: Optional[RestoreSummary] = None) -> Dict[str, Any]:
    """Repair a structurally valid backup into the shape LocalStore expects."""
    summary = summary or RestoreSummary()
    restored_at = _now_iso()

    credentials = doc.get("credentials")
    if not isinstance(credentials, dict):
        summary.warn("Credentials were missing; defaults were used")
        credentials = copy.deepcopy(fixtures.DEFAULT_CREDENTIALS)
    credentials = dict(credentials)
    if doc.get("useCase") and not credentials.get("useCase"):
        credentials["useCase"] = doc["useCase"]

    settings = doc.get("settings")
    if not isinstance(settings, dict):
        summary.warn("Settings were missing; defaults were used")
        settings = copy.deepcopy(fixtures.DEFAULT_SETTINGS)

    return {
        "users": _rebuild_users(doc.get("users"), summary),
        "categories": _rebuild_categories(doc.get("categories"), doc.get("subcategories"), summary),
        "expenses": _rebuild_expenses(doc.get("expenses"), summary, restored_at),
        "credentials": credentials,
        "settings": dict(settings),
    }


def restore_from_backup(store: LocalStore, doc: Any) -> RestoreSummary:
    """
    Replace every store with the contents of ``doc``.

    Raises BackupError when the document fails validate_backup(). All writes
    share the store's session, so the caller's transaction covers them.
    """
    problems = validate_backup(doc)
    if problems:
        raise BackupError("Invalid backup file format: " + "; ".join(problems))

    summary = RestoreSummary()
    data = reconstruct_backup(doc, summary)

    store.set_users(data["users"])
    store.set_categories(data["categories"])
    store.set_expenses(data["expenses"])
    store.set_credentials(data["credentials"])
    store.set_settings(data["settings"])

    summary.users = len(data["users"])
    summary.categories = len(data["categories"])
    summary.subcategories = sum(len(category["subcategories"]) for category in data["categories"])
    summary.expenses = len(data["expenses"])
    logger.info(
        "Restored backup from %s: %d users, %d categories, %d subcategories, %d expenses (%d warnings)",
        doc.get("timestamp"),
        summary.users,
        summary.categories,
        summary.subcategories,
        summary.expenses,
        len(summary.warnings),
    )
    return summary


# Readable export

def format_readable_backup(doc: Dict[str, Any]) -> str:
    users = doc.get("users") or []
    categories = doc.get("categories") or []
    expenses = doc.get("expenses") or []
    use_case = doc.get("useCase") or (doc.get("credentials") or {}).get("useCase") or fixtures.DEFAULT_USE_CASE

    lines = ["EXPENSE TRACKER BACKUP", "=" * 50, ""]
    timestamp = parse_datetime(doc.get("timestamp"))
    lines.append(f"Backup Date: {timestamp.strftime('%Y-%m-%d %H:%M:%S UTC') if timestamp else 'Unknown'}")
    lines.append(f"Version: {doc.get('version', BACKUP_VERSION)}")
    lines.append(f"Use Case: {get_use_case(use_case)['name']}")
    lines.append("")

    lines.append(f"USERS ({len(users)})")
    lines.append("-" * 20)
    for user in users:
        lines.append(f"- {user.get('name')} (@{user.get('username')}) - {user.get('email')}")
    lines.append("")

    lines.append(f"CATEGORIES ({len(categories)})")
    lines.append("-" * 20)
    for category in categories:
        lines.append(f"- {category.get('name')}")
        for sub in category.get("subcategories") or []:
            lines.append(f"   - {sub.get('name')}")
    lines.append("")

    amounts = [parse_amount(expense.get("amount")) or 0.0 for expense in expenses]
    dates = sorted(d for d in (parse_date(expense.get("date")) for expense in expenses) if d is not None)
    lines.append("EXPENSES SUMMARY")
    lines.append("-" * 20)
    lines.append(f"Total Expenses: {len(expenses)}")
    lines.append(f"Total Amount: ${sum(amounts):,.2f}")
    if dates:
        lines.append(f"Date Range: {dates[0].isoformat()} to {dates[-1].isoformat()}")
    lines.append("")

    user_names = {str(user.get("id")): user.get("name") for user in users}
    category_names = {str(category.get("id")): category.get("name") for category in categories}
    recent = sorted(
        expenses,
        key=lambda expense: parse_date(expense.get("date")) or date.min,
        reverse=True,
    )[:10]
    lines.append("RECENT EXPENSES (Last 10)")
    lines.append("-" * 20)
    for expense in recent:
        amount = parse_amount(expense.get("amount")) or 0.0
        lines.append(
            f"{expense.get('date')} - ${amount:.2f} - {expense.get('description')}"
            f" ({user_names.get(str(expense.get('userId')), 'Unknown')},"
            f" {category_names.get(str(expense.get('categoryId')), 'Unknown')})"
        )
    return "\n".join(lines) + "\n"


# Files

def default_backup_filename(kind: str = "full", today: Optional[date] = None) -> str:
    if kind not in FILENAME_PATTERNS:
        raise BackupError(f"Unknown backup kind: {kind!r}")
    today = today or date.today()
    return FILENAME_PATTERNS[kind].format(day=today.isoformat())


def write_backup_file(doc: Dict[str, Any], directory: Path, filename: Optional[str] = None) -> Path:
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    target = directory / (filename or default_backup_filename("full"))
    target.write_text(json.dumps(doc, indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info("Wrote backup file %s", target)
    return target


def read_backup_file(path: Path) -> Dict[str, Any]:
    try:
        return load_backup_text(Path(path).read_text(encoding="utf-8"))
    except OSError as exc:
        raise BackupError(f"Could not read backup file {path}: {exc}") from exc


def load_backup_text(text: str) -> Dict[str, Any]:
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise BackupError(f"Backup is not valid JSON: {exc}") from exc


# Backup locations

def _last_used(location: dict) -> datetime:
    return parse_datetime(location.get("lastUsed")) or datetime.min.replace(tzinfo=timezone.utc)


def get_backup_locations(store: LocalStore) -> List[dict]:
    return store.get_record(BACKUP_LOCATIONS_KEY, [])


def save_backup_location(store: LocalStore, path: str, name: Optional[str] = None) -> List[dict]:
    """Record ``path`` as just used; only the most recent locations are kept."""
    location = {
        "path": path,
        "name": name or Path(path).name or path,
        "lastUsed": _now_iso(),
    }
    others = [loc for loc in get_backup_locations(store) if loc.get("path") != path]
    locations = sorted([location] + others, key=_last_used, reverse=True)[:MAX_BACKUP_LOCATIONS]
    store.set_record(BACKUP_LOCATIONS_KEY, locations)
    return locations


def get_default_backup_location(store: LocalStore) -> Optional[str]:
    return store.get_record(DEFAULT_BACKUP_LOCATION_KEY)


def set_default_backup_location(store: LocalStore, path: str) -> None:
    store.set_record(DEFAULT_BACKUP_LOCATION_KEY, path)
