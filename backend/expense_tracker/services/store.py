"""
LocalStore: the structured-store wrapper over the SQLAlchemy session.

Entity stores (users, categories, expenses) are read and written as plain
camelCase dicts, the same shape the backup document uses. Categories carry
their subcategories nested; expenses carry their attachments nested.
Singleton documents (credentials, settings, backup locations) live in
``app_records`` keyed by record id.
"""

from __future__ import annotations

import copy
import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, select
from sqlalchemy.orm import Session, selectinload

from expense_tracker.errors import RecordNotFoundError, ValidationError
from expense_tracker.models import AppRecord, Category, Expense, ExpenseAttachment, Subcategory, User, utcnow
from expense_tracker.services import fixtures
from expense_tracker.services.parsing import as_utc, parse_date, parse_datetime


logger = logging.getLogger(__name__)

STORE_NAMES = ("users", "categories", "expenses")
_LABELS = {"users": "User", "categories": "Category", "expenses": "Expense"}

CREDENTIALS_KEY = "credentials"
SETTINGS_KEY = "settings"


# Row <-> dict conversion

def user_to_dict(user: User) -> dict:
    return {
        "id": user.id,
        "name": user.name,
        "username": user.username,
        "email": user.email,
        "avatar": user.avatar,
        "color": user.color,
        "isActive": user.is_active,
        "defaultCategoryId": user.default_category_id,
        "defaultSubcategoryId": user.default_subcategory_id,
        "defaultStoreLocation": user.default_store_location,
    }


def subcategory_to_dict(subcategory: Subcategory) -> dict:
    return {"id": subcategory.id, "name": subcategory.name, "categoryId": subcategory.category_id}


def category_to_dict(category: Category) -> dict:
    return {
        "id": category.id,
        "name": category.name,
        "icon": category.icon,
        "color": category.color,
        "subcategories": [subcategory_to_dict(sub) for sub in category.subcategories],
    }


def attachment_to_dict(attachment: ExpenseAttachment) -> dict:
    return {
        "id": attachment.id,
        "name": attachment.name,
        "type": attachment.type,
        "size": attachment.size,
        "dataUrl": attachment.data_url,
        "uploadedAt": as_utc(attachment.uploaded_at).isoformat(),
    }


def expense_to_dict(expense: Expense) -> dict:
    data = {
        "id": expense.id,
        "userId": expense.user_id,
        "categoryId": expense.category_id,
        "subcategoryId": expense.subcategory_id,
        "amount": float(expense.amount),
        "description": expense.description,
        "notes": expense.notes,
        "storeName": expense.store_name,
        "storeLocation": expense.store_location,
        "date": expense.date.isoformat(),
        "createdAt": as_utc(expense.created_at).isoformat(),
    }
    if expense.attachments:
        data["attachments"] = [attachment_to_dict(att) for att in expense.attachments]
    return data


def user_from_dict(item: dict) -> User:
    return User(
        id=str(item["id"]),
        name=item["name"],
        username=item["username"],
        email=item["email"],
        avatar=item.get("avatar") or "",
        color=item.get("color") or "bg-blue-500",
        is_active=bool(item.get("isActive", True)),
        default_category_id=item.get("defaultCategoryId") or None,
        default_subcategory_id=item.get("defaultSubcategoryId") or None,
        default_store_location=item.get("defaultStoreLocation") or None,
    )


def category_from_dict(item: dict) -> Category:
    category_id = str(item["id"])
    category = Category(
        id=category_id,
        name=item["name"],
        icon=item.get("icon") or "Tag",
        color=item.get("color") or "text-blue-600",
    )
    category.subcategories = [
        Subcategory(id=str(sub["id"]), name=sub["name"], category_id=category_id, position=position)
        for position, sub in enumerate(item.get("subcategories") or [])
    ]
    return category


def attachment_from_dict(item: dict, expense_id: str) -> ExpenseAttachment:
    return ExpenseAttachment(
        id=str(item["id"]),
        expense_id=expense_id,
        name=item.get("name") or "attachment",
        type=item.get("type") or "application/octet-stream",
        size=int(item.get("size") or 0),
        data_url=item.get("dataUrl") or "",
        uploaded_at=parse_datetime(item.get("uploadedAt")) or utcnow(),
    )


def expense_from_dict(item: dict) -> Expense:
    expense_date = parse_date(item.get("date"))
    if expense_date is None:
        raise ValidationError(f"Expense {item.get('id')!r} has an invalid date: {item.get('date')!r}")
    expense_id = str(item["id"])
    expense = Expense(
        id=expense_id,
        user_id=str(item["userId"]),
        category_id=str(item["categoryId"]),
        subcategory_id=str(item["subcategoryId"]),
        amount=Decimal(str(item["amount"])).quantize(Decimal("0.01")),
        description=item["description"],
        notes=item.get("notes") or None,
        store_name=item.get("storeName") or None,
        store_location=item.get("storeLocation") or None,
        date=expense_date,
        created_at=parse_datetime(item.get("createdAt")) or utcnow(),
    )
    expense.attachments = [attachment_from_dict(att, expense_id) for att in item.get("attachments") or []]
    return expense


_ENTITY_MODELS: Dict[str, tuple] = {
    "users": (User, user_to_dict, user_from_dict),
    "categories": (Category, category_to_dict, category_from_dict),
    "expenses": (Expense, expense_to_dict, expense_from_dict),
}


class LocalStore:
    """Key/value style access to the expense tracker's tables."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def _entity(self, store: str) -> tuple:
        try:
            return _ENTITY_MODELS[store]
        except KeyError:
            raise ValidationError(f"Unknown store: {store!r}. Expected one of: {', '.join(STORE_NAMES)}")

    def _query(self, model):
        stmt = select(model)
        if model is Category:
            stmt = stmt.options(selectinload(Category.subcategories))
        elif model is Expense:
            stmt = stmt.options(selectinload(Expense.attachments))
        return stmt

    # Generic store operations

    def get_all(self, store: str) -> List[dict]:
        model, to_dict, _ = self._entity(store)
        rows = self.session.execute(self._query(model).order_by(model.id)).scalars().all()
        return [to_dict(row) for row in rows]

    def get(self, store: str, key: str) -> Optional[dict]:
        model, to_dict, _ = self._entity(store)
        row = self.session.get(model, str(key))
        return to_dict(row) if row is not None else None

    def require(self, store: str, key: str) -> dict:
        item = self.get(store, key)
        if item is None:
            raise RecordNotFoundError(f"{_LABELS[store]} not found")
        return item

    def put(self, store: str, item: dict) -> dict:
        """Insert or replace one item by id."""
        model, to_dict, from_dict = self._entity(store)
        merged = self.session.merge(from_dict(item))
        self.session.flush()
        return to_dict(merged)

    def set_all(self, store: str, items: List[dict]) -> None:
        """Replace the whole store: clear, then add every item."""
        _, _, from_dict = self._entity(store)
        rows = [from_dict(item) for item in items]
        self.clear(store)
        self.session.add_all(rows)
        self.session.flush()

    def delete(self, store: str, key: str) -> bool:
        model, _, _ = self._entity(store)
        row = self.session.get(model, str(key))
        if row is None:
            return False
        self.session.delete(row)
        self.session.flush()
        return True

    def clear(self, store: str) -> None:
        self._entity(store)
        self.session.flush()
        # Bulk deletes skip ORM cascades, so children go first.
        if store == "categories":
            self.session.execute(delete(Subcategory).execution_options(synchronize_session=False))
            self.session.execute(delete(Category).execution_options(synchronize_session=False))
        elif store == "expenses":
            self.session.execute(delete(ExpenseAttachment).execution_options(synchronize_session=False))
            self.session.execute(delete(Expense).execution_options(synchronize_session=False))
        else:
            self.session.execute(delete(User).execution_options(synchronize_session=False))
        self.session.expunge_all()

    # Typed accessors

    def get_users(self) -> List[dict]:
        return self.get_all("users")

    def set_users(self, users: List[dict]) -> None:
        self.set_all("users", users)

    def get_categories(self) -> List[dict]:
        return self.get_all("categories")

    def set_categories(self, categories: List[dict]) -> None:
        self.set_all("categories", categories)

    def get_expenses(self) -> List[dict]:
        return self.get_all("expenses")

    def set_expenses(self, expenses: List[dict]) -> None:
        self.set_all("expenses", expenses)

    # Singleton documents

    def get_record(self, key: str, default: Any = None) -> Any:
        record = self.session.get(AppRecord, key)
        if record is None or record.data is None:
            return copy.deepcopy(default)
        return copy.deepcopy(record.data)

    def set_record(self, key: str, value: Any) -> None:
        record = self.session.get(AppRecord, key)
        if record is None:
            self.session.add(AppRecord(id=key, data=value))
        else:
            record.data = value
        self.session.flush()

    def get_credentials(self) -> dict:
        return self.get_record(CREDENTIALS_KEY, fixtures.DEFAULT_CREDENTIALS)

    def set_credentials(self, credentials: dict) -> None:
        self.set_record(CREDENTIALS_KEY, dict(credentials))

    def get_settings(self) -> dict:
        return self.get_record(SETTINGS_KEY, fixtures.DEFAULT_SETTINGS)

    def set_settings(self, settings: dict) -> None:
        self.set_record(SETTINGS_KEY, dict(settings))

    def get_auth_state(self) -> bool:
        return self.get_settings().get("auth") == "true"

    def set_auth_state(self, is_authenticated: bool) -> None:
        settings = self.get_settings()
        settings["auth"] = "true" if is_authenticated else "false"
        self.set_settings(settings)

    def is_empty(self) -> bool:
        for model in (User, Category, Expense):
            if self.session.execute(select(model.id).limit(1)).first() is not None:
                return False
        return True

    def initialize_default_data(self) -> bool:
        """Seed the default users, categories and expenses when every store is empty."""
        if not self.is_empty():
            return False

        self.set_users(copy.deepcopy(fixtures.DEFAULT_USERS))
        self.set_categories(copy.deepcopy(fixtures.DEFAULT_CATEGORIES))
        self.set_expenses(copy.deepcopy(fixtures.DEFAULT_EXPENSES))
        self.set_credentials(fixtures.DEFAULT_CREDENTIALS)
        self.set_settings(fixtures.DEFAULT_SETTINGS)
        logger.info(
            "Initialised empty store with %d users, %d categories and %d expenses",
            len(fixtures.DEFAULT_USERS),
            len(fixtures.DEFAULT_CATEGORIES),
            len(fixtures.DEFAULT_EXPENSES),
        )
        return True
