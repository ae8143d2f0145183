from __future__ import annotations

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any

from sqlalchemy import JSON, Boolean, Date, DateTime, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from expense_tracker.db import Base


# The Expense.date column shadows the date type inside its class body.
DateType = date


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    __tablename__ = "users"

    # Ids are client-visible strings ("1", "1736950000-ab12cd") and survive backup/restore verbatim.
    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(200))
    username: Mapped[str] = mapped_column(String(100), unique=True, index=True)
    email: Mapped[str] = mapped_column(String(320), unique=True, index=True)
    avatar: Mapped[str] = mapped_column(String(10), default="")
    color: Mapped[str] = mapped_column(String(50), default="bg-blue-500")
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    default_category_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    default_subcategory_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    default_store_location: Mapped[str | None] = mapped_column(String(200), nullable=True)


class Category(Base):
    __tablename__ = "categories"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(200))
    icon: Mapped[str] = mapped_column(String(50), default="Tag")
    color: Mapped[str] = mapped_column(String(50), default="text-blue-600")

    subcategories: Mapped[list["Subcategory"]] = relationship(
        back_populates="category",
        cascade="all, delete-orphan",
        order_by="Subcategory.position",
    )


class Subcategory(Base):
    __tablename__ = "subcategories"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(200))
    category_id: Mapped[str] = mapped_column(ForeignKey("categories.id", ondelete="CASCADE"), index=True)
    position: Mapped[int] = mapped_column(Integer, default=0)

    category: Mapped["Category"] = relationship(back_populates="subcategories")


class Expense(Base):
    __tablename__ = "expenses"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    # References are plain strings: restored data may point at users/categories that no longer exist.
    user_id: Mapped[str] = mapped_column(String(64), index=True)
    category_id: Mapped[str] = mapped_column(String(64), index=True)
    subcategory_id: Mapped[str] = mapped_column(String(64), index=True)
    amount: Mapped[Decimal] = mapped_column(Numeric(10, 2))
    description: Mapped[str] = mapped_column(String(1000))
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    store_name: Mapped[str | None] = mapped_column(String(200), nullable=True)
    store_location: Mapped[str | None] = mapped_column(String(200), nullable=True)
    date: Mapped[DateType] = mapped_column(Date, index=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    attachments: Mapped[list["ExpenseAttachment"]] = relationship(
        back_populates="expense",
        cascade="all, delete-orphan",
        order_by="ExpenseAttachment.uploaded_at",
    )


class ExpenseAttachment(Base):
    __tablename__ = "expense_attachments"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    expense_id: Mapped[str] = mapped_column(ForeignKey("expenses.id", ondelete="CASCADE"), index=True)
    name: Mapped[str] = mapped_column(String(500))
    type: Mapped[str] = mapped_column(String(100))
    size: Mapped[int] = mapped_column(Integer)
    data_url: Mapped[str] = mapped_column(Text)
    uploaded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    expense: Mapped["Expense"] = relationship(back_populates="attachments")


class AppRecord(Base):
    """Singleton JSON documents (credentials, settings, backup locations) keyed by record id."""

    __tablename__ = "app_records"

    id: Mapped[str] = mapped_column(String(100), primary_key=True)
    data: Mapped[Any] = mapped_column(JSON, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)
