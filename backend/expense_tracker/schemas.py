from __future__ import annotations

from datetime import date, datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel

from expense_tracker.services.parsing import MAX_AMOUNT


# Field names below shadow the date type inside class bodies.
DateType = date


class CamelModel(BaseModel):
    """Wire models speak camelCase, Python code uses snake_case."""

    class Config:
        alias_generator = to_camel
        populate_by_name = True
        from_attributes = True


# Users
class UserBase(CamelModel):
    name: str = Field(min_length=1)
    username: str = Field(min_length=1)
    email: str = Field(min_length=3)
    avatar: Optional[str] = None  # Initials, generated from name when omitted
    color: str = "bg-blue-500"
    is_active: bool = True
    default_category_id: Optional[str] = None
    default_subcategory_id: Optional[str] = None
    default_store_location: Optional[str] = None


class UserCreate(UserBase):
    id: Optional[str] = None


class UserUpdate(CamelModel):
    name: Optional[str] = None
    username: Optional[str] = None
    email: Optional[str] = None
    avatar: Optional[str] = None
    color: Optional[str] = None
    is_active: Optional[bool] = None
    default_category_id: Optional[str] = None
    default_subcategory_id: Optional[str] = None
    default_store_location: Optional[str] = None


class UserOut(UserBase):
    id: str
    avatar: str = ""


# Categories
class SubcategoryDraft(CamelModel):
    id: Optional[str] = None
    name: str = Field(min_length=1)


class SubcategoryCreate(CamelModel):
    name: str = Field(min_length=1)
    category_id: str
    id: Optional[str] = None


class SubcategoryUpdate(CamelModel):
    name: Optional[str] = None
    category_id: Optional[str] = None


class SubcategoryOut(CamelModel):
    id: str
    name: str
    category_id: str


class CategoryCreate(CamelModel):
    id: Optional[str] = None
    name: str = Field(min_length=1)
    icon: str = "Tag"
    color: str = "text-blue-600"
    subcategories: List[SubcategoryDraft] = Field(default_factory=list)


class CategoryUpdate(CamelModel):
    name: Optional[str] = None
    icon: Optional[str] = None
    color: Optional[str] = None
    subcategories: Optional[List[SubcategoryDraft]] = None  # Replaces the whole list when given


class CategoryOut(CamelModel):
    id: str
    name: str
    icon: str
    color: str
    subcategories: List[SubcategoryOut] = Field(default_factory=list)


# Expenses
class AttachmentCreate(CamelModel):
    name: str
    type: str
    size: int = Field(ge=0)
    data_url: str


class AttachmentOut(AttachmentCreate):
    id: str
    uploaded_at: datetime


class ExpenseCreate(CamelModel):
    user_id: str
    category_id: str
    subcategory_id: str
    amount: float = Field(gt=0, le=MAX_AMOUNT, allow_inf_nan=False)
    description: str = Field(min_length=1)
    notes: Optional[str] = None
    store_name: Optional[str] = None
    store_location: Optional[str] = None
    date: DateType
    attachments: List[AttachmentCreate] = Field(default_factory=list)


class ExpenseUpdate(CamelModel):
    user_id: Optional[str] = None
    category_id: Optional[str] = None
    subcategory_id: Optional[str] = None
    amount: Optional[float] = Field(default=None, gt=0, le=MAX_AMOUNT, allow_inf_nan=False)
    description: Optional[str] = None
    notes: Optional[str] = None
    store_name: Optional[str] = None
    store_location: Optional[str] = None
    date: Optional[DateType] = None


class ExpenseOut(CamelModel):
    id: str
    user_id: str
    category_id: str
    subcategory_id: str
    amount: float
    description: str
    notes: Optional[str] = None
    store_name: Optional[str] = None
    store_location: Optional[str] = None
    date: DateType
    created_at: datetime
    attachments: List[AttachmentOut] = Field(default_factory=list)


class ExpensePage(CamelModel):
    items: List[ExpenseOut]
    total: int
    page: int
    page_size: int
    pages: int


# Backups
class BackupLocation(CamelModel):
    path: str
    name: str
    last_used: datetime


class BackupLocationCreate(CamelModel):
    path: str = Field(min_length=1)
    name: Optional[str] = None


class RestoreResult(CamelModel):
    success: bool = True
    message: str
    users: int
    categories: int
    subcategories: int
    expenses: int
    warnings: List[str] = Field(default_factory=list)


class BackupFileResult(CamelModel):
    path: str
    filename: str
    bytes_written: int


class DefaultLocationUpdate(CamelModel):
    path: str


# Imports
class ImportResult(CamelModel):
    imported: int
    errors: List[str] = Field(default_factory=list)


class ExcelConversionResult(CamelModel):
    success: bool
    errors: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    backup: Optional[Dict[str, Any]] = None


# Reports
class DashboardStatsOut(CamelModel):
    total_spent: float
    expense_count: int
    current_year: str
    current_year_total: float
    current_year_count: int
    current_month_total: float
    previous_month_total: float
    monthly_change: float
    first_date: Optional[date] = None
    last_date: Optional[date] = None


class CategoryBreakdownItem(CamelModel):
    category_id: str
    name: str
    icon: str
    color: str
    total: float
    count: int
    percentage: float


class SubcategoryBreakdownItem(CamelModel):
    subcategory_id: str
    name: str
    total: float
    count: int
    percentage: float


class SubcategoryReportRow(CamelModel):
    subcategory_id: str
    category_id: str
    name: str
    monthly_totals: List[float]
    total: float


class UserReportRow(CamelModel):
    user_id: str
    name: str
    total: float
    count: int


class MonthlyReportOut(CamelModel):
    start_date: date
    end_date: date
    months: List[str]
    rows: List[SubcategoryReportRow]
    monthly_totals: List[float]
    user_totals: List[UserReportRow]
    grand_total: float


# Settings
class UseCaseOut(CamelModel):
    id: str
    name: str
    description: str
    user_label: str
    user_label_singular: str
    expense_context: str
    dashboard_title: str
    terminology: Dict[str, str]
