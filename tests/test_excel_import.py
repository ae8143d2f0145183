from io import BytesIO

import openpyxl
import pytest

from expense_tracker.services import excel_import
from expense_tracker.services.backup import restore_from_backup, validate_backup

pytestmark = pytest.mark.unit


def _workbook_bytes(sheets):
    """Build an .xlsx in memory from {sheet title: [header row, data rows...]}."""
    workbook = openpyxl.Workbook()
    workbook.remove(workbook.active)
    for title, rows in sheets.items():
        sheet = workbook.create_sheet(title)
        for row in rows:
            sheet.append(row)
    buffer = BytesIO()
    workbook.save(buffer)
    return buffer.getvalue()


def _minimal_sheets():
    return {
        "Users": [["ID", "Name", "Email"], [1, "Pat Lee", "pat@example.com"]],
        "Categories": [["ID", "Name", "Icon", "Color"], [1, "Food", "Utensils", "text-red-600"]],
        "Subcategories": [["ID", "Name", "Category ID"], [1, "Groceries", 1]],
        "Expenses": [
            ["User ID", "Category ID", "Subcategory ID", "Amount", "Description", "Date"],
            [1, 1, 1, 9.5, "Bread", "2025-02-01"],
        ],
    }


class TestParseWorkbook:
    def test_template_converts_cleanly(self):
        result = excel_import.parse_workbook(excel_import.template_bytes())

        assert result.success is True
        assert result.errors == []
        assert len(result.data["users"]) == 3
        assert len(result.data["categories"]) == 4
        assert sum(len(c["subcategories"]) for c in result.data["categories"]) == 16
        assert len(result.data["expenses"]) == 5
        assert result.data["expenses"][0]["userId"] == "1"
        assert result.data["expenses"][1]["amount"] == 45.0

    def test_loose_sheet_names_and_headers(self):
        sheets = _minimal_sheets()
        sheets["people"] = sheets.pop("Users")
        sheets["TRANSACTIONS"] = [
            ["user_id", "CategoryID", "subcategory id", "Cost", "Desc", "Expense Date", "Vendor"],
            [1, 1, 1, "$1,200.00", "Laptop", "2025-02-01", "Shop"],
        ]
        del sheets["Expenses"]

        result = excel_import.parse_workbook(_workbook_bytes(sheets))

        assert result.success is True
        expense = result.data["expenses"][0]
        assert expense["amount"] == 1200.0
        assert expense["storeName"] == "Shop"
        assert expense["id"].startswith("exp-")

    def test_user_fields_are_derived(self):
        result = excel_import.parse_workbook(_workbook_bytes(_minimal_sheets()))

        user = result.data["users"][0]
        assert user["username"] == "patlee"
        assert user["avatar"] == "PL"
        assert user["color"] == "bg-blue-500"

    def test_missing_required_sheet(self):
        sheets = _minimal_sheets()
        del sheets["Categories"]

        result = excel_import.parse_workbook(_workbook_bytes(sheets))

        assert result.success is False
        assert result.errors == [
            'Required sheet "categories" not found. Expected one of: categories, category, cats'
        ]

    def test_missing_subcategories_sheet_is_a_warning(self):
        sheets = _minimal_sheets()
        del sheets["Subcategories"]
        sheets["Expenses"] = [sheets["Expenses"][0]]

        result = excel_import.parse_workbook(_workbook_bytes(sheets))

        assert result.success is True
        assert any(warning.startswith('Optional sheet "subcategories" not found') for warning in result.warnings)

    def test_invalid_colors_are_warnings(self):
        sheets = _minimal_sheets()
        sheets["Categories"][1][3] = "text-chartreuse-600"

        result = excel_import.parse_workbook(_workbook_bytes(sheets))

        assert result.success is True
        assert result.data["categories"][0]["color"] == "text-blue-600"
        assert result.warnings == ['Categories row 2: Invalid color "text-chartreuse-600", using default']

    def test_row_errors(self):
        sheets = _minimal_sheets()
        sheets["Expenses"] += [
            [None, 1, 1, 5, "No user", "2025-02-01"],
            [7, 1, 1, 5, "Ghost", "2025-02-01"],
            [1, 1, 99, 5, "Wrong sub", "2025-02-01"],
            [1, 1, 1, -3, "Refund", "2025-02-01"],
            [1, 1, 1, 3, "Whenever", "soon"],
        ]

        result = excel_import.parse_workbook(_workbook_bytes(sheets))

        assert result.success is False
        assert result.errors == [
            "Expenses row 3: User ID is required",
            'Expenses row 4: User ID "7" not found',
            'Expenses row 5: Subcategory ID "99" not found in category "Food"',
            "Expenses row 6: Valid amount is required",
            "Expenses row 7: Valid date is required",
        ]

    @pytest.mark.parametrize("serial", [99999999, 10**12])
    def test_date_serial_out_of_range(self, serial):
        sheets = _minimal_sheets()
        sheets["Expenses"].append([1, 1, 1, 5, "Far future", serial])

        result = excel_import.parse_workbook(_workbook_bytes(sheets))

        assert result.success is False
        assert result.errors == ["Expenses row 3: Valid date is required"]

    @pytest.mark.parametrize("amount", ["Infinity", "NaN", 1e300])
    def test_amount_that_cannot_be_stored(self, amount):
        sheets = _minimal_sheets()
        sheets["Expenses"].append([1, 1, 1, amount, "Odd", "2025-02-01"])

        result = excel_import.parse_workbook(_workbook_bytes(sheets))

        assert result.errors == ["Expenses row 3: Valid amount is required"]

    def test_duplicate_usernames(self):
        sheets = _minimal_sheets()
        sheets["Users"].append([2, "Pat Lee", "other@example.com"])

        result = excel_import.parse_workbook(_workbook_bytes(sheets))

        assert result.errors == ['Users row 3: Duplicate username "patlee"']

    def test_not_a_workbook(self):
        result = excel_import.parse_workbook(b"this is not a zip file")

        assert result.success is False
        assert result.errors[0].startswith("Failed to parse Excel file:")


class TestBackupDocument:
    def test_document_is_flat_and_valid(self):
        result = excel_import.parse_workbook(excel_import.template_bytes())

        doc = excel_import.generate_backup_document(result.data)

        assert validate_backup(doc) == []
        assert "subcategories" not in doc["categories"][0]
        assert len(doc["subcategories"]) == 16
        assert doc["subcategories"][0]["categoryId"] == "1"

    def test_document_restores(self, store):
        result = excel_import.parse_workbook(excel_import.template_bytes())
        doc = excel_import.generate_backup_document(result.data)

        summary = restore_from_backup(store, doc)

        assert (summary.users, summary.categories, summary.subcategories, summary.expenses) == (3, 4, 16, 5)
        assert summary.warnings == []
        fuel = store.get("expenses", "2")
        assert fuel["subcategoryId"] == "13"
        assert fuel["description"] == "Gas for car"
