import csv
from io import StringIO

import pytest

from expense_tracker.errors import ValidationError
from expense_tracker.services import csv_io
from expense_tracker.services.fixtures import DEFAULT_CATEGORIES, DEFAULT_EXPENSES, DEFAULT_USERS


pytestmark = pytest.mark.unit


def _rows(text):
    return list(csv.reader(StringIO(text)))


def _csv(headers, *rows):
    lines = [",".join(headers)] + [",".join(row) for row in rows]
    return "\n".join(lines) + "\n"


def _expense_row(**overrides):
    row = {
        "ID": "",
        "User ID": "1",
        "User Name": "Alex Chen",
        "Username": "alexc",
        "Email": "alex.chen@example.com",
        "Category ID": "1",
        "Category Name": "Groceries",
        "Subcategory ID": "1",
        "Subcategory Name": "Fresh Produce",
        "Amount": "12.50",
        "Description": "Apples",
        "Store Name": "Market",
        "Store Location": "Downtown",
        "Date": "2025-01-20",
        "Created At": "",
    }
    row.update(overrides)
    return [row[header] for header in csv_io.EXPENSE_HEADERS]


class TestExpenseCsv:
    def test_export_denormalises_names(self):
        text = csv_io.export_expenses_csv(DEFAULT_EXPENSES, DEFAULT_USERS, DEFAULT_CATEGORIES)

        rows = _rows(text)
        assert rows[0] == csv_io.EXPENSE_HEADERS
        assert len(rows) == 5
        first = dict(zip(rows[0], rows[1]))
        assert first["User Name"] == "Alex Chen"
        assert first["Category Name"] == "Groceries"
        assert first["Subcategory Name"] == "Fresh Produce"
        assert first["Amount"] == "45.67"

    def test_export_quotes_commas(self):
        expense = dict(DEFAULT_EXPENSES[0], description="Apples, pears")

        text = csv_io.export_expenses_csv([expense], DEFAULT_USERS, DEFAULT_CATEGORIES)

        assert '"Apples, pears"' in text
        assert _rows(text)[1][10] == "Apples, pears"

    def test_export_then_parse(self):
        text = csv_io.export_expenses_csv(DEFAULT_EXPENSES, DEFAULT_USERS, DEFAULT_CATEGORIES)

        rows = csv_io.parse_expenses_csv(text)

        assert [row["id"] for row in rows] == ["1", "2", "3", "4"]
        assert rows[2]["amount"] == 125.45
        assert rows[0]["rowNumber"] == 2

    def test_parse_normalises_dates(self):
        text = _csv(csv_io.EXPENSE_HEADERS, _expense_row(Date="20/01/2025"))

        assert csv_io.parse_expenses_csv(text)[0]["date"] == "2025-01-20"

    def test_headers_are_case_insensitive(self):
        headers = [header.upper() for header in csv_io.EXPENSE_HEADERS]

        rows = csv_io.parse_expenses_csv(_csv(headers, _expense_row()))

        assert rows[0]["description"] == "Apples"

    def test_header_only(self):
        with pytest.raises(ValidationError, match="at least a header row and one data row"):
            csv_io.parse_expenses_csv(",".join(csv_io.EXPENSE_HEADERS))

    def test_missing_columns_are_named(self):
        headers = [h for h in csv_io.EXPENSE_HEADERS if h not in ("Amount", "Date")]

        with pytest.raises(ValidationError, match="Missing required columns: Amount, Date"):
            csv_io.parse_expenses_csv(_csv(headers, ["x"] * len(headers)))

    def test_insufficient_columns(self):
        text = _csv(csv_io.EXPENSE_HEADERS, ["1", "2", "3"])

        with pytest.raises(ValidationError, match="Row 2: Insufficient columns"):
            csv_io.parse_expenses_csv(text)

    @pytest.mark.parametrize(
        "field,value",
        [("Description", ""), ("Amount", "0"), ("Amount", "NaN"), ("Amount", "inf"), ("User ID", "")],
    )
    def test_missing_required_data(self, field, value):
        text = _csv(csv_io.EXPENSE_HEADERS, _expense_row(), _expense_row(**{field: value}))

        with pytest.raises(ValidationError, match="Row 3: Missing required data"):
            csv_io.parse_expenses_csv(text)

    def test_invalid_date(self):
        text = _csv(csv_io.EXPENSE_HEADERS, _expense_row(Date="next tuesday"))

        with pytest.raises(ValidationError, match="Row 2: Invalid date format"):
            csv_io.parse_expenses_csv(text)

    def test_blank_lines_keep_row_numbers(self):
        text = _csv(csv_io.EXPENSE_HEADERS, _expense_row(), [], _expense_row(Date="bad"))

        with pytest.raises(ValidationError, match="Row 4: Invalid date format"):
            csv_io.parse_expenses_csv(text)


class TestValidateExpenseImport:
    def _parse(self, *rows):
        return csv_io.parse_expenses_csv(_csv(csv_io.EXPENSE_HEADERS, *rows))

    def test_resolves_by_name_when_id_is_unknown(self):
        rows = self._parse(_expense_row(**{"User ID": "99", "Category ID": "77", "Subcategory ID": "55"}))

        valid, errors = csv_io.validate_expense_import(rows, DEFAULT_USERS, DEFAULT_CATEGORIES)

        assert errors == []
        assert valid[0]["userId"] == "1"
        assert valid[0]["categoryId"] == "1"
        assert valid[0]["subcategoryId"] == "1"

    def test_missing_id_and_created_at_are_generated(self):
        valid, _ = csv_io.validate_expense_import(self._parse(_expense_row()), DEFAULT_USERS, DEFAULT_CATEGORIES)

        assert len(valid[0]["id"]) == 36
        assert valid[0]["createdAt"]

    def test_reports_unresolved_rows_and_keeps_others(self):
        rows = self._parse(
            _expense_row(),
            _expense_row(**{"User ID": "99", "User Name": "", "Username": "", "Email": ""}),
            _expense_row(**{"Category ID": "99", "Category Name": "Nope"}),
            _expense_row(**{"Subcategory ID": "99", "Subcategory Name": "Nope"}),
        )

        valid, errors = csv_io.validate_expense_import(rows, DEFAULT_USERS, DEFAULT_CATEGORIES)

        assert len(valid) == 1
        assert errors == [
            "Row 3: User not found",
            "Row 4: Category not found",
            "Row 5: Subcategory not found",
        ]


class TestCategoryCsv:
    def test_export_one_row_per_subcategory(self):
        rows = _rows(csv_io.export_categories_csv(DEFAULT_CATEGORIES))

        assert rows[0] == csv_io.CATEGORY_HEADERS
        assert len(rows) == 17

    def test_export_category_without_subcategories(self):
        category = {"id": "9", "name": "Empty", "icon": "Tag", "color": "text-blue-600", "subcategories": []}

        rows = _rows(csv_io.export_categories_csv([category]))

        assert rows[1] == ["9", "Empty", "Tag", "text-blue-600", "", ""]

    def test_template_groups_into_categories(self):
        rows = csv_io.parse_categories_csv(csv_io.category_template())

        categories, errors = csv_io.validate_category_import(rows)

        assert errors == []
        assert [category["name"] for category in categories] == ["Food & Dining", "Transportation", "Entertainment"]
        assert [sub["id"] for sub in categories[0]["subcategories"]] == ["1", "2"]
        assert categories[1]["subcategories"][0] == {"id": "3", "name": "Gas", "categoryId": "2"}

    def test_unknown_icon_and_color_fall_back(self):
        text = _csv(csv_io.CATEGORY_HEADERS, ["1", "Odd", "NotAnIcon", "text-chartreuse-600", "1", "Thing"])

        categories, _ = csv_io.validate_category_import(csv_io.parse_categories_csv(text))

        assert categories[0]["icon"] == "Tag"
        assert categories[0]["color"] == "text-blue-600"

    def test_duplicate_subcategory_names_collapse(self):
        text = _csv(
            csv_io.CATEGORY_HEADERS,
            ["1", "Food", "Utensils", "text-red-600", "1", "Groceries"],
            ["1", "food", "Utensils", "text-red-600", "2", "groceries"],
        )

        categories, errors = csv_io.validate_category_import(csv_io.parse_categories_csv(text))

        assert len(categories) == 1
        assert len(categories[0]["subcategories"]) == 1
        assert errors == ['Row 3: Duplicate subcategory "groceries" in "Food" was skipped']

    def test_category_name_required(self):
        text = _csv(csv_io.CATEGORY_HEADERS, ["1", "", "Tag", "text-blue-600", "", ""])

        with pytest.raises(ValidationError, match="Row 2: Category ID and Name are required"):
            csv_io.parse_categories_csv(text)

    def test_subcategory_name_required_with_id(self):
        text = _csv(csv_io.CATEGORY_HEADERS, ["1", "Food", "Tag", "text-blue-600", "4", ""])

        with pytest.raises(ValidationError, match="Subcategory name is required"):
            csv_io.parse_categories_csv(text)


class TestUserCsv:
    def test_export(self):
        rows = _rows(csv_io.export_users_csv(DEFAULT_USERS))

        assert rows[0] == csv_io.USER_HEADERS
        assert rows[1][:4] == ["1", "Alex Chen", "alexc", "alex.chen@example.com"]

    def test_template_imports_cleanly_into_empty_store(self):
        rows = csv_io.parse_users_csv(csv_io.user_template())

        users, errors = csv_io.validate_user_import(rows, [])

        assert errors == []
        assert [user["id"] for user in users] == ["1", "2", "3", "4"]

    def test_template_conflicts_with_defaults(self):
        rows = csv_io.parse_users_csv(csv_io.user_template())

        users, errors = csv_io.validate_user_import(rows, DEFAULT_USERS)

        assert [user["username"] for user in users] == ["miker", "emmaw"]
        assert [user["id"] for user in users] == ["3", "4"]
        assert errors == ['Row 2: Username "alexc" already exists', 'Row 3: Username "sarahj" already exists']

    def test_duplicates_within_file(self):
        text = _csv(
            csv_io.USER_HEADERS,
            ["", "Ann", "Ann_1", "ann@example.com", "", "", "", "", ""],
            ["", "Ann Two", "ann_1", "ann2@example.com", "", "", "", "", ""],
            ["", "Ann Three", "ann_3", "ANN@example.com", "", "", "", "", ""],
        )

        users, errors = csv_io.validate_user_import(csv_io.parse_users_csv(text), [])

        assert len(users) == 1
        assert users[0]["username"] == "ann_1"
        assert errors == ['Row 3: Duplicate username "ann_1"', 'Row 4: Duplicate email "ann@example.com"']

    def test_avatar_and_color_fallbacks(self):
        text = _csv(csv_io.USER_HEADERS, ["", "Mary Jones", "maryj", "mary@example.com", "MaryJ", "bg-plaid-500", "", "", ""])

        users, _ = csv_io.validate_user_import(csv_io.parse_users_csv(text), [])

        assert users[0]["avatar"] == "MJ"
        assert users[0]["color"] == "bg-blue-500"

    @pytest.mark.parametrize(
        "username,email,message",
        [
            ("ab", "ab@example.com", "Username must be 3-20 characters"),
            ("has space", "space@example.com", "Username must be 3-20 characters"),
            ("valid_name", "not-an-email", "Invalid email format"),
        ],
    )
    def test_field_validation(self, username, email, message):
        text = _csv(csv_io.USER_HEADERS, ["", "Some One", username, email, "", "", "", "", ""])

        with pytest.raises(ValidationError, match=f"Row 2: {message}"):
            csv_io.parse_users_csv(text)


class TestTemplates:
    def test_expense_template_validates_against_defaults(self):
        rows = csv_io.parse_expenses_csv(csv_io.TEMPLATES["expenses"]())

        valid, errors = csv_io.validate_expense_import(rows, DEFAULT_USERS, DEFAULT_CATEGORIES)

        assert errors == []
        assert valid[0]["amount"] == 45.67
