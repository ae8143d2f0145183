import random
from datetime import date

import pytest

from expense_tracker.services import fixtures
from expense_tracker.services.use_cases import get_use_case, list_use_cases


pytestmark = pytest.mark.unit


class TestDefaultData:
    def test_expenses_reference_existing_taxonomy(self):
        user_ids = {user["id"] for user in fixtures.DEFAULT_USERS}
        subs = {
            (category["id"], sub["id"]) for category in fixtures.DEFAULT_CATEGORIES for sub in category["subcategories"]
        }

        for expense in fixtures.DEFAULT_EXPENSES:
            assert expense["userId"] in user_ids
            assert (expense["categoryId"], expense["subcategoryId"]) in subs

    def test_subcategory_ids_are_unique_across_categories(self):
        ids = [sub["id"] for category in fixtures.DEFAULT_CATEGORIES for sub in category["subcategories"]]

        assert len(ids) == len(set(ids)) == 16


class TestFamilyData:
    def test_users_and_categories(self):
        data = fixtures.generate_family_data(random.Random(1), date(2025, 1, 15))

        assert [user["avatar"] for user in data["users"]] == ["DJ", "LJ", "EJ", "MJ"]
        assert len(data["categories"]) == 5
        assert [sub["id"] for sub in data["categories"][-1]["subcategories"]] == ["21", "22", "23", "24", "25"]

    def test_expense_count_and_range(self):
        expenses = fixtures.generate_family_expenses(random.Random(7), date(2025, 1, 15))

        assert 480 <= len(expenses) <= 500
        days = [date.fromisoformat(expense["date"]) for expense in expenses]
        assert min(days) >= date(2024, 1, 1)
        assert max(days) < date(2025, 1, 1)
        assert [expense["id"] for expense in expenses[:3]] == ["1", "2", "3"]

    def test_expenses_match_their_template(self):
        categories = fixtures.family_categories()
        subs = {(c["id"], s["id"]) for c in categories for s in c["subcategories"]}

        for expense in fixtures.generate_family_expenses(random.Random(3), date(2025, 6, 1), count=100):
            assert (expense["categoryId"], expense["subcategoryId"]) in subs
            assert expense["userId"] in {"1", "2", "3", "4"}
            assert expense["amount"] > 0

    def test_count_limit(self):
        assert len(fixtures.generate_family_expenses(random.Random(0), date(2025, 1, 15), count=25)) == 25

    def test_seeded_runs_are_reproducible(self):
        first = fixtures.generate_family_expenses(random.Random(42), date(2025, 1, 15))
        second = fixtures.generate_family_expenses(random.Random(42), date(2025, 1, 15))

        strip = lambda rows: [{k: v for k, v in row.items() if k != "createdAt"} for row in rows]  # noqa: E731
        assert strip(first) == strip(second)


class TestUseCases:
    def test_six_use_cases(self):
        assert [case["id"] for case in list_use_cases()] == [
            "family-expenses",
            "personal-team",
            "project-based",
            "department-based",
            "client-based",
            "location-based",
        ]

    def test_terminology(self):
        case = get_use_case("project-based")

        assert case["terminology"]["addUser"] == "Add Project"
        assert case["terminology"]["userFilter"] == "Filter by project"
        assert case["userLabel"] == "Projects"

    def test_unknown_falls_back_to_team(self):
        assert get_use_case("nonsense")["id"] == "personal-team"
        assert get_use_case("")["id"] == "personal-team"
