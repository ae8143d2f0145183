import pytest


pytestmark = pytest.mark.integration

NEW_EXPENSE = {
    "userId": "1",
    "categoryId": "1",
    "subcategoryId": "1",
    "amount": 9.99,
    "description": "Apples",
    "storeName": "Corner Market",
    "date": "2025-02-01",
}


class TestHealth:
    def test_health(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["version"] == "1.0.0"


class TestUsers:
    def test_list(self, seeded_client):
        response = seeded_client.get("/api/users")

        assert response.status_code == 200
        users = response.json()
        assert [user["username"] for user in users] == ["alexc", "sarahj"]
        assert users[0]["isActive"] is True
        assert users[0]["defaultStoreLocation"] == "Downtown"

    def test_get_missing(self, seeded_client):
        response = seeded_client.get("/api/users/99")

        assert response.status_code == 404
        assert response.json()["detail"] == "User not found"

    def test_create_assigns_id_and_avatar(self, seeded_client):
        response = seeded_client.post(
            "/api/users", json={"name": "Pat Lee", "username": "patl", "email": "pat@example.com"}
        )

        assert response.status_code == 201
        user = response.json()
        assert user["id"] == "3"
        assert user["avatar"] == "PL"
        assert user["color"] == "bg-blue-500"

    def test_create_duplicate_username_conflicts(self, seeded_client):
        response = seeded_client.post(
            "/api/users", json={"name": "Alex Again", "username": "ALEXC", "email": "other@example.com"}
        )

        assert response.status_code == 409
        assert "alexc" in response.json()["detail"].lower()

    def test_create_requires_name(self, seeded_client):
        response = seeded_client.post("/api/users", json={"username": "nobody", "email": "n@example.com"})

        assert response.status_code == 422

    def test_partial_update(self, seeded_client):
        response = seeded_client.put("/api/users/1", json={"name": "Alexander Chen", "defaultStoreLocation": None})

        assert response.status_code == 200
        user = response.json()
        assert user["name"] == "Alexander Chen"
        assert user["username"] == "alexc"
        assert user["avatar"] == "AC"
        assert user["defaultStoreLocation"] is None

    def test_update_to_taken_email_conflicts(self, seeded_client):
        response = seeded_client.put("/api/users/1", json={"email": "sarah.johnson@example.com"})

        assert response.status_code == 409

    def test_delete_removes_their_expenses(self, seeded_client):
        response = seeded_client.delete("/api/users/2")

        assert response.status_code == 204
        remaining = seeded_client.get("/api/expenses").json()
        assert {expense["userId"] for expense in remaining} == {"1"}


class TestCategories:
    def test_list_nests_subcategories(self, seeded_client):
        categories = seeded_client.get("/api/categories").json()

        assert [category["name"] for category in categories] == ["Groceries", "Utilities", "Entertainment", "Automobile"]
        assert categories[0]["subcategories"][0] == {"id": "1", "name": "Fresh Produce", "categoryId": "1"}

    def test_create_numbers_new_subcategories(self, seeded_client):
        response = seeded_client.post(
            "/api/categories",
            json={"name": "Pets", "icon": "Dog", "color": "text-amber-600",
                  "subcategories": [{"name": "Food"}, {"name": "Vet"}]},
        )

        assert response.status_code == 201
        category = response.json()
        assert category["id"] == "5"
        assert [(sub["id"], sub["categoryId"]) for sub in category["subcategories"]] == [("17", "5"), ("18", "5")]

    def test_create_with_taken_subcategory_id_conflicts(self, seeded_client):
        response = seeded_client.post("/api/categories", json={"name": "Pets", "subcategories": [{"id": "3", "name": "Food"}]})

        assert response.status_code == 409
        assert len(seeded_client.get("/api/categories/1").json()["subcategories"]) == 4

    def test_update_replaces_subcategories(self, seeded_client):
        response = seeded_client.put(
            "/api/categories/1", json={"name": "Food", "subcategories": [{"id": "1", "name": "Produce"}]}
        )

        assert response.status_code == 200
        category = seeded_client.get("/api/categories/1").json()
        assert category["name"] == "Food"
        assert category["icon"] == "ShoppingCart"
        assert category["subcategories"] == [{"id": "1", "name": "Produce", "categoryId": "1"}]

    def test_update_cannot_steal_subcategory(self, seeded_client):
        response = seeded_client.put("/api/categories/1", json={"subcategories": [{"id": "5", "name": "Power"}]})

        assert response.status_code == 409

    def test_delete_cascades_to_expenses(self, seeded_client):
        assert seeded_client.delete("/api/categories/1").status_code == 204

        assert seeded_client.get("/api/categories/1").status_code == 404
        assert [e["id"] for e in seeded_client.get("/api/expenses").json()] == ["3", "4"]
        assert seeded_client.get("/api/subcategories/1").status_code == 404

    def test_delete_missing(self, seeded_client):
        assert seeded_client.delete("/api/categories/42").status_code == 404


class TestSubcategories:
    def test_filter_by_category(self, seeded_client):
        subs = seeded_client.get("/api/subcategories", params={"categoryId": "2"}).json()

        assert [sub["name"] for sub in subs] == ["Electricity", "Water & Sewer", "Internet & Cable", "Gas"]

    def test_filter_by_unknown_category(self, seeded_client):
        assert seeded_client.get("/api/subcategories", params={"categoryId": "9"}).status_code == 404

    def test_create_rename_move_delete(self, seeded_client):
        created = seeded_client.post("/api/subcategories", json={"name": "Solar", "categoryId": "2"})
        assert created.status_code == 201
        assert created.json()["id"] == "17"

        renamed = seeded_client.put("/api/subcategories/17", json={"name": "Solar Panels"})
        assert renamed.json()["name"] == "Solar Panels"

        moved = seeded_client.put("/api/subcategories/17", json={"categoryId": "4"})
        assert moved.status_code == 200
        assert moved.json() == {"id": "17", "name": "Solar Panels", "categoryId": "4"}
        assert len(seeded_client.get("/api/categories/2").json()["subcategories"]) == 4
        assert seeded_client.get("/api/categories/4").json()["subcategories"][-1]["id"] == "17"

        assert seeded_client.delete("/api/subcategories/17").status_code == 204
        assert seeded_client.get("/api/subcategories/17").status_code == 404

    def test_create_in_missing_category(self, seeded_client):
        response = seeded_client.post("/api/subcategories", json={"name": "Orphan", "categoryId": "99"})

        assert response.status_code == 404

    def test_create_with_taken_id(self, seeded_client):
        response = seeded_client.post("/api/subcategories", json={"id": "1", "name": "Copy", "categoryId": "2"})

        assert response.status_code == 409


class TestExpenses:
    def test_create(self, seeded_client):
        response = seeded_client.post("/api/expenses", json=NEW_EXPENSE)

        assert response.status_code == 201
        expense = response.json()
        assert expense["id"] == "5"
        assert expense["amount"] == 9.99
        assert expense["date"] == "2025-02-01"
        assert expense["attachments"] == []
        assert seeded_client.get("/api/expenses/5").json()["storeName"] == "Corner Market"

    def test_create_with_unknown_subcategory(self, seeded_client):
        response = seeded_client.post("/api/expenses", json=dict(NEW_EXPENSE, subcategoryId="5"))

        assert response.status_code == 400
        assert "Subcategory '5' not found" in response.json()["detail"]

    @pytest.mark.parametrize(
        "field,value", [("amount", 0), ("amount", 1e9), ("description", ""), ("date", "2025-13-01")]
    )
    def test_create_rejects_bad_fields(self, seeded_client, field, value):
        response = seeded_client.post("/api/expenses", json=dict(NEW_EXPENSE, **{field: value}))

        assert response.status_code == 422

    def test_bulk_create(self, seeded_client):
        response = seeded_client.post(
            "/api/expenses/bulk", json=[NEW_EXPENSE, dict(NEW_EXPENSE, description="Pears")]
        )

        assert response.status_code == 201
        assert [expense["id"] for expense in response.json()] == ["5", "6"]

    def test_bulk_create_is_all_or_nothing(self, seeded_client):
        response = seeded_client.post(
            "/api/expenses/bulk", json=[NEW_EXPENSE, dict(NEW_EXPENSE, userId="99")]
        )

        assert response.status_code == 400
        assert len(seeded_client.get("/api/expenses").json()) == 4

    def test_list_defaults_to_newest_first(self, seeded_client):
        expenses = seeded_client.get("/api/expenses").json()

        assert [expense["id"] for expense in expenses] == ["1", "2", "3", "4"]

    def test_list_filters_and_sorts(self, seeded_client):
        response = seeded_client.get(
            "/api/expenses", params={"categoryId": "1", "sortBy": "amount", "sortOrder": "asc"}
        )

        assert [expense["id"] for expense in response.json()] == ["2", "1"]

    def test_list_search_and_custom_range(self, seeded_client):
        by_search = seeded_client.get("/api/expenses", params={"search": "whole foods"}).json()
        by_range = seeded_client.get(
            "/api/expenses", params={"datePreset": "custom", "startDate": "2025-01-10", "endDate": "2025-01-14"}
        ).json()

        assert [expense["id"] for expense in by_search] == ["1"]
        assert [expense["id"] for expense in by_range] == ["2", "3"]

    def test_list_paginated(self, seeded_client):
        body = seeded_client.get("/api/expenses", params={"page": 2, "pageSize": 3}).json()

        assert [expense["id"] for expense in body["items"]] == ["4"]
        assert body["total"] == 4
        assert body["pageSize"] == 3
        assert body["pages"] == 2

    def test_list_rejects_unknown_sort(self, seeded_client):
        response = seeded_client.get("/api/expenses", params={"sortBy": "store"})

        assert response.status_code == 400

    def test_locations(self, seeded_client):
        locations = seeded_client.get("/api/expenses/locations").json()

        assert "Downtown" in locations
        assert "Safeway" in locations

    def test_update(self, seeded_client):
        response = seeded_client.put("/api/expenses/1", json={"amount": 50, "notes": None, "date": "2025-01-16"})

        assert response.status_code == 200
        expense = response.json()
        assert expense["amount"] == 50.0
        assert expense["notes"] is None
        assert expense["date"] == "2025-01-16"
        assert expense["description"] == "Weekly fresh vegetables and fruits"

    def test_update_missing(self, seeded_client):
        response = seeded_client.put("/api/expenses/99", json={"amount": 1})

        assert response.status_code == 404
        assert response.json() == {"detail": "Expense not found"}

    def test_update_to_mismatched_category(self, seeded_client):
        response = seeded_client.put("/api/expenses/1", json={"categoryId": "2"})

        assert response.status_code == 400

    def test_delete(self, seeded_client):
        assert seeded_client.delete("/api/expenses/1").status_code == 204
        assert seeded_client.get("/api/expenses/1").status_code == 404
        assert seeded_client.delete("/api/expenses/1").status_code == 404

    def test_clear(self, seeded_client):
        assert seeded_client.delete("/api/expenses").status_code == 204

        assert seeded_client.get("/api/expenses").json() == []
        assert len(seeded_client.get("/api/users").json()) == 2


class TestAttachments:
    ATTACHMENT = {"name": "receipt.png", "type": "image/png", "size": 4, "dataUrl": "data:image/png;base64,AAAA"}

    def test_add_get_delete(self, seeded_client):
        created = seeded_client.post("/api/expenses/1/attachments", json=self.ATTACHMENT)
        assert created.status_code == 201
        attachment_id = created.json()["id"]

        expense = seeded_client.get("/api/expenses/1").json()
        assert [att["id"] for att in expense["attachments"]] == [attachment_id]
        assert seeded_client.get(f"/api/attachments/{attachment_id}").json()["name"] == "receipt.png"

        assert seeded_client.delete(f"/api/attachments/{attachment_id}").status_code == 204
        assert seeded_client.get("/api/expenses/1").json()["attachments"] == []

    def test_created_with_expense(self, seeded_client):
        response = seeded_client.post("/api/expenses", json=dict(NEW_EXPENSE, attachments=[self.ATTACHMENT]))

        assert response.json()["attachments"][0]["dataUrl"] == "data:image/png;base64,AAAA"

    def test_deleting_expense_removes_attachments(self, seeded_client):
        attachment_id = seeded_client.post("/api/expenses/1/attachments", json=self.ATTACHMENT).json()["id"]

        seeded_client.delete("/api/expenses/1")

        assert seeded_client.get(f"/api/attachments/{attachment_id}").status_code == 404

    def test_missing_expense(self, seeded_client):
        assert seeded_client.post("/api/expenses/99/attachments", json=self.ATTACHMENT).status_code == 404
