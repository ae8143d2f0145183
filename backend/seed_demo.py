#!/usr/bin/env python3
"""
Populate the store with the Jones family demo data set.

Replaces every user, category and expense with four family members, five
categories (25 subcategories) and about 500 expenses spread over the last
twelve months. Pass --seed for a reproducible data set.

Usage (from backend/):
  python seed_demo.py [--seed 42] [--count 500] [--use-case family-expenses]
"""
import argparse
import os
import random
import sys
from pathlib import Path

# Add backend to path
backend_dir = Path(__file__).parent
sys.path.insert(0, str(backend_dir))

# Default to the local SQLite store for dev
os.environ.setdefault("EXPENSE_DB_URL", "sqlite:///./expenses.db")

from expense_tracker.db import get_session, init_db
from expense_tracker.services.fixtures import generate_family_data
from expense_tracker.services.store import LocalStore


def seed_demo(seed=None, count=500, use_case="family-expenses"):
    """Replace the store contents with generated family data."""
    print("Generating Jones family demo data...")
    rng = random.Random(seed)
    data = generate_family_data(rng=rng, count=count)

    init_db()
    with get_session() as session:
        store = LocalStore(session)
        store.set_users(data["users"])
        store.set_categories(data["categories"])
        store.set_expenses(data["expenses"])

        credentials = store.get_credentials()
        credentials["useCase"] = use_case
        store.set_credentials(credentials)

    total = sum(expense["amount"] for expense in data["expenses"])
    print("\nSeed complete:")
    print(f"  Users: {len(data['users'])}")
    print(f"  Categories: {len(data['categories'])}")
    print(f"  Expenses: {len(data['expenses'])} (${total:,.2f})")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--count", type=int, default=500)
    parser.add_argument("--use-case", default="family-expenses")
    args = parser.parse_args()
    seed_demo(seed=args.seed, count=args.count, use_case=args.use_case)
