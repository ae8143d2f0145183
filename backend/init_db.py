"""
Tiny DB bootstrap script for the expense tracker.

- Reads EXPENSE_DB_URL (or falls back to ./expenses.db).
- Creates all tables defined on expense_tracker.db.Base.
- With --seed, writes the default users, categories and expenses into an
  empty store.

Usage (from backend/):
  python init_db.py [--seed]
"""

import argparse
import logging

from expense_tracker.db import get_session, init_db
from expense_tracker.services.store import LocalStore


def main() -> None:
    parser = argparse.ArgumentParser(description="Create the expense tracker tables.")
    parser.add_argument("--seed", action="store_true", help="initialise default data when the store is empty")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    init_db()
    print("Expense tracker tables created (or already exist).")

    if args.seed:
        with get_session() as session:
            seeded = LocalStore(session).initialize_default_data()
        print("Default data written." if seeded else "Store already has data; nothing seeded.")


if __name__ == "__main__":
    main()
