"""
Seed data for the local store.

- DEFAULT_*: what an empty store is initialised with (two users, four
  categories, four expenses, default credentials and settings).
- generate_family_data(): the larger "Jones family" demo set used by
  seed_demo.py, about 500 expenses spread over the last 12 months.
"""

from __future__ import annotations

import random
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Dict, List, Optional, Sequence


DEFAULT_CREDENTIALS: Dict[str, str] = {
    "username": "admin",
    "password": "pass123",
    "email": "admin@example.com",
    "securityQuestion": "What is your favorite color?",
    "securityAnswer": "blue",
    "useCase": "personal-team",
}

DEFAULT_SETTINGS: Dict[str, str] = {
    "fontSize": "small",
    "auth": "false",
}

DEFAULT_USE_CASE = "personal-team"

DEFAULT_USERS: List[dict] = [
    {
        "id": "1",
        "name": "Alex Chen",
        "username": "alexc",
        "email": "alex.chen@example.com",
        "avatar": "AC",
        "color": "bg-emerald-500",
        "isActive": True,
        "defaultCategoryId": "1",
        "defaultSubcategoryId": "1",
        "defaultStoreLocation": "Downtown",
    },
    {
        "id": "2",
        "name": "Sarah Johnson",
        "username": "sarahj",
        "email": "sarah.johnson@example.com",
        "avatar": "SJ",
        "color": "bg-blue-500",
        "isActive": True,
        "defaultCategoryId": "2",
        "defaultSubcategoryId": "4",
        "defaultStoreLocation": "Uptown",
    },
]


def _category(cat_id: str, name: str, icon: str, color: str, subs: Sequence[tuple]) -> dict:
    return {
        "id": cat_id,
        "name": name,
        "icon": icon,
        "color": color,
        "subcategories": [{"id": sub_id, "name": sub_name, "categoryId": cat_id} for sub_id, sub_name in subs],
    }


DEFAULT_CATEGORIES: List[dict] = [
    _category(
        "1", "Groceries", "ShoppingCart", "text-green-600",
        [("1", "Fresh Produce"), ("2", "Meat & Dairy"), ("3", "Pantry Items"), ("4", "Snacks & Beverages")],
    ),
    _category(
        "2", "Utilities", "Zap", "text-yellow-600",
        [("5", "Electricity"), ("6", "Water & Sewer"), ("7", "Internet & Cable"), ("8", "Gas")],
    ),
    _category(
        "3", "Entertainment", "Music", "text-purple-600",
        [("9", "Movies & Shows"), ("10", "Gaming"), ("11", "Concerts & Events"), ("12", "Subscriptions")],
    ),
    _category(
        "4", "Automobile", "Car", "text-blue-600",
        [("13", "Fuel"), ("14", "Maintenance"), ("15", "Insurance"), ("16", "Parking & Tolls")],
    ),
]

DEFAULT_EXPENSES: List[dict] = [
    {
        "id": "1",
        "userId": "1",
        "categoryId": "1",
        "subcategoryId": "1",
        "amount": 45.67,
        "description": "Weekly fresh vegetables and fruits",
        "notes": "Organic produce from farmers market",
        "storeName": "Whole Foods Market",
        "storeLocation": "Downtown",
        "date": "2025-01-15",
        "createdAt": "2025-01-15T10:30:00Z",
    },
    {
        "id": "2",
        "userId": "1",
        "categoryId": "1",
        "subcategoryId": "2",
        "amount": 32.89,
        "description": "Chicken breast and milk",
        "storeName": "Safeway",
        "storeLocation": "Downtown",
        "date": "2025-01-14",
        "createdAt": "2025-01-14T18:45:00Z",
    },
    {
        "id": "3",
        "userId": "2",
        "categoryId": "2",
        "subcategoryId": "5",
        "amount": 125.45,
        "description": "Monthly electricity bill",
        "notes": "Higher usage due to cold weather",
        "storeName": "Seattle City Light",
        "storeLocation": "Online",
        "date": "2025-01-10",
        "createdAt": "2025-01-10T08:00:00Z",
    },
    {
        "id": "4",
        "userId": "2",
        "categoryId": "3",
        "subcategoryId": "12",
        "amount": 15.99,
        "description": "Netflix subscription",
        "storeName": "Netflix",
        "storeLocation": "Online",
        "date": "2025-01-01",
        "createdAt": "2025-01-01T00:05:00Z",
    },
]


# Jones family demo set

FAMILY_USERS = [
    ("david_jones", "david@jones-family.com", "David Jones", "bg-emerald-500"),
    ("lisa_jones", "lisa@jones-family.com", "Lisa Jones", "bg-blue-500"),
    ("emma_jones", "emma@jones-family.com", "Emma Jones", "bg-pink-500"),
    ("michael_jones", "michael@jones-family.com", "Michael Jones", "bg-purple-500"),
]

# Cumulative weights: David 40%, Lisa 30%, Emma 15%, Michael 15%.
FAMILY_USER_WEIGHTS = (0.4, 0.7, 0.85, 1.0)

FAMILY_CATEGORIES = [
    ("Utilities", "Zap", "text-yellow-600",
     ["Electricity", "Water & Sewer", "Natural Gas", "Internet & Cable", "Phone & Mobile"]),
    ("Groceries", "ShoppingCart", "text-green-600",
     ["Weekly Shopping", "Fresh Produce", "Meat & Dairy", "Household Items", "Snacks & Treats"]),
    ("Transportation", "Car", "text-blue-600",
     ["Gasoline", "Car Maintenance", "Car Insurance", "Public Transit", "Parking & Tolls"]),
    ("Vacation", "Plane", "text-purple-600",
     ["Flights & Travel", "Hotels & Lodging", "Dining Out", "Activities & Tours", "Souvenirs & Gifts"]),
    ("Home Improvements", "Home", "text-orange-600",
     ["Tools & Hardware", "Paint & Supplies", "Appliances", "Furniture", "Professional Services"]),
]


@dataclass(frozen=True)
class ExpenseTemplate:
    category_id: str
    subcategory_id: str
    descriptions: Sequence[str]
    amounts: Sequence[float]
    stores: Sequence[str]
    locations: Sequence[str]

    def pick(self, index: int, values: Sequence[str]) -> str:
        return values[index % len(values)]


EXPENSE_TEMPLATES: List[ExpenseTemplate] = [
    # Utilities
    ExpenseTemplate("1", "1", ["Monthly electricity bill", "Electricity usage"], [120, 145, 98, 165],
                    ["Pacific Power", "City Electric"], ["Online", "Online"]),
    ExpenseTemplate("1", "2", ["Water and sewer bill", "Monthly water service"], [65, 78, 55, 82],
                    ["City Water Department", "Municipal Water"], ["Online", "Online"]),
    ExpenseTemplate("1", "3", ["Natural gas bill", "Heating and gas"], [85, 125, 45, 95],
                    ["Northwest Natural", "Gas Company"], ["Online", "Online"]),
    ExpenseTemplate("1", "4", ["Internet and cable", "High-speed internet", "Cable TV service"], [89.99, 95, 110],
                    ["Comcast", "Verizon", "AT&T"], ["Online", "Online", "Online"]),
    ExpenseTemplate("1", "5", ["Cell phone bill", "Mobile service", "Phone plan"], [125, 140, 95],
                    ["Verizon", "T-Mobile", "AT&T"], ["Online", "Online", "Online"]),
    # Groceries
    ExpenseTemplate("2", "6", ["Weekly grocery shopping", "Family groceries", "Food shopping"], [145, 165, 125, 185],
                    ["Safeway", "Fred Meyer", "Whole Foods", "Costco"], ["Neighborhood", "Local", "Downtown", "Warehouse"]),
    ExpenseTemplate("2", "7", ["Fresh fruits and vegetables", "Organic produce", "Farmers market"], [35, 45, 28, 52],
                    ["Farmers Market", "Whole Foods", "Local Market"], ["Downtown", "Neighborhood", "Local"]),
    ExpenseTemplate("2", "8", ["Meat and dairy products", "Protein and dairy", "Fresh meat"], [45, 65, 38, 72],
                    ["Butcher Shop", "Safeway", "Costco"], ["Local", "Neighborhood", "Warehouse"]),
    ExpenseTemplate("2", "9", ["Cleaning supplies", "Household essentials", "Paper products"], [25, 35, 18, 42],
                    ["Target", "Costco", "Dollar Store"], ["Local", "Warehouse", "Neighborhood"]),
    ExpenseTemplate("2", "10", ["Kids snacks", "Family treats", "Beverages"], [15, 25, 12, 35],
                    ["Target", "Safeway", "Corner Store"], ["Local", "Neighborhood", "Local"]),
    # Transportation
    ExpenseTemplate("3", "11", ["Gas fill-up", "Fuel for car", "Gasoline"], [45, 55, 38, 62],
                    ["Shell", "Chevron", "Arco", "76 Station"], ["Main Street", "Highway", "Neighborhood", "Downtown"]),
    ExpenseTemplate("3", "12", ["Oil change", "Car maintenance", "Tire rotation", "Brake service"], [45, 285, 65, 450],
                    ["Jiffy Lube", "Toyota Service", "Discount Tire"], ["Local", "Dealership", "Auto Center"]),
    ExpenseTemplate("3", "13", ["Auto insurance premium", "Car insurance"], [165, 175],
                    ["State Farm", "Allstate"], ["Online", "Online"]),
    ExpenseTemplate("3", "14", ["Bus fare", "Light rail ticket", "Public transit"], [3.25, 5.50, 2.75],
                    ["Metro Transit", "Sound Transit"], ["Transit Station", "Train Station"]),
    ExpenseTemplate("3", "15", ["Parking fee", "Downtown parking", "Airport parking"], [8, 12, 25, 45],
                    ["ParkWhiz", "City Parking", "Airport"], ["Downtown", "City Center", "Airport"]),
    # Vacation
    ExpenseTemplate("4", "16", ["Flight tickets", "Airline tickets", "Air travel"], [450, 650, 325, 850],
                    ["Alaska Airlines", "Southwest", "Delta"], ["Airport", "Online", "Online"]),
    ExpenseTemplate("4", "17", ["Hotel stay", "Vacation rental", "Resort booking"], [185, 225, 145, 295],
                    ["Marriott", "Airbnb", "Holiday Inn"], ["Destination", "Vacation Spot", "Resort"]),
    ExpenseTemplate("4", "18", ["Restaurant dinner", "Family dining", "Vacation meals"], [65, 85, 45, 125],
                    ["Local Restaurant", "Seaside Cafe", "Family Diner"], ["Vacation", "Resort", "Downtown"]),
    ExpenseTemplate("4", "19", ["Theme park tickets", "Museum admission", "Tour booking"], [125, 85, 45, 195],
                    ["Disneyland", "Local Museum", "Tour Company"], ["Theme Park", "City", "Tourist Area"]),
    ExpenseTemplate("4", "20", ["Vacation souvenirs", "Travel gifts", "Postcards"], [25, 45, 15, 65],
                    ["Gift Shop", "Souvenir Store", "Local Market"], ["Tourist Area", "Vacation", "Local"]),
    # Home improvements
    ExpenseTemplate("5", "21", ["Drill and bits", "Hammer set", "Screwdriver kit", "Power tools"], [85, 45, 25, 195],
                    ["Home Depot", "Lowes", "Harbor Freight"], ["Hardware Store", "Home Center", "Tool Store"]),
    ExpenseTemplate("5", "22", ["Interior paint", "Exterior paint", "Paint brushes", "Primer"], [45, 65, 15, 35],
                    ["Sherwin Williams", "Home Depot", "Benjamin Moore"], ["Paint Store", "Hardware Store", "Home Center"]),
    ExpenseTemplate("5", "23", ["New refrigerator", "Washing machine", "Dishwasher repair"], [1250, 850, 185],
                    ["Best Buy", "Sears", "Appliance Repair"], ["Electronics Store", "Appliance Store", "Home Service"]),
    ExpenseTemplate("5", "24", ["Living room sofa", "Dining table", "Bedroom dresser"], [895, 650, 425],
                    ["IKEA", "Ashley Furniture", "Local Furniture"], ["Furniture Store", "Showroom", "Local Store"]),
    ExpenseTemplate("5", "25", ["Plumber service", "Electrician work", "Handyman repair"], [185, 295, 125],
                    ["Local Plumber", "ABC Electric", "Handyman Services"], ["Home Service", "Professional", "Local Service"]),
]

NOTE_OPTIONS = [
    "Family expense",
    "Needed for household",
    "Monthly recurring",
    "Shared family cost",
    "Essential purchase",
]


def family_users() -> List[dict]:
    users = []
    for index, (username, email, full_name, color) in enumerate(FAMILY_USERS, start=1):
        first, last = full_name.split(" ", 1)
        users.append(
            {
                "id": str(index),
                "name": full_name,
                "username": username,
                "email": email,
                "avatar": (first[0] + last[0]).upper(),
                "color": color,
                "isActive": True,
            }
        )
    return users


def family_categories() -> List[dict]:
    categories = []
    sub_id = 1
    for cat_index, (name, icon, color, sub_names) in enumerate(FAMILY_CATEGORIES, start=1):
        subs = []
        for sub_name in sub_names:
            subs.append({"id": str(sub_id), "name": sub_name, "categoryId": str(cat_index)})
            sub_id += 1
        categories.append({"id": str(cat_index), "name": name, "icon": icon, "color": color, "subcategories": subs})
    return categories


def _add_months(day: date, months: int) -> date:
    month_index = day.month - 1 + months
    return date(day.year + month_index // 12, month_index % 12 + 1, 1)


def generate_family_expenses(
    rng: Optional[random.Random] = None,
    today: Optional[date] = None,
    count: int = 500,
) -> List[dict]:
    """
    Build the demo expense list.

    Starts twelve months before ``today`` and emits 40-45 expenses per month
    until ``count`` is reached. Pass a seeded ``random.Random`` for a
    reproducible set.
    """
    rng = rng or random.Random()
    today = today or date.today()
    start = date(today.year - 1, today.month, 1)
    created_at = datetime.now(timezone.utc).isoformat()

    expenses: List[dict] = []
    for month in range(12):
        month_start = _add_months(start, month)
        per_month = rng.randint(40, 45)
        for _ in range(per_month):
            if len(expenses) >= count:
                return expenses

            day = rng.randint(1, 28)
            roll = rng.random()
            user_id = next(str(i) for i, bound in enumerate(FAMILY_USER_WEIGHTS, start=1) if roll < bound)

            template = rng.choice(EXPENSE_TEMPLATES)
            item = rng.randrange(len(template.descriptions))
            base = template.amounts[item % len(template.amounts)]
            variation = (rng.random() - 0.5) * 0.4
            amount = round(base * (1 + variation), 2)

            notes = rng.choice(NOTE_OPTIONS) if rng.random() > 0.8 else None

            expenses.append(
                {
                    "id": str(len(expenses) + 1),
                    "userId": user_id,
                    "categoryId": template.category_id,
                    "subcategoryId": template.subcategory_id,
                    "amount": amount,
                    "description": template.descriptions[item],
                    "notes": notes,
                    "storeName": template.pick(item, template.stores),
                    "storeLocation": template.pick(item, template.locations),
                    "date": date(month_start.year, month_start.month, day).isoformat(),
                    "createdAt": created_at,
                }
            )
    return expenses


def generate_family_data(
    rng: Optional[random.Random] = None,
    today: Optional[date] = None,
    count: int = 500,
) -> Dict[str, List[dict]]:
    return {
        "users": family_users(),
        "categories": family_categories(),
        "expenses": generate_family_expenses(rng, today, count),
    }
