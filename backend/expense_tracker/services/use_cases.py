"""
Use cases relabel "users" for the kind of tracking being done: family
members, team members, projects, departments, client accounts or locations.
The selected id is stored in credentials.useCase and carried in backups.
"""

from typing import Dict, List

from expense_tracker.services.fixtures import DEFAULT_USE_CASE


def _use_case(
    use_case_id: str,
    name: str,
    description: str,
    singular: str,
    plural: str,
    expense_context: str,
    dashboard_title: str,
) -> dict:
    lower, lower_plural = singular.lower(), plural.lower()
    return {
        "id": use_case_id,
        "name": name,
        "description": description,
        "userLabel": plural,
        "userLabelSingular": singular,
        "expenseContext": expense_context,
        "dashboardTitle": dashboard_title,
        "terminology": {
            "user": lower,
            "users": lower_plural,
            "userManagement": f"{singular} Management",
            "addUser": f"Add {singular}",
            "editUser": f"Edit {singular}",
            "selectUser": f"Select {singular}",
            "allUsers": f"All {plural}",
            "userFilter": f"Filter by {lower}",
        },
    }


USE_CASES: Dict[str, dict] = {
    case["id"]: case
    for case in (
        _use_case(
            "family-expenses",
            "Family Expenses",
            "Track household expenses for family members with shared budgets and responsibilities",
            "Family Member",
            "Family Members",
            "Track who spent what on family needs and activities",
            "Family Expense Dashboard",
        ),
        _use_case(
            "personal-team",
            "Team Expenses",
            "Track expenses for team members or employees",
            "Team Member",
            "Team Members",
            "Track who spent what and where",
            "Team Expense Dashboard",
        ),
        _use_case(
            "project-based",
            "Project-Based Tracking",
            "Track expenses associated with specific projects or jobs",
            "Project",
            "Projects",
            "Track project costs and budget allocation",
            "Project Expense Dashboard",
        ),
        _use_case(
            "department-based",
            "Department Tracking",
            "Track expenses by department or business unit",
            "Department",
            "Departments",
            "Track departmental spending and budgets",
            "Department Expense Dashboard",
        ),
        _use_case(
            "client-based",
            "Client Account Tracking",
            "Track expenses by client account or customer",
            "Client Account",
            "Client Accounts",
            "Track client-specific expenses for billing",
            "Client Account Dashboard",
        ),
        _use_case(
            "location-based",
            "Location-Based Tracking",
            "Track expenses by office location or facility",
            "Location",
            "Locations",
            "Track location-specific operational costs",
            "Location Expense Dashboard",
        ),
    )
}


def list_use_cases() -> List[dict]:
    return list(USE_CASES.values())


def get_use_case(use_case_id: str) -> dict:
    """Unknown or empty ids get the team configuration."""
    return USE_CASES.get(use_case_id or "", USE_CASES[DEFAULT_USE_CASE])
