"""
Household expense tracker backend.

Routers are grouped by domain area:
- users, categories, subcategories, expenses: CRUD over the local store
- backups: full backup / restore, readable and blank backups, backup locations
- imports: CSV and Excel ingestion, CSV exports and templates
- reports: dashboard stats, category breakdowns and the monthly report
- settings: app settings, stored credentials and use-case terminology
"""

__version__ = "1.0.0"
