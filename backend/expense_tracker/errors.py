"""Domain-specific exceptions for the expense tracker services."""


class ValidationError(ValueError):
    """Raised when provided data does not meet validation requirements."""


class RecordNotFoundError(LookupError):
    """Raised when a user, category, subcategory or expense cannot be located."""


class ConflictError(ValueError):
    """Raised when a write would break a uniqueness rule (username, email)."""


class BackupError(ValidationError):
    """Raised when a backup document cannot be read or restored."""
