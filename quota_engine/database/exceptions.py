"""Custom exceptions for database and analytics operations."""


class DatabaseError(Exception):
    """Base exception for database errors."""
    pass


class DatabaseOperationError(DatabaseError):
    """General database operation failed."""
    pass


class EntityNotFoundError(DatabaseError):
    """Requested entity not found."""
    pass


class ValidationError(DatabaseError):
    """Data validation failed before database operation."""
    pass


class BackfillError(DatabaseOperationError):
    """Startup catch-up of daily analytics failed part-way through."""

    def __init__(self, message: str, failed_date=None):
        super().__init__(message)
        self.failed_date = failed_date
