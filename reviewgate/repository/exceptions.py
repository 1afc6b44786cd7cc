"""Repository layer exceptions.

These exceptions are raised by repositories when database operations fail.
They should be caught and translated to AppExceptions by the usecase layer.
"""


class RepositoryException(Exception):
    """Base exception for repository layer errors."""
    def __init__(self, message: str, detail: str | None = None):
        self.message = message
        self.detail = detail
        super().__init__(self.message)


class DuplicateRecordException(RepositoryException):
    """Raised when trying to create a duplicate record (unique constraint violation)."""
    def __init__(self, message: str = "Record already exists", detail: str | None = None):
        super().__init__(message, detail)


class DatabaseConnectionException(RepositoryException):
    """Raised when database connection fails or the store is locked."""
    def __init__(self, message: str = "Database connection error", detail: str | None = None):
        super().__init__(message, detail)


class DatabaseOperationException(RepositoryException):
    """Raised when a database operation fails."""
    def __init__(self, message: str = "Database operation failed", detail: str | None = None):
        super().__init__(message, detail)
