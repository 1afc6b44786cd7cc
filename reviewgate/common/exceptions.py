"""Custom exceptions for the application.

The class name (minus the ``Exception`` suffix) is what clients see in the
``error`` field of the response envelope, so renaming a class changes the API.
"""


class AppException(Exception):
    """Base application exception."""
    def __init__(self, message: str, status_code: int = 500):
        self.message = message
        self.status_code = status_code
        super().__init__(self.message)


class UnauthorizedException(AppException):
    """Raised when no principal or bearer token was supplied, or it cannot be verified."""
    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message, status_code=401)


class InvalidSessionException(UnauthorizedException):
    """Raised when the session token is malformed or its user no longer exists."""
    def __init__(self):
        super().__init__("Invalid session")


class SessionExpiredException(UnauthorizedException):
    """Raised when the session token has expired."""
    def __init__(self):
        super().__init__("Session expired")


class ForbiddenException(AppException):
    """Raised when the principal is identified but lacks rights on the resource."""
    def __init__(self, message: str = "Forbidden"):
        super().__init__(message, status_code=403)


class NotFoundException(AppException):
    """Raised when a token or resource is absent.

    Also used where a denial must not be distinguishable from absence.
    """
    def __init__(self, message: str = "Not Found"):
        super().__init__(message, status_code=404)


class ValidationException(AppException):
    """Raised when validation fails."""
    def __init__(self, message: str = "Validation Error"):
        super().__init__(message, status_code=422)


class AlreadyUsedException(AppException):
    """Raised when a single-use token has already been consumed."""
    def __init__(self, message: str = "Token already used"):
        super().__init__(message, status_code=409)


class ExpiredException(AppException):
    """Raised for expired tokens of kinds that reveal expiry (password reset)."""
    def __init__(self, message: str = "Token expired"):
        super().__init__(message, status_code=410)


class RevisionLimitExceededException(AppException):
    """Raised when a project has used all of its allowed revisions."""
    def __init__(self, message: str = "Revision limit reached"):
        super().__init__(message, status_code=409)


class ProjectLockedException(AppException):
    """Raised when a project is approved and must be reopened before it changes."""
    def __init__(self, message: str = "Project is approved and locked"):
        super().__init__(message, status_code=423)


class ConflictException(AppException):
    """Raised when a unique secret could not be generated."""
    def __init__(self, message: str = "Conflict"):
        super().__init__(message, status_code=409)


class StoreUnavailableException(AppException):
    """Raised when the persistent store fails or times out. Callers may retry."""
    def __init__(self, message: str = "Store temporarily unavailable", retry_after: int = 1):
        super().__init__(message, status_code=503)
        self.retry_after = retry_after


class InternalServerException(AppException):
    """Raised when an internal server error occurs."""
    def __init__(self, message: str = "Internal server error"):
        super().__init__(message, status_code=500)
