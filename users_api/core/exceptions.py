from typing import Optional, Any


class UsersApiError(Exception):
    """
    Base exception for the users API.
    """
    def __init__(self, message: str, code: str = "INTERNAL_ERROR", status_code: int = 500, details: Optional[Any] = None):
        self.message = message
        self.code = code
        self.status_code = status_code
        self.details = details
        super().__init__(self.message)


class ValidationError(UsersApiError):
    """
    Raised when caller input fails its declared constraints.
    """
    def __init__(self, message: str = "Input validation failed", details: Optional[Any] = None):
        super().__init__(message, code="VALIDATION_ERROR", status_code=400, details=details)


class ResourceNotFoundError(UsersApiError):
    """
    Raised when a requested record does not exist, either on read or when
    an update/delete existence precondition fails.
    """
    def __init__(self, message: str = "Not found", details: Optional[Any] = None):
        super().__init__(message, code="NOT_FOUND", status_code=404, details=details)


class ConflictError(UsersApiError):
    """
    Raised when an insert-if-absent precondition fails.
    """
    def __init__(self, message: str = "Conflict", details: Optional[Any] = None):
        super().__init__(message, code="CONFLICT", status_code=409, details=details)


class UnexpectedError(UsersApiError):
    """
    Raised when a collaborator (DynamoDB, S3) fails in a way the caller
    cannot act on. The message is never returned to the client.
    """
    def __init__(self, message: str = "Internal error", details: Optional[Any] = None):
        super().__init__(message, code="INTERNAL_ERROR", status_code=500, details=details)
