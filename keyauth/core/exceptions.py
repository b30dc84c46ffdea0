from typing import Any

from fastapi import HTTPException, status


class InvalidRequestException(HTTPException):
    """Exception raised when a request is missing required fields or names an unknown action."""

    def __init__(self, detail: str = "Invalid request"):
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=detail
        )


class PermissionDeniedException(HTTPException):
    """Exception raised when user doesn't have permission."""

    def __init__(self, detail: str = "Permission denied"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail
        )


class StoreUnavailableException(HTTPException):
    """Exception raised when the database stays unreachable after retries."""

    def __init__(self, detail: str = "Database connection failed"):
        super().__init__(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=detail
        )


class BusinessRejection(Exception):
    """
    Expected negative outcome of an action (duplicate name, unknown key, quota reached).

    Rendered as a regular response with ``success: false`` rather than an HTTP error.
    Keyword arguments are merged into the response envelope.
    """

    def __init__(self, message: str, **extra: Any):
        self.message = message
        self.extra = extra
        super().__init__(self.message)


class ApplicationExistsError(BusinessRejection):
    def __init__(self, message: str = "App already exists"):
        super().__init__(message)


class ApplicationQuotaExceededError(BusinessRejection):
    def __init__(self, limit: int):
        super().__init__(
            f"You have reached the limit of {limit} applications. Only admins can create more.",
            max_apps=limit,
        )


class ApplicationNotFoundError(BusinessRejection):
    def __init__(self, message: str = "App not found"):
        super().__init__(message)


class InvalidApiError(BusinessRejection):
    def __init__(self, message: str = "Invalid API"):
        super().__init__(message)


class KeyCollisionError(BusinessRejection):
    def __init__(self, message: str = "Key already exists"):
        super().__init__(message)


class SupportExistsError(BusinessRejection):
    def __init__(self, user_id: str):
        super().__init__(f"Support user [{user_id}] already exists")


class SupportNotFoundError(BusinessRejection):
    def __init__(self, message: str = "Support user not found"):
        super().__init__(message)
