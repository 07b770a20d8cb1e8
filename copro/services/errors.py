"""Domain errors raised by the charge and billing services."""

from typing import Any, Dict

from fastapi import status


class AppError(Exception):
    """Base application error."""

    def __init__(self, message: str, code: str, http_status: int = 400):
        """Initialize error."""
        self.message = message
        self.code = code
        self.http_status = http_status
        super().__init__(message)


class NotFoundError(AppError):
    """Referenced building, owner, charge or billing call does not exist."""

    def __init__(self, message: str = "Not found"):
        super().__init__(message, "not_found", status.HTTP_404_NOT_FOUND)


class ValidationError(AppError):
    """Invalid amount, enum value, date range or charge configuration."""

    def __init__(self, message: str = "Invalid data"):
        super().__init__(message, "validation_error", status.HTTP_422_UNPROCESSABLE_ENTITY)


class ConflictError(AppError):
    """Operation conflicts with existing state (duplicate billing, paid history)."""

    def __init__(self, message: str = "Conflict"):
        super().__init__(message, "conflict", status.HTTP_409_CONFLICT)


class OverpaymentRejectedError(AppError):
    """Payment would push the paid amount above the called amount."""

    def __init__(self, message: str = "Payment exceeds the amount still owed"):
        super().__init__(message, "overpayment_rejected", status.HTTP_409_CONFLICT)


def error_response(error: AppError) -> Dict[str, Any]:
    """Create a standardized error response."""
    return {
        "error": {
            "code": error.code,
            "message": error.message,
        }
    }


__all__ = [
    "AppError",
    "NotFoundError",
    "ValidationError",
    "ConflictError",
    "OverpaymentRejectedError",
    "error_response",
]
