"""Application exception types."""

from transcribe_api.schemas.error import ErrorResponse


class ApiError(Exception):
    """Structured API error rendered as ``{"error": message}``."""

    status_code = 500

    def __init__(self, message: str, status_code: int | None = None) -> None:
        if status_code is not None:
            self.status_code = status_code
        self.payload = ErrorResponse(error=message)
        super().__init__(message)


class AuthFailure(ApiError):
    status_code = 401


class ValidationFailure(ApiError):
    status_code = 400


class OwnershipDenied(ApiError):
    status_code = 403


class NotFound(ApiError):
    status_code = 404


class TransitionConflict(ApiError):
    status_code = 409


class StoreFailure(ApiError):
    """Downstream store error; the message is generic and never the store's own."""

    status_code = 500


__all__ = [
    "ApiError",
    "AuthFailure",
    "NotFound",
    "OwnershipDenied",
    "StoreFailure",
    "TransitionConflict",
    "ValidationFailure",
]
