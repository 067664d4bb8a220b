"""
Application exception hierarchy.

Services and repositories raise these; FastAPI renders them through the
handler registered in ``main.py`` as an ``ErrorResponse`` body. The realtime
layer catches the same types to decide which failures reach the client.
"""

from typing import Optional

from fastapi import HTTPException, status


class AppError(HTTPException):
    """Base application error with a default status code."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(status_code=self.__class__.status_code, detail=message)
        self.message = message
        self.extra_detail = detail

    def __str__(self) -> str:
        return self.message


class UnauthorizedError(AppError):
    """Missing or invalid credential (401)."""

    status_code = status.HTTP_401_UNAUTHORIZED

    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message)


class ForbiddenError(AppError):
    """Access level insufficient for the operation (403)."""

    status_code = status.HTTP_403_FORBIDDEN

    def __init__(self, message: str = "No access"):
        super().__init__(message)


class NotFoundError(AppError):
    """Resource not found (404)."""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, message: str = "Not found"):
        super().__init__(message)


class NoteNotFoundError(NotFoundError):
    def __init__(self, message: str = "Note not found"):
        super().__init__(message)


class UserNotFoundError(NotFoundError):
    def __init__(self, message: str = "Target user not found"):
        super().__init__(message)


class ValidationError(AppError):
    """Malformed input (400)."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        super().__init__(message)


class ConflictError(AppError):
    """Request conflicts with the current state (409)."""

    status_code = status.HTTP_409_CONFLICT

    def __init__(self, message: str):
        super().__init__(message)


class EmailTakenError(ConflictError):
    def __init__(self, message: str = "Email already registered"):
        super().__init__(message)


class OwnerShareError(ConflictError):
    """Sharing a note with its own owner."""

    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "Owner already has full access"):
        super().__init__(message)


class NotSharedError(ConflictError):
    """Unsharing a user that has no share entry."""

    status_code = status.HTTP_404_NOT_FOUND

    def __init__(self, message: str = "Target user not shared"):
        super().__init__(message)


class InternalError(AppError):
    """Unexpected persistence or server failure (500)."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "Server error"):
        super().__init__(message)
