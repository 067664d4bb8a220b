"""
Pydantic schemas for API requests, responses and realtime payloads.
"""

from .auth import AuthResponse, LoginRequest, RegisterRequest, UserResponse
from .common import ErrorResponse, HealthCheckResponse
from .notes import (
    NoteCreate,
    NoteResponse,
    NoteUpdate,
    NoteWithAccess,
    ShareEntry,
    note_payload,
    text_fields,
)
from .sharing import ShareRequest, UnshareRequest

__all__ = [
    # Auth schemas
    "RegisterRequest",
    "LoginRequest",
    "UserResponse",
    "AuthResponse",
    # Note schemas
    "NoteCreate",
    "NoteUpdate",
    "NoteResponse",
    "NoteWithAccess",
    "ShareEntry",
    "note_payload",
    "text_fields",
    # Sharing schemas
    "ShareRequest",
    "UnshareRequest",
    # Common schemas
    "ErrorResponse",
    "HealthCheckResponse",
]
