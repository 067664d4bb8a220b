"""Security utilities."""

from .identity import Identity
from .jwt import (
    InvalidTokenError,
    create_access_token,
    create_identity_token,
    decode_access_token,
    verify_token,
)
from .password import hash_password, verify_password

__all__ = [
    "Identity",
    "InvalidTokenError",
    "hash_password",
    "verify_password",
    "create_access_token",
    "create_identity_token",
    "decode_access_token",
    "verify_token",
]
