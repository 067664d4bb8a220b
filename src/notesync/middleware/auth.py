"""Authentication dependency for REST routes."""

from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..core.exceptions import UnauthorizedError
from ..security import Identity, InvalidTokenError, verify_token


class JWTBearer(HTTPBearer):
    """JWT Bearer token authentication resolving to an Identity."""

    def __init__(self):
        # missing headers are reported as 401 by us, not 403 by HTTPBearer
        super().__init__(auto_error=False)

    async def __call__(self, request: Request) -> Identity:
        credentials: Optional[HTTPAuthorizationCredentials] = await super().__call__(request)
        if not credentials:
            raise UnauthorizedError("No token")
        if credentials.scheme.lower() != "bearer":
            raise UnauthorizedError("Invalid authentication scheme")

        try:
            return verify_token(credentials.credentials)
        except InvalidTokenError:
            raise UnauthorizedError("Invalid or expired token")


async def get_current_identity(identity: Identity = Depends(JWTBearer())) -> Identity:
    """Get current authenticated identity."""
    return identity
