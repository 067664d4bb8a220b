"""Authentication service implementation."""

import logging

from sqlalchemy.ext.asyncio import AsyncSession

from ...config import get_settings
from ...security import Identity, create_identity_token, hash_password, verify_password
from ..exceptions import EmailTakenError, UnauthorizedError
from ..models.user import User
from ..repositories.user_repository import UserRepository, normalize_email
from ..schemas.auth import AuthResponse, LoginRequest, RegisterRequest, UserResponse
from .interfaces import IAuthService

logger = logging.getLogger(__name__)


def identity_for(user: User) -> Identity:
    return Identity(id=str(user.id), email=user.email, name=user.name)


class AuthService(IAuthService):
    """Authentication service implementation."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.user_repo = UserRepository(session)
        self.settings = get_settings()

    async def register_user(self, request: RegisterRequest) -> AuthResponse:
        """Register new user."""
        email = normalize_email(request.email)
        if await self.user_repo.is_email_taken(email):
            raise EmailTakenError()

        user = await self.user_repo.create_user(
            {
                "email": email,
                "name": request.name,
                "password_hash": hash_password(request.password),
            }
        )
        logger.info("Registered user %s", user.id)
        return self._auth_response(user)

    async def authenticate_user(self, request: LoginRequest) -> AuthResponse:
        """Login user and return a bearer token."""
        user = await self.user_repo.get_by_email(request.email)
        if not user or not verify_password(request.password, user.password_hash):
            raise UnauthorizedError("Invalid credentials")

        return self._auth_response(user)

    async def get_current_user(self, identity: Identity) -> UserResponse:
        """Get user by verified identity."""
        user = await self.user_repo.get_by_id(identity.id)
        if not user:
            # token outlived its account
            raise UnauthorizedError("User no longer exists")
        return UserResponse.model_validate(user)

    def _auth_response(self, user: User) -> AuthResponse:
        return AuthResponse(
            token=create_identity_token(identity_for(user)),
            token_type="bearer",
            expires_in=self.settings.access_token_expire_minutes * 60,
            user=UserResponse.model_validate(user),
        )
