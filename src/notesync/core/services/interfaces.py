"""
Service interfaces for NoteSync.
"""

from abc import ABC, abstractmethod
from typing import List

from ...security import Identity
from ..schemas.auth import AuthResponse, LoginRequest, RegisterRequest, UserResponse
from ..schemas.common import HealthCheckResponse
from ..schemas.notes import NoteCreate, NoteResponse, NoteUpdate, NoteWithAccess
from ..schemas.sharing import ShareRequest, UnshareRequest


class IAuthService(ABC):
    """Account directory: registration, login, identity lookup."""

    @abstractmethod
    async def register_user(self, request: RegisterRequest) -> AuthResponse:
        """Register new user and issue a token."""

    @abstractmethod
    async def authenticate_user(self, request: LoginRequest) -> AuthResponse:
        """Check credentials and issue a token."""

    @abstractmethod
    async def get_current_user(self, identity: Identity) -> UserResponse:
        """Get the account behind a verified identity."""


class INoteService(ABC):
    """Note CRUD and sharing with access checks."""

    @abstractmethod
    async def list_owned(self, identity: Identity) -> List[NoteResponse]:
        """Notes owned by the caller."""

    @abstractmethod
    async def list_shared(self, identity: Identity) -> List[NoteResponse]:
        """Notes shared with the caller."""

    @abstractmethod
    async def create_note(self, identity: Identity, request: NoteCreate) -> NoteResponse:
        """Create a note owned by the caller."""

    @abstractmethod
    async def get_note(self, note_id: str, identity: Identity) -> NoteWithAccess:
        """Get a note with the caller's access level."""

    @abstractmethod
    async def update_note(
        self, note_id: str, identity: Identity, request: NoteUpdate
    ) -> NoteWithAccess:
        """Owner or editor changes title/content."""

    @abstractmethod
    async def delete_note(self, note_id: str, identity: Identity) -> bool:
        """Owner deletes a note."""

    @abstractmethod
    async def share_note(
        self, note_id: str, identity: Identity, request: ShareRequest
    ) -> NoteResponse:
        """Owner grants or changes a role."""

    @abstractmethod
    async def unshare_note(
        self, note_id: str, identity: Identity, request: UnshareRequest
    ) -> NoteResponse:
        """Owner removes a share entry."""


class IHealthService(ABC):
    """Health checks."""

    @abstractmethod
    async def get_health_status(self) -> HealthCheckResponse:
        """Overall health."""
