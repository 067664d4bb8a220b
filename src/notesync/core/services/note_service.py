"""Note service implementation."""

import logging
from typing import List

from sqlalchemy.ext.asyncio import AsyncSession

from ...security import Identity
from ..access import AccessLevel, can_edit, resolve_access
from ..exceptions import ForbiddenError, NoteNotFoundError, UserNotFoundError
from ..models.note import Note
from ..repositories.note_repository import NoteRepository
from ..repositories.user_repository import UserRepository
from ..schemas.notes import NoteCreate, NoteResponse, NoteUpdate, NoteWithAccess
from ..schemas.sharing import ShareRequest, UnshareRequest
from .interfaces import INoteService

logger = logging.getLogger(__name__)


class NoteService(INoteService):
    """Note service implementation."""

    def __init__(self, session: AsyncSession):
        self.session = session
        self.note_repo = NoteRepository(session)
        # resolves share targets by email
        self.user_repo = UserRepository(session)

    async def list_owned(self, identity: Identity) -> List[NoteResponse]:
        notes = await self.note_repo.list_by_owner(identity.id)
        return [NoteResponse.model_validate(note) for note in notes]

    async def list_shared(self, identity: Identity) -> List[NoteResponse]:
        notes = await self.note_repo.list_shared_with(identity.id)
        return [NoteResponse.model_validate(note) for note in notes]

    async def create_note(self, identity: Identity, request: NoteCreate) -> NoteResponse:
        note = await self.note_repo.create_note(identity.id, request.title, request.content)
        logger.info("User %s created note %s", identity.id, note.id)
        return NoteResponse.model_validate(note)

    async def get_note(self, note_id: str, identity: Identity) -> NoteWithAccess:
        note, access = await self._load(note_id, identity)
        if access is AccessLevel.NONE:
            raise ForbiddenError("No access")
        return self._with_access(note, access)

    async def update_note(
        self, note_id: str, identity: Identity, request: NoteUpdate
    ) -> NoteWithAccess:
        note, access = await self._load(note_id, identity)
        if not can_edit(access):
            raise ForbiddenError("No access")

        note = await self.note_repo.update_note(note.id, request.text_fields())
        return self._with_access(note, access)

    async def delete_note(self, note_id: str, identity: Identity) -> bool:
        note = await self._load_owned(note_id, identity, "No access")
        return await self.note_repo.delete_note(note.id)

    async def share_note(
        self, note_id: str, identity: Identity, request: ShareRequest
    ) -> NoteResponse:
        note = await self._load_owned(note_id, identity, "Owner only")

        target = await self.user_repo.get_by_email(request.email)
        if not target:
            raise UserNotFoundError()

        note = await self.note_repo.set_share(note.id, target.id, request.role)
        logger.info("Note %s shared with %s as %s", note.id, target.id, request.role.value)
        return NoteResponse.model_validate(note)

    async def unshare_note(
        self, note_id: str, identity: Identity, request: UnshareRequest
    ) -> NoteResponse:
        note = await self._load_owned(note_id, identity, "Owner only")

        target_id = request.user_id
        if target_id is None:
            target = await self.user_repo.get_by_email(request.email)
            if not target:
                raise UserNotFoundError()
            target_id = target.id

        note = await self.note_repo.remove_share(note.id, target_id)
        logger.info("Note %s unshared from %s", note.id, target_id)
        return NoteResponse.model_validate(note)

    async def _load(self, note_id: str, identity: Identity) -> "tuple[Note, AccessLevel]":
        note = await self.note_repo.get_by_id(note_id)
        if note is None:
            raise NoteNotFoundError()
        return note, resolve_access(note, identity.id)

    async def _load_owned(self, note_id: str, identity: Identity, message: str) -> Note:
        note, access = await self._load(note_id, identity)
        if access is not AccessLevel.OWNER:
            raise ForbiddenError(message)
        return note

    @staticmethod
    def _with_access(note: Note, access: AccessLevel) -> NoteWithAccess:
        return NoteWithAccess(**NoteResponse.model_validate(note).model_dump(), access=access)
