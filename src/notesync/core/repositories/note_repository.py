"""Note repository: the persistent document store for notes and their shares."""

import logging
from typing import Any, Dict, List, Optional
from uuid import UUID

from sqlalchemy import desc, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..exceptions import NoteNotFoundError, NotSharedError, OwnerShareError, ValidationError
from ..models.note import Note
from ..models.share import NoteShare, ShareRole

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("title", "content")


def coerce_uuid(value: Any) -> Optional[UUID]:
    """Parse ids arriving as text; None when the value is not a UUID."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except (TypeError, ValueError, AttributeError):
        return None


class NoteRepository:
    """Repository for note database operations."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_note(self, owner_id: UUID, title: str = "", content: str = "") -> Note:
        """Create a note; the creator becomes owner and the share list starts empty."""
        note = Note(owner_id=coerce_uuid(owner_id), title=title, content=content)
        self.session.add(note)
        await self._commit()
        return await self.get_required(note.id)

    async def get_by_id(self, note_id: Any) -> Optional[Note]:
        """Get note by ID with fresh column values and share list."""
        key = coerce_uuid(note_id)
        if key is None:
            return None
        stmt = (
            select(Note)
            .where(Note.id == key)
            .execution_options(populate_existing=True)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()

    async def get_required(self, note_id: Any) -> Note:
        note = await self.get_by_id(note_id)
        if note is None:
            raise NoteNotFoundError()
        return note

    async def list_by_owner(self, owner_id: UUID) -> List[Note]:
        """Notes owned by a user, most recently updated first."""
        stmt = (
            select(Note)
            .where(Note.owner_id == coerce_uuid(owner_id))
            .order_by(desc(Note.updated_at))
        )
        result = await self.session.execute(stmt)
        return list(result.scalars())

    async def list_shared_with(self, user_id: UUID) -> List[Note]:
        """Notes shared with a user, most recently updated first."""
        stmt = (
            select(Note)
            .join(NoteShare, NoteShare.note_id == Note.id)
            .where(NoteShare.user_id == coerce_uuid(user_id))
            .order_by(desc(Note.updated_at))
        )
        result = await self.session.execute(stmt)
        return list(result.scalars().unique())

    async def update_note(self, note_id: Any, fields: Dict[str, Any]) -> Note:
        """Overwrite title and/or content. Other keys are ignored."""
        note = await self.get_required(note_id)

        changes = {key: fields[key] for key in EDITABLE_FIELDS if key in fields}
        for key, value in changes.items():
            setattr(note, key, value)
        note.touch()

        await self._commit()
        logger.debug("Updated note %s fields=%s", note.id, sorted(changes))
        return await self.get_required(note.id)

    async def delete_note(self, note_id: Any) -> bool:
        """Delete a note together with its share entries."""
        note = await self.get_required(note_id)
        await self.session.delete(note)
        await self._commit()
        logger.info("Deleted note %s", note_id)
        return True

    async def set_share(self, note_id: Any, user_id: UUID, role: Any) -> Note:
        """Grant or change a user's role. Existing entries keep their position."""
        try:
            role = ShareRole(getattr(role, "value", role))
        except ValueError:
            raise ValidationError("Role must be viewer or editor")

        note = await self.get_required(note_id)
        if note.is_owned_by(user_id):
            raise OwnerShareError()

        entry = note.share_for(user_id)
        if entry is not None:
            entry.role = role.value
        else:
            note.shared_with.append(
                NoteShare(note_id=note.id, user_id=coerce_uuid(user_id), role=role.value)
            )
        note.touch()

        await self._commit()
        return await self.get_required(note.id)

    async def remove_share(self, note_id: Any, user_id: UUID) -> Note:
        """Drop a user's share entry."""
        note = await self.get_required(note_id)
        entry = note.share_for(user_id)
        if entry is None:
            raise NotSharedError()

        note.shared_with.remove(entry)
        note.touch()

        await self._commit()
        return await self.get_required(note.id)

    async def _commit(self) -> None:
        try:
            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            raise
