# Note model for user content
import uuid
from typing import TYPE_CHECKING, List

from sqlalchemy import ForeignKey, Index, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import BaseModel
from .types import GUID

if TYPE_CHECKING:
    from .share import NoteShare
    from .user import User


class Note(BaseModel):
    """Note with a title, a body and its share list."""

    __tablename__ = "notes"

    title: Mapped[str] = mapped_column(Text, default="", nullable=False)
    content: Mapped[str] = mapped_column(Text, default="", nullable=False)

    # set once at creation
    owner_id: Mapped[uuid.UUID] = mapped_column(
        GUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )

    owner: Mapped["User"] = relationship(
        "User",
        back_populates="notes",
        doc="User who created and owns this note",
    )

    shared_with: Mapped[List["NoteShare"]] = relationship(
        "NoteShare",
        back_populates="note",
        cascade="all, delete-orphan",
        order_by="NoteShare.created_at",
        lazy="selectin",
        doc="Share entries in the order they were granted",
    )

    __table_args__ = (
        Index("idx_notes_owner_id", "owner_id"),
        Index("idx_notes_owner_updated", "owner_id", "updated_at"),
    )

    def __repr__(self) -> str:
        truncated = self.title if len(self.title or "") <= 30 else (self.title[:30] + "...")
        return f"<Note(title='{truncated}', owner_id={self.owner_id})>"

    def is_owned_by(self, user_id: uuid.UUID) -> bool:
        return str(self.owner_id) == str(user_id)

    def share_for(self, user_id: uuid.UUID) -> "NoteShare | None":
        """Return the share entry for user_id, if any."""
        for entry in self.shared_with:
            if str(entry.user_id) == str(user_id):
                return entry
        return None
