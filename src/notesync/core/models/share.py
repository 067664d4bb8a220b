# Note sharing between users
import uuid
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, ForeignKey, Index, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import BaseModel
from .types import GUID

if TYPE_CHECKING:
    from .note import Note
    from .user import User


class ShareRole(str, Enum):
    """Roles a note can be shared with."""

    VIEWER = "viewer"
    EDITOR = "editor"


class NoteShare(BaseModel):
    """Grants one user a role on one note."""

    __tablename__ = "note_shares"

    note_id: Mapped[uuid.UUID] = mapped_column(
        GUID(), ForeignKey("notes.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID] = mapped_column(
        GUID(), ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    role: Mapped[str] = mapped_column(String(10), default=ShareRole.VIEWER.value, nullable=False)

    note: Mapped["Note"] = relationship("Note", back_populates="shared_with")
    user: Mapped["User"] = relationship("User", back_populates="shares_received", lazy="selectin")

    __table_args__ = (
        UniqueConstraint("note_id", "user_id", name="uq_note_shares_note_user"),
        CheckConstraint("role IN ('viewer', 'editor')", name="ck_note_shares_role"),
        Index("idx_note_shares_user_id", "user_id"),
    )

    def __repr__(self) -> str:
        return f"<NoteShare(note_id={self.note_id}, user_id={self.user_id}, role={self.role})>"

    @property
    def email(self) -> "str | None":
        return self.user.email if self.user is not None else None

    @property
    def name(self) -> "str | None":
        return self.user.name if self.user is not None else None
