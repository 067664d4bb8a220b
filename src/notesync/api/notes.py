"""Notes API endpoints."""

from typing import List

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..core.schemas.notes import NoteCreate, NoteResponse, NoteUpdate, NoteWithAccess
from ..core.schemas.sharing import ShareRequest, UnshareRequest
from ..core.services import NoteService
from ..database import get_db_session
from ..middleware.auth import get_current_identity
from ..security import Identity

router = APIRouter(prefix="/notes", tags=["notes"])


@router.get("/owned", response_model=List[NoteResponse])
async def list_owned_notes(
    identity: Identity = Depends(get_current_identity),
    session: AsyncSession = Depends(get_db_session),
):
    """List notes owned by the caller."""
    return await NoteService(session).list_owned(identity)


@router.get("/shared", response_model=List[NoteResponse])
async def list_shared_notes(
    identity: Identity = Depends(get_current_identity),
    session: AsyncSession = Depends(get_db_session),
):
    """List notes shared with the caller."""
    return await NoteService(session).list_shared(identity)


@router.post("", response_model=NoteResponse, status_code=status.HTTP_201_CREATED)
async def create_note(
    request: NoteCreate,
    identity: Identity = Depends(get_current_identity),
    session: AsyncSession = Depends(get_db_session),
):
    """Create a new note."""
    return await NoteService(session).create_note(identity, request)


@router.get("/{note_id}", response_model=NoteWithAccess)
async def get_note(
    note_id: str,
    identity: Identity = Depends(get_current_identity),
    session: AsyncSession = Depends(get_db_session),
):
    """Get a note with the caller's access level."""
    return await NoteService(session).get_note(note_id, identity)


@router.put("/{note_id}", response_model=NoteWithAccess)
async def update_note(
    note_id: str,
    request: NoteUpdate,
    http_request: Request,
    identity: Identity = Depends(get_current_identity),
    session: AsyncSession = Depends(get_db_session),
):
    """Update title/content (owner or editor).

    Live room members receive the result like any realtime edit, so writes
    from polling clients still reach connected viewers.
    """
    note = await NoteService(session).update_note(note_id, identity, request)
    collaboration = getattr(http_request.app.state, "collaboration", None)
    if collaboration is not None:
        await collaboration.publish_note(note, note.access)
    return note


@router.delete("/{note_id}")
async def delete_note(
    note_id: str,
    identity: Identity = Depends(get_current_identity),
    session: AsyncSession = Depends(get_db_session),
):
    """Delete a note (owner only)."""
    await NoteService(session).delete_note(note_id, identity)
    return {"message": "Deleted"}


@router.post("/{note_id}/share", response_model=NoteResponse)
async def share_note(
    note_id: str,
    request: ShareRequest,
    identity: Identity = Depends(get_current_identity),
    session: AsyncSession = Depends(get_db_session),
):
    """Share a note with a registered user as viewer or editor (owner only)."""
    return await NoteService(session).share_note(note_id, identity, request)


@router.post("/{note_id}/unshare", response_model=NoteResponse)
async def unshare_note(
    note_id: str,
    request: UnshareRequest,
    identity: Identity = Depends(get_current_identity),
    session: AsyncSession = Depends(get_db_session),
):
    """Remove a user's access (owner only)."""
    return await NoteService(session).unshare_note(note_id, identity, request)
