"""Collaboration manager against a real (SQLite) note repository."""

import uuid
from contextlib import asynccontextmanager

import pytest
from sqlalchemy.exc import SQLAlchemyError

from src.notesync.config import Settings
from src.notesync.core.access import AccessLevel, resolve_access
from src.notesync.core.models.share import ShareRole
from src.notesync.core.repositories.note_repository import NoteRepository
from src.notesync.core.schemas.notes import NoteResponse, NoteWithAccess
from src.notesync.realtime import protocol
from src.notesync.realtime.manager import CollaborationManager, session_repositories
from src.notesync.realtime.rooms import RoomRegistry


class FakeConnection:
    def __init__(self, identity):
        self.id = uuid.uuid4().hex
        self.identity = identity
        self.sent = []

    async def send_event(self, event, data=None):
        self.sent.append((event, data))
        return True

    def events(self):
        return [event for event, _ in self.sent]

    def last(self):
        return self.sent[-1]


@pytest.fixture
def registry():
    return RoomRegistry()


@pytest.fixture
def dropped():
    return []


def build_manager(registry, session_factory, dropped, **settings):
    return CollaborationManager(
        registry,
        session_repositories(session_factory),
        settings=Settings(log_to_file=False, **settings),
        on_dropped_update=lambda conn, note_id, reason: dropped.append((note_id, reason)),
    )


@pytest.fixture
def manager(registry, session_factory, dropped):
    return build_manager(registry, session_factory, dropped)


@pytest.fixture
def users(make_user, identity_for):
    async def _users(*names):
        result = []
        for name in names:
            user = await make_user(name)
            result.append((user, FakeConnection(identity_for(user))))
        return result

    return _users


@pytest.fixture
def store(session_factory):
    """Run one repository call in its own session."""

    async def _store(method, *args):
        async with session_factory() as session:
            return await getattr(NoteRepository(session), method)(*args)

    return _store


async def test_scenario_share_edit_delete(manager, users, store):
    (alice, a), (bob, b) = await users("Alice", "Bob")

    note = await store("create_note", alice.id)
    assert (note.title, note.content, note.shared_with) == ("", "", [])
    assert resolve_access(note, alice.id) is AccessLevel.OWNER

    note = await store("set_share", note.id, bob.id, ShareRole.VIEWER)
    assert resolve_access(note, bob.id) is AccessLevel.VIEWER

    await manager.join(a, note.id)
    await manager.join(b, str(note.id))
    assert a.last()[0] == protocol.SERVER_NOTE_INIT
    assert a.last()[1]["access"] == "owner"
    assert b.last()[1]["access"] == "viewer"
    a.sent.clear()
    b.sent.clear()

    # viewer edits are dropped silently
    await manager.update(b, note.id, content="sneaky")
    assert a.sent == [] and b.sent == []
    assert (await store("get_by_id", note.id)).content == ""

    await store("set_share", note.id, bob.id, ShareRole.EDITOR)
    await manager.update(b, note.id, content="hello")

    for conn in (a, b):
        event, data = conn.last()
        assert event == protocol.SERVER_NOTE_UPDATE
        assert data["content"] == "hello"
    assert (await store("get_by_id", note.id)).content == "hello"

    await store("delete_note", note.id)
    b.sent.clear()
    await manager.join(b, note.id)
    assert b.sent == [(protocol.ERROR_MESSAGE, {"message": "Note not found"})]


async def test_join_init_goes_to_requester_only(manager, users, store):
    (alice, a), (bob, b) = await users("Alice", "Bob")
    note = await store("create_note", alice.id, "Title", "Body")
    await store("set_share", note.id, bob.id, ShareRole.EDITOR)

    await manager.join(a, note.id)
    await manager.join(b, note.id)

    assert a.events() == [protocol.SERVER_NOTE_INIT]
    data = b.last()[1]
    assert data["title"] == "Title"
    assert data["owner_id"] == str(alice.id)
    assert data["shared_with"][0]["user_id"] == str(bob.id)
    assert data["shared_with"][0]["email"] == bob.email


async def test_join_errors(manager, registry, users, store):
    (alice, a), (mallory, m) = await users("Alice", "Mallory")
    note = await store("create_note", alice.id)

    await manager.join(m, note.id)
    assert m.sent == [(protocol.ERROR_MESSAGE, {"message": "No access to this note"})]
    assert registry.members(str(note.id)) == []

    m.sent.clear()
    await manager.join(m, "not-a-uuid")
    assert m.sent == [(protocol.ERROR_MESSAGE, {"message": "Note not found"})]

    m.sent.clear()
    await manager.join(m, None)
    assert m.sent == [(protocol.ERROR_MESSAGE, {"message": "Note not found"})]


async def test_rejoin_keeps_single_membership(manager, registry, users, store):
    (alice, a), = await users("Alice")
    note = await store("create_note", alice.id)

    await manager.join(a, note.id)
    await manager.join(a, note.id)

    assert registry.members(str(note.id)) == [a]
    assert a.events() == [protocol.SERVER_NOTE_INIT, protocol.SERVER_NOTE_INIT]


async def test_join_failure_reports_join_failed(registry, users, dropped):
    (alice, a), = await users("Alice")

    @asynccontextmanager
    async def broken_scope():
        raise SQLAlchemyError("database is down")
        yield  # pragma: no cover

    manager = CollaborationManager(registry, broken_scope, settings=Settings(log_to_file=False))
    await manager.join(a, uuid.uuid4())

    assert a.sent == [(protocol.ERROR_MESSAGE, {"message": "Join failed"})]
    assert registry.room_count() == 0


async def test_update_failure_is_swallowed_and_reported(registry, users, dropped):
    (alice, a), = await users("Alice")
    note_id = uuid.uuid4()
    registry.add(str(note_id), a)

    @asynccontextmanager
    async def broken_scope():
        raise SQLAlchemyError("database is down")
        yield  # pragma: no cover

    manager = CollaborationManager(
        registry,
        broken_scope,
        settings=Settings(log_to_file=False),
        on_dropped_update=lambda conn, nid, reason: dropped.append((nid, reason)),
    )
    await manager.update(a, note_id, content="x")

    assert a.sent == []
    assert dropped[0][0] == str(note_id)
    assert dropped[0][1].startswith("repository error")


async def test_silent_update_drops(manager, users, store, dropped):
    (alice, a), (bob, b) = await users("Alice", "Bob")
    note = await store("create_note", alice.id)
    await store("set_share", note.id, bob.id, ShareRole.VIEWER)

    await manager.update(a, None, content="x")
    await manager.update(a, uuid.uuid4(), content="x")
    await manager.update(b, note.id, content="x")

    assert [reason for _, reason in dropped] == [
        "missing note id",
        "note not found",
        "access viewer",
    ]
    assert a.sent == [] and b.sent == []


async def test_non_text_fields_are_ignored(manager, users, store):
    (alice, a), = await users("Alice")
    note = await store("create_note", alice.id, "Keep", "old")
    await manager.join(a, note.id)

    await manager.update(a, note.id, title=123, content="new")

    saved = await store("get_by_id", note.id)
    assert (saved.title, saved.content) == ("Keep", "new")
    assert a.last()[1]["title"] == "Keep"


async def test_last_write_wins(manager, users, store):
    (alice, a), (bob, b) = await users("Alice", "Bob")
    note = await store("create_note", alice.id)
    await store("set_share", note.id, bob.id, ShareRole.EDITOR)

    await manager.update(a, note.id, content="first")
    await manager.update(b, note.id, content="second")

    assert (await store("get_by_id", note.id)).content == "second"


async def test_updated_at_never_moves_backwards(manager, users, store):
    (alice, a), = await users("Alice")
    note = await store("create_note", alice.id)
    before = NoteResponse.model_validate(note).updated_at

    await manager.join(a, note.id)
    await manager.update(a, note.id, title="t")

    after = NoteResponse.model_validate(await store("get_by_id", note.id)).updated_at
    assert after >= before


async def test_leave_and_disconnect_stop_delivery(manager, registry, users, store):
    (alice, a), (bob, b), (carol, c) = await users("Alice", "Bob", "Carol")
    note = await store("create_note", alice.id)
    other = await store("create_note", alice.id)
    await store("set_share", note.id, bob.id, ShareRole.VIEWER)
    await store("set_share", note.id, carol.id, ShareRole.VIEWER)
    await store("set_share", other.id, carol.id, ShareRole.VIEWER)

    for conn in (a, b, c):
        await manager.join(conn, note.id)
    await manager.join(c, other.id)

    manager.leave(b, note.id)
    manager.leave(b, note.id)
    left = manager.disconnect(c)
    assert sorted(left) == sorted([str(note.id), str(other.id)])
    assert registry.rooms_of(c) == []

    b.sent.clear()
    c.sent.clear()
    await manager.update(a, note.id, content="after")

    assert b.sent == [] and c.sent == []
    assert a.last()[1]["content"] == "after"


async def test_access_is_computed_per_recipient(manager, registry, users, store):
    (alice, a), (bob, b), (carol, c) = await users("Alice", "Bob", "Carol")
    note = await store("create_note", alice.id)
    await store("set_share", note.id, bob.id, ShareRole.EDITOR)
    await store("set_share", note.id, carol.id, ShareRole.VIEWER)
    for conn in (a, b, c):
        await manager.join(conn, note.id)

    await manager.update(b, note.id, content="x")

    assert a.last()[1]["access"] == "owner"
    assert b.last()[1]["access"] == "editor"
    assert c.last()[1]["access"] == "viewer"


async def test_revoked_members_are_skipped_and_removed(manager, registry, users, store):
    (alice, a), (bob, b) = await users("Alice", "Bob")
    note = await store("create_note", alice.id)
    await store("set_share", note.id, bob.id, ShareRole.VIEWER)
    await manager.join(a, note.id)
    await manager.join(b, note.id)
    await store("remove_share", note.id, bob.id)

    b.sent.clear()
    await manager.update(a, note.id, content="private")

    assert b.sent == []
    assert registry.members(str(note.id)) == [a]


async def test_sender_access_mode(registry, session_factory, dropped, users, store):
    manager = build_manager(registry, session_factory, dropped, broadcast_sender_access=True)
    (alice, a), (bob, b), (carol, c) = await users("Alice", "Bob", "Carol")
    note = await store("create_note", alice.id)
    await store("set_share", note.id, bob.id, ShareRole.EDITOR)
    await store("set_share", note.id, carol.id, ShareRole.VIEWER)
    for conn in (a, b, c):
        await manager.join(conn, note.id)

    await manager.update(b, note.id, content="x")

    assert {conn.last()[1]["access"] for conn in (a, b, c)} == {"editor"}


async def test_handle_event_dispatch(manager, users, store):
    (alice, a), = await users("Alice")
    note = await store("create_note", alice.id)

    await manager.handle_event(
        a, protocol.Envelope(event=protocol.JOIN_NOTE, data={"noteId": str(note.id)})
    )
    await manager.handle_event(
        a,
        protocol.Envelope(
            event=protocol.CLIENT_NOTE_UPDATE,
            data={"noteId": str(note.id), "title": "via frame"},
        ),
    )
    await manager.handle_event(a, protocol.Envelope(event="typing", data={}))
    await manager.handle_event(
        a, protocol.Envelope(event=protocol.LEAVE_NOTE, data={"noteId": str(note.id)})
    )

    assert a.events() == [protocol.SERVER_NOTE_INIT, protocol.SERVER_NOTE_UPDATE]
    assert a.last()[1]["title"] == "via frame"
    assert manager.registry.rooms_of(a) == []


async def test_publish_note_accepts_rest_response(manager, users, store):
    (alice, a), = await users("Alice")
    note = await store("create_note", alice.id, "From REST")
    await manager.join(a, note.id)

    response = NoteWithAccess(
        **NoteResponse.model_validate(note).model_dump(), access=AccessLevel.OWNER
    )
    delivered = await manager.publish_note(response, AccessLevel.OWNER)

    assert delivered == 1
    assert a.last()[0] == protocol.SERVER_NOTE_UPDATE
    assert a.last()[1]["title"] == "From REST"


async def test_publish_note_forwards_to_relay(manager, users, store):
    (alice, a), = await users("Alice")
    note = await store("create_note", alice.id)

    class FakeRelay:
        def __init__(self):
            self.published = []

        async def publish(self, note, access):
            self.published.append((str(note.id), access))

    manager.relay = FakeRelay()
    await manager.publish_note(note, AccessLevel.OWNER)

    assert manager.relay.published == [(str(note.id), AccessLevel.OWNER)]
