"""Unit tests for the room registry."""

import pytest

from src.notesync.realtime.rooms import RoomRegistry


class FakeConnection:
    def __init__(self, cid, fail=False):
        self.id = cid
        self.identity = None
        self.sent = []
        self.fail = fail

    async def send_event(self, event, data=None):
        if self.fail:
            raise RuntimeError("socket gone")
        self.sent.append((event, data))
        return True


class TestMembership:
    def setup_method(self):
        self.registry = RoomRegistry()
        self.a = FakeConnection("a")
        self.b = FakeConnection("b")

    def test_add_is_idempotent(self):
        assert self.registry.add("n1", self.a) is True
        assert self.registry.add("n1", self.a) is False
        assert self.registry.members("n1") == [self.a]

    def test_remove_drops_empty_rooms(self):
        self.registry.add("n1", self.a)
        assert self.registry.remove("n1", self.a) is True
        assert self.registry.remove("n1", self.a) is False
        assert self.registry.room_count() == 0

    def test_remove_everywhere(self):
        self.registry.add("n1", self.a)
        self.registry.add("n2", self.a)
        self.registry.add("n2", self.b)

        left = self.registry.remove_everywhere(self.a)

        assert sorted(left) == ["n1", "n2"]
        assert self.registry.rooms_of(self.a) == []
        assert self.registry.members("n2") == [self.b]
        assert self.registry.room_count() == 1

    def test_counts(self):
        self.registry.add("n1", self.a)
        self.registry.add("n2", self.a)
        self.registry.add("n2", self.b)
        assert self.registry.room_count() == 2
        assert self.registry.connection_count() == 2

    def test_members_is_a_snapshot(self):
        self.registry.add("n1", self.a)
        members = self.registry.members("n1")
        self.registry.add("n1", self.b)
        assert members == [self.a]


class TestBroadcast:
    @pytest.mark.asyncio
    async def test_per_member_payloads(self):
        registry = RoomRegistry()
        a, b = FakeConnection("a"), FakeConnection("b")
        registry.add("n1", a)
        registry.add("n1", b)

        delivered = await registry.broadcast("n1", lambda m: ("evt", {"to": m.id}))

        assert delivered == 2
        assert a.sent == [("evt", {"to": "a"})]
        assert b.sent == [("evt", {"to": "b"})]

    @pytest.mark.asyncio
    async def test_builder_can_skip_members(self):
        registry = RoomRegistry()
        a, b = FakeConnection("a"), FakeConnection("b")
        registry.add("n1", a)
        registry.add("n1", b)

        delivered = await registry.broadcast("n1", lambda m: None if m is b else ("evt", {}))

        assert delivered == 1
        assert b.sent == []

    @pytest.mark.asyncio
    async def test_failed_send_does_not_stop_others(self):
        registry = RoomRegistry()
        broken, ok = FakeConnection("broken", fail=True), FakeConnection("ok")
        registry.add("n1", broken)
        registry.add("n1", ok)

        delivered = await registry.broadcast("n1", lambda m: ("evt", {}))

        assert delivered == 1
        assert ok.sent == [("evt", {})]

    @pytest.mark.asyncio
    async def test_member_removed_mid_broadcast_is_skipped(self):
        registry = RoomRegistry()
        a, b = FakeConnection("a"), FakeConnection("b")
        registry.add("n1", a)
        registry.add("n1", b)

        def build(member):
            registry.remove_everywhere(b)
            return "evt", {}

        await registry.broadcast("n1", build)
        assert b.sent == []

    @pytest.mark.asyncio
    async def test_empty_room(self):
        assert await RoomRegistry().broadcast("missing", lambda m: ("evt", {})) == 0
