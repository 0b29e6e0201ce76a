import pytest

from schemas.messages import Role


def test_get_or_create_returns_same_room(registry):
    room = registry.get_or_create("r1")
    assert registry.get_or_create("r1") is room
    assert registry.get("r1") is room
    assert len(registry) == 1


def test_get_unknown_room_does_not_create(registry):
    assert registry.get("missing") is None
    assert "missing" not in registry


def test_delete_marks_room_evicted(registry):
    room = registry.get_or_create("r1")
    registry.delete("r1")
    assert room.evicted
    assert registry.get("r1") is None
    registry.delete("r1")


def test_new_room_is_empty(registry, clock):
    room = registry.get_or_create("r1")
    assert room.is_empty
    assert not room.is_full
    assert room.secret is None
    assert room.last_activity == clock.now


def test_slots(registry, make_session):
    room = registry.get_or_create("r1")
    a, b = make_session(), make_session()
    room.set_occupant(Role.SENDER, a)
    assert room.peer_of(Role.RECEIVER) is a
    assert room.peer_of(Role.SENDER) is None
    room.set_occupant(Role.RECEIVER, b)
    assert room.is_full
    assert room.occupants == [a, b]


@pytest.mark.asyncio
async def test_for_each_stale(registry, clock):
    old = registry.get_or_create("old")
    clock.advance(100)
    fresh = registry.get_or_create("fresh")
    seen = []

    async def collect(room):
        seen.append(room.id)
        registry.delete(room.id)

    await registry.for_each_stale(50, collect)
    assert seen == ["old"]
    assert old.evicted
    assert registry.get("fresh") is fresh


@pytest.mark.asyncio
async def test_touch_keeps_room_fresh(registry, clock):
    room = registry.get_or_create("r1")
    clock.advance(100)
    room.touch()
    seen = []

    async def collect(r):
        seen.append(r.id)

    await registry.for_each_stale(50, collect)
    assert seen == []
