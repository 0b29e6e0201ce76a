import pytest

from schemas.messages import ErrorMessage, Role
from session import SessionError, SessionState


def test_bind_and_unbind(make_session):
    session = make_session()
    assert session.state is SessionState.UNJOINED
    session.bind("r1", Role.SENDER)
    assert session.is_joined
    assert session.holds("r1", Role.SENDER)
    session.unbind()
    assert session.state is SessionState.UNJOINED
    assert session.room_id is None and session.role is None


def test_rebind_same_binding_allowed(make_session):
    session = make_session()
    session.bind("r1", Role.SENDER)
    session.bind("r1", Role.SENDER)
    assert session.holds("r1", Role.SENDER)


def test_rebind_different_binding_raises(make_session):
    session = make_session()
    session.bind("r1", Role.SENDER)
    with pytest.raises(SessionError):
        session.bind("r1", Role.RECEIVER)
    with pytest.raises(SessionError):
        session.bind("r2", Role.SENDER)


@pytest.mark.asyncio
async def test_bind_after_close_raises(make_session):
    session = make_session()
    await session.close(1000, "bye")
    with pytest.raises(SessionError):
        session.bind("r1", Role.SENDER)


@pytest.mark.asyncio
async def test_close_keeps_binding_for_cleanup(make_session):
    session = make_session()
    session.bind("r1", Role.RECEIVER)
    await session.close(1013, "rate limit exceeded")
    assert session.state is SessionState.CLOSED
    assert session.room_id == "r1" and session.role is Role.RECEIVER
    assert session.websocket.close_code == 1013
    assert not session.is_open


@pytest.mark.asyncio
async def test_close_twice_closes_once(make_session):
    session = make_session()
    await session.close(1009, "too big")
    await session.close(1000, "again")
    assert session.websocket.close_code == 1009


@pytest.mark.asyncio
async def test_send_serialises_models_and_dicts(make_session):
    session = make_session()
    await session.send(ErrorMessage(message="bad token"))
    await session.send({"type": "ready"})
    assert session.websocket.sent == [
        {"type": "error", "message": "bad token"},
        {"type": "ready"},
    ]


@pytest.mark.asyncio
async def test_send_to_disconnected_is_dropped(make_session):
    session = make_session()
    session.websocket.disconnect()
    await session.send({"type": "ready"})
    assert session.websocket.sent == []


@pytest.mark.asyncio
async def test_close_after_client_disconnect_skips_transport(make_session):
    session = make_session()
    session.websocket.disconnect()
    await session.close(1000)
    assert session.state is SessionState.CLOSED
    assert session.websocket.close_code is None
