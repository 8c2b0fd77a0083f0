"""Tests for the connection manager's identity and teardown rules."""

import asyncio

import pytest

from shadowchat.config import Settings
from shadowchat.ws.endpoints.relay.manager import ConnectionManager

from conftest import FakeConnection


@pytest.fixture
def manager():
    return ConnectionManager(Settings())


def _online(manager, *user_ids):
    connections = []
    for user_id in user_ids:
        conn = FakeConnection()
        manager.track(conn)
        asyncio.run(manager.bind_identity(conn, user_id, user_id.title()))
        connections.append(conn)
    return connections


def test_bind_identity(manager):
    (alice,) = _online(manager, "alice")

    assert alice.user_id == "alice"
    assert manager.is_online("alice")
    assert manager.display_name_of("alice") == "Alice"
    assert alice.rate_key == "alice"


def test_second_hello_releases_previous_identity(manager):
    (conn,) = _online(manager, "alice")

    asyncio.run(manager.bind_identity(conn, "alicia", None))

    assert not manager.is_online("alice")
    assert manager.is_online("alicia")


def test_stale_disconnect_keeps_reconnected_identity(manager):
    old, bob = _online(manager, "alice", "bob")
    new = FakeConnection()
    manager.track(new)
    asyncio.run(manager.bind_identity(new, "alice", "Alice"))

    asyncio.run(manager.disconnect(old))

    assert manager.registry.lookup("alice").connection is new
    assert old.conn_id not in manager.connections


def test_superseded_connection_no_longer_owns_identity(manager):
    (old,) = _online(manager, "alice")
    anonymous = FakeConnection()
    manager.track(anonymous)
    assert manager.owns_identity(old)
    assert not manager.owns_identity(anonymous)

    new = FakeConnection()
    manager.track(new)
    asyncio.run(manager.bind_identity(new, "alice", "Alice"))

    assert old.user_id == "alice"
    assert not manager.owns_identity(old)
    assert manager.owns_identity(new)


def test_disconnect_drops_socket_bucket_but_keeps_identity_bucket(manager):
    anonymous = FakeConnection()
    manager.track(anonymous)
    manager.admit(anonymous)
    (alice,) = _online(manager, "alice")
    manager.admit(alice)
    assert len(manager.rate_limiter) == 2

    asyncio.run(manager.disconnect(anonymous))
    asyncio.run(manager.disconnect(alice))

    assert len(manager.rate_limiter) == 1


def test_disconnect_ends_sessions_and_tells_peer(manager):
    alice, bob = _online(manager, "alice", "bob")
    manager.sessions.open_pairwise("alice", "bob")

    asyncio.run(manager.disconnect(alice))

    assert not manager.is_online("alice")
    assert manager.sessions.session_count == 0
    ended = bob.last("session-ended")
    assert ended == {
        "type": "session-ended",
        "sessionId": "alice|bob",
        "reason": "peer-disconnected",
    }


def test_end_session_notifies_each_participant_once(manager):
    alice, bob = _online(manager, "alice", "bob")
    manager.sessions.open_pairwise("alice", "bob")

    async def end_twice():
        return await asyncio.gather(
            manager.end_session("alice|bob", "ended"),
            manager.end_session("alice|bob", "ended"),
        )

    results = asyncio.run(end_twice())

    assert sorted(results) == [False, True]
    assert alice.types().count("session-ended") == 1
    assert bob.types().count("session-ended") == 1


def test_broadcast_to_closed_session_delivers_nothing(manager):
    alice, bob = _online(manager, "alice", "bob")

    delivered = asyncio.run(
        manager.broadcast_to_session("alice|bob", {"type": "delete-message"})
    )

    assert delivered == 0
    assert alice.sent == [] and bob.sent == []


def test_send_to_offline_user_is_skipped(manager):
    assert asyncio.run(manager.send_to_user("ghost", {"type": "signal"})) is False
    assert asyncio.run(manager.send_to_user(None, {"type": "signal"})) is False


def test_expire_sessions(manager):
    alice, bob = _online(manager, "alice", "bob")
    session = manager.sessions.open_pairwise("alice", "bob")

    expired = asyncio.run(
        manager.expire_sessions(now=session.created_at + manager.sessions.ttl_ms + 1)
    )

    assert expired == ["alice|bob"]
    assert alice.last("session-ended")["reason"] == "expired"
    assert bob.last("session-ended")["reason"] == "expired"


def test_metrics(manager):
    _online(manager, "alice", "bob")
    manager.sessions.open_pairwise("alice", "bob")
    manager.sessions.create_group("alice")

    metrics = manager.get_metrics(pending_self_destructs=3)

    assert metrics.activeConnections == 2
    assert metrics.totalConnections == 2
    assert metrics.registeredIdentities == 2
    assert metrics.activeSessions == 1
    assert metrics.activeGroups == 1
    assert metrics.pendingSelfDestructs == 3


def test_reset(manager):
    _online(manager, "alice")
    manager.reset()

    assert manager.connections == {}
    assert len(manager.registry) == 0
    assert manager.total_connections == 0
