"""Tests for self-destruct timers and the liveness monitor."""

import asyncio

import pytest

from shadowchat.config import Settings
from shadowchat.ws.endpoints.relay.manager import (
    ConnectionManager,
    LivenessMonitor,
    SelfDestructScheduler,
)

from conftest import FakeConnection


@pytest.fixture
def manager():
    return ConnectionManager(Settings())


async def _pair(manager):
    alice, bob = FakeConnection(), FakeConnection()
    for conn, user_id in ((alice, "alice"), (bob, "bob")):
        manager.track(conn)
        await manager.bind_identity(conn, user_id, None)
    manager.sessions.open_pairwise("alice", "bob")
    return alice, bob


def test_clamp():
    scheduler = SelfDestructScheduler(manager=None, max_delay_ms=1000)

    assert scheduler.clamp(250) == 250
    assert scheduler.clamp(10_000) == 1000
    assert scheduler.clamp(-5) == 0


def test_delete_fires_to_both_participants(manager):
    scheduler = SelfDestructScheduler(manager, max_delay_ms=1000)

    async def scenario():
        alice, bob = await _pair(manager)
        scheduler.schedule_delete("alice|bob", "m1", 20)
        assert scheduler.pending_count == 1
        await asyncio.sleep(0.1)
        return alice, bob

    alice, bob = asyncio.run(scenario())

    expected = {"type": "delete-message", "sessionId": "alice|bob", "id": "m1"}
    assert alice.sent == [expected]
    assert bob.sent == [expected]
    assert scheduler.pending_count == 0


def test_delete_after_session_closed_is_dropped(manager):
    scheduler = SelfDestructScheduler(manager, max_delay_ms=1000)

    async def scenario():
        alice, bob = await _pair(manager)
        scheduler.schedule_delete("alice|bob", "m1", 20)
        manager.sessions.close_session("alice|bob")
        await asyncio.sleep(0.1)
        return alice, bob

    alice, bob = asyncio.run(scenario())

    assert alice.sent == [] and bob.sent == []


def test_shutdown_cancels_pending(manager):
    scheduler = SelfDestructScheduler(manager, max_delay_ms=60_000)

    async def scenario():
        alice, bob = await _pair(manager)
        effective = scheduler.schedule_delete("alice|bob", "m1", 120_000)
        await scheduler.shutdown()
        return effective, alice

    effective, alice = asyncio.run(scenario())

    assert effective == 60_000
    assert scheduler.pending_count == 0
    assert alice.sent == []


def test_liveness_probes_then_terminates(manager):
    monitor = LivenessMonitor(manager, interval_ms=10)
    quiet, chatty = FakeConnection(), FakeConnection()
    manager.track(quiet)
    manager.track(chatty)

    assert asyncio.run(monitor.sweep()) == 0
    assert quiet.types() == ["ping"]
    assert not quiet.is_alive

    # Only the chatty client answers the probe.
    chatty.is_alive = True

    assert asyncio.run(monitor.sweep()) == 1
    assert quiet.terminated
    assert quiet.close_code == 1001
    assert not chatty.terminated
    assert chatty.types() == ["ping", "ping"]
