"""Shared fixtures for relay tests."""

import uuid

import pytest
from fastapi.testclient import TestClient

from shadowchat.main import app
from shadowchat.ws.endpoints.relay import server


class FakeConnection:
    """Stand-in for a relay connection that records what it is sent."""

    def __init__(self, user_id=None):
        self.conn_id = uuid.uuid4().hex
        self.user_id = user_id
        self.is_alive = True
        self.sent = []
        self.terminated = False
        self.close_code = None

    def __repr__(self):
        return f"<FakeConnection user={self.user_id}>"

    @property
    def rate_key(self):
        return self.user_id or f"conn:{self.conn_id}"

    async def send(self, payload):
        if self.terminated:
            return False
        self.sent.append(payload)
        return True

    async def terminate(self, code=1008):
        if self.terminated:
            return
        self.terminated = True
        self.close_code = code

    def types(self):
        return [payload["type"] for payload in self.sent]

    def last(self, msg_type):
        for payload in reversed(self.sent):
            if payload["type"] == msg_type:
                return payload
        return None


class FakeClock:
    """Millisecond clock advanced by hand."""

    def __init__(self, start=1_000_000):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, ms):
        self.now += ms


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture(autouse=True)
def reset_relay_state():
    """Reset the relay's shared state before each test."""
    server.manager.reset()
    yield


@pytest.fixture
def client():
    """Test client whose sockets share one event loop with the relay."""
    with TestClient(app) as test_client:
        yield test_client
