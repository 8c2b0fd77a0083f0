"""End-to-end tests for the relay WebSocket endpoint."""

import json

import pytest
from fastapi.websockets import WebSocketDisconnect

from shadowchat.config import GroupJoinPolicy
from shadowchat.ws.endpoints.relay import server


def hello(websocket, user_id, name=None):
    websocket.send_json({"type": "hello", "userId": user_id, "name": name or user_id.title()})
    ack = websocket.receive_json()
    assert ack == {"type": "hello-ack", "ok": True, "userId": user_id}


def sync(websocket):
    """Round-trip a heartbeat; fails if anything else was queued first."""
    websocket.send_json({"type": "heartbeat"})
    response = websocket.receive_json()
    assert response["type"] == "heartbeat-ack"


def start_session(alice, bob):
    alice.send_json({"type": "request-chat", "fromId": "alice", "toId": "bob"})
    assert bob.receive_json() == {
        "type": "incoming-request",
        "fromId": "alice",
        "fromName": "Alice",
    }
    assert alice.receive_json() == {"type": "request-sent", "toId": "bob"}

    bob.send_json({"type": "response-chat", "fromId": "bob", "toId": "alice", "accept": True})
    alice_start = alice.receive_json()
    bob_start = bob.receive_json()
    assert alice_start["type"] == bob_start["type"] == "chat-start"
    assert alice_start["sessionId"] == bob_start["sessionId"] == "alice|bob"
    assert alice_start["peerId"] == "bob"
    assert alice_start["peerName"] == "Bob"
    assert bob_start["peerId"] == "alice"
    return alice_start["sessionId"]


def test_hello_on_both_paths(client):
    for path in ("/ws", "/"):
        with client.websocket_connect(path) as websocket:
            hello(websocket, "alice")


def test_full_conversation(client):
    """Register, negotiate, exchange a self-destructing message, end."""
    with client.websocket_connect("/ws") as alice, client.websocket_connect("/ws") as bob:
        hello(alice, "alice")
        hello(bob, "bob")
        session_id = start_session(alice, bob)

        alice.send_json(
            {
                "type": "message",
                "sessionId": session_id,
                "fromId": "alice",
                "text": "hi",
                "selfDestruct": 50,
                "id": "local-1",
            }
        )
        sent = alice.receive_json()
        received = bob.receive_json()
        assert sent == received
        assert received["type"] == "message"
        assert received["from"] == "alice"
        assert received["fromName"] == "Alice"
        assert received["text"] == "hi"
        assert received["selfDestruct"] == 50
        assert received["clientId"] == "local-1"
        assert received["id"] != "local-1"

        expected = {"type": "delete-message", "sessionId": session_id, "id": received["id"]}
        assert alice.receive_json() == expected
        assert bob.receive_json() == expected

        bob.send_json({"type": "end-session", "sessionId": session_id})
        ended = {"type": "session-ended", "sessionId": session_id, "reason": "ended"}
        assert alice.receive_json() == ended
        assert bob.receive_json() == ended

        # The session is gone; further messages go nowhere.
        alice.send_json(
            {"type": "message", "sessionId": session_id, "fromId": "alice", "text": "?"}
        )
        sync(alice)
        sync(bob)


def test_selfdestruct_is_clamped(client, monkeypatch):
    monkeypatch.setattr(server.scheduler, "max_delay_ms", 20)
    with client.websocket_connect("/ws") as alice, client.websocket_connect("/ws") as bob:
        hello(alice, "alice")
        hello(bob, "bob")
        session_id = start_session(alice, bob)

        alice.send_json(
            {
                "type": "message",
                "sessionId": session_id,
                "fromId": "alice",
                "text": "burn",
                "selfDestruct": 999_999,
            }
        )
        assert alice.receive_json()["selfDestruct"] == 20
        assert bob.receive_json()["selfDestruct"] == 20
        assert bob.receive_json()["type"] == "delete-message"


def test_request_failures(client):
    with client.websocket_connect("/ws") as alice:
        hello(alice, "alice")

        for to_id, reason in (
            ("ghost", "User not online"),
            ("alice", "Cannot chat with yourself"),
            ("bad id!", "Invalid user id"),
        ):
            alice.send_json({"type": "request-chat", "fromId": "alice", "toId": to_id})
            assert alice.receive_json() == {
                "type": "request-failed",
                "toId": to_id,
                "reason": reason,
            }


def test_rejected_request(client):
    with client.websocket_connect("/ws") as alice, client.websocket_connect("/ws") as bob:
        hello(alice, "alice")
        hello(bob, "bob")

        bob.send_json({"type": "response-chat", "fromId": "bob", "toId": "alice", "accept": False})

        assert alice.receive_json() == {
            "type": "request-rejected",
            "fromId": "bob",
            "fromName": "Bob",
        }
        assert server.manager.sessions.session_count == 0


def test_edit_delete_and_typing(client):
    with client.websocket_connect("/ws") as alice, client.websocket_connect("/ws") as bob:
        hello(alice, "alice")
        hello(bob, "bob")
        session_id = start_session(alice, bob)

        alice.send_json(
            {
                "type": "edit-message",
                "sessionId": session_id,
                "messageId": "m1",
                "newText": "fixed",
            }
        )
        edit = {
            "type": "edit-message",
            "sessionId": session_id,
            "id": "m1",
            "fromId": "alice",
            "newText": "fixed",
        }
        assert alice.receive_json() == edit
        assert bob.receive_json() == edit

        bob.send_json({"type": "delete-message", "sessionId": session_id, "id": "m1"})
        delete = {"type": "delete-message", "sessionId": session_id, "id": "m1"}
        assert alice.receive_json() == delete
        assert bob.receive_json() == delete

        alice.send_json(
            {"type": "typing", "sessionId": session_id, "fromId": "alice", "isTyping": True}
        )
        assert bob.receive_json() == {
            "type": "typing",
            "sessionId": session_id,
            "fromId": "alice",
            "isTyping": True,
        }
        sync(alice)


def test_outsider_cannot_touch_session(client):
    with client.websocket_connect("/ws") as alice, client.websocket_connect(
        "/ws"
    ) as bob, client.websocket_connect("/ws") as carol:
        hello(alice, "alice")
        hello(bob, "bob")
        hello(carol, "carol")
        session_id = start_session(alice, bob)

        carol.send_json(
            {"type": "message", "sessionId": session_id, "fromId": "carol", "text": "hey"}
        )
        carol.send_json({"type": "end-session", "sessionId": session_id})
        sync(carol)

        sync(alice)
        sync(bob)
        assert server.manager.sessions.get_session(session_id) is not None


def test_spoofed_from_id_is_dropped(client):
    with client.websocket_connect("/ws") as alice, client.websocket_connect("/ws") as bob:
        hello(alice, "alice")
        hello(bob, "bob")

        alice.send_json({"type": "request-chat", "fromId": "mallory", "toId": "bob"})
        sync(alice)
        sync(bob)


def test_peer_disconnect_ends_session(client):
    with client.websocket_connect("/ws") as alice, client.websocket_connect("/ws") as bob:
        hello(alice, "alice")
        hello(bob, "bob")
        session_id = start_session(alice, bob)

        alice.close()

        assert bob.receive_json() == {
            "type": "session-ended",
            "sessionId": session_id,
            "reason": "peer-disconnected",
        }
        assert not server.manager.is_online("alice")


def test_stale_close_keeps_reconnected_identity(client):
    with client.websocket_connect("/ws") as bob:
        hello(bob, "bob")
        with client.websocket_connect("/ws") as fresh:
            with client.websocket_connect("/ws") as stale:
                hello(stale, "alice")
                hello(fresh, "alice")
            # The stale socket is fully torn down here.

            assert server.manager.is_online("alice")
            bob.send_json({"type": "request-chat", "fromId": "bob", "toId": "alice"})
            assert fresh.receive_json()["type"] == "incoming-request"
            assert bob.receive_json() == {"type": "request-sent", "toId": "alice"}


def test_superseded_socket_cannot_act_for_identity(client):
    with client.websocket_connect("/ws") as bob, client.websocket_connect(
        "/ws"
    ) as stale, client.websocket_connect("/ws") as fresh:
        hello(bob, "bob")
        hello(stale, "alice")
        hello(fresh, "alice")

        stale.send_json({"type": "request-chat", "fromId": "alice", "toId": "bob"})
        stale.send_json({"type": "create-group", "fromId": "alice"})
        sync(stale)
        sync(bob)
        assert server.manager.sessions.group_count == 0

        fresh.send_json({"type": "request-chat", "fromId": "alice", "toId": "bob"})
        assert bob.receive_json()["type"] == "incoming-request"


def test_binary_frames_do_not_end_the_session(client):
    with client.websocket_connect("/ws") as alice, client.websocket_connect("/ws") as bob:
        hello(alice, "alice")
        hello(bob, "bob")
        session_id = start_session(alice, bob)

        # JSON in a binary frame is handled like a text frame.
        alice.send_bytes(b'{"type": "heartbeat"}')
        assert alice.receive_json()["type"] == "heartbeat-ack"

        alice.send_bytes(b"\xff\xfe\x00not utf-8")
        sync(alice)
        sync(bob)

        assert server.manager.is_online("alice")
        assert server.manager.sessions.get_session(session_id) is not None


def test_signal_and_key_exchange_passthrough(client):
    with client.websocket_connect("/ws") as alice, client.websocket_connect("/ws") as bob:
        hello(alice, "alice")
        hello(bob, "bob")

        offer = {"sdp": "v=0...", "kind": "offer"}
        alice.send_json({"type": "signal", "toId": "bob", "signalData": offer})
        assert bob.receive_json() == {"type": "signal", "fromId": "alice", "signalData": offer}

        bob.send_json({"type": "key-exchange", "toId": "alice", "keyData": "BASE64KEY"})
        assert alice.receive_json() == {
            "type": "key-exchange",
            "fromId": "bob",
            "keyData": "BASE64KEY",
        }

        alice.send_json({"type": "signal", "toId": "ghost", "signalData": offer})
        sync(alice)


def test_pre_hello_frames_are_ignored(client):
    with client.websocket_connect("/ws") as websocket:
        websocket.send_json({"type": "request-chat", "fromId": "x", "toId": "y"})
        websocket.send_json({"type": "turn-request"})
        sync(websocket)
        hello(websocket, "alice")


def test_malformed_frames_are_dropped(client):
    with client.websocket_connect("/ws") as websocket:
        websocket.send_text("not a json")
        websocket.send_text(json.dumps(["type", "hello"]))
        websocket.send_json({"type": 7})
        websocket.send_json({"type": "no-such-type"})
        websocket.send_json({"type": "hello", "userId": "has spaces"})
        websocket.send_json({"type": "hello", "userId": "alice\n"})
        sync(websocket)
        assert len(server.manager.registry) == 0


def test_oversized_frame_is_dropped(client, monkeypatch):
    monkeypatch.setattr(server.settings, "max_payload_bytes", 1024)
    with client.websocket_connect("/ws") as websocket:
        hello(websocket, "alice")
        # Would earn a request-failed reply if it were processed.
        websocket.send_json(
            {"type": "request-chat", "fromId": "alice", "toId": "ghost", "padding": "x" * 2048}
        )
        sync(websocket)


def test_rate_limit_terminates_connection(client):
    with client.websocket_connect("/ws") as websocket:
        for _ in range(41):
            websocket.send_json({"type": "pong"})

        with pytest.raises(WebSocketDisconnect) as exc_info:
            websocket.receive_json()
        assert exc_info.value.code == 1008


def test_rate_limit_admits_up_to_the_cap(client):
    with client.websocket_connect("/ws") as websocket:
        for _ in range(39):
            websocket.send_json({"type": "pong"})
        # Frame 40 is still admitted.
        sync(websocket)


def test_rejected_origin(client, monkeypatch):
    monkeypatch.setattr(server.settings, "allowed_origins", ["https://chat.example"])

    with pytest.raises(WebSocketDisconnect) as exc_info:
        with client.websocket_connect("/ws", headers={"origin": "https://evil.example"}):
            pass
    assert exc_info.value.code == 1008

    with client.websocket_connect("/ws", headers={"origin": "https://chat.example"}) as ws:
        hello(ws, "alice")


def test_open_group_flow(client):
    with client.websocket_connect("/ws") as alice, client.websocket_connect("/ws") as bob:
        hello(alice, "alice")
        hello(bob, "bob")

        alice.send_json({"type": "create-group", "fromId": "alice", "groupName": " Team "})
        created = alice.receive_json()
        assert created["type"] == "group-created"
        assert created["groupName"] == "Team"
        group_id = created["groupId"]

        bob.send_json({"type": "join-group", "fromId": "bob", "groupId": group_id})
        assert bob.receive_json() == {
            "type": "group-joined",
            "groupId": group_id,
            "groupName": "Team",
            "ownerId": "alice",
            "members": ["alice", "bob"],
        }
        assert alice.receive_json() == {
            "type": "group-user-joined",
            "groupId": group_id,
            "userId": "bob",
            "userName": "Bob",
            "memberCount": 2,
        }

        bob.send_json(
            {"type": "group-message", "fromId": "bob", "groupId": group_id, "text": "yo"}
        )
        message = alice.receive_json()
        assert message["type"] == "group-message"
        assert message["from"] == "bob"
        assert message["text"] == "yo"
        sync(bob)

        alice.send_json({"type": "leave-group", "fromId": "alice", "groupId": group_id})
        left = {
            "type": "group-user-left",
            "groupId": group_id,
            "userId": "alice",
            "ownerId": "bob",
            "memberCount": 1,
        }
        assert alice.receive_json() == left
        assert bob.receive_json() == left

        alice.send_json(
            {"type": "group-message", "fromId": "alice", "groupId": group_id, "text": "?"}
        )
        sync(alice)
        sync(bob)


def test_join_unknown_group(client):
    with client.websocket_connect("/ws") as alice:
        hello(alice, "alice")
        alice.send_json({"type": "join-group", "fromId": "alice", "groupId": "G-NONE00"})
        assert alice.receive_json() == {
            "type": "group-failed",
            "groupId": "G-NONE00",
            "reason": "Group not found",
        }


def test_approval_group_flow(client, monkeypatch):
    monkeypatch.setattr(server.settings, "group_join_policy", GroupJoinPolicy.APPROVAL)
    with client.websocket_connect("/ws") as alice, client.websocket_connect(
        "/ws"
    ) as bob, client.websocket_connect("/ws") as carol:
        hello(alice, "alice")
        hello(bob, "bob")
        hello(carol, "carol")

        alice.send_json({"type": "create-group", "fromId": "alice"})
        group_id = alice.receive_json()["groupId"]

        bob.send_json({"type": "join-group", "fromId": "bob", "groupId": group_id})
        assert alice.receive_json() == {
            "type": "group-join-request",
            "groupId": group_id,
            "userId": "bob",
            "userName": "Bob",
        }
        assert bob.receive_json() == {"type": "group-join-pending", "groupId": group_id}

        # Only the owner may decide.
        carol.send_json(
            {"type": "approve-join", "fromId": "carol", "groupId": group_id, "userId": "bob"}
        )
        assert carol.receive_json()["type"] == "group-failed"

        alice.send_json(
            {"type": "approve-join", "fromId": "alice", "groupId": group_id, "userId": "bob"}
        )
        assert bob.receive_json()["members"] == ["alice", "bob"]
        assert alice.receive_json()["type"] == "group-user-joined"

        carol.send_json({"type": "join-group", "fromId": "carol", "groupId": group_id})
        assert alice.receive_json()["type"] == "group-join-request"
        assert carol.receive_json()["type"] == "group-join-pending"

        alice.send_json(
            {"type": "reject-join", "fromId": "alice", "groupId": group_id, "userId": "carol"}
        )
        assert carol.receive_json() == {"type": "group-join-rejected", "groupId": group_id}
        assert not server.manager.sessions.get_group(group_id).is_member("carol")


def test_turn_credentials(client, monkeypatch):
    with client.websocket_connect("/ws") as alice:
        hello(alice, "alice")

        alice.send_json({"type": "turn-request"})
        failed = alice.receive_json()
        assert failed["type"] == "turn-failed"

        monkeypatch.setattr(server.settings, "turn_secret", "s3cret")
        monkeypatch.setattr(server.settings, "turn_urls", ["turn:turn.example:3478"])
        alice.send_json({"type": "turn-request"})
        credentials = alice.receive_json()
        assert credentials["type"] == "turn-credentials"
        assert credentials["username"].endswith(":alice")
        assert credentials["urls"] == ["turn:turn.example:3478"]
        assert credentials["credential"]


def test_heartbeat_and_pong_mark_alive(client):
    with client.websocket_connect("/ws") as websocket:
        hello(websocket, "alice")
        connection = server.manager.registry.lookup("alice").connection

        connection.is_alive = False
        websocket.send_json({"type": "pong"})
        sync(websocket)
        assert connection.is_alive
