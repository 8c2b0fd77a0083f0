"""Command parsing and rendering for the terminal client.

Kept free of I/O so the mapping from typed lines to envelopes can be tested.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

HELP_TEXT = """Commands:
  /chat <id>              ask <id> for a private session
  /accept <id>            accept a request from <id>
  /reject <id>            reject a request from <id>
  /end                    end the active session
  /burn <ms> <text>       send a self-destructing message
  /typing                 tell the peer you are typing
  /group create [name]    create a group
  /group join <groupId>   join (or ask to join) a group
  /group leave            leave the active group
  /group say <text>       message the active group
  /group approve <id>     approve a pending join (owner)
  /turn                   request TURN credentials
  /help                   show this help
  /quit                   exit
Plain text is sent to the active session."""


class CommandError(ValueError):
    """Raised for a line that cannot be turned into an envelope."""

    pass


class ClientState(BaseModel):
    """What the client knows about its own conversations."""

    user_id: str
    name: Optional[str] = None
    session_id: Optional[str] = None
    peer_id: Optional[str] = None
    peer_name: Optional[str] = None
    group_id: Optional[str] = None
    incoming: List[str] = Field(default_factory=list)


def hello(state: ClientState) -> Dict[str, Any]:
    envelope = {"type": "hello", "userId": state.user_id}
    if state.name:
        envelope["name"] = state.name
    return envelope


def _require_session(state: ClientState) -> str:
    if not state.session_id:
        raise CommandError("No active session")
    return state.session_id


def _require_group(state: ClientState) -> str:
    if not state.group_id:
        raise CommandError("No active group")
    return state.group_id


def _message(state: ClientState, text: str, self_destruct: Optional[int] = None):
    envelope = {
        "type": "message",
        "sessionId": _require_session(state),
        "fromId": state.user_id,
        "text": text,
    }
    if self_destruct is not None:
        envelope["selfDestruct"] = self_destruct
    return envelope


def _group_command(state: ClientState, args: List[str]) -> Dict[str, Any]:
    if not args:
        raise CommandError("Usage: /group create|join|leave|say|approve ...")
    action, rest = args[0].lower(), args[1:]

    if action == "create":
        envelope = {"type": "create-group", "fromId": state.user_id}
        if rest:
            envelope["groupName"] = " ".join(rest)
        return envelope
    if action == "join":
        if not rest:
            raise CommandError("Usage: /group join <groupId>")
        return {"type": "join-group", "fromId": state.user_id, "groupId": rest[0]}
    if action == "leave":
        return {
            "type": "leave-group",
            "fromId": state.user_id,
            "groupId": _require_group(state),
        }
    if action == "say":
        if not rest:
            raise CommandError("Usage: /group say <text>")
        return {
            "type": "group-message",
            "fromId": state.user_id,
            "groupId": _require_group(state),
            "text": " ".join(rest),
        }
    if action in ("approve", "reject"):
        if not rest:
            raise CommandError(f"Usage: /group {action} <userId>")
        return {
            "type": f"{action}-join",
            "fromId": state.user_id,
            "groupId": _require_group(state),
            "userId": rest[0],
        }
    raise CommandError(f"Unknown group action: {action}")


def parse_command(line: str, state: ClientState) -> Optional[Dict[str, Any]]:
    """Translate a typed line into an envelope.

    Returns ``None`` for blank lines. Raises ``CommandError`` for bad input.
    """
    line = line.strip()
    if not line:
        return None
    if not line.startswith("/"):
        return _message(state, line)

    parts = line[1:].split()
    if not parts:
        raise CommandError("Empty command")
    cmd, args = parts[0].lower(), parts[1:]

    if cmd == "chat":
        if len(args) != 1:
            raise CommandError("Usage: /chat <id>")
        return {"type": "request-chat", "fromId": state.user_id, "toId": args[0]}

    if cmd in ("accept", "reject"):
        if len(args) != 1:
            raise CommandError(f"Usage: /{cmd} <id>")
        return {
            "type": "response-chat",
            "fromId": state.user_id,
            "toId": args[0],
            "accept": cmd == "accept",
        }

    if cmd == "end":
        return {"type": "end-session", "sessionId": _require_session(state)}

    if cmd == "burn":
        if len(args) < 2 or not args[0].isdigit():
            raise CommandError("Usage: /burn <ms> <text>")
        return _message(state, " ".join(args[1:]), self_destruct=int(args[0]))

    if cmd == "typing":
        return {
            "type": "typing",
            "sessionId": _require_session(state),
            "fromId": state.user_id,
            "isTyping": True,
        }

    if cmd == "group":
        return _group_command(state, args)

    if cmd == "turn":
        return {"type": "turn-request"}

    raise CommandError(f"Unknown command: /{cmd}")


def apply_envelope(envelope: Dict[str, Any], state: ClientState) -> Optional[str]:
    """Update ``state`` from an inbound envelope and return a line to print.

    ``ping`` returns ``None``; the caller answers it with ``pong``.
    """
    msg_type = envelope.get("type")

    if msg_type == "hello-ack":
        return f"* registered as {envelope.get('userId', state.user_id)}"
    if msg_type == "incoming-request":
        from_id = envelope.get("fromId")
        if from_id and from_id not in state.incoming:
            state.incoming.append(from_id)
        return f"* {envelope.get('fromName')} ({from_id}) wants to chat: /accept {from_id}"
    if msg_type == "request-sent":
        return f"* request sent to {envelope.get('toId')}"
    if msg_type == "request-failed":
        return f"! request to {envelope.get('toId')} failed: {envelope.get('reason')}"
    if msg_type == "request-rejected":
        return f"! {envelope.get('fromName')} declined"
    if msg_type == "chat-start":
        state.session_id = envelope.get("sessionId")
        state.peer_id = envelope.get("peerId")
        state.peer_name = envelope.get("peerName")
        if state.peer_id in state.incoming:
            state.incoming.remove(state.peer_id)
        return f"* chatting with {state.peer_name} ({state.peer_id})"
    if msg_type == "session-ended":
        if envelope.get("sessionId") == state.session_id:
            state.session_id = state.peer_id = state.peer_name = None
        return f"* session ended ({envelope.get('reason', 'ended')})"
    if msg_type == "message":
        burn = f" [burns in {envelope['selfDestruct']} ms]" if envelope.get("selfDestruct") else ""
        return f"<{envelope.get('fromName')}> {envelope.get('text')}{burn}"
    if msg_type == "edit-message":
        return f"* {envelope.get('fromId')} edited {envelope.get('id')}: {envelope.get('newText')}"
    if msg_type == "delete-message":
        return f"* message {envelope.get('id')} deleted"
    if msg_type == "typing":
        return f"* {envelope.get('fromId')} is typing..." if envelope.get("isTyping") else None
    if msg_type in ("group-created", "group-joined"):
        state.group_id = envelope.get("groupId")
        return f"* in group {envelope.get('groupName')} ({state.group_id})"
    if msg_type == "group-user-joined":
        return f"* {envelope.get('userName')} joined {envelope.get('groupId')}"
    if msg_type == "group-user-left":
        if envelope.get("userId") == state.user_id and envelope.get("groupId") == state.group_id:
            state.group_id = None
        return f"* {envelope.get('userId')} left {envelope.get('groupId')}"
    if msg_type == "group-join-request":
        return f"* {envelope.get('userName')} asks to join: /group approve {envelope.get('userId')}"
    if msg_type == "group-join-pending":
        return f"* waiting for the owner of {envelope.get('groupId')}"
    if msg_type == "group-join-rejected":
        return f"! join to {envelope.get('groupId')} rejected"
    if msg_type == "group-message":
        return f"[{envelope.get('groupId')}] <{envelope.get('fromName')}> {envelope.get('text')}"
    if msg_type == "group-failed":
        return f"! group {envelope.get('groupId')}: {envelope.get('reason')}"
    if msg_type == "turn-credentials":
        return f"* TURN {', '.join(envelope.get('urls', []))} as {envelope.get('username')}"
    if msg_type == "turn-failed":
        return f"! TURN unavailable: {envelope.get('reason')}"
    if msg_type in ("ping", "heartbeat-ack", "signal", "key-exchange"):
        return None
    return f"? {envelope}"
