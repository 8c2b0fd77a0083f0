"""WebSocket endpoint and dispatch loop for the relay."""

import asyncio
import json
import traceback
from typing import Dict, List, Optional

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

from .handlers import (
    BaseMessageHandler,
    ChatMessageHandler,
    CreateGroupHandler,
    DeleteMessageHandler,
    EditMessageHandler,
    EndSessionHandler,
    GroupDecisionHandler,
    GroupMessageHandler,
    HeartbeatHandler,
    HelloHandler,
    JoinGroupHandler,
    KeyExchangeHandler,
    LeaveGroupHandler,
    RequestChatHandler,
    ResponseChatHandler,
    SignalHandler,
    TurnHandler,
    TypingHandler,
)
from .manager import ConnectionManager, LivenessMonitor, SelfDestructScheduler
from .models import Connection, MessageType, RelayMetrics
from .utils import (
    NotRegisteredError,
    RateLimitExceededError,
    RelayError,
    ValidationError,
)
from shadowchat.config import Settings, load_settings
from shadowchat.utils.log import get_logger
from shadowchat.utils.ws_auth import admit_websocket


class RelayWebSocketServer:
    """Presence, session and relay engine behind one WebSocket endpoint.

    Frames from one connection are handled strictly in order; the liveness
    monitor, the session expiry sweep and self-destruct timers run as separate
    tasks on the same loop.
    """

    def __init__(self, settings: Settings):
        self.settings = settings
        self.manager = ConnectionManager(settings)
        self.scheduler = SelfDestructScheduler(
            self.manager, max_delay_ms=settings.self_destruct_max_ms
        )
        self.liveness = LivenessMonitor(
            self.manager, interval_ms=settings.heartbeat_interval_ms
        )
        self.logger = get_logger(__name__)
        self.router = APIRouter()
        self._tasks: List[asyncio.Task] = []

        heartbeat = HeartbeatHandler(self.manager)
        self.handlers: Dict[str, BaseMessageHandler] = {
            MessageType.HELLO.value: HelloHandler(self.manager),
            MessageType.REQUEST_CHAT.value: RequestChatHandler(self.manager),
            MessageType.RESPONSE_CHAT.value: ResponseChatHandler(self.manager),
            MessageType.END_SESSION.value: EndSessionHandler(self.manager),
            MessageType.MESSAGE.value: ChatMessageHandler(self.manager, self.scheduler),
            MessageType.EDIT_MESSAGE.value: EditMessageHandler(self.manager),
            MessageType.DELETE_MESSAGE.value: DeleteMessageHandler(self.manager),
            MessageType.TYPING.value: TypingHandler(self.manager),
            MessageType.SIGNAL.value: SignalHandler(self.manager),
            MessageType.KEY_EXCHANGE.value: KeyExchangeHandler(self.manager),
            MessageType.CREATE_GROUP.value: CreateGroupHandler(self.manager),
            MessageType.JOIN_GROUP.value: JoinGroupHandler(self.manager),
            MessageType.APPROVE_JOIN.value: GroupDecisionHandler(self.manager, approve=True),
            MessageType.REJECT_JOIN.value: GroupDecisionHandler(self.manager, approve=False),
            MessageType.LEAVE_GROUP.value: LeaveGroupHandler(self.manager),
            MessageType.GROUP_MESSAGE.value: GroupMessageHandler(self.manager),
            MessageType.PONG.value: heartbeat,
            MessageType.HEARTBEAT.value: heartbeat,
            MessageType.TURN_REQUEST.value: TurnHandler(self.manager),
        }

        self._setup_routes()

    def _setup_routes(self) -> None:
        """Setup WebSocket routes."""

        @self.router.websocket("/ws")
        async def relay_websocket(websocket: WebSocket):
            """Relay endpoint."""
            await self._handle_websocket_connection(websocket)

        @self.router.websocket("/")
        async def root_websocket(websocket: WebSocket):
            """Relay endpoint for clients that connect to the bare host."""
            await self._handle_websocket_connection(websocket)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        """Start the liveness monitor and the session expiry sweep."""
        self._tasks = [
            asyncio.create_task(self.liveness.run()),
            asyncio.create_task(self._session_sweep_loop()),
        ]
        self.logger.system("Relay background tasks started")

    async def stop(self) -> None:
        """Cancel background tasks and timers, then drop all state."""
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        await self.scheduler.shutdown()
        for connection in list(self.manager.connections.values()):
            await connection.terminate(code=status.WS_1001_GOING_AWAY)
        self.manager.reset()
        self.logger.system("Relay stopped")

    async def _session_sweep_loop(self) -> None:
        interval = self.settings.session_sweep_interval_ms / 1000
        while True:
            await asyncio.sleep(interval)
            try:
                await self.manager.expire_sessions()
            except Exception:
                self.logger.exception("Session sweep failed")

    def get_metrics(self) -> RelayMetrics:
        return self.manager.get_metrics(
            pending_self_destructs=self.scheduler.pending_count
        )

    # ------------------------------------------------------------------
    # Connection handling
    # ------------------------------------------------------------------

    async def _handle_websocket_connection(self, websocket: WebSocket) -> None:
        """Handle individual WebSocket connection lifecycle."""
        if not await admit_websocket(websocket, self.settings.allowed_origins):
            self.logger.warning(
                f"Rejected socket from origin {websocket.headers.get('origin')!r}"
            )
            return

        connection = await self.manager.connect(websocket)
        try:
            await self._message_processing_loop(connection)
        except WebSocketDisconnect:
            self.logger.info(f"WebSocket disconnected: {connection!r}")
        except Exception as e:
            self.logger.error(f"Unexpected error in WebSocket handler: {e}")
        finally:
            # Always ensure cleanup
            await self.manager.disconnect(connection)

    async def _message_processing_loop(self, connection: Connection) -> None:
        """Main message processing loop."""

        while True:
            data = await connection.receive()
            if data is None:
                return

            try:
                if not self.manager.admit(connection):
                    raise RateLimitExceededError(
                        f"Rate limit exceeded by {connection.rate_key}"
                    )
                message = self._check_message_format(data)
                await self._process_message(connection, message)
            except RateLimitExceededError as e:
                self.logger.failure(f"{e.message}, terminating")
                await connection.terminate(code=status.WS_1008_POLICY_VIOLATION)
                return
            except (ValidationError, NotRegisteredError) as e:
                self.logger.debug(f"Dropped frame from {connection!r}: {e.message}")
            except RelayError as e:
                self.logger.debug(f"Ignored envelope from {connection!r}: {e.message}")
            except Exception as e:
                error_details = {
                    "error": str(e),
                    "traceback": traceback.format_exc(),
                    "connection": repr(connection),
                }
                self.logger.error(
                    f"Unexpected error in message processing loop: {error_details}"
                )

    def _check_message_format(self, data: str) -> Dict:
        """Parse an inbound frame into a dict with a string ``type``."""
        if len(data.encode("utf-8")) > self.settings.max_payload_bytes:
            raise ValidationError("Oversized frame")

        try:
            message = json.loads(data)
        except json.JSONDecodeError:
            raise ValidationError("Invalid JSON format")

        if not isinstance(message, dict) or not isinstance(message.get("type"), str):
            raise ValidationError("Envelope must be an object with a 'type'")
        return message

    async def _process_message(self, connection: Connection, message: Dict) -> None:
        """Validate the envelope and hand it to its handler.

        Unknown types are ignored without a reply.
        """
        msg_type = message["type"]
        handler = self.handlers.get(msg_type)
        if handler is None:
            self.logger.debug(f"Unknown message type: {msg_type!r}")
            return

        if handler.requires_registration and not self.manager.owns_identity(connection):
            raise NotRegisteredError(f"'{msg_type}' without a bound identity")

        envelope = handler.parse(message)
        await handler.handle(connection, envelope)


def create_server(settings: Optional[Settings] = None) -> RelayWebSocketServer:
    return RelayWebSocketServer(settings or load_settings())


# Create server instance and export router
server = create_server()
router = server.router
