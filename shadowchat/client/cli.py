"""Interactive terminal client for the relay."""

import argparse
import asyncio
import json
from typing import Any, Dict

import websockets
from prompt_toolkit import PromptSession
from prompt_toolkit.patch_stdout import patch_stdout

from .commands import (
    HELP_TEXT,
    ClientState,
    CommandError,
    apply_envelope,
    hello,
    parse_command,
)


class ShadowChatClient:
    """WebSocket client driven by typed commands."""

    def __init__(self, server_url: str, state: ClientState):
        self.server_url = server_url
        self.state = state
        self.websocket = None
        self.connected = False
        self.prompt_session = PromptSession()

    async def connect(self) -> bool:
        """Connect and register."""
        try:
            self.websocket = await websockets.connect(self.server_url)
        except Exception as e:
            print(f"Connection error: {e}")
            return False

        self.connected = True
        print(f"Connected to {self.server_url}")
        await self.send(hello(self.state))
        asyncio.create_task(self._message_loop())
        return True

    async def send(self, envelope: Dict[str, Any]) -> bool:
        if not self.connected or not self.websocket:
            print("Cannot send message: not connected")
            return False
        try:
            await self.websocket.send(json.dumps(envelope))
            return True
        except Exception as e:
            print(f"Error sending message: {e}")
            return False

    async def disconnect(self):
        if self.websocket:
            await self.websocket.close()
        self.connected = False

    async def _message_loop(self):
        """Print inbound envelopes and answer liveness probes."""
        try:
            async for raw in self.websocket:
                try:
                    envelope = json.loads(raw)
                except json.JSONDecodeError:
                    print(f"Invalid JSON received: {raw[:100]}")
                    continue

                if envelope.get("type") == "ping":
                    await self.send({"type": "pong"})
                    continue

                line = apply_envelope(envelope, self.state)
                if line:
                    print(line)
        except websockets.exceptions.ConnectionClosed as e:
            print(f"Connection closed ({e.code})")
        finally:
            self.connected = False

    async def start_interactive_mode(self):
        """Read commands until /quit or the connection drops."""
        print(HELP_TEXT)
        while self.connected:
            try:
                with patch_stdout():
                    line = await self.prompt_session.prompt_async(
                        f"[{self.state.user_id}] > "
                    )
            except (EOFError, KeyboardInterrupt):
                break

            command = line.strip().lower()
            if command in ("/quit", "/exit"):
                break
            if command == "/help":
                print(HELP_TEXT)
                continue

            try:
                envelope = parse_command(line, self.state)
            except CommandError as e:
                print(f"! {e}")
                continue
            if envelope:
                await self.send(envelope)

        await self.disconnect()


async def _run(args: argparse.Namespace) -> None:
    client = ShadowChatClient(
        args.url, ClientState(user_id=args.user_id, name=args.name)
    )
    if await client.connect():
        await client.start_interactive_mode()


def main():
    parser = argparse.ArgumentParser(description="ShadowChat terminal client")
    parser.add_argument("user_id", help="Identifier to register under")
    parser.add_argument("--name", default=None, help="Display name")
    parser.add_argument(
        "--url", default="ws://localhost:10000/ws", help="Relay WebSocket URL"
    )
    asyncio.run(_run(parser.parse_args()))


if __name__ == "__main__":
    main()
