"""Presence, session and relay engine."""

from .relay import RelayWebSocketServer, create_server, router, server

__all__ = ["RelayWebSocketServer", "create_server", "router", "server"]
