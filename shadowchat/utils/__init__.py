"""Utility functions package."""

from .log import get_logger
from .turn import TurnCredentials, TurnNotConfiguredError, issue_turn_credentials
from .ws_auth import admit_websocket, origin_allowed

__all__ = [
    "get_logger",
    "TurnCredentials",
    "TurnNotConfiguredError",
    "issue_turn_credentials",
    "admit_websocket",
    "origin_allowed",
]
