"""Reference terminal client."""

from .commands import ClientState, CommandError, apply_envelope, hello, parse_command

__all__ = ["ClientState", "CommandError", "apply_envelope", "hello", "parse_command"]
