"""ShadowChat: an ephemeral presence, session and message relay."""

__version__ = "0.1.0"
