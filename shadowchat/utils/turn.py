"""Time-limited TURN credentials (TURN REST API scheme)."""

import base64
import hashlib
import hmac
import time
from typing import List, Optional

from pydantic import BaseModel


class TurnCredentials(BaseModel):
    username: str
    credential: str
    urls: List[str]
    ttl: int


class TurnNotConfiguredError(Exception):
    """Raised when no shared secret is configured."""

    pass


def issue_turn_credentials(
    user_id: str,
    secret: Optional[str],
    urls: List[str],
    ttl_seconds: int,
    now: Optional[float] = None,
) -> TurnCredentials:
    """Derive ``(username, credential)`` for ``user_id`` valid for ``ttl_seconds``.

    The TURN server recomputes the HMAC from the shared secret, so nothing is
    stored on either side.
    """
    if not secret:
        raise TurnNotConfiguredError("TURN secret is not configured")

    expiry = int(now if now is not None else time.time()) + ttl_seconds
    username = f"{expiry}:{user_id}"
    digest = hmac.new(
        secret.encode("utf-8"), username.encode("utf-8"), hashlib.sha1
    ).digest()
    return TurnCredentials(
        username=username,
        credential=base64.b64encode(digest).decode("ascii"),
        urls=list(urls),
        ttl=ttl_seconds,
    )
