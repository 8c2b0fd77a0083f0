"""TURN credential endpoint."""

from fastapi import APIRouter, HTTPException, Query, status

from shadowchat.utils.turn import (
    TurnCredentials,
    TurnNotConfiguredError,
    issue_turn_credentials,
)
from shadowchat.ws.endpoints.relay import server
from shadowchat.ws.endpoints.relay.utils import is_valid_identifier

router = APIRouter()


@router.get("/turn", response_model=TurnCredentials)
async def get_turn_credentials(user_id: str = Query(..., alias="userId")):
    """Issue a time-limited TURN credential for ``userId``."""
    if not is_valid_identifier(user_id):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid userId"
        )

    settings = server.settings
    try:
        return issue_turn_credentials(
            user_id, settings.turn_secret, settings.turn_urls, settings.turn_ttl_seconds
        )
    except TurnNotConfiguredError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))
