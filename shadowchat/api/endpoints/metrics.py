"""Relay counters for external scraping."""

from fastapi import APIRouter

from shadowchat.ws.endpoints.relay import server
from shadowchat.ws.endpoints.relay.models import RelayMetrics

router = APIRouter()


@router.get("/metrics", response_model=RelayMetrics)
async def get_metrics():
    """Current connection, session and timer counters."""
    return server.get_metrics()
