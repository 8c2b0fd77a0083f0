"""Router configuration for WebSocket endpoints."""

from fastapi import APIRouter

from shadowchat.ws.endpoints import relay

ws_router = APIRouter()

# Include WebSocket endpoints
ws_router.include_router(relay.router)
