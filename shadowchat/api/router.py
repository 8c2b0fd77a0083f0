"""Router configuration for HTTP collaborator endpoints."""

from fastapi import APIRouter

from shadowchat.api.endpoints import metrics, turn

api_router = APIRouter()

# Include specific endpoint routers
api_router.include_router(metrics.router, tags=["Metrics"])
api_router.include_router(turn.router, prefix="/api", tags=["TURN"])
