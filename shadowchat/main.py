"""Main application module for the ShadowChat relay."""

from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from shadowchat import __version__
from shadowchat.api.router import api_router
from shadowchat.utils.log import configure, get_logger, print_dict, print_header
from shadowchat.ws.endpoints.relay import server
from shadowchat.ws.router import ws_router

settings = server.settings
configure(
    level=settings.log_level,
    log_file=settings.log_file,
    enable_file=bool(settings.log_file),
)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Run the relay's timers for the lifetime of the process."""
    await server.start()
    try:
        yield
    finally:
        await server.stop()


app = FastAPI(
    title="ShadowChat Relay",
    description="Ephemeral presence, session and message relay over WebSocket",
    version=__version__,
    lifespan=lifespan,
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins,
    allow_credentials=False,
    allow_methods=["GET"],
    allow_headers=["*"],
)

# Include routers
app.include_router(api_router)
app.include_router(ws_router)


@app.get("/", tags=["Health"], response_class=PlainTextResponse)
async def health_check():
    """Health check endpoint."""
    return "ShadowChat Relay Online"


def start():
    """Start the application server."""
    print_header("ShadowChat Relay", f"v{__version__}")
    print_dict(settings.masked(), title="Settings")
    logger.system(f"Listening on {settings.host}:{settings.port}")
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        ws_max_size=settings.transport_max_bytes,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    start()
