"""FastAPI application factory.

Learn: App factory pattern — create_app() returns a configured FastAPI
instance with its own ChatRelay on app.state. Lifespan logs startup and
asks every live socket to close on shutdown.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from relaychat import __version__
from relaychat.api import api_router
from relaychat.config import Settings, settings as default_settings
from relaychat.realtime.contacts import ContactDirectory
from relaychat.realtime.relay import ChatRelay

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle.

    Learn: Anything before `yield` runs at startup, after `yield` runs at
    shutdown.
    """
    cfg: Settings = app.state.settings
    logger.info(
        "relaychat.starting",
        version=__version__,
        environment=cfg.environment,
        port=cfg.port,
        identity_token_required=cfg.identity_token_required,
        bilateral_join=cfg.bilateral_join,
    )

    yield

    closed = app.state.relay.shutdown()
    logger.info("relaychat.shutdown", connections_closed=closed)


def create_app(
    settings: Optional[Settings] = None,
    contacts: Optional[ContactDirectory] = None,
) -> FastAPI:
    """Build and return the FastAPI application."""
    cfg = settings or default_settings
    app = FastAPI(
        title="RelayChat",
        description="Two-party private chat relay — presence, private channels, delivery",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = cfg
    app.state.relay = ChatRelay(settings=cfg, contacts=contacts)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    app.include_router(api_router)

    from relaychat.realtime.websocket import router as ws_router
    app.include_router(ws_router)

    return app


# Default app instance (used by uvicorn: relaychat.main:app)
app = create_app()
