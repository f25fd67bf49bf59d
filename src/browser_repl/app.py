"""Relay server FastAPI application factory."""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from browser_repl.bootstrap import generate_browser_code, generate_cli_hint, relay_url
from browser_repl.config import Settings, generate_session_id
from browser_repl.routes import api_router, websocket_router
from browser_repl.services import Registry, RelayRouter

logger = logging.getLogger(__name__)


def log_session_setup(settings: Settings) -> str:
    """Log a ready-to-use session (browser code and CLI hint) and return its id."""
    session_id = generate_session_id()
    host, port = settings.public_host, settings.server_port
    logger.info(
        "\n=== SESSION SETUP ===\n"
        "Browser code (paste in browser console):\n"
        f"{generate_browser_code(host, port, session_id)}\n"
        "\nCLI command:\n"
        f"{generate_cli_hint(host, port, session_id)}\n"
        "====================="
    )
    return session_id


def create_app(settings: Settings | None = None) -> FastAPI:
    """Create and configure the relay application."""
    settings = settings or Settings()

    registry = Registry()
    relay_router = RelayRouter(registry, assign_session_ids=settings.assign_session_ids)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        logger.info(
            f"Browser REPL relay listening on "
            f"{relay_url(settings.server_host, settings.server_port)}"
        )
        log_session_setup(settings)

        yield

        logger.info(f"Browser REPL relay shutting down ({len(registry)} open connections)")

    relay_app = FastAPI(
        title="Browser REPL Relay",
        description="Session relay between browser targets and execution drivers",
        version="0.1.0",
        lifespan=lifespan,
    )

    # Store services in app.state for dependency injection
    relay_app.state.registry = registry
    relay_app.state.relay_router = relay_router
    relay_app.state.settings = settings

    relay_app.include_router(websocket_router)
    relay_app.include_router(api_router)

    return relay_app
