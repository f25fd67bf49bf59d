"""FastAPI dependency injection providers for relay services."""

from typing import Annotated

from fastapi import Depends, Request, WebSocket

from browser_repl.config import Settings
from browser_repl.services import Registry, RelayRouter


# WebSocket-specific dependencies (WebSocket routes don't have Request)
def get_router_ws(websocket: WebSocket) -> RelayRouter:
    """Get the relay router from app state (for WebSocket routes)."""
    return websocket.app.state.relay_router


def get_registry(request: Request) -> Registry:
    return request.app.state.registry


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


RelayRouterWsDep = Annotated[RelayRouter, Depends(get_router_ws)]
RegistryDep = Annotated[Registry, Depends(get_registry)]
SettingsDep = Annotated[Settings, Depends(get_settings)]
