"""WebSocket endpoint shared by browser targets and drivers."""

from fastapi import APIRouter, WebSocket

from browser_repl.bootstrap import RELAY_PATH
from browser_repl.dependencies import RelayRouterWsDep
from browser_repl.relay import serve_peer

router = APIRouter(tags=["websocket"])


@router.websocket(RELAY_PATH)
async def relay_endpoint(websocket: WebSocket, relay_router: RelayRouterWsDep) -> None:
    """Accept a relay peer and route its frames until it disconnects."""
    await websocket.accept()
    await serve_peer(websocket, relay_router)
