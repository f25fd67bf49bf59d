"""WebSocket endpoint loop for relay peers (browser targets and drivers)."""

import json
import logging

from fastapi import WebSocket, WebSocketDisconnect
from fastapi.websockets import WebSocketState

from browser_repl.services import Connection, RelayRouter

logger = logging.getLogger(__name__)


async def serve_peer(websocket: WebSocket, router: RelayRouter) -> None:
    """Run the receive loop for one relay peer until its socket closes.

    Frames that are not valid JSON objects are logged and skipped; they never
    close the connection or affect other peers.

    Args:
        websocket: Accepted WebSocket connection
        router: Router shared by every peer of this relay
    """
    registry = router.registry
    connection = Connection(socket=websocket)
    registry.add(connection)
    client = websocket.client
    logger.debug(f"Peer {connection.connection_id} connected from {client}")

    try:
        while websocket.application_state == WebSocketState.CONNECTED:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000), message.get("reason"))

            raw = message.get("text")
            if raw is None:
                raw = message.get("bytes") or b""
            try:
                frame = json.loads(raw.decode() if isinstance(raw, bytes) else raw)
            except (json.JSONDecodeError, UnicodeDecodeError) as e:
                logger.warning(f"Message parsing error from {connection.connection_id}: {e}")
                continue
            if not isinstance(frame, dict):
                logger.warning(f"Ignoring non-object frame from {connection.connection_id}")
                continue
            await router.dispatch(connection, frame)
    except WebSocketDisconnect:
        logger.debug(f"Peer {connection.connection_id} disconnected")
    except Exception as e:
        logger.exception(f"Relay error on {connection.connection_id}: {e}")
        try:
            await websocket.close(code=1011)
        except Exception as close_error:
            logger.debug(f"Error closing socket {connection.connection_id}: {close_error}")
    finally:
        registry.remove(connection.connection_id)
