"""Line-delimited JSON-RPC gateway exposing the relay as an agent tool."""

import asyncio
import logging

from browser_repl.config import Settings, configure_logging

from .server import GatewayServer
from .tools import BrowserReplTools
from .transport import LineBuffer, StdioTransport

logger = logging.getLogger(__name__)


async def run_gateway(settings: Settings, transport: StdioTransport | None = None) -> None:
    """Serve JSON-RPC on stdio until stdin closes.

    Messages are handled one at a time in arrival order, so tool calls never
    overlap on the shared driver connection.
    """
    transport = transport or StdioTransport()
    tools = BrowserReplTools(
        host=settings.host,
        port=settings.port,
        session_id=settings.get_session_id(),
        connect_timeout=settings.connect_timeout,
        execute_timeout=settings.execute_timeout,
    )
    server = GatewayServer(tools)
    logger.info(
        f"MCP gateway started for relay {settings.host}:{settings.port}, "
        f"session {tools.session_id}"
    )

    try:
        async for line in transport.lines():
            response = await server.handle_line(line)
            if response is not None:
                transport.write(response)
    finally:
        await tools.shutdown()
        logger.info("MCP gateway stopped")


def main() -> None:
    """Entry point for the stdio gateway."""
    settings = Settings()
    configure_logging(settings)
    asyncio.run(run_gateway(settings))


__all__ = [
    "BrowserReplTools",
    "GatewayServer",
    "LineBuffer",
    "StdioTransport",
    "main",
    "run_gateway",
]
