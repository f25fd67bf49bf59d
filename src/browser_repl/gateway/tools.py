"""The ``execute_javascript`` tool backed by a relay DriverClient."""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Callable

from browser_repl.bootstrap import generate_browser_code
from browser_repl.client import DriverClient
from browser_repl.errors import BrowserReplError, RelayConnectionError

logger = logging.getLogger(__name__)

EXECUTE_JAVASCRIPT = "execute_javascript"

EXECUTE_JAVASCRIPT_TOOL: dict[str, Any] = {
    "name": EXECUTE_JAVASCRIPT,
    "description": (
        "Execute JavaScript code in the connected browser "
        "(will prompt for connection if needed)"
    ),
    "inputSchema": {
        "type": "object",
        "properties": {
            "code": {
                "type": "string",
                "description": "JavaScript code to execute in the browser",
            }
        },
        "required": ["code"],
    },
}


class ToolError(Exception):
    """Raised by a tool; reported to the caller as an ``isError`` result."""


class BrowserReplTools:
    """Tool surface exposed through the JSON-RPC gateway.

    A DriverClient for the configured relay and session is created on first
    use and reconnected whenever its socket has dropped.
    """

    def __init__(
        self,
        host: str,
        port: int,
        session_id: str,
        connect_timeout: float = 1.0,
        execute_timeout: float = 5.0,
        client_factory: Callable[[str, int, str], DriverClient] = DriverClient,
    ) -> None:
        self._host = host
        self._port = port
        self._session_id = session_id
        self._connect_timeout = connect_timeout
        self._execute_timeout = execute_timeout
        self._client_factory = client_factory
        self._client: DriverClient | None = None

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def client(self) -> DriverClient | None:
        return self._client

    def list_tools(self) -> list[dict[str, Any]]:
        return [EXECUTE_JAVASCRIPT_TOOL]

    def has(self, name: str) -> bool:
        return name == EXECUTE_JAVASCRIPT

    async def call(self, name: str, arguments: dict[str, Any]) -> dict[str, Any]:
        if name != EXECUTE_JAVASCRIPT:
            raise ToolError(f"Unknown tool: {name}")
        code = arguments.get("code")
        if not isinstance(code, str):
            raise ToolError("Missing required argument: code")
        return await self.execute_javascript(code)

    def browser_code(self) -> str:
        return generate_browser_code(self._host, self._port, self._session_id)

    async def ensure_connected(self) -> bool:
        """Try to reach the relay within ``connect_timeout``."""
        client = self._get_client()
        if client.is_connected:
            return True
        try:
            await asyncio.wait_for(client.connect(), self._connect_timeout)
        except (TimeoutError, RelayConnectionError) as e:
            logger.info(f"Relay not reachable yet: {str(e) or 'connection timeout'}")
            await client.disconnect()
            return False
        logger.info("Connected to relay for session %s", self._session_id)
        return True

    async def execute_javascript(self, code: str) -> dict[str, Any]:
        """Run ``code`` in the session's browser tab.

        When the relay cannot be reached this is not an error: the result
        carries the bootstrap code the user has to paste in the browser, so
        the caller can retry afterwards.
        """
        if not await self.ensure_connected():
            browser_code = self.browser_code()
            logger.warning(
                "BROWSER CONNECTION REQUIRED - paste this code into the browser console:\n"
                f"{browser_code}"
            )
            return {
                "result": browser_code,
                "success": False,
                "needsBrowserConnection": True,
                "message": "Browser connection required - paste the code above into browser console",
            }

        try:
            result = await self._get_client().execute_and_wait(code, self._execute_timeout)
        except BrowserReplError as e:
            raise ToolError(str(e)) from e
        return {"result": result, "success": True}

    def _get_client(self) -> DriverClient:
        if self._client is None:
            self._client = self._client_factory(self._host, self._port, self._session_id)
        return self._client

    async def shutdown(self) -> None:
        if self._client is not None:
            await self._client.disconnect()
            self._client = None


def format_tool_text(result: Any) -> str:
    return result if isinstance(result, str) else json.dumps(result, ensure_ascii=False)
