"""JSON-RPC method dispatch and handshake state machine for the gateway."""

from __future__ import annotations

import json
import logging
from typing import Any

from .protocol import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    INVALID_REQUEST,
    JSONRPC_VERSION,
    METHOD_NOT_FOUND,
    PARSE_ERROR,
    PROTOCOL_VERSION,
    SUPPORTED_PROTOCOL_VERSIONS,
    JsonRpcError,
    ServerState,
    error_response,
    initialize_result,
    success_response,
    tool_result,
)
from .tools import BrowserReplTools, ToolError, format_tool_text

logger = logging.getLogger(__name__)

INITIALIZED_NOTIFICATION = "notifications/initialized"


class GatewayServer:
    """Translates JSON-RPC requests into relay operations.

    State moves ``UNINITIALIZED -> INITIALIZED`` on a successful
    ``initialize`` and ``INITIALIZED -> READY`` on the
    ``notifications/initialized`` notification. Tool methods need READY.
    """

    def __init__(self, tools: BrowserReplTools) -> None:
        self._tools = tools
        self._state = ServerState.UNINITIALIZED
        self._methods = {
            "initialize": self._handle_initialize,
            "ping": self._handle_ping,
            "tools/list": self._handle_tools_list,
            "tools/call": self._handle_tools_call,
        }

    @property
    def state(self) -> ServerState:
        return self._state

    @property
    def tools(self) -> BrowserReplTools:
        return self._tools

    async def handle_line(self, line: str) -> dict[str, Any] | None:
        """Process one framed line; return the response to write, if any."""
        try:
            message = json.loads(line)
        except json.JSONDecodeError as e:
            logger.warning(f"Parse error: {e}")
            return error_response(None, JsonRpcError(PARSE_ERROR, "Parse error", str(e)))
        return await self.handle_message(message)

    async def handle_message(self, message: Any) -> dict[str, Any] | None:
        if not isinstance(message, dict):
            return error_response(
                None,
                JsonRpcError(INVALID_REQUEST, "Invalid Request", "Message must be an object"),
            )

        request_id = message.get("id")
        if message.get("jsonrpc") != JSONRPC_VERSION:
            return error_response(
                request_id,
                JsonRpcError(INVALID_REQUEST, "Invalid Request", "Missing or invalid jsonrpc version"),
            )

        method = message.get("method")
        if "id" not in message:
            await self.handle_notification(method, message.get("params"))
            return None

        # Responses from the client carry no method; nothing to answer
        if not isinstance(method, str):
            if "result" in message or "error" in message:
                return None
            return error_response(
                request_id,
                JsonRpcError(INVALID_REQUEST, "Invalid Request", "Missing method"),
            )

        params = message.get("params")
        if params is None:
            params = {}
        try:
            if not isinstance(params, dict):
                raise JsonRpcError(INVALID_PARAMS, "Invalid params", "params must be an object")
            result = await self.handle_request(method, params)
        except JsonRpcError as e:
            return error_response(request_id, e)
        except Exception as e:
            logger.exception(f"Internal error handling {method}")
            return error_response(request_id, JsonRpcError(INTERNAL_ERROR, "Internal error", str(e)))
        return success_response(request_id, result)

    async def handle_notification(self, method: Any, params: Any) -> None:
        if method == INITIALIZED_NOTIFICATION:
            if self._state is ServerState.INITIALIZED:
                self._state = ServerState.READY
                logger.info("Client initialized, gateway ready")
            else:
                logger.debug(f"Ignoring {method} in state {self._state.value}")
            return
        logger.debug(f"Ignoring notification {method!r}")

    async def handle_request(self, method: str, params: dict[str, Any]) -> Any:
        handler = self._methods.get(method)
        if handler is None:
            raise JsonRpcError(METHOD_NOT_FOUND, "Method not found", f"Unknown method: {method}")
        if method not in ("initialize", "ping") and self._state is not ServerState.READY:
            raise JsonRpcError(INVALID_REQUEST, "Invalid Request", "Server not initialized")
        return await handler(params)

    async def _handle_initialize(self, params: dict[str, Any]) -> dict[str, Any]:
        requested = params.get("protocolVersion")
        if requested != PROTOCOL_VERSION:
            raise JsonRpcError(
                INVALID_PARAMS,
                "Unsupported protocol version",
                {"requested": requested, "supported": SUPPORTED_PROTOCOL_VERSIONS},
            )
        if self._state is ServerState.UNINITIALIZED:
            self._state = ServerState.INITIALIZED
        client_info = params.get("clientInfo")
        client_name = client_info.get("name") if isinstance(client_info, dict) else None
        logger.info(f"Initialized for client {client_name or 'unknown'}")
        return initialize_result()

    async def _handle_ping(self, params: dict[str, Any]) -> dict[str, Any]:
        return {}

    async def _handle_tools_list(self, params: dict[str, Any]) -> dict[str, Any]:
        return {"tools": self._tools.list_tools()}

    async def _handle_tools_call(self, params: dict[str, Any]) -> dict[str, Any]:
        name = params.get("name")
        if not name:
            raise JsonRpcError(INVALID_PARAMS, "Invalid params", "Missing tool name")
        arguments = params.get("arguments") or {}
        if not isinstance(arguments, dict):
            raise JsonRpcError(INVALID_PARAMS, "Invalid params", "arguments must be an object")

        logger.info(f"tool={name}")
        try:
            result = await self._tools.call(name, arguments)
        except ToolError as e:
            logger.info(f"tool_error tool={name} reason={e}")
            return tool_result(f"Error: {e}", is_error=True)
        return tool_result(format_tool_text(result))
