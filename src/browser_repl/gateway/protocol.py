"""JSON-RPC 2.0 constants, error type and message builders for the gateway."""

from __future__ import annotations

from enum import Enum
from typing import Any

JSONRPC_VERSION = "2.0"
PROTOCOL_VERSION = "2025-06-18"
SUPPORTED_PROTOCOL_VERSIONS = [PROTOCOL_VERSION]

SERVER_NAME = "browser-repl-mcp"
SERVER_VERSION = "0.1.0"

# Error codes
PARSE_ERROR = -32700
INVALID_REQUEST = -32600
METHOD_NOT_FOUND = -32601
INVALID_PARAMS = -32602
INTERNAL_ERROR = -32603

SERVER_CAPABILITIES: dict[str, Any] = {
    "tools": {"listChanged": True},
    "logging": {},
}


class ServerState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    READY = "ready"


class JsonRpcError(Exception):
    """A protocol-level failure answered with a JSON-RPC error object."""

    def __init__(self, code: int, message: str, data: Any = None) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.data = data

    def to_dict(self) -> dict[str, Any]:
        error: dict[str, Any] = {"code": self.code, "message": self.message}
        if self.data is not None:
            error["data"] = self.data
        return error


def success_response(request_id: Any, result: Any) -> dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result}


def error_response(request_id: Any, error: JsonRpcError) -> dict[str, Any]:
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "error": error.to_dict()}


def initialize_result() -> dict[str, Any]:
    return {
        "protocolVersion": PROTOCOL_VERSION,
        "capabilities": SERVER_CAPABILITIES,
        "serverInfo": {"name": SERVER_NAME, "version": SERVER_VERSION},
    }


def tool_result(text: str, is_error: bool = False) -> dict[str, Any]:
    """Wrap ``text`` as a tools/call result with a single text block."""
    return {
        "content": [{"type": "text", "text": text}],
        "isError": is_error,
    }
