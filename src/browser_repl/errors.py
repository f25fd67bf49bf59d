"""Shared error types for browser-repl."""

from __future__ import annotations


class BrowserReplError(Exception):
    """Base class for errors raised by the driver side."""


class RelayConnectionError(BrowserReplError):
    """The relay socket could not be opened or was lost."""


class NotConnectedError(RelayConnectionError):
    """An operation needed an open relay socket but there is none."""


class ExecutionTimeoutError(BrowserReplError):
    """No result arrived for a request within the allowed time."""

    def __init__(self, request_id: int, timeout: float) -> None:
        super().__init__("Execution timeout")
        self.request_id = request_id
        self.timeout = timeout


class EvaluationError(BrowserReplError):
    """The target reported an error while evaluating the code."""

    def __init__(self, message: str, request_id: int | None = None) -> None:
        super().__init__(message)
        self.request_id = request_id


__all__ = [
    "BrowserReplError",
    "EvaluationError",
    "ExecutionTimeoutError",
    "NotConnectedError",
    "RelayConnectionError",
]
