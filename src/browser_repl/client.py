"""Driver-side WebSocket client for the browser REPL relay."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

import websockets
from pydantic import ValidationError

from browser_repl.bootstrap import relay_url
from browser_repl.errors import (
    EvaluationError,
    ExecutionTimeoutError,
    NotConnectedError,
    RelayConnectionError,
)
from browser_repl.models import (
    ExecuteMessage,
    RegisterMessage,
    ResultMessage,
    Role,
    parse_envelope,
)
from browser_repl.models.messages import now_ms

logger = logging.getLogger(__name__)

Handler = Callable[[dict[str, Any]], Awaitable[None]]


@dataclass
class PendingRequest:
    request_id: int
    code: str
    issued_at: float = field(default_factory=time.time)
    future: asyncio.Future[ResultMessage] | None = None


class DriverClient:
    """One driver connection to the relay.

    ``connect()`` returns as soon as the socket is open and the ``register``
    frame has been sent. It does not wait for the relay's ``registered``
    acknowledgment nor for a target to join the session.

    Results are routed to a driver by role, not by request id, so only one
    unresolved request per client is reliable.
    """

    def __init__(
        self,
        host: str,
        port: int,
        session_id: str,
        role: Role = Role.DRIVER,
    ) -> None:
        self._host = host
        self._port = port
        self._session_id = session_id
        self._role = role
        self._ws: Any = None
        self._reader: asyncio.Task[None] | None = None
        self._pending: dict[int, PendingRequest] = {}
        self._request_id = 0
        self._handlers: dict[str, list[Handler]] = {}

    @property
    def session_id(self) -> str:
        return self._session_id

    @property
    def url(self) -> str:
        return relay_url(self._host, self._port)

    @property
    def is_connected(self) -> bool:
        return self._ws is not None and self._reader is not None and not self._reader.done()

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    def on(self, event: str, handler: Handler) -> None:
        """Register an event handler (``result`` or ``disconnect``)."""
        self._handlers.setdefault(event, []).append(handler)

    async def _emit(self, event: str, payload: dict[str, Any]) -> None:
        for handler in self._handlers.get(event, []):
            try:
                await handler(payload)
            except Exception:
                logger.exception("Error in handler for event %s", event)

    async def connect(self) -> None:
        """Open the relay socket and register this client."""
        if self.is_connected:
            return
        try:
            self._ws = await websockets.connect(self.url)
        except (websockets.exceptions.WebSocketException, OSError) as e:
            self._ws = None
            raise RelayConnectionError(f"Cannot connect to relay at {self.url}: {e}") from e

        register = RegisterMessage(
            session_id=self._session_id,
            role=self._role.value,
            timestamp=now_ms(),
        )
        try:
            await self._ws.send(json.dumps(register.to_wire()))
        except websockets.exceptions.WebSocketException as e:
            await self._drop_socket()
            raise RelayConnectionError(f"Relay closed during registration: {e}") from e

        self._reader = asyncio.create_task(self._read_loop())
        logger.info("Connected to browser REPL relay (%s), session %s", self.url, self._session_id)

    async def execute(self, code: str) -> int:
        """Send ``code`` for evaluation and return its request id.

        Returns once the frame is written; the result is awaited separately
        with ``wait_for_result``.
        """
        if not self.is_connected:
            raise NotConnectedError("Not connected to relay")

        self._request_id += 1
        request_id = self._request_id
        self._pending[request_id] = PendingRequest(
            request_id=request_id,
            code=code,
            future=asyncio.get_running_loop().create_future(),
        )
        message = ExecuteMessage(session_id=self._session_id, code=code, request_id=request_id)
        try:
            await self._ws.send(json.dumps(message.to_wire()))
        except websockets.exceptions.WebSocketException as e:
            self._forget(request_id)
            raise RelayConnectionError(f"Send failed: {e}") from e
        return request_id

    async def wait_for_result(self, request_id: int, timeout: float) -> Any:
        """Wait for the result of ``request_id``.

        Raises ``ExecutionTimeoutError`` when nothing arrives in time (the
        pending entry is forgotten; a late result only reaches handlers) and
        ``EvaluationError`` when the target reported an error.
        """
        pending = self._pending.get(request_id)
        if pending is None or pending.future is None:
            raise KeyError(f"No pending request {request_id}")
        try:
            message = await asyncio.wait_for(pending.future, timeout)
        except TimeoutError:
            self._forget(request_id)
            raise ExecutionTimeoutError(request_id, timeout) from None
        if message.failed:
            raise EvaluationError(str(message.error), request_id=request_id)
        return message.result

    async def execute_and_wait(self, code: str, timeout: float) -> Any:
        request_id = await self.execute(code)
        return await self.wait_for_result(request_id, timeout)

    async def on_message(self, frame: dict[str, Any]) -> None:
        """Handle a frame received from the relay."""
        try:
            envelope = parse_envelope(frame)
        except ValidationError as e:
            logger.warning("Invalid frame from relay: %s", e)
            return
        if not isinstance(envelope, ResultMessage):
            logger.debug("Ignoring %s frame", frame.get("type"))
            return

        request_id = envelope.request_id
        pending = self._pending.pop(request_id, None) if isinstance(request_id, int) else None
        if pending is None:
            logger.debug("Result for unknown request %r", envelope.request_id)
        elif pending.future is not None and not pending.future.done():
            pending.future.set_result(envelope)

        # Surfaced even for unknown ids: an adapter may still be listening
        await self._emit("result", envelope.to_wire())

    async def disconnect(self) -> None:
        """Close the relay socket. Safe to call more than once."""
        reader, self._reader = self._reader, None
        await self._drop_socket()
        if reader is not None and not reader.done():
            reader.cancel()
            try:
                await reader
            except asyncio.CancelledError:
                pass
        self._fail_pending(RelayConnectionError("Disconnected from relay"))

    async def _read_loop(self) -> None:
        ws = self._ws
        try:
            async for raw in ws:
                try:
                    frame = json.loads(raw)
                except json.JSONDecodeError as e:
                    logger.warning("Message parsing error: %s", e)
                    continue
                if isinstance(frame, dict):
                    await self.on_message(frame)
        except websockets.exceptions.ConnectionClosed:
            pass
        finally:
            logger.info("Disconnected from browser REPL relay")
            if self._ws is ws:
                self._ws = None
            self._fail_pending(RelayConnectionError("Relay connection closed"))
            await self._emit("disconnect", {"sessionId": self._session_id})

    async def _drop_socket(self) -> None:
        ws, self._ws = self._ws, None
        if ws is not None:
            try:
                await ws.close()
            except Exception as e:
                logger.debug("Error closing relay socket: %s", e)

    def _forget(self, request_id: int) -> None:
        pending = self._pending.pop(request_id, None)
        if pending is not None and pending.future is not None and not pending.future.done():
            pending.future.cancel()

    def _fail_pending(self, error: Exception) -> None:
        pending, self._pending = self._pending, {}
        for request in pending.values():
            if request.future is not None and not request.future.done():
                request.future.set_exception(error)

