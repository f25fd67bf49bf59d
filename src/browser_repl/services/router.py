"""Relay router: forwards execute/result envelopes inside a session."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError

from browser_repl.config import generate_session_id
from browser_repl.models import (
    ExecuteMessage,
    RegisteredMessage,
    RegisterMessage,
    ResultMessage,
    Role,
    parse_envelope,
)

from .registry import Connection, Registry

logger = logging.getLogger(__name__)


class RelayRouter:
    """Routes relay frames between the target and driver of a session.

    The router keeps no state of its own. Every destination is resolved
    through ``Registry.lookup`` with the sender's session id and the
    counterpart role, and payload fields are passed through untouched.
    """

    def __init__(self, registry: Registry, assign_session_ids: bool = False) -> None:
        self._registry = registry
        self._assign_session_ids = assign_session_ids

    @property
    def registry(self) -> Registry:
        return self._registry

    async def dispatch(self, connection: Connection, frame: dict[str, Any]) -> None:
        """Handle one decoded frame received on ``connection``."""
        # Frames still in flight on an evicted socket go nowhere
        if self._registry.get_connection(connection.connection_id) is not connection:
            logger.debug(f"Dropping frame from stale connection {connection.connection_id}")
            return

        try:
            envelope = parse_envelope(frame)
        except ValidationError as e:
            logger.warning(
                f"Invalid {frame.get('type')} frame from {connection.connection_id}: {e}"
            )
            return

        if isinstance(envelope, RegisterMessage):
            await self.on_register(connection, envelope)
        elif isinstance(envelope, ExecuteMessage):
            await self.on_execute(connection, envelope)
        elif isinstance(envelope, ResultMessage):
            await self.on_result(connection, envelope)
        else:
            logger.debug(
                f"Ignoring frame of type {frame.get('type')!r} from {connection.connection_id}"
            )

    async def on_register(self, connection: Connection, message: RegisterMessage) -> None:
        role = Role.parse(message.role)
        session_id = message.session_id
        if not session_id and self._assign_session_ids:
            session_id = generate_session_id()
        if not session_id or role is None:
            logger.warning(
                f"Ignoring malformed register from {connection.connection_id}: "
                f"sessionId={message.session_id!r} role={message.role!r}"
            )
            return

        evicted = self._registry.register(connection.connection_id, session_id, role)
        if evicted is not None:
            await self._close_quietly(evicted)

        ack = RegisteredMessage(session_id=session_id, role=role)
        await self._send(connection, ack.to_wire())

    async def on_execute(self, connection: Connection, message: ExecuteMessage) -> None:
        if connection.role is not Role.DRIVER or connection.session_id is None:
            logger.debug(f"Dropping execute from non-driver {connection.connection_id}")
            return

        target = self._registry.lookup(connection.session_id, Role.TARGET)
        if target is None:
            logger.debug(
                f"No target for session {connection.session_id}, "
                f"dropping request {message.request_id!r}"
            )
            return

        forwarded = ExecuteMessage(
            session_id=connection.session_id,
            code=message.code,
            request_id=message.request_id,
        )
        await self._send(target, forwarded.to_wire())

    async def on_result(self, connection: Connection, message: ResultMessage) -> None:
        if connection.role is not Role.TARGET or connection.session_id is None:
            logger.debug(f"Dropping result from non-target {connection.connection_id}")
            return

        driver = self._registry.lookup(connection.session_id, Role.DRIVER)
        if driver is None:
            logger.debug(
                f"No driver for session {connection.session_id}, "
                f"dropping result {message.request_id!r}"
            )
            return

        forwarded = ResultMessage(
            session_id=connection.session_id,
            result=message.result,
            error=message.error,
            request_id=message.request_id,
        )
        await self._send(driver, forwarded.to_wire())

    async def _send(self, connection: Connection, data: dict[str, Any]) -> None:
        try:
            await connection.send(data)
        except Exception as e:
            logger.debug(
                f"Send to {connection.connection_id} failed, frame dropped: {e}"
            )

    async def _close_quietly(self, connection: Connection) -> None:
        try:
            await connection.close()
        except Exception as e:
            logger.debug(f"Closing evicted connection {connection.connection_id}: {e}")
