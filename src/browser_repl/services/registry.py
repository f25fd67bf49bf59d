import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Protocol

from browser_repl.models import Role

logger = logging.getLogger(__name__)


class PeerSocket(Protocol):
    """The part of a WebSocket the relay needs."""

    async def send_json(self, data: Any) -> None: ...

    async def close(self, code: int = 1000, reason: str | None = None) -> None: ...


@dataclass
class Connection:
    socket: PeerSocket
    connection_id: str = field(default_factory=lambda: uuid.uuid4().hex)
    session_id: str | None = None
    role: Role | None = None
    connected_at: float = field(default_factory=time.time)
    registered_at: float | None = None

    @property
    def is_registered(self) -> bool:
        return self.session_id is not None and self.role is not None

    async def send(self, data: dict[str, Any]) -> None:
        await self.socket.send_json(data)

    async def close(self) -> None:
        await self.socket.close(code=1000)


@dataclass
class Session:
    """Which connection holds each role of one session."""

    target_id: str | None = None
    driver_id: str | None = None

    def get(self, role: Role) -> str | None:
        return self.target_id if role is Role.TARGET else self.driver_id

    def set(self, role: Role, connection_id: str | None) -> None:
        if role is Role.TARGET:
            self.target_id = connection_id
        else:
            self.driver_id = connection_id

    @property
    def is_empty(self) -> bool:
        return self.target_id is None and self.driver_id is None


class Registry:
    """Owner of every live relay connection and of the session table.

    All methods are synchronous: the relay runs on a single event loop, so a
    method body can never interleave with another socket callback. That is
    what keeps ``register`` atomic without a lock.
    """

    def __init__(self) -> None:
        self._connections: dict[str, Connection] = {}
        self._sessions: dict[str, Session] = {}

    def add(self, connection: Connection) -> None:
        """Track a freshly opened, not yet registered socket."""
        self._connections[connection.connection_id] = connection
        logger.debug(f"Connection opened: {connection.connection_id}")

    def register(
        self, connection_id: str, session_id: str, role: Role
    ) -> Connection | None:
        """Bind a connection to ``(session_id, role)``.

        Any other connection holding the same pair is dropped from the
        registry and returned so the caller can close its socket. The new
        holder is in place before this method returns.
        """
        connection = self._connections.get(connection_id)
        if connection is None:
            logger.warning(f"Register for unknown connection {connection_id}")
            return None

        # A connection re-registering under another pair gives up its old slot
        if connection.is_registered:
            self._release(connection)

        session = self._sessions.setdefault(session_id, Session())
        evicted: Connection | None = None
        holder_id = session.get(role)
        if holder_id is not None and holder_id != connection_id:
            evicted = self._connections.pop(holder_id, None)
            logger.info(
                f"Switching {role.value} for session {session_id}: "
                f"evicting connection {holder_id}"
            )

        session.set(role, connection_id)
        connection.session_id = session_id
        connection.role = role
        connection.registered_at = time.time()
        logger.info(f"Registered {role.value} {connection_id} for session {session_id}")
        return evicted

    def lookup(self, session_id: str, role: Role) -> Connection | None:
        """Return the live connection holding ``role`` in ``session_id``."""
        session = self._sessions.get(session_id)
        if session is None:
            return None
        connection_id = session.get(role)
        if connection_id is None:
            return None
        return self._connections.get(connection_id)

    def remove(self, connection_id: str) -> Connection | None:
        """Forget a closed connection. Safe to call more than once."""
        connection = self._connections.pop(connection_id, None)
        if connection is None:
            return None
        if connection.is_registered:
            self._release(connection)
            logger.info(f"{connection.role.value} disconnected: {connection.session_id}")
        else:
            logger.debug(f"Unregistered connection closed: {connection_id}")
        return connection

    def get_connection(self, connection_id: str) -> Connection | None:
        return self._connections.get(connection_id)

    def get_session(self, session_id: str) -> Session | None:
        session = self._sessions.get(session_id)
        if session is None:
            return None
        return Session(target_id=session.target_id, driver_id=session.driver_id)

    def list_sessions(self) -> dict[str, Session]:
        """Snapshot of the session table."""
        return {
            session_id: Session(target_id=s.target_id, driver_id=s.driver_id)
            for session_id, s in self._sessions.items()
        }

    def __len__(self) -> int:
        return len(self._connections)

    def _release(self, connection: Connection) -> None:
        """Clear the session slot pointing at ``connection``, if any."""
        session_id = connection.session_id
        role = connection.role
        if session_id is None or role is None:
            return
        session = self._sessions.get(session_id)
        if session is None:
            return
        if session.get(role) == connection.connection_id:
            session.set(role, None)
        if session.is_empty:
            del self._sessions[session_id]
