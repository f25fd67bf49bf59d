from .registry import Connection, PeerSocket, Registry, Session
from .router import RelayRouter

__all__ = [
    "Connection",
    "PeerSocket",
    "Registry",
    "RelayRouter",
    "Session",
]
