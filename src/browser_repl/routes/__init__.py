from .api import router as api_router
from .websocket import router as websocket_router

__all__ = [
    "api_router",
    "websocket_router",
]
