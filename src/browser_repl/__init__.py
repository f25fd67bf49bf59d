"""Browser REPL: run JavaScript in a live browser tab from a CLI or an AI agent."""

import uvicorn

from browser_repl.app import create_app
from browser_repl.config import Settings, configure_logging

__version__ = "0.1.0"

# Expose app for ASGI servers: uvicorn browser_repl:app
app = create_app()


def main() -> None:
    """Run the relay server directly under uvicorn."""
    settings = Settings()
    configure_logging(settings)
    uvicorn.run(create_app(settings), host=settings.server_host, port=settings.server_port)
