import logging
import secrets
import sys

from pydantic_settings import BaseSettings, SettingsConfigDict


def generate_session_id() -> str:
    """Return a fresh opaque session id (16 random bytes, hex encoded)."""
    return secrets.token_hex(16)


class Settings(BaseSettings):
    # Relay server settings
    server_host: str = "0.0.0.0"
    server_port: int = 8080
    public_host: str = "localhost"  # Address embedded in the browser bootstrap code
    assign_session_ids: bool = False  # Give a fresh session id to register frames without one

    # Driver settings (CLI / MCP gateway side)
    host: str = "localhost"
    port: int = 8080
    session_id: str | None = None
    connect_timeout: float = 1.0  # Seconds the gateway waits for the relay socket
    execute_timeout: float = 5.0  # Seconds the gateway waits for a result

    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_prefix="REPL_")

    def get_session_id(self) -> str:
        """Get the configured session id or generate one."""
        if self.session_id is None:
            self.session_id = generate_session_id()
        return self.session_id


LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(settings: Settings) -> None:
    """Route log records to stderr; stdout belongs to the JSON-RPC gateway."""
    logging.basicConfig(
        level=settings.log_level.upper(),
        format=LOG_FORMAT,
        stream=sys.stderr,
    )
