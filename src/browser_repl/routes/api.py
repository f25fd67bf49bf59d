"""HTTP endpoints for health checks and session discovery."""

from fastapi import APIRouter

from browser_repl.bootstrap import generate_browser_code, generate_cli_hint
from browser_repl.config import generate_session_id
from browser_repl.dependencies import RegistryDep, SettingsDep

router = APIRouter(tags=["api"])


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/api/sessions")
async def list_sessions(registry: RegistryDep) -> list[dict[str, str | bool]]:
    """Return every session with the roles currently connected."""
    return [
        {
            "sessionId": session_id,
            "targetConnected": session.target_id is not None,
            "driverConnected": session.driver_id is not None,
        }
        for session_id, session in registry.list_sessions().items()
    ]


@router.get("/api/bootstrap")
async def get_bootstrap(settings: SettingsDep, session_id: str | None = None) -> dict[str, str]:
    """Return browser code and CLI hint for a session (new one if omitted)."""
    sid = session_id or generate_session_id()
    return {
        "sessionId": sid,
        "browserCode": generate_browser_code(settings.public_host, settings.server_port, sid),
        "cliCommand": generate_cli_hint(settings.public_host, settings.server_port, sid),
    }
