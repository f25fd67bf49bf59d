"""Argparse-based CLI for browser-repl.

Runs the relay server or the JSON-RPC gateway, executes a single snippet
against a session, or prints the browser bootstrap code.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys

import uvicorn

from browser_repl.app import create_app
from browser_repl.bootstrap import generate_browser_code, generate_cli_hint
from browser_repl.client import DriverClient
from browser_repl.config import Settings, configure_logging
from browser_repl.errors import BrowserReplError
from browser_repl.gateway import run_gateway


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _settings_from_args(args: argparse.Namespace) -> Settings:
    """Overlay explicitly given CLI flags on environment settings."""
    overrides = {
        key: value
        for key, value in {
            "host": getattr(args, "host", None),
            "port": getattr(args, "port", None),
            "session_id": getattr(args, "session", None),
            "execute_timeout": getattr(args, "timeout", None),
        }.items()
        if value is not None
    }
    if args.command == "server":
        if "host" in overrides:
            overrides["server_host"] = overrides.pop("host")
        if "port" in overrides:
            overrides["server_port"] = overrides.pop("port")
    return Settings(**overrides)


def _format_result(result: object) -> str:
    return result if isinstance(result, str) else json.dumps(result, ensure_ascii=False)


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


def cmd_server(settings: Settings) -> int:
    uvicorn.run(create_app(settings), host=settings.server_host, port=settings.server_port)
    return 0


def cmd_mcp(settings: Settings) -> int:
    asyncio.run(run_gateway(settings))
    return 0


async def _exec_once(settings: Settings, code: str) -> int:
    client = DriverClient(settings.host, settings.port, settings.session_id)
    try:
        await client.connect()
        result = await client.execute_and_wait(code, settings.execute_timeout)
    except BrowserReplError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        await client.disconnect()
    print(_format_result(result))
    return 0


def cmd_exec(settings: Settings, code: str) -> int:
    # A generated id would name a session no browser tab has joined
    if not settings.session_id:
        print("Error: no session given (use --session or REPL_SESSION_ID)", file=sys.stderr)
        return 1
    return asyncio.run(_exec_once(settings, code))


def cmd_bootstrap(settings: Settings) -> int:
    session_id = settings.get_session_id()
    print("Browser code (paste in browser console):")
    print(generate_browser_code(settings.host, settings.port, session_id))
    print()
    print(generate_cli_hint(settings.host, settings.port, session_id))
    return 0


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def _add_relay_args(p: argparse.ArgumentParser, session: bool = True) -> None:
    p.add_argument("--host", default=None, help="Relay host")
    p.add_argument("--port", type=int, default=None, help="Relay port")
    if session:
        p.add_argument("--session", default=None, help="Session ID to join")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="browser-repl",
        description="WebSocket-based browser REPL with CLI and MCP support",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    p = subparsers.add_parser("server", help="Start the relay for browser connections")
    _add_relay_args(p, session=False)

    p = subparsers.add_parser("mcp", help="Start the JSON-RPC gateway on stdio")
    _add_relay_args(p)

    p = subparsers.add_parser("exec", help="Execute one snippet in the session's browser")
    _add_relay_args(p)
    p.add_argument("--code", required=True, help="JavaScript to execute")
    p.add_argument("--timeout", type=float, default=None, help="Seconds to wait for the result")

    p = subparsers.add_parser("bootstrap", help="Print the browser bootstrap code")
    _add_relay_args(p)

    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    settings = _settings_from_args(args)
    configure_logging(settings)

    if args.command == "server":
        return cmd_server(settings)
    if args.command == "mcp":
        return cmd_mcp(settings)
    if args.command == "exec":
        return cmd_exec(settings, args.code)
    return cmd_bootstrap(settings)


if __name__ == "__main__":
    sys.exit(main())
