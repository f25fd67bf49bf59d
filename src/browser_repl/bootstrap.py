"""Source text handed to users so a browser tab can join a relay session."""

from __future__ import annotations

import json

RELAY_PATH = "/repl"


def normalize_address(host: str, port: int) -> tuple[str, str, int]:
    """Return ``(ws_scheme, host, port)`` for a relay address.

    ``host`` may carry an ``http://`` / ``https://`` prefix or an embedded
    ``:port``; an embedded port wins over ``port``. Port 443 selects ``wss``.
    """
    clean = host
    for prefix in ("http://", "https://", "ws://", "wss://"):
        if clean.startswith(prefix):
            clean = clean[len(prefix) :]
            break
    clean = clean.rstrip("/")

    port_to_use = port
    if ":" in clean:
        clean, _, host_port = clean.partition(":")
        if host_port.isdigit():
            port_to_use = int(host_port)

    scheme = "wss" if port_to_use == 443 else "ws"
    return scheme, clean, port_to_use


def relay_url(host: str, port: int) -> str:
    scheme, clean, port_to_use = normalize_address(host, port)
    return f"{scheme}://{clean}:{port_to_use}{RELAY_PATH}"


def generate_browser_code(host: str, port: int, session_id: str) -> str:
    """Build the snippet a user pastes into the browser console.

    The snippet registers the tab as the session's target, evaluates every
    ``execute`` frame it receives and answers with a ``result`` frame that
    echoes ``requestId``.
    """
    url = json.dumps(relay_url(host, port))
    sid = json.dumps(session_id)
    return f"""(function() {{
  const ws = new WebSocket({url});
  const sessionId = {sid};

  ws.onopen = function() {{
    console.log('Connected to browser REPL relay, session', sessionId);
    ws.send(JSON.stringify({{
      type: 'register',
      role: 'target',
      sessionId: sessionId,
      timestamp: Date.now()
    }}));
  }};

  ws.onmessage = function(event) {{
    const data = JSON.parse(event.data);
    if (data.type !== 'execute') return;
    let reply;
    try {{
      reply = {{ result: eval(data.code), error: null }};
    }} catch (error) {{
      reply = {{ result: null, error: error && error.message ? error.message : String(error) }};
    }}
    ws.send(JSON.stringify({{
      type: 'result',
      sessionId: sessionId,
      result: reply.result,
      error: reply.error,
      requestId: data.requestId,
      timestamp: Date.now()
    }}));
  }};

  ws.onerror = function(error) {{
    console.error('Browser REPL socket error:', error);
  }};

  ws.onclose = function() {{
    console.log('Disconnected from browser REPL relay');
  }};

  window.browserREPL = {{
    sessionId: sessionId,
    ws: ws,
    execute: function(code) {{
      return eval(code);
    }}
  }};
}})();"""


def generate_cli_hint(host: str, port: int, session_id: str) -> str:
    _, clean, port_to_use = normalize_address(host, port)
    return (
        f"Connect with: browser-repl exec --session {session_id} "
        f"--host {clean} --port {port_to_use} --code '<javascript>'"
    )
