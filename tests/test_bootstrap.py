"""Tests for bootstrap code generation."""

import pytest

from browser_repl.bootstrap import (
    generate_browser_code,
    generate_cli_hint,
    normalize_address,
    relay_url,
)


class TestNormalizeAddress:
    """Tests for relay address normalization."""

    @pytest.mark.parametrize(
        ("host", "port", "expected"),
        [
            ("localhost", 8080, ("ws", "localhost", 8080)),
            ("http://localhost", 8080, ("ws", "localhost", 8080)),
            ("https://example.com/", 8080, ("ws", "example.com", 8080)),
            ("example.com:9000", 8080, ("ws", "example.com", 9000)),
            ("example.com", 443, ("wss", "example.com", 443)),
            ("https://example.com:443", 8080, ("wss", "example.com", 443)),
        ],
    )
    def test_normalize(self, host, port, expected):
        assert normalize_address(host, port) == expected

    def test_relay_url(self):
        assert relay_url("localhost", 8080) == "ws://localhost:8080/repl"


class TestBrowserCode:
    """Tests for the browser snippet."""

    def test_embeds_url_and_session(self):
        """Test the snippet connects to the relay and registers as target."""
        code = generate_browser_code("localhost", 8080, "abc123")

        assert 'new WebSocket("ws://localhost:8080/repl")' in code
        assert 'const sessionId = "abc123";' in code
        assert "role: 'target'" in code
        assert "requestId: data.requestId" in code
        assert "window.browserREPL" in code

    def test_session_id_is_quoted_safely(self):
        """Test quotes in a session id cannot break out of the string literal."""
        code = generate_browser_code("localhost", 8080, 'a"b')

        assert 'const sessionId = "a\\"b";' in code


def test_cli_hint():
    """Test the CLI hint names the session and relay address."""
    hint = generate_cli_hint("http://relay.local:9000", 8080, "abc")

    assert hint == (
        "Connect with: browser-repl exec --session abc "
        "--host relay.local --port 9000 --code '<javascript>'"
    )
