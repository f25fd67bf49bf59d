"""Tests for the RelayRouter."""

import pytest
import pytest_asyncio

from browser_repl.models import Role
from browser_repl.services import Registry, RelayRouter


class TestRegister:
    """Tests for register frame handling."""

    @pytest.mark.asyncio
    async def test_register_acknowledges(self, router: RelayRouter, make_connection):
        """Test a valid register is stored and acknowledged."""
        conn = make_connection()

        await router.dispatch(conn, {"type": "register", "sessionId": "abc", "role": "target"})

        assert router.registry.lookup("abc", Role.TARGET) is conn
        ack = conn.socket.send_json.await_args.args[0]
        assert ack["type"] == "registered"
        assert ack["sessionId"] == "abc"
        assert ack["role"] == "target"
        assert isinstance(ack["timestamp"], int)

    @pytest.mark.asyncio
    async def test_legacy_role_names(self, router: RelayRouter, make_connection):
        """Test browser/cli/mcp map onto target/driver."""
        browser = make_connection()
        cli = make_connection()

        await router.dispatch(browser, {"type": "register", "sessionId": "abc", "role": "browser"})
        await router.dispatch(cli, {"type": "register", "sessionId": "abc", "role": "mcp"})

        assert router.registry.lookup("abc", Role.TARGET) is browser
        assert router.registry.lookup("abc", Role.DRIVER) is cli

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "frame",
        [
            {"type": "register", "role": "target"},
            {"type": "register", "sessionId": "abc"},
            {"type": "register", "sessionId": "abc", "role": "spectator"},
            {"type": "register", "sessionId": "", "role": "target"},
        ],
    )
    async def test_malformed_register_ignored(
        self, router: RelayRouter, make_connection, frame
    ):
        """Test register frames missing sessionId or role leave the peer unregistered."""
        conn = make_connection()

        await router.dispatch(conn, frame)

        assert conn.is_registered is False
        assert router.registry.list_sessions() == {}
        conn.socket.send_json.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_register_evicts_and_closes_previous(
        self, router: RelayRouter, make_connection
    ):
        """Test the previous target is closed before the new one is acknowledged."""
        first = make_connection()
        second = make_connection()
        await router.dispatch(first, {"type": "register", "sessionId": "abc", "role": "target"})

        await router.dispatch(second, {"type": "register", "sessionId": "abc", "role": "target"})

        first.socket.close.assert_awaited_once_with(code=1000)
        second.socket.close.assert_not_awaited()
        assert router.registry.lookup("abc", Role.TARGET) is second

    @pytest.mark.asyncio
    async def test_assigns_session_id_when_enabled(self, registry: Registry, make_connection):
        """Test a register without sessionId gets a generated one when configured."""
        router = RelayRouter(registry, assign_session_ids=True)
        conn = make_connection()

        await router.dispatch(conn, {"type": "register", "role": "target"})

        ack = conn.socket.send_json.await_args.args[0]
        assert len(ack["sessionId"]) == 32
        assert registry.lookup(ack["sessionId"], Role.TARGET) is conn


class TestForwarding:
    """Tests for execute and result routing."""

    @pytest_asyncio.fixture
    async def pair(self, router: RelayRouter, make_connection):
        target = make_connection()
        driver = make_connection()
        await router.dispatch(target, {"type": "register", "sessionId": "abc", "role": "target"})
        await router.dispatch(driver, {"type": "register", "sessionId": "abc", "role": "driver"})
        target.socket.send_json.reset_mock()
        driver.socket.send_json.reset_mock()
        return target, driver

    @pytest.mark.asyncio
    async def test_execute_forwarded_to_target(self, router: RelayRouter, pair):
        """Test execute reaches the target with code and requestId unchanged."""
        target, driver = pair

        await router.dispatch(
            driver,
            {"type": "execute", "sessionId": "abc", "code": "1+1", "requestId": 7},
        )

        target.socket.send_json.assert_awaited_once_with(
            {"type": "execute", "sessionId": "abc", "code": "1+1", "requestId": 7}
        )
        driver.socket.send_json.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_result_forwarded_to_driver(self, router: RelayRouter, pair):
        """Test result reaches the driver with payload and requestId unchanged."""
        target, driver = pair
        payload = {"nested": [1, "two", None]}

        await router.dispatch(
            target,
            {
                "type": "result",
                "sessionId": "abc",
                "result": payload,
                "error": None,
                "requestId": 7,
                "timestamp": 123,
            },
        )

        driver.socket.send_json.assert_awaited_once_with(
            {
                "type": "result",
                "sessionId": "abc",
                "result": payload,
                "error": None,
                "requestId": 7,
            }
        )

    @pytest.mark.asyncio
    async def test_error_result_forwarded(self, router: RelayRouter, pair):
        """Test evaluation errors travel as ordinary result frames."""
        target, driver = pair

        await router.dispatch(
            target,
            {"type": "result", "result": None, "error": "x is not defined", "requestId": 3},
        )

        sent = driver.socket.send_json.await_args.args[0]
        assert sent["error"] == "x is not defined"
        assert sent["result"] is None
        assert sent["requestId"] == 3

    @pytest.mark.asyncio
    async def test_session_taken_from_sender(self, router: RelayRouter, pair):
        """Test a forged sessionId in the frame cannot reach another session."""
        target, driver = pair

        await router.dispatch(
            driver,
            {"type": "execute", "sessionId": "other", "code": "1", "requestId": 1},
        )

        sent = target.socket.send_json.await_args.args[0]
        assert sent["sessionId"] == "abc"

    @pytest.mark.asyncio
    async def test_execute_without_target_dropped(self, router: RelayRouter, make_connection):
        """Test execute with no target in the session gets no reply."""
        driver = make_connection()
        await router.dispatch(driver, {"type": "register", "sessionId": "abc", "role": "driver"})
        driver.socket.send_json.reset_mock()

        await router.dispatch(driver, {"type": "execute", "code": "1", "requestId": 1})

        driver.socket.send_json.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_result_without_driver_dropped(self, router: RelayRouter, make_connection):
        """Test result with no driver in the session is dropped."""
        target = make_connection()
        await router.dispatch(target, {"type": "register", "sessionId": "abc", "role": "target"})
        target.socket.send_json.reset_mock()

        await router.dispatch(target, {"type": "result", "result": 1, "requestId": 1})

        target.socket.send_json.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_execute_from_target_dropped(self, router: RelayRouter, pair):
        """Test only drivers may send execute."""
        target, driver = pair

        await router.dispatch(target, {"type": "execute", "code": "1", "requestId": 1})

        target.socket.send_json.assert_not_awaited()
        driver.socket.send_json.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_result_from_driver_dropped(self, router: RelayRouter, pair):
        """Test only targets may send result."""
        target, driver = pair

        await router.dispatch(driver, {"type": "result", "result": 1, "requestId": 1})

        target.socket.send_json.assert_not_awaited()
        driver.socket.send_json.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unregistered_sender_dropped(self, router: RelayRouter, pair, make_connection):
        """Test frames from a connection that never registered go nowhere."""
        target, _ = pair
        stranger = make_connection()

        await router.dispatch(stranger, {"type": "execute", "code": "1", "requestId": 1})

        target.socket.send_json.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_execute_goes_to_latest_target(self, router: RelayRouter, pair, make_connection):
        """Test after a target switch only the new target receives execute."""
        old_target, driver = pair
        new_target = make_connection()
        await router.dispatch(
            new_target, {"type": "register", "sessionId": "abc", "role": "target"}
        )

        await router.dispatch(driver, {"type": "execute", "code": "1", "requestId": 2})

        old_target.socket.send_json.assert_not_awaited()
        sent = new_target.socket.send_json.await_args.args[0]
        assert sent["type"] == "execute"
        assert sent["requestId"] == 2

    @pytest.mark.asyncio
    async def test_evicted_connection_frames_dropped(
        self, router: RelayRouter, pair, make_connection
    ):
        """Test results still arriving on an evicted target are not forwarded."""
        old_target, driver = pair
        new_target = make_connection()
        await router.dispatch(
            new_target, {"type": "register", "sessionId": "abc", "role": "target"}
        )

        await router.dispatch(old_target, {"type": "result", "result": 1, "requestId": 1})

        driver.socket.send_json.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_send_failure_is_swallowed(self, router: RelayRouter, pair):
        """Test a broken counterpart socket does not raise into the sender's loop."""
        target, driver = pair
        target.socket.send_json.side_effect = RuntimeError("socket gone")

        await router.dispatch(driver, {"type": "execute", "code": "1", "requestId": 1})

        target.socket.send_json.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_unknown_type_ignored(self, router: RelayRouter, pair):
        """Test unknown frame types are ignored."""
        target, driver = pair

        await router.dispatch(driver, {"type": "ping"})
        await router.dispatch(driver, {"no": "type"})

        target.socket.send_json.assert_not_awaited()
        driver.socket.send_json.assert_not_awaited()
