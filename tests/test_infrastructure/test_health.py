"""
Tests for launchpad.infrastructure.health
===========================================

What's Being Tested:
    - TcpHealthCheck against a real local asyncio server
    - HttpHealthCheck with aiohttp.ClientSession patched
    - CommandHealthCheck through a ScriptedCommandRunner
    - wait_until_healthy: attempt counting, bounded wait, error details
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import aiohttp
import pytest

from launchpad.core.exceptions import CommandError, HealthCheckError
from launchpad.infrastructure.command_runner import ScriptedCommandRunner
from launchpad.infrastructure.health import (
    CommandHealthCheck,
    HttpHealthCheck,
    TcpHealthCheck,
    wait_until_healthy,
)


# =============================================================================
# Helpers
# =============================================================================
def _async_context(value) -> MagicMock:
    """MagicMock usable as ``async with ... as value``."""
    context = MagicMock()
    context.__aenter__ = AsyncMock(return_value=value)
    context.__aexit__ = AsyncMock(return_value=False)
    return context


def _client_session(status: int = 200, error: Exception = None) -> MagicMock:
    """Stand-in for aiohttp.ClientSession answering GET with ``status``."""
    session = MagicMock()
    if error is not None:
        session.get = MagicMock(side_effect=error)
    else:
        session.get = MagicMock(return_value=_async_context(MagicMock(status=status)))
    return MagicMock(return_value=_async_context(session))


# =============================================================================
# Tests: TcpHealthCheck
# =============================================================================
class TestTcpHealthCheck:
    """TCP connect check."""

    async def test_healthy_when_port_accepts(self) -> None:
        async def handle(reader, writer):
            writer.close()

        server = await asyncio.start_server(handle, "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]
        try:
            assert await TcpHealthCheck("127.0.0.1", port).check() is True
        finally:
            server.close()
            await server.wait_closed()

    async def test_unhealthy_when_port_closed(self) -> None:
        server = await asyncio.start_server(lambda r, w: None, "127.0.0.1", 0)
        port = server.sockets[0].getsockname()[1]
        server.close()
        await server.wait_closed()

        assert await TcpHealthCheck("127.0.0.1", port).check() is False

    def test_target(self) -> None:
        assert TcpHealthCheck("db", 27017).target == "tcp://db:27017"


# =============================================================================
# Tests: HttpHealthCheck
# =============================================================================
class TestHttpHealthCheck:
    """HTTP status check."""

    async def test_expected_status(self) -> None:
        with patch("launchpad.infrastructure.health.aiohttp.ClientSession", _client_session(200)):
            assert await HttpHealthCheck("http://app/health").check() is True

    async def test_unexpected_status(self) -> None:
        with patch("launchpad.infrastructure.health.aiohttp.ClientSession", _client_session(503)):
            assert await HttpHealthCheck("http://app/health").check() is False

    async def test_connection_error(self) -> None:
        factory = _client_session(error=aiohttp.ClientConnectionError("refused"))
        with patch("launchpad.infrastructure.health.aiohttp.ClientSession", factory):
            assert await HttpHealthCheck("http://app/health").check() is False

    def test_target(self) -> None:
        assert HttpHealthCheck("http://app/health").target == "http://app/health"


# =============================================================================
# Tests: CommandHealthCheck
# =============================================================================
class TestCommandHealthCheck:
    """Probe command exit code."""

    async def test_exit_zero_is_healthy(self) -> None:
        runner = ScriptedCommandRunner()
        check = CommandHealthCheck(runner, ["mongosh", "--eval", "ping"])

        assert await check.check() is True
        assert runner.calls[0]["timeout"] == 10.0
        assert runner.calls[0]["cwd"] is None

    async def test_runs_in_working_directory(self) -> None:
        """Compose health commands resolve the compose file relative to cwd."""
        runner = ScriptedCommandRunner()
        check = CommandHealthCheck(runner, ["docker", "compose", "exec", "-T", "mongodb"], cwd="/src/app")

        await check.check()
        assert runner.calls[0]["cwd"] == "/src/app"

    async def test_non_zero_is_unhealthy(self) -> None:
        runner = ScriptedCommandRunner()
        runner.on("mongosh", exit_code=1)

        assert await CommandHealthCheck(runner, ["mongosh"]).check() is False

    async def test_command_error_is_unhealthy(self) -> None:
        runner = ScriptedCommandRunner()
        runner.fail("mongosh", CommandError("not found", command=["mongosh"]))

        assert await CommandHealthCheck(runner, ["mongosh"]).check() is False


# =============================================================================
# Tests: wait_until_healthy
# =============================================================================
class TestWaitUntilHealthy:
    """Bounded polling."""

    async def test_returns_attempt_number(self, make_health_check) -> None:
        check = make_health_check([False, False, True])

        attempt = await wait_until_healthy(check, interval_seconds=0.001, max_attempts=5)
        assert attempt == 3
        assert check.calls == 3

    async def test_healthy_first_time(self, healthy) -> None:
        assert await wait_until_healthy(healthy, interval_seconds=0.001) == 1

    async def test_gives_up_after_max_attempts(self, make_health_check) -> None:
        check = make_health_check([False])

        with pytest.raises(HealthCheckError) as exc_info:
            await wait_until_healthy(check, interval_seconds=0.001, max_attempts=4)

        assert check.calls == 4
        assert exc_info.value.error_code == "HEALTH_CHECK_TIMEOUT"
        assert exc_info.value.details["attempts"] == 4
        assert exc_info.value.details["target"] == "stub://mongodb"

    async def test_max_attempts_must_be_positive(self, healthy) -> None:
        with pytest.raises(ValueError):
            await wait_until_healthy(healthy, max_attempts=0)
