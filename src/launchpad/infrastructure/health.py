"""
launchpad.infrastructure.health - Dependency Health Checks
============================================================

A health check answers whether a dependency is ready, and
``wait_until_healthy`` polls it with a bounded number of attempts. The
Test Runner uses it to gate the test suite on the ephemeral database.

Checks:
    - TcpHealthCheck:      protocol-level: can a TCP connection be opened?
    - HttpHealthCheck:     GET a URL and compare the status code (aiohttp)
    - CommandHealthCheck:  run a probe command, healthy on exit code 0

Bounded Wait:
    interval_seconds x max_attempts is the longest the pipeline blocks.
    After the last failed probe, HealthCheckError is raised.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Optional, Sequence

import aiohttp
import structlog

from launchpad.core.exceptions import CommandError, HealthCheckError
from launchpad.infrastructure.command_runner import CommandRunner


logger = structlog.get_logger()


class HealthCheck(ABC):
    """One probe of a dependency."""

    @property
    @abstractmethod
    def target(self) -> str:
        """Human-readable description of what is probed."""

    @abstractmethod
    async def check(self) -> bool:
        """Return True if the dependency is healthy right now.

        Implementations return False for expected "not ready yet" failures
        (connection refused, non-matching status) instead of raising.
        """


class TcpHealthCheck(HealthCheck):
    """Healthy when a TCP connection to host:port succeeds."""

    def __init__(self, host: str, port: int, connect_timeout: float = 2.0) -> None:
        self._host = host
        self._port = port
        self._connect_timeout = connect_timeout

    @property
    def target(self) -> str:
        return f"tcp://{self._host}:{self._port}"

    async def check(self) -> bool:
        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(self._host, self._port),
                timeout=self._connect_timeout,
            )
        except (OSError, asyncio.TimeoutError):
            return False

        writer.close()
        await writer.wait_closed()
        return True


class HttpHealthCheck(HealthCheck):
    """Healthy when GET url answers with the expected status."""

    def __init__(
        self,
        url: str,
        expected_status: int = 200,
        request_timeout: float = 2.0,
    ) -> None:
        self._url = url
        self._expected_status = expected_status
        self._request_timeout = request_timeout

    @property
    def target(self) -> str:
        return self._url

    async def check(self) -> bool:
        timeout = aiohttp.ClientTimeout(total=self._request_timeout)
        try:
            async with aiohttp.ClientSession(timeout=timeout) as session:
                async with session.get(self._url) as response:
                    return response.status == self._expected_status
        except (aiohttp.ClientError, asyncio.TimeoutError):
            return False


class CommandHealthCheck(HealthCheck):
    """Healthy when a probe command exits zero.

    Example:
        >>> CommandHealthCheck(runner, [
        ...     "docker", "compose", "exec", "-T", "mongodb",
        ...     "mongosh", "--quiet", "--eval", "db.adminCommand('ping')",
        ... ])
    """

    def __init__(
        self,
        runner: CommandRunner,
        args: Sequence[str],
        timeout: float = 10.0,
        cwd: Optional[str] = None,
    ) -> None:
        self._runner = runner
        self._args = list(args)
        self._timeout = timeout
        self._cwd = cwd

    @property
    def target(self) -> str:
        return " ".join(self._args)

    async def check(self) -> bool:
        try:
            result = await self._runner.run(
                self._args, cwd=self._cwd, timeout=self._timeout, check=False
            )
        except CommandError:
            return False
        return result.succeeded


async def wait_until_healthy(
    check: HealthCheck,
    *,
    interval_seconds: float = 2.0,
    max_attempts: int = 30,
) -> int:
    """Poll ``check`` until it passes or the attempt budget runs out.

    Args:
        check: The probe to run.
        interval_seconds: Sleep between failed probes.
        max_attempts: Number of probes before giving up (>= 1).

    Returns:
        The attempt number (1-based) on which the check passed.

    Raises:
        HealthCheckError: If no probe passed within ``max_attempts``.
    """
    if max_attempts < 1:
        raise ValueError("max_attempts must be at least 1")

    log = logger.bind(component="health", target=check.target)

    for attempt in range(1, max_attempts + 1):
        if await check.check():
            log.info("dependency_healthy", attempt=attempt)
            return attempt

        log.debug("dependency_not_ready", attempt=attempt, max_attempts=max_attempts)
        if attempt < max_attempts:
            await asyncio.sleep(interval_seconds)

    log.warning("dependency_never_healthy", attempts=max_attempts)
    raise HealthCheckError(
        message=f"{check.target} not healthy after {max_attempts} attempts",
        details={
            "target": check.target,
            "attempts": max_attempts,
            "interval_seconds": interval_seconds,
        },
    )
