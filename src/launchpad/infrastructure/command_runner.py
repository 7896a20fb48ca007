"""
launchpad.infrastructure.command_runner - External Tool Invocation
====================================================================

Every stage does its work by running an external tool (docker, terraform,
ansible-playbook). This module is the single seam through which those
tools are invoked.

    ┌──────────────┐   run(["docker", "build", ...])   ┌──────────────────────┐
    │ ImageBuilder │ ────────────────────────────────→ │    CommandRunner     │
    │ TestRunner   │                                   │                      │
    │ Provisioner  │ ←──────────── CommandResult ───── │ Subprocess / Scripted│
    └──────────────┘                                   └──────────────────────┘

Implementations:
    - CommandRunner (ABC):       The contract
    - SubprocessCommandRunner:   asyncio subprocesses (production)
    - ScriptedCommandRunner:     Scripted results + call history (tests, dry runs)

Secrets:
    Secrets go through ``stdin`` or ``env`` and never through argv. Values
    listed in ``redact`` are masked in logs, results and errors.
"""

from __future__ import annotations

import asyncio
import os
import shlex
import time
from abc import ABC, abstractmethod
from collections import deque
from typing import Any, Mapping, Optional, Sequence, Union

import structlog

from launchpad.core.exceptions import CommandError
from launchpad.core.models import CommandResult


# =============================================================================
# Logger
# =============================================================================
logger = structlog.get_logger()


REDACTED = "***"

CommandPrefix = Union[str, Sequence[str]]


def redact_args(args: Sequence[str], secrets: Sequence[str] = ()) -> list[str]:
    """Return a copy of ``args`` with every secret value masked."""
    masked = []
    for arg in args:
        for secret in secrets:
            if secret:
                arg = arg.replace(secret, REDACTED)
        masked.append(arg)
    return masked


class CommandRunner(ABC):
    """Abstract runner for external commands.

    Subclasses implement ``_execute``; ``run`` adds redaction, logging and
    the non-zero-exit check shared by every implementation.
    """

    async def run(
        self,
        args: Sequence[str],
        *,
        env: Optional[Mapping[str, str]] = None,
        cwd: Optional[str] = None,
        stdin: Optional[str] = None,
        timeout: Optional[float] = None,
        check: bool = True,
        redact: Sequence[str] = (),
    ) -> CommandResult:
        """Run one command and capture its output.

        Args:
            args: The argv to execute. args[0] is the executable.
            env: Extra environment variables, merged over the current ones.
            cwd: Working directory.
            stdin: Text written to the process's standard input.
            timeout: Seconds before the process is killed.
            check: Raise CommandError when the exit code is non-zero.
            redact: Secret values to mask in logs, results and errors.

        Returns:
            The CommandResult (argv redacted).

        Raises:
            CommandError: ``COMMAND_FAILED`` (non-zero exit with check=True),
                ``COMMAND_TIMEOUT`` or ``COMMAND_NOT_FOUND``.
        """
        if not args:
            raise ValueError("Cannot run an empty command")

        display = redact_args(args, redact)
        logger.debug("command_starting", command=" ".join(display), cwd=cwd, timeout=timeout)

        result = await self._execute(
            list(args),
            display=display,
            env=dict(env) if env else None,
            cwd=cwd,
            stdin=stdin,
            timeout=timeout,
        )

        logger.info(
            "command_finished",
            command=" ".join(display),
            exit_code=result.exit_code,
            duration_seconds=round(result.duration_seconds, 3),
        )

        if check and not result.succeeded:
            raise CommandError(
                message=f"{display[0]} exited with code {result.exit_code}",
                command=display,
                exit_code=result.exit_code,
                stderr=result.stderr,
            )
        return result

    @abstractmethod
    async def _execute(
        self,
        args: list[str],
        *,
        display: list[str],
        env: Optional[dict[str, str]],
        cwd: Optional[str],
        stdin: Optional[str],
        timeout: Optional[float],
    ) -> CommandResult:
        """Execute the command and return its result, whatever the exit code."""


# =============================================================================
# SubprocessCommandRunner
# =============================================================================
class SubprocessCommandRunner(CommandRunner):
    """Runs commands as asyncio subprocesses.

    Example:
        >>> runner = SubprocessCommandRunner()
        >>> result = await runner.run(["docker", "version", "--format", "{{.Server.Version}}"])
        >>> result.stdout.strip()
        '27.1.1'
    """

    async def _execute(
        self,
        args: list[str],
        *,
        display: list[str],
        env: Optional[dict[str, str]],
        cwd: Optional[str],
        stdin: Optional[str],
        timeout: Optional[float],
    ) -> CommandResult:
        merged_env = {**os.environ, **env} if env else None
        started = time.monotonic()

        try:
            process = await asyncio.create_subprocess_exec(
                *args,
                stdin=asyncio.subprocess.PIPE if stdin is not None else asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=merged_env,
                cwd=cwd,
            )
        except FileNotFoundError as e:
            raise CommandError(
                message=f"Executable not found: {args[0]}",
                command=display,
                error_code="COMMAND_NOT_FOUND",
            ) from e

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(stdin.encode() if stdin is not None else None),
                timeout=timeout,
            )
        except asyncio.TimeoutError as e:
            process.kill()
            await process.wait()
            raise CommandError(
                message=f"{args[0]} did not finish within {timeout}s",
                command=display,
                error_code="COMMAND_TIMEOUT",
                details={"timeout_seconds": timeout},
            ) from e
        except asyncio.CancelledError:
            process.kill()
            await process.wait()
            raise

        return CommandResult(
            command=display,
            exit_code=process.returncode if process.returncode is not None else -1,
            stdout=stdout.decode(errors="replace"),
            stderr=stderr.decode(errors="replace"),
            duration_seconds=time.monotonic() - started,
        )


# =============================================================================
# ScriptedCommandRunner
# =============================================================================
# Test double in the spirit of a mock provider: nothing is executed, every
# call is recorded, and responses are scripted per command prefix.
#
#   runner.on("terraform output", stdout='{"public_ip": {"value": "1.2.3.4"}}')
#   runner.queue("docker compose run", exit_code=1)      # one-shot
#   runner.fail("docker push", CommandError(...))        # raise instead
# =============================================================================
class ScriptedCommandRunner(CommandRunner):
    """Command runner that returns scripted results without executing anything.

    Matching:
        A call matches a prefix when it runs the same executable and the
        remaining prefix tokens appear in its argv in the same order, with
        other arguments allowed in between ("docker compose down" matches
        "docker compose -p ci -f test.yml down --volumes"). One-shot
        responses (``queue``) are consumed before persistent ones
        (``on``/``fail``); the longest matching prefix wins. Unmatched calls succeed
        with empty output.

    Attributes:
        calls: Every call, in order, as dicts with "args", "env", "cwd",
            "stdin" and "timeout".
    """

    def __init__(self) -> None:
        self._persistent: dict[tuple[str, ...], dict[str, Any]] = {}
        self._one_shot: dict[tuple[str, ...], deque[dict[str, Any]]] = {}
        self.calls: list[dict[str, Any]] = []

    # -------------------------------------------------------------------------
    # Scripting
    # -------------------------------------------------------------------------
    def on(
        self,
        prefix: CommandPrefix,
        *,
        exit_code: int = 0,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        """Answer every call matching ``prefix`` with the given result."""
        self._persistent[_tokens(prefix)] = {
            "exit_code": exit_code,
            "stdout": stdout,
            "stderr": stderr,
        }

    def queue(
        self,
        prefix: CommandPrefix,
        *,
        exit_code: int = 0,
        stdout: str = "",
        stderr: str = "",
    ) -> None:
        """Answer the next call matching ``prefix`` once with the given result."""
        self._one_shot.setdefault(_tokens(prefix), deque()).append(
            {"exit_code": exit_code, "stdout": stdout, "stderr": stderr}
        )

    def fail(self, prefix: CommandPrefix, error: BaseException) -> None:
        """Raise ``error`` for every call matching ``prefix``."""
        self._persistent[_tokens(prefix)] = {"error": error}

    # -------------------------------------------------------------------------
    # Inspection
    # -------------------------------------------------------------------------
    def calls_matching(self, prefix: CommandPrefix) -> list[dict[str, Any]]:
        """All recorded calls whose argv matches ``prefix``."""
        tokens = _tokens(prefix)
        return [call for call in self.calls if _matches(call["args"], tokens)]

    @property
    def commands(self) -> list[str]:
        """Recorded calls rendered as shell-like strings."""
        return [" ".join(call["args"]) for call in self.calls]

    def reset(self) -> None:
        """Forget all scripts and recorded calls."""
        self._persistent.clear()
        self._one_shot.clear()
        self.calls.clear()

    # -------------------------------------------------------------------------
    # CommandRunner
    # -------------------------------------------------------------------------
    async def _execute(
        self,
        args: list[str],
        *,
        display: list[str],
        env: Optional[dict[str, str]],
        cwd: Optional[str],
        stdin: Optional[str],
        timeout: Optional[float],
    ) -> CommandResult:
        self.calls.append(
            {"args": args, "env": env or {}, "cwd": cwd, "stdin": stdin, "timeout": timeout}
        )

        response = self._lookup(args)
        if "error" in response:
            raise response["error"]

        return CommandResult(
            command=display,
            exit_code=response["exit_code"],
            stdout=response["stdout"],
            stderr=response["stderr"],
        )

    def _lookup(self, args: list[str]) -> dict[str, Any]:
        for prefix in sorted(self._one_shot, key=len, reverse=True):
            pending = self._one_shot[prefix]
            if pending and _matches(args, prefix):
                return pending.popleft()

        for prefix in sorted(self._persistent, key=len, reverse=True):
            if _matches(args, prefix):
                return self._persistent[prefix]

        return {"exit_code": 0, "stdout": "", "stderr": ""}


def _tokens(prefix: CommandPrefix) -> tuple[str, ...]:
    if isinstance(prefix, str):
        return tuple(shlex.split(prefix))
    return tuple(prefix)


def _matches(args: Sequence[str], prefix: tuple[str, ...]) -> bool:
    if not prefix or not args or args[0] != prefix[0]:
        return False
    remaining = iter(args[1:])
    return all(token in remaining for token in prefix[1:])
