"""
launchpad.core.exceptions - Custom Exception Hierarchy
========================================================

Structured exception hierarchy for Launchpad. Every pipeline stage raises
its own error type so the engine can record exactly which stage failed
and why.

Exception Hierarchy:
    LaunchpadError (base)
        ├── ConfigurationError       - Missing/invalid settings (any stage)
        ├── StageError               - Base for stage failures
        │     ├── BuildError              - docker build failed
        │     ├── TestFailure             - test suite exited non-zero
        │     ├── PublishError            - registry auth/push failed
        │     ├── ProvisioningError       - terraform failed
        │     └── ConfigurationApplyError - ansible failed
        ├── CommandError             - An external tool could not run / exited non-zero
        ├── HealthCheckError         - A dependency never reported healthy
        ├── StateTransitionError     - Illegal pipeline state transition
        └── NotificationError        - Notification delivery failed

Propagation Policy:
    Every error is fatal to the current run. Nothing is retried or recovered
    locally; the PipelineEngine records the error, skips the remaining
    stages and sends the single failure notification.

    Stage raises CommandError
        → BaseStage wraps it into the stage's own error class
        → PipelineEngine marks the run FAILED
        → Notifier reports once

Usage:
    >>> from launchpad.core.exceptions import PublishError
    >>> raise PublishError(
    ...     message="docker push was rejected",
    ...     error_code="PUSH_FAILED",
    ...     details={"image": "acme/api:42"},
    ... )
"""

from __future__ import annotations

from typing import Any, Optional


# =============================================================================
# Base Exception
# =============================================================================
class LaunchpadError(Exception):
    """Base exception for all Launchpad errors.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code, UPPER_SNAKE_CASE
            (e.g., "MISSING_SETTING", "COMMAND_TIMEOUT").
        details: Arbitrary dict with additional debugging context.

    Example:
        >>> try:
        ...     await engine.run(request)
        ... except LaunchpadError as e:
        ...     print(f"[{e.error_code}] {e.message}")
    """

    def __init__(
        self,
        message: str,
        error_code: str = "UNKNOWN_ERROR",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)

        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Serialize this exception to a dictionary.

        Used for structured logs and for the error recorded in PipelineState.

        Returns:
            Dictionary with error_type, message, error_code, and details.
        """
        return {
            "error_type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


# =============================================================================
# Configuration Error
# =============================================================================
# A configuration error is never a logic error: a required value is absent
# or malformed. It fails the current stage immediately with no retry.
# =============================================================================
class ConfigurationError(LaunchpadError):
    """Raised when a required setting is missing or invalid.

    Common Causes:
        - Unknown target environment name
        - Missing database URL for an environment
        - Registry credentials not set before publishing
        - Malformed launchpad.yaml

    Example:
        >>> raise ConfigurationError(
        ...     message="Setting 'database_url' is missing for 'production'",
        ...     error_code="MISSING_SETTING",
        ...     details={"environment": "production", "key": "database_url"},
        ... )
    """

    def __init__(
        self,
        message: str,
        error_code: str = "CONFIG_ERROR",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message=message, error_code=error_code, details=details)


# =============================================================================
# Stage Errors
# =============================================================================
# One subclass per pipeline stage. Each carries the stage name so the
# engine and the notifier can report where the run stopped.
# =============================================================================
class StageError(LaunchpadError):
    """Base class for failures raised by a pipeline stage.

    Attributes:
        stage: Name of the stage that failed (StageName value).
    """

    default_stage: str = "unknown"
    default_code: str = "STAGE_ERROR"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
        stage: Optional[str] = None,
    ) -> None:
        self.stage = stage or self.default_stage

        enriched_details = details or {}
        enriched_details["stage"] = self.stage

        super().__init__(
            message=message,
            error_code=error_code or self.default_code,
            details=enriched_details,
        )


class BuildError(StageError):
    """Raised when the container image cannot be built."""

    default_stage = "build"
    default_code = "BUILD_FAILED"


class TestFailure(StageError):
    """Raised when the test suite exits non-zero.

    Raised only after the ephemeral dependencies have been torn down.
    """

    # Keep pytest from collecting this class as a test case.
    __test__ = False

    default_stage = "test"
    default_code = "TESTS_FAILED"


class PublishError(StageError):
    """Raised when registry authentication, tagging or push fails."""

    default_stage = "publish"
    default_code = "PUBLISH_FAILED"


class ProvisioningError(StageError):
    """Raised when Terraform fails or its outputs are unusable.

    No rollback is attempted: partially-applied infrastructure is left
    as Terraform left it.
    """

    default_stage = "provision"
    default_code = "PROVISIONING_FAILED"


class ConfigurationApplyError(StageError):
    """Raised when remote configuration (Ansible) fails on the target host."""

    default_stage = "configure"
    default_code = "CONFIGURATION_APPLY_FAILED"


# =============================================================================
# Command Error
# =============================================================================
# Raised by the CommandRunner. Stages never let it escape as-is: BaseStage
# wraps it into the stage's own error class, keeping it as __cause__.
# =============================================================================
class CommandError(LaunchpadError):
    """Raised when an external tool cannot be run or exits non-zero.

    Attributes:
        command: The (redacted) argv that was executed.
        exit_code: Process exit code, or None if it never ran / was killed.
        stderr: Captured standard error (truncated in details).

    Example:
        >>> raise CommandError(
        ...     message="docker exited with code 1",
        ...     command=["docker", "push", "acme/api:42"],
        ...     exit_code=1,
        ...     stderr="denied: requested access to the resource is denied",
        ... )
    """

    def __init__(
        self,
        message: str,
        command: list[str],
        exit_code: Optional[int] = None,
        stderr: str = "",
        error_code: str = "COMMAND_FAILED",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        enriched_details = details or {}
        enriched_details["command"] = " ".join(command)
        enriched_details["exit_code"] = exit_code
        if stderr:
            enriched_details["stderr"] = stderr[-2000:]

        super().__init__(message=message, error_code=error_code, details=enriched_details)

        self.command = command
        self.exit_code = exit_code
        self.stderr = stderr


class HealthCheckError(LaunchpadError):
    """Raised when a dependency does not become healthy within the poll budget."""

    def __init__(
        self,
        message: str,
        error_code: str = "HEALTH_CHECK_TIMEOUT",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message=message, error_code=error_code, details=details)


class StateTransitionError(LaunchpadError):
    """Raised when the pipeline state machine is asked for an illegal move.

    Attributes:
        current: Status the run is in.
        requested: Status that was requested.
    """

    def __init__(
        self,
        current: str,
        requested: str,
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        enriched_details = details or {}
        enriched_details["current"] = current
        enriched_details["requested"] = requested

        super().__init__(
            message=f"Illegal pipeline transition: {current} -> {requested}",
            error_code="ILLEGAL_TRANSITION",
            details=enriched_details,
        )

        self.current = current
        self.requested = requested


class NotificationError(LaunchpadError):
    """Raised by a notifier when the message could not be delivered.

    The PipelineEngine logs and swallows this error: notification is
    best-effort and never changes the outcome of a run.
    """

    def __init__(
        self,
        message: str,
        error_code: str = "NOTIFICATION_FAILED",
        details: Optional[dict[str, Any]] = None,
    ) -> None:
        super().__init__(message=message, error_code=error_code, details=details)
