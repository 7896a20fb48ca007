"""
launchpad.stages.base - Abstract Base Stage
=============================================

BaseStage is the foundation every pipeline stage inherits from. It uses
the Template Method pattern: the lifecycle is fixed here, and each stage
only implements the part that actually talks to its tool.

    ┌─────────────────────────────────────────────────────┐
    │  BaseStage.execute(context)     ← Public API        │
    │  ┌──────────────────────────────────────────────┐   │
    │  │ 1. _validate(context)        ← Override this │   │
    │  │ 2. log stage_starting                        │   │
    │  │ 3. _run(context)             ← Override this │   │
    │  │ 4. log stage_completed / stage_failed        │   │
    │  │ 5. return the new PipelineContext            │   │
    │  └──────────────────────────────────────────────┘   │
    └─────────────────────────────────────────────────────┘

Error Contract:
    - ConfigurationError and StageError subclasses pass through unchanged.
    - Anything else (CommandError, HealthCheckError, unexpected exceptions)
      is wrapped into the stage's own ``error_class``, keeping the original
      as ``__cause__`` and its error_code/details.
    - Nothing is retried. The engine decides what a failure means.

Subclass Contract:
    class MyStage(BaseStage):
        name = StageName.BUILD
        error_class = BuildError

        async def _run(self, context):
            await self._runner.run([...])
            return context.model_copy(update={...})
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Optional

import structlog

from launchpad.core.config import PipelineConfig
from launchpad.core.enums import PipelineStatus, StageName
from launchpad.core.environment import EnvironmentStore
from launchpad.core.exceptions import ConfigurationError, LaunchpadError, StageError
from launchpad.core.models import PipelineContext, PipelineRequest
from launchpad.core.state import STAGE_STATUS
from launchpad.infrastructure.command_runner import CommandRunner


# =============================================================================
# Logger Setup
# =============================================================================
# Each stage binds its name to the logger so every log line carries
# {"stage": "build", "component": "build_stage"}.
# =============================================================================
logger = structlog.get_logger()


class BaseStage(ABC):
    """Abstract base class for all pipeline stages.

    What BaseStage Handles:
        - Input validation hook
        - Structured logging with stage and run context
        - Mapping foreign errors into the stage's error type
        - Timing

    What Subclasses Must Define:
        - ``name``: the StageName
        - ``error_class``: the StageError subclass raised on failure
        - ``_run(context)``: the work itself

    Attributes:
        _config: The frozen pipeline configuration.
        _runner: CommandRunner used for every external tool call.
        _environments: The Environment Configuration Store.
        _logger: Structured logger bound with the stage name.
    """

    name: ClassVar[StageName]
    error_class: ClassVar[type[StageError]]

    def __init__(
        self,
        config: PipelineConfig,
        runner: CommandRunner,
        *,
        environments: Optional[EnvironmentStore] = None,
    ) -> None:
        """Initialize the stage.

        Args:
            config: Pipeline configuration, shared read-only by all stages.
            runner: Runner for external commands.
            environments: Environment store. Defaults to the one built from
                ``config.environments``.
        """
        self._config = config
        self._runner = runner
        self._environments = environments or config.environment_store()
        self._logger = logger.bind(
            component=f"{self.name.value}_stage",
            stage=self.name.value,
        )

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def status(self) -> PipelineStatus:
        """Pipeline status while this stage runs."""
        return STAGE_STATUS[self.name]

    @property
    def runner(self) -> CommandRunner:
        return self._runner

    # =========================================================================
    # Template Method
    # =========================================================================

    async def execute(self, context: PipelineContext) -> PipelineContext:
        """Run the stage and return the context extended with its output.

        Args:
            context: Outputs of the stages that already ran.

        Returns:
            A new PipelineContext with this stage's output filled in.

        Raises:
            ConfigurationError: If a required input or setting is missing.
            StageError: The stage's ``error_class`` on any other failure.
        """
        log = self._logger.bind(
            run_id=context.run_id,
            build_number=context.request.build_number,
            environment=context.request.environment,
        )
        log.info("stage_starting")
        started = time.monotonic()

        try:
            await self._validate(context)
            result = await self._run(context)

        except (ConfigurationError, StageError) as e:
            log.error(
                "stage_failed",
                error_code=e.error_code,
                error=e.message,
                duration_seconds=round(time.monotonic() - started, 3),
            )
            raise

        except Exception as e:
            wrapped = self._wrap_error(e)
            log.error(
                "stage_failed",
                error_code=wrapped.error_code,
                error=wrapped.message,
                cause=type(e).__name__,
                duration_seconds=round(time.monotonic() - started, 3),
            )
            raise wrapped from e

        log.info(
            "stage_completed",
            duration_seconds=round(time.monotonic() - started, 3),
        )
        return result

    # =========================================================================
    # Hooks
    # =========================================================================

    async def preflight(self, request: PipelineRequest) -> None:
        """Checks that need no earlier stage output.

        The engine calls this on every stage before the first one runs, so
        a request that can never succeed fails before any tool executes.
        Default: nothing to check.
        """

    async def _validate(self, context: PipelineContext) -> None:
        """Check inputs before any tool runs. Default: nothing to check."""

    @abstractmethod
    async def _run(self, context: PipelineContext) -> PipelineContext:
        """Do the stage's work and return the extended context."""

    # =========================================================================
    # Helpers
    # =========================================================================

    def requires(self, context: PipelineContext, field: str) -> Any:
        """Return an earlier stage's output, failing if it is missing.

        Raises:
            ConfigurationError: ``MISSING_STAGE_INPUT`` if ``field`` is unset.
        """
        value = getattr(context, field)
        if value is None:
            raise ConfigurationError(
                message=f"Stage '{self.name.value}' needs '{field}' from an earlier stage",
                error_code="MISSING_STAGE_INPUT",
                details={"stage": self.name.value, "input": field},
            )
        return value

    def require_setting(self, value: str, setting: str) -> str:
        """Presence check for a single configuration value.

        Raises:
            ConfigurationError: ``MISSING_SETTING`` if ``value`` is empty.
        """
        if not value:
            raise ConfigurationError(
                message=f"Setting '{setting}' is required by stage '{self.name.value}'",
                error_code="MISSING_SETTING",
                details={"stage": self.name.value, "key": setting},
            )
        return value

    def _wrap_error(self, error: Exception) -> StageError:
        if isinstance(error, LaunchpadError):
            return self.error_class(
                message=f"{self.name.value} stage failed: {error.message}",
                error_code=error.error_code,
                details=dict(error.details),
            )
        return self.error_class(
            message=f"{self.name.value} stage failed: {error}",
            error_code="UNEXPECTED_ERROR",
            details={"exception": type(error).__name__},
        )

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(name={self.name.value!r})"
