"""
launchpad.orchestration.pipeline_engine - Sequential Pipeline Execution
=========================================================================

The PipelineEngine runs one deployment from request to notification. It
owns the state machine: stages only do work and raise on failure; the
engine decides what a failure means.

    ┌────────────────────────────────────────────────────────────────┐
    │                       Pipeline Engine                          │
    │                                                                │
    │  PipelineRequest ──→ pre-flight (environments, stage checks)   │
    │                                                                │
    │   TESTING      ──→ TestRunner                 ─┐               │
    │   BUILDING     ──→ ImageBuilder                │ any failure   │
    │   PUBLISHING   ──→ ImagePublisher              │ ──→ FAILED    │
    │   PROVISIONING ──→ InfrastructureProvisioner   │ (skip rest)   │
    │   CONFIGURING  ──→ ConfigurationApplier       ─┘               │
    │                                                                │
    │   SUCCEEDED | FAILED ──→ Notifier (exactly once) ──→ NOTIFIED  │
    └────────────────────────────────────────────────────────────────┘

Execution Rules:
    1. Strictly sequential; each stage gates the next.
    2. The first failure ends the run: later stages never execute.
    3. The notifier is called exactly once per run, success or failure.
       A delivery failure is logged and never changes the outcome.
    4. Cancellation marks the run FAILED, notifies, and re-raises.
       External state (containers, cloud resources) is left as it is.
    5. The PipelineState is persisted after every transition.

Usage:
    >>> engine = PipelineEngine(config, stages, notifier, state_manager)
    >>> state = await engine.run(PipelineRequest(build_number=42, environment="production"))
    >>> state.status, state.outcome
    (<PipelineStatus.NOTIFIED: 'notified'>, <PipelineStatus.SUCCEEDED: 'succeeded'>)
"""

from __future__ import annotations

import asyncio
import time
from datetime import datetime, timezone
from typing import Any, Optional, Sequence

import structlog

from launchpad.core.config import PipelineConfig
from launchpad.core.enums import NotificationOutcome, PipelineStatus, StageName
from launchpad.core.environment import EnvironmentStore
from launchpad.core.exceptions import LaunchpadError, NotificationError
from launchpad.core.models import PipelineContext, PipelineRequest
from launchpad.core.state import STAGE_STATUS, TERMINAL_OUTCOMES, PipelineState, advance
from launchpad.integrations.notifications.base import BaseNotifier, Notification
from launchpad.orchestration.state_manager import StateManager
from launchpad.stages.base import BaseStage


# =============================================================================
# Logger Setup
# =============================================================================
logger = structlog.get_logger()


DEFAULT_STAGE_ORDER: tuple[StageName, ...] = (
    StageName.TEST,
    StageName.BUILD,
    StageName.PUBLISH,
    StageName.PROVISION,
    StageName.CONFIGURE,
)

# Status → stage running in it, for reporting where a cancelled run stopped.
_STATUS_STAGE: dict[PipelineStatus, StageName] = {
    status: stage for stage, status in STAGE_STATUS.items()
}


def _error_dict(error: BaseException) -> dict[str, Any]:
    if isinstance(error, LaunchpadError):
        return error.to_dict()
    return {
        "error_type": type(error).__name__,
        "message": str(error) or type(error).__name__,
        "error_code": "UNEXPECTED_ERROR",
        "details": {},
    }


class PipelineEngine:
    """Sequential stage runner with fail-fast semantics.

    Attributes:
        _config: Pipeline configuration.
        _stages: Stages in execution order.
        _notifier: Receives the single end-of-run notification.
        _state_manager: Persists PipelineState snapshots.
        _environments: Store validated before the first stage.
        _logger: Structured logger with engine context.
    """

    def __init__(
        self,
        config: PipelineConfig,
        stages: Sequence[BaseStage],
        notifier: BaseNotifier,
        state_manager: StateManager,
        *,
        environments: Optional[EnvironmentStore] = None,
    ) -> None:
        """Initialize the engine.

        Args:
            config: Pipeline configuration.
            stages: Stages to run. Any subset of DEFAULT_STAGE_ORDER, in
                that order, each at most once.
            notifier: End-of-run notifier.
            state_manager: Snapshot persistence.
            environments: Environment store override.

        Raises:
            ValueError: If the stages are out of order or repeated.
        """
        positions = [DEFAULT_STAGE_ORDER.index(stage.name) for stage in stages]
        if positions != sorted(set(positions)):
            raise ValueError(
                "Stages must follow the order "
                f"{[name.value for name in DEFAULT_STAGE_ORDER]} without repeats, "
                f"got {[stage.name.value for stage in stages]}"
            )

        self._config = config
        self._stages = list(stages)
        self._notifier = notifier
        self._state_manager = state_manager
        self._environments = environments or config.environment_store()
        self._logger = logger.bind(component="pipeline_engine")

    @property
    def stages(self) -> list[BaseStage]:
        return list(self._stages)

    # =========================================================================
    # Main Entry Point
    # =========================================================================

    async def run(self, request: PipelineRequest) -> PipelineState:
        """Execute one pipeline run.

        Args:
            request: Build number and target environment.

        Returns:
            The final PipelineState: status NOTIFIED, outcome SUCCEEDED or
            FAILED. Stage failures are recorded, not raised.

        Raises:
            asyncio.CancelledError: Re-raised after the run was marked
                failed and the notification was sent.
        """
        state = PipelineState(request=request)
        await self._state_manager.save_pipeline_state(state)

        log = self._logger.bind(
            run_id=state.run_id,
            build_number=request.build_number,
            environment=request.environment,
        )
        log.info("pipeline_starting", stages=[stage.name.value for stage in self._stages])

        try:
            state = await self._execute(state)
        except asyncio.CancelledError:
            state = await self._state_manager.get_pipeline_state(state.run_id) or state
            log.warning("pipeline_cancelled", status=state.status.value)
            if state.status not in TERMINAL_OUTCOMES:
                stage = _STATUS_STAGE.get(state.status)
                state = await self._save(
                    advance(
                        state,
                        PipelineStatus.FAILED,
                        failed_stage=stage.value if stage else None,
                        error={
                            "error_type": "CancelledError",
                            "message": "Pipeline run was cancelled",
                            "error_code": "CANCELLED",
                            "details": {},
                        },
                    )
                )
            await self._notify(state)
            raise

        return await self._notify(state)

    # =========================================================================
    # Stage Execution
    # =========================================================================

    async def _execute(self, state: PipelineState) -> PipelineState:
        """Pre-flight, then every stage in order. Returns SUCCEEDED or FAILED."""
        request = state.request
        log = self._logger.bind(run_id=state.run_id, build_number=request.build_number)

        try:
            self._environments.validate()
            self._environments.get(request.environment)
            for stage in self._stages:
                await stage.preflight(request)
        except LaunchpadError as e:
            log.error("pipeline_preflight_failed", error_code=e.error_code, error=e.message)
            return await self._save(
                advance(state, PipelineStatus.FAILED, error=e.to_dict())
            )

        context = PipelineContext(run_id=state.run_id, request=request)

        for stage in self._stages:
            state = await self._save(advance(state, stage.status))
            started_at = datetime.now(timezone.utc)
            started = time.monotonic()

            record: dict[str, Any] = {
                "stage": stage.name.value,
                "started_at": started_at.isoformat(),
            }

            try:
                context = await stage.execute(context)
            except Exception as e:
                error = _error_dict(e)
                record.update(
                    status="failed",
                    completed_at=datetime.now(timezone.utc).isoformat(),
                    duration_seconds=round(time.monotonic() - started, 3),
                    error=error,
                )
                log.error(
                    "pipeline_failed",
                    stage=stage.name.value,
                    error_code=error["error_code"],
                    error=error["message"],
                )
                return await self._save(
                    advance(
                        state,
                        PipelineStatus.FAILED,
                        stage_history=[*state.stage_history, record],
                        failed_stage=stage.name.value,
                        error=error,
                    )
                )

            record.update(
                status="completed",
                completed_at=datetime.now(timezone.utc).isoformat(),
                duration_seconds=round(time.monotonic() - started, 3),
            )
            state = await self._save(
                state.model_copy(
                    update={
                        "stage_history": [*state.stage_history, record],
                        "outputs": _summarize(context),
                    }
                )
            )

        log.info("pipeline_succeeded", outputs=state.outputs)
        return await self._save(advance(state, PipelineStatus.SUCCEEDED))

    # =========================================================================
    # Notification
    # =========================================================================

    async def _notify(self, state: PipelineState) -> PipelineState:
        """Send the single end-of-run notification and move to NOTIFIED."""
        request = state.request
        error_message = state.error.get("message") if state.error else None

        notification = Notification(
            outcome=(
                NotificationOutcome.SUCCESS if state.succeeded else NotificationOutcome.FAILURE
            ),
            job_name=request.job_name,
            build_number=request.build_number,
            environment=request.environment,
            run_id=state.run_id,
            failed_stage=state.failed_stage,
            error_message=error_message,
            image=state.outputs.get("published_image") or state.outputs.get("image"),
        )

        log = self._logger.bind(run_id=state.run_id, outcome=notification.outcome.value)
        notification_error: Optional[str] = None
        try:
            await self._notifier.send(notification)
            log.info("notification_sent")
        except NotificationError as e:
            notification_error = e.message
            log.warning("notification_failed", error_code=e.error_code, error=e.message)
        except Exception as e:
            notification_error = str(e) or type(e).__name__
            log.warning("notification_failed", error_type=type(e).__name__, error=str(e))

        return await self._save(
            advance(
                state,
                PipelineStatus.NOTIFIED,
                notified=True,
                notification_error=notification_error,
            )
        )

    # =========================================================================
    # Internal Helpers
    # =========================================================================

    async def _save(self, state: PipelineState) -> PipelineState:
        await self._state_manager.save_pipeline_state(state)
        return state


def _summarize(context: PipelineContext) -> dict[str, Any]:
    """Flatten stage outputs into PipelineState.outputs."""
    outputs: dict[str, Any] = {}
    if context.test_report is not None:
        outputs["tests_passed"] = context.test_report.passed
        outputs["test_teardown_completed"] = context.test_report.teardown_completed
    if context.artifact is not None:
        outputs["image"] = str(context.artifact.image)
    if context.published is not None:
        outputs["published_image"] = str(context.published.image)
    if context.infrastructure is not None:
        outputs["infrastructure"] = dict(context.infrastructure.outputs)
    if context.apply_report is not None:
        outputs["target_host"] = context.apply_report.target_host
    return outputs
