"""
launchpad.core.state - Pipeline State Machine
===============================================

The dynamic state of one pipeline run and the rules for moving it forward.

State Machine:

    PENDING → TESTING → BUILDING → PUBLISHING → PROVISIONING → CONFIGURING → SUCCEEDED
       │         │          │           │             │              │
       └─────────┴──────────┴───────────┴─────────────┴──────────────┴──→ FAILED

    SUCCEEDED ──→ NOTIFIED
    FAILED    ──→ NOTIFIED      (terminal)

Design Decision - Immutable Snapshots:
    PipelineState is a Pydantic model. advance() never mutates: it returns
    a new snapshot, which the engine persists through the StateManager.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel, Field

from launchpad.core.enums import PipelineStatus, StageName
from launchpad.core.exceptions import StateTransitionError
from launchpad.core.models import PipelineRequest


def _now() -> datetime:
    """Get the current UTC timestamp."""
    return datetime.now(timezone.utc)


# =============================================================================
# Transition Table
# =============================================================================
_LINEAR_ORDER: list[PipelineStatus] = [
    PipelineStatus.PENDING,
    PipelineStatus.TESTING,
    PipelineStatus.BUILDING,
    PipelineStatus.PUBLISHING,
    PipelineStatus.PROVISIONING,
    PipelineStatus.CONFIGURING,
    PipelineStatus.SUCCEEDED,
]

TERMINAL_OUTCOMES: frozenset[PipelineStatus] = frozenset(
    {PipelineStatus.SUCCEEDED, PipelineStatus.FAILED}
)


def _build_transitions() -> dict[PipelineStatus, frozenset[PipelineStatus]]:
    transitions: dict[PipelineStatus, set[PipelineStatus]] = {
        status: set() for status in PipelineStatus
    }

    # Each in-flight status may move to any later in-flight status (a
    # pipeline built from a subset of stages skips the others) or fail.
    for index, status in enumerate(_LINEAR_ORDER[:-1]):
        transitions[status].update(_LINEAR_ORDER[index + 1:])
        transitions[status].add(PipelineStatus.FAILED)

    for outcome in TERMINAL_OUTCOMES:
        transitions[outcome].add(PipelineStatus.NOTIFIED)

    return {status: frozenset(targets) for status, targets in transitions.items()}


ALLOWED_TRANSITIONS: dict[PipelineStatus, frozenset[PipelineStatus]] = _build_transitions()


# Status the run is in while a given stage executes.
STAGE_STATUS: dict[StageName, PipelineStatus] = {
    StageName.TEST: PipelineStatus.TESTING,
    StageName.BUILD: PipelineStatus.BUILDING,
    StageName.PUBLISH: PipelineStatus.PUBLISHING,
    StageName.PROVISION: PipelineStatus.PROVISIONING,
    StageName.CONFIGURE: PipelineStatus.CONFIGURING,
}


# =============================================================================
# Pipeline State
# =============================================================================
class PipelineState(BaseModel):
    """Snapshot of one pipeline run.

    Attributes:
        run_id: Unique identifier of the run.
        request: What was requested (build number, environment, job).
        status: Current position in the state machine.
        outcome: SUCCEEDED or FAILED once decided; kept after NOTIFIED.
        stage_history: One record per executed stage, in order. Each record
            has "stage", "status" ("completed" | "failed"), "started_at",
            "completed_at", "duration_seconds" and, on failure, "error".
        failed_stage: Name of the stage that failed, if any.
        error: Serialized error (LaunchpadError.to_dict()) of the failure.
        notified: Whether the final notification was attempted.
        notification_error: Delivery error message, if the notifier failed.
        outputs: Summary of stage outputs (image, public_ip, ...).
        started_at: When the run was created.
        completed_at: When the run reached SUCCEEDED or FAILED.

    Example:
        >>> state = PipelineState(request=PipelineRequest(build_number=42, environment="production"))
        >>> state = advance(state, PipelineStatus.TESTING)
        >>> state.status
        <PipelineStatus.TESTING: 'testing'>
    """

    run_id: str = Field(default_factory=lambda: str(uuid4()))
    request: PipelineRequest
    status: PipelineStatus = PipelineStatus.PENDING
    outcome: Optional[PipelineStatus] = None
    stage_history: list[dict[str, Any]] = Field(default_factory=list)
    failed_stage: Optional[str] = None
    error: Optional[dict[str, Any]] = None
    notified: bool = False
    notification_error: Optional[str] = None
    outputs: dict[str, Any] = Field(default_factory=dict)
    started_at: datetime = Field(default_factory=_now)
    completed_at: Optional[datetime] = None

    @property
    def succeeded(self) -> bool:
        """Whether the run's outcome is SUCCEEDED."""
        return self.outcome == PipelineStatus.SUCCEEDED

    @property
    def executed_stages(self) -> list[str]:
        """Names of the stages that ran, in order."""
        return [record["stage"] for record in self.stage_history]


def can_transition(current: PipelineStatus, requested: PipelineStatus) -> bool:
    """Whether the state machine allows current → requested."""
    return requested in ALLOWED_TRANSITIONS.get(current, frozenset())


def advance(
    state: PipelineState,
    requested: PipelineStatus,
    **updates: Any,
) -> PipelineState:
    """Return a copy of ``state`` moved to ``requested``.

    Reaching SUCCEEDED or FAILED also records ``outcome`` and
    ``completed_at``.

    Args:
        state: The current snapshot.
        requested: The status to move to.
        **updates: Additional fields to set on the new snapshot.

    Raises:
        StateTransitionError: If the transition is not allowed.
    """
    if not can_transition(state.status, requested):
        raise StateTransitionError(
            current=state.status.value,
            requested=requested.value,
            details={"run_id": state.run_id},
        )

    updates["status"] = requested
    if requested in TERMINAL_OUTCOMES:
        updates["outcome"] = requested
        updates["completed_at"] = _now()
    return state.model_copy(update=updates)
