"""
Tests for launchpad.core.state
================================

The pipeline state machine:

    PENDING → TESTING → BUILDING → PUBLISHING → PROVISIONING → CONFIGURING → SUCCEEDED
    any in-flight state → FAILED
    SUCCEEDED | FAILED → NOTIFIED (terminal)
"""

import pytest

from launchpad.core.enums import PipelineStatus, StageName
from launchpad.core.exceptions import StateTransitionError
from launchpad.core.models import PipelineRequest
from launchpad.core.state import (
    ALLOWED_TRANSITIONS,
    STAGE_STATUS,
    PipelineState,
    advance,
    can_transition,
)


def _state(**kwargs) -> PipelineState:
    return PipelineState(request=PipelineRequest(build_number=42, environment="production"), **kwargs)


class TestTransitions:
    """Tests for the transition table."""

    def test_happy_path(self) -> None:
        state = _state()
        for status in (
            PipelineStatus.TESTING,
            PipelineStatus.BUILDING,
            PipelineStatus.PUBLISHING,
            PipelineStatus.PROVISIONING,
            PipelineStatus.CONFIGURING,
            PipelineStatus.SUCCEEDED,
            PipelineStatus.NOTIFIED,
        ):
            state = advance(state, status)
        assert state.status == PipelineStatus.NOTIFIED
        assert state.outcome == PipelineStatus.SUCCEEDED

    @pytest.mark.parametrize(
        "status",
        [
            PipelineStatus.PENDING,
            PipelineStatus.TESTING,
            PipelineStatus.BUILDING,
            PipelineStatus.PUBLISHING,
            PipelineStatus.PROVISIONING,
            PipelineStatus.CONFIGURING,
        ],
    )
    def test_any_in_flight_state_can_fail(self, status: PipelineStatus) -> None:
        assert can_transition(status, PipelineStatus.FAILED)

    def test_no_backwards_moves(self) -> None:
        assert not can_transition(PipelineStatus.BUILDING, PipelineStatus.TESTING)

    def test_notified_only_from_outcomes(self) -> None:
        sources = {s for s, targets in ALLOWED_TRANSITIONS.items() if PipelineStatus.NOTIFIED in targets}
        assert sources == {PipelineStatus.SUCCEEDED, PipelineStatus.FAILED}

    def test_notified_is_terminal(self) -> None:
        assert ALLOWED_TRANSITIONS[PipelineStatus.NOTIFIED] == frozenset()

    def test_failed_cannot_succeed(self) -> None:
        assert not can_transition(PipelineStatus.FAILED, PipelineStatus.SUCCEEDED)

    def test_illegal_transition_raises(self) -> None:
        state = advance(_state(), PipelineStatus.FAILED)
        with pytest.raises(StateTransitionError) as exc_info:
            advance(state, PipelineStatus.BUILDING)
        assert exc_info.value.error_code == "ILLEGAL_TRANSITION"
        assert exc_info.value.current == "failed"
        assert exc_info.value.requested == "building"

    def test_every_stage_has_a_status(self) -> None:
        assert set(STAGE_STATUS) == set(StageName)


class TestAdvance:
    """advance() returns new snapshots."""

    def test_does_not_mutate(self) -> None:
        state = _state()
        advanced = advance(state, PipelineStatus.TESTING)
        assert state.status == PipelineStatus.PENDING
        assert advanced.status == PipelineStatus.TESTING

    def test_outcome_recorded_on_failure(self) -> None:
        state = advance(_state(), PipelineStatus.FAILED, failed_stage="build")
        assert state.outcome == PipelineStatus.FAILED
        assert state.failed_stage == "build"
        assert state.completed_at is not None
        assert not state.succeeded

    def test_outcome_kept_after_notified(self) -> None:
        state = advance(_state(), PipelineStatus.SUCCEEDED)
        state = advance(state, PipelineStatus.NOTIFIED, notified=True)
        assert state.succeeded
        assert state.notified

    def test_executed_stages(self) -> None:
        state = _state(stage_history=[{"stage": "test"}, {"stage": "build"}])
        assert state.executed_stages == ["test", "build"]
