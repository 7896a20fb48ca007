"""
launchpad.orchestration.state_manager - Pipeline State Persistence
====================================================================

Persistent storage for PipelineState snapshots. The PipelineEngine saves
a snapshot after every transition, so a run can be inspected while it is
in flight and after it ends.

    ┌────────────────┐    save_pipeline_state   ┌───────────────┐
    │ PipelineEngine │ ───────────────────────→ │ StateManager  │
    └────────────────┘                          └───────────────┘
                                                        │
                                   get / list / latest_for_build

Key Schema:
    - run:{run_id} → PipelineState

Implementations:
    - StateManager (ABC):       Abstract interface
    - InMemoryStateManager:     Dict-based for dev/testing
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional

from launchpad.core.state import PipelineState

logger = logging.getLogger(__name__)


# =============================================================================
# Abstract Base Class: StateManager
# =============================================================================
class StateManager(ABC):
    """Abstract base class for pipeline state persistence.

    Example:
        >>> async def record(sm: StateManager, state: PipelineState):
        ...     await sm.save_pipeline_state(state)
        ...     retrieved = await sm.get_pipeline_state(state.run_id)
    """

    # -------------------------------------------------------------------------
    # Connection Lifecycle
    # -------------------------------------------------------------------------
    @abstractmethod
    async def connect(self) -> None:
        """Establish connection to the storage backend."""

    @abstractmethod
    async def disconnect(self) -> None:
        """Gracefully disconnect from the storage backend."""

    # -------------------------------------------------------------------------
    # Pipeline State Operations
    # -------------------------------------------------------------------------
    @abstractmethod
    async def save_pipeline_state(self, state: PipelineState) -> None:
        """Save or overwrite the snapshot of one run.

        Args:
            state: The PipelineState to persist.
        """

    @abstractmethod
    async def get_pipeline_state(self, run_id: str) -> Optional[PipelineState]:
        """Retrieve a run's latest snapshot.

        Returns:
            The PipelineState if found, None otherwise.
        """

    @abstractmethod
    async def list_pipeline_states(self) -> list[PipelineState]:
        """All stored runs, oldest first."""

    async def latest_for_build(self, build_number: int) -> Optional[PipelineState]:
        """The most recently started run for ``build_number``, if any."""
        matching = [
            state
            for state in await self.list_pipeline_states()
            if state.request.build_number == build_number
        ]
        if not matching:
            return None
        return max(matching, key=lambda state: state.started_at)


# =============================================================================
# InMemoryStateManager Implementation
# =============================================================================
# Key Data Structures:
#   _pipeline_states: dict[run_id, PipelineState], insertion-ordered
# =============================================================================
class InMemoryStateManager(StateManager):
    """In-memory state manager for development and testing.

    Data is lost when the process ends.

    Example:
        >>> sm = InMemoryStateManager()
        >>> await sm.connect()
        >>> await sm.save_pipeline_state(state)
        >>> await sm.get_pipeline_state(state.run_id)
    """

    def __init__(self) -> None:
        self._pipeline_states: dict[str, PipelineState] = {}
        self._connected: bool = False

    @property
    def is_connected(self) -> bool:
        return self._connected

    async def connect(self) -> None:
        """Mark the state manager as connected."""
        self._connected = True
        logger.info("InMemoryStateManager connected")

    async def disconnect(self) -> None:
        """Clear all stored state and mark as disconnected."""
        self._pipeline_states.clear()
        self._connected = False
        logger.info("InMemoryStateManager disconnected")

    async def save_pipeline_state(self, state: PipelineState) -> None:
        self._pipeline_states[state.run_id] = state
        logger.debug(
            "Saved pipeline state: %s (build=%s, status=%s)",
            state.run_id,
            state.request.build_number,
            state.status.value,
        )

    async def get_pipeline_state(self, run_id: str) -> Optional[PipelineState]:
        return self._pipeline_states.get(run_id)

    async def list_pipeline_states(self) -> list[PipelineState]:
        return list(self._pipeline_states.values())
