"""
launchpad.orchestration - Pipeline Orchestration Layer
========================================================

    - PipelineEngine:        runs the stages in order, owns the state machine
    - StateManager:          abstract snapshot persistence
    - InMemoryStateManager:  dict-based persistence for dev/testing
"""

from launchpad.orchestration.pipeline_engine import DEFAULT_STAGE_ORDER, PipelineEngine
from launchpad.orchestration.state_manager import InMemoryStateManager, StateManager

__all__ = [
    "PipelineEngine",
    "DEFAULT_STAGE_ORDER",
    "StateManager",
    "InMemoryStateManager",
]
