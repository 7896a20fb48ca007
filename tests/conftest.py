"""
Shared Test Fixtures for Launchpad
====================================

Reusable pytest fixtures used across the test suite, organized by layer:

    1. Configuration fixtures
    2. Infrastructure fixtures (ScriptedCommandRunner, health checks, ledger)
    3. Orchestration fixtures (StateManager)
    4. Integration fixtures (MockNotifier)
    5. Pipeline fixtures (requests and contexts)

No fixture touches docker, terraform, ansible or the network: every
external tool is answered by a ScriptedCommandRunner.
"""

from __future__ import annotations

import json

import pytest

from launchpad.core.config import (
    CloudConfig,
    PipelineConfig,
    RegistryConfig,
    TestStageConfig,
)
from launchpad.core.models import PipelineContext, PipelineRequest
from launchpad.infrastructure.command_runner import ScriptedCommandRunner
from launchpad.infrastructure.health import HealthCheck
from launchpad.infrastructure.tag_ledger import InMemoryTagLedger
from launchpad.integrations.notifications.mock import MockNotifier
from launchpad.orchestration.state_manager import InMemoryStateManager


TERRAFORM_OUTPUT = json.dumps(
    {
        "public_ip": {"sensitive": False, "type": "string", "value": "1.2.3.4"},
        "resource_group": {"sensitive": False, "type": "string", "value": "rg-backend"},
    }
)


class StubHealthCheck(HealthCheck):
    """Health check answering from a fixed list of results.

    Once the list is exhausted the last answer repeats.
    """

    def __init__(self, results: list[bool]) -> None:
        self._results = list(results)
        self.calls = 0

    @property
    def target(self) -> str:
        return "stub://mongodb"

    async def check(self) -> bool:
        self.calls += 1
        if len(self._results) > 1:
            return self._results.pop(0)
        return self._results[0]


# =============================================================================
# Configuration
# =============================================================================

@pytest.fixture
def config() -> PipelineConfig:
    """Configuration with registry and cloud credentials and a fast health poll."""
    return PipelineConfig(
        registry=RegistryConfig(namespace="acme", username="ci-bot", password="s3cret-token"),
        cloud=CloudConfig(
            client_id="client-id",
            client_secret="cloud-secret",
            tenant_id="tenant-id",
            subscription_id="subscription-id",
        ),
        test=TestStageConfig(health_interval_seconds=0.01, health_max_attempts=3),
    )


# =============================================================================
# Infrastructure
# =============================================================================

@pytest.fixture
def runner() -> ScriptedCommandRunner:
    """Scripted runner where terraform reports public_ip=1.2.3.4."""
    scripted = ScriptedCommandRunner()
    scripted.on("terraform output", stdout=TERRAFORM_OUTPUT)
    return scripted


@pytest.fixture
def healthy() -> StubHealthCheck:
    """A database that is healthy on the first check."""
    return StubHealthCheck([True])


@pytest.fixture
def make_health_check():
    """Factory for StubHealthCheck with a custom answer sequence."""
    return StubHealthCheck


@pytest.fixture
def tag_ledger() -> InMemoryTagLedger:
    """Fresh InMemoryTagLedger."""
    return InMemoryTagLedger()


# =============================================================================
# Orchestration
# =============================================================================

@pytest.fixture
def state_manager() -> InMemoryStateManager:
    """Fresh InMemoryStateManager."""
    return InMemoryStateManager()


# =============================================================================
# Integrations
# =============================================================================

@pytest.fixture
def notifier() -> MockNotifier:
    """Fresh MockNotifier."""
    return MockNotifier()


# =============================================================================
# Pipeline
# =============================================================================

@pytest.fixture
def request_42() -> PipelineRequest:
    """Build 42 for production."""
    return PipelineRequest(build_number=42, environment="production", source_dir="/src/app")


@pytest.fixture
def context(request_42: PipelineRequest) -> PipelineContext:
    """Empty context for build 42."""
    return PipelineContext(run_id="run-42", request=request_42)
