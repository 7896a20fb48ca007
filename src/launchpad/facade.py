"""
launchpad.facade - Launchpad Top-Level Facade
===============================================

The single entry point that wires configuration, tools, stages, engine and
notifier together.

    ┌──────────────────────────────────────────────────┐
    │                Launchpad (Facade)                │
    │                                                  │
    │  ┌────────────────────────────────────────────┐  │
    │  │  Orchestration: PipelineEngine,            │  │
    │  │                 StateManager               │  │
    │  └─────────────────────┬──────────────────────┘  │
    │  ┌─────────────────────▼──────────────────────┐  │
    │  │  Stages: Test, Build, Publish, Provision,  │  │
    │  │          Configure                         │  │
    │  └─────────────────────┬──────────────────────┘  │
    │  ┌─────────────────────▼──────────────────────┐  │
    │  │  Infrastructure: CommandRunner, TagLedger, │  │
    │  │                  HealthCheck               │  │
    │  └─────────────────────┬──────────────────────┘  │
    │  ┌─────────────────────▼──────────────────────┐  │
    │  │  Integrations: Notifier (Slack / mock)     │  │
    │  └────────────────────────────────────────────┘  │
    └──────────────────────────────────────────────────┘

Usage:
    >>> from launchpad import Launchpad
    >>> from launchpad.core.config import load_config
    >>>
    >>> async with Launchpad(load_config("launchpad.yaml")) as launchpad:
    ...     state = await launchpad.run_pipeline(build_number=42)
    ...     print(state.outcome)

    Dry run without touching docker/terraform/ansible:
    >>> runner = ScriptedCommandRunner()
    >>> runner.on("terraform output", stdout='{"public_ip": {"value": "1.2.3.4"}}')
    >>> async with Launchpad(config, runner=runner, notifier=MockNotifier()) as launchpad:
    ...     await launchpad.run_pipeline(build_number=42)
"""

from __future__ import annotations

import logging
from typing import Any, Optional, Sequence

import structlog

from launchpad.core.config import PipelineConfig
from launchpad.core.enums import StageName
from launchpad.core.exceptions import ConfigurationError
from launchpad.core.models import ImageReference, PipelineRequest
from launchpad.core.state import PipelineState
from launchpad.infrastructure.command_runner import CommandRunner, SubprocessCommandRunner
from launchpad.infrastructure.health import HealthCheck
from launchpad.infrastructure.tag_ledger import InMemoryTagLedger, TagLedger
from launchpad.integrations.notifications.base import BaseNotifier
from launchpad.integrations.notifications.factory import create_notifier
from launchpad.manifests.compose import dump_compose, render_test_compose
from launchpad.manifests.kubernetes import dump_manifests, render_kubernetes_manifests
from launchpad.orchestration.pipeline_engine import DEFAULT_STAGE_ORDER, PipelineEngine
from launchpad.orchestration.state_manager import InMemoryStateManager, StateManager
from launchpad.stages.base import BaseStage
from launchpad.stages.builder import ImageBuilder
from launchpad.stages.configurator import ConfigurationApplier
from launchpad.stages.provisioner import InfrastructureProvisioner
from launchpad.stages.publisher import ImagePublisher
from launchpad.stages.test_runner import TestRunner


logger = structlog.get_logger()


def configure_logging(level: str) -> None:
    """Set structlog's minimum level, e.g. "DEBUG" or "warning".

    Raises:
        ConfigurationError: ``INVALID_LOG_LEVEL`` for an unknown level name.
    """
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise ConfigurationError(
            message=f"Unknown log level '{level}'",
            error_code="INVALID_LOG_LEVEL",
            details={"log_level": level},
        )
    structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(numeric))


class Launchpad:
    """Top-level facade for running deployment pipelines.

    Lifecycle:
        1. ``Launchpad(config)`` - Instantiate with configuration
        2. ``await initialize()`` - Connect state storage
        3. ``await run_pipeline(build_number)`` - Run deployments
        4. ``await shutdown()`` - Release resources

    Or use the async context manager:
        async with Launchpad(config) as launchpad:
            ...

    Attributes:
        _config: Pipeline configuration.
        _runner: Runs docker / terraform / ansible-playbook.
        _notifier: End-of-run notifier.
        _state_manager: PipelineState persistence.
        _tag_ledger: Pushed-tag ledger shared by every run.
        _stages: The stages the engine runs.
        _engine: The PipelineEngine.
        _initialized: Whether initialize() has been called.
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        *,
        runner: Optional[CommandRunner] = None,
        notifier: Optional[BaseNotifier] = None,
        state_manager: Optional[StateManager] = None,
        tag_ledger: Optional[TagLedger] = None,
        health_check: Optional[HealthCheck] = None,
        stages: Optional[Sequence[StageName]] = None,
    ) -> None:
        """Initialize the facade.

        Args:
            config: Pipeline configuration. Defaults to PipelineConfig(),
                which reads LAUNCHPAD_* environment variables.
            runner: Command runner. Defaults to SubprocessCommandRunner.
            notifier: Notifier. Defaults to create_notifier(config.notification).
            state_manager: Defaults to InMemoryStateManager.
            tag_ledger: Defaults to InMemoryTagLedger.
            health_check: Test database probe override.
            stages: Which stages to run, a subset of DEFAULT_STAGE_ORDER.
                Defaults to all five.
        """
        self._config = config or PipelineConfig()
        configure_logging(self._config.log_level)

        self._runner = runner or SubprocessCommandRunner()
        self._notifier = notifier or create_notifier(self._config.notification)
        self._state_manager = state_manager or InMemoryStateManager()
        self._tag_ledger = tag_ledger or InMemoryTagLedger()
        self._environments = self._config.environment_store()

        selected = list(stages) if stages is not None else list(DEFAULT_STAGE_ORDER)
        self._stages = self._build_stages(selected, health_check)
        self._engine = PipelineEngine(
            self._config,
            self._stages,
            self._notifier,
            self._state_manager,
            environments=self._environments,
        )

        self._initialized = False
        self._logger = logger.bind(component="launchpad")

    def _build_stages(
        self,
        selected: Sequence[StageName],
        health_check: Optional[HealthCheck],
    ) -> list[BaseStage]:
        common: dict[str, Any] = {"environments": self._environments}
        factories = {
            StageName.TEST: lambda: TestRunner(
                self._config, self._runner, health_check=health_check, **common
            ),
            StageName.BUILD: lambda: ImageBuilder(
                self._config, self._runner, ledger=self._tag_ledger, **common
            ),
            StageName.PUBLISH: lambda: ImagePublisher(
                self._config, self._runner, ledger=self._tag_ledger, **common
            ),
            StageName.PROVISION: lambda: InfrastructureProvisioner(
                self._config, self._runner, **common
            ),
            StageName.CONFIGURE: lambda: ConfigurationApplier(
                self._config, self._runner, **common
            ),
        }
        return [factories[StageName(name)]() for name in selected]

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def config(self) -> PipelineConfig:
        return self._config

    @property
    def engine(self) -> PipelineEngine:
        return self._engine

    @property
    def runner(self) -> CommandRunner:
        return self._runner

    @property
    def notifier(self) -> BaseNotifier:
        return self._notifier

    @property
    def state_manager(self) -> StateManager:
        return self._state_manager

    @property
    def tag_ledger(self) -> TagLedger:
        return self._tag_ledger

    @property
    def is_initialized(self) -> bool:
        return self._initialized

    # =========================================================================
    # Lifecycle Management
    # =========================================================================

    async def initialize(self) -> None:
        """Connect the state manager.

        Idempotent: Safe to call multiple times.
        """
        if self._initialized:
            self._logger.debug("launchpad_already_initialized")
            return

        await self._state_manager.connect()

        self._initialized = True
        self._logger.info(
            "launchpad_initialized",
            job_name=self._config.job_name,
            stages=[stage.name.value for stage in self._stages],
        )

    async def shutdown(self) -> None:
        """Disconnect the state manager and close the notifier.

        Idempotent: Safe to call multiple times.
        """
        if not self._initialized:
            self._logger.debug("launchpad_not_initialized_skipping_shutdown")
            return

        await self._notifier.close()
        await self._state_manager.disconnect()

        self._initialized = False
        self._logger.info("launchpad_shutdown_complete")

    async def __aenter__(self) -> Launchpad:
        await self.initialize()
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        await self.shutdown()

    # =========================================================================
    # Pipeline Runs
    # =========================================================================

    async def run_pipeline(
        self,
        build_number: int,
        environment: Optional[str] = None,
        source_dir: str = ".",
    ) -> PipelineState:
        """Run the pipeline for one build.

        Args:
            build_number: CI build number; becomes the image tag.
            environment: Target environment. Defaults to
                ``config.default_environment``.
            source_dir: Application source directory.

        Returns:
            The final PipelineState (status NOTIFIED).

        Raises:
            RuntimeError: If the facade is not initialized.
        """
        self._ensure_initialized()
        request = PipelineRequest(
            build_number=build_number,
            environment=environment or self._config.default_environment,
            job_name=self._config.job_name,
            source_dir=source_dir,
        )
        return await self._engine.run(request)

    async def get_run(self, run_id: str) -> Optional[PipelineState]:
        """Look up a run by id."""
        return await self._state_manager.get_pipeline_state(run_id)

    async def latest_for_build(self, build_number: int) -> Optional[PipelineState]:
        """The most recent run of ``build_number``."""
        return await self._state_manager.latest_for_build(build_number)

    # =========================================================================
    # Manifests
    # =========================================================================

    def image_for(self, build_number: int) -> ImageReference:
        """The image reference a build is tagged with."""
        return self._config.image_for(build_number)

    def render_manifests(self, build_number: int, environment: Optional[str] = None) -> str:
        """Render the Kubernetes manifests for one build as YAML."""
        environment = environment or self._config.default_environment
        manifests = render_kubernetes_manifests(
            self._config,
            self.image_for(build_number),
            environment,
            store=self._environments,
        )
        return dump_manifests(manifests)

    def render_test_compose(self) -> str:
        """Render the Test Runner's Compose file as YAML."""
        return dump_compose(render_test_compose(self._config, store=self._environments))

    # =========================================================================
    # Internal Helpers
    # =========================================================================

    def _ensure_initialized(self) -> None:
        if not self._initialized:
            raise RuntimeError(
                "Launchpad is not initialized. "
                "Call await launchpad.initialize() or use 'async with Launchpad() as launchpad:'"
            )

    def __repr__(self) -> str:
        return (
            f"Launchpad("
            f"job={self._config.job_name!r}, "
            f"initialized={self._initialized}, "
            f"stages={[stage.name.value for stage in self._stages]})"
        )
