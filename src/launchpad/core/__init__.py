"""
launchpad.core - Foundation Layer
=================================

The building blocks every other Launchpad module depends on:

    - config:       Configuration (PipelineConfig and its nested sections)
    - environment:  Environment Configuration Store (per-environment values)
    - enums:        PipelineStatus, StageName, NotificationOutcome
    - models:       Stage inputs/outputs (ImageReference, BuildArtifact, ...)
    - state:        PipelineState and the transition rules
    - exceptions:   The error taxonomy

Dependency Rule:
    core/ depends on nothing else in the launchpad package. No I/O happens
    here apart from reading the YAML configuration file.
"""

from launchpad.core.config import (
    CloudConfig,
    ImageConfig,
    KubernetesConfig,
    NotificationConfig,
    PipelineConfig,
    RegistryConfig,
    RemoteConfig,
    TestStageConfig,
    load_config,
)
from launchpad.core.enums import NotificationOutcome, PipelineStatus, StageName
from launchpad.core.environment import EnvironmentSettings, EnvironmentStore
from launchpad.core.exceptions import (
    BuildError,
    CommandError,
    ConfigurationApplyError,
    ConfigurationError,
    HealthCheckError,
    LaunchpadError,
    NotificationError,
    ProvisioningError,
    PublishError,
    StageError,
    StateTransitionError,
    TestFailure,
)
from launchpad.core.models import (
    ApplyReport,
    BuildArtifact,
    CommandResult,
    ImageReference,
    InfrastructureDescriptor,
    PipelineContext,
    PipelineRequest,
    PublishedImage,
    TestReport,
)
from launchpad.core.state import PipelineState, advance

__all__ = [
    # Config
    "PipelineConfig",
    "ImageConfig",
    "RegistryConfig",
    "TestStageConfig",
    "CloudConfig",
    "RemoteConfig",
    "NotificationConfig",
    "KubernetesConfig",
    "load_config",
    # Environment store
    "EnvironmentSettings",
    "EnvironmentStore",
    # Enums
    "PipelineStatus",
    "StageName",
    "NotificationOutcome",
    # Models
    "ImageReference",
    "CommandResult",
    "TestReport",
    "BuildArtifact",
    "PublishedImage",
    "InfrastructureDescriptor",
    "ApplyReport",
    "PipelineRequest",
    "PipelineContext",
    # State
    "PipelineState",
    "advance",
    # Exceptions
    "LaunchpadError",
    "ConfigurationError",
    "StageError",
    "BuildError",
    "TestFailure",
    "PublishError",
    "ProvisioningError",
    "ConfigurationApplyError",
    "CommandError",
    "HealthCheckError",
    "StateTransitionError",
    "NotificationError",
]
