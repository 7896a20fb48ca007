"""
launchpad.core.config - Configuration Management
==================================================

Configuration for a Launchpad pipeline. Values are loaded from the
following sources (highest priority first):

    1. Explicit constructor arguments (including values read from YAML
       by load_config(), which are passed as constructor arguments)
    2. Environment variables (prefixed with LAUNCHPAD_)
    3. Default values defined in the models below

Architecture Context:
    PipelineConfig is created once, frozen, and handed to every stage.
    Stages never read os.environ themselves:

        PipelineConfig
            ├── ImageConfig         → ImageBuilder
            ├── RegistryConfig      → ImageBuilder, ImagePublisher
            ├── TestStageConfig     → TestRunner
            ├── CloudConfig         → InfrastructureProvisioner
            ├── RemoteConfig        → ConfigurationApplier
            ├── NotificationConfig  → create_notifier()
            ├── KubernetesConfig    → manifests.kubernetes
            └── environments        → EnvironmentStore (every stage)

Usage:
    # Load from environment variables:
    config = PipelineConfig()

    # Load from YAML file:
    config = load_config("launchpad.yaml")

    # Explicit overrides:
    config = PipelineConfig(job_name="backend-api", log_level="DEBUG")

Environment Variables:
    LAUNCHPAD_JOB_NAME=backend-api
    LAUNCHPAD_REGISTRY__NAMESPACE=acme
    LAUNCHPAD_REGISTRY__USERNAME=ci-bot
    LAUNCHPAD_REGISTRY__PASSWORD=...
    LAUNCHPAD_CLOUD__CLIENT_SECRET=...
    LAUNCHPAD_NOTIFICATION__WEBHOOK_URL=https://hooks.slack.com/services/...
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, SecretStr, ValidationError
from pydantic_settings import BaseSettings

from launchpad.core.environment import (
    EnvironmentSettings,
    EnvironmentStore,
    default_environments,
)
from launchpad.core.exceptions import ConfigurationError
from launchpad.core.models import ImageReference


DEFAULT_CONFIG_FILE = "launchpad.yaml"


# =============================================================================
# Image Configuration
# =============================================================================
class ImageConfig(BaseModel):
    """How the application image is built.

    Attributes:
        name: Repository name of the image (without namespace or tag).
        dockerfile: Dockerfile path relative to the source directory.
        context_dir: Build context relative to the source directory.
        build_arg_name: Build argument that receives the target environment
            name, so one Dockerfile serves every environment.
    """

    model_config = ConfigDict(frozen=True)

    name: str = Field(default="backend", description="Image repository name")
    dockerfile: str = Field(default="Dockerfile", description="Dockerfile path")
    context_dir: str = Field(default=".", description="Docker build context")
    build_arg_name: str = Field(
        default="NODE_ENV",
        description="Build arg carrying the target environment name",
    )


# =============================================================================
# Registry Configuration
# =============================================================================
class RegistryConfig(BaseModel):
    """Container registry the verified image is pushed to.

    Attributes:
        url: Registry host. Empty means Docker Hub.
        namespace: Registry namespace (user or organization).
        username: Login user. Required before publishing.
        password: Login password or access token. Sent over stdin only.
    """

    model_config = ConfigDict(frozen=True)

    url: str = Field(default="", description="Registry host ('' = Docker Hub)")
    namespace: str = Field(default="library", description="Registry namespace")
    username: str = Field(default="", description="Registry login user")
    password: SecretStr = Field(
        default=SecretStr(""),
        description="Registry password or token",
    )


# =============================================================================
# Test Stage Configuration
# =============================================================================
# The test stage starts an ephemeral database with Docker Compose, polls it
# until healthy, runs the test service, and always tears everything down.
#
# health_interval_seconds x health_max_attempts bounds the wait for the
# database (default 2s x 30 = 60s).
# =============================================================================
class TestStageConfig(BaseModel):
    """Settings for the Test Runner stage."""

    # Keep pytest from collecting this class as a test case.
    __test__ = False

    model_config = ConfigDict(frozen=True)

    compose_file: str = Field(
        default="docker-compose.test.yml",
        description="Compose file describing the app and its test database",
    )
    project_name: str = Field(
        default="launchpad-test",
        description="Compose project name (isolates test containers)",
    )
    database_service: str = Field(default="mongodb", description="Database service name")
    test_service: str = Field(default="app", description="Service that runs the test suite")
    test_command: list[str] = Field(
        default_factory=lambda: ["npm", "test"],
        description="Command executed inside the test service",
    )
    environment: str = Field(
        default="test",
        description="Environment whose settings the test suite receives",
    )
    health_command: list[str] = Field(
        default_factory=lambda: ["mongosh", "--quiet", "--eval", "db.adminCommand('ping')"],
        description="Probe run inside the database service; healthy on exit code 0",
    )
    health_port: int = Field(
        default=27017,
        ge=1,
        le=65535,
        description="Host port the test database is published on",
    )
    health_interval_seconds: float = Field(default=2.0, gt=0, description="Seconds between probes")
    health_max_attempts: int = Field(default=30, ge=1, description="Probes before giving up")
    command_timeout_seconds: int = Field(
        default=900,
        ge=1,
        description="Upper bound for the test suite run",
    )


# =============================================================================
# Cloud (Terraform) Configuration
# =============================================================================
class CloudConfig(BaseModel):
    """Cloud credentials and Terraform location for provisioning.

    Credentials are exported to Terraform as TF_VAR_* environment variables.
    """

    model_config = ConfigDict(frozen=True)

    client_id: str = Field(default="", description="Service principal client id")
    client_secret: SecretStr = Field(default=SecretStr(""), description="Service principal secret")
    tenant_id: str = Field(default="", description="Directory (tenant) id")
    subscription_id: str = Field(default="", description="Subscription id")
    terraform_dir: str = Field(default="terraform", description="Directory holding the *.tf files")
    ip_output_name: str = Field(
        default="public_ip",
        description="Terraform output holding the target host address",
    )
    command_timeout_seconds: int = Field(
        default=1800,
        ge=1,
        description="Upper bound for a single terraform command",
    )


# =============================================================================
# Remote (Ansible) Configuration
# =============================================================================
class RemoteConfig(BaseModel):
    """Key-based remote execution settings for the Configuration Applier.

    command_timeout_seconds bounds the whole ansible-playbook run so a hung
    SSH session cannot stall the pipeline forever.
    """

    model_config = ConfigDict(frozen=True)

    user: str = Field(default="azureuser", description="SSH user on the target host")
    private_key_path: str = Field(default="~/.ssh/id_rsa", description="SSH private key")
    playbook: str = Field(default="ansible/playbook.yml", description="Playbook to apply")
    command_timeout_seconds: int = Field(
        default=1200,
        ge=1,
        description="Upper bound for the remote configuration step",
    )


# =============================================================================
# Notification Configuration
# =============================================================================
class NotificationConfig(BaseModel):
    """Where the single end-of-run message goes.

    Supported Providers:
        - "slack": Incoming webhook (requires webhook_url)
        - "mock":  Records notifications in memory (tests, dry runs)
    """

    model_config = ConfigDict(frozen=True)

    provider: Literal["slack", "mock"] = Field(default="mock", description="Notifier backend")
    webhook_url: str = Field(default="", description="Slack incoming webhook URL")
    channel: str = Field(default="#deployments", description="Channel to post to")
    username: str = Field(default="launchpad", description="Display name of the sender")
    timeout_seconds: float = Field(default=10.0, gt=0, description="HTTP timeout")


# =============================================================================
# Kubernetes Manifest Configuration
# =============================================================================
class KubernetesConfig(BaseModel):
    """Values used to render the cluster manifests."""

    model_config = ConfigDict(frozen=True)

    namespace: str = Field(default="default", description="Target namespace")
    replicas: int = Field(default=2, ge=0, le=100, description="Deployment replica count")
    hostname: str = Field(default="api.example.com", description="Ingress host rule")
    container_port: int = Field(default=3000, ge=1, le=65535, description="Application port")
    service_port: int = Field(default=80, ge=1, le=65535, description="Service port")
    ingress_class: str = Field(default="nginx", description="Ingress class name")


# =============================================================================
# Main Configuration
# =============================================================================
# Environment Variable Mapping:
#   LAUNCHPAD_JOB_NAME             → config.job_name
#   LAUNCHPAD_REGISTRY__USERNAME   → config.registry.username
#   LAUNCHPAD_CLOUD__TENANT_ID     → config.cloud.tenant_id
# =============================================================================
class PipelineConfig(BaseSettings):
    """Top-level, immutable configuration of one pipeline.

    Attributes:
        job_name: Name of the pipeline job, shown in notifications.
        log_level: Minimum structlog level: DEBUG, INFO, WARNING, ERROR.
        default_environment: Target environment when a run names none.
        image: Image build settings.
        registry: Registry settings and credentials.
        test: Test Runner settings.
        cloud: Terraform credentials and location.
        remote: Ansible settings.
        notification: Notifier settings.
        kubernetes: Manifest rendering settings.
        environments: Environment name → value set.

    Example:
        >>> config = PipelineConfig(
        ...     job_name="backend-api",
        ...     registry=RegistryConfig(namespace="acme", username="ci"),
        ... )
    """

    # -------------------------------------------------------------------------
    # General Settings
    # -------------------------------------------------------------------------
    job_name: str = Field(default="backend-deploy", description="Pipeline job name")
    log_level: str = Field(default="INFO", description="Logging level")
    default_environment: str = Field(
        default="production",
        description="Target environment when none is requested",
    )

    # -------------------------------------------------------------------------
    # Nested Configurations
    # -------------------------------------------------------------------------
    image: ImageConfig = Field(default_factory=ImageConfig)
    registry: RegistryConfig = Field(default_factory=RegistryConfig)
    test: TestStageConfig = Field(default_factory=TestStageConfig)
    cloud: CloudConfig = Field(default_factory=CloudConfig)
    remote: RemoteConfig = Field(default_factory=RemoteConfig)
    notification: NotificationConfig = Field(default_factory=NotificationConfig)
    kubernetes: KubernetesConfig = Field(default_factory=KubernetesConfig)
    environments: dict[str, EnvironmentSettings] = Field(default_factory=default_environments)

    # -------------------------------------------------------------------------
    # Pydantic Settings Configuration
    # -------------------------------------------------------------------------
    #   - env_prefix: All env vars start with "LAUNCHPAD_"
    #   - env_nested_delimiter: "__" reaches into nested sections
    #   - frozen: the config is passed stage to stage and never mutated
    # -------------------------------------------------------------------------
    model_config = {
        "env_prefix": "LAUNCHPAD_",
        "env_nested_delimiter": "__",
        "case_sensitive": False,
        "frozen": True,
    }

    def environment_store(self) -> EnvironmentStore:
        """Build the EnvironmentStore over this config's environments."""
        return EnvironmentStore(self.environments)

    def image_for(self, build_number: int) -> ImageReference:
        """The reference a build's image is tagged with."""
        return ImageReference(
            registry=self.registry.url,
            namespace=self.registry.namespace,
            name=self.image.name,
            tag=str(build_number),
        )


# =============================================================================
# Configuration Loader
# =============================================================================
def load_config(path: Optional[str] = None) -> PipelineConfig:
    """Load a PipelineConfig from a YAML file and/or environment variables.

    Args:
        path: Path to a YAML configuration file. If None, looks for
            'launchpad.yaml' in the current directory and falls back to
            environment variables + defaults when it does not exist.

    Returns:
        A fully validated, frozen PipelineConfig.

    Raises:
        FileNotFoundError: If an explicit path is provided but doesn't exist.
        ConfigurationError: If the YAML is malformed or fails validation.
    """
    if path is None:
        default_path = Path(DEFAULT_CONFIG_FILE)
        if default_path.exists():
            path = str(default_path)

    yaml_data: dict[str, Any] = {}
    if path is not None:
        config_path = Path(path)
        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        try:
            with open(config_path) as f:
                raw_data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigurationError(
                message=f"Malformed configuration file {path}: {e}",
                error_code="INVALID_YAML",
                details={"path": str(path)},
            ) from e

        if raw_data is not None and not isinstance(raw_data, dict):
            raise ConfigurationError(
                message=f"Configuration file {path} must contain a mapping",
                error_code="INVALID_YAML",
                details={"path": str(path), "type": type(raw_data).__name__},
            )
        yaml_data = raw_data or {}

    try:
        return PipelineConfig(**yaml_data)
    except ValidationError as e:
        raise ConfigurationError(
            message=f"Invalid configuration: {e.error_count()} validation error(s)",
            error_code="INVALID_CONFIG",
            details={"errors": e.errors(include_url=False)},
        ) from e
