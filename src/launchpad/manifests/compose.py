"""
launchpad.manifests.compose - Test Compose File
=================================================

Renders the Docker Compose document the Test Runner drives: an ephemeral
MongoDB with a healthcheck, and the application test service that only
starts once the database reports healthy.

    services:
      mongodb:  bitnami/mongodb, healthcheck: mongosh ping
      app:      build: ., depends_on: mongodb (service_healthy)

Only variable *names* are written for the app service; their values are
forwarded from the runner's environment at ``docker compose run`` time,
so secrets never land in the file.
"""

from __future__ import annotations

from typing import Any, Optional

import yaml

from launchpad.core.config import PipelineConfig
from launchpad.core.environment import EnvironmentStore


MONGODB_IMAGE = "bitnami/mongodb:latest"


def render_test_compose(
    config: PipelineConfig,
    store: Optional[EnvironmentStore] = None,
    environment: Optional[str] = None,
) -> dict[str, Any]:
    """Build the test Compose document.

    Args:
        config: Pipeline configuration (uses ``config.test`` and ``config.image``).
        store: Environment store override.
        environment: Environment whose variables the app receives.
            Defaults to ``config.test.environment``.

    Raises:
        ConfigurationError: If the environment is unknown or has no
            database URL.
    """
    store = store or config.environment_store()
    settings = config.test
    environment = environment or settings.environment
    env_names = sorted(store.as_env_vars(environment))

    database = {
        "image": MONGODB_IMAGE,
        "ports": [f"{settings.health_port}:27017"],
        "environment": {"ALLOW_EMPTY_PASSWORD": "yes"},
        "healthcheck": {
            "test": ["CMD", *settings.health_command],
            "interval": f"{max(1, round(settings.health_interval_seconds))}s",
            "timeout": "5s",
            "retries": settings.health_max_attempts,
        },
    }

    app = {
        "build": {
            "context": config.image.context_dir,
            "dockerfile": config.image.dockerfile,
            "args": {config.image.build_arg_name: environment},
        },
        "environment": env_names,
        "depends_on": {settings.database_service: {"condition": "service_healthy"}},
    }

    return {
        "services": {
            settings.database_service: database,
            settings.test_service: app,
        }
    }


def dump_compose(document: dict[str, Any]) -> str:
    """Serialize a Compose document to YAML."""
    return yaml.safe_dump(document, default_flow_style=False, sort_keys=False)
