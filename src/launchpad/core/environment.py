"""
launchpad.core.environment - Environment Configuration Store
==============================================================

Per-environment key/value settings (database URL, port, secrets, plain
variables) kept outside the build artifacts and read by every stage.

Each target environment (development / test / production by default) owns
one flat EnvironmentSettings record. The store only checks presence; it
does not interpret values.

    ┌────────────────────── EnvironmentStore ──────────────────────┐
    │  development → database_url, port, variables, secrets        │
    │  test        → database_url, port, variables, secrets        │
    │  production  → database_url, port, variables, secrets        │
    └──────────────────────────────────────────────────────────────┘
             │ as_env_vars("test")
             ▼
    {"DATABASE_URL": "...", "PORT": "3000", "JWT_SECRET": "...", ...}

Failure Mode:
    A missing environment or key raises ConfigurationError immediately.
    The stage that asked for it fails; nothing is retried.
"""

from __future__ import annotations

from typing import Mapping

from pydantic import BaseModel, ConfigDict, Field, SecretStr

from launchpad.core.exceptions import ConfigurationError


# Reserved keys resolved from EnvironmentSettings fields rather than the
# free-form variables/secrets maps.
DATABASE_URL_KEY = "database_url"
PORT_KEY = "port"


class EnvironmentSettings(BaseModel):
    """One environment's value set. Read-only once loaded.

    Attributes:
        database_url: Connection URL of this environment's database.
        port: Port the application listens on.
        secrets: Sensitive values (JWT secrets, API keys). Masked in logs
            and reprs, revealed only when handed to an external tool.
        variables: Any other plain NAME → value settings.
    """

    model_config = ConfigDict(frozen=True)

    database_url: str = Field(
        default="",
        description="Database connection URL for this environment",
    )
    port: int = Field(
        default=3000,
        ge=1,
        le=65535,
        description="Application listen port",
    )
    secrets: dict[str, SecretStr] = Field(
        default_factory=dict,
        description="Sensitive settings (masked in logs)",
    )
    variables: dict[str, str] = Field(
        default_factory=dict,
        description="Plain settings passed through to the application",
    )


def default_environments() -> dict[str, EnvironmentSettings]:
    """The three standard environments, each with its own database."""
    return {
        "development": EnvironmentSettings(
            database_url="mongodb://localhost:27017/app_development",
            variables={"NODE_ENV": "development"},
        ),
        "test": EnvironmentSettings(
            database_url="mongodb://mongodb:27017/app_test",
            variables={"NODE_ENV": "test"},
        ),
        "production": EnvironmentSettings(
            database_url="mongodb://mongodb:27017/app_production",
            variables={"NODE_ENV": "production"},
        ),
    }


class EnvironmentStore:
    """Lookup of settings keyed by environment name.

    Example:
        >>> store = EnvironmentStore(default_environments())
        >>> store.require("test", "database_url")
        'mongodb://mongodb:27017/app_test'
        >>> store.require("staging", "database_url")
        Traceback (most recent call last):
        ...
        ConfigurationError: Unknown environment 'staging'
    """

    def __init__(self, environments: Mapping[str, EnvironmentSettings]) -> None:
        self._environments = dict(environments)

    def names(self) -> list[str]:
        """Names of all declared environments, sorted."""
        return sorted(self._environments)

    def __contains__(self, environment: object) -> bool:
        return environment in self._environments

    def get(self, environment: str) -> EnvironmentSettings:
        """Return the value set of one environment.

        Raises:
            ConfigurationError: If the environment is not declared.
        """
        try:
            return self._environments[environment]
        except KeyError:
            raise ConfigurationError(
                message=f"Unknown environment '{environment}'",
                error_code="UNKNOWN_ENVIRONMENT",
                details={
                    "environment": environment,
                    "declared": self.names(),
                },
            ) from None

    def require(self, environment: str, key: str) -> str:
        """Return a named value, failing if it is absent or empty.

        ``key`` may be ``database_url``, ``port``, or the name of any
        variable or secret. Secrets are returned revealed.

        Raises:
            ConfigurationError: If the environment or the key is missing.
        """
        settings = self.get(environment)

        if key == DATABASE_URL_KEY:
            value = settings.database_url
        elif key == PORT_KEY:
            value = str(settings.port)
        elif key in settings.variables:
            value = settings.variables[key]
        elif key in settings.secrets:
            value = settings.secrets[key].get_secret_value()
        else:
            value = ""

        if not value:
            raise ConfigurationError(
                message=f"Setting '{key}' is missing for environment '{environment}'",
                error_code="MISSING_SETTING",
                details={"environment": environment, "key": key},
            )
        return value

    def as_env_vars(self, environment: str) -> dict[str, str]:
        """Flatten one environment into NAME=value pairs for external tools.

        The database URL is required; everything else is passed as-is.
        """
        settings = self.get(environment)
        env_vars = {
            "DATABASE_URL": self.require(environment, DATABASE_URL_KEY),
            "PORT": str(settings.port),
        }
        env_vars.update(settings.variables)
        env_vars.update(
            {name: secret.get_secret_value() for name, secret in settings.secrets.items()}
        )
        return env_vars

    def validate(self) -> None:
        """Check every environment has its own non-empty database URL.

        Raises:
            ConfigurationError: ``MISSING_SETTING`` if an environment has no
                database URL, ``DUPLICATE_DATABASE_URL`` if two share one.
        """
        if not self._environments:
            raise ConfigurationError(
                message="No environments are declared",
                error_code="NO_ENVIRONMENTS",
            )

        seen: dict[str, str] = {}
        for name in self.names():
            url = self.require(name, DATABASE_URL_KEY)
            if url in seen:
                raise ConfigurationError(
                    message=(
                        f"Environments '{seen[url]}' and '{name}' share the same "
                        f"database URL"
                    ),
                    error_code="DUPLICATE_DATABASE_URL",
                    details={"environments": [seen[url], name]},
                )
            seen[url] = name
