"""
Tests for launchpad.core.environment
======================================

The Environment Configuration Store: per-environment settings, presence
checks, and the rule that every environment owns its own database.
"""

import pytest
from pydantic import SecretStr

from launchpad.core.environment import (
    EnvironmentSettings,
    EnvironmentStore,
    default_environments,
)
from launchpad.core.exceptions import ConfigurationError


def _store(**environments: EnvironmentSettings) -> EnvironmentStore:
    return EnvironmentStore(environments)


class TestDefaultEnvironments:
    """The three standard environments."""

    def test_each_environment_has_distinct_database_url(self) -> None:
        store = EnvironmentStore(default_environments())
        urls = [store.require(name, "database_url") for name in store.names()]

        assert len(urls) == 3
        assert all(urls)
        assert len(set(urls)) == 3

    def test_default_store_validates(self) -> None:
        EnvironmentStore(default_environments()).validate()

    def test_names_sorted(self) -> None:
        assert EnvironmentStore(default_environments()).names() == [
            "development",
            "production",
            "test",
        ]


class TestLookup:
    """get / require / as_env_vars."""

    def test_unknown_environment(self) -> None:
        store = EnvironmentStore(default_environments())
        with pytest.raises(ConfigurationError) as exc_info:
            store.get("staging")
        assert exc_info.value.error_code == "UNKNOWN_ENVIRONMENT"
        assert exc_info.value.details["declared"] == ["development", "production", "test"]

    def test_require_missing_key(self) -> None:
        store = EnvironmentStore(default_environments())
        with pytest.raises(ConfigurationError) as exc_info:
            store.require("production", "JWT_SECRET")
        assert exc_info.value.error_code == "MISSING_SETTING"
        assert exc_info.value.details == {"environment": "production", "key": "JWT_SECRET"}

    def test_require_port(self) -> None:
        store = _store(prod=EnvironmentSettings(database_url="mongodb://db/prod", port=8080))
        assert store.require("prod", "port") == "8080"

    def test_require_reveals_secret(self) -> None:
        store = _store(
            prod=EnvironmentSettings(
                database_url="mongodb://db/prod",
                secrets={"JWT_SECRET": SecretStr("s3cret")},
            )
        )
        assert store.require("prod", "JWT_SECRET") == "s3cret"

    def test_secret_masked_in_repr(self) -> None:
        settings = EnvironmentSettings(
            database_url="mongodb://db/prod",
            secrets={"JWT_SECRET": SecretStr("s3cret")},
        )
        assert "s3cret" not in repr(settings)

    def test_as_env_vars(self) -> None:
        store = _store(
            prod=EnvironmentSettings(
                database_url="mongodb://db/prod",
                port=4000,
                variables={"NODE_ENV": "production"},
                secrets={"JWT_SECRET": SecretStr("s3cret")},
            )
        )
        assert store.as_env_vars("prod") == {
            "DATABASE_URL": "mongodb://db/prod",
            "PORT": "4000",
            "NODE_ENV": "production",
            "JWT_SECRET": "s3cret",
        }

    def test_as_env_vars_requires_database_url(self) -> None:
        store = _store(prod=EnvironmentSettings())
        with pytest.raises(ConfigurationError):
            store.as_env_vars("prod")


class TestValidate:
    """validate() enforces one non-empty database per environment."""

    def test_duplicate_database_url(self) -> None:
        store = _store(
            test=EnvironmentSettings(database_url="mongodb://db/app"),
            production=EnvironmentSettings(database_url="mongodb://db/app"),
        )
        with pytest.raises(ConfigurationError) as exc_info:
            store.validate()
        assert exc_info.value.error_code == "DUPLICATE_DATABASE_URL"
        assert sorted(exc_info.value.details["environments"]) == ["production", "test"]

    def test_empty_database_url(self) -> None:
        store = _store(production=EnvironmentSettings(database_url=""))
        with pytest.raises(ConfigurationError) as exc_info:
            store.validate()
        assert exc_info.value.error_code == "MISSING_SETTING"

    def test_no_environments(self) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            EnvironmentStore({}).validate()
        assert exc_info.value.error_code == "NO_ENVIRONMENTS"
