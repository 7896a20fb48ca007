"""
Tests for launchpad.core.exceptions
=====================================

The error taxonomy: every error carries a code and details, and each
stage error knows which stage it belongs to.
"""

import pytest

from launchpad.core.exceptions import (
    BuildError,
    CommandError,
    ConfigurationApplyError,
    ConfigurationError,
    LaunchpadError,
    ProvisioningError,
    PublishError,
    StageError,
    TestFailure,
)


class TestLaunchpadError:
    """Tests for the base exception."""

    def test_to_dict(self) -> None:
        error = LaunchpadError("boom", error_code="BOOM", details={"a": 1})
        assert error.to_dict() == {
            "error_type": "LaunchpadError",
            "message": "boom",
            "error_code": "BOOM",
            "details": {"a": 1},
        }

    def test_repr(self) -> None:
        assert "error_code='BOOM'" in repr(LaunchpadError("boom", error_code="BOOM"))

    def test_configuration_error_default_code(self) -> None:
        assert ConfigurationError("missing").error_code == "CONFIG_ERROR"


class TestStageErrors:
    """Each stage error carries its stage and default code."""

    @pytest.mark.parametrize(
        ("error_class", "stage", "code"),
        [
            (TestFailure, "test", "TESTS_FAILED"),
            (BuildError, "build", "BUILD_FAILED"),
            (PublishError, "publish", "PUBLISH_FAILED"),
            (ProvisioningError, "provision", "PROVISIONING_FAILED"),
            (ConfigurationApplyError, "configure", "CONFIGURATION_APPLY_FAILED"),
        ],
    )
    def test_defaults(self, error_class: type[StageError], stage: str, code: str) -> None:
        error = error_class("failed")
        assert isinstance(error, StageError)
        assert error.stage == stage
        assert error.error_code == code
        assert error.details["stage"] == stage

    def test_explicit_code_wins(self) -> None:
        assert PublishError("dup", error_code="DUPLICATE_TAG").error_code == "DUPLICATE_TAG"


class TestCommandError:
    """CommandError records the command and truncates stderr."""

    def test_details(self) -> None:
        error = CommandError(
            "docker exited with code 1",
            command=["docker", "push", "acme/backend:42"],
            exit_code=1,
            stderr="x" * 5000,
        )
        assert error.error_code == "COMMAND_FAILED"
        assert error.details["command"] == "docker push acme/backend:42"
        assert error.details["exit_code"] == 1
        assert len(error.details["stderr"]) == 2000
        assert len(error.stderr) == 5000
