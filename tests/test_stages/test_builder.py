"""
Tests for launchpad.stages.builder
====================================

The built image is tagged with the build number and built for the
requested environment. The tag is claimed before ``docker build`` runs.
"""

import pytest

from launchpad.core.config import PipelineConfig, RegistryConfig
from launchpad.core.exceptions import BuildError, ConfigurationError
from launchpad.core.models import ImageReference, PipelineContext, PipelineRequest
from launchpad.stages.builder import ImageBuilder


class TestImageBuilder:
    """Tests for ImageBuilder."""

    async def test_docker_build_command(self, config, runner, context) -> None:
        await ImageBuilder(config, runner).execute(context)

        assert runner.calls[0]["args"] == [
            "docker", "build",
            "-f", "Dockerfile",
            "-t", "acme/backend:42",
            "--build-arg", "NODE_ENV=production",
            ".",
        ]
        assert runner.calls[0]["cwd"] == "/src/app"

    async def test_artifact(self, config, runner, context) -> None:
        result = await ImageBuilder(config, runner).execute(context)

        artifact = result.artifact
        assert str(artifact.image) == "acme/backend:42"
        assert artifact.build_number == 42
        assert artifact.environment == "production"

    async def test_distinct_builds_distinct_tags(self, config, runner) -> None:
        stage = ImageBuilder(config, runner)
        tags = {
            str(stage.image_for(PipelineRequest(build_number=n, environment="production")))
            for n in (1, 2, 3)
        }
        assert tags == {"acme/backend:1", "acme/backend:2", "acme/backend:3"}

    def test_registry_host_in_reference(self, runner) -> None:
        config = PipelineConfig(registry=RegistryConfig(url="registry.example.com", namespace="acme"))
        image = ImageBuilder(config, runner).image_for(
            PipelineRequest(build_number=7, environment="production")
        )
        assert str(image) == "registry.example.com/acme/backend:7"

    async def test_build_failure(self, config, runner, context) -> None:
        runner.on("docker build", exit_code=1, stderr="COPY failed")

        with pytest.raises(BuildError) as exc_info:
            await ImageBuilder(config, runner).execute(context)

        assert exc_info.value.stage == "build"
        assert "COPY failed" in exc_info.value.details["stderr"]

    async def test_unknown_environment(self, config, runner) -> None:
        context = PipelineContext(request=PipelineRequest(build_number=1, environment="staging"))

        with pytest.raises(ConfigurationError) as exc_info:
            await ImageBuilder(config, runner).execute(context)

        assert exc_info.value.error_code == "UNKNOWN_ENVIRONMENT"
        assert runner.calls == []


class TestImageBuilderTagLedger:
    """An image tag is built by at most one run."""

    async def test_tag_claimed_before_build(self, config, runner, tag_ledger, context) -> None:
        stage = ImageBuilder(config, runner, ledger=tag_ledger)
        await stage.execute(context)

        assert stage.ledger is tag_ledger
        assert await tag_ledger.list_tags("acme/backend") == ["42"]

    async def test_used_tag_never_rebuilt(self, config, runner, tag_ledger, context) -> None:
        await tag_ledger.claim(ImageReference.parse("acme/backend:42"), run_id="earlier-run")

        with pytest.raises(BuildError) as exc_info:
            await ImageBuilder(config, runner, ledger=tag_ledger).execute(context)

        assert exc_info.value.error_code == "DUPLICATE_TAG"
        assert exc_info.value.stage == "build"
        assert runner.calls_matching("docker build") == []

    async def test_preflight_rejects_used_tag(self, config, runner, tag_ledger, request_42) -> None:
        await tag_ledger.claim(ImageReference.parse("acme/backend:42"), run_id="earlier-run")

        with pytest.raises(BuildError) as exc_info:
            await ImageBuilder(config, runner, ledger=tag_ledger).preflight(request_42)

        assert exc_info.value.error_code == "DUPLICATE_TAG"
        assert exc_info.value.details["image"] == "acme/backend:42"

    async def test_preflight_accepts_fresh_tag(self, config, runner, tag_ledger, request_42) -> None:
        await ImageBuilder(config, runner, ledger=tag_ledger).preflight(request_42)
        assert runner.calls == []
