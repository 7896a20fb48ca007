"""
Tests for launchpad.stages.publisher
======================================

What's Being Tested:
    - Registry login with the password on stdin only
    - Push of the exact artifact reference
    - A tag is published at most once, by the run that holds it
    - Missing credentials fail before anything runs
"""

import pytest

from launchpad.core.config import PipelineConfig, RegistryConfig
from launchpad.core.exceptions import ConfigurationError, PublishError
from launchpad.core.models import BuildArtifact, ImageReference, PipelineContext
from launchpad.stages.publisher import ImagePublisher


def _built(context: PipelineContext, tag: str = "42") -> PipelineContext:
    """Context carrying a BuildArtifact for acme/backend:<tag>."""
    artifact = BuildArtifact(
        image=ImageReference(namespace="acme", name="backend", tag=tag),
        environment="production",
        build_number=int(tag),
    )
    return context.model_copy(update={"artifact": artifact})


class TestImagePublisher:
    """Tests for ImagePublisher."""

    async def test_login_then_push(self, config, runner, tag_ledger, context) -> None:
        result = await ImagePublisher(config, runner, ledger=tag_ledger).execute(_built(context))

        assert runner.commands == [
            "docker login -u ci-bot --password-stdin",
            "docker push acme/backend:42",
        ]
        assert str(result.published.image) == "acme/backend:42"
        assert result.published.registry == ""

    async def test_password_only_on_stdin(self, config, runner, tag_ledger, context) -> None:
        await ImagePublisher(config, runner, ledger=tag_ledger).execute(_built(context))

        login = runner.calls_matching("docker login")[0]
        assert login["stdin"] == "s3cret-token"
        for call in runner.calls:
            assert "s3cret-token" not in " ".join(call["args"])

    async def test_registry_url_passed_to_login(self, runner, tag_ledger, context) -> None:
        config = PipelineConfig(
            registry=RegistryConfig(
                url="registry.example.com",
                namespace="acme",
                username="ci-bot",
                password="pw",
            )
        )
        await ImagePublisher(config, runner, ledger=tag_ledger).execute(_built(context))

        assert runner.calls[0]["args"][:3] == ["docker", "login", "registry.example.com"]

    async def test_tag_claimed(self, config, runner, tag_ledger, context) -> None:
        stage = ImagePublisher(config, runner, ledger=tag_ledger)
        await stage.execute(_built(context))

        assert stage.ledger is tag_ledger
        assert await tag_ledger.list_tags("acme/backend") == ["42"]

    async def test_duplicate_tag_never_pushed(self, config, runner, tag_ledger, context) -> None:
        """Another run re-publishing a build number fails before docker push."""
        stage = ImagePublisher(config, runner, ledger=tag_ledger)
        await stage.execute(_built(context))
        runner.reset()

        with pytest.raises(PublishError) as exc_info:
            await stage.execute(_built(context).model_copy(update={"run_id": "run-43"}))

        assert exc_info.value.error_code == "DUPLICATE_TAG"
        assert runner.calls_matching("docker push") == []

    async def test_tag_claimed_by_builder_of_same_run(self, config, runner, tag_ledger, context) -> None:
        """The builder's claim does not block the publisher of the same run."""
        await tag_ledger.claim(ImageReference.parse("acme/backend:42"), run_id=context.run_id)

        await ImagePublisher(config, runner, ledger=tag_ledger).execute(_built(context))

        assert len(runner.calls_matching("docker push")) == 1

    async def test_preflight_rejects_used_tag(self, config, runner, tag_ledger, request_42) -> None:
        await tag_ledger.claim(ImageReference.parse("acme/backend:42"), run_id="earlier-run")

        with pytest.raises(PublishError) as exc_info:
            await ImagePublisher(config, runner, ledger=tag_ledger).preflight(request_42)

        assert exc_info.value.error_code == "DUPLICATE_TAG"
        assert runner.calls == []

    async def test_preflight_accepts_fresh_tag(self, config, runner, tag_ledger, request_42) -> None:
        await ImagePublisher(config, runner, ledger=tag_ledger).preflight(request_42)

    async def test_login_failure(self, config, runner, tag_ledger, context) -> None:
        runner.on("docker login", exit_code=1, stderr="unauthorized")

        with pytest.raises(PublishError) as exc_info:
            await ImagePublisher(config, runner, ledger=tag_ledger).execute(_built(context))

        assert exc_info.value.error_code == "COMMAND_FAILED"
        assert runner.calls_matching("docker push") == []

    async def test_push_failure(self, config, runner, tag_ledger, context) -> None:
        runner.on("docker push", exit_code=1, stderr="denied")

        with pytest.raises(PublishError):
            await ImagePublisher(config, runner, ledger=tag_ledger).execute(_built(context))

    async def test_missing_credentials(self, runner, tag_ledger, context) -> None:
        config = PipelineConfig(registry=RegistryConfig(namespace="acme", username="ci-bot"))

        with pytest.raises(ConfigurationError) as exc_info:
            await ImagePublisher(config, runner, ledger=tag_ledger).execute(_built(context))

        assert exc_info.value.details["key"] == "registry.password"
        assert runner.calls == []

    async def test_missing_artifact(self, config, runner, tag_ledger, context) -> None:
        with pytest.raises(ConfigurationError) as exc_info:
            await ImagePublisher(config, runner, ledger=tag_ledger).execute(context)

        assert exc_info.value.error_code == "MISSING_STAGE_INPUT"

    def test_default_ledger(self, config, runner) -> None:
        assert ImagePublisher(config, runner).ledger is not None
