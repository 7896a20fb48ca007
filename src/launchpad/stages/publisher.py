"""
launchpad.stages.publisher - Image Publisher Stage
====================================================

Pushes a built artifact to the container registry.

    docker login [registry] -u <user> --password-stdin   ← password on stdin
    TagLedger.claim(image, run_id)                       ← held by this run only
    docker push <namespace>/<name>:<build>

A tag held by another run fails the stage before ``docker push`` runs.
Registry credentials are checked before anything is executed.
"""

from __future__ import annotations

from typing import Optional

from launchpad.core.config import PipelineConfig
from launchpad.core.enums import StageName
from launchpad.core.environment import EnvironmentStore
from launchpad.core.exceptions import PublishError
from launchpad.core.models import (
    BuildArtifact,
    PipelineContext,
    PipelineRequest,
    PublishedImage,
)
from launchpad.infrastructure.command_runner import CommandRunner
from launchpad.infrastructure.tag_ledger import InMemoryTagLedger, TagLedger
from launchpad.stages.base import BaseStage


class ImagePublisher(BaseStage):
    """Authenticates to the registry and pushes the artifact."""

    name = StageName.PUBLISH
    error_class = PublishError

    def __init__(
        self,
        config: PipelineConfig,
        runner: CommandRunner,
        *,
        environments: Optional[EnvironmentStore] = None,
        ledger: Optional[TagLedger] = None,
    ) -> None:
        super().__init__(config, runner, environments=environments)
        self._ledger = ledger or InMemoryTagLedger()

    @property
    def ledger(self) -> TagLedger:
        return self._ledger

    async def preflight(self, request: PipelineRequest) -> None:
        """Fail with ``DUPLICATE_TAG`` if the build number was already used."""
        image = self._config.image_for(request.build_number)
        if await self._ledger.is_claimed(image):
            raise PublishError(
                message=f"Image tag {image} is already taken by another run",
                error_code="DUPLICATE_TAG",
                details={"image": str(image)},
            )

    async def _validate(self, context: PipelineContext) -> None:
        registry = self._config.registry
        self.require_setting(registry.username, "registry.username")
        self.require_setting(registry.password.get_secret_value(), "registry.password")
        self.requires(context, "artifact")

    async def _run(self, context: PipelineContext) -> PipelineContext:
        registry = self._config.registry
        artifact: BuildArtifact = context.artifact
        password = registry.password.get_secret_value()

        login = ["docker", "login"]
        if registry.url:
            login.append(registry.url)
        login.extend(["-u", registry.username, "--password-stdin"])
        await self._runner.run(login, stdin=password, redact=[password])
        self._logger.info("registry_login_succeeded", registry=registry.url or "docker.io")

        await self._ledger.claim(artifact.image, run_id=context.run_id)
        await self._runner.run(["docker", "push", str(artifact.image)])

        published = PublishedImage(image=artifact.image, registry=registry.url)
        self._logger.info("image_published", image=str(artifact.image))
        return context.model_copy(update={"published": published})
