"""
launchpad.stages.builder - Container Image Builder Stage
==========================================================

Turns the application source into a versioned container image tagged with
the build number. The target environment is passed as a build argument so
one Dockerfile serves every environment:

    docker build -f Dockerfile -t acme/backend:42 --build-arg NODE_ENV=production .

The tag is claimed in the TagLedger before ``docker build`` runs, so an
image that another run already built under this build number is never
overwritten.
"""

from __future__ import annotations

from typing import Optional

from launchpad.core.config import PipelineConfig
from launchpad.core.enums import StageName
from launchpad.core.environment import EnvironmentStore
from launchpad.core.exceptions import BuildError, PublishError
from launchpad.core.models import (
    BuildArtifact,
    ImageReference,
    PipelineContext,
    PipelineRequest,
)
from launchpad.infrastructure.command_runner import CommandRunner
from launchpad.infrastructure.tag_ledger import InMemoryTagLedger, TagLedger
from launchpad.stages.base import BaseStage


class ImageBuilder(BaseStage):
    """Builds the application image."""

    name = StageName.BUILD
    error_class = BuildError

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

    def image_for(self, request: PipelineRequest) -> ImageReference:
        """The reference the image for ``request`` is tagged with."""
        return self._config.image_for(request.build_number)

    async def preflight(self, request: PipelineRequest) -> None:
        """Fail with ``DUPLICATE_TAG`` if the build number was already used."""
        image = self.image_for(request)
        if await self._ledger.is_claimed(image):
            raise BuildError(
                message=f"Image tag {image} was already built by another run",
                error_code="DUPLICATE_TAG",
                details={"image": str(image)},
            )

    async def _validate(self, context: PipelineContext) -> None:
        self._environments.get(context.request.environment)

    async def _run(self, context: PipelineContext) -> PipelineContext:
        settings = self._config.image
        request = context.request
        image = self.image_for(request)

        try:
            await self._ledger.claim(image, run_id=context.run_id)
        except PublishError as e:
            raise BuildError(
                message=e.message,
                error_code=e.error_code,
                details={"image": str(image)},
            ) from e

        await self._runner.run(
            [
                "docker", "build",
                "-f", settings.dockerfile,
                "-t", str(image),
                "--build-arg", f"{settings.build_arg_name}={request.environment}",
                settings.context_dir,
            ],
            cwd=request.source_dir,
        )

        artifact = BuildArtifact(
            image=image,
            environment=request.environment,
            build_number=request.build_number,
        )
        self._logger.info("image_built", image=str(image))
        return context.model_copy(update={"artifact": artifact})
