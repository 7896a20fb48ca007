"""
launchpad.stages.configurator - Configuration Applier Stage
=============================================================

Brings the provisioned host to the desired software state with Ansible,
pointing it at the image that was just published:

    ansible-playbook -i "1.2.3.4," -u azureuser --private-key ~/.ssh/id_rsa \\
        ansible/playbook.yml -e image=acme/backend:42 -e deploy_environment=production

The trailing comma makes the address an inline inventory. Host key checking
is disabled for freshly provisioned hosts. The run is bounded by
``remote.command_timeout_seconds``.
"""

from __future__ import annotations

import os

from launchpad.core.enums import StageName
from launchpad.core.exceptions import ConfigurationApplyError
from launchpad.core.models import (
    ApplyReport,
    InfrastructureDescriptor,
    PipelineContext,
    PublishedImage,
)
from launchpad.stages.base import BaseStage


class ConfigurationApplier(BaseStage):
    """Applies the Ansible playbook to the target host."""

    name = StageName.CONFIGURE
    error_class = ConfigurationApplyError

    async def _validate(self, context: PipelineContext) -> None:
        self.requires(context, "infrastructure")
        self.requires(context, "published")

    async def _run(self, context: PipelineContext) -> PipelineContext:
        remote = self._config.remote
        infrastructure: InfrastructureDescriptor = context.infrastructure
        published: PublishedImage = context.published
        target_host = infrastructure.address(self._config.cloud.ip_output_name)

        result = await self._runner.run(
            [
                "ansible-playbook",
                "-i", f"{target_host},",
                "-u", remote.user,
                "--private-key", os.path.expanduser(remote.private_key_path),
                remote.playbook,
                "-e", f"image={published.image}",
                "-e", f"deploy_environment={context.request.environment}",
            ],
            env={"ANSIBLE_HOST_KEY_CHECKING": "False"},
            cwd=context.request.source_dir,
            timeout=remote.command_timeout_seconds,
        )

        report = ApplyReport(
            target_host=target_host,
            image=published.image,
            exit_code=result.exit_code,
            output=result.stdout[-4000:],
        )
        self._logger.info("configuration_applied", target_host=target_host)
        return context.model_copy(update={"apply_report": report})
