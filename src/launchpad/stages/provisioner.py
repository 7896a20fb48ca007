"""
launchpad.stages.provisioner - Infrastructure Provisioner Stage
=================================================================

Reconciles the declared cloud infrastructure with Terraform and reads the
provider-assigned addresses back:

    terraform init -input=false
    terraform apply -auto-approve -input=false
    terraform output -json   →   {"public_ip": {"value": "1.2.3.4"}, ...}

Terraform runs in ``cloud.terraform_dir`` under the request's source directory.
Cloud credentials are exported as TF_VAR_* environment variables. There
is no rollback: a failed apply leaves whatever Terraform created.
"""

from __future__ import annotations

import json
import os
from typing import Any

from launchpad.core.enums import StageName
from launchpad.core.exceptions import ProvisioningError
from launchpad.core.models import InfrastructureDescriptor, PipelineContext
from launchpad.stages.base import BaseStage


class InfrastructureProvisioner(BaseStage):
    """Runs Terraform and returns an InfrastructureDescriptor."""

    name = StageName.PROVISION
    error_class = ProvisioningError

    def terraform_env(self) -> dict[str, str]:
        """Credentials as Terraform input variables."""
        cloud = self._config.cloud
        return {
            "TF_VAR_client_id": cloud.client_id,
            "TF_VAR_client_secret": cloud.client_secret.get_secret_value(),
            "TF_VAR_tenant_id": cloud.tenant_id,
            "TF_VAR_subscription_id": cloud.subscription_id,
        }

    async def _validate(self, context: PipelineContext) -> None:
        cloud = self._config.cloud
        self.require_setting(cloud.client_id, "cloud.client_id")
        self.require_setting(cloud.client_secret.get_secret_value(), "cloud.client_secret")
        self.require_setting(cloud.tenant_id, "cloud.tenant_id")
        self.require_setting(cloud.subscription_id, "cloud.subscription_id")

    def terraform_dir(self, source_dir: str) -> str:
        """``cloud.terraform_dir``, relative paths resolved against ``source_dir``."""
        return os.path.join(source_dir, self._config.cloud.terraform_dir)

    async def _run(self, context: PipelineContext) -> PipelineContext:
        cloud = self._config.cloud
        cwd = self.terraform_dir(context.request.source_dir)
        env = self.terraform_env()
        redact = [cloud.client_secret.get_secret_value()]
        timeout = cloud.command_timeout_seconds

        for args in (
            ["terraform", "init", "-input=false"],
            ["terraform", "apply", "-auto-approve", "-input=false"],
        ):
            await self._runner.run(
                args, env=env, cwd=cwd, timeout=timeout, redact=redact
            )

        result = await self._runner.run(
            ["terraform", "output", "-json"],
            env=env,
            cwd=cwd,
            timeout=timeout,
            redact=redact,
        )

        infrastructure = InfrastructureDescriptor(outputs=parse_outputs(result.stdout))
        address = infrastructure.address(cloud.ip_output_name)
        self._logger.info("infrastructure_ready", target_host=address)
        return context.model_copy(update={"infrastructure": infrastructure})


def parse_outputs(raw: str) -> dict[str, str]:
    """Flatten ``terraform output -json`` into name → string value.

    Non-string values (lists, maps, numbers) are kept as compact JSON.

    Raises:
        ProvisioningError: ``INVALID_OUTPUT`` if ``raw`` is not an output map.
    """
    try:
        data: Any = json.loads(raw or "{}")
    except json.JSONDecodeError as e:
        raise ProvisioningError(
            message=f"terraform output is not valid JSON: {e}",
            error_code="INVALID_OUTPUT",
        ) from e

    if not isinstance(data, dict):
        raise ProvisioningError(
            message="terraform output must be a JSON object",
            error_code="INVALID_OUTPUT",
            details={"type": type(data).__name__},
        )

    outputs: dict[str, str] = {}
    for name, entry in data.items():
        value = entry.get("value") if isinstance(entry, dict) else entry
        if value is None:
            continue
        outputs[name] = value if isinstance(value, str) else json.dumps(value, separators=(",", ":"))
    return outputs
