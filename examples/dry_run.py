"""
Dry Run Example - The Whole Pipeline Without Touching Anything
================================================================

Runs all five stages with a ScriptedCommandRunner instead of docker,
terraform and ansible-playbook, then prints every command the pipeline
would have executed (the database ping included) and the final run state.

This is useful for:
    - Checking a launchpad.yaml before the first real deployment
    - Seeing the exact tool invocations for a build number
    - Demonstrating a failing run (pass --fail-tests)

Usage:
    python examples/dry_run.py
    python examples/dry_run.py --fail-tests
"""

from __future__ import annotations

import asyncio
import json
import sys

from launchpad import Launchpad
from launchpad.core.config import CloudConfig, PipelineConfig, RegistryConfig
from launchpad.infrastructure.command_runner import ScriptedCommandRunner
from launchpad.integrations.notifications.mock import MockNotifier


async def main(fail_tests: bool = False) -> None:
    """Run build 42 for production and print what happened."""
    config = PipelineConfig(
        registry=RegistryConfig(namespace="acme", username="ci-bot", password="dry-run"),
        cloud=CloudConfig(
            client_id="client-id",
            client_secret="dry-run",
            tenant_id="tenant-id",
            subscription_id="subscription-id",
        ),
    )

    runner = ScriptedCommandRunner()
    runner.on(
        "terraform output",
        stdout=json.dumps({"public_ip": {"value": "203.0.113.10"}}),
    )
    if fail_tests:
        runner.on("docker compose run", exit_code=1, stdout="1 failing")

    notifier = MockNotifier()

    async with Launchpad(
        config,
        runner=runner,
        notifier=notifier,
    ) as launchpad:
        state = await launchpad.run_pipeline(42)

    print("Commands:")
    for command in runner.commands:
        print(f"  $ {command}")

    print(f"\nOutcome:  {state.outcome.value}")
    print(f"Stages:   {', '.join(state.executed_stages)}")
    if state.failed_stage:
        print(f"Failed:   {state.failed_stage} ({state.error['message']})")

    notification = notifier.last
    print(f"\nNotification: {notification.title}")
    print(f"  {notification.text}")


if __name__ == "__main__":
    asyncio.run(main(fail_tests="--fail-tests" in sys.argv[1:]))
