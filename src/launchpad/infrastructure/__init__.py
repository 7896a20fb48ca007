"""
launchpad.infrastructure - Tool & Dependency Layer
====================================================

The components stages use to touch the outside world:

    - CommandRunner:  run docker / terraform / ansible-playbook
    - HealthCheck:    probe a dependency until it is ready
    - TagLedger:      remember which image tags were pushed

Usage:
    from launchpad.infrastructure import SubprocessCommandRunner, InMemoryTagLedger
"""

from launchpad.infrastructure.command_runner import (
    CommandRunner,
    ScriptedCommandRunner,
    SubprocessCommandRunner,
)
from launchpad.infrastructure.health import (
    CommandHealthCheck,
    HealthCheck,
    HttpHealthCheck,
    TcpHealthCheck,
    wait_until_healthy,
)
from launchpad.infrastructure.tag_ledger import InMemoryTagLedger, TagClaim, TagLedger

__all__ = [
    "CommandRunner",
    "SubprocessCommandRunner",
    "ScriptedCommandRunner",
    "HealthCheck",
    "TcpHealthCheck",
    "HttpHealthCheck",
    "CommandHealthCheck",
    "wait_until_healthy",
    "TagLedger",
    "InMemoryTagLedger",
    "TagClaim",
]
