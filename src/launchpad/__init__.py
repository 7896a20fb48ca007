"""
Launchpad - Container Deployment Pipeline
===========================================

Launchpad runs a backend service from source to a configured cloud host
through a fixed sequence of stages, each delegating to an external tool:

    Test (Compose + ephemeral MongoDB)  →  Build (docker)  →  Publish (registry)
      →  Provision (Terraform)  →  Configure (Ansible)  →  Notify (Slack)

Architecture Layers (top to bottom):
    1. Orchestration Layer  - PipelineEngine, StateManager
    2. Stage Layer          - TestRunner, ImageBuilder, ImagePublisher, ...
    3. Infrastructure Layer - CommandRunner, HealthCheck, TagLedger
    4. Integration Layer    - Notifiers

Quick Start:
    >>> from launchpad import Launchpad
    >>> async with Launchpad() as launchpad:
    ...     state = await launchpad.run_pipeline(build_number=42)
"""

# =============================================================================
# Package Version
# =============================================================================
__version__ = "0.1.0"

# =============================================================================
# Package-Level Exports
# =============================================================================
# For specific components, import from submodules directly:
#   from launchpad.core.config import PipelineConfig
#   from launchpad.stages import ImageBuilder
# =============================================================================
from launchpad.facade import Launchpad

__all__ = ["Launchpad", "__version__"]
