"""
launchpad.stages - Pipeline Stages
====================================

One class per pipeline stage, all built on BaseStage:

    TestRunner                 → TestReport
    ImageBuilder               → BuildArtifact
    ImagePublisher             → PublishedImage
    InfrastructureProvisioner  → InfrastructureDescriptor
    ConfigurationApplier       → ApplyReport
"""

from launchpad.stages.base import BaseStage
from launchpad.stages.builder import ImageBuilder
from launchpad.stages.configurator import ConfigurationApplier
from launchpad.stages.provisioner import InfrastructureProvisioner, parse_outputs
from launchpad.stages.publisher import ImagePublisher
from launchpad.stages.test_runner import TestRunner

__all__ = [
    "BaseStage",
    "TestRunner",
    "ImageBuilder",
    "ImagePublisher",
    "InfrastructureProvisioner",
    "ConfigurationApplier",
    "parse_outputs",
]
