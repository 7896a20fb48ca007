"""
launchpad.manifests - Deployment Manifest Rendering
=====================================================

    - kubernetes: ConfigMap, Secret, Deployment, Service, Ingress
    - compose:    the ephemeral-database Compose file used by the Test Runner
"""

from launchpad.manifests.compose import MONGODB_IMAGE, dump_compose, render_test_compose
from launchpad.manifests.kubernetes import dump_manifests, render_kubernetes_manifests

__all__ = [
    "render_kubernetes_manifests",
    "dump_manifests",
    "render_test_compose",
    "dump_compose",
    "MONGODB_IMAGE",
]
