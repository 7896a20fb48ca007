"""
launchpad.manifests.kubernetes - Cluster Manifests
====================================================

Renders the Kubernetes objects that run a published image in a cluster:

    ConfigMap   ← plain environment settings (DATABASE_URL, PORT, variables)
    Secret      ← environment secrets, base64-encoded
    Deployment  ← N replicas of the image, envFrom both of the above,
                  readiness probe on the application port
    Service     ← stable port in front of the pods
    Ingress     ← one host rule → the Service

Manifests are plain dicts so callers can tweak them before dumping.
``dump_manifests`` turns them into one multi-document YAML string.
"""

from __future__ import annotations

import base64
from typing import Any, Optional

import yaml

from launchpad.core.config import PipelineConfig
from launchpad.core.environment import EnvironmentStore
from launchpad.core.models import ImageReference


Manifest = dict[str, Any]


def _metadata(name: str, namespace: str, labels: dict[str, str]) -> dict[str, Any]:
    return {"name": name, "namespace": namespace, "labels": dict(labels)}


def render_kubernetes_manifests(
    config: PipelineConfig,
    image: ImageReference,
    environment: str,
    store: Optional[EnvironmentStore] = None,
) -> list[Manifest]:
    """Render ConfigMap, Secret, Deployment, Service and Ingress.

    Args:
        config: Pipeline configuration (uses ``config.kubernetes``).
        image: The image the Deployment runs.
        environment: Environment whose settings are mounted.
        store: Environment store override.

    Returns:
        The five manifests, in apply order.

    Raises:
        ConfigurationError: If the environment is unknown or has no
            database URL.
    """
    store = store or config.environment_store()
    k8s = config.kubernetes
    settings = store.get(environment)
    env_vars = store.as_env_vars(environment)

    app = config.image.name
    labels = {"app": app, "environment": environment}
    config_name = f"{app}-config"
    secret_name = f"{app}-secrets"

    plain = {key: value for key, value in env_vars.items() if key not in settings.secrets}
    # The container listens on the cluster port, not the environment's.
    plain["PORT"] = str(k8s.container_port)

    config_map = {
        "apiVersion": "v1",
        "kind": "ConfigMap",
        "metadata": _metadata(config_name, k8s.namespace, labels),
        "data": plain,
    }

    secret = {
        "apiVersion": "v1",
        "kind": "Secret",
        "metadata": _metadata(secret_name, k8s.namespace, labels),
        "type": "Opaque",
        "data": {
            key: base64.b64encode(value.get_secret_value().encode()).decode()
            for key, value in sorted(settings.secrets.items())
        },
    }

    deployment = {
        "apiVersion": "apps/v1",
        "kind": "Deployment",
        "metadata": _metadata(app, k8s.namespace, labels),
        "spec": {
            "replicas": k8s.replicas,
            "selector": {"matchLabels": {"app": app}},
            "template": {
                "metadata": {"labels": dict(labels)},
                "spec": {
                    "containers": [
                        {
                            "name": app,
                            "image": str(image),
                            "ports": [{"containerPort": k8s.container_port}],
                            "envFrom": [
                                {"configMapRef": {"name": config_name}},
                                {"secretRef": {"name": secret_name}},
                            ],
                            "readinessProbe": {
                                "tcpSocket": {"port": k8s.container_port},
                                "initialDelaySeconds": 5,
                                "periodSeconds": 10,
                            },
                        }
                    ]
                },
            },
        },
    }

    service = {
        "apiVersion": "v1",
        "kind": "Service",
        "metadata": _metadata(app, k8s.namespace, labels),
        "spec": {
            "selector": {"app": app},
            "ports": [
                {
                    "port": k8s.service_port,
                    "targetPort": k8s.container_port,
                    "protocol": "TCP",
                }
            ],
        },
    }

    ingress = {
        "apiVersion": "networking.k8s.io/v1",
        "kind": "Ingress",
        "metadata": _metadata(app, k8s.namespace, labels),
        "spec": {
            "ingressClassName": k8s.ingress_class,
            "rules": [
                {
                    "host": k8s.hostname,
                    "http": {
                        "paths": [
                            {
                                "path": "/",
                                "pathType": "Prefix",
                                "backend": {
                                    "service": {
                                        "name": app,
                                        "port": {"number": k8s.service_port},
                                    }
                                },
                            }
                        ]
                    },
                }
            ],
        },
    }

    return [config_map, secret, deployment, service, ingress]


def dump_manifests(manifests: list[Manifest]) -> str:
    """Serialize manifests as one multi-document YAML string."""
    return yaml.safe_dump_all(manifests, default_flow_style=False, sort_keys=False)
