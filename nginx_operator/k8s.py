"""Builders for the dependent objects of an Nginx instance.

The desired Deployment and Service are a pure function of the Nginx resource.
The Pod template labels and the label selector used to observe Pods are both
derived from `labels_for_nginx` so that they can never drift apart.
"""

from typing import Protocol

from .manifest import Deployment, Nginx, OwnerReference, Service

__all__ = [
    "labels_for_nginx",
    "label_selector",
    "selector_for_nginx",
    "owner_reference",
    "new_deployment",
    "new_service",
    "DesiredStateBuilder",
    "DEFAULT_BUILDER",
]

APP_LABEL = "app"
APP_NAME = "nginx"
INSTANCE_LABEL = "nginx_cr"
CONTAINER_NAME = "nginx"
SERVICE_SUFFIX = "-service"


def labels_for_nginx(name: str) -> dict[str, str]:
    """Return the labels identifying the pods of the named Nginx instance."""
    return {APP_LABEL: APP_NAME, INSTANCE_LABEL: name}


def label_selector(labels: dict[str, str]) -> str:
    """Render labels as an equality based selector string with sorted keys."""
    return ",".join(f"{key}={labels[key]}" for key in sorted(labels))


def selector_for_nginx(name: str) -> str:
    """Return the label selector matching the pods of the named Nginx instance."""
    return label_selector(labels_for_nginx(name))


def owner_reference(nginx: Nginx) -> OwnerReference:
    """Return a controller reference pointing at the Nginx instance."""
    return OwnerReference(
        api_version=nginx.api_version,
        kind=nginx.kind,
        name=nginx.name,
        uid=nginx.uid,
    )


def new_deployment(nginx: Nginx) -> Deployment:
    """Return the Deployment that should exist for the Nginx instance."""
    labels = labels_for_nginx(nginx.name)
    return Deployment(
        name=nginx.name,
        namespace=nginx.namespace,
        labels=dict(labels),
        owner_references=[owner_reference(nginx)],
        spec={
            "replicas": nginx.spec.replicas,
            "selector": {"matchLabels": dict(labels)},
            "template": {
                "metadata": {"labels": dict(labels)},
                "spec": {
                    "containers": [
                        {
                            "name": CONTAINER_NAME,
                            "image": nginx.spec.image,
                            "ports": [{"containerPort": nginx.spec.port}],
                        }
                    ]
                },
            },
        },
    )


def new_service(nginx: Nginx) -> Service:
    """Return the Service that should exist for the Nginx instance."""
    labels = labels_for_nginx(nginx.name)
    return Service(
        name=f"{nginx.name}{SERVICE_SUFFIX}",
        namespace=nginx.namespace,
        labels=dict(labels),
        owner_references=[owner_reference(nginx)],
        spec={
            "type": nginx.spec.service_type,
            "selector": dict(labels),
            "ports": [
                {
                    "name": "http",
                    "protocol": "TCP",
                    "port": nginx.spec.port,
                    "targetPort": nginx.spec.port,
                }
            ],
        },
    )


class DesiredStateBuilder(Protocol):
    """Maps an Nginx resource to its dependent objects and pod selector."""

    def deployment(self, nginx: Nginx) -> Deployment:
        ...

    def service(self, nginx: Nginx) -> Service:
        ...

    def selector(self, nginx: Nginx) -> str:
        ...


class _DefaultBuilder:
    """Builder backed by the functions in this module."""

    def deployment(self, nginx: Nginx) -> Deployment:
        return new_deployment(nginx)

    def service(self, nginx: Nginx) -> Service:
        return new_service(nginx)

    def selector(self, nginx: Nginx) -> str:
        return selector_for_nginx(nginx.name)


DEFAULT_BUILDER: DesiredStateBuilder = _DefaultBuilder()
