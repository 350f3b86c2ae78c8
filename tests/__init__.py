"""Tests for nginx-operator."""

from typing import TypeVar

from nginx_operator.client import InMemoryClient
from nginx_operator.exceptions import ClientException
from nginx_operator.k8s import labels_for_nginx
from nginx_operator.manifest import KubernetesObject, Pod

T = TypeVar("T", bound=KubernetesObject)

NAME = "my-nginx"
NAMESPACE = "default"


class FailingClient(InMemoryClient):
    """In-memory client that fails selected calls.

    Failures are keyed by `(operation, kind)`, e.g. `("create", "Deployment")`.
    """

    def __init__(self) -> None:
        super().__init__()
        self.failures: dict[tuple[str, str], ClientException] = {}

    def _maybe_fail(self, operation: str, kind: str) -> None:
        if (err := self.failures.get((operation, kind))) is not None:
            raise err

    async def create(self, obj: T) -> T:
        self._maybe_fail("create", obj.kind)
        return await super().create(obj)

    async def get(self, resource_id, cls):  # type: ignore[no-untyped-def]
        self._maybe_fail("get", resource_id.kind)
        return await super().get(resource_id, cls)

    async def update(self, obj: T) -> T:
        self._maybe_fail("update", obj.kind)
        return await super().update(obj)

    async def list(self, namespace, cls, label_selector=None):  # type: ignore[no-untyped-def]
        self._maybe_fail("list", cls.kind)
        return await super().list(namespace, cls, label_selector)


def make_pod(name: str, pod_ip: str, instance: str = NAME) -> Pod:
    """Return a pod belonging to the named Nginx instance."""
    return Pod(
        name=name,
        namespace=NAMESPACE,
        labels=labels_for_nginx(instance),
        pod_ip=pod_ip,
    )
