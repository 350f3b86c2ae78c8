"""Status reconciler.

Keeps `status.pods` of an Nginx instance equal to the Pods currently matching
its label selector. Both the observed and the stored lists are sorted by name
before comparing, so the order returned by the store is never a reason to
write.
"""

from collections.abc import Iterable

from .client import ResourceClient
from .context import ResourceLogger, trace_context
from .exceptions import ClientException, StatusRefreshError
from .k8s import DEFAULT_BUILDER, DesiredStateBuilder
from .manifest import Nginx, NginxPod, Pod

__all__ = [
    "StatusReconciler",
    "observed_pods",
    "pods_changed",
]


def _by_name(pod: NginxPod) -> str:
    return pod.name


def observed_pods(pods: Iterable[Pod]) -> list[NginxPod]:
    """Project live Pods to status entries sorted by name."""
    return sorted(
        (NginxPod(name=pod.name, pod_ip=pod.pod_ip) for pod in pods), key=_by_name
    )


def pods_changed(observed: list[NginxPod], stored: list[NginxPod]) -> bool:
    """Return True if the two sorted lists differ in length or any field."""
    return observed != stored


class StatusReconciler:
    """Refreshes the observed Pod list on the Nginx status."""

    def __init__(
        self, client: ResourceClient, builder: DesiredStateBuilder = DEFAULT_BUILDER
    ) -> None:
        self._client = client
        self._builder = builder

    async def refresh(
        self, nginx: Nginx, logger: ResourceLogger, deleted: bool = False
    ) -> None:
        """Rewrite the status of the instance if the observed Pods changed.

        The Nginx object is updated in place with the sorted stored list, and
        with the observed list when a write happens.

        Raises:
            StatusRefreshError: If listing Pods or persisting the status failed.
        """
        if deleted:
            logger.debug("nginx deleted, skipping status update")
            return

        with trace_context("Status", logger):
            selector = self._builder.selector(nginx)
            try:
                pods = await self._client.list(nginx.namespace, Pod, selector)
            except ClientException as err:
                raise StatusRefreshError(f"failed to list pods: {err}") from err

            observed = observed_pods(pods)
            nginx.status.pods.sort(key=_by_name)
            if not pods_changed(observed, nginx.status.pods):
                logger.debug("Status unchanged with %d pods", len(observed))
                return

            logger.info("Updating status pods %s", [pod.name for pod in observed])
            nginx.status.pods = observed
            try:
                updated = await self._client.update(nginx)
            except ClientException as err:
                raise StatusRefreshError(
                    f"failed to update nginx status: {err}"
                ) from err
            nginx.resource_version = updated.resource_version
