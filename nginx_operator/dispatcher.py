"""Event dispatcher for change notifications.

A notification carries a snapshot of a cluster object and whether it was
deleted. Only Nginx objects carry behaviour: their dependents are reconciled
first and then their status is refreshed, stopping at the first failure.
Deleting an Nginx is a no-op because its dependents carry owner references
and are removed by the cluster garbage collector.
"""

from dataclasses import dataclass
import logging
from typing import assert_never

from .client import ResourceClient
from .context import resource_logger
from .k8s import DEFAULT_BUILDER, DesiredStateBuilder
from .manifest import ClusterObject, Deployment, Nginx, Pod, Service
from .reconciler import DependentReconcilerConfig, DependentResourceReconciler
from .status import StatusReconciler

__all__ = [
    "Notification",
    "NginxHandler",
]

_LOGGER = logging.getLogger(__name__)


@dataclass
class Notification:
    """A change to a cluster object delivered by the host runtime."""

    object: ClusterObject
    """Snapshot of the object, including its status."""

    deleted: bool = False
    """True when the object was deleted."""


class NginxHandler:
    """Handles notifications by sequencing the Nginx reconcilers."""

    def __init__(
        self,
        client: ResourceClient,
        builder: DesiredStateBuilder = DEFAULT_BUILDER,
        config: DependentReconcilerConfig | None = None,
    ) -> None:
        """Initialize the handler.

        Args:
            client: Client for the cluster object store
            builder: Maps an Nginx to its desired dependent objects
            config: The configuration for the dependent reconciler
        """
        self.dependents = DependentResourceReconciler(client, builder, config)
        self.status = StatusReconciler(client, builder)

    async def handle(self, notification: Notification) -> None:
        """Handle a notification.

        Raises:
            ReconcileException: The first failure encountered.
        """
        match notification.object:
            case Nginx() as nginx:
                await self._handle_nginx(nginx, notification.deleted)
            case Deployment() | Service() | Pod():
                _LOGGER.debug(
                    "Ignoring notification for %s", notification.object.resource_id
                )
            case _:
                assert_never(notification.object)

    async def _handle_nginx(self, nginx: Nginx, deleted: bool) -> None:
        logger = resource_logger(_LOGGER, nginx)
        logger.debug("Handling event for object: %s", nginx)

        if deleted:
            logger.info("object deleted")
            return

        await self.dependents.reconcile(nginx, logger)
        await self.status.refresh(nginx, logger, deleted=deleted)
