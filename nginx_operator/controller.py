"""Nginx Controller implementation.

This controller subscribes to object changes from the client and turns each
change to an Nginx object into a notification for the NginxHandler.

Key Concepts:
    - Each change runs as its own task, so changes to different instances
      are handled concurrently.
    - A failed reconciliation is logged and recorded; it is not retried
      here. Redelivery is up to whatever produces the changes.
"""

import asyncio
import logging

from .client import ClientEvent, ResourceClient
from .dispatcher import NginxHandler, Notification
from .exceptions import ReconcileException
from .manifest import KubernetesObject, NamedResource, Nginx
from .task import get_task_service

__all__ = ["NginxController"]

_LOGGER = logging.getLogger(__name__)


class NginxController:
    """Controller reconciling Nginx objects as they change in the client."""

    def __init__(self, client: ResourceClient, handler: NginxHandler) -> None:
        """Initialize the controller and start listening for changes.

        Args:
            client: The client whose changes trigger reconciliation
            handler: Handler invoked with a notification for each change
        """
        self._handler = handler
        self._task_service = get_task_service()
        self._tasks: list[asyncio.Task[None]] = []
        self.errors: dict[NamedResource, ReconcileException] = {}
        self._remove_listener = client.add_listener(self._listener)

    def _listener(
        self, event: ClientEvent, resource_id: NamedResource, obj: KubernetesObject
    ) -> None:
        """Event listener for changed objects."""
        if not isinstance(obj, Nginx):
            return
        notification = Notification(obj.copy(), deleted=event == ClientEvent.DELETED)
        self._tasks = [task for task in self._tasks if not task.done()]
        self._tasks.append(
            self._task_service.create_task(
                self.reconcile(resource_id, notification),
                name=f"{event.value} {resource_id}",
            )
        )

    async def reconcile(
        self, resource_id: NamedResource, notification: Notification
    ) -> None:
        """Handle a single notification, recording the outcome."""
        try:
            await self._handler.handle(notification)
        except ReconcileException as err:
            _LOGGER.warning("Failed to reconcile %s: %s", resource_id, err)
            self.errors[resource_id] = err
        except Exception as err:
            _LOGGER.error(
                "Uncaught exception while reconciling %s: %s",
                resource_id,
                err,
                exc_info=True,
            )
            error = ReconcileException(
                f"Unexpected error {type(err).__name__}: {err}"
            )
            error.__cause__ = err
            self.errors[resource_id] = error
        else:
            self.errors.pop(resource_id, None)

    async def close(self) -> None:
        """Stop listening and cancel any outstanding reconciliation."""
        self._remove_listener()
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()
