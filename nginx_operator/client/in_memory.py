"""Module for in memory cluster object store."""

from collections.abc import Callable
from dataclasses import dataclass
import itertools
import logging
from typing import Any, TypeVar
import uuid

from nginx_operator.exceptions import (
    AlreadyExistsError,
    ConflictError,
    ObjectNotFoundError,
)
from nginx_operator.manifest import DependentObject, KubernetesObject, NamedResource

from .client import ClientEvent, ResourceClient
from .selector import matches, parse_selector

_LOGGER = logging.getLogger(__name__)

T = TypeVar("T", bound=KubernetesObject)


@dataclass(frozen=True)
class ClientCall:
    """A record of a single call made against the client."""

    operation: str
    kind: str
    namespace: str | None
    name: str | None = None


class InMemoryClient(ResourceClient):
    """In-memory implementation of the ResourceClient interface.

    Stores objects keyed by NamedResource and hands out copies so callers
    never share state with the store. Every call is appended to `calls`.
    Deleting an object also deletes the objects it owns.
    """

    def __init__(self) -> None:
        """Initialize the InMemoryClient."""
        self._objects: dict[NamedResource, KubernetesObject] = {}
        self._listeners: list[
            Callable[[ClientEvent, NamedResource, KubernetesObject], None]
        ] = []
        self._versions = itertools.count(1)
        self.calls: list[ClientCall] = []

    def _record(self, operation: str, resource_id: NamedResource) -> None:
        self.calls.append(
            ClientCall(
                operation, resource_id.kind, resource_id.namespace, resource_id.name
            )
        )

    def _store(self, obj: T) -> T:
        obj.resource_version = str(next(self._versions))
        self._objects[obj.resource_id] = obj.copy()
        return obj.copy()

    def seed(self, obj: T) -> T:
        """Add an object directly, bypassing the call log and listeners."""
        obj = obj.copy()
        if obj.uid is None:
            obj.uid = str(uuid.uuid4())
        return self._store(obj)

    def list_objects(self, kind: str | None = None) -> list[KubernetesObject]:
        """List all objects in the store, optionally filtered by kind."""
        return [
            obj.copy()
            for obj in sorted(self._objects.values(), key=lambda o: o.resource_id)
            if kind is None or obj.kind == kind
        ]

    async def create(self, obj: T) -> T:
        """Create a new object in the store and return the stored copy."""
        resource_id = obj.resource_id
        self._record("create", resource_id)
        if resource_id in self._objects:
            raise AlreadyExistsError(f"{resource_id} already exists")
        _LOGGER.debug("Creating object %s", resource_id)
        new_obj = obj.copy()
        new_obj.uid = str(uuid.uuid4())
        result = self._store(new_obj)
        self._fire_event(ClientEvent.ADDED, resource_id, result)
        self._collect_if_orphaned(result)
        return result

    async def get(self, resource_id: NamedResource, cls: type[T]) -> T:
        """Retrieve an object by resource identity and type."""
        self._record("get", resource_id)
        if (obj := self._objects.get(resource_id)) is None:
            raise ObjectNotFoundError(f"{resource_id} not found")
        if not isinstance(obj, cls):
            raise ValueError(
                f"Object {resource_id.namespaced_name} is not of type {cls.__name__} "
                f"(was {obj.__class__.__name__})"
            )
        return obj.copy()

    async def update(self, obj: T) -> T:
        """Replace an existing object and return the stored copy."""
        resource_id = obj.resource_id
        self._record("update", resource_id)
        if (existing := self._objects.get(resource_id)) is None:
            raise ObjectNotFoundError(f"{resource_id} not found")
        if (
            obj.resource_version is not None
            and obj.resource_version != existing.resource_version
        ):
            raise ConflictError(
                f"{resource_id} has been modified (resource version "
                f"{obj.resource_version} != {existing.resource_version})"
            )
        _LOGGER.debug("Updating object %s", resource_id)
        new_obj = obj.copy()
        new_obj.uid = existing.uid
        result = self._store(new_obj)
        self._fire_event(ClientEvent.MODIFIED, resource_id, result)
        self._collect_if_orphaned(result)
        return result

    async def list(
        self, namespace: str, cls: type[T], label_selector: str | None = None
    ) -> list[T]:
        """List objects of a kind in a namespace matching a label selector."""
        self.calls.append(ClientCall("list", cls.kind, namespace))
        requirements = parse_selector(label_selector)
        return [
            obj.copy()
            for obj in self._objects.values()
            if isinstance(obj, cls)
            and obj.namespace == namespace
            and matches(requirements, obj.labels)
        ]

    async def delete(self, resource_id: NamedResource) -> None:
        """Delete an object and, transitively, the objects it owns."""
        self._record("delete", resource_id)
        if resource_id not in self._objects:
            raise ObjectNotFoundError(f"{resource_id} not found")
        self._remove(resource_id)

    def _collect_if_orphaned(self, obj: KubernetesObject) -> None:
        """Remove a dependent whose owners no longer exist.

        An object created or updated with owner references that all point at
        deleted owners is collected right away, as the cluster garbage
        collector would eventually do.
        """
        if not isinstance(obj, DependentObject) or not obj.owner_references:
            return
        live_uids = {stored.uid for stored in self._objects.values()}
        if any(ref.uid in live_uids for ref in obj.owner_references):
            return
        _LOGGER.debug("Garbage collecting orphaned %s", obj.resource_id)
        self._remove(obj.resource_id)

    def _remove(self, resource_id: NamedResource) -> None:
        obj = self._objects.pop(resource_id)
        _LOGGER.debug("Deleted object %s", resource_id)
        self._fire_event(ClientEvent.DELETED, resource_id, obj)
        dependents = [
            dep.resource_id
            for dep in self._objects.values()
            if isinstance(dep, DependentObject)
            and any(ref.uid == obj.uid for ref in dep.owner_references)
        ]
        for dependent_id in dependents:
            if dependent_id in self._objects:
                _LOGGER.debug(
                    "Garbage collecting %s owned by %s", dependent_id, resource_id
                )
                self._remove(dependent_id)

    def add_listener(
        self,
        callback: Callable[[ClientEvent, NamedResource, KubernetesObject], None],
    ) -> Callable[[], None]:
        """Register a callback invoked for every object change."""

        def remove() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        self._listeners.append(callback)
        return remove

    def _fire_event(self, event: ClientEvent, *args: Any) -> None:
        for cb in list(self._listeners):  # Iterate over a copy for safe removal
            try:
                cb(event, *args)
            except Exception:
                _LOGGER.exception("Client listener callback failed for event %s", event)
