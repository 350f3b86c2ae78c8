"""Client module for reading and writing cluster objects."""

from abc import ABC, abstractmethod
from collections.abc import Callable
from enum import Enum
from typing import TypeVar

from nginx_operator.manifest import KubernetesObject, NamedResource

T = TypeVar("T", bound=KubernetesObject)


class ClientEvent(str, Enum):
    """Enum for object change events."""

    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"


class ResourceClient(ABC):
    """Abstract base class for the cluster object store client."""

    @abstractmethod
    async def create(self, obj: T) -> T:
        """Create a new object in the store and return the stored copy.

        Raises:
            AlreadyExistsError: If an object with the same identity exists.
        """

    @abstractmethod
    async def get(self, resource_id: NamedResource, cls: type[T]) -> T:
        """Retrieve an object by resource identity and type.

        Raises:
            ObjectNotFoundError: If the object does not exist.
        """

    @abstractmethod
    async def update(self, obj: T) -> T:
        """Replace an existing object and return the stored copy.

        When the object carries a resource version it must match the stored
        one, which gives callers optimistic concurrency.

        Raises:
            ObjectNotFoundError: If the object does not exist.
            ConflictError: If the object resource version is stale.
        """

    @abstractmethod
    async def list(
        self, namespace: str, cls: type[T], label_selector: str | None = None
    ) -> list[T]:
        """List objects of a kind in a namespace matching a label selector.

        The order of the returned objects carries no meaning.
        """

    @abstractmethod
    async def delete(self, resource_id: NamedResource) -> None:
        """Delete an object by resource identity.

        Raises:
            ObjectNotFoundError: If the object does not exist.
        """

    @abstractmethod
    def add_listener(
        self,
        callback: Callable[[ClientEvent, NamedResource, KubernetesObject], None],
    ) -> Callable[[], None]:
        """Register a callback invoked for every object change.

        Returns a callable that can be called to remove the listener.
        """
