"""Task tracking service for nginx-operator.

Reconciliations triggered by object changes run as tasks. The service keeps
track of them so callers can wait until every reconciliation, including the
ones spawned by other reconciliations, has finished.
"""

import asyncio
from abc import ABC, abstractmethod
from collections.abc import Generator
from contextlib import contextmanager
from contextvars import ContextVar
import logging
from typing import Any, Coroutine

_LOGGER = logging.getLogger(__name__)

__all__ = [
    "TaskService",
    "TaskServiceImpl",
    "get_task_service",
    "task_service_context",
]


class TaskService(ABC):
    """Service for tracking and waiting for asynchronous tasks."""

    @abstractmethod
    def create_task(
        self, coro: Coroutine[None, None, Any], name: str | None = None
    ) -> asyncio.Task[Any]:
        """Create and track a new task.

        Args:
            coro: The coroutine to run as a task
            name: Optional name of the task, used in logs

        Returns:
            The created task
        """

    @abstractmethod
    async def block_till_done(self) -> None:
        """Wait until no tracked task is active.

        Tasks created while waiting are waited for as well.
        """

    @abstractmethod
    def get_num_active_tasks(self) -> int:
        """Get the number of active tasks."""


class TaskServiceImpl(TaskService):
    """Service for tracking and waiting for asynchronous tasks."""

    def __init__(self) -> None:
        """Initialize the task service."""
        self._active_tasks: set[asyncio.Task[Any]] = set()

    def create_task(
        self, coro: Coroutine[None, None, Any], name: str | None = None
    ) -> asyncio.Task[Any]:
        """Create and track a new task."""
        task = asyncio.create_task(coro, name=name)
        self._active_tasks.add(task)
        task.add_done_callback(self._task_done)
        return task

    def _task_done(self, task: asyncio.Task[Any]) -> None:
        """Callback when a task is done."""
        self._active_tasks.discard(task)
        if task.cancelled():
            _LOGGER.debug("Task %s cancelled", task.get_name())
            return
        if (err := task.exception()) is not None:
            _LOGGER.error("Task %s failed: %s", task.get_name(), err)

    async def block_till_done(self) -> None:
        """Wait until no tracked task is active."""
        while active_tasks := list(self._active_tasks):
            _LOGGER.debug("Waiting for %d tasks to complete", len(active_tasks))
            await asyncio.gather(*active_tasks, return_exceptions=True)
        await asyncio.sleep(0)

    def get_num_active_tasks(self) -> int:
        """Get the number of active tasks."""
        return len(self._active_tasks)


_CURRENT: ContextVar[TaskService | None] = ContextVar(
    "nginx_operator_task_service", default=None
)


def get_task_service() -> TaskService:
    """Return the task service of the current context.

    A context without a service gets one on first use, so controllers created
    outside `task_service_context` still share a single service.
    """
    if (service := _CURRENT.get()) is None:
        service = TaskServiceImpl()
        _CURRENT.set(service)
    return service


@contextmanager
def task_service_context(
    service: TaskService | None = None,
) -> Generator[TaskService, None, None]:
    """Make `service`, or a new service, current for the enclosed block.

    Controllers created inside the block schedule their reconciliations on
    it, so the caller can wait for them with `block_till_done`. The previous
    service is restored on exit.
    """
    current = service or TaskServiceImpl()
    token = _CURRENT.set(current)
    try:
        yield current
    finally:
        _CURRENT.reset(token)
