"""Tests for the TaskServiceImpl."""

import asyncio
import logging
from typing import Any

import pytest

from nginx_operator.task import get_task_service, task_service_context
from nginx_operator.task.service import TaskServiceImpl


@pytest.fixture(name="task_service")
def task_service_fixture() -> TaskServiceImpl:
    """Fixture for creating a TaskServiceImpl instance."""
    return TaskServiceImpl()


async def test_create_and_complete_task(task_service: TaskServiceImpl) -> None:
    """Test creating and completing a task."""

    async def reconcile() -> Any:
        await asyncio.sleep(0.01)
        return "done"

    task = task_service.create_task(reconcile(), name="ADDED Nginx/default/web")
    assert task.get_name() == "ADDED Nginx/default/web"
    assert task_service.get_num_active_tasks() == 1

    assert await task == "done"
    assert task_service.get_num_active_tasks() == 0


async def test_block_till_done_waits_for_spawned_tasks(
    task_service: TaskServiceImpl,
) -> None:
    """Test tasks created by running tasks are waited for as well."""
    finished: list[int] = []

    async def reconcile(depth: int) -> None:
        await asyncio.sleep(0.01)
        if depth < 3:
            task_service.create_task(reconcile(depth + 1))
        finished.append(depth)

    task_service.create_task(reconcile(0))
    await task_service.block_till_done()

    assert finished == [0, 1, 2, 3]
    assert task_service.get_num_active_tasks() == 0


async def test_task_failure_is_logged(
    task_service: TaskServiceImpl, caplog: pytest.LogCaptureFixture
) -> None:
    """Test a failing task is logged and does not stop the wait."""

    async def failing() -> Any:
        raise ValueError("Test error")

    task_service.create_task(failing(), name="failing")
    with caplog.at_level(logging.ERROR):
        await task_service.block_till_done()

    assert task_service.get_num_active_tasks() == 0
    assert "Task failing failed: Test error" in caplog.text


async def test_task_cancellation(task_service: TaskServiceImpl) -> None:
    """Test a cancelled task is no longer tracked."""

    async def never() -> Any:
        await asyncio.sleep(10)

    task = task_service.create_task(never())
    task.cancel()
    await task_service.block_till_done()

    assert task.cancelled()
    assert task_service.get_num_active_tasks() == 0


def test_task_service_context() -> None:
    """Test the task service is scoped to the context."""
    with task_service_context() as task_service:
        service1 = get_task_service()
        assert service1 is task_service
        assert get_task_service() is service1

    with task_service_context() as task_service:
        assert get_task_service() is not service1

    existing = TaskServiceImpl()
    with task_service_context(existing):
        assert get_task_service() is existing


def test_task_service_context_restores_previous() -> None:
    """Test nested contexts restore the enclosing task service on exit."""
    with task_service_context() as outer:
        with task_service_context() as inner:
            assert get_task_service() is inner
        assert get_task_service() is outer
