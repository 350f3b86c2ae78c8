"""Tests for the nginx controller."""

from collections.abc import AsyncGenerator

import pytest

from nginx_operator.controller import NginxController
from nginx_operator.dispatcher import NginxHandler, Notification
from nginx_operator.exceptions import ConflictError, ReconcileException
from nginx_operator.manifest import Nginx, NginxPod, NginxSpec
from nginx_operator.task import TaskService, task_service_context
from nginx_operator.task.service import TaskServiceImpl

from . import NAME, NAMESPACE, FailingClient, make_pod


@pytest.fixture(name="task_service")
def task_service_fixture() -> TaskService:
    return TaskServiceImpl()


@pytest.fixture(name="controller")
async def controller_fixture(
    client: FailingClient, task_service: TaskService
) -> AsyncGenerator[NginxController, None]:
    """Create a controller scheduling work on the task service."""
    with task_service_context(task_service):
        controller = NginxController(client, NginxHandler(client))
    yield controller
    await controller.close()


async def test_create_reconciles(
    client: FailingClient, task_service: TaskService, controller: NginxController
) -> None:
    """Test creating an Nginx reconciles it until the status converges."""
    client.seed(make_pod("my-nginx-a", "10.0.0.1"))

    await client.create(Nginx(name=NAME, namespace=NAMESPACE))
    await task_service.block_till_done()

    assert task_service.get_num_active_tasks() == 0
    assert len(client.list_objects("Deployment")) == 1
    assert len(client.list_objects("Service")) == 1
    stored = client.list_objects("Nginx")[0]
    assert isinstance(stored, Nginx)
    assert stored.status.pods == [NginxPod(name="my-nginx-a", pod_ip="10.0.0.1")]
    assert controller.errors == {}
    assert len([call for call in client.calls if call.operation == "update"]) == 1


async def test_spec_change_updates_deployment(
    client: FailingClient, task_service: TaskService, controller: NginxController
) -> None:
    """Test modifying the Nginx spec is propagated to the Deployment."""
    nginx = await client.create(
        Nginx(name=NAME, namespace=NAMESPACE, spec=NginxSpec(replicas=1))
    )
    await task_service.block_till_done()

    nginx = client.list_objects("Nginx")[0]
    assert isinstance(nginx, Nginx)
    nginx.spec.replicas = 3
    await client.update(nginx)
    await task_service.block_till_done()

    deployment = client.list_objects("Deployment")[0]
    assert deployment.spec["replicas"] == 3  # type: ignore[attr-defined]


async def test_delete_removes_dependents(
    client: FailingClient, task_service: TaskService, controller: NginxController
) -> None:
    """Test deleting an Nginx leaves no dependents behind."""
    nginx = await client.create(Nginx(name=NAME, namespace=NAMESPACE))
    await task_service.block_till_done()

    await client.delete(nginx.resource_id)
    await task_service.block_till_done()

    assert client.list_objects() == []
    assert controller.errors == {}


async def test_failure_is_recorded(
    client: FailingClient, task_service: TaskService, controller: NginxController
) -> None:
    """Test a failed reconcile is recorded and cleared on the next success."""
    client.failures[("create", "Deployment")] = ConflictError("boom")
    nginx = await client.create(Nginx(name=NAME, namespace=NAMESPACE))
    await task_service.block_till_done()

    assert list(controller.errors) == [nginx.resource_id]
    assert "failed to create deployment: boom" in str(
        controller.errors[nginx.resource_id]
    )

    client.failures.clear()
    nginx = client.list_objects("Nginx")[0]
    await client.update(nginx)
    await task_service.block_till_done()

    assert controller.errors == {}
    assert len(client.list_objects("Deployment")) == 1


async def test_close_stops_listening(
    client: FailingClient, task_service: TaskService, controller: NginxController
) -> None:
    """Test no reconciliation happens after the controller is closed."""
    await controller.close()

    await client.create(Nginx(name=NAME, namespace=NAMESPACE))
    await task_service.block_till_done()

    assert client.list_objects("Deployment") == []


async def test_delete_before_reconcile(
    client: FailingClient, task_service: TaskService, controller: NginxController
) -> None:
    """Test an instance deleted before its creation is handled leaves nothing."""
    nginx = await client.create(Nginx(name=NAME, namespace=NAMESPACE))
    await client.delete(nginx.resource_id)
    await task_service.block_till_done()

    assert client.list_objects() == []
    assert controller.errors == {}


class BrokenHandler(NginxHandler):
    """Handler failing outside the reconcile error hierarchy."""

    async def handle(self, notification: Notification) -> None:
        raise ValueError("boom")


async def test_unexpected_failure_is_recorded(
    client: FailingClient, task_service: TaskService
) -> None:
    """Test an unexpected exception is recorded as a reconcile failure."""
    with task_service_context(task_service):
        controller = NginxController(client, BrokenHandler(client))
    try:
        nginx = await client.create(Nginx(name=NAME, namespace=NAMESPACE))
        await task_service.block_till_done()
    finally:
        await controller.close()

    error = controller.errors[nginx.resource_id]
    assert isinstance(error, ReconcileException)
    assert str(error) == "Unexpected error ValueError: boom"
    assert isinstance(error.__cause__, ValueError)
