"""Test fixtures for nginx-operator."""

import pytest

from nginx_operator.manifest import Nginx, NginxSpec

from . import NAME, NAMESPACE, FailingClient


@pytest.fixture(name="client")
def client_fixture() -> FailingClient:
    """Create an in-memory client for testing."""
    return FailingClient()


@pytest.fixture(name="nginx")
def nginx_fixture(client: FailingClient) -> Nginx:
    """Create an Nginx object already present in the client."""
    return client.seed(
        Nginx(name=NAME, namespace=NAMESPACE, spec=NginxSpec(replicas=2))
    )
