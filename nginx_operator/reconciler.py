"""Dependent resource reconciler.

Guarantees that the Deployment and the Service of an Nginx instance exist
and that the Deployment matches the desired state.

Key Concepts:
    - Create first: "already exists" is an expected steady-state answer, not
      an error, so reconciling is safe to repeat any number of times.
    - Deployment drift is detected with a subset comparison of the observable
      fields, ignoring anything the server defaulted.
    - Service conflicts are ignored outright.
"""

from dataclasses import dataclass
from typing import Any

from .client import ResourceClient
from .context import ResourceLogger, trace_context
from .exceptions import AlreadyExistsError, ClientException, DependentResourceError
from .k8s import DEFAULT_BUILDER, DesiredStateBuilder
from .manifest import DEPLOYMENT_KIND, SERVICE_KIND, DependentObject, Deployment, Nginx

__all__ = [
    "DependentReconcilerConfig",
    "DependentResourceReconciler",
    "diff_fields",
]


def diff_fields(desired: Any, existing: Any, path: str = "") -> list[str]:
    """Return the dotted paths where `existing` does not match `desired`.

    Only keys present in `desired` are compared so that fields defaulted by
    the server do not count as drift. Lists must match in length and are
    compared element by element.
    """
    if isinstance(desired, dict) and isinstance(existing, dict):
        changed: list[str] = []
        for key, value in desired.items():
            child = f"{path}.{key}" if path else str(key)
            if key not in existing:
                changed.append(child)
                continue
            changed.extend(diff_fields(value, existing[key], child))
        return changed
    if isinstance(desired, list) and isinstance(existing, list):
        if len(desired) != len(existing):
            return [path]
        changed = []
        for index, (item, existing_item) in enumerate(zip(desired, existing)):
            changed.extend(diff_fields(item, existing_item, f"{path}[{index}]"))
        return changed
    if desired != existing:
        return [path]
    return []


def _merge(existing: dict[str, Any], desired: dict[str, Any]) -> dict[str, Any]:
    """Overlay desired values onto existing ones, keeping unrelated keys."""
    result = dict(existing)
    for key, value in desired.items():
        if isinstance(value, dict) and isinstance(result.get(key), dict):
            result[key] = _merge(result[key], value)
        else:
            result[key] = value
    return result


def _drift(desired: DependentObject, existing: DependentObject) -> list[str]:
    """Return the observable fields of `existing` that drifted from `desired`."""
    changed = diff_fields(
        {"labels": desired.labels, "spec": desired.spec},
        {"labels": existing.labels, "spec": existing.spec},
    )
    existing_refs = [ref.to_dict() for ref in existing.owner_references]
    if any(ref.to_dict() not in existing_refs for ref in desired.owner_references):
        changed.append("ownerReferences")
    return changed


@dataclass
class DependentReconcilerConfig:
    """Configuration for the DependentResourceReconciler."""

    update_deployment: bool = True
    """Update an existing Deployment that drifted from the desired state.

    When disabled, drift is only reported in the logs.
    """


class DependentResourceReconciler:
    """Creates, and keeps up to date, the dependent objects of an Nginx."""

    def __init__(
        self,
        client: ResourceClient,
        builder: DesiredStateBuilder = DEFAULT_BUILDER,
        config: DependentReconcilerConfig | None = None,
    ) -> None:
        """Initialize the reconciler.

        Args:
            client: Client for the cluster object store
            builder: Maps an Nginx to its desired dependent objects
            config: The configuration for the reconciler
        """
        self._client = client
        self._builder = builder
        self._config = config or DependentReconcilerConfig()

    async def reconcile(self, nginx: Nginx, logger: ResourceLogger) -> None:
        """Reconcile the Deployment and then the Service of the instance.

        Raises:
            DependentResourceError: If any store call failed.
        """
        with trace_context("Dependents", logger):
            await self.reconcile_deployment(nginx, logger)
            await self.reconcile_service(nginx, logger)

    async def reconcile_deployment(self, nginx: Nginx, logger: ResourceLogger) -> None:
        """Ensure the Deployment exists and matches the desired state."""
        deployment = self._builder.deployment(nginx)
        try:
            await self._client.create(deployment)
        except AlreadyExistsError:
            logger.debug("Deployment %s already exists", deployment.name)
        except ClientException as err:
            logger.error("Failed to create deployment: %s", err)
            raise DependentResourceError(DEPLOYMENT_KIND, "create", err) from err
        else:
            logger.info("Created deployment %s", deployment.name)
            return

        try:
            existing = await self._client.get(deployment.resource_id, Deployment)
        except ClientException as err:
            logger.error("Failed to retrieve deployment: %s", err)
            raise DependentResourceError(DEPLOYMENT_KIND, "get", err) from err

        if not (changed := _drift(deployment, existing)):
            logger.debug("Deployment %s unchanged", deployment.name)
            return

        if not self._config.update_deployment:
            logger.warning(
                "Deployment %s drifted from desired state in %s; updates disabled",
                deployment.name,
                changed,
            )
            return

        logger.info("Deployment %s changed fields: %s", deployment.name, changed)
        existing.labels = {**existing.labels, **deployment.labels}
        desired_uids = {ref.uid for ref in deployment.owner_references}
        existing.owner_references = deployment.owner_references + [
            ref for ref in existing.owner_references if ref.uid not in desired_uids
        ]
        existing.spec = _merge(existing.spec, deployment.spec)
        try:
            await self._client.update(existing)
        except ClientException as err:
            logger.error("Failed to update deployment: %s", err)
            raise DependentResourceError(DEPLOYMENT_KIND, "update", err) from err

    async def reconcile_service(self, nginx: Nginx, logger: ResourceLogger) -> None:
        """Ensure the Service exists."""
        service = self._builder.service(nginx)
        try:
            await self._client.create(service)
        except AlreadyExistsError:
            logger.debug("Service %s already exists", service.name)
            return
        except ClientException as err:
            logger.error("Failed to create service: %s", err)
            raise DependentResourceError(SERVICE_KIND, "create", err) from err
        logger.info("Created service %s", service.name)
