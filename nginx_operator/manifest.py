"""Representation of the objects the operator reads and writes.

Every object is a dataclass that can be parsed from, and rendered back to, a
kubernetes resource document. Objects are keyed in a cluster store by their
`NamedResource` identity.
"""

from copy import deepcopy
from dataclasses import dataclass, field
import logging
from pathlib import Path
from typing import Any, ClassVar, TypeVar, cast

import aiofiles
import yaml
from mashumaro import DataClassDictMixin, field_options
from mashumaro.config import BaseConfig
from mashumaro.exceptions import MissingField

from .exceptions import InputException

__all__ = [
    "read_objects",
    "parse_raw_obj",
    "NamedResource",
    "OwnerReference",
    "Nginx",
    "NginxSpec",
    "NginxStatus",
    "NginxPod",
    "Deployment",
    "Service",
    "Pod",
    "ClusterObject",
]

_LOGGER = logging.getLogger(__name__)

K = TypeVar("K", bound="KubernetesObject")


NGINX_KIND = "Nginx"
NGINX_DOMAIN = "nginx.tsuru.io"
NGINX_API_VERSION = f"{NGINX_DOMAIN}/v1alpha1"
DEPLOYMENT_KIND = "Deployment"
DEPLOYMENT_API_VERSION = "apps/v1"
SERVICE_KIND = "Service"
POD_KIND = "Pod"
CORE_API_VERSION = "v1"
DEFAULT_NAMESPACE = "default"
DEFAULT_IMAGE = "nginx:latest"
DEFAULT_PORT = 80
DEFAULT_SERVICE_TYPE = "ClusterIP"


def _check_version(doc: dict[str, Any], version: str) -> None:
    """Assert that the resource has the specified version."""
    if not (api_version := doc.get("apiVersion")):
        raise InputException(f"Invalid object missing apiVersion: {doc}")
    if not isinstance(api_version, str) or not api_version.startswith(version):
        raise InputException(f"Invalid object expected '{version}': {doc}")


def _mapping(doc: dict[str, Any], key: str, context: str) -> dict[str, Any]:
    """Return a copy of an optional mapping field of the document."""
    value = doc.get(key) or {}
    if not isinstance(value, dict):
        raise InputException(f"Invalid {context} {key} is not a mapping: {value!r}")
    return dict(value)


@dataclass
class BaseManifest(DataClassDictMixin):
    """Base class for all manifest objects."""

    class Config(BaseConfig):
        omit_none = True
        serialize_by_alias = True


@dataclass(frozen=True, order=True)
class NamedResource:
    """Identifier for a kubernetes resource."""

    kind: str
    namespace: str | None
    name: str

    @property
    def namespaced_name(self) -> str:
        if self.namespace:
            return f"{self.namespace}/{self.name}"
        return self.name

    def __str__(self) -> str:
        """Return the kind and namespaced name concatenated as an id."""
        return f"{self.kind}/{self.namespaced_name}"


@dataclass
class OwnerReference(BaseManifest):
    """A reference from a dependent object to the object that owns it.

    The cluster garbage collector removes dependents once the owner is gone.
    """

    api_version: str = field(metadata=field_options(alias="apiVersion"))
    kind: str
    name: str
    uid: str | None = None
    controller: bool = True
    block_owner_deletion: bool = field(
        default=True, metadata=field_options(alias="blockOwnerDeletion")
    )


@dataclass
class KubernetesObject(BaseManifest):
    """Base class for objects with kubernetes object metadata."""

    kind: ClassVar[str]
    """The kind of the object."""

    api_version: ClassVar[str]
    """The apiVersion of the object."""

    name: str
    """The name of the object."""

    namespace: str = DEFAULT_NAMESPACE
    """The namespace of the object."""

    labels: dict[str, str] = field(default_factory=dict)
    """Labels attached to the object."""

    uid: str | None = None
    """Unique id assigned by the store on creation."""

    resource_version: str | None = None
    """Opaque version assigned by the store, used for optimistic concurrency."""

    @property
    def resource_id(self) -> NamedResource:
        """Return the identity of this object in the store."""
        return NamedResource(self.kind, self.namespace, self.name)

    @property
    def namespaced_name(self) -> str:
        return self.resource_id.namespaced_name

    def copy(self: K) -> K:
        """Return a deep copy of the object."""
        return deepcopy(self)

    def _metadata_doc(self) -> dict[str, Any]:
        metadata: dict[str, Any] = {"name": self.name, "namespace": self.namespace}
        if self.labels:
            metadata["labels"] = dict(self.labels)
        if self.uid:
            metadata["uid"] = self.uid
        if self.resource_version:
            metadata["resourceVersion"] = self.resource_version
        return metadata

    def to_doc(self) -> dict[str, Any]:
        """Render the object as a kubernetes resource document."""
        return {
            "apiVersion": self.api_version,
            "kind": self.kind,
            "metadata": self._metadata_doc(),
        }

    @classmethod
    def _parse_metadata(cls, doc: dict[str, Any]) -> dict[str, Any]:
        """Parse the common metadata fields as constructor arguments."""
        _check_version(doc, cls.api_version.split("/")[0])
        if not (metadata := doc.get("metadata")):
            raise InputException(f"Invalid {cls.kind} missing metadata: {doc}")
        if not isinstance(metadata, dict):
            raise InputException(
                f"Invalid {cls.kind} metadata is not a mapping: {doc}"
            )
        if not (name := metadata.get("name")):
            raise InputException(f"Invalid {cls.kind} missing metadata.name: {doc}")
        for key in ("name", "namespace", "uid", "resourceVersion"):
            if (value := metadata.get(key)) is not None and not isinstance(value, str):
                raise InputException(
                    f"Invalid {cls.kind} {name} metadata.{key} must be a string: "
                    f"{value!r}"
                )
        labels = _mapping(metadata, "labels", f"{cls.kind} {name} metadata")
        for key, value in labels.items():
            if not isinstance(key, str) or not isinstance(value, str):
                raise InputException(
                    f"Invalid {cls.kind} {name} label {key!r} must map a string "
                    f"to a string: {value!r}"
                )
        return {
            "name": name,
            "namespace": metadata.get("namespace") or DEFAULT_NAMESPACE,
            "labels": labels,
            "uid": metadata.get("uid"),
            "resource_version": metadata.get("resourceVersion"),
        }


@dataclass
class NginxPod(BaseManifest):
    """A Pod observed as running for an Nginx instance."""

    name: str
    pod_ip: str = field(default="", metadata=field_options(alias="podIP"))


@dataclass
class NginxSpec(BaseManifest):
    """The user declared desired state of an Nginx workload."""

    replicas: int = 1
    """Number of nginx pods to run."""

    image: str = DEFAULT_IMAGE
    """Container image for the nginx pods."""

    port: int = DEFAULT_PORT
    """Port nginx listens on, exposed by the Service."""

    service_type: str = field(
        default=DEFAULT_SERVICE_TYPE, metadata=field_options(alias="serviceType")
    )
    """Type of the Service exposing the pods."""


@dataclass
class NginxStatus(BaseManifest):
    """Observed state of an Nginx instance."""

    pods: list[NginxPod] = field(default_factory=list)
    """Pods currently matching the instance label selector, sorted by name."""


@dataclass
class Nginx(KubernetesObject):
    """An Nginx custom resource."""

    kind: ClassVar[str] = NGINX_KIND
    api_version: ClassVar[str] = NGINX_API_VERSION

    spec: NginxSpec = field(default_factory=NginxSpec)
    """The desired state of the instance."""

    status: NginxStatus = field(default_factory=NginxStatus)
    """The observed state of the instance."""

    def to_doc(self) -> dict[str, Any]:
        doc = super().to_doc()
        doc["spec"] = self.spec.to_dict()
        doc["status"] = self.status.to_dict()
        return doc

    @classmethod
    def parse_doc(cls, doc: dict[str, Any]) -> "Nginx":
        """Parse an Nginx object from a kubernetes resource."""
        if doc.get("kind") != NGINX_KIND:
            raise InputException(f"Invalid {cls.kind} unexpected kind: {doc}")
        args = cls._parse_metadata(doc)
        context = f"{cls.kind} {args['name']}"
        spec_doc = _mapping(doc, "spec", context)
        status_doc = _mapping(doc, "status", context)
        for pod in status_doc.get("pods") or []:
            if isinstance(pod, dict) and not all(
                isinstance(pod.get(key, ""), str) for key in ("name", "podIP")
            ):
                raise InputException(
                    f"Invalid {context} status.pods entries must have string "
                    f"name and podIP: {pod!r}"
                )
        try:
            spec = NginxSpec.from_dict(spec_doc)
            status = NginxStatus.from_dict(status_doc)
        except (MissingField, ValueError, TypeError) as err:
            raise InputException(f"Invalid {cls.kind} {args['name']}: {err}") from err
        if not isinstance(spec.replicas, int) or spec.replicas < 0:
            raise InputException(
                f"Invalid {cls.kind} {args['name']} spec.replicas must be a "
                f"non-negative integer: {spec.replicas!r}"
            )
        return cls(spec=spec, status=status, **args)


@dataclass
class DependentObject(KubernetesObject):
    """An object created on behalf of, and owned by, an Nginx instance.

    The spec is kept as an opaque kubernetes document fragment.
    """

    owner_references: list[OwnerReference] = field(default_factory=list)
    """References to the objects owning this one."""

    spec: dict[str, Any] = field(default_factory=dict)
    """The spec of the object."""

    def _metadata_doc(self) -> dict[str, Any]:
        metadata = super()._metadata_doc()
        if self.owner_references:
            metadata["ownerReferences"] = [
                ref.to_dict() for ref in self.owner_references
            ]
        return metadata

    def to_doc(self) -> dict[str, Any]:
        doc = super().to_doc()
        doc["spec"] = self.spec
        return doc

    @classmethod
    def parse_doc(cls, doc: dict[str, Any]) -> "DependentObject":
        """Parse a dependent object from a kubernetes resource."""
        if doc.get("kind") != cls.kind:
            raise InputException(f"Invalid {cls.kind} unexpected kind: {doc}")
        args = cls._parse_metadata(doc)
        context = f"{cls.kind} {args['name']}"
        raw_refs = doc["metadata"].get("ownerReferences") or []
        if not isinstance(raw_refs, list) or not all(
            isinstance(ref, dict) for ref in raw_refs
        ):
            raise InputException(
                f"Invalid {context} ownerReferences is not a list of mappings: "
                f"{raw_refs!r}"
            )
        try:
            refs = [OwnerReference.from_dict(ref) for ref in raw_refs]
        except (MissingField, ValueError, TypeError) as err:
            raise InputException(f"Invalid {context} ownerReferences: {err}") from err
        return cls(owner_references=refs, spec=_mapping(doc, "spec", context), **args)


@dataclass
class Deployment(DependentObject):
    """A Deployment running the nginx pods."""

    kind: ClassVar[str] = DEPLOYMENT_KIND
    api_version: ClassVar[str] = DEPLOYMENT_API_VERSION


@dataclass
class Service(DependentObject):
    """A Service exposing the nginx pods."""

    kind: ClassVar[str] = SERVICE_KIND
    api_version: ClassVar[str] = CORE_API_VERSION


@dataclass
class Pod(KubernetesObject):
    """A Pod, reduced to the fields the operator observes."""

    kind: ClassVar[str] = POD_KIND
    api_version: ClassVar[str] = CORE_API_VERSION

    pod_ip: str = ""
    """The IP address allocated to the pod, empty until scheduled."""

    def to_doc(self) -> dict[str, Any]:
        doc = super().to_doc()
        if self.pod_ip:
            doc["status"] = {"podIP": self.pod_ip}
        return doc

    @classmethod
    def parse_doc(cls, doc: dict[str, Any]) -> "Pod":
        """Parse a Pod object from a kubernetes resource."""
        if doc.get("kind") != POD_KIND:
            raise InputException(f"Invalid {cls.kind} unexpected kind: {doc}")
        args = cls._parse_metadata(doc)
        status = _mapping(doc, "status", f"{cls.kind} {args['name']}")
        if not isinstance(pod_ip := status.get("podIP") or "", str):
            raise InputException(
                f"Invalid {cls.kind} {args['name']} status.podIP must be a "
                f"string: {pod_ip!r}"
            )
        return cls(pod_ip=pod_ip, **args)


ClusterObject = Nginx | Deployment | Service | Pod
"""The closed set of object kinds the operator understands."""


def parse_raw_obj(obj: dict[str, Any]) -> ClusterObject:
    """Parse a raw kubernetes object into a typed object."""
    if not (kind := obj.get("kind")):
        raise InputException(f"Invalid object missing kind: {obj}")
    if not obj.get("apiVersion"):
        raise InputException(f"Invalid object missing apiVersion: {obj}")
    if kind == NGINX_KIND:
        return Nginx.parse_doc(obj)
    if kind == DEPLOYMENT_KIND:
        return cast(Deployment, Deployment.parse_doc(obj))
    if kind == SERVICE_KIND:
        return cast(Service, Service.parse_doc(obj))
    if kind == POD_KIND:
        return Pod.parse_doc(obj)
    raise InputException(f"Unsupported object kind '{kind}': {obj}")


async def read_objects(path: Path) -> list[ClusterObject]:
    """Return the objects in a multi-document kubernetes YAML file."""
    async with aiofiles.open(str(path)) as manifest_file:
        content = await manifest_file.read()
    try:
        docs = list(yaml.safe_load_all(content))
    except yaml.YAMLError as err:
        raise InputException(f"Unable to parse `{path}` as yaml: {err}") from err
    objects: list[ClusterObject] = []
    for doc in docs:
        if doc is None:
            continue
        if not isinstance(doc, dict):
            raise InputException(
                f"`{path}` expected dictionary but was {type(doc).__name__}: {doc}"
            )
        objects.append(parse_raw_obj(doc))
    _LOGGER.debug("Read %d objects from %s", len(objects), path)
    return objects
