"""Exceptions related to nginx-operator."""

__all__ = [
    "NginxOperatorException",
    "InputException",
    "ClientException",
    "AlreadyExistsError",
    "ObjectNotFoundError",
    "ConflictError",
    "ReconcileException",
    "DependentResourceError",
    "StatusRefreshError",
]


class NginxOperatorException(Exception):
    """Generic base exception used for this library."""


class InputException(NginxOperatorException):
    """Raised when the input objects are not formatted as expected."""


class ClientException(NginxOperatorException):
    """Raised when a call against the cluster object store fails."""


class AlreadyExistsError(ClientException):
    """Raised when creating an object whose identity is already taken."""


class ObjectNotFoundError(ClientException):
    """Raised when an object is not found in the store."""


class ConflictError(ClientException):
    """Raised when an update is made against a stale resource version."""


class ReconcileException(NginxOperatorException):
    """Raised when a reconciliation step fails."""


class DependentResourceError(ReconcileException):
    """Raised when a dependent Deployment or Service could not be reconciled."""

    def __init__(self, kind: str, operation: str, cause: Exception) -> None:
        super().__init__(f"failed to {operation} {kind.lower()}: {cause}")
        self.kind = kind
        self.operation = operation
        self.cause = cause


class StatusRefreshError(ReconcileException):
    """Raised when the Nginx status could not be refreshed."""
