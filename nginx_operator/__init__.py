"""
Reconciliation core of an operator managing Nginx custom resources.

An Nginx resource is turned into a Deployment and a Service, and the Pods
matching it are reported back on its status.
"""

__all__ = [
    "manifest",
    "client",
    "k8s",
    "reconciler",
    "status",
    "dispatcher",
    "controller",
    "exceptions",
    "context",
    "task",
    # Note this is exposed for CLI documentation, not to be used as a library
    "tool",
]
