"""Utilities for per-reconciliation logging context and tracing."""

import contextvars
from contextlib import contextmanager
import logging
from collections.abc import MutableMapping
from time import perf_counter
from typing import Any, Generator

from .manifest import KubernetesObject

# No public API
__all__: list[str] = []


trace: contextvars.ContextVar[list[str]] = contextvars.ContextVar("trace")


class ResourceLogger(logging.LoggerAdapter):  # type: ignore[type-arg]
    """Logger carrying the identity of the resource being reconciled.

    The `resource_name`, `resource_namespace` and `resource_kind` fields are
    attached to every record as extra attributes and prefixed to the message.
    """

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        extra = self.extra or {}
        kwargs["extra"] = {**extra, **kwargs.get("extra", {})}
        prefix = "/".join(
            str(extra.get(key))
            for key in ("resource_kind", "resource_namespace", "resource_name")
        )
        return f"[{prefix}] {msg}", kwargs


def resource_logger(logger: logging.Logger, obj: KubernetesObject) -> ResourceLogger:
    """Return a logger carrying the identity of the object."""
    return ResourceLogger(
        logger,
        {
            "resource_name": obj.name,
            "resource_namespace": obj.namespace,
            "resource_kind": obj.kind,
        },
    )


@contextmanager
def trace_context(
    name: str, logger: logging.Logger | logging.LoggerAdapter  # type: ignore[type-arg]
) -> Generator[None, None, None]:
    stack = trace.get([])
    token = trace.set(stack + [name])
    label = " > ".join(stack + [name])
    t1 = perf_counter()
    logger.debug("[Trace] > %s", label)
    try:
        yield
    finally:
        t2 = perf_counter()
        trace.reset(token)
        logger.debug("[Trace] < %s (%0.2fs)", label, (t2 - t1))
