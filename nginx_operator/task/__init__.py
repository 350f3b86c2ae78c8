"""Task tracking module for nginx-operator.

This module provides a simple task tracking service that allows the
controller to run reconciliations concurrently and wait for them to settle.
"""

from .service import TaskService, get_task_service, task_service_context

__all__ = ["get_task_service", "task_service_context", "TaskService"]
