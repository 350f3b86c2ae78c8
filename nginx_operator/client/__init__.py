"""
The client module provides the capability the reconcilers use to read and
mutate cluster objects.

- Uses NamedResource as the key for all objects.
- Stores values as dataclass instances from manifest.py for type safety.
- Reports "already exists", "not found" and "conflict" conditions as typed
  exceptions from nginx_operator.exceptions.

This abstract interface allows for various implementations (in-memory, a real
API server, etc.).
"""

from .client import ResourceClient, ClientEvent
from .in_memory import InMemoryClient, ClientCall
from .selector import LabelRequirement, parse_selector

__all__ = [
    "ResourceClient",
    "ClientEvent",
    "InMemoryClient",
    "ClientCall",
    "LabelRequirement",
    "parse_selector",
]
