"""Adapters — check/apply bindings for each resource kind.

Public re-exports for convenient access.
"""

from macsetup.adapters.base import ResourceAdapter
from macsetup.adapters.mock import MockAdapter
from macsetup.adapters.registry import AdapterRegistry

__all__ = [
    "AdapterRegistry",
    "MockAdapter",
    "ResourceAdapter",
]
