"""
Adapter base — the contract between the engine and the tools it drives.

Every resource kind has exactly one adapter. The engine only talks to
adapters through this protocol, never directly to brew, pip, or the
filesystem.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from macsetup.core.models.descriptor import ResourceDescriptor, ResourceState
from macsetup.core.models.receipt import Receipt


class ResourceAdapter(ABC):
    """Abstract base class for all resource adapters.

    ``check`` is read-only: callable any number of times, never
    mutates state. It may raise CheckFailure when the state cannot be
    determined; the registry treats that as ABSENT.

    ``apply`` performs the mutating action and returns a Receipt.
    It must be safe to call when the resource is already present.
    Failures are captured in the Receipt, not raised.

    To create a new adapter:
        1. Subclass ResourceAdapter
        2. Implement kind, is_available, check, apply
        3. Register it in the AdapterRegistry
    """

    @property
    @abstractmethod
    def kind(self) -> str:
        """The resource kind this adapter handles (e.g. 'package', 'file')."""

    @property
    def name(self) -> str:
        """Adapter identifier used on receipts. Defaults to the kind."""
        return self.kind

    @abstractmethod
    def is_available(self) -> bool:
        """Check if the underlying tool exists. Fast, never raises."""

    @abstractmethod
    def check(self, descriptor: ResourceDescriptor) -> ResourceState:
        """Observe the current state of the resource without mutating it."""

    @abstractmethod
    def apply(self, descriptor: ResourceDescriptor) -> Receipt:
        """Bring the resource to its desired state and return a receipt."""

    def verify(self, descriptor: ResourceDescriptor) -> bool:
        """Post-hoc smoke test. Defaults to re-running the check."""
        return self.check(descriptor) == ResourceState.PRESENT

    def __repr__(self) -> str:
        return f"<{self.__class__.__name__} kind={self.kind!r}>"
