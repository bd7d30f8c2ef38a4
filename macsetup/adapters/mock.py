"""
Mock adapter — universal test double for any resource kind.

Keeps an in-memory "installed" set so check/apply behave like a real
idempotent backend, and records every call for assertions.
"""

from __future__ import annotations

from macsetup.adapters.base import ResourceAdapter
from macsetup.core.models.descriptor import ResourceDescriptor, ResourceState
from macsetup.core.models.receipt import Receipt


class MockAdapter(ResourceAdapter):
    """Universal mock adapter for testing.

    By default, apply succeeds and marks the resource present.
    Specific ids can be configured to fail or to raise.
    """

    def __init__(
        self,
        kind: str = "package",
        available: bool = True,
        present: set[str] | None = None,
    ):
        self._kind = kind
        self._available = available
        self._present: set[str] = set(present or ())
        self._failures: dict[str, str] = {}
        self._check_errors: dict[str, Exception] = {}
        self.check_log: list[str] = []
        self.apply_log: list[str] = []

    @property
    def kind(self) -> str:
        return self._kind

    @property
    def call_count(self) -> int:
        """Number of times apply has been called."""
        return len(self.apply_log)

    @property
    def present(self) -> set[str]:
        return set(self._present)

    def is_available(self) -> bool:
        return self._available

    def mark_present(self, *ids: str) -> None:
        self._present.update(ids)

    def set_failure(self, resource_id: str, error: str = "Mock failure") -> None:
        """Configure a specific resource to fail on apply."""
        self._failures[resource_id] = error

    def set_check_error(self, resource_id: str, error: Exception) -> None:
        """Configure a specific resource's check to raise."""
        self._check_errors[resource_id] = error

    def check(self, descriptor: ResourceDescriptor) -> ResourceState:
        self.check_log.append(descriptor.id)
        if descriptor.id in self._check_errors:
            raise self._check_errors[descriptor.id]
        if descriptor.id in self._present:
            return ResourceState.PRESENT
        return ResourceState.ABSENT

    def apply(self, descriptor: ResourceDescriptor) -> Receipt:
        self.apply_log.append(descriptor.id)
        if descriptor.id in self._failures:
            return Receipt.failure(
                adapter=self.name,
                resource_id=descriptor.id,
                error=self._failures[descriptor.id],
            )
        self._present.add(descriptor.id)
        return Receipt.success(
            adapter=self.name,
            resource_id=descriptor.id,
            output="[mock] applied",
            metadata={"mock": True},
        )

    def reset(self) -> None:
        """Clear call logs and configured failures."""
        self.check_log.clear()
        self.apply_log.clear()
        self._failures.clear()
        self._check_errors.clear()
