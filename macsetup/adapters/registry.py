"""
Adapter registry — central dispatch for check and apply.

The registry is the single point of adapter management. It maps
resource kinds to adapters and wraps every call so that nothing an
adapter does can escape as an exception: a failed check becomes
ABSENT (optimistic retry), a failed apply becomes a failure receipt.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from macsetup.adapters.base import ResourceAdapter
from macsetup.core.errors import ApplyFailure, CheckFailure
from macsetup.core.models.descriptor import ResourceDescriptor, ResourceState
from macsetup.core.models.receipt import Receipt

logger = logging.getLogger(__name__)


class AdapterRegistry:
    """Central registry and dispatcher for resource adapters.

    Features:
        - Register adapters by kind
        - Check state (CheckFailure → ABSENT)
        - Apply descriptors (never raises, always a Receipt)
        - Report which adapters have their tool installed (status)
    """

    def __init__(self) -> None:
        self._adapters: dict[str, ResourceAdapter] = {}

    def register(self, adapter: ResourceAdapter) -> None:
        kind = adapter.kind
        if kind in self._adapters:
            logger.warning("Overwriting existing adapter for kind: %s", kind)
        self._adapters[kind] = adapter
        logger.debug("Registered adapter: %s", kind)

    def adapter_status(self) -> dict[str, dict[str, Any]]:
        """Whether each registered adapter's underlying tool is installed."""
        status = {}
        for kind, adapter in self._adapters.items():
            try:
                available = adapter.is_available()
            except Exception as e:
                logger.warning("Availability check for %s raised: %s", kind, e)
                available = False
            status[kind] = {
                "kind": kind,
                "available": available,
                "type": adapter.__class__.__name__,
            }
        return status

    def check(self, descriptor: ResourceDescriptor) -> ResourceState:
        """Determine current state. Undeterminable state is ABSENT."""
        adapter = self._adapters.get(descriptor.kind)
        if adapter is None:
            logger.debug("No adapter for kind '%s' (%s)", descriptor.kind, descriptor.id)
            return ResourceState.ABSENT

        try:
            return adapter.check(descriptor)
        except CheckFailure as e:
            logger.warning("Could not determine state of %s: %s", descriptor.id, e)
        except Exception as e:
            logger.warning("Check for %s raised unexpectedly: %s", descriptor.id, e)
        return ResourceState.ABSENT

    def apply(self, descriptor: ResourceDescriptor) -> Receipt:
        """Apply a descriptor through its adapter. Never raises."""
        start_time = time.monotonic()

        adapter = self._adapters.get(descriptor.kind)
        if adapter is None:
            return Receipt.failure(
                adapter=descriptor.kind,
                resource_id=descriptor.id,
                error=f"No adapter registered for kind '{descriptor.kind}'",
            )

        try:
            receipt = adapter.apply(descriptor)
        except ApplyFailure as e:
            receipt = Receipt.failure(
                adapter=adapter.name,
                resource_id=descriptor.id,
                error=str(e),
            )
        except Exception as e:
            # Adapters should never raise, but defense in depth
            logger.error("Adapter %s raised during apply: %s", adapter.name, e)
            receipt = Receipt.failure(
                adapter=adapter.name,
                resource_id=descriptor.id,
                error=f"Unexpected error: {e}",
            )

        if not receipt.duration_ms:
            receipt.duration_ms = int((time.monotonic() - start_time) * 1000)
        return receipt

    def verify(self, descriptor: ResourceDescriptor) -> bool:
        adapter = self._adapters.get(descriptor.kind)
        if adapter is None:
            return False
        try:
            return adapter.verify(descriptor)
        except Exception as e:
            logger.warning("Verification of %s raised: %s", descriptor.id, e)
            return False
