"""
Applier — check, then apply at most once, then classify.

The central correctness property lives here: a descriptor whose check
reports PRESENT is never applied. Running the whole bootstrap twice
performs zero mutating actions the second time.

The Applier never decides whether the run continues; it only reports
what happened to one descriptor. There is exactly one apply attempt
per descriptor per run — no retries, no backoff.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from macsetup.adapters.registry import AdapterRegistry
from macsetup.core.models.descriptor import ResourceDescriptor, ResourceState
from macsetup.core.models.ledger import Classification
from macsetup.core.models.receipt import Receipt

logger = logging.getLogger(__name__)


@dataclass
class ApplyResult:
    """Classification of one descriptor plus the evidence behind it."""

    classification: Classification
    detail: str = ""
    state: ResourceState = ResourceState.ABSENT
    receipt: Receipt | None = None


def classify_receipt(receipt: Receipt) -> tuple[Classification, str]:
    if receipt.ok:
        return Classification.INSTALLED, receipt.output.splitlines()[0] if receipt.output else ""
    if receipt.failed:
        return Classification.FAILED, receipt.error or "apply failed"
    return Classification.SKIPPED_BY_USER, receipt.output


class Applier:
    """Drives one descriptor through check → apply → classification."""

    def __init__(self, registry: AdapterRegistry):
        self._registry = registry

    def check(self, descriptor: ResourceDescriptor) -> ResourceState:
        return self._registry.check(descriptor)

    def process(
        self,
        descriptor: ResourceDescriptor,
        dry_run: bool = False,
        state: ResourceState | None = None,
    ) -> ApplyResult:
        """Check (unless ``state`` was already observed) and apply if needed."""
        if state is None:
            state = self.check(descriptor)

        if state == ResourceState.PRESENT:
            return ApplyResult(
                classification=Classification.ALREADY_PRESENT,
                state=state,
            )

        if dry_run:
            verb = "update" if state == ResourceState.PRESENT_WRONG_VERSION else "install"
            return ApplyResult(
                classification=Classification.WOULD_APPLY,
                detail=f"would {verb} ({descriptor.kind})",
                state=state,
            )

        receipt = self._registry.apply(descriptor)
        classification, detail = classify_receipt(receipt)
        logger.info(
            "Applied %s via %s: %s in %d ms",
            descriptor.id, receipt.adapter, receipt.status, receipt.duration_ms,
        )
        if receipt.failed:
            logger.debug("Apply receipt for %s: %s", descriptor.id, receipt.metadata)
        return ApplyResult(
            classification=classification,
            detail=detail,
            state=state,
            receipt=receipt,
        )
