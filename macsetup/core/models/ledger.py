"""
Run ledger — append-only record of every descriptor processed in one run.

The Orchestrator is the only writer. Each descriptor gets exactly one
outcome per run; outcomes are frozen once appended. The ordered
``{id, classification, detail}`` records are the only structured output
other tools should consume.
"""

from __future__ import annotations

from collections import Counter
from datetime import UTC, datetime
from enum import Enum
from typing import Iterator

from pydantic import BaseModel, ConfigDict, Field


class Classification(str, Enum):
    INSTALLED = "installed"
    ALREADY_PRESENT = "already_present"
    FAILED = "failed"
    SKIPPED_BY_USER = "skipped_by_user"
    SKIPPED_BY_TIMEOUT = "skipped_by_timeout"
    WOULD_APPLY = "would_apply"  # dry-run only


class RunOutcome(BaseModel):
    """The result for one descriptor. Immutable."""

    model_config = ConfigDict(frozen=True)

    descriptor_id: str
    classification: Classification
    timestamp: str = Field(default_factory=lambda: datetime.now(UTC).isoformat())
    detail: str = ""

    kind: str = ""
    required: bool = False
    phase: str = ""

    def to_record(self) -> dict[str, str]:
        return {
            "id": self.descriptor_id,
            "classification": self.classification.value,
            "detail": self.detail,
        }


class RunLedger:
    """Ordered, append-only sequence of RunOutcome for a single run."""

    def __init__(self) -> None:
        self._outcomes: list[RunOutcome] = []
        self._seen: set[str] = set()

    def append(self, outcome: RunOutcome) -> None:
        if outcome.descriptor_id in self._seen:
            raise ValueError(
                f"Outcome for '{outcome.descriptor_id}' already recorded in this run"
            )
        self._seen.add(outcome.descriptor_id)
        self._outcomes.append(outcome)

    def __len__(self) -> int:
        return len(self._outcomes)

    def __iter__(self) -> Iterator[RunOutcome]:
        return iter(self._outcomes)

    def __contains__(self, descriptor_id: object) -> bool:
        return descriptor_id in self._seen

    @property
    def outcomes(self) -> tuple[RunOutcome, ...]:
        return tuple(self._outcomes)

    def get(self, descriptor_id: str) -> RunOutcome | None:
        for outcome in self._outcomes:
            if outcome.descriptor_id == descriptor_id:
                return outcome
        return None

    def counts(self) -> dict[str, int]:
        """Number of outcomes per classification value."""
        return dict(Counter(o.classification.value for o in self._outcomes))

    def failures(self, required_only: bool = False) -> list[RunOutcome]:
        return [
            o for o in self._outcomes
            if o.classification == Classification.FAILED
            and (o.required or not required_only)
        ]

    @property
    def degraded(self) -> bool:
        """True when at least one required descriptor failed."""
        return bool(self.failures(required_only=True))

    def to_records(self) -> list[dict[str, str]]:
        return [o.to_record() for o in self._outcomes]
