"""
Receipt model — what one apply attempt produced.

Adapters answer ``apply`` with a Receipt instead of raising; the
Applier turns it into a ledger classification.
"""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field


class Receipt(BaseModel):
    """Result of one apply attempt."""

    adapter: str
    resource_id: str
    status: Literal["ok", "skipped", "failed"] = "ok"
    duration_ms: int = 0

    # First line becomes the ledger detail on success; the reason when skipped
    output: str = ""
    error: str | None = None

    # Command, return code and similar diagnostics; never secrets
    metadata: dict[str, Any] = Field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def failed(self) -> bool:
        return self.status == "failed"

    @classmethod
    def success(cls, adapter: str, resource_id: str, output: str = "", **kwargs: Any) -> Receipt:
        return cls(adapter=adapter, resource_id=resource_id, status="ok", output=output, **kwargs)

    @classmethod
    def failure(cls, adapter: str, resource_id: str, error: str, **kwargs: Any) -> Receipt:
        return cls(adapter=adapter, resource_id=resource_id, status="failed", error=error, **kwargs)

    @classmethod
    def skip(cls, adapter: str, resource_id: str, reason: str, **kwargs: Any) -> Receipt:
        """Nothing was attempted, e.g. the tool the adapter drives is missing."""
        return cls(adapter=adapter, resource_id=resource_id, status="skipped", output=reason, **kwargs)
