"""
Error taxonomy for the provisioning engine.

Only ConfigError and PreconditionFailure ever reach the caller.
CheckFailure and ApplyFailure are raised inside adapters and
converted by the registry into an ``absent`` state or a failed
receipt; one descriptor's failure never stops the run.

A prompt timeout is not an error at all — see
``macsetup.core.services.prompt_gate.PromptAnswer``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from macsetup.core.services.preconditions import PreconditionResult


class MacsetupError(Exception):
    """Base class for all macsetup errors."""


class ConfigError(MacsetupError):
    """Raised when the manifest is missing or invalid."""


class PreconditionFailure(MacsetupError):
    """One or more up-front checks failed. Nothing may be mutated."""

    def __init__(self, failures: list[PreconditionResult]):
        self.failures = failures
        names = ", ".join(f.name for f in failures)
        super().__init__(f"Preconditions failed: {names}")


class CheckFailure(MacsetupError):
    """A checker could not determine the current state of a resource."""


class ApplyFailure(MacsetupError):
    """A mutating action failed."""
