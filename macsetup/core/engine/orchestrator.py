"""
Orchestrator — the run state machine.

    INIT → PRECONDITIONS → REQUIRED → OPTIONAL → POST → VERIFICATION
         → SUMMARY → TERMINAL

A precondition failure jumps straight to SUMMARY with exit code 1 and
an empty ledger. A failed descriptor never stops the run; it is
recorded and the next descriptor is attempted. SUMMARY always runs,
even when a phase raised unexpectedly.

Exit codes:
    0   every required descriptor ended installed or already_present
    1   preconditions failed
    2   at least one required descriptor failed
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Iterable

from macsetup.adapters.registry import AdapterRegistry
from macsetup.core.engine.applier import Applier
from macsetup.core.errors import PreconditionFailure
from macsetup.core.models.descriptor import ResourceDescriptor, ResourceState
from macsetup.core.models.ledger import Classification, RunLedger, RunOutcome
from macsetup.core.persistence.ledger_file import LedgerFileWriter
from macsetup.core.services.post_setup import PostStep, StepContext, StepOutcome
from macsetup.core.services.preconditions import Precondition, PreconditionResult
from macsetup.core.services.prompt_gate import PromptGate, is_yes

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_PRECONDITIONS = 1
EXIT_REQUIRED_FAILED = 2


class RunPhase(str, Enum):
    INIT = "init"
    PRECONDITIONS = "preconditions"
    REQUIRED = "required"
    OPTIONAL = "optional"
    POST = "post"
    VERIFICATION = "verification"
    SUMMARY = "summary"
    TERMINAL = "terminal"


@dataclass
class RunReport:
    """Everything the summary needs about one finished run."""

    exit_code: int = EXIT_OK
    ledger: RunLedger = field(default_factory=RunLedger)
    preconditions: list[PreconditionResult] = field(default_factory=list)
    verification_passed: list[str] = field(default_factory=list)
    verification_failed: list[str] = field(default_factory=list)
    phase_history: list[RunPhase] = field(default_factory=list)
    dry_run: bool = False

    @property
    def preconditions_ok(self) -> bool:
        return all(p.ok for p in self.preconditions)

    def to_dict(self) -> dict:
        return {
            "exit_code": self.exit_code,
            "dry_run": self.dry_run,
            "preconditions": [p.to_dict() for p in self.preconditions],
            "outcomes": self.ledger.to_records(),
            "counts": self.ledger.counts(),
            "verification": {
                "passed": self.verification_passed,
                "failed": self.verification_failed,
            },
            "phases": [p.value for p in self.phase_history],
        }


OutcomeCallback = Callable[[RunOutcome], None]
SummaryRenderer = Callable[[RunReport], None]


def _check_unique(descriptors: Iterable[ResourceDescriptor]) -> None:
    seen: set[str] = set()
    for d in descriptors:
        if d.id in seen:
            raise ValueError(f"Duplicate descriptor id: '{d.id}'")
        seen.add(d.id)


class Orchestrator:
    """Runs the phases in order and owns the run ledger."""

    def __init__(
        self,
        registry: AdapterRegistry,
        required: list[ResourceDescriptor],
        optional: list[ResourceDescriptor] | None = None,
        preconditions: list[Precondition] | None = None,
        gate: PromptGate | None = None,
        timeout_seconds: float = 60,
        default_answer: str = "n",
        post_steps: list[PostStep] | None = None,
        dry_run: bool = False,
        skip_optional: bool = False,
        on_outcome: OutcomeCallback | None = None,
        ledger_writer: LedgerFileWriter | None = None,
        summary_renderer: SummaryRenderer | None = None,
    ):
        self._required = list(required)
        self._optional = list(optional or [])
        _check_unique(self._required + self._optional)

        self._registry = registry
        self._applier = Applier(registry)
        self._preconditions = list(preconditions or [])
        self._gate = gate or PromptGate()
        self._timeout = timeout_seconds
        self._default_answer = default_answer
        self._post_steps = list(post_steps or [])
        self._dry_run = dry_run
        self._skip_optional = skip_optional
        self._on_outcome = on_outcome
        self._ledger_writer = ledger_writer
        self._summary_renderer = summary_renderer

        self._phase = RunPhase.INIT
        self._history: list[RunPhase] = [RunPhase.INIT]
        self._ledger = RunLedger()

    @property
    def phase(self) -> RunPhase:
        return self._phase

    @property
    def phase_history(self) -> list[RunPhase]:
        return list(self._history)

    @property
    def ledger(self) -> RunLedger:
        return self._ledger

    # ── Entry point ──────────────────────────────────────────────

    def run(self) -> RunReport:
        report = RunReport(ledger=self._ledger, dry_run=self._dry_run)

        try:
            self._enter(RunPhase.PRECONDITIONS)
            report.preconditions = self._run_preconditions()
            failures = [p for p in report.preconditions if not p.ok]
            if failures:
                raise PreconditionFailure(failures)

            self._enter(RunPhase.REQUIRED)
            for descriptor in self._required:
                self._process_required(descriptor)

            self._enter(RunPhase.OPTIONAL)
            for descriptor in self._optional:
                self._process_optional(descriptor)

            self._enter(RunPhase.POST)
            if not self._dry_run:
                for step in self._post_steps:
                    self._run_post_step(step)

            self._enter(RunPhase.VERIFICATION)
            passed, failed = self._verify()
            report.verification_passed = passed
            report.verification_failed = failed

        except PreconditionFailure as e:
            logger.error("%s", e)

        finally:
            report.exit_code = self._exit_code(report)
            self._enter(RunPhase.SUMMARY)
            report.phase_history = self._history
            if self._summary_renderer is not None:
                self._summary_renderer(report)

        self._enter(RunPhase.TERMINAL)
        return report

    # ── Phases ───────────────────────────────────────────────────

    def _run_preconditions(self) -> list[PreconditionResult]:
        results: list[PreconditionResult] = []
        for precondition in self._preconditions:
            try:
                result = precondition()
            except Exception as e:
                logger.warning("Precondition check raised: %s", e, exc_info=True)
                result = PreconditionResult(
                    name=getattr(precondition, "__name__", "precondition"),
                    ok=False,
                    message=str(e),
                )
            log = logger.info if result.ok else logger.warning
            log("Precondition %s: %s", result.name, result.message or ("ok" if result.ok else "failed"))
            results.append(result)

        return results

    def _process_required(self, descriptor: ResourceDescriptor) -> None:
        result = self._applier.process(descriptor, dry_run=self._dry_run)
        self._record(descriptor, result.classification, result.detail, RunPhase.REQUIRED)

    def _process_optional(self, descriptor: ResourceDescriptor) -> None:
        state = self._applier.check(descriptor)
        if state == ResourceState.PRESENT or self._dry_run:
            result = self._applier.process(descriptor, dry_run=self._dry_run, state=state)
            self._record(descriptor, result.classification, result.detail, RunPhase.OPTIONAL)
            return

        if self._skip_optional:
            self._record(
                descriptor, Classification.SKIPPED_BY_USER,
                "optional phase disabled", RunPhase.OPTIONAL,
            )
            return

        answer = self._gate.ask_detailed(
            f"Install {descriptor.label}? (y/n)",
            self._default_answer,
            self._timeout,
        )
        if not is_yes(answer.value):
            if answer.timed_out:
                classification, detail = Classification.SKIPPED_BY_TIMEOUT, "no answer"
            else:
                classification, detail = Classification.SKIPPED_BY_USER, "declined"
            self._record(descriptor, classification, detail, RunPhase.OPTIONAL)
            return

        result = self._applier.process(descriptor, state=state)
        self._record(descriptor, result.classification, result.detail, RunPhase.OPTIONAL)

    def _run_post_step(self, step: PostStep) -> None:
        ctx = StepContext(
            gate=self._gate,
            timeout_seconds=self._timeout,
            default_answer=self._default_answer,
        )
        try:
            outcome = step.run(ctx)
        except Exception as e:
            logger.warning("Post step '%s' raised: %s", step.name, e, exc_info=True)
            outcome = StepOutcome(Classification.FAILED, f"{type(e).__name__}: {e}")

        self._append(RunOutcome(
            descriptor_id=step.outcome_id,
            classification=outcome.classification,
            detail=outcome.detail,
            kind="post",
            required=False,
            phase=RunPhase.POST.value,
        ))

    def _verify(self) -> tuple[list[str], list[str]]:
        """Re-check the verification subset. Never changes the exit code."""
        subset = [d for d in self._required if d.verify] or self._required
        passed: list[str] = []
        failed: list[str] = []
        for descriptor in subset:
            if self._registry.verify(descriptor):
                passed.append(descriptor.id)
            else:
                failed.append(descriptor.id)

        logger.info("Verification: %d passed, %d failed", len(passed), len(failed))
        return passed, failed

    # ── Bookkeeping ──────────────────────────────────────────────

    def _enter(self, phase: RunPhase) -> None:
        logger.debug("Phase %s → %s", self._phase.value, phase.value)
        self._phase = phase
        self._history.append(phase)

    def _record(
        self,
        descriptor: ResourceDescriptor,
        classification: Classification,
        detail: str,
        phase: RunPhase,
    ) -> None:
        self._append(RunOutcome(
            descriptor_id=descriptor.id,
            classification=classification,
            detail=detail,
            kind=descriptor.kind,
            required=descriptor.required,
            phase=phase.value,
        ))

    def _append(self, outcome: RunOutcome) -> None:
        self._ledger.append(outcome)
        if self._ledger_writer is not None:
            self._ledger_writer.write(outcome)

        if outcome.classification == Classification.FAILED:
            logger.warning("✗ %s failed: %s", outcome.descriptor_id, outcome.detail)
        else:
            logger.info("%s → %s", outcome.descriptor_id, outcome.classification.value)

        if self._on_outcome is not None:
            self._on_outcome(outcome)

    def _exit_code(self, report: RunReport) -> int:
        if not report.preconditions_ok:
            return EXIT_PRECONDITIONS
        if self._ledger.degraded:
            return EXIT_REQUIRED_FAILED
        return EXIT_OK
