"""
Run use case — bootstrap the workstation from a manifest.

This is the vertical slice from user intent to a recorded run: load
the manifest, wire adapters and post steps, run the orchestrator, and
keep the run log and ledger side file.
"""

from __future__ import annotations

import getpass
import logging
import socket
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path

from macsetup.adapters.artifacts.filesystem import DirectoryArtifactAdapter, FileArtifactAdapter
from macsetup.adapters.languages.python import VirtualenvAdapter
from macsetup.adapters.package_managers import (
    BrewCaskAdapter,
    BrewFormulaAdapter,
    GalaxyCollectionAdapter,
    PipAdapter,
)
from macsetup.adapters.registry import AdapterRegistry
from macsetup.adapters.shell.command import CommandRunner
from macsetup.core.config.loader import load_manifest, resolve_manifest_path
from macsetup.core.engine.orchestrator import (
    EXIT_PRECONDITIONS,
    Orchestrator,
    OutcomeCallback,
    RunReport,
    SummaryRenderer,
)
from macsetup.core.errors import ConfigError
from macsetup.core.models.manifest import Manifest, Settings
from macsetup.core.observability.logging_config import attach_run_log, detach_handler
from macsetup.core.persistence.backup import BackupStore
from macsetup.core.persistence.ledger_file import LedgerFileWriter
from macsetup.core.services.credentials import CredentialCollector, InputReader, prompt_input
from macsetup.core.services.post_setup import (
    CredentialsStep,
    GitIdentityStep,
    PostStep,
    SshKeyStep,
    ssh_key_path,
)
from macsetup.core.services.preconditions import Precondition, default_preconditions
from macsetup.core.services.prompt_gate import PromptGate

logger = logging.getLogger(__name__)


@dataclass
class RunResult:
    """Result of a bootstrap run."""

    report: RunReport | None = None
    manifest: Manifest | None = None
    manifest_path: Path | None = None
    run_id: str = ""
    backup_dir: Path | None = None
    error: str | None = None

    @property
    def exit_code(self) -> int:
        if self.report is None:
            return EXIT_PRECONDITIONS
        return self.report.exit_code

    def to_dict(self) -> dict:
        result: dict = {"run_id": self.run_id, "exit_code": self.exit_code}
        if self.error:
            result["error"] = self.error
            return result

        result["manifest"] = str(self.manifest_path)
        if self.backup_dir is not None:
            result["backup_dir"] = str(self.backup_dir)
        if self.report:
            result["report"] = self.report.to_dict()
        return result


def generate_run_id() -> str:
    """Generate a unique run ID."""
    now = datetime.now(UTC).strftime("%Y%m%d-%H%M%S")
    short = uuid.uuid4().hex[:6]
    return f"run-{now}-{short}"


def build_registry(
    settings: Settings,
    backups: BackupStore | None = None,
    runner: CommandRunner | None = None,
) -> AdapterRegistry:
    """One adapter per resource kind."""
    registry = AdapterRegistry()
    registry.register(BrewFormulaAdapter(runner))
    registry.register(BrewCaskAdapter(runner))
    registry.register(PipAdapter(settings.venv_path, runner))
    registry.register(GalaxyCollectionAdapter(runner, settings.venv_path))
    registry.register(VirtualenvAdapter(runner=runner))
    registry.register(FileArtifactAdapter(backups))
    registry.register(DirectoryArtifactAdapter())
    return registry


def build_post_steps(
    settings: Settings,
    read: InputReader | None = None,
    runner: CommandRunner | None = None,
) -> list[PostStep]:
    """Git identity, SSH key, then credentials, in that order."""
    read = read or prompt_input
    key_path = ssh_key_path(settings)
    domain = settings.ssh_key_comment_domain or socket.gethostname()
    comment = f"{getpass.getuser()}@{domain}"

    steps: list[PostStep] = []
    if settings.git_identity:
        steps.append(GitIdentityStep(read, runner))
    steps.append(SshKeyStep(key_path, comment, runner))
    steps.append(CredentialsStep(
        CredentialCollector(read),
        env_file=Path(settings.env_file),
        credentials_file=Path(settings.credentials_file),
        extra_exports={
            "SSH_KEY_PREFIX": settings.ssh_key_prefix,
            "SSHKEYPATH": str(key_path),
        },
    ))
    logger.debug("Post steps: %s", [s.name for s in steps])
    return steps


def run_bootstrap(
    config_path: Path | None = None,
    timeout_seconds: float | None = None,
    default_answer: str | None = None,
    dry_run: bool = False,
    skip_optional: bool = False,
    gate: PromptGate | None = None,
    registry: AdapterRegistry | None = None,
    preconditions: list[Precondition] | None = None,
    post_steps: list[PostStep] | None = None,
    on_outcome: OutcomeCallback | None = None,
    summary_renderer: SummaryRenderer | None = None,
    runner: CommandRunner | None = None,
    read: InputReader | None = None,
) -> RunResult:
    """Run the whole bootstrap.

    Args:
        config_path: Optional explicit path to macsetup.yml.
        timeout_seconds: Override for the per-prompt timeout.
        default_answer: Override for the prompt default ('y' or 'n').
        dry_run: Check everything, apply nothing, skip post steps.
        skip_optional: Record every absent optional resource as skipped.
        gate: Prompt gate (default: stdin/stdout).
        registry: Pre-configured adapter registry (default: real adapters).
        preconditions: Checks to run first (default: from settings).
        post_steps: Post-phase steps (default: from settings).
        on_outcome: Called with each RunOutcome as it is recorded.
        summary_renderer: Called once with the final RunReport.
        runner: Command runner shared by all default adapters.
        read: Line reader for credential and identity input.

    Returns:
        RunResult with the run report, or an error for a bad manifest.
    """
    result = RunResult(run_id=generate_run_id())

    # ── Load manifest ────────────────────────────────────────────
    try:
        result.manifest_path = resolve_manifest_path(config_path)
        manifest = load_manifest(result.manifest_path)
    except ConfigError as e:
        result.error = str(e)
        return result
    result.manifest = manifest

    settings = manifest.settings
    if timeout_seconds is not None:
        settings = settings.model_copy(update={"timeout_seconds": int(timeout_seconds)})
    if default_answer is not None:
        settings = settings.model_copy(update={"default_answer": default_answer.strip().lower()})

    # ── Side files ───────────────────────────────────────────────
    log_handler = attach_run_log(Path(settings.log_file)) if settings.log_file else None
    backups = BackupStore(settings.backup_root)
    ledger_writer = (
        LedgerFileWriter(Path(settings.ledger_file), run_id=result.run_id)
        if settings.ledger_file else None
    )

    try:
        logger.info("Run %s starting (manifest %s, dry_run=%s)", result.run_id, result.manifest_path, dry_run)

        if registry is None:
            registry = build_registry(settings, backups, runner)
        if preconditions is None:
            preconditions = default_preconditions(settings)
        if post_steps is None:
            post_steps = build_post_steps(settings, read, runner)

        orchestrator = Orchestrator(
            registry=registry,
            required=manifest.required,
            optional=manifest.optional,
            preconditions=preconditions,
            gate=gate,
            timeout_seconds=settings.timeout_seconds,
            default_answer=settings.default_answer,
            post_steps=post_steps,
            dry_run=dry_run,
            skip_optional=skip_optional,
            on_outcome=on_outcome,
            ledger_writer=ledger_writer,
            summary_renderer=summary_renderer,
        )
        result.report = orchestrator.run()

        if backups.backed_up:
            result.backup_dir = backups.directory
        logger.info("Run %s finished with exit code %d", result.run_id, result.exit_code)
    finally:
        detach_handler(log_handler)

    return result
