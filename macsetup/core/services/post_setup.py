"""
Post-phase steps — one-time interactive setup after the install phases.

Each step is gated by a bounded yes/no question (default "no"), so an
unattended run skips all of them. Each step reports exactly one
outcome for the ledger, under the id ``post:<name>``.

Steps:
    git-identity     git config --global user.name / user.email
    ssh-key          ed25519 key at the path prepared in the required phase
    credentials      SSH/Ansible credentials → owner-only env file,
                     vault password → owner-only password file
"""

from __future__ import annotations

import getpass
import logging
import os
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from pathlib import Path

from macsetup.adapters.shell.command import CommandRunner, run_command
from macsetup.core.models.credential import CredentialRecord
from macsetup.core.models.ledger import Classification
from macsetup.core.models.manifest import Settings
from macsetup.core.persistence.secret_files import (
    render_env_file,
    render_secret_file,
    write_private_files,
)
from macsetup.core.services.credentials import CredentialCollector, InputReader
from macsetup.core.services.prompt_gate import PromptGate, is_yes

logger = logging.getLogger(__name__)


@dataclass
class StepContext:
    """What a post step may use: the gate and how long to wait."""

    gate: PromptGate
    timeout_seconds: float
    default_answer: str = "n"

    def ask(self, question: str) -> tuple[bool, bool]:
        """(yes?, timed_out?) for a gated question."""
        answer = self.gate.ask_detailed(question, self.default_answer, self.timeout_seconds)
        return is_yes(answer.value), answer.timed_out


@dataclass
class StepOutcome:
    classification: Classification
    detail: str = ""
    metadata: dict = field(default_factory=dict)


def _declined(timed_out: bool, what: str) -> StepOutcome:
    if timed_out:
        return StepOutcome(Classification.SKIPPED_BY_TIMEOUT, f"{what}: no answer")
    return StepOutcome(Classification.SKIPPED_BY_USER, f"{what}: declined")


class PostStep(ABC):
    """A one-time interactive setup action."""

    name: str = ""

    @property
    def outcome_id(self) -> str:
        return f"post:{self.name}"

    @abstractmethod
    def run(self, ctx: StepContext) -> StepOutcome:
        """Perform the step. Must not raise for expected failures."""


def clean_username(user: str | None = None) -> str:
    """Login name with dots removed, as used in key file names."""
    return (user or getpass.getuser()).replace(".", "")


def ssh_key_path(settings: Settings, user: str | None = None) -> Path:
    return Path(settings.ssh_key_dir) / f"{settings.ssh_key_prefix}-{clean_username(user)}"


class GitIdentityStep(PostStep):
    name = "git-identity"

    def __init__(self, read: InputReader, runner: CommandRunner | None = None):
        self._read = read
        self._run = runner or run_command

    def _current(self, key: str) -> str:
        result = self._run(["git", "config", "--global", key], timeout=10)
        return result.stdout.strip() if result.ok else ""

    def run(self, ctx: StepContext) -> StepOutcome:
        current_name = self._current("user.name")
        if current_name and self._current("user.email"):
            return StepOutcome(Classification.ALREADY_PRESENT, f"git identity: {current_name}")

        yes, timed_out = ctx.ask("Configure Git identity? (y/n)")
        if not yes:
            return _declined(timed_out, "git identity")

        try:
            name = self._read("Enter your name for Git commits", False).strip()
            email = self._read("Enter your email for Git commits", False).strip()
        except EOFError:
            return StepOutcome(Classification.SKIPPED_BY_TIMEOUT, "git identity: input closed")
        if not name or not email:
            return StepOutcome(Classification.SKIPPED_BY_USER, "git identity: empty name or email")

        for key, value in (("user.name", name), ("user.email", email)):
            result = self._run(["git", "config", "--global", key, value], timeout=10)
            if not result.ok:
                logger.warning("git config %s failed: %s", key, result.failure_reason())
                return StepOutcome(Classification.FAILED, result.failure_reason())

        return StepOutcome(Classification.INSTALLED, f"git identity: {name} <{email}>")


class SshKeyStep(PostStep):
    """Generate an ed25519 key; ssh-keygen asks for the passphrase itself."""

    name = "ssh-key"

    def __init__(self, key_path: Path, comment: str, runner: CommandRunner | None = None):
        self._key_path = Path(key_path)
        self._comment = comment
        self._run = runner or run_command

    @property
    def key_path(self) -> Path:
        return self._key_path

    def run(self, ctx: StepContext) -> StepOutcome:
        key = self._key_path
        if key.exists():
            return StepOutcome(Classification.ALREADY_PRESENT, f"SSH key exists at {key}")

        if not key.parent.is_dir():
            return StepOutcome(Classification.FAILED, f"Key directory missing: {key.parent}")

        yes, timed_out = ctx.ask(f"Generate SSH key at {key}? (y/n)")
        if not yes:
            return _declined(timed_out, "ssh key")

        # Not captured: the passphrase prompt must reach the terminal
        result = self._run(
            ["ssh-keygen", "-t", "ed25519", "-f", str(key), "-C", self._comment],
            timeout=300,
            capture=False,
        )
        if not result.ok or not key.exists():
            reason = result.failure_reason() if not result.ok else "ssh-keygen produced no key"
            logger.warning("SSH key generation failed: %s", reason)
            return StepOutcome(Classification.FAILED, reason)

        os.chmod(key, 0o600)
        pub = key.with_name(key.name + ".pub")
        if pub.exists():
            os.chmod(pub, 0o644)
        return StepOutcome(Classification.INSTALLED, f"SSH key generated at {key}")


class CredentialsStep(PostStep):
    """Collect credentials into owner-only files."""

    name = "credentials"

    def __init__(
        self,
        collector: CredentialCollector,
        env_file: Path,
        credentials_file: Path,
        extra_exports: dict[str, str] | None = None,
    ):
        self._collector = collector
        self._env_file = Path(env_file)
        self._credentials_file = Path(credentials_file)
        self._extra = extra_exports or {}

    def run(self, ctx: StepContext) -> StepOutcome:
        if self._env_file.is_file() and self._env_file.stat().st_size > 0:
            return StepOutcome(
                Classification.ALREADY_PRESENT,
                f"{self._env_file} exists; edit it to change credentials",
            )

        yes, timed_out = ctx.ask("Configure SSH/Ansible credentials now? (y/n)")
        if not yes:
            return _declined(timed_out, "credentials")

        def confirm(question: str) -> bool:
            return ctx.ask(question)[0]

        try:
            env, vault = self._collector.collect_standard(confirm)
        except EOFError:
            return StepOutcome(Classification.SKIPPED_BY_TIMEOUT, "credentials: input closed")

        records = [CredentialRecord.plain(k, v) for k, v in self._extra.items()]
        records.append(
            CredentialRecord.plain("ANSIBLE_VAULT_PASSWORD_FILE", str(self._credentials_file))
        )
        records.extend(env)

        try:
            write_private_files({
                self._credentials_file: render_secret_file(vault),
                self._env_file: render_env_file(records),
            })
        except OSError as e:
            logger.warning("Writing credentials failed: %s", e)
            return StepOutcome(Classification.FAILED, f"Cannot write credentials: {e}")

        return StepOutcome(
            Classification.INSTALLED,
            f"{len(records)} variables written to {self._env_file}",
            metadata={"names": [r.name for r in records]},
        )
