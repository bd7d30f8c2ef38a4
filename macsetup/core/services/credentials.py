"""
Credential capture — a finite sequence of typed requests.

The interactive password prompts of a hand-written setup script,
re-cast as data: each CredentialRequest declares whether it is
sensitive (hidden input, never echoed), and conditional follow-ups
are plain yes/no questions through the prompt gate.

Values are wrapped in SecretStr the moment they are read. Nothing in
this module logs a value — only names.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable

import click
from pydantic import SecretStr

from macsetup.core.models.credential import CredentialRecord

logger = logging.getLogger(__name__)

# Custom variables whose names look secret get hidden input
_SENSITIVE_NAME = re.compile(r"(PASS|PASSWORD|SECRET|KEY|TOKEN)$")
_VAR_NAME = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

InputReader = Callable[[str, bool], str]
Confirm = Callable[[str], bool]


@dataclass(frozen=True)
class CredentialRequest:
    name: str
    prompt: str
    sensitive: bool = False


def prompt_input(text: str, hide_input: bool, err: bool = False) -> str:
    """Read one value from the terminal.

    Args:
        text: Prompt shown to the operator.
        hide_input: Do not echo what is typed.
        err: Write the prompt to stderr (stdout carries JSON output).

    Raises:
        EOFError: The input stream closed (non-interactive run).
    """
    try:
        return click.prompt(
            text, default="", show_default=False, hide_input=hide_input, err=err,
        )
    except click.exceptions.Abort as e:
        raise EOFError("input closed") from e


def looks_sensitive(name: str) -> bool:
    return bool(_SENSITIVE_NAME.search(name.upper()))


SSH_REQUESTS = (
    CredentialRequest("SSHUSER", "Enter SSH username"),
    CredentialRequest("SSHPASS", "Enter SSH password", sensitive=True),
)

ANSIBLE_REQUESTS = (
    CredentialRequest("ANSIBLE_USERNAME", "Enter Ansible username"),
    CredentialRequest("ANSIBLE_PASSWORD", "Enter Ansible password", sensitive=True),
)

VAULT_REQUEST = CredentialRequest(
    "ANSIBLE_VAULT_PASSWORD", "Enter Ansible vault password", sensitive=True,
)


class CredentialCollector:
    """Issues credential requests and wraps the answers."""

    def __init__(self, read: InputReader | None = None):
        self._read = read or prompt_input

    def request(self, req: CredentialRequest) -> CredentialRecord:
        value = self._read(f"{req.prompt}", req.sensitive)
        logger.debug("Captured %s%s", req.name, " (hidden)" if req.sensitive else "")
        return CredentialRecord(name=req.name, value=SecretStr(value), sensitive=req.sensitive)

    def request_all(self, requests: tuple[CredentialRequest, ...]) -> list[CredentialRecord]:
        return [self.request(r) for r in requests]

    def collect_custom(self) -> list[CredentialRecord]:
        """Free-form variables until the operator types 'done'."""
        records: list[CredentialRecord] = []
        while True:
            name = self._read("Variable name (or 'done')", False).strip()
            if not name or name.lower() == "done":
                break
            if not _VAR_NAME.match(name):
                click.echo(f"   Invalid variable name: {name}", err=True)
                continue
            records.append(
                self.request(CredentialRequest(name, f"Enter value for {name}", looks_sensitive(name)))
            )
        return records

    def collect_standard(self, confirm: Confirm) -> tuple[list[CredentialRecord], CredentialRecord]:
        """The standard NetOps credential sequence.

        Returns:
            (environment records, vault password record). The vault
            password goes to its own file, not the environment file.
        """
        env = self.request_all(SSH_REQUESTS)
        ssh_user, ssh_pass = env

        if confirm("Use the same credentials for Ansible? (y/n)"):
            env.append(CredentialRecord(name="ANSIBLE_USERNAME", value=ssh_user.value))
            env.append(
                CredentialRecord(name="ANSIBLE_PASSWORD", value=ssh_pass.value, sensitive=True)
            )
        else:
            env.extend(self.request_all(ANSIBLE_REQUESTS))

        vault = self.request(VAULT_REQUEST)

        if confirm("Add custom environment variables? (y/n)"):
            env.extend(self.collect_custom())

        logger.info("Collected credentials: %s", ", ".join(r.name for r in env))
        return env, vault
