"""
Command-backed package adapter — the shared check/install shape.

Every package manager exposes the same black-box surface:

    list(name)    → installed?   (exit status of a query command)
    install(name) → status       (exit status of an install command)

Subclasses only say which commands to run.
"""

from __future__ import annotations

import logging
import shutil
from abc import abstractmethod

from macsetup.adapters.base import ResourceAdapter
from macsetup.adapters.shell.command import CommandResult, CommandRunner, run_command
from macsetup.core.errors import CheckFailure
from macsetup.core.models.descriptor import ResourceDescriptor, ResourceState
from macsetup.core.models.receipt import Receipt

logger = logging.getLogger(__name__)


class CommandPackageAdapter(ResourceAdapter):
    """Base for adapters that shell out to a package manager CLI."""

    #: Binary that must be on PATH for the adapter to be usable.
    executable: str = ""

    check_timeout: int = 60
    install_timeout: int = 1800

    def __init__(self, runner: CommandRunner | None = None):
        self._run = runner or run_command

    def is_available(self) -> bool:
        return shutil.which(self.executable) is not None

    @abstractmethod
    def list_command(self, descriptor: ResourceDescriptor) -> list[str]:
        """Query command; exit status 0 means installed."""

    @abstractmethod
    def install_command(self, descriptor: ResourceDescriptor) -> list[str]:
        """Install command for one resource."""

    def is_installed(self, descriptor: ResourceDescriptor, result: CommandResult) -> bool:
        """Interpret the query result. Override for tools whose exit
        status alone is not reliable."""
        return result.returncode == 0

    def check(self, descriptor: ResourceDescriptor) -> ResourceState:
        result = self._run(self.list_command(descriptor), timeout=self.check_timeout)
        if result.error:
            # Binary missing, timeout, OS error — we genuinely don't know
            raise CheckFailure(result.error)
        if self.is_installed(descriptor, result):
            return ResourceState.PRESENT
        return ResourceState.ABSENT

    def apply(self, descriptor: ResourceDescriptor) -> Receipt:
        cmd = self.install_command(descriptor)
        logger.info("Installing %s (%s)...", descriptor.target, self.name)
        result = self._run(cmd, timeout=self.install_timeout)

        metadata = {
            "command": " ".join(cmd),
            "return_code": result.returncode,
        }
        if result.ok:
            return Receipt.success(
                adapter=self.name,
                resource_id=descriptor.id,
                output=result.stdout.strip(),
                duration_ms=result.elapsed_ms,
                metadata={**metadata, "stderr": result.stderr.strip()},
            )
        return Receipt.failure(
            adapter=self.name,
            resource_id=descriptor.id,
            error=result.failure_reason(),
            duration_ms=result.elapsed_ms,
            metadata={**metadata, "stdout": result.stdout.strip()},
        )
