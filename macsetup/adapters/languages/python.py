"""
Virtualenv adapter — the managed Python environment.

The venv must exist before any ``language_package`` resource is
processed; ordering is the manifest's responsibility.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from macsetup.adapters.base import ResourceAdapter
from macsetup.adapters.shell.command import CommandRunner, run_command
from macsetup.core.models.descriptor import ResourceDescriptor, ResourceState
from macsetup.core.models.receipt import Receipt

logger = logging.getLogger(__name__)


class VirtualenvAdapter(ResourceAdapter):
    """Creates ``target`` with ``python3 -m venv`` and upgrades its pip."""

    def __init__(self, python: str = "python3", runner: CommandRunner | None = None):
        self._python = python
        self._run = runner or run_command

    @property
    def kind(self) -> str:
        return "virtualenv"

    def is_available(self) -> bool:
        return shutil.which(self._python) is not None

    def check(self, descriptor: ResourceDescriptor) -> ResourceState:
        venv = Path(descriptor.target)
        if (venv / "bin" / "python").is_file():
            return ResourceState.PRESENT
        if venv.exists():
            # Directory is there but the interpreter is gone (broken venv)
            return ResourceState.PRESENT_WRONG_VERSION
        return ResourceState.ABSENT

    def apply(self, descriptor: ResourceDescriptor) -> Receipt:
        venv = Path(descriptor.target)
        cmd = [self._python, "-m", "venv", *descriptor.options, str(venv)]
        logger.info("Creating virtual environment at %s", venv)
        result = self._run(cmd, timeout=300)
        if not result.ok:
            return Receipt.failure(
                adapter=self.name,
                resource_id=descriptor.id,
                error=result.failure_reason(),
                metadata={"command": " ".join(cmd)},
            )

        upgrade = self._run(
            [str(venv / "bin" / "python"), "-m", "pip", "install", "--quiet", "--upgrade", "pip"],
            timeout=300,
        )
        if not upgrade.ok:
            logger.warning("pip upgrade in %s failed: %s", venv, upgrade.failure_reason())

        return Receipt.success(
            adapter=self.name,
            resource_id=descriptor.id,
            output=f"Virtual environment created: {venv}",
            duration_ms=result.elapsed_ms + upgrade.elapsed_ms,
            metadata={"path": str(venv), "pip_upgraded": upgrade.ok},
        )
