"""
Ansible Galaxy adapter — network-vendor collections.

``ansible-galaxy collection list NAME`` exits 0 even when the
collection is missing on some versions, so the output is inspected
for the collection name instead.

Ansible itself is usually pip-installed into the managed virtualenv,
so the venv's ``ansible-galaxy`` is preferred over the one on PATH.
When neither exists the collection is skipped, not failed.
"""

from __future__ import annotations

from pathlib import Path

from macsetup.adapters.package_managers.base import CommandPackageAdapter
from macsetup.adapters.shell.command import CommandResult, CommandRunner
from macsetup.core.models.descriptor import ResourceDescriptor
from macsetup.core.models.receipt import Receipt


class GalaxyCollectionAdapter(CommandPackageAdapter):
    executable = "ansible-galaxy"
    install_timeout = 600

    def __init__(self, runner: CommandRunner | None = None, venv_path: str | Path | None = None):
        super().__init__(runner)
        self._venv = Path(venv_path) if venv_path else None

    @property
    def kind(self) -> str:
        return "collection"

    @property
    def name(self) -> str:
        return "ansible-galaxy"

    @property
    def galaxy(self) -> str:
        if self._venv is not None:
            candidate = self._venv / "bin" / self.executable
            if candidate.is_file():
                return str(candidate)
        return self.executable

    def is_available(self) -> bool:
        return self.galaxy != self.executable or super().is_available()

    def list_command(self, descriptor: ResourceDescriptor) -> list[str]:
        return [self.galaxy, "collection", "list", descriptor.target]

    def install_command(self, descriptor: ResourceDescriptor) -> list[str]:
        return [
            self.galaxy, "collection", "install",
            *descriptor.options, descriptor.target,
        ]

    def is_installed(self, descriptor: ResourceDescriptor, result: CommandResult) -> bool:
        if result.returncode != 0:
            return False
        for line in result.stdout.splitlines():
            parts = line.split()
            if parts and parts[0] == descriptor.target:
                return True
        return False

    def apply(self, descriptor: ResourceDescriptor) -> Receipt:
        if not self.is_available():
            return Receipt.skip(
                adapter=self.name,
                resource_id=descriptor.id,
                reason="Ansible not found in venv or on PATH, skipping collection",
            )
        return super().apply(descriptor)
