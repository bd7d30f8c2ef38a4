"""
pip adapter — Python packages inside the managed virtual environment.

Always invokes pip through the venv's own interpreter so nothing
leaks into the system Python.
"""

from __future__ import annotations

from pathlib import Path

from macsetup.adapters.package_managers.base import CommandPackageAdapter
from macsetup.adapters.shell.command import CommandRunner
from macsetup.core.errors import ApplyFailure
from macsetup.core.models.descriptor import ResourceDescriptor
from macsetup.core.models.receipt import Receipt


class PipAdapter(CommandPackageAdapter):
    """Language packages installed with ``<venv>/bin/python -m pip``."""

    install_timeout = 600

    def __init__(self, venv_path: str | Path, runner: CommandRunner | None = None):
        super().__init__(runner)
        self._venv = Path(venv_path)

    @property
    def kind(self) -> str:
        return "language_package"

    @property
    def name(self) -> str:
        return "pip"

    @property
    def python(self) -> str:
        return str(self._venv / "bin" / "python")

    def is_available(self) -> bool:
        return Path(self.python).is_file()

    def apply(self, descriptor: ResourceDescriptor) -> Receipt:
        # The virtualenv resource creates the interpreter earlier in the run
        if not self.is_available():
            raise ApplyFailure(f"virtualenv interpreter missing: {self.python}")
        return super().apply(descriptor)

    def list_command(self, descriptor: ResourceDescriptor) -> list[str]:
        return [self.python, "-m", "pip", "show", "--quiet", descriptor.target]

    def install_command(self, descriptor: ResourceDescriptor) -> list[str]:
        return [
            self.python, "-m", "pip", "install", "--quiet",
            *descriptor.options, descriptor.target,
        ]
