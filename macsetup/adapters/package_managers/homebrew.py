"""
Homebrew adapters — formulae and casks.

    brew list [--cask] NAME      → exit 0 when installed
    brew install [--cask] NAME
"""

from __future__ import annotations

from macsetup.adapters.package_managers.base import CommandPackageAdapter
from macsetup.core.models.descriptor import ResourceDescriptor


class BrewFormulaAdapter(CommandPackageAdapter):
    """CLI packages installed with ``brew install``."""

    executable = "brew"
    check_timeout = 30  # brew is slow

    @property
    def kind(self) -> str:
        return "package"

    @property
    def name(self) -> str:
        return "brew"

    def list_command(self, descriptor: ResourceDescriptor) -> list[str]:
        return ["brew", "list", descriptor.target]

    def install_command(self, descriptor: ResourceDescriptor) -> list[str]:
        return ["brew", "install", *descriptor.options, descriptor.target]


class BrewCaskAdapter(BrewFormulaAdapter):
    """GUI applications installed with ``brew install --cask``."""

    @property
    def kind(self) -> str:
        return "cask"

    @property
    def name(self) -> str:
        return "brew-cask"

    def list_command(self, descriptor: ResourceDescriptor) -> list[str]:
        return ["brew", "list", "--cask", descriptor.target]

    def install_command(self, descriptor: ResourceDescriptor) -> list[str]:
        return ["brew", "install", "--cask", *descriptor.options, descriptor.target]
