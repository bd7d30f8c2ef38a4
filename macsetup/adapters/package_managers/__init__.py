"""Package manager adapters: Homebrew, pip, Ansible Galaxy."""

from macsetup.adapters.package_managers.galaxy import GalaxyCollectionAdapter
from macsetup.adapters.package_managers.homebrew import BrewCaskAdapter, BrewFormulaAdapter
from macsetup.adapters.package_managers.pip import PipAdapter

__all__ = [
    "BrewCaskAdapter",
    "BrewFormulaAdapter",
    "GalaxyCollectionAdapter",
    "PipAdapter",
]
