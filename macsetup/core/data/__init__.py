"""
Packaged data — the default manifest.

Used when neither ./macsetup.yml (or a parent's) nor
~/.config/macsetup/macsetup.yml exists.
"""

from __future__ import annotations

from pathlib import Path

_DATA_DIR = Path(__file__).parent

DEFAULT_MANIFEST = _DATA_DIR / "default_manifest.yml"
