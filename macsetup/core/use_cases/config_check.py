"""
Config check use case — validate the manifest and report issues.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path

from macsetup.core.config.loader import load_manifest, resolve_manifest_path
from macsetup.core.errors import ConfigError
from macsetup.core.models.manifest import Manifest


@dataclass
class ConfigCheckResult:
    """Result of manifest validation."""

    valid: bool = False
    manifest: Manifest | None = None
    config_path: Path | None = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def phase_kind_counts(self) -> dict[str, dict[str, int]]:
        if self.manifest is None:
            return {}
        return {
            "required": dict(Counter(d.kind for d in self.manifest.required)),
            "optional": dict(Counter(d.kind for d in self.manifest.optional)),
        }

    def to_dict(self) -> dict:
        return {
            "valid": self.valid,
            "config_path": str(self.config_path) if self.config_path else None,
            "errors": self.errors,
            "warnings": self.warnings,
            "required_count": len(self.manifest.required) if self.manifest else 0,
            "optional_count": len(self.manifest.optional) if self.manifest else 0,
            "kinds": self.phase_kind_counts(),
        }


def check_config(config_path: Path | None = None) -> ConfigCheckResult:
    """Validate the manifest and report issues.

    Args:
        config_path: Optional explicit path to macsetup.yml.

    Returns:
        ConfigCheckResult with validation status and any issues.
    """
    result = ConfigCheckResult()
    result.config_path = resolve_manifest_path(config_path)

    try:
        manifest = load_manifest(result.config_path)
        result.manifest = manifest
    except ConfigError as e:
        result.errors.append(str(e))
        return result

    # Semantic checks
    if not manifest.required:
        result.warnings.append("No required resources defined.")

    kinds = {d.kind for d in manifest.descriptors}
    if "language_package" in kinds and "virtualenv" not in kinds:
        result.warnings.append(
            "Python packages are declared but no virtualenv resource creates "
            f"{manifest.settings.venv_path}."
        )

    venvs = [i for i, d in enumerate(manifest.required) if d.kind == "virtualenv"]
    pips = [i for i, d in enumerate(manifest.required) if d.kind == "language_package"]
    if venvs and pips and min(pips) < min(venvs):
        result.warnings.append("A Python package comes before the virtualenv that holds it.")

    if manifest.settings.timeout_seconds == 0:
        result.warnings.append("timeout_seconds is 0: every prompt resolves to its default.")

    for d in manifest.descriptors:
        if d.kind in ("file", "directory") and not Path(d.target).is_absolute():
            result.warnings.append(f"Resource '{d.id}' has a relative path: {d.target}")

    # Result
    result.valid = len(result.errors) == 0
    return result
