"""
Status use case — current state of every resource, checks only.

No preconditions, no prompts, no side files: this never mutates.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from macsetup.adapters.registry import AdapterRegistry
from macsetup.adapters.shell.command import CommandRunner
from macsetup.core.config.loader import load_manifest, resolve_manifest_path
from macsetup.core.errors import ConfigError
from macsetup.core.models.descriptor import ResourceDescriptor, ResourceState
from macsetup.core.models.manifest import Manifest
from macsetup.core.use_cases.run import build_registry


@dataclass
class ResourceStatus:
    descriptor: ResourceDescriptor
    state: ResourceState

    def to_dict(self) -> dict:
        return {
            "id": self.descriptor.id,
            "kind": self.descriptor.kind,
            "required": self.descriptor.required,
            "state": self.state.value,
        }


@dataclass
class StatusResult:
    """Observed state of every declared resource."""

    manifest: Manifest | None = None
    config_path: Path | None = None
    resources: list[ResourceStatus] = field(default_factory=list)
    # Declared kind -> whether its tool (brew, venv python, ...) is installed
    tools: dict[str, bool] = field(default_factory=dict)
    error: str | None = None

    @property
    def present_count(self) -> int:
        return sum(1 for r in self.resources if r.state == ResourceState.PRESENT)

    @property
    def missing_required(self) -> list[str]:
        return [
            r.descriptor.id for r in self.resources
            if r.descriptor.required and r.state != ResourceState.PRESENT
        ]

    def to_dict(self) -> dict:
        result: dict = {}
        if self.error:
            result["error"] = self.error
            return result

        result["config_path"] = str(self.config_path)
        result["present"] = self.present_count
        result["total"] = len(self.resources)
        result["missing_required"] = self.missing_required
        result["tools"] = self.tools
        result["resources"] = [r.to_dict() for r in self.resources]
        return result


def check_status(
    config_path: Path | None = None,
    registry: AdapterRegistry | None = None,
    runner: CommandRunner | None = None,
) -> StatusResult:
    """Check every resource in the manifest.

    Args:
        config_path: Optional explicit path to macsetup.yml.
        registry: Pre-configured adapter registry (default: real adapters).
        runner: Command runner for the default adapters.

    Returns:
        StatusResult with one entry per resource, in manifest order.
    """
    result = StatusResult()

    try:
        result.config_path = resolve_manifest_path(config_path)
        manifest = load_manifest(result.config_path)
        result.manifest = manifest
    except ConfigError as e:
        result.error = str(e)
        return result

    if registry is None:
        registry = build_registry(manifest.settings, backups=None, runner=runner)

    declared = manifest.kind_counts()
    result.tools = {
        kind: info["available"]
        for kind, info in registry.adapter_status().items()
        if kind in declared
    }

    for descriptor in manifest.descriptors:
        result.resources.append(ResourceStatus(descriptor, registry.check(descriptor)))

    return result
