"""
Preconditions — read-only checks run once, before anything mutates.

Any failure here is fatal: the run stops with exit code 1 and no
descriptor is processed. Three checks:

    connectivity     HEAD request to a package index
    storage          free space on the target volume
    base toolchain   required commands on PATH (and, on macOS, the
                     Xcode Command Line Tools)
"""

from __future__ import annotations

import logging
import platform
import shutil
import subprocess
import time
import urllib.request
from dataclasses import dataclass, field
from typing import Callable

from macsetup.core.models.manifest import Settings

logger = logging.getLogger(__name__)

_BYTES_PER_GB = 1024 ** 3


@dataclass
class PreconditionResult:
    """Outcome of one precondition."""

    name: str
    ok: bool
    message: str = ""
    details: dict = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {"name": self.name, "ok": self.ok, "message": self.message, **self.details}


Precondition = Callable[[], PreconditionResult]


def check_connectivity(url: str, timeout: int = 5) -> PreconditionResult:
    """Check network reachability with a HEAD request."""
    start = time.monotonic()
    try:
        req = urllib.request.Request(
            url,
            method="HEAD",
            headers={"User-Agent": "macsetup/1.0"},
        )
        with urllib.request.urlopen(req, timeout=timeout) as resp:
            elapsed = int((time.monotonic() - start) * 1000)
            return PreconditionResult(
                name="connectivity",
                ok=True,
                message=f"{url} reachable ({elapsed}ms)",
                details={"url": url, "status": resp.getcode(), "latency_ms": elapsed},
            )
    except Exception as exc:
        return PreconditionResult(
            name="connectivity",
            ok=False,
            message=f"No internet connection ({url}: {str(exc)[:200]})",
            details={"url": url},
        )


def check_disk_space(required_gb: int, path: str = "/") -> PreconditionResult:
    """Require at least ``required_gb`` of free space on ``path``."""
    try:
        free_gb = shutil.disk_usage(path).free // _BYTES_PER_GB
    except OSError as e:
        return PreconditionResult(
            name="storage", ok=False, message=f"Cannot read disk usage of {path}: {e}",
        )

    if free_gb < required_gb:
        return PreconditionResult(
            name="storage",
            ok=False,
            message=f"Insufficient disk space. Required: {required_gb}GB, Available: {free_gb}GB",
            details={"free_gb": free_gb, "required_gb": required_gb},
        )
    return PreconditionResult(
        name="storage",
        ok=True,
        message=f"Sufficient disk space available ({free_gb}GB)",
        details={"free_gb": free_gb, "required_gb": required_gb},
    )


def _xcode_tools_installed() -> bool:
    try:
        r = subprocess.run(["xcode-select", "-p"], capture_output=True, timeout=10)
        return r.returncode == 0
    except (FileNotFoundError, subprocess.TimeoutExpired, OSError):
        return False


def check_base_toolchain(commands: list[str]) -> PreconditionResult:
    """Every command in ``commands`` must resolve on PATH."""
    missing = [cmd for cmd in commands if shutil.which(cmd) is None]

    if platform.system() == "Darwin" and not _xcode_tools_installed():
        missing.append("xcode-command-line-tools")

    if missing:
        hint = ""
        if "brew" in missing:
            hint = (
                ' Install Homebrew first: /bin/bash -c "$(curl -fsSL '
                'https://raw.githubusercontent.com/Homebrew/install/HEAD/install.sh)"'
            )
        return PreconditionResult(
            name="toolchain",
            ok=False,
            message=f"Missing base toolchain: {', '.join(missing)}.{hint}",
            details={"missing": missing},
        )
    return PreconditionResult(
        name="toolchain",
        ok=True,
        message=f"Base toolchain present ({', '.join(commands) or 'nothing required'})",
    )


def default_preconditions(settings: Settings) -> list[Precondition]:
    """The standard precondition set, bound to run settings."""
    return [
        lambda: check_connectivity(settings.connectivity_url, settings.connectivity_timeout),
        lambda: check_disk_space(settings.required_disk_gb),
        lambda: check_base_toolchain(settings.required_commands),
    ]
