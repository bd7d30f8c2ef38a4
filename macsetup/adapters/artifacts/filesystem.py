"""
Filesystem adapters — file and directory artifacts.

File artifacts are written literally (content substitution already
happened in the manifest loader). Two modes:

    full file     the file's whole content is managed; the check
                  compares a SHA-256 digest, so drift is reported as
                  PRESENT_WRONG_VERSION and corrected on apply
    marked block  ``append: true`` — a block identified by a marker
                  line is appended to a file the operator owns
                  (e.g. ~/.zshrc); the rest of the file is untouched

Any existing file is backed up before it is changed.
"""

from __future__ import annotations

import hashlib
import logging
import os
import stat
from pathlib import Path

from macsetup.adapters.base import ResourceAdapter
from macsetup.core.errors import CheckFailure
from macsetup.core.models.descriptor import ResourceDescriptor, ResourceState
from macsetup.core.models.receipt import Receipt
from macsetup.core.persistence.backup import BackupStore

logger = logging.getLogger(__name__)


def content_digest(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def _mode_matches(path: Path, mode: int | None) -> bool:
    if mode is None:
        return True
    return stat.S_IMODE(path.stat().st_mode) == mode


class FileArtifactAdapter(ResourceAdapter):
    """Managed files and managed blocks inside files."""

    def __init__(self, backups: BackupStore | None = None):
        self._backups = backups

    @property
    def kind(self) -> str:
        return "file"

    def is_available(self) -> bool:
        return True  # filesystem is always available

    def check(self, descriptor: ResourceDescriptor) -> ResourceState:
        target = Path(descriptor.target)
        if not target.exists():
            return ResourceState.ABSENT
        if not target.is_file():
            return ResourceState.PRESENT_WRONG_VERSION

        try:
            if descriptor.append:
                text = target.read_text(encoding="utf-8")
                has_block = descriptor.marker in text.splitlines()
                return ResourceState.PRESENT if has_block else ResourceState.PRESENT_WRONG_VERSION

            current = content_digest(target.read_bytes())
            wanted = content_digest((descriptor.content or "").encode("utf-8"))
            if current == wanted and _mode_matches(target, descriptor.mode):
                return ResourceState.PRESENT
            return ResourceState.PRESENT_WRONG_VERSION
        except (OSError, UnicodeDecodeError) as e:
            raise CheckFailure(f"Cannot read {target}: {e}") from e

    def apply(self, descriptor: ResourceDescriptor) -> Receipt:
        target = Path(descriptor.target)
        try:
            if descriptor.append:
                return self._append_block(descriptor, target)
            return self._write_file(descriptor, target)
        except OSError as e:
            return Receipt.failure(
                adapter=self.name,
                resource_id=descriptor.id,
                error=f"Filesystem error: {e}",
                metadata={"path": str(target)},
            )

    def _backup(self, target: Path) -> str | None:
        if self._backups is None:
            return None
        dest = self._backups.backup(target)
        return str(dest) if dest else None

    def _write_file(self, descriptor: ResourceDescriptor, target: Path) -> Receipt:
        content = descriptor.content or ""
        data = content.encode("utf-8")

        backup = None
        if target.is_file():
            if content_digest(target.read_bytes()) == content_digest(data):
                if descriptor.mode is not None:
                    os.chmod(target, descriptor.mode)
                return Receipt.success(
                    adapter=self.name,
                    resource_id=descriptor.id,
                    output=f"{target} already up to date",
                    metadata={"path": str(target), "changed": False},
                )
            backup = self._backup(target)

        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_bytes(data)
        if descriptor.mode is not None:
            os.chmod(target, descriptor.mode)

        return Receipt.success(
            adapter=self.name,
            resource_id=descriptor.id,
            output=f"Written {len(data)} bytes to {target}",
            metadata={"path": str(target), "size": len(data), "backup": backup, "changed": True},
        )

    def _append_block(self, descriptor: ResourceDescriptor, target: Path) -> Receipt:
        existing = ""
        backup = None
        if target.is_file():
            existing = target.read_text(encoding="utf-8")
            if descriptor.marker in existing.splitlines():
                return Receipt.success(
                    adapter=self.name,
                    resource_id=descriptor.id,
                    output=f"{target} already configured",
                    metadata={"path": str(target), "changed": False},
                )
            backup = self._backup(target)

        block = descriptor.content or ""
        if not block.endswith("\n"):
            block += "\n"
        prefix = "" if not existing or existing.endswith("\n") else "\n"
        addition = f"{prefix}\n{descriptor.marker}\n{block}"

        target.parent.mkdir(parents=True, exist_ok=True)
        with target.open("a", encoding="utf-8") as f:
            f.write(addition)
        if descriptor.mode is not None:
            os.chmod(target, descriptor.mode)

        return Receipt.success(
            adapter=self.name,
            resource_id=descriptor.id,
            output=f"Added block '{descriptor.marker}' to {target}",
            metadata={"path": str(target), "backup": backup, "changed": True},
        )


class DirectoryArtifactAdapter(ResourceAdapter):
    """Directories with an optional exact permission mode."""

    @property
    def kind(self) -> str:
        return "directory"

    def is_available(self) -> bool:
        return True

    def check(self, descriptor: ResourceDescriptor) -> ResourceState:
        target = Path(descriptor.target)
        if not target.exists():
            return ResourceState.ABSENT
        if not target.is_dir():
            return ResourceState.PRESENT_WRONG_VERSION
        try:
            if _mode_matches(target, descriptor.mode):
                return ResourceState.PRESENT
        except OSError as e:
            raise CheckFailure(f"Cannot stat {target}: {e}") from e
        return ResourceState.PRESENT_WRONG_VERSION

    def apply(self, descriptor: ResourceDescriptor) -> Receipt:
        target = Path(descriptor.target)
        if target.exists() and not target.is_dir():
            return Receipt.failure(
                adapter=self.name,
                resource_id=descriptor.id,
                error=f"Path exists and is not a directory: {target}",
            )
        try:
            target.mkdir(parents=True, exist_ok=True)
            if descriptor.mode is not None:
                os.chmod(target, descriptor.mode)
        except OSError as e:
            return Receipt.failure(
                adapter=self.name,
                resource_id=descriptor.id,
                error=f"Filesystem error: {e}",
                metadata={"path": str(target)},
            )
        return Receipt.success(
            adapter=self.name,
            resource_id=descriptor.id,
            output=f"Directory ready: {target}",
            metadata={"path": str(target), "mode": oct(descriptor.mode) if descriptor.mode else None},
        )
