"""
Configuration backups — copies of files before they are overwritten.

One backup directory per run (``~/.macsetup-backup-YYYYmmdd-HHMMSS``),
created lazily on the first backup so untouched runs leave no trace.
Failures are logged but never abort the write that follows; the
caller decides whether to proceed.
"""

from __future__ import annotations

import logging
import shutil
import time
from pathlib import Path

logger = logging.getLogger(__name__)

BACKUP_DIR_PREFIX = ".macsetup-backup-"


class BackupStore:
    """Per-run backup directory for overwritten configuration files."""

    def __init__(self, root: Path | str, stamp: str | None = None):
        stamp = stamp or time.strftime("%Y%m%d-%H%M%S")
        self._dir = Path(root).expanduser() / f"{BACKUP_DIR_PREFIX}{stamp}"
        self._backed_up: list[Path] = []

    @property
    def directory(self) -> Path:
        return self._dir

    @property
    def backed_up(self) -> list[Path]:
        return list(self._backed_up)

    def backup(self, path: Path | str) -> Path | None:
        """Copy ``path`` into the backup directory.

        Returns:
            The backup path, or None if there was nothing to back up
            or the copy failed.
        """
        source = Path(path)
        if not source.is_file():
            logger.debug("backup: not a file, skipping: %s", source)
            return None

        dest = self._dir / f"{source.name}.backup"
        counter = 1
        while dest.exists():
            counter += 1
            dest = self._dir / f"{source.name}.backup.{counter}"

        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, dest)
        except OSError as e:
            logger.warning("Backup of %s failed: %s", source, e)
            return None

        self._backed_up.append(dest)
        logger.info("Backed up %s → %s", source, dest)
        return dest
