"""
Owner-only files for credentials and the shell environment.

Permissions are decided at write time, never inherited: the file is
created with mode 0600, and an existing file is narrowed back to 0600
before any secret is written into it.
"""

from __future__ import annotations

import logging
import os
import shlex
from datetime import datetime
from pathlib import Path
from typing import Iterable

from macsetup.core.models.credential import CredentialRecord

logger = logging.getLogger(__name__)

PRIVATE_FILE_MODE = 0o600


def write_private_file(path: Path, content: str) -> Path:
    """Write ``content`` to ``path`` readable by the owner only."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, PRIVATE_FILE_MODE)
    try:
        # O_CREAT's mode is ignored for files that already existed
        os.fchmod(fd, PRIVATE_FILE_MODE)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            fd = -1
            f.write(content)
    finally:
        if fd != -1:
            os.close(fd)

    logger.info("Wrote %s (mode %o)", path, PRIVATE_FILE_MODE)
    return path


def render_env_file(records: Iterable[CredentialRecord], title: str = "macsetup") -> str:
    """Shell-sourceable ``export NAME=value`` lines."""
    lines = [
        f"# Environment Variables - {title}",
        f"# Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
        "",
    ]
    for record in records:
        value = shlex.quote(record.value.get_secret_value())
        lines.append(f"export {record.name}={value}")
    return "\n".join(lines) + "\n"


def render_secret_file(record: CredentialRecord) -> str:
    """A single secret on its own, e.g. an Ansible vault password file."""
    return record.value.get_secret_value() + "\n"


def write_private_files(contents: dict[Path, str]) -> list[Path]:
    """Write several owner-only files so that either all of them land or none.

    Every file is first written to a ``.tmp`` sibling; targets are only
    replaced once all staged writes succeeded.
    """
    staged: list[tuple[Path, Path]] = []
    try:
        for path, content in contents.items():
            path = Path(path)
            tmp = path.with_name(path.name + ".tmp")
            staged.append((tmp, path))
            write_private_file(tmp, content)
    except OSError:
        for tmp, _ in staged:
            if tmp.exists():
                tmp.unlink()
        raise

    for tmp, path in staged:
        os.replace(tmp, path)
        logger.info("Installed %s", path)
    return [path for _, path in staged]
