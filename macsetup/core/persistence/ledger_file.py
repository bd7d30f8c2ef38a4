"""
Ledger side file — append-only NDJSON history of run outcomes.

Every outcome of every run is appended as one JSON line. The file is
write-only from the engine's point of view: a run never reloads
history, each invocation starts with a fresh in-memory ledger.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

from macsetup.core.models.ledger import RunOutcome

logger = logging.getLogger(__name__)


class LedgerFileWriter:
    """Appends RunOutcome records to an NDJSON file.

    Each call to write() appends a single JSON line. The file is
    created if it doesn't exist.
    """

    def __init__(self, path: Path, run_id: str = ""):
        self._path = path
        self._run_id = run_id

    @property
    def path(self) -> Path:
        return self._path

    def write(self, outcome: RunOutcome) -> None:
        data = outcome.model_dump(mode="json")
        if self._run_id:
            data["run_id"] = self._run_id
        line = json.dumps(data, ensure_ascii=False) + "\n"

        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            with self._path.open("a", encoding="utf-8") as f:
                f.write(line)
        except OSError as e:
            logger.error("Failed to write ledger entry: %s", e)
