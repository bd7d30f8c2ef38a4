"""
Subprocess runner — the single place external commands are executed.

Package managers (brew, pip, ansible-galaxy) are opaque black boxes:
the adapters only ever see an exit status and captured output.
"""

from __future__ import annotations

import logging
import os
import subprocess
import time
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger(__name__)

# Output kept on a result; package managers can be very chatty
_OUTPUT_TAIL = 2000


@dataclass
class CommandResult:
    """Outcome of one command invocation."""

    command: list[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""
    elapsed_ms: int = 0
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.returncode == 0 and self.error is None

    def failure_reason(self) -> str:
        """Best short explanation of a failed command."""
        if self.error:
            return self.error
        tail = (self.stderr or self.stdout).strip().splitlines()
        if tail:
            return f"exit {self.returncode}: {tail[-1]}"
        return f"Command exited with code {self.returncode}"


CommandRunner = Callable[..., CommandResult]


def run_command(
    cmd: list[str],
    *,
    timeout: int = 1800,
    cwd: str | None = None,
    env_overrides: dict[str, str] | None = None,
    capture: bool = True,
) -> CommandResult:
    """Run a command and capture its exit status and output.

    Never raises: a missing binary, a timeout, or an OS error comes
    back as a CommandResult with ``error`` set and returncode -1.

    Args:
        cmd: Command list for ``subprocess.run()``.
        timeout: Seconds before the command is killed.
        cwd: Working directory.
        env_overrides: Extra env vars layered over the current env.
        capture: When False, the command inherits the terminal
            (used for steps that prompt the operator, e.g. ssh-keygen).
    """
    env = os.environ.copy()
    if env_overrides:
        env.update(env_overrides)

    logger.debug("Executing: %s (cwd=%s)", " ".join(cmd), cwd)
    start = time.monotonic()

    try:
        result = subprocess.run(
            cmd,
            capture_output=capture,
            text=True,
            timeout=timeout,
            env=env,
            cwd=cwd,
        )
    except FileNotFoundError:
        return CommandResult(
            command=cmd, returncode=-1, error=f"Command not found: {cmd[0]}",
        )
    except subprocess.TimeoutExpired:
        return CommandResult(
            command=cmd, returncode=-1, error=f"Command timed out after {timeout}s",
        )
    except OSError as e:
        return CommandResult(
            command=cmd, returncode=-1, error=f"Command execution error: {e}",
        )

    elapsed_ms = int((time.monotonic() - start) * 1000)
    return CommandResult(
        command=cmd,
        returncode=result.returncode,
        stdout=(result.stdout or "")[-_OUTPUT_TAIL:],
        stderr=(result.stderr or "")[-_OUTPUT_TAIL:],
        elapsed_ms=elapsed_ms,
    )
