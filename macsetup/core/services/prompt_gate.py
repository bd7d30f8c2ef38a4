"""
Interactive prompt gate — bounded yes/no questions.

Every optional resource is gated by a question with a timeout and a
default answer. Walking away from the terminal means "all required,
no optional": on timeout the default is returned exactly as if the
operator had typed it. No error is raised.

The wait is a single ``select()`` on the input stream, so the gate
can never hang past its bound. A closed or exhausted input stream
(``</dev/null``, CI, a detached terminal) resolves to the default
immediately instead of waiting.
"""

from __future__ import annotations

import io
import logging
import selectors
import sys
from dataclasses import dataclass
from typing import TextIO

logger = logging.getLogger(__name__)

_YES = frozenset({"y", "yes"})


@dataclass(frozen=True)
class PromptAnswer:
    """What the gate resolved to, and why."""

    value: str
    timed_out: bool = False  # no input in time, or input stream closed


def is_yes(answer: str) -> bool:
    return answer.strip().lower() in _YES


class PromptGate:
    """Ask questions on ``stdin`` with a hard upper bound on the wait."""

    def __init__(self, stdin: TextIO | None = None, stdout: TextIO | None = None):
        self._in = stdin if stdin is not None else sys.stdin
        self._out = stdout if stdout is not None else sys.stdout

    def ask(self, question: str, default_answer: str, timeout_seconds: float) -> str:
        return self.ask_detailed(question, default_answer, timeout_seconds).value

    def ask_detailed(
        self,
        question: str,
        default_answer: str,
        timeout_seconds: float,
    ) -> PromptAnswer:
        self._write(f"{question} ({timeout_seconds:g}s timeout, default: {default_answer}) ")

        line = self._read_line(timeout_seconds)
        if line is None:
            self._write(f"\n   No answer, using default: {default_answer}\n")
            logger.info("Prompt timed out: %r → %s", question, default_answer)
            return PromptAnswer(value=default_answer, timed_out=True)

        answer = line.strip()
        if not answer:
            return PromptAnswer(value=default_answer)
        return PromptAnswer(value=answer)

    def confirm(self, question: str, default_answer: str, timeout_seconds: float) -> bool:
        return is_yes(self.ask(question, default_answer, timeout_seconds))

    # ── Internals ────────────────────────────────────────────────

    def _write(self, text: str) -> None:
        try:
            self._out.write(text)
            self._out.flush()
        except (OSError, ValueError):
            pass  # output closed — the answer still resolves

    def _read_line(self, timeout: float) -> str | None:
        """One line of input, or None on timeout / EOF / closed stream."""
        stream = self._in
        if stream is None or stream.closed:
            return None

        try:
            stream.fileno()
        except (io.UnsupportedOperation, AttributeError, ValueError):
            # In-memory stream (tests, click's CliRunner): cannot block
            line = stream.readline()
            return line or None

        sel = selectors.DefaultSelector()
        try:
            try:
                sel.register(stream, selectors.EVENT_READ)
            except (ValueError, OSError) as e:
                logger.debug("Input stream not selectable (%s), using default", e)
                return None
            events = sel.select(timeout=timeout)
            if not events:
                return None
            line = stream.readline()
        finally:
            sel.close()

        # Empty read after the stream became readable = EOF
        return line or None
