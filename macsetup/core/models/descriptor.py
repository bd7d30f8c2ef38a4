"""
Resource descriptor — one named unit of desired state.

A descriptor is pure data. Its check/apply behaviour is bound by
``kind`` through the adapter registry, so the whole bootstrap is a
tagged-variant list driven by one orchestration loop instead of a
copy-pasted block per tool.
"""

from __future__ import annotations

from enum import Enum
from typing import Literal, get_args

from pydantic import BaseModel, Field, field_validator, model_validator

ResourceKind = Literal[
    "package",            # Homebrew formula
    "cask",               # Homebrew cask (GUI app)
    "language_package",   # pip package inside the managed venv
    "collection",         # Ansible Galaxy collection
    "file",               # file artifact (full file or marked block)
    "directory",          # directory artifact
    "virtualenv",         # Python virtual environment
]

RESOURCE_KINDS: tuple[str, ...] = get_args(ResourceKind)


class ResourceState(str, Enum):
    """What a checker observed. Checks never mutate anything."""

    ABSENT = "absent"
    PRESENT = "present"
    PRESENT_WRONG_VERSION = "present_wrong_version"


class ResourceDescriptor(BaseModel):
    """A single desired-state resource.

    ``id`` is unique within a run; ``target`` is what the adapter
    actually operates on (package name or filesystem path) and
    defaults to ``id``.
    """

    id: str
    kind: ResourceKind
    required: bool = True
    description: str = ""

    target: str = ""
    options: list[str] = Field(default_factory=list)

    # file / directory artifacts
    content: str | None = None
    mode: int | None = None
    append: bool = False
    marker: str = ""

    verify: bool = False

    @field_validator("mode", mode="before")
    @classmethod
    def _parse_mode(cls, v: object) -> object:
        # Octal strings such as "0700", "1700" or "0o700"; ints come from Python callers
        if isinstance(v, str):
            v = int(v, 8)
        if isinstance(v, int) and not 0 <= v <= 0o7777:
            raise ValueError(f"mode {v:o} is outside 0000-7777")
        return v

    @model_validator(mode="after")
    def _fill_defaults(self) -> ResourceDescriptor:
        if not self.target:
            self.target = self.id
        if self.kind == "file" and self.content is None:
            raise ValueError(f"file resource '{self.id}' needs 'content'")
        if self.append and not self.marker:
            raise ValueError(f"appended block '{self.id}' needs a 'marker'")
        return self

    @property
    def label(self) -> str:
        """Human-readable name for prompts and output."""
        if self.description:
            return f"{self.id} ({self.description})"
        return self.id
