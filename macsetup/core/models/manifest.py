"""
Manifest model — settings plus the required and optional resource lists.

Loaded from macsetup.yml by ``macsetup.core.config.loader``. The
resource lists are pure data; everything that varies between teams
lives here, not in code.
"""

from __future__ import annotations

from collections import Counter

from pydantic import BaseModel, Field, field_validator, model_validator

from macsetup.core.models.descriptor import ResourceDescriptor


class Settings(BaseModel):
    """Run-wide settings. Paths are already expanded by the loader."""

    timeout_seconds: int = 60
    default_answer: str = "n"

    # preconditions
    required_disk_gb: int = 5
    connectivity_url: str = "https://formulae.brew.sh/"
    connectivity_timeout: int = 5
    required_commands: list[str] = Field(default_factory=lambda: ["brew", "git", "python3"])

    # side files
    log_file: str = "~/macsetup.log"
    ledger_file: str = ""
    backup_root: str = "~"

    # environment
    venv_path: str = "~/.netops-venv"
    env_file: str = "~/.zsh/env.zsh"
    credentials_file: str = "~/.avpf"
    ssh_key_dir: str = "~/.ssh/keys"
    ssh_key_prefix: str = "ssh"
    ssh_key_comment_domain: str = ""
    git_identity: bool = True

    @field_validator("default_answer")
    @classmethod
    def _normalize_answer(cls, v: str) -> str:
        v = v.strip().lower()
        if v not in ("y", "n"):
            raise ValueError("default_answer must be 'y' or 'n'")
        return v

    @field_validator("timeout_seconds")
    @classmethod
    def _positive_timeout(cls, v: int) -> int:
        if v < 0:
            raise ValueError("timeout_seconds must be >= 0")
        return v


class Manifest(BaseModel):
    """The full bootstrap declaration."""

    settings: Settings = Field(default_factory=Settings)
    variables: dict[str, str] = Field(default_factory=dict)
    required: list[ResourceDescriptor] = Field(default_factory=list)
    optional: list[ResourceDescriptor] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_phases(self) -> Manifest:
        for d in self.required:
            d.required = True
        for d in self.optional:
            d.required = False
        dupes = [
            name for name, n in Counter(d.id for d in self.descriptors).items() if n > 1
        ]
        if dupes:
            raise ValueError(f"Duplicate resource ids: {', '.join(sorted(dupes))}")
        return self

    @property
    def descriptors(self) -> list[ResourceDescriptor]:
        """Required first, then optional, in declaration order."""
        return [*self.required, *self.optional]

    def kind_counts(self) -> dict[str, int]:
        return dict(Counter(d.kind for d in self.descriptors))
