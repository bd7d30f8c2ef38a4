"""
Shared test fixtures and configuration.
"""

import textwrap
from pathlib import Path

import pytest

from macsetup.adapters.mock import MockAdapter
from macsetup.adapters.registry import AdapterRegistry
from macsetup.adapters.shell.command import CommandResult


class FakeRunner:
    """Scripted stand-in for ``run_command``.

    Responses are matched on the exact command list; anything not
    scripted gets ``default_returncode``.
    """

    def __init__(self, default_returncode: int = 0):
        self.default_returncode = default_returncode
        self.calls: list[list[str]] = []
        self.kwargs: list[dict] = []
        self._responses: dict[tuple[str, ...], CommandResult] = {}

    def on(self, cmd: list[str], returncode: int = 0, stdout: str = "",
           stderr: str = "", error: str | None = None) -> None:
        self._responses[tuple(cmd)] = CommandResult(
            command=cmd, returncode=returncode, stdout=stdout, stderr=stderr, error=error,
        )

    def __call__(self, cmd: list[str], **kwargs) -> CommandResult:
        self.calls.append(list(cmd))
        self.kwargs.append(kwargs)
        scripted = self._responses.get(tuple(cmd))
        if scripted is not None:
            return scripted
        return CommandResult(command=cmd, returncode=self.default_returncode)


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def mock_adapter() -> MockAdapter:
    return MockAdapter(kind="package")


@pytest.fixture
def mock_registry(mock_adapter: MockAdapter) -> AdapterRegistry:
    """Registry whose only adapter is the shared mock for 'package'."""
    registry = AdapterRegistry()
    registry.register(mock_adapter)
    return registry


@pytest.fixture
def manifest_file(tmp_path: Path) -> Path:
    """A small manifest whose side files all live under tmp_path."""
    content = textwrap.dedent(f"""\
        settings:
          timeout_seconds: 1
          default_answer: "n"
          log_file: "{tmp_path}/macsetup.log"
          ledger_file: "{tmp_path}/ledger.ndjson"
          backup_root: "{tmp_path}"
          venv_path: "{tmp_path}/venv"
          env_file: "{tmp_path}/zsh/env.zsh"
          credentials_file: "{tmp_path}/avpf"
          ssh_key_dir: "{tmp_path}/ssh/keys"
          git_identity: false
        required:
          - {{id: A, kind: package}}
          - {{id: B, kind: package}}
        optional:
          - {{id: C, kind: package, description: optional tool}}
    """)
    path = tmp_path / "macsetup.yml"
    path.write_text(content)
    return path
