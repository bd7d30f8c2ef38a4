"""
Tests for adapters — mock, registry, package managers, virtualenv, filesystem.
"""

import os
import stat
import sys
from pathlib import Path

import pytest

from macsetup.adapters.artifacts.filesystem import (
    DirectoryArtifactAdapter,
    FileArtifactAdapter,
    content_digest,
)
from macsetup.adapters.languages.python import VirtualenvAdapter
from macsetup.adapters.mock import MockAdapter
from macsetup.adapters.package_managers import (
    BrewCaskAdapter,
    BrewFormulaAdapter,
    GalaxyCollectionAdapter,
    PipAdapter,
)
from macsetup.adapters.registry import AdapterRegistry
from macsetup.adapters.shell.command import CommandResult, run_command
from macsetup.core.engine.applier import Applier
from macsetup.core.errors import ApplyFailure, CheckFailure
from macsetup.core.models.descriptor import ResourceDescriptor, ResourceState
from macsetup.core.models.ledger import Classification
from macsetup.core.persistence.backup import BackupStore


def _pkg(rid: str, kind: str = "package", **kw) -> ResourceDescriptor:
    return ResourceDescriptor(id=rid, kind=kind, **kw)


# ── Mock Adapter Tests ───────────────────────────────────────────────


class TestMockAdapter:
    def test_apply_marks_present(self):
        mock = MockAdapter()
        d = _pkg("jq")
        assert mock.check(d) == ResourceState.ABSENT
        assert mock.apply(d).ok
        assert mock.check(d) == ResourceState.PRESENT
        assert mock.call_count == 1

    def test_set_failure(self):
        mock = MockAdapter()
        mock.set_failure("jq", error="Intentional failure")
        receipt = mock.apply(_pkg("jq"))
        assert receipt.failed
        assert "Intentional failure" in receipt.error
        assert "jq" not in mock.present

    def test_call_logs_and_reset(self):
        mock = MockAdapter(present={"a"})
        mock.check(_pkg("a"))
        mock.apply(_pkg("b"))
        assert mock.check_log == ["a"]
        assert mock.apply_log == ["b"]
        mock.reset()
        assert mock.call_count == 0
        assert mock.check_log == []

    def test_is_available(self):
        assert MockAdapter(available=True).is_available()
        assert not MockAdapter(available=False).is_available()


# ── Registry Tests ───────────────────────────────────────────────────


class RaisingAdapter(MockAdapter):
    def apply(self, descriptor):
        raise RuntimeError("adapter bug")


class TestAdapterRegistry:
    def test_register_dispatches_by_kind(self):
        registry = AdapterRegistry()
        cask = MockAdapter(kind="cask")
        registry.register(cask)
        registry.apply(_pkg("iterm2", "cask"))
        assert cask.apply_log == ["iterm2"]
        assert list(registry.adapter_status()) == ["cask"]

    def test_register_replaces_same_kind(self):
        registry = AdapterRegistry()
        first, second = MockAdapter(kind="cask"), MockAdapter(kind="cask")
        registry.register(first)
        registry.register(second)
        registry.apply(_pkg("iterm2", "cask"))
        assert first.apply_log == []
        assert second.apply_log == ["iterm2"]

    def test_adapter_status(self):
        registry = AdapterRegistry()
        registry.register(MockAdapter(kind="package", available=True))
        registry.register(MockAdapter(kind="cask", available=False))
        status = registry.adapter_status()
        assert status["package"]["available"] is True
        assert status["cask"]["available"] is False

    def test_adapter_status_survives_raising_check(self):
        class Broken(MockAdapter):
            def is_available(self):
                raise OSError("PATH unreadable")

        registry = AdapterRegistry()
        registry.register(Broken())
        assert registry.adapter_status()["package"]["available"] is False

    def test_check_without_adapter_is_absent(self):
        assert AdapterRegistry().check(_pkg("x", "collection")) == ResourceState.ABSENT

    def test_apply_without_adapter_fails(self):
        receipt = AdapterRegistry().apply(_pkg("x", "collection"))
        assert receipt.failed
        assert "No adapter" in receipt.error

    def test_check_failure_is_absent(self, mock_registry, mock_adapter):
        mock_adapter.mark_present("jq")
        mock_adapter.set_check_error("jq", CheckFailure("brew hung"))
        assert mock_registry.check(_pkg("jq")) == ResourceState.ABSENT

    def test_unexpected_check_error_is_absent(self, mock_registry, mock_adapter):
        mock_adapter.set_check_error("jq", OSError("disk gone"))
        assert mock_registry.check(_pkg("jq")) == ResourceState.ABSENT

    def test_apply_exception_becomes_receipt(self):
        registry = AdapterRegistry()
        registry.register(RaisingAdapter())
        receipt = registry.apply(_pkg("jq"))
        assert receipt.failed
        assert "adapter bug" in receipt.error

    def test_apply_failure_exception(self):
        class Failing(MockAdapter):
            def apply(self, descriptor):
                raise ApplyFailure("no space left")

        registry = AdapterRegistry()
        registry.register(Failing())
        receipt = registry.apply(_pkg("jq"))
        assert receipt.failed
        assert receipt.error == "no space left"

    def test_verify(self, mock_registry, mock_adapter):
        assert not mock_registry.verify(_pkg("jq"))
        mock_adapter.mark_present("jq")
        assert mock_registry.verify(_pkg("jq"))
        assert not mock_registry.verify(_pkg("jq", "cask"))


# ── Command Runner Tests ─────────────────────────────────────────────


class TestRunCommand:
    def test_success(self):
        result = run_command([sys.executable, "-c", "print('hello')"], timeout=30)
        assert result.ok
        assert result.stdout.strip() == "hello"

    def test_nonzero_exit(self):
        result = run_command(
            [sys.executable, "-c", "import sys; sys.stderr.write('bad\\n'); sys.exit(3)"],
            timeout=30,
        )
        assert not result.ok
        assert result.returncode == 3
        assert result.failure_reason() == "exit 3: bad"

    def test_missing_binary(self):
        result = run_command(["macsetup-no-such-binary-xyz"])
        assert not result.ok
        assert result.returncode == -1
        assert "Command not found" in result.error

    def test_timeout(self):
        result = run_command([sys.executable, "-c", "import time; time.sleep(5)"], timeout=1)
        assert not result.ok
        assert "timed out" in result.error


# ── Package Manager Tests ────────────────────────────────────────────


class TestBrewAdapters:
    def test_check_present(self, fake_runner):
        fake_runner.on(["brew", "list", "jq"], returncode=0)
        assert BrewFormulaAdapter(fake_runner).check(_pkg("jq")) == ResourceState.PRESENT

    def test_check_absent(self, fake_runner):
        fake_runner.on(["brew", "list", "jq"], returncode=1)
        assert BrewFormulaAdapter(fake_runner).check(_pkg("jq")) == ResourceState.ABSENT

    def test_check_undeterminable_raises(self, fake_runner):
        fake_runner.on(["brew", "list", "jq"], returncode=-1, error="Command not found: brew")
        with pytest.raises(CheckFailure, match="brew"):
            BrewFormulaAdapter(fake_runner).check(_pkg("jq"))

    def test_install_command_with_options(self, fake_runner):
        adapter = BrewFormulaAdapter(fake_runner)
        receipt = adapter.apply(_pkg("neovim", options=["--HEAD"]))
        assert receipt.ok
        assert fake_runner.calls[-1] == ["brew", "install", "--HEAD", "neovim"]
        assert receipt.metadata["command"] == "brew install --HEAD neovim"

    def test_install_failure(self, fake_runner):
        fake_runner.on(["brew", "install", "jq"], returncode=1, stderr="Error: no bottle")
        receipt = BrewFormulaAdapter(fake_runner).apply(_pkg("jq"))
        assert receipt.failed
        assert "no bottle" in receipt.error

    def test_cask_commands(self, fake_runner):
        adapter = BrewCaskAdapter(fake_runner)
        assert adapter.kind == "cask"
        adapter.check(_pkg("iterm2", "cask"))
        adapter.apply(_pkg("iterm2", "cask"))
        assert fake_runner.calls == [
            ["brew", "list", "--cask", "iterm2"],
            ["brew", "install", "--cask", "iterm2"],
        ]


class TestPipAdapter:
    def test_uses_venv_python(self, fake_runner, tmp_path: Path):
        adapter = PipAdapter(tmp_path / "venv", fake_runner)
        python = str(tmp_path / "venv" / "bin" / "python")
        Path(python).parent.mkdir(parents=True)
        Path(python).write_text("")
        adapter.check(_pkg("paramiko", "language_package"))
        adapter.apply(_pkg("paramiko", "language_package"))
        assert fake_runner.calls == [
            [python, "-m", "pip", "show", "--quiet", "paramiko"],
            [python, "-m", "pip", "install", "--quiet", "paramiko"],
        ]

    def test_availability_follows_venv(self, tmp_path: Path):
        adapter = PipAdapter(tmp_path / "venv")
        assert not adapter.is_available()
        (tmp_path / "venv" / "bin").mkdir(parents=True)
        (tmp_path / "venv" / "bin" / "python").write_text("")
        assert adapter.is_available()

    def test_apply_without_venv_fails(self, fake_runner, tmp_path: Path):
        registry = AdapterRegistry()
        registry.register(PipAdapter(tmp_path / "venv", fake_runner))
        receipt = registry.apply(_pkg("paramiko", "language_package"))
        assert receipt.failed
        assert receipt.error.startswith("virtualenv interpreter missing")
        assert fake_runner.calls == []


class TestGalaxyAdapter:
    LISTING = (
        "\n# /Users/me/.ansible/collections/ansible_collections\n"
        "Collection        Version\n"
        "----------------- -------\n"
        "cisco.ios         9.0.3\n"
    )

    def test_present_when_listed(self, fake_runner):
        fake_runner.on(["ansible-galaxy", "collection", "list", "cisco.ios"], stdout=self.LISTING)
        adapter = GalaxyCollectionAdapter(fake_runner)
        assert adapter.check(_pkg("cisco.ios", "collection")) == ResourceState.PRESENT

    def test_absent_when_exit_zero_but_not_listed(self, fake_runner):
        fake_runner.on(
            ["ansible-galaxy", "collection", "list", "cisco.iosxr"],
            stdout="Unable to find collection cisco.iosxr",
        )
        adapter = GalaxyCollectionAdapter(fake_runner)
        assert adapter.check(_pkg("cisco.iosxr", "collection")) == ResourceState.ABSENT

    def test_prefers_venv_galaxy(self, fake_runner, tmp_path: Path):
        galaxy = tmp_path / "venv" / "bin" / "ansible-galaxy"
        galaxy.parent.mkdir(parents=True)
        galaxy.write_text("")
        adapter = GalaxyCollectionAdapter(fake_runner, tmp_path / "venv")
        assert adapter.is_available()
        receipt = adapter.apply(_pkg("cisco.ios", "collection"))
        assert receipt.ok
        assert fake_runner.calls == [[str(galaxy), "collection", "install", "cisco.ios"]]

    def test_skipped_without_ansible(self, fake_runner, tmp_path: Path, monkeypatch):
        monkeypatch.setattr("macsetup.adapters.package_managers.base.shutil.which", lambda c: None)
        registry = AdapterRegistry()
        registry.register(GalaxyCollectionAdapter(fake_runner, tmp_path / "venv"))
        result = Applier(registry).process(
            _pkg("cisco.ios", "collection"), state=ResourceState.ABSENT,
        )
        assert result.classification == Classification.SKIPPED_BY_USER
        assert "Ansible not found" in result.detail
        assert fake_runner.calls == []


class TestVirtualenvAdapter:
    def test_check_states(self, tmp_path: Path):
        venv = tmp_path / "venv"
        adapter = VirtualenvAdapter()
        d = _pkg("venv", "virtualenv", target=str(venv))
        assert adapter.check(d) == ResourceState.ABSENT
        venv.mkdir()
        assert adapter.check(d) == ResourceState.PRESENT_WRONG_VERSION
        (venv / "bin").mkdir()
        (venv / "bin" / "python").write_text("")
        assert adapter.check(d) == ResourceState.PRESENT

    def test_apply_creates_and_upgrades_pip(self, fake_runner, tmp_path: Path):
        venv = tmp_path / "venv"
        adapter = VirtualenvAdapter(runner=fake_runner)
        receipt = adapter.apply(_pkg("venv", "virtualenv", target=str(venv)))
        assert receipt.ok
        assert fake_runner.calls[0] == ["python3", "-m", "venv", str(venv)]
        assert fake_runner.calls[1][-3:] == ["--upgrade", "pip"]

    def test_pip_upgrade_failure_is_not_fatal(self, fake_runner, tmp_path: Path):
        venv = tmp_path / "venv"
        fake_runner.on(
            [str(venv / "bin" / "python"), "-m", "pip", "install", "--quiet", "--upgrade", "pip"],
            returncode=1,
        )
        receipt = VirtualenvAdapter(runner=fake_runner).apply(
            _pkg("venv", "virtualenv", target=str(venv))
        )
        assert receipt.ok
        assert receipt.metadata["pip_upgraded"] is False

    def test_venv_failure(self, fake_runner, tmp_path: Path):
        venv = tmp_path / "venv"
        fake_runner.on(["python3", "-m", "venv", str(venv)], returncode=1, stderr="ensurepip missing")
        receipt = VirtualenvAdapter(runner=fake_runner).apply(
            _pkg("venv", "virtualenv", target=str(venv))
        )
        assert receipt.failed
        assert "ensurepip" in receipt.error


# ── Filesystem Tests ─────────────────────────────────────────────────


def _file(target: Path, content: str = "alias gs='git status'\n", **kw) -> ResourceDescriptor:
    return ResourceDescriptor(id=target.name, kind="file", target=str(target), content=content, **kw)


class TestFileArtifactAdapter:
    def test_absent_then_written(self, tmp_path: Path):
        target = tmp_path / "zsh" / "aliases.zsh"
        adapter = FileArtifactAdapter()
        d = _file(target)
        assert adapter.check(d) == ResourceState.ABSENT
        receipt = adapter.apply(d)
        assert receipt.ok
        assert receipt.metadata["changed"] is True
        assert target.read_text() == d.content
        assert adapter.check(d) == ResourceState.PRESENT

    def test_drift_is_wrong_version(self, tmp_path: Path):
        target = tmp_path / "aliases.zsh"
        target.write_text("something else\n")
        adapter = FileArtifactAdapter()
        assert adapter.check(_file(target)) == ResourceState.PRESENT_WRONG_VERSION

    def test_overwrite_backs_up(self, tmp_path: Path):
        target = tmp_path / "aliases.zsh"
        target.write_text("old\n")
        backups = BackupStore(tmp_path / "home", stamp="20250101-000000")
        adapter = FileArtifactAdapter(backups)
        receipt = adapter.apply(_file(target))
        assert receipt.ok
        backup = Path(receipt.metadata["backup"])
        assert backup.read_text() == "old\n"
        assert backup.parent == backups.directory

    def test_mode_applied_and_checked(self, tmp_path: Path):
        target = tmp_path / "secret.conf"
        adapter = FileArtifactAdapter()
        d = _file(target, mode=0o600)
        adapter.apply(d)
        assert stat.S_IMODE(target.stat().st_mode) == 0o600
        os.chmod(target, 0o644)
        assert adapter.check(d) == ResourceState.PRESENT_WRONG_VERSION

    def test_append_block(self, tmp_path: Path):
        zshrc = tmp_path / ".zshrc"
        zshrc.write_text("export EDITOR=vim")
        adapter = FileArtifactAdapter()
        d = _file(zshrc, content="source ~/.zshrc.netops", append=True, marker="# NetOps")
        assert adapter.check(d) == ResourceState.PRESENT_WRONG_VERSION
        assert adapter.apply(d).ok
        text = zshrc.read_text()
        assert text.startswith("export EDITOR=vim\n")
        assert "# NetOps\nsource ~/.zshrc.netops\n" in text
        assert adapter.check(d) == ResourceState.PRESENT

    def test_append_is_idempotent(self, tmp_path: Path):
        zshrc = tmp_path / ".zshrc"
        adapter = FileArtifactAdapter()
        d = _file(zshrc, content="source x", append=True, marker="# NetOps")
        adapter.apply(d)
        first = zshrc.read_text()
        receipt = adapter.apply(d)
        assert receipt.metadata["changed"] is False
        assert zshrc.read_text() == first
        assert first.count("# NetOps") == 1

    def test_digest(self):
        assert content_digest(b"a") == content_digest(b"a")
        assert content_digest(b"a") != content_digest(b"b")


class TestDirectoryArtifactAdapter:
    def test_create_with_mode(self, tmp_path: Path):
        target = tmp_path / ".ssh" / "keys"
        adapter = DirectoryArtifactAdapter()
        d = ResourceDescriptor(id="keys", kind="directory", target=str(target), mode=0o1700)
        assert adapter.check(d) == ResourceState.ABSENT
        assert adapter.apply(d).ok
        assert stat.S_IMODE(target.stat().st_mode) == 0o1700
        assert adapter.check(d) == ResourceState.PRESENT

    def test_wrong_mode(self, tmp_path: Path):
        target = tmp_path / ".ssh"
        target.mkdir(mode=0o755)
        os.chmod(target, 0o755)
        d = ResourceDescriptor(id="ssh", kind="directory", target=str(target), mode=0o700)
        adapter = DirectoryArtifactAdapter()
        assert adapter.check(d) == ResourceState.PRESENT_WRONG_VERSION
        adapter.apply(d)
        assert adapter.check(d) == ResourceState.PRESENT

    def test_file_in_the_way(self, tmp_path: Path):
        target = tmp_path / "roles"
        target.write_text("")
        d = ResourceDescriptor(id="roles", kind="directory", target=str(target))
        receipt = DirectoryArtifactAdapter().apply(d)
        assert receipt.failed
        assert "not a directory" in receipt.error


class TestCommandResult:
    def test_failure_reason_prefers_error(self):
        r = CommandResult(command=["x"], returncode=-1, error="Command not found: x")
        assert r.failure_reason() == "Command not found: x"

    def test_failure_reason_without_output(self):
        r = CommandResult(command=["x"], returncode=2)
        assert r.failure_reason() == "Command exited with code 2"
