"""
Tests for preconditions — connectivity, storage and base toolchain checks.
"""

from collections import namedtuple

from macsetup.core.models.manifest import Settings
from macsetup.core.services import preconditions
from macsetup.core.services.preconditions import (
    check_base_toolchain,
    check_connectivity,
    check_disk_space,
    default_preconditions,
)

_Usage = namedtuple("_Usage", "total used free")


class TestDiskSpace:
    def test_enough(self, monkeypatch):
        monkeypatch.setattr(
            preconditions.shutil, "disk_usage", lambda p: _Usage(0, 0, 20 * 1024 ** 3),
        )
        result = check_disk_space(5)
        assert result.ok
        assert result.details["free_gb"] == 20

    def test_not_enough(self, monkeypatch):
        monkeypatch.setattr(
            preconditions.shutil, "disk_usage", lambda p: _Usage(0, 0, 2 * 1024 ** 3),
        )
        result = check_disk_space(5)
        assert not result.ok
        assert "Required: 5GB, Available: 2GB" in result.message

    def test_unreadable(self, tmp_path):
        result = check_disk_space(1, path=str(tmp_path / "nope"))
        assert not result.ok
        assert result.name == "storage"


class TestToolchain:
    def test_all_present(self, monkeypatch):
        monkeypatch.setattr(preconditions.platform, "system", lambda: "Linux")
        monkeypatch.setattr(preconditions.shutil, "which", lambda c: f"/usr/bin/{c}")
        result = check_base_toolchain(["git", "python3"])
        assert result.ok

    def test_missing_brew_hint(self, monkeypatch):
        monkeypatch.setattr(preconditions.platform, "system", lambda: "Linux")
        monkeypatch.setattr(
            preconditions.shutil, "which", lambda c: None if c == "brew" else f"/bin/{c}",
        )
        result = check_base_toolchain(["brew", "git"])
        assert not result.ok
        assert result.details["missing"] == ["brew"]
        assert "Install Homebrew first" in result.message

    def test_xcode_tools_required_on_macos(self, monkeypatch):
        monkeypatch.setattr(preconditions.platform, "system", lambda: "Darwin")
        monkeypatch.setattr(preconditions.shutil, "which", lambda c: f"/bin/{c}")
        monkeypatch.setattr(preconditions, "_xcode_tools_installed", lambda: False)
        result = check_base_toolchain(["git"])
        assert result.details["missing"] == ["xcode-command-line-tools"]


class TestConnectivity:
    def test_unreachable(self, monkeypatch):
        def refuse(req, timeout):
            raise OSError("connection refused")

        monkeypatch.setattr(preconditions.urllib.request, "urlopen", refuse)
        result = check_connectivity("https://formulae.brew.sh/", timeout=1)
        assert not result.ok
        assert "No internet connection" in result.message
        assert "connection refused" in result.message

    def test_reachable(self, monkeypatch):
        class _Response:
            def getcode(self):
                return 200

            def __enter__(self):
                return self

            def __exit__(self, *exc):
                return False

        seen = {}

        def answer(req, timeout):
            seen["method"] = req.get_method()
            return _Response()

        monkeypatch.setattr(preconditions.urllib.request, "urlopen", answer)
        result = check_connectivity("https://formulae.brew.sh/")
        assert result.ok
        assert seen["method"] == "HEAD"
        assert result.details["status"] == 200


def test_default_set_uses_settings(monkeypatch):
    monkeypatch.setattr(preconditions.platform, "system", lambda: "Linux")
    monkeypatch.setattr(preconditions.shutil, "which", lambda c: None)
    monkeypatch.setattr(
        preconditions.shutil, "disk_usage", lambda p: _Usage(0, 0, 1 * 1024 ** 3),
    )
    monkeypatch.setattr(
        preconditions.urllib.request, "urlopen",
        lambda req, timeout: (_ for _ in ()).throw(OSError("offline")),
    )
    checks = default_preconditions(Settings(required_disk_gb=2, required_commands=["tmux"]))
    results = [check() for check in checks]
    assert [r.name for r in results] == ["connectivity", "storage", "toolchain"]
    assert not any(r.ok for r in results)
    assert results[2].details["missing"] == ["tmux"]
