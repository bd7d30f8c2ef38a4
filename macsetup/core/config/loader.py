"""
Configuration loader — reads macsetup.yml into domain models.

Lookup order when no explicit path is given:

    1. macsetup.yml in the current directory or any parent
    2. ~/.config/macsetup/macsetup.yml
    3. the default manifest shipped inside the package

Before validation, ``${NAME}`` references in settings paths, resource
targets and file contents are replaced from HOME, USER, VENV_PATH,
SSH_KEY_DIR and the manifest's own ``variables``. Only the braced form
is substituted, so shell text like ``$HOME`` or ``${VAR:-default}``
inside file contents is left alone. Unknown names are left as-is.
"""

from __future__ import annotations

import getpass
import logging
import os
import string
from pathlib import Path
from typing import Any

import yaml

from macsetup.core.data import DEFAULT_MANIFEST
from macsetup.core.errors import ConfigError
from macsetup.core.models.manifest import Manifest, Settings

logger = logging.getLogger(__name__)

# Default config filename
MANIFEST_FILE = "macsetup.yml"

# Settings fields that hold paths (substituted and ~-expanded)
_PATH_SETTINGS = (
    "log_file",
    "ledger_file",
    "backup_root",
    "venv_path",
    "env_file",
    "credentials_file",
    "ssh_key_dir",
)


class BracedTemplate(string.Template):
    """``${NAME}`` only; a bare ``$NAME`` is not a placeholder."""

    pattern = r"""
    \$(?:
      (?P<escaped>(?!))                   |
      (?P<named>(?!))                     |
      {(?P<braced>[_a-z][_a-z0-9]*)}      |
      (?P<invalid>)
    )
    """


def user_manifest_path() -> Path:
    return Path.home() / ".config" / "macsetup" / MANIFEST_FILE


def default_manifest_path() -> Path:
    return DEFAULT_MANIFEST


def find_manifest_file(start_dir: Path | None = None) -> Path | None:
    """Search for macsetup.yml starting from the given directory, walking up.

    Args:
        start_dir: Directory to start searching from (default: cwd).

    Returns:
        Path to macsetup.yml, or None if not found.
    """
    current = (start_dir or Path.cwd()).resolve()

    for _ in range(20):  # safety limit
        candidate = current / MANIFEST_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    return None


def resolve_manifest_path(path: Path | None = None) -> Path:
    """The manifest a run would use, following the lookup order."""
    if path is not None:
        return path
    found = find_manifest_file()
    if found is not None:
        return found
    user = user_manifest_path()
    if user.is_file():
        return user
    return default_manifest_path()


def substitute(text: str, variables: dict[str, str]) -> str:
    return BracedTemplate(text).safe_substitute(variables)


def _expand(text: str, variables: dict[str, str]) -> str:
    if not text:
        return text
    return os.path.expanduser(substitute(text, variables))


def base_variables() -> dict[str, str]:
    return {
        "HOME": str(Path.home()),
        "USER": os.environ.get("USER") or getpass.getuser(),
    }


def _resolve(data: dict[str, Any]) -> dict[str, Any]:
    """Apply substitution and ~ expansion to the raw YAML mapping."""
    declared = data.get("variables") or {}
    if not isinstance(declared, dict):
        raise ConfigError("'variables' must be a mapping")

    variables = base_variables()
    variables.update({str(k): str(v) for k, v in declared.items()})

    settings = dict(data.get("settings") or {})
    defaults = Settings()
    for key in _PATH_SETTINGS:
        value = settings.get(key, getattr(defaults, key))
        if isinstance(value, str):
            settings[key] = _expand(value, variables)

    variables.setdefault("VENV_PATH", settings["venv_path"])
    variables.setdefault("SSH_KEY_DIR", settings["ssh_key_dir"])

    resolved: dict[str, Any] = {
        "settings": settings,
        "variables": variables,
    }
    for phase in ("required", "optional"):
        entries = data.get(phase) or []
        if not isinstance(entries, list):
            raise ConfigError(f"'{phase}' must be a list of resources")
        items = []
        for entry in entries:
            if not isinstance(entry, dict):
                raise ConfigError(f"Each '{phase}' resource must be a mapping, got {entry!r}")
            entry = dict(entry)
            mode = entry.get("mode")
            if isinstance(mode, int) and not isinstance(mode, bool):
                raise ConfigError(
                    f"Resource '{entry.get('id')}': mode {mode} is a bare number; "
                    "quote it as an octal string, e.g. mode: \"1700\""
                )
            if isinstance(entry.get("target"), str):
                entry["target"] = _expand(entry["target"], variables)
            if isinstance(entry.get("content"), str):
                entry["content"] = substitute(entry["content"], variables)
            items.append(entry)
        resolved[phase] = items

    return resolved


def load_manifest(path: Path | None = None) -> Manifest:
    """Load and validate a manifest.

    Args:
        path: Explicit path to macsetup.yml. If None, follows the
            lookup order down to the packaged default.

    Returns:
        Validated Manifest model.

    Raises:
        ConfigError: If the file is missing or invalid.
    """
    path = resolve_manifest_path(path)

    if not path.is_file():
        raise ConfigError(f"Manifest not found: {path}")

    logger.debug("Loading manifest from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        manifest = Manifest.model_validate(_resolve(data))
    except ConfigError:
        raise
    except Exception as e:
        raise ConfigError(f"Invalid manifest {path}: {e}") from e

    logger.info(
        "Loaded manifest %s: %d required, %d optional",
        path, len(manifest.required), len(manifest.optional),
    )
    return manifest
