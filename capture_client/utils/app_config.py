"""
Persistent settings for the capture client.

Stores the license server URL and the capture save directory in a JSON
file at the platform-appropriate config directory.
"""

import json
import logging
import os
import platform
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

# Config file location
_CONFIG_DIR_NAME = "NextCap"


def _get_config_dir() -> Path:
    """Get the platform-appropriate config directory."""
    system = platform.system()
    if system == "Windows":
        base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
    elif system == "Darwin":
        base = Path.home() / "Library" / "Application Support"
    else:
        base = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))
    return base / _CONFIG_DIR_NAME


def _get_config_path() -> Path:
    return _get_config_dir() / "settings.json"


def _load_all() -> dict:
    path = _get_config_path()
    if not path.exists():
        return {}
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except Exception as e:
        logger.warning("Failed to read config %s: %s", path, e)
        return {}


def _save_all(data: dict) -> None:
    path = _get_config_path()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    except OSError as e:
        logger.error("Failed to write config %s: %s", path, e)


def get(key: str, default: Any = None) -> Any:
    """Read a config value."""
    return _load_all().get(key, default)


def set(key: str, value: Any) -> None:
    """Write a config value (persisted immediately)."""
    data = _load_all()
    data[key] = value
    _save_all(data)


# ---------------------------------------------------------------------------
# Convenience accessors
# ---------------------------------------------------------------------------


def get_server_url(default: str) -> str:
    """Stored server URL, or the default from the environment config."""
    return get("server_url") or default


def set_server_url(url: str) -> None:
    set("server_url", url.strip().rstrip("/"))


def get_save_dir() -> Path:
    """Directory downloads are written to; ~/Downloads unless changed."""
    stored = get("save_dir")
    if stored:
        return Path(stored)
    return Path.home() / "Downloads"


def set_save_dir(path: Path) -> None:
    set("save_dir", str(path))
