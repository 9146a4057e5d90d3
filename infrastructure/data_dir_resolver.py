import os
import sys
from pathlib import Path
from typing import Optional

from infrastructure.file_repository import StorageError

APP_DIRNAME = "aipm"


def _system_data_dir() -> Optional[Path]:
    """Per-user data directory for the current platform, if one is known."""
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / APP_DIRNAME
    if os.name == "nt":
        appdata = os.environ.get("APPDATA")
        return Path(appdata) / APP_DIRNAME if appdata else None
    xdg = os.environ.get("XDG_DATA_HOME")
    if xdg:
        return Path(xdg).expanduser() / APP_DIRNAME
    return Path.home() / ".local" / "share" / APP_DIRNAME


def get_data_dir(explicit: Optional[Path] = None) -> Path:
    """Unified resolver for the data directory.

    Priority:
    1. Explicit path (CLI ``--data-dir``).
    2. AIPM_DATA_DIR env variable.
    3. System data dir for the current user.
    4. ~/.aipm fallback.

    The directory is created on demand; ``StorageError`` when that fails.
    """
    env_dir = os.environ.get("AIPM_DATA_DIR")
    candidates = []
    if explicit:
        candidates.append(Path(explicit).expanduser())
    elif env_dir:
        candidates.append(Path(env_dir).expanduser())
    else:
        system_dir = _system_data_dir()
        if system_dir is not None:
            candidates.append(system_dir)
        candidates.append(Path.home() / f".{APP_DIRNAME}")

    last_error: Optional[OSError] = None
    for candidate in candidates:
        try:
            candidate.mkdir(parents=True, exist_ok=True)
            return candidate.resolve()
        except OSError as exc:
            last_error = exc
    raise StorageError(f"data directory unavailable: {last_error}")


__all__ = ["get_data_dir", "APP_DIRNAME"]
