import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional

from application.ports import TaskRepository
from config import Settings, load_legacy_settings
from core import Task

TASKS_FILENAME = "tasks.json"
SETTINGS_FILENAME = "settings.json"
LEGACY_SETTINGS_FILENAME = "settings.yaml"
STORAGE_VERSION = 1

logger = logging.getLogger("aipm.storage")


class StorageError(RuntimeError):
    pass


class InvalidDataError(StorageError):
    pass


def atomic_write_json(target: Path, payload: Dict[str, Any]) -> None:
    """Serialize to a sibling temp file, fsync, then rename over ``target``."""
    data = (json.dumps(payload, ensure_ascii=False, indent=2) + "\n").encode("utf-8")
    tmp_path: Optional[Path] = None
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        with tempfile.NamedTemporaryFile(
            mode="wb",
            delete=False,
            dir=str(target.parent),
            prefix=f".{target.name}.",
            suffix=".tmp",
        ) as tmp:
            tmp.write(data)
            tmp.flush()
            os.fsync(tmp.fileno())
            tmp_path = Path(tmp.name)
        os.replace(str(tmp_path), str(target))
    except OSError as exc:
        logger.error("Save failed for %s: %s", target, exc)
        raise StorageError(f"Save failed: {exc}") from exc
    finally:
        if tmp_path and tmp_path.exists():
            try:
                tmp_path.unlink()
            except OSError:
                pass


def _read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise InvalidDataError(f"{path.name}: {exc}") from exc
    except OSError as exc:
        raise StorageError(f"{path.name}: {exc}") from exc


class JsonTaskRepository(TaskRepository):
    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)

    @property
    def tasks_path(self) -> Path:
        return self.data_dir / TASKS_FILENAME

    @property
    def settings_path(self) -> Path:
        return self.data_dir / SETTINGS_FILENAME

    def load_tasks(self) -> List[Task]:
        """Stored tasks; ``[]`` when nothing was saved yet."""
        if not self.tasks_path.exists():
            return []
        payload = _read_json(self.tasks_path)
        if not isinstance(payload, dict) or not isinstance(payload.get("tasks"), list):
            raise InvalidDataError(f"{TASKS_FILENAME}: expected an object with a tasks list")
        version = payload.get("version", STORAGE_VERSION)
        if version != STORAGE_VERSION:
            raise InvalidDataError(f"{TASKS_FILENAME}: unsupported version {version!r}")
        tasks: List[Task] = []
        for entry in payload["tasks"]:
            try:
                tasks.append(Task.from_dict(entry))
            except (TypeError, ValueError) as exc:
                raise InvalidDataError(f"{TASKS_FILENAME}: {exc}") from exc
        return tasks

    def save_tasks(self, tasks: List[Task]) -> None:
        atomic_write_json(
            self.tasks_path,
            {"version": STORAGE_VERSION, "tasks": [t.to_dict() for t in tasks]},
        )

    def load_settings(self) -> Settings:
        if self.settings_path.exists():
            payload = _read_json(self.settings_path)
            if not isinstance(payload, dict):
                raise InvalidDataError(f"{SETTINGS_FILENAME}: expected an object")
            return Settings.from_dict(payload.get("settings", payload))
        legacy = self.data_dir / LEGACY_SETTINGS_FILENAME
        if legacy.exists():
            logger.info("Importing legacy settings from %s", legacy)
            return Settings.from_dict(load_legacy_settings(legacy))
        return Settings()

    def save_settings(self, settings: Settings) -> None:
        atomic_write_json(self.settings_path, {"version": STORAGE_VERSION, "settings": settings.to_dict()})


__all__ = [
    "JsonTaskRepository",
    "StorageError",
    "InvalidDataError",
    "atomic_write_json",
    "TASKS_FILENAME",
    "SETTINGS_FILENAME",
    "LEGACY_SETTINGS_FILENAME",
]
