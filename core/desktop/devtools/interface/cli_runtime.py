"""Wiring shared by the TUI and the CLI commands."""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from config import build_llm_config
from core.desktop.devtools.application.applier import Applier
from core.desktop.devtools.application.board import Board
from core.desktop.devtools.application.input_router import InputRouter
from infrastructure.data_dir_resolver import get_data_dir
from infrastructure.file_repository import JsonTaskRepository
from infrastructure.llm.client import LLMClient
from infrastructure.llm.worker import AIWorker

LOG_FILENAME = "aipm.log"


@dataclass
class AppSession:
    data_dir: Path
    repository: JsonTaskRepository
    board: Board
    applier: Applier
    router: InputRouter
    worker: Optional[AIWorker]


def configure_logging(data_dir: Path) -> None:
    """Log to a file under the data dir; the terminal belongs to the UI."""
    level_name = os.environ.get("AIPM_LOG_LEVEL", "WARNING").upper()
    level = getattr(logging, level_name, logging.WARNING)
    root = logging.getLogger("aipm")
    root.setLevel(level)
    log_path = str((data_dir / LOG_FILENAME).resolve())
    if any(isinstance(h, logging.FileHandler) and h.baseFilename == log_path for h in root.handlers):
        return
    try:
        handler = logging.FileHandler(log_path, encoding="utf-8")
    except OSError:
        return
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s"))
    root.addHandler(handler)


def open_session(data_dir: Optional[Path] = None, *, with_ai: bool = True, worker: Optional[AIWorker] = None) -> AppSession:
    """Load board state and build the applier/router/worker trio.

    Raises ``StorageError`` when the data directory is unusable and
    ``InvalidDataError`` when stored files are malformed.
    """
    resolved = get_data_dir(data_dir)
    configure_logging(resolved)
    repository = JsonTaskRepository(resolved)
    settings = repository.load_settings()
    board = Board(tasks=repository.load_tasks(), settings=settings)
    if worker is None and with_ai:
        worker = AIWorker(LLMClient(build_llm_config(settings)))
    applier = Applier(board, repository, enqueue=worker.enqueue if worker is not None and worker.configured else None)
    router = InputRouter(applier, worker)
    board.clamp_selection()
    return AppSession(
        data_dir=resolved,
        repository=repository,
        board=board,
        applier=applier,
        router=router,
        worker=worker,
    )


__all__ = ["AppSession", "configure_logging", "open_session", "LOG_FILENAME"]
