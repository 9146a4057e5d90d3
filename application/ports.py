from typing import Protocol, List

from config import Settings
from core import Task


class TaskRepository(Protocol):
    def load_tasks(self) -> List[Task]:
        ...

    def save_tasks(self, tasks: List[Task]) -> None:
        ...

    def load_settings(self) -> Settings:
        ...

    def save_settings(self, settings: Settings) -> None:
        ...
