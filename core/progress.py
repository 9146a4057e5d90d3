from enum import Enum
from typing import Optional


class Progress(Enum):
    BACKLOG = ("backlog", "Backlog", 0)
    TODO = ("todo", "Todo", 1)
    IN_PROGRESS = ("in_progress", "In progress", 2)
    DONE = ("done", "Done", 3)

    @property
    def code(self) -> str:
        return self.value[0]

    @property
    def title(self) -> str:
        return self.value[1]

    @property
    def rank(self) -> int:
        return self.value[2]

    def __lt__(self, other: "Progress") -> bool:
        if not isinstance(other, Progress):
            return NotImplemented
        return self.rank < other.rank

    def __le__(self, other: "Progress") -> bool:
        if not isinstance(other, Progress):
            return NotImplemented
        return self.rank <= other.rank

    def next(self) -> "Progress":
        """Next lane, clamped at Done."""
        ordered = list(Progress)
        return ordered[min(self.rank + 1, len(ordered) - 1)]

    def prev(self) -> "Progress":
        """Previous lane, clamped at Backlog."""
        ordered = list(Progress)
        return ordered[max(self.rank - 1, 0)]

    @classmethod
    def from_string(cls, value: Optional[str]) -> Optional["Progress"]:
        token = str(value or "").strip().lower()
        return _PROGRESS_ALIASES.get(token)


class Priority(Enum):
    LOW = ("low", "Low", 0)
    MEDIUM = ("medium", "Medium", 1)
    HIGH = ("high", "High", 2)
    CRITICAL = ("critical", "Critical", 3)

    @property
    def code(self) -> str:
        return self.value[0]

    @property
    def title(self) -> str:
        return self.value[1]

    @property
    def rank(self) -> int:
        return self.value[2]

    @classmethod
    def from_string(cls, value: Optional[str]) -> Optional["Priority"]:
        token = str(value or "").strip().lower()
        return _PRIORITY_ALIASES.get(token)


_PROGRESS_ALIASES = {
    "backlog": Progress.BACKLOG,
    "todo": Progress.TODO,
    "to do": Progress.TODO,
    "in progress": Progress.IN_PROGRESS,
    "in-progress": Progress.IN_PROGRESS,
    "in_progress": Progress.IN_PROGRESS,
    "inprogress": Progress.IN_PROGRESS,
    "done": Progress.DONE,
}

_PRIORITY_ALIASES = {
    "low": Priority.LOW,
    "med": Priority.MEDIUM,
    "medium": Priority.MEDIUM,
    "high": Priority.HIGH,
    "crit": Priority.CRITICAL,
    "critical": Priority.CRITICAL,
}


__all__ = ["Progress", "Priority"]
