from dataclasses import dataclass, field
from typing import List, Optional

from config import Settings
from core import Progress, Task
from core.task_graph import children_of, find_task
from infrastructure.llm.jobs import ChatEntry

CHAT_HISTORY_LIMIT = 20


@dataclass
class Board:
    """UI-thread owned state: the only writer is the applier."""

    tasks: List[Task] = field(default_factory=list)
    settings: Settings = field(default_factory=Settings)
    selected_id: Optional[str] = None
    chat_history: List[ChatEntry] = field(default_factory=list)
    toasts: List[str] = field(default_factory=list)

    @property
    def selected(self) -> Optional[Task]:
        return find_task(self.tasks, self.selected_id)

    def lane_visible(self, progress: Progress) -> bool:
        s = self.settings
        return {
            Progress.BACKLOG: s.show_backlog,
            Progress.TODO: s.show_todo,
            Progress.IN_PROGRESS: s.show_in_progress,
            Progress.DONE: s.show_done,
        }[progress]

    def bucket_order(self) -> List[str]:
        names = list(self.settings.bucket_names)
        seen = {name.lower() for name in names}
        for task in self.tasks:
            if task.bucket.lower() not in seen:
                seen.add(task.bucket.lower())
                names.append(task.bucket)
        return names

    def rows(self, include_hidden: bool = False) -> List[Task]:
        """Display order: bucket by bucket, each parent followed by its children."""
        out: List[Task] = []
        ids = {t.id for t in self.tasks}
        for bucket in self.bucket_order():
            key = bucket.lower()
            for task in self.tasks:
                # orphans whose parent vanished are listed as top-level
                if task.parent_id and task.parent_id in ids:
                    continue
                if task.bucket.lower() != key:
                    continue
                group = [task] + children_of(self.tasks, task.id)
                out.extend(t for t in group if include_hidden or self.lane_visible(t.progress))
        return out

    def clamp_selection(self, previous_index: int = 0) -> None:
        rows = self.rows()
        if not rows:
            self.selected_id = None
            return
        if any(t.id == self.selected_id for t in rows):
            return
        index = min(max(previous_index, 0), len(rows) - 1)
        self.selected_id = rows[index].id

    def selected_index(self) -> int:
        for index, task in enumerate(self.rows()):
            if task.id == self.selected_id:
                return index
        return 0

    def move_selection(self, delta: int) -> None:
        rows = self.rows()
        if not rows:
            self.selected_id = None
            return
        index = min(max(self.selected_index() + delta, 0), len(rows) - 1)
        self.selected_id = rows[index].id

    def remember(self, user_input: str, summary: str) -> None:
        self.chat_history.append(ChatEntry(user_input=user_input, summary=summary))
        del self.chat_history[:-CHAT_HISTORY_LIMIT]

    def toast(self, message: str) -> None:
        self.toasts.append(message)

    def pop_toasts(self) -> List[str]:
        out, self.toasts = self.toasts, []
        return out


__all__ = ["Board", "CHAT_HISTORY_LIMIT"]
