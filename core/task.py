from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional
from uuid import uuid4

from .progress import Priority, Progress


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class TaskUpdate:
    """Field deltas produced by the AI pipeline; ``None`` means unchanged."""

    is_edit: bool = False
    title: Optional[str] = None
    bucket: Optional[str] = None
    description: Optional[str] = None
    progress: Optional[Progress] = None
    priority: Optional[Priority] = None
    due_date: Optional[date] = None
    # short id prefixes, resolved against the board by the applier
    dependencies: List[str] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not any(
            (
                self.title,
                self.bucket,
                self.description,
                self.progress,
                self.priority,
                self.due_date,
                self.dependencies,
            )
        )


@dataclass
class Task:
    id: str
    bucket: str
    title: str
    description: str = ""
    dependencies: List[str] = field(default_factory=list)
    parent_id: Optional[str] = None
    progress: Progress = Progress.BACKLOG
    priority: Priority = Priority.MEDIUM
    due_date: Optional[date] = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)
    start_date: Optional[datetime] = None

    @property
    def short_id(self) -> str:
        return self.id[:8].lower()

    def touch(self, now: datetime) -> None:
        """Move ``updated_at`` forward; never backwards or sideways."""
        if now > self.updated_at:
            self.updated_at = now
        else:
            self.updated_at = self.updated_at + timedelta(microseconds=1)

    def set_progress(self, progress: Progress, now: datetime) -> bool:
        if progress == self.progress:
            return False
        if self.progress == Progress.TODO and progress == Progress.IN_PROGRESS and self.start_date is None:
            self.start_date = now
        self.progress = progress
        self.touch(now)
        return True

    def advance(self, now: datetime) -> bool:
        return self.set_progress(self.progress.next(), now)

    def retreat(self, now: datetime) -> bool:
        return self.set_progress(self.progress.prev(), now)

    def set_dependencies(self, ids: List[str]) -> None:
        cleaned: List[str] = []
        for dep in ids:
            if dep and dep != self.id and dep not in cleaned:
                cleaned.append(dep)
        self.dependencies = cleaned

    def apply_update(self, update: TaskUpdate, now: datetime, dependency_ids: Optional[List[str]] = None) -> bool:
        """Merge ``update`` into the task and report whether anything changed.

        ``dependency_ids`` carries the already-resolved full ids for
        ``update.dependencies``; prefixes are resolved by the caller.
        """
        changed = False
        title = (update.title or "").strip()
        if title and title != self.title:
            self.title = title
            changed = True
        if update.bucket and update.bucket != self.bucket:
            self.bucket = update.bucket
            changed = True
        if update.progress is not None and self.set_progress(update.progress, now):
            changed = True
        if update.priority is not None and update.priority != self.priority:
            self.priority = update.priority
            changed = True
        if update.due_date is not None and update.due_date != self.due_date:
            self.due_date = update.due_date
            changed = True
        description = (update.description or "").strip()
        if description and description != self.description and (update.is_edit or not self.description):
            self.description = description
            changed = True
        if dependency_ids:
            before = list(self.dependencies)
            self.set_dependencies(dependency_ids)
            if self.dependencies != before:
                changed = True
        if changed:
            self.touch(now)
        return changed

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "bucket": self.bucket,
            "title": self.title,
            "description": self.description,
            "dependencies": list(self.dependencies),
            "parent_id": self.parent_id,
            "progress": self.progress.code,
            "priority": self.priority.code,
            "due_date": self.due_date.isoformat() if self.due_date else None,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
            "start_date": self.start_date.isoformat() if self.start_date else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        """Build a task from its stored form; raises ``ValueError`` on bad input."""
        if not isinstance(data, dict):
            raise ValueError("task entry must be an object")
        task_id = str(data.get("id") or "").strip()
        title = str(data.get("title") or "").strip()
        if not task_id or not title:
            raise ValueError("task entry requires id and title")
        progress = Progress.from_string(data.get("progress"))
        priority = Priority.from_string(data.get("priority"))
        if progress is None or priority is None:
            raise ValueError(f"task {task_id}: unknown progress or priority")
        due_raw = data.get("due_date")
        start_raw = data.get("start_date")
        task = cls(
            id=task_id,
            bucket=str(data.get("bucket") or ""),
            title=title,
            description=str(data.get("description") or "").strip(),
            parent_id=data.get("parent_id") or None,
            progress=progress,
            priority=priority,
            due_date=date.fromisoformat(due_raw) if due_raw else None,
            created_at=_parse_instant(data.get("created_at")),
            updated_at=_parse_instant(data.get("updated_at")),
            start_date=_parse_instant(start_raw) if start_raw else None,
        )
        task.set_dependencies([str(d) for d in data.get("dependencies") or []])
        if task.updated_at < task.created_at:
            task.updated_at = task.created_at
        return task


def _parse_instant(value: Any) -> datetime:
    if not value:
        return utc_now()
    parsed = datetime.fromisoformat(str(value))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def new_task(
    title: str,
    bucket: str,
    *,
    description: str = "",
    progress: Progress = Progress.BACKLOG,
    priority: Priority = Priority.MEDIUM,
    due_date: Optional[date] = None,
    parent_id: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Task:
    title = (title or "").strip()
    if not title:
        raise ValueError("task title must not be empty")
    stamp = now or utc_now()
    return Task(
        id=str(uuid4()),
        bucket=bucket,
        title=title,
        description=(description or "").strip(),
        parent_id=parent_id,
        progress=progress,
        priority=priority,
        due_date=due_date,
        created_at=stamp,
        updated_at=stamp,
    )


__all__ = ["Task", "TaskUpdate", "new_task", "utc_now"]
