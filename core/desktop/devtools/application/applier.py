"""Merge AI results and manual edits into the board.

Runs on the UI thread only. Every mutation goes through ``_commit`` which
reconciles parent progress, persists through the repository and keeps the
selection on a visible row.
"""

import copy
import logging
from datetime import datetime
from typing import Callable, Iterator, List, Optional
from contextlib import contextmanager

from application.ports import TaskRepository
from core import Priority, Progress, Task, TaskUpdate, new_task, utc_now
from core.buckets import BucketDef, find_bucket
from core.task_graph import (
    cascade_delete,
    find_task,
    reconcile_parents,
    resolve_dependency_prefixes,
    resolve_prefix,
    short_id,
    top_level,
)
from infrastructure.file_repository import StorageError
from infrastructure.llm.jobs import (
    ALL_TARGETS,
    AIResult,
    BulkUpdateAction,
    CreateAction,
    DecomposeAction,
    DeleteAction,
    Job,
    SubTaskSpec,
    UpdateAction,
)
from .board import Board
from .context import make_edit_job

logger = logging.getLogger("aipm.apply")


class _Change:
    __slots__ = ("changed",)

    def __init__(self) -> None:
        self.changed = False


class Applier:
    def __init__(
        self,
        board: Board,
        repository: Optional[TaskRepository] = None,
        enqueue: Optional[Callable[[Job], None]] = None,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self.board = board
        self.repository = repository
        self.enqueue = enqueue
        self.clock = clock
        self.last_save_error: Optional[str] = None
        self._undo: Optional[List[Task]] = None

    # ------------------------------------------------------------------ plumbing

    @property
    def tasks(self) -> List[Task]:
        return self.board.tasks

    def toast(self, message: str) -> None:
        logger.info("%s", message)
        self.board.toast(message)

    @contextmanager
    def _mutation(self) -> Iterator[_Change]:
        """Snapshot for undo, run the change, then commit.

        The block flags ``change.changed``; a block that leaves the board as
        it was keeps the previous undo step and skips the save.
        """
        snapshot = copy.deepcopy(self.board.tasks)
        index = self.board.selected_index()
        change = _Change()
        yield change
        if change.changed:
            self._undo = snapshot
            self._commit(index)

    def _commit(self, previous_index: int = 0) -> None:
        reconcile_parents(self.board.tasks, self.clock())
        self.save()
        self.board.clamp_selection(previous_index)

    def save(self) -> bool:
        if self.repository is None:
            return True
        try:
            self.repository.save_tasks(self.board.tasks)
        except StorageError as exc:
            self.last_save_error = str(exc)
            logger.error("Saving tasks failed: %s", exc)
            self.toast(str(exc))
            return False
        self.last_save_error = None
        return True

    def save_settings(self) -> bool:
        if self.repository is None:
            return True
        try:
            self.repository.save_settings(self.board.settings)
        except StorageError as exc:
            self.last_save_error = str(exc)
            logger.error("Saving settings failed: %s", exc)
            self.toast(str(exc))
            return False
        return True

    def undo(self) -> bool:
        if self._undo is None:
            self.toast("Nothing to undo")
            return False
        index = self.board.selected_index()
        self.board.tasks[:] = self._undo
        self._undo = None
        self._commit(index)
        self.toast("Undone")
        return True

    # ------------------------------------------------------------------ AI results

    def apply(self, result: AIResult) -> bool:
        """Apply one worker result; returns whether the task list changed."""
        if result.error:
            self.toast(result.error)
            if result.task_id is None:
                self.board.remember(result.source_text, result.error)
            return False
        action = result.triage_action
        if action is None:
            return self._apply_edit(result)
        before = len(self.board.toasts)
        if isinstance(action, CreateAction):
            changed = self._apply_create(result)
        elif isinstance(action, UpdateAction):
            changed = self._apply_update(action.target, result)
        elif isinstance(action, DeleteAction):
            changed = self._apply_delete(action.target)
        elif isinstance(action, DecomposeAction):
            changed = self._apply_decompose(action.target, result.sub_task_specs)
        elif isinstance(action, BulkUpdateAction):
            changed = self._apply_bulk(action)
        else:
            logger.warning("Unknown triage action %r", action)
            return False
        summary = "; ".join(self.board.toasts[before:]) or "no change"
        self.board.remember(result.source_text, summary)
        return changed

    def _default_bucket(self) -> str:
        return self.board.settings.first_bucket

    def _apply_create(self, result: AIResult) -> bool:
        update = result.update
        title = (update.title or "").strip()
        if not title:
            self.toast("AI: nothing to create")
            return False
        now = self.clock()
        with self._mutation() as change:
            task = new_task(
                title,
                update.bucket or self._default_bucket(),
                description=update.description or "",
                priority=update.priority or Priority.MEDIUM,
                due_date=update.due_date,
                now=now,
            )
            if update.progress is not None:
                task.progress = update.progress
            task.set_dependencies(resolve_dependency_prefixes(self.tasks, update.dependencies))
            self.tasks.append(task)
            created = self.insert_sub_tasks(task, result.sub_task_specs, now)
            self.board.selected_id = task.id
            change.changed = True
        prefix = "Created" if result.local else "AI created"
        suffix = f" (+{len(created)} sub-tasks)" if created else ""
        self.toast(f"{prefix}: {task.title}{suffix}")
        return True

    def _apply_update(self, prefix: str, result: AIResult) -> bool:
        task = resolve_prefix(self.tasks, prefix)
        if task is None:
            self.toast(f"AI: task {prefix} not found")
            return False
        return self._merge(task, result.update, result.sub_task_specs)

    def _merge(self, task: Task, update: TaskUpdate, specs: List[SubTaskSpec]) -> bool:
        now = self.clock()
        with self._mutation() as change:
            deps = resolve_dependency_prefixes(self.tasks, update.dependencies, self_id=task.id)
            changed = task.apply_update(update, now, deps)
            created = self.insert_sub_tasks(task, specs, now)
            change.changed = bool(changed or created)
        if changed or created:
            suffix = f" (+{len(created)} sub-tasks)" if created else ""
            self.toast(f"AI updated: {task.title}{suffix}")
            return True
        self.toast(f"AI: no changes for {task.title}")
        return False

    def _apply_delete(self, prefix: str) -> bool:
        task = resolve_prefix(self.tasks, prefix)
        if task is None:
            self.toast(f"AI: task {prefix} not found")
            return False
        self.delete_task(task.id, toast_prefix="AI deleted")
        return True

    def _apply_decompose(self, target: Optional[str], specs: List[SubTaskSpec]) -> bool:
        parent = resolve_prefix(self.tasks, target) if target else None
        if parent is None:
            parent = self.board.selected
        now = self.clock()
        with self._mutation() as change:
            created = self.insert_sub_tasks(parent, specs, now)
            change.changed = bool(created)
        self.toast(f"AI created {len(created)} sub-tasks")
        return bool(created)

    def _apply_bulk(self, action: BulkUpdateAction) -> bool:
        if ALL_TARGETS in action.targets:
            targets = top_level(self.tasks)
        else:
            targets = []
            for prefix in action.targets:
                task = resolve_prefix(self.tasks, prefix)
                if task is None:
                    self.toast(f"AI: task {prefix} not found")
                elif task not in targets:
                    targets.append(task)
        if not targets:
            return False
        if self.enqueue is None:
            self.toast("AI not configured")
            return False
        names = self.board.settings.bucket_names
        for task in targets:
            self.enqueue(make_edit_job(self.tasks, task, action.instruction, names))
        self.toast(f"AI updating {len(targets)} tasks…")
        return False

    def _apply_edit(self, result: AIResult) -> bool:
        task = find_task(self.tasks, result.task_id)
        if task is None:
            # target vanished while the job was in flight
            self.toast(f"AI: task {short_id(result.task_id or '')} not found")
            return False
        update = copy.copy(result.update)
        update.dependencies = list(result.update.dependencies)
        if result.lock_bucket:
            update.bucket = None
        if result.lock_priority:
            update.priority = None
        if result.lock_due_date:
            update.due_date = None
        specs = [] if result.enrich else result.sub_task_specs
        return self._merge(task, update, specs)

    def insert_sub_tasks(self, parent: Optional[Task], specs: List[SubTaskSpec], now: datetime) -> List[Task]:
        """Two passes: create every child, then translate ``depends_on`` indices to ids."""
        if not specs:
            return []
        if parent is not None and parent.parent_id:
            # keep the hierarchy one level deep
            parent = find_task(self.tasks, parent.parent_id) or parent
        if parent is not None and parent.parent_id:
            parent = None
        created: List[Task] = []
        for spec in specs:
            bucket = spec.bucket or (parent.bucket if parent else self._default_bucket())
            child = new_task(
                spec.title,
                bucket,
                description=spec.description,
                priority=spec.priority or Priority.MEDIUM,
                due_date=spec.due_date,
                parent_id=parent.id if parent else None,
                now=now,
            )
            if spec.progress is not None:
                child.progress = spec.progress
            self.tasks.append(child)
            created.append(child)
        for index, spec in enumerate(specs):
            ids = [created[i].id for i in spec.depends_on if 0 <= i < len(created) and i != index]
            created[index].set_dependencies(ids)
        return created

    # ------------------------------------------------------------------ manual edits

    def create_local(
        self,
        title: str,
        bucket: Optional[str] = None,
        *,
        description: str = "",
        priority: Optional[Priority] = None,
        due_date=None,
        parent_id: Optional[str] = None,
    ) -> Task:
        with self._mutation() as change:
            task = new_task(
                title,
                bucket or self._default_bucket(),
                description=description,
                priority=priority or Priority.MEDIUM,
                due_date=due_date,
                parent_id=parent_id,
                now=self.clock(),
            )
            self.tasks.append(task)
            self.board.selected_id = task.id
            change.changed = True
        return task

    def edit_task(self, task_id: str, update: TaskUpdate, dependency_ids: Optional[List[str]] = None) -> bool:
        task = find_task(self.tasks, task_id)
        if task is None:
            return False
        with self._mutation() as change:
            changed = task.apply_update(update, self.clock(), dependency_ids)
            change.changed = changed
        return changed

    def set_progress(self, task_id: str, progress: Progress) -> bool:
        task = find_task(self.tasks, task_id)
        if task is None:
            return False
        with self._mutation() as change:
            changed = task.set_progress(progress, self.clock())
            change.changed = changed
        return changed

    def step_progress(self, task_id: str, forward: bool = True) -> bool:
        task = find_task(self.tasks, task_id)
        if task is None:
            return False
        target = task.progress.next() if forward else task.progress.prev()
        return self.set_progress(task_id, target)

    def delete_task(self, task_id: str, toast_prefix: str = "Deleted") -> List[Task]:
        task = find_task(self.tasks, task_id)
        if task is None:
            return []
        with self._mutation() as change:
            removed = cascade_delete(self.tasks, task_id, self.clock())
            change.changed = bool(removed)
        extra = len(removed) - 1
        suffix = f" (+{extra} sub-tasks)" if extra > 0 else ""
        self.toast(f"{toast_prefix}: {task.title}{suffix}")
        return removed

    # ------------------------------------------------------------------ buckets

    def _move_bucket_tasks(self, old: str, new: str) -> None:
        # undo snapshots hold tasks only; a bucket move invalidates them
        index = self.board.selected_index()
        now = self.clock()
        for task in self.tasks:
            if task.bucket.lower() == old.lower():
                task.bucket = new
                task.touch(now)
        self._undo = None
        self._commit(index)

    def add_bucket(self, name: str, description: str = "") -> bool:
        name = name.strip()
        if not name or find_bucket(self.board.settings.buckets, name):
            self.toast(f"Bucket exists or invalid: {name}")
            return False
        self.board.settings.buckets.append(BucketDef(name, description.strip()))
        self.save_settings()
        self.toast(f"Bucket added: {name}")
        return True

    def rename_bucket(self, old: str, new: str) -> bool:
        bucket = find_bucket(self.board.settings.buckets, old)
        new = new.strip()
        clash = find_bucket(self.board.settings.buckets, new)
        if bucket is None or not new or (clash is not None and clash is not bucket):
            self.toast(f"Cannot rename bucket: {old}")
            return False
        old_name = bucket.name
        bucket.name = new
        self._move_bucket_tasks(old_name, new)
        self.save_settings()
        self.toast(f"Bucket renamed: {old_name} → {new}")
        return True

    def describe_bucket(self, name: str, description: str) -> bool:
        bucket = find_bucket(self.board.settings.buckets, name)
        if bucket is None:
            self.toast(f"Unknown bucket: {name}")
            return False
        bucket.description = description.strip()
        self.save_settings()
        self.toast(f"Bucket updated: {bucket.name}")
        return True

    def delete_bucket(self, name: str) -> bool:
        buckets = self.board.settings.buckets
        bucket = find_bucket(buckets, name)
        if bucket is None:
            self.toast(f"Unknown bucket: {name}")
            return False
        if len(buckets) <= 1:
            self.toast("Cannot delete the last bucket")
            return False
        buckets.remove(bucket)
        fallback = buckets[0].name
        self._move_bucket_tasks(bucket.name, fallback)
        self.save_settings()
        self.toast(f"Bucket deleted: {bucket.name} (tasks moved to {fallback})")
        return True


__all__ = ["Applier"]
