"""Task graph operations.

Pure domain logic over a flat task list: parent aggregation, short-id
resolution, dependency hygiene and cascading deletes. No I/O; callers
pass the list and a timestamp.
"""

from collections import Counter, deque
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Set

from .progress import Progress
from .task import Task

SHORT_ID_LEN = 8
MIN_PREFIX_LEN = 4
MAX_DEPENDENCIES = 8


def short_id(task_id: str) -> str:
    return (task_id or "")[:SHORT_ID_LEN].lower()


def aggregate_progress(progresses: Iterable[Progress]) -> Optional[Progress]:
    """Parent progress for a multiset of child progresses; ``None`` when empty."""
    counts = Counter(progresses)
    total = sum(counts.values())
    if not total:
        return None
    done = counts[Progress.DONE]
    if done == total:
        return Progress.DONE
    if counts[Progress.IN_PROGRESS] or done:
        return Progress.IN_PROGRESS
    if counts[Progress.TODO]:
        return Progress.TODO
    return Progress.BACKLOG


def find_task(tasks: List[Task], task_id: Optional[str]) -> Optional[Task]:
    if not task_id:
        return None
    for task in tasks:
        if task.id == task_id:
            return task
    return None


def children_of(tasks: List[Task], parent_id: str) -> List[Task]:
    return [t for t in tasks if t.parent_id == parent_id]


def top_level(tasks: List[Task]) -> List[Task]:
    return [t for t in tasks if not t.parent_id]


def sync_parent_progress(tasks: List[Task], parent_id: Optional[str], now: datetime) -> bool:
    """Recompute one parent from its children; write only on change."""
    parent = find_task(tasks, parent_id)
    if parent is None:
        return False
    computed = aggregate_progress(c.progress for c in children_of(tasks, parent.id))
    if computed is None:
        return False
    return parent.set_progress(computed, now)


def reconcile_parents(tasks: List[Task], now: datetime) -> bool:
    """Recompute every parent that has at least one child."""
    changed = False
    parent_ids = []
    for task in tasks:
        if task.parent_id and task.parent_id not in parent_ids:
            parent_ids.append(task.parent_id)
    for parent_id in parent_ids:
        if sync_parent_progress(tasks, parent_id, now):
            changed = True
    return changed


def resolve_prefix(tasks: List[Task], prefix: Optional[str]) -> Optional[Task]:
    """Unique task whose short id starts with ``prefix``.

    Prefixes shorter than four characters, unknown prefixes and prefixes
    matching more than one task all resolve to ``None``.
    """
    key = (prefix or "").strip().lower()[:SHORT_ID_LEN]
    if len(key) < MIN_PREFIX_LEN:
        return None
    matches = [t for t in tasks if short_id(t.id).startswith(key)]
    if len(matches) != 1:
        return None
    return matches[0]


def merge_dependencies(existing: List[str], incoming: Iterable[str], self_id: str) -> List[str]:
    """Append ``incoming`` ids to ``existing`` skipping self and duplicates, order preserved."""
    merged: List[str] = []
    for dep in list(existing) + list(incoming):
        if dep and dep != self_id and dep not in merged:
            merged.append(dep)
    return merged


def resolve_dependency_prefixes(tasks: List[Task], prefixes: Iterable[str], self_id: Optional[str] = None) -> List[str]:
    """Translate short-id prefixes to full ids; unresolvable entries are dropped."""
    resolved: List[str] = []
    for prefix in prefixes:
        task = resolve_prefix(tasks, prefix)
        if task is None or task.id == self_id or task.id in resolved:
            continue
        resolved.append(task.id)
        if len(resolved) >= MAX_DEPENDENCIES:
            break
    return resolved


def collect_descendants(tasks: List[Task], root_id: str) -> List[str]:
    """Root id followed by every descendant id (breadth first, cycle safe)."""
    ordered = [root_id]
    seen: Set[str] = {root_id}
    queue = deque([root_id])
    while queue:
        current = queue.popleft()
        for child in children_of(tasks, current):
            if child.id not in seen:
                seen.add(child.id)
                ordered.append(child.id)
                queue.append(child.id)
    return ordered


def scrub_dependencies(tasks: List[Task], removed: Set[str], now: datetime) -> int:
    """Drop references to ``removed`` from every dependency list; returns tasks touched."""
    touched = 0
    for task in tasks:
        kept = [d for d in task.dependencies if d not in removed]
        if len(kept) != len(task.dependencies):
            task.dependencies = kept
            task.touch(now)
            touched += 1
    return touched


def cascade_delete(tasks: List[Task], root_id: str, now: datetime) -> List[Task]:
    """Remove a task with all its descendants in place and return the removed tasks."""
    if find_task(tasks, root_id) is None:
        return []
    doomed = set(collect_descendants(tasks, root_id))
    removed = [t for t in tasks if t.id in doomed]
    tasks[:] = [t for t in tasks if t.id not in doomed]
    scrub_dependencies(tasks, doomed, now)
    return removed


def dangling_dependencies(tasks: List[Task]) -> Dict[str, List[str]]:
    known = {t.id for t in tasks}
    report: Dict[str, List[str]] = {}
    for task in tasks:
        missing = [d for d in task.dependencies if d not in known]
        if missing:
            report[task.id] = missing
    return report


__all__ = [
    "SHORT_ID_LEN",
    "MIN_PREFIX_LEN",
    "MAX_DEPENDENCIES",
    "short_id",
    "aggregate_progress",
    "find_task",
    "children_of",
    "top_level",
    "sync_parent_progress",
    "reconcile_parents",
    "resolve_prefix",
    "merge_dependencies",
    "resolve_dependency_prefixes",
    "collect_descendants",
    "scrub_dependencies",
    "cascade_delete",
    "dangling_dependencies",
]
