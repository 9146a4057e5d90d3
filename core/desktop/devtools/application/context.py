"""Snapshots of board state handed to the AI worker."""

from typing import List, Optional, Tuple

from core import Task
from core.task_graph import children_of, find_task, resolve_prefix, short_id
from infrastructure.llm.jobs import ChatEntry, ContextTask, EditJob, TriageJob
from infrastructure.llm.prompts import CONTEXT_LIMIT
from infrastructure.llm.response_parser import DESCRIPTION_MAX_BYTES, TITLE_MAX_BYTES
from util.text import one_line, truncate_bytes


def _by_recency(tasks: List[Task]) -> List[Task]:
    return sorted(tasks, key=lambda t: t.updated_at, reverse=True)


def build_ai_context(tasks: List[Task], limit: int = CONTEXT_LIMIT) -> List[ContextTask]:
    """Most recently updated tasks, newest first."""
    return [
        ContextTask(id=t.id, bucket=t.bucket, title=truncate_bytes(t.title, TITLE_MAX_BYTES))
        for t in _by_recency(tasks)[:limit]
    ]


def _triage_line(task: Task) -> str:
    description = one_line(truncate_bytes(task.description.strip(), DESCRIPTION_MAX_BYTES))
    return (
        f"{short_id(task.id)} [{task.bucket}] {truncate_bytes(task.title, TITLE_MAX_BYTES)} | "
        f"{task.progress.title} | {task.priority.title} | {description or 'no description'}"
    )


def build_triage_context(tasks: List[Task], limit: int = CONTEXT_LIMIT) -> str:
    """Top-level tasks by recency, each followed by its ``↳`` children."""
    lines: List[str] = []
    for parent in _by_recency([t for t in tasks if not t.parent_id]):
        if len(lines) >= limit:
            break
        lines.append(f"- {_triage_line(parent)}")
        for child in children_of(tasks, parent.id):
            if len(lines) >= limit:
                break
            lines.append(f"  ↳ {_triage_line(child)}")
    return "".join(line + "\n" for line in lines)


def format_task_snapshot(task: Task) -> str:
    deps = ", ".join(short_id(d) for d in task.dependencies) or "none"
    due = task.due_date.isoformat() if task.due_date else "none"
    return (
        f"Title: {task.title}\n"
        f"Bucket: {task.bucket}\n"
        f"Description: {task.description.strip() or 'none'}\n"
        f"Progress: {task.progress.title}\n"
        f"Priority: {task.priority.title}\n"
        f"Due: {due}\n"
        f"Dependencies: {deps}"
    )


def resolve_at_mention(tasks: List[Task], text: str, fallback_id: Optional[str]) -> Tuple[Optional[str], str]:
    """Split ``<hex prefix> instruction``; unknown prefixes keep the fallback and full text."""
    trimmed = (text or "").strip()
    token, _, rest = trimmed.partition(" ")
    lowered = token.lower()
    if rest.strip() and 4 <= len(lowered) <= 8 and all(c in "0123456789abcdef" for c in lowered):
        task = resolve_prefix(tasks, lowered)
        if task is not None:
            return task.id, rest.strip()
    return fallback_id, trimmed


def annotate_mention(tasks: List[Task], target_id: Optional[str], instruction: str) -> str:
    task = find_task(tasks, target_id)
    if task is None:
        return instruction
    return f'[target task: {short_id(task.id)} "{task.title}" in {task.bucket}] {instruction}'


def make_triage_job(tasks: List[Task], raw: str, bucket_names: List[str], history: Optional[List[ChatEntry]] = None) -> TriageJob:
    return TriageJob(
        raw=raw,
        context=build_ai_context(tasks),
        triage_blob=build_triage_context(tasks),
        bucket_names=list(bucket_names),
        history=list(history or []),
    )


def make_edit_job(
    tasks: List[Task],
    task: Task,
    instruction: str,
    bucket_names: List[str],
    *,
    enrich: bool = False,
    lock_bucket: bool = False,
    lock_priority: bool = False,
    lock_due_date: bool = False,
) -> EditJob:
    return EditJob(
        task_id=task.id,
        snapshot=format_task_snapshot(task),
        instruction=instruction,
        context=build_ai_context([t for t in tasks if t.id != task.id]),
        bucket_names=list(bucket_names),
        lock_bucket=lock_bucket,
        lock_priority=lock_priority,
        lock_due_date=lock_due_date,
        enrich=enrich,
    )


__all__ = [
    "build_ai_context",
    "build_triage_context",
    "format_task_snapshot",
    "resolve_at_mention",
    "annotate_mention",
    "make_triage_job",
    "make_edit_job",
]
