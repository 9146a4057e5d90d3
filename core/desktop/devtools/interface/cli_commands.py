"""Non-interactive commands. Each returns a process exit code."""

import argparse
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from core import Priority, Progress, Task, TaskUpdate
from core.buckets import find_bucket
from core.task_graph import children_of, resolve_dependency_prefixes, resolve_prefix, short_id
from infrastructure.file_repository import StorageError
from .cli_io import structured_error, structured_response
from .cli_runtime import AppSession, open_session
from .tui_themes import DEFAULT_THEME

AI_RECEIVE_TIMEOUT = 90.0


def task_to_dict(task: Task) -> Dict[str, Any]:
    data = task.to_dict()
    data["short_id"] = short_id(task.id)
    return data


def _data_dir(args: argparse.Namespace) -> Optional[Path]:
    raw = getattr(args, "data_dir", None)
    return Path(raw) if raw else None


def _open(args: argparse.Namespace, command: str, *, with_ai: bool = False):
    try:
        return open_session(_data_dir(args), with_ai=with_ai), None
    except StorageError as exc:
        return None, structured_error(command, str(exc))


def _finish(session: AppSession, command: str, message: str, payload: Dict[str, Any]) -> int:
    toasts = session.board.pop_toasts()
    if session.applier.last_save_error:
        return structured_error(command, session.applier.last_save_error, payload=payload, toasts=toasts)
    return structured_response(command, message=message, payload=payload, toasts=toasts)


def _resolve(session: AppSession, command: str, prefix: str):
    task = resolve_prefix(session.board.tasks, prefix)
    if task is None:
        return None, structured_error(command, f"task {prefix} not found", payload={"prefix": prefix})
    return task, None


def _parse_priority(value: Optional[str]) -> Optional[Priority]:
    if value is None:
        return None
    priority = Priority.from_string(value)
    if priority is None:
        raise argparse.ArgumentTypeError(f"unknown priority: {value}")
    return priority


def _parse_progress(value: Optional[str]) -> Optional[Progress]:
    if value is None:
        return None
    progress = Progress.from_string(value)
    if progress is None:
        raise argparse.ArgumentTypeError(f"unknown progress: {value}")
    return progress


def _bucket_name(session: AppSession, value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    bucket = find_bucket(session.board.settings.buckets, value)
    return bucket.name if bucket else value.strip()


# ---------------------------------------------------------------- tui / ai


def cmd_tui(args: argparse.Namespace) -> int:
    from .tui_app import BoardTUI

    try:
        session = open_session(_data_dir(args), with_ai=True)
    except StorageError as exc:
        return structured_error("tui", str(exc))
    BoardTUI(session.applier, session.router, session.worker, theme=getattr(args, "theme", None) or DEFAULT_THEME).run()
    return 1 if session.applier.last_save_error else 0


def cmd_ai(args: argparse.Namespace) -> int:
    """One-shot triage: submit, then block until every fanned-out result is in."""
    session, err = _open(args, "ai", with_ai=True)
    if session is None:
        return err
    instruction = " ".join(args.instruction).strip()
    if not instruction:
        return structured_error("ai", "instruction is empty")
    before = {t.id for t in session.board.tasks}
    session.router.submit_triage(instruction)
    worker = session.worker
    timed_out = False
    if worker is not None and worker.configured:
        deadline = time.monotonic() + AI_RECEIVE_TIMEOUT
        while worker.pending:
            remaining = deadline - time.monotonic()
            result = worker.recv(timeout=max(0.0, remaining)) if remaining > 0 else None
            if result is None:
                timed_out = True
                break
            session.applier.apply(result)
        worker.stop()
    created = [task_to_dict(t) for t in session.board.tasks if t.id not in before]
    payload: Dict[str, Any] = {"instruction": instruction, "created": created, "tasks": len(session.board.tasks)}
    if timed_out:
        session.board.toast("AI timed out")
        return structured_error("ai", "AI timed out", payload=payload, toasts=session.board.pop_toasts())
    return _finish(session, "ai", "done", payload)


# ---------------------------------------------------------------- task


def cmd_task_list(args: argparse.Namespace) -> int:
    session, err = _open(args, "task.list")
    if session is None:
        return err
    rows = session.board.rows(include_hidden=bool(getattr(args, "all", False)))
    bucket = getattr(args, "bucket", None)
    if bucket:
        rows = [t for t in rows if t.bucket.lower() == bucket.lower()]
    return structured_response("task.list", message=f"{len(rows)} tasks", payload={"tasks": [task_to_dict(t) for t in rows]})


def cmd_task_show(args: argparse.Namespace) -> int:
    session, err = _open(args, "task.show")
    if session is None:
        return err
    task, err = _resolve(session, "task.show", args.task_id)
    if task is None:
        return err
    payload = task_to_dict(task)
    payload["children"] = [task_to_dict(c) for c in children_of(session.board.tasks, task.id)]
    return structured_response("task.show", message=task.title, payload={"task": payload})


def cmd_task_add(args: argparse.Namespace) -> int:
    session, err = _open(args, "task.add")
    if session is None:
        return err
    parent_id = None
    if getattr(args, "parent", None):
        parent, err = _resolve(session, "task.add", args.parent)
        if parent is None:
            return err
        parent_id = parent.parent_id or parent.id
    try:
        task = session.applier.create_local(
            args.title,
            _bucket_name(session, args.bucket),
            description=args.description or "",
            priority=_parse_priority(args.priority),
            due_date=args.due,
            parent_id=parent_id,
        )
    except (ValueError, argparse.ArgumentTypeError) as exc:
        return structured_error("task.add", str(exc))
    return _finish(session, "task.add", f"created {short_id(task.id)}", {"task": task_to_dict(task)})


def cmd_task_edit(args: argparse.Namespace) -> int:
    session, err = _open(args, "task.edit")
    if session is None:
        return err
    task, err = _resolve(session, "task.edit", args.task_id)
    if task is None:
        return err
    try:
        update = TaskUpdate(
            is_edit=True,
            title=args.title,
            bucket=_bucket_name(session, args.bucket),
            description=args.description,
            progress=_parse_progress(args.progress),
            priority=_parse_priority(args.priority),
            due_date=args.due,
        )
    except argparse.ArgumentTypeError as exc:
        return structured_error("task.edit", str(exc))
    deps: List[str] = []
    if args.depends:
        deps = resolve_dependency_prefixes(session.board.tasks, args.depends, self_id=task.id)
    changed = session.applier.edit_task(task.id, update, deps)
    message = "updated" if changed else "no changes"
    return _finish(session, "task.edit", message, {"task": task_to_dict(task)})


def cmd_task_delete(args: argparse.Namespace) -> int:
    session, err = _open(args, "task.delete")
    if session is None:
        return err
    task, err = _resolve(session, "task.delete", args.task_id)
    if task is None:
        return err
    removed = session.applier.delete_task(task.id)
    return _finish(session, "task.delete", f"deleted {len(removed)} tasks", {"deleted": [short_id(t.id) for t in removed]})


# ---------------------------------------------------------------- bucket


def _buckets_payload(session: AppSession) -> Dict[str, Any]:
    return {"buckets": [b.to_dict() for b in session.board.settings.buckets]}


def cmd_bucket_list(args: argparse.Namespace) -> int:
    session, err = _open(args, "bucket.list")
    if session is None:
        return err
    return structured_response("bucket.list", payload=_buckets_payload(session))


def _bucket_change(args: argparse.Namespace, command: str, op) -> int:
    session, err = _open(args, command)
    if session is None:
        return err
    ok = op(session.applier)
    if not ok:
        toasts = session.board.pop_toasts()
        return structured_error(
            command,
            toasts[-1] if toasts else "bucket change rejected",
            payload=_buckets_payload(session),
            toasts=toasts,
        )
    return _finish(session, command, "ok", _buckets_payload(session))


def cmd_bucket_add(args: argparse.Namespace) -> int:
    return _bucket_change(args, "bucket.add", lambda a: a.add_bucket(args.name, args.description or ""))


def cmd_bucket_rename(args: argparse.Namespace) -> int:
    return _bucket_change(args, "bucket.rename", lambda a: a.rename_bucket(args.old, args.new))


def cmd_bucket_delete(args: argparse.Namespace) -> int:
    return _bucket_change(args, "bucket.delete", lambda a: a.delete_bucket(args.name))


__all__ = [
    "AI_RECEIVE_TIMEOUT",
    "task_to_dict",
    "cmd_tui",
    "cmd_ai",
    "cmd_task_list",
    "cmd_task_show",
    "cmd_task_add",
    "cmd_task_edit",
    "cmd_task_delete",
    "cmd_bucket_list",
    "cmd_bucket_add",
    "cmd_bucket_rename",
    "cmd_bucket_delete",
]
