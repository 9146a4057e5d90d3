"""Classify a submitted input line and route it to the worker or the board."""

import shlex
from enum import Enum
from typing import List, Optional, Protocol

from core.buckets import BucketDef
from infrastructure.llm.jobs import AIResult, Job
from .applier import Applier
from .context import annotate_mention, make_edit_job, make_triage_job, resolve_at_mention
from .fallback_router import fallback_result, infer_new_task

DECOMPOSE_TRIGGERS = (
    "break down",
    "decompose",
    "sub-issue",
    "subissue",
    "sub-task",
    "subtask",
    "split into",
    "break into",
)

LANE_FLAGS = {
    "backlog": "show_backlog",
    "todo": "show_todo",
    "progress": "show_in_progress",
    "inprogress": "show_in_progress",
    "in_progress": "show_in_progress",
    "done": "show_done",
}


class InputKind(Enum):
    EXIT = "exit"
    EMPTY = "empty"
    COMMAND = "command"
    EDIT = "edit"
    TRIAGE = "triage"


class JobSink(Protocol):
    @property
    def configured(self) -> bool:
        ...

    def enqueue(self, job: Job) -> None:
        ...


def classify(line: str) -> InputKind:
    text = (line or "").strip()
    if text.lower() == "exit":
        return InputKind.EXIT
    if not text:
        return InputKind.EMPTY
    if text.startswith("/"):
        return InputKind.COMMAND
    if text.startswith("@"):
        return InputKind.EDIT
    return InputKind.TRIAGE


def is_decompose_request(instruction: str) -> bool:
    lowered = (instruction or "").lower()
    return any(trigger in lowered for trigger in DECOMPOSE_TRIGGERS)


class InputRouter:
    def __init__(self, applier: Applier, worker: Optional[JobSink] = None) -> None:
        self.applier = applier
        self.worker = worker

    @property
    def board(self):
        return self.applier.board

    @property
    def ai_ready(self) -> bool:
        return self.worker is not None and self.worker.configured

    def toast(self, message: str) -> None:
        self.applier.toast(message)

    def submit(self, line: str) -> bool:
        """Handle one line; returns ``False`` when the user asked to quit."""
        kind = classify(line)
        text = (line or "").strip()
        if kind is InputKind.EXIT:
            return False
        if kind is InputKind.EMPTY:
            return True
        if kind is InputKind.COMMAND:
            return self.run_command(text[1:])
        if kind is InputKind.EDIT:
            self.submit_edit(text[1:].strip())
            return True
        self.submit_triage(text)
        return True

    def submit_triage(self, raw: str) -> Optional[AIResult]:
        if not self.ai_ready:
            self.toast("AI not configured")
            result = fallback_result(raw, self.board.settings.bucket_names, self.board.settings.owner_name)
            if result is not None:
                self.applier.apply(result)
            return result
        board = self.board
        self.worker.enqueue(make_triage_job(board.tasks, raw, board.settings.bucket_names, board.chat_history))
        self.toast("AI thinking…")
        return None

    def submit_edit(self, text: str) -> None:
        board = self.board
        target_id, instruction = resolve_at_mention(board.tasks, text, board.selected_id)
        if not instruction:
            return
        task = next((t for t in board.tasks if t.id == target_id), None)
        if task is None:
            self.toast("No task selected")
            return
        if not self.ai_ready:
            self.toast("AI not configured")
            return
        if is_decompose_request(instruction):
            board.selected_id = task.id
            raw = annotate_mention(board.tasks, task.id, instruction)
            self.worker.enqueue(make_triage_job(board.tasks, raw, board.settings.bucket_names, board.chat_history))
            self.toast("AI decomposing…")
            return
        self.worker.enqueue(make_edit_job(board.tasks, task, instruction, board.settings.bucket_names))
        self.toast("AI thinking…")

    def add_task(self, text: str) -> None:
        """Create locally right away, then ask the model to fill in what the user left open."""
        settings = self.board.settings
        hints = infer_new_task(text, settings.bucket_names, settings.owner_name)
        if hints is None:
            return
        task = self.applier.create_local(hints.title, hints.bucket, priority=hints.priority, due_date=hints.due_date)
        self.toast(f"Added: {task.title}")
        if not self.ai_ready:
            return
        self.worker.enqueue(
            make_edit_job(
                self.board.tasks,
                task,
                "Fill in description, bucket, priority, due date and dependencies for this new task.",
                settings.bucket_names,
                enrich=True,
                lock_bucket=hints.bucket_locked,
                lock_priority=hints.priority is not None,
                lock_due_date=hints.due_date is not None,
            )
        )

    # ------------------------------------------------------------------ slash commands

    def run_command(self, body: str) -> bool:
        head, _, tail = body.strip().partition(" ")
        if head.lower() == "add":
            # free text, not shell-quoted
            self.add_task(tail)
            return True
        try:
            parts = shlex.split(body)
        except ValueError as exc:
            self.toast(f"Bad command: {exc}")
            return True
        if not parts:
            return True
        name, args = parts[0].lower(), parts[1:]
        if name == "exit":
            return False
        if name == "clear":
            self.board.chat_history.clear()
            self.toast("Chat history cleared")
        elif name == "buckets":
            self.toast("Buckets: " + ", ".join(self._bucket_label(b) for b in self.board.settings.buckets))
        elif name == "bucket":
            self._bucket_command(args)
        elif name == "show":
            self._show_command(args)
        elif name == "undo":
            self.applier.undo()
        else:
            self.toast(f"Unknown command: /{name}")
        return True

    @staticmethod
    def _bucket_label(bucket: BucketDef) -> str:
        return f"{bucket.name} ({bucket.description})" if bucket.description else bucket.name

    def _bucket_command(self, args: List[str]) -> None:
        usage = "Usage: /bucket add|rename|desc|delete ..."
        if not args:
            self.toast(usage)
            return
        verb, rest = args[0].lower(), args[1:]
        if verb == "add" and rest:
            self.applier.add_bucket(rest[0], " ".join(rest[1:]))
        elif verb == "rename" and len(rest) == 2:
            self.applier.rename_bucket(rest[0], rest[1])
        elif verb == "desc" and len(rest) >= 2:
            self.applier.describe_bucket(rest[0], " ".join(rest[1:]))
        elif verb == "delete" and len(rest) == 1:
            self.applier.delete_bucket(rest[0])
        else:
            self.toast(usage)

    def _show_command(self, args: List[str]) -> None:
        if len(args) != 2 or args[0].lower() not in LANE_FLAGS or args[1].lower() not in ("on", "off"):
            self.toast("Usage: /show backlog|todo|progress|done on|off")
            return
        setattr(self.board.settings, LANE_FLAGS[args[0].lower()], args[1].lower() == "on")
        self.board.clamp_selection(self.board.selected_index())
        self.applier.save_settings()
        self.toast(f"{args[0].capitalize()} lane {args[1].lower()}")


__all__ = ["DECOMPOSE_TRIGGERS", "InputKind", "InputRouter", "classify", "is_decompose_request"]
