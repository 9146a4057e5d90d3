"""Display helpers for the TUI: cell width, trimming, task rows."""

from typing import List, Optional, Tuple

from wcwidth import wcwidth

from core import Task
from core.task_graph import short_id

Fragment = Tuple[str, str]

PROGRESS_ICONS = {
    "backlog": "·",
    "todo": "○",
    "in_progress": "◐",
    "done": "✓",
}


def char_width(ch: str) -> int:
    w = wcwidth(ch)
    return max(0, w) if w is not None else 0


def display_width(text: str) -> int:
    """Visual width of text accounting for wide/narrow characters."""
    return sum(char_width(ch) for ch in text)


def trim_display(text: str, width: int, ellipsis: str = "…") -> str:
    """Cut ``text`` to ``width`` columns, marking the cut with ``ellipsis``."""
    if display_width(text) <= width:
        return text
    budget = max(0, width - display_width(ellipsis))
    acc: List[str] = []
    used = 0
    for ch in text:
        w = char_width(ch)
        if used + w > budget:
            break
        acc.append(ch)
        used += w
    return "".join(acc) + (ellipsis if width >= display_width(ellipsis) else "")


def pad_display(text: str, width: int) -> str:
    trimmed = trim_display(text, width)
    return trimmed + " " * max(0, width - display_width(trimmed))


def task_row(task: Task, width: int, *, selected: bool = False, is_child: bool = False) -> List[Fragment]:
    """One list row: ``icon short-id title ... priority due``."""
    code = task.progress.code
    row_style = "class:selected" if selected else "class:text"
    indent = "  ↳ " if is_child else ""
    due = f" {task.due_date.isoformat()}" if task.due_date else ""
    tail = f" {task.priority.title:<8}{due}"
    head = f"{indent}{PROGRESS_ICONS[code]} {short_id(task.id)} "
    title_width = max(4, width - display_width(head) - display_width(tail))
    fragments: List[Fragment] = [
        (row_style, indent),
        (f"{row_style} class:progress.{code}", f"{PROGRESS_ICONS[code]} "),
        (f"{row_style} class:text.dimmer", f"{short_id(task.id)} "),
        (row_style, pad_display(task.title, title_width)),
        (f"{row_style} class:priority.{task.priority.code}", tail),
        ("", "\n"),
    ]
    return fragments


def detail_lines(task: Optional[Task], lookup_title) -> List[Fragment]:
    """Side panel for the selected task."""
    if task is None:
        return [("class:text.dim", "No task selected\n")]
    deps = ", ".join(f"{short_id(d)} {lookup_title(d)}" for d in task.dependencies) or "none"
    rows = [
        ("class:header", f"{task.title}\n"),
        ("class:text.dim", f"{short_id(task.id)}  [{task.bucket}]\n\n"),
        ("class:text", f"Progress: {task.progress.title}\n"),
        ("class:text", f"Priority: {task.priority.title}\n"),
        ("class:text", f"Due: {task.due_date.isoformat() if task.due_date else 'none'}\n"),
        ("class:text", f"Depends on: {deps}\n"),
    ]
    if task.start_date:
        rows.append(("class:text.dim", f"Started: {task.start_date:%Y-%m-%d %H:%M}\n"))
    rows.append(("class:text.dim", f"Updated: {task.updated_at:%Y-%m-%d %H:%M}\n\n"))
    rows.append(("class:text", task.description or "(no description)"))
    return rows


__all__ = ["display_width", "trim_display", "pad_display", "task_row", "detail_lines", "PROGRESS_ICONS"]
