"""CLI parser construction for the aipm CLI/TUI."""

import argparse
from datetime import date
from typing import Any, Mapping


def iso_date(value: str) -> date:
    try:
        return date.fromisoformat(value.strip())
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"expected YYYY-MM-DD, got {value!r}") from exc


def build_parser(commands: Any, themes: Mapping[str, Any], default_theme: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="aipm",
        description="aipm: terminal task board with AI triage",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--data-dir", dest="data_dir", help="override the data directory (default: AIPM_DATA_DIR or the user data dir)")
    sub = parser.add_subparsers(dest="command", help="Commands")

    # tui
    tui_p = sub.add_parser("tui", help="Run the interactive board (default)")
    tui_p.add_argument("--theme", choices=list(themes.keys()), default=default_theme, help="colour palette")
    tui_p.set_defaults(func=commands.cmd_tui)

    # ai
    ai_p = sub.add_parser("ai", help="Send one instruction through AI triage and wait for the result")
    ai_p.add_argument("instruction", nargs="+")
    ai_p.set_defaults(func=commands.cmd_ai)

    # task
    task_p = sub.add_parser("task", help="Manage tasks")
    task_sub = task_p.add_subparsers(dest="task_command", required=True)

    tl = task_sub.add_parser("list", help="List tasks")
    tl.add_argument("--bucket", help="only this bucket")
    tl.add_argument("--all", action="store_true", help="ignore lane visibility settings")
    tl.set_defaults(func=commands.cmd_task_list)

    ts = task_sub.add_parser("show", help="Show one task")
    ts.add_argument("task_id", help="short id prefix (4-8 chars)")
    ts.set_defaults(func=commands.cmd_task_show)

    ta = task_sub.add_parser("add", help="Create a task")
    ta.add_argument("title")
    ta.add_argument("--bucket")
    ta.add_argument("--priority", choices=["low", "medium", "high", "critical"], type=str.lower)
    ta.add_argument("--due", type=iso_date, help="YYYY-MM-DD")
    ta.add_argument("--description", "-d")
    ta.add_argument("--parent", help="parent short id")
    ta.set_defaults(func=commands.cmd_task_add)

    te = task_sub.add_parser("edit", help="Edit task fields")
    te.add_argument("task_id")
    te.add_argument("--title")
    te.add_argument("--bucket")
    te.add_argument("--progress", choices=["backlog", "todo", "in-progress", "done"], type=str.lower)
    te.add_argument("--priority", choices=["low", "medium", "high", "critical"], type=str.lower)
    te.add_argument("--due", type=iso_date, help="YYYY-MM-DD")
    te.add_argument("--description", "-d")
    te.add_argument("--depends", nargs="+", metavar="ID", help="replace dependencies (short ids)")
    te.set_defaults(func=commands.cmd_task_edit)

    td = task_sub.add_parser("delete", help="Delete a task and its sub-tasks")
    td.add_argument("task_id")
    td.set_defaults(func=commands.cmd_task_delete)

    # bucket
    bucket_p = sub.add_parser("bucket", help="Manage buckets")
    bucket_sub = bucket_p.add_subparsers(dest="bucket_command", required=True)

    bl = bucket_sub.add_parser("list", help="List buckets")
    bl.set_defaults(func=commands.cmd_bucket_list)

    ba = bucket_sub.add_parser("add", help="Add a bucket")
    ba.add_argument("name")
    ba.add_argument("--description", "-d")
    ba.set_defaults(func=commands.cmd_bucket_add)

    br = bucket_sub.add_parser("rename", help="Rename a bucket (tasks follow)")
    br.add_argument("old")
    br.add_argument("new")
    br.set_defaults(func=commands.cmd_bucket_rename)

    bd = bucket_sub.add_parser("delete", help="Delete a bucket (tasks move to the first bucket)")
    bd.add_argument("name")
    bd.set_defaults(func=commands.cmd_bucket_delete)

    return parser


__all__ = ["build_parser", "iso_date"]
