"""Prompt construction for triage, edit and enrichment calls.

Every call sends two chat messages: a terse system contract and a user
body. Bodies only see snapshots carried by the job, never live tasks.
"""

from datetime import date
from typing import Dict, List, Optional

from core.task_graph import short_id
from .jobs import ChatEntry, ContextTask, EditJob, TriageJob

CONTEXT_LIMIT = 40
HISTORY_IN_PROMPT = 10

PROGRESS_ENUM = '"Backlog"|"Todo"|"In progress"|"Done"'
PRIORITY_ENUM = '"Low"|"Medium"|"High"|"Critical"'

Messages = List[Dict[str, str]]


def _today(today: Optional[date]) -> str:
    return (today or date.today()).isoformat()


def system_prompt(today: Optional[date] = None, *, edit: bool = False) -> str:
    role = "Modify the given task based on the user instruction. " if edit else ""
    return (
        f"Today is {_today(today)}. You are an expert AI project manager. {role}"
        "Output ONLY one valid JSON object. No prose, no markdown."
    )


def bucket_enum(bucket_names: List[str]) -> str:
    return "|".join(f'"{name}"' for name in bucket_names) or "string"


def context_lines(context: List[ContextTask]) -> str:
    return "".join(f"- {short_id(t.id)} [{t.bucket}] {t.title}\n" for t in context[:CONTEXT_LIMIT])


def history_lines(history: List[ChatEntry]) -> str:
    recent = history[-HISTORY_IN_PROMPT:]
    return "".join(f"User: {e.user_input}\nResult: {e.summary}\n\n" for e in recent)


def _sub_task_schema(buckets: str) -> str:
    return (
        f'{{"title": string, "bucket"?: {buckets}, "description"?: string, '
        f'"priority"?: {PRIORITY_ENUM}, "progress"?: {PROGRESS_ENUM}, '
        '"due_date"?: "YYYY-MM-DD", "depends_on"?: [0-based index, ...]}'
    )


def build_triage_body(job: TriageJob) -> str:
    buckets = bucket_enum(job.bucket_names)
    parts = [
        "Existing tasks (id_prefix [bucket] title | progress | priority | description):\n",
        job.triage_blob or "(none)\n",
    ]
    if job.history:
        parts.append("\nRecent conversation:\n")
        parts.append(history_lines(job.history))
    parts.append(f"\nUser instruction: {job.raw}\n\n")
    parts.append(
        "Return JSON:\n"
        "{\n"
        '  "action": "create" | "update" | "delete" | "decompose" | "bulk_update",\n'
        f'  "title"?: string, "bucket"?: {buckets}, "description"?: string,\n'
        f'  "progress"?: {PROGRESS_ENUM}, "priority"?: {PRIORITY_ENUM}, "due_date"?: "YYYY-MM-DD",\n'
        '  "dependencies"?: ["id_prefix", ...],\n'
        '  "target"?: "id_prefix",\n'
        '  "targets"?: ["id_prefix", ...] | ["all"],\n'
        '  "bulk_instruction"?: string,\n'
        f'  "sub_tasks"?: [{_sub_task_schema(buckets)}]\n'
        "}\n"
        "Rules:\n"
        "- Before creating, check existing tasks and their sub-tasks (lines starting with ↳). "
        'If one with similar meaning exists, use "update" on it instead of creating a duplicate.\n'
        "- Write clean, actionable titles; do not copy the user's words verbatim.\n"
        '- Infer progress from context ("already working on X" means "In progress").\n'
        '- To break down, decompose or split a task use "decompose" with "target" and "sub_tasks".\n'
        "- Never put numbered breakdowns into the description; use sub_tasks.\n"
        "- depends_on lists 0-based indices into sub_tasks that must finish first.\n"
        '- "update", "delete" and "decompose" name their task with "target" as an id_prefix from the list.\n'
        '- "bulk_update" applies "bulk_instruction" to every task in "targets"; ["all"] means every top-level task.\n'
    )
    return "".join(parts)


def build_edit_body(job: EditJob) -> str:
    buckets = bucket_enum(job.bucket_names)
    return (
        f"Current task:\n{job.snapshot}\n\n"
        f"Instruction: {job.instruction}\n\n"
        f"Existing tasks (id_prefix [bucket] title):\n{context_lines(job.context)}"
        "Return JSON with ONLY fields that should change (set unchanged fields to null):\n"
        "{\n"
        '  "title": string | null,\n'
        f'  "bucket": {buckets} | null,\n'
        '  "description": string | null,\n'
        f'  "progress": {PROGRESS_ENUM} | null,\n'
        f'  "priority": {PRIORITY_ENUM} | null,\n'
        '  "due_date": "YYYY-MM-DD" | null,\n'
        '  "dependencies": ["id_prefix", ...] | null,\n'
        f'  "sub_tasks": [{_sub_task_schema(buckets)}] | null\n'
        "}\n"
        "Rules:\n"
        "- If the instruction asks for sub-tasks, return them in sub_tasks, never in the description.\n"
        "- Sub-tasks inherit the task's bucket and priority unless the instruction says otherwise.\n"
        "- Dependencies must use the provided id_prefix values.\n"
    )


def build_enrich_body(job: EditJob) -> str:
    buckets = bucket_enum(job.bucket_names)
    locks = (
        f"Locked fields: bucket={str(job.lock_bucket).lower()} "
        f"priority={str(job.lock_priority).lower()} due_date={str(job.lock_due_date).lower()}"
    )
    return (
        f"New task:\n{job.snapshot}\n{locks}\n\n"
        f"Existing tasks you may depend on (id_prefix [bucket] title):\n{context_lines(job.context)}"
        "Return JSON with keys:\n"
        "{\n"
        f'  "bucket": {buckets},\n'
        '  "description": string,\n'
        f'  "priority": {PRIORITY_ENUM},\n'
        '  "due_date": "YYYY-MM-DD" | null,\n'
        '  "dependencies": ["id_prefix", ...]\n'
        "}\n"
        "Rules:\n"
        "- Locked fields are fixed by the user; repeat the current value or null.\n"
        "- If unsure, keep the bucket as given.\n"
        "- Dependencies must use the provided id_prefix values.\n"
    )


def build_messages(job, today: Optional[date] = None) -> Messages:
    if isinstance(job, TriageJob):
        system, body = system_prompt(today), build_triage_body(job)
    elif job.enrich:
        system, body = system_prompt(today), build_enrich_body(job)
    else:
        system, body = system_prompt(today, edit=True), build_edit_body(job)
    return [{"role": "system", "content": system}, {"role": "user", "content": body}]


__all__ = [
    "CONTEXT_LIMIT",
    "HISTORY_IN_PROMPT",
    "system_prompt",
    "bucket_enum",
    "context_lines",
    "history_lines",
    "build_triage_body",
    "build_edit_body",
    "build_enrich_body",
    "build_messages",
]
