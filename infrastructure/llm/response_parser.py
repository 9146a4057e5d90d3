"""Turn a noisy model reply into a validated ``AIResult``.

The envelope (a JSON object, with a string ``action`` for triage) is
checked with jsonschema; every other field is parsed permissively and
dropped when it does not fit the vocabulary.
"""

import json
import re
from datetime import date
from typing import Any, Dict, List, Optional

import jsonschema

from core import Priority, Progress, TaskUpdate, match_bucket_name
from core.task_graph import MAX_DEPENDENCIES, MIN_PREFIX_LEN, SHORT_ID_LEN, short_id
from util.text import truncate_bytes
from .errors import ParseError
from .jobs import (
    ALL_TARGETS,
    Action,
    AIResult,
    BulkUpdateAction,
    ContextTask,
    CreateAction,
    DecomposeAction,
    DeleteAction,
    EditJob,
    SubTaskSpec,
    TriageJob,
    UpdateAction,
)

TITLE_MAX_BYTES = 200
DESCRIPTION_MAX_BYTES = 400
MAX_SUB_TASKS = 12

_DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")

TRIAGE_ENVELOPE_SCHEMA = {
    "type": "object",
    "required": ["action"],
    "properties": {"action": {"type": "string"}},
}
EDIT_ENVELOPE_SCHEMA = {"type": "object"}

_ACTION_ALIASES = {
    "create": "create",
    "update": "update",
    "edit": "update",
    "delete": "delete",
    "remove": "delete",
    "decompose": "decompose",
    "bulk_update": "bulk_update",
    "bulk-update": "bulk_update",
    "bulkupdate": "bulk_update",
}


def extract_json_object(content: str) -> str:
    """Inclusive substring between the first ``{`` and the last ``}``."""
    start = content.find("{")
    end = content.rfind("}")
    if start < 0 or end < 0 or end < start:
        raise ParseError("no JSON object found", content)
    return content[start : end + 1]


def load_object(content: str, schema: Dict[str, Any]) -> Dict[str, Any]:
    text = extract_json_object(content or "")
    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ParseError(str(exc), content) from exc
    try:
        jsonschema.validate(instance=data, schema=schema)
    except jsonschema.ValidationError as exc:
        raise ParseError(exc.message, content) from exc
    return data


def _text(data: Dict[str, Any], key: str) -> Optional[str]:
    value = data.get(key)
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def parse_title(value: Any) -> Optional[str]:
    if not isinstance(value, str) or not value.strip():
        return None
    return truncate_bytes(value.strip(), TITLE_MAX_BYTES)


def parse_description(value: Any) -> Optional[str]:
    if not isinstance(value, str) or not value.strip():
        return None
    return truncate_bytes(value.strip(), DESCRIPTION_MAX_BYTES).strip()


def parse_date(value: Any) -> Optional[date]:
    """Strict ``YYYY-MM-DD``; anything else is ``None``."""
    if not isinstance(value, str):
        return None
    value = value.strip()
    if not _DATE_RE.match(value):
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        return None


def parse_enum_progress(value: Any) -> Optional[Progress]:
    return Progress.from_string(value) if isinstance(value, str) else None


def parse_enum_priority(value: Any) -> Optional[Priority]:
    return Priority.from_string(value) if isinstance(value, str) else None


def parse_bucket(value: Any, bucket_names: List[str]) -> Optional[str]:
    return match_bucket_name(value, bucket_names) if isinstance(value, str) else None


def parse_dependency_prefixes(value: Any, context: List[ContextTask]) -> List[str]:
    """Keep prefixes that resolve to exactly one task of the context sent to the model."""
    if not isinstance(value, list):
        return []
    shorts = [short_id(t.id) for t in context]
    out: List[str] = []
    for item in value:
        if not isinstance(item, str):
            continue
        key = item.strip().lower()[:SHORT_ID_LEN]
        if len(key) < MIN_PREFIX_LEN:
            continue
        matches = [s for s in shorts if s.startswith(key)]
        if len(matches) != 1 or matches[0] in out:
            continue
        out.append(matches[0])
        if len(out) >= MAX_DEPENDENCIES:
            break
    return out


def parse_sub_tasks(value: Any, bucket_names: List[str]) -> List[SubTaskSpec]:
    """Sub-task specs with ``depends_on`` remapped onto the surviving entries."""
    if not isinstance(value, list):
        return []
    kept: List[tuple] = []
    for index, raw in enumerate(value):
        if not isinstance(raw, dict):
            continue
        title = parse_title(raw.get("title"))
        if title is None:
            continue
        kept.append((index, raw, title))
        if len(kept) >= MAX_SUB_TASKS:
            break
    remap = {orig: new for new, (orig, _, _) in enumerate(kept)}
    specs: List[SubTaskSpec] = []
    for orig, raw, title in kept:
        depends_on: List[int] = []
        deps = raw.get("depends_on")
        for dep in deps if isinstance(deps, list) else []:
            if isinstance(dep, bool) or not isinstance(dep, int):
                continue
            if dep == orig or dep not in remap:
                continue
            if remap[dep] not in depends_on:
                depends_on.append(remap[dep])
        specs.append(
            SubTaskSpec(
                title=title,
                description=parse_description(raw.get("description")) or "",
                bucket=parse_bucket(raw.get("bucket"), bucket_names),
                priority=parse_enum_priority(raw.get("priority")),
                progress=parse_enum_progress(raw.get("progress")),
                due_date=parse_date(raw.get("due_date")),
                depends_on=depends_on,
            )
        )
    return specs


def _sub_tasks_field(data: Dict[str, Any]) -> Any:
    if "sub_tasks" in data:
        return data.get("sub_tasks")
    return data.get("subtasks")


def parse_update(data: Dict[str, Any], context: List[ContextTask], bucket_names: List[str], *, is_edit: bool) -> TaskUpdate:
    return TaskUpdate(
        is_edit=is_edit,
        title=parse_title(data.get("title")),
        bucket=parse_bucket(data.get("bucket"), bucket_names),
        description=parse_description(data.get("description")),
        progress=parse_enum_progress(data.get("progress")),
        priority=parse_enum_priority(data.get("priority")),
        due_date=parse_date(data.get("due_date")),
        dependencies=parse_dependency_prefixes(data.get("dependencies"), context),
    )


def _parse_targets(value: Any) -> List[str]:
    if isinstance(value, str):
        value = [value]
    if not isinstance(value, list):
        return []
    targets: List[str] = []
    for item in value:
        if not isinstance(item, str) or not item.strip():
            continue
        token = item.strip().lower()
        if token not in targets:
            targets.append(token)
    if ALL_TARGETS in targets:
        return [ALL_TARGETS]
    return targets


def parse_triage_response(content: str, job: TriageJob) -> AIResult:
    data = load_object(content, TRIAGE_ENVELOPE_SCHEMA)
    action_name = _ACTION_ALIASES.get(data["action"].strip().lower())
    if action_name is None:
        raise ParseError(f"unknown action {data['action']!r}", content)
    target = _text(data, "target") or _text(data, "target_id")
    sub_tasks = parse_sub_tasks(_sub_tasks_field(data), job.bucket_names)
    result = AIResult(source_text=job.raw)

    action: Action
    if action_name == "create":
        update = parse_update(data, job.context, job.bucket_names, is_edit=False)
        if not update.title:
            raise ParseError("create without title", content)
        action = CreateAction()
        result.update = update
        result.sub_task_specs = sub_tasks
    elif action_name == "update":
        if not target:
            raise ParseError("update without target", content)
        action = UpdateAction(target.lower())
        result.update = parse_update(data, job.context, job.bucket_names, is_edit=True)
        result.sub_task_specs = sub_tasks
    elif action_name == "delete":
        if not target:
            raise ParseError("delete without target", content)
        action = DeleteAction(target.lower())
    elif action_name == "decompose":
        if not sub_tasks:
            raise ParseError("decompose without sub_tasks", content)
        action = DecomposeAction(target.lower() if target else None)
        result.sub_task_specs = sub_tasks
    else:
        targets = _parse_targets(data.get("targets", data.get("target_ids")))
        if not targets:
            raise ParseError("bulk_update without targets", content)
        instruction = _text(data, "bulk_instruction") or _text(data, "instruction") or job.raw
        action = BulkUpdateAction(targets=targets, instruction=instruction)
    result.triage_action = action
    return result


def parse_edit_response(content: str, job: EditJob) -> AIResult:
    data = load_object(content, EDIT_ENVELOPE_SCHEMA)
    result = AIResult(
        task_id=job.task_id,
        update=parse_update(data, job.context, job.bucket_names, is_edit=not job.enrich),
        source_text=job.instruction,
        lock_bucket=job.lock_bucket,
        lock_priority=job.lock_priority,
        lock_due_date=job.lock_due_date,
        enrich=job.enrich,
    )
    if not job.enrich:
        result.sub_task_specs = parse_sub_tasks(_sub_tasks_field(data), job.bucket_names)
    return result


def parse_response(content: str, job) -> AIResult:
    if isinstance(job, TriageJob):
        return parse_triage_response(content, job)
    return parse_edit_response(content, job)


def _spec_to_dict(spec: SubTaskSpec) -> Dict[str, Any]:
    out: Dict[str, Any] = {"title": spec.title}
    if spec.description:
        out["description"] = spec.description
    if spec.bucket:
        out["bucket"] = spec.bucket
    if spec.priority:
        out["priority"] = spec.priority.title
    if spec.progress:
        out["progress"] = spec.progress.title
    if spec.due_date:
        out["due_date"] = spec.due_date.isoformat()
    if spec.depends_on:
        out["depends_on"] = list(spec.depends_on)
    return out


def result_to_dict(result: AIResult) -> Dict[str, Any]:
    """Wire form of a parsed triage result (inverse of ``parse_triage_response``)."""
    out: Dict[str, Any] = {}
    action = result.triage_action
    if isinstance(action, CreateAction):
        out["action"] = "create"
    elif isinstance(action, UpdateAction):
        out["action"] = "update"
        out["target"] = action.target
    elif isinstance(action, DeleteAction):
        out["action"] = "delete"
        out["target"] = action.target
    elif isinstance(action, DecomposeAction):
        out["action"] = "decompose"
        if action.target:
            out["target"] = action.target
    elif isinstance(action, BulkUpdateAction):
        out["action"] = "bulk_update"
        out["targets"] = list(action.targets)
        out["bulk_instruction"] = action.instruction
    update = result.update
    if update.title:
        out["title"] = update.title
    if update.bucket:
        out["bucket"] = update.bucket
    if update.description:
        out["description"] = update.description
    if update.progress:
        out["progress"] = update.progress.title
    if update.priority:
        out["priority"] = update.priority.title
    if update.due_date:
        out["due_date"] = update.due_date.isoformat()
    if update.dependencies:
        out["dependencies"] = list(update.dependencies)
    if result.sub_task_specs:
        out["sub_tasks"] = [_spec_to_dict(s) for s in result.sub_task_specs]
    return out


__all__ = [
    "TITLE_MAX_BYTES",
    "DESCRIPTION_MAX_BYTES",
    "MAX_SUB_TASKS",
    "extract_json_object",
    "load_object",
    "parse_date",
    "parse_bucket",
    "parse_dependency_prefixes",
    "parse_sub_tasks",
    "parse_update",
    "parse_triage_response",
    "parse_edit_response",
    "parse_response",
    "result_to_dict",
]
