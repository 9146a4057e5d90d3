"""Keyword routing used when no language model is available."""

from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Tuple

from core import Priority, TaskUpdate
from core.buckets import alias_key
from infrastructure.llm.jobs import AIResult, CreateAction
from infrastructure.llm.response_parser import TITLE_MAX_BYTES, parse_date
from util.text import truncate_bytes

ADMIN_KEYWORDS = frozenset(
    {
        "tax", "taxes", "invoice", "invoices", "receipt", "receipts", "bill", "bills", "pay", "payment",
        "bank", "accountant", "expense", "expenses", "budget", "insurance", "contract", "paperwork",
        "form", "forms", "renew", "license", "payroll", "refund", "reimburse",
    }
)
OWNER_KEYWORDS = frozenset(
    {
        "strategy", "strategic", "vision", "hire", "hiring", "fire", "investor", "investors", "board",
        "decide", "decision", "pricing", "roadmap", "fundraise", "fundraising", "negotiate", "partnership",
        "acquisition", "equity", "personal",
    }
)
TEAM_KEYWORDS = frozenset(
    {
        "team", "meeting", "sync", "standup", "review", "deploy", "release", "fix", "bug", "design",
        "coordinate", "delegate", "schedule", "onboard", "onboarding", "docs", "document", "test",
        "ship", "build", "update", "ticket",
    }
)


@dataclass
class NewTaskHints:
    title: str
    bucket: str
    bucket_locked: bool = False
    priority: Optional[Priority] = None
    due_date: Optional[date] = None


def default_bucket(bucket_names: List[str]) -> str:
    return bucket_names[0] if bucket_names else "Unassigned"


def _split_bucket_prefix(text: str, bucket_names: List[str]) -> Tuple[Optional[str], str]:
    lowered = text.lower()
    for name in bucket_names:
        prefix = f"{name.lower()}:"
        if lowered.startswith(prefix):
            return name, text[len(prefix):].lstrip()
    return None, text


def _take_due(tokens: List[str]) -> Tuple[Optional[date], List[str]]:
    for i, token in enumerate(tokens):
        if token.lower().startswith("due:"):
            due = parse_date(token[4:])
            if due is not None:
                return due, tokens[:i] + tokens[i + 1:]
    return None, tokens


def _take_priority(tokens: List[str]) -> Tuple[Optional[Priority], List[str]]:
    for i, token in enumerate(tokens):
        if token.lower().startswith("p:"):
            priority = Priority.from_string(token[2:])
            if priority is not None:
                return priority, tokens[:i] + tokens[i + 1:]
    return None, tokens


def _bucket_for_category(category: str, bucket_names: List[str], owner_name: str) -> Optional[str]:
    wanted = {
        "admin": {"admin", "finance", "administration"},
        "owner": {"owneronly", f"{alias_key(owner_name)}only", "strategy", "owner"},
        "team": {"team", "delegate", "coordination"},
    }[category]
    for name in bucket_names:
        if alias_key(name) in wanted:
            return name
    return None


def pick_bucket(text: str, bucket_names: List[str], owner_name: str = "John") -> str:
    """First keyword category hit decides; otherwise the first configured bucket."""
    words = {w.strip(".,;:!?()[]\"'").lower() for w in text.split()}
    for category, keywords in (("admin", ADMIN_KEYWORDS), ("owner", OWNER_KEYWORDS), ("team", TEAM_KEYWORDS)):
        if words & keywords:
            bucket = _bucket_for_category(category, bucket_names, owner_name)
            if bucket:
                return bucket
    return default_bucket(bucket_names)


def infer_new_task(text: str, bucket_names: List[str], owner_name: str = "John") -> Optional[NewTaskHints]:
    """Parse ``bucket:`` prefix, ``due:YYYY-MM-DD`` and ``p:<level>`` hints out of a line."""
    trimmed = (text or "").strip()
    if not trimmed:
        return None
    bucket, rest = _split_bucket_prefix(trimmed, bucket_names)
    due, tokens = _take_due(rest.split())
    priority, tokens = _take_priority(tokens)
    title = " ".join(tokens).strip() or trimmed
    return NewTaskHints(
        title=truncate_bytes(title, TITLE_MAX_BYTES),
        bucket=bucket or pick_bucket(title, bucket_names, owner_name),
        bucket_locked=bucket is not None,
        priority=priority,
        due_date=due,
    )


def fallback_result(text: str, bucket_names: List[str], owner_name: str = "John") -> Optional[AIResult]:
    hints = infer_new_task(text, bucket_names, owner_name)
    if hints is None:
        return None
    update = TaskUpdate(title=hints.title, bucket=hints.bucket, priority=hints.priority, due_date=hints.due_date)
    return AIResult(update=update, triage_action=CreateAction(), source_text=text, local=True)


__all__ = [
    "ADMIN_KEYWORDS",
    "OWNER_KEYWORDS",
    "TEAM_KEYWORDS",
    "NewTaskHints",
    "default_bucket",
    "pick_bucket",
    "infer_new_task",
    "fallback_result",
]
