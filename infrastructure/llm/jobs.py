"""In-memory job and result types exchanged with the AI worker."""

from dataclasses import dataclass, field
from datetime import date
from typing import List, Optional, Union

from core import Priority, Progress, TaskUpdate

ALL_TARGETS = "all"


@dataclass(frozen=True)
class ContextTask:
    id: str
    bucket: str
    title: str


@dataclass(frozen=True)
class ChatEntry:
    user_input: str
    summary: str


@dataclass
class TriageJob:
    raw: str
    context: List[ContextTask]
    triage_blob: str
    bucket_names: List[str] = field(default_factory=list)
    history: List[ChatEntry] = field(default_factory=list)


@dataclass
class EditJob:
    task_id: str
    snapshot: str
    instruction: str
    context: List[ContextTask]
    bucket_names: List[str] = field(default_factory=list)
    lock_bucket: bool = False
    lock_priority: bool = False
    lock_due_date: bool = False
    # enrichment of a freshly created task rather than a user edit
    enrich: bool = False


Job = Union[TriageJob, EditJob]


@dataclass
class SubTaskSpec:
    title: str
    description: str = ""
    bucket: Optional[str] = None
    priority: Optional[Priority] = None
    progress: Optional[Progress] = None
    due_date: Optional[date] = None
    depends_on: List[int] = field(default_factory=list)


@dataclass(frozen=True)
class CreateAction:
    pass


@dataclass(frozen=True)
class UpdateAction:
    target: str


@dataclass(frozen=True)
class DeleteAction:
    target: str


@dataclass(frozen=True)
class DecomposeAction:
    target: Optional[str] = None


@dataclass(frozen=True)
class BulkUpdateAction:
    targets: List[str]
    instruction: str


Action = Union[CreateAction, UpdateAction, DeleteAction, DecomposeAction, BulkUpdateAction]


@dataclass
class AIResult:
    task_id: Optional[str] = None
    update: TaskUpdate = field(default_factory=TaskUpdate)
    error: Optional[str] = None
    triage_action: Optional[Action] = None
    sub_task_specs: List[SubTaskSpec] = field(default_factory=list)
    # input echoed back for the chat history
    source_text: str = ""
    lock_bucket: bool = False
    lock_priority: bool = False
    lock_due_date: bool = False
    enrich: bool = False
    # produced by the keyword router instead of the model
    local: bool = False

    @property
    def ok(self) -> bool:
        return self.error is None


__all__ = [
    "ALL_TARGETS",
    "ContextTask",
    "ChatEntry",
    "TriageJob",
    "EditJob",
    "Job",
    "SubTaskSpec",
    "CreateAction",
    "UpdateAction",
    "DeleteAction",
    "DecomposeAction",
    "BulkUpdateAction",
    "Action",
    "AIResult",
]
