from .progress import Progress, Priority
from .task import Task, TaskUpdate, new_task, utc_now
from .buckets import BucketDef, default_buckets, find_bucket, match_bucket_name, validate_buckets
from .task_graph import (
    aggregate_progress,
    cascade_delete,
    children_of,
    find_task,
    reconcile_parents,
    resolve_prefix,
    short_id,
    sync_parent_progress,
)

__all__ = [
    "Progress",
    "Priority",
    "Task",
    "TaskUpdate",
    "new_task",
    "utc_now",
    "BucketDef",
    "default_buckets",
    "find_bucket",
    "match_bucket_name",
    "validate_buckets",
    "aggregate_progress",
    "cascade_delete",
    "children_of",
    "find_task",
    "reconcile_parents",
    "resolve_prefix",
    "short_id",
    "sync_parent_progress",
]
