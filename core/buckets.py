from dataclasses import dataclass
from typing import Any, Dict, List, Optional


@dataclass
class BucketDef:
    name: str
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "description": self.description}

    @classmethod
    def from_dict(cls, data: Any) -> "BucketDef":
        if isinstance(data, str):
            return cls(name=data.strip())
        return cls(name=str(data.get("name") or "").strip(), description=str(data.get("description") or "").strip())


def default_buckets() -> List[BucketDef]:
    return [
        BucketDef("Team", "Work that can be delegated or coordinated with the team"),
        BucketDef("Owner-only", "Decisions and strategy only the owner can handle"),
        BucketDef("Admin", "Paperwork, finance, and administrative chores"),
    ]


def _fold(name: str) -> str:
    return (name or "").strip().lower()


def find_bucket(buckets: List[BucketDef], name: str) -> Optional[BucketDef]:
    """Case-insensitive lookup."""
    key = _fold(name)
    for bucket in buckets:
        if _fold(bucket.name) == key:
            return bucket
    return None


def alias_key(name: str) -> str:
    """Lenient form used for LLM output: ignores case, dashes, underscores and spaces."""
    return "".join(ch for ch in _fold(name) if ch not in "-_ ")


def match_bucket_name(value: Optional[str], names: List[str]) -> Optional[str]:
    """Map a free-form bucket token onto a configured name (``john_only`` → ``John-only``)."""
    if not value:
        return None
    key = alias_key(value)
    if not key:
        return None
    for name in names:
        if alias_key(name) == key:
            return name
    return None


def validate_buckets(buckets: List[BucketDef]) -> None:
    """Raise ``ValueError`` unless the list is non-empty with unique, non-blank names."""
    if not buckets:
        raise ValueError("at least one bucket is required")
    seen = set()
    for bucket in buckets:
        key = _fold(bucket.name)
        if not key:
            raise ValueError("bucket name must not be empty")
        if key in seen:
            raise ValueError(f"duplicate bucket name: {bucket.name}")
        seen.add(key)


__all__ = ["BucketDef", "default_buckets", "find_bucket", "alias_key", "match_bucket_name", "validate_buckets"]
