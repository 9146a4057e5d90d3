from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from core.buckets import BucketDef, default_buckets, validate_buckets

DEFAULT_API_URL = "https://api.openai.com/v1/chat/completions"
DEFAULT_MODEL = "gpt-4o-mini"
DEFAULT_TIMEOUT_SECS = 60

_TRUE_WORDS = {"true", "1", "yes", "on"}
_FALSE_WORDS = {"false", "0", "no", "off"}


def parse_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    token = str(value if value is not None else "").strip().lower()
    if token in _TRUE_WORDS:
        return True
    if token in _FALSE_WORDS:
        return False
    return default


def _parse_timeout(value: Any) -> int:
    try:
        secs = int(str(value).strip())
    except (TypeError, ValueError):
        return DEFAULT_TIMEOUT_SECS
    return secs if secs > 0 else DEFAULT_TIMEOUT_SECS


@dataclass
class Settings:
    owner_name: str = "John"
    ai_enabled: bool = True
    api_key: str = ""
    model: str = ""
    api_url: str = ""
    timeout_secs: int = DEFAULT_TIMEOUT_SECS
    show_backlog: bool = True
    show_todo: bool = True
    show_in_progress: bool = True
    show_done: bool = False
    buckets: List[BucketDef] = field(default_factory=default_buckets)

    @property
    def bucket_names(self) -> List[str]:
        return [b.name for b in self.buckets]

    @property
    def first_bucket(self) -> str:
        return self.buckets[0].name if self.buckets else default_buckets()[0].name

    def to_dict(self) -> Dict[str, Any]:
        return {
            "owner_name": self.owner_name,
            "ai_enabled": self.ai_enabled,
            "api_key": self.api_key,
            "model": self.model,
            "api_url": self.api_url,
            "timeout_secs": self.timeout_secs,
            "show_backlog": self.show_backlog,
            "show_todo": self.show_todo,
            "show_in_progress": self.show_in_progress,
            "show_done": self.show_done,
            "buckets": [b.to_dict() for b in self.buckets],
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "Settings":
        """Lenient load: unknown keys ignored, bad values fall back to defaults."""
        data = data or {}
        defaults = cls()
        buckets = [BucketDef.from_dict(b) for b in data.get("buckets") or [] if b]
        try:
            validate_buckets(buckets)
        except ValueError:
            buckets = default_buckets()
        return cls(
            owner_name=str(data.get("owner_name") or defaults.owner_name).strip(),
            ai_enabled=parse_bool(data.get("ai_enabled"), defaults.ai_enabled),
            api_key=str(data.get("api_key") or "").strip(),
            model=str(data.get("model") or "").strip(),
            api_url=str(data.get("api_url") or "").strip(),
            timeout_secs=_parse_timeout(data.get("timeout_secs", DEFAULT_TIMEOUT_SECS)),
            show_backlog=parse_bool(data.get("show_backlog"), defaults.show_backlog),
            show_todo=parse_bool(data.get("show_todo"), defaults.show_todo),
            show_in_progress=parse_bool(data.get("show_in_progress"), defaults.show_in_progress),
            show_done=parse_bool(data.get("show_done"), defaults.show_done),
            buckets=buckets,
        )


def load_legacy_settings(path: Path) -> Dict[str, Any]:
    """Read an old ``settings.yaml``; unreadable files count as empty."""
    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError):
        return {}
    if not isinstance(data, dict):
        return {}
    # older files nested the LLM keys under "ai"
    ai = data.pop("ai", None)
    if isinstance(ai, dict):
        for key in ("api_key", "model", "api_url", "timeout_secs"):
            data.setdefault(key, ai.get(key))
        if "enabled" in ai:
            data.setdefault("ai_enabled", ai.get("enabled"))
    return data


@dataclass(frozen=True)
class LLMConfig:
    api_key: str
    model: str
    api_url: str
    timeout_secs: int


def build_llm_config(settings: Settings) -> Optional[LLMConfig]:
    """Effective LLM endpoint or ``None`` when AI is off or has no key."""
    if not settings.ai_enabled:
        return None
    api_key = settings.api_key or os.environ.get("OPENAI_API_KEY", "").strip()
    if not api_key:
        return None
    model = settings.model or os.environ.get("AIPM_MODEL", "").strip() or DEFAULT_MODEL
    api_url = settings.api_url or os.environ.get("AIPM_API_URL", "").strip() or DEFAULT_API_URL
    return LLMConfig(api_key=api_key, model=model, api_url=api_url, timeout_secs=settings.timeout_secs)
