from datetime import date

import pytest

from core import Priority
from core.desktop.devtools.application.fallback_router import (
    ADMIN_KEYWORDS,
    OWNER_KEYWORDS,
    TEAM_KEYWORDS,
    fallback_result,
    infer_new_task,
    pick_bucket,
)
from infrastructure.llm.jobs import CreateAction

BUCKETS = ["Team", "John-only", "Admin"]


def test_keyword_sets_are_disjoint():
    assert not ADMIN_KEYWORDS & OWNER_KEYWORDS
    assert not ADMIN_KEYWORDS & TEAM_KEYWORDS
    assert not OWNER_KEYWORDS & TEAM_KEYWORDS


@pytest.mark.parametrize(
    "text, expected",
    [
        ("send tax forms to accountant", "Admin"),
        ("Decide on pricing for Q3", "John-only"),
        ("schedule team standup", "Team"),
        ("water the plants", "Team"),
        ("pay the team bonus", "Admin"),
    ],
)
def test_pick_bucket(text, expected):
    assert pick_bucket(text, BUCKETS, "John") == expected


def test_pick_bucket_matches_owner_bucket_by_name():
    assert pick_bucket("hiring plan", ["Ops", "Ada only"], "Ada") == "Ada only"


def test_pick_bucket_falls_back_when_category_has_no_bucket():
    assert pick_bucket("pay invoice", ["Ops", "Home"], "John") == "Ops"


def test_infer_new_task_parses_hints():
    hints = infer_new_task("admin: renew passport due:2026-03-01 p:high", BUCKETS)
    assert hints.title == "renew passport"
    assert hints.bucket == "Admin"
    assert hints.bucket_locked is True
    assert hints.due_date == date(2026, 3, 1)
    assert hints.priority is Priority.HIGH


def test_infer_new_task_keeps_invalid_hints_in_title():
    hints = infer_new_task("call bank due:someday p:whenever", BUCKETS)
    assert hints.title == "call bank due:someday p:whenever"
    assert hints.due_date is None
    assert hints.priority is None
    assert hints.bucket == "Admin"
    assert hints.bucket_locked is False


def test_infer_new_task_empty():
    assert infer_new_task("   ", BUCKETS) is None
    assert fallback_result("", BUCKETS) is None


def test_fallback_result_is_a_local_create():
    result = fallback_result("send tax forms to accountant", BUCKETS)
    assert result.local is True
    assert result.triage_action == CreateAction()
    assert result.update.title == "send tax forms to accountant"
    assert result.update.bucket == "Admin"
    assert result.source_text == "send tax forms to accountant"
