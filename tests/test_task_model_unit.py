"""Unit tests for the task entity and its progress state machine."""

from datetime import date, datetime, timedelta, timezone

import pytest

from core import Priority, Progress, Task, TaskUpdate, new_task

T0 = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)


def make_task(**overrides) -> Task:
    fields = dict(
        id="aaaa1111-0000-4000-8000-000000000001",
        bucket="Team",
        title="Write docs",
        created_at=T0,
        updated_at=T0,
    )
    fields.update(overrides)
    return Task(**fields)


def test_set_progress_same_value_is_noop():
    task = make_task(progress=Progress.TODO)
    later = T0 + timedelta(hours=1)

    assert task.set_progress(Progress.IN_PROGRESS, later) is True
    stamp = task.updated_at
    assert task.set_progress(Progress.IN_PROGRESS, later + timedelta(hours=1)) is False
    assert task.updated_at == stamp


def test_start_date_only_on_todo_to_in_progress_edge():
    task = make_task(progress=Progress.BACKLOG)
    task.set_progress(Progress.IN_PROGRESS, T0 + timedelta(minutes=1))
    assert task.start_date is None

    task = make_task(progress=Progress.TODO)
    first = T0 + timedelta(minutes=5)
    task.set_progress(Progress.IN_PROGRESS, first)
    assert task.start_date == first

    task.set_progress(Progress.TODO, first + timedelta(minutes=1))
    task.set_progress(Progress.IN_PROGRESS, first + timedelta(minutes=2))
    assert task.start_date == first


def test_advance_and_retreat_are_clamped():
    task = make_task(progress=Progress.DONE)
    assert task.advance(T0 + timedelta(seconds=1)) is False
    assert task.progress == Progress.DONE

    task = make_task(progress=Progress.BACKLOG)
    assert task.retreat(T0 + timedelta(seconds=1)) is False
    assert task.progress == Progress.BACKLOG
    assert task.advance(T0 + timedelta(seconds=2)) is True
    assert task.progress == Progress.TODO


def test_updated_at_strictly_advances_even_with_stale_clock():
    task = make_task(progress=Progress.BACKLOG)
    task.set_progress(Progress.TODO, T0)
    assert task.updated_at > T0


def test_progress_aliases_and_ordering():
    assert Progress.from_string("In Progress") is Progress.IN_PROGRESS
    assert Progress.from_string("in-progress") is Progress.IN_PROGRESS
    assert Progress.from_string("inprogress") is Progress.IN_PROGRESS
    assert Progress.from_string("archived") is None
    assert Progress.BACKLOG < Progress.TODO < Progress.IN_PROGRESS < Progress.DONE
    assert Priority.from_string("MED") is Priority.MEDIUM
    assert Priority.from_string("crit") is Priority.CRITICAL
    assert Priority.from_string("urgent") is None


def test_apply_update_description_rules():
    task = make_task(description="Original")
    now = T0 + timedelta(hours=1)

    assert task.apply_update(TaskUpdate(description="From triage"), now) is False
    assert task.description == "Original"

    assert task.apply_update(TaskUpdate(is_edit=True, description="From edit"), now) is True
    assert task.description == "From edit"

    empty = make_task(description="")
    assert empty.apply_update(TaskUpdate(description="Filled"), now) is True
    assert empty.description == "Filled"


def test_apply_update_only_touches_present_fields():
    task = make_task(priority=Priority.MEDIUM, due_date=date(2026, 2, 1))
    now = T0 + timedelta(hours=1)

    changed = task.apply_update(TaskUpdate(priority=Priority.CRITICAL), now)

    assert changed is True
    assert task.priority is Priority.CRITICAL
    assert task.bucket == "Team"
    assert task.due_date == date(2026, 2, 1)
    assert task.updated_at == now


def test_apply_update_dependencies_exclude_self_and_duplicates():
    task = make_task()
    other = "bbbb2222-0000-4000-8000-000000000002"
    task.apply_update(TaskUpdate(), T0 + timedelta(hours=1), [other, task.id, other])
    assert task.dependencies == [other]


def test_new_task_defaults_and_validation():
    task = new_task("  Call bank  ", "Admin", now=T0)
    assert task.title == "Call bank"
    assert task.progress is Progress.BACKLOG
    assert task.priority is Priority.MEDIUM
    assert task.created_at == task.updated_at == T0
    assert len(task.id) == 36

    with pytest.raises(ValueError):
        new_task("   ", "Admin")


def test_task_dict_round_trip():
    task = make_task(
        description="notes",
        dependencies=["bbbb2222-0000-4000-8000-000000000002"],
        progress=Progress.IN_PROGRESS,
        priority=Priority.HIGH,
        due_date=date(2026, 3, 1),
        start_date=T0,
    )
    restored = Task.from_dict(task.to_dict())
    assert restored == task


def test_from_dict_rejects_unknown_progress():
    data = make_task().to_dict()
    data["progress"] = "someday"
    with pytest.raises(ValueError):
        Task.from_dict(data)
