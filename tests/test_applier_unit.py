from datetime import date, datetime, timedelta, timezone

from config import Settings
from core import Priority, Progress, Task, TaskUpdate
from core.buckets import BucketDef
from core.desktop.devtools.application.applier import Applier
from core.desktop.devtools.application.board import Board
from core.task_graph import children_of, find_task, short_id
from infrastructure.file_repository import StorageError
from infrastructure.llm.jobs import (
    AIResult,
    BulkUpdateAction,
    CreateAction,
    DecomposeAction,
    DeleteAction,
    EditJob,
    SubTaskSpec,
    UpdateAction,
)

T0 = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)


class Clock:
    def __init__(self):
        self.now = T0

    def __call__(self):
        self.now = self.now + timedelta(seconds=1)
        return self.now


class MemoryRepository:
    def __init__(self, fail=False):
        self.saved = []
        self.settings_saved = []
        self.fail = fail

    def load_tasks(self):
        return []

    def save_tasks(self, tasks):
        if self.fail:
            raise StorageError("Save failed: disk full")
        self.saved.append([t.to_dict() for t in tasks])

    def load_settings(self):
        return Settings()

    def save_settings(self, settings):
        self.settings_saved.append(settings.to_dict())


def _task(task_id, title, bucket="Team", parent_id=None, **kw):
    return Task(id=task_id, bucket=bucket, title=title, parent_id=parent_id, created_at=T0, updated_at=T0, **kw)


def make_applier(tasks=None, enqueue=None, repository=None, settings=None):
    board = Board(tasks=list(tasks or []), settings=settings or Settings())
    board.clamp_selection()
    return Applier(board, repository or MemoryRepository(), enqueue=enqueue, clock=Clock())


def test_triage_create_fills_defaults():
    applier = make_applier()
    result = AIResult(
        update=TaskUpdate(title="Send tax forms", bucket="Admin", priority=Priority.HIGH),
        triage_action=CreateAction(),
        source_text="send tax forms to accountant",
    )

    assert applier.apply(result) is True

    [task] = applier.board.tasks
    assert (task.title, task.bucket, task.priority, task.progress) == ("Send tax forms", "Admin", Priority.HIGH, Progress.BACKLOG)
    assert applier.board.selected_id == task.id
    assert applier.board.pop_toasts() == ["AI created: Send tax forms"]
    assert applier.board.chat_history[-1].user_input == "send tax forms to accountant"
    assert applier.board.chat_history[-1].summary == "AI created: Send tax forms"
    assert len(applier.repository.saved) == 1


def test_create_without_bucket_uses_first_bucket_and_resolves_dependencies():
    existing = _task("3f2a9c10-0000-4000-8000-000000000000", "Ship")
    applier = make_applier([existing])
    result = AIResult(update=TaskUpdate(title="Announce", dependencies=["3f2a9c10"]), triage_action=CreateAction())
    applier.apply(result)
    created = applier.board.tasks[-1]
    assert created.bucket == "Team"
    assert created.dependencies == [existing.id]


def test_edit_with_locks_keeps_locked_fields():
    task = _task("aaaa0000-0000-4000-8000-000000000000", "Prep deck")
    applier = make_applier([task])
    result = AIResult(
        task_id=task.id,
        update=TaskUpdate(is_edit=True, bucket="Admin", priority=Priority.CRITICAL),
        lock_bucket=True,
    )

    applier.apply(result)

    assert task.bucket == "Team"
    assert task.priority is Priority.CRITICAL
    assert task.due_date is None
    assert result.update.bucket == "Admin"


def test_enrichment_ignores_sub_tasks_and_keeps_description_rule():
    task = _task("aaaa0000-0000-4000-8000-000000000000", "Pay invoice", description="typed by user")
    applier = make_applier([task])
    result = AIResult(
        task_id=task.id,
        update=TaskUpdate(description="AI text", due_date=date(2026, 2, 1)),
        sub_task_specs=[SubTaskSpec("nope")],
        enrich=True,
        lock_due_date=True,
    )
    applier.apply(result)
    assert task.description == "typed by user"
    assert task.due_date is None
    assert len(applier.board.tasks) == 1


def test_decompose_builds_dag_under_target():
    parent = _task("aaaa0000-0000-4000-8000-000000000000", "Launch", bucket="Admin")
    applier = make_applier([parent])
    specs = [SubTaskSpec("A"), SubTaskSpec("B", depends_on=[0]), SubTaskSpec("C", depends_on=[0, 1, 2])]

    applier.apply(AIResult(triage_action=DecomposeAction("aaaa0000"), sub_task_specs=specs))

    kids = children_of(applier.board.tasks, parent.id)
    by_title = {t.title: t for t in kids}
    assert sorted(by_title) == ["A", "B", "C"]
    assert by_title["B"].dependencies == [by_title["A"].id]
    assert by_title["C"].dependencies == [by_title["A"].id, by_title["B"].id]
    assert all(t.bucket == "Admin" for t in kids)
    assert applier.board.pop_toasts() == ["AI created 3 sub-tasks"]


def test_decompose_without_target_uses_selection():
    parent = _task("aaaa0000-0000-4000-8000-000000000000", "Launch")
    applier = make_applier([parent])
    applier.board.selected_id = parent.id
    applier.apply(AIResult(triage_action=DecomposeAction(None), sub_task_specs=[SubTaskSpec("A")]))
    assert [t.title for t in children_of(applier.board.tasks, parent.id)] == ["A"]


def test_decompose_without_any_parent_creates_top_level():
    applier = make_applier()
    applier.apply(AIResult(triage_action=DecomposeAction(None), sub_task_specs=[SubTaskSpec("A"), SubTaskSpec("B")]))
    assert [(t.title, t.parent_id, t.bucket) for t in applier.board.tasks] == [("A", None, "Team"), ("B", None, "Team")]


def test_decompose_on_child_attaches_to_grandparent():
    parent = _task("aaaa0000-0000-4000-8000-000000000000", "Launch")
    child = _task("bbbb0000-0000-4000-8000-000000000000", "Write post", parent_id=parent.id)
    applier = make_applier([parent, child])
    applier.apply(AIResult(triage_action=DecomposeAction("bbbb0000"), sub_task_specs=[SubTaskSpec("Outline")]))
    outline = applier.board.tasks[-1]
    assert outline.parent_id == parent.id


def test_delete_cascades_and_scrubs():
    parent = _task("aaaa0000-0000-4000-8000-000000000000", "P")
    x = _task("bbbb0000-0000-4000-8000-000000000000", "X", parent_id=parent.id)
    y = _task("cccc0000-0000-4000-8000-000000000000", "Y", parent_id=parent.id)
    z = _task("dddd0000-0000-4000-8000-000000000000", "Z", dependencies=[x.id])
    applier = make_applier([parent, x, y, z])

    applier.apply(AIResult(triage_action=DeleteAction("aaaa0000")))

    assert applier.board.tasks == [z]
    assert z.dependencies == []
    assert applier.board.pop_toasts() == ["AI deleted: P (+2 sub-tasks)"]
    assert applier.board.selected_id == z.id


def test_update_unknown_prefix_toasts_not_found():
    applier = make_applier([_task("aaaa0000-0000-4000-8000-000000000000", "P")])
    assert applier.apply(AIResult(triage_action=UpdateAction("ffff"), update=TaskUpdate(title="X"))) is False
    assert applier.board.pop_toasts() == ["AI: task ffff not found"]


def test_update_with_sub_tasks_treats_target_as_parent():
    target = _task("aaaa0000-0000-4000-8000-000000000000", "Onboarding")
    applier = make_applier([target])
    result = AIResult(
        triage_action=UpdateAction("aaaa"),
        update=TaskUpdate(is_edit=True, priority=Priority.HIGH),
        sub_task_specs=[SubTaskSpec("Laptop"), SubTaskSpec("Accounts")],
    )
    applier.apply(result)
    assert target.priority is Priority.HIGH
    assert len(children_of(applier.board.tasks, target.id)) == 2
    assert applier.board.pop_toasts() == ["AI updated: Onboarding (+2 sub-tasks)"]


def test_update_without_changes_reports_no_changes():
    target = _task("aaaa0000-0000-4000-8000-000000000000", "Onboarding")
    applier = make_applier([target])
    applier.apply(AIResult(triage_action=UpdateAction("aaaa"), update=TaskUpdate(title="Onboarding")))
    assert applier.board.pop_toasts() == ["AI: no changes for Onboarding"]


def test_bulk_all_fans_out_to_top_level_only_and_each_result_toasts_once():
    tasks = [_task(f"{c * 4}0000-0000-4000-8000-000000000000", c.upper()) for c in "abc"]
    child = _task("dddd0000-0000-4000-8000-000000000000", "kid", parent_id=tasks[0].id)
    jobs = []
    applier = make_applier(tasks + [child], enqueue=jobs.append)

    applier.apply(AIResult(triage_action=BulkUpdateAction(["all"], "set priority to high"), source_text="mark all as high priority"))

    assert [j.task_id for j in jobs] == [t.id for t in tasks]
    assert all(isinstance(j, EditJob) and j.instruction == "set priority to high" for j in jobs)
    assert applier.board.pop_toasts() == ["AI updating 3 tasks…"]

    for job in jobs:
        applier.apply(AIResult(task_id=job.task_id, update=TaskUpdate(is_edit=True, priority=Priority.HIGH)))
        assert len(applier.board.pop_toasts()) == 1
    assert all(t.priority is Priority.HIGH for t in tasks)
    assert child.priority is Priority.MEDIUM


def test_bulk_without_worker_toasts_not_configured():
    applier = make_applier([_task("aaaa0000-0000-4000-8000-000000000000", "A")])
    applier.apply(AIResult(triage_action=BulkUpdateAction(["aaaa"], "x")))
    assert applier.board.pop_toasts() == ["AI not configured"]


def test_edit_result_for_deleted_task_is_dropped():
    applier = make_applier()
    changed = applier.apply(AIResult(task_id="aaaa0000-0000-4000-8000-000000000000", update=TaskUpdate(title="X")))
    assert changed is False
    assert applier.board.pop_toasts() == ["AI: task aaaa0000 not found"]


def test_error_results_toast_and_record_triage_history():
    applier = make_applier()
    applier.apply(AIResult(error="AI HTTP 500: boom", source_text="hello"))
    applier.apply(AIResult(task_id="x", error="AI transport error: down", source_text="edit"))
    assert applier.board.pop_toasts() == ["AI HTTP 500: boom", "AI transport error: down"]
    assert [(e.user_input, e.summary) for e in applier.board.chat_history] == [("hello", "AI HTTP 500: boom")]


def test_parent_progress_aggregates_after_child_changes():
    parent = _task("aaaa0000-0000-4000-8000-000000000000", "P")
    a = _task("bbbb0000-0000-4000-8000-000000000000", "A", parent_id=parent.id, progress=Progress.TODO)
    b = _task("cccc0000-0000-4000-8000-000000000000", "B", parent_id=parent.id, progress=Progress.IN_PROGRESS)
    c = _task("dddd0000-0000-4000-8000-000000000000", "C", parent_id=parent.id, progress=Progress.BACKLOG)
    applier = make_applier([parent, a, b, c])

    applier.set_progress(b.id, Progress.DONE)
    assert parent.progress is Progress.IN_PROGRESS

    applier.set_progress(a.id, Progress.DONE)
    applier.set_progress(c.id, Progress.DONE)
    assert parent.progress is Progress.DONE


def test_step_progress_sets_start_date_once():
    task = _task("aaaa0000-0000-4000-8000-000000000000", "A", progress=Progress.TODO)
    applier = make_applier([task])
    applier.step_progress(task.id, forward=True)
    started = task.start_date
    assert task.progress is Progress.IN_PROGRESS and started is not None
    applier.step_progress(task.id, forward=False)
    applier.step_progress(task.id, forward=True)
    assert task.start_date == started


def test_undo_restores_previous_tasks_once():
    task = _task("aaaa0000-0000-4000-8000-000000000000", "A")
    applier = make_applier([task])
    applier.delete_task(task.id)
    assert applier.board.tasks == []

    assert applier.undo() is True
    assert [t.title for t in applier.board.tasks] == ["A"]
    assert applier.undo() is False
    assert applier.board.pop_toasts()[-2:] == ["Undone", "Nothing to undo"]


def test_no_op_step_keeps_undo_of_previous_delete():
    doomed = _task("aaaa0000-0000-4000-8000-000000000000", "A")
    done = _task("bbbb0000-0000-4000-8000-000000000000", "Done one", progress=Progress.DONE)
    repo = MemoryRepository()
    applier = make_applier([doomed, done], repository=repo)
    applier.delete_task(doomed.id)
    saves = len(repo.saved)

    assert applier.step_progress(done.id, forward=True) is False
    assert applier.set_progress(done.id, Progress.DONE) is False
    assert applier.edit_task(done.id, TaskUpdate(title="Done one")) is False
    assert len(repo.saved) == saves

    assert applier.undo() is True
    assert sorted(t.title for t in applier.board.tasks) == ["A", "Done one"]


def test_ai_update_without_changes_skips_save_and_keeps_undo():
    doomed = _task("aaaa0000-0000-4000-8000-000000000000", "A")
    target = _task("bbbb0000-0000-4000-8000-000000000000", "Onboarding")
    repo = MemoryRepository()
    applier = make_applier([doomed, target], repository=repo)
    applier.delete_task(doomed.id)
    saves = len(repo.saved)

    changed = applier.apply(AIResult(triage_action=UpdateAction("bbbb"), update=TaskUpdate(title="Onboarding")))
    assert changed is False
    assert len(repo.saved) == saves
    assert applier.undo() is True
    assert find_task(applier.board.tasks, doomed.id) is not None


def test_save_failure_is_toasted_and_remembered():
    applier = make_applier(repository=MemoryRepository(fail=True))
    applier.create_local("Call bank")
    assert applier.last_save_error == "Save failed: disk full"
    assert "Save failed: disk full" in applier.board.pop_toasts()
    assert [t.title for t in applier.board.tasks] == ["Call bank"]


def test_create_local_and_edit_task():
    applier = make_applier()
    task = applier.create_local("Draft memo", "Admin", priority=Priority.LOW)
    assert task.bucket == "Admin" and task.priority is Priority.LOW
    assert applier.edit_task(task.id, TaskUpdate(is_edit=True, description="short")) is True
    assert task.description == "short"
    assert applier.edit_task("missing", TaskUpdate(title="x")) is False


def test_bucket_rename_moves_tasks_and_saves_settings():
    task = _task("aaaa0000-0000-4000-8000-000000000000", "A", bucket="Admin")
    applier = make_applier([task])
    assert applier.rename_bucket("admin", "Finance") is True
    assert task.bucket == "Finance"
    assert "Finance" in applier.board.settings.bucket_names
    assert applier.repository.settings_saved
    assert applier.rename_bucket("Finance", "team") is False


def test_bucket_delete_moves_tasks_to_first_bucket():
    task = _task("aaaa0000-0000-4000-8000-000000000000", "A", bucket="Admin")
    applier = make_applier([task])
    assert applier.delete_bucket("Admin") is True
    assert task.bucket == "Team"
    assert applier.board.settings.bucket_names == ["Team", "Owner-only"]


def test_last_bucket_cannot_be_deleted():
    applier = make_applier(settings=Settings(buckets=[BucketDef("Only")]))
    assert applier.delete_bucket("Only") is False
    assert applier.board.pop_toasts() == ["Cannot delete the last bucket"]


def test_add_and_describe_bucket():
    applier = make_applier()
    assert applier.add_bucket("Home", "chores") is True
    assert applier.add_bucket("home") is False
    assert applier.describe_bucket("HOME", "house stuff") is True
    home = applier.board.settings.buckets[-1]
    assert (home.name, home.description) == ("Home", "house stuff")


def test_selection_clamps_after_delete():
    a = _task("aaaa0000-0000-4000-8000-000000000000", "A")
    b = _task("bbbb0000-0000-4000-8000-000000000000", "B")
    applier = make_applier([a, b])
    applier.board.selected_id = b.id
    applier.delete_task(b.id)
    assert applier.board.selected_id == a.id
    assert find_task(applier.board.tasks, b.id) is None
    assert short_id(a.id) == "aaaa0000"
