from datetime import date, datetime, timezone

from config import Settings
from core import Priority, Progress, Task, TaskUpdate
from core.desktop.devtools.application.applier import Applier
from core.desktop.devtools.application.board import Board
from core.desktop.devtools.application.input_router import InputRouter
from core.desktop.devtools.interface.tui_app import BoardTUI
from core.desktop.devtools.interface.tui_display import detail_lines, display_width, pad_display, task_row, trim_display
from core.desktop.devtools.interface.tui_themes import DEFAULT_THEME, THEMES, get_theme_palette
from infrastructure.llm.jobs import AIResult

T0 = datetime(2026, 1, 5, 9, 0, tzinfo=timezone.utc)


class FakeWorker:
    configured = True

    def __init__(self, results=None):
        self.results = list(results or [])
        self.jobs = []
        self.stopped = False

    @property
    def pending(self):
        return len(self.jobs)

    def enqueue(self, job):
        self.jobs.append(job)

    def drain(self):
        out, self.results = self.results, []
        return out

    def stop(self):
        self.stopped = True


def _render_lines(text):
    return "".join(part for _, part in text).split("\n")


def _task(task_id, title, bucket="Team", **kw):
    return Task(id=task_id, bucket=bucket, title=title, created_at=T0, updated_at=T0, **kw)


def make_tui(tasks=None, worker=None):
    board = Board(tasks=list(tasks or []), settings=Settings())
    applier = Applier(board, None, enqueue=worker.enqueue if worker else None)
    return BoardTUI(applier, InputRouter(applier, worker), worker)


def test_display_width_handles_wide_characters():
    assert display_width("abc") == 3
    assert display_width("日本") == 4
    assert trim_display("日本語テキスト", 7) == "日本語…"
    assert trim_display("short", 10) == "short"
    assert pad_display("ab", 4) == "ab  "


def test_task_row_fits_width():
    task = _task("aaaa0000-0000-4000-8000-000000000000", "A very long title " * 5, priority=Priority.HIGH, due_date=date(2026, 2, 1))
    fragments = task_row(task, 60, selected=True, is_child=True)
    line = "".join(text for _, text in fragments).rstrip("\n")
    assert display_width(line) <= 60
    assert "aaaa0000" in line
    assert "2026-02-01" in line
    assert any("class:selected" in style for style, _ in fragments)


def test_detail_lines_show_dependencies_by_title():
    dep = "bbbb0000-0000-4000-8000-000000000000"
    task = _task("aaaa0000-0000-4000-8000-000000000000", "Ship", dependencies=[dep], description="notes")
    text = "".join(part for _, part in detail_lines(task, lambda task_id: "Build"))
    assert "Depends on: bbbb0000 Build" in text
    assert text.endswith("notes")
    assert "No task selected" in "".join(part for _, part in detail_lines(None, str))


def test_task_list_groups_by_bucket_and_respects_width():
    parent = _task("aaaa0000-0000-4000-8000-000000000000", "Extremely long task title that should be trimmed to fit")
    child = _task("bbbb0000-0000-4000-8000-000000000000", "Child", parent_id=parent.id)
    admin = _task("cccc0000-0000-4000-8000-000000000000", "Taxes", bucket="Admin")
    tui = make_tui([admin, parent, child])
    tui.get_terminal_width = lambda: 60
    tui.get_terminal_height = lambda: 20

    lines = [line for line in _render_lines(tui.get_task_list_text()) if line]

    assert lines[0] == "Team"
    assert "aaaa0000" in lines[1]
    assert "↳" in lines[2]
    assert lines[3] == "Admin"
    assert max(display_width(line) for line in lines) <= 60


def test_scrolled_list_starting_on_a_child_still_shows_its_section():
    parent = _task("aaaa0000-0000-4000-8000-000000000000", "Launch")
    children = [
        _task(f"{c * 4}0000-0000-4000-8000-000000000000", f"Step {c}", parent_id=parent.id, bucket=bucket)
        for c, bucket in zip("bcde", ["Team", "Admin", "Team", "Team"])
    ]
    tui = make_tui([parent] + children)
    tui.board.selected_id = children[-1].id
    tui.get_terminal_width = lambda: 60
    tui.get_terminal_height = lambda: 9

    lines = [line for line in _render_lines(tui.get_task_list_text()) if line]

    assert lines[0] == "Team"
    assert "Admin" not in lines
    assert ["Step c" in line for line in lines[1:]] == [True, False, False]


def test_empty_board_shows_hint():
    tui = make_tui()
    assert "No tasks yet" in "".join(part for _, part in tui.get_task_list_text())


def test_pump_results_applies_worker_output_and_sets_status():
    task = _task("aaaa0000-0000-4000-8000-000000000000", "Ship")
    worker = FakeWorker([AIResult(task_id=task.id, update=TaskUpdate(is_edit=True, priority=Priority.CRITICAL))])
    tui = make_tui([task], worker)

    assert tui.pump_results() == 1
    assert task.priority is Priority.CRITICAL
    assert tui.status_message == "AI updated: Ship"
    assert "AI updated: Ship" in "".join(part for _, part in tui.get_toast_text())


def test_status_bar_reports_ai_state():
    tui = make_tui(worker=FakeWorker())
    text = "".join(part for _, part in tui.get_status_text())
    assert "AI on" in text
    assert "0 tasks" in text


def test_progress_keys_step_selected_task():
    task = _task("aaaa0000-0000-4000-8000-000000000000", "Ship", progress=Progress.TODO)
    tui = make_tui([task])
    tui._step_selected(forward=True)
    assert task.progress is Progress.IN_PROGRESS
    tui._step_selected(forward=False)
    assert task.progress is Progress.TODO


def test_run_stops_worker(monkeypatch):
    worker = FakeWorker()
    tui = make_tui(worker=worker)
    monkeypatch.setattr(tui.app, "run", lambda: None)
    tui.run()
    assert worker.stopped is True


def test_themes_share_palette_keys():
    base = set(get_theme_palette(DEFAULT_THEME))
    for name in THEMES:
        assert set(get_theme_palette(name)) == base
