#!/usr/bin/env python3
"""Interactive board: task list, detail panel and a command line."""

import logging
import os
import time
from typing import List, Optional

from prompt_toolkit.application import Application
from prompt_toolkit.formatted_text import FormattedText
from prompt_toolkit.key_binding import KeyBindings
from prompt_toolkit.layout import HSplit, Layout, VSplit, Window
from prompt_toolkit.layout.controls import FormattedTextControl
from prompt_toolkit.layout.dimension import Dimension
from prompt_toolkit.widgets import TextArea

from core.task_graph import find_task
from core.desktop.devtools.application.applier import Applier
from core.desktop.devtools.application.input_router import InputRouter
from infrastructure.llm.worker import AIWorker
from .tui_display import detail_lines, task_row, trim_display
from .tui_themes import DEFAULT_THEME, build_style

logger = logging.getLogger("aipm.tui")

TOAST_TTL = 6.0
HELP_LINE = (
    "Enter submit · @ edit selected · /add /undo /clear /buckets /bucket /show · "
    "↑/↓ select · Tab/S-Tab progress · C-x delete · C-z undo · C-q quit"
)


class BoardTUI:
    def __init__(
        self,
        applier: Applier,
        router: InputRouter,
        worker: Optional[AIWorker] = None,
        theme: str = DEFAULT_THEME,
    ):
        self.applier = applier
        self.router = router
        self.worker = worker
        self.board = applier.board
        self.status_message: str = ""
        self.status_message_expires: float = 0.0
        self.list_view_offset: int = 0
        self.board.clamp_selection()

        self.input_field = TextArea(height=1, prompt="› ", multiline=False, wrap_lines=False)
        self.style = build_style(theme)

        kb = KeyBindings()

        @kb.add("enter")
        def _(event):
            line = self.input_field.text
            self.input_field.text = ""
            if not self.router.submit(line):
                event.app.exit()

        @kb.add("up")
        def _(event):
            self.board.move_selection(-1)

        @kb.add("down")
        def _(event):
            self.board.move_selection(1)

        @kb.add("pageup")
        def _(event):
            self.board.move_selection(-10)

        @kb.add("pagedown")
        def _(event):
            self.board.move_selection(10)

        @kb.add("tab")
        def _(event):
            self._step_selected(forward=True)

        @kb.add("s-tab")
        def _(event):
            self._step_selected(forward=False)

        @kb.add("c-x")
        def _(event):
            task = self.board.selected
            if task is not None:
                self.applier.delete_task(task.id)

        @kb.add("c-z")
        def _(event):
            self.applier.undo()

        @kb.add("c-q")
        @kb.add("c-c")
        def _(event):
            event.app.exit()

        self.status_bar = Window(content=FormattedTextControl(self.get_status_text), height=1, always_hide_cursor=True)
        self.task_list = Window(
            content=FormattedTextControl(self.get_task_list_text),
            always_hide_cursor=True,
            wrap_lines=False,
            width=Dimension(weight=3),
        )
        self.side_preview = Window(
            content=FormattedTextControl(self.get_detail_text),
            always_hide_cursor=True,
            wrap_lines=True,
            width=Dimension(weight=2),
        )
        self.toast_bar = Window(content=FormattedTextControl(self.get_toast_text), height=1, always_hide_cursor=True)
        self.footer = Window(content=FormattedTextControl(self.get_footer_text), height=1, always_hide_cursor=True)

        root = HSplit(
            [
                self.status_bar,
                VSplit([self.task_list, Window(width=1, char="│", style="class:border"), self.side_preview]),
                self.toast_bar,
                self.input_field,
                self.footer,
            ]
        )
        # the UI thread polls at 200 ms so worker results show up without a keypress
        self.app = Application(
            layout=Layout(root, focused_element=self.input_field),
            key_bindings=kb,
            style=self.style,
            full_screen=True,
            refresh_interval=0.2,
        )
        self.app.before_render += self._pump_results
        try:
            self.app.ttimeoutlen = max(0.0, float(os.getenv("AIPM_TUI_TTIMEOUTLEN", "0.05")))
        except ValueError:
            self.app.ttimeoutlen = 0.05

    @staticmethod
    def get_terminal_width() -> int:
        try:
            return os.get_terminal_size().columns
        except (AttributeError, ValueError, OSError):
            return 100

    @staticmethod
    def get_terminal_height() -> int:
        try:
            return os.get_terminal_size().lines
        except (AttributeError, ValueError, OSError):
            return 40

    def set_status_message(self, message: str, ttl: float = TOAST_TTL) -> None:
        self.status_message = message
        self.status_message_expires = time.time() + ttl

    def pump_results(self) -> int:
        """Apply every finished AI result and surface pending toasts."""
        applied = 0
        if self.worker is not None:
            for result in self.worker.drain():
                self.applier.apply(result)
                applied += 1
        for message in self.board.pop_toasts():
            self.set_status_message(message)
        return applied

    def _pump_results(self, _app=None) -> None:
        self.pump_results()

    def _step_selected(self, forward: bool) -> None:
        task = self.board.selected
        if task is not None:
            self.applier.step_progress(task.id, forward=forward)

    # -------- rendering --------

    def get_status_text(self) -> FormattedText:
        settings = self.board.settings
        ai_state = "on" if self.router.ai_ready else "off"
        pending = self.worker.pending if self.worker is not None else 0
        busy = f" · AI working ({pending})" if pending else ""
        return FormattedText(
            [
                ("class:header", " aipm "),
                ("class:text.dim", f"· {settings.owner_name} · {len(self.board.tasks)} tasks · AI {ai_state}{busy}"),
            ]
        )

    def _visible_window(self, rows: int) -> List[int]:
        height = max(3, self.get_terminal_height() - 6)
        selected = self.board.selected_index()
        if selected < self.list_view_offset:
            self.list_view_offset = selected
        elif selected >= self.list_view_offset + height:
            self.list_view_offset = selected - height + 1
        self.list_view_offset = min(self.list_view_offset, max(0, rows - height))
        return list(range(self.list_view_offset, min(rows, self.list_view_offset + height)))

    def get_task_list_text(self) -> FormattedText:
        rows = self.board.rows()
        if not rows:
            return FormattedText([("class:text.dim", "No tasks yet. Type what needs doing and press Enter.\n")])
        width = max(20, int(self.get_terminal_width() * 0.6) - 2)
        fragments = []
        last_bucket = None
        for index in self._visible_window(len(rows)):
            task = rows[index]
            # children sit in their parent's section
            parent = find_task(self.board.tasks, task.parent_id) if task.parent_id else None
            bucket = parent.bucket if parent else task.bucket
            if bucket.lower() != last_bucket:
                last_bucket = bucket.lower()
                fragments.append(("class:bucket", f"{trim_display(bucket, width)}\n"))
            fragments.extend(
                task_row(task, width, selected=task.id == self.board.selected_id, is_child=bool(task.parent_id))
            )
        return FormattedText(fragments)

    def get_detail_text(self) -> FormattedText:
        def title_of(task_id: str) -> str:
            dep = find_task(self.board.tasks, task_id)
            return dep.title if dep else "(missing)"

        return FormattedText(detail_lines(self.board.selected, title_of))

    def get_toast_text(self) -> FormattedText:
        if not self.status_message or time.time() > self.status_message_expires:
            return FormattedText([])
        return FormattedText([("class:toast", trim_display(self.status_message, self.get_terminal_width()))])

    def get_footer_text(self) -> FormattedText:
        return FormattedText([("class:text.dimmer", trim_display(HELP_LINE, self.get_terminal_width()))])

    def run(self) -> None:
        try:
            self.app.run()
        finally:
            if self.worker is not None:
                self.worker.stop()


__all__ = ["BoardTUI", "TOAST_TTL"]
