"""
Main Textual application for the Xcode Cloud TUI.
"""

import logging
import os
from pathlib import Path

from rich.text import Text
from textual import work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import Log, OptionList, Static

from connect import get_client
from connect.base import CiClient, CiError
from version import __version__

from .navigation import Navigator
from .polling import POLL_INTERVAL_SECONDS, PollContext
from .state import Screen

# Debug logger for TUI
_log = logging.getLogger("xcodecloud.tui.app")

# Lines moved by PgUp/PgDn in the log viewer
LOG_PAGE_LINES = 20

_POLL_NOTIFICATIONS = {
    Screen.WORKFLOWS: "Workflows list updated",
    Screen.BUILD_RUNS: "Build runs updated",
}


class LogPane(Log):
    """Read-only log view paging by a fixed number of lines."""

    BINDINGS = [
        Binding("pagedown", "page_lines(1)", "Page Down", show=False),
        Binding("pageup", "page_lines(-1)", "Page Up", show=False),
    ]

    def action_page_lines(self, direction: int) -> None:
        self.scroll_to(y=self.scroll_y + direction * LOG_PAGE_LINES, animate=False)


class XcodeCloudApp(App):
    """Xcode Cloud TUI Application."""

    TITLE = f"Xcode Cloud v{__version__}"

    CSS = """
    Screen {
        background: $surface;
        layout: vertical;
    }

    #breadcrumb {
        height: 1;
        padding: 0 1;
        color: $accent;
    }

    #auth-warning {
        height: auto;
        padding: 0 1;
        color: $warning;
        display: none;
    }

    #auth-warning.visible {
        display: block;
    }

    #status {
        height: 1;
        padding: 0 1;
    }

    #summary {
        height: 1;
        padding: 0 1;
        color: $text-muted;
    }

    #table-header {
        height: 1;
        padding: 0 1;
        color: $primary;
        text-style: bold;
    }

    #rows, #log {
        height: 1fr;
        min-height: 0;
    }

    #hints {
        height: 1;
        dock: bottom;
        background: $surface-darken-1;
        color: $warning;
        padding: 0 1;
    }
    """

    BINDINGS = [
        Binding("ctrl+c", "quit", "Quit", priority=True),
        Binding("j", "cursor_down", "Down", show=False),
        Binding("k", "cursor_up", "Up", show=False),
        Binding("escape", "back", "Back", priority=True),
        Binding("q", "back_or_quit", "Back/Quit"),
        Binding("R", "reload", "Reload"),
        Binding("r", "run_build", "Run Build"),
        Binding("d", "download", "Download"),
    ]

    def __init__(
        self,
        client: CiClient | None = None,
        poll_interval: float = POLL_INTERVAL_SECONDS,
        download_dir: Path | None = None,
        **kwargs,
    ):
        super().__init__(**kwargs)
        self.client = client if client is not None else get_client()
        self.navigator = Navigator(self.client, download_dir=download_dir)
        self.poll_interval = poll_interval
        # RowSet generation currently shown; status-only updates leave the list alone
        self._drawn_generation: int | None = None

    def compose(self) -> ComposeResult:
        yield Static("", id="breadcrumb")
        yield Static("", id="auth-warning")
        yield Static("", id="status")
        yield Static("", id="summary")
        yield Static("", id="table-header")
        yield OptionList(id="rows")
        yield LogPane(id="log", auto_scroll=False)
        yield Static("", id="hints")

    def on_mount(self) -> None:
        """Load products and start the poll timer."""
        _log.debug(f"XcodeCloudApp.on_mount (mock={self.client.is_mock})")
        warning = self.query_one("#auth-warning", Static)
        if self.client.auth_warning:
            warning.update(Text(self.client.auth_warning))
            warning.add_class("visible")

        self._navigate(self.navigator.load_initial)
        self._schedule_poll()

    # === Navigation ===

    def _cursor(self) -> int:
        highlighted = self.query_one("#rows", OptionList).highlighted
        return highlighted if highlighted is not None else 0

    def _navigate(self, operation, *args) -> None:
        """Run a navigator operation and redraw."""
        self.navigator.run(operation, *args)
        self._refresh_view()

    def on_option_list_option_selected(self, event: OptionList.OptionSelected) -> None:
        event.stop()
        self._navigate(self.navigator.activate, event.option_index)

    def action_cursor_down(self) -> None:
        if self.navigator.screen is not Screen.LOG_VIEWER:
            self.query_one("#rows", OptionList).action_cursor_down()

    def action_cursor_up(self) -> None:
        if self.navigator.screen is not Screen.LOG_VIEWER:
            self.query_one("#rows", OptionList).action_cursor_up()

    def action_back(self) -> None:
        self._navigate(self.navigator.go_back)

    def action_back_or_quit(self) -> None:
        if self.navigator.screen is Screen.PRODUCTS:
            self.exit()
            return
        self._navigate(self.navigator.go_back)

    def action_reload(self) -> None:
        self._navigate(self.navigator.reload)

    def action_run_build(self) -> None:
        if self.navigator.screen is Screen.BUILD_RUNS:
            self._navigate(self.navigator.trigger_build)

    def action_download(self) -> None:
        if self.navigator.screen is Screen.BUILD_ACTION_ARTIFACTS:
            self._navigate(self.navigator.download_selected, self._cursor())

    def action_quit(self) -> None:
        """Quit the application."""
        _log.debug("XcodeCloudApp.action_quit called")
        self.exit()

    # === Rendering ===

    def _refresh_view(self) -> None:
        """Redraw every widget from the navigator's current RowSet."""
        nav = self.navigator
        rows = nav.rows

        self.query_one("#breadcrumb", Static).update(Text(nav.breadcrumb))
        self.query_one("#status", Static).update(Text(nav.status))
        self.query_one("#hints", Static).update(Text(nav.hint_line))

        if rows.generation == self._drawn_generation:
            return
        self._drawn_generation = rows.generation

        summary = self.query_one("#summary", Static)
        summary.update(Text(rows.summary))
        summary.display = bool(rows.summary)

        header = self.query_one("#table-header", Static)
        header.update(Text(rows.header))
        header.display = bool(rows.header)

        option_list = self.query_one("#rows", OptionList)
        log_pane = self.query_one("#log", LogPane)

        if rows.screen is Screen.LOG_VIEWER:
            option_list.display = False
            log_pane.display = True
            log_pane.clear()
            log_pane.write_lines(rows.lines)
            log_pane.scroll_home(animate=False)
            log_pane.focus()
            return

        log_pane.display = False
        log_pane.clear()
        option_list.display = True
        option_list.clear_options()
        option_list.add_options([Text(line) for line in rows.lines])
        if rows.lines:
            option_list.highlighted = rows.cursor
        option_list.focus()

    # === Polling ===

    def _schedule_poll(self) -> None:
        self.set_timer(self.poll_interval, self._poll_tick)

    def _poll_tick(self) -> None:
        """Start a background refresh if the current screen is polled, then re-arm."""
        context = self.navigator.capture_poll_context()
        if context is not None:
            self._poll_worker(context)
        self._schedule_poll()

    @work(thread=True, exclusive=True, group="ci-poll")
    def _poll_worker(self, context: PollContext) -> None:
        """Fetch the polled collection in a worker thread."""
        try:
            latest = self.navigator.fetch_for_poll(context)
        except CiError as e:
            _log.debug(f"Poll of {context.screen.value} failed: {e.name}: {e}")
            self.call_from_thread(self._apply_poll_failure, e)
            return
        self.call_from_thread(self._apply_poll_result, context, latest)

    def _apply_poll_result(self, context: PollContext, latest: list) -> None:
        if self.navigator.apply_poll_result(context, latest, self._cursor()):
            self.notify(_POLL_NOTIFICATIONS[context.screen], title="Xcode Cloud")
            self._refresh_view()

    def _apply_poll_failure(self, error: CiError) -> None:
        self.navigator.note_poll_failure(error)
        self._refresh_view()


def run_tui(debug: bool = False) -> None:
    """Run the TUI application.

    Args:
        debug: Enable debug logging to tui_debug.log
    """
    if debug:
        # Create a custom handler that flushes immediately
        class FlushingHandler(logging.FileHandler):
            def emit(self, record):
                super().emit(record)
                self.flush()

        handler = FlushingHandler("tui_debug.log", mode='w')
        handler.setLevel(logging.DEBUG)
        handler.setFormatter(logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s"))

        # Every module logger lives under "xcodecloud"
        logger = logging.getLogger("xcodecloud")
        logger.setLevel(logging.DEBUG)
        logger.addHandler(handler)

        _log.debug("Starting TUI")

    app = XcodeCloudApp()
    app.run()

    # Force reset terminal state even if Textual crashes mid-cleanup.
    # The URL opener runs as a child process and can leave the terminal raw.
    if os.name != 'nt':
        os.system('stty sane 2>/dev/null')
