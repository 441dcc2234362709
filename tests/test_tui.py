"""
Automated TUI tests using Textual's run_test() framework.

Tests that screens load from the mock client and that key bindings drive
the navigator.
"""

import pytest
from textual.widgets import OptionList, Static

from connect.base import NotFound, RateLimited
from connect.mock import MockCiClient
from connect.models import CiWorkflow
from tui.app import LogPane, XcodeCloudApp
from tui.navigation import HINT_TOP
from tui.state import Screen

# Long enough that no poll fires during a test
NO_POLL = 3600


def make_app(client=None, **kwargs) -> XcodeCloudApp:
    return XcodeCloudApp(client=client or MockCiClient(), poll_interval=NO_POLL, **kwargs)


def static_text(app: XcodeCloudApp, widget_id: str) -> str:
    return str(app.query_one(f"#{widget_id}", Static).render())


class TestStartup:
    """Initial load and chrome."""

    @pytest.mark.asyncio
    async def test_products_load(self):
        """Products are listed on mount."""
        app = make_app()
        async with app.run_test(size=(120, 40)) as pilot:
            await pilot.pause()
            assert app.navigator.screen is Screen.PRODUCTS
            assert app.query_one("#rows", OptionList).option_count == 2
            assert static_text(app, "status") == "Loaded 2 products"
            assert static_text(app, "breadcrumb") == "Xcode Cloud > Products"
            assert static_text(app, "hints") == HINT_TOP

    @pytest.mark.asyncio
    async def test_auth_warning_shown(self):
        """Mock fallback warning is visible under the breadcrumb."""
        warning = "Environment variables missing/invalid (MissingSecret); using mock data"
        app = make_app(MockCiClient(auth_warning=warning))
        async with app.run_test(size=(120, 40)) as pilot:
            await pilot.pause()
            widget = app.query_one("#auth-warning", Static)
            assert widget.has_class("visible")
            assert static_text(app, "auth-warning") == warning

    @pytest.mark.asyncio
    async def test_no_warning_without_fallback(self):
        app = make_app()
        async with app.run_test(size=(120, 40)) as pilot:
            await pilot.pause()
            assert not app.query_one("#auth-warning", Static).has_class("visible")


class TestNavigation:
    """Enter, j/k and Esc/q through the hierarchy."""

    @pytest.mark.asyncio
    async def test_enter_and_escape(self):
        app = make_app()
        async with app.run_test(size=(120, 40)) as pilot:
            await pilot.pause()
            await pilot.press("j")
            await pilot.press("enter")
            await pilot.pause()
            assert app.navigator.screen is Screen.WORKFLOWS
            assert static_text(app, "status") == "Loaded 2 workflows for Sample macOS App"

            await pilot.press("escape")
            await pilot.pause()
            assert app.navigator.screen is Screen.PRODUCTS
            assert app.query_one("#rows", OptionList).highlighted == 1

    @pytest.mark.asyncio
    async def test_q_goes_back_on_nested_screen(self):
        app = make_app()
        async with app.run_test(size=(120, 40)) as pilot:
            await pilot.pause()
            await pilot.press("enter")
            await pilot.pause()
            await pilot.press("q")
            await pilot.pause()
            assert app.navigator.screen is Screen.PRODUCTS

    @pytest.mark.asyncio
    async def test_q_on_products_exits(self):
        app = make_app()
        async with app.run_test(size=(120, 40)) as pilot:
            await pilot.pause()
            await pilot.press("q")
        assert app.return_code == 0

    @pytest.mark.asyncio
    async def test_log_viewer(self):
        """Opening a log artifact swaps the list for the log pane."""
        app = make_app()
        async with app.run_test(size=(120, 40)) as pilot:
            await pilot.pause()
            for _ in range(3):
                await pilot.press("enter")
                await pilot.pause()
            assert app.navigator.screen is Screen.BUILD_RUN_DETAIL
            assert static_text(app, "summary").startswith("Run #101")

            await pilot.press("enter")
            await pilot.pause()
            assert app.navigator.screen is Screen.BUILD_ACTION_ARTIFACTS

            await pilot.press("enter")
            await pilot.pause()
            assert app.navigator.screen is Screen.LOG_VIEWER
            assert static_text(app, "status") == "Viewing log: build.log"
            assert app.query_one("#log", LogPane).display
            assert not app.query_one("#rows", OptionList).display

            await pilot.press("escape")
            await pilot.pause()
            assert app.navigator.screen is Screen.BUILD_ACTION_ARTIFACTS
            assert app.query_one("#rows", OptionList).display

    @pytest.mark.asyncio
    async def test_run_build(self):
        app = make_app()
        async with app.run_test(size=(120, 40)) as pilot:
            await pilot.pause()
            await pilot.press("enter")
            await pilot.pause()
            await pilot.press("enter")
            await pilot.pause()
            await pilot.press("r")
            await pilot.pause()
            assert static_text(app, "status") == "Triggered build run #102"

    @pytest.mark.asyncio
    async def test_download(self, tmp_path):
        app = make_app(download_dir=tmp_path)
        async with app.run_test(size=(120, 40)) as pilot:
            await pilot.pause()
            for _ in range(4):
                await pilot.press("enter")
                await pilot.pause()
            await pilot.press("d")
            await pilot.pause()
            assert (tmp_path / "build.log").exists()
            assert static_text(app, "status") == f"Downloaded: {tmp_path / 'build.log'}"


class TestPolling:
    """Poll results delivered back on the UI thread."""

    @pytest.mark.asyncio
    async def test_changed_workflows_redrawn(self):
        app = make_app()
        async with app.run_test(size=(120, 40)) as pilot:
            await pilot.pause()
            await pilot.press("enter")
            await pilot.pause()

            context = app.navigator.capture_poll_context()
            app._apply_poll_result(context, [CiWorkflow("w-new", "Nightly", True)])
            await pilot.pause()

            assert app.query_one("#rows", OptionList).option_count == 1
            assert static_text(app, "status") == "Updated workflows for Sample iOS App"

    @pytest.mark.asyncio
    async def test_stale_result_ignored(self):
        app = make_app()
        async with app.run_test(size=(120, 40)) as pilot:
            await pilot.pause()
            await pilot.press("enter")
            await pilot.pause()
            context = app.navigator.capture_poll_context()

            await pilot.press("escape")
            await pilot.pause()
            app._apply_poll_result(context, [])
            await pilot.pause()

            assert app.navigator.screen is Screen.PRODUCTS
            assert app.query_one("#rows", OptionList).option_count == 2


class TestSelectionKept:
    """Status-only updates do not move the highlighted row."""

    @pytest.mark.asyncio
    async def test_download_keeps_highlight(self, tmp_path):
        app = make_app(download_dir=tmp_path)
        async with app.run_test(size=(120, 40)) as pilot:
            await pilot.pause()
            for _ in range(4):
                await pilot.press("enter")
                await pilot.pause()
            await pilot.press("j")
            await pilot.press("d")
            await pilot.pause()

            assert (tmp_path / "result.xcresult").exists()
            assert app.query_one("#rows", OptionList).highlighted == 1

    @pytest.mark.asyncio
    async def test_poll_failure_keeps_highlight(self):
        app = make_app()
        async with app.run_test(size=(120, 40)) as pilot:
            await pilot.pause()
            await pilot.press("enter")
            await pilot.pause()
            await pilot.press("j")
            await pilot.pause()

            app._apply_poll_failure(RateLimited(429))
            await pilot.pause()

            assert static_text(app, "status") == "Polling failed: RateLimited"
            assert app.query_one("#rows", OptionList).highlighted == 1

    @pytest.mark.asyncio
    async def test_failed_reload_keeps_highlight(self):
        client = MockCiClient()
        app = make_app(client)
        async with app.run_test(size=(120, 40)) as pilot:
            await pilot.pause()
            await pilot.press("j")
            await pilot.pause()

            def unavailable():
                raise NotFound(404)

            client.list_products = unavailable
            await pilot.press("R")
            await pilot.pause()

            assert static_text(app, "status") == "Error: NotFound"
            assert app.query_one("#rows", OptionList).highlighted == 1
