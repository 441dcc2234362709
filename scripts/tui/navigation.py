"""
Navigation state machine for the Xcode Cloud TUI.

Navigator owns the loaded collections, the current screen and the remembered
selection of every level. It has no Textual dependency: the app feeds it key
actions and cursor positions and redraws from Navigator.rows afterwards.

    nav = Navigator(client)
    nav.run(nav.load_initial)
    nav.run(nav.activate, 0)      # open the first product
    nav.run(nav.go_back)
"""

import logging
import subprocess
import sys
from pathlib import Path
from typing import Callable

from connect.base import CiClient, CiError
from connect.models import (
    CiProduct,
    CiWorkflow,
    CiBuildRun,
    CiBuildAction,
    CiArtifact,
    sort_build_runs,
)

from . import views
from .polling import (
    POLLED_SCREENS,
    PollContext,
    build_runs_equal,
    workflows_equal,
)
from .state import PARENT_SCREEN, RowSet, Screen, clamp_index


_log = logging.getLogger("xcodecloud.tui.navigation")

BREADCRUMB_ROOT = "Xcode Cloud"

HINT_BUILD_RUNS = "j/k:Move  Enter:Open  Esc/q:Back  r:Run Build  R:Reload  Ctrl+C:Quit"
HINT_ARTIFACTS = "j/k:Move  Enter:Open  d:Download  Esc/q:Back  R:Reload  Ctrl+C:Quit"
HINT_LOG_VIEWER = "PgUp/PgDn:Scroll  Esc/q:Back  R:Reload  Ctrl+C:Quit"
HINT_NESTED = "j/k:Move  Enter:Open  Esc/q:Back  R:Reload  Ctrl+C:Quit"
HINT_TOP = "j/k:Move  Enter:Open  q:Quit  R:Reload  Ctrl+C:Quit"

_BREADCRUMB_PATHS = {
    Screen.PRODUCTS: (),
    Screen.WORKFLOWS: ("Products",),
    Screen.BUILD_RUNS: ("Products", "Workflows"),
    Screen.BUILD_RUN_DETAIL: ("Products", "Workflows", "Build Runs", "Detail"),
    Screen.BUILD_ACTION_ARTIFACTS: ("Products", "Workflows", "Build Runs", "Detail", "Artifacts"),
    Screen.LOG_VIEWER: ("Products", "Workflows", "Build Runs", "Detail", "Artifacts", "Log Viewer"),
}


def open_url_command() -> list[str]:
    """Command that hands a URL to the desktop: `open` on macOS, else `xdg-open`."""
    if sys.platform == "darwin":
        return ["open"]
    return ["xdg-open"]


class Navigator:
    """Screens, collections and selection for one browsing session."""

    def __init__(self, client: CiClient, download_dir: Path | None = None):
        """
        Args:
            client: Live or mock client; chosen once for the whole session
            download_dir: Where d:Download writes files (default: ./downloads)
        """
        self.client = client
        self.download_dir = download_dir

        self.screen = Screen.PRODUCTS
        self.status = ""
        self.generation = 0

        self.products: list[CiProduct] = []
        self.workflows: list[CiWorkflow] = []
        self.build_runs: list[CiBuildRun] = []
        self.build_run_detail: CiBuildRun | None = None
        self.build_actions: list[CiBuildAction] = []
        self.artifacts: list[CiArtifact] = []
        self.log_content: str | None = None
        self.log_artifact_name = ""

        # Remembered cursor of each list level
        self.selected: dict[Screen, int] = {
            Screen.PRODUCTS: 0,
            Screen.WORKFLOWS: 0,
            Screen.BUILD_RUNS: 0,
            Screen.BUILD_RUN_DETAIL: 0,
            Screen.BUILD_ACTION_ARTIFACTS: 0,
        }

        self._activate_handlers: dict[Screen, Callable[[int], None]] = {
            Screen.PRODUCTS: self._activate_product,
            Screen.WORKFLOWS: self._activate_workflow,
            Screen.BUILD_RUNS: self._activate_build_run,
            Screen.BUILD_RUN_DETAIL: self._activate_build_action,
            Screen.BUILD_ACTION_ARTIFACTS: self._activate_artifact,
            Screen.LOG_VIEWER: lambda cursor: None,
        }
        self._loaders: dict[Screen, Callable[[], None]] = {
            Screen.PRODUCTS: self._load_products,
            Screen.WORKFLOWS: self._load_workflows,
            Screen.BUILD_RUNS: self._load_build_runs,
            Screen.BUILD_RUN_DETAIL: self._load_build_run_detail,
            Screen.BUILD_ACTION_ARTIFACTS: self._load_artifacts,
            Screen.LOG_VIEWER: self._reload_log,
        }

        self.rows = self._build_rows(0)

    # === Error boundary ===

    def run(self, operation: Callable, *args) -> bool:
        """
        Call a navigation operation, turning client errors into status text.

        The collections on screen are left as they were when an error occurs.

        Returns:
            True if the operation completed, False if it raised a CiError
        """
        try:
            operation(*args)
        except CiError as e:
            _log.warning(f"{getattr(operation, '__name__', operation)} failed: {e.name}: {e}")
            self.status = f"Error: {e.name}"
            return False
        return True

    # === Operations ===

    def load_initial(self) -> None:
        """Load the products screen."""
        self.screen = Screen.PRODUCTS
        self.reload()

    def activate(self, cursor: int) -> None:
        """Open the item under the cursor (Enter)."""
        self._activate_handlers[self.screen](cursor)

    def go_back(self) -> None:
        """Return to the parent screen with its remembered selection (Esc/q)."""
        parent = PARENT_SCREEN.get(self.screen)
        if parent is None:
            return
        if self.screen is Screen.LOG_VIEWER:
            self._clear_log()
        _log.debug(f"Back from {self.screen.value} to {parent.value}")
        self.screen = parent
        self.rebuild_rows(self.selected[parent])

    def reload(self) -> None:
        """Re-run the loader of the current screen (R)."""
        self._loaders[self.screen]()

    def trigger_build(self) -> None:
        """Start a build run of the current workflow and reload the list (r)."""
        if self.screen is not Screen.BUILD_RUNS or not self.workflows:
            return
        workflow = self._current(self.workflows, Screen.WORKFLOWS)
        created = self.client.create_build_run(workflow.id)
        _log.info(f"Triggered build run #{created.number} for workflow {workflow.id}")
        self._load_build_runs()
        self.status = f"Triggered build run #{created.number}"

    def download_selected(self, cursor: int) -> None:
        """Save the artifact under the cursor to the download directory (d)."""
        if self.screen is not Screen.BUILD_ACTION_ARTIFACTS:
            return
        if not self.artifacts:
            self.status = "No artifacts available"
            return
        artifact = self._select(self.artifacts, Screen.BUILD_ACTION_ARTIFACTS, cursor)
        saved_path = self.client.download_artifact(artifact, self.download_dir)
        self.status = f"Downloaded: {saved_path}"

    # === Activation handlers ===

    def _activate_product(self, cursor: int) -> None:
        if not self.products:
            return
        self._select(self.products, Screen.PRODUCTS, cursor)
        self._load_workflows()

    def _activate_workflow(self, cursor: int) -> None:
        if not self.workflows:
            return
        self._select(self.workflows, Screen.WORKFLOWS, cursor)
        self._load_build_runs()

    def _activate_build_run(self, cursor: int) -> None:
        if not self.build_runs:
            return
        self._select(self.build_runs, Screen.BUILD_RUNS, cursor)
        self._load_build_run_detail()

    def _activate_build_action(self, cursor: int) -> None:
        if not self.build_actions:
            return
        self._select(self.build_actions, Screen.BUILD_RUN_DETAIL, cursor)
        self._load_artifacts()

    def _activate_artifact(self, cursor: int) -> None:
        if not self.artifacts:
            self.status = "No artifacts available"
            return
        artifact = self._select(self.artifacts, Screen.BUILD_ACTION_ARTIFACTS, cursor)
        if artifact.is_log:
            self._show_log(artifact)
        else:
            self._open_url(artifact)

    # === Loaders ===

    def _load_products(self) -> None:
        products = self.client.list_products()
        self.products = products
        self.screen = Screen.PRODUCTS
        self._enter(Screen.PRODUCTS, len(products))
        self.status = f"Loaded {len(products)} products"

    def _load_workflows(self) -> None:
        if not self.products:
            self.status = "No products available"
            return
        product = self._current(self.products, Screen.PRODUCTS)
        self.workflows = self.client.list_workflows(product.id)
        self.screen = Screen.WORKFLOWS
        self._enter(Screen.WORKFLOWS, len(self.workflows))
        self.status = f"Loaded {len(self.workflows)} workflows for {product.name}"

    def _load_build_runs(self) -> None:
        if not self.workflows:
            self.status = "No workflows available"
            return
        workflow = self._current(self.workflows, Screen.WORKFLOWS)
        self.build_runs = sort_build_runs(self.client.list_build_runs(workflow.id))
        self.screen = Screen.BUILD_RUNS
        self._enter(Screen.BUILD_RUNS, len(self.build_runs))
        self.status = f"Loaded {len(self.build_runs)} build runs for {workflow.name}"

    def _load_build_run_detail(self) -> None:
        if not self.build_runs:
            self.status = "No build runs available"
            return
        run = self._current(self.build_runs, Screen.BUILD_RUNS)
        detail = self.client.get_build_run(run.id)
        actions = self.client.list_build_actions(run.id)

        self.build_run_detail = detail
        self.build_actions = actions
        self.artifacts = []
        self.screen = Screen.BUILD_RUN_DETAIL
        self.selected[Screen.BUILD_RUN_DETAIL] = 0
        self.rebuild_rows(0)
        self.status = f"Loaded details for build run #{run.number}"

    def _load_artifacts(self) -> None:
        if not self.build_actions:
            self.status = "No build actions available"
            return
        action = self._current(self.build_actions, Screen.BUILD_RUN_DETAIL)
        self.artifacts = self.client.list_artifacts(action.id)
        self.screen = Screen.BUILD_ACTION_ARTIFACTS
        self._enter(Screen.BUILD_ACTION_ARTIFACTS, len(self.artifacts))
        self.status = f"Loaded {len(self.artifacts)} artifacts for action {action.name}"

    def _reload_log(self) -> None:
        if not self.artifacts:
            self.status = "No artifacts available"
            return
        artifact = self._current(self.artifacts, Screen.BUILD_ACTION_ARTIFACTS)
        if not artifact.is_log:
            self.status = "Selected artifact is not a log"
            return
        self._show_log(artifact)

    # === Artifacts ===

    def _show_log(self, artifact: CiArtifact) -> None:
        content = self.client.fetch_artifact_content(artifact)
        self.log_content = content
        self.log_artifact_name = artifact.file_name
        self.screen = Screen.LOG_VIEWER
        self.rebuild_rows(0)
        self.status = f"Viewing log: {artifact.file_name}"

    def _open_url(self, artifact: CiArtifact) -> None:
        url = artifact.download_url
        if url == "-":
            self.status = "No download URL for selected artifact"
            return

        argv = open_url_command() + [url]
        try:
            result = subprocess.run(
                argv,
                stdin=subprocess.DEVNULL,
                stdout=subprocess.DEVNULL,
                stderr=subprocess.DEVNULL,
            )
        except OSError as e:
            _log.warning(f"Could not spawn {argv[0]}: {e}")
            self.status = f"Failed to open URL: {url}"
            return

        if result.returncode != 0:
            _log.warning(f"{argv[0]} exited with {result.returncode}")
            self.status = f"Failed to open URL: {url}"
            return
        self.status = f"Opened URL: {url}"

    def _clear_log(self) -> None:
        self.log_content = None
        self.log_artifact_name = ""

    # === Polling ===

    def capture_poll_context(self) -> PollContext | None:
        """
        Snapshot the state a poll refers to.

        Returns:
            PollContext on the workflows or build runs screen, else None
        """
        if self.screen not in POLLED_SCREENS:
            return None
        if self.screen is Screen.WORKFLOWS:
            if not self.products:
                return None
            parent = self._current(self.products, Screen.PRODUCTS)
        else:
            if not self.workflows:
                return None
            parent = self._current(self.workflows, Screen.WORKFLOWS)
        return PollContext(self.screen, parent.id, parent.name, self.generation)

    def fetch_for_poll(self, context: PollContext) -> list[CiWorkflow] | list[CiBuildRun]:
        """
        Fetch the latest collection for a poll. Safe to call from a worker thread.

        Raises:
            CiError: If the request fails
        """
        if context.screen is Screen.WORKFLOWS:
            return self.client.list_workflows(context.parent_id)
        return sort_build_runs(self.client.list_build_runs(context.parent_id))

    def is_current(self, context: PollContext) -> bool:
        """True if nothing changed on screen since the context was captured."""
        if context.screen is not self.screen or context.generation != self.generation:
            return False
        current = self.capture_poll_context()
        return current is not None and current.parent_id == context.parent_id

    def apply_poll_result(self, context: PollContext, latest: list, cursor: int | None = None) -> bool:
        """
        Replace the polled collection if it changed.

        Args:
            context: Context captured when the poll started
            latest: Freshly fetched workflows or (sorted) build runs
            cursor: Current list cursor, kept (clamped) across the update

        Returns:
            True if the screen was updated, False if the result was stale
            or identical
        """
        if not self.is_current(context):
            _log.debug(f"Dropping stale poll result for {context.screen.value}")
            return False

        if cursor is None:
            cursor = self.rows.cursor

        if context.screen is Screen.WORKFLOWS:
            if workflows_equal(self.workflows, latest):
                return False
            self.workflows = list(latest)
            self.status = f"Updated workflows for {context.parent_name}"
        else:
            if build_runs_equal(self.build_runs, latest):
                return False
            self.build_runs = list(latest)
            self.status = f"Updated build runs for {context.parent_name}"

        self.rebuild_rows(cursor)
        return True

    def note_poll_failure(self, error: CiError) -> None:
        self.status = f"Polling failed: {error.name}"

    # === Rendering ===

    @property
    def breadcrumb(self) -> str:
        """Breadcrumb path of the current screen, ending in its title."""
        parts = [BREADCRUMB_ROOT, *_BREADCRUMB_PATHS[self.screen]]
        if self.screen in (Screen.PRODUCTS, Screen.WORKFLOWS, Screen.BUILD_RUNS):
            parts.append(self.rows.title)
        return " > ".join(parts)

    @property
    def hint_line(self) -> str:
        """Key hints for the bottom bar."""
        if self.screen is Screen.PRODUCTS:
            return HINT_TOP
        if self.screen is Screen.BUILD_RUNS:
            return HINT_BUILD_RUNS
        if self.screen is Screen.BUILD_ACTION_ARTIFACTS:
            return HINT_ARTIFACTS
        if self.screen is Screen.LOG_VIEWER:
            return HINT_LOG_VIEWER
        return HINT_NESTED

    def rebuild_rows(self, cursor: int) -> RowSet:
        """Regenerate the RowSet for the current screen (new generation)."""
        self.generation += 1
        self.rows = self._build_rows(cursor)
        return self.rows

    def _build_rows(self, cursor: int) -> RowSet:
        screen = self.screen
        summary = ""

        if screen is Screen.PRODUCTS:
            title = "Products"
            header = views.product_header()
            lines = [views.product_row(item) for item in self.products]
        elif screen is Screen.WORKFLOWS:
            title = f"Workflows for {self._current_name(self.products, Screen.PRODUCTS)}"
            header = views.workflow_header()
            lines = [views.workflow_row(item) for item in self.workflows]
        elif screen is Screen.BUILD_RUNS:
            title = f"Build Runs for {self._current_name(self.workflows, Screen.WORKFLOWS)}"
            header = views.build_run_header()
            lines = [views.build_run_row(item) for item in self.build_runs]
        elif screen is Screen.BUILD_RUN_DETAIL:
            title = "Build Run Detail"
            header = views.action_header()
            if self.build_run_detail is not None:
                summary = views.build_run_summary(self.build_run_detail)
            lines = [views.action_row(item) for item in self.build_actions]
        elif screen is Screen.BUILD_ACTION_ARTIFACTS:
            title = f"Artifacts for {self._current_name(self.build_actions, Screen.BUILD_RUN_DETAIL)}"
            header = views.artifact_header()
            lines = [views.artifact_row(item) for item in self.artifacts]
        else:
            title = f"Log Viewer: {self.log_artifact_name or '-'}"
            header = ""
            if self.log_content is None:
                lines = ["No log content loaded"]
            elif self.log_content == "":
                lines = ["(empty log)"]
            else:
                lines = self.log_content.split("\n")
            cursor = 0

        return RowSet(
            screen=screen,
            title=title,
            header=header,
            summary=summary,
            lines=tuple(lines),
            cursor=clamp_index(cursor, len(lines)),
            generation=self.generation,
        )

    # === Selection helpers ===

    def _enter(self, screen: Screen, length: int) -> None:
        """Reset an out-of-range remembered index and draw the list."""
        if self.selected[screen] >= length:
            self.selected[screen] = 0
        _log.debug(f"Showing {screen.value} ({length} rows)")
        self.rebuild_rows(self.selected[screen])

    def _select(self, items: list, screen: Screen, cursor: int):
        self.selected[screen] = clamp_index(cursor, len(items))
        return items[self.selected[screen]]

    def _current(self, items: list, screen: Screen):
        self.selected[screen] = clamp_index(self.selected[screen], len(items))
        return items[self.selected[screen]]

    def _current_name(self, items: list, screen: Screen) -> str:
        if not items:
            return "-"
        return self._current(items, screen).name
