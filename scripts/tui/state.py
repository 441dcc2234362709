"""
Navigation state shared by the navigator, the poller and the Textual app.
"""

from dataclasses import dataclass, field
from enum import Enum


class Screen(Enum):
    """Screens of the navigation hierarchy, outermost first."""
    PRODUCTS = "products"
    WORKFLOWS = "workflows"
    BUILD_RUNS = "build_runs"
    BUILD_RUN_DETAIL = "build_run_detail"
    BUILD_ACTION_ARTIFACTS = "build_action_artifacts"
    LOG_VIEWER = "log_viewer"


# Screen reached by going back from each screen
PARENT_SCREEN = {
    Screen.WORKFLOWS: Screen.PRODUCTS,
    Screen.BUILD_RUNS: Screen.WORKFLOWS,
    Screen.BUILD_RUN_DETAIL: Screen.BUILD_RUNS,
    Screen.BUILD_ACTION_ARTIFACTS: Screen.BUILD_RUN_DETAIL,
    Screen.LOG_VIEWER: Screen.BUILD_ACTION_ARTIFACTS,
}


@dataclass(frozen=True)
class RowSet:
    """
    Everything the app draws for the current screen.

    A new RowSet is built after every navigation change; widgets are
    refreshed from it wholesale.
    """
    screen: Screen
    title: str
    header: str = ""
    summary: str = ""
    lines: tuple[str, ...] = field(default_factory=tuple)
    cursor: int = 0
    generation: int = 0

    @property
    def is_empty(self) -> bool:
        return not self.lines


def clamp_index(index: int, length: int) -> int:
    """Clamp index into [0, length - 1], or 0 for an empty collection."""
    if length <= 0:
        return 0
    return max(0, min(index, length - 1))
