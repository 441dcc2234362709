"""
Background refresh of the workflows and build runs screens.

A poll captures where the user is (PollContext) before fetching off the event
loop. The result is applied only if the user is still there and nothing was
reloaded in the meantime.
"""

from dataclasses import dataclass

from connect.models import CiBuildRun, CiWorkflow

from .state import Screen


POLL_INTERVAL_SECONDS = 30


# Screens refreshed by the poll timer
POLLED_SCREENS = (Screen.WORKFLOWS, Screen.BUILD_RUNS)


@dataclass(frozen=True)
class PollContext:
    """Snapshot of navigation state taken when a poll starts."""
    screen: Screen
    parent_id: str
    parent_name: str
    generation: int


def workflows_equal(a: list[CiWorkflow], b: list[CiWorkflow]) -> bool:
    """Field-by-field, order-sensitive comparison."""
    return list(a) == list(b)


def build_runs_equal(a: list[CiBuildRun], b: list[CiBuildRun]) -> bool:
    """
    Field-by-field, order-sensitive comparison.

    Both lists must already be sorted with sort_build_runs().
    """
    return list(a) == list(b)
