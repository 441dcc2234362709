"""
Record types for the Xcode Cloud hierarchy.

All records are immutable; collections are replaced wholesale on reload.
"""

from dataclasses import dataclass
from functools import cmp_to_key


LOG_ARTIFACT_TYPES = ("LOG", "LOG_BUNDLE")


@dataclass(frozen=True)
class CiProduct:
    """A product (app) registered for Xcode Cloud."""
    id: str
    name: str
    bundle_id: str = "-"


@dataclass(frozen=True)
class CiWorkflow:
    """A workflow attached to a product."""
    id: str
    name: str
    is_enabled: bool = False


@dataclass(frozen=True)
class CiBuildRun:
    """One execution of a workflow."""
    id: str
    number: str = "-"
    source_branch_or_tag: str = "-"
    status: str = "-"
    completion_status: str = "-"
    created_date: str = "-"
    started_date: str = "-"
    finished_date: str = "-"

    @property
    def display_status(self) -> str:
        """Completion status once known, otherwise the execution status."""
        if self.completion_status != "-":
            return self.completion_status
        return self.status


@dataclass(frozen=True)
class CiBuildAction:
    """One phase of a build run (prepare, build, test, export...)."""
    id: str
    name: str
    action_type: str = "-"
    status: str = "-"
    started_date: str = "-"
    finished_date: str = "-"


@dataclass(frozen=True)
class CiArtifact:
    """A file produced by a build action."""
    id: str
    file_name: str
    file_type: str = "-"
    download_url: str = "-"

    @property
    def is_log(self) -> bool:
        """True for artifacts the log viewer can display."""
        return self.file_type in LOG_ARTIFACT_TYPES


@dataclass(frozen=True)
class Credentials:
    """API key material for signing tokens."""
    issuer_id: str
    key_id: str
    private_key: bytes  # raw 32-byte P-256 scalar

    def __repr__(self) -> str:
        return f"Credentials(issuer_id={self.issuer_id!r}, key_id={self.key_id!r}, private_key=<redacted>)"


def _run_number(run: CiBuildRun) -> int:
    try:
        return int(run.number)
    except ValueError:
        return 0


def compare_build_runs(lhs: CiBuildRun, rhs: CiBuildRun) -> int:
    """
    Order build runs newest first.

    created_date descending (ISO-8601 strings in one format compare correctly
    as text), then numeric number descending, then id ascending.
    """
    if lhs.created_date != rhs.created_date:
        return -1 if lhs.created_date > rhs.created_date else 1

    lhs_number, rhs_number = _run_number(lhs), _run_number(rhs)
    if lhs_number != rhs_number:
        return -1 if lhs_number > rhs_number else 1

    if lhs.id != rhs.id:
        return -1 if lhs.id < rhs.id else 1
    return 0


build_run_sort_key = cmp_to_key(compare_build_runs)


def sort_build_runs(runs: list[CiBuildRun]) -> list[CiBuildRun]:
    """Return build runs in display order (newest first)."""
    return sorted(runs, key=build_run_sort_key)
