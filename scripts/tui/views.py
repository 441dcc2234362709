"""
Column layouts and row renderers for each list screen.
"""

from connect.models import (
    CiProduct,
    CiWorkflow,
    CiBuildRun,
    CiBuildAction,
    CiArtifact,
)

from .utils.formatting import Column, format_header, format_row
from .utils.timefmt import iso_utc_to_local


PRODUCT_COLUMNS = (
    Column("Product", 30),
    Column("Bundle ID", 36),
)

WORKFLOW_COLUMNS = (
    Column("Workflow", 36),
    Column("Enabled", 8),
)

BUILD_RUN_COLUMNS = (
    Column("#", 5, align="right"),
    Column("Branch", 20),
    Column("Status", 12),
    Column("Created", 20),
)

ACTION_COLUMNS = (
    Column("Action", 26),
    Column("Type", 10),
    Column("Status", 10),
    Column("Started", 19),
    Column("Finished", 19),
)

ARTIFACT_COLUMNS = (
    Column("File", 30),
    Column("Type", 20),
    Column("Download URL", 70),
)


# === Products ===

def product_header() -> str:
    return format_header(PRODUCT_COLUMNS)


def product_row(item: CiProduct) -> str:
    return format_row(PRODUCT_COLUMNS, [item.name, item.bundle_id])


# === Workflows ===

def workflow_header() -> str:
    return format_header(WORKFLOW_COLUMNS)


def workflow_row(item: CiWorkflow) -> str:
    enabled = "yes" if item.is_enabled else "no"
    return format_row(WORKFLOW_COLUMNS, [item.name, enabled])


# === Build runs ===

def build_run_header() -> str:
    return format_header(BUILD_RUN_COLUMNS)


def build_run_row(item: CiBuildRun) -> str:
    """Row showing the completion status once known, else the execution status."""
    return format_row(BUILD_RUN_COLUMNS, [
        item.number,
        item.source_branch_or_tag,
        item.display_status,
        iso_utc_to_local(item.created_date),
    ])


# === Build run detail ===

def action_header() -> str:
    return format_header(ACTION_COLUMNS)


def action_row(item: CiBuildAction) -> str:
    return format_row(ACTION_COLUMNS, [
        item.name,
        item.action_type,
        item.status,
        iso_utc_to_local(item.started_date),
        iso_utc_to_local(item.finished_date),
    ])


def build_run_summary(run: CiBuildRun) -> str:
    """One-line summary shown above the actions table."""
    return (
        f"Run #{run.number}  Branch:{run.source_branch_or_tag}  "
        f"Status:{run.status}/{run.completion_status}"
    )


# === Artifacts ===

def artifact_header() -> str:
    return format_header(ARTIFACT_COLUMNS)


def artifact_row(item: CiArtifact) -> str:
    return format_row(ARTIFACT_COLUMNS, [item.file_name, item.file_type, item.download_url])
