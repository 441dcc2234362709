"""
parsing.py - Tolerant JSON:API response parsing for App Store Connect.

Unknown fields are ignored and missing optional attributes fall back to
per-field defaults. Relationship-only values (bundle id, branch name) are
resolved against the response's "included" side list.

Raises ParseError only when the document shape itself is wrong: not JSON,
no "data" member of the expected kind, or a resource without an id.
"""

import json
from typing import Any

from .base import ParseError
from .models import (
    CiProduct,
    CiWorkflow,
    CiBuildRun,
    CiBuildAction,
    CiArtifact,
)


NO_NAME = "(no name)"
MISSING = "-"


def _load(body: bytes | str) -> dict:
    try:
        document = json.loads(body)
    except (ValueError, TypeError) as e:
        raise ParseError(f"Response is not valid JSON: {e}") from e
    if not isinstance(document, dict):
        raise ParseError("Response is not a JSON object")
    return document


def _data_list(document: dict) -> list[dict]:
    data = document.get("data")
    if not isinstance(data, list):
        raise ParseError("Expected 'data' to be a list")
    return [_resource(item) for item in data]


def _data_object(document: dict) -> dict:
    return _resource(document.get("data"))


def _resource(item: Any) -> dict:
    if not isinstance(item, dict) or not isinstance(item.get("id"), str):
        raise ParseError("Resource without an id")
    return item


def _attributes(resource: dict) -> dict:
    attributes = resource.get("attributes")
    return attributes if isinstance(attributes, dict) else {}


def _text(value: Any, default: str = MISSING) -> str:
    return value if isinstance(value, str) else default


def _first_text(attributes: dict, *keys: str) -> str:
    """First string-valued attribute among keys, else "-"."""
    for key in keys:
        value = attributes.get(key)
        if isinstance(value, str):
            return value
    return MISSING


def _related_id(resource: dict, name: str) -> str | None:
    """Id of a to-one relationship, if the resource carries one."""
    relationships = resource.get("relationships")
    if not isinstance(relationships, dict):
        return None
    relationship = relationships.get(name)
    if not isinstance(relationship, dict):
        return None
    data = relationship.get("data")
    if not isinstance(data, dict):
        return None
    related = data.get("id")
    return related if isinstance(related, str) else None


def _included_attribute(document: dict, resource_id: str | None, attribute: str) -> str | None:
    """Look up an attribute of an included resource by id."""
    if resource_id is None:
        return None
    included = document.get("included")
    if not isinstance(included, list):
        return None
    for item in included:
        if isinstance(item, dict) and item.get("id") == resource_id:
            value = _attributes(item).get(attribute)
            return value if isinstance(value, str) else None
    return None


def _run_number(value: Any) -> str:
    # bool is an int subclass; reject it explicitly
    if isinstance(value, int) and not isinstance(value, bool) and value >= 0:
        return str(value)
    return MISSING


# === Products ===

def parse_products(body: bytes | str) -> list[CiProduct]:
    """Parse GET /v1/ciProducts?include=app."""
    document = _load(body)
    products = []
    for raw in _data_list(document):
        attributes = _attributes(raw)
        bundle_id = attributes.get("bundleId")
        if not isinstance(bundle_id, str):
            bundle_id = _included_attribute(document, _related_id(raw, "app"), "bundleId")
        products.append(CiProduct(
            id=raw["id"],
            name=_text(attributes.get("name"), NO_NAME),
            bundle_id=_text(bundle_id),
        ))
    return products


# === Workflows ===

def parse_workflows(body: bytes | str) -> list[CiWorkflow]:
    """Parse GET /v1/ciProducts/{id}/workflows."""
    workflows = []
    for raw in _data_list(_load(body)):
        attributes = _attributes(raw)
        enabled = attributes.get("isEnabled")
        workflows.append(CiWorkflow(
            id=raw["id"],
            name=_text(attributes.get("name"), NO_NAME),
            is_enabled=enabled if isinstance(enabled, bool) else False,
        ))
    return workflows


# === Build runs ===

def _build_run_from_raw(document: dict, raw: dict) -> CiBuildRun:
    attributes = _attributes(raw)
    branch = attributes.get("sourceBranchOrTag")
    if not isinstance(branch, str):
        branch = _included_attribute(document, _related_id(raw, "sourceBranchOrTag"), "name")
    return CiBuildRun(
        id=raw["id"],
        number=_run_number(attributes.get("number")),
        source_branch_or_tag=_text(branch),
        status=_first_text(attributes, "status", "executionProgress"),
        completion_status=_text(attributes.get("completionStatus")),
        created_date=_text(attributes.get("createdDate")),
        started_date=_text(attributes.get("startedDate")),
        finished_date=_text(attributes.get("finishedDate")),
    )


def parse_build_runs(body: bytes | str) -> list[CiBuildRun]:
    """Parse GET /v1/ciWorkflows/{id}/buildRuns."""
    document = _load(body)
    return [_build_run_from_raw(document, raw) for raw in _data_list(document)]


def parse_build_run(body: bytes | str) -> CiBuildRun:
    """Parse a single build run (GET by id or POST response)."""
    document = _load(body)
    return _build_run_from_raw(document, _data_object(document))


# === Build actions ===

def parse_build_actions(body: bytes | str) -> list[CiBuildAction]:
    """Parse GET /v1/ciBuildRuns/{id}/actions."""
    actions = []
    for raw in _data_list(_load(body)):
        attributes = _attributes(raw)
        status = attributes.get("completionStatus")
        if not isinstance(status, str):
            status = _first_text(attributes, "status", "executionProgress")
        actions.append(CiBuildAction(
            id=raw["id"],
            name=_text(attributes.get("name"), NO_NAME),
            action_type=_text(attributes.get("actionType")),
            status=_text(status),
            started_date=_text(attributes.get("startedDate")),
            finished_date=_text(attributes.get("finishedDate")),
        ))
    return actions


# === Artifacts ===

def parse_artifacts(body: bytes | str) -> list[CiArtifact]:
    """Parse GET /v1/ciBuildActions/{id}/artifacts."""
    artifacts = []
    for raw in _data_list(_load(body)):
        attributes = _attributes(raw)
        artifacts.append(CiArtifact(
            id=raw["id"],
            file_name=_text(attributes.get("fileName"), raw["id"]),
            file_type=_text(attributes.get("fileType")),
            download_url=_text(attributes.get("downloadUrl")),
        ))
    return artifacts
