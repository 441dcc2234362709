"""
App Store Connect endpoint paths used by the live client.
"""

import json

BASE_URL = "https://api.appstoreconnect.apple.com"

CI_PRODUCTS = "/v1/ciProducts?include=app"
CI_BUILD_RUNS = "/v1/ciBuildRuns"


def workflows_for_product(product_id: str) -> str:
    return f"/v1/ciProducts/{product_id}/workflows"


def build_runs_for_workflow(workflow_id: str) -> str:
    return f"/v1/ciWorkflows/{workflow_id}/buildRuns?include=sourceBranchOrTag&limit=50"


def build_run_by_id(build_run_id: str) -> str:
    return f"/v1/ciBuildRuns/{build_run_id}?include=sourceBranchOrTag"


def build_actions_for_run(build_run_id: str) -> str:
    return f"/v1/ciBuildRuns/{build_run_id}/actions"


def artifacts_for_action(action_id: str) -> str:
    return f"/v1/ciBuildActions/{action_id}/artifacts"


def create_build_run_payload(workflow_id: str) -> str:
    """JSON body for POST /v1/ciBuildRuns."""
    body = {
        "data": {
            "type": "ciBuildRuns",
            "relationships": {
                "workflow": {
                    "data": {"type": "ciWorkflows", "id": workflow_id},
                },
            },
        },
    }
    return json.dumps(body, separators=(",", ":"))
