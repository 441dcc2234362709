"""
mock.py - In-memory Xcode Cloud client used without credentials.

Serves the fixed dataset in mock_data.yaml so every screen, transition and
renderer can be exercised offline. The dataset is deterministic: the same
call always returns the same records.
"""

import logging
from functools import lru_cache
from pathlib import Path

import yaml

from .base import CiClient, MOCK_URL_PREFIX, write_download
from .models import (
    CiProduct,
    CiWorkflow,
    CiBuildRun,
    CiBuildAction,
    CiArtifact,
)


_log = logging.getLogger("xcodecloud.connect.mock")


@lru_cache(maxsize=1)
def load_mock_dataset() -> dict:
    """Load the packaged mock dataset from mock_data.yaml."""
    dataset_path = Path(__file__).parent / "mock_data.yaml"
    with open(dataset_path, encoding="utf-8") as f:
        return yaml.safe_load(f)


def mock_log_content(artifact: CiArtifact) -> str:
    """Synthetic build log for a mock artifact."""
    template = load_mock_dataset()["log_template"]
    return template.replace("{file_name}", artifact.file_name)


def mock_download_bytes() -> bytes:
    return load_mock_dataset()["download_placeholder"].encode("utf-8")


class MockCiClient(CiClient):
    """
    Client returning the built-in dataset instead of calling the network.

    Parent ids are accepted and ignored: every product has the same
    workflows, every workflow the same runs, and so on.
    """

    @property
    def is_mock(self) -> bool:
        return True

    def list_products(self) -> list[CiProduct]:
        return [CiProduct(**item) for item in load_mock_dataset()["products"]]

    def list_workflows(self, product_id: str) -> list[CiWorkflow]:
        return [CiWorkflow(**item) for item in load_mock_dataset()["workflows"]]

    def list_build_runs(self, workflow_id: str) -> list[CiBuildRun]:
        return [CiBuildRun(**item) for item in load_mock_dataset()["build_runs"]]

    def get_build_run(self, build_run_id: str) -> CiBuildRun:
        return CiBuildRun(id=build_run_id, **load_mock_dataset()["build_run_detail"])

    def list_build_actions(self, build_run_id: str) -> list[CiBuildAction]:
        return [CiBuildAction(**item) for item in load_mock_dataset()["build_actions"]]

    def list_artifacts(self, action_id: str) -> list[CiArtifact]:
        return [
            CiArtifact(
                download_url=f"{MOCK_URL_PREFIX}{action_id}/{item['file_name']}",
                **item,
            )
            for item in load_mock_dataset()["artifacts"]
        ]

    def create_build_run(self, workflow_id: str) -> CiBuildRun:
        _log.debug(f"Mock build run created for workflow {workflow_id}")
        return CiBuildRun(**load_mock_dataset()["created_build_run"])

    def fetch_artifact_content(self, artifact: CiArtifact) -> str:
        return mock_log_content(artifact)

    def download_artifact(self, artifact: CiArtifact, download_dir: Path | None = None) -> Path:
        return write_download(artifact, mock_download_bytes(), download_dir)
