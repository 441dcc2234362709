"""
live.py - App Store Connect client over HTTPS.

Every API call carries a freshly signed ES256 bearer token. Failed attempts
are retried according to retry.decide(): up to MAX_ATTEMPTS, resetting the
HTTP session and sleeping 250ms x attempt between tries.

Artifact downloads go to pre-signed URLs and are sent without the
Authorization header.
"""

import logging
import threading
import time
from pathlib import Path
from typing import Callable

import requests

from . import endpoints, parsing
from .base import (
    CiClient,
    ArtifactError,
    CiError,
    TransportError,
    is_mock_url,
    write_download,
)
from .bundles import decode_log_bundle, is_zip_data, normalize_viewer_text
from .credentials import generate_token
from .mock import mock_download_bytes, mock_log_content
from .models import (
    Credentials,
    CiProduct,
    CiWorkflow,
    CiBuildRun,
    CiBuildAction,
    CiArtifact,
)
from .retry import Fail, decide, error_for_status, is_transient_exception


DEFAULT_TIMEOUT_SECONDS = 60

_log = logging.getLogger("xcodecloud.connect.live")


class LiveCiClient(CiClient):
    """
    Client for the real App Store Connect API.

    Requests are serialized with a lock so a background poll and a user
    action never share the session at the same time.
    """

    def __init__(
        self,
        credentials: Credentials,
        base_url: str = endpoints.BASE_URL,
        session_factory: Callable[[], requests.Session] = requests.Session,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.time,
        timeout: float | None = DEFAULT_TIMEOUT_SECONDS,
    ):
        """
        Initialize the live client.

        Args:
            credentials: Key material used to sign every request
            base_url: API host (overridable for tests)
            session_factory: Builds the HTTP session; called again on reset
            sleep: Backoff sleep function
            clock: Source of the current Unix time for token iat
            timeout: Per-attempt timeout passed to requests
        """
        super().__init__()
        self.credentials = credentials
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session_factory = session_factory
        self._sleep = sleep
        self._clock = clock
        self._lock = threading.Lock()
        self._session = session_factory()

    def close(self) -> None:
        """Release the HTTP session."""
        self._session.close()

    def reset_session(self) -> None:
        """Drop pooled connections and start a new session in place."""
        self._session.close()
        self._session = self._session_factory()

    # === Transport ===

    def _send(self, method: str, url: str, headers: dict | None = None, data: str | None = None) -> requests.Response:
        """Perform one logical request with retries. Caller holds the lock."""
        attempt = 0
        while True:
            try:
                response = self._session.request(
                    method, url, headers=headers, data=data, timeout=self.timeout
                )
            except requests.RequestException as e:
                transient = isinstance(e, requests.Timeout) or is_transient_exception(e)
                error: CiError = TransportError(str(e), transient=transient)
                cause: BaseException | None = e
            else:
                if 200 <= response.status_code < 300:
                    return response
                error = error_for_status(response.status_code, _error_detail(response))
                cause = None

            decision = decide(attempt, error)
            if isinstance(decision, Fail):
                _log.debug(f"{method} {url} failed on attempt {attempt + 1}: {error.name} {error}")
                raise decision.error from cause

            _log.debug(
                f"{method} {url} attempt {attempt + 1} failed ({error.name}); "
                f"retrying in {decision.delay:.2f}s"
            )
            self.reset_session()
            self._sleep(decision.delay)
            attempt += 1

    def _request_json(self, method: str, path: str, payload: str | None = None) -> bytes:
        token = generate_token(self.credentials, int(self._clock()))
        headers = {
            "Accept": "application/json",
            "Authorization": f"Bearer {token}",
        }
        if payload is not None:
            headers["Content-Type"] = "application/json"

        url = f"{self.base_url}{path}"
        with self._lock:
            response = self._send(method, url, headers=headers, data=payload)
        _log.debug(f"{method} {path} -> {response.status_code}")
        return response.content

    def _fetch_url(self, url: str) -> bytes:
        if not url or url == "-":
            raise ArtifactError("Artifact has no download URL")
        with self._lock:
            response = self._send("GET", url)
        return response.content

    # === Hierarchy ===

    def list_products(self) -> list[CiProduct]:
        return parsing.parse_products(self._request_json("GET", endpoints.CI_PRODUCTS))

    def list_workflows(self, product_id: str) -> list[CiWorkflow]:
        body = self._request_json("GET", endpoints.workflows_for_product(product_id))
        return parsing.parse_workflows(body)

    def list_build_runs(self, workflow_id: str) -> list[CiBuildRun]:
        body = self._request_json("GET", endpoints.build_runs_for_workflow(workflow_id))
        return parsing.parse_build_runs(body)

    def get_build_run(self, build_run_id: str) -> CiBuildRun:
        body = self._request_json("GET", endpoints.build_run_by_id(build_run_id))
        return parsing.parse_build_run(body)

    def list_build_actions(self, build_run_id: str) -> list[CiBuildAction]:
        body = self._request_json("GET", endpoints.build_actions_for_run(build_run_id))
        return parsing.parse_build_actions(body)

    def list_artifacts(self, action_id: str) -> list[CiArtifact]:
        body = self._request_json("GET", endpoints.artifacts_for_action(action_id))
        return parsing.parse_artifacts(body)

    # === Actions ===

    def create_build_run(self, workflow_id: str) -> CiBuildRun:
        payload = endpoints.create_build_run_payload(workflow_id)
        body = self._request_json("POST", endpoints.CI_BUILD_RUNS, payload)
        return parsing.parse_build_run(body)

    # === Artifacts ===

    def fetch_artifact_content(self, artifact: CiArtifact) -> str:
        if is_mock_url(artifact.download_url):
            return mock_log_content(artifact)

        raw = self._fetch_url(artifact.download_url)
        if artifact.file_type == "LOG_BUNDLE" or is_zip_data(raw):
            return decode_log_bundle(raw)
        return normalize_viewer_text(raw)

    def download_artifact(self, artifact: CiArtifact, download_dir: Path | None = None) -> Path:
        if is_mock_url(artifact.download_url):
            return write_download(artifact, mock_download_bytes(), download_dir)

        data = self._fetch_url(artifact.download_url)
        out_path = write_download(artifact, data, download_dir)
        _log.debug(f"Downloaded {artifact.file_name} to {out_path}")
        return out_path


def _error_detail(response: requests.Response) -> str:
    """First error title from a JSON:API error body, else the status line."""
    try:
        errors = response.json().get("errors") or []
        if errors and isinstance(errors[0], dict):
            title = errors[0].get("title") or errors[0].get("detail")
            if title:
                return f"HTTP {response.status_code}: {title}"
    except (ValueError, AttributeError):
        pass
    return f"HTTP {response.status_code}"
