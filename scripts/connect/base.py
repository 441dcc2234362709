"""
base.py - Abstract client interface and error hierarchy for the Xcode Cloud API.

Defines a single interface for every call the TUI makes against App Store
Connect. Two implementations exist: LiveCiClient (signed HTTP requests) and
MockCiClient (fixed dataset used when credentials are missing).

All clients must implement:
- Hierarchy: list_products(), list_workflows(), list_build_runs(),
             get_build_run(), list_build_actions(), list_artifacts()
- Actions: create_build_run()
- Artifacts: fetch_artifact_content(), download_artifact()
"""

import re
from abc import ABC, abstractmethod
from pathlib import Path

from .models import (
    CiProduct,
    CiWorkflow,
    CiBuildRun,
    CiBuildAction,
    CiArtifact,
)


DEFAULT_DOWNLOAD_DIR = Path("downloads")

MOCK_URL_PREFIX = "mock://"

# Characters that are not allowed in downloaded file names
_UNSAFE_FILENAME_CHARS = re.compile(r'[/\\:*?"<>|\x00]')


class CiClient(ABC):
    """
    Abstract base class for Xcode Cloud clients.

    Usage:
        from connect import get_client

        client = get_client()
        if client.auth_warning:
            print(client.auth_warning)

        products = client.list_products()
        workflows = client.list_workflows(products[0].id)
    """

    def __init__(self, auth_warning: str | None = None):
        """
        Initialize the client.

        Args:
            auth_warning: Persistent warning shown by the UI (mock mode reason)
        """
        self.auth_warning = auth_warning

    @property
    def is_mock(self) -> bool:
        """True when the client serves the built-in dataset."""
        return False

    # === Hierarchy ===

    @abstractmethod
    def list_products(self) -> list[CiProduct]:
        """
        List CI products.

        Raises:
            CiError: If the request or parsing fails
        """
        pass

    @abstractmethod
    def list_workflows(self, product_id: str) -> list[CiWorkflow]:
        """List workflows of a product."""
        pass

    @abstractmethod
    def list_build_runs(self, workflow_id: str) -> list[CiBuildRun]:
        """
        List build runs of a workflow.

        The order is whatever the service returns; callers sort with
        models.sort_build_runs().
        """
        pass

    @abstractmethod
    def get_build_run(self, build_run_id: str) -> CiBuildRun:
        """Fetch a single build run."""
        pass

    @abstractmethod
    def list_build_actions(self, build_run_id: str) -> list[CiBuildAction]:
        """List the actions (phases) of a build run."""
        pass

    @abstractmethod
    def list_artifacts(self, action_id: str) -> list[CiArtifact]:
        """List the artifacts produced by a build action."""
        pass

    # === Actions ===

    @abstractmethod
    def create_build_run(self, workflow_id: str) -> CiBuildRun:
        """
        Start a new build run for a workflow.

        Returns:
            The created build run record
        """
        pass

    # === Artifacts ===

    @abstractmethod
    def fetch_artifact_content(self, artifact: CiArtifact) -> str:
        """
        Fetch an artifact and return text suitable for the log viewer.

        Log bundles are extracted; binary content is replaced by a
        placeholder message.
        """
        pass

    @abstractmethod
    def download_artifact(self, artifact: CiArtifact, download_dir: Path | None = None) -> Path:
        """
        Save an artifact under the download directory.

        Returns:
            Path of the written file
        """
        pass


def sanitize_file_name(raw: str) -> str:
    """
    Make an artifact file name safe to write on any platform.

    Replaces / \\ : * ? " < > | and NUL with underscores. Empty names become
    "artifact.bin".
    """
    safe = _UNSAFE_FILENAME_CHARS.sub("_", raw or "")
    return safe or "artifact.bin"


def is_mock_url(url: str) -> bool:
    """True for the pseudo URLs handed out by the mock dataset."""
    return url.startswith(MOCK_URL_PREFIX)


def write_download(artifact: CiArtifact, data: bytes, download_dir: Path | None = None) -> Path:
    """
    Write artifact bytes to <download_dir>/<sanitized file name>.

    Returns:
        Path of the written file
    """
    target_dir = Path(download_dir) if download_dir is not None else DEFAULT_DOWNLOAD_DIR
    out_path = target_dir / sanitize_file_name(artifact.file_name)
    try:
        target_dir.mkdir(parents=True, exist_ok=True)
        out_path.write_bytes(data)
    except OSError as e:
        raise ArtifactError(f"Could not write {out_path}: {e}") from e
    return out_path


class CiError(Exception):
    """Base exception for Xcode Cloud client errors."""

    @property
    def name(self) -> str:
        """Short error name for the status line."""
        return type(self).__name__


class AuthError(CiError):
    """Credentials are missing or cannot be used."""
    pass


class MissingSecret(AuthError):
    """A required environment variable is not set."""

    def __init__(self, variable: str):
        super().__init__(f"{variable} is not set")
        self.variable = variable


class KeyDecodeError(AuthError):
    """The private key blob could not be decoded."""
    pass


class EmptyInput(KeyDecodeError):
    """The private key blob is empty or whitespace only."""
    pass


class InvalidBase64(KeyDecodeError):
    """No Base64 variant could decode the input."""
    pass


class MissingPrivateKeyScalar(KeyDecodeError):
    """The DER bytes contain no 32-byte OCTET STRING (0x04 0x20)."""
    pass


class TransportError(CiError):
    """The request never produced an HTTP response."""

    def __init__(self, message: str, transient: bool = False):
        super().__init__(message)
        self.transient = transient


class HttpStatusError(CiError):
    """The service answered with a non-2xx status."""

    def __init__(self, status_code: int, message: str = ""):
        super().__init__(message or f"HTTP {status_code}")
        self.status_code = status_code


class Unauthorized(HttpStatusError):
    """401 - token rejected."""
    pass


class Forbidden(HttpStatusError):
    """403 - key lacks access."""
    pass


class NotFound(HttpStatusError):
    """404 - resource does not exist."""
    pass


class RateLimited(HttpStatusError):
    """429 - too many requests."""
    pass


class RequestFailed(HttpStatusError):
    """Any other non-2xx status."""
    pass


class ParseError(CiError):
    """The response body does not have the expected JSON shape."""
    pass


class ArtifactError(CiError):
    """An artifact could not be listed, extracted or decoded."""
    pass
