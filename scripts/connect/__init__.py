"""
connect - App Store Connect client for Xcode Cloud.

Provides one interface for browsing products, workflows, build runs, build
actions and artifacts, starting build runs and fetching artifacts.

Usage:
    from connect import get_client

    client = get_client()
    if client.is_mock:
        print(client.auth_warning)

    for product in client.list_products():
        print(product.name, product.bundle_id)
"""

import logging
from typing import Mapping

from .base import (
    CiClient,
    CiError,
    AuthError,
    MissingSecret,
    KeyDecodeError,
    EmptyInput,
    InvalidBase64,
    MissingPrivateKeyScalar,
    TransportError,
    HttpStatusError,
    Unauthorized,
    Forbidden,
    NotFound,
    RateLimited,
    RequestFailed,
    ParseError,
    ArtifactError,
    DEFAULT_DOWNLOAD_DIR,
)
from .credentials import load_credentials
from .models import (
    CiProduct,
    CiWorkflow,
    CiBuildRun,
    CiBuildAction,
    CiArtifact,
    Credentials,
    sort_build_runs,
)


_log = logging.getLogger("xcodecloud.connect")


def get_client(env: Mapping[str, str] | None = None) -> CiClient:
    """
    Factory returning a live client, or the mock client when credentials
    cannot be loaded.

    The mock client carries an auth_warning naming the credential error so
    the UI can tell the user why it is not showing real data.

    Args:
        env: Environment mapping (default: os.environ)

    Returns:
        LiveCiClient or MockCiClient
    """
    try:
        credentials = load_credentials(env)
    except AuthError as e:
        from .mock import MockCiClient
        _log.info(f"Credentials unavailable ({e.name}: {e}); falling back to mock data")
        return MockCiClient(
            auth_warning=f"Environment variables missing/invalid ({e.name}); using mock data"
        )

    from .live import LiveCiClient
    return LiveCiClient(credentials)


__all__ = [
    "CiClient",
    "CiError",
    "AuthError",
    "MissingSecret",
    "KeyDecodeError",
    "EmptyInput",
    "InvalidBase64",
    "MissingPrivateKeyScalar",
    "TransportError",
    "HttpStatusError",
    "Unauthorized",
    "Forbidden",
    "NotFound",
    "RateLimited",
    "RequestFailed",
    "ParseError",
    "ArtifactError",
    "DEFAULT_DOWNLOAD_DIR",
    "CiProduct",
    "CiWorkflow",
    "CiBuildRun",
    "CiBuildAction",
    "CiArtifact",
    "Credentials",
    "sort_build_runs",
    "load_credentials",
    "get_client",
]
