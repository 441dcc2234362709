"""
Shared fixtures for the Xcode Cloud TUI tests.
"""

import base64
import sys
from pathlib import Path

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec

# Add scripts directory to path so connect and tui packages are importable
sys.path.insert(0, str(Path(__file__).parent.parent / "scripts"))


@pytest.fixture
def p256_key():
    """A fresh EC P-256 private key."""
    return ec.generate_private_key(ec.SECP256R1())


@pytest.fixture
def p256_scalar(p256_key) -> bytes:
    """The raw 32-byte private scalar of p256_key."""
    return p256_key.private_numbers().private_value.to_bytes(32, "big")


@pytest.fixture
def key_encodings(p256_key) -> dict[str, bytes]:
    """The same key as PEM text, DER bytes and Base64 of each."""
    pem = p256_key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )
    der = p256_key.private_bytes(
        serialization.Encoding.DER,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )
    return {
        "pem": pem,
        "der": der,
        "base64_pem": base64.b64encode(pem),
        "base64_der": base64.b64encode(der),
    }


@pytest.fixture
def credential_env(key_encodings) -> dict[str, str]:
    """Environment mapping with all three App Store Connect secrets."""
    return {
        "APPSTORE_CONNECT_API_ISSUER_ID": "69a6de70-03db-47e3-e053-5b8c7c11a4d1",
        "APPSTORE_CONNECT_API_KEY_ID": "ABC123DEFG",
        "APPSTORE_CONNECT_API_KEY": key_encodings["pem"].decode("ascii"),
    }


@pytest.fixture
def mock_client():
    from connect.mock import MockCiClient
    return MockCiClient(auth_warning="Environment variables missing/invalid (MissingSecret); using mock data")
