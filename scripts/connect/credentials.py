"""
credentials.py - App Store Connect API key loading and token signing.

Environment variables required:
    APPSTORE_CONNECT_API_ISSUER_ID: Issuer id (JWT "iss")
    APPSTORE_CONNECT_API_KEY_ID: Key id (JWT "kid")
    APPSTORE_CONNECT_API_KEY: The .p8 private key, in any of these forms:
        1. Base64 of the PEM file
        2. Base64 of the DER bytes
        3. PEM text
        4. DER bytes

Only the raw 32-byte P-256 scalar is kept. It is located with a heuristic
(first ASN.1 OCTET STRING of length 32, bytes 0x04 0x20) rather than a full
ASN.1 parse; this matches both PKCS#8 and SEC1 EC keys.
"""

import base64
import binascii
import logging
import os
import re
from typing import Callable, Mapping

import jwt
from cryptography.hazmat.primitives.asymmetric import ec

from .base import (
    KeyDecodeError,
    EmptyInput,
    InvalidBase64,
    MissingPrivateKeyScalar,
    MissingSecret,
)
from .models import Credentials


ISSUER_ID_ENV = "APPSTORE_CONNECT_API_ISSUER_ID"
KEY_ID_ENV = "APPSTORE_CONNECT_API_KEY_ID"
PRIVATE_KEY_ENV = "APPSTORE_CONNECT_API_KEY"

TOKEN_LIFETIME_SECONDS = 1200
TOKEN_AUDIENCE = "appstoreconnect-v1"

SCALAR_MARKER = b"\x04\x20"
SCALAR_LENGTH = 32

_STANDARD_ALPHABET = re.compile(rb"^[A-Za-z0-9+/]*={0,2}$")
_URLSAFE_ALPHABET = re.compile(rb"^[A-Za-z0-9\-_]*={0,2}$")
_WHITESPACE = re.compile(rb"\s+")

_log = logging.getLogger("xcodecloud.connect.credentials")


# === Credentials ===

def load_credentials(env: Mapping[str, str] | None = None) -> Credentials:
    """
    Read the three secrets and decode the private key.

    Args:
        env: Mapping to read from (default: os.environ)

    Raises:
        MissingSecret: If any variable is unset or empty
        KeyDecodeError: If the key blob cannot be turned into a usable scalar
    """
    env = os.environ if env is None else env

    values = {}
    for name in (ISSUER_ID_ENV, KEY_ID_ENV, PRIVATE_KEY_ENV):
        value = env.get(name)
        if not value:
            raise MissingSecret(name)
        values[name] = value

    private_key = decode_private_key(values[PRIVATE_KEY_ENV])
    # Reject scalars outside the curve order now rather than on first request
    _signing_key(private_key)

    _log.debug(f"Loaded credentials for key id {values[KEY_ID_ENV]}")
    return Credentials(
        issuer_id=values[ISSUER_ID_ENV],
        key_id=values[KEY_ID_ENV],
        private_key=private_key,
    )


# === Key decoding ===

def decode_private_key(blob: str | bytes) -> bytes:
    """
    Decode a private key blob to the raw 32-byte P-256 scalar.

    Attempts, in order: Base64 of PEM, Base64 of DER, PEM text, raw DER.
    The first attempt that yields a scalar wins.

    Raises:
        EmptyInput: If the blob is empty or whitespace only
        InvalidBase64: If the blob is PEM but its body is not Base64
        MissingPrivateKeyScalar: If no attempt finds the 0x04 0x20 marker
    """
    data = blob.encode("utf-8", "surrogateescape") if isinstance(blob, str) else bytes(blob)
    if not data.strip():
        raise EmptyInput("Private key is empty")

    attempts: list[tuple[str, Callable[[bytes], bytes]]] = [
        ("base64(pem)", _from_base64_pem),
        ("base64(der)", _from_base64_der),
        ("pem", _from_pem),
        ("der", _from_der),
    ]

    pem_error: KeyDecodeError | None = None
    for label, attempt in attempts:
        try:
            scalar = extract_private_scalar(attempt(data))
        except InvalidBase64 as e:
            if label == "pem" and _is_pem(data):
                pem_error = e
            continue
        except MissingPrivateKeyScalar:
            continue
        _log.debug(f"Private key decoded as {label}")
        return scalar

    if pem_error is not None:
        raise pem_error
    raise MissingPrivateKeyScalar("No 32-byte private key scalar found")


def decode_base64_auto(source: bytes) -> bytes:
    """
    Decode Base64 trying four variants.

    Whitespace is removed first. Variants: standard padded, standard
    unpadded, URL-safe padded, URL-safe unpadded.

    Raises:
        InvalidBase64: If no variant accepts the input
    """
    compact = _WHITESPACE.sub(b"", source)
    if not compact:
        raise InvalidBase64("Nothing to decode")

    variants = (
        (_STANDARD_ALPHABET, True, base64.b64decode),
        (_STANDARD_ALPHABET, False, base64.b64decode),
        (_URLSAFE_ALPHABET, True, base64.urlsafe_b64decode),
        (_URLSAFE_ALPHABET, False, base64.urlsafe_b64decode),
    )
    for alphabet, padded, decoder in variants:
        decoded = _decode_variant(compact, alphabet, padded, decoder)
        if decoded is not None:
            return decoded
    raise InvalidBase64("Input is not Base64 in any supported variant")


def _decode_variant(compact: bytes, alphabet: re.Pattern, padded: bool, decoder) -> bytes | None:
    if not alphabet.match(compact):
        return None
    if padded:
        if len(compact) % 4 != 0:
            return None
    else:
        if b"=" in compact or len(compact) % 4 == 1:
            return None
        compact += b"=" * (-len(compact) % 4)
    try:
        return decoder(compact)
    except (binascii.Error, ValueError):
        return None


def decode_pem(pem_text: bytes) -> bytes:
    """
    Strip PEM armor and decode the body.

    Blank lines and lines starting with ----- are dropped; the rest is
    joined and Base64-decoded.

    Raises:
        InvalidBase64: If the body is empty or not Base64
    """
    body = b"".join(
        line.strip()
        for line in pem_text.split(b"\n")
        if line.strip() and not line.strip().startswith(b"-----")
    )
    if not body:
        raise InvalidBase64("PEM document has no body")
    return decode_base64_auto(body)


def extract_private_scalar(der: bytes) -> bytes:
    """
    Find the 32 bytes following the first 0x04 0x20 pair.

    Raises:
        MissingPrivateKeyScalar: If the marker is absent or truncated
    """
    start = der.find(SCALAR_MARKER)
    while start != -1:
        end = start + len(SCALAR_MARKER) + SCALAR_LENGTH
        if end <= len(der):
            return der[start + len(SCALAR_MARKER):end]
        start = der.find(SCALAR_MARKER, start + 1)
    raise MissingPrivateKeyScalar("No 0x04 0x20 OCTET STRING in key data")


def _is_pem(data: bytes) -> bool:
    return b"-----BEGIN" in data


def _from_base64_pem(data: bytes) -> bytes:
    decoded = decode_base64_auto(data)
    if not _is_pem(decoded):
        raise InvalidBase64("Decoded value is not PEM")
    return decode_pem(decoded.strip())


def _from_base64_der(data: bytes) -> bytes:
    # Any decoded blob is scanned for the scalar marker, not only SEQUENCEs
    return decode_base64_auto(data)


def _from_pem(data: bytes) -> bytes:
    if not _is_pem(data):
        raise InvalidBase64("Value is not PEM")
    return decode_pem(data.strip())


def _from_der(data: bytes) -> bytes:
    return data


# === Tokens ===

def _signing_key(private_key: bytes) -> ec.EllipticCurvePrivateKey:
    try:
        return ec.derive_private_key(int.from_bytes(private_key, "big"), ec.SECP256R1())
    except ValueError as e:
        raise KeyDecodeError(f"Private key scalar is not valid for P-256: {e}") from e


def generate_token(creds: Credentials, now_seconds: int) -> str:
    """
    Create a signed ES256 JWT valid for TOKEN_LIFETIME_SECONDS.

    Args:
        creds: Loaded credentials
        now_seconds: Current Unix time (iat)

    Returns:
        header.payload.signature, each Base64URL without padding
    """
    payload = {
        "iss": creds.issuer_id,
        "iat": int(now_seconds),
        "exp": int(now_seconds) + TOKEN_LIFETIME_SECONDS,
        "aud": TOKEN_AUDIENCE,
    }
    return jwt.encode(
        payload,
        _signing_key(creds.private_key),
        algorithm="ES256",
        headers={"kid": creds.key_id, "typ": "JWT"},
    )
