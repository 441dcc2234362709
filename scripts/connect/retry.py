"""
retry.py - Retry policy for App Store Connect requests.

The policy is a pure function of (attempt, error) so it can be tested
without any network. The live client owns the loop, the sleep and the
session reset; this module only decides.

    decision = decide(attempt, error)
    if isinstance(decision, Retry):
        time.sleep(decision.delay)
    else:
        raise decision.error
"""

import errno
import socket
from dataclasses import dataclass

from .base import (
    CiError,
    TransportError,
    HttpStatusError,
    Unauthorized,
    Forbidden,
    NotFound,
    RateLimited,
    RequestFailed,
)


MAX_ATTEMPTS = 3
RETRY_BASE_DELAY_SECONDS = 0.25

RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})

# errno values that mark a transport failure as transient
TRANSIENT_ERRNOS = frozenset({
    errno.ECONNRESET,
    errno.EPIPE,
    errno.ENETUNREACH,
    errno.EHOSTUNREACH,
    errno.ECONNREFUSED,
    errno.ETIMEDOUT,
})

_STATUS_ERRORS = {
    401: Unauthorized,
    403: Forbidden,
    404: NotFound,
    429: RateLimited,
}


@dataclass(frozen=True)
class Retry:
    """Try again after sleeping delay seconds."""
    delay: float


@dataclass(frozen=True)
class Fail:
    """Give up and surface error."""
    error: CiError


def retry_delay(attempt: int) -> float:
    """Delay before the attempt following attempt (0-based): 250ms, 500ms, ..."""
    return RETRY_BASE_DELAY_SECONDS * (attempt + 1)


def is_retryable(error: CiError) -> bool:
    """True for transient transport failures and retryable status codes."""
    if isinstance(error, TransportError):
        return error.transient
    if isinstance(error, HttpStatusError):
        return error.status_code in RETRYABLE_STATUS_CODES
    return False


def decide(attempt: int, error: CiError, max_attempts: int = MAX_ATTEMPTS) -> Retry | Fail:
    """
    Decide what to do after attempt (0-based) failed with error.

    Returns:
        Retry(delay) when another attempt is allowed, otherwise Fail(error)
    """
    if attempt + 1 < max_attempts and is_retryable(error):
        return Retry(retry_delay(attempt))
    return Fail(error)


def error_for_status(status_code: int, message: str = "") -> HttpStatusError:
    """Map a non-2xx status code to its error class."""
    error_class = _STATUS_ERRORS.get(status_code, RequestFailed)
    return error_class(status_code, message)


def is_transient_exception(exc: BaseException) -> bool:
    """
    Classify a low-level transport exception.

    Walks the exception chain (requests wraps urllib3 which wraps socket
    errors) looking for DNS failures, timeouts or one of TRANSIENT_ERRNOS.
    """
    seen = set()
    current: BaseException | None = exc
    while current is not None and id(current) not in seen:
        seen.add(id(current))
        if isinstance(current, (socket.gaierror, socket.timeout, TimeoutError)):
            return True
        if isinstance(current, (ConnectionResetError, BrokenPipeError, ConnectionRefusedError)):
            return True
        if isinstance(current, OSError) and current.errno in TRANSIENT_ERRNOS:
            return True
        nested = [arg for arg in getattr(current, "args", ()) if isinstance(arg, BaseException)]
        reason = getattr(current, "reason", None)
        if isinstance(reason, BaseException):
            nested.insert(0, reason)
        current = current.__cause__ or current.__context__ or (nested[0] if nested else None)
    return False
