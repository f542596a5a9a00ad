"""
Exception type and error classification for the Blacklist Alliance client.

Provides:
- ErrorKind enum for retry and circuit breaker decisions
- BlacklistAllianceError, the single error type raised by the client
- Classification utilities keyed on HTTP status and transport exceptions
"""

import asyncio
from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(Enum):
    """
    Classification of client failures.

    Kinds:
        VALIDATION: Malformed input, rejected before any network call (or 400/422)
        AUTHENTICATION: Credential rejected (401/403)
        RATE_LIMIT: Rate limited (429), may carry a retry-after hint
        TIMEOUT: HTTP 408 or the per-attempt timeout elapsed
        NETWORK: Transport-level failure (reset, DNS, refused)
        SERVER: Upstream 5xx
        CIRCUIT_OPEN: Circuit breaker is open, rejecting without attempting
        CANCELLED: Caller cancelled the operation
        UPSTREAM: Any other non-2xx status
    """

    VALIDATION = "validation"
    AUTHENTICATION = "authentication"
    RATE_LIMIT = "rate_limit"
    TIMEOUT = "timeout"
    NETWORK = "network"
    SERVER = "server"
    CIRCUIT_OPEN = "circuit_open"
    CANCELLED = "cancelled"
    UPSTREAM = "upstream"


RETRYABLE_KINDS = frozenset(
    {
        ErrorKind.RATE_LIMIT,
        ErrorKind.TIMEOUT,
        ErrorKind.NETWORK,
        ErrorKind.SERVER,
    }
)


class BlacklistAllianceError(Exception):
    """
    Error raised by every failed client operation.

    Attributes:
        message: Human-readable error description
        kind: Error classification
        status_code: HTTP status (0 for transport failures and cancellation)
        response: Raw parsed response payload, if any
        retry_after: Seconds to wait, from the Retry-After header (429 only)
        details: Kind-specific extra data
        cause: Original exception if wrapping
    """

    def __init__(
        self,
        message: str,
        kind: ErrorKind = ErrorKind.UPSTREAM,
        status_code: int = 0,
        response: Any = None,
        retry_after: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[BaseException] = None,
    ):
        self.message = message
        self.kind = kind
        self.status_code = status_code
        self.response = response
        self.retry_after = retry_after
        self.details = details or {}
        self.cause = cause
        super().__init__(message)

    @property
    def is_retryable(self) -> bool:
        """Whether another attempt is permitted for this failure."""
        return self.kind in RETRYABLE_KINDS

    @property
    def is_cancellation(self) -> bool:
        return self.kind == ErrorKind.CANCELLED

    @property
    def is_client_timeout(self) -> bool:
        """True for a local timeout, False for an HTTP 408 sent by the server."""
        return self.kind == ErrorKind.TIMEOUT and self.details.get("source") == "client"

    @classmethod
    def from_response(
        cls,
        message: str,
        status_code: int,
        response: Any = None,
        retry_after: Optional[int] = None,
    ) -> "BlacklistAllianceError":
        """
        Build a classified error for a non-2xx HTTP response.

        Args:
            message: Error description
            status_code: HTTP status code
            response: Parsed response body
            retry_after: Retry-After header value in seconds

        Returns:
            BlacklistAllianceError with kind derived from the status
        """
        kind = classify_http_status(status_code)
        return cls(
            message,
            kind=kind,
            status_code=status_code,
            response=response,
            retry_after=retry_after if kind == ErrorKind.RATE_LIMIT else None,
        )

    @classmethod
    def validation(cls, message: str, status_code: int = 422) -> "BlacklistAllianceError":
        return cls(message, kind=ErrorKind.VALIDATION, status_code=status_code)

    @classmethod
    def cancelled(cls, message: str = "Request aborted") -> "BlacklistAllianceError":
        return cls(message, kind=ErrorKind.CANCELLED, status_code=0)

    @classmethod
    def timeout(
        cls, message: str = "Request timeout", cause: Optional[BaseException] = None
    ) -> "BlacklistAllianceError":
        return cls(
            message,
            kind=ErrorKind.TIMEOUT,
            status_code=408,
            details={"source": "client"},
            cause=cause,
        )

    @classmethod
    def network(cls, message: str, cause: Optional[BaseException] = None) -> "BlacklistAllianceError":
        return cls(message, kind=ErrorKind.NETWORK, status_code=0, cause=cause)

    @classmethod
    def circuit_open(cls, reset_timeout_ms: int) -> "BlacklistAllianceError":
        return cls(
            f"Circuit breaker is OPEN. Service unavailable. "
            f"Will retry after {reset_timeout_ms}ms cooldown.",
            kind=ErrorKind.CIRCUIT_OPEN,
            status_code=503,
            details={"reset_timeout_ms": reset_timeout_ms},
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serializable view for logs and CLI output."""
        return {
            "error": self.kind.value,
            "message": self.message,
            "status_code": self.status_code,
            "retry_after": self.retry_after,
            "details": self.details,
            "response": self.response,
        }

    def __str__(self) -> str:
        parts = [self.message]
        if self.cause:
            parts.append(f"Caused by: {self.cause}")
        return " | ".join(parts)


# =============================================================================
# Error Classification Utilities
# =============================================================================


def classify_http_status(status_code: int) -> ErrorKind:
    """
    Classify a non-2xx HTTP status code into an error kind.

    Args:
        status_code: HTTP response status

    Returns:
        Appropriate ErrorKind
    """
    if status_code in (401, 403):
        return ErrorKind.AUTHENTICATION

    if status_code == 408:
        return ErrorKind.TIMEOUT

    if status_code == 429:
        return ErrorKind.RATE_LIMIT

    if status_code in (400, 422):
        return ErrorKind.VALIDATION

    if status_code >= 500:
        return ErrorKind.SERVER

    return ErrorKind.UPSTREAM


def parse_retry_after(value: Optional[str]) -> Optional[int]:
    """Parse a Retry-After header holding integer seconds."""
    if not value:
        return None
    try:
        return int(value.strip())
    except ValueError:
        # HTTP-date form is not used by this API
        return None


def wrap_exception(exc: BaseException) -> BlacklistAllianceError:
    """
    Wrap a transport exception in a classified BlacklistAllianceError.

    Args:
        exc: Exception raised while performing a request

    Returns:
        TIMEOUT error for timeouts, NETWORK error for everything else
    """
    if isinstance(exc, BlacklistAllianceError):
        return exc

    if isinstance(exc, asyncio.TimeoutError):
        return BlacklistAllianceError.timeout(cause=exc)

    message = str(exc) or type(exc).__name__
    return BlacklistAllianceError.network(f"Connection error: {message}", cause=exc)
