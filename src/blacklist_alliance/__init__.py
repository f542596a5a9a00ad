"""
Resilient async client for the Blacklist Alliance lookup API.

Usage:
    from blacklist_alliance import BlacklistAllianceClient, CircuitBreakerConfig

    async with BlacklistAllianceClient(
        api_key,
        circuit_breaker=CircuitBreakerConfig(failure_threshold=5),
    ) as client:
        result = await client.bulk_lookup_simple(phones, on_progress=print)
"""

from blacklist_alliance.batching import BATCH_LIMIT
from blacklist_alliance.client import BASE_URL, BlacklistAllianceClient
from blacklist_alliance.common.cancellation import CancellationToken
from blacklist_alliance.common.exceptions import BlacklistAllianceError, ErrorKind
from blacklist_alliance.common.resilience import (
    CircuitBreaker,
    CircuitBreakerConfig,
    CircuitState,
)
from blacklist_alliance.common.retry import RetryConfig
from blacklist_alliance.config import ClientConfig
from blacklist_alliance.schemas import (
    BatchProgress,
    BulkLookupResult,
    EmailBulkResult,
    SingleLookupResult,
)

__version__ = "1.0.0"

__all__ = [
    "BASE_URL",
    "BATCH_LIMIT",
    "BatchProgress",
    "BlacklistAllianceClient",
    "BlacklistAllianceError",
    "BulkLookupResult",
    "CancellationToken",
    "CircuitBreaker",
    "CircuitBreakerConfig",
    "CircuitState",
    "ClientConfig",
    "EmailBulkResult",
    "ErrorKind",
    "RetryConfig",
    "SingleLookupResult",
]
