"""
Retry handling for Blacklist Alliance requests.

Provides:
- RetryConfig: exponential backoff with jitter
- RetryController: attempt loop integrated with the circuit breaker
"""

from blacklist_alliance.common.retry.backoff import (
    DEFAULT_BASE_DELAY_MS,
    DEFAULT_MAX_DELAY_MS,
    RetryConfig,
    RetryController,
)

__all__ = [
    "DEFAULT_BASE_DELAY_MS",
    "DEFAULT_MAX_DELAY_MS",
    "RetryConfig",
    "RetryController",
]
