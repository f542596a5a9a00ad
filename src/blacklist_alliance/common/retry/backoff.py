"""
Retry with exponential backoff and jitter.

The controller drives repeated attempts of one HTTP exchange:

    attempt 0: no delay
    attempt a: min(base * 2^(a-1), cap) * uniform(0.75, 1.25)

Before every attempt it checks the caller's cancellation token and consults
the circuit breaker. Only the terminal outcome of the sequence is reported
to the breaker: intermediate retried failures are not counted, and neither
are cancellations.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, TypeVar

from blacklist_alliance import metrics
from blacklist_alliance.common.cancellation import CancellationToken
from blacklist_alliance.common.exceptions import BlacklistAllianceError
from blacklist_alliance.common.logging import LoggedClass
from blacklist_alliance.common.resilience import CircuitBreaker

T = TypeVar("T")

DEFAULT_BASE_DELAY_MS = 100
DEFAULT_MAX_DELAY_MS = 10000


@dataclass
class RetryConfig:
    """Retry budget and backoff shape."""

    # Retries after the first attempt; total attempts = max_retries + 1
    max_retries: int = 3

    base_delay_ms: int = DEFAULT_BASE_DELAY_MS
    max_delay_ms: int = DEFAULT_MAX_DELAY_MS

    # Multiplicative jitter bounds (±25%)
    jitter_min: float = 0.75
    jitter_max: float = 1.25

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be non-negative")

    def get_delay_ms(self, attempt: int, rng: Optional[random.Random] = None) -> float:
        """
        Backoff before ``attempt`` (1-based retry index).

        Args:
            attempt: Attempt index, must be > 0
            rng: Random source (module random by default)

        Returns:
            Jittered delay in milliseconds
        """
        if attempt <= 0:
            return 0.0
        delay = min(self.base_delay_ms * (2 ** (attempt - 1)), self.max_delay_ms)
        source = rng or random
        return delay * source.uniform(self.jitter_min, self.jitter_max)  # nosec B311


class RetryController(LoggedClass):
    """
    Runs an async attempt function under the retry budget and circuit breaker.

    Usage:
        controller = RetryController(RetryConfig(max_retries=2), breaker)
        data = await controller.run(lambda: executor.execute(request), token)
    """

    log_component = "retry"

    def __init__(
        self,
        config: RetryConfig,
        breaker: CircuitBreaker,
        logger: Any = None,
        rng: Optional[random.Random] = None,
    ):
        self.config = config
        self.breaker = breaker
        self._rng = rng
        super().__init__(logger=logger)

    async def _backoff(self, attempt: int, cancel_token: Optional[CancellationToken], **context: Any) -> None:
        if cancel_token is not None and cancel_token.cancelled:
            raise BlacklistAllianceError.cancelled()

        delay_ms = self.config.get_delay_ms(attempt, self._rng)
        self._log(
            logging.WARNING,
            f"Retry attempt {attempt}/{self.config.max_retries}",
            delay_ms=round(delay_ms),
            **context,
        )

        if cancel_token is None:
            await asyncio.sleep(delay_ms / 1000)
        elif await cancel_token.sleep(delay_ms / 1000):
            raise BlacklistAllianceError.cancelled()

    async def run(
        self,
        attempt_fn: Callable[[], Awaitable[T]],
        cancel_token: Optional[CancellationToken] = None,
        endpoint: str = "request",
        **context: Any,
    ) -> T:
        """
        Execute ``attempt_fn`` with retries.

        Args:
            attempt_fn: Performs exactly one attempt
            cancel_token: Caller's cancellation token
            endpoint: Endpoint label for logs and metrics
            **context: Extra log context (url, method)

        Returns:
            Result of the first successful attempt

        Raises:
            BlacklistAllianceError: Final classified error
        """
        last_error: Optional[BlacklistAllianceError] = None

        for attempt in range(self.config.max_retries + 1):
            if attempt > 0:
                await self._backoff(attempt, cancel_token, **context)

            if cancel_token is not None and cancel_token.cancelled:
                raise BlacklistAllianceError.cancelled()

            # Circuit-open rejections end the whole sequence
            self.breaker.acquire()

            reported = False
            try:
                try:
                    result = await attempt_fn()
                except BlacklistAllianceError as e:
                    if e.is_cancellation:
                        raise

                    last_error = e
                    if e.is_retryable and attempt < self.config.max_retries:
                        self._log(
                            logging.WARNING,
                            "Request failed, will retry",
                            attempt=attempt + 1,
                            error_kind=e.kind.value,
                            http_status=e.status_code,
                            retry_after=e.retry_after,
                            **context,
                        )
                        metrics.record_retry(endpoint, e.kind.value)
                        continue

                    self._log_exception(
                        e,
                        "Request failed",
                        attempt=attempt + 1,
                        **context,
                    )
                    self.breaker.record_failure(e)
                    reported = True
                    raise

                self.breaker.record_success()
                reported = True
                return result
            finally:
                if not reported:
                    self.breaker.release()

        # Unreachable: the final attempt either returns or raises
        raise last_error or BlacklistAllianceError("Retries exhausted")
