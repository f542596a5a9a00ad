"""
Circuit breaker guarding calls to the Blacklist Alliance API.

Protects against scenarios like:
- Upstream outages where every retry would fail
- Sustained 5xx responses from a degraded API
- Network partitions

States:
- CLOSED: Normal operation, requests pass through
- OPEN: Failing, requests rejected immediately (fast-fail)
- HALF_OPEN: Testing recovery, a single probe request allowed

Each client owns its breaker; state is never shared between clients.

Usage:
    breaker = CircuitBreaker("blacklist_api", CircuitBreakerConfig(failure_threshold=3))
    breaker.acquire()          # raises CIRCUIT_OPEN error when rejecting
    try:
        result = await send()
    except BlacklistAllianceError as e:
        breaker.record_failure(e)
        raise
    breaker.record_success()
"""

import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Optional

from blacklist_alliance import metrics
from blacklist_alliance.common.exceptions import BlacklistAllianceError
from blacklist_alliance.common.logging import get_logger, log_exception, log_with_context

logger = get_logger(__name__)


class CircuitState(str, Enum):
    """Circuit breaker states."""

    CLOSED = "CLOSED"  # Normal operation
    OPEN = "OPEN"  # Rejecting requests
    HALF_OPEN = "HALF_OPEN"  # Probing recovery


# Gauge encoding used by metrics.update_circuit_breaker_state
_STATE_GAUGE = {
    CircuitState.CLOSED: 0,
    CircuitState.OPEN: 1,
    CircuitState.HALF_OPEN: 2,
}


@dataclass
class CircuitBreakerConfig:
    """Configuration for circuit breaker behavior."""

    # Consecutive terminal failures before opening the circuit
    failure_threshold: int = 5

    # Milliseconds to stay open before letting a probe through
    reset_timeout_ms: int = 30000

    # Called synchronously with the new state name on every transition
    on_state_change: Optional[Callable[[str], Any]] = None

    def __post_init__(self) -> None:
        if self.failure_threshold < 1:
            raise ValueError("failure_threshold must be at least 1")
        if self.reset_timeout_ms < 0:
            raise ValueError("reset_timeout_ms must be non-negative")


@dataclass
class CircuitStats:
    """Statistics for circuit breaker monitoring."""

    total_calls: int = 0
    successful_calls: int = 0
    failed_calls: int = 0
    rejected_calls: int = 0
    state_changes: int = 0
    last_failure_time: Optional[float] = None
    last_success_time: Optional[float] = None
    current_state: str = CircuitState.CLOSED.value


class CircuitBreaker:
    """
    Consecutive-failure circuit breaker with a single HALF_OPEN probe.

    Constructed without a config the breaker is disabled: acquire() never
    rejects and record_*() are no-ops.

    All state checks and mutations happen under one lock with no suspension
    between the transition check and the allow/reject decision, so two
    concurrent operations cannot both race past the threshold or both probe
    in HALF_OPEN.
    """

    def __init__(
        self,
        name: str,
        config: Optional[CircuitBreakerConfig] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.circuit_name = name
        self.config = config
        self._clock = clock

        self._state = CircuitState.CLOSED
        self._consecutive_failures = 0
        self._last_failure_time: Optional[float] = None
        self._probe_in_flight = False

        self._stats = CircuitStats()
        self._lock = threading.RLock()

    @property
    def enabled(self) -> bool:
        return self.config is not None

    @property
    def state(self) -> CircuitState:
        """Current state. Reading does not trigger time-based transitions."""
        with self._lock:
            return self._state

    @property
    def consecutive_failures(self) -> int:
        with self._lock:
            return self._consecutive_failures

    @property
    def last_failure_time(self) -> Optional[float]:
        with self._lock:
            return self._last_failure_time

    @property
    def is_open(self) -> bool:
        return self.state == CircuitState.OPEN

    @property
    def stats(self) -> CircuitStats:
        """Get copy of current statistics."""
        with self._lock:
            return CircuitStats(
                total_calls=self._stats.total_calls,
                successful_calls=self._stats.successful_calls,
                failed_calls=self._stats.failed_calls,
                rejected_calls=self._stats.rejected_calls,
                state_changes=self._stats.state_changes,
                last_failure_time=self._stats.last_failure_time,
                last_success_time=self._stats.last_success_time,
                current_state=self._state.value,
            )

    def _check_state_transition(self) -> None:
        """OPEN -> HALF_OPEN once the cooldown has elapsed (called under lock)."""
        if self._state != CircuitState.OPEN or self._last_failure_time is None:
            return

        elapsed_ms = (self._clock() - self._last_failure_time) * 1000
        if elapsed_ms >= self.config.reset_timeout_ms:
            log_with_context(
                logger,
                logging.DEBUG,
                "Circuit breaker cooldown elapsed, transitioning to half-open",
                circuit_name=self.circuit_name,
                elapsed_ms=round(elapsed_ms, 2),
                reset_timeout_ms=self.config.reset_timeout_ms,
            )
            self._transition_to(CircuitState.HALF_OPEN)

    def _transition_to(self, new_state: CircuitState) -> None:
        """Transition to new state (called under lock)."""
        old_state = self._state
        if old_state == new_state:
            return

        self._state = new_state
        self._stats.state_changes += 1
        self._stats.current_state = new_state.value

        if new_state == CircuitState.CLOSED:
            self._consecutive_failures = 0
            self._probe_in_flight = False
        elif new_state == CircuitState.HALF_OPEN:
            self._probe_in_flight = False
        elif new_state == CircuitState.OPEN:
            self._probe_in_flight = False

        log_with_context(
            logger,
            logging.WARNING,
            f"Circuit breaker: {old_state.value} -> {new_state.value}",
            circuit_name=self.circuit_name,
            circuit_state=new_state.value,
            failures=self._consecutive_failures,
            threshold=self.config.failure_threshold,
        )
        metrics.update_circuit_breaker_state(self.circuit_name, _STATE_GAUGE[new_state])

        if self.config.on_state_change:
            try:
                self.config.on_state_change(new_state.value)
            except Exception as e:
                log_exception(
                    logger,
                    e,
                    "Error in circuit state change callback",
                    circuit_name=self.circuit_name,
                    level=logging.WARNING,
                    include_traceback=False,
                )

    def acquire(self) -> None:
        """
        Decide whether an attempt may proceed.

        Raises:
            BlacklistAllianceError: CIRCUIT_OPEN when the circuit is open, or
                when a HALF_OPEN probe is already in flight
        """
        if not self.enabled:
            return

        with self._lock:
            self._stats.total_calls += 1
            self._check_state_transition()

            if self._state == CircuitState.CLOSED:
                return

            if self._state == CircuitState.HALF_OPEN and not self._probe_in_flight:
                self._probe_in_flight = True
                return

            self._stats.rejected_calls += 1
            reset_timeout_ms = self.config.reset_timeout_ms

        log_with_context(
            logger,
            logging.WARNING,
            "Circuit breaker open, rejecting request",
            circuit_name=self.circuit_name,
            circuit_state=self._state.value,
        )
        raise BlacklistAllianceError.circuit_open(reset_timeout_ms)

    def release(self) -> None:
        """Free the HALF_OPEN probe slot for an attempt that ends without a report."""
        if not self.enabled:
            return
        with self._lock:
            if self._state == CircuitState.HALF_OPEN:
                self._probe_in_flight = False

    def record_success(self) -> None:
        """Record a successful operation."""
        if not self.enabled:
            return

        with self._lock:
            self._stats.successful_calls += 1
            self._stats.last_success_time = self._clock()

            if self._state == CircuitState.HALF_OPEN:
                self._consecutive_failures = 0
                self._transition_to(CircuitState.CLOSED)
            elif self._state == CircuitState.CLOSED:
                # Consecutive failure tracking
                self._consecutive_failures = 0

    def record_failure(self, exc: Optional[BaseException] = None) -> None:
        """Record a terminal failure of an operation."""
        if not self.enabled:
            return

        with self._lock:
            now = self._clock()
            self._stats.failed_calls += 1
            self._stats.last_failure_time = now
            metrics.record_circuit_breaker_failure(self.circuit_name)

            if self._state == CircuitState.OPEN:
                # Late report from an attempt admitted before the circuit opened
                return

            self._consecutive_failures += 1
            self._last_failure_time = now

            log_with_context(
                logger,
                logging.WARNING,
                "Circuit breaker failure recorded",
                circuit_name=self.circuit_name,
                circuit_state=self._state.value,
                failures=self._consecutive_failures,
                threshold=self.config.failure_threshold,
                error_type=type(exc).__name__ if exc is not None else None,
            )

            if self._state == CircuitState.HALF_OPEN:
                # A single failed probe reopens the circuit
                self._transition_to(CircuitState.OPEN)
            elif self._consecutive_failures >= self.config.failure_threshold:
                self._transition_to(CircuitState.OPEN)

    def get_retry_after(self) -> float:
        """Seconds until the circuit will admit a probe."""
        with self._lock:
            if not self.enabled or self._last_failure_time is None:
                return 0.0
            if self._state != CircuitState.OPEN:
                return 0.0
            elapsed = self._clock() - self._last_failure_time
            return max(0.0, self.config.reset_timeout_ms / 1000 - elapsed)

    def reset(self) -> None:
        """Manually reset circuit to closed state."""
        if not self.enabled:
            return
        with self._lock:
            self._transition_to(CircuitState.CLOSED)
            self._consecutive_failures = 0
            self._last_failure_time = None
            log_with_context(
                logger,
                logging.INFO,
                "Circuit manually reset",
                circuit_name=self.circuit_name,
            )

    def get_diagnostics(self) -> Dict[str, Any]:
        """Get diagnostic info for health checks."""
        with self._lock:
            if not self.enabled:
                return {"name": self.circuit_name, "enabled": False}
            return {
                "name": self.circuit_name,
                "enabled": True,
                "state": self._state.value,
                "consecutive_failures": self._consecutive_failures,
                "config": {
                    "failure_threshold": self.config.failure_threshold,
                    "reset_timeout_ms": self.config.reset_timeout_ms,
                },
                "stats": {
                    "total_calls": self._stats.total_calls,
                    "successful_calls": self._stats.successful_calls,
                    "failed_calls": self._stats.failed_calls,
                    "rejected_calls": self._stats.rejected_calls,
                    "state_changes": self._stats.state_changes,
                },
            }
