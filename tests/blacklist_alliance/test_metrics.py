"""Tests for Prometheus metrics recorded by the client."""

import pytest
from prometheus_client import REGISTRY

from blacklist_alliance import metrics
from blacklist_alliance.client import BlacklistAllianceClient
from blacklist_alliance.common.resilience import CircuitBreaker, CircuitBreakerConfig


def _sample(name, labels):
    return REGISTRY.get_sample_value(name, labels) or 0.0


class TestMetricHelpers:
    """Test helper functions."""

    def test_record_request(self):
        labels = {"endpoint": "metrics-test", "outcome": "success"}
        before = _sample("blacklist_requests_total", labels)

        metrics.record_request("metrics-test", "success", 0.2)

        assert _sample("blacklist_requests_total", labels) == before + 1
        assert _sample("blacklist_request_duration_seconds_count", {"endpoint": "metrics-test"}) >= 1

    def test_circuit_state_gauge(self):
        breaker = CircuitBreaker("metrics_breaker", CircuitBreakerConfig(failure_threshold=1))

        breaker.record_failure()

        assert _sample("blacklist_circuit_breaker_state", {"client": "metrics_breaker"}) == 1
        assert _sample("blacklist_circuit_breaker_failures_total", {"client": "metrics_breaker"}) >= 1


class TestClientMetrics:
    """Test metrics emitted by client operations."""

    @pytest.mark.asyncio
    async def test_batches_and_retries_counted(
        self, fake_session, bulk_echo, json_response, fast_retries
    ):
        session = fake_session(json_response({}, status=503), bulk_echo)
        client = BlacklistAllianceClient("k", session=session)
        batches_before = _sample("blacklist_batches_total", {"endpoint": "bulklookup"})
        retries_before = _sample(
            "blacklist_retries_total", {"endpoint": "bulklookup", "error_kind": "server"}
        )

        await client.bulk_lookup(["2223334444"])

        assert _sample("blacklist_batches_total", {"endpoint": "bulklookup"}) == batches_before + 1
        assert (
            _sample("blacklist_retries_total", {"endpoint": "bulklookup", "error_kind": "server"})
            == retries_before + 1
        )
