"""
Pytest fixtures for Blacklist Alliance client tests.

Provides:
- A scripted stand-in for aiohttp.ClientSession that records every request
- Response builders for JSON and text bodies
- Near-zero retry backoff so retry paths run fast
"""

import asyncio
import json
from types import SimpleNamespace
from typing import Any, Callable, Dict, List, Optional, Union

import pytest

from blacklist_alliance.common.retry import RetryConfig


class FakeResponse:
    """Minimal aiohttp.ClientResponse replacement."""

    def __init__(
        self,
        status: int = 200,
        body: Union[str, bytes] = "",
        headers: Optional[Dict[str, str]] = None,
        reason: str = "OK",
        delay: float = 0.0,
    ):
        self.status = status
        self.reason = reason
        self.headers = headers or {}
        self.delay = delay
        self._body = body

    async def read(self) -> bytes:
        if isinstance(self._body, bytes):
            return self._body
        return self._body.encode("utf-8")

    async def text(self) -> str:
        return (await self.read()).decode("utf-8")


Entry = Union[FakeResponse, BaseException, Callable[[SimpleNamespace], FakeResponse]]


class _RequestContext:
    def __init__(self, entry: Entry, call: SimpleNamespace):
        self._entry = entry
        self._call = call

    async def __aenter__(self) -> FakeResponse:
        entry = self._entry
        if isinstance(entry, BaseException):
            raise entry
        if callable(entry) and not isinstance(entry, FakeResponse):
            entry = entry(self._call)
        if entry.delay:
            await asyncio.sleep(entry.delay)
        return entry

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        return None


class FakeSession:
    """
    Scripted session: each request consumes the next entry, and the last
    entry repeats once the script runs out.
    """

    def __init__(self, entries: List[Entry]):
        self.entries = list(entries)
        self.calls: List[SimpleNamespace] = []
        self.closed = False

    def request(self, method, url, params=None, data=None, headers=None):
        call = SimpleNamespace(
            method=method,
            url=url,
            params=params,
            body=json.loads(data) if data else None,
            headers=headers,
        )
        self.calls.append(call)
        entry = self.entries.pop(0) if len(self.entries) > 1 else self.entries[0]
        return _RequestContext(entry, call)

    async def close(self) -> None:
        self.closed = True


def make_json_response(
    data: Any,
    status: int = 200,
    headers: Optional[Dict[str, str]] = None,
    delay: float = 0.0,
) -> FakeResponse:
    all_headers = {"Content-Type": "application/json; charset=utf-8"}
    all_headers.update(headers or {})
    return FakeResponse(
        status=status,
        body=json.dumps(data),
        headers=all_headers,
        reason="OK" if status < 400 else "Error",
        delay=delay,
    )


@pytest.fixture
def json_response() -> Callable[..., FakeResponse]:
    """Build a JSON response: json_response(data, status=200, headers=None, delay=0)."""
    return make_json_response


@pytest.fixture
def text_response() -> Callable[..., FakeResponse]:
    """Build a text/plain response."""

    def _build(body: str, status: int = 200) -> FakeResponse:
        return FakeResponse(status=status, body=body, headers={"Content-Type": "text/plain"})

    return _build


@pytest.fixture
def bytes_response() -> Callable[..., FakeResponse]:
    """Build a response from raw bytes: bytes_response(body, content_type)."""

    def _build(body: bytes, content_type: str = "application/json") -> FakeResponse:
        return FakeResponse(body=body, headers={"Content-Type": content_type})

    return _build


@pytest.fixture
def fake_session() -> Callable[..., FakeSession]:
    """Build a FakeSession from a script of responses or exceptions."""

    def _build(*entries: Entry) -> FakeSession:
        return FakeSession(list(entries))

    return _build


@pytest.fixture
def bulk_echo() -> Callable[[SimpleNamespace], FakeResponse]:
    """Bulk endpoint stand-in: every submitted phone is reported clean."""

    def _respond(call: SimpleNamespace) -> FakeResponse:
        phones = call.body["phones"]
        return make_json_response(
            {
                "status": "success",
                "numbers": len(phones),
                "count": len(phones),
                "phones": phones,
                "supression": [],
                "wireless": [],
                "reasons": {},
                "carrier": {},
            }
        )

    return _respond


@pytest.fixture
def fast_retries(monkeypatch):
    """Make every backoff delay 1ms."""
    monkeypatch.setattr(RetryConfig, "get_delay_ms", lambda self, attempt, rng=None: 1.0)
