"""
Single HTTP attempt against the Blacklist Alliance API.

The executor performs exactly one request. It composes the per-attempt
timeout with the caller's cancellation token and tells the two apart, so
that the retry controller can retry timeouts but never a cancellation.
"""

import asyncio
import inspect
import json
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Mapping, NamedTuple, Optional

import aiohttp

from blacklist_alliance import metrics
from blacklist_alliance.common.cancellation import CancellationToken
from blacklist_alliance.common.exceptions import (
    BlacklistAllianceError,
    parse_retry_after,
    wrap_exception,
)
from blacklist_alliance.common.logging import LoggedClass

DEFAULT_HEADERS = {
    "Accept": "application/json",
    "Content-Type": "application/json",
}

RequestHook = Callable[[str, Dict[str, Any]], Any]
ResponseHook = Callable[[Dict[str, Any], Any], Any]


class Endpoint(str, Enum):
    """API endpoint kinds; selects the dry-run shape and metric labels."""

    LOOKUP = "lookup"
    BULK_LOOKUP = "bulklookup"
    EMAIL_BULK = "emailbulk"


@dataclass(frozen=True)
class OperationRequest:
    """One logical unit of work. Retries resend the same request."""

    endpoint: Endpoint
    url: str
    method: str = "GET"
    params: Optional[Dict[str, str]] = None
    body: Optional[Dict[str, Any]] = None
    headers: Optional[Dict[str, str]] = None
    cancel_token: Optional[CancellationToken] = None

    # Value masked in safe_url (the API key travels in the URL path)
    secret: Optional[str] = None

    @property
    def safe_url(self) -> str:
        """URL suitable for logs."""
        if self.secret:
            return self.url.replace(self.secret, "***")
        return self.url


class RawResponse(NamedTuple):
    status: int
    reason: str
    headers: Mapping[str, str]
    data: Any


async def maybe_await(value: Any) -> Any:
    """Await hook results that are awaitable; pass plain values through."""
    if inspect.isawaitable(value):
        return await value
    return value


async def _abort(task: "asyncio.Future[Any]") -> None:
    """Cancel a task and wait for it to unwind."""
    task.cancel()
    await asyncio.wait({task})
    if not task.cancelled():
        # Retrieve the outcome so it is not reported as unhandled
        task.exception()


class RequestExecutor(LoggedClass):
    """
    Performs one HTTP attempt with a bounded timeout.

    Usage:
        executor = RequestExecutor(client._ensure_session, timeout_ms=30000)
        data = await executor.execute(request)
    """

    log_component = "http"

    def __init__(
        self,
        session_provider: Callable[[], Awaitable[aiohttp.ClientSession]],
        timeout_ms: int = 30000,
        on_request: Optional[RequestHook] = None,
        on_response: Optional[ResponseHook] = None,
        logger: Any = None,
    ):
        """
        Args:
            session_provider: Coroutine function returning the shared session
            timeout_ms: Per-attempt timeout in milliseconds
            on_request: Called as on_request(url, {method, headers, body}) before sending
            on_response: Called as on_response({status, headers}, data) after a 2xx
            logger: Optional pluggable logger
        """
        self._session_provider = session_provider
        self.timeout_ms = timeout_ms
        self.on_request = on_request
        self.on_response = on_response
        super().__init__(logger=logger)

    async def execute(self, request: OperationRequest) -> Any:
        """
        Perform one attempt.

        Args:
            request: Request to send

        Returns:
            Parsed response body (JSON data or text)

        Raises:
            BlacklistAllianceError: Classified failure (HTTP status, TIMEOUT,
                NETWORK or CANCELLED)
        """
        token = request.cancel_token
        if token is not None and token.cancelled:
            raise BlacklistAllianceError.cancelled()

        headers = {**DEFAULT_HEADERS, **(request.headers or {})}
        payload = json.dumps(request.body) if request.body is not None else None

        self._log(
            logging.DEBUG,
            "Request started",
            url=request.safe_url,
            method=request.method,
        )

        if self.on_request is not None:
            await maybe_await(
                self.on_request(
                    request.url,
                    {"method": request.method, "headers": headers, "body": payload},
                )
            )

        start = time.perf_counter()
        try:
            response = await self._run_attempt(
                self._send(request, headers, payload), token
            )
            if not 200 <= response.status < 300:
                raise BlacklistAllianceError.from_response(
                    f"API request failed: {response.status} {response.reason}".rstrip(),
                    response.status,
                    response.data,
                    retry_after=parse_retry_after(response.headers.get("Retry-After")),
                )
        except BlacklistAllianceError as e:
            metrics.record_request(
                request.endpoint.value, e.kind.value, time.perf_counter() - start
            )
            raise

        metrics.record_request(request.endpoint.value, "success", time.perf_counter() - start)
        self._log(
            logging.DEBUG,
            "Request completed",
            url=request.safe_url,
            http_status=response.status,
        )

        if self.on_response is not None:
            await maybe_await(
                self.on_response(
                    {"status": response.status, "headers": response.headers},
                    response.data,
                )
            )

        return response.data

    async def _run_attempt(
        self,
        send: Awaitable[RawResponse],
        token: Optional[CancellationToken],
    ) -> RawResponse:
        """Race the request against the timeout and the cancellation token."""
        attempt = asyncio.ensure_future(send)
        waiters = {attempt}
        cancel_waiter: Optional[asyncio.Future] = None
        if token is not None:
            cancel_waiter = asyncio.ensure_future(token.wait())
            waiters.add(cancel_waiter)

        try:
            done, _ = await asyncio.wait(
                waiters,
                timeout=self.timeout_ms / 1000,
                return_when=asyncio.FIRST_COMPLETED,
            )
        except asyncio.CancelledError:
            attempt.cancel()
            raise
        finally:
            if cancel_waiter is not None:
                cancel_waiter.cancel()

        if attempt in done:
            return attempt.result()

        await _abort(attempt)
        if token is not None and token.cancelled:
            raise BlacklistAllianceError.cancelled()
        raise BlacklistAllianceError.timeout(f"Request timeout after {self.timeout_ms}ms")

    async def _send(
        self,
        request: OperationRequest,
        headers: Dict[str, str],
        payload: Optional[str],
    ) -> RawResponse:
        session = await self._session_provider()
        try:
            async with session.request(
                request.method,
                request.url,
                params=request.params,
                data=payload,
                headers=headers,
            ) as response:
                data = await self._read_body(response)
                return RawResponse(
                    status=response.status,
                    reason=response.reason or "",
                    headers=response.headers,
                    data=data,
                )
        except (aiohttp.ClientError, asyncio.TimeoutError, OSError) as e:
            error = wrap_exception(e)
            self._log_exception(
                e,
                "API connection error",
                level=logging.WARNING,
                url=request.safe_url,
                method=request.method,
            )
            raise error from e

    @staticmethod
    async def _read_body(response: aiohttp.ClientResponse) -> Any:
        """JSON when the content type says so, raw text otherwise."""
        # Invalid UTF-8 bytes decode to U+FFFD
        raw = await response.read()
        text = raw.decode("utf-8", errors="replace")
        content_type = response.headers.get("Content-Type", "") or ""
        if "application/json" in content_type.lower() and text:
            try:
                return json.loads(text)
            except ValueError:
                return text
        return text
