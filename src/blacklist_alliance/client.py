"""
Async client for the Blacklist Alliance lookup API.

Turns single and bulk phone/email lookups into reliable network calls:
- Input validation before any I/O
- Automatic batching of bulk payloads with merged results
- Exponential backoff retries for transient failures
- Optional circuit breaker shared by every operation of one client
- Cooperative cancellation through CancellationToken
- Dry-run mode returning canned responses without network access
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Sequence
from urllib.parse import quote

import aiohttp

from blacklist_alliance import metrics
from blacklist_alliance.batching import (
    BATCH_LIMIT,
    batch_items,
    merge_bulk_results,
    merge_email_results,
)
from blacklist_alliance.common.cancellation import CancellationToken
from blacklist_alliance.common.exceptions import BlacklistAllianceError, ErrorKind
from blacklist_alliance.common.logging import LoggedClass, logged_operation
from blacklist_alliance.common.resilience import CircuitBreaker, CircuitBreakerConfig
from blacklist_alliance.common.retry import RetryConfig, RetryController
from blacklist_alliance.dry_run import get_dry_run_response
from blacklist_alliance.executor import (
    Endpoint,
    OperationRequest,
    RequestExecutor,
    RequestHook,
    ResponseHook,
    maybe_await,
)
from blacklist_alliance.schemas.results import BatchProgress, SingleLookupResult
from blacklist_alliance.validation import hash_email, validate_email, validate_phone

BASE_URL = "https://api.blacklistalliance.net"

ProgressCallback = Callable[[BatchProgress], Any]


class BlacklistAllianceClient(LoggedClass):
    """
    Client for the Blacklist Alliance Simple and Standard APIs.

    Owns its aiohttp session unless one is injected. Each client instance has
    its own circuit breaker; breakers are never shared across instances.

    Usage:
        async with BlacklistAllianceClient(api_key) as client:
            result = await client.bulk_lookup_simple(["2223334444", "9999999999"])
            print(result["supression"], result["reasons"])
    """

    log_component = "api"

    # Items per bulk request (roughly 75KB of phones, well under the 1MB limit)
    batch_size = BATCH_LIMIT

    def __init__(
        self,
        api_key: str,
        *,
        default_version: str = "v5",
        timeout_ms: int = 30000,
        max_retries: int = 3,
        logger: Any = None,
        on_request: Optional[RequestHook] = None,
        on_response: Optional[ResponseHook] = None,
        circuit_breaker: Optional[CircuitBreakerConfig] = None,
        dry_run: bool = False,
        base_url: str = BASE_URL,
        session: Optional[aiohttp.ClientSession] = None,
    ):
        """
        Initialize client.

        Args:
            api_key: Blacklist Alliance API key
            default_version: API version used when a call does not pass one
            timeout_ms: Per-attempt timeout in milliseconds
            max_retries: Retries after the first attempt for transient failures
            logger: Pluggable logger (stdlib logger or object with debug/info/warn/error)
            on_request: Hook called before each HTTP attempt
            on_response: Hook called after each successful HTTP response
            circuit_breaker: Circuit breaker config; None disables the breaker
            dry_run: Return canned responses without touching the network
            base_url: API base URL
            session: Shared aiohttp session (caller keeps ownership)

        Raises:
            ValueError: If api_key is empty
        """
        if not api_key:
            raise ValueError("API key is required")

        self.api_key = api_key
        self.default_version = default_version
        self.timeout_ms = timeout_ms
        self.max_retries = max_retries
        self.dry_run = dry_run
        self.base_url = base_url.rstrip("/")

        self._session = session
        self._owns_session = session is None

        super().__init__(logger=logger)

        self._circuit = CircuitBreaker("blacklist_api", circuit_breaker)
        self._retry = RetryController(
            RetryConfig(max_retries=max_retries),
            self._circuit,
            logger=logger,
        )
        self._executor = RequestExecutor(
            self._ensure_session,
            timeout_ms=timeout_ms,
            on_request=on_request,
            on_response=on_response,
            logger=logger,
        )

    @classmethod
    def from_config(cls, config: Any, **kwargs: Any) -> "BlacklistAllianceClient":
        """
        Build a client from a ClientConfig.

        Args:
            config: ClientConfig instance
            **kwargs: Extra constructor arguments (logger, hooks, session)
        """
        return cls(
            config.api_key,
            default_version=config.default_version,
            timeout_ms=config.timeout_ms,
            max_retries=config.max_retries,
            circuit_breaker=config.circuit_breaker_config(),
            dry_run=config.dry_run,
            base_url=config.base_url,
            **kwargs,
        )

    async def __aenter__(self) -> "BlacklistAllianceClient":
        """Create session on context enter."""
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Close session on context exit."""
        await self.close()

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Create aiohttp session if not exists."""
        if self._session is None or self._session.closed:
            # Per-attempt timeouts are enforced by the executor
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=None),
            )
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Close the HTTP session if this client created it."""
        if self._owns_session and self._session and not self._session.closed:
            await self._session.close()
            self._session = None

    # =========================================================================
    # Request plumbing
    # =========================================================================

    def _simple_url(self, path: str) -> str:
        return f"{self.base_url}/{path}"

    def _standard_url(self, version: str, *segments: str) -> str:
        path = "/".join(quote(str(s), safe="") for s in segments)
        return f"{self.base_url}/standard/api/{quote(version, safe='')}/{path}"

    async def _request(self, request: OperationRequest) -> Any:
        """Run one logical request through dry-run, retry and breaker."""
        if self.dry_run:
            self._log(logging.DEBUG, "Dry run - skipping actual request", url=request.safe_url)
            return get_dry_run_response(request)

        return await self._retry.run(
            lambda: self._executor.execute(request),
            request.cancel_token,
            endpoint=request.endpoint.value,
            url=request.safe_url,
            method=request.method,
        )

    async def _run_bulk(
        self,
        endpoint: Endpoint,
        url: str,
        field: str,
        items: List[str],
        *,
        params: Optional[Dict[str, str]] = None,
        merge: Optional[Callable[[List[Any]], Any]] = None,
        auto_batch: bool = True,
        on_progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> Any:
        """
        Run a bulk operation batch by batch, strictly in order.

        Without a merge function the single response is returned as is.
        """
        batches = batch_items(items, self.batch_size) if auto_batch else [list(items)]

        self._log(
            logging.DEBUG,
            "Bulk operation starting",
            endpoint=endpoint.value,
            items=len(items),
            total_batches=len(batches),
        )

        results: List[Any] = []
        completed = 0
        for index, chunk in enumerate(batches, start=1):
            request = OperationRequest(
                endpoint=endpoint,
                url=url,
                method="POST",
                params=params,
                body={field: chunk},
                cancel_token=cancel_token,
                secret=self.api_key,
            )
            results.append(await self._request(request))
            metrics.record_batch(endpoint.value)

            completed += len(chunk)
            if on_progress is not None:
                await maybe_await(
                    on_progress(
                        BatchProgress(
                            completed=completed,
                            total=len(items),
                            batch=index,
                            total_batches=len(batches),
                        )
                    )
                )

        if merge is None:
            return results[0]
        return merge(results)

    @staticmethod
    def _require_items(items: Sequence[str], name: str) -> List[str]:
        if isinstance(items, (str, bytes)) or not items:
            raise BlacklistAllianceError.validation(
                f"{name} must be a non-empty list", status_code=400
            )
        return list(items)

    # =========================================================================
    # Simple API (query-string style)
    # =========================================================================

    @logged_operation(level=logging.DEBUG)
    async def lookup_single(
        self,
        phone: str,
        *,
        version: Optional[str] = None,
        response_format: str = "json",
        validate: bool = True,
        cancel_token: Optional[CancellationToken] = None,
    ) -> Any:
        """
        Look up one phone number (GET /lookup).

        Args:
            phone: Phone number, any formatting
            version: API version (defaults to the client's default_version)
            response_format: Response format (json, raw, ...)
            validate: Strip and check the phone before sending
            cancel_token: Cancellation token for this operation

        Returns:
            Parsed JSON dict for json responses, raw text otherwise
        """
        clean_phone = validate_phone(phone) if validate else str(phone)
        request = OperationRequest(
            endpoint=Endpoint.LOOKUP,
            url=self._simple_url("lookup"),
            params={
                "key": self.api_key,
                "phone": clean_phone,
                "ver": version or self.default_version,
                "resp": response_format,
            },
            cancel_token=cancel_token,
            secret=self.api_key,
        )
        return await self._request(request)

    @logged_operation(level=logging.DEBUG)
    async def bulk_lookup_simple(
        self,
        phones: Sequence[str],
        *,
        version: Optional[str] = None,
        response_format: str = "json",
        auto_batch: bool = True,
        on_progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> Any:
        """
        Check many phone numbers (POST /bulklookup).

        Batching and merging apply only to json responses; other formats are
        sent as one request and the raw response is returned.

        Args:
            phones: Phone numbers
            version: API version
            response_format: Response format
            auto_batch: Split into batches of batch_size
            on_progress: Called with BatchProgress after each batch
            cancel_token: Cancellation token for this operation

        Returns:
            Merged bulk result dict (json) or the raw response
        """
        items = self._require_items(phones, "phones")
        can_merge = response_format == "json"

        return await self._run_bulk(
            Endpoint.BULK_LOOKUP,
            self._simple_url("bulklookup"),
            "phones",
            items,
            params={
                "key": self.api_key,
                "ver": version or self.default_version,
                "resp": response_format,
            },
            merge=merge_bulk_results if can_merge else None,
            auto_batch=auto_batch and can_merge,
            on_progress=on_progress,
            cancel_token=cancel_token,
        )

    @logged_operation(level=logging.DEBUG)
    async def email_bulk(
        self,
        emails: Sequence[str],
        *,
        hash_emails: bool = False,
        validate: bool = True,
        auto_batch: bool = True,
        on_progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> Dict[str, Any]:
        """
        Check many email addresses (POST /emailbulk).

        Args:
            emails: Email addresses or MD5 hashes
            hash_emails: Send MD5 hashes instead of addresses (skips validation)
            validate: Check and trim addresses before sending
            auto_batch: Split into batches of batch_size
            on_progress: Called with BatchProgress after each batch
            cancel_token: Cancellation token for this operation

        Returns:
            Dict with ``good`` (reported by the API) and ``bad`` (derived)
        """
        items = self._require_items(emails, "emails")

        if hash_emails:
            processed = [hash_email(email) for email in items]
        elif validate:
            processed = [validate_email(email) for email in items]
        else:
            processed = items

        return await self._run_bulk(
            Endpoint.EMAIL_BULK,
            self._simple_url("emailbulk"),
            "emails",
            processed,
            params={"key": self.api_key},
            merge=lambda results: merge_email_results(results, processed),
            auto_batch=auto_batch,
            on_progress=on_progress,
            cancel_token=cancel_token,
        )

    # =========================================================================
    # Standard API (RESTful path style)
    # =========================================================================

    @logged_operation(level=logging.DEBUG)
    async def lookup(
        self,
        phone: str,
        *,
        version: Optional[str] = None,
        response_format: str = "json",
        validate: bool = True,
        cancel_token: Optional[CancellationToken] = None,
    ) -> Any:
        """
        Look up one phone number (Standard API). v3 adds carrier info.

        Args:
            phone: Phone number, any formatting
            version: API version
            response_format: Response format
            validate: Strip and check the phone before sending
            cancel_token: Cancellation token for this operation
        """
        clean_phone = validate_phone(phone) if validate else str(phone)
        request = OperationRequest(
            endpoint=Endpoint.LOOKUP,
            url=self._standard_url(
                version or self.default_version,
                "Lookup",
                "key",
                self.api_key,
                "phone",
                clean_phone,
                "response",
                response_format,
            ),
            cancel_token=cancel_token,
            secret=quote(self.api_key, safe=""),
        )
        return await self._request(request)

    @logged_operation(level=logging.DEBUG)
    async def bulk_lookup(
        self,
        phones: Sequence[str],
        *,
        version: Optional[str] = None,
        auto_batch: bool = True,
        on_progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> Dict[str, Any]:
        """
        Check many phone numbers (Standard API bulklookup).

        Args:
            phones: Phone numbers
            version: API version
            auto_batch: Split into batches of batch_size
            on_progress: Called with BatchProgress after each batch
            cancel_token: Cancellation token for this operation

        Returns:
            Merged bulk result dict
        """
        items = self._require_items(phones, "phones")
        url = self._standard_url(
            version or self.default_version, "bulklookup", "key", self.api_key
        )

        return await self._run_bulk(
            Endpoint.BULK_LOOKUP,
            url,
            "phones",
            items,
            merge=merge_bulk_results,
            auto_batch=auto_batch,
            on_progress=on_progress,
            cancel_token=cancel_token,
        )

    # =========================================================================
    # Convenience methods
    # =========================================================================

    async def is_blacklisted(
        self, phone: str, *, cancel_token: Optional[CancellationToken] = None
    ) -> bool:
        """True if the single lookup reports the phone as Blacklisted."""
        result = await self.lookup_single(phone, cancel_token=cancel_token)
        return SingleLookupResult.model_validate(result).is_blacklisted

    async def is_email_blacklisted(
        self,
        email: str,
        *,
        hash_email: bool = False,
        cancel_token: Optional[CancellationToken] = None,
    ) -> bool:
        """True if the email (or its MD5 hash) lands in the derived bad list."""
        to_check = self.hash_email(email) if hash_email else email
        result = await self.email_bulk(
            [to_check], validate=not hash_email, cancel_token=cancel_token
        )
        bad = {entry.lower() for entry in result.get("bad", [])}
        return to_check.strip().lower() in bad

    async def get_blacklist_reasons(
        self, phone: str, *, cancel_token: Optional[CancellationToken] = None
    ) -> List[str]:
        """Blacklist reason codes for a phone; empty when clean."""
        result = await self.lookup_single(phone, cancel_token=cancel_token)
        return SingleLookupResult.model_validate(result).reasons

    @staticmethod
    def hash_email(email: str) -> str:
        """MD5 hash of a normalized email address."""
        return hash_email(email)

    async def ping(self) -> bool:
        """
        Check API connectivity.

        Returns:
            True if the API answered, including with an HTTP 408. False on bad
            credentials, server errors, transport failures, local timeouts and
            an open circuit.
        """
        try:
            await self.lookup_single("0000000000", validate=False)
            return True
        except BlacklistAllianceError as e:
            # Client-side statuses other than bad credentials mean the API is up
            if e.kind == ErrorKind.TIMEOUT:
                return not e.is_client_timeout
            if e.kind in (ErrorKind.VALIDATION, ErrorKind.RATE_LIMIT, ErrorKind.UPSTREAM):
                return 0 < e.status_code < 500
            return False

    def get_circuit_status(self) -> Dict[str, Any]:
        """Circuit breaker diagnostics for health checks."""
        return self._circuit.get_diagnostics()
