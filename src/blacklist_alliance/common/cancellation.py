"""
Cooperative cancellation for client operations.

A CancellationToken is handed to an operation by the caller. Once cancelled,
the in-flight attempt is aborted, pending backoff waits end early, and no
further retries are made for any operation carrying the token.

Usage:
    token = CancellationToken()
    task = asyncio.create_task(client.bulk_lookup(phones, cancel_token=token))
    ...
    token.cancel()
"""

import asyncio
from typing import Optional


class CancellationToken:
    """Caller-owned cancellation signal backed by an asyncio.Event."""

    def __init__(self) -> None:
        self._event: Optional[asyncio.Event] = None
        self._cancelled = False
        self.reason: Optional[str] = None

    def _get_event(self) -> asyncio.Event:
        # Created lazily so the token can be built outside a running loop
        if self._event is None:
            self._event = asyncio.Event()
            if self._cancelled:
                self._event.set()
        return self._event

    @property
    def cancelled(self) -> bool:
        """Whether cancel() has been called."""
        return self._cancelled

    def cancel(self, reason: Optional[str] = None) -> None:
        """Signal cancellation. Idempotent."""
        if self._cancelled:
            return
        self._cancelled = True
        self.reason = reason
        if self._event is not None:
            self._event.set()

    async def wait(self) -> None:
        """Block until the token is cancelled."""
        await self._get_event().wait()

    async def sleep(self, seconds: float) -> bool:
        """
        Sleep for up to ``seconds``, returning early on cancellation.

        Returns:
            True if the token was cancelled before the sleep finished
        """
        if self._cancelled:
            return True
        try:
            await asyncio.wait_for(self.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return False
        return True
