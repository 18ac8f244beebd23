"""Cooperative cancellation for trading sessions.

A session owns one CancellationToken and passes it into every suspending
call. Delays wait on the token instead of sleeping blindly, so a stop
request wakes them immediately; in-flight HTTP calls are never interrupted.
"""

import asyncio
from typing import Optional

from ebbtide.core.errors import UserStop


class CancellationToken:
    """One-shot stop signal shared by a session and its strategy."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._reason: Optional[str] = None

    @property
    def cancelled(self) -> bool:
        """Whether a stop has been requested."""
        return self._event.is_set()

    @property
    def reason(self) -> Optional[str]:
        return self._reason

    def cancel(self, reason: str = "stop requested") -> None:
        """Request a stop. Idempotent; the first reason is kept."""
        if not self._event.is_set():
            self._reason = reason
            self._event.set()

    def raise_if_cancelled(self) -> None:
        """Raise UserStop if a stop has been requested."""
        if self._event.is_set():
            raise UserStop(self._reason or "stop requested")

    async def sleep(self, seconds: float) -> None:
        """Wait for `seconds`, raising UserStop as soon as a stop is requested."""
        self.raise_if_cancelled()
        if seconds <= 0:
            await asyncio.sleep(0)
            self.raise_if_cancelled()
            return
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            return
        self.raise_if_cancelled()

    async def wait(self) -> None:
        """Block until a stop is requested."""
        await self._event.wait()
