"""
Error taxonomy for the trading cycle engine.

Errors fall into four categories that decide how far they travel:

- TRANSIENT: network/timeout/malformed reads. Absorbed at the component
  boundary by falling back or proceeding optimistically.
- CYCLE_FATAL: the current cycle cannot be parameterized (no market, no
  two-sided book). Unwinds to the session controller, which stops.
- ADVISORY: a bounded confirmation window expired. Logged, never raised
  past the strategy.
- CANCELLED: cooperative stop request. Not an error for reporting purposes.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional


class ErrorCategory(str, Enum):
    """Classification of error types for propagation decisions."""

    TRANSIENT = "transient"
    CYCLE_FATAL = "cycle_fatal"
    ADVISORY = "advisory"
    CANCELLED = "cancelled"
    PERMANENT = "permanent"


class EbbtideError(Exception):
    """Base exception for all Ebbtide errors."""

    category: ErrorCategory = ErrorCategory.PERMANENT

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc)

    def __str__(self) -> str:
        if self.cause:
            return f"{self.message} (caused by: {self.cause})"
        return self.message


class TransientIOError(EbbtideError):
    """A read query failed: transport error, timeout, bad status or bad payload."""

    category = ErrorCategory.TRANSIENT


class ResolutionError(EbbtideError):
    """An option label could not be mapped to a child market."""

    category = ErrorCategory.CYCLE_FATAL


class DepthUnavailable(EbbtideError):
    """The order book has no two-sided market to quote against."""

    category = ErrorCategory.CYCLE_FATAL


class ExecutionTimeout(EbbtideError):
    """A confirmation signal was not observed within its poll window."""

    category = ErrorCategory.ADVISORY

    def __init__(
        self,
        stage: str,
        waited_seconds: float,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(
            f"{stage} not confirmed within {waited_seconds:.0f}s",
            cause=cause,
        )
        self.stage = stage
        self.waited_seconds = waited_seconds


class UserStop(EbbtideError):
    """Raised at a suspension point after a stop was requested."""

    category = ErrorCategory.CANCELLED

    def __init__(self, message: str = "stop requested"):
        super().__init__(message)


class ConfigError(EbbtideError):
    """Configuration is missing or invalid."""


class SessionBusyError(EbbtideError):
    """A trading session is already active."""


def is_cycle_fatal(error: BaseException) -> bool:
    """Check whether an error must end the current session."""
    return isinstance(error, EbbtideError) and error.category == ErrorCategory.CYCLE_FATAL


def is_user_stop(error: BaseException) -> bool:
    """Check whether an error is the cooperative stop signal."""
    return isinstance(error, UserStop)
