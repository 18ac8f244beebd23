"""Core framework infrastructure - config, logging, errors, cancellation, polling."""

from ebbtide.core.cancellation import CancellationToken
from ebbtide.core.config import ConfigManager
from ebbtide.core.errors import (
    ConfigError,
    DepthUnavailable,
    EbbtideError,
    ErrorCategory,
    ExecutionTimeout,
    ResolutionError,
    SessionBusyError,
    TransientIOError,
    UserStop,
    is_cycle_fatal,
    is_user_stop,
)
from ebbtide.core.logging import setup_logging
from ebbtide.core.polling import PollPolicy, poll_until

__all__ = [
    # Config
    "ConfigManager",
    # Logging
    "setup_logging",
    # Cancellation / polling
    "CancellationToken",
    "PollPolicy",
    "poll_until",
    # Errors
    "EbbtideError",
    "ErrorCategory",
    "TransientIOError",
    "ResolutionError",
    "DepthUnavailable",
    "ExecutionTimeout",
    "UserStop",
    "ConfigError",
    "SessionBusyError",
    "is_cycle_fatal",
    "is_user_stop",
]
