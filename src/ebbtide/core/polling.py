"""
Bounded condition polling built on tenacity.

Every wait in the engine has the same shape: check a condition, sleep a
fixed interval, give up once the wall-clock budget (interval * attempts) or
the attempt count runs out. Expiry is returned as False; the caller decides
whether that is fatal or merely logged.

Usage:
    policy = PollPolicy(interval_seconds=1.0, max_attempts=30, name="position_visible")
    seen = await poll_until(oracle.has_live_position, policy, token)
    if not seen:
        log.warning("position_not_visible", waited_seconds=policy.budget_seconds)
"""

from dataclasses import dataclass
from typing import Awaitable, Callable

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_result,
    stop_after_attempt,
    stop_after_delay,
    wait_fixed,
)

from ebbtide.core.cancellation import CancellationToken

log = structlog.get_logger()

Condition = Callable[[], Awaitable[bool]]

# Progress is logged every N unsuccessful attempts
PROGRESS_LOG_EVERY = 5


@dataclass(frozen=True)
class PollPolicy:
    """Interval and budget for one wait loop.

    Attributes:
        interval_seconds: Delay between two checks.
        max_attempts: Upper bound on the number of checks.
        name: Label used in log events.
        sleep_first: Wait one interval before the first check.
    """

    interval_seconds: float
    max_attempts: int
    name: str = "poll"
    sleep_first: bool = False

    def __post_init__(self) -> None:
        if self.interval_seconds < 0:
            raise ValueError(f"interval_seconds must be >= 0, got {self.interval_seconds}")
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")

    @property
    def budget_seconds(self) -> float:
        """Wall-clock budget for the whole loop."""
        return self.interval_seconds * self.max_attempts

    def with_name(self, name: str) -> "PollPolicy":
        return PollPolicy(
            interval_seconds=self.interval_seconds,
            max_attempts=self.max_attempts,
            name=name,
            sleep_first=self.sleep_first,
        )


def _log_progress(policy: PollPolicy) -> Callable[[RetryCallState], None]:
    def callback(state: RetryCallState) -> None:
        if state.attempt_number % PROGRESS_LOG_EVERY == 0:
            log.info(
                "poll_waiting",
                poll=policy.name,
                attempt=state.attempt_number,
                remaining_seconds=round(
                    max(policy.budget_seconds - state.seconds_since_start, 0.0), 1
                ),
            )

    return callback


async def poll_until(
    condition: Condition,
    policy: PollPolicy,
    token: CancellationToken,
) -> bool:
    """Poll `condition` until it returns True or the policy is exhausted.

    Args:
        condition: Async predicate. Exceptions other than UserStop are not
            expected; components absorb their own failures.
        policy: Interval and budget.
        token: Session cancellation token, checked before every attempt and
            during every sleep.

    Returns:
        True if the condition was observed, False on expiry.

    Raises:
        UserStop: If a stop is requested while polling.
    """

    async def attempt() -> bool:
        token.raise_if_cancelled()
        return bool(await condition())

    if policy.sleep_first:
        await token.sleep(policy.interval_seconds)

    retrying = AsyncRetrying(
        stop=stop_after_attempt(policy.max_attempts)
        | stop_after_delay(policy.budget_seconds),
        wait=wait_fixed(policy.interval_seconds),
        retry=retry_if_result(lambda observed: not observed),
        sleep=token.sleep,
        after=_log_progress(policy),
        retry_error_callback=lambda state: False,
    )
    return await retrying(attempt)
