"""
Trading Session Controller - owns the single active trading session.

A session runs the configured strategy cycle after cycle until it is
stopped or a cycle fails fatally. At most one session runs at a time.
Stopping is cooperative: stop() cancels the session's token and the
running cycle unwinds at its next suspension point.
"""
import asyncio
from dataclasses import dataclass
from enum import Enum
from typing import Optional
from urllib.parse import urlparse

import structlog

from ebbtide.core.cancellation import CancellationToken
from ebbtide.core.errors import SessionBusyError, UserStop, is_cycle_fatal
from ebbtide.domain.models import SessionState
from ebbtide.strategies.base import TradingContext
from ebbtide.strategies.registry import StrategyRegistry

log = structlog.get_logger()


class SessionStatus(str, Enum):
    """How a call to start() ended."""

    STOPPED = "stopped"
    FAILED = "failed"
    REDIRECTED = "redirected"
    REJECTED = "rejected"


@dataclass
class SessionReport:
    """Outcome of one session."""

    status: SessionStatus
    cycles: int = 0
    error: Optional[BaseException] = None


def market_path(market_url: str) -> str:
    """The part of a market URL that identifies the page, without scheme and host."""
    parsed = urlparse(market_url)
    if not parsed.netloc:
        return market_url
    path = parsed.path or "/"
    return f"{path}?{parsed.query}" if parsed.query else path


class SessionHandle:
    """A launched session: its task plus a way to stop it."""

    def __init__(self, task: "asyncio.Task[SessionReport]", controller: "TradingSessionController"):
        self._task = task
        self._controller = controller

    @property
    def done(self) -> bool:
        return self._task.done()

    def stop(self) -> bool:
        return self._controller.stop()

    async def wait(self) -> SessionReport:
        """Wait for the session to end and return its report."""
        return await self._task


class TradingSessionController:
    """Starts, stops and supervises the trading session.

    Usage:
        controller = TradingSessionController(ctx)
        handle = controller.launch()
        ...
        controller.stop()
        report = await handle.wait()
    """

    def __init__(
        self,
        ctx: TradingContext,
        registry: Optional[StrategyRegistry] = None,
    ) -> None:
        self._ctx = ctx
        self._registry = registry or StrategyRegistry()
        self._state = SessionState()
        self._token: Optional[CancellationToken] = None
        self._handle: Optional[SessionHandle] = None
        self._log = log.bind(component="session")

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def is_running(self) -> bool:
        return self._state.running

    def launch(self) -> SessionHandle:
        """Start a session in a background task.

        Raises:
            SessionBusyError: A session is already active.
        """
        if self._state.running or (self._handle is not None and not self._handle.done):
            raise SessionBusyError("a trading session is already running")
        loop = asyncio.get_running_loop()
        token = self._begin()
        task = loop.create_task(self._run(token), name="ebbtide-session")
        self._handle = SessionHandle(task, self)
        return self._handle

    def stop(self) -> bool:
        """Request the running session to stop.

        Returns:
            True if a running session was signalled.
        """
        if not self._state.running:
            self._log.info("stop_ignored", reason="not_running")
            return False
        self._state.stop_requested = True
        if self._token is not None:
            self._token.cancel("stop requested")
        self._log.info("stop_requested")
        return True

    async def start(self) -> SessionReport:
        """Run a session until it is stopped or fails.

        Returns a REJECTED report if a session is already running and a
        REDIRECTED report after navigating to the market page when the
        surface is elsewhere.

        Raises:
            Exception: Anything that is neither a stop request nor a
                cycle-fatal error propagates to the caller.
        """
        if self._state.running:
            self._log.warning("session_already_running")
            return SessionReport(SessionStatus.REJECTED)
        return await self._run(self._begin())

    def _begin(self) -> CancellationToken:
        """Mark the session running. A stop() from here on reaches the returned token."""
        self._state.running = True
        self._state.stop_requested = False
        self._token = CancellationToken()
        return self._token

    async def _run(self, token: CancellationToken) -> SessionReport:
        config = self._ctx.config
        cycles = 0

        try:
            token.raise_if_cancelled()
            if not await self._on_market_page():
                self._log.info("redirecting_to_market", url=config.market_url)
                await self._ctx.surface.navigate(config.market_url)
                return SessionReport(SessionStatus.REDIRECTED)

            strategy = self._registry.create(config.mode, self._ctx)
            self._set_running_metric(True)
            self._log.info(
                "session_started",
                mode=config.mode.value,
                option=config.option_name,
                side=config.side.value,
                amount=str(config.trade_amount),
            )

            while not token.cancelled:
                cycles += 1
                self._state.cycle_count += 1
                self._log.info("cycle_started", cycle=cycles)
                report = await strategy.run_cycle(token)
                if self._ctx.metrics:
                    self._ctx.metrics.record_cycle(config.mode.value, report.outcome)
                self._log.info(
                    "cycle_completed",
                    cycle=cycles,
                    phases=[p.value for p in report.phases],
                    timeouts=report.timeouts,
                )
                await token.sleep(config.cycle_pause_seconds)

            self._log.info("session_stopped", cycles=cycles)
            return SessionReport(SessionStatus.STOPPED, cycles=cycles)

        except UserStop:
            self._log.info("session_stopped", cycles=cycles, reason=token.reason)
            return SessionReport(SessionStatus.STOPPED, cycles=cycles)
        except Exception as e:
            if not is_cycle_fatal(e):
                self._log.error("session_crashed", cycles=cycles, error=str(e))
                raise
            self._log.error(
                "session_failed",
                cycles=cycles,
                error_type=type(e).__name__,
                error=str(e),
            )
            return SessionReport(SessionStatus.FAILED, cycles=cycles, error=e)
        finally:
            self._state.reset()
            self._token = None
            self._set_running_metric(False)

    async def _on_market_page(self) -> bool:
        current = await self._ctx.surface.current_location()
        return market_path(self._ctx.config.market_url) in (current or "")

    def _set_running_metric(self, running: bool) -> None:
        if self._ctx.metrics:
            self._ctx.metrics.set_session_running(running)
