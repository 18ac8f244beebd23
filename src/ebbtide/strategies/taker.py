"""Taker strategy - market buy, hold, market sell.

Each cycle starts from the oracle's answer. With no live position the
cycle enters and holds; with a live position it exits. Exiting therefore
always follows a positive check and entering a negative one, and a
position left over from a crash is sold before anything new is bought.
"""

import structlog

from ebbtide.core.cancellation import CancellationToken
from ebbtide.domain.models import OrderIntent, OrderMode, OrderSide
from ebbtide.execution.procedures import (
    liquidate,
    submit_buy_intent,
    wait_for_position,
    wait_for_submission,
)
from ebbtide.strategies.base import CyclePhase, CycleReport, StrategyKind, TradingContext

log = structlog.get_logger()


class TakerStrategy:
    """Buys at market, holds for a fixed time and sells everything."""

    def __init__(self, ctx: TradingContext) -> None:
        self._ctx = ctx
        self._config = ctx.config
        self._first_cycle = True
        self._log = log.bind(component="taker", option=ctx.config.option_name)

    @property
    def kind(self) -> StrategyKind:
        return StrategyKind.TAKER

    async def run_cycle(self, token: CancellationToken) -> CycleReport:
        report = CycleReport(strategy=self.kind)

        if self._first_cycle:
            self._first_cycle = False
            self._log.info("pre_trade_delay", seconds=self._config.pre_trade_delay_seconds)
            await token.sleep(self._config.pre_trade_delay_seconds)

        report.enter(CyclePhase.CHECKING_POSITION)
        if await self._ctx.oracle.has_live_position(token=token):
            self._log.info("live_position_found")
            report.enter(CyclePhase.EXITING)
            timeout = await liquidate(self._ctx, token)
            if timeout:
                report.timeouts.append(timeout.stage)
            return report

        self._log.info("no_live_position")
        report.enter(CyclePhase.ENTERING)
        await self._enter(token, report)

        report.enter(CyclePhase.HOLDING)
        self._log.info("holding_position", seconds=self._config.hold_seconds)
        await token.sleep(self._config.hold_seconds)
        return report

    async def _enter(self, token: CancellationToken, report: CycleReport) -> None:
        config = self._config
        intent = OrderIntent(side=OrderSide.BUY, amount=config.trade_amount, mode=OrderMode.MARKET)
        await submit_buy_intent(
            self._ctx.surface,
            intent,
            config.option_name,
            config.side,
            metrics=self._ctx.metrics,
        )

        timeout = await wait_for_submission(
            self._ctx.surface,
            config.confirm_policy("buy_confirmation"),
            token,
            oracle=self._ctx.oracle,
            metrics=self._ctx.metrics,
        )
        if timeout:
            report.timeouts.append(timeout.stage)

        timeout = await wait_for_position(
            self._ctx.oracle,
            expect_live=True,
            policy=config.position_policy("position_visible"),
            token=token,
            metrics=self._ctx.metrics,
        )
        if timeout:
            report.timeouts.append(timeout.stage)
