"""Maker strategy - rest a limit buy at the best ask, sell once it fills.

Cycle phases:
    CheckingPosition -> Reconciling -> Liquidating     (position already live)
    CheckingPosition -> Resolving -> QuotingDepth -> PlacingBothSides -> Monitoring
        -> Reconciling -> Liquidating    (fill observed)
        -> TimedOut                      (no fill within the budget)

A fill is observed either as a live position from the oracle or as a
FILLED buy in the wallet's recent orders that was not listed before this
cycle placed its order. Resting orders are always cancelled before the
position is sold.
"""

import math
from decimal import Decimal
from typing import Optional

import structlog

from ebbtide.core.cancellation import CancellationToken
from ebbtide.core.errors import DepthUnavailable
from ebbtide.core.polling import PollPolicy, poll_until
from ebbtide.domain.models import MarketRef, OrderIntent, OrderMode, OrderSide
from ebbtide.execution.procedures import liquidate, submit_buy_intent, wait_for_position
from ebbtide.strategies.base import CyclePhase, CycleReport, StrategyKind, TradingContext

log = structlog.get_logger()


class MakerStrategy:
    """Posts a limit buy priced at the best ask and manages it to completion."""

    def __init__(self, ctx: TradingContext) -> None:
        self._ctx = ctx
        self._config = ctx.config
        self._log = log.bind(component="maker", option=ctx.config.option_name)

    @property
    def kind(self) -> StrategyKind:
        return StrategyKind.MAKER

    async def run_cycle(self, token: CancellationToken) -> CycleReport:
        config = self._config
        report = CycleReport(strategy=self.kind)

        report.enter(CyclePhase.CHECKING_POSITION)
        if await self._ctx.oracle.has_live_position(token=token):
            self._log.info("live_position_found", action="liquidate_before_entry")
            await self._close_out(config.topic_id, token, report)
            return report

        report.enter(CyclePhase.RESOLVING)
        market = await self._ctx.resolver.resolve_market(config.topic_id, config.option_name)
        token.raise_if_cancelled()
        topic_id = config.topic_id or market.topic_id

        report.enter(CyclePhase.QUOTING_DEPTH)
        depth = await self._ctx.book.read_depth(market, config.side)
        token.raise_if_cancelled()
        intent = self._limit_intent(depth.best_ask.price)

        report.enter(CyclePhase.PLACING_BOTH_SIDES)
        known_orders = await self._listed_order_refs(topic_id)
        await self._place(market, intent, token, report)

        report.enter(CyclePhase.MONITORING)
        filled = await self._monitor(topic_id, known_orders, token)
        report.filled = filled

        if filled:
            await self._close_out(topic_id, token, report)
            self._log.info("maker_cycle_completed", cancelled=report.cancelled_orders)
            return report

        report.enter(CyclePhase.TIMED_OUT)
        self._log.warning("maker_fill_timeout", waited_seconds=config.maker_max_wait_seconds)
        if config.maker_cancel_on_timeout:
            report.cancelled_orders = await self._cancel_resting(topic_id, token)
        return report

    async def _close_out(
        self,
        topic_id: Optional[str],
        token: CancellationToken,
        report: CycleReport,
    ) -> None:
        report.enter(CyclePhase.RECONCILING)
        report.cancelled_orders = await self._cancel_resting(topic_id, token)

        report.enter(CyclePhase.LIQUIDATING)
        timeout = await liquidate(self._ctx, token)
        if timeout:
            report.timeouts.append(timeout.stage)

    def _limit_intent(self, price: Decimal) -> OrderIntent:
        """Build the limit buy at the quoted price.

        Raises:
            DepthUnavailable: The best ask sits at 0 or 1 and cannot be quoted.
        """
        try:
            return OrderIntent(
                side=OrderSide.BUY,
                amount=self._config.trade_amount,
                mode=OrderMode.LIMIT,
                price=price,
            )
        except ValueError as e:
            raise DepthUnavailable(f"best ask {price} cannot be quoted", cause=e) from e

    async def _listed_order_refs(self, topic_id: Optional[str]) -> set[str]:
        wallet = await self._ctx.oracle.resolve_wallet()
        orders = await self._ctx.orders.list_open_orders(wallet, topic_id)
        return {o.order_ref for o in orders}

    async def _place(
        self,
        market: MarketRef,
        intent: OrderIntent,
        token: CancellationToken,
        report: CycleReport,
    ) -> None:
        config = self._config
        self._log.info(
            "placing_limit_buy",
            market=market.title,
            side=config.side.value,
            price=str(intent.price),
            price_cents=intent.price_cents,
        )
        await submit_buy_intent(
            self._ctx.surface,
            intent,
            config.option_name,
            config.side,
            metrics=self._ctx.metrics,
        )

        policies = (
            PollPolicy(
                config.poll_interval_seconds,
                config.confirm_max_attempts,
                name="limit_order_confirmation",
                sleep_first=True,
            ),
            config.position_policy("limit_position_visible"),
        )
        for policy in policies:
            timeout = await wait_for_position(
                self._ctx.oracle,
                expect_live=True,
                policy=policy,
                token=token,
                metrics=self._ctx.metrics,
            )
            if timeout is None:
                return
            report.timeouts.append(timeout.stage)

    async def _monitor(
        self,
        topic_id: Optional[str],
        known_orders: set[str],
        token: CancellationToken,
    ) -> bool:
        """Watch for a fill until the monitoring budget runs out.

        Orders listed in known_orders predate this cycle and never count
        as its fill.
        """
        config = self._config
        interval = config.maker_check_interval_seconds
        policy = PollPolicy(
            interval,
            max(1, math.ceil(config.maker_max_wait_seconds / interval)),
            name="maker_fill",
            sleep_first=True,
        )
        ticks_per_order_check = max(1, round(config.maker_order_check_seconds / interval))
        wallet: Optional[str] = None
        tick = 0

        async def fill_observed() -> bool:
            nonlocal tick, wallet
            tick += 1
            if await self._ctx.oracle.has_live_position(token=token):
                self._log.info("fill_detected", source="position")
                return True

            if tick % ticks_per_order_check == 0:
                wallet = wallet or await self._ctx.oracle.resolve_wallet()
                orders = await self._ctx.orders.list_open_orders(wallet, topic_id)
                filled = [
                    o for o in orders
                    if o.is_filled and o.side == OrderSide.BUY and o.order_ref not in known_orders
                ]
                if filled:
                    self._log.info("fill_detected", source="orders", count=len(filled))
                    return True
            return False

        self._log.info(
            "monitoring_started",
            max_wait_seconds=config.maker_max_wait_seconds,
            known_orders=len(known_orders),
        )
        return await poll_until(fill_observed, policy, token)

    async def _cancel_resting(self, topic_id: Optional[str], token: CancellationToken) -> int:
        wallet = await self._ctx.oracle.resolve_wallet()
        if not wallet:
            self._log.warning("cancel_skipped", reason="unknown_wallet")
            return 0
        return await self._ctx.orders.cancel_pending_orders(wallet, topic_id, token)
