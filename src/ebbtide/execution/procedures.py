"""
Execution procedures shared by the strategies.

Intents are dispatched to the surface and then confirmed by polling. An
expired confirmation window is advisory: it is logged as an
ExecutionTimeout and returned to the caller, which carries on.
"""
from typing import TYPE_CHECKING, Optional

import structlog

from ebbtide.core.cancellation import CancellationToken
from ebbtide.core.errors import ExecutionTimeout
from ebbtide.core.polling import PollPolicy, poll_until
from ebbtide.domain.models import OrderIntent, OrderMode, OrderSide, OutcomeSide
from ebbtide.execution.surface import ExecutionSurface
from ebbtide.services.metrics import MetricsEmitter
from ebbtide.services.position_oracle import PositionOracle

if TYPE_CHECKING:
    from ebbtide.strategies.base import TradingContext

log = structlog.get_logger()


def _expired(
    policy: PollPolicy,
    metrics: Optional[MetricsEmitter],
) -> ExecutionTimeout:
    timeout = ExecutionTimeout(policy.name, policy.budget_seconds)
    log.warning("confirmation_timeout", stage=policy.name, error=str(timeout))
    if metrics:
        metrics.record_confirmation_timeout(policy.name)
    return timeout


async def submit_buy_intent(
    surface: ExecutionSurface,
    intent: OrderIntent,
    option_label: str,
    outcome: OutcomeSide,
    metrics: Optional[MetricsEmitter] = None,
) -> None:
    """Express a buy intent on the surface.

    Selects the child market and outcome, enters the limit price for LIMIT
    intents, enters the amount and submits. Returns as soon as the submit
    has been handed over; confirmation is the caller's job.
    """
    if intent.side != OrderSide.BUY:
        raise ValueError(f"only buy intents are submitted this way, got {intent.side.value}")

    await surface.select_option(option_label)
    await surface.select_side(outcome)
    if intent.mode == OrderMode.LIMIT:
        await surface.set_price(intent.price_cents)
    await surface.set_amount(intent.amount)
    await surface.submit_buy()

    log.info(
        "buy_intent_submitted",
        option=option_label,
        outcome=outcome.value,
        mode=intent.mode.value,
        amount=str(intent.amount),
        price_cents=intent.price_cents,
    )
    if metrics:
        metrics.record_intent(intent.side.value, intent.mode.value)


async def wait_for_submission(
    surface: ExecutionSurface,
    policy: PollPolicy,
    token: CancellationToken,
    oracle: Optional[PositionOracle] = None,
    metrics: Optional[MetricsEmitter] = None,
) -> Optional[ExecutionTimeout]:
    """Poll until the surface confirms the last submission.

    Confirmation is any of: the submit control went inactive, a success
    notice is shown, or (when an oracle is given) a live position exists.

    Returns:
        None once confirmed, the logged ExecutionTimeout on expiry.
    """

    async def confirmed() -> bool:
        if not await surface.is_submission_active():
            return True
        if await surface.has_success_notice():
            return True
        return oracle is not None and await oracle.has_live_position(token=token)

    if await poll_until(confirmed, policy, token):
        log.info("submission_confirmed", stage=policy.name)
        return None
    return _expired(policy, metrics)


async def wait_for_position(
    oracle: PositionOracle,
    expect_live: bool,
    policy: PollPolicy,
    token: CancellationToken,
    metrics: Optional[MetricsEmitter] = None,
) -> Optional[ExecutionTimeout]:
    """Poll the oracle until it reports the expected position state."""

    async def reached() -> bool:
        return await oracle.has_live_position(token=token) == expect_live

    if await poll_until(reached, policy, token):
        log.info("position_state_reached", stage=policy.name, live=expect_live)
        return None
    return _expired(policy, metrics)


async def sell_all(
    surface: ExecutionSurface,
    policy: PollPolicy,
    token: CancellationToken,
    metrics: Optional[MetricsEmitter] = None,
) -> int:
    """Submit a sell-all for every sellable row, confirming each one.

    Returns:
        Number of rows a sell was submitted for.
    """
    rows = await surface.list_sellable_rows()
    if not rows:
        log.warning("no_sellable_rows")
        return 0

    sold = 0
    for row in rows:
        token.raise_if_cancelled()
        await surface.submit_sell(row)
        sold += 1
        log.info(
            "sell_intent_submitted",
            row=row.row_id,
            market=row.market_title,
            value=str(row.value),
        )
        if metrics:
            metrics.record_intent(OrderSide.SELL.value, OrderMode.MARKET.value)
        await wait_for_submission(surface, policy, token, metrics=metrics)

    return sold


async def liquidate(ctx: "TradingContext", token: CancellationToken) -> Optional[ExecutionTimeout]:
    """Sell everything and wait for the position to clear.

    Waits the pre-sell delay, submits a confirmed sell-all per sellable
    row, then polls the oracle until no live position remains.

    Returns:
        None once the position cleared, the logged ExecutionTimeout otherwise.
    """
    config = ctx.config
    log.info("liquidation_started", pre_sell_delay=config.pre_sell_delay_seconds)
    await token.sleep(config.pre_sell_delay_seconds)

    sold = await sell_all(
        ctx.surface,
        config.confirm_policy("sell_confirmation"),
        token,
        metrics=ctx.metrics,
    )
    log.info("sell_orders_submitted", count=sold)

    return await wait_for_position(
        ctx.oracle,
        expect_live=False,
        policy=config.position_policy("position_cleared"),
        token=token,
        metrics=ctx.metrics,
    )
