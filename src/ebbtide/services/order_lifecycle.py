"""
Order Lifecycle Client - list and cancel the wallet's resting orders.

Order status is owned by the exchange; the engine only observes it. All
failures are absorbed here: a failed listing reads as "no orders" and a
failed cancellation is reported as False.
"""
from decimal import Decimal, InvalidOperation
from typing import Optional

import structlog

from ebbtide.core.cancellation import CancellationToken
from ebbtide.core.errors import TransientIOError
from ebbtide.domain.models import OpenOrder, OrderSide, OrderStatus
from ebbtide.integrations.opinion.client import OpinionClient
from ebbtide.services.metrics import MetricsEmitter

log = structlog.get_logger()

DEFAULT_ORDERS_LIMIT = 10
DEFAULT_CANCEL_SPACING_SECONDS = 0.5


def parse_order(item: dict, default_chain: int) -> OpenOrder:
    """Convert one order list entry into an OpenOrder.

    Raises:
        ValueError: Unknown side or status code, or missing fields.
    """
    order_ref = item.get("transNo")
    if not order_ref:
        raise ValueError("order has no transNo")
    try:
        return OpenOrder(
            order_ref=str(order_ref),
            side=OrderSide.from_code(int(item.get("side"))),
            price=Decimal(str(item.get("price", "0"))),
            amount=Decimal(str(item.get("amount", "0"))),
            filled_amount=Decimal(str(item.get("filled") or "0")),
            status=OrderStatus.from_code(item.get("status")),
            chain_ref=int(item.get("chainId") or default_chain),
            order_id=str(item["orderId"]) if item.get("orderId") is not None else None,
            market_title=item.get("topicTitle"),
        )
    except (InvalidOperation, TypeError) as e:
        raise ValueError(f"malformed order {order_ref}: {e}") from e


class OrderLifecycleClient:
    """Lists recent orders and cancels pending ones, best effort."""

    def __init__(
        self,
        client: OpinionClient,
        limit: int = DEFAULT_ORDERS_LIMIT,
        cancel_spacing_seconds: float = DEFAULT_CANCEL_SPACING_SECONDS,
        metrics: Optional[MetricsEmitter] = None,
    ) -> None:
        self._client = client
        self._limit = limit
        self._cancel_spacing = cancel_spacing_seconds
        self._metrics = metrics
        self._log = log.bind(component="order_lifecycle")

    async def list_open_orders(self, wallet: Optional[str], topic_id: Optional[str]) -> list[OpenOrder]:
        """Get the most recent orders for the wallet under the parent topic.

        Entries with an unknown status or side are skipped. Any failure
        returns an empty list.
        """
        if not wallet or not topic_id:
            self._log.debug("orders_skipped", reason="missing_wallet_or_topic")
            return []

        try:
            items = await self._client.get_orders(wallet, topic_id, limit=self._limit)
        except TransientIOError as e:
            self._log.warning("orders_fetch_failed", error=str(e))
            if self._metrics:
                self._metrics.record_api_request("orders", "error")
            return []

        if self._metrics:
            self._metrics.record_api_request("orders", "success")

        orders = []
        for item in items:
            if not isinstance(item, dict):
                continue
            try:
                orders.append(parse_order(item, self._client.chain_id))
            except ValueError as e:
                self._log.warning("order_skipped", error=str(e), trans_no=item.get("transNo"))
        return orders

    async def cancel_order(self, order_ref: str, chain_ref: Optional[int] = None) -> bool:
        """Request cancellation of one order.

        Returns:
            True if the exchange accepted the cancellation. False for
            rejected requests (already filled or cancelled) and failures.
        """
        try:
            await self._client.cancel_order(order_ref, chain_ref)
        except TransientIOError as e:
            self._log.warning("order_cancel_failed", order_ref=order_ref, error=str(e))
            if self._metrics:
                self._metrics.record_cancellation(False)
            return False

        self._log.info("order_cancelled", order_ref=order_ref)
        if self._metrics:
            self._metrics.record_cancellation(True)
        return True

    async def cancel_pending_orders(
        self,
        wallet: Optional[str],
        topic_id: Optional[str],
        token: CancellationToken,
    ) -> int:
        """Cancel every pending order, one at a time with fixed spacing.

        Returns:
            Number of orders the exchange accepted a cancellation for.
        """
        orders = await self.list_open_orders(wallet, topic_id)
        pending = [o for o in orders if o.is_pending]
        if not pending:
            self._log.info("no_pending_orders")
            return 0

        self._log.info("cancelling_pending_orders", count=len(pending))
        cancelled = 0
        for index, order in enumerate(pending):
            if index > 0:
                await token.sleep(self._cancel_spacing)
            if await self.cancel_order(order.order_ref, order.chain_ref):
                cancelled += 1

        self._log.info("pending_orders_cancelled", cancelled=cancelled, requested=len(pending))
        return cancelled
