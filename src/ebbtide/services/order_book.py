"""Order Book Reader - top of book for a resolved child market."""
from decimal import Decimal, InvalidOperation
from typing import Optional

import structlog

from ebbtide.core.errors import DepthUnavailable, TransientIOError
from ebbtide.domain.models import DepthSnapshot, MarketRef, OutcomeSide, PriceLevel
from ebbtide.integrations.opinion.client import OpinionClient
from ebbtide.services.metrics import MetricsEmitter

log = structlog.get_logger()


def parse_level(raw) -> PriceLevel:
    """Parse a `[price, size]` pair into a PriceLevel.

    Raises:
        ValueError: If the pair is malformed or out of range.
    """
    if not isinstance(raw, (list, tuple)) or len(raw) < 2:
        raise ValueError(f"expected [price, size], got {raw!r}")
    try:
        return PriceLevel(price=Decimal(str(raw[0])), size=Decimal(str(raw[1])))
    except InvalidOperation as e:
        raise ValueError(f"non-numeric level {raw!r}") from e


class OrderBookReader:
    """Reads depth for one outcome token. Snapshots are never cached."""

    def __init__(
        self,
        client: OpinionClient,
        metrics: Optional[MetricsEmitter] = None,
    ) -> None:
        self._client = client
        self._metrics = metrics
        self._log = log.bind(component="order_book")

    async def read_depth(
        self,
        market: MarketRef,
        side: OutcomeSide = OutcomeSide.YES,
    ) -> DepthSnapshot:
        """Read best ask and best bid for a market's outcome token.

        Raises:
            DepthUnavailable: Request failed or either side of the book is empty.
        """
        token_id = market.token_for(side)
        try:
            depth = await self._client.get_depth(token_id, market.question_id)
        except TransientIOError as e:
            if self._metrics:
                self._metrics.record_api_request("depth", "error")
            raise DepthUnavailable(f"depth request for {market.title!r} failed", cause=e) from e

        if self._metrics:
            self._metrics.record_api_request("depth", "success")

        asks, bids = depth.get("asks") or [], depth.get("bids") or []
        if not asks or not bids:
            self._log.warning(
                "depth_one_sided",
                market=market.title,
                side=side.value,
                asks=len(asks),
                bids=len(bids),
            )
            raise DepthUnavailable(f"no two-sided book for {market.title!r} {side.value}")

        try:
            snapshot = DepthSnapshot(best_ask=parse_level(asks[0]), best_bid=parse_level(bids[0]))
        except ValueError as e:
            raise DepthUnavailable(f"malformed depth for {market.title!r}", cause=e) from e

        self._log.info(
            "depth_read",
            market=market.title,
            side=side.value,
            best_ask=str(snapshot.best_ask.price),
            best_bid=str(snapshot.best_bid.price),
            spread=str(snapshot.spread),
        )
        return snapshot
