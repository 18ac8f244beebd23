"""Services - exchange-facing components with single responsibility."""

from ebbtide.services.market_resolver import MarketResolver, topic_id_from_url
from ebbtide.services.metrics import MetricsEmitter
from ebbtide.services.order_book import OrderBookReader
from ebbtide.services.order_lifecycle import OrderLifecycleClient
from ebbtide.services.position_oracle import PositionOracle

__all__ = [
    "MetricsEmitter",
    "PositionOracle",
    "MarketResolver",
    "OrderBookReader",
    "OrderLifecycleClient",
    "topic_id_from_url",
]
