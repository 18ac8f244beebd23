"""
Shared pytest fixtures for Ebbtide tests.

Timing-sensitive components run with intervals of a few milliseconds so
that full cycles complete quickly while keeping their real poll structure.
"""
from decimal import Decimal
from unittest.mock import AsyncMock, MagicMock

import pytest
from prometheus_client import CollectorRegistry

from ebbtide.domain.models import MarketRef
from ebbtide.execution.surface import DryRunSurface
from ebbtide.services.metrics import MetricsEmitter
from ebbtide.services.position_oracle import PositionOracle
from ebbtide.strategies.base import TradingContext
from ebbtide.strategies.config import TradingConfig

WALLET = "0x" + "ab" * 20
MARKET_URL = "https://app.opinion.trade/detail?topicId=61&type=multi"


@pytest.fixture
def wallet():
    return WALLET


@pytest.fixture
def market_url():
    return MARKET_URL


@pytest.fixture
def fast_config():
    """TradingConfig with millisecond delays and short poll budgets."""
    return TradingConfig(
        market_url=MARKET_URL,
        option_name="No change",
        trade_amount=Decimal("10"),
        hold_seconds=0.01,
        pre_trade_delay_seconds=0,
        pre_sell_delay_seconds=0,
        wallet_address=WALLET,
        poll_interval_seconds=0.01,
        confirm_max_attempts=3,
        position_max_attempts=3,
        cycle_pause_seconds=0,
        maker_check_interval_seconds=0.01,
        maker_max_wait_seconds=0.05,
        maker_order_check_seconds=0.01,
        cancel_spacing_seconds=0.01,
        fallback_settle_seconds=0,
    )


@pytest.fixture
def metrics():
    """MetricsEmitter with an isolated registry."""
    return MetricsEmitter(registry=CollectorRegistry())


@pytest.fixture
def surface():
    """Dry-run surface already on the market page."""
    return DryRunSurface(location=MARKET_URL, wallet=WALLET)


@pytest.fixture
def mock_client():
    """Mock OpinionClient for unit tests."""
    client = MagicMock()
    client.chain_id = 56
    client.get_portfolio = AsyncMock(return_value=[])
    client.get_topic = AsyncMock(return_value={"childList": []})
    client.get_depth = AsyncMock(return_value={"asks": [], "bids": []})
    client.get_orders = AsyncMock(return_value=[])
    client.cancel_order = AsyncMock(return_value=None)
    return client


@pytest.fixture
def market():
    return MarketRef(
        topic_id="61",
        question_id="q-no-change",
        title="No change",
        yes_token_id="yes-token",
        no_token_id="no-token",
        yes_price=Decimal("0.5"),
        no_price=Decimal("0.5"),
    )


@pytest.fixture
def surface_oracle(mock_client, surface, metrics):
    """Real PositionOracle reading the dry-run surface only."""
    return PositionOracle(
        mock_client,
        surface,
        topic_id="61",
        wallet_address=WALLET,
        use_api_first=False,
        metrics=metrics,
    )


@pytest.fixture
def make_context(fast_config, surface, surface_oracle, metrics):
    """Build a TradingContext; components default to mocks."""

    def _make(**overrides):
        resolver = MagicMock()
        resolver.resolve_market = AsyncMock()
        book = MagicMock()
        book.read_depth = AsyncMock()
        orders = MagicMock()
        orders.list_open_orders = AsyncMock(return_value=[])
        orders.cancel_pending_orders = AsyncMock(return_value=0)
        fields = dict(
            config=fast_config,
            oracle=surface_oracle,
            resolver=resolver,
            book=book,
            orders=orders,
            surface=surface,
            metrics=metrics,
        )
        fields.update(overrides)
        return TradingContext(**fields)

    return _make
