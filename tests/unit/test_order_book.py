"""Unit tests for OrderBookReader."""
from decimal import Decimal

import pytest

from ebbtide.core.errors import DepthUnavailable, TransientIOError
from ebbtide.domain.models import OutcomeSide
from ebbtide.services.order_book import OrderBookReader, parse_level


class TestReadDepth:
    """Tests for top-of-book reads."""

    @pytest.mark.asyncio
    async def test_best_levels(self, mock_client, market):
        mock_client.get_depth.return_value = {
            "asks": [["0.5", "120"], ["0.51", "300"]],
            "bids": [["0.47", "80"]],
        }
        reader = OrderBookReader(mock_client)

        snapshot = await reader.read_depth(market)

        assert snapshot.best_ask.price == Decimal("0.5")
        assert snapshot.best_ask.size == Decimal("120")
        assert snapshot.best_bid.price == Decimal("0.47")
        assert snapshot.spread == Decimal("0.03")
        mock_client.get_depth.assert_awaited_once_with("yes-token", "q-no-change")

    @pytest.mark.asyncio
    async def test_uses_token_for_side(self, mock_client, market):
        mock_client.get_depth.return_value = {"asks": [["0.5", "1"]], "bids": [["0.4", "1"]]}

        await OrderBookReader(mock_client).read_depth(market, OutcomeSide.NO)

        mock_client.get_depth.assert_awaited_once_with("no-token", "q-no-change")

    @pytest.mark.asyncio
    async def test_never_cached(self, mock_client, market):
        mock_client.get_depth.return_value = {"asks": [["0.5", "1"]], "bids": [["0.4", "1"]]}
        reader = OrderBookReader(mock_client)

        await reader.read_depth(market)
        await reader.read_depth(market)

        assert mock_client.get_depth.await_count == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "depth",
        [
            {"asks": [], "bids": [["0.4", "1"]]},
            {"asks": [["0.5", "1"]], "bids": []},
            {"asks": [], "bids": []},
        ],
    )
    async def test_one_sided_book(self, mock_client, market, depth):
        mock_client.get_depth.return_value = depth
        with pytest.raises(DepthUnavailable):
            await OrderBookReader(mock_client).read_depth(market)

    @pytest.mark.asyncio
    async def test_request_failure(self, mock_client, market):
        mock_client.get_depth.side_effect = TransientIOError("timeout")
        with pytest.raises(DepthUnavailable):
            await OrderBookReader(mock_client).read_depth(market)

    @pytest.mark.asyncio
    async def test_malformed_level(self, mock_client, market):
        mock_client.get_depth.return_value = {"asks": [["abc"]], "bids": [["0.4", "1"]]}
        with pytest.raises(DepthUnavailable):
            await OrderBookReader(mock_client).read_depth(market)


class TestParseLevel:
    def test_numeric_pair(self):
        level = parse_level([0.25, 40])
        assert level.price == Decimal("0.25")
        assert level.size == Decimal("40")

    def test_rejects_non_pair(self):
        with pytest.raises(ValueError):
            parse_level("0.25")
