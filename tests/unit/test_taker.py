"""
Unit tests for TakerStrategy.

Cycles run end to end against the dry-run surface with a real position
oracle reading its rendered holdings.
"""
from dataclasses import replace
from unittest.mock import AsyncMock, MagicMock

import pytest

from ebbtide.core.cancellation import CancellationToken
from ebbtide.core.errors import UserStop
from ebbtide.strategies.base import CyclePhase, StrategyKind
from ebbtide.strategies.taker import TakerStrategy


class RecordingToken(CancellationToken):
    """Token that remembers every sleep it was asked for."""

    def __init__(self) -> None:
        super().__init__()
        self.sleeps = []

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        await super().sleep(seconds)


class TestTakerCycles:
    """Tests for the enter / hold / exit alternation."""

    @pytest.mark.asyncio
    async def test_first_cycle_enters_and_holds(self, make_context, surface):
        strategy = TakerStrategy(make_context())

        report = await strategy.run_cycle(CancellationToken())

        assert strategy.kind == StrategyKind.TAKER
        assert report.phases == [
            CyclePhase.CHECKING_POSITION,
            CyclePhase.ENTERING,
            CyclePhase.HOLDING,
        ]
        assert report.timeouts == []
        assert surface.intents == [
            ("select_option", "No change"),
            ("select_side", "YES"),
            ("set_amount", "10"),
            ("submit_buy", "MARKET"),
        ]

    @pytest.mark.asyncio
    async def test_second_cycle_exits(self, make_context, surface):
        """Verify a live position found by the check is sold, never added to."""
        strategy = TakerStrategy(make_context())
        token = CancellationToken()
        await strategy.run_cycle(token)
        surface.intents.clear()

        report = await strategy.run_cycle(token)

        assert report.phases == [CyclePhase.CHECKING_POSITION, CyclePhase.EXITING]
        assert report.outcome == "exiting"
        assert surface.intents == [("submit_sell", "row-1")]
        assert await surface.rendered_holdings() == []

    @pytest.mark.asyncio
    async def test_cycles_alternate(self, make_context, surface):
        strategy = TakerStrategy(make_context())
        token = CancellationToken()

        outcomes = [(await strategy.run_cycle(token)).outcome for _ in range(4)]

        assert outcomes == ["holding", "exiting", "holding", "exiting"]
        buys = [i for i in surface.intents if i[0] == "submit_buy"]
        sells = [i for i in surface.intents if i[0] == "submit_sell"]
        assert len(buys) == 2
        assert len(sells) == 2

    @pytest.mark.asyncio
    async def test_pre_trade_delay_only_once(self, make_context, fast_config):
        config = replace(fast_config, pre_trade_delay_seconds=0.02)
        strategy = TakerStrategy(make_context(config=config))
        token = RecordingToken()

        await strategy.run_cycle(token)
        first = list(token.sleeps)
        token.sleeps.clear()
        await strategy.run_cycle(token)

        assert first[0] == 0.02
        assert 0.02 not in token.sleeps

    @pytest.mark.asyncio
    async def test_unconfirmed_entry_records_timeouts(self, make_context, metrics):
        """Verify a buy that never shows up is logged and the cycle carries on."""
        oracle = MagicMock()
        oracle.has_live_position = AsyncMock(return_value=False)
        strategy = TakerStrategy(make_context(oracle=oracle))

        report = await strategy.run_cycle(CancellationToken())

        assert report.timeouts == ["position_visible"]
        assert report.phases[-1] == CyclePhase.HOLDING
        assert metrics.registry.get_sample_value(
            "ebbtide_confirmation_timeouts_total", {"stage": "position_visible"}
        ) == 1.0

    @pytest.mark.asyncio
    async def test_cancelled_token_stops_cycle(self, make_context, surface):
        strategy = TakerStrategy(make_context())
        token = CancellationToken()
        token.cancel()

        with pytest.raises(UserStop):
            await strategy.run_cycle(token)
        assert surface.intents == []
