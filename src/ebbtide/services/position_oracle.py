"""
Position Oracle - does the wallet currently hold a live position?

The exchange portfolio API is the primary source. Whenever it cannot be
used (toggle off, unknown wallet or topic, failed or malformed response)
the oracle falls back to the holdings rendered by the execution surface.
Both sources are thresholded identically so that dust left over from a
previous sell never counts as an open position.
"""
import asyncio
import re
from decimal import Decimal, InvalidOperation
from typing import Optional

import structlog

from ebbtide.core.cancellation import CancellationToken
from ebbtide.core.errors import TransientIOError
from ebbtide.domain.models import (
    DEFAULT_MIN_POSITION_VALUE,
    OutcomeSide,
    Position,
    is_live_value,
)
from ebbtide.execution.surface import ExecutionSurface
from ebbtide.integrations.opinion.client import OpinionClient
from ebbtide.services.metrics import MetricsEmitter

log = structlog.get_logger()

WALLET_ADDRESS_PATTERN = re.compile(r"^0x[0-9a-fA-F]{40}$")

SOURCE_API = "api"
SOURCE_SURFACE = "surface"


def is_full_wallet_address(value: Optional[str]) -> bool:
    """Whether a value is a complete 42-character hex wallet address."""
    return bool(value) and WALLET_ADDRESS_PATTERN.match(value.strip()) is not None


def parse_portfolio_item(item: dict) -> Optional[Position]:
    """Convert one portfolio list entry into a Position.

    Returns None for entries without a usable value.
    """
    try:
        value = Decimal(str(item.get("value")))
    except (InvalidOperation, ValueError):
        return None
    if not value.is_finite():
        return None

    side: Optional[OutcomeSide]
    try:
        side = OutcomeSide.parse(item.get("outcome", ""))
    except ValueError:
        side = None

    return Position(
        market_title=str(item.get("topicTitle") or ""),
        outcome_side=side,
        market_value=value,
        question_id=item.get("questionId"),
    )


class PositionOracle:
    """Answers whether a live position exists for the configured parent market.

    Never raises for read failures: every failure path degrades to the
    surface reading, and a failing surface reads as "no position".
    """

    def __init__(
        self,
        client: OpinionClient,
        surface: ExecutionSurface,
        topic_id: Optional[str],
        wallet_address: Optional[str] = None,
        use_api_first: bool = True,
        min_position_value: Decimal = DEFAULT_MIN_POSITION_VALUE,
        settle_seconds: float = 0.0,
        metrics: Optional[MetricsEmitter] = None,
    ) -> None:
        """Initialize the oracle.

        Args:
            client: Opinion API client.
            surface: Execution surface used for the fallback reading.
            topic_id: Parent topic id; None forces the fallback.
            wallet_address: Configured wallet, takes precedence over the surface.
            use_api_first: Query the portfolio API before the surface.
            min_position_value: Holdings must exceed this value to count.
            settle_seconds: Delay before reading the surface, giving a
                refreshed holdings view time to render.
            metrics: Optional metrics emitter.
        """
        self._client = client
        self._surface = surface
        self._topic_id = topic_id
        self._configured_wallet = (wallet_address or "").strip() or None
        self._use_api_first = use_api_first
        self._floor = min_position_value
        self._settle_seconds = settle_seconds
        self._metrics = metrics
        self._cached_wallet: Optional[str] = None
        self._log = log.bind(component="position_oracle")

    @property
    def min_position_value(self) -> Decimal:
        return self._floor

    async def resolve_wallet(self) -> Optional[str]:
        """Determine the wallet address to query.

        The configured address wins; otherwise the address shown by the
        surface is used. Truncated or malformed addresses are rejected. A
        resolved address is cached for the oracle's lifetime.
        """
        if self._cached_wallet:
            return self._cached_wallet

        candidate = self._configured_wallet
        source = "config"
        if candidate is None:
            source = "surface"
            try:
                candidate = await self._surface.wallet_address()
            except Exception as e:
                self._log.warning("wallet_lookup_failed", error=str(e))
                return None

        if not is_full_wallet_address(candidate):
            self._log.debug("wallet_address_unusable", source=source, value=candidate)
            return None

        self._cached_wallet = candidate.strip()
        self._log.info("wallet_resolved", source=source, wallet=self._cached_wallet)
        return self._cached_wallet

    async def live_positions(
        self,
        wallet: Optional[str] = None,
        token: Optional[CancellationToken] = None,
    ) -> list[Position]:
        """Positions above the live threshold, from the best available source."""
        source, positions = await self._read(wallet, token)
        live = [p for p in positions if p.is_live(self._floor)]
        self._log.debug(
            "live_positions_read",
            source=source,
            total=len(positions),
            live=len(live),
        )
        return live

    async def has_live_position(
        self,
        wallet: Optional[str] = None,
        token: Optional[CancellationToken] = None,
    ) -> bool:
        """Whether any holding for the parent market exceeds the threshold.

        Args:
            wallet: Explicit wallet; resolved automatically when omitted.
            token: Session token, makes the settle delay interruptible.

        Raises:
            UserStop: Only if a stop is requested during the settle delay.
        """
        source, positions = await self._read(wallet, token)
        live = any(is_live_value(p.market_value, self._floor) for p in positions)
        if self._metrics:
            self._metrics.record_oracle_check(source, live)
        return live

    async def _read(
        self,
        wallet: Optional[str],
        token: Optional[CancellationToken],
    ) -> tuple[str, list[Position]]:
        if self._use_api_first:
            positions = await self._read_api(wallet)
            if positions is not None:
                return SOURCE_API, positions
        return SOURCE_SURFACE, await self._read_surface(token)

    async def _read_api(self, wallet: Optional[str]) -> Optional[list[Position]]:
        """Read holdings from the portfolio API, or None to fall back."""
        if not self._topic_id:
            self._log.debug("oracle_fallback", reason="unknown_topic")
            return None

        wallet = wallet if is_full_wallet_address(wallet) else await self.resolve_wallet()
        if not wallet:
            self._log.debug("oracle_fallback", reason="unknown_wallet")
            return None

        try:
            items = await self._client.get_portfolio(wallet, self._topic_id)
        except TransientIOError as e:
            self._log.warning("oracle_fallback", reason="api_error", error=str(e))
            if self._metrics:
                self._metrics.record_api_request("portfolio", "error")
            return None

        if self._metrics:
            self._metrics.record_api_request("portfolio", "success")

        positions = []
        for item in items:
            position = parse_portfolio_item(item) if isinstance(item, dict) else None
            if position is None:
                self._log.debug("portfolio_item_skipped", item=item)
                continue
            positions.append(position)
        return positions

    async def _read_surface(self, token: Optional[CancellationToken]) -> list[Position]:
        if self._settle_seconds > 0:
            if token is not None:
                await token.sleep(self._settle_seconds)
            else:
                await asyncio.sleep(self._settle_seconds)

        try:
            return await self._surface.rendered_holdings()
        except Exception as e:
            self._log.warning("surface_holdings_unreadable", error=str(e))
            return []
