"""Execution Surface - the seam between the engine and the trading front end.

The engine never places orders itself. It expresses intents (select the
market, choose a side, set an amount, submit) against a surface, and it
learns whether they took effect only by polling observations. A browser
driver, an exchange SDK or the in-memory DryRunSurface can sit behind the
same protocol.
"""

import itertools
from abc import abstractmethod
from dataclasses import dataclass
from decimal import Decimal
from typing import Optional, Protocol, runtime_checkable

import structlog

from ebbtide.domain.models import OrderMode, OutcomeSide, Position

log = structlog.get_logger()


@dataclass(frozen=True)
class SellableRow:
    """A holding the surface offers a sell-all action for."""

    row_id: str
    market_title: str
    outcome_side: Optional[OutcomeSide]
    value: Decimal


@runtime_checkable
class ExecutionSurface(Protocol):
    """Protocol every execution front end must implement.

    Intents are fire-and-forget: they return once the action has been
    handed to the front end, not once it has taken effect. Observations
    are passive reads with no side effects.
    """

    # Intents

    @abstractmethod
    async def select_option(self, label: str) -> None:
        """Select the child market with the given human-readable label."""
        ...

    @abstractmethod
    async def select_side(self, side: OutcomeSide) -> None:
        ...

    @abstractmethod
    async def set_price(self, cents: str) -> None:
        """Enter a limit price in the exchange's cents notation ("50.0")."""
        ...

    @abstractmethod
    async def set_amount(self, amount: Decimal) -> None:
        ...

    @abstractmethod
    async def submit_buy(self) -> None:
        ...

    @abstractmethod
    async def list_sellable_rows(self) -> list[SellableRow]:
        ...

    @abstractmethod
    async def submit_sell(self, row: SellableRow) -> None:
        """Sell the whole holding shown in a row."""
        ...

    @abstractmethod
    async def navigate(self, url: str) -> None:
        ...

    # Observations

    @abstractmethod
    async def rendered_holdings(self) -> list[Position]:
        """Holdings as currently displayed, unfiltered."""
        ...

    @abstractmethod
    async def is_submission_active(self) -> bool:
        """Whether the submit control is still enabled.

        Front ends disable the control while a submission is processed, so
        an inactive control after a submit counts as confirmation.
        """
        ...

    @abstractmethod
    async def has_success_notice(self) -> bool:
        ...

    @abstractmethod
    async def wallet_address(self) -> Optional[str]:
        """Connected wallet address as displayed, possibly truncated."""
        ...

    @abstractmethod
    async def current_location(self) -> str:
        ...


class DryRunSurface:
    """In-memory execution surface that logs intents and simulates holdings.

    A market buy immediately creates a holding worth the entered amount. A
    limit buy rests until fill_resting_orders() is called, unless
    fill_limit_orders is set. Selling a row removes its holding.

    Every intent is appended to `intents` as (name, payload) so tests can
    assert on the exact sequence.
    """

    def __init__(
        self,
        location: str = "",
        wallet: Optional[str] = None,
        holdings: Optional[list[Position]] = None,
        fill_limit_orders: bool = False,
    ) -> None:
        self._location = location
        self._wallet = wallet
        self._holdings: dict[str, Position] = {}
        self._row_ids = itertools.count(1)
        self._fill_limit_orders = fill_limit_orders
        self._selected_option: Optional[str] = None
        self._selected_side: Optional[OutcomeSide] = None
        self._price_cents: Optional[str] = None
        self._amount: Optional[Decimal] = None
        self._resting: list[Position] = []
        self._success_notice = False
        self.intents: list[tuple[str, object]] = []
        self._log = log.bind(component="dry_run_surface")

        for position in holdings or []:
            self._holdings[self._next_row_id()] = position

    def _next_row_id(self) -> str:
        return f"row-{next(self._row_ids)}"

    def _record(self, name: str, payload: object = None) -> None:
        self.intents.append((name, payload))
        self._log.info("dry_run_intent", intent=name, payload=payload)

    @property
    def mode(self) -> OrderMode:
        return OrderMode.LIMIT if self._price_cents is not None else OrderMode.MARKET

    @property
    def resting_orders(self) -> list[Position]:
        return list(self._resting)

    async def select_option(self, label: str) -> None:
        self._record("select_option", label)
        self._selected_option = label
        self._price_cents = None
        self._success_notice = False

    async def select_side(self, side: OutcomeSide) -> None:
        self._record("select_side", side.value)
        self._selected_side = side

    async def set_price(self, cents: str) -> None:
        self._record("set_price", cents)
        self._price_cents = cents

    async def set_amount(self, amount: Decimal) -> None:
        self._record("set_amount", str(amount))
        self._amount = amount

    async def submit_buy(self) -> None:
        self._record("submit_buy", self.mode.value)
        if self._amount is None:
            self._log.warning("dry_run_buy_without_amount")
            return

        position = Position(
            market_title=self._selected_option or "",
            outcome_side=self._selected_side,
            market_value=self._amount,
        )
        if self.mode == OrderMode.LIMIT and not self._fill_limit_orders:
            self._resting.append(position)
        else:
            self._holdings[self._next_row_id()] = position
        self._success_notice = True

    def fill_resting_orders(self) -> int:
        """Turn every resting limit buy into a holding."""
        filled = len(self._resting)
        for position in self._resting:
            self._holdings[self._next_row_id()] = position
        self._resting.clear()
        return filled

    async def list_sellable_rows(self) -> list[SellableRow]:
        return [
            SellableRow(
                row_id=row_id,
                market_title=position.market_title,
                outcome_side=position.outcome_side,
                value=position.market_value,
            )
            for row_id, position in self._holdings.items()
        ]

    async def submit_sell(self, row: SellableRow) -> None:
        self._record("submit_sell", row.row_id)
        self._holdings.pop(row.row_id, None)
        self._success_notice = True

    async def navigate(self, url: str) -> None:
        self._record("navigate", url)
        self._location = url

    async def rendered_holdings(self) -> list[Position]:
        return list(self._holdings.values())

    async def is_submission_active(self) -> bool:
        return False

    async def has_success_notice(self) -> bool:
        return self._success_notice

    async def wallet_address(self) -> Optional[str]:
        return self._wallet

    async def current_location(self) -> str:
        return self._location
