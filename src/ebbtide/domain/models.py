"""
Trading domain models.

Pure data structures with no I/O dependencies. Positions, depth snapshots
and open orders are observations of exchange state and are never mutated
by the engine.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Optional

# Holdings at or below this value are dust, not an intentionally opened position
DEFAULT_MIN_POSITION_VALUE = Decimal("1")

CENTS_QUANTUM = Decimal("0.1")


class OutcomeSide(str, Enum):
    """Outcome token of a binary child market."""
    YES = "YES"
    NO = "NO"

    @classmethod
    def parse(cls, value: str) -> "OutcomeSide":
        try:
            return cls(str(value).strip().upper())
        except ValueError:
            raise ValueError(f"outcome side must be YES or NO, got {value!r}") from None


class OrderSide(str, Enum):
    """Order side (buy or sell)."""
    BUY = "BUY"
    SELL = "SELL"

    @classmethod
    def from_code(cls, code: int) -> "OrderSide":
        """Map the exchange's numeric side (1=buy, 2=sell)."""
        if code == 1:
            return cls.BUY
        if code == 2:
            return cls.SELL
        raise ValueError(f"unknown order side code: {code!r}")


class OrderMode(str, Enum):
    """How an intent is executed."""
    MARKET = "MARKET"
    LIMIT = "LIMIT"


class OrderStatus(str, Enum):
    """Order status as reported by the exchange."""
    PENDING = "pending"
    FILLED = "filled"
    CANCELLED = "cancelled"

    @classmethod
    def from_code(cls, code: int) -> "OrderStatus":
        """Map the exchange's numeric status (1=pending, 2=filled, 3=cancelled)."""
        try:
            return _STATUS_CODES[int(code)]
        except (KeyError, TypeError, ValueError):
            raise ValueError(f"unknown order status code: {code!r}") from None


_STATUS_CODES = {
    1: OrderStatus.PENDING,
    2: OrderStatus.FILLED,
    3: OrderStatus.CANCELLED,
}


def is_live_value(value: Decimal, floor: Decimal = DEFAULT_MIN_POSITION_VALUE) -> bool:
    """Whether a holding's market value counts as a live position."""
    return value > floor


def price_to_cents(price: Decimal) -> str:
    """Render a fractional price as cents with exactly one decimal digit.

    The exchange quotes in hundredths of a unit with tenth-of-a-cent
    granularity: 0.044 -> "4.4", 0.5 -> "50.0", 0.091 -> "9.1".
    """
    cents = (Decimal(str(price)) * 100).quantize(CENTS_QUANTUM, rounding=ROUND_HALF_UP)
    return f"{cents:.1f}"


@dataclass(frozen=True)
class Position:
    """A holding observed in the wallet for the parent market."""
    market_title: str
    outcome_side: Optional[OutcomeSide]
    market_value: Decimal
    question_id: Optional[str] = None

    def is_live(self, floor: Decimal = DEFAULT_MIN_POSITION_VALUE) -> bool:
        return is_live_value(self.market_value, floor)


@dataclass(frozen=True)
class MarketRef:
    """A child market resolved from a human-readable option label."""
    topic_id: str
    question_id: str
    title: str
    yes_token_id: str
    no_token_id: str
    yes_price: Optional[Decimal] = None
    no_price: Optional[Decimal] = None

    def token_for(self, side: OutcomeSide) -> str:
        """Get the outcome token identifier for a side."""
        if side == OutcomeSide.YES:
            return self.yes_token_id
        return self.no_token_id


@dataclass(frozen=True)
class PriceLevel:
    """Single level in an order book (price + size)."""
    price: Decimal
    size: Decimal

    def __post_init__(self) -> None:
        if self.price < 0 or self.price > 1:
            raise ValueError(f"price must be between 0 and 1, got {self.price}")
        if self.size < 0:
            raise ValueError(f"size must be non-negative, got {self.size}")


@dataclass(frozen=True)
class DepthSnapshot:
    """Top of book for one outcome token at a point in time."""
    best_ask: PriceLevel
    best_bid: PriceLevel
    as_of: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def spread(self) -> Decimal:
        return self.best_ask.price - self.best_bid.price


@dataclass(frozen=True)
class OrderIntent:
    """An order to be effected through the execution surface."""
    side: OrderSide
    amount: Decimal
    mode: OrderMode = OrderMode.MARKET
    price: Optional[Decimal] = None

    def __post_init__(self) -> None:
        if self.amount <= 0:
            raise ValueError(f"amount must be positive, got {self.amount}")
        if self.mode == OrderMode.LIMIT:
            if self.price is None:
                raise ValueError("limit intents require a price")
            if not (0 < self.price < 1):
                raise ValueError(f"price must be between 0 and 1 exclusive, got {self.price}")
        elif self.price is not None:
            raise ValueError("market intents must not carry a price")

    @property
    def price_cents(self) -> Optional[str]:
        """Price in the exchange's cents representation, if any."""
        if self.price is None:
            return None
        return price_to_cents(self.price)


@dataclass(frozen=True)
class OpenOrder:
    """An order as reported by the exchange. Status is authoritative there."""
    order_ref: str
    side: OrderSide
    price: Decimal
    amount: Decimal
    filled_amount: Decimal
    status: OrderStatus
    chain_ref: int
    order_id: Optional[str] = None
    market_title: Optional[str] = None

    @property
    def is_pending(self) -> bool:
        return self.status == OrderStatus.PENDING

    @property
    def is_filled(self) -> bool:
        return self.status == OrderStatus.FILLED

    @property
    def remaining_amount(self) -> Decimal:
        return self.amount - self.filled_amount


@dataclass
class SessionState:
    """Run state of the single trading session.

    stop_requested is monotonic within a run: set once by stop(), cleared
    only when the run ends.
    """
    running: bool = False
    stop_requested: bool = False
    cycle_count: int = 0

    def reset(self) -> None:
        self.running = False
        self.stop_requested = False
