"""Domain models - pure data structures with no I/O dependencies."""

from ebbtide.domain.models import (
    DEFAULT_MIN_POSITION_VALUE,
    DepthSnapshot,
    MarketRef,
    OpenOrder,
    OrderIntent,
    OrderMode,
    OrderSide,
    OrderStatus,
    OutcomeSide,
    Position,
    PriceLevel,
    SessionState,
    is_live_value,
    price_to_cents,
)

__all__ = [
    "DEFAULT_MIN_POSITION_VALUE",
    # Enums
    "OutcomeSide",
    "OrderSide",
    "OrderMode",
    "OrderStatus",
    # Market models
    "MarketRef",
    "PriceLevel",
    "DepthSnapshot",
    # Order models
    "OrderIntent",
    "OpenOrder",
    # Position / session
    "Position",
    "SessionState",
    # Helpers
    "is_live_value",
    "price_to_cents",
]
