"""Base Strategy Protocol - interface for trading cycle strategies.

A strategy runs exactly one cycle per run_cycle() call. The session
controller owns the loop, the pause between cycles and the stop signal.
"""

from abc import abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Optional, Protocol, runtime_checkable

from ebbtide.core.cancellation import CancellationToken

if TYPE_CHECKING:
    from ebbtide.execution.surface import ExecutionSurface
    from ebbtide.services.market_resolver import MarketResolver
    from ebbtide.services.metrics import MetricsEmitter
    from ebbtide.services.order_book import OrderBookReader
    from ebbtide.services.order_lifecycle import OrderLifecycleClient
    from ebbtide.services.position_oracle import PositionOracle
    from ebbtide.strategies.config import TradingConfig


class StrategyKind(str, Enum):
    """How positions are entered."""

    TAKER = "taker"
    MAKER = "maker"

    @classmethod
    def parse(cls, value: str) -> "StrategyKind":
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise ValueError(f"mode must be 'taker' or 'maker', got {value!r}") from None


class CyclePhase(str, Enum):
    """Phases a cycle can pass through, in the order they are visited."""

    CHECKING_POSITION = "checking_position"
    ENTERING = "entering"
    HOLDING = "holding"
    EXITING = "exiting"
    RESOLVING = "resolving"
    QUOTING_DEPTH = "quoting_depth"
    PLACING_BOTH_SIDES = "placing_both_sides"
    MONITORING = "monitoring"
    RECONCILING = "reconciling"
    LIQUIDATING = "liquidating"
    TIMED_OUT = "timed_out"


@dataclass
class CycleReport:
    """What happened during one cycle."""

    strategy: StrategyKind
    phases: list[CyclePhase] = field(default_factory=list)
    filled: bool = False
    cancelled_orders: int = 0
    timeouts: list[str] = field(default_factory=list)

    def enter(self, phase: CyclePhase) -> None:
        self.phases.append(phase)

    @property
    def outcome(self) -> str:
        """Short label for metrics: the last phase visited."""
        return self.phases[-1].value if self.phases else "idle"


@dataclass
class TradingContext:
    """Components a strategy drives. Built once per session."""

    config: "TradingConfig"
    oracle: "PositionOracle"
    resolver: "MarketResolver"
    book: "OrderBookReader"
    orders: "OrderLifecycleClient"
    surface: "ExecutionSurface"
    metrics: Optional["MetricsEmitter"] = None


@runtime_checkable
class CycleStrategy(Protocol):
    """Protocol that all cycle strategies must implement."""

    @property
    @abstractmethod
    def kind(self) -> StrategyKind:
        ...

    @abstractmethod
    async def run_cycle(self, token: CancellationToken) -> CycleReport:
        """Run one cycle.

        Raises:
            UserStop: A stop was requested at a suspension point.
            ResolutionError: The configured option could not be resolved.
            DepthUnavailable: No two-sided book to quote against.
        """
        ...
