"""Trading cycle strategies."""

from ebbtide.strategies.base import (
    CyclePhase,
    CycleReport,
    CycleStrategy,
    StrategyKind,
    TradingContext,
)
from ebbtide.strategies.config import TradingConfig
from ebbtide.strategies.maker import MakerStrategy
from ebbtide.strategies.registry import StrategyRegistry
from ebbtide.strategies.taker import TakerStrategy

__all__ = [
    "CyclePhase",
    "CycleReport",
    "CycleStrategy",
    "StrategyKind",
    "TradingContext",
    "TradingConfig",
    "TakerStrategy",
    "MakerStrategy",
    "StrategyRegistry",
]
