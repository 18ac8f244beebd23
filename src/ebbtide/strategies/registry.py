"""Strategy Registry - maps a configured mode to its cycle strategy.

Usage:
    registry = StrategyRegistry()
    strategy = registry.create(StrategyKind.MAKER, ctx)
"""

from typing import Callable

import structlog

from ebbtide.strategies.base import CycleStrategy, StrategyKind, TradingContext
from ebbtide.strategies.maker import MakerStrategy
from ebbtide.strategies.taker import TakerStrategy

log = structlog.get_logger()

StrategyFactory = Callable[[TradingContext], CycleStrategy]


class StrategyRegistry:
    """Registry for strategy lookup and instantiation.

    Taker and maker are registered by default; register() replaces the
    factory for a kind, which tests use to inject scripted strategies.
    """

    def __init__(self, defaults: bool = True) -> None:
        self._log = log.bind(component="strategy_registry")
        self._registry: dict[StrategyKind, StrategyFactory] = {}
        if defaults:
            self.register(StrategyKind.TAKER, TakerStrategy)
            self.register(StrategyKind.MAKER, MakerStrategy)

    def register(self, kind: StrategyKind, factory: StrategyFactory) -> None:
        """Register a strategy class or factory for a kind."""
        if kind in self._registry:
            self._log.debug("strategy_replaced", kind=kind.value)
        self._registry[kind] = factory
        self._log.debug("strategy_registered", kind=kind.value)

    def create(self, kind: StrategyKind, ctx: TradingContext) -> CycleStrategy:
        """Instantiate the strategy registered for a kind.

        Raises:
            KeyError: No strategy is registered for the kind.
        """
        factory = self._registry.get(kind)
        if factory is None:
            raise KeyError(f"no strategy registered for mode {kind.value!r}")
        strategy = factory(ctx)
        self._log.info("strategy_instantiated", kind=kind.value)
        return strategy
