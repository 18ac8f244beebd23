"""
Ebbtide application wiring.

Builds the Opinion client, the exchange-facing services and the session
controller from configuration, and runs one session until SIGTERM/SIGINT
or a fatal cycle error. Shutdown order:
1. Stop the session (cancels its token, the cycle unwinds)
2. Wait for the session task to finish
3. Close the HTTP client
"""
import asyncio
import dataclasses
import signal
from typing import Optional

import structlog

from ebbtide import __version__
from ebbtide.core.config import ConfigManager
from ebbtide.core.errors import ConfigError
from ebbtide.domain.models import DepthSnapshot, MarketRef, OpenOrder, Position
from ebbtide.execution.surface import DryRunSurface, ExecutionSurface
from ebbtide.integrations.opinion.client import OpinionClient
from ebbtide.integrations.opinion.types import OpinionSettings
from ebbtide.services.market_resolver import MarketResolver
from ebbtide.services.metrics import MetricsEmitter
from ebbtide.services.order_book import OrderBookReader
from ebbtide.services.order_lifecycle import OrderLifecycleClient
from ebbtide.services.position_oracle import PositionOracle
from ebbtide.services.session import SessionReport, TradingSessionController
from ebbtide.strategies.base import StrategyKind, TradingContext
from ebbtide.strategies.config import TradingConfig
from ebbtide.strategies.registry import StrategyRegistry

SHUTDOWN_SIGNALS = (signal.SIGTERM, signal.SIGINT)


class EbbtideApp:
    """Main Ebbtide application.

    Usage:
        app = EbbtideApp(ConfigManager(Path("config/default.toml")))
        report = await app.run()
    """

    def __init__(
        self,
        config: ConfigManager,
        surface: Optional[ExecutionSurface] = None,
        mode: Optional[StrategyKind] = None,
        transport=None,
        registry: Optional[StrategyRegistry] = None,
    ) -> None:
        """Initialize Ebbtide application.

        Args:
            config: Loaded configuration.
            surface: Execution front end. Required unless ebbtide.dry_run is set.
            mode: Overrides trading.mode.
            transport: Optional httpx transport for the Opinion client.
            registry: Optional strategy registry.

        Raises:
            ConfigError: Invalid configuration, or no surface for a live run.
        """
        self._config = config
        self._log = structlog.get_logger("ebbtide.app")
        self._dry_run = config.get_bool("ebbtide.dry_run", True)

        trading = TradingConfig.from_config(config)
        if mode is not None:
            trading = dataclasses.replace(trading, mode=mode)
        self._trading = trading

        if surface is None:
            if not self._dry_run:
                raise ConfigError(
                    "a live run needs an execution surface; set ebbtide.dry_run = true "
                    "to trade against the in-memory surface"
                )
            surface = DryRunSurface(location=trading.market_url, wallet=trading.wallet_address)
        self._surface = surface

        self._metrics = MetricsEmitter()
        self._client = OpinionClient(OpinionSettings.from_config(config), transport=transport)
        self._ctx = self._build_context()
        self._controller = TradingSessionController(self._ctx, registry=registry)

    def _build_context(self) -> TradingContext:
        trading = self._trading
        oracle = PositionOracle(
            self._client,
            self._surface,
            trading.topic_id,
            wallet_address=trading.wallet_address,
            use_api_first=trading.use_api_first,
            min_position_value=trading.min_position_value,
            settle_seconds=trading.fallback_settle_seconds,
            metrics=self._metrics,
        )
        return TradingContext(
            config=trading,
            oracle=oracle,
            resolver=MarketResolver(self._client, metrics=self._metrics),
            book=OrderBookReader(self._client, metrics=self._metrics),
            orders=OrderLifecycleClient(
                self._client,
                limit=trading.orders_limit,
                cancel_spacing_seconds=trading.cancel_spacing_seconds,
                metrics=self._metrics,
            ),
            surface=self._surface,
            metrics=self._metrics,
        )

    @property
    def config(self) -> ConfigManager:
        return self._config

    @property
    def trading(self) -> TradingConfig:
        return self._trading

    @property
    def context(self) -> TradingContext:
        return self._ctx

    @property
    def controller(self) -> TradingSessionController:
        return self._controller

    @property
    def metrics(self) -> MetricsEmitter:
        return self._metrics

    @property
    def dry_run(self) -> bool:
        return self._dry_run

    def install_signal_handlers(self) -> None:
        """Route SIGTERM and SIGINT to a cooperative session stop."""
        loop = asyncio.get_running_loop()
        for sig in SHUTDOWN_SIGNALS:
            loop.add_signal_handler(sig, self._on_signal, sig)
        self._log.info("signal_handlers_installed", signals=[s.name for s in SHUTDOWN_SIGNALS])

    def remove_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in SHUTDOWN_SIGNALS:
            try:
                loop.remove_signal_handler(sig)
            except (ValueError, RuntimeError):
                pass

    def _on_signal(self, sig: signal.Signals) -> None:
        self._log.info("shutdown_signal_received", signal=sig.name)
        self._controller.stop()

    async def run(self, handle_signals: bool = True) -> SessionReport:
        """Run one trading session to completion."""
        self._log.info(
            "starting_ebbtide",
            version=__version__,
            dry_run=self._dry_run,
            mode=self._trading.mode.value,
        )

        metrics_port = self._config.get_int("ebbtide.metrics_port", 0)
        if metrics_port:
            self._metrics.serve(metrics_port)
            self._log.info("metrics_server_started", port=metrics_port)

        await self._client.connect()
        if handle_signals:
            self.install_signal_handlers()
        try:
            handle = self._controller.launch()
            report = await handle.wait()
        finally:
            if handle_signals:
                self.remove_signal_handlers()
            await self._client.close()

        self._log.info(
            "ebbtide_stopped",
            status=report.status.value,
            cycles=report.cycles,
            error=str(report.error) if report.error else None,
        )
        return report

    async def check_position(self) -> tuple[bool, list[Position]]:
        """One oracle verdict plus the live positions behind it."""
        async with self._client:
            live = await self._ctx.oracle.has_live_position()
            positions = await self._ctx.oracle.live_positions()
        return live, positions

    async def resolve(self) -> tuple[MarketRef, DepthSnapshot]:
        """Resolve the configured option and read its depth.

        Raises:
            ResolutionError: The option could not be resolved.
            DepthUnavailable: The book is one-sided.
        """
        async with self._client:
            market = await self._ctx.resolver.resolve_market(
                self._trading.topic_id, self._trading.option_name
            )
            depth = await self._ctx.book.read_depth(market, self._trading.side)
        return market, depth

    async def list_orders(self) -> list[OpenOrder]:
        """Recent orders for the configured wallet and parent market."""
        async with self._client:
            wallet = await self._ctx.oracle.resolve_wallet()
            return await self._ctx.orders.list_open_orders(wallet, self._trading.topic_id)
