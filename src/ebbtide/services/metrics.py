"""
Prometheus metrics emission for Ebbtide.

Provides observability through standardized metrics collection.
All metrics use the 'ebbtide_' prefix.
"""
from typing import Optional

from prometheus_client import (
    CollectorRegistry,
    Counter,
    Gauge,
    Info,
    generate_latest,
    start_http_server,
)

from ebbtide import __version__


class MetricsEmitter:
    """Prometheus metrics emission (emit only, no reading).

    Usage:
        emitter = MetricsEmitter()
        emitter.record_cycle("taker", "entered")
        emitter.record_oracle_check("api", live=True)
        metrics_output = emitter.get_metrics()
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None) -> None:
        """Initialize MetricsEmitter.

        Args:
            registry: Optional custom registry (a private one if not provided)
        """
        self._registry = registry or CollectorRegistry()

        self._info = Info(
            "ebbtide",
            "Ebbtide trading cycle engine information",
            registry=self._registry,
        )
        self._info.info({
            "version": __version__,
            "component": "ebbtide",
        })

        # Session metrics
        self._session_running = Gauge(
            "ebbtide_session_running",
            "Whether a trading session is active (1=running, 0=idle)",
            registry=self._registry,
        )

        self._cycles_total = Counter(
            "ebbtide_cycles_total",
            "Trading cycles completed",
            ["strategy", "outcome"],
            registry=self._registry,
        )

        # Oracle metrics
        self._oracle_checks = Counter(
            "ebbtide_oracle_checks_total",
            "Position oracle checks",
            ["source", "result"],
            registry=self._registry,
        )

        # Execution metrics
        self._intents_total = Counter(
            "ebbtide_intents_total",
            "Order intents dispatched to the execution surface",
            ["side", "mode"],
            registry=self._registry,
        )

        self._confirmation_timeouts = Counter(
            "ebbtide_confirmation_timeouts_total",
            "Confirmation windows that expired without a signal",
            ["stage"],
            registry=self._registry,
        )

        self._cancellations = Counter(
            "ebbtide_cancellations_total",
            "Order cancellation requests",
            ["result"],
            registry=self._registry,
        )

        self._api_requests = Counter(
            "ebbtide_api_requests_total",
            "Exchange API requests made",
            ["endpoint", "status"],
            registry=self._registry,
        )

    def set_session_running(self, running: bool) -> None:
        """Update the session-running gauge."""
        self._session_running.set(1 if running else 0)

    def record_cycle(self, strategy: str, outcome: str) -> None:
        """Record a finished trading cycle.

        Args:
            strategy: Strategy kind (taker, maker)
            outcome: Cycle outcome (entered, exited, filled, timed_out, ...)
        """
        self._cycles_total.labels(strategy=strategy, outcome=outcome).inc()

    def record_oracle_check(self, source: str, live: bool) -> None:
        """Record a position oracle verdict.

        Args:
            source: Where the verdict came from (api, surface)
            live: Whether a live position was reported
        """
        self._oracle_checks.labels(source=source, result="live" if live else "flat").inc()

    def record_intent(self, side: str, mode: str) -> None:
        """Record an order intent sent to the execution surface."""
        self._intents_total.labels(side=side, mode=mode).inc()

    def record_confirmation_timeout(self, stage: str) -> None:
        """Record an expired confirmation window."""
        self._confirmation_timeouts.labels(stage=stage).inc()

    def record_cancellation(self, success: bool) -> None:
        """Record an order cancellation result."""
        self._cancellations.labels(result="cancelled" if success else "failed").inc()

    def record_api_request(self, endpoint: str, status: str) -> None:
        """Record an API request.

        Args:
            endpoint: API endpoint called
            status: Response status (success, error, etc.)
        """
        self._api_requests.labels(endpoint=endpoint, status=status).inc()

    def serve(self, port: int) -> None:
        """Expose the registry over HTTP on the given port."""
        start_http_server(port, registry=self._registry)

    def get_metrics(self) -> str:
        """Get Prometheus metrics output.

        Returns:
            Metrics in Prometheus text format
        """
        return generate_latest(self._registry).decode("utf-8")

    @property
    def registry(self) -> CollectorRegistry:
        """Get the metrics registry."""
        return self._registry
