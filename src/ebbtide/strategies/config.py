"""Configuration for trading cycle strategies.

Configuration is loaded from ConfigManager once per session.
All parameters have defaults matching the exchange front end's behaviour.
"""

from dataclasses import dataclass
from decimal import Decimal
from typing import Optional

from ebbtide.core.config import ConfigManager
from ebbtide.core.errors import ConfigError
from ebbtide.core.polling import PollPolicy
from ebbtide.domain.models import DEFAULT_MIN_POSITION_VALUE, OutcomeSide
from ebbtide.services.market_resolver import topic_id_from_url
from ebbtide.services.position_oracle import is_full_wallet_address
from ebbtide.strategies.base import StrategyKind

DEFAULT_MARKET_URL = "https://app.opinion.trade/detail?topicId=61&type=multi"


@dataclass(frozen=True)
class TradingConfig:
    """Parameters for one trading session.

    All durations are in seconds and all amounts in the exchange's quote
    currency.

    Attributes:
        market_url: Parent market page; its topicId names the parent topic.
        option_name: Label of the child market to trade.
        trade_amount: Fixed amount per entry.
        hold_seconds: Time to hold a taker position before exiting.
        side: Outcome side to buy.
        mode: Taker (market orders) or maker (limit at best ask).
        pre_trade_delay_seconds: Delay before the first check of a session.
        pre_sell_delay_seconds: Delay before liquidation starts.
        min_position_value: Holdings must exceed this to count as live.
        use_api_first: Ask the portfolio API before the rendered holdings.
        wallet_address: Explicit wallet; read from the surface when empty.
        poll_interval_seconds: Interval of confirmation and position polls.
        confirm_max_attempts: Checks for a submission confirmation.
        position_max_attempts: Checks for a position to appear or clear.
        cycle_pause_seconds: Pause between two cycles.
        maker_check_interval_seconds: Monitoring tick.
        maker_max_wait_seconds: Monitoring budget before a maker cycle times out.
        maker_order_check_seconds: How often monitoring lists orders.
        maker_cancel_on_timeout: Cancel resting orders when monitoring times out.
        cancel_spacing_seconds: Spacing between two cancel requests.
        orders_limit: Number of recent orders listed.
        fallback_settle_seconds: Delay before reading rendered holdings.
    """

    market_url: str = DEFAULT_MARKET_URL
    option_name: str = "No change"
    trade_amount: Decimal = Decimal("10")
    hold_seconds: float = 60.0
    side: OutcomeSide = OutcomeSide.YES
    mode: StrategyKind = StrategyKind.TAKER
    pre_trade_delay_seconds: float = 2.0
    pre_sell_delay_seconds: float = 5.0
    min_position_value: Decimal = DEFAULT_MIN_POSITION_VALUE
    use_api_first: bool = True
    wallet_address: Optional[str] = None
    poll_interval_seconds: float = 1.0
    confirm_max_attempts: int = 60
    position_max_attempts: int = 30
    cycle_pause_seconds: float = 1.0
    maker_check_interval_seconds: float = 1.0
    maker_max_wait_seconds: float = 60.0
    maker_order_check_seconds: float = 5.0
    maker_cancel_on_timeout: bool = False
    cancel_spacing_seconds: float = 0.5
    orders_limit: int = 10
    fallback_settle_seconds: float = 2.0

    def __post_init__(self) -> None:
        if self.trade_amount <= 0:
            raise ConfigError(f"trading.trade_amount must be positive, got {self.trade_amount}")
        if self.min_position_value < 0:
            raise ConfigError("trading.min_position_value must not be negative")
        if not self.option_name.strip():
            raise ConfigError("trading.option_name must not be empty")
        if self.wallet_address and not is_full_wallet_address(self.wallet_address):
            raise ConfigError(
                f"trading.wallet_address must be a full 0x address, got {self.wallet_address!r}"
            )
        for name in (
            "poll_interval_seconds",
            "maker_check_interval_seconds",
            "maker_max_wait_seconds",
            "maker_order_check_seconds",
        ):
            if getattr(self, name) <= 0:
                raise ConfigError(f"trading.{name} must be positive")
        for name in (
            "hold_seconds",
            "pre_trade_delay_seconds",
            "pre_sell_delay_seconds",
            "cycle_pause_seconds",
            "cancel_spacing_seconds",
            "fallback_settle_seconds",
        ):
            if getattr(self, name) < 0:
                raise ConfigError(f"trading.{name} must not be negative")
        for name in ("confirm_max_attempts", "position_max_attempts", "orders_limit"):
            if getattr(self, name) < 1:
                raise ConfigError(f"trading.{name} must be at least 1")

    @classmethod
    def from_config(
        cls,
        config: ConfigManager,
        prefix: str = "trading",
    ) -> "TradingConfig":
        """Create TradingConfig from ConfigManager.

        Raises:
            ConfigError: A value is missing its expected type or out of range.
        """
        defaults = cls()
        try:
            side = OutcomeSide.parse(config.get_str(f"{prefix}.side", defaults.side.value))
            mode = StrategyKind.parse(config.get_str(f"{prefix}.mode", defaults.mode.value))
        except ValueError as e:
            raise ConfigError(str(e), cause=e) from e

        return cls(
            market_url=config.get_str(f"{prefix}.market_url", defaults.market_url),
            option_name=config.get_str(f"{prefix}.option_name", defaults.option_name),
            trade_amount=config.get_decimal(f"{prefix}.trade_amount", defaults.trade_amount),
            hold_seconds=config.get_float(f"{prefix}.hold_seconds", defaults.hold_seconds),
            side=side,
            mode=mode,
            pre_trade_delay_seconds=config.get_float(
                f"{prefix}.pre_trade_delay_seconds", defaults.pre_trade_delay_seconds
            ),
            pre_sell_delay_seconds=config.get_float(
                f"{prefix}.pre_sell_delay_seconds", defaults.pre_sell_delay_seconds
            ),
            min_position_value=config.get_decimal(
                f"{prefix}.min_position_value", defaults.min_position_value
            ),
            use_api_first=config.get_bool(f"{prefix}.use_api_first", defaults.use_api_first),
            wallet_address=config.get_str(f"{prefix}.wallet_address", "").strip() or None,
            poll_interval_seconds=config.get_float(
                f"{prefix}.poll_interval_seconds", defaults.poll_interval_seconds
            ),
            confirm_max_attempts=config.get_int(
                f"{prefix}.confirm_max_attempts", defaults.confirm_max_attempts
            ),
            position_max_attempts=config.get_int(
                f"{prefix}.position_max_attempts", defaults.position_max_attempts
            ),
            cycle_pause_seconds=config.get_float(
                f"{prefix}.cycle_pause_seconds", defaults.cycle_pause_seconds
            ),
            maker_check_interval_seconds=config.get_float(
                f"{prefix}.maker_check_interval_seconds", defaults.maker_check_interval_seconds
            ),
            maker_max_wait_seconds=config.get_float(
                f"{prefix}.maker_max_wait_seconds", defaults.maker_max_wait_seconds
            ),
            maker_order_check_seconds=config.get_float(
                f"{prefix}.maker_order_check_seconds", defaults.maker_order_check_seconds
            ),
            maker_cancel_on_timeout=config.get_bool(
                f"{prefix}.maker_cancel_on_timeout", defaults.maker_cancel_on_timeout
            ),
            cancel_spacing_seconds=config.get_float(
                f"{prefix}.cancel_spacing_seconds", defaults.cancel_spacing_seconds
            ),
            orders_limit=config.get_int(f"{prefix}.orders_limit", defaults.orders_limit),
            fallback_settle_seconds=config.get_float(
                f"{prefix}.fallback_settle_seconds", defaults.fallback_settle_seconds
            ),
        )

    @property
    def topic_id(self) -> Optional[str]:
        """Parent topic id taken from the market URL."""
        return topic_id_from_url(self.market_url)

    def confirm_policy(self, name: str) -> PollPolicy:
        """Poll policy for a submission confirmation."""
        return PollPolicy(self.poll_interval_seconds, self.confirm_max_attempts, name=name)

    def position_policy(self, name: str) -> PollPolicy:
        """Poll policy for a position to appear or clear."""
        return PollPolicy(self.poll_interval_seconds, self.position_max_attempts, name=name)
