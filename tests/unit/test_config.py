"""
Unit tests for ConfigManager and TradingConfig.

Tests verify:
- TOML loading and in-memory configuration
- Environment variable overrides
- Type-specific getters
- TradingConfig defaults and validation
"""
import os
import tempfile
from decimal import Decimal
from pathlib import Path

import pytest

from ebbtide.core.config import ConfigManager
from ebbtide.core.errors import ConfigError
from ebbtide.domain.models import OutcomeSide
from ebbtide.strategies.base import StrategyKind
from ebbtide.strategies.config import TradingConfig


class TestConfigBasics:
    """Tests for basic ConfigManager functionality."""

    def test_empty_config(self):
        """Verify ConfigManager works without a config file."""
        config = ConfigManager()
        assert config.get("any.key") is None
        assert config.get("any.key", "default") == "default"

    def test_load_toml_file(self):
        """Verify ConfigManager loads TOML config file."""
        with tempfile.NamedTemporaryFile(mode="w", suffix=".toml", delete=False) as f:
            f.write("""
[ebbtide]
log_level = "DEBUG"
dry_run = true

[trading]
option_name = "25 bps decrease"
trade_amount = 12.5
""")
            f.flush()
            config_path = Path(f.name)

        try:
            config = ConfigManager(config_path=config_path)
            assert config.get("ebbtide.log_level") == "DEBUG"
            assert config.get("ebbtide.dry_run") is True
            assert config.get("trading.option_name") == "25 bps decrease"
            assert config.get_decimal("trading.trade_amount") == Decimal("12.5")
        finally:
            os.unlink(config_path)

    def test_invalid_toml_raises_config_error(self):
        """Verify a broken file is reported as ConfigError."""
        with tempfile.NamedTemporaryFile(mode="w", suffix=".toml", delete=False) as f:
            f.write("[trading\noption_name = ")
            f.flush()
            config_path = Path(f.name)

        try:
            with pytest.raises(ConfigError):
                ConfigManager(config_path=config_path)
        finally:
            os.unlink(config_path)

    def test_from_dict(self):
        """Verify in-memory configuration."""
        config = ConfigManager.from_dict({"trading": {"hold_seconds": 30}})
        assert config.get_float("trading.hold_seconds") == 30.0
        assert config.get_section("trading") == {"hold_seconds": 30}
        assert config.get_section("missing") == {}

    def test_get_int_rejects_garbage(self):
        """Verify non-numeric integers raise ConfigError."""
        config = ConfigManager.from_dict({"trading": {"orders_limit": "ten"}})
        with pytest.raises(ConfigError):
            config.get_int("trading.orders_limit")

    def test_get_decimal_rejects_garbage(self):
        config = ConfigManager.from_dict({"trading": {"trade_amount": "lots"}})
        with pytest.raises(ConfigError):
            config.get_decimal("trading.trade_amount")


class TestEnvOverrides:
    """Tests for environment variable overrides."""

    def test_env_overrides_data(self, monkeypatch):
        """Verify environment variables override file values."""
        monkeypatch.setenv("EBBTIDE_TRADING_OPTION_NAME", "50 bps decrease")
        config = ConfigManager.from_dict({"trading": {"option_name": "No change"}})
        assert config.get("trading.option_name") == "50 bps decrease"

    def test_env_value_parsing(self, monkeypatch):
        """Verify env values are converted to bool, int and float."""
        monkeypatch.setenv("EBBTIDE_TRADING_USE_API_FIRST", "off")
        monkeypatch.setenv("EBBTIDE_TRADING_ORDERS_LIMIT", "20")
        monkeypatch.setenv("EBBTIDE_TRADING_HOLD_SECONDS", "1.5")
        config = ConfigManager()
        assert config.get("trading.use_api_first") is False
        assert config.get("trading.orders_limit") == 20
        assert config.get("trading.hold_seconds") == 1.5

    def test_custom_prefix(self, monkeypatch):
        monkeypatch.setenv("TEST_TRADING_SIDE", "NO")
        config = ConfigManager(env_prefix="TEST_")
        assert config.get("trading.side") == "NO"

    @pytest.mark.parametrize("value,expected", [("NO", OutcomeSide.NO), ("YES", OutcomeSide.YES)])
    def test_side_override_from_env(self, monkeypatch, value, expected):
        """Verify YES/NO overrides reach TradingConfig as outcome sides."""
        monkeypatch.setenv("EBBTIDE_TRADING_SIDE", value)
        config = TradingConfig.from_config(
            ConfigManager.from_dict({"trading": {"side": "YES" if value == "NO" else "NO"}})
        )
        assert config.side == expected

    def test_yes_no_option_label_kept(self, monkeypatch):
        monkeypatch.setenv("EBBTIDE_TRADING_OPTION_NAME", "Yes")
        config = TradingConfig.from_config(ConfigManager())
        assert config.option_name == "Yes"

    def test_get_bool_still_reads_yes_no(self, monkeypatch):
        monkeypatch.setenv("EBBTIDE_TRADING_USE_API_FIRST", "no")
        monkeypatch.setenv("EBBTIDE_TRADING_MAKER_CANCEL_ON_TIMEOUT", "yes")
        config = TradingConfig.from_config(ConfigManager())
        assert config.use_api_first is False
        assert config.maker_cancel_on_timeout is True


class TestTradingConfig:
    """Tests for TradingConfig loading and validation."""

    def test_defaults(self):
        """Verify defaults match the documented behaviour."""
        config = TradingConfig.from_config(ConfigManager())
        assert config.market_url == "https://app.opinion.trade/detail?topicId=61&type=multi"
        assert config.option_name == "No change"
        assert config.trade_amount == Decimal("10")
        assert config.hold_seconds == 60.0
        assert config.side == OutcomeSide.YES
        assert config.mode == StrategyKind.TAKER
        assert config.pre_trade_delay_seconds == 2.0
        assert config.pre_sell_delay_seconds == 5.0
        assert config.min_position_value == Decimal("1")
        assert config.use_api_first is True
        assert config.wallet_address is None
        assert config.confirm_max_attempts == 60
        assert config.position_max_attempts == 30
        assert config.maker_max_wait_seconds == 60.0
        assert config.maker_order_check_seconds == 5.0
        assert config.maker_cancel_on_timeout is False
        assert config.cancel_spacing_seconds == 0.5
        assert config.orders_limit == 10

    def test_topic_id_from_market_url(self):
        config = TradingConfig(market_url="https://app.opinion.trade/detail?topicId=99&type=multi")
        assert config.topic_id == "99"

    def test_mode_and_side_are_parsed(self):
        config = TradingConfig.from_config(
            ConfigManager.from_dict({"trading": {"mode": "Maker", "side": "no"}})
        )
        assert config.mode == StrategyKind.MAKER
        assert config.side == OutcomeSide.NO

    def test_invalid_side_raises(self):
        with pytest.raises(ConfigError):
            TradingConfig.from_config(ConfigManager.from_dict({"trading": {"side": "MAYBE"}}))

    def test_invalid_mode_raises(self):
        with pytest.raises(ConfigError):
            TradingConfig.from_config(ConfigManager.from_dict({"trading": {"mode": "scalper"}}))

    def test_non_positive_amount_raises(self):
        with pytest.raises(ConfigError):
            TradingConfig(trade_amount=Decimal("0"))

    def test_truncated_wallet_raises(self):
        """Verify only full 42-character addresses are accepted."""
        with pytest.raises(ConfigError):
            TradingConfig(wallet_address="0x1234...abcd")

    def test_zero_poll_interval_raises(self):
        with pytest.raises(ConfigError):
            TradingConfig(poll_interval_seconds=0)

    def test_poll_policies(self):
        config = TradingConfig(poll_interval_seconds=1.0, confirm_max_attempts=60)
        policy = config.confirm_policy("buy_confirmation")
        assert policy.name == "buy_confirmation"
        assert policy.budget_seconds == 60.0
        assert config.position_policy("x").max_attempts == 30
