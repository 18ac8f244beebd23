"""
Configuration management with TOML + environment variable support.

Configuration hierarchy (later overrides earlier):
1. Default values in code
2. TOML file (or an in-memory mapping)
3. Environment variables (EBBTIDE_* prefix)
"""
import os
import tomllib
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Mapping, Optional

from ebbtide.core.errors import ConfigError


class ConfigManager:
    """Centralized configuration with TOML + env var support.

    Usage:
        config = ConfigManager(Path("config/default.toml"))
        log_level = config.get("ebbtide.log_level")
        amount = config.get_decimal("trading.trade_amount", Decimal("10"))
    """

    def __init__(
        self,
        config_path: Optional[Path] = None,
        env_prefix: str = "EBBTIDE_",
        data: Optional[Mapping[str, Any]] = None,
    ) -> None:
        """Initialize ConfigManager.

        Args:
            config_path: Path to TOML config file (optional)
            env_prefix: Prefix for environment variable overrides
            data: Pre-parsed configuration, used instead of a file
        """
        self._data: dict[str, Any] = dict(data) if data else {}
        self._env_prefix = env_prefix

        if config_path and config_path.exists():
            self._load_toml(config_path)

    @classmethod
    def from_dict(
        cls,
        data: Mapping[str, Any],
        env_prefix: str = "EBBTIDE_",
    ) -> "ConfigManager":
        """Build a ConfigManager from an already-parsed mapping."""
        return cls(env_prefix=env_prefix, data=data)

    def _load_toml(self, path: Path) -> None:
        """Load configuration from TOML file."""
        try:
            with open(path, "rb") as f:
                self._data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid TOML in {path}", cause=e) from e

    def _get_nested(self, data: dict[str, Any], key: str) -> tuple[bool, Any]:
        """Get a nested value using dot notation.

        Returns (found, value) tuple.
        """
        parts = key.split(".")
        current: Any = data

        for part in parts:
            if not isinstance(current, dict) or part not in current:
                return False, None
            current = current[part]

        return True, current

    def _get_env_value(self, key: str) -> tuple[bool, Any]:
        """Get value from environment variable.

        Converts key like "trading.trade_amount" to "EBBTIDE_TRADING_TRADE_AMOUNT".
        """
        env_key = self._env_prefix + key.upper().replace(".", "_")
        if env_key in os.environ:
            value = os.environ[env_key]
            return True, self._parse_env_value(value)
        return False, None

    def _parse_env_value(self, value: str) -> Any:
        """Parse environment variable string to appropriate type.

        Only "true"/"false" and "on"/"off" become booleans. "YES" and "NO" are
        outcome sides and option labels here, so they stay strings;
        get_bool() still reads them as booleans where a flag is expected.
        """
        if value.lower() in ("true", "on"):
            return True
        if value.lower() in ("false", "off"):
            return False

        try:
            if "." in value:
                return float(value)
            return int(value)
        except ValueError:
            pass

        return value

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value with dot notation.

        Environment variables take precedence over TOML values.

        Args:
            key: Dot-notation key like "ebbtide.log_level"
            default: Default value if key not found

        Returns:
            Configuration value
        """
        found, value = self._get_env_value(key)
        if found:
            return value

        found, value = self._get_nested(self._data, key)
        if found:
            return value

        return default

    def get_section(self, section: str) -> dict[str, Any]:
        """Get entire configuration section.

        Args:
            section: Dot-notation path to section

        Returns:
            Dictionary of section values
        """
        found, value = self._get_nested(self._data, section)
        if found and isinstance(value, dict):
            return value
        return {}

    def get_decimal(self, key: str, default: Decimal = Decimal("0")) -> Decimal:
        """Get configuration value as Decimal.

        Args:
            key: Dot-notation key
            default: Default Decimal value

        Returns:
            Decimal value
        """
        value = self.get(key)
        if value is None:
            return default
        try:
            return Decimal(str(value))
        except InvalidOperation as e:
            raise ConfigError(f"{key} is not a number: {value!r}", cause=e) from e

    def get_float(self, key: str, default: float = 0.0) -> float:
        """Get configuration value as float."""
        value = self.get(key)
        if value is None:
            return default
        try:
            return float(value)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"{key} is not a number: {value!r}", cause=e) from e

    def get_bool(self, key: str, default: bool = False) -> bool:
        """Get configuration value as boolean.

        Args:
            key: Dot-notation key
            default: Default boolean value

        Returns:
            Boolean value
        """
        value = self.get(key)
        if value is None:
            return default
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.lower() in ("true", "1", "yes", "on")
        return bool(value)

    def get_int(self, key: str, default: int = 0) -> int:
        """Get configuration value as integer.

        Args:
            key: Dot-notation key
            default: Default integer value

        Returns:
            Integer value
        """
        value = self.get(key)
        if value is None:
            return default
        try:
            return int(value)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"{key} is not an integer: {value!r}", cause=e) from e

    def get_str(self, key: str, default: str = "") -> str:
        """Get configuration value as a string."""
        value = self.get(key)
        if value is None:
            return default
        return str(value)
