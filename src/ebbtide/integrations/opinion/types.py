"""Opinion exchange connection settings and API constants."""

from dataclasses import dataclass
from typing import Optional

from ebbtide.core.config import ConfigManager

DEFAULT_BASE_URL = "https://proxy.opinion.trade:8443/api/bsc/api"
DEFAULT_CHAIN_ID = 56  # BNB Smart Chain
DEFAULT_TIMEOUT_SECONDS = 10.0

# symbol_types=0 selects outcome-token depth
DEPTH_SYMBOL_TYPE = 0
# queryType=1 returns the wallet's current (open and recent) orders
CURRENT_ORDERS_QUERY_TYPE = 1


@dataclass(frozen=True)
class OpinionSettings:
    """Configuration settings for Opinion API connections.

    Attributes:
        base_url: API base URL (versioned paths are appended).
        chain_id: Chain identifier passed to depth and cancel requests.
        timeout_seconds: Per-request timeout.
        http_proxy: Optional HTTP proxy for routing requests.
    """

    base_url: str = DEFAULT_BASE_URL
    chain_id: int = DEFAULT_CHAIN_ID
    timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS
    http_proxy: Optional[str] = None

    @classmethod
    def from_config(cls, config: ConfigManager, prefix: str = "opinion") -> "OpinionSettings":
        proxy = config.get_str(f"{prefix}.http_proxy", "")
        return cls(
            base_url=config.get_str(f"{prefix}.base_url", DEFAULT_BASE_URL),
            chain_id=config.get_int(f"{prefix}.chain_id", DEFAULT_CHAIN_ID),
            timeout_seconds=config.get_float(
                f"{prefix}.timeout_seconds", DEFAULT_TIMEOUT_SECONDS
            ),
            http_proxy=proxy or None,
        )
