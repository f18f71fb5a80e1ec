"""Configuration management for the rebalancer.

This module provides YAML configuration loading plus the typed Settings and
asset seed list the monitor runs with. Credentials never live in YAML; they are
read from environment variables (optionally loaded from a .env file).
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, Optional

import yaml
from dotenv import load_dotenv

from rebalancer.execution.base import Venue
from rebalancer.portfolio.base import Asset
from rebalancer.utils.exceptions import ConfigurationError

# Tolerance when checking that target allocations add up to 100%
TARGET_SUM_TOLERANCE = 0.01

DEFAULT_ASSETS: List[dict] = [
    {
        "id": "btc",
        "symbol": "BTC",
        "name": "Bitcoin",
        "balance": 0.5,
        "target_allocation": 33,
    },
    {
        "id": "xaut",
        "symbol": "XAUT",
        "name": "Tether Gold",
        "balance": 13,
        "target_allocation": 33,
        "address": "0x68749665FF8D2d112Fa859AA293F07a622782F38",
    },
    {
        "id": "usdc",
        "symbol": "USDC",
        "name": "USD Coin",
        "price": 1.0,
        "balance": 32000,
        "target_allocation": 34,
        "is_stable": True,
        "address": "0x1c7D4B196Cb0C7B01d743Fbc6116a902379C7238",
    },
]


class Config:
    """Simple configuration loader and accessor.

    Loads YAML configuration files and provides dict-like access to settings.

    Example:
        >>> config = Config.from_file("config/default.yaml")
        >>> threshold = config.get("rebalancer.delta_threshold", 5.0)
    """

    def __init__(self, config_dict: dict[str, Any]) -> None:
        """Initialize with configuration dictionary.

        Args:
            config_dict: Configuration data as nested dictionary
        """
        self._config = config_dict

    @classmethod
    def from_file(cls, filepath: str | Path) -> "Config":
        """Load configuration from YAML file.

        Args:
            filepath: Path to YAML configuration file

        Returns:
            Config instance with loaded configuration

        Raises:
            FileNotFoundError: If config file doesn't exist
            yaml.YAMLError: If YAML parsing fails
        """
        path = Path(filepath)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {filepath}")

        with open(path, "r", encoding="utf-8") as f:
            config_dict = yaml.safe_load(f)

        if config_dict is None:
            config_dict = {}

        return cls(config_dict)

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value using dot notation.

        Supports nested keys using dot notation (e.g., "logging.level").

        Args:
            key: Configuration key (supports dot notation for nested keys)
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key.split(".")
        value = self._config

        for k in keys:
            if isinstance(value, dict):
                value = value.get(k)
                if value is None:
                    return default
            else:
                return default

        return value

    def __getitem__(self, key: str) -> Any:
        """Get configuration value using bracket notation.

        Raises:
            KeyError: If key not found
        """
        value = self.get(key)
        if value is None:
            raise KeyError(f"Configuration key not found: {key}")
        return value

    def to_dict(self) -> dict[str, Any]:
        """Get the full configuration as dictionary."""
        return self._config.copy()


@dataclass(frozen=True)
class Settings:
    """Runtime settings consumed by the engine, orchestrator and scheduler.

    Credential values are only checked for presence by the core; the venue
    executors and the notifier are the only readers of the values themselves.

    Attributes:
        delta_threshold: Drift in percentage points that triggers a rebalance
        selected_venue: Venue trades are routed to
        auto_execute: Execute automatically instead of sending a manual signal
        dust_threshold_usd: Minimum USD gap before a trade is proposed
        alert_cooldown_seconds: Minimum gap between manual-signal notifications
        poll_interval_seconds: Market cycle period
        database_path: SQLite file holding the trade log
    """

    delta_threshold: float = 5.0
    selected_venue: Venue = Venue.HYPERLIQUID
    auto_execute: bool = False
    dust_threshold_usd: float = 10.0
    alert_cooldown_seconds: float = 15 * 60
    poll_interval_seconds: float = 5.0
    database_path: str = "data/trade_logs.db"
    private_key: Optional[str] = field(default=None, repr=False)
    hyperliquid_wallet_address: Optional[str] = None
    uniswap_router_address: Optional[str] = None
    xaut_token_address: Optional[str] = None
    telegram_bot_token: Optional[str] = field(default=None, repr=False)
    telegram_chat_id: Optional[str] = None

    def __post_init__(self):
        """Validate settings."""
        if self.delta_threshold <= 0:
            raise ConfigurationError(
                f"delta_threshold must be positive, got {self.delta_threshold}"
            )
        if self.dust_threshold_usd < 0:
            raise ConfigurationError(
                f"dust_threshold_usd must be >= 0, got {self.dust_threshold_usd}"
            )
        if self.alert_cooldown_seconds < 0:
            raise ConfigurationError(
                f"alert_cooldown_seconds must be >= 0, got {self.alert_cooldown_seconds}"
            )
        if self.poll_interval_seconds <= 0:
            raise ConfigurationError(
                f"poll_interval_seconds must be positive, got {self.poll_interval_seconds}"
            )

    @property
    def has_signing_key(self) -> bool:
        """Whether trades are sent for real or only simulated."""
        return bool(self.private_key)

    @property
    def telegram_configured(self) -> bool:
        """Whether both Telegram credentials are present."""
        return bool(self.telegram_bot_token and self.telegram_chat_id)


def load_config(filepath: str | Path = None) -> Config:
    """Helper function to load configuration.

    Args:
        filepath: Path to YAML configuration file. If None, uses default path.

    Returns:
        Config instance
    """
    if filepath is None:
        root_dir = Path(__file__).parent.parent.parent
        filepath = root_dir / "config" / "default.yaml"
    return Config.from_file(filepath)


def parse_venue(value: str | Venue) -> Venue:
    """Convert a configured venue name to a Venue.

    Raises:
        ConfigurationError: If the venue is unknown
    """
    if isinstance(value, Venue):
        return value
    try:
        return Venue(str(value).upper())
    except ValueError as e:
        valid = ", ".join(v.value for v in Venue)
        raise ConfigurationError(
            f"Unknown venue '{value}'. Expected one of: {valid}"
        ) from e


TRUE_STRINGS = {"true", "yes", "on", "1"}
FALSE_STRINGS = {"false", "no", "off", "0"}


def parse_bool(value: Any, key: str) -> bool:
    """Convert a configured flag to a bool.

    Accepts real booleans, 0/1 and the usual true/false, yes/no, on/off
    strings (case-insensitive).

    Raises:
        ConfigurationError: For anything else
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        text = value.strip().lower()
        if text in TRUE_STRINGS:
            return True
        if text in FALSE_STRINGS:
            return False
    raise ConfigurationError(f"{key} must be true or false, got {value!r}")


def load_settings(config: Config, env_file: str | Path | None = None) -> Settings:
    """Build Settings from YAML configuration and environment variables.

    Environment variables:
        - REBALANCER_PRIVATE_KEY: Signing key (presence enables real trading)
        - HYPERLIQUID_WALLET_ADDRESS: Hyperliquid account address
        - UNISWAP_ROUTER_ADDRESS: Router contract override
        - XAUT_TOKEN_ADDRESS: Gold token contract override
        - TELEGRAM_BOT_TOKEN / TELEGRAM_CHAT_ID: Notification target

    Args:
        config: Loaded YAML configuration (keys under "rebalancer.")
        env_file: .env file to load first. If None, uses ".env" when present.

    Returns:
        Validated Settings

    Raises:
        ConfigurationError: If a value is invalid
    """
    load_dotenv(env_file or ".env")

    try:
        return Settings(
            delta_threshold=float(config.get("rebalancer.delta_threshold", 5.0)),
            selected_venue=parse_venue(
                config.get("rebalancer.venue", Venue.HYPERLIQUID.value)
            ),
            auto_execute=parse_bool(
                config.get("rebalancer.auto_execute", False), "rebalancer.auto_execute"
            ),
            dust_threshold_usd=float(config.get("rebalancer.dust_threshold_usd", 10.0)),
            alert_cooldown_seconds=float(
                config.get("rebalancer.alert_cooldown_minutes", 15)
            )
            * 60,
            poll_interval_seconds=float(
                config.get("rebalancer.poll_interval_seconds", 5.0)
            ),
            database_path=str(
                config.get("database.path", "data/trade_logs.db")
            ),
            private_key=os.getenv("REBALANCER_PRIVATE_KEY") or None,
            hyperliquid_wallet_address=os.getenv("HYPERLIQUID_WALLET_ADDRESS") or None,
            uniswap_router_address=os.getenv("UNISWAP_ROUTER_ADDRESS") or None,
            xaut_token_address=os.getenv("XAUT_TOKEN_ADDRESS")
            or config.get("rebalancer.xaut_token_address"),
            telegram_bot_token=os.getenv("TELEGRAM_BOT_TOKEN") or None,
            telegram_chat_id=os.getenv("TELEGRAM_CHAT_ID") or None,
        )
    except (TypeError, ValueError) as e:
        raise ConfigurationError(f"Invalid rebalancer configuration: {e}") from e


def load_assets(config: Config) -> List[Asset]:
    """Build the tracked asset list from the "assets" seed list.

    Falls back to the default BTC / XAUT / USDC portfolio when the config has
    no assets section. Prices start at 0 (unpriced) unless given, stables are
    pinned to 1.00.

    Raises:
        ConfigurationError: If ids repeat, an entry is malformed, or target
            allocations do not add up to 100%
    """
    entries = config.get("assets") or DEFAULT_ASSETS

    assets = []
    for entry in entries:
        try:
            is_stable = parse_bool(entry.get("is_stable", False), "is_stable")
            assets.append(
                Asset(
                    id=str(entry["id"]),
                    symbol=str(entry["symbol"]).upper(),
                    name=str(entry.get("name", entry["symbol"])),
                    price=float(entry.get("price", 1.0 if is_stable else 0.0)),
                    balance=float(entry.get("balance", 0.0)),
                    target_allocation=float(entry["target_allocation"]),
                    address=entry.get("address"),
                    is_stable=is_stable,
                )
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid asset entry {entry!r}: {e}") from e

    validate_assets(assets)
    return assets


def validate_assets(assets: List[Asset]) -> None:
    """Configuration-time checks on the asset list.

    Raises:
        ConfigurationError: On duplicate ids or targets not summing to 100%
    """
    ids = [asset.id for asset in assets]
    duplicates = sorted({i for i in ids if ids.count(i) > 1})
    if duplicates:
        raise ConfigurationError(f"Duplicate asset ids: {', '.join(duplicates)}")

    target_sum = sum(asset.target_allocation for asset in assets)
    if abs(target_sum - 100) > TARGET_SUM_TOLERANCE:
        raise ConfigurationError(
            f"Target allocations must sum to 100%, got {target_sum:g}%"
        )
