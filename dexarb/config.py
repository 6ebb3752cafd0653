"""Configuration management for the DEX arbitrage engine."""

import os
from pathlib import Path
from typing import Dict, List, Optional
import yaml
from dotenv import load_dotenv
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field

from .errors import ConfigError


class NetworkConfig(BaseModel):
    """Solana RPC endpoint configuration."""
    rpc_url: str = "https://api.mainnet-beta.solana.com"
    commitment: str = "confirmed"
    request_timeout_sec: float = 10.0


class WalletConfig(BaseModel):
    """Wallet configuration. The keypair path is never exposed through the API."""
    keypair_path: str = "wallet.json"


class PoolConfig(BaseModel):
    """On-chain accounts backing one venue/pair pool."""
    address: str
    base_vault: str
    quote_vault: str
    program_id: Optional[str] = None


class DexConfig(BaseModel):
    """Venue and pair configuration."""
    enabled_venues: List[str] = ["raydium", "orca"]
    trading_pairs: List[str] = ["SOL/USDC"]
    # venue -> pair -> pool accounts
    pools: Dict[str, Dict[str, PoolConfig]] = Field(default_factory=dict)


class FeeConfig(BaseModel):
    """Fee configuration, in percent."""
    venue_fee_percent: Dict[str, float] = Field(
        default_factory=lambda: {"raydium": 0.25, "orca": 0.3, "default": 0.25}
    )
    network_fee_percent: float = 0.0  # per leg


class SafetyConfig(BaseModel):
    """Safety limits. Immutable once loaded."""
    model_config = ConfigDict(frozen=True)

    min_profit_percent: float = 0.5
    max_trade_amount: float = 1.0
    slippage_tolerance_percent: float = 0.5
    max_consecutive_failures: int = 5
    min_wallet_balance: float = 0.1
    simulation_mode: bool = True  # Default to simulation for safety


class MonitoringConfig(BaseModel):
    """Polling loop configuration."""
    poll_interval_ms: int = 1000
    staleness_window_ms: int = 5000
    fetch_timeout_ms: int = 3000
    push_interval_sec: float = 5.0
    max_liquidity_fraction: float = 0.1  # trade at most 10% of the shallower pool


class ExecutionConfig(BaseModel):
    """Trade execution configuration."""
    transaction_timeout_sec: float = 30.0
    leg_delay_ms: int = 500
    send_retries: int = 3


class StorageConfig(BaseModel):
    """Storage configuration."""
    db_path: Optional[str] = "dexarb.sqlite"


class LoggingConfig(BaseModel):
    """Logging configuration."""
    level: str = "INFO"
    file: Optional[str] = "dexarb.log"


class Config(BaseModel):
    """Main configuration model."""
    network: NetworkConfig = Field(default_factory=NetworkConfig)
    wallet: WalletConfig = Field(default_factory=WalletConfig)
    dex: DexConfig = Field(default_factory=DexConfig)
    fees: FeeConfig = Field(default_factory=FeeConfig)
    safety: SafetyConfig = Field(default_factory=SafetyConfig)
    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)
    execution: ExecutionConfig = Field(default_factory=ExecutionConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    def get_venue_fee_percent(self, venue: str) -> float:
        """Get swap fee in percent for a venue."""
        fees = self.fees.venue_fee_percent
        return fees.get(venue, fees.get("default", 0.25))

    def validate_settings(self) -> None:
        """Check cross-field rules. Raises ConfigError on the first violation."""
        if not self.network.rpc_url:
            raise ConfigError("network.rpc_url cannot be empty")
        if self.safety.min_profit_percent <= 0:
            raise ConfigError("safety.min_profit_percent must be positive")
        if self.safety.max_trade_amount <= 0:
            raise ConfigError("safety.max_trade_amount must be positive")
        if self.safety.slippage_tolerance_percent < 0:
            raise ConfigError("safety.slippage_tolerance_percent cannot be negative")
        if self.safety.max_consecutive_failures < 1:
            raise ConfigError("safety.max_consecutive_failures must be at least 1")
        if self.monitoring.poll_interval_ms <= 0:
            raise ConfigError("monitoring.poll_interval_ms must be positive")
        if self.monitoring.fetch_timeout_ms <= 0:
            raise ConfigError("monitoring.fetch_timeout_ms must be positive")
        if not 0 < self.monitoring.max_liquidity_fraction <= 1:
            raise ConfigError("monitoring.max_liquidity_fraction must be in (0, 1]")
        if self.fees.network_fee_percent < 0:
            raise ConfigError("fees.network_fee_percent cannot be negative")

        for venue, fee in self.fees.venue_fee_percent.items():
            if fee < 0:
                raise ConfigError(f"fees.venue_fee_percent.{venue} cannot be negative")

        if not self.dex.trading_pairs:
            raise ConfigError("dex.trading_pairs cannot be empty")
        for pair in self.dex.trading_pairs:
            parts = pair.split("/")
            if len(parts) != 2 or not all(parts):
                raise ConfigError(f"Invalid trading pair format: {pair!r} (expected BASE/QUOTE)")

        for venue in self.dex.enabled_venues:
            if not self.dex.pools.get(venue):
                raise ConfigError(f"No pools configured for enabled venue: {venue}")

        if self.safety.simulation_mode:
            logger.warning("Simulation mode is ENABLED - no real trades will be executed")

    @classmethod
    def load_from_file(cls, config_path: str = "config.yaml") -> "Config":
        """Load configuration from YAML file with environment variable substitution."""
        config_path = Path(config_path)
        if not config_path.exists():
            raise ConfigError(f"Config file not found: {config_path}")

        load_dotenv()

        with open(config_path, "r") as f:
            config_data = yaml.safe_load(f) or {}

        # Substitute environment variables
        config_str = yaml.dump(config_data)
        for key, value in os.environ.items():
            config_str = config_str.replace(f"${{{key}}}", value)

        config_data = yaml.safe_load(config_str)
        try:
            return cls(**config_data)
        except ValueError as e:
            raise ConfigError(f"Invalid configuration in {config_path}: {e}") from e


def get_config(config_path: str = "config.yaml") -> Config:
    """Load and validate configuration."""
    config = Config.load_from_file(config_path)
    config.validate_settings()
    return config
