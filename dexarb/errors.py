"""Error taxonomy for the arbitrage engine."""

from typing import Optional


class ArbitrageError(Exception):
    """Base class for all engine errors."""


class ConfigError(ArbitrageError):
    """Invalid or missing configuration. Fatal at startup."""


class PoolResolutionError(ConfigError):
    """A configured venue/pair pool cannot be resolved."""


class RpcError(ArbitrageError):
    """Solana JSON-RPC transport or protocol failure."""

    def __init__(self, message: str, code: Optional[int] = None):
        super().__init__(message)
        self.code = code


class AdapterError(ArbitrageError):
    """A venue could not produce a price or swap action."""

    def __init__(self, venue: str, message: str):
        super().__init__(f"{venue}: {message}")
        self.venue = venue


class StaleOpportunityError(ArbitrageError):
    """Spread collapsed between detection and validation."""


class GuardRejection(ArbitrageError):
    """Safety guard refused an execution attempt."""


class BotNotRunningError(GuardRejection):
    """Bot status is not running."""


class InsufficientBalanceError(GuardRejection):
    """Wallet balance is below the configured minimum or unreadable."""


class UnprofitableOpportunityError(GuardRejection):
    """Opportunity is below the profit threshold."""


class SafetyHaltError(GuardRejection):
    """Consecutive failure limit reached; the bot has halted."""


class SubmissionError(ArbitrageError):
    """A swap leg was rejected, failed or timed out."""

    def __init__(self, message: str, leg: Optional[str] = None):
        super().__init__(message)
        self.leg = leg


class BotStateError(ArbitrageError):
    """Illegal control command for the current bot status."""


class IllegalTransitionError(ArbitrageError):
    """Execution state machine was asked to make a forbidden transition."""


class WalletError(ArbitrageError):
    """Keypair could not be loaded or the wallet balance could not be read."""
