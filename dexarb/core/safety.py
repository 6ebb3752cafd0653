"""Pre-execution safety checks."""

from loguru import logger

from ..config import SafetyConfig
from ..errors import (
    BotNotRunningError,
    GuardRejection,
    InsufficientBalanceError,
    SafetyHaltError,
    UnprofitableOpportunityError,
    WalletError,
)
from .state import BotState
from .types import BotStatus, Opportunity


class SafetyGuard:
    """Gate evaluated immediately before every execution attempt.

    Raises a GuardRejection subclass when execution must not proceed.
    """

    def __init__(self, safety: SafetyConfig, wallet, bot_state: BotState):
        self.safety = safety
        self.wallet = wallet
        self.bot_state = bot_state

    async def check(self, opportunity: Opportunity) -> None:
        state = self.bot_state.snapshot()

        if state.status != BotStatus.RUNNING:
            raise BotNotRunningError(f"Bot status is {state.status.value}")

        if state.consecutive_failures >= self.safety.max_consecutive_failures:
            reason = (
                f"{state.consecutive_failures} consecutive failures "
                f"(max {self.safety.max_consecutive_failures})"
            )
            self.bot_state.halt(reason)
            raise SafetyHaltError(reason)

        if opportunity.net_profit_percent < self.safety.min_profit_percent:
            raise UnprofitableOpportunityError(
                f"Net profit {opportunity.net_profit_percent:.3f}% below "
                f"{self.safety.min_profit_percent}%"
            )

        if state.simulation_mode:
            if opportunity.trade_amount <= 0:
                raise GuardRejection(f"Invalid trade amount {opportunity.trade_amount}")
            return

        try:
            balance = await self.wallet.get_balance()
        except WalletError as e:
            raise InsufficientBalanceError(f"Could not read wallet balance: {e}") from e

        if balance < self.safety.min_wallet_balance:
            raise InsufficientBalanceError(
                f"Wallet balance {balance:.4f} below minimum {self.safety.min_wallet_balance}"
            )

        logger.debug(f"Safety checks passed (balance {balance:.4f})")
