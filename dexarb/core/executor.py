"""Arbitrage trade execution state machine."""

import asyncio
import time
from enum import Enum
from typing import TYPE_CHECKING, Dict, FrozenSet, List, Optional

from loguru import logger

from ..config import Config
from ..errors import AdapterError, IllegalTransitionError, StaleOpportunityError, SubmissionError
from .detector import OpportunityDetector
from .events import EventBus
from .ledger import TradeLedger
from .state import BotState
from .store import PriceStore
from .types import Opportunity, PriceSnapshot, SwapDirection, TradeRecord, TradeStatus

if TYPE_CHECKING:
    from ..dexes.manager import DexManager


class ExecutionPhase(Enum):
    """Execution phase."""
    DETECTED = "detected"
    VALIDATING = "validating"
    SIMULATED = "simulated"
    SUBMITTING = "submitting"
    SUCCESS = "success"
    FAILED = "failed"


TRANSITIONS: Dict[ExecutionPhase, FrozenSet[ExecutionPhase]] = {
    ExecutionPhase.DETECTED: frozenset({ExecutionPhase.VALIDATING}),
    ExecutionPhase.VALIDATING: frozenset({
        ExecutionPhase.SIMULATED, ExecutionPhase.SUBMITTING, ExecutionPhase.FAILED,
    }),
    ExecutionPhase.SIMULATED: frozenset({ExecutionPhase.SUCCESS, ExecutionPhase.FAILED}),
    ExecutionPhase.SUBMITTING: frozenset({ExecutionPhase.SUCCESS, ExecutionPhase.FAILED}),
    ExecutionPhase.SUCCESS: frozenset(),
    ExecutionPhase.FAILED: frozenset(),
}


class ExecutionAttempt:
    """One opportunity moving through the execution phases."""

    def __init__(self, opportunity: Opportunity):
        self.opportunity = opportunity
        self.phase = ExecutionPhase.DETECTED
        self.history: List[ExecutionPhase] = [self.phase]
        self.started_at = time.time()

    def advance(self, phase: ExecutionPhase):
        if phase not in TRANSITIONS[self.phase]:
            raise IllegalTransitionError(f"{self.phase.value} -> {phase.value}")
        logger.debug(f"{self.opportunity.pair} {self.phase.value} -> {phase.value}")
        self.phase = phase
        self.history.append(phase)

    @property
    def is_terminal(self) -> bool:
        return not TRANSITIONS[self.phase]

    @property
    def elapsed_ms(self) -> int:
        return int((time.time() - self.started_at) * 1000)


class ArbitrageExecutor:
    """Runs validated opportunities through the buy/sell legs, one at a time."""

    def __init__(self, config: Config, dexes: "DexManager", wallet, bot_state: BotState,
                 ledger: TradeLedger, store: PriceStore, detector: OpportunityDetector,
                 events: Optional[EventBus] = None, journal=None):
        self.config = config
        self.dexes = dexes
        self.wallet = wallet
        self.bot_state = bot_state
        self.ledger = ledger
        self.store = store
        self.detector = detector
        self.events = events
        self.journal = journal
        self.max_consecutive_failures = config.safety.max_consecutive_failures
        self.transaction_timeout = config.execution.transaction_timeout_sec
        self.fetch_timeout = config.monitoring.fetch_timeout_ms / 1000
        self.leg_delay = config.execution.leg_delay_ms / 1000
        self._in_flight = asyncio.Lock()

    @property
    def in_flight(self) -> bool:
        return self._in_flight.locked()

    async def execute(self, opportunity: Opportunity) -> Optional[TradeRecord]:
        """Execute one opportunity. Returns None if another execution is in flight."""
        if self._in_flight.locked():
            logger.warning(f"Execution already in flight, skipping {opportunity.pair}")
            return None

        async with self._in_flight:
            attempt = ExecutionAttempt(opportunity)
            logger.info(
                f"Executing arbitrage: {opportunity.pair} buy {opportunity.from_venue} "
                f"@ {opportunity.buy_price:.6f}, sell {opportunity.to_venue} "
                f"@ {opportunity.sell_price:.6f}, amount {opportunity.trade_amount}"
            )

            attempt.advance(ExecutionPhase.VALIDATING)
            try:
                validated = await self._validate(opportunity)
            except (StaleOpportunityError, AdapterError) as e:
                return await self._finish_failed(attempt, f"Validation failed: {e}")
            except Exception as e:
                logger.exception(f"Unexpected error during validation: {e}")
                return await self._finish_failed(attempt, f"Validation failed: {type(e).__name__}: {e}")

            if self.bot_state.simulation_mode:
                attempt.advance(ExecutionPhase.SIMULATED)
                return await self._simulate(attempt, validated)

            attempt.advance(ExecutionPhase.SUBMITTING)
            return await self._submit(attempt, validated)

    async def _validate(self, opportunity: Opportunity) -> Opportunity:
        """Re-read both venues and recompute profitability."""
        buy = await self._refresh(opportunity.from_venue, opportunity.pair)
        sell = await self._refresh(opportunity.to_venue, opportunity.pair)

        revalidated = self.detector.evaluate(buy, sell)
        if revalidated is None:
            raise StaleOpportunityError(
                f"stale opportunity: spread collapsed to {buy.price:.6f} -> {sell.price:.6f}"
            )

        amount = min(revalidated.trade_amount, opportunity.trade_amount)
        if amount != revalidated.trade_amount:
            revalidated = self._resize(revalidated, amount)
        return revalidated

    async def _refresh(self, venue: str, pair: str) -> PriceSnapshot:
        dex = self.dexes.get(venue)
        try:
            snapshot = await asyncio.wait_for(dex.fetch_price(pair), timeout=self.fetch_timeout)
        except asyncio.TimeoutError as e:
            raise AdapterError(venue, f"{pair} price refresh timed out") from e
        self.store.update(snapshot)
        return snapshot

    @staticmethod
    def _resize(opportunity: Opportunity, amount: float) -> Opportunity:
        fee_ratio = opportunity.estimated_fees / opportunity.trade_amount
        return Opportunity(
            from_venue=opportunity.from_venue,
            to_venue=opportunity.to_venue,
            base_token=opportunity.base_token,
            quote_token=opportunity.quote_token,
            buy_price=opportunity.buy_price,
            sell_price=opportunity.sell_price,
            trade_amount=amount,
            gross_profit_percent=opportunity.gross_profit_percent,
            net_profit_percent=opportunity.net_profit_percent,
            estimated_fees=amount * fee_ratio,
            detected_at=opportunity.detected_at,
        )

    async def _simulate(self, attempt: ExecutionAttempt, opportunity: Opportunity) -> TradeRecord:
        """Build both legs without submitting anything."""
        try:
            buy_action = self.dexes.get(opportunity.from_venue).build_swap(
                opportunity.pair, opportunity.trade_amount, SwapDirection.BUY, opportunity.buy_price
            )
            sell_action = self.dexes.get(opportunity.to_venue).build_swap(
                opportunity.pair, opportunity.trade_amount, SwapDirection.SELL, opportunity.sell_price
            )
        except AdapterError as e:
            return await self._finish_failed(attempt, f"Swap build failed: {e}")

        logger.info(
            f"SIMULATION: would buy {buy_action.amount} {opportunity.base_token} on {buy_action.venue} "
            f"(min out {buy_action.min_amount_out:.6f}) and sell on {sell_action.venue} "
            f"(min out {sell_action.min_amount_out:.6f} {opportunity.quote_token})"
        )

        attempt.advance(ExecutionPhase.SUCCESS)
        trade = self._profitable_record(opportunity, TradeStatus.SIMULATED)
        return await self._finish(attempt, trade)

    async def _submit(self, attempt: ExecutionAttempt, opportunity: Opportunity) -> TradeRecord:
        """Buy leg, then sell leg. The sell leg is never attempted if the buy fails."""
        try:
            buy_action = self.dexes.get(opportunity.from_venue).build_swap(
                opportunity.pair, opportunity.trade_amount, SwapDirection.BUY, opportunity.buy_price
            )
            buy_sig = await asyncio.wait_for(
                self.wallet.submit_swap(buy_action), timeout=self.transaction_timeout
            )
        except asyncio.TimeoutError:
            return await self._finish_failed(attempt, f"Buy leg timed out after {self.transaction_timeout}s")
        except (AdapterError, SubmissionError) as e:
            return await self._finish_failed(attempt, f"Buy leg failed: {e}")
        except Exception as e:
            logger.exception(f"Unexpected error on buy leg: {e}")
            return await self._finish_failed(attempt, f"Buy leg failed: {type(e).__name__}: {e}")

        logger.info(f"Buy leg confirmed on {opportunity.from_venue}: {buy_sig}")
        await asyncio.sleep(self.leg_delay)

        try:
            sell_action = self.dexes.get(opportunity.to_venue).build_swap(
                opportunity.pair, opportunity.trade_amount, SwapDirection.SELL, opportunity.sell_price
            )
            sell_sig = await asyncio.wait_for(
                self.wallet.submit_swap(sell_action), timeout=self.transaction_timeout
            )
        except Exception as e:
            if isinstance(e, asyncio.TimeoutError):
                reason = f"timed out after {self.transaction_timeout}s"
            elif isinstance(e, (AdapterError, SubmissionError)):
                reason = str(e)
            else:
                logger.exception(f"Unexpected error on sell leg: {e}")
                reason = f"{type(e).__name__}: {e}"
            logger.critical(
                f"One-sided position: bought {opportunity.trade_amount} {opportunity.base_token} "
                f"on {opportunity.from_venue} ({buy_sig}) but sell on {opportunity.to_venue} failed: {reason}"
            )
            return await self._finish_failed(
                attempt, f"Sell leg failed: {reason}",
                transaction_reference=buy_sig, leg_references=(buy_sig,), one_sided=True,
            )

        attempt.advance(ExecutionPhase.SUCCESS)
        trade = self._profitable_record(
            opportunity, TradeStatus.SUCCESS,
            transaction_reference=sell_sig, leg_references=(buy_sig, sell_sig),
        )
        return await self._finish(attempt, trade)

    @staticmethod
    def _profitable_record(opportunity: Opportunity, status: TradeStatus, **kwargs) -> TradeRecord:
        profit_base = opportunity.expected_profit
        return TradeRecord(
            from_venue=opportunity.from_venue,
            to_venue=opportunity.to_venue,
            pair=opportunity.pair,
            amount=opportunity.trade_amount,
            status=status,
            profit_percent=opportunity.net_profit_percent,
            profit_base_asset=profit_base,
            profit_quote_value=profit_base * opportunity.buy_price,
            **kwargs,
        )

    async def _finish_failed(self, attempt: ExecutionAttempt, error: str, **kwargs) -> TradeRecord:
        attempt.advance(ExecutionPhase.FAILED)
        opportunity = attempt.opportunity
        trade = TradeRecord(
            from_venue=opportunity.from_venue,
            to_venue=opportunity.to_venue,
            pair=opportunity.pair,
            amount=opportunity.trade_amount,
            status=TradeStatus.FAILED,
            error=error,
            **kwargs,
        )
        return await self._finish(attempt, trade)

    async def _finish(self, attempt: ExecutionAttempt, trade: TradeRecord) -> TradeRecord:
        """Record a terminal outcome and apply the failure-counter rules."""
        self.ledger.record(trade)

        if trade.status == TradeStatus.FAILED:
            failures = self.bot_state.record_failure()
            logger.error(
                f"Execution failed ({failures}/{self.max_consecutive_failures}) "
                f"after {attempt.elapsed_ms}ms: {trade.error}"
            )
            if failures >= self.max_consecutive_failures:
                self.bot_state.halt(f"{failures} consecutive failed executions")
                self._publish('status', {'status': self.bot_state.status.value, 'reason': trade.error})
        else:
            self.bot_state.record_success()
            logger.info(
                f"Arbitrage {trade.status.value}: {trade.pair} profit {trade.profit_base_asset:.6f} "
                f"({trade.profit_percent:.3f}%) in {attempt.elapsed_ms}ms"
            )

        if self.journal:
            await self.journal.journal_trade(trade)

        self._publish('trade', trade.to_dict())
        self._publish('metrics', self.ledger.metrics().to_dict())
        return trade

    def _publish(self, event_type: str, data):
        if self.events:
            self.events.publish(event_type, data)
