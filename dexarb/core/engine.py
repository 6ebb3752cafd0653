"""Polling loop tying venues, detection, safety and execution together."""

import asyncio
from typing import TYPE_CHECKING, Dict, List, Optional, Tuple

from loguru import logger

from ..config import Config
from ..errors import AdapterError, GuardRejection, SafetyHaltError
from .detector import OpportunityDetector
from .events import EventBus
from .executor import ArbitrageExecutor
from .ledger import TradeLedger
from .safety import SafetyGuard
from .state import BotState
from .store import PriceStore
from .types import BotStatus, Opportunity, PriceSnapshot, TradeRecord

if TYPE_CHECKING:
    from ..dexes.manager import DexManager


class ArbitrageEngine:
    """Fixed-interval polling loop.

    Each cycle fetches every (venue, pair) concurrently, updates the store,
    detects opportunities and hands at most the best one to the executor.
    """

    def __init__(self, config: Config, dexes: "DexManager", wallet,
                 events: Optional[EventBus] = None, journal=None):
        self.config = config
        self.dexes = dexes
        self.wallet = wallet
        self.events = events or EventBus()
        self.store = PriceStore(config.monitoring.staleness_window_ms)
        self.ledger = TradeLedger()
        self.bot_state = BotState(config.safety.simulation_mode)
        self.detector = OpportunityDetector(config)
        self.guard = SafetyGuard(config.safety, wallet, self.bot_state)
        self.executor = ArbitrageExecutor(
            config, dexes, wallet, self.bot_state, self.ledger, self.store,
            self.detector, events=self.events, journal=journal,
        )
        self.poll_interval = config.monitoring.poll_interval_ms / 1000
        self.fetch_timeout = config.monitoring.fetch_timeout_ms / 1000
        self.push_interval = config.monitoring.push_interval_sec
        self.opportunities: List[Opportunity] = []
        self.cycles = 0
        self._stop_event = asyncio.Event()
        self._loop_task: Optional[asyncio.Task] = None
        self._push_task: Optional[asyncio.Task] = None

    @property
    def is_looping(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    async def start(self):
        """Start the bot and its polling loop."""
        self.bot_state.start()
        mode = "SIMULATION" if self.bot_state.simulation_mode else "PRODUCTION"
        logger.info(f"Starting arbitrage engine in {mode} mode")
        logger.info(f"Venues: {self.dexes.names()}, pairs: {self.config.dex.trading_pairs}")
        logger.info(f"Min profit: {self.config.safety.min_profit_percent}%, "
                    f"max trade: {self.config.safety.max_trade_amount}")

        if not self.is_looping:
            self._stop_event = asyncio.Event()
            self._loop_task = asyncio.create_task(self._run_loop())
        if self._push_task is None or self._push_task.done():
            self._push_task = asyncio.create_task(self._push_loop())
        self._publish_status()

    async def stop(self):
        """Stop scheduling cycles and wait for any in-flight execution to finish."""
        self.bot_state.stop()
        self._stop_event.set()
        if self._loop_task:
            await self._loop_task
            self._loop_task = None
        if self._push_task:
            self._push_task.cancel()
            try:
                await self._push_task
            except asyncio.CancelledError:
                pass
            self._push_task = None
        self._publish_status()
        logger.info("Arbitrage engine stopped")

    async def wait_stopped(self):
        """Block until the polling loop exits."""
        if self._loop_task:
            await asyncio.shield(self._loop_task)

    async def _run_loop(self):
        logger.info("Entering main polling loop")
        while not self._stop_event.is_set():
            try:
                await self.run_cycle()
            except Exception as e:
                logger.exception(f"Error in polling loop: {e}")
                self.events.publish('error', {'message': str(e)})

            try:
                await asyncio.wait_for(self._stop_event.wait(), timeout=self.poll_interval)
            except asyncio.TimeoutError:
                pass
        logger.info("Polling loop exited")

    async def _push_loop(self):
        while True:
            await asyncio.sleep(self.push_interval)
            self._publish_status()
            self.events.publish('metrics', self.ledger.metrics().to_dict())

    async def run_cycle(self) -> Optional[TradeRecord]:
        """One poll-detect-execute cycle."""
        self.cycles += 1
        await self.poll_prices()

        views = {pair: self.store.read_all(pair) for pair in self.config.dex.trading_pairs}
        self.opportunities = self.detector.detect(views)
        for opportunity in self.opportunities:
            self.events.publish('opportunity', opportunity.to_dict())

        if not self.opportunities:
            return None
        return await self._process_opportunity(self.opportunities[0])

    async def poll_prices(self) -> Dict[Tuple[str, str], PriceSnapshot]:
        """Fetch every venue/pair concurrently. Failed venues are skipped this cycle."""
        targets = [
            (dex, pair)
            for pair in self.config.dex.trading_pairs
            for dex in self.dexes.venues_for(pair)
        ]
        results = await asyncio.gather(
            *(self._fetch(dex, pair) for dex, pair in targets)
        )

        fetched = {}
        for (dex, pair), snapshot in zip(targets, results):
            if snapshot is not None:
                self.store.update(snapshot)
                fetched[(dex.name, pair)] = snapshot
        return fetched

    async def _fetch(self, dex, pair: str) -> Optional[PriceSnapshot]:
        try:
            return await asyncio.wait_for(dex.fetch_price(pair), timeout=self.fetch_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"{dex.name} {pair} price fetch timed out after {self.fetch_timeout}s")
        except AdapterError as e:
            logger.warning(f"Price fetch failed: {e}")
        return None

    async def _process_opportunity(self, opportunity: Opportunity) -> Optional[TradeRecord]:
        try:
            await self.guard.check(opportunity)
        except SafetyHaltError as e:
            logger.critical(f"Safety halt: {e}")
            self._publish_status()
            return None
        except GuardRejection as e:
            logger.warning(f"Opportunity rejected: {e}")
            return None

        return await self.executor.execute(opportunity)

    def _publish_status(self):
        state = self.bot_state.snapshot()
        self.events.publish('status', {
            'status': state.status.value,
            'simulation_mode': state.simulation_mode,
            'consecutive_failures': state.consecutive_failures,
            'halt_reason': state.halt_reason,
        })

    @property
    def status(self) -> BotStatus:
        return self.bot_state.status
