"""Read-only views and control commands for a presentation layer."""

import asyncio
from typing import Any, Dict, Optional

from loguru import logger

from . import __version__
from .core.engine import ArbitrageEngine
from .core.types import TradeStatus, now_ms
from .errors import WalletError


class BotService:
    """JSON-ready projections of engine state plus start/stop control.

    Nothing here mutates the store or the ledger.
    """

    def __init__(self, engine: ArbitrageEngine):
        self.engine = engine
        self.config = engine.config

    def get_status(self) -> Dict[str, Any]:
        state = self.engine.bot_state.snapshot()
        return {
            'status': state.status.value,
            'simulation_mode': state.simulation_mode,
            'uptime_seconds': state.uptime_seconds,
            'version': __version__,
            'consecutive_failures': state.consecutive_failures,
            'halt_reason': state.halt_reason,
        }

    async def get_balance(self) -> Dict[str, Any]:
        try:
            balance = await self.engine.wallet.get_balance()
        except WalletError as e:
            logger.error(f"Balance request failed: {e}")
            raise
        return {
            'balance': balance,
            'min_balance': self.config.safety.min_wallet_balance,
        }

    def get_opportunities(self, limit: int = 10, min_profit: Optional[float] = None) -> Dict[str, Any]:
        opportunities = list(self.engine.opportunities)
        if min_profit is not None:
            opportunities = [o for o in opportunities if o.net_profit_percent >= min_profit]
        opportunities = opportunities[:limit]
        return {
            'opportunities': [o.to_dict() for o in opportunities],
            'count': len(opportunities),
            'timestamp': now_ms(),
        }

    def get_prices(self) -> Dict[str, Any]:
        snapshots = self.engine.store.snapshot_all()
        return {
            'prices': [s.to_dict() for s in snapshots],
            'timestamp': now_ms(),
        }

    def get_history(self, limit: int = 50, offset: int = 0, from_venue: Optional[str] = None,
                    status: Optional[str] = None) -> Dict[str, Any]:
        status_filter = TradeStatus(status.lower()) if status else None
        trades, total = self.engine.ledger.history(
            limit=limit, offset=offset, from_venue=from_venue, status=status_filter
        )
        return {
            'trades': [t.to_dict() for t in trades],
            'total': total,
            'limit': limit,
            'offset': offset,
        }

    def get_metrics(self) -> Dict[str, Any]:
        metrics = self.engine.ledger.metrics().to_dict()
        metrics['consistent'] = self.engine.ledger.is_consistent()
        metrics['price_cycles'] = self.engine.cycles
        return metrics

    def get_config(self) -> Dict[str, Any]:
        """Effective configuration. Wallet location and secrets are never included."""
        safety = self.config.safety
        return {
            'network': {
                'rpc_url': self.config.network.rpc_url,
                'commitment': self.config.network.commitment,
            },
            'dex': {
                'enabled_venues': list(self.config.dex.enabled_venues),
                'trading_pairs': list(self.config.dex.trading_pairs),
            },
            'safety': {
                'min_profit_percent': safety.min_profit_percent,
                'max_trade_amount': safety.max_trade_amount,
                'slippage_tolerance_percent': safety.slippage_tolerance_percent,
                'max_consecutive_failures': safety.max_consecutive_failures,
                'min_wallet_balance': safety.min_wallet_balance,
                'simulation_mode': safety.simulation_mode,
            },
            'monitoring': {
                'poll_interval_ms': self.config.monitoring.poll_interval_ms,
            },
        }

    async def control_start(self) -> Dict[str, Any]:
        await self.engine.start()
        return {'status': self.engine.status.value, 'message': 'Bot started'}

    async def control_stop(self) -> Dict[str, Any]:
        await self.engine.stop()
        return {'status': self.engine.status.value, 'message': 'Bot stopped'}

    def subscribe(self) -> asyncio.Queue:
        return self.engine.events.subscribe()

    def unsubscribe(self, queue: asyncio.Queue):
        self.engine.events.unsubscribe(queue)

    def health(self) -> Dict[str, Any]:
        return {'status': 'healthy', 'timestamp': now_ms()}
