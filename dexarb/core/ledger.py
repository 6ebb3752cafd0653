"""Trade history and aggregate metrics."""

import threading
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .types import TradeRecord, TradeStatus


@dataclass
class Metrics:
    """Aggregates over the trade history."""
    total_trades: int = 0
    successful_trades: int = 0
    failed_trades: int = 0
    simulated_trades: int = 0
    total_profit_base_asset: float = 0.0
    total_profit_quote_value: float = 0.0
    profit_percent_sum: float = 0.0
    last_trade_timestamp: Optional[int] = None

    @property
    def average_profit_percent(self) -> float:
        if self.successful_trades == 0:
            return 0.0
        return self.profit_percent_sum / self.successful_trades

    @property
    def success_rate(self) -> float:
        if self.total_trades == 0:
            return 0.0
        return self.successful_trades / self.total_trades

    def apply(self, trade: TradeRecord):
        """Fold one trade into the aggregates."""
        self.total_trades += 1
        if trade.status == TradeStatus.FAILED:
            self.failed_trades += 1
        else:
            # simulated trades count as successful
            self.successful_trades += 1
            if trade.status == TradeStatus.SIMULATED:
                self.simulated_trades += 1
            self.total_profit_base_asset += trade.profit_base_asset
            self.total_profit_quote_value += trade.profit_quote_value
            self.profit_percent_sum += trade.profit_percent
        self.last_trade_timestamp = trade.timestamp

    @classmethod
    def from_history(cls, trades: Iterable[TradeRecord]) -> "Metrics":
        metrics = cls()
        for trade in trades:
            metrics.apply(trade)
        return metrics

    def to_dict(self) -> Dict[str, Any]:
        return {
            'total_trades': self.total_trades,
            'successful_trades': self.successful_trades,
            'failed_trades': self.failed_trades,
            'simulated_trades': self.simulated_trades,
            'success_rate': self.success_rate,
            'total_profit_base_asset': self.total_profit_base_asset,
            'total_profit_quote_value': self.total_profit_quote_value,
            'average_profit_percent': self.average_profit_percent,
            'last_trade_timestamp': self.last_trade_timestamp,
        }


class TradeLedger:
    """Append-only trade history with incrementally maintained metrics."""

    def __init__(self):
        self._lock = threading.Lock()
        self._trades: List[TradeRecord] = []
        self._metrics = Metrics()

    def record(self, trade: TradeRecord):
        with self._lock:
            self._trades.append(trade)
            self._metrics.apply(trade)

    def metrics(self) -> Metrics:
        with self._lock:
            return replace(self._metrics)

    def recompute_from_history(self) -> Metrics:
        with self._lock:
            trades = list(self._trades)
        return Metrics.from_history(trades)

    def is_consistent(self) -> bool:
        with self._lock:
            trades = list(self._trades)
            current = replace(self._metrics)
        return Metrics.from_history(trades) == current

    def history(self, limit: Optional[int] = None, offset: int = 0,
                from_venue: Optional[str] = None,
                status: Optional[TradeStatus] = None) -> Tuple[List[TradeRecord], int]:
        """Newest-first page of trades and the total matching the filters."""
        with self._lock:
            trades = list(self._trades)

        trades.reverse()
        if from_venue is not None:
            trades = [t for t in trades if t.from_venue == from_venue]
        if status is not None:
            trades = [t for t in trades if t.status == status]

        total = len(trades)
        end = None if limit is None else offset + limit
        return trades[offset:end], total

    def __len__(self) -> int:
        with self._lock:
            return len(self._trades)
