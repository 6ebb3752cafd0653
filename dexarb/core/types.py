"""Core types for DEX arbitrage."""

import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional, Tuple


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def split_pair(pair: str) -> Tuple[str, str]:
    """Split 'BASE/QUOTE' into its tokens."""
    base, quote = pair.split("/")
    return base, quote


class SwapDirection(Enum):
    """Side of a swap leg relative to the base token."""
    BUY = "buy"
    SELL = "sell"


class TradeStatus(Enum):
    """Terminal outcome of an execution attempt."""
    SUCCESS = "success"
    FAILED = "failed"
    SIMULATED = "simulated"


class BotStatus(Enum):
    """Bot lifecycle status."""
    RUNNING = "running"
    STOPPED = "stopped"
    ERROR = "error"


@dataclass(frozen=True)
class PriceSnapshot:
    """Price observation for one pair on one venue."""
    venue: str
    base_token: str
    quote_token: str
    price: float
    observed_at: int  # epoch ms
    liquidity: Optional[float] = None  # base-asset depth

    @property
    def pair(self) -> str:
        return f"{self.base_token}/{self.quote_token}"

    def age_ms(self, now: Optional[int] = None) -> int:
        return (now if now is not None else now_ms()) - self.observed_at

    def to_dict(self) -> Dict[str, Any]:
        return {
            'venue': self.venue,
            'pair': self.pair,
            'price': self.price,
            'observed_at': self.observed_at,
            'liquidity': self.liquidity,
        }


@dataclass(frozen=True)
class Opportunity:
    """Cross-venue spread that clears the profit threshold."""
    from_venue: str
    to_venue: str
    base_token: str
    quote_token: str
    buy_price: float
    sell_price: float
    trade_amount: float
    gross_profit_percent: float
    net_profit_percent: float
    estimated_fees: float
    detected_at: int

    @property
    def pair(self) -> str:
        return f"{self.base_token}/{self.quote_token}"

    @property
    def expected_profit(self) -> float:
        """Expected profit in base-asset units."""
        return self.trade_amount * self.net_profit_percent / 100

    def to_dict(self) -> Dict[str, Any]:
        return {
            'from_dex': self.from_venue,
            'to_dex': self.to_venue,
            'pair': self.pair,
            'buy_price': self.buy_price,
            'sell_price': self.sell_price,
            'trade_amount': self.trade_amount,
            'gross_profit_percent': self.gross_profit_percent,
            'net_profit_percent': self.net_profit_percent,
            'estimated_fees': self.estimated_fees,
            'detected_at': self.detected_at,
        }


@dataclass(frozen=True)
class SwapAction:
    """One swap leg, ready to be turned into a transaction."""
    venue: str
    pair: str
    direction: SwapDirection
    amount: float  # base-asset units
    amount_in: float
    min_amount_out: float
    pool_address: str
    base_vault: str
    quote_vault: str
    program_id: Optional[str] = None


@dataclass(frozen=True)
class TradeRecord:
    """Append-only record of one execution attempt."""
    from_venue: str
    to_venue: str
    pair: str
    amount: float
    status: TradeStatus
    profit_percent: float = 0.0
    profit_base_asset: float = 0.0
    profit_quote_value: float = 0.0
    transaction_reference: Optional[str] = None
    leg_references: Tuple[str, ...] = ()
    error: Optional[str] = None
    one_sided: bool = False
    timestamp: int = field(default_factory=now_ms)
    id: str = field(default_factory=lambda: uuid.uuid4().hex)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'timestamp': self.timestamp,
            'from_dex': self.from_venue,
            'to_dex': self.to_venue,
            'pair': self.pair,
            'amount': self.amount,
            'profit_percent': self.profit_percent,
            'profit_base_asset': self.profit_base_asset,
            'profit_quote_value': self.profit_quote_value,
            'status': self.status.value,
            'transaction_reference': self.transaction_reference,
            'leg_references': list(self.leg_references),
            'error': self.error,
            'one_sided': self.one_sided,
        }
