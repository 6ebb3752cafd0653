"""Core arbitrage logic: detection, safety, execution and bookkeeping."""

from .types import (
    BotStatus,
    Opportunity,
    PriceSnapshot,
    SwapAction,
    SwapDirection,
    TradeRecord,
    TradeStatus,
)
from .store import PriceStore
from .state import BotState, BotStateSnapshot
from .ledger import Metrics, TradeLedger
from .events import EventBus
from .detector import OpportunityDetector
from .safety import SafetyGuard
from .executor import ArbitrageExecutor, ExecutionAttempt, ExecutionPhase
from .engine import ArbitrageEngine

__all__ = [
    'BotStatus',
    'Opportunity',
    'PriceSnapshot',
    'SwapAction',
    'SwapDirection',
    'TradeRecord',
    'TradeStatus',
    'PriceStore',
    'BotState',
    'BotStateSnapshot',
    'Metrics',
    'TradeLedger',
    'EventBus',
    'OpportunityDetector',
    'SafetyGuard',
    'ArbitrageExecutor',
    'ExecutionAttempt',
    'ExecutionPhase',
    'ArbitrageEngine'
]
