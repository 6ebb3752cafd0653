"""Storage for executed trades."""

from .db import Database
from .journal import TradeJournal

__all__ = [
    'Database',
    'TradeJournal'
]
