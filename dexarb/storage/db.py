"""SQLite persistence for executed trades."""

import sqlite3
import time
from pathlib import Path
from typing import Any, Dict, List, Optional

from loguru import logger

from ..core.types import TradeRecord


class Database:
    """SQLite database interface."""

    def __init__(self, db_path: str):
        self.db_path = Path(db_path)
        self.connection: Optional[sqlite3.Connection] = None

    async def connect(self):
        """Connect to database."""
        try:
            self.connection = sqlite3.connect(self.db_path)
            await self._create_tables()
            logger.info(f"Connected to database: {self.db_path}")
        except sqlite3.Error as e:
            logger.error(f"Failed to connect to database: {e}")
            raise

    async def disconnect(self):
        """Disconnect from database."""
        if self.connection:
            self.connection.close()
            self.connection = None
            logger.info("Disconnected from database")

    async def _create_tables(self):
        """Create database tables if they don't exist."""
        cursor = self.connection.cursor()
        cursor.execute("""
            CREATE TABLE IF NOT EXISTS trades (
                id TEXT PRIMARY KEY,
                ts INTEGER NOT NULL,
                from_venue TEXT NOT NULL,
                to_venue TEXT NOT NULL,
                pair TEXT NOT NULL,
                amount REAL NOT NULL,
                status TEXT NOT NULL,
                profit_percent REAL NOT NULL,
                profit_base_asset REAL NOT NULL,
                profit_quote_value REAL NOT NULL,
                transaction_reference TEXT,
                leg_references TEXT,
                error TEXT,
                one_sided INTEGER NOT NULL DEFAULT 0
            )
        """)
        cursor.execute("CREATE INDEX IF NOT EXISTS idx_trades_ts ON trades (ts)")
        self.connection.commit()

    async def insert_trade(self, trade: TradeRecord):
        """Insert a trade record."""
        cursor = self.connection.cursor()
        cursor.execute("""
            INSERT INTO trades (id, ts, from_venue, to_venue, pair, amount, status,
                                profit_percent, profit_base_asset, profit_quote_value,
                                transaction_reference, leg_references, error, one_sided)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """, (
            trade.id,
            trade.timestamp,
            trade.from_venue,
            trade.to_venue,
            trade.pair,
            trade.amount,
            trade.status.value,
            trade.profit_percent,
            trade.profit_base_asset,
            trade.profit_quote_value,
            trade.transaction_reference,
            ",".join(trade.leg_references),
            trade.error,
            int(trade.one_sided),
        ))
        self.connection.commit()

    async def get_recent_trades(self, limit: int = 10) -> List[Dict[str, Any]]:
        """Most recent trades, newest first."""
        cursor = self.connection.cursor()
        cursor.execute("""
            SELECT id, ts, from_venue, to_venue, pair, amount, status,
                   profit_percent, profit_base_asset, transaction_reference, error, one_sided
            FROM trades
            ORDER BY ts DESC
            LIMIT ?
        """, (limit,))

        trades = []
        for row in cursor.fetchall():
            trades.append({
                'id': row[0],
                'timestamp': row[1],
                'from_dex': row[2],
                'to_dex': row[3],
                'pair': row[4],
                'amount': row[5],
                'status': row[6],
                'profit_percent': row[7],
                'profit_base_asset': row[8],
                'transaction_reference': row[9],
                'error': row[10],
                'one_sided': bool(row[11]),
            })
        return trades

    async def get_performance_summary(self, days: int) -> Dict[str, Any]:
        """Aggregate performance over the last N days."""
        cutoff_time = int(time.time() * 1000) - (days * 24 * 60 * 60 * 1000)
        cursor = self.connection.cursor()
        cursor.execute("""
            SELECT COUNT(*),
                   SUM(CASE WHEN status != 'failed' THEN 1 ELSE 0 END),
                   SUM(CASE WHEN status = 'simulated' THEN 1 ELSE 0 END),
                   SUM(profit_base_asset),
                   SUM(profit_quote_value),
                   AVG(CASE WHEN status != 'failed' THEN profit_percent END),
                   SUM(one_sided)
            FROM trades
            WHERE ts > ?
        """, (cutoff_time,))

        total, successful, simulated, profit_base, profit_quote, avg_pct, one_sided = cursor.fetchone()
        total = total or 0
        successful = successful or 0
        return {
            'total_trades': total,
            'successful_trades': successful,
            'failed_trades': total - successful,
            'simulated_trades': simulated or 0,
            'success_rate': successful / total if total else 0.0,
            'total_profit_base_asset': profit_base or 0.0,
            'total_profit_quote_value': profit_quote or 0.0,
            'average_profit_percent': avg_pct or 0.0,
            'one_sided_trades': one_sided or 0,
        }
