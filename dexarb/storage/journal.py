"""Trade journaling and reporting."""

import sqlite3
from datetime import datetime
from typing import Any, Dict

from loguru import logger

from ..core.types import TradeRecord
from .db import Database


class TradeJournal:
    """Writes every trade record to the database and renders reports."""

    def __init__(self, database: Database):
        self.database = database

    async def journal_trade(self, trade: TradeRecord) -> bool:
        """Journal a trade record. Storage failures are logged, never raised into execution."""
        try:
            await self.database.insert_trade(trade)
            logger.debug(f"Journaled trade {trade.id} ({trade.status.value})")
            return True
        except sqlite3.Error as e:
            logger.error(f"Failed to journal trade {trade.id}: {e}")
            return False

    async def get_performance_summary(self, days: int) -> Dict[str, Any]:
        return await self.database.get_performance_summary(days)

    async def generate_report(self, days: int) -> str:
        """Generate trading report for last N days."""
        summary = await self.database.get_performance_summary(days)
        trades = await self.database.get_recent_trades(10)

        report = f"""
=== TRADING REPORT (Last {days} days) ===
Performance Summary:
- Total Trades: {summary['total_trades']}
- Successful: {summary['successful_trades']} ({summary['simulated_trades']} simulated)
- Failed: {summary['failed_trades']}
- Success Rate: {summary['success_rate']:.2%}
- Total Profit: {summary['total_profit_base_asset']:.6f} base / {summary['total_profit_quote_value']:.4f} quote
- Average Profit: {summary['average_profit_percent']:.3f}%
- One-sided Positions: {summary['one_sided_trades']}

Recent Trades:
"""
        for trade in trades:
            ts = datetime.fromtimestamp(trade['timestamp'] / 1000).strftime("%Y-%m-%d %H:%M:%S")
            line = (f"- {ts} {trade['pair']} {trade['from_dex']} -> {trade['to_dex']} "
                    f"{trade['status']} {trade['profit_percent']:.3f}%")
            if trade['error']:
                line += f" ({trade['error']})"
            report += line + "\n"

        return report
