"""Cross-venue arbitrage opportunity detection."""

from itertools import permutations
from typing import Dict, List, Optional

from loguru import logger

from ..config import Config
from .types import Opportunity, PriceSnapshot, now_ms


class OpportunityDetector:
    """Turns per-venue price views into ranked, profitable opportunities."""

    def __init__(self, config: Config):
        self.config = config
        self.min_profit_percent = config.safety.min_profit_percent
        self.max_trade_amount = config.safety.max_trade_amount
        self.slippage_percent = config.safety.slippage_tolerance_percent
        self.network_fee_percent = config.fees.network_fee_percent
        self.max_liquidity_fraction = config.monitoring.max_liquidity_fraction

    def detect(self, views: Dict[str, Dict[str, PriceSnapshot]]) -> List[Opportunity]:
        """Detect opportunities from fresh snapshots, keyed pair -> venue."""
        opportunities = []

        for pair, snapshots in views.items():
            if len(snapshots) < 2:
                continue

            for buy_venue, sell_venue in permutations(sorted(snapshots), 2):
                opportunity = self.evaluate(snapshots[buy_venue], snapshots[sell_venue])
                if opportunity:
                    opportunities.append(opportunity)

        ranked = self.rank(opportunities)
        if ranked:
            best = ranked[0]
            logger.info(
                f"Found {len(ranked)} opportunities, best: {best.pair} "
                f"{best.from_venue} -> {best.to_venue} net {best.net_profit_percent:.3f}%"
            )
        return ranked

    def evaluate(self, buy: PriceSnapshot, sell: PriceSnapshot) -> Optional[Opportunity]:
        """Evaluate buying on one venue and selling on another."""
        if buy.venue == sell.venue or buy.pair != sell.pair:
            return None
        if buy.price <= 0 or sell.price <= 0:
            return None
        if sell.price <= buy.price:
            return None

        gross = (sell.price - buy.price) / buy.price * 100
        venue_fees = self.config.get_venue_fee_percent(buy.venue) + self.config.get_venue_fee_percent(sell.venue)
        network_fees = 2 * self.network_fee_percent
        net = gross - venue_fees - network_fees - 2 * self.slippage_percent

        if net < self.min_profit_percent:
            logger.debug(
                f"{buy.pair} {buy.venue} -> {sell.venue}: net {net:.3f}% below "
                f"threshold {self.min_profit_percent}%"
            )
            return None

        trade_amount = self.size_trade(buy, sell)
        if trade_amount <= 0:
            return None

        return Opportunity(
            from_venue=buy.venue,
            to_venue=sell.venue,
            base_token=buy.base_token,
            quote_token=buy.quote_token,
            buy_price=buy.price,
            sell_price=sell.price,
            trade_amount=trade_amount,
            gross_profit_percent=gross,
            net_profit_percent=net,
            estimated_fees=trade_amount * (venue_fees + network_fees) / 100,
            detected_at=now_ms(),
        )

    def size_trade(self, buy: PriceSnapshot, sell: PriceSnapshot) -> float:
        """Cap the trade at max_trade_amount and a fraction of the shallower pool."""
        amount = self.max_trade_amount
        depths = [s.liquidity for s in (buy, sell) if s.liquidity is not None]
        if depths:
            amount = min(amount, self.max_liquidity_fraction * min(depths))
        return amount

    @staticmethod
    def rank(opportunities: List[Opportunity]) -> List[Opportunity]:
        """Net profit desc, then trade amount desc, then venue names."""
        return sorted(
            opportunities,
            key=lambda o: (-o.net_profit_percent, -o.trade_amount, o.from_venue, o.to_venue),
        )
