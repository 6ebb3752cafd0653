"""Test opportunity detection and ranking."""

import pytest

from dexarb.core.detector import OpportunityDetector
from sample_data import make_config, make_snapshot


class TestProfitModel:
    """Test the net profit computation."""

    def setup_method(self):
        self.detector = OpportunityDetector(make_config())

    def test_one_percent_spread_is_rejected(self):
        """1% gross minus 0.6% fees and 0.4% slippage leaves nothing."""
        buy = make_snapshot("raydium", 100.0)
        sell = make_snapshot("orca", 101.0)

        assert self.detector.evaluate(buy, sell) is None

    def test_five_percent_spread_is_accepted(self):
        """5% gross nets about 4% and is sized to max_trade_amount."""
        buy = make_snapshot("raydium", 100.0)
        sell = make_snapshot("orca", 105.0)

        opportunity = self.detector.evaluate(buy, sell)

        assert opportunity is not None
        assert opportunity.from_venue == "raydium"
        assert opportunity.to_venue == "orca"
        assert opportunity.gross_profit_percent == pytest.approx(5.0)
        assert opportunity.net_profit_percent == pytest.approx(4.0)
        assert opportunity.trade_amount == 1.0
        assert opportunity.estimated_fees == pytest.approx(0.006)

    def test_net_never_exceeds_gross(self):
        """Deductions are non-negative for every spread."""
        buy = make_snapshot("raydium", 100.0)
        for sell_price in (102.0, 103.0, 110.0, 150.0):
            opportunity = self.detector.evaluate(buy, make_snapshot("orca", sell_price))
            assert opportunity is not None
            assert opportunity.net_profit_percent <= opportunity.gross_profit_percent

    def test_network_fee_is_charged_per_leg(self):
        """Network fee is deducted once for each of the two swaps."""
        config = make_config()
        config.fees.network_fee_percent = 0.1
        detector = OpportunityDetector(config)

        opportunity = detector.evaluate(make_snapshot("raydium", 100.0), make_snapshot("orca", 105.0))

        assert opportunity.net_profit_percent == pytest.approx(3.8)

    def test_no_opportunity_when_sell_not_higher(self):
        """Only buy-low/sell-high directions are considered."""
        assert self.detector.evaluate(make_snapshot("raydium", 105.0), make_snapshot("orca", 100.0)) is None
        assert self.detector.evaluate(make_snapshot("raydium", 100.0), make_snapshot("orca", 100.0)) is None

    def test_same_venue_is_ignored(self):
        """A venue cannot trade against itself."""
        assert self.detector.evaluate(make_snapshot("orca", 100.0), make_snapshot("orca", 105.0)) is None


class TestSizing:
    """Test trade sizing against pool depth."""

    def setup_method(self):
        self.detector = OpportunityDetector(make_config(max_trade_amount=50.0))

    def test_capped_by_shallower_pool(self):
        """Trade at most 10% of the smaller pool."""
        buy = make_snapshot("raydium", 100.0, liquidity=200.0)
        sell = make_snapshot("orca", 105.0, liquidity=80.0)

        opportunity = self.detector.evaluate(buy, sell)

        assert opportunity.trade_amount == pytest.approx(8.0)

    def test_capped_by_max_trade_amount(self):
        """Deep pools fall back to the configured maximum."""
        buy = make_snapshot("raydium", 100.0, liquidity=10_000.0)
        sell = make_snapshot("orca", 105.0, liquidity=10_000.0)

        assert self.detector.evaluate(buy, sell).trade_amount == 50.0

    def test_unknown_liquidity_is_unbounded(self):
        """Snapshots without depth do not limit the size."""
        opportunity = self.detector.evaluate(make_snapshot("raydium", 100.0), make_snapshot("orca", 105.0))
        assert opportunity.trade_amount == 50.0


class TestDetection:
    """Test detection across venues and ranking."""

    def setup_method(self):
        self.detector = OpportunityDetector(make_config())

    def test_single_venue_yields_nothing(self):
        """A pair seen on one venue cannot be arbitraged."""
        views = {"SOL/USDC": {"raydium": make_snapshot("raydium", 100.0)}}
        assert self.detector.detect(views) == []

    def test_detects_only_profitable_direction(self):
        """Both directions are evaluated, only the profitable one survives."""
        views = {"SOL/USDC": {
            "raydium": make_snapshot("raydium", 100.0),
            "orca": make_snapshot("orca", 105.0),
        }}

        opportunities = self.detector.detect(views)

        assert len(opportunities) == 1
        assert (opportunities[0].from_venue, opportunities[0].to_venue) == ("raydium", "orca")

    def test_ranked_by_net_profit(self):
        """Highest net profit first."""
        views = {"SOL/USDC": {
            "a": make_snapshot("a", 100.0),
            "b": make_snapshot("b", 103.0),
            "c": make_snapshot("c", 106.0),
        }}

        opportunities = self.detector.detect(views)
        profits = [o.net_profit_percent for o in opportunities]

        assert profits == sorted(profits, reverse=True)
        assert (opportunities[0].from_venue, opportunities[0].to_venue) == ("a", "c")

    def test_ties_broken_by_amount_then_venue(self):
        """Equal profit ranks larger trades first, then venue names."""
        opportunities = [
            self.detector.evaluate(make_snapshot("b", 100.0), make_snapshot("c", 105.0)),
            self.detector.evaluate(make_snapshot("a", 100.0), make_snapshot("c", 105.0)),
        ]
        small = self.detector.evaluate(
            make_snapshot("a", 100.0, liquidity=5.0), make_snapshot("d", 105.0, liquidity=5.0)
        )

        ranked = self.detector.rank(opportunities + [small])

        assert [(o.from_venue, o.to_venue) for o in ranked] == [("a", "c"), ("b", "c"), ("a", "d")]
