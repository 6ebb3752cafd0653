"""Test the presentation facade."""

import pytest

from dexarb.api import BotService
from dexarb.core.engine import ArbitrageEngine
from dexarb.core.types import TradeRecord, TradeStatus
from sample_data import FakeWallet, make_config, make_dexes, make_snapshot


def build_service(**safety) -> BotService:
    engine = ArbitrageEngine(make_config(**safety), make_dexes(), FakeWallet())
    return BotService(engine)


def record_trades(service: BotService):
    ledger = service.engine.ledger
    ledger.record(TradeRecord("raydium", "orca", "SOL/USDC", 1.0, TradeStatus.SIMULATED,
                              profit_percent=2.0, profit_base_asset=0.02, timestamp=1000))
    ledger.record(TradeRecord("orca", "raydium", "SOL/USDC", 1.0, TradeStatus.FAILED,
                              error="buy rejected", timestamp=2000))
    ledger.record(TradeRecord("raydium", "orca", "SOL/USDC", 0.5, TradeStatus.SUCCESS,
                              profit_percent=1.0, profit_base_asset=0.005, timestamp=3000))


class TestReadViews:
    """Test the read-only projections."""

    def test_status(self):
        """Fresh service reports a stopped bot."""
        status = build_service().get_status()

        assert status['status'] == 'stopped'
        assert status['simulation_mode'] is True
        assert status['uptime_seconds'] == 0
        assert status['consecutive_failures'] == 0

    @pytest.mark.asyncio
    async def test_balance(self):
        """Balance includes the configured minimum."""
        balance = await build_service().get_balance()

        assert balance == {'balance': 10.0, 'min_balance': 0.1}

    @pytest.mark.asyncio
    async def test_opportunities_limit_and_filter(self):
        """Opportunities are limited and filtered by net profit."""
        service = build_service()
        service.engine.store.update(make_snapshot("raydium", 100.0))
        service.engine.store.update(make_snapshot("orca", 105.0))
        service.engine.opportunities = service.engine.detector.detect(
            {"SOL/USDC": service.engine.store.read_all("SOL/USDC")}
        )

        result = service.get_opportunities()
        assert result['count'] == 1
        assert result['opportunities'][0]['from_dex'] == 'raydium'
        assert result['opportunities'][0]['to_dex'] == 'orca'

        assert service.get_opportunities(limit=0)['count'] == 0
        assert service.get_opportunities(min_profit=50.0)['count'] == 0

    def test_prices(self):
        """Stored snapshots are listed."""
        service = build_service()
        service.engine.store.update(make_snapshot("orca", 105.0))

        prices = service.get_prices()['prices']

        assert len(prices) == 1
        assert prices[0]['venue'] == 'orca'
        assert prices[0]['pair'] == 'SOL/USDC'

    def test_history_pagination_and_filters(self):
        """History is newest first and filterable."""
        service = build_service()
        record_trades(service)

        page = service.get_history(limit=2)
        assert page['total'] == 3
        assert [t['timestamp'] for t in page['trades']] == [3000, 2000]

        by_venue = service.get_history(from_venue='orca')
        assert by_venue['total'] == 1
        assert by_venue['trades'][0]['error'] == 'buy rejected'

        by_status = service.get_history(status='SUCCESS')
        assert by_status['total'] == 1
        assert by_status['trades'][0]['amount'] == 0.5

    def test_history_unknown_status(self):
        """Unknown status filters are rejected."""
        with pytest.raises(ValueError):
            build_service().get_history(status='pending')

    def test_metrics(self):
        """Metrics match the recorded history."""
        service = build_service()
        record_trades(service)

        metrics = service.get_metrics()

        assert metrics['total_trades'] == 3
        assert metrics['successful_trades'] == 2
        assert metrics['simulated_trades'] == 1
        assert metrics['failed_trades'] == 1
        assert metrics['average_profit_percent'] == pytest.approx(1.5)
        assert metrics['consistent'] is True

    def test_config_hides_wallet(self):
        """The wallet location never leaves the process."""
        config = build_service().get_config()

        assert 'wallet' not in config
        assert 'keypair_path' not in str(config)
        assert config['safety']['min_profit_percent'] == 0.5

    def test_health(self):
        assert build_service().health()['status'] == 'healthy'


class TestControl:
    """Test start/stop commands."""

    @pytest.mark.asyncio
    async def test_start_and_stop(self):
        """Control commands drive the bot lifecycle."""
        service = build_service()
        queue = service.subscribe()

        started = await service.control_start()
        assert started['status'] == 'running'

        stopped = await service.control_stop()
        assert stopped['status'] == 'stopped'
        assert not service.engine.is_looping

        statuses = []
        while not queue.empty():
            event = queue.get_nowait()
            if event['type'] == 'status':
                statuses.append(event['data']['status'])
        assert statuses[0] == 'running'
        assert statuses[-1] == 'stopped'

        service.unsubscribe(queue)
        assert service.engine.events.subscriber_count == 0
