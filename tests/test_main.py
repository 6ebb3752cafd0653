"""Test bot wiring and shutdown handling."""

import json
import signal

import pytest
from solders.keypair import Keypair

from dexarb.core.types import BotStatus
from dexarb.main import ArbitrageBot
from sample_data import make_config, make_dexes


def build_bot(tmp_path) -> ArbitrageBot:
    keypair_path = tmp_path / "id.json"
    keypair_path.write_text(json.dumps(list(bytes(Keypair()))))
    config = make_config()
    config.wallet.keypair_path = str(keypair_path)
    bot = ArbitrageBot(config)
    # no network: swap in venues with fixed reserves
    bot.engine.dexes = make_dexes()
    bot.engine.executor.dexes = bot.engine.dexes
    return bot


class TestSignalHandling:
    """Test shutdown on SIGINT/SIGTERM."""

    @pytest.mark.asyncio
    async def test_signal_stops_engine_once(self, tmp_path):
        """Repeated signals schedule a single stop that runs to completion."""
        bot = build_bot(tmp_path)
        await bot.engine.start()

        bot._signal_handler(signal.SIGTERM)
        first = bot._stop_task
        bot._signal_handler(signal.SIGINT)

        assert bot._stop_task is first
        await first
        assert bot.engine.status == BotStatus.STOPPED
        assert not bot.engine.is_looping
        await bot.shutdown()

    @pytest.mark.asyncio
    async def test_signal_when_stopped_is_ignored(self, tmp_path):
        """Nothing is scheduled if the bot is already stopped."""
        bot = build_bot(tmp_path)

        bot._signal_handler(signal.SIGTERM)

        assert bot._stop_task is None
        await bot.shutdown()
