"""Main entry point for the DEX arbitrage engine."""

import asyncio
import signal
import sys
from typing import Optional

import click
from loguru import logger

# uvloop is not available on Windows
try:
    import uvloop
    UVLOOP_AVAILABLE = True
except ImportError:
    UVLOOP_AVAILABLE = False

from .api import BotService
from .config import Config, LoggingConfig, get_config
from .core.engine import ArbitrageEngine
from .core.events import EventBus
from .core.types import BotStatus
from .dexes.manager import DexManager
from .dexes.rpc import SolanaRpcClient
from .errors import ArbitrageError
from .storage.db import Database
from .storage.journal import TradeJournal
from .wallet import SolanaWallet, load_keypair


def setup_logging(logging_config: LoggingConfig):
    """Console sink at the configured level plus an optional debug file sink."""
    logger.remove()
    logger.add(sys.stderr, level=logging_config.level,
               format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>")
    if logging_config.file:
        logger.add(logging_config.file, level="DEBUG", rotation="10 MB", retention=5,
                   format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}")


class ArbitrageBot:
    """Wires configuration, RPC, venues, wallet, storage and the engine."""

    def __init__(self, config: Config):
        self.config = config
        self.rpc = SolanaRpcClient(
            config.network.rpc_url,
            commitment=config.network.commitment,
            timeout_sec=config.network.request_timeout_sec,
        )
        self.dexes = DexManager.from_config(config, self.rpc)
        self.wallet = SolanaWallet(
            load_keypair(config.wallet.keypair_path),
            self.rpc,
            send_retries=config.execution.send_retries,
        )
        self.database: Optional[Database] = None
        self.journal: Optional[TradeJournal] = None
        self._stop_task: Optional[asyncio.Task] = None
        if config.storage.db_path:
            self.database = Database(config.storage.db_path)
            self.journal = TradeJournal(self.database)

        self.events = EventBus()
        self.engine = ArbitrageEngine(config, self.dexes, self.wallet,
                                      events=self.events, journal=self.journal)
        self.service = BotService(self.engine)

        logger.info("DEX Arbitrage Bot initialized")
        logger.info(f"Wallet: {self.wallet.pubkey}")
        logger.info(f"RPC: {config.network.rpc_url} ({config.network.commitment})")

    async def run(self):
        """Connect, resolve pools and run until stopped."""
        await self.rpc.connect()
        try:
            if self.database:
                await self.database.connect()

            await self.dexes.verify_pools()

            if not self.config.safety.simulation_mode:
                balance = await self.wallet.get_balance()
                logger.info(f"Wallet balance: {balance:.4f} SOL")

            loop = asyncio.get_running_loop()
            for sig in (signal.SIGINT, signal.SIGTERM):
                try:
                    loop.add_signal_handler(sig, self._signal_handler, sig)
                except NotImplementedError:
                    pass

            await self.engine.start()
            await self.engine.wait_stopped()
        finally:
            await self.shutdown()

    def _signal_handler(self, signum):
        """Handle shutdown signals."""
        logger.info(f"Received signal {signum}, shutting down...")
        stopping = self._stop_task is not None and not self._stop_task.done()
        if self.engine.status != BotStatus.STOPPED and not stopping:
            self._stop_task = asyncio.create_task(self.service.control_stop())

    async def shutdown(self):
        await self.rpc.disconnect()
        if self.database:
            await self.database.disconnect()


@click.group()
def cli():
    """DEX Arbitrage Engine CLI."""
    pass


@cli.command()
@click.option('--config', 'config_path', type=click.Path(exists=True), default='config.yaml',
              help='Path to config file')
@click.option('--simulate/--live', default=None,
              help='Override safety.simulation_mode from the config file')
def run(config_path, simulate):
    """Run the arbitrage bot."""
    try:
        config = get_config(config_path)
    except ArbitrageError as e:
        click.echo(f"Configuration error: {e}", err=True)
        sys.exit(1)

    if simulate is not None:
        config.safety = config.safety.model_copy(update={'simulation_mode': simulate})

    setup_logging(config.logging)
    if config.safety.simulation_mode:
        logger.info("Running in SIMULATION mode - no real trades will be submitted")
    else:
        logger.warning("Running in PRODUCTION mode - real trades will be submitted")

    # Use uvloop on Linux for better performance
    if sys.platform != "win32" and UVLOOP_AVAILABLE:
        uvloop.install()

    try:
        bot = ArbitrageBot(config)
        asyncio.run(bot.run())
    except KeyboardInterrupt:
        logger.info("Bot stopped by user")
    except ArbitrageError as e:
        logger.error(f"Bot failed: {e}")
        sys.exit(1)


@cli.command()
@click.option('--config', 'config_path', type=click.Path(exists=True), default='config.yaml',
              help='Path to config file')
@click.option('--days', default=7, type=int, help='Number of days to report (default: 7)')
def report(config_path, days):
    """Generate trading report from the trade journal."""
    async def generate_report():
        logger.remove()
        logger.add(sys.stderr, level="WARNING")

        config = get_config(config_path)
        if not config.storage.db_path:
            click.echo("Trade journaling is disabled (storage.db_path is empty)")
            return

        db = Database(config.storage.db_path)
        journal = TradeJournal(db)
        try:
            await db.connect()
            click.echo(await journal.generate_report(days))
        finally:
            await db.disconnect()

    asyncio.run(generate_report())


@cli.command(name='check-config')
@click.option('--config', 'config_path', type=click.Path(exists=True), default='config.yaml',
              help='Path to config file')
def check_config(config_path):
    """Validate a config file without connecting to anything."""
    try:
        config = get_config(config_path)
    except ArbitrageError as e:
        click.echo(f"INVALID: {e}", err=True)
        sys.exit(1)

    click.echo(f"OK: {len(config.dex.enabled_venues)} venues, {len(config.dex.trading_pairs)} pairs, "
               f"simulation_mode={config.safety.simulation_mode}")


def main():
    """Main entry point."""
    cli()


if __name__ == "__main__":
    main()
