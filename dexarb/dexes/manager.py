"""Venue registry."""

from typing import Dict, List, Type

from loguru import logger

from ..config import Config
from .base import BaseDex
from .orca import OrcaDex
from .raydium import RaydiumDex
from .rpc import SolanaRpcClient

DEX_REGISTRY: Dict[str, Type[BaseDex]] = {
    RaydiumDex.name: RaydiumDex,
    OrcaDex.name: OrcaDex,
}


class DexManager:
    """Holds the enabled venue adapters keyed by venue id."""

    def __init__(self, dexes: Dict[str, BaseDex]):
        self.dexes = dexes

    @classmethod
    def from_config(cls, config: Config, rpc: SolanaRpcClient) -> "DexManager":
        """Build adapters for every enabled venue. Unknown venues are skipped."""
        dexes: Dict[str, BaseDex] = {}
        for venue in config.dex.enabled_venues:
            dex_cls = DEX_REGISTRY.get(venue)
            if dex_cls is None:
                logger.warning(f"Unknown DEX: {venue}, skipping")
                continue

            pools = config.dex.pools.get(venue, {})
            for pair in config.dex.trading_pairs:
                if pair not in pools:
                    logger.warning(f"{venue} has no pool for {pair}; it will not quote that pair")

            dexes[venue] = dex_cls(
                rpc,
                {pair: pool for pair, pool in pools.items() if pair in config.dex.trading_pairs},
                fee_percent=config.get_venue_fee_percent(venue),
                slippage_tolerance_percent=config.safety.slippage_tolerance_percent,
            )
            logger.info(f"Initialized DEX: {venue} (fee {dexes[venue].fee_percent}%)")

        return cls(dexes)

    def get(self, venue: str) -> BaseDex:
        return self.dexes[venue]

    def names(self) -> List[str]:
        return list(self.dexes)

    def venues_for(self, pair: str) -> List[BaseDex]:
        return [dex for dex in self.dexes.values() if dex.supports(pair)]

    async def verify_pools(self) -> None:
        """Resolve all configured pools once at startup."""
        for dex in self.dexes.values():
            await dex.verify_pools()
