"""Base venue interface for DEX arbitrage."""

from abc import ABC, abstractmethod
from typing import Dict, Optional, Tuple

from loguru import logger
from solders.pubkey import Pubkey

from ..config import PoolConfig
from ..core.types import PriceSnapshot, SwapAction, SwapDirection, now_ms, split_pair
from ..errors import AdapterError, PoolResolutionError, RpcError
from .rpc import SolanaRpcClient


def parse_pubkey(value: str, label: str) -> Pubkey:
    """Parse a base58 account address, raising PoolResolutionError if malformed."""
    try:
        return Pubkey.from_string(value)
    except ValueError as e:
        raise PoolResolutionError(f"Invalid {label} address {value!r}: {e}") from e


class BaseDex(ABC):
    """Abstract base class for a price venue.

    Subclasses implement `_read_reserves`; pricing, validation and swap
    construction are shared.
    """

    name: str = ""
    program_id: Optional[str] = None
    devnet_program_id: Optional[str] = None

    def __init__(self, rpc: SolanaRpcClient, pools: Dict[str, PoolConfig],
                 fee_percent: float, slippage_tolerance_percent: float):
        self.rpc = rpc
        if self.devnet_program_id and "devnet" in rpc.rpc_url:
            self.program_id = self.devnet_program_id
        self.fee_percent = fee_percent
        self.slippage_tolerance_percent = slippage_tolerance_percent
        self.pools: Dict[str, PoolConfig] = {}
        for pair, pool in pools.items():
            for label in ("address", "base_vault", "quote_vault"):
                parse_pubkey(getattr(pool, label), f"{self.name} {pair} {label}")
            if pool.program_id:
                parse_pubkey(pool.program_id, f"{self.name} {pair} program_id")
            self.pools[pair] = pool

    def supports(self, pair: str) -> bool:
        return pair in self.pools

    def resolve_pool(self, pair: str) -> PoolConfig:
        pool = self.pools.get(pair)
        if pool is None:
            raise AdapterError(self.name, f"no pool configured for {pair}")
        return pool

    async def verify_pools(self) -> None:
        """Check that every configured account exists on chain."""
        for pair, pool in self.pools.items():
            for label in ("address", "base_vault", "quote_vault"):
                account = getattr(pool, label)
                try:
                    info = await self.rpc.get_account_info(account)
                except RpcError as e:
                    raise PoolResolutionError(f"{self.name} {pair}: cannot read {label} {account}: {e}") from e
                if info is None:
                    raise PoolResolutionError(f"{self.name} {pair}: {label} account {account} does not exist")
            logger.info(f"Resolved {self.name} pool for {pair}: {pool.address}")

    @abstractmethod
    async def _read_reserves(self, pool: PoolConfig) -> Tuple[float, float]:
        """Return (base_reserve, quote_reserve) for a pool."""
        pass

    async def fetch_price(self, pair: str) -> PriceSnapshot:
        """Fetch the current price for a pair. Raises AdapterError on any failure."""
        pool = self.resolve_pool(pair)
        try:
            base_reserve, quote_reserve = await self._read_reserves(pool)
        except RpcError as e:
            raise AdapterError(self.name, f"{pair} reserve read failed: {e}") from e

        if base_reserve <= 0 or quote_reserve <= 0:
            raise AdapterError(
                self.name, f"{pair} has non-positive reserves ({base_reserve}, {quote_reserve})"
            )

        price = quote_reserve / base_reserve
        if price <= 0:
            raise AdapterError(self.name, f"{pair} computed non-positive price {price}")

        base, quote = split_pair(pair)
        return PriceSnapshot(
            venue=self.name,
            base_token=base,
            quote_token=quote,
            price=price,
            observed_at=now_ms(),
            liquidity=base_reserve,
        )

    def build_swap(self, pair: str, amount: float, direction: SwapDirection, price: float) -> SwapAction:
        """Build a swap leg at the given reference price with slippage protection."""
        if amount <= 0:
            raise AdapterError(self.name, f"invalid swap amount {amount}")
        if price <= 0:
            raise AdapterError(self.name, f"invalid reference price {price}")

        pool = self.resolve_pool(pair)
        slip = self.slippage_tolerance_percent / 100

        if direction == SwapDirection.BUY:
            # spend quote, receive base
            amount_in = amount * price
            min_amount_out = amount * (1 - slip)
        else:
            # spend base, receive quote
            amount_in = amount
            min_amount_out = amount * price * (1 - slip)

        return SwapAction(
            venue=self.name,
            pair=pair,
            direction=direction,
            amount=amount,
            amount_in=amount_in,
            min_amount_out=min_amount_out,
            pool_address=pool.address,
            base_vault=pool.base_vault,
            quote_vault=pool.quote_vault,
            program_id=pool.program_id or self.program_id,
        )


class VaultReserveDex(BaseDex):
    """Constant-product pool priced from its two SPL token vaults."""

    async def _read_reserves(self, pool: PoolConfig) -> Tuple[float, float]:
        base_reserve = await self.rpc.get_token_account_balance(pool.base_vault)
        quote_reserve = await self.rpc.get_token_account_balance(pool.quote_vault)
        return base_reserve, quote_reserve
