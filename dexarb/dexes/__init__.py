"""Venue adapters for Solana DEXes."""

from .rpc import SolanaRpcClient
from .base import BaseDex, VaultReserveDex
from .raydium import RaydiumDex
from .orca import OrcaDex
from .manager import DexManager, DEX_REGISTRY

__all__ = [
    'SolanaRpcClient',
    'BaseDex',
    'VaultReserveDex',
    'RaydiumDex',
    'OrcaDex',
    'DexManager',
    'DEX_REGISTRY'
]
