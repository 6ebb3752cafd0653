"""Orca venue adapter."""

from .base import VaultReserveDex


class OrcaDex(VaultReserveDex):
    """Orca pool priced from its token vault reserves.

    Whirlpools concentrate liquidity, so the vault ratio is an approximation
    of the pool price rather than the exact tick price.
    """

    name = "orca"
    program_id = "whirLbMiicVdio4qvUfM5KAg6Ct8VwpYzGff3uctyCc"
    devnet_program_id = "whirLbMiicVdio4qvUfM5KAg6Ct8VwpYzGff3uctyCc"
