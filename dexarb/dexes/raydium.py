"""Raydium AMM venue adapter."""

from .base import VaultReserveDex


class RaydiumDex(VaultReserveDex):
    """Raydium constant-product AMM (v4)."""

    name = "raydium"
    program_id = "675kPX9MHTjS2zt1qfr1NYHuzeLXfQM9H24wFSUt1Mp8"
    devnet_program_id = "HWy1jotHpo6UqeQxx49dpYYdQB8wj9Qk9MdxwjLvDHB8"
