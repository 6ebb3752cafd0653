"""Cross-venue DEX arbitrage engine for Solana."""

__version__ = "0.1.0"

__all__ = ['__version__']
