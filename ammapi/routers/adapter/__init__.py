"""Adapter routers package."""

from . import liquidity, network, swap, wallet

__all__ = [
    "liquidity",
    "network",
    "swap",
    "wallet",
]
