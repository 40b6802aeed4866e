"""Router bindings for the adapter API."""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass

from fastapi import APIRouter, FastAPI

from ammapi.routers.adapter import (
    liquidity as adapter_liquidity,
    network as adapter_network,
    swap as adapter_swap,
    wallet as adapter_wallet,
)

API_PREFIX = "/api/adapter"


@dataclass(frozen=True)
class RouterBinding:
    router: APIRouter
    prefix: str = ""
    tags: tuple[str, ...] = ()


def get_router_bindings() -> Sequence[RouterBinding]:
    return (
        RouterBinding(adapter_network.router, prefix=API_PREFIX, tags=("Adapter Network",)),
        RouterBinding(adapter_swap.router, prefix=API_PREFIX, tags=("Adapter Swap",)),
        RouterBinding(adapter_liquidity.router, prefix=API_PREFIX, tags=("Adapter Liquidity",)),
        RouterBinding(adapter_wallet.router, prefix=API_PREFIX, tags=("Adapter Wallet",)),
    )


def include_routers(app: FastAPI) -> None:
    for binding in get_router_bindings():
        app.include_router(binding.router, prefix=binding.prefix, tags=list(binding.tags))
