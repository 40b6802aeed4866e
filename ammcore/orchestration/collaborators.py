"""Async interfaces the orchestration layer consumes.

The production implementation lives in ``ammcore.clients.adapter``; tests use
small in-memory fakes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Protocol, runtime_checkable

from ammcore.models.token import Token


@dataclass(frozen=True)
class ExecutionReceipt:
    """Outcome of a confirmed swap transaction."""

    tx_ref: str
    amount_out: int
    block_number: int | None = None
    gas_used: int | None = None


@dataclass(frozen=True)
class LiquidityReceipt:
    """Outcome of a confirmed addLiquidity transaction."""

    tx_ref: str
    used_a: int
    used_b: int
    liquidity_minted: int
    block_number: int | None = None
    gas_used: int | None = None


@dataclass(frozen=True)
class Confirmation:
    tx_ref: str
    success: bool
    block_number: int | None = None
    detail: dict[str, Any] = field(default_factory=dict)


NetworkChangeCallback = Callable[[int], None]


@runtime_checkable
class AmmCollaborator(Protocol):
    async def get_quote(self, token_in: Token, token_out: Token, amount_in: int) -> int:
        ...

    async def get_reserves(self, token_a: Token, token_b: Token) -> tuple[int, int]:
        ...

    async def swap_exact_input(
        self, token_in: Token, token_out: Token, amount_in: int, min_out: int
    ) -> ExecutionReceipt:
        ...

    async def add_liquidity(
        self, token_a: Token, token_b: Token, amount_a: int, amount_b: int, tolerance_bps: int
    ) -> LiquidityReceipt:
        ...


@runtime_checkable
class TokenCollaborator(Protocol):
    async def balance_of(self, token: Token, owner: str) -> int:
        ...

    async def allowance(self, token: Token, owner: str, spender: str) -> int:
        ...

    async def approve(self, token: Token, spender: str, amount: int) -> str:
        ...

    async def wait_for_confirmation(self, tx_ref: str) -> Confirmation:
        ...


@runtime_checkable
class SessionLayer(Protocol):
    async def current_network_id(self) -> int:
        ...

    def on_network_changed(self, callback: NetworkChangeCallback) -> None:
        ...

    async def request_network_switch(self, target_id: int) -> None:
        ...
