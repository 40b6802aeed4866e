"""
Shared fakes and fixtures for the adapter test-suite.

The fakes record every external call so tests can assert that blocked flows
never touched the chain.
"""
from __future__ import annotations

import asyncio
import os
import sys
from typing import Any, Callable

import pytest

# Ensure the project root is on sys.path so `import ammcore` works
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from ammcore.models.token import PairConfig, Token, TokenRegistry  # noqa: E402
from ammcore.orchestration.collaborators import (  # noqa: E402
    Confirmation,
    ExecutionReceipt,
    LiquidityReceipt,
)
from ammcore.orchestration.network import NetworkGuard  # noqa: E402

EXPECTED_CHAIN_ID = 11_155_111
OTHER_CHAIN_ID = 1
OWNER = "0x1111111111111111111111111111111111111111"
ADAPTER = "0x8700A5FBb9D0CCa51a609926d98A002F22a03c0c"

WETH = Token(address="0x0A7E11Caa2A5EFBa3bB1f2C67E795b41ddCBC453", symbol="WETH", decimals=18)
USDT = Token(address="0x73Fd9eB3281fB56AafFE512bad7468C3e7a2C600", symbol="USDT", decimals=6)
DAI = Token(address="0xba735403CcBd5969EDafa4Ec7AFf526C701B6690", symbol="DAI", decimals=18)
GEM = Token(address="0x2222222222222222222222222222222222222222", symbol="GEM", decimals=4)

MUTATING_CALLS = {"approve", "swap_exact_input", "add_liquidity"}


class FakeChain:
    """In-memory AMM and token collaborator.

    ``failures`` maps a method name to an exception raised on every call;
    ``approve_failures`` holds token symbols whose approve call raises.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple[Any, ...]]] = []
        self.quote_out: int = 0
        self.quote_delays: dict[int, float] = {}
        self.reserves: dict[tuple[str, str], tuple[int, int]] = {}
        self.reserve_delays: list[float] = []
        self.balances: dict[str, int] = {}
        self.allowances: dict[tuple[str, str], int] = {}
        self.failures: dict[str, Exception] = {}
        self.approve_failures: set[str] = set()
        self.confirm_success = True
        self.approval_takes_effect = True
        self.swap_out: int | None = None
        self.liquidity_used: tuple[int, int] | None = None
        self.on_confirm: Callable[[], None] | None = None
        self._pending: dict[str, tuple[Token, str, int]] = {}

    def _record(self, name: str, *args: Any) -> None:
        self.calls.append((name, args))
        if name in self.failures:
            raise self.failures[name]

    def names(self) -> list[str]:
        return [name for name, _ in self.calls]

    def count(self, name: str) -> int:
        return self.names().count(name)

    def mutating_calls(self) -> list[str]:
        return [name for name in self.names() if name in MUTATING_CALLS]

    def set_reserves(self, token_a: Token, token_b: Token, raw_a: int, raw_b: int) -> None:
        self.reserves[(token_a.key, token_b.key)] = (raw_a, raw_b)
        self.reserves[(token_b.key, token_a.key)] = (raw_b, raw_a)

    # -- AmmCollaborator ------------------------------------------------------

    async def get_quote(self, token_in: Token, token_out: Token, amount_in: int) -> int:
        self._record("get_quote", token_in.symbol, token_out.symbol, amount_in)
        delay = self.quote_delays.get(amount_in)
        if delay:
            await asyncio.sleep(delay)
        return self.quote_out

    async def get_reserves(self, token_a: Token, token_b: Token) -> tuple[int, int]:
        self._record("get_reserves", token_a.symbol, token_b.symbol)
        value = self.reserves.get((token_a.key, token_b.key), (0, 0))
        delay = self.reserve_delays.pop(0) if self.reserve_delays else 0
        if delay:
            await asyncio.sleep(delay)
        return value

    async def swap_exact_input(
        self, token_in: Token, token_out: Token, amount_in: int, min_out: int
    ) -> ExecutionReceipt:
        self._record("swap_exact_input", token_in.symbol, token_out.symbol, amount_in, min_out)
        return ExecutionReceipt(
            tx_ref="0xswap",
            amount_out=self.swap_out if self.swap_out is not None else min_out,
            block_number=42,
            gas_used=120_000,
        )

    async def add_liquidity(
        self, token_a: Token, token_b: Token, amount_a: int, amount_b: int, tolerance_bps: int
    ) -> LiquidityReceipt:
        self._record("add_liquidity", token_a.symbol, token_b.symbol, amount_a, amount_b, tolerance_bps)
        used_a, used_b = self.liquidity_used or (amount_a, amount_b)
        return LiquidityReceipt(
            tx_ref="0xliquidity",
            used_a=used_a,
            used_b=used_b,
            liquidity_minted=1_000,
            block_number=43,
        )

    # -- TokenCollaborator ----------------------------------------------------

    async def balance_of(self, token: Token, owner: str) -> int:
        self._record("balance_of", token.symbol, owner)
        return self.balances.get(token.symbol, 0)

    async def allowance(self, token: Token, owner: str, spender: str) -> int:
        self._record("allowance", token.symbol, owner, spender)
        return self.allowances.get((token.symbol, spender), 0)

    async def approve(self, token: Token, spender: str, amount: int) -> str:
        self._record("approve", token.symbol, spender, amount)
        if token.symbol in self.approve_failures:
            raise RuntimeError(f"user rejected {token.symbol} approval")
        tx_ref = f"0xapprove{len(self._pending) + 1}"
        self._pending[tx_ref] = (token, spender, amount)
        return tx_ref

    async def wait_for_confirmation(self, tx_ref: str) -> Confirmation:
        self._record("wait_for_confirmation", tx_ref)
        await asyncio.sleep(0)
        token, spender, amount = self._pending[tx_ref]
        if self.confirm_success and self.approval_takes_effect:
            self.allowances[(token.symbol, spender)] = amount
        if self.on_confirm is not None:
            self.on_confirm()
        return Confirmation(tx_ref=tx_ref, success=self.confirm_success, block_number=41)


class FakeSession:
    """Session layer whose chain id tests can move around."""

    def __init__(self, chain_id: int | None = EXPECTED_CHAIN_ID) -> None:
        self.chain_id = chain_id
        self.callbacks: list[Callable[[int], None]] = []
        self.switch_lands_on: int | None = None
        self.switch_error: Exception | None = None
        self.read_error: Exception | None = None
        self.switch_requests: list[int] = []

    async def current_network_id(self) -> int:
        if self.read_error is not None:
            raise self.read_error
        return self.chain_id

    def on_network_changed(self, callback: Callable[[int], None]) -> None:
        self.callbacks.append(callback)

    async def request_network_switch(self, target_id: int) -> None:
        self.switch_requests.append(target_id)
        if self.switch_error is not None:
            raise self.switch_error
        self.emit(self.switch_lands_on if self.switch_lands_on is not None else target_id)

    def emit(self, chain_id: int) -> None:
        self.chain_id = chain_id
        for callback in list(self.callbacks):
            callback(chain_id)


@pytest.fixture
def chain() -> FakeChain:
    return FakeChain()


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def guard() -> NetworkGuard:
    network_guard = NetworkGuard(EXPECTED_CHAIN_ID)
    network_guard.check(EXPECTED_CHAIN_ID, source="test")
    return network_guard


@pytest.fixture
def registry() -> TokenRegistry:
    return TokenRegistry(
        [WETH, USDT, DAI, GEM],
        [PairConfig(token_a="WETH", token_b="USDT", default_ratio="2000")],
    )
