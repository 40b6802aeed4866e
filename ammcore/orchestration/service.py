"""AdapterService: the caller-facing facade over the orchestration layer.

Owns the per-session state (network guard, current wallet snapshot, quote
and reserve caches) and resolves token symbols through the registry. The
orchestrators themselves take and return that state explicitly.
"""

from __future__ import annotations

from typing import Iterable

from ammcore.logging import log
from ammcore.models.token import Token, TokenRegistry, default_registry
from ammcore.orchestration.collaborators import AmmCollaborator, SessionLayer, TokenCollaborator
from ammcore.orchestration.errors import UnknownToken
from ammcore.orchestration.liquidity import (
    DEFAULT_RATIO_SIGNATURES,
    Advice,
    LiquidityOrchestrator,
    LiquidityResult,
)
from ammcore.orchestration.network import NetworkGuard, NetworkState, ReadResult
from ammcore.orchestration.reserves import ReservePair
from ammcore.orchestration.slippage import SlippagePolicy, ToleranceInput
from ammcore.orchestration.swap import DustPolicy, Quote, SwapOrchestrator, SwapResult
from ammcore.orchestration.wallet import WalletSnapshot, read_balances


class AdapterService:
    def __init__(
        self,
        amm: AmmCollaborator,
        tokens: TokenCollaborator,
        session: SessionLayer,
        owner: str,
        adapter_address: str,
        expected_chain_id: int,
        registry: TokenRegistry | None = None,
        policy: SlippagePolicy | None = None,
        dust: DustPolicy | None = None,
        ratio_signatures: Iterable[str] = DEFAULT_RATIO_SIGNATURES,
        default_tolerance: ToleranceInput = "1",
    ) -> None:
        self.amm = amm
        self.tokens = tokens
        self.session = session
        self.registry = registry or default_registry()
        self.default_tolerance = default_tolerance
        self.guard = NetworkGuard(expected_chain_id)
        self.swaps = SwapOrchestrator(
            amm,
            tokens,
            self.guard,
            adapter_address,
            policy=policy,
            dust=dust,
        )
        self.liquidity = LiquidityOrchestrator(
            amm,
            tokens,
            self.guard,
            adapter_address,
            default_ratio=self.registry.default_ratio,
            policy=policy,
            ratio_signatures=ratio_signatures,
            approvals=self.swaps.approvals,
        )
        self.snapshot = WalletSnapshot(owner=owner)

    @classmethod
    def from_settings(cls, settings, registry: TokenRegistry | None = None) -> "AdapterService":
        """Wire the web3 client and RPC session from application settings."""
        from ammcore.clients.adapter import Web3AdapterClient, Web3Session

        client = Web3AdapterClient(
            private_key=settings.private_key,
            rpc_url=settings.resolved_rpc_url,
            adapter_address=settings.resolved_adapter_address,
            rpc_timeout_seconds=settings.rpc_timeout_seconds,
            receipt_timeout_seconds=settings.receipt_timeout_seconds,
        )
        session = Web3Session(client, settings.network_rpc_urls, poll_seconds=settings.network_poll_seconds)
        return cls(
            amm=client,
            tokens=client,
            session=session,
            owner=client.address,
            adapter_address=client.adapter_address,
            expected_chain_id=settings.expected_chain_id,
            registry=registry,
            policy=SlippagePolicy.from_settings(settings),
            dust=DustPolicy.from_settings(settings),
            ratio_signatures=settings.ratio_error_signature_list,
            default_tolerance=settings.default_slippage_pct,
        )

    def token(self, ref: Token | str) -> Token:
        if isinstance(ref, Token):
            return ref
        try:
            return self.registry.get(ref)
        except KeyError as exc:
            raise UnknownToken(f"Unknown token '{ref}'", params={"token": ref}) from exc

    # -- session ------------------------------------------------------------

    async def initialize(self) -> NetworkState:
        self.guard.attach(self.session)
        state = await self.guard.initial_check(self.session)
        await self.refresh_balances()
        log.info(f"AdapterService ready owner={self.snapshot.owner} network_state={state.value}")
        return state

    def current_network_state(self) -> NetworkState:
        return self.guard.state

    async def switch_network(self) -> NetworkState:
        return await self.guard.request_switch(self.session)

    # -- read-only ----------------------------------------------------------

    async def refresh_balances(self, symbols: Iterable[str] | None = None) -> WalletSnapshot:
        watched = [self.token(symbol) for symbol in symbols] if symbols else list(self.registry)
        balances = await read_balances(self.tokens, self.snapshot.owner, watched)
        self.snapshot = self.snapshot.with_balances(balances, self.guard.state)
        return self.snapshot

    async def read_reserves(self, token_a: Token | str, token_b: Token | str) -> ReadResult[ReservePair]:
        return await self.liquidity.read_reserves(self.token(token_a), self.token(token_b))

    async def quote_swap(
        self,
        token_in: Token | str,
        token_out: Token | str,
        amount_in: str,
        tolerance: ToleranceInput | None = None,
    ) -> Quote:
        return await self.swaps.quote_swap(
            self.token(token_in),
            self.token(token_out),
            amount_in,
            tolerance if tolerance is not None else self.default_tolerance,
        )

    async def advise_second_amount(self, token_a: Token | str, token_b: Token | str, amount_a: str) -> Advice:
        return await self.liquidity.advise_second_amount(self.token(token_a), self.token(token_b), amount_a)

    # -- mutating -----------------------------------------------------------

    async def execute_swap(
        self,
        token_in: Token | str,
        token_out: Token | str,
        amount_in: str,
        tolerance: ToleranceInput | None = None,
    ) -> SwapResult:
        result = await self.swaps.execute_swap(
            self.snapshot,
            self.token(token_in),
            self.token(token_out),
            amount_in,
            tolerance if tolerance is not None else self.default_tolerance,
        )
        self.snapshot = result.snapshot
        return result

    async def execute_add_liquidity(
        self,
        token_a: Token | str,
        token_b: Token | str,
        amount_a: str,
        amount_b: str,
        tolerance: ToleranceInput | None = None,
    ) -> LiquidityResult:
        result = await self.liquidity.execute_add_liquidity(
            self.snapshot,
            self.token(token_a),
            self.token(token_b),
            amount_a,
            amount_b,
            tolerance if tolerance is not None else self.default_tolerance,
        )
        self.snapshot = result.snapshot
        return result
