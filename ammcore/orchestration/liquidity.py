"""Paired liquidity flows: second-amount advice and addLiquidity."""

from __future__ import annotations

from dataclasses import dataclass
from fractions import Fraction
from typing import Any, Callable, Iterable, Optional

from ammcore.logging import log
from ammcore.models.token import Token
from ammcore.orchestration.amounts import Amount
from ammcore.orchestration.approval import ApprovalGate, ApprovalIssued, ApprovalOutcome
from ammcore.orchestration.collaborators import AmmCollaborator, LiquidityReceipt, TokenCollaborator
from ammcore.orchestration.errors import (
    ApprovalRejected,
    InvalidAmount,
    LiquidityCallFailed,
    QuoteUnavailable,
    RatioMismatch,
    WrongNetwork,
)
from ammcore.orchestration.network import NetworkGuard, NetworkState, ReadResult
from ammcore.orchestration.reserves import ReservePair, ReserveRatioAdvisor
from ammcore.orchestration.slippage import SlippagePolicy, SlippageTolerance, ToleranceInput, to_basis_points
from ammcore.orchestration.swap import parse_positive
from ammcore.orchestration.tracking import RequestSequencer, TaggedCache
from ammcore.orchestration.wallet import WalletSnapshot, read_balances

DEFAULT_RATIO_SIGNATURES = ("INSUFFICIENT_A_AMOUNT", "INSUFFICIENT_B_AMOUNT")

DefaultRatioLookup = Callable[[Token, Token], Optional[Fraction]]


@dataclass(frozen=True)
class Advice:
    amount_a: Amount
    amount_b: Amount
    source: str
    network_state: NetworkState
    reserves: ReservePair | None = None
    stale: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "amount_a": self.amount_a.to_dict(),
            "amount_b": self.amount_b.to_dict(),
            "source": self.source,
            "network_state": self.network_state.value,
            "reserves": self.reserves.to_dict() if self.reserves else None,
            "stale": self.stale,
        }


@dataclass(frozen=True)
class LiquidityResult:
    tx_ref: str
    amount_a: Amount
    amount_b: Amount
    used_a: Amount
    used_b: Amount
    liquidity_minted: int
    tolerance: SlippageTolerance
    tolerance_bps: int
    approvals: dict[str, ApprovalOutcome]
    snapshot: WalletSnapshot
    reserves: ReservePair | None = None
    block_number: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": True,
            "tx_ref": self.tx_ref,
            "amount_a": self.amount_a.to_dict(),
            "amount_b": self.amount_b.to_dict(),
            "used_a": self.used_a.to_dict(),
            "used_b": self.used_b.to_dict(),
            "liquidity_minted": str(self.liquidity_minted),
            "tolerance_pct": str(self.tolerance),
            "tolerance_bps": self.tolerance_bps,
            "approvals": {symbol: outcome.to_dict() for symbol, outcome in self.approvals.items()},
            "reserves": self.reserves.to_dict() if self.reserves else None,
            "block_number": self.block_number,
            "snapshot": self.snapshot.to_dict(),
        }


def approval_context(outcomes: dict[str, ApprovalOutcome]) -> dict[str, Any]:
    return {
        "approvals": {symbol: outcome.to_dict() for symbol, outcome in outcomes.items()},
        "allowance_changed": any(isinstance(outcome, ApprovalIssued) for outcome in outcomes.values()),
    }


def classify_liquidity_failure(
    exc: BaseException,
    params: dict[str, Any],
    signatures: Iterable[str] = DEFAULT_RATIO_SIGNATURES,
) -> LiquidityCallFailed:
    """Map a failed addLiquidity call to RatioMismatch or the generic failure."""
    message = str(exc)
    for signature in signatures:
        if signature and signature in message:
            return RatioMismatch(
                "Liquidity amounts do not match the pool ratio",
                params={**params, "signature": signature},
                cause=exc,
            )
    return LiquidityCallFailed("addLiquidity failed", params=params, cause=exc)


class LiquidityOrchestrator:
    def __init__(
        self,
        amm: AmmCollaborator,
        tokens: TokenCollaborator,
        guard: NetworkGuard,
        adapter_address: str,
        default_ratio: DefaultRatioLookup | None = None,
        policy: SlippagePolicy | None = None,
        ratio_signatures: Iterable[str] = DEFAULT_RATIO_SIGNATURES,
        approvals: ApprovalGate | None = None,
        advisor: ReserveRatioAdvisor | None = None,
    ) -> None:
        self.amm = amm
        self.tokens = tokens
        self.guard = guard
        self.adapter_address = adapter_address
        self.default_ratio = default_ratio or (lambda _a, _b: None)
        self.policy = policy or SlippagePolicy()
        self.ratio_signatures = tuple(ratio_signatures)
        self.approvals = approvals or ApprovalGate(tokens, guard)
        self.advisor = advisor or ReserveRatioAdvisor()
        self.sequencer = RequestSequencer("reserves")
        self.reserves: TaggedCache[ReservePair] = TaggedCache("reserves")

    async def read_reserves(self, token_a: Token, token_b: Token) -> ReadResult[ReservePair]:
        """Read-only; runs in any network state and reports the one it ran under."""
        sequence = self.sequencer.next()
        state = self.guard.state
        try:
            raw_a, raw_b = await self.amm.get_reserves(token_a, token_b)
        except Exception as exc:
            raise QuoteUnavailable(
                f"Reserve read {token_a.symbol}/{token_b.symbol} failed",
                params={"pair": f"{token_a.symbol}/{token_b.symbol}"},
                cause=exc,
            ) from exc
        pair = ReservePair(
            reserve_a=Amount(token=token_a, raw=int(raw_a)),
            reserve_b=Amount(token=token_b, raw=int(raw_b)),
        )
        applied = self.reserves.offer(sequence, (token_a.key, token_b.key), pair, latest=self.sequencer.latest)
        log.debug(
            f"Reserves {token_a.symbol}/{token_b.symbol} a={pair.reserve_a.raw} b={pair.reserve_b.raw} "
            f"liquidity={pair.has_liquidity} state={state.value} applied={applied}"
        )
        return ReadResult(value=pair, network_state=state, sequence=sequence, stale=not applied)

    def current_reserves(self, token_a: Token, token_b: Token) -> ReservePair | None:
        return self.reserves.get((token_a.key, token_b.key))

    async def advise_second_amount(self, token_a: Token, token_b: Token, amount_a: str) -> Advice:
        """Advice built from reserves a newer read overtook comes back with ``stale=True``."""
        amount = parse_positive(token_a, amount_a, "amount_a")
        reserves: ReservePair | None
        stale = False
        try:
            result = await self.read_reserves(token_a, token_b)
            reserves = result.value
            stale = result.stale
        except QuoteUnavailable as exc:
            log.warning(f"Advising without reserves: {exc}")
            reserves = None

        ratio = self.default_ratio(token_a, token_b)
        if reserves is None:
            reserves = ReservePair(reserve_a=Amount.zero(token_a), reserve_b=Amount.zero(token_b))
            source_reserves = None
        else:
            source_reserves = reserves

        advised = self.advisor.advise(reserves, amount, default_ratio=ratio)
        source = "reserves" if reserves.has_liquidity else "default_ratio"
        log.info(f"Advised {advised} for {amount} source={source} stale={stale}")
        return Advice(
            amount_a=amount,
            amount_b=advised,
            source=source,
            network_state=self.guard.state,
            reserves=source_reserves,
            stale=stale,
        )

    async def _approve_both(self, owner: str, required: tuple[Amount, Amount]) -> dict[str, ApprovalOutcome]:
        outcomes: dict[str, ApprovalOutcome] = {}
        failures: dict[str, ApprovalRejected] = {}
        for amount in required:
            try:
                outcomes[amount.token.symbol] = await self.approvals.ensure_allowance(
                    owner=owner,
                    spender=self.adapter_address,
                    token=amount.token,
                    required=amount,
                )
            except ApprovalRejected as exc:
                log.warning(f"Approval failed token={amount.token.symbol}: {exc}")
                failures[amount.token.symbol] = exc
            except WrongNetwork as exc:
                # Earlier approvals in this run already changed allowances
                exc.params.update(approval_context(outcomes))
                raise

        if failures:
            report = {symbol: outcome.to_dict() for symbol, outcome in outcomes.items()}
            report.update({symbol: exc.to_dict() for symbol, exc in failures.items()})
            first = next(iter(failures.values()))
            raise ApprovalRejected(
                f"Approval failed for {', '.join(failures)}; liquidity was not added",
                params={"outcomes": report},
                cause=first.cause if first.cause is not None else first.message,
            )
        return outcomes

    async def execute_add_liquidity(
        self,
        snapshot: WalletSnapshot,
        token_a: Token,
        token_b: Token,
        amount_a: str,
        amount_b: str,
        tolerance: ToleranceInput,
    ) -> LiquidityResult:
        self.guard.require_correct("add_liquidity")

        amt_a = parse_positive(token_a, amount_a, "amount_a")
        amt_b = parse_positive(token_b, amount_b, "amount_b")
        if token_a.key == token_b.key:
            raise InvalidAmount("Liquidity tokens must differ", params={"token": token_a.symbol})
        tol = SlippageTolerance.parse(tolerance, self.policy)
        tolerance_bps = to_basis_points(tol)
        log.info(f"Liquidity parameters a={amt_a} b={amt_b} tolerance={tol} bps={tolerance_bps}")

        approvals = await self._approve_both(snapshot.owner, (amt_a, amt_b))

        self.guard.require_correct("add_liquidity", context=approval_context(approvals))
        params = {
            "token_a": token_a.symbol,
            "token_b": token_b.symbol,
            "amount_a": amt_a,
            "amount_b": amt_b,
            "tolerance_bps": tolerance_bps,
        }
        try:
            receipt: LiquidityReceipt = await self.amm.add_liquidity(
                token_a, token_b, amt_a.raw, amt_b.raw, tolerance_bps
            )
        except Exception as exc:
            failure = classify_liquidity_failure(exc, params, self.ratio_signatures)
            log.bind(TRADE_DECISION=True).error(f"ADD LIQUIDITY FAILED {amt_a} + {amt_b} kind={failure.kind} cause={exc}")
            raise failure from exc

        log.bind(TRADE_DECISION=True).info(
            f"ADD LIQUIDITY {amt_a} + {amt_b} used_a={receipt.used_a} used_b={receipt.used_b} "
            f"minted={receipt.liquidity_minted} tx={receipt.tx_ref}"
        )

        balances = await read_balances(self.tokens, snapshot.owner, (token_a, token_b))
        try:
            reserves = (await self.read_reserves(token_a, token_b)).value
        except QuoteUnavailable as exc:
            log.warning(f"Reserve refresh after liquidity failed: {exc}")
            reserves = None

        return LiquidityResult(
            tx_ref=receipt.tx_ref,
            amount_a=amt_a,
            amount_b=amt_b,
            used_a=Amount(token=token_a, raw=int(receipt.used_a)),
            used_b=Amount(token=token_b, raw=int(receipt.used_b)),
            liquidity_minted=int(receipt.liquidity_minted),
            tolerance=tol,
            tolerance_bps=tolerance_bps,
            approvals=approvals,
            snapshot=snapshot.with_balances(balances, self.guard.state),
            reserves=reserves,
            block_number=receipt.block_number,
        )
