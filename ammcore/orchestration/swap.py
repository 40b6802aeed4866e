"""Quote and exact-input swap flows."""

from __future__ import annotations

from dataclasses import dataclass, replace
from fractions import Fraction
from typing import Any

from ammcore.logging import log
from ammcore.models.token import Token
from ammcore.orchestration.amounts import Amount
from ammcore.orchestration.approval import ApprovalGate, ApprovalIssued, ApprovalOutcome
from ammcore.orchestration.collaborators import AmmCollaborator, ExecutionReceipt, TokenCollaborator
from ammcore.orchestration.errors import InvalidAmount, QuoteUnavailable, SwapCallFailed
from ammcore.orchestration.network import NetworkGuard, NetworkState
from ammcore.orchestration.slippage import (
    SlippagePolicy,
    SlippageTolerance,
    ToleranceInput,
    minimum_output,
)
from ammcore.orchestration.tracking import RequestSequencer, TaggedCache
from ammcore.orchestration.wallet import WalletSnapshot, read_balances


def parse_positive(token: Token, value: str, label: str = "amount") -> Amount:
    amount = Amount.parse(token, value)
    if not amount.is_positive():
        raise InvalidAmount(
            f"{label} must be greater than zero",
            params={label: value, "token": token.symbol},
        )
    return amount


@dataclass(frozen=True)
class Quote:
    amount_in: Amount
    amount_out: Amount
    as_of: int
    network_state: NetworkState
    tolerance: SlippageTolerance | None = None
    minimum_output: Amount | None = None
    stale: bool = False

    @property
    def tag(self) -> tuple[str, str, int]:
        return (self.amount_in.token.key, self.amount_out.token.key, self.amount_in.raw)

    def to_dict(self) -> dict[str, Any]:
        return {
            "amount_in": self.amount_in.to_dict(),
            "amount_out": self.amount_out.to_dict(),
            "minimum_output": self.minimum_output.to_dict() if self.minimum_output else None,
            "tolerance_pct": str(self.tolerance) if self.tolerance else None,
            "as_of": self.as_of,
            "network_state": self.network_state.value,
            "stale": self.stale,
        }


@dataclass(frozen=True)
class DustPolicy:
    """Advisory threshold for inputs small enough to be eaten by integer rounding.

    ``reserve_ratio`` applies against the input reserve; ``min_amount`` (human
    units of the input token) applies when reserves are empty or unreadable.
    """

    reserve_ratio: Fraction = Fraction(1, 1_000_000)
    min_amount: Fraction = Fraction(1, 10_000)

    @classmethod
    def from_settings(cls, settings) -> "DustPolicy":
        return cls(
            reserve_ratio=Fraction(settings.dust_reserve_ratio),
            min_amount=Fraction(settings.dust_min_amount),
        )

    def check(self, amount_in: Amount, reserve_in: Amount | None) -> str | None:
        if reserve_in is not None and reserve_in.raw > 0:
            threshold = reserve_in.raw * self.reserve_ratio
            if amount_in.raw < threshold:
                return (
                    f"{amount_in} is below {self.reserve_ratio} of the "
                    f"{reserve_in.token.symbol} reserve ({reserve_in})"
                )
            return None
        floor = self.min_amount * 10**amount_in.token.decimals
        if amount_in.raw < floor:
            return f"{amount_in} is below the minimum practical amount of {float(self.min_amount)}"
        return None


@dataclass(frozen=True)
class SwapResult:
    tx_ref: str
    quote: Quote
    minimum_output: Amount
    amount_out: Amount
    tolerance: SlippageTolerance
    approval: ApprovalOutcome
    snapshot: WalletSnapshot
    dust_warning: str | None = None
    block_number: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": True,
            "tx_ref": self.tx_ref,
            "amount_in": self.quote.amount_in.to_dict(),
            "quoted_output": self.quote.amount_out.to_dict(),
            "minimum_output": self.minimum_output.to_dict(),
            "amount_out": self.amount_out.to_dict(),
            "tolerance_pct": str(self.tolerance),
            "approval": self.approval.to_dict(),
            "dust_warning": self.dust_warning,
            "block_number": self.block_number,
            "snapshot": self.snapshot.to_dict(),
        }


class SwapOrchestrator:
    """Composes quote, slippage floor, approval and the swap call.

    Each run is strictly sequential. The network guard is consulted first and
    again right before every mutating call, since a chain-change notification
    may land between steps.
    """

    def __init__(
        self,
        amm: AmmCollaborator,
        tokens: TokenCollaborator,
        guard: NetworkGuard,
        adapter_address: str,
        policy: SlippagePolicy | None = None,
        dust: DustPolicy | None = None,
        approvals: ApprovalGate | None = None,
    ) -> None:
        self.amm = amm
        self.tokens = tokens
        self.guard = guard
        self.adapter_address = adapter_address
        self.policy = policy or SlippagePolicy()
        self.dust = dust or DustPolicy()
        self.approvals = approvals or ApprovalGate(tokens, guard)
        self.sequencer = RequestSequencer("quote")
        self.quotes: TaggedCache[Quote] = TaggedCache("quote")

    async def _fetch_quote(self, token_in: Token, token_out: Token, amount_in: Amount) -> Amount:
        try:
            raw_out = int(await self.amm.get_quote(token_in, token_out, amount_in.raw))
        except Exception as exc:
            raise QuoteUnavailable(
                f"Quote {token_in.symbol}->{token_out.symbol} failed",
                params={"amount_in": amount_in},
                cause=exc,
            ) from exc
        if raw_out <= 0:
            raise QuoteUnavailable(
                f"Quote {token_in.symbol}->{token_out.symbol} returned no output",
                params={"amount_in": amount_in, "amount_out": raw_out},
            )
        return Amount(token=token_out, raw=raw_out)

    async def quote_swap(
        self,
        token_in: Token,
        token_out: Token,
        amount_in: str,
        tolerance: ToleranceInput | None = None,
    ) -> Quote:
        """Read-only quote tagged with its request sequence number.

        A completion overtaken by a newer request comes back with ``stale=True``
        and does not replace the cached current quote.
        """
        amount = parse_positive(token_in, amount_in, "amount_in")
        tol = SlippageTolerance.parse(tolerance, self.policy) if tolerance is not None else None
        sequence = self.sequencer.next()
        state = self.guard.state

        amount_out = await self._fetch_quote(token_in, token_out, amount)
        quote = Quote(
            amount_in=amount,
            amount_out=amount_out,
            as_of=sequence,
            network_state=state,
            tolerance=tol,
            minimum_output=minimum_output(amount_out, tol) if tol else None,
        )
        applied = self.quotes.offer(sequence, quote.tag, quote, latest=self.sequencer.latest)
        if not applied:
            return replace(quote, stale=True)
        log.debug(
            f"Quote seq={sequence} {amount} -> {amount_out} "
            f"min_out={quote.minimum_output.raw if quote.minimum_output else None} state={state.value}"
        )
        return quote

    def current_quote(self) -> Quote | None:
        return self.quotes.get()

    async def _input_reserve(self, token_in: Token, token_out: Token) -> Amount | None:
        try:
            reserve_in, _ = await self.amm.get_reserves(token_in, token_out)
        except Exception as exc:
            log.warning(f"Reserve read for dust check failed {token_in.symbol}/{token_out.symbol}: {exc}")
            return None
        return Amount(token=token_in, raw=int(reserve_in))

    async def execute_swap(
        self,
        snapshot: WalletSnapshot,
        token_in: Token,
        token_out: Token,
        amount_in: str,
        tolerance: ToleranceInput,
    ) -> SwapResult:
        self.guard.require_correct("swap")

        amount = parse_positive(token_in, amount_in, "amount_in")
        tol = SlippageTolerance.parse(tolerance, self.policy)
        if token_in.key == token_out.key:
            raise InvalidAmount("Input and output tokens must differ", params={"token": token_in.symbol})

        # Always re-quote right before executing; cached quotes are display only.
        sequence = self.sequencer.next()
        amount_out = await self._fetch_quote(token_in, token_out, amount)
        min_out = minimum_output(amount_out, tol)
        quote = Quote(
            amount_in=amount,
            amount_out=amount_out,
            as_of=sequence,
            network_state=self.guard.state,
            tolerance=tol,
            minimum_output=min_out,
        )
        self.quotes.offer(sequence, quote.tag, quote, latest=self.sequencer.latest)
        log.info(
            f"Swap parameters {amount} -> quoted={amount_out} min_out={min_out} "
            f"tolerance={tol} seq={sequence}"
        )

        dust_warning = self.dust.check(amount, await self._input_reserve(token_in, token_out))
        if dust_warning:
            log.warning(f"Dust swap: {dust_warning}")

        approval = await self.approvals.ensure_allowance(
            owner=snapshot.owner,
            spender=self.adapter_address,
            token=token_in,
            required=amount,
        )

        self.guard.require_correct(
            "swap",
            context={
                "approval": approval.to_dict(),
                "allowance_changed": isinstance(approval, ApprovalIssued),
            },
        )
        params = {
            "token_in": token_in.symbol,
            "token_out": token_out.symbol,
            "amount_in": amount,
            "quoted_output": amount_out,
            "minimum_output": min_out,
            "tolerance_pct": str(tol),
        }
        try:
            receipt: ExecutionReceipt = await self.amm.swap_exact_input(token_in, token_out, amount.raw, min_out.raw)
        except Exception as exc:
            log.bind(TRADE_DECISION=True).error(
                f"SWAP FAILED {amount} -> {token_out.symbol} min_out={min_out} cause={exc}"
            )
            raise SwapCallFailed(
                f"swapExactInput {token_in.symbol}->{token_out.symbol} failed",
                params=params,
                cause=exc,
            ) from exc

        received = Amount(token=token_out, raw=int(receipt.amount_out))
        log.bind(TRADE_DECISION=True).info(
            f"SWAP {amount} -> {received} min_out={min_out} tx={receipt.tx_ref}"
        )

        balances = await read_balances(self.tokens, snapshot.owner, (token_in, token_out))
        return SwapResult(
            tx_ref=receipt.tx_ref,
            quote=quote,
            minimum_output=min_out,
            amount_out=received,
            tolerance=tol,
            approval=approval,
            snapshot=snapshot.with_balances(balances, self.guard.state),
            dust_warning=dust_warning,
            block_number=receipt.block_number,
        )
