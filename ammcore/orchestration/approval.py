"""Allowance check and exact-amount approval before a token transfer."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

from ammcore.logging import log
from ammcore.models.token import Token
from ammcore.orchestration.amounts import Amount
from ammcore.orchestration.collaborators import TokenCollaborator
from ammcore.orchestration.errors import ApprovalRejected
from ammcore.orchestration.network import NetworkGuard


@dataclass(frozen=True)
class AlreadySufficient:
    token: Token
    allowance: Amount

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": "already_sufficient",
            "token": self.token.symbol,
            "allowance": self.allowance.to_dict(),
        }


@dataclass(frozen=True)
class ApprovalIssued:
    token: Token
    tx_ref: str
    approved: Amount
    confirmed_allowance: Amount

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": "approval_issued",
            "token": self.token.symbol,
            "tx_ref": self.tx_ref,
            "approved": self.approved.to_dict(),
            "confirmed_allowance": self.confirmed_allowance.to_dict(),
        }


ApprovalOutcome = Union[AlreadySufficient, ApprovalIssued]


class ApprovalGate:
    """Ensures ``spender`` may move at least ``required`` of ``owner``'s tokens.

    The approval is for exactly the required amount, never an unbounded one.
    It is reported as issued only after the confirmation receipt arrived and a
    fresh allowance read shows it in effect.
    """

    def __init__(self, tokens: TokenCollaborator, guard: NetworkGuard) -> None:
        self.tokens = tokens
        self.guard = guard

    async def _read_allowance(self, owner: str, spender: str, token: Token, phase: str) -> Amount:
        try:
            raw = await self.tokens.allowance(token, owner, spender)
        except Exception as exc:
            raise ApprovalRejected(
                f"Could not read {token.symbol} allowance ({phase})",
                params={"token": token.symbol, "owner": owner, "spender": spender},
                cause=exc,
            ) from exc
        return Amount(token=token, raw=int(raw))

    async def ensure_allowance(self, owner: str, spender: str, token: Token, required: Amount) -> ApprovalOutcome:
        if required.token.key != token.key:
            raise ValueError(f"Required amount is in {required.token.symbol}, expected {token.symbol}")

        current = await self._read_allowance(owner, spender, token, "before approval")
        if current >= required:
            log.debug(
                f"Allowance sufficient token={token.symbol} allowance={current.raw} required={required.raw}"
            )
            return AlreadySufficient(token=token, allowance=current)

        self.guard.require_correct("approve")
        params = {
            "token": token.symbol,
            "spender": spender,
            "required": required,
            "allowance": current,
        }
        log.info(
            f"Issuing approval token={token.symbol} spender={spender} "
            f"amount={required.raw} current_allowance={current.raw}"
        )

        try:
            tx_ref = await self.tokens.approve(token, spender, required.raw)
        except Exception as exc:
            raise ApprovalRejected(f"{token.symbol} approval was not submitted", params=params, cause=exc) from exc

        params["tx_ref"] = tx_ref
        try:
            confirmation = await self.tokens.wait_for_confirmation(tx_ref)
        except Exception as exc:
            raise ApprovalRejected(f"{token.symbol} approval was not confirmed", params=params, cause=exc) from exc
        if not confirmation.success:
            raise ApprovalRejected(
                f"{token.symbol} approval transaction reverted",
                params=params,
                cause=f"tx {tx_ref} failed",
            )

        confirmed = await self._read_allowance(owner, spender, token, "after approval")
        if confirmed < required:
            params["confirmed_allowance"] = confirmed
            raise ApprovalRejected(
                f"{token.symbol} allowance is {confirmed.raw} after confirmed approval, required {required.raw}",
                params=params,
            )

        log.info(f"Approval confirmed token={token.symbol} tx={tx_ref} allowance={confirmed.raw}")
        return ApprovalIssued(token=token, tx_ref=tx_ref, approved=required, confirmed_allowance=confirmed)
