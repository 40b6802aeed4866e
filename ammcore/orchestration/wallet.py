"""Explicit wallet state passed into and returned from orchestration calls."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping

from ammcore.logging import log
from ammcore.models.token import Token
from ammcore.orchestration.amounts import Amount
from ammcore.orchestration.collaborators import TokenCollaborator
from ammcore.orchestration.network import NetworkState


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class WalletSnapshot:
    """Balances by token symbol; ``None`` marks a balance that could not be read."""

    owner: str
    balances: Mapping[str, Amount | None] = field(default_factory=dict)
    network_state: NetworkState = NetworkState.UNKNOWN
    as_of: str = field(default_factory=_now_iso)

    def balance(self, symbol: str) -> Amount | None:
        return self.balances.get(symbol.upper())

    def with_balances(self, updates: Mapping[str, Amount | None], network_state: NetworkState) -> "WalletSnapshot":
        merged = dict(self.balances)
        merged.update(updates)
        return WalletSnapshot(owner=self.owner, balances=merged, network_state=network_state)

    def to_dict(self, places: int = 4) -> dict[str, Any]:
        return {
            "owner": self.owner,
            "network_state": self.network_state.value,
            "as_of": self.as_of,
            "balances": {
                symbol: (
                    {**amount.to_dict(), "display": amount.display(places)} if amount is not None else None
                )
                for symbol, amount in self.balances.items()
            },
        }


async def read_balances(
    tokens: TokenCollaborator,
    owner: str,
    watched: Iterable[Token],
) -> dict[str, Amount | None]:
    """Read balances concurrently; a failed read is logged and reported as ``None``."""
    watched = list(watched)

    async def _read(token: Token) -> Amount | None:
        try:
            raw = await tokens.balance_of(token, owner)
        except Exception as exc:
            log.warning(f"Balance read failed token={token.symbol} owner={owner}: {exc}")
            return None
        return Amount(token=token, raw=int(raw))

    results = await asyncio.gather(*(_read(token) for token in watched))
    return {token.symbol: result for token, result in zip(watched, results)}
