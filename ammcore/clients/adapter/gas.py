"""Gas limit and EIP-1559 fee parameters for adapter transactions."""

from __future__ import annotations

from dataclasses import dataclass

DEFAULT_PRIORITY_FEE_WEI = 1_500_000_000
MIN_GAS_LIMIT = 21_000


@dataclass(frozen=True)
class GasQuote:
    limit: int
    priority_fee: int
    max_fee: int

    @property
    def max_cost_wei(self) -> int:
        return self.limit * self.max_fee

    def as_tx_fields(self) -> dict[str, int]:
        return {
            "type": 2,
            "gas": self.limit,
            "maxFeePerGas": self.max_fee,
            "maxPriorityFeePerGas": self.priority_fee,
        }


class GasPricer:
    """Buffers node gas estimates and prices them at twice the base fee plus a boosted tip."""

    def __init__(self, w3, limit_buffer: float = 1.2, tip_multiplier: float = 1.15) -> None:
        self.w3 = w3
        self.limit_buffer = limit_buffer
        self.tip_multiplier = tip_multiplier

    def limit_for(self, function, sender: str, fallback: int) -> int:
        try:
            estimate = function.estimate_gas({"from": sender})
        except Exception:
            # Reverting or rate-limited estimate; simulation already vetted the call
            return int(fallback)
        return max(MIN_GAS_LIMIT, int(int(estimate) * self.limit_buffer))

    def _tip(self) -> int:
        try:
            suggested = int(self.w3.eth.max_priority_fee)
        except Exception:
            suggested = DEFAULT_PRIORITY_FEE_WEI
        return max(1, int(suggested * self.tip_multiplier))

    def quote(self, limit: int) -> GasQuote:
        latest = self.w3.eth.get_block("latest")
        base_fee = int(latest.get("baseFeePerGas") or 0)
        tip = self._tip()
        return GasQuote(limit=int(limit), priority_fee=tip, max_fee=2 * base_fee + tip)

    def affordable(self, sender: str, quote: GasQuote) -> bool:
        return int(self.w3.eth.get_balance(sender)) >= quote.max_cost_wei
