"""Reserve snapshots and proportional second-amount advice."""

from __future__ import annotations

from dataclasses import dataclass
from fractions import Fraction

from ammcore.models.token import Token
from ammcore.orchestration.amounts import Amount
from ammcore.orchestration.errors import AdviceUnavailable, InvalidAmount


@dataclass(frozen=True)
class ReservePair:
    """Pool reserves in the order the pair was requested; refreshed, never mutated."""

    reserve_a: Amount
    reserve_b: Amount

    @property
    def has_liquidity(self) -> bool:
        return self.reserve_a.raw > 0 and self.reserve_b.raw > 0

    def reserve_for(self, token: Token) -> Amount:
        if token.key == self.reserve_a.token.key:
            return self.reserve_a
        if token.key == self.reserve_b.token.key:
            return self.reserve_b
        raise KeyError(f"{token.symbol} is not part of this pair")

    def to_dict(self) -> dict[str, object]:
        return {
            "reserve_a": self.reserve_a.to_dict(),
            "reserve_b": self.reserve_b.to_dict(),
            "has_liquidity": self.has_liquidity,
        }


class ReserveRatioAdvisor:
    """Suggests the token B amount that matches a token A input at the pool ratio.

    Advisory only: callers remain free to submit a different second amount.
    """

    def advise(
        self,
        reserves: ReservePair,
        amount_a: Amount,
        default_ratio: Fraction | None = None,
    ) -> Amount:
        token_a = reserves.reserve_a.token
        token_b = reserves.reserve_b.token
        if amount_a.token.key != token_a.key:
            raise InvalidAmount(
                f"Input amount is in {amount_a.token.symbol}, expected {token_a.symbol}",
                params={"amount_a": amount_a},
            )

        if reserves.has_liquidity:
            # Multiply before dividing so token B keeps its full precision.
            raw_b = amount_a.raw * reserves.reserve_b.raw // reserves.reserve_a.raw
            return Amount(token=token_b, raw=raw_b)

        if default_ratio is None:
            raise AdviceUnavailable(
                f"Pool {token_a.symbol}/{token_b.symbol} has no liquidity and no default ratio is configured",
                params={"pair": f"{token_a.symbol}/{token_b.symbol}"},
            )
        if default_ratio <= 0:
            raise AdviceUnavailable(
                f"Default ratio for {token_a.symbol}/{token_b.symbol} must be positive",
                params={"default_ratio": str(default_ratio)},
            )
        return self.apply_ratio(amount_a, token_b, default_ratio)

    @staticmethod
    def apply_ratio(amount_a: Amount, token_b: Token, ratio: Fraction) -> Amount:
        """Scale ``amount_a`` by a human-unit ratio (token B per one token A), rounding toward zero."""
        scale = 10 ** token_b.decimals * ratio.numerator
        divisor = 10 ** amount_a.token.decimals * ratio.denominator
        return Amount(token=token_b, raw=amount_a.raw * scale // divisor)
