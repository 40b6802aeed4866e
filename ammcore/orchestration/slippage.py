"""Slippage utilities."""

from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from fractions import Fraction
from typing import Union

from ammcore.orchestration.amounts import Amount
from ammcore.orchestration.errors import InvalidTolerance

ToleranceInput = Union[str, int, float, Decimal, Fraction]


def _to_fraction(value: ToleranceInput) -> Fraction:
    if isinstance(value, bool):
        raise InvalidTolerance("Slippage tolerance must be a number", params={"tolerance": value})
    if isinstance(value, Fraction):
        return value
    try:
        if isinstance(value, float):
            # Go through the shortest repr so 0.1 means one tenth, not its binary neighbour.
            value = Decimal(repr(value))
        decimal_value = Decimal(str(value).strip()) if not isinstance(value, Decimal) else value
    except (InvalidOperation, ValueError) as exc:
        raise InvalidTolerance(
            f"Slippage tolerance '{value}' is not a number",
            params={"tolerance": value},
            cause=exc,
        ) from exc
    if not decimal_value.is_finite():
        raise InvalidTolerance(
            f"Slippage tolerance '{value}' is not finite",
            params={"tolerance": value},
        )
    return Fraction(decimal_value)


@dataclass(frozen=True)
class SlippagePolicy:
    """Inclusive percentage bounds accepted for a slippage tolerance."""

    min_pct: Fraction = Fraction(1, 10)
    max_pct: Fraction = Fraction(10)

    def __post_init__(self) -> None:
        if self.min_pct <= 0 or self.min_pct > self.max_pct or self.max_pct >= 100:
            raise ValueError(f"Invalid slippage policy bounds [{self.min_pct}, {self.max_pct}]")

    @classmethod
    def from_settings(cls, settings) -> "SlippagePolicy":
        return cls(
            min_pct=Fraction(settings.slippage_min_pct),
            max_pct=Fraction(settings.slippage_max_pct),
        )


@dataclass(frozen=True)
class SlippageTolerance:
    """A slippage tolerance in percent, held as an exact rational."""

    percent: Fraction

    @classmethod
    def parse(cls, value: ToleranceInput, policy: SlippagePolicy | None = None) -> "SlippageTolerance":
        policy = policy or SlippagePolicy()
        percent = _to_fraction(value)
        if percent <= 0 or not policy.min_pct <= percent <= policy.max_pct:
            raise InvalidTolerance(
                f"Slippage tolerance {_format_pct(percent)}% is outside "
                f"[{_format_pct(policy.min_pct)}%, {_format_pct(policy.max_pct)}%]",
                params={
                    "tolerance_pct": _format_pct(percent),
                    "min_pct": _format_pct(policy.min_pct),
                    "max_pct": _format_pct(policy.max_pct),
                },
            )
        return cls(percent=percent)

    @property
    def basis_points(self) -> int:
        return to_basis_points(self)

    def __str__(self) -> str:
        return f"{_format_pct(self.percent)}%"


def minimum_output(quoted_output: Amount, tolerance: SlippageTolerance) -> Amount:
    """Return the guaranteed minimum output: quoted * (1 - pct/100), rounded toward zero.

    Rounding is done in the output token's smallest unit, so the floor is never
    stricter than the user authorized.
    """
    num, den = tolerance.percent.numerator, tolerance.percent.denominator
    raw = quoted_output.raw * (100 * den - num) // (100 * den)
    return Amount(token=quoted_output.token, raw=raw)


def to_basis_points(tolerance: SlippageTolerance) -> int:
    """Convert a percentage tolerance to integer basis points, rounding half up."""
    return math.floor(tolerance.percent * 100 + Fraction(1, 2))


def _format_pct(value: Fraction) -> str:
    if value.denominator == 1:
        return str(value.numerator)
    decimal_value = Decimal(value.numerator) / Decimal(value.denominator)
    return format(decimal_value.normalize(), "f")
