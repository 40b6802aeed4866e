"""Conversion between human decimal strings and fixed-point token amounts.

Amounts are plain integers in a token's smallest unit. Decimal strings are only
a presentation form; conversion in either direction is exact, and input with
more fractional digits than the token supports is rejected rather than
truncated. Truncation is available only through :func:`quantize_down`, which
logs what it dropped.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Final

from ammcore.logging import log
from ammcore.models.token import Token
from ammcore.orchestration.errors import InvalidAmount

DECIMAL_REGEX: Final[re.Pattern[str]] = re.compile(r"^(?P<whole>[0-9]*)(?:\.(?P<frac>[0-9]*))?$")

MAX_RAW_AMOUNT: Final[int] = 2**256 - 1
MAX_WHOLE_DIGITS: Final[int] = 78

# Rendered in blocks so huge values stay clear of int/str digit limits
_RENDER_BLOCK_DIGITS: Final[int] = 1000
_RENDER_BLOCK: Final[int] = 10**_RENDER_BLOCK_DIGITS


def _split(decimal_string: str) -> tuple[str, str]:
    if not isinstance(decimal_string, str):
        raise InvalidAmount(
            f"Amount must be a decimal string, got {type(decimal_string).__name__}",
            params={"amount": decimal_string},
        )
    text = decimal_string.strip()
    match = DECIMAL_REGEX.match(text)
    if not match or not (match.group("whole") or match.group("frac")):
        raise InvalidAmount(
            f"'{decimal_string}' is not a non-negative decimal number",
            params={"amount": decimal_string},
        )
    return match.group("whole") or "0", match.group("frac") or ""


def _check_decimals(decimals: int) -> None:
    if isinstance(decimals, bool) or not isinstance(decimals, int) or not 0 <= decimals <= 255:
        raise ValueError(f"decimals must be an integer in [0, 255], got {decimals!r}")


def to_base_units(decimal_string: str, decimals: int) -> int:
    """Parse a human decimal string into the token's smallest unit.

    Raises InvalidAmount for anything that is not a plain non-negative decimal
    (signs, exponents, ``nan``/``inf`` and separators included), for strings
    carrying more fractional digits than ``decimals`` and for values that do
    not fit a uint256.
    """
    _check_decimals(decimals)
    whole, frac = _split(decimal_string)
    if len(frac) > decimals:
        raise InvalidAmount(
            f"'{decimal_string}' has {len(frac)} fractional digits; token supports {decimals}",
            params={"amount": decimal_string, "decimals": decimals},
        )
    digits = whole.lstrip("0") or "0"
    if len(digits) > MAX_WHOLE_DIGITS:
        raise InvalidAmount(
            f"Amount has {len(digits)} integer digits; at most {MAX_WHOLE_DIGITS} fit a uint256",
            params={"integer_digits": len(digits), "decimals": decimals},
        )
    raw = int(digits) * 10**decimals + int(frac.ljust(decimals, "0") or "0")
    if raw > MAX_RAW_AMOUNT:
        raise InvalidAmount(
            f"'{decimal_string.strip()}' exceeds the uint256 range at {decimals} decimals",
            params={"amount": decimal_string, "decimals": decimals},
        )
    return raw


def _render_int(value: int) -> str:
    if value < _RENDER_BLOCK:
        return str(value)
    blocks: list[int] = []
    while value:
        value, block = divmod(value, _RENDER_BLOCK)
        blocks.append(block)
    head = str(blocks.pop())
    return head + "".join(f"{block:0{_RENDER_BLOCK_DIGITS}d}" for block in reversed(blocks))


def to_decimal_string(raw: int, decimals: int) -> str:
    """Render a smallest-unit integer with exactly ``decimals`` fractional digits."""
    _check_decimals(decimals)
    if isinstance(raw, bool) or not isinstance(raw, int) or raw < 0:
        raise ValueError(f"raw amount must be a non-negative integer, got {raw!r}")
    if decimals == 0:
        return _render_int(raw)
    whole, frac = divmod(raw, 10**decimals)
    return f"{_render_int(whole)}.{frac:0{decimals}d}"


def normalize(decimal_string: str, decimals: int) -> str:
    return to_decimal_string(to_base_units(decimal_string, decimals), decimals)


def quantize_down(decimal_string: str, decimals: int) -> tuple[str, bool]:
    """Explicitly truncate excess fractional digits toward zero.

    Returns the normalized truncated string and whether anything was dropped.
    """
    _check_decimals(decimals)
    whole, frac = _split(decimal_string)
    kept = frac[:decimals]
    dropped = frac[decimals:]
    truncated = normalize(f"{whole}.{kept}" if kept else whole, decimals)
    if dropped.strip("0"):
        log.warning(
            f"Rounded amount down to token precision amount={decimal_string.strip()} "
            f"decimals={decimals} result={truncated} dropped_digits={dropped}"
        )
        return truncated, True
    return truncated, False


def to_display_string(raw: int, decimals: int, places: int = 4) -> str:
    """Short display form, rounded toward zero to ``places`` fractional digits."""
    full = to_decimal_string(raw, decimals)
    if "." not in full or places >= decimals:
        return full
    whole, frac = full.split(".")
    return f"{whole}.{frac[:places]}" if places > 0 else whole


@dataclass(frozen=True)
class Amount:
    """An integer amount in a token's smallest unit, always tagged with that token."""

    token: Token
    raw: int

    def __post_init__(self) -> None:
        if isinstance(self.raw, bool) or not isinstance(self.raw, int):
            raise TypeError(f"Amount.raw must be an int, got {type(self.raw).__name__}")
        if self.raw < 0:
            raise ValueError(f"Amount must be non-negative, got {self.raw}")

    @classmethod
    def parse(cls, token: Token, decimal_string: str) -> "Amount":
        return cls(token=token, raw=to_base_units(decimal_string, token.decimals))

    @classmethod
    def zero(cls, token: Token) -> "Amount":
        return cls(token=token, raw=0)

    @property
    def decimal_string(self) -> str:
        return to_decimal_string(self.raw, self.token.decimals)

    def display(self, places: int = 4) -> str:
        return to_display_string(self.raw, self.token.decimals, places)

    def is_positive(self) -> bool:
        return self.raw > 0

    def _same_token(self, other: "Amount") -> None:
        if not isinstance(other, Amount):
            raise TypeError(f"Expected Amount, got {type(other).__name__}")
        if other.token.key != self.token.key:
            raise ValueError(f"Token mismatch: {self.token.symbol} vs {other.token.symbol}")

    def __lt__(self, other: "Amount") -> bool:
        self._same_token(other)
        return self.raw < other.raw

    def __le__(self, other: "Amount") -> bool:
        self._same_token(other)
        return self.raw <= other.raw

    def __gt__(self, other: "Amount") -> bool:
        self._same_token(other)
        return self.raw > other.raw

    def __ge__(self, other: "Amount") -> bool:
        self._same_token(other)
        return self.raw >= other.raw

    def to_dict(self) -> dict[str, object]:
        return {
            "token": self.token.symbol,
            "address": self.token.address,
            "raw": str(self.raw),
            "amount": self.decimal_string,
        }

    def __str__(self) -> str:
        return f"{self.decimal_string} {self.token.symbol}"
