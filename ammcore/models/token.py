"""Token and trading-pair models plus the default token registry."""

from __future__ import annotations

from decimal import Decimal
from fractions import Fraction
from typing import Iterable

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ammcore.models.chain import validate_address


class Token(BaseModel):
    """An ERC-20 token; `decimals` fixes the fixed-point scale of its amounts."""

    model_config = ConfigDict(frozen=True)

    address: str
    symbol: str
    decimals: int = Field(ge=0, le=255)

    @field_validator("address")
    @classmethod
    def _validate_address(cls, value: str) -> str:
        return validate_address(value)

    @field_validator("symbol")
    @classmethod
    def _normalize_symbol(cls, value: str) -> str:
        symbol = value.strip().upper()
        if not symbol:
            raise ValueError("Token symbol must not be empty")
        return symbol

    @property
    def key(self) -> str:
        return self.address.lower()


class PairConfig(BaseModel):
    """Per-pair settings; `default_ratio` is token B per one token A, bootstrap only."""

    model_config = ConfigDict(frozen=True)

    token_a: str
    token_b: str
    default_ratio: Decimal | None = Field(default=None, gt=0)

    @field_validator("token_a", "token_b")
    @classmethod
    def _upper(cls, value: str) -> str:
        return value.strip().upper()


SEPOLIA_TOKENS: dict[str, Token] = {
    "WETH": Token(address="0x0A7E11Caa2A5EFBa3bB1f2C67E795b41ddCBC453", symbol="WETH", decimals=18),
    "USDT": Token(address="0x73Fd9eB3281fB56AafFE512bad7468C3e7a2C600", symbol="USDT", decimals=6),
    "DAI": Token(address="0xba735403CcBd5969EDafa4Ec7AFf526C701B6690", symbol="DAI", decimals=18),
}

DEFAULT_PAIRS: tuple[PairConfig, ...] = (
    PairConfig(token_a="WETH", token_b="USDT", default_ratio=Decimal("2000")),
)


class TokenRegistry:
    """Lookup of configured tokens by symbol or address, and of pair defaults."""

    def __init__(self, tokens: Iterable[Token], pairs: Iterable[PairConfig] = ()) -> None:
        self._by_symbol: dict[str, Token] = {}
        self._by_address: dict[str, Token] = {}
        for token in tokens:
            self._by_symbol[token.symbol] = token
            self._by_address[token.key] = token
        self._pairs: dict[tuple[str, str], PairConfig] = {
            (pair.token_a, pair.token_b): pair for pair in pairs
        }

    def __iter__(self):
        return iter(self._by_symbol.values())

    def __len__(self) -> int:
        return len(self._by_symbol)

    def get(self, symbol_or_address: str) -> Token:
        value = symbol_or_address.strip()
        token = self._by_symbol.get(value.upper()) or self._by_address.get(value.lower())
        if token is None:
            raise KeyError(f"Unknown token: {symbol_or_address}")
        return token

    def default_ratio(self, token_a: Token, token_b: Token) -> Fraction | None:
        """Configured bootstrap ratio for the pair, inverted when stored the other way round."""
        pair = self._pairs.get((token_a.symbol, token_b.symbol))
        if pair is not None and pair.default_ratio:
            return Fraction(pair.default_ratio)
        reverse = self._pairs.get((token_b.symbol, token_a.symbol))
        if reverse is not None and reverse.default_ratio:
            return 1 / Fraction(reverse.default_ratio)
        return None


def default_registry() -> TokenRegistry:
    return TokenRegistry(SEPOLIA_TOKENS.values(), DEFAULT_PAIRS)
