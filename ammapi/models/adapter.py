"""Pydantic models for the adapter API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field, field_validator


class _AmountModel(BaseModel):
    @field_validator("*", mode="before")
    @classmethod
    def _strip_strings(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value


class SwapRequest(_AmountModel):
    token_in: str = Field(min_length=1)
    token_out: str = Field(min_length=1)
    amount_in: str = Field(min_length=1, description="Human decimal amount of token_in")
    tolerance_pct: str | None = Field(default=None, description="Slippage tolerance in percent")


class AdviseRequest(_AmountModel):
    token_a: str = Field(min_length=1)
    token_b: str = Field(min_length=1)
    amount_a: str = Field(min_length=1)


class AddLiquidityRequest(_AmountModel):
    token_a: str = Field(min_length=1)
    token_b: str = Field(min_length=1)
    amount_a: str = Field(min_length=1)
    amount_b: str = Field(min_length=1)
    tolerance_pct: str | None = None


class NetworkStatusResponse(BaseModel):
    status: str = "ok"
    state: str
    chain_id: int | None = None
    expected_chain_id: int
    history: list[dict[str, Any]] = Field(default_factory=list)
