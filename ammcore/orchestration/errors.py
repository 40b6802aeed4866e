"""Typed failures reported by the orchestration layer.

Every failure names the step that failed, because the step decides whether
funds could have moved: nothing moves before ``execution``, and an
``approval`` failure leaves at most an allowance change behind.
"""

from __future__ import annotations

from enum import Enum
from typing import Any


class Step(str, Enum):
    VALIDATION = "validation"
    NETWORK = "network"
    QUOTE = "quote"
    ADVICE = "advice"
    APPROVAL = "approval"
    EXECUTION = "execution"


class OrchestrationError(Exception):
    """Base class for orchestration failures."""

    kind: str = "OrchestrationError"
    default_step: Step = Step.VALIDATION

    def __init__(
        self,
        message: str,
        *,
        step: Step | None = None,
        params: dict[str, Any] | None = None,
        cause: BaseException | str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.step = step or self.default_step
        self.params = dict(params or {})
        self.cause = cause

    @property
    def funds_may_have_moved(self) -> bool:
        return self.step in (Step.APPROVAL, Step.EXECUTION)

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind,
            "step": self.step.value,
            "message": self.message,
            "params": {key: _jsonable(value) for key, value in self.params.items()},
            "cause": str(self.cause) if self.cause is not None else None,
            "funds_may_have_moved": self.funds_may_have_moved,
        }

    def __str__(self) -> str:
        if self.cause is not None:
            return f"[{self.step.value}] {self.message}: {self.cause}"
        return f"[{self.step.value}] {self.message}"


class InvalidAmount(OrchestrationError, ValueError):
    """Malformed, over-precise or non-positive amount; never reaches the network."""

    kind = "InvalidAmount"


class InvalidTolerance(OrchestrationError, ValueError):
    """Slippage tolerance outside the policy bounds."""

    kind = "InvalidTolerance"


class WrongNetwork(OrchestrationError):
    """Session is not on the expected network; mutating flows are blocked."""

    kind = "WrongNetwork"
    default_step = Step.NETWORK


class NetworkSwitchFailed(OrchestrationError):
    """The session layer could not move to the expected network."""

    kind = "NetworkSwitchFailed"
    default_step = Step.NETWORK


class UnknownToken(OrchestrationError, KeyError):
    """Token symbol or address is not in the configured registry."""

    kind = "UnknownToken"


class QuoteUnavailable(OrchestrationError):
    """External read failed; the flow stopped before any mutating call."""

    kind = "QuoteUnavailable"
    default_step = Step.QUOTE


class AdviceUnavailable(OrchestrationError):
    """No reserves to derive a ratio from and no default ratio configured."""

    kind = "AdviceUnavailable"
    default_step = Step.ADVICE


class ApprovalRejected(OrchestrationError):
    """Approval could not be issued or confirmed; the primary action was not attempted."""

    kind = "ApprovalRejected"
    default_step = Step.APPROVAL


class SwapCallFailed(OrchestrationError):
    """The swap call itself failed, including a minimum-output shortfall."""

    kind = "SwapCallFailed"
    default_step = Step.EXECUTION


class LiquidityCallFailed(OrchestrationError):
    """The liquidity call failed for a reason other than an amount-ratio violation."""

    kind = "LiquidityCallFailed"
    default_step = Step.EXECUTION


class RatioMismatch(LiquidityCallFailed):
    """The liquidity call was rejected because the supplied amounts do not match the pool ratio."""

    kind = "RatioMismatch"

    guidance = (
        "Amount ratio does not match the pool. Use the advised second amount for this pair "
        "or widen the slippage tolerance."
    )

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["guidance"] = self.guidance
        return payload


def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (str, int, float, bool)) or value is None:
        return value
    if isinstance(value, dict):
        return {str(key): _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    return str(value)
