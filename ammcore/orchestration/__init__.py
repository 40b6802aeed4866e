"""Orchestration layer: amount arithmetic, approvals, network gating and the swap/liquidity flows."""

from ammcore.orchestration.amounts import (
    Amount,
    normalize,
    quantize_down,
    to_base_units,
    to_decimal_string,
    to_display_string,
)
from ammcore.orchestration.approval import AlreadySufficient, ApprovalGate, ApprovalIssued
from ammcore.orchestration.errors import (
    AdviceUnavailable,
    ApprovalRejected,
    InvalidAmount,
    InvalidTolerance,
    LiquidityCallFailed,
    NetworkSwitchFailed,
    OrchestrationError,
    QuoteUnavailable,
    RatioMismatch,
    Step,
    SwapCallFailed,
    UnknownToken,
    WrongNetwork,
)
from ammcore.orchestration.liquidity import Advice, LiquidityOrchestrator, LiquidityResult
from ammcore.orchestration.network import NetworkGuard, NetworkState, ReadResult
from ammcore.orchestration.reserves import ReservePair, ReserveRatioAdvisor
from ammcore.orchestration.service import AdapterService
from ammcore.orchestration.slippage import SlippagePolicy, SlippageTolerance, minimum_output, to_basis_points
from ammcore.orchestration.swap import DustPolicy, Quote, SwapOrchestrator, SwapResult
from ammcore.orchestration.wallet import WalletSnapshot

__all__ = [
    "AdapterService",
    "Advice",
    "AdviceUnavailable",
    "AlreadySufficient",
    "Amount",
    "ApprovalGate",
    "ApprovalIssued",
    "ApprovalRejected",
    "DustPolicy",
    "InvalidAmount",
    "InvalidTolerance",
    "LiquidityCallFailed",
    "LiquidityOrchestrator",
    "LiquidityResult",
    "NetworkGuard",
    "NetworkState",
    "NetworkSwitchFailed",
    "OrchestrationError",
    "Quote",
    "QuoteUnavailable",
    "RatioMismatch",
    "ReadResult",
    "ReservePair",
    "ReserveRatioAdvisor",
    "SlippagePolicy",
    "SlippageTolerance",
    "Step",
    "SwapCallFailed",
    "SwapOrchestrator",
    "SwapResult",
    "UnknownToken",
    "WalletSnapshot",
    "WrongNetwork",
    "minimum_output",
    "normalize",
    "quantize_down",
    "to_base_units",
    "to_basis_points",
    "to_decimal_string",
    "to_display_string",
]
