"""API models."""

from ammapi.models.adapter import AddLiquidityRequest, AdviseRequest, NetworkStatusResponse, SwapRequest

__all__ = ["AddLiquidityRequest", "AdviseRequest", "NetworkStatusResponse", "SwapRequest"]
