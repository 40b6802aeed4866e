"""Adapter router: quotes and swaps."""

from __future__ import annotations

from fastapi import APIRouter

from ammapi.models.adapter import SwapRequest
from ammapi.services.adapter_service import AdapterServiceUnavailable, adapter_service_manager
from ammcore.orchestration.errors import OrchestrationError

router = APIRouter()


@router.post("/swap/quote")
async def quote_swap(payload: SwapRequest):
    try:
        service = await adapter_service_manager.get()
        quote = await service.quote_swap(
            payload.token_in,
            payload.token_out,
            payload.amount_in,
            payload.tolerance_pct,
        )
    except (OrchestrationError, AdapterServiceUnavailable) as exc:
        return adapter_service_manager.error_response(exc)
    return {"status": "ok", "quote": quote.to_dict()}


@router.post("/swap/execute")
async def execute_swap(payload: SwapRequest):
    adapter_service_manager.log_event("INFO", "Swap requested", payload.model_dump())
    try:
        service = await adapter_service_manager.get()
        result = await service.execute_swap(
            payload.token_in,
            payload.token_out,
            payload.amount_in,
            payload.tolerance_pct,
        )
    except (OrchestrationError, AdapterServiceUnavailable) as exc:
        return adapter_service_manager.error_response(exc)
    body = result.to_dict()
    adapter_service_manager.log_event(
        "INFO",
        "Swap completed",
        {"tx_ref": result.tx_ref, "amount_out": body["amount_out"]["amount"], "dust_warning": result.dust_warning},
    )
    return {"status": "ok", **body}
