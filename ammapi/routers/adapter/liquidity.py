"""Adapter router: reserves, second-amount advice and liquidity provision."""

from __future__ import annotations

from fastapi import APIRouter, Query

from ammapi.models.adapter import AddLiquidityRequest, AdviseRequest
from ammapi.services.adapter_service import AdapterServiceUnavailable, adapter_service_manager
from ammcore.orchestration.errors import OrchestrationError

router = APIRouter()


@router.get("/reserves")
async def get_reserves(token_a: str = Query(...), token_b: str = Query(...)):
    try:
        service = await adapter_service_manager.get()
        result = await service.read_reserves(token_a, token_b)
    except (OrchestrationError, AdapterServiceUnavailable) as exc:
        return adapter_service_manager.error_response(exc)
    return {
        "status": "ok",
        "reserves": result.value.to_dict(),
        "network_state": result.network_state.value,
        "as_of": result.sequence,
        "stale": result.stale,
    }


@router.post("/liquidity/advise")
async def advise_second_amount(payload: AdviseRequest):
    try:
        service = await adapter_service_manager.get()
        advice = await service.advise_second_amount(payload.token_a, payload.token_b, payload.amount_a)
    except (OrchestrationError, AdapterServiceUnavailable) as exc:
        return adapter_service_manager.error_response(exc)
    return {"status": "ok", "advice": advice.to_dict()}


@router.post("/liquidity/add")
async def add_liquidity(payload: AddLiquidityRequest):
    adapter_service_manager.log_event("INFO", "Add liquidity requested", payload.model_dump())
    try:
        service = await adapter_service_manager.get()
        result = await service.execute_add_liquidity(
            payload.token_a,
            payload.token_b,
            payload.amount_a,
            payload.amount_b,
            payload.tolerance_pct,
        )
    except (OrchestrationError, AdapterServiceUnavailable) as exc:
        return adapter_service_manager.error_response(exc)
    adapter_service_manager.log_event(
        "INFO",
        "Liquidity added",
        {"tx_ref": result.tx_ref, "liquidity_minted": str(result.liquidity_minted)},
    )
    return {"status": "ok", **result.to_dict()}
