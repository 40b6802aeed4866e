"""Adapter router: wallet balances and event log."""

from __future__ import annotations

from fastapi import APIRouter, Query

from ammapi.services.adapter_service import AdapterServiceUnavailable, adapter_service_manager
from ammcore.orchestration.errors import OrchestrationError

router = APIRouter()


@router.get("/balances")
async def get_balances(symbols: list[str] | None = Query(default=None)):
    try:
        service = await adapter_service_manager.get()
        snapshot = await service.refresh_balances(symbols)
    except (OrchestrationError, AdapterServiceUnavailable) as exc:
        return adapter_service_manager.error_response(exc)
    return {"status": "ok", "wallet": snapshot.to_dict()}


@router.get("/logs")
async def list_logs(limit: int = Query(100, ge=1, le=1000)):
    events = adapter_service_manager.list_logs(limit=limit)
    return {"status": "ok", "count": len(events), "events": events}


@router.delete("/logs")
async def clear_logs():
    adapter_service_manager.clear_logs()
    return {"status": "ok", "cleared": True}
