"""Adapter router: network state and switching."""

from __future__ import annotations

from fastapi import APIRouter

from ammapi.models.adapter import NetworkStatusResponse
from ammapi.services.adapter_service import AdapterServiceUnavailable, adapter_service_manager
from ammcore.orchestration.errors import OrchestrationError

router = APIRouter()


def _status(service) -> NetworkStatusResponse:
    return NetworkStatusResponse(**{"status": "ok", **service.guard.describe()})


@router.get("/network", response_model=NetworkStatusResponse)
async def get_network():
    try:
        service = await adapter_service_manager.get()
    except AdapterServiceUnavailable as exc:
        return adapter_service_manager.error_response(exc)
    return _status(service)


@router.post("/network/check", response_model=NetworkStatusResponse)
async def check_network():
    try:
        service = await adapter_service_manager.get()
    except AdapterServiceUnavailable as exc:
        return adapter_service_manager.error_response(exc)
    await service.guard.initial_check(service.session)
    return _status(service)


@router.post("/network/switch", response_model=NetworkStatusResponse)
async def switch_network():
    try:
        service = await adapter_service_manager.get()
        await service.switch_network()
    except (OrchestrationError, AdapterServiceUnavailable) as exc:
        return adapter_service_manager.error_response(exc)
    adapter_service_manager.log_event("INFO", "Network switched", {"chain_id": service.guard.chain_id})
    return _status(service)
