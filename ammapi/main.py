"""
AMM Adapter Client - HTTP API
Quotes, swaps and paired liquidity through the adapter contract.
"""

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from ammapi.router_registry import include_routers
from ammapi.services.adapter_service import AdapterServiceUnavailable, adapter_service_manager
from ammcore.logging import log
from ammcore.settings.config import settings

app = FastAPI(
    title=settings.app_name,
    description="Slippage-protected swaps and liquidity provision through an AMM adapter contract",
    version=settings.app_version,
)


@app.on_event("startup")
async def startup_event():
    """Build the adapter service and run the initial network check."""
    try:
        service = await adapter_service_manager.get()
        log.info(f"Adapter service started network_state={service.current_network_state().value}")
    except AdapterServiceUnavailable as exc:
        log.warning(f"Adapter service startup init failed: {exc}")
        return
    start_watching = getattr(service.session, "start_watching", None)
    if start_watching is not None:
        start_watching()


@app.on_event("shutdown")
async def shutdown_event():
    """Stop the chain-change watcher."""
    await adapter_service_manager.shutdown()


@app.api_route("/health", methods=["GET", "HEAD"])
async def health_check():
    """Health check endpoint"""
    return JSONResponse(
        status_code=200,
        content={
            "status": "ok",
            "service": "amm-adapter-client",
            "version": settings.app_version,
            "network": settings.network_name,
        },
    )


include_routers(app)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "ammapi.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
