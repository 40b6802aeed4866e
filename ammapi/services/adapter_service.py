"""Adapter service lifecycle, error mapping and event log for the API."""

from __future__ import annotations

import asyncio
import json
from datetime import datetime, timezone
from typing import Any

from fastapi.responses import JSONResponse
from redis import Redis

from ammcore.logging import log
from ammcore.orchestration.errors import OrchestrationError, Step
from ammcore.orchestration.service import AdapterService
from ammcore.settings.config import settings

STATUS_BY_STEP = {
    Step.VALIDATION: 400,
    Step.NETWORK: 409,
    Step.ADVICE: 422,
    Step.QUOTE: 502,
    Step.APPROVAL: 502,
    Step.EXECUTION: 502,
}


class AdapterServiceUnavailable(Exception):
    """Raised when the adapter service cannot be built from settings."""


class AdapterServiceManager:
    """Builds one AdapterService per process and records an event trail."""

    LOGS_KEY = "amm:events"

    def __init__(self) -> None:
        self._redis = self._init_redis()
        self._service: AdapterService | None = None
        self._lock = asyncio.Lock()
        self._in_memory_logs: list[dict[str, Any]] = []

    @staticmethod
    def _init_redis() -> Redis | None:
        try:
            client = Redis(
                host=settings.redis_host,
                port=settings.redis_port,
                db=settings.redis_db,
                decode_responses=True,
            )
            client.ping()
            return client
        except Exception as exc:
            log.warning(f"Adapter service Redis unavailable: {exc}")
            return None

    @staticmethod
    def _now_iso() -> str:
        return datetime.now(timezone.utc).isoformat()

    async def get(self) -> AdapterService:
        if self._service is not None:
            return self._service
        async with self._lock:
            if self._service is None:
                try:
                    service = AdapterService.from_settings(settings)
                except Exception as exc:
                    raise AdapterServiceUnavailable(f"Adapter service unavailable: {exc}") from exc
                await service.initialize()
                self._service = service
                self.log_event(
                    "INFO",
                    "Adapter service initialized",
                    {"owner": service.snapshot.owner, "network_state": service.current_network_state().value},
                )
        return self._service

    async def shutdown(self) -> None:
        service, self._service = self._service, None
        if service is None:
            return
        stop_watching = getattr(service.session, "stop_watching", None)
        if stop_watching is not None:
            await stop_watching()
        log.info("Adapter service stopped")

    def error_response(self, exc: Exception) -> JSONResponse:
        if isinstance(exc, OrchestrationError):
            payload = exc.to_dict()
            status_code = STATUS_BY_STEP.get(exc.step, 500)
        elif isinstance(exc, AdapterServiceUnavailable):
            payload = {"kind": "ServiceUnavailable", "message": str(exc)}
            status_code = 503
        else:
            raise exc
        self.log_event("ERROR" if status_code >= 500 else "WARNING", payload["message"], {"error": payload})
        return JSONResponse(status_code=status_code, content={"success": False, "error": payload})

    def log_event(self, level: str, message: str, context: dict[str, Any] | None = None) -> dict[str, Any]:
        event = {
            "timestamp": self._now_iso(),
            "level": str(level).upper(),
            "message": message,
            "context": context or {},
        }
        self._in_memory_logs.append(event)
        self._in_memory_logs = self._in_memory_logs[-500:]
        if self._redis:
            try:
                self._redis.lpush(self.LOGS_KEY, json.dumps(event, default=str))
                self._redis.ltrim(self.LOGS_KEY, 0, 999)
            except Exception as exc:
                log.debug(f"Failed to push adapter event to Redis: {exc}")
        return event

    def list_logs(self, limit: int = 100) -> list[dict[str, Any]]:
        if self._redis:
            try:
                rows = self._redis.lrange(self.LOGS_KEY, 0, max(0, limit - 1))
                items = [json.loads(row) for row in rows]
                if items:
                    return items
            except Exception as exc:
                log.debug(f"Failed to read adapter events from Redis: {exc}")
        return list(reversed(self._in_memory_logs))[:limit]

    def clear_logs(self) -> None:
        self._in_memory_logs.clear()
        if self._redis:
            try:
                self._redis.delete(self.LOGS_KEY)
            except Exception as exc:
                log.debug(f"Failed to clear adapter events in Redis: {exc}")


adapter_service_manager = AdapterServiceManager()
