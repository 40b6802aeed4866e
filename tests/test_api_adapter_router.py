import asyncio
import json

import pytest
from fastapi.testclient import TestClient

from ammapi.main import app
from ammapi.models.adapter import AddLiquidityRequest, AdviseRequest, SwapRequest
from ammapi.routers.adapter import liquidity as adapter_liquidity_router
from ammapi.routers.adapter import network as adapter_network_router
from ammapi.routers.adapter import swap as adapter_swap_router
from ammapi.routers.adapter import wallet as adapter_wallet_router
from ammapi.services.adapter_service import AdapterServiceUnavailable, adapter_service_manager
from ammcore.orchestration.service import AdapterService

from tests.conftest import ADAPTER, EXPECTED_CHAIN_ID, OTHER_CHAIN_ID, OWNER, USDT, WETH


@pytest.fixture
def live_service(monkeypatch, chain, session, registry):
    service = AdapterService(
        amm=chain,
        tokens=chain,
        session=session,
        owner=OWNER,
        adapter_address=ADAPTER,
        expected_chain_id=EXPECTED_CHAIN_ID,
        registry=registry,
    )
    asyncio.run(service.initialize())

    async def _get():
        return service

    monkeypatch.setattr(adapter_service_manager, "get", _get)
    monkeypatch.setattr(adapter_service_manager, "_redis", None)
    monkeypatch.setattr(adapter_service_manager, "_in_memory_logs", [])
    return service


def _body(response) -> dict:
    return json.loads(response.body)


def test_health_and_routes_registered():
    client = TestClient(app)
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"

    paths = {route.path for route in app.routes}
    assert "/api/adapter/swap/quote" in paths
    assert "/api/adapter/liquidity/add" in paths
    assert "/api/adapter/network/switch" in paths


def test_network_status(live_service):
    status = asyncio.run(adapter_network_router.get_network())
    assert status.state == "correct"
    assert status.expected_chain_id == EXPECTED_CHAIN_ID
    assert status.history[-1]["source"] == "initial_check"


def test_network_switch(live_service, session):
    session.emit(OTHER_CHAIN_ID)
    status = asyncio.run(adapter_network_router.switch_network())
    assert status.state == "correct"
    assert session.switch_requests == [EXPECTED_CHAIN_ID]


def test_quote_swap(live_service, chain):
    chain.quote_out = 2_000_123_456
    payload = asyncio.run(
        adapter_swap_router.quote_swap(
            SwapRequest(token_in="WETH", token_out="USDT", amount_in=" 1.0 ", tolerance_pct="1")
        )
    )
    assert payload["status"] == "ok"
    assert payload["quote"]["minimum_output"]["amount"] == "1980.122221"
    assert payload["quote"]["network_state"] == "correct"


def test_execute_swap_logs_events(live_service, chain):
    chain.quote_out = 2_000_123_456
    payload = asyncio.run(
        adapter_swap_router.execute_swap(SwapRequest(token_in="WETH", token_out="USDT", amount_in="1"))
    )
    assert payload["status"] == "ok"
    assert payload["tx_ref"] == "0xswap"

    logs = asyncio.run(adapter_wallet_router.list_logs(limit=10))
    messages = [event["message"] for event in logs["events"]]
    assert messages[:2] == ["Swap completed", "Swap requested"]


def test_wrong_network_maps_to_conflict(live_service, session, chain):
    session.emit(OTHER_CHAIN_ID)
    chain.calls.clear()

    response = asyncio.run(
        adapter_swap_router.execute_swap(SwapRequest(token_in="WETH", token_out="USDT", amount_in="1"))
    )

    assert response.status_code == 409
    body = _body(response)
    assert body["success"] is False
    assert body["error"]["kind"] == "WrongNetwork"
    assert body["error"]["funds_may_have_moved"] is False
    assert chain.calls == []


def test_invalid_amount_maps_to_bad_request(live_service):
    response = asyncio.run(
        adapter_swap_router.quote_swap(SwapRequest(token_in="WETH", token_out="USDT", amount_in="1e3"))
    )
    assert response.status_code == 400
    assert _body(response)["error"]["kind"] == "InvalidAmount"


def test_unknown_token_maps_to_bad_request(live_service):
    response = asyncio.run(adapter_liquidity_router.get_reserves(token_a="WETH", token_b="SHIB"))
    assert response.status_code == 400
    assert _body(response)["error"]["kind"] == "UnknownToken"


def test_reserves_and_advice(live_service, chain):
    chain.set_reserves(WETH, USDT, 10 * 10**18, 20_000 * 10**6)

    reserves = asyncio.run(adapter_liquidity_router.get_reserves(token_a="WETH", token_b="USDT"))
    assert reserves["reserves"]["has_liquidity"] is True

    advice = asyncio.run(
        adapter_liquidity_router.advise_second_amount(AdviseRequest(token_a="WETH", token_b="USDT", amount_a="2.5"))
    )
    assert advice["advice"]["amount_b"]["amount"] == "5000.000000"
    assert advice["advice"]["source"] == "reserves"


def test_ratio_mismatch_maps_to_bad_gateway_with_guidance(live_service, chain):
    chain.failures["add_liquidity"] = RuntimeError("execution reverted: INSUFFICIENT_A_AMOUNT")

    response = asyncio.run(
        adapter_liquidity_router.add_liquidity(
            AddLiquidityRequest(token_a="WETH", token_b="USDT", amount_a="1", amount_b="2500", tolerance_pct="0.5")
        )
    )

    assert response.status_code == 502
    error = _body(response)["error"]
    assert error["kind"] == "RatioMismatch"
    assert error["params"]["tolerance_bps"] == 50
    assert "guidance" in error


def test_balances(live_service, chain):
    chain.balances = {"WETH": 2 * 10**18}
    payload = asyncio.run(adapter_wallet_router.get_balances(symbols=["WETH"]))
    assert payload["wallet"]["balances"]["WETH"]["display"] == "2.0000"


def test_service_unavailable(monkeypatch):
    async def _get():
        raise AdapterServiceUnavailable("Adapter service unavailable: Missing private key")

    monkeypatch.setattr(adapter_service_manager, "get", _get)
    monkeypatch.setattr(adapter_service_manager, "_redis", None)

    response = asyncio.run(adapter_network_router.get_network())
    assert response.status_code == 503
    assert _body(response)["error"]["kind"] == "ServiceUnavailable"


def test_clear_logs(live_service):
    adapter_service_manager.log_event("INFO", "something")
    asyncio.run(adapter_wallet_router.clear_logs())
    assert adapter_service_manager.list_logs() == []


def test_shutdown_stops_chain_watcher(monkeypatch):
    stopped = []

    class _Session:
        async def stop_watching(self):
            stopped.append(True)

    class _Service:
        session = _Session()

    monkeypatch.setattr(adapter_service_manager, "_service", _Service())
    asyncio.run(adapter_service_manager.shutdown())

    assert stopped == [True]
    assert adapter_service_manager._service is None
