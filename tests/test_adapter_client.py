from __future__ import annotations

import asyncio
from types import SimpleNamespace

import pytest

from ammcore.clients.adapter import client as client_module
from ammcore.clients.adapter.client import AdapterClientError, Web3AdapterClient, Web3Session
from ammcore.clients.adapter.gas import GasQuote
from ammcore.clients.adapter.rpc import TxReceipt

from tests.conftest import ADAPTER, EXPECTED_CHAIN_ID, USDT, WETH

TEST_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"


class _DummyRPC:
    receipt_status = 1

    def __init__(self, url: str, timeout_seconds: float = 15.0):
        self.url = url
        self.chain_id = EXPECTED_CHAIN_ID
        self.sent: list[bytes] = []

        def _sign(tx, private_key):
            return SimpleNamespace(raw_transaction=b"\x01\x02")

        self.w3 = SimpleNamespace(eth=SimpleNamespace(account=SimpleNamespace(sign_transaction=_sign)))

    def nonce(self, _address: str) -> int:
        return 7

    def send_raw(self, raw_tx: bytes) -> str:
        self.sent.append(raw_tx)
        return "0xtx"

    def wait_for_receipt(self, tx_hash: str, timeout_seconds: float) -> TxReceipt:
        return TxReceipt(tx_hash=tx_hash, status=self.receipt_status, block_number=100, gas_used=21_000)


class _DummyERC20:
    def __init__(self, w3):
        self.w3 = w3
        self.built: list[dict] = []

    def approve_function(self, token: str, spender: str, amount: int):
        return SimpleNamespace(token=token, spender=spender, amount=amount)

    def build_approve_tx(self, **kwargs):
        self.built.append(kwargs)
        return {"to": kwargs["token"], "nonce": kwargs["nonce"]}

    def balance_of(self, token: str, owner: str) -> int:
        return 5

    def allowance(self, token: str, owner: str, spender: str) -> int:
        return 0


class _DummyGas:
    def __init__(self, w3):
        self.w3 = w3

    def limit_for(self, function, sender: str, fallback: int) -> int:
        return 50_000

    def quote(self, limit: int) -> GasQuote:
        return GasQuote(limit=limit, priority_fee=1, max_fee=2)

    def affordable(self, sender: str, quote: GasQuote) -> bool:
        return True


class _DummyFunction:
    def __init__(self, result=None, error: str | None = None):
        self.result = result
        self.error = error

    def call(self, tx):
        if self.error:
            raise RuntimeError(self.error)
        return self.result

    def build_transaction(self, params):
        return dict(params)


class _DummyAdapter:
    swap_error: str | None = None

    def __init__(self, w3, address: str):
        self.w3 = w3
        self.address = address

    def get_quote(self, token_in: str, token_out: str, amount_in: int) -> int:
        return 2_000_123_456

    def get_reserves(self, token_a: str, token_b: str) -> tuple[int, int]:
        return 10, 20

    def swap_function(self, token_in, token_out, amount_in, min_out):
        return _DummyFunction(result=1_990_000_000, error=self.swap_error)

    def add_liquidity_function(self, token_a, token_b, amount_a, amount_b, tolerance_bps):
        return _DummyFunction(result=[amount_a, amount_b - 1, 777])

    @staticmethod
    def build_tx(function, sender, nonce, gas_params, chain_id=None):
        return {"from": sender, "nonce": nonce, "chainId": chain_id, **gas_params}


@pytest.fixture
def patched_client_deps(monkeypatch):
    monkeypatch.setattr("ammcore.clients.adapter.client.RPC", _DummyRPC)
    monkeypatch.setattr("ammcore.clients.adapter.client.ERC20Client", _DummyERC20)
    monkeypatch.setattr("ammcore.clients.adapter.client.GasPricer", _DummyGas)
    monkeypatch.setattr("ammcore.clients.adapter.client.AdapterContract", _DummyAdapter)
    monkeypatch.setattr(_DummyRPC, "receipt_status", 1)
    monkeypatch.setattr(_DummyAdapter, "swap_error", None)


def _client() -> Web3AdapterClient:
    return Web3AdapterClient(private_key=TEST_KEY, rpc_url="http://node:8545", adapter_address=ADAPTER)


def test_client_requires_private_key(monkeypatch, patched_client_deps):
    monkeypatch.setattr(client_module.settings, "private_key", None)
    with pytest.raises(AdapterClientError):
        Web3AdapterClient(rpc_url="http://node:8545", adapter_address=ADAPTER)


def test_client_reads_are_async(patched_client_deps):
    client = _client()
    assert asyncio.run(client.get_quote(WETH, USDT, 10**18)) == 2_000_123_456
    assert asyncio.run(client.get_reserves(WETH, USDT)) == (10, 20)
    assert asyncio.run(client.balance_of(USDT, client.address)) == 5
    assert client.get_explorer_tx_url("0xabc") == "https://sepolia.etherscan.io/tx/0xabc"


def test_approve_is_for_exact_amount(patched_client_deps):
    client = _client()

    tx_hash = asyncio.run(client.approve(USDT, ADAPTER, 100))

    assert tx_hash == "0xtx"
    built = client.erc20.built[0]
    assert built["amount"] == 100
    assert built["spender"] == ADAPTER
    assert built["nonce"] == 7
    assert built["gas_params"]["gas"] == 50_000
    assert client.rpc.sent == [b"\x01\x02"]


def test_swap_returns_simulated_output(patched_client_deps):
    client = _client()

    receipt = asyncio.run(client.swap_exact_input(WETH, USDT, 10**18, 1_980_122_221))

    assert receipt.tx_ref == "0xtx"
    assert receipt.amount_out == 1_990_000_000
    assert receipt.block_number == 100


def test_swap_simulation_revert_is_not_sent(patched_client_deps, monkeypatch):
    monkeypatch.setattr(_DummyAdapter, "swap_error", "execution reverted: INSUFFICIENT_OUTPUT_AMOUNT")
    client = _client()

    with pytest.raises(AdapterClientError) as exc_info:
        asyncio.run(client.swap_exact_input(WETH, USDT, 10**18, 1_980_122_221))

    assert "INSUFFICIENT_OUTPUT_AMOUNT" in str(exc_info.value)
    assert client.rpc.sent == []


def test_reverted_receipt_raises(patched_client_deps, monkeypatch):
    monkeypatch.setattr(_DummyRPC, "receipt_status", 0)
    client = _client()

    with pytest.raises(AdapterClientError) as exc_info:
        asyncio.run(client.add_liquidity(WETH, USDT, 10**18, 2_000 * 10**6, 100))
    assert "reverted" in str(exc_info.value)


def test_add_liquidity_receipt(patched_client_deps):
    client = _client()

    receipt = asyncio.run(client.add_liquidity(WETH, USDT, 10**18, 2_000 * 10**6, 100))

    assert receipt.used_a == 10**18
    assert receipt.used_b == 2_000 * 10**6 - 1
    assert receipt.liquidity_minted == 777


def test_wait_for_confirmation_maps_status(patched_client_deps, monkeypatch):
    client = _client()
    assert asyncio.run(client.wait_for_confirmation("0xabc")).success is True

    monkeypatch.setattr(_DummyRPC, "receipt_status", 0)
    confirmation = asyncio.run(client.wait_for_confirmation("0xabc"))
    assert confirmation.success is False
    assert confirmation.detail["status"] == 0


def test_session_switch_rebinds_rpc(patched_client_deps):
    client = _client()
    session = Web3Session(client, {EXPECTED_CHAIN_ID: "http://sepolia-node:8545"})
    seen: list[int] = []
    session.on_network_changed(seen.append)

    asyncio.run(session.request_network_switch(EXPECTED_CHAIN_ID))

    assert client.rpc.url == "http://sepolia-node:8545"
    assert seen == [EXPECTED_CHAIN_ID]
    assert asyncio.run(session.current_network_id()) == EXPECTED_CHAIN_ID


def test_session_switch_without_endpoint_fails(patched_client_deps):
    session = Web3Session(_client(), {})
    with pytest.raises(AdapterClientError):
        asyncio.run(session.request_network_switch(EXPECTED_CHAIN_ID))


def test_session_switch_to_mismatched_endpoint_fails(patched_client_deps):
    session = Web3Session(_client(), {1: "http://mainnet-node:8545"})
    with pytest.raises(AdapterClientError):
        asyncio.run(session.request_network_switch(1))


def test_session_watch_reports_chain_changes(patched_client_deps):
    client = _client()
    session = Web3Session(client, {}, poll_seconds=0.01)
    seen: list[int] = []
    session.on_network_changed(seen.append)

    async def _scenario():
        session.start_watching()
        await asyncio.sleep(0.05)
        client.rpc.chain_id = 1
        await asyncio.sleep(0.05)
        await session.stop_watching()

    asyncio.run(_scenario())

    assert seen == [EXPECTED_CHAIN_ID, 1]
