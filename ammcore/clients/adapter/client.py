"""Web3 client for the AMM adapter contract and its ERC20 tokens.

Signs locally with the configured private key. Blocking web3 calls run in a
worker thread so the async orchestration layer can await them.
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable

from eth_account import Account
from web3 import Web3

from ammcore.clients.adapter.contract import AdapterContract, simulate_call
from ammcore.clients.adapter.erc20 import ERC20Client
from ammcore.clients.adapter.gas import GasPricer
from ammcore.clients.adapter.rpc import RPC, TxReceipt
from ammcore.logging import log
from ammcore.models.chain import NetworkConfig, get_network_config
from ammcore.models.token import Token
from ammcore.orchestration.collaborators import Confirmation, ExecutionReceipt, LiquidityReceipt
from ammcore.settings.config import settings

APPROVE_GAS_FALLBACK = 80_000
SWAP_GAS_FALLBACK = 300_000
LIQUIDITY_GAS_FALLBACK = 450_000


class AdapterClientError(Exception):
    """Raised for adapter client failures."""


class Web3AdapterClient:
    """Production AMM and token collaborator over a JSON-RPC endpoint."""

    def __init__(
        self,
        private_key: str | None = None,
        rpc_url: str | None = None,
        adapter_address: str | None = None,
        rpc_timeout_seconds: float | None = None,
        receipt_timeout_seconds: float | None = None,
    ) -> None:
        resolved_private_key = private_key or settings.private_key
        if not resolved_private_key:
            raise AdapterClientError("Missing private key: provide private_key or set PRIVATE_KEY in .env")

        resolved_rpc = rpc_url or settings.resolved_rpc_url
        if not resolved_rpc:
            raise AdapterClientError("Missing RPC URL: provide rpc_url or set RPC_URL in .env")

        resolved_adapter = adapter_address or settings.resolved_adapter_address
        if not resolved_adapter:
            raise AdapterClientError("Missing adapter address: provide adapter_address or set ADAPTER_ADDRESS in .env")

        self.account = Account.from_key(resolved_private_key)
        self.address = Web3.to_checksum_address(self.account.address)
        self.adapter_address = Web3.to_checksum_address(resolved_adapter)
        self.rpc_timeout_seconds = rpc_timeout_seconds or settings.rpc_timeout_seconds
        self.receipt_timeout_seconds = receipt_timeout_seconds or settings.receipt_timeout_seconds

        self.connect(resolved_rpc)
        log.info(
            f"Web3AdapterClient initialized chain_id={self.rpc.chain_id} "
            f"wallet={self.address} adapter={self.adapter_address}"
        )

    def connect(self, rpc_url: str) -> None:
        """(Re)bind every helper to a new RPC endpoint."""
        self.rpc = RPC(rpc_url, timeout_seconds=self.rpc_timeout_seconds)
        self.w3 = self.rpc.w3
        self.erc20 = ERC20Client(self.w3)
        self.gas = GasPricer(self.w3)
        self.adapter = AdapterContract(self.w3, self.adapter_address)
        log.debug(f"Adapter client bound to rpc={rpc_url}")

    @property
    def network(self) -> NetworkConfig | None:
        return get_network_config(self.rpc.chain_id)

    def get_explorer_tx_url(self, tx_hash: str) -> str | None:
        network = self.network
        return network.explorer_tx_url(tx_hash) if network else None

    # -- blocking helpers -------------------------------------------------

    def _sign_and_send(self, tx: dict[str, Any]) -> str:
        signed = self.w3.eth.account.sign_transaction(tx, private_key=self.account.key)
        raw_tx = getattr(signed, "raw_transaction", None) or getattr(signed, "rawTransaction", None)
        if raw_tx is None:
            raise AdapterClientError("Signed transaction has no raw payload")
        return self.rpc.send_raw(raw_tx)

    def _gas_params(self, function, fallback: int) -> dict[str, int]:
        limit = self.gas.limit_for(function, self.address, fallback)
        gas_quote = self.gas.quote(limit)
        if not self.gas.affordable(self.address, gas_quote):
            raise AdapterClientError(f"Insufficient native balance for gas (need {gas_quote.max_cost_wei} wei)")
        return gas_quote.as_tx_fields()

    def _execute(self, function, label: str, fallback_gas: int) -> tuple[TxReceipt, Any]:
        """Simulate, sign, send and wait; returns the receipt and the simulated return value."""
        sim = simulate_call(function, self.address)
        if not sim.ok:
            raise AdapterClientError(f"{label} simulation reverted: {sim.result}")

        gas_params = self._gas_params(function, fallback_gas)
        nonce = self.rpc.nonce(self.address)
        tx = AdapterContract.build_tx(function, self.address, nonce, gas_params, chain_id=self.rpc.chain_id)
        tx_hash = self._sign_and_send(tx)
        log.info(f"Broadcasted {label} tx hash={tx_hash} nonce={nonce}")
        explorer_url = self.get_explorer_tx_url(tx_hash)
        if explorer_url:
            log.info(f"{label} tx explorer url={explorer_url}")

        receipt = self.rpc.wait_for_receipt(tx_hash, self.receipt_timeout_seconds)
        if not receipt.success:
            raise AdapterClientError(f"{label} tx {tx_hash} reverted in block {receipt.block_number}")
        return receipt, sim.result

    def _swap(self, token_in: str, token_out: str, amount_in: int, min_out: int) -> ExecutionReceipt:
        function = self.adapter.swap_function(token_in, token_out, amount_in, min_out)
        receipt, simulated_out = self._execute(function, "swapExactInput", SWAP_GAS_FALLBACK)
        return ExecutionReceipt(
            tx_ref=receipt.tx_hash,
            amount_out=int(simulated_out),
            block_number=receipt.block_number,
            gas_used=receipt.gas_used,
        )

    def _add_liquidity(
        self, token_a: str, token_b: str, amount_a: int, amount_b: int, tolerance_bps: int
    ) -> LiquidityReceipt:
        function = self.adapter.add_liquidity_function(token_a, token_b, amount_a, amount_b, tolerance_bps)
        receipt, simulated = self._execute(function, "addLiquidity", LIQUIDITY_GAS_FALLBACK)
        used_a, used_b, minted = simulated
        return LiquidityReceipt(
            tx_ref=receipt.tx_hash,
            used_a=int(used_a),
            used_b=int(used_b),
            liquidity_minted=int(minted),
            block_number=receipt.block_number,
            gas_used=receipt.gas_used,
        )

    def _approve(self, token: str, spender: str, amount: int) -> str:
        gas_params = self._gas_params(self.erc20.approve_function(token, spender, amount), APPROVE_GAS_FALLBACK)
        nonce = self.rpc.nonce(self.address)
        tx = self.erc20.build_approve_tx(
            token=token,
            owner=self.address,
            spender=spender,
            amount=amount,
            nonce=nonce,
            gas_params=gas_params,
            chain_id=self.rpc.chain_id,
        )
        tx_hash = self._sign_and_send(tx)
        log.info(f"Broadcasted ERC20 approval tx hash={tx_hash} token={token} spender={spender} amount={amount}")
        return tx_hash

    # -- async collaborator surface ---------------------------------------

    async def get_quote(self, token_in: Token, token_out: Token, amount_in: int) -> int:
        return await asyncio.to_thread(self.adapter.get_quote, token_in.address, token_out.address, amount_in)

    async def get_reserves(self, token_a: Token, token_b: Token) -> tuple[int, int]:
        return await asyncio.to_thread(self.adapter.get_reserves, token_a.address, token_b.address)

    async def swap_exact_input(
        self, token_in: Token, token_out: Token, amount_in: int, min_out: int
    ) -> ExecutionReceipt:
        return await asyncio.to_thread(self._swap, token_in.address, token_out.address, amount_in, min_out)

    async def add_liquidity(
        self, token_a: Token, token_b: Token, amount_a: int, amount_b: int, tolerance_bps: int
    ) -> LiquidityReceipt:
        return await asyncio.to_thread(
            self._add_liquidity, token_a.address, token_b.address, amount_a, amount_b, tolerance_bps
        )

    async def balance_of(self, token: Token, owner: str) -> int:
        return await asyncio.to_thread(self.erc20.balance_of, token.address, owner)

    async def allowance(self, token: Token, owner: str, spender: str) -> int:
        return await asyncio.to_thread(self.erc20.allowance, token.address, owner, spender)

    async def approve(self, token: Token, spender: str, amount: int) -> str:
        return await asyncio.to_thread(self._approve, token.address, spender, amount)

    async def wait_for_confirmation(self, tx_ref: str) -> Confirmation:
        receipt = await asyncio.to_thread(self.rpc.wait_for_receipt, tx_ref, self.receipt_timeout_seconds)
        return Confirmation(
            tx_ref=tx_ref,
            success=receipt.success,
            block_number=receipt.block_number,
            detail={"gas_used": receipt.gas_used, "status": receipt.status},
        )


class Web3Session:
    """Session layer over an RPC endpoint.

    A JSON-RPC node cannot be asked to change chains, so a switch rebinds the
    client to the configured endpoint for the target chain. Chain changes are
    detected by polling the endpoint's chain id.
    """

    def __init__(self, client: Web3AdapterClient, rpc_urls: dict[int, str], poll_seconds: float = 5.0) -> None:
        self.client = client
        self.rpc_urls = dict(rpc_urls)
        self.poll_seconds = poll_seconds
        self._callbacks: list[Callable[[int], None]] = []
        self._last_chain_id: int | None = None
        self._watch_task: asyncio.Task | None = None

    async def current_network_id(self) -> int:
        return await asyncio.to_thread(lambda: self.client.rpc.chain_id)

    def on_network_changed(self, callback: Callable[[int], None]) -> None:
        self._callbacks.append(callback)

    def _notify(self, chain_id: int) -> None:
        self._last_chain_id = chain_id
        for callback in list(self._callbacks):
            callback(chain_id)

    async def request_network_switch(self, target_id: int) -> None:
        url = self.rpc_urls.get(int(target_id))
        if not url:
            raise AdapterClientError(f"No RPC endpoint configured for chain {target_id}")
        await asyncio.to_thread(self.client.connect, url)
        chain_id = await self.current_network_id()
        self._notify(chain_id)
        if chain_id != int(target_id):
            raise AdapterClientError(f"Endpoint {url} serves chain {chain_id}, expected {target_id}")

    async def _watch(self) -> None:
        while True:
            try:
                chain_id = await self.current_network_id()
                if chain_id != self._last_chain_id:
                    log.info(f"Chain change detected previous={self._last_chain_id} current={chain_id}")
                    self._notify(chain_id)
            except Exception as exc:
                log.warning(f"Chain id poll failed: {exc}")
            await asyncio.sleep(self.poll_seconds)

    def start_watching(self) -> None:
        if self._watch_task is None or self._watch_task.done():
            self._watch_task = asyncio.create_task(self._watch())

    async def stop_watching(self) -> None:
        task, self._watch_task = self._watch_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
