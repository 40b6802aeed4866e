"""Adapter contract wrapper: reads, dry-run simulation and transaction building."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from web3 import Web3

from ammcore.settings.config import ADAPTER_ABI


@dataclass(frozen=True)
class SimulationResult:
    ok: bool
    result: Any


def simulate_call(function, sender: str) -> SimulationResult:
    """Dry-run a contract function as ``sender``; a revert reason lands in ``result``."""
    try:
        return SimulationResult(ok=True, result=function.call({"from": sender}))
    except Exception as exc:
        return SimulationResult(ok=False, result=str(exc))


class AdapterContract:
    def __init__(self, w3: Web3, address: str) -> None:
        self.w3 = w3
        self.address = Web3.to_checksum_address(address)
        self.contract = self.w3.eth.contract(address=self.address, abi=ADAPTER_ABI)

    def get_quote(self, token_in: str, token_out: str, amount_in: int) -> int:
        return int(
            self.contract.functions.getQuote(
                Web3.to_checksum_address(token_in),
                Web3.to_checksum_address(token_out),
                int(amount_in),
            ).call()
        )

    def get_reserves(self, token_a: str, token_b: str) -> tuple[int, int]:
        reserve_a, reserve_b = self.contract.functions.getReserves(
            Web3.to_checksum_address(token_a),
            Web3.to_checksum_address(token_b),
        ).call()
        return int(reserve_a), int(reserve_b)

    def swap_function(self, token_in: str, token_out: str, amount_in: int, min_out: int):
        return self.contract.functions.swapExactInput(
            Web3.to_checksum_address(token_in),
            Web3.to_checksum_address(token_out),
            int(amount_in),
            int(min_out),
        )

    def add_liquidity_function(self, token_a: str, token_b: str, amount_a: int, amount_b: int, tolerance_bps: int):
        return self.contract.functions.addLiquidity(
            Web3.to_checksum_address(token_a),
            Web3.to_checksum_address(token_b),
            int(amount_a),
            int(amount_b),
            int(tolerance_bps),
        )

    @staticmethod
    def build_tx(
        function,
        sender: str,
        nonce: int,
        gas_params: dict[str, int],
        chain_id: int | None = None,
    ) -> dict[str, Any]:
        tx = function.build_transaction(
            {
                "from": Web3.to_checksum_address(sender),
                "nonce": int(nonce),
                "value": 0,
                **gas_params,
            }
        )
        if chain_id is not None:
            tx["chainId"] = int(chain_id)
        return tx
