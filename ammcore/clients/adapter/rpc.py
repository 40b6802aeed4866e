"""RPC helpers for adapter operations."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from web3 import Web3


class RPCError(Exception):
    """Raised when RPC interactions fail."""


@dataclass(frozen=True)
class TxReceipt:
    tx_hash: str
    status: int
    block_number: int | None
    gas_used: int | None

    @property
    def success(self) -> bool:
        return self.status == 1


class RPC:
    """Thin wrapper around a web3 HTTP provider with normalized error handling."""

    def __init__(self, url: str, timeout_seconds: float = 15.0) -> None:
        self.url = url
        self.timeout_seconds = float(timeout_seconds)
        self.w3 = Web3(Web3.HTTPProvider(url, request_kwargs={"timeout": self.timeout_seconds}))
        if not self.w3.is_connected():
            raise RPCError(f"RPC connection failed for url={url}")

    @property
    def chain_id(self) -> int:
        try:
            return int(self.w3.eth.chain_id)
        except Exception as exc:
            raise RPCError(f"Failed to read chain id from {self.url}: {exc}") from exc

    def nonce(self, address: str) -> int:
        try:
            return int(self.w3.eth.get_transaction_count(address, "pending"))
        except Exception as exc:
            raise RPCError(f"Failed to fetch nonce for {address}: {exc}") from exc

    def send_raw(self, raw_tx: bytes) -> str:
        try:
            tx_hash = self.w3.eth.send_raw_transaction(raw_tx)
        except Exception as exc:
            raise RPCError(f"Failed to send raw transaction: {exc}") from exc
        return Web3.to_hex(tx_hash)

    def wait_for_receipt(self, tx_hash: str, timeout_seconds: float) -> TxReceipt:
        try:
            receipt: Any = self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout_seconds)
        except Exception as exc:
            raise RPCError(f"No receipt for {tx_hash} within {timeout_seconds}s: {exc}") from exc
        return TxReceipt(
            tx_hash=tx_hash,
            status=int(receipt.get("status", 0)),
            block_number=receipt.get("blockNumber"),
            gas_used=receipt.get("gasUsed"),
        )
