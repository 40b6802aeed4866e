"""ERC20 balance, allowance and exact-amount approval helpers."""

from __future__ import annotations

from web3 import Web3


ERC20_ABI = [
    {
        "inputs": [
            {"internalType": "address", "name": "spender", "type": "address"},
            {"internalType": "uint256", "name": "amount", "type": "uint256"},
        ],
        "name": "approve",
        "outputs": [{"internalType": "bool", "name": "", "type": "bool"}],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [
            {"internalType": "address", "name": "owner", "type": "address"},
            {"internalType": "address", "name": "spender", "type": "address"},
        ],
        "name": "allowance",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [{"internalType": "address", "name": "account", "type": "address"}],
        "name": "balanceOf",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
]


class ERC20Error(Exception):
    """Raised on ERC20 read or transaction-building failures."""


class ERC20Client:
    """Per-call ERC20 contract access; contracts are cheap to rebuild."""

    def __init__(self, w3: Web3) -> None:
        self.w3 = w3

    def _contract(self, token: str):
        return self.w3.eth.contract(address=Web3.to_checksum_address(token), abi=ERC20_ABI)

    def balance_of(self, token: str, owner: str) -> int:
        try:
            return int(self._contract(token).functions.balanceOf(Web3.to_checksum_address(owner)).call())
        except Exception as exc:
            raise ERC20Error(f"Failed to read balance token={token} owner={owner}: {exc}") from exc

    def allowance(self, token: str, owner: str, spender: str) -> int:
        try:
            return int(
                self._contract(token).functions.allowance(
                    Web3.to_checksum_address(owner),
                    Web3.to_checksum_address(spender),
                ).call()
            )
        except Exception as exc:
            raise ERC20Error(f"Failed to read allowance token={token} spender={spender}: {exc}") from exc

    def approve_function(self, token: str, spender: str, amount: int):
        return self._contract(token).functions.approve(Web3.to_checksum_address(spender), int(amount))

    def build_approve_tx(
        self,
        token: str,
        owner: str,
        spender: str,
        amount: int,
        nonce: int,
        gas_params: dict[str, int],
        chain_id: int | None = None,
    ) -> dict[str, int | str]:
        """Approval for exactly ``amount``; there is no unlimited default."""
        if int(amount) < 0:
            raise ERC20Error(f"Approval amount must be non-negative, got {amount}")
        try:
            tx = self.approve_function(token, spender, amount).build_transaction(
                {
                    "from": Web3.to_checksum_address(owner),
                    "nonce": int(nonce),
                    "value": 0,
                    **gas_params,
                }
            )
        except Exception as exc:
            raise ERC20Error(f"Failed to build approve tx token={token}: {exc}") from exc
        if chain_id is not None:
            tx["chainId"] = int(chain_id)
        return tx
