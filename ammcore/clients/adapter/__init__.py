"""Adapter client package."""

from ammcore.clients.adapter.client import AdapterClientError, Web3AdapterClient, Web3Session
from ammcore.clients.adapter.contract import AdapterContract, SimulationResult
from ammcore.clients.adapter.erc20 import ERC20_ABI, ERC20Client, ERC20Error
from ammcore.clients.adapter.gas import GasPricer, GasQuote
from ammcore.clients.adapter.rpc import RPC, RPCError, TxReceipt

__all__ = [
    "ERC20_ABI",
    "RPC",
    "AdapterClientError",
    "AdapterContract",
    "ERC20Client",
    "ERC20Error",
    "GasPricer",
    "GasQuote",
    "RPCError",
    "SimulationResult",
    "TxReceipt",
    "Web3AdapterClient",
    "Web3Session",
]
