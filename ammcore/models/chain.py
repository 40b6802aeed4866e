"""Typed network models and the default adapter network registry."""

from __future__ import annotations

import re
from typing import Final
from urllib.parse import urlparse

from pydantic import BaseModel, field_validator

ADDRESS_REGEX: Final[re.Pattern[str]] = re.compile(r"^0x[a-fA-F0-9]{40}$")


def validate_address(value: str | None) -> str | None:
    if value is None:
        return value
    if not ADDRESS_REGEX.match(value):
        raise ValueError(f"Invalid Ethereum address: {value}")
    return value


class NetworkConfig(BaseModel):
    """Runtime network configuration for adapter-based trading operations."""

    name: str
    chain_id: int
    adapter: str | None = None
    router: str | None = None
    factory: str | None = None
    rpc_url: str | None = None
    explorer_base_url: str | None = None
    is_testnet: bool = False

    model_config = {
        "frozen": True,
    }

    @field_validator("adapter", "router", "factory")
    @classmethod
    def _validate_address(cls, value: str | None) -> str | None:
        return validate_address(value)

    @field_validator("rpc_url", "explorer_base_url")
    @classmethod
    def validate_url(cls, value: str | None) -> str | None:
        if value is None:
            return value
        parsed = urlparse(value)
        if parsed.scheme not in {"http", "https"} or not parsed.netloc:
            raise ValueError(f"Invalid URL: {value}")
        return value.rstrip("/")

    @property
    def chain_id_hex(self) -> str:
        return hex(self.chain_id)

    def explorer_tx_url(self, tx_hash: str) -> str | None:
        if not self.explorer_base_url:
            return None
        return f"{self.explorer_base_url}/tx/{tx_hash}"


SEPOLIA_CHAIN_ID: Final[int] = 11_155_111


NETWORK_CONFIGS: dict[str, NetworkConfig] = {
    "sepolia": NetworkConfig(
        name="sepolia",
        chain_id=SEPOLIA_CHAIN_ID,
        adapter="0x8700A5FBb9D0CCa51a609926d98A002F22a03c0c",
        router="0x3DFF2A8F102Fd041a5E2c24C2a942EEb18e84794",
        factory="0xCAA878B49400A65468D7400ACf5651DB85C5441A",
        rpc_url="https://ethereum-sepolia-rpc.publicnode.com",
        explorer_base_url="https://sepolia.etherscan.io",
        is_testnet=True,
    ),
    "localhost": NetworkConfig(
        name="localhost",
        chain_id=1337,
        rpc_url="http://127.0.0.1:8545",
        is_testnet=True,
    ),
}

NETWORK_KEY_BY_ID: dict[int, str] = {config.chain_id: key for key, config in NETWORK_CONFIGS.items()}


def get_network_config(network: str | int | None) -> NetworkConfig | None:
    """Return network configuration by name or chain id."""
    if network is None:
        return None
    if isinstance(network, int):
        key = NETWORK_KEY_BY_ID.get(network)
        return NETWORK_CONFIGS.get(key) if key else None
    return NETWORK_CONFIGS.get(network.strip().lower())
