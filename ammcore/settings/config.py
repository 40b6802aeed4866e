"""
Configuration management for the AMM adapter client.
"""
from __future__ import annotations

from decimal import Decimal
from pathlib import Path
from typing import Any, ClassVar, Dict, Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ammcore.models.chain import (
    NETWORK_CONFIGS,
    NETWORK_KEY_BY_ID,
    SEPOLIA_CHAIN_ID,
    NetworkConfig,
    get_network_config,
    validate_address,
)

PROJECT_ROOT = Path(__file__).resolve().parents[2]


# Load environment variables from .env file if it exists
env_file = Path(".env")
if env_file.exists():
    load_dotenv(env_file, override=False)  # Don't override existing env vars
else:
    load_dotenv(PROJECT_ROOT / ".env", override=False)


ADAPTER_ABI: list[dict[str, Any]] = [
    {
        "inputs": [
            {"internalType": "address", "name": "tokenA", "type": "address"},
            {"internalType": "address", "name": "tokenB", "type": "address"},
            {"internalType": "uint256", "name": "amountA", "type": "uint256"},
            {"internalType": "uint256", "name": "amountB", "type": "uint256"},
            {"internalType": "uint256", "name": "slippageTolerance", "type": "uint256"},
        ],
        "name": "addLiquidity",
        "outputs": [
            {"internalType": "uint256", "name": "", "type": "uint256"},
            {"internalType": "uint256", "name": "", "type": "uint256"},
            {"internalType": "uint256", "name": "", "type": "uint256"},
        ],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [
            {"internalType": "address", "name": "tokenIn", "type": "address"},
            {"internalType": "address", "name": "tokenOut", "type": "address"},
            {"internalType": "uint256", "name": "amountIn", "type": "uint256"},
            {"internalType": "uint256", "name": "minOut", "type": "uint256"},
        ],
        "name": "swapExactInput",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "nonpayable",
        "type": "function",
    },
    {
        "inputs": [
            {"internalType": "address", "name": "tokenIn", "type": "address"},
            {"internalType": "address", "name": "tokenOut", "type": "address"},
            {"internalType": "uint256", "name": "amountIn", "type": "uint256"},
        ],
        "name": "getQuote",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function",
    },
    {
        "inputs": [
            {"internalType": "address", "name": "tokenA", "type": "address"},
            {"internalType": "address", "name": "tokenB", "type": "address"},
        ],
        "name": "getReserves",
        "outputs": [
            {"internalType": "uint256", "name": "", "type": "uint256"},
            {"internalType": "uint256", "name": "", "type": "uint256"},
        ],
        "stateMutability": "view",
        "type": "function",
    },
]


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        extra="ignore",
        env_ignore_empty=True,
        env_file=str(PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        populate_by_name=True,
    )

    app_name: str = "AMM Adapter Client"
    app_version: str = "0.1.0"

    NETWORK_CONFIGS: ClassVar[dict[str, NetworkConfig]] = NETWORK_CONFIGS

    # Session / network
    rpc_url: Optional[str] = Field(default=None, validation_alias="RPC_URL")
    private_key: Optional[str] = Field(default=None, validation_alias="PRIVATE_KEY")
    expected_chain_id: int = Field(default=SEPOLIA_CHAIN_ID, validation_alias="EXPECTED_CHAIN_ID")
    adapter_address: Optional[str] = Field(default=None, validation_alias="ADAPTER_ADDRESS")
    rpc_timeout_seconds: float = Field(default=15.0, gt=0, validation_alias="RPC_TIMEOUT_SECONDS")
    receipt_timeout_seconds: float = Field(default=120.0, gt=0, validation_alias="RECEIPT_TIMEOUT_SECONDS")
    network_poll_seconds: float = Field(default=5.0, gt=0, validation_alias="NETWORK_POLL_SECONDS")

    # Slippage policy (percent)
    slippage_min_pct: Decimal = Field(default=Decimal("0.1"), validation_alias="SLIPPAGE_MIN_PCT")
    slippage_max_pct: Decimal = Field(default=Decimal("10"), validation_alias="SLIPPAGE_MAX_PCT")
    default_slippage_pct: Decimal = Field(default=Decimal("1"), validation_alias="DEFAULT_SLIPPAGE_PCT")

    # Dust warning: amount_in below reserve_in * ratio, or below the absolute floor
    # when reserves are unavailable.
    dust_reserve_ratio: Decimal = Field(default=Decimal("0.000001"), ge=0, validation_alias="DUST_RESERVE_RATIO")
    dust_min_amount: Decimal = Field(default=Decimal("0.0001"), ge=0, validation_alias="DUST_MIN_AMOUNT")

    # Comma separated revert reasons that indicate an amount-ratio violation
    ratio_error_signatures: str = Field(
        default="INSUFFICIENT_A_AMOUNT,INSUFFICIENT_B_AMOUNT",
        validation_alias="RATIO_ERROR_SIGNATURES",
    )

    # Redis Configuration (log fan-out only)
    redis_host: str = Field(default="localhost", validation_alias="REDIS_HOST")
    redis_port: int = Field(default=6379, validation_alias="REDIS_PORT")
    redis_db: int = Field(default=0, validation_alias="REDIS_DB")

    # Logging
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")
    log_file: str = Field(default="logs/amm_adapter.log", validation_alias="LOG_FILE")
    log_redis_enabled: bool = Field(default=False, validation_alias="LOG_REDIS_ENABLED")
    log_redis_list_key: str = Field(default="amm:logs:recent", validation_alias="LOG_REDIS_LIST_KEY")
    log_redis_max_entries: int = Field(default=1000, validation_alias="LOG_REDIS_MAX_ENTRIES")

    @field_validator("adapter_address")
    @classmethod
    def _validate_addresses(cls, value: Optional[str]) -> Optional[str]:
        return validate_address(value)

    @model_validator(mode="before")
    @classmethod
    def _coerce_blank_env_entries(cls, data: Dict[str, object]):
        """Ensure empty-string overrides do not clobber defaults."""
        if not isinstance(data, dict):
            return data
        return {key: value for key, value in data.items() if not (isinstance(value, str) and not value.strip())}

    @model_validator(mode="after")
    def _validate_slippage_policy(self) -> "Settings":
        if self.slippage_min_pct <= 0:
            raise ValueError("SLIPPAGE_MIN_PCT must be positive")
        if self.slippage_min_pct > self.slippage_max_pct:
            raise ValueError("SLIPPAGE_MIN_PCT must not exceed SLIPPAGE_MAX_PCT")
        if self.slippage_max_pct >= 100:
            raise ValueError("SLIPPAGE_MAX_PCT must be below 100")
        if not self.slippage_min_pct <= self.default_slippage_pct <= self.slippage_max_pct:
            raise ValueError("DEFAULT_SLIPPAGE_PCT must lie within the slippage policy bounds")
        return self

    @property
    def expected_network(self) -> NetworkConfig | None:
        return get_network_config(self.expected_chain_id)

    @property
    def network_name(self) -> str:
        return NETWORK_KEY_BY_ID.get(self.expected_chain_id, f"chain-{self.expected_chain_id}")

    @property
    def resolved_rpc_url(self) -> str | None:
        if self.rpc_url:
            return self.rpc_url
        network = self.expected_network
        return network.rpc_url if network else None

    @property
    def resolved_adapter_address(self) -> str | None:
        if self.adapter_address:
            return self.adapter_address
        network = self.expected_network
        return network.adapter if network else None

    @property
    def ratio_error_signature_list(self) -> tuple[str, ...]:
        return tuple(
            entry.strip()
            for entry in self.ratio_error_signatures.split(",")
            if entry.strip()
        )

    @property
    def network_rpc_urls(self) -> dict[int, str]:
        """RPC endpoints per chain id, used when a network switch is requested."""
        urls = {
            config.chain_id: config.rpc_url
            for config in NETWORK_CONFIGS.values()
            if config.rpc_url
        }
        if self.rpc_url:
            urls[self.expected_chain_id] = self.rpc_url
        return urls


# Global settings instance
settings = Settings()
