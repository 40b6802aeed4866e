"""
Model modules for tokens, pairs and networks.
"""
from ammcore.models.chain import (
    NETWORK_CONFIGS,
    NETWORK_KEY_BY_ID,
    SEPOLIA_CHAIN_ID,
    NetworkConfig,
    get_network_config,
)
from ammcore.models.token import (
    DEFAULT_PAIRS,
    SEPOLIA_TOKENS,
    PairConfig,
    Token,
    TokenRegistry,
    default_registry,
)

__all__ = [
    "DEFAULT_PAIRS",
    "NETWORK_CONFIGS",
    "NETWORK_KEY_BY_ID",
    "SEPOLIA_CHAIN_ID",
    "SEPOLIA_TOKENS",
    "NetworkConfig",
    "PairConfig",
    "Token",
    "TokenRegistry",
    "default_registry",
    "get_network_config",
]
