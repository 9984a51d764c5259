"""
Network configuration for the EIP-7702 atomic transfer tool.

Contains chain metadata, RPC defaults, bundler endpoints and the
account-abstraction contract addresses used on each supported chain.
"""

import os
from typing import Any


# =============================================================================
# ACCOUNT ABSTRACTION CONTRACTS
# =============================================================================

# EntryPoint v0.8 (same address on every chain it is deployed to)
ENTRYPOINT_V08_ADDRESS: str = "0x4337084D9E255Ff0702461CF8895CE9E3b5Ff108"

# Simple7702Account implementation for EntryPoint v0.8
SIMPLE_7702_ACCOUNT_IMPLEMENTATION: str = "0xe6Cae83BdE06E4c305530e199D7217f42808555B"

# Prefix of the code an EOA carries once an EIP-7702 authorization is applied
DELEGATION_DESIGNATOR_PREFIX: bytes = b"\xef\x01\x00"

PIMLICO_RPC_TEMPLATE: str = "https://api.pimlico.io/v2/{chain_id}/rpc?apikey={api_key}"


# =============================================================================
# CHAIN CONFIGURATIONS
# =============================================================================

CHAINS: dict[str, dict[str, Any]] = {
    "sepolia": {
        "chain_id": 11155111,
        "name": "Sepolia",
        "currency": "ETH",
        "block_time": 12,
        "rpc_urls": [
            "https://ethereum-sepolia-rpc.publicnode.com",
            "https://rpc.sepolia.org",
        ],
        "explorer": {
            "name": "Etherscan Sepolia",
            "url": "https://sepolia.etherscan.io",
        },
        "faucets": [
            "https://sepoliafaucet.com/",
            "https://www.alchemy.com/faucets/ethereum-sepolia",
        ],
    },
    "base_sepolia": {
        "chain_id": 84532,
        "name": "Base Sepolia",
        "currency": "ETH",
        "block_time": 2,
        "rpc_urls": [
            "https://sepolia.base.org",
            "https://base-sepolia.publicnode.com",
        ],
        "explorer": {
            "name": "Basescan Sepolia",
            "url": "https://sepolia.basescan.org",
        },
        "faucets": [],
    },
}

# Chain ID to name mapping
CHAIN_ID_TO_NAME: dict[int, str] = {
    config["chain_id"]: name for name, config in CHAINS.items()
}

DEFAULT_CHAIN: str = "sepolia"

# Waiting for inclusion
RECEIPT_TIMEOUT: int = 120  # seconds
RECEIPT_POLL_INTERVAL: float = 2.0  # seconds between bundler polls
RPC_TIMEOUT: int = 30  # seconds per HTTP request


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def get_chain_config(chain: str | int | None = None) -> dict[str, Any]:
    """Get configuration for a specific chain.

    Args:
        chain: Chain name (e.g., 'sepolia') or chain ID.
               If None, uses CHAIN environment variable or defaults to 'sepolia'.

    Returns:
        Chain configuration dictionary.

    Raises:
        ValueError: If chain is not supported.
    """
    if chain is None:
        chain = os.getenv("CHAIN", DEFAULT_CHAIN)

    if isinstance(chain, int):
        name = CHAIN_ID_TO_NAME.get(chain)
        if name is None:
            raise ValueError(f"Unsupported chain ID: {chain}")
        chain = name

    chain = chain.lower()
    if chain not in CHAINS:
        raise ValueError(f"Unsupported chain: {chain}. Supported: {list(CHAINS.keys())}")

    return CHAINS[chain]


def get_chain_id(chain: str | int | None = None) -> int:
    """Get the chain ID for a chain name."""
    return get_chain_config(chain)["chain_id"]


def get_explorer_url(chain: str | int | None = None) -> str:
    """Get the block explorer URL for a chain."""
    return get_chain_config(chain)["explorer"]["url"]


def tx_url(tx_hash: str, chain: str | int | None = None) -> str:
    return f"{get_explorer_url(chain)}/tx/{tx_hash}"


def address_url(address: str, chain: str | int | None = None) -> str:
    return f"{get_explorer_url(chain)}/address/{address}"


def get_bundler_url(api_key: str, chain: str | int | None = None) -> str:
    """Build the Pimlico bundler/paymaster endpoint for a chain."""
    return PIMLICO_RPC_TEMPLATE.format(chain_id=get_chain_id(chain), api_key=api_key)
