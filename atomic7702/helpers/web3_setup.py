"""
Web3 setup helper - provides common web3 instance utilities.

Public API
----------
make_web3(rpc_url=None, timeout=RPC_TIMEOUT)
    Return a new Web3 instance connected to the specified RPC URL.
    Falls back to SEPOLIA_RPC_URL or RPC_URL environment variables.

Instances are not cached: callers construct one per invocation and pass it
down explicitly.
"""
from __future__ import annotations

import os

from web3 import Web3

from atomic7702.config.network import RPC_TIMEOUT
from atomic7702.errors import ConfigurationError

__all__ = ["make_web3"]


def make_web3(rpc_url: str | None = None, timeout: int = RPC_TIMEOUT) -> Web3:
    """
    Create a Web3 instance connected to the specified RPC URL.

    Args:
        rpc_url: Optional RPC URL. If not provided, uses SEPOLIA_RPC_URL or RPC_URL env vars.
        timeout: Per-request HTTP timeout in seconds

    Returns:
        Web3 instance

    Raises:
        ConfigurationError: If no RPC URL is available
    """
    if rpc_url is None:
        rpc_url = os.getenv("SEPOLIA_RPC_URL") or os.getenv("RPC_URL")

    if not rpc_url:
        raise ConfigurationError("No RPC URL available. Set SEPOLIA_RPC_URL or RPC_URL environment variable.")

    return Web3(Web3.HTTPProvider(rpc_url, request_kwargs={"timeout": timeout}))
