"""
Configuration package for the EIP-7702 atomic transfer tool.
"""

from atomic7702.config.network import (
    CHAINS,
    DEFAULT_CHAIN,
    ENTRYPOINT_V08_ADDRESS,
    SIMPLE_7702_ACCOUNT_IMPLEMENTATION,
    RECEIPT_TIMEOUT,
    get_chain_config,
    get_chain_id,
    get_explorer_url,
    get_bundler_url,
    tx_url,
    address_url,
)

from atomic7702.config.settings import Settings, load_settings

from atomic7702.config.abis import (
    ERC20_ABI,
    TRANSFER_EVENT_TOPIC,
    ENTRYPOINT_V08_ABI,
)

__all__ = [
    # Network
    'CHAINS',
    'DEFAULT_CHAIN',
    'ENTRYPOINT_V08_ADDRESS',
    'SIMPLE_7702_ACCOUNT_IMPLEMENTATION',
    'RECEIPT_TIMEOUT',
    'get_chain_config',
    'get_chain_id',
    'get_explorer_url',
    'get_bundler_url',
    'tx_url',
    'address_url',

    # Settings
    'Settings',
    'load_settings',

    # ABIs
    'ERC20_ABI',
    'TRANSFER_EVENT_TOPIC',
    'ENTRYPOINT_V08_ABI',
]
