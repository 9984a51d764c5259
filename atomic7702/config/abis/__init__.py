"""
Contract ABI package.

Contains the ABIs the tool encodes against, organized by contract type.
"""

from .erc20 import ERC20_ABI, TRANSFER_EVENT_TOPIC
from .account import ENTRYPOINT_V08_ABI

__all__ = [
    # ERC20
    'ERC20_ABI',
    'TRANSFER_EVENT_TOPIC',

    # Account abstraction
    'ENTRYPOINT_V08_ABI',
]
