"""
Atomic EIP-7702 delegation and ERC-20 transfers through an ERC-4337 bundler.
"""

__version__ = "0.1.0"
