"""
EIP-7702 call and authorization builder
=======================================

Utilities for turning call descriptors into Simple7702Account calldata and
for signing the EIP-7702 authorization that delegates an EOA to the account
implementation.

A single call is encoded as ``execute(target, value, data)``; several calls
as ``executeBatch((address,uint256,bytes)[])``, which the account runs in
order and atomically.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from eth_abi import decode, encode
from eth_account.datastructures import SignedSetCodeAuthorization
from eth_account.signers.local import LocalAccount
from eth_typing import ChecksumAddress
from eth_utils import function_signature_to_4byte_selector, is_address, to_checksum_address

from atomic7702.errors import ConfigurationError

logger = logging.getLogger(__name__)

EXECUTE_SELECTOR = function_signature_to_4byte_selector("execute(address,uint256,bytes)")
EXECUTE_BATCH_SELECTOR = function_signature_to_4byte_selector("executeBatch((address,uint256,bytes)[])")
TRANSFER_SELECTOR = function_signature_to_4byte_selector("transfer(address,uint256)")


def _to_bytes(data: str | bytes) -> bytes:
    if isinstance(data, str):
        return bytes.fromhex(data[2:] if data.startswith("0x") else data)
    return bytes(data)


@dataclass(frozen=True)
class Call:
    """One contract call executed by the smart account."""
    target: ChecksumAddress
    value: int = 0
    data: bytes = b""

    @classmethod
    def create(cls, target: str, value: int = 0, data: str | bytes = b"") -> "Call":
        """
        Normalize and validate a call descriptor.

        Args:
            target: Destination address
            value: ETH value to send (in wei)
            data: Calldata as hex string or bytes

        Raises:
            ConfigurationError: If the target is not a valid address or the value is negative
        """
        if not target or not is_address(target):
            raise ConfigurationError(f"Call destination is not a valid address: {target!r}")
        if value < 0:
            raise ConfigurationError(f"Call value must be non-negative, got {value}")
        try:
            payload = _to_bytes(data)
        except ValueError:
            raise ConfigurationError(f"Call data is not valid hex: {data!r}") from None
        return cls(target=to_checksum_address(target), value=int(value), data=payload)

    def as_tuple(self) -> tuple[str, int, bytes]:
        return (self.target, self.value, self.data)


class CallBuilder:
    """Accumulates an ordered list of calls for one operation."""

    def __init__(self):
        self._calls: list[Call] = []

    def add_call(self, target: str, value: int, data: str | bytes) -> "CallBuilder":
        self._calls.append(Call.create(target, value, data))
        return self

    def add_erc20_transfer(self, token: str, recipient: str, amount: int) -> "CallBuilder":
        """
        Add an ERC20 transfer call.

        Args:
            token: Token contract address
            recipient: Address receiving the tokens
            amount: Amount in the token's smallest unit
        """
        if not is_address(recipient):
            raise ConfigurationError(f"Recipient is not a valid address: {recipient!r}")
        data = TRANSFER_SELECTOR + encode(["address", "uint256"], [to_checksum_address(recipient), amount])
        return self.add_call(token, 0, data)

    @property
    def calls(self) -> tuple[Call, ...]:
        return tuple(self._calls)


# --------------------------------------------------------------------------- #
# Calldata encoding                                                           #
# --------------------------------------------------------------------------- #

def encode_execute(call: Call) -> bytes:
    return EXECUTE_SELECTOR + encode(["address", "uint256", "bytes"], list(call.as_tuple()))


def encode_execute_batch(calls: list[Call] | tuple[Call, ...]) -> bytes:
    """Encode executeBatch, keeping the input order of ``calls``."""
    return EXECUTE_BATCH_SELECTOR + encode(
        ["(address,uint256,bytes)[]"],
        [[c.as_tuple() for c in calls]],
    )


def encode_calls(calls: list[Call] | tuple[Call, ...]) -> bytes:
    """Single call: execute. Several calls: executeBatch."""
    if not calls:
        raise ConfigurationError("At least one call is required")
    if len(calls) == 1:
        return encode_execute(calls[0])
    return encode_execute_batch(calls)


def decode_calls(call_data: bytes) -> list[Call]:
    """Inverse of :func:`encode_calls`; used for logging and verification."""
    call_data = bytes(call_data)
    selector, body = call_data[:4], call_data[4:]
    if selector == EXECUTE_SELECTOR:
        target, value, data = decode(["address", "uint256", "bytes"], body)
        return [Call(to_checksum_address(target), value, data)]
    if selector == EXECUTE_BATCH_SELECTOR:
        (items,) = decode(["(address,uint256,bytes)[]"], body)
        return [Call(to_checksum_address(t), v, d) for t, v, d in items]
    raise ValueError(f"Unknown account selector 0x{selector.hex()}")


# --------------------------------------------------------------------------- #
# Authorization                                                               #
# --------------------------------------------------------------------------- #

def build_authorization(
    account: LocalAccount,
    implementation_address: str,
    chain_id: int,
    nonce: int,
) -> SignedSetCodeAuthorization:
    """
    Sign the EIP-7702 authorization delegating ``account`` to the implementation.

    Args:
        account: Account that signs (and is delegated)
        implementation_address: Smart account implementation contract
        chain_id: Chain the authorization is valid on
        nonce: The account's own transaction nonce at signing time

    Returns:
        Signed authorization
    """
    auth = {
        "chainId": chain_id,
        "address": to_checksum_address(implementation_address),
        "nonce": nonce,
    }
    signed = account.sign_authorization(auth)
    logger.debug(
        "Signed authorization for %s -> %s (chain %s, nonce %s)",
        account.address, auth["address"], chain_id, nonce,
    )
    return signed


def authorization_to_rpc(signed: SignedSetCodeAuthorization) -> dict[str, Any]:
    """Bundler JSON-RPC shape of a signed authorization (``eip7702Auth``)."""
    return {
        "chainId": hex(signed.chain_id),
        "address": to_checksum_address(signed.address),
        "nonce": hex(signed.nonce),
        "yParity": "0x01" if signed.y_parity else "0x00",
        "r": "0x" + signed.r.to_bytes(32, "big").hex(),
        "s": "0x" + signed.s.to_bytes(32, "big").hex(),
    }
