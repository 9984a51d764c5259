"""
ERC-4337 UserOperation model for EntryPoint v0.8.

Holds the unpacked fields a bundler expects over JSON-RPC, packs them the way
the EntryPoint does, and computes the EIP-712 ``userOpHash`` the account owner
signs.

When an EIP-7702 authorization rides along, ``factory`` is set to the 0x7702
marker; for hashing, the EntryPoint replaces the marker with the delegate
address, so the hash covers the implementation being authorized.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace
from typing import Any

from eth_abi import encode
from eth_account.datastructures import SignedSetCodeAuthorization
from eth_utils import keccak, to_checksum_address

from atomic7702.helpers.eip7702_builder import authorization_to_rpc

EIP7702_FACTORY_MARKER = "0x7702"

PACKED_USEROP_TYPEHASH = keccak(
    text="PackedUserOperation(address sender,uint256 nonce,bytes initCode,"
    "bytes callData,bytes32 accountGasLimits,uint256 preVerificationGas,"
    "bytes32 gasFees,bytes paymasterAndData)"
)
EIP712_DOMAIN_TYPEHASH = keccak(
    text="EIP712Domain(string name,string version,uint256 chainId,address verifyingContract)"
)
DOMAIN_NAME = "ERC4337"
DOMAIN_VERSION = "1"

# Stub signature for gas estimation: recoverable, low-s, never valid for the account
DUMMY_SIGNATURE = bytes.fromhex("f" * 31 + "0" * 33 + "7" + "a" * 63 + "1c")

# JSON-RPC field name -> attribute, for quantities returned by bundler/paymaster
_RPC_QUANTITIES = {
    "callGasLimit": "call_gas_limit",
    "verificationGasLimit": "verification_gas_limit",
    "preVerificationGas": "pre_verification_gas",
    "maxFeePerGas": "max_fee_per_gas",
    "maxPriorityFeePerGas": "max_priority_fee_per_gas",
    "paymasterVerificationGasLimit": "paymaster_verification_gas_limit",
    "paymasterPostOpGasLimit": "paymaster_post_op_gas_limit",
}


def _hex_bytes(data: bytes) -> str:
    return "0x" + bytes(data).hex()


def _from_hex(value: str | None) -> bytes:
    if not value or value == "0x":
        return b""
    return bytes.fromhex(value[2:] if value.startswith("0x") else value)


def _parse_quantity(value: Any) -> int:
    if isinstance(value, int):
        return value
    return int(value, 16) if str(value).startswith("0x") else int(value)


def _pack_uint128_pair(high: int, low: int) -> bytes:
    return high.to_bytes(16, "big") + low.to_bytes(16, "big")


def _address_bytes(address: str) -> bytes:
    return bytes.fromhex(address[2:] if address.startswith("0x") else address)


@dataclass(frozen=True)
class UserOperation:
    sender: str
    nonce: int
    call_data: bytes
    call_gas_limit: int = 0
    verification_gas_limit: int = 0
    pre_verification_gas: int = 0
    max_fee_per_gas: int = 0
    max_priority_fee_per_gas: int = 0
    factory: str | None = None
    factory_data: bytes = b""
    paymaster: str | None = None
    paymaster_verification_gas_limit: int = 0
    paymaster_post_op_gas_limit: int = 0
    paymaster_data: bytes = b""
    signature: bytes = DUMMY_SIGNATURE
    authorization: SignedSetCodeAuthorization | None = field(default=None, compare=False)

    # ------------------------------- updates -------------------------------

    def with_rpc_fields(self, fields: dict[str, Any]) -> "UserOperation":
        """Merge gas / paymaster fields returned by the bundler or paymaster."""
        updates: dict[str, Any] = {}
        for rpc_name, attr in _RPC_QUANTITIES.items():
            if fields.get(rpc_name) is not None:
                updates[attr] = _parse_quantity(fields[rpc_name])
        if fields.get("paymaster"):
            updates["paymaster"] = to_checksum_address(fields["paymaster"])
            updates["paymaster_data"] = _from_hex(fields.get("paymasterData"))
        return replace(self, **updates)

    def with_signature(self, signature: bytes) -> "UserOperation":
        return replace(self, signature=bytes(signature))

    # ------------------------------- packing -------------------------------

    @property
    def init_code(self) -> bytes:
        if not self.factory:
            return b""
        # The 0x7702 marker is right-padded to 20 bytes
        return _address_bytes(self.factory).ljust(20, b"\x00") + self.factory_data

    @property
    def account_gas_limits(self) -> bytes:
        return _pack_uint128_pair(self.verification_gas_limit, self.call_gas_limit)

    @property
    def gas_fees(self) -> bytes:
        return _pack_uint128_pair(self.max_priority_fee_per_gas, self.max_fee_per_gas)

    @property
    def paymaster_and_data(self) -> bytes:
        if not self.paymaster:
            return b""
        return (
            _address_bytes(self.paymaster)
            + self.paymaster_verification_gas_limit.to_bytes(16, "big")
            + self.paymaster_post_op_gas_limit.to_bytes(16, "big")
            + self.paymaster_data
        )

    def _init_code_for_hash(self) -> bytes:
        # The EntryPoint substitutes the delegate for the 0x7702 marker
        if self.authorization is not None:
            return _address_bytes(to_checksum_address(self.authorization.address)) + self.factory_data
        return self.init_code

    def hash(self, entry_point: str, chain_id: int) -> bytes:
        """EIP-712 userOpHash as computed by EntryPoint v0.8."""
        struct_hash = keccak(encode(
            ["bytes32", "address", "uint256", "bytes32", "bytes32",
             "bytes32", "uint256", "bytes32", "bytes32"],
            [
                PACKED_USEROP_TYPEHASH,
                to_checksum_address(self.sender),
                self.nonce,
                keccak(self._init_code_for_hash()),
                keccak(self.call_data),
                self.account_gas_limits,
                self.pre_verification_gas,
                self.gas_fees,
                keccak(self.paymaster_and_data),
            ],
        ))
        domain_separator = keccak(encode(
            ["bytes32", "bytes32", "bytes32", "uint256", "address"],
            [
                EIP712_DOMAIN_TYPEHASH,
                keccak(text=DOMAIN_NAME),
                keccak(text=DOMAIN_VERSION),
                chain_id,
                to_checksum_address(entry_point),
            ],
        ))
        return keccak(b"\x19\x01" + domain_separator + struct_hash)

    # ------------------------------- JSON-RPC -------------------------------

    def to_rpc(self) -> dict[str, Any]:
        """Unpacked v0.7/v0.8 JSON-RPC representation."""
        op: dict[str, Any] = {
            "sender": to_checksum_address(self.sender),
            "nonce": hex(self.nonce),
            "callData": _hex_bytes(self.call_data),
            "callGasLimit": hex(self.call_gas_limit),
            "verificationGasLimit": hex(self.verification_gas_limit),
            "preVerificationGas": hex(self.pre_verification_gas),
            "maxFeePerGas": hex(self.max_fee_per_gas),
            "maxPriorityFeePerGas": hex(self.max_priority_fee_per_gas),
            "signature": _hex_bytes(self.signature),
        }
        if self.factory:
            op["factory"] = self.factory
            op["factoryData"] = _hex_bytes(self.factory_data)
        if self.paymaster:
            op["paymaster"] = self.paymaster
            op["paymasterVerificationGasLimit"] = hex(self.paymaster_verification_gas_limit)
            op["paymasterPostOpGasLimit"] = hex(self.paymaster_post_op_gas_limit)
            op["paymasterData"] = _hex_bytes(self.paymaster_data)
        if self.authorization is not None:
            op["eip7702Auth"] = authorization_to_rpc(self.authorization)
        return op
