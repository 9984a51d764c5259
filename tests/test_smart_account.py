"""
Tests for the Simple7702Account context

Run with: python -m pytest tests/test_smart_account.py -v
"""
from eth_utils import to_checksum_address
from web3 import Web3

from atomic7702.config.network import SIMPLE_7702_ACCOUNT_IMPLEMENTATION
from atomic7702.helpers.eip7702_builder import Call

from conftest import OWNER_ADDRESS, SEPOLIA_CHAIN_ID

RECEIVER1 = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
RECEIVER2 = "0x3C44CdDdB6a900fa2b585dd299e03d12FA4293BC"

_CALL_COMPONENTS = [
    {"name": "target", "type": "address"},
    {"name": "value", "type": "uint256"},
    {"name": "data", "type": "bytes"},
]

# Simple7702Account execute / executeBatch, as published with the implementation
SIMPLE_7702_ACCOUNT_ABI = [
    {
        "type": "function",
        "name": "execute",
        "stateMutability": "nonpayable",
        "inputs": _CALL_COMPONENTS,
        "outputs": [],
    },
    {
        "type": "function",
        "name": "executeBatch",
        "stateMutability": "nonpayable",
        "inputs": [{"name": "calls", "type": "tuple[]", "components": _CALL_COMPONENTS}],
        "outputs": [],
    },
]


def test_address_is_owner_address(account):
    assert account.address == OWNER_ADDRESS


def test_encode_calls_matches_contract_abi(account):
    """Hand-rolled calldata equals what web3 produces from the account ABI"""
    contract = Web3().eth.contract(abi=SIMPLE_7702_ACCOUNT_ABI)
    one = Call.create(RECEIVER1, 1, b"\xaa")
    two = Call.create(RECEIVER2, 0, b"\xbb\xcc")

    expected_single = contract.encode_abi("execute", args=[one.target, one.value, one.data])
    expected_batch = contract.encode_abi("executeBatch", args=[[one.as_tuple(), two.as_tuple()]])

    assert "0x" + account.encode_calls([one]).hex() == expected_single
    assert "0x" + account.encode_calls([one, two]).hex() == expected_batch


def test_is_deployed_and_nonce_are_read_each_time(account, chain):
    assert account.is_deployed() is False
    chain.deployed = True
    assert account.is_deployed() is True
    assert account.get_nonce() == chain.entrypoint_nonce_value
    assert [c[0] for c in chain.calls] == ["is_deployed", "is_deployed", "entrypoint_nonce"]


def test_sign_authorization(account):
    signed = account.sign_authorization(4)
    assert signed.nonce == 4
    assert signed.chain_id == SEPOLIA_CHAIN_ID
    assert to_checksum_address(signed.address).lower() == SIMPLE_7702_ACCOUNT_IMPLEMENTATION.lower()


def test_prepare_user_operation_with_sponsorship(account, bundler):
    op = account.prepare_user_operation(b"\x01\x02")

    assert op.sender == OWNER_ADDRESS
    assert op.nonce == 3
    assert op.max_fee_per_gas == 2_000_000_000
    assert op.call_gas_limit == 0x10000
    assert op.paymaster is not None
    assert op.paymaster_data == bytes.fromhex("1234")
    assert op.factory is None
    assert bundler.calls == ["get_user_operation_gas_price", "sponsor_user_operation"]


def test_prepare_user_operation_with_authorization(account):
    auth = account.sign_authorization(7)
    op = account.prepare_user_operation(b"\x01", auth)
    assert op.factory == "0x7702"
    assert op.authorization is auth
