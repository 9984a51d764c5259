"""
Tests for the delegation-aware dispatcher

Run with: python -m pytest tests/test_dispatcher.py -v
"""
import logging

import pytest
from eth_account import Account
from eth_abi import encode
from eth_utils import to_checksum_address

from atomic7702.config.network import ENTRYPOINT_V08_ADDRESS, SIMPLE_7702_ACCOUNT_IMPLEMENTATION
from atomic7702.errors import (
    BundlerRpcError,
    ConfigurationError,
    ExecutionError,
    InclusionTimeoutError,
    TransportError,
)
from atomic7702.executor.dispatcher import (
    Batch,
    DelegationDispatcher,
    Single,
    make_submission,
)
from atomic7702.helpers.eip7702_builder import (
    EXECUTE_BATCH_SELECTOR,
    EXECUTE_SELECTOR,
    TRANSFER_SELECTOR,
    Call,
    CallBuilder,
    decode_calls,
)

from conftest import OTHER_KEY, SEPOLIA_CHAIN_ID, TX_HASH, USER_OP_HASH

TOKEN = "0x1c7D4B196Cb0C7B01d743Fbc6116a902379C7238"
RECEIVER1 = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
RECEIVER2 = "0x3C44CdDdB6a900fa2b585dd299e03d12FA4293BC"


def transfer(recipient, amount):
    return Call.create(TOKEN, 0, TRANSFER_SELECTOR + encode(["address", "uint256"], [recipient, amount]))


def test_fresh_account_attaches_authorization_with_eoa_nonce(account, owner, chain, bundler):
    """Authorization nonce is the signer's transaction count, not the EntryPoint nonce"""
    chain.tx_nonce = 7
    chain.entrypoint_nonce_value = 3

    result = DelegationDispatcher(account).dispatch([transfer(RECEIVER1, 1)], owner, owner.address)

    assert result.authorization_included
    assert len(bundler.sent) == 1
    op = bundler.sent[0]
    auth = op.authorization
    assert auth is not None
    assert auth.nonce == 7
    assert auth.chain_id == SEPOLIA_CHAIN_ID
    assert to_checksum_address(auth.address).lower() == SIMPLE_7702_ACCOUNT_IMPLEMENTATION.lower()
    # The operation itself uses the EntryPoint nonce
    assert op.nonce == 3
    assert ("get_transaction_count", owner.address) in chain.calls

    rpc = op.to_rpc()
    assert rpc["factory"] == "0x7702"
    assert rpc["eip7702Auth"]["nonce"] == "0x7"


def test_deployed_account_sends_no_authorization(account, owner, chain, bundler):
    chain.deployed = True

    result = DelegationDispatcher(account).dispatch([transfer(RECEIVER1, 1)], owner, owner.address)

    assert not result.authorization_included
    op = bundler.sent[0]
    assert op.authorization is None
    assert op.factory is None
    assert "eip7702Auth" not in op.to_rpc()
    assert "factory" not in op.to_rpc()
    assert not any(c[0] == "get_transaction_count" for c in chain.calls)


def test_single_call_uses_execute(account, owner, bundler):
    DelegationDispatcher(account).dispatch([transfer(RECEIVER1, 5)], owner, owner.address)
    assert bundler.sent[0].call_data[:4] == EXECUTE_SELECTOR


def test_batch_preserves_call_order(account, owner, bundler):
    calls = [transfer(RECEIVER1, 1), transfer(RECEIVER2, 2), Call.create(RECEIVER1, 10, b"")]

    result = DelegationDispatcher(account).dispatch(calls, owner, owner.address)

    call_data = bundler.sent[0].call_data
    assert call_data[:4] == EXECUTE_BATCH_SELECTOR
    assert decode_calls(call_data) == calls
    assert list(result.calls) == calls


def test_reverted_transaction_raises_execution_error(account, owner, chain):
    chain.receipt_status = 0

    with pytest.raises(ExecutionError) as exc_info:
        DelegationDispatcher(account).dispatch(
            [transfer(RECEIVER1, 1), transfer(RECEIVER2, 2)], owner, owner.address
        )
    assert exc_info.value.transaction_hash == TX_HASH


def test_failed_user_operation_raises_execution_error(account, owner, bundler):
    bundler.success = False

    with pytest.raises(ExecutionError):
        DelegationDispatcher(account).dispatch([transfer(RECEIVER1, 1)], owner, owner.address)


def test_deployment_status_rechecked_every_dispatch(account, owner, chain, bundler):
    """Each dispatch re-reads delegation; the second one sees the delegation from the first"""
    dispatcher = DelegationDispatcher(account)

    first = dispatcher.dispatch([transfer(RECEIVER1, 1)], owner, owner.address)
    second = dispatcher.dispatch([transfer(RECEIVER1, 1)], owner, owner.address)

    assert sum(1 for c in chain.calls if c[0] == "is_deployed") == 2
    assert first.authorization_included
    assert not second.authorization_included


def test_two_transfers_on_fresh_account(account, owner, chain, bundler):
    """10 + 20 tokens to two recipients: one authorization, one operation, one transaction"""
    calls = (
        CallBuilder()
        .add_erc20_transfer(TOKEN, RECEIVER1, 10 * 10**18)
        .add_erc20_transfer(TOKEN, RECEIVER2, 20 * 10**18)
        .calls
    )

    result = DelegationDispatcher(account).dispatch(calls, owner, owner.address)

    assert len(bundler.sent) == 1
    assert bundler.sent[0].authorization is not None
    assert result.transaction_hash == TX_HASH
    assert result.user_operation_hash == USER_OP_HASH
    assert result.success
    assert result.block_number == 4242
    assert result.gas_used == 123456
    assert chain.deployed


def test_repeat_transfer_on_deployed_account(account, owner, chain, bundler):
    chain.deployed = True
    calls = CallBuilder().add_erc20_transfer(TOKEN, RECEIVER1, 5 * 10**18).calls

    result = DelegationDispatcher(account).dispatch(calls, owner, owner.address)

    assert not result.authorization_included
    assert bundler.sent[0].authorization is None
    assert decode_calls(bundler.sent[0].call_data) == list(calls)


def test_zero_calls_rejected_before_any_io(account, owner, chain, bundler):
    with pytest.raises(ConfigurationError):
        DelegationDispatcher(account).dispatch([], owner, owner.address)
    assert chain.calls == []
    assert bundler.calls == []


def test_signer_must_own_account(account, owner, chain, bundler):
    other = Account.from_key(OTHER_KEY)
    with pytest.raises(ConfigurationError):
        DelegationDispatcher(account).dispatch([transfer(RECEIVER1, 1)], other, owner.address)
    with pytest.raises(ConfigurationError):
        DelegationDispatcher(account).dispatch([transfer(RECEIVER1, 1)], owner, "not-an-address")
    with pytest.raises(ConfigurationError):
        DelegationDispatcher(account).dispatch([transfer(RECEIVER1, 1)], None, owner.address)
    assert chain.calls == []
    assert bundler.calls == []


def test_inclusion_timeout_propagates(account, owner, bundler):
    bundler.timeout = True

    with pytest.raises(InclusionTimeoutError) as exc_info:
        DelegationDispatcher(account, receipt_timeout=1).dispatch(
            [transfer(RECEIVER1, 1)], owner, owner.address
        )
    assert isinstance(exc_info.value, TimeoutError)
    assert exc_info.value.operation_hash == USER_OP_HASH


def test_unreachable_node_aborts_before_submission(account, owner, chain, bundler, monkeypatch):
    """A failed delegation read propagates once; nothing is signed or sent"""
    reads = []

    def unreachable(address, implementation):
        reads.append(address)
        raise TransportError("eth_getCode: connection refused")

    monkeypatch.setattr(chain, "is_deployed", unreachable)

    with pytest.raises(TransportError):
        DelegationDispatcher(account).dispatch([transfer(RECEIVER1, 1)], owner, owner.address)

    assert reads == [owner.address]
    assert bundler.calls == []
    assert bundler.sent == []


def test_bundler_rejection_is_not_retried(account, owner, chain, bundler, monkeypatch):
    attempts = []

    def reject(user_op):
        attempts.append(user_op)
        raise BundlerRpcError("eth_sendUserOperation", -32500, "AA21 didn't pay prefund")

    monkeypatch.setattr(bundler, "send_user_operation", reject)

    with pytest.raises(TransportError) as exc_info:
        DelegationDispatcher(account).dispatch([transfer(RECEIVER1, 1)], owner, owner.address)

    assert isinstance(exc_info.value, BundlerRpcError)
    assert len(attempts) == 1
    assert "wait_for_user_operation_receipt" not in bundler.calls
    assert not any(c[0] == "wait_for_receipt" for c in chain.calls)


def test_user_operation_signed_by_owner(account, owner, bundler):
    DelegationDispatcher(account).dispatch([transfer(RECEIVER1, 1)], owner, owner.address)

    op = bundler.sent[0]
    digest = op.hash(ENTRYPOINT_V08_ADDRESS, SEPOLIA_CHAIN_ID)
    assert Account._recover_hash(digest, signature=op.signature) == owner.address


def test_unsponsored_operation_is_estimated(account, owner, bundler):
    account.sponsor = False

    DelegationDispatcher(account).dispatch([transfer(RECEIVER1, 1)], owner, owner.address)

    assert "estimate_user_operation_gas" in bundler.calls
    assert "sponsor_user_operation" not in bundler.calls
    assert bundler.sent[0].paymaster is None


def test_submission_outcomes_are_audited(account, owner, chain, caplog):
    audit = logging.getLogger("test_audit_submissions")
    dispatcher = DelegationDispatcher(account, audit_logger=audit)

    with caplog.at_level(logging.INFO, logger="test_audit_submissions"):
        dispatcher.dispatch([transfer(RECEIVER1, 1)], owner, owner.address)
        chain.receipt_status = 0
        with pytest.raises(ExecutionError):
            dispatcher.dispatch([transfer(RECEIVER1, 1)], owner, owner.address)

    messages = [r.getMessage() for r in caplog.records if r.name == "test_audit_submissions"]
    assert messages[0].startswith("SUCCESS")
    assert "Authorization: yes" in messages[0]
    assert messages[1].startswith("FAILED")
    assert TX_HASH in messages[1]


def test_make_submission_variants():
    one = [Call.create(RECEIVER1)]
    two = [Call.create(RECEIVER1), Call.create(RECEIVER2)]

    assert isinstance(make_submission(one), Single)
    assert isinstance(make_submission(two), Batch)
    assert make_submission(one).call_data[:4] == EXECUTE_SELECTOR
    assert make_submission(two).call_data[:4] == EXECUTE_BATCH_SELECTOR
    with pytest.raises(ConfigurationError):
        make_submission([])
    with pytest.raises(ConfigurationError):
        Batch(())
