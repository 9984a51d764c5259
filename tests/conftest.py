"""
Shared fixtures: an in-memory chain, an in-memory bundler and a fixed owner key.

The fakes record every call so tests can assert on what did (and did not)
touch the network.
"""
import logging
import os

import pytest
from eth_abi import decode
from eth_account import Account
from eth_utils import to_checksum_address

from atomic7702.commands.common import CommandContext
from atomic7702.config.abis import TRANSFER_EVENT_TOPIC
from atomic7702.config.network import (
    ENTRYPOINT_V08_ADDRESS,
    SIMPLE_7702_ACCOUNT_IMPLEMENTATION,
)
from atomic7702.config.settings import Settings
from atomic7702.errors import InclusionTimeoutError
from atomic7702.executor.smart_account import SmartAccount
from atomic7702.helpers.eip7702_builder import decode_calls

# Well-known development key (anvil/hardhat account #0)
OWNER_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
OWNER_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
OTHER_KEY = "0x59c6995e998f97a5a0044966f0945389dc9e86dae88c7a8412f4603b6b78690d"

SEPOLIA_CHAIN_ID = 11155111
TX_HASH = "0x" + "ab" * 32
USER_OP_HASH = "0x" + "cd" * 32

TOKEN = "0x1c7D4B196Cb0C7B01d743Fbc6116a902379C7238"
RECEIVER1 = "0x70997970C51812dc3A010C7d01b50e0d17dc79C8"
RECEIVER2 = "0x3C44CdDdB6a900fa2b585dd299e03d12FA4293BC"


class FakeChain:
    """Stands in for ChainReader."""

    def __init__(self, deployed=False, tx_nonce=7, entrypoint_nonce=3, receipt_status=1):
        self.deployed = deployed
        self.tx_nonce = tx_nonce
        self.entrypoint_nonce_value = entrypoint_nonce
        self.receipt_status = receipt_status
        self.calls = []

    def is_deployed(self, address, implementation):
        self.calls.append(("is_deployed", address, implementation))
        return self.deployed

    def get_transaction_count(self, address):
        self.calls.append(("get_transaction_count", address))
        return self.tx_nonce

    def entrypoint_nonce(self, entry_point, sender, key=0):
        self.calls.append(("entrypoint_nonce", entry_point, sender))
        return self.entrypoint_nonce_value

    def wait_for_receipt(self, tx_hash, timeout, poll_latency=1.0):
        self.calls.append(("wait_for_receipt", tx_hash, timeout))
        return {
            "transactionHash": bytes.fromhex(tx_hash[2:]),
            "status": self.receipt_status,
            "gasUsed": 123456,
            "blockNumber": 4242,
            "logs": [],
        }


class FakeTokenChain(FakeChain):
    """FakeChain with an ERC-20 ledger for TOKEN.

    ``execute`` applies the transfers encoded in a UserOperation, so balance
    snapshots and receipt logs reflect what the account actually sent.
    """

    def __init__(self, balances, decimals=18, **kwargs):
        super().__init__(**kwargs)
        self.balances = dict(balances)
        self.decimals = decimals
        self.eth_balance = 10**17
        self.delegation = None
        self.logs = []

    def token_metadata(self, token):
        self.calls.append(("token_metadata", token))
        return {"name": "TestToken", "symbol": "TTK", "decimals": self.decimals}

    def token_balances(self, token, holders):
        self.calls.append(("token_balances", token))
        return [self.balances.get(to_checksum_address(h), 0) for h in holders]

    def token_balance(self, token, holder):
        return self.token_balances(token, [holder])[0]

    def get_balance(self, address):
        self.calls.append(("get_balance", address))
        return self.eth_balance

    def get_delegation(self, address):
        self.calls.append(("get_delegation", address))
        return self.delegation

    def execute(self, sender, call_data):
        self.logs = []
        for call in decode_calls(call_data):
            recipient, amount = decode(["address", "uint256"], call.data[4:])
            recipient = to_checksum_address(recipient)
            self.balances[sender] -= amount
            self.balances[recipient] = self.balances.get(recipient, 0) + amount
            self.logs.append({
                "address": call.target,
                "topics": [bytes.fromhex(TRANSFER_EVENT_TOPIC[2:])],
            })

    def wait_for_receipt(self, tx_hash, timeout, poll_latency=1.0):
        receipt = super().wait_for_receipt(tx_hash, timeout, poll_latency)
        receipt["logs"] = list(self.logs)
        return receipt


class FakeBundler:
    """Stands in for BundlerClient."""

    def __init__(self, success=True, timeout=False, chain_id=SEPOLIA_CHAIN_ID):
        self.success = success
        self.timeout = timeout
        self.served_chain_id = chain_id
        self.entry_point = ENTRYPOINT_V08_ADDRESS
        self.sent = []
        self.calls = []
        self.on_send = None

    def get_user_operation_gas_price(self, speed="fast"):
        self.calls.append("get_user_operation_gas_price")
        return {"maxFeePerGas": 2_000_000_000, "maxPriorityFeePerGas": 1_000_000_000}

    def sponsor_user_operation(self, user_op, sponsorship_policy_id=None):
        self.calls.append("sponsor_user_operation")
        return {
            "callGasLimit": "0x10000",
            "verificationGasLimit": "0x20000",
            "preVerificationGas": "0xc350",
            "paymaster": "0x777777777777AeC03fd955926DbF81597e66834C",
            "paymasterVerificationGasLimit": "0x8000",
            "paymasterPostOpGasLimit": "0x1",
            "paymasterData": "0x1234",
        }

    def estimate_user_operation_gas(self, user_op):
        self.calls.append("estimate_user_operation_gas")
        return {
            "callGasLimit": "0x10000",
            "verificationGasLimit": "0x20000",
            "preVerificationGas": "0xc350",
        }

    def send_user_operation(self, user_op):
        self.calls.append("send_user_operation")
        self.sent.append(user_op)
        if self.on_send is not None:
            self.on_send(user_op)
        return USER_OP_HASH

    def wait_for_user_operation_receipt(self, user_op_hash, timeout, poll_interval=2.0):
        self.calls.append("wait_for_user_operation_receipt")
        if self.timeout:
            raise InclusionTimeoutError("not included", operation_hash=user_op_hash)
        return {
            "userOpHash": user_op_hash,
            "success": self.success,
            "reason": "" if self.success else "0x08c379a0",
            "receipt": {"transactionHash": TX_HASH},
        }

    def supported_entry_points(self):
        return [ENTRYPOINT_V08_ADDRESS]

    def chain_id(self):
        return self.served_chain_id


@pytest.fixture
def owner():
    return Account.from_key(OWNER_KEY)


@pytest.fixture
def chain():
    return FakeChain()


@pytest.fixture
def bundler(chain):
    bundler = FakeBundler()

    # Inclusion of an authorization delegates the account
    def apply(user_op):
        if user_op.authorization is not None:
            chain.deployed = True

    bundler.on_send = apply
    return bundler


@pytest.fixture
def account(owner, chain, bundler):
    return SmartAccount(
        owner=owner,
        chain=chain,
        bundler=bundler,
        chain_id=SEPOLIA_CHAIN_ID,
        entry_point=ENTRYPOINT_V08_ADDRESS,
        implementation=SIMPLE_7702_ACCOUNT_IMPLEMENTATION,
    )


@pytest.fixture
def restore_environ():
    """Undo any os.environ changes, including those made by load_dotenv."""
    saved = dict(os.environ)
    yield
    os.environ.clear()
    os.environ.update(saved)


@pytest.fixture(autouse=True)
def isolated_log_dir(tmp_path, monkeypatch):
    monkeypatch.setattr("atomic7702.config.logging_config.LOG_DIR", tmp_path / "logs")


@pytest.fixture
def token_chain():
    return FakeTokenChain({OWNER_ADDRESS: 1_000 * 10**18})


@pytest.fixture
def token_account(owner, token_chain):
    bundler = FakeBundler()

    def include(user_op):
        if user_op.authorization is not None:
            token_chain.deployed = True
        token_chain.execute(user_op.sender, user_op.call_data)

    bundler.on_send = include
    return SmartAccount(
        owner=owner,
        chain=token_chain,
        bundler=bundler,
        chain_id=SEPOLIA_CHAIN_ID,
    )


@pytest.fixture
def command_context(token_account):
    settings = Settings(
        private_key=OWNER_KEY,
        rpc_url="http://127.0.0.1:1",
        pimlico_api_key="pim_test",
        token_address=TOKEN,
        receiver_address=RECEIVER1,
        receiver_address2=RECEIVER2,
        address2=None,
    )
    return CommandContext(settings=settings, account=token_account, logger=logging.getLogger("atomic7702.tests"))
