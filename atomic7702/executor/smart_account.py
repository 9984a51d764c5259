"""
Simple7702Account smart account context.

The owner EOA is delegated in place to the Simple7702Account implementation,
so the smart account address is the owner address. A ``SmartAccount`` is
built once per invocation by the caller and passed down explicitly; it holds
no cached chain state.
"""
from __future__ import annotations

import logging
from typing import Any

from eth_account import Account
from eth_account.datastructures import SignedSetCodeAuthorization
from eth_account.signers.local import LocalAccount
from eth_typing import ChecksumAddress

from atomic7702.config.network import (
    ENTRYPOINT_V08_ADDRESS,
    RECEIPT_POLL_INTERVAL,
    SIMPLE_7702_ACCOUNT_IMPLEMENTATION,
)
from atomic7702.config.settings import PRIVATE_KEY, Settings
from atomic7702.errors import ConfigurationError
from atomic7702.helpers.bundler_client import BundlerClient
from atomic7702.helpers.chain_reader import ChainReader
from atomic7702.helpers.eip7702_builder import Call, build_authorization, encode_calls
from atomic7702.helpers.user_operation import EIP7702_FACTORY_MARKER, UserOperation
from atomic7702.helpers.web3_setup import make_web3

logger = logging.getLogger(__name__)


class SmartAccount:
    """EIP-7702 delegated Simple7702Account driven through an ERC-4337 bundler."""

    def __init__(
        self,
        owner: LocalAccount,
        chain: ChainReader,
        bundler: BundlerClient,
        chain_id: int,
        entry_point: str = ENTRYPOINT_V08_ADDRESS,
        implementation: str = SIMPLE_7702_ACCOUNT_IMPLEMENTATION,
        sponsor: bool = True,
    ):
        self.owner = owner
        self.chain = chain
        self.bundler = bundler
        self.chain_id = chain_id
        self.entry_point = entry_point
        self.implementation = implementation
        self.sponsor = sponsor

    @classmethod
    def from_settings(cls, settings: Settings) -> "SmartAccount":
        """Wire up web3, the bundler client and the owner key. Performs no I/O."""
        if not settings.private_key:
            raise ConfigurationError(f"{PRIVATE_KEY} is missing in .env")
        owner = Account.from_key(settings.private_key)
        chain = ChainReader(make_web3(settings.rpc_url))
        bundler = BundlerClient(settings.bundler_url, ENTRYPOINT_V08_ADDRESS)
        return cls(
            owner=owner,
            chain=chain,
            bundler=bundler,
            chain_id=settings.chain_id,
            sponsor=settings.sponsor_user_operations,
        )

    @property
    def address(self) -> ChecksumAddress:
        # In-place delegation: the EOA is the account
        return self.owner.address

    # ------------------------------ chain state ------------------------------

    def is_deployed(self) -> bool:
        """Re-read on every call; delegation can change between operations."""
        return self.chain.is_deployed(self.address, self.implementation)

    def get_nonce(self) -> int:
        """EntryPoint operation nonce (key 0). Not the EOA transaction nonce."""
        return self.chain.entrypoint_nonce(self.entry_point, self.address)

    def encode_calls(self, calls: list[Call] | tuple[Call, ...]) -> bytes:
        return encode_calls(calls)

    def sign_authorization(self, nonce: int) -> SignedSetCodeAuthorization:
        return build_authorization(self.owner, self.implementation, self.chain_id, nonce)

    # ---------------------------- user operations ----------------------------

    def prepare_user_operation(
        self,
        call_data: bytes,
        authorization: SignedSetCodeAuthorization | None = None,
    ) -> UserOperation:
        """Build an unsigned operation with gas and paymaster fields filled in."""
        gas_price = self.bundler.get_user_operation_gas_price()
        user_op = UserOperation(
            sender=self.address,
            nonce=self.get_nonce(),
            call_data=call_data,
            max_fee_per_gas=gas_price["maxFeePerGas"],
            max_priority_fee_per_gas=gas_price["maxPriorityFeePerGas"],
            factory=EIP7702_FACTORY_MARKER if authorization is not None else None,
            authorization=authorization,
        )

        if self.sponsor:
            logger.debug("Requesting paymaster sponsorship")
            fields = self.bundler.sponsor_user_operation(user_op)
        else:
            logger.debug("Estimating gas (self-funded)")
            fields = self.bundler.estimate_user_operation_gas(user_op)
        return user_op.with_rpc_fields(fields)

    def sign_user_operation(self, user_op: UserOperation) -> UserOperation:
        """Simple7702Account checks a plain ECDSA signature over the userOpHash."""
        digest = user_op.hash(self.entry_point, self.chain_id)
        signed = self.owner.unsafe_sign_hash(digest)
        return user_op.with_signature(signed.signature)

    def send_user_operation(
        self,
        call_data: bytes,
        authorization: SignedSetCodeAuthorization | None = None,
    ) -> str:
        """Prepare, sign and submit one operation. Returns the userOpHash."""
        user_op = self.sign_user_operation(self.prepare_user_operation(call_data, authorization))
        user_op_hash = self.bundler.send_user_operation(user_op)
        logger.info("UserOperation submitted: %s", user_op_hash)
        return user_op_hash

    def wait_for_user_operation_receipt(
        self,
        user_op_hash: str,
        timeout: float,
        poll_interval: float = RECEIPT_POLL_INTERVAL,
    ) -> dict[str, Any]:
        return self.bundler.wait_for_user_operation_receipt(user_op_hash, timeout, poll_interval)
