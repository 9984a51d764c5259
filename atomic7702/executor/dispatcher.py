"""
Delegation-aware call dispatcher.

Decides per submission whether the owner's EIP-7702 authorization has to ride
along (only while the account is not yet delegated to the implementation),
encodes one call as ``execute`` and several as ``executeBatch``, submits the
result as a single UserOperation and waits for it to land.

Flow of :meth:`DelegationDispatcher.dispatch`:

    validate inputs (no I/O)
    -> is_deployed(account)
    -> [not deployed] read the signer's own transaction nonce, sign authorization
    -> encode calls
    -> submit one UserOperation
    -> wait for the bundler receipt, then the transaction receipt
    -> classify: reverted -> ExecutionError, otherwise SubmissionResult
"""
from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Union

from eth_account.datastructures import SignedSetCodeAuthorization
from eth_account.signers.local import LocalAccount
from eth_utils import is_address, to_checksum_address

from atomic7702.config.logging_config import log_submission
from atomic7702.config.network import RECEIPT_TIMEOUT
from atomic7702.errors import ConfigurationError, DispatchError, ExecutionError
from atomic7702.executor.smart_account import SmartAccount
from atomic7702.helpers.eip7702_builder import (
    Call,
    build_authorization,
    encode_execute,
    encode_execute_batch,
)

logger = logging.getLogger(__name__)


# --------------------------------------------------------------------------- #
# Submissions                                                                 #
# --------------------------------------------------------------------------- #

@dataclass(frozen=True)
class Single:
    """One call, encoded as ``execute(target, value, data)``."""
    call: Call
    authorization: SignedSetCodeAuthorization | None = field(default=None, compare=False)

    @property
    def calls(self) -> tuple[Call, ...]:
        return (self.call,)

    @property
    def call_data(self) -> bytes:
        return encode_execute(self.call)


@dataclass(frozen=True)
class Batch:
    """Several calls, executed in order and atomically via ``executeBatch``."""
    calls: tuple[Call, ...]
    authorization: SignedSetCodeAuthorization | None = field(default=None, compare=False)

    def __post_init__(self):
        if not self.calls:
            raise ConfigurationError("A batch needs at least one call")

    @property
    def call_data(self) -> bytes:
        return encode_execute_batch(self.calls)


Submission = Union[Single, Batch]


def make_submission(
    calls: list[Call] | tuple[Call, ...],
    authorization: SignedSetCodeAuthorization | None = None,
) -> Submission:
    if not calls:
        raise ConfigurationError("At least one call is required")
    if len(calls) == 1:
        return Single(calls[0], authorization)
    return Batch(tuple(calls), authorization)


@dataclass(frozen=True)
class SubmissionResult:
    transaction_hash: str
    status: int
    gas_used: int
    block_number: int
    user_operation_hash: str
    authorization_included: bool
    calls: tuple[Call, ...] = ()

    @property
    def success(self) -> bool:
        return self.status == 1


# --------------------------------------------------------------------------- #
# Dispatcher                                                                  #
# --------------------------------------------------------------------------- #

class DelegationDispatcher:
    """Submits calls through a :class:`SmartAccount`, delegating it on first use."""

    def __init__(
        self,
        account: SmartAccount,
        receipt_timeout: float = RECEIPT_TIMEOUT,
        audit_logger: logging.Logger | None = None,
    ):
        self.account = account
        self.receipt_timeout = receipt_timeout
        self.audit_logger = audit_logger

    def _validate(self, calls, signer: LocalAccount | None, account_address: str | None) -> tuple[Call, ...]:
        if not calls:
            raise ConfigurationError("At least one call is required")
        for call in calls:
            if not isinstance(call, Call) or not is_address(call.target):
                raise ConfigurationError(f"Invalid call descriptor: {call!r}")
        if signer is None:
            raise ConfigurationError("A signer is required")
        if not account_address or not is_address(account_address):
            raise ConfigurationError(f"Account address is not valid: {account_address!r}")

        account_address = to_checksum_address(account_address)
        # In-place delegation: the signer's EOA is the smart account
        if account_address != to_checksum_address(signer.address):
            raise ConfigurationError(
                f"Signer {signer.address} does not control account {account_address}"
            )
        if account_address != self.account.address:
            raise ConfigurationError(
                f"Account {account_address} does not match the configured smart account {self.account.address}"
            )
        return tuple(calls)

    def authorize_if_needed(self, signer: LocalAccount) -> SignedSetCodeAuthorization | None:
        """Return a fresh authorization when the account is not delegated yet."""
        deployed = self.account.is_deployed()
        logger.info("Smart account %s deployed: %s", self.account.address, deployed)
        if deployed:
            return None

        # The signer's own transaction nonce, never the EntryPoint nonce
        nonce = self.account.chain.get_transaction_count(signer.address)
        logger.info(
            "Signing EIP-7702 authorization: %s -> %s (chain %s, nonce %s)",
            signer.address, self.account.implementation, self.account.chain_id, nonce,
        )
        return build_authorization(signer, self.account.implementation, self.account.chain_id, nonce)

    def dispatch(
        self,
        calls: list[Call] | tuple[Call, ...],
        signer: LocalAccount,
        account_address: str,
    ) -> SubmissionResult:
        """
        Execute ``calls`` from the smart account as one UserOperation.

        Args:
            calls: Ordered call descriptors (at least one)
            signer: Owner key of the account
            account_address: Smart account address (equal to the signer's address)

        Returns:
            SubmissionResult of the included operation

        Raises:
            ConfigurationError: Invalid input, raised before any network call
            TransportError: Node or bundler unreachable or erroring
            ExecutionError: Included but reverted
            InclusionTimeoutError: Not seen within the receipt timeout
        """
        calls = self._validate(calls, signer, account_address)
        authorization = self.authorize_if_needed(signer)
        return self.submit(make_submission(calls, authorization))

    def submit(self, submission: Submission) -> SubmissionResult:
        authorization_included = submission.authorization is not None
        logger.info(
            "Submitting %d call(s) via %s%s",
            len(submission.calls),
            "executeBatch" if isinstance(submission, Batch) else "execute",
            " with EIP-7702 authorization" if authorization_included else "",
        )

        try:
            result = self._submit(submission)
        except DispatchError as e:
            self._audit(submission, success=False, error=str(e), tx_hash=getattr(e, "transaction_hash", None))
            raise

        self._audit(submission, success=True, tx_hash=result.transaction_hash, gas_used=result.gas_used)
        return result

    def _submit(self, submission: Submission) -> SubmissionResult:
        deadline = time.monotonic() + self.receipt_timeout
        user_op_hash = self.account.send_user_operation(submission.call_data, submission.authorization)

        logger.info("Waiting for UserOperation %s to be included...", user_op_hash)
        op_receipt = self.account.wait_for_user_operation_receipt(user_op_hash, self.receipt_timeout)
        tx_hash = op_receipt["receipt"]["transactionHash"]
        logger.info("Included in transaction %s", tx_hash)

        remaining = max(deadline - time.monotonic(), 1.0)
        receipt = self.account.chain.wait_for_receipt(tx_hash, remaining)

        if receipt["status"] != 1:
            raise ExecutionError(f"Transaction {tx_hash} reverted", transaction_hash=tx_hash)
        if not op_receipt.get("success", True):
            reason = op_receipt.get("reason") or "no reason given"
            raise ExecutionError(
                f"UserOperation {user_op_hash} execution failed in {tx_hash}: {reason}",
                transaction_hash=tx_hash,
            )

        logger.info("Confirmed in block %s (gas used %s)", receipt["blockNumber"], receipt["gasUsed"])
        return SubmissionResult(
            transaction_hash=tx_hash,
            status=int(receipt["status"]),
            gas_used=int(receipt["gasUsed"]),
            block_number=int(receipt["blockNumber"]),
            user_operation_hash=user_op_hash,
            authorization_included=submission.authorization is not None,
            calls=tuple(submission.calls),
        )

    def _audit(self, submission: Submission, success: bool, **kwargs):
        if self.audit_logger is None:
            return
        log_submission(
            self.audit_logger,
            account=self.account.address,
            calls=len(submission.calls),
            authorization_included=submission.authorization is not None,
            success=success,
            **kwargs,
        )
