"""
Chain read capability.

Thin wrapper over a Web3 instance exposing the reads the dispatcher and the
commands need: code / delegation status, nonces, balances, token metadata and
receipts. Every transport failure is re-raised as
:class:`~atomic7702.errors.TransportError`; nothing is cached or retried.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Any

import requests
from eth_typing import ChecksumAddress
from web3 import Web3
from web3.exceptions import TimeExhausted, Web3Exception

from atomic7702.config.abis import ENTRYPOINT_V08_ABI, ERC20_ABI
from atomic7702.config.network import DELEGATION_DESIGNATOR_PREFIX
from atomic7702.errors import InclusionTimeoutError, TransportError

logger = logging.getLogger(__name__)

TRANSPORT_ERRORS = (requests.exceptions.RequestException, Web3Exception, OSError)

# 0xef0100 || 20-byte address
DELEGATION_DESIGNATOR_LENGTH = 23


def parse_delegation(code: bytes) -> ChecksumAddress | None:
    """Return the implementation an EIP-7702 delegation designator points at."""
    code = bytes(code)
    if len(code) == DELEGATION_DESIGNATOR_LENGTH and code.startswith(DELEGATION_DESIGNATOR_PREFIX):
        return Web3.to_checksum_address(code[3:])
    return None


class ChainReader:
    """Read-only access to the canonical chain."""

    def __init__(self, w3: Web3, max_workers: int = 4):
        self.w3 = w3
        self.max_workers = max_workers

    def _read(self, what: str, fn, *args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except TRANSPORT_ERRORS as e:
            raise TransportError(f"{what} failed: {e}") from e

    # ------------------------------ account state -----------------------------

    def get_code(self, address: str) -> bytes:
        address = Web3.to_checksum_address(address)
        return bytes(self._read(f"eth_getCode({address})", self.w3.eth.get_code, address))

    def get_delegation(self, address: str) -> ChecksumAddress | None:
        """Implementation the address is delegated to, or None."""
        return parse_delegation(self.get_code(address))

    def is_deployed(self, address: str, implementation: str) -> bool:
        """Whether the account is live as a smart account.

        An EOA counts as deployed only when its code is a delegation
        designator pointing at ``implementation``. Any other contract code at
        the address also counts as deployed.
        """
        code = self.get_code(address)
        if not code:
            return False
        target = parse_delegation(code)
        if target is None:
            return True
        return target == Web3.to_checksum_address(implementation)

    def get_transaction_count(self, address: str) -> int:
        """The account's own transaction nonce (not an EntryPoint nonce)."""
        address = Web3.to_checksum_address(address)
        return int(self._read(
            f"eth_getTransactionCount({address})",
            self.w3.eth.get_transaction_count,
            address,
        ))

    def get_balance(self, address: str) -> int:
        address = Web3.to_checksum_address(address)
        return int(self._read(f"eth_getBalance({address})", self.w3.eth.get_balance, address))

    def entrypoint_nonce(self, entry_point: str, sender: str, key: int = 0) -> int:
        """EntryPoint.getNonce(sender, key) - the smart account's operation nonce."""
        contract = self.w3.eth.contract(address=Web3.to_checksum_address(entry_point), abi=ENTRYPOINT_V08_ABI)
        return int(self._read(
            "EntryPoint.getNonce",
            contract.functions.getNonce(Web3.to_checksum_address(sender), key).call,
        ))

    # --------------------------------- tokens ---------------------------------

    def _token(self, token: str):
        return self.w3.eth.contract(address=Web3.to_checksum_address(token), abi=ERC20_ABI)

    def token_balance(self, token: str, holder: str) -> int:
        fn = self._token(token).functions.balanceOf(Web3.to_checksum_address(holder))
        return int(self._read(f"balanceOf({holder})", fn.call))

    def token_balances(self, token: str, holders: list[str]) -> list[int]:
        """Fan-out balanceOf reads; results keep the order of ``holders``."""
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            return list(pool.map(lambda h: self.token_balance(token, h), holders))

    def token_metadata(self, token: str) -> dict[str, Any]:
        contract = self._token(token)
        names = ("name", "symbol", "decimals")
        with ThreadPoolExecutor(max_workers=self.max_workers) as pool:
            values = list(pool.map(
                lambda n: self._read(f"{n}()", contract.functions[n]().call),
                names,
            ))
        return dict(zip(names, values))

    def total_supply(self, token: str) -> int:
        return int(self._read("totalSupply()", self._token(token).functions.totalSupply().call))

    # -------------------------------- receipts --------------------------------

    def wait_for_receipt(self, tx_hash: str, timeout: float, poll_latency: float = 1.0):
        """Block until the transaction is included or ``timeout`` elapses.

        Raises:
            InclusionTimeoutError: Not seen in time; the outcome is unknown.
            TransportError: RPC failure while polling.
        """
        try:
            return self.w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=timeout, poll_latency=poll_latency
            )
        except TimeExhausted as e:
            raise InclusionTimeoutError(
                f"Transaction {tx_hash} not included within {timeout}s; outcome unknown",
                operation_hash=tx_hash,
            ) from e
        except TRANSPORT_ERRORS as e:
            raise TransportError(f"waiting for {tx_hash} failed: {e}") from e
