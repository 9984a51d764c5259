"""
Plain EOA transactions for setup flows (contract deployment, ETH funding).

These bypass the bundler: the owner key signs a regular transaction and
pays gas itself.
"""
from __future__ import annotations

import logging
from typing import Any

from eth_account.signers.local import LocalAccount

from atomic7702.errors import ExecutionError, TransportError
from atomic7702.helpers.chain_reader import TRANSPORT_ERRORS, ChainReader

logger = logging.getLogger(__name__)


def send_transaction(
    chain: ChainReader,
    account: LocalAccount,
    tx: dict[str, Any],
    timeout: float,
):
    """
    Fill nonce/gas/fees, sign, broadcast and wait for ``tx``.

    Returns:
        Transaction receipt

    Raises:
        TransportError: RPC failure
        ExecutionError: Transaction reverted
        InclusionTimeoutError: Not included within ``timeout``
    """
    w3 = chain.w3
    try:
        tx = dict(tx)
        tx.setdefault("from", account.address)
        tx.setdefault("chainId", w3.eth.chain_id)
        tx.setdefault("nonce", w3.eth.get_transaction_count(account.address))
        tx.setdefault("gasPrice", w3.eth.gas_price)
        if "gas" not in tx:
            tx["gas"] = w3.eth.estimate_gas(tx)

        signed = account.sign_transaction(tx)
        tx_hash = w3.eth.send_raw_transaction(signed.raw_transaction)
    except TRANSPORT_ERRORS as e:
        raise TransportError(f"sending transaction failed: {e}") from e

    tx_hash_hex = "0x" + bytes(tx_hash).hex()
    logger.info("Transaction sent: %s", tx_hash_hex)

    receipt = chain.wait_for_receipt(tx_hash_hex, timeout)
    if receipt["status"] != 1:
        raise ExecutionError(f"Transaction {tx_hash_hex} reverted", transaction_hash=tx_hash_hex)
    return receipt
