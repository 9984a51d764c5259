"""
Token balance check for the owner EOA, the smart account and the receiver.

Balances are read concurrently; under in-place delegation the owner and the
smart account share one address.
"""
from __future__ import annotations

import argparse

from eth_account import Account
from tabulate import tabulate

from atomic7702.commands.common import banner, format_units, require_address, run_command
from atomic7702.config.logging_config import get_command_logger
from atomic7702.config.settings import (
    PRIVATE_KEY,
    RECEIVER_ADDRESS,
    RPC_URL,
    TOKEN_ADDRESS,
    load_settings,
)
from atomic7702.helpers.chain_reader import ChainReader
from atomic7702.helpers.web3_setup import make_web3


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m atomic7702 check_balances",
        description="Show token metadata and balances",
    )
    parser.add_argument("--address", action="append", default=[], help="Extra address to include (repeatable)")
    return parser


@run_command
def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    extras = [require_address(extra, "--address") for extra in args.address]
    settings = load_settings(PRIVATE_KEY, RPC_URL, TOKEN_ADDRESS, RECEIVER_ADDRESS)
    logger = get_command_logger(settings.log_level)

    owner = Account.from_key(settings.private_key)
    chain = ChainReader(make_web3(settings.rpc_url))
    token = settings.token_address

    banner("💰 Token Balance Check")
    print(f"📍 Token: {token}\n")

    metadata = chain.token_metadata(token)
    print("📊 Token Details:")
    print(f"   Name: {metadata['name']}")
    print(f"   Symbol: {metadata['symbol']}")
    print(f"   Decimals: {metadata['decimals']}\n")

    # Smart account address == owner address (EIP-7702 in-place delegation)
    labelled = [
        ("EOA Owner", owner.address),
        ("Smart Account", owner.address),
        ("Receiver", settings.receiver_address),
    ]
    if settings.receiver_address2:
        labelled.append(("Receiver 2", settings.receiver_address2))
    labelled.extend(("Extra", extra) for extra in extras)

    balances = chain.token_balances(token, [address for _, address in labelled])
    logger.debug("Read %d balances for %s", len(balances), token)

    rows = [
        [label, address, f"{format_units(balance, metadata['decimals'])} {metadata['symbol']}"]
        for (label, address), balance in zip(labelled, balances)
    ]
    print("💼 Balances:")
    print(tabulate(rows, headers=["Account", "Address", "Balance"], tablefmt="grid"))
    print()

    print("📝 Note: EOA and Smart Account have the same address")
    print("   This is expected for EIP-7702 (EOA delegation)\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
