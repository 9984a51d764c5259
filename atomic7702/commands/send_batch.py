"""
Atomic batch ERC-20 transfer.

Sends tokens to two recipients in a single UserOperation via
``executeBatch``. If either transfer fails the whole batch reverts.

Usage:
    python -m atomic7702 send_batch [--amount1 10] [--amount2 20]
"""
from __future__ import annotations

import argparse

from atomic7702.commands.common import banner, build_context, parse_amount, run_command
from atomic7702.commands.transfers import execute_transfers
from atomic7702.config.settings import (
    PIMLICO_API_KEY,
    PRIVATE_KEY,
    RECEIVER_ADDRESS,
    RECEIVER_ADDRESS2,
    RPC_URL,
    TOKEN_ADDRESS,
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m atomic7702 send_batch",
        description="Send two ERC-20 transfers atomically in one UserOperation",
    )
    parser.add_argument("--amount1", default="10", help="Amount for RECEIVER_ADDRESS (default: 10)")
    parser.add_argument("--amount2", default="20", help="Amount for RECEIVER_ADDRESS2 (default: 20)")
    return parser


@run_command
def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    parse_amount(args.amount1, "--amount1")
    parse_amount(args.amount2, "--amount2")

    banner("🎯 Atomic Batch ERC-20 Transfer")

    ctx = build_context(
        PRIVATE_KEY, RPC_URL, PIMLICO_API_KEY, TOKEN_ADDRESS, RECEIVER_ADDRESS, RECEIVER_ADDRESS2
    )
    transfers = [
        (ctx.settings.receiver_address, args.amount1),
        (ctx.settings.receiver_address2, args.amount2),
    ]
    result = execute_transfers(ctx, "send_batch", transfers)

    banner("🎉 Batch Execution Verified!")
    print("✅ Proof of Atomicity:")
    print(f"   • Single transaction hash: {result.transaction_hash}")
    print(f"   • Calls executed in order: {len(result.calls)}")
    print(f"   • Delegation: {'YES (first tx)' if result.authorization_included else 'Already deployed'}\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
