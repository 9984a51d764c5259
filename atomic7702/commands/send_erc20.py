"""
Single ERC-20 transfer from the EIP-7702 smart account.

On a fresh EOA the delegation authorization and the transfer are submitted
together in one UserOperation; later runs send the transfer alone.

Usage:
    python -m atomic7702 send_erc20 [--amount 10] [--to 0x...]
"""
from __future__ import annotations

import argparse

from atomic7702.commands.common import (
    banner,
    build_context,
    parse_amount,
    require_address,
    run_command,
)
from atomic7702.commands.transfers import execute_transfers
from atomic7702.config.settings import (
    PIMLICO_API_KEY,
    PRIVATE_KEY,
    RECEIVER_ADDRESS,
    RPC_URL,
    TOKEN_ADDRESS,
)

DEFAULT_AMOUNT = "10"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m atomic7702 send_erc20",
        description="Send one ERC-20 transfer through the EIP-7702 smart account",
    )
    parser.add_argument("--amount", default=DEFAULT_AMOUNT, help="Token amount (default: 10)")
    parser.add_argument("--to", help="Recipient (default: RECEIVER_ADDRESS)")
    return parser


@run_command
def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    parse_amount(args.amount, "--amount")
    to = require_address(args.to, "--to") if args.to is not None else None

    banner("🧩 EIP-7702 Atomic UserOperation Execution")

    required = [PRIVATE_KEY, RPC_URL, PIMLICO_API_KEY, TOKEN_ADDRESS]
    if to is None:
        required.append(RECEIVER_ADDRESS)
    ctx = build_context(*required)

    recipient = to or ctx.settings.receiver_address
    result = execute_transfers(ctx, "send_erc20", [(recipient, args.amount)])

    banner("🎉 Atomic Execution Verified!")
    print("✅ Proof of Atomicity:")
    print(f"   • Single transaction hash: {result.transaction_hash}")
    print(f"   • Delegation: {'YES (first tx)' if result.authorization_included else 'Already deployed'}")
    print(f"   • ERC-20 transfer: SUCCESS ({args.amount})\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
