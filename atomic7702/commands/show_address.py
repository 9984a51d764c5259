"""Print the owner EOA and smart account addresses. No network access."""
from __future__ import annotations

import argparse

from eth_account import Account

from atomic7702.commands.common import banner, run_command
from atomic7702.config.settings import PRIVATE_KEY, load_settings


@run_command
def main(argv: list[str] | None = None) -> int:
    argparse.ArgumentParser(
        prog="python -m atomic7702 show_address",
        description="Show the owner and smart account addresses",
    ).parse_args(argv)

    settings = load_settings(PRIVATE_KEY)
    owner = Account.from_key(settings.private_key)

    banner("📋 Account Information")
    print("💼 EOA Owner Address:")
    print(f"   {owner.address}\n")
    print("🏦 Simple 7702 Smart Account Address:")
    # EIP-7702 delegates the EOA in place
    print(f"   {owner.address}\n")
    print("📝 Notes:")
    print("   • The EOA runs Simple7702Account code via EIP-7702 delegation")
    print("   • Same address before and after delegation")
    print("   • Delegated on the first UserOperation")
    print("   • Can receive tokens before delegation\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
