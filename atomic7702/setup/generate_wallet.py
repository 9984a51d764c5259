"""
Wallet generation utility.

Creates a new random key for testnet use. Private keys must never be
committed to version control.
"""
from __future__ import annotations

import argparse
from pathlib import Path

from eth_account import Account

from atomic7702.commands.common import RULE, run_command
from atomic7702.config.network import get_chain_config
from atomic7702.setup.env_file import write_env_private_key


def generate_wallet() -> tuple[str, str]:
    """Return (private_key_hex, checksum_address) for a fresh random account."""
    account = Account.create()
    return "0x" + bytes(account.key).hex(), account.address


@run_command
def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="python -m atomic7702 generate_wallet",
        description="Generate a new Ethereum wallet",
    )
    parser.add_argument("--out-dir", help="Also write .env.<address> with PRIVATE_KEY to this directory")
    args = parser.parse_args(argv)

    print("🔐 Generating new Ethereum wallet...\n")
    private_key, address = generate_wallet()
    print("✅ Wallet generated successfully!\n")

    print(RULE)
    print("📝 SAVE THESE DETAILS SECURELY")
    print(f"{RULE}\n")
    print("🔑 Private Key:")
    print(private_key)
    print("\n📧 Address:")
    print(address)
    print(f"\n{RULE}\n")

    if args.out_dir:
        path = write_env_private_key(Path(args.out_dir), address, private_key)
        print(f"💾 Wrote {path}\n")

    print("⚠️  IMPORTANT:")
    print(f"1. Add to .env: PRIVATE_KEY={private_key}")
    print(f"2. Add to .env: RECEIVER_ADDRESS={address} (or use a different address)")
    print("3. Fund with Sepolia ETH:")
    for faucet in get_chain_config("sepolia")["faucets"]:
        print(f"   • {faucet}")
    print("\n⚠️  NEVER share the private key or commit it to git!\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
