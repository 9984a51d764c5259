"""
Smart account sanity check: address, delegation status, balances and
bundler connectivity.
"""
from __future__ import annotations

import argparse

from atomic7702.commands.common import banner, build_context, format_units, run_command, yes_no
from atomic7702.config.network import address_url
from atomic7702.config.settings import PIMLICO_API_KEY, PRIVATE_KEY, RPC_URL
from atomic7702.errors import ConfigurationError, TransportError


@run_command
def main(argv: list[str] | None = None) -> int:
    argparse.ArgumentParser(
        prog="python -m atomic7702 check_smart_account",
        description="Check smart account deployment, balances and bundler connectivity",
    ).parse_args(argv)

    ctx = build_context(PRIVATE_KEY, RPC_URL, PIMLICO_API_KEY)
    account = ctx.account
    chain = account.chain

    banner("🔍 Smart Account Sanity Check")
    print("📍 Smart Account Address:")
    print(f"   {account.address}")
    print(f"   {address_url(account.address, ctx.settings.chain)}\n")

    print("⏳ Checking deployment status...")
    deployed = account.is_deployed()
    print(f"   Delegated to Simple7702Account? {yes_no(deployed)}")
    delegate = chain.get_delegation(account.address)
    if delegate and not deployed:
        print(f"   ⚠️  Currently delegated to a different implementation: {delegate}")
    if not deployed:
        print("📝 Note: The account will be delegated atomically on its first UserOperation.")
    print()

    print("⏳ Checking ETH balance...")
    eth_balance = chain.get_balance(account.address)
    print(f"   ETH Balance: {format_units(eth_balance, 18)} ETH\n")

    token = ctx.settings.token_address
    if token:
        print("⏳ Checking token balance...")
        try:
            metadata = chain.token_metadata(token)
            balance = chain.token_balance(token, account.address)
            print(f"   {metadata['symbol']} Balance: {format_units(balance, metadata['decimals'])} {metadata['symbol']}\n")
        except TransportError as e:
            ctx.logger.warning("Token balance read failed: %s", e)
            print("   ⚠️  Could not read token balance (contract may not exist)\n")

    print("⏳ Testing bundler connection...")
    try:
        entry_points = account.bundler.supported_entry_points()
        bundler_chain_id = account.bundler.chain_id()
    except TransportError:
        print("   ❌ Connection failed!\n")
        raise
    print("   ✅ Connection successful!")
    supported = account.entry_point.lower() in [e.lower() for e in entry_points]
    print(f"   EntryPoint v0.8 supported: {yes_no(supported)}")
    print(f"   Bundler chain ID: {bundler_chain_id}\n")
    if bundler_chain_id != account.chain_id:
        raise ConfigurationError(
            f"Bundler serves chain {bundler_chain_id}, but CHAIN is {ctx.settings.chain} ({account.chain_id})"
        )

    banner("✅ Sanity Check Complete!")
    print("🎯 Next Steps:")
    print("   1. Fund the smart account with test tokens (python -m atomic7702 deploy_token)")
    print("   2. Send an atomic EIP-7702 + ERC-20 transfer (python -m atomic7702 send_erc20)\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
