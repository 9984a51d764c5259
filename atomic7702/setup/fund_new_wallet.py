"""
Fund a second wallet (ADDRESS2) for testing.

1. Send ETH for gas from the owner EOA with a regular transaction.
2. Send tokens from the smart account through the delegation-aware dispatcher.
"""
from __future__ import annotations

import argparse

from atomic7702.commands.common import (
    banner,
    build_context,
    format_units,
    parse_amount,
    run_command,
    to_units,
)
from atomic7702.config.network import tx_url
from atomic7702.config.settings import (
    ADDRESS2,
    PIMLICO_API_KEY,
    PRIVATE_KEY,
    RPC_URL,
    TOKEN_ADDRESS,
)
from atomic7702.errors import ConfigurationError
from atomic7702.helpers.eip7702_builder import CallBuilder
from atomic7702.setup.transactions import send_transaction

DEFAULT_ETH = "0.1"
DEFAULT_TOKENS = "10000"


@run_command
def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="python -m atomic7702 fund_new_wallet",
        description="Send ETH and test tokens to ADDRESS2",
    )
    parser.add_argument("--eth", default=DEFAULT_ETH, help="ETH to send (default: 0.1)")
    parser.add_argument("--tokens", default=DEFAULT_TOKENS, help="Tokens to send (default: 10000)")
    args = parser.parse_args(argv)
    parse_amount(args.eth, "--eth")
    parse_amount(args.tokens, "--tokens")

    ctx = build_context(PRIVATE_KEY, RPC_URL, PIMLICO_API_KEY, TOKEN_ADDRESS, ADDRESS2)
    account = ctx.account
    chain = account.chain
    token = ctx.settings.token_address
    new_wallet = ctx.settings.address2
    chain_name = ctx.settings.chain

    banner("💰 Fund New Wallet")
    print("📋 Configuration:")
    print(f"   Current EOA: {account.owner.address}")
    print(f"   New Wallet: {new_wallet}")
    print(f"   Token: {token}\n")

    metadata = chain.token_metadata(token)
    symbol, decimals = metadata["symbol"], metadata["decimals"]
    eth_to_send = to_units(args.eth, 18)
    tokens_to_send = to_units(args.tokens, decimals)

    print("📊 Checking current balances...")
    eth_balance = chain.get_balance(account.owner.address)
    new_eth_before = chain.get_balance(new_wallet)
    token_balance, new_tokens_before = chain.token_balances(token, [account.address, new_wallet])
    print(f"   Current EOA ETH: {format_units(eth_balance, 18)} ETH")
    print(f"   Current Smart Account {symbol}: {format_units(token_balance, decimals)} {symbol}")
    print(f"   New Wallet ETH: {format_units(new_eth_before, 18)} ETH")
    print(f"   New Wallet {symbol}: {format_units(new_tokens_before, decimals)} {symbol}\n")

    if eth_balance < eth_to_send:
        raise ConfigurationError(
            f"Insufficient ETH balance. Need {args.eth} ETH, have {format_units(eth_balance, 18)} ETH"
        )
    if token_balance < tokens_to_send:
        raise ConfigurationError(
            f"Insufficient {symbol} balance. Need {args.tokens}, have {format_units(token_balance, decimals)}"
        )

    banner(f"💸 Step 1: Send {args.eth} ETH")
    print("🚀 Sending ETH transaction...")
    receipt = send_transaction(
        chain, account.owner, {"to": new_wallet, "value": eth_to_send}, ctx.settings.receipt_timeout
    )
    eth_tx = "0x" + bytes(receipt["transactionHash"]).hex()
    print(f"   Transaction hash: {eth_tx}")
    print(f"   {tx_url(eth_tx, chain_name)}")
    print("✅ ETH transfer confirmed!\n")

    banner(f"🪙 Step 2: Send {args.tokens} {symbol}")
    print("🚀 Sending token transfer via UserOperation...")
    calls = CallBuilder().add_erc20_transfer(token, new_wallet, tokens_to_send).calls
    result = ctx.dispatcher("fund_new_wallet").dispatch(calls, account.owner, account.address)
    print(f"   Transaction hash: {result.transaction_hash}")
    print(f"   {tx_url(result.transaction_hash, chain_name)}")
    print(f"✅ {symbol} transfer confirmed!\n")

    banner("📊 Final Balances")
    new_eth_after = chain.get_balance(new_wallet)
    new_tokens_after = chain.token_balance(token, new_wallet)
    print("New Wallet:")
    print(f"   ETH: {format_units(new_eth_after, 18)} ETH (+{format_units(new_eth_after - new_eth_before, 18)} ETH)")
    print(
        f"   {symbol}: {format_units(new_tokens_after, decimals)} {symbol} "
        f"(+{format_units(new_tokens_after - new_tokens_before, decimals)} {symbol})\n"
    )

    banner("🎉 SUCCESS! New Wallet Funded")
    print(f"✅ Sent {args.eth} ETH for gas fees")
    print(f"✅ Sent {args.tokens} {symbol} for transfers\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
