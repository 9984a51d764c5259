"""
ERC-20 transfer flow shared by ``send_erc20`` and ``send_batch``.

Snapshots balances, dispatches all transfers as one UserOperation (with the
EIP-7702 authorization on the first run), then verifies balances, Transfer
events and delegation status after inclusion.
"""
from __future__ import annotations

from atomic7702.commands.common import (
    CommandContext,
    banner,
    count_transfer_events,
    format_units,
    parse_amount,
    print_result,
    require_address,
    to_units,
    yes_no,
)
from atomic7702.errors import ConfigurationError
from atomic7702.executor.dispatcher import SubmissionResult
from atomic7702.helpers.eip7702_builder import CallBuilder


def execute_transfers(
    ctx: CommandContext,
    command: str,
    transfers: list[tuple[str, str]],
) -> SubmissionResult:
    """
    Send ``transfers`` ([(recipient, human amount), ...]) from the smart account.

    Returns:
        SubmissionResult of the included operation
    """
    account = ctx.account
    chain = account.chain
    token = ctx.settings.token_address
    if token is None:
        raise ConfigurationError("ERC20_TOKEN_ADDRESS is missing in .env")
    if not transfers:
        raise ConfigurationError("At least one transfer is required")

    # Reject bad input before the first chain read
    recipients = [require_address(r, "Recipient") for r, _ in transfers]
    for _, amount in transfers:
        parse_amount(amount)

    print("📋 Configuration:")
    print(f"   Owner (EOA): {account.owner.address}")
    print(f"   Smart Account: {account.address}")
    print(f"   Token: {token}")
    for i, recipient in enumerate(recipients, start=1):
        label = "Receiver" if len(recipients) == 1 else f"Receiver {i}"
        print(f"   {label}: {recipient}")
    print()

    metadata = chain.token_metadata(token)
    symbol, decimals = metadata["symbol"], metadata["decimals"]
    amounts = [to_units(amount, decimals) for _, amount in transfers]

    print("📤 Transfer Amounts:")
    for recipient, amount in zip(recipients, amounts):
        print(f"   → {recipient}: {format_units(amount, decimals)} {symbol}")
    print()

    holders = [account.address] + recipients
    print("📊 Checking initial balances...")
    before = chain.token_balances(token, holders)
    _print_balances(holders, before, decimals, symbol)

    total = sum(amounts)
    if before[0] < total:
        raise ConfigurationError(
            f"Insufficient {symbol}: smart account holds {format_units(before[0], decimals)}, "
            f"needs {format_units(total, decimals)}"
        )

    print("🔍 Checking deployment status...")
    deployed_before = account.is_deployed()
    print(f"   Smart Account deployed: {yes_no(deployed_before)}\n")

    if deployed_before:
        banner("📤 Subsequent Transaction: Transfer Only")
        print("   (EIP-7702 delegation persists on-chain, no authorization needed)\n")
    else:
        banner("🔐 First Transaction: EIP-7702 Authorization + Transfer")
        print(f"   Logic Address: {account.implementation}")
        print(f"   Chain ID: {account.chain_id}")
        print("   Delegation and transfer land in ONE atomic transaction\n")

    builder = CallBuilder()
    for recipient, amount in zip(recipients, amounts):
        builder.add_erc20_transfer(token, recipient, amount)

    print("🚀 Sending UserOperation to bundler...")
    print("⏳ Waiting for inclusion...\n")
    result = ctx.dispatcher(command).dispatch(builder.calls, account.owner, account.address)
    print_result(result, ctx.settings.chain)

    if not deployed_before:
        print("🔍 Verifying deployment status...")
        deployed_after = account.is_deployed()
        print(f"   Smart Account deployed: {yes_no(deployed_after)}\n")
        if deployed_after:
            print("🎉 SUCCESS: Smart Account delegated atomically with the transfer!\n")

    print("📊 Checking final balances...")
    after = chain.token_balances(token, holders)
    _print_balances(holders, after, decimals, symbol)

    print("📈 Balance Changes:")
    for holder, old, new in zip(holders, before, after):
        delta = new - old
        sign = "+" if delta >= 0 else "-"
        print(f"   {holder}: {sign}{format_units(abs(delta), decimals)} {symbol}")
    print()

    print("📝 Verifying Transfer events in logs...")
    receipt = chain.wait_for_receipt(result.transaction_hash, ctx.settings.receipt_timeout)
    found = count_transfer_events(receipt, token)
    if found >= len(amounts):
        print(f"   ✅ {found} Transfer event(s) found in transaction logs\n")
    else:
        print(f"   ⚠️  Expected {len(amounts)} Transfer event(s), found {found} (verify on Etherscan)\n")

    ctx.logger.info(
        "%s complete: %d transfer(s), tx %s, authorization %s",
        command, len(amounts), result.transaction_hash, result.authorization_included,
    )
    return result


def _print_balances(holders: list[str], balances: list[int], decimals: int, symbol: str):
    for holder, balance in zip(holders, balances):
        print(f"   {holder}: {format_units(balance, decimals)} {symbol}")
    print()
