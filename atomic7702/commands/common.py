"""
Shared plumbing for the command entry points: console report helpers,
token-unit formatting and the error boundary that maps failures to exit codes.
"""
from __future__ import annotations

import functools
import logging
import sys
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Callable

from eth_typing import ChecksumAddress
from eth_utils import is_address, to_checksum_address

from atomic7702.config.abis import TRANSFER_EVENT_TOPIC
from atomic7702.config.logging_config import get_command_logger, setup_submission_logger
from atomic7702.config.network import tx_url
from atomic7702.config.settings import Settings, load_settings
from atomic7702.errors import (
    ConfigurationError,
    DispatchError,
    ExecutionError,
    InclusionTimeoutError,
    TransportError,
)
from atomic7702.executor.dispatcher import DelegationDispatcher, SubmissionResult
from atomic7702.executor.smart_account import SmartAccount

RULE = "━" * 40


def banner(title: str):
    print(f"\n{RULE}")
    print(title)
    print(f"{RULE}\n")


def parse_amount(amount: int | str | Decimal, option: str = "Amount") -> Decimal:
    """Validate a human amount from the command line. No network access."""
    try:
        value = Decimal(str(amount).strip())
    except InvalidOperation:
        raise ConfigurationError(f"{option} is not a number: {amount!r}") from None
    if not value.is_finite() or value <= 0:
        raise ConfigurationError(f"{option} must be positive, got {amount}")
    return value


def require_address(value: str | None, option: str) -> ChecksumAddress:
    if not value or not is_address(value):
        raise ConfigurationError(f"{option} is not a valid address: {value!r}")
    return to_checksum_address(value)


def to_units(amount: int | str | Decimal, decimals: int) -> int:
    """Human token amount -> smallest unit."""
    value = parse_amount(amount) * (Decimal(10) ** decimals)
    if value != value.to_integral_value():
        raise ConfigurationError(f"Amount {amount} has more than {decimals} decimals")
    return int(value)


def format_units(value: int, decimals: int) -> str:
    """Smallest unit -> human readable, thousands separated."""
    scaled = Decimal(value) / (Decimal(10) ** decimals)
    text = f"{scaled:,f}"
    if "." in text:
        text = text.rstrip("0").rstrip(".")
    return text


def yes_no(flag: bool) -> str:
    return "✅ YES" if flag else "❌ NO"


@dataclass
class CommandContext:
    settings: Settings
    account: SmartAccount
    logger: logging.Logger

    def dispatcher(self, command: str) -> DelegationDispatcher:
        return DelegationDispatcher(
            self.account,
            receipt_timeout=self.settings.receipt_timeout,
            audit_logger=setup_submission_logger(command),
        )


def build_context(*required: str) -> CommandContext:
    """Load settings (fails before any network call) and wire up the smart account."""
    settings = load_settings(*required)
    logger = get_command_logger(settings.log_level)
    account = SmartAccount.from_settings(settings)
    return CommandContext(settings=settings, account=account, logger=logger)


def count_transfer_events(receipt, token: str) -> int:
    token = to_checksum_address(token)
    count = 0
    for log in receipt["logs"]:
        topics = log["topics"]
        if not topics or to_checksum_address(log["address"]) != token:
            continue
        if "0x" + bytes(topics[0]).hex() == TRANSFER_EVENT_TOPIC:
            count += 1
    return count


def print_result(result: SubmissionResult, chain: str):
    banner("✅ UserOperation Included")
    print("📦 Transaction Hash:")
    print(f"   {result.transaction_hash}\n")
    print("🔗 View on Etherscan:")
    print(f"   {tx_url(result.transaction_hash, chain)}\n")
    print(f"   UserOperation: {result.user_operation_hash}")
    print(f"   Block: {result.block_number}")
    print(f"   Gas Used: {result.gas_used}")
    print(f"   Authorization included: {yes_no(result.authorization_included)}\n")


def _describe(error: DispatchError) -> str:
    if isinstance(error, ConfigurationError):
        return f"❌ Configuration error: {error}"
    if isinstance(error, InclusionTimeoutError):
        return f"⏳ Timed out: {error}"
    if isinstance(error, ExecutionError):
        return f"❌ Execution reverted: {error}"
    if isinstance(error, TransportError):
        return f"❌ Network error: {error}"
    return f"❌ {error}"


def run_command(fn: Callable[..., int]) -> Callable[..., int]:
    """Error boundary for ``main()``: every failure becomes a diagnostic and exit code 1."""

    @functools.wraps(fn)
    def wrapper(*args, **kwargs) -> int:
        try:
            return fn(*args, **kwargs)
        except DispatchError as e:
            logging.getLogger("atomic7702").debug("Command failed", exc_info=True)
            print(f"\n{_describe(e)}", file=sys.stderr)
            if isinstance(e, InclusionTimeoutError) and e.operation_hash:
                print(f"   Check {e.operation_hash} later; it may still be included.", file=sys.stderr)
            return 1
        except KeyboardInterrupt:
            print("\nInterrupted", file=sys.stderr)
            return 130

    return wrapper
