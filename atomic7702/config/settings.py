"""
Environment-backed settings.

Every command loads its settings once at start-up, before touching the
network. Values come from the process environment, optionally seeded from a
``.env`` file via python-dotenv.

Public API
----------
load_settings(*required, env_file=None)
    Read, validate and return a :class:`Settings`. Raises
    :class:`~atomic7702.errors.ConfigurationError` naming every missing
    required variable.
"""
from __future__ import annotations

import os
import re
from dataclasses import dataclass

from dotenv import find_dotenv, load_dotenv
from eth_typing import ChecksumAddress
from eth_utils import is_address, to_checksum_address

from atomic7702.config.network import (
    DEFAULT_CHAIN,
    RECEIPT_TIMEOUT,
    get_bundler_url,
    get_chain_config,
    get_chain_id,
)
from atomic7702.errors import ConfigurationError

__all__ = [
    "Settings",
    "load_settings",
    "PRIVATE_KEY",
    "RPC_URL",
    "PIMLICO_API_KEY",
    "TOKEN_ADDRESS",
    "RECEIVER_ADDRESS",
    "RECEIVER_ADDRESS2",
    "ADDRESS2",
]

# Variable names
PRIVATE_KEY = "PRIVATE_KEY"
RPC_URL = "SEPOLIA_RPC_URL"
PIMLICO_API_KEY = "PIMLICO_API_KEY"
TOKEN_ADDRESS = "ERC20_TOKEN_ADDRESS"
RECEIVER_ADDRESS = "RECEIVER_ADDRESS"
RECEIVER_ADDRESS2 = "RECEIVER_ADDRESS2"
ADDRESS2 = "ADDRESS2"

_PRIVATE_KEY_RE = re.compile(r"^0x[0-9a-fA-F]{64}$")
_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class Settings:
    """Validated configuration for one invocation."""

    private_key: str | None
    rpc_url: str | None
    pimlico_api_key: str | None
    token_address: ChecksumAddress | None
    receiver_address: ChecksumAddress | None
    receiver_address2: ChecksumAddress | None
    address2: ChecksumAddress | None
    chain: str = DEFAULT_CHAIN
    bundler_url_override: str | None = None
    sponsor_user_operations: bool = True
    receipt_timeout: int = RECEIPT_TIMEOUT
    log_level: str = "INFO"

    @property
    def chain_id(self) -> int:
        return get_chain_id(self.chain)

    @property
    def bundler_url(self) -> str:
        if self.bundler_url_override:
            return self.bundler_url_override
        if not self.pimlico_api_key:
            raise ConfigurationError(f"{PIMLICO_API_KEY} is missing in .env")
        return get_bundler_url(self.pimlico_api_key, self.chain)


def _raw(name: str) -> str | None:
    value = os.getenv(name)
    if value is None:
        return None
    value = value.strip()
    # An unfilled template entry ("0x") counts as missing
    if not value or value == "0x":
        return None
    return value


def _address(name: str) -> ChecksumAddress | None:
    value = _raw(name)
    if value is None:
        return None
    if not is_address(value):
        raise ConfigurationError(f"{name} is not a valid address: {value}")
    return to_checksum_address(value)


def _private_key() -> str | None:
    value = _raw(PRIVATE_KEY)
    if value is None:
        return None
    if not value.startswith("0x"):
        raise ConfigurationError(f"{PRIVATE_KEY} must start with 0x")
    if not _PRIVATE_KEY_RE.match(value):
        raise ConfigurationError(f"{PRIVATE_KEY} must be 32 bytes of hex")
    return value


def _flag(name: str, default: bool) -> bool:
    value = _raw(name)
    if value is None:
        return default
    lowered = value.lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ConfigurationError(f"{name} should be 'true' or 'false', got: {value}")


def _positive_int(name: str, default: int) -> int:
    value = _raw(name)
    if value is None:
        return default
    try:
        parsed = int(value)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got: {value}") from None
    if parsed <= 0:
        raise ConfigurationError(f"{name} must be positive, got: {value}")
    return parsed


def load_settings(*required: str, env_file: str | None = None) -> Settings:
    """Load settings from the environment.

    Args:
        *required: Variable names that must be present for this command
                   (e.g. ``PRIVATE_KEY``, ``ERC20_TOKEN_ADDRESS``).
        env_file: Optional explicit .env path; defaults to python-dotenv's
                  search from the working directory.

    Returns:
        Settings instance

    Raises:
        ConfigurationError: If a required variable is absent or any present
                            variable is malformed.
    """
    load_dotenv(env_file or find_dotenv(usecwd=True))

    missing = []
    for name in required:
        # RPC_URL is accepted as a fallback for SEPOLIA_RPC_URL
        if name == RPC_URL and _raw("RPC_URL"):
            continue
        if _raw(name) is None:
            missing.append(name)
    if missing:
        raise ConfigurationError(
            "Missing required environment variables: " + ", ".join(missing)
        )

    chain = (_raw("CHAIN") or DEFAULT_CHAIN).lower()
    try:
        get_chain_config(chain)
    except ValueError as e:
        raise ConfigurationError(str(e)) from None

    return Settings(
        private_key=_private_key(),
        rpc_url=_raw(RPC_URL) or _raw("RPC_URL"),
        pimlico_api_key=_raw(PIMLICO_API_KEY),
        token_address=_address(TOKEN_ADDRESS),
        receiver_address=_address(RECEIVER_ADDRESS),
        receiver_address2=_address(RECEIVER_ADDRESS2),
        address2=_address(ADDRESS2),
        chain=chain,
        bundler_url_override=_raw("BUNDLER_URL"),
        sponsor_user_operations=_flag("SPONSOR_USER_OPERATIONS", True),
        receipt_timeout=_positive_int("RECEIPT_TIMEOUT", RECEIPT_TIMEOUT),
        log_level=(_raw("LOG_LEVEL") or "INFO").upper(),
    )
