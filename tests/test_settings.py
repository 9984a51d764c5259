"""
Tests for environment-backed settings

Run with: python -m pytest tests/test_settings.py -v
"""
import os

import pytest

from atomic7702.config.settings import (
    PIMLICO_API_KEY,
    PRIVATE_KEY,
    RECEIVER_ADDRESS,
    RPC_URL,
    TOKEN_ADDRESS,
    load_settings,
)
from atomic7702.errors import ConfigurationError

from conftest import OWNER_ADDRESS, OWNER_KEY

ALL_VARS = [
    "PRIVATE_KEY", "SEPOLIA_RPC_URL", "RPC_URL", "PIMLICO_API_KEY", "ERC20_TOKEN_ADDRESS",
    "RECEIVER_ADDRESS", "RECEIVER_ADDRESS2", "ADDRESS2", "CHAIN", "BUNDLER_URL",
    "SPONSOR_USER_OPERATIONS", "RECEIPT_TIMEOUT", "LOG_LEVEL",
]


@pytest.fixture
def env(tmp_path, restore_environ):
    """Empty environment and a path to a (not yet existing) .env file."""
    for name in ALL_VARS:
        os.environ.pop(name, None)
    return tmp_path / ".env"


def test_missing_variables_are_all_named(env):
    with pytest.raises(ConfigurationError) as exc_info:
        load_settings(PRIVATE_KEY, RPC_URL, TOKEN_ADDRESS, env_file=str(env))
    message = str(exc_info.value)
    assert "PRIVATE_KEY" in message
    assert "SEPOLIA_RPC_URL" in message
    assert "ERC20_TOKEN_ADDRESS" in message


def test_unfilled_template_value_counts_as_missing(env):
    os.environ["ERC20_TOKEN_ADDRESS"] = "0x"
    with pytest.raises(ConfigurationError, match="ERC20_TOKEN_ADDRESS"):
        load_settings(TOKEN_ADDRESS, env_file=str(env))


def test_loads_from_env_file(env):
    env.write_text(
        f"PRIVATE_KEY={OWNER_KEY}\n"
        "SEPOLIA_RPC_URL=https://rpc.example\n"
        f"RECEIVER_ADDRESS={OWNER_ADDRESS.lower()}\n"
    )

    settings = load_settings(PRIVATE_KEY, RPC_URL, RECEIVER_ADDRESS, env_file=str(env))

    assert settings.private_key == OWNER_KEY
    assert settings.rpc_url == "https://rpc.example"
    assert settings.receiver_address == OWNER_ADDRESS
    assert settings.chain == "sepolia"
    assert settings.chain_id == 11155111
    assert settings.sponsor_user_operations is True
    assert settings.receipt_timeout == 120


def test_rpc_url_fallback(env):
    os.environ["RPC_URL"] = "https://fallback.example"
    settings = load_settings(RPC_URL, env_file=str(env))
    assert settings.rpc_url == "https://fallback.example"


@pytest.mark.parametrize("key", ["abc", "0x1234", "0x" + "zz" * 32])
def test_malformed_private_key(env, key):
    os.environ["PRIVATE_KEY"] = key
    with pytest.raises(ConfigurationError, match="PRIVATE_KEY"):
        load_settings(PRIVATE_KEY, env_file=str(env))


def test_malformed_address(env):
    os.environ["RECEIVER_ADDRESS"] = "0x1234"
    with pytest.raises(ConfigurationError, match="RECEIVER_ADDRESS"):
        load_settings(env_file=str(env))


def test_bundler_url(env):
    os.environ["PIMLICO_API_KEY"] = "pim_test"
    settings = load_settings(PIMLICO_API_KEY, env_file=str(env))
    assert settings.bundler_url == "https://api.pimlico.io/v2/11155111/rpc?apikey=pim_test"

    os.environ["BUNDLER_URL"] = "http://localhost:4337"
    assert load_settings(env_file=str(env)).bundler_url == "http://localhost:4337"


def test_bundler_url_requires_api_key(env):
    settings = load_settings(env_file=str(env))
    with pytest.raises(ConfigurationError, match="PIMLICO_API_KEY"):
        settings.bundler_url


def test_optional_values(env):
    os.environ["SPONSOR_USER_OPERATIONS"] = "false"
    os.environ["RECEIPT_TIMEOUT"] = "30"
    os.environ["LOG_LEVEL"] = "debug"
    os.environ["CHAIN"] = "base_sepolia"

    settings = load_settings(env_file=str(env))

    assert settings.sponsor_user_operations is False
    assert settings.receipt_timeout == 30
    assert settings.log_level == "DEBUG"
    assert settings.chain_id == 84532


@pytest.mark.parametrize("name,value", [
    ("RECEIPT_TIMEOUT", "soon"),
    ("RECEIPT_TIMEOUT", "-5"),
    ("SPONSOR_USER_OPERATIONS", "maybe"),
    ("CHAIN", "mainnet"),
])
def test_invalid_optional_values(env, name, value):
    os.environ[name] = value
    with pytest.raises(ConfigurationError):
        load_settings(env_file=str(env))
