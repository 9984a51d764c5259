"""
Compile and deploy the TestToken (TTK) ERC-20 contract.

Compiles the bundled TestToken.sol (or --source) with py-solc-x, deploys it
with a regular signed transaction from the owner EOA, verifies the token
state and writes ERC20_TOKEN_ADDRESS back into .env.

Usage:
    python -m atomic7702 deploy_token [--env-file .env] [--solc-version 0.8.24] [--source TestToken.sol]
"""
from __future__ import annotations

import argparse
import json
import logging
import os
from datetime import datetime
from pathlib import Path
from typing import Any

import requests
from eth_account import Account
from solcx import compile_standard, install_solc
from solcx.exceptions import SolcError, SolcInstallationError

from atomic7702.commands.common import RULE, banner, format_units, run_command
from atomic7702.config.logging_config import get_command_logger
from atomic7702.config.network import address_url
from atomic7702.config.settings import PRIVATE_KEY, RPC_URL, TOKEN_ADDRESS, load_settings
from atomic7702.errors import ConfigurationError, TransportError
from atomic7702.helpers.chain_reader import ChainReader
from atomic7702.helpers.web3_setup import make_web3
from atomic7702.setup.env_file import update_env_value
from atomic7702.setup.transactions import send_transaction

logger = logging.getLogger(__name__)

SOLC_VERSION = os.getenv("SOLC_VERSION", "0.8.24")
CONTRACTS_DIR = Path(__file__).resolve().parent.parent / "contracts"
CONTRACT_FILE = "TestToken.sol"
CONTRACT_NAME = "TestToken"

# Below this the deployment will likely run out of gas
LOW_BALANCE_WEI = 10**15  # 0.001 ETH


def compile_token(source_path: Path | None = None, solc_version: str = SOLC_VERSION) -> dict[str, Any]:
    """
    Compile TestToken.sol.

    Returns:
        {"abi": [...], "bytecode": "0x..."}

    Raises:
        ConfigurationError: Source missing or compilation failed
        TransportError: solc could not be downloaded
    """
    source_path = Path(source_path) if source_path else CONTRACTS_DIR / CONTRACT_FILE
    if not source_path.is_file():
        raise ConfigurationError(f"Contract source not found: {source_path}")

    try:
        install_solc(solc_version)
    except (requests.exceptions.RequestException, SolcInstallationError) as e:
        raise TransportError(f"Could not install solc {solc_version}: {e}") from e

    print(f"📝 Compiling {source_path.name} (solc {solc_version})...\n")
    try:
        compiled = compile_standard(
            {
                "language": "Solidity",
                "sources": {CONTRACT_FILE: {"content": source_path.read_text()}},
                "settings": {
                    "optimizer": {"enabled": True, "runs": 200},
                    "outputSelection": {"*": {"*": ["abi", "evm.bytecode"]}},
                },
            },
            solc_version=solc_version,
        )
    except SolcError as e:
        raise ConfigurationError(f"Compilation failed: {e}") from e

    contract = compiled["contracts"][CONTRACT_FILE][CONTRACT_NAME]
    bytecode = contract["evm"]["bytecode"]["object"]
    print("✅ Contract compiled successfully!")
    print(f"   Bytecode size: {len(bytecode) // 2} bytes\n")
    return {"abi": contract["abi"], "bytecode": "0x" + bytecode}


def deploy_token(chain: ChainReader, account, artifact: dict[str, Any], timeout: float) -> str:
    """Deploy the compiled token and return its address."""
    w3 = chain.w3
    print(f"🚀 Deploying {CONTRACT_NAME}...")
    print(f"📧 Deployer address: {account.address}\n")

    balance = chain.get_balance(account.address)
    print(f"💰 Deployer balance: {format_units(balance, 18)} ETH")
    if balance < LOW_BALANCE_WEI:
        print("⚠️  Warning: Low ETH balance. May need more for deployment.")
    print()

    factory = w3.eth.contract(abi=artifact["abi"], bytecode=artifact["bytecode"])
    tx = {"data": factory.constructor().data_in_transaction, "value": 0}

    print("⏳ Sending deployment transaction...\n")
    receipt = send_transaction(chain, account, tx, timeout)
    address = receipt["contractAddress"]

    banner(f"✅ {CONTRACT_NAME} deployed successfully!")
    print(f"📍 Contract address: {address}")
    print(f"⛽ Gas used: {receipt['gasUsed']:,}")
    print(f"📦 Block number: {receipt['blockNumber']}")
    return address


def verify_token(chain: ChainReader, token: str, holder: str) -> dict[str, Any]:
    print("🔍 Verifying deployment...\n")
    metadata = chain.token_metadata(token)
    total_supply = chain.total_supply(token)
    holder_balance = chain.token_balance(token, holder)
    decimals = metadata["decimals"]

    print("📊 Token Details:")
    print(f"   Name: {metadata['name']}")
    print(f"   Symbol: {metadata['symbol']}")
    print(f"   Total Supply: {format_units(total_supply, decimals)} {metadata['symbol']}")
    print(f"   Deployer Balance: {format_units(holder_balance, decimals)} {metadata['symbol']}\n")
    print("✅ Verification complete!\n")
    return {**metadata, "total_supply": total_supply, "deployer_balance": holder_balance}


def save_deployment(out_dir: Path, info: dict[str, Any]) -> Path:
    out_dir.mkdir(parents=True, exist_ok=True)
    path = out_dir / f"deployment_test_token_{int(datetime.now().timestamp())}.json"
    path.write_text(json.dumps(info, indent=2))
    return path


@run_command
def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="python -m atomic7702 deploy_token",
        description="Compile and deploy the TestToken ERC-20",
    )
    parser.add_argument("--env-file", default=".env", help="Env file to update (default: .env)")
    parser.add_argument("--solc-version", default=SOLC_VERSION)
    parser.add_argument("--deployments-dir", default="deployments", help="Where to save deployment JSON")
    parser.add_argument(
        "--source",
        type=Path,
        default=CONTRACTS_DIR / CONTRACT_FILE,
        help="Solidity source defining contract TestToken (default: bundled TestToken.sol)",
    )
    parser.add_argument("--no-env-update", action="store_true", help="Do not write ERC20_TOKEN_ADDRESS")
    args = parser.parse_args(argv)

    if not args.source.is_file():
        raise ConfigurationError(f"Contract source not found: {args.source}")

    settings = load_settings(PRIVATE_KEY, RPC_URL)
    get_command_logger(settings.log_level)

    account = Account.from_key(settings.private_key)
    chain = ChainReader(make_web3(settings.rpc_url))

    print("🧩 EIP-7702 TestToken Deployment\n")
    print(f"{RULE}\n")

    artifact = compile_token(args.source, solc_version=args.solc_version)
    address = deploy_token(chain, account, artifact, settings.receipt_timeout)
    print(f"🔗 Explorer: {address_url(address, settings.chain)}\n")

    token_info = verify_token(chain, address, account.address)

    saved = save_deployment(Path(args.deployments_dir), {
        "address": address,
        "deployer": account.address,
        "chain": settings.chain,
        "symbol": token_info["symbol"],
        "timestamp": datetime.now().isoformat(),
        "abi": artifact["abi"],
    })
    print(f"💾 Deployment info saved to: {saved}\n")
    logger.info("TestToken deployed at %s", address)

    if not args.no_env_update:
        update_env_value(Path(args.env_file), TOKEN_ADDRESS, address)
        print(f"✅ Updated {args.env_file} with {TOKEN_ADDRESS}\n")

    banner("🎉 Token Ready!")
    print("📝 Next steps:")
    print("   1. Fund your EOA with test ETH if needed")
    print("   2. Check the account: python -m atomic7702 check_smart_account")
    print("   3. Send an atomic transfer: python -m atomic7702 send_erc20\n")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
