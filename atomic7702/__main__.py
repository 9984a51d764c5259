#!/usr/bin/env python3
"""
Entry point for running commands as a module.

Usage:
    python -m atomic7702                    # Show available commands
    python -m atomic7702 send_erc20         # Atomic delegation + single transfer
    python -m atomic7702 send_batch         # Atomic batch transfer
"""
import importlib
import sys

COMMANDS = {
    "send_erc20": ("atomic7702.commands.send_erc20", "Send one ERC-20 transfer (delegates on first use)"),
    "send_batch": ("atomic7702.commands.send_batch", "Send two ERC-20 transfers atomically"),
    "check_balances": ("atomic7702.commands.check_balances", "Show token metadata and balances"),
    "check_smart_account": ("atomic7702.commands.check_smart_account", "Check delegation, balances and bundler"),
    "show_address": ("atomic7702.commands.show_address", "Show owner and smart account addresses"),
    "generate_wallet": ("atomic7702.setup.generate_wallet", "Generate a new random wallet"),
    "deploy_token": ("atomic7702.setup.deploy_token", "Compile and deploy the TestToken ERC-20"),
    "fund_new_wallet": ("atomic7702.setup.fund_new_wallet", "Send ETH and tokens to ADDRESS2"),
}


def usage():
    print("Usage: python -m atomic7702 <command> [args]")
    print("\nAvailable commands:")
    for cmd, (_, desc) in COMMANDS.items():
        print(f"  {cmd:22} - {desc}")
    print("\nExample: python -m atomic7702 send_erc20 --amount 5")


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the atomic7702 module."""
    argv = sys.argv[1:] if argv is None else argv

    if not argv or argv[0] in ("-h", "--help"):
        usage()
        return 0

    command, rest = argv[0], argv[1:]
    if command not in COMMANDS:
        print(f"Unknown command: {command}")
        print("Run 'python -m atomic7702' to see available commands.")
        return 1

    module = importlib.import_module(COMMANDS[command][0])
    return module.main(rest)


if __name__ == "__main__":
    sys.exit(main())
