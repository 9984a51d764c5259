"""
Account-abstraction ABIs: EntryPoint v0.8.

Only the entries this tool calls or encodes are included.
"""

ENTRYPOINT_V08_ABI = [
    {
        "type": "function",
        "name": "getNonce",
        "stateMutability": "view",
        "inputs": [
            {"name": "sender", "type": "address"},
            {"name": "key", "type": "uint192"},
        ],
        "outputs": [{"name": "nonce", "type": "uint256"}],
    },
    {
        "type": "event",
        "name": "UserOperationEvent",
        "anonymous": False,
        "inputs": [
            {"indexed": True, "name": "userOpHash", "type": "bytes32"},
            {"indexed": True, "name": "sender", "type": "address"},
            {"indexed": True, "name": "paymaster", "type": "address"},
            {"indexed": False, "name": "nonce", "type": "uint256"},
            {"indexed": False, "name": "success", "type": "bool"},
            {"indexed": False, "name": "actualGasCost", "type": "uint256"},
            {"indexed": False, "name": "actualGasUsed", "type": "uint256"},
        ],
    },
]

