"""
Contract ABIs and chain constants used by the intent pipeline.
"""

# Placeholder address the command contract uses for "pay in native currency"
NATIVE_SENTINEL = "0xEeeeeEeeeEeEeeEeEeEeeEEEeeeeEeeeeeeeEEeE"

MAX_UINT256 = 2**256 - 1

# Field order of the previewCommand output tuple, as deployed
PREVIEW_FIELDS = ("to", "amount", "balance", "token", "call_data", "execute_call_data")

COMMAND_ABI = [
    {
        "inputs": [{"internalType": "string", "name": "intent", "type": "string"}],
        "name": "previewCommand",
        "outputs": [
            {"internalType": "address", "name": "to", "type": "address"},
            {"internalType": "uint256", "name": "amount", "type": "uint256"},
            {"internalType": "uint256", "name": "balance", "type": "uint256"},
            {"internalType": "address", "name": "token", "type": "address"},
            {"internalType": "bytes", "name": "callData", "type": "bytes"},
            {"internalType": "bytes", "name": "executeCallData", "type": "bytes"}
        ],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [{"internalType": "string", "name": "intent", "type": "string"}],
        "name": "command",
        "outputs": [],
        "stateMutability": "payable",
        "type": "function"
    }
]

ERC20_ABI = [
    {
        "inputs": [
            {"internalType": "address", "name": "owner", "type": "address"},
            {"internalType": "address", "name": "spender", "type": "address"}
        ],
        "name": "allowance",
        "outputs": [{"internalType": "uint256", "name": "", "type": "uint256"}],
        "stateMutability": "view",
        "type": "function"
    },
    {
        "inputs": [
            {"internalType": "address", "name": "spender", "type": "address"},
            {"internalType": "uint256", "name": "amount", "type": "uint256"}
        ],
        "name": "approve",
        "outputs": [{"internalType": "bool", "name": "", "type": "bool"}],
        "stateMutability": "nonpayable",
        "type": "function"
    }
]


def is_native(token: str) -> bool:
    """Return True if ``token`` is the native-currency sentinel address."""
    return isinstance(token, str) and token.lower() == NATIVE_SENTINEL.lower()
