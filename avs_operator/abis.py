"""
Contract ABI fragments.

Only the methods the registration flow calls are included.
"""

DELEGATION_MANAGER_ABI = [
    {
        "type": "function",
        "name": "registerAsOperator",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "initDelegationApprover", "type": "address"},
            {"name": "allocationDelay", "type": "uint32"},
            {"name": "metadataURI", "type": "string"},
        ],
        "outputs": [],
    },
]

AVS_DIRECTORY_ABI = [
    {
        "type": "function",
        "name": "initialize",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "initialOwner", "type": "address"},
            {"name": "initialPausedStatus", "type": "uint256"},
        ],
        "outputs": [],
    },
    {
        "type": "function",
        "name": "calculateOperatorAVSRegistrationDigestHash",
        "stateMutability": "view",
        "inputs": [
            {"name": "operator", "type": "address"},
            {"name": "avs", "type": "address"},
            {"name": "salt", "type": "bytes32"},
            {"name": "expiry", "type": "uint256"},
        ],
        "outputs": [{"name": "", "type": "bytes32"}],
    },
]

ECDSA_STAKE_REGISTRY_ABI = [
    {
        "type": "function",
        "name": "registerOperatorWithSignature",
        "stateMutability": "nonpayable",
        "inputs": [
            {
                "name": "_operatorSignature",
                "type": "tuple",
                "components": [
                    {"name": "signature", "type": "bytes"},
                    {"name": "salt", "type": "bytes32"},
                    {"name": "expiry", "type": "uint256"},
                ],
            },
            {"name": "_signingKey", "type": "address"},
        ],
        "outputs": [],
    },
]
