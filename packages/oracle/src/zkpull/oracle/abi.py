"""AVS / IssuesClaim 合约 ABI（仅包含 operator 用到的条目）"""

PICK_TASK_GAS_LIMIT = 500_000

_TASK_COMPONENTS = [
    {"name": "taskId", "type": "uint256"},
    {"name": "issueId", "type": "uint256"},
    {"name": "claimIndex", "type": "uint256"},
    {"name": "prLink", "type": "string"},
    {"name": "developer", "type": "address"},
    {"name": "createdAt", "type": "uint256"},
    {"name": "status", "type": "uint8"},
    {"name": "assignedOperator", "type": "address"},
    {"name": "zkProof", "type": "bytes"},
]

AVS_ABI = [
    {
        "type": "function",
        "name": "pickTask",
        "stateMutability": "nonpayable",
        "inputs": [{"name": "taskId", "type": "uint256"}],
        "outputs": [],
    },
    {
        "type": "function",
        "name": "submitValidation",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "taskId", "type": "uint256"},
            {"name": "isValid", "type": "bool"},
            {"name": "zkProof", "type": "bytes"},
        ],
        "outputs": [],
    },
    {
        "type": "function",
        "name": "getTask",
        "stateMutability": "view",
        "inputs": [{"name": "taskId", "type": "uint256"}],
        "outputs": [{"name": "", "type": "tuple", "components": _TASK_COMPONENTS}],
    },
    {
        "type": "function",
        "name": "getOperatorTasks",
        "stateMutability": "view",
        "inputs": [{"name": "operator", "type": "address"}],
        "outputs": [{"name": "", "type": "uint256[]"}],
    },
    {
        "type": "function",
        "name": "issuesClaimContract",
        "stateMutability": "view",
        "inputs": [],
        "outputs": [{"name": "", "type": "address"}],
    },
    {
        "type": "event",
        "name": "TaskCreated",
        "anonymous": False,
        "inputs": [
            {"name": "taskId", "type": "uint256", "indexed": True},
            {"name": "issueId", "type": "uint256", "indexed": False},
            {"name": "claimIndex", "type": "uint256", "indexed": False},
        ],
    },
    {
        "type": "event",
        "name": "TaskAssigned",
        "anonymous": False,
        "inputs": [
            {"name": "taskId", "type": "uint256", "indexed": True},
            {"name": "operator", "type": "address", "indexed": True},
        ],
    },
]

# claims(issueId, claimIndex) -> (prLink, isMerged, developer, isValidated, timestamp, accessToken)
ISSUES_CLAIM_ABI = [
    {
        "type": "function",
        "name": "claims",
        "stateMutability": "view",
        "inputs": [
            {"name": "", "type": "uint256"},
            {"name": "", "type": "uint256"},
        ],
        "outputs": [
            {"name": "", "type": "string"},
            {"name": "", "type": "bool"},
            {"name": "", "type": "address"},
            {"name": "", "type": "bool"},
            {"name": "", "type": "uint256"},
            {"name": "", "type": "string"},
        ],
    },
]
