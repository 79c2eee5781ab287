"""Network and contract address constants."""

from typing import TypedDict


class NetworkInfo(TypedDict):
    chain_id: int
    rpc_url: str
    explorer_url: str


class SafeDeployment(TypedDict):
    """Safe v1.4.1 canonical deployments used to create new multisigs."""

    proxy_factory: str
    singleton: str
    fallback_handler: str


BASE_SEPOLIA = "base-sepolia"
BASE_MAINNET = "base-mainnet"

NETWORKS: dict[str, NetworkInfo] = {
    BASE_SEPOLIA: {
        "chain_id": 84532,
        "rpc_url": "https://sepolia.base.org",
        "explorer_url": "https://sepolia.basescan.org",
    },
    BASE_MAINNET: {
        "chain_id": 8453,
        "rpc_url": "https://mainnet.base.org",
        "explorer_url": "https://basescan.org",
    },
}

# Same addresses on every chain (deterministic deployment)
SAFE_V141_DEPLOYMENT: SafeDeployment = {
    "proxy_factory": "0x4e1DCf7AD4e460CfD30791CCC4F9c8a4f820ec67",
    "singleton": "0x29fcB43b46531BcA003ddC8FCB67FFE91900C762",
    "fallback_handler": "0xfd0732Dc9E303f09fCEf3a7388Ad10A83459Ec99",
}

SAFE_VERSION = "1.4.1"

# Safe operation types
OPERATION_CALL = 0
OPERATION_DELEGATECALL = 1

# Network names for Safe web app URLs
SAFE_UI_PREFIXES = {
    84532: "basesep",
    8453: "base",
}

DEFAULT_RECEIPT_TIMEOUT = 120.0
DEFAULT_RECEIPT_POLL_INTERVAL = 2.0
