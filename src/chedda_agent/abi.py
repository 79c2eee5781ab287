from __future__ import annotations

import json
from pathlib import Path

ABIS_DIR = Path(__file__).parent / "abis"

ERC20_ABI_PATH = ABIS_DIR / "ERC20.json"
SWAP_ROUTER_ABI_PATH = ABIS_DIR / "SwapRouter.json"
LENDING_POOL_ABI_PATH = ABIS_DIR / "LendingPool.json"
SAFE_ABI_PATH = ABIS_DIR / "Safe.json"
SAFE_PROXY_FACTORY_ABI_PATH = ABIS_DIR / "SafeProxyFactory.json"


def load_abi(path: str | Path) -> list[dict]:
    """Load an ABI from a JSON file and return its "abi" field.

    Args:
        path: Path to the JSON file containing an "abi" field.

    Returns:
        ABI as a list of dictionaries.

    Raises:
        FileNotFoundError: If the file does not exist.
        json.JSONDecodeError: If the file is not valid JSON.
        KeyError: If the JSON does not contain an "abi" field.
    """
    p = Path(path)
    with p.open() as f:
        data = json.load(f)
    return data["abi"]


def load_erc20_abi() -> list[dict]:
    """Load the ERC20 ABI."""
    return load_abi(ERC20_ABI_PATH)


def load_swap_router_abi() -> list[dict]:
    """Load the Uniswap-V2-style router ABI (swapExactTokensForTokens)."""
    return load_abi(SWAP_ROUTER_ABI_PATH)


def load_lending_pool_abi() -> list[dict]:
    """Load the lending pool ABI (mutating and view functions)."""
    return load_abi(LENDING_POOL_ABI_PATH)


def load_safe_abi() -> list[dict]:
    return load_abi(SAFE_ABI_PATH)


def load_safe_proxy_factory_abi() -> list[dict]:
    return load_abi(SAFE_PROXY_FACTORY_ABI_PATH)
