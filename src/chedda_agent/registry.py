"""Static vault and token registry, partitioned by network id.

The tables are plain data wrapped in read-only mappings; adding a vault or a
network is an edit to ``_VAULT_TABLE`` / ``_TOKEN_TABLE`` only.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

from web3 import Web3

from .constants import BASE_MAINNET, BASE_SEPOLIA
from .errors import UnknownToken, UnknownVault


@dataclass(frozen=True)
class Token:
    address: str
    symbol: str
    decimals: int

    def __post_init__(self) -> None:
        object.__setattr__(self, "address", Web3.to_checksum_address(self.address))


@dataclass(frozen=True)
class Vault:
    address: str
    deposit_token_symbol: str
    category: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "address", Web3.to_checksum_address(self.address))


_TOKEN_TABLE: dict[str, tuple[Token, ...]] = {
    BASE_SEPOLIA: (
        Token("0x4200000000000000000000000000000000000006", "WETH", 18),
        Token("0x036CbD53842c5426634e7929541eC2318f3dCF7e", "USDC", 6),
    ),
    BASE_MAINNET: (
        Token("0x4200000000000000000000000000000000000006", "WETH", 18),
        Token("0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913", "USDC", 6),
        Token("0x50c5725949A6F0c72E6C4a641F24049A917DB0Cb", "DAI", 18),
        Token("0xcbB7C0000aB88B473b1f5aFd9ef808440eed33Bf", "CBBTC", 8),
    ),
}

_VAULT_TABLE: dict[str, tuple[Vault, ...]] = {
    BASE_SEPOLIA: (
        Vault("0x81df92DE8FD8bEa04A84E4c5Bad94A3daeEB2Fc1", "WETH", "base-meme"),
        Vault("0xBA2E65D461d3F6066E88A34988EAae9Fb7143396", "WETH", "eth-gaming"),
        Vault("0xc097580d41176d56f1c42ad20d11Bc2247A8d2Be", "USDC", "base-gaming"),
        Vault("0x7e41fF84f262a182C2928D4817220F47eb89aeCc", "USDC", "eth-defi"),
        Vault("0x461fb6906dD46e4ED8fA354b3e4E5e7cB102171F", "USDC", "cb-assets"),
        Vault("0x2a9dc7463EA224dDCa477296051D95694b0bb05C", "WETH", "weth-stables"),
    ),
    BASE_MAINNET: (),
}

TOKENS: Mapping[str, Mapping[str, Token]] = MappingProxyType(
    {
        network: MappingProxyType({token.symbol: token for token in tokens})
        for network, tokens in _TOKEN_TABLE.items()
    }
)

VAULTS: Mapping[str, Mapping[str, Vault]] = MappingProxyType(
    {
        network: MappingProxyType({vault.category: vault for vault in vaults})
        for network, vaults in _VAULT_TABLE.items()
    }
)


def vault_categories(network: str) -> tuple[str, ...]:
    """Categories registered for ``network`` in registry order (empty if unknown)."""
    return tuple(VAULTS.get(network, {}).keys())


def resolve_vault(network: str, category: str) -> Vault:
    """Look up the lending vault for an investment category.

    Raises:
        UnknownVault: If the category is not registered for the network.
    """
    vault = VAULTS.get(network, {}).get(category)
    if vault is None:
        raise UnknownVault(network, category, vault_categories(network))
    return vault


def resolve_token(network: str, symbol: str) -> Token:
    """Look up a token by symbol (case-insensitive).

    Raises:
        UnknownToken: If the symbol is not registered for the network.
    """
    tokens = TOKENS.get(network, {})
    token = tokens.get(symbol.upper())
    if token is None:
        raise UnknownToken(network, symbol, tuple(tokens.keys()))
    return token


def find_token_by_address(network: str, address: str) -> Token | None:
    wanted = address.lower()
    for token in TOKENS.get(network, {}).values():
        if token.address.lower() == wanted:
            return token
    return None


def deposit_token(network: str, vault: Vault) -> Token:
    """Token metadata (decimals) of the asset a vault accepts."""
    return resolve_token(network, vault.deposit_token_symbol)
