from __future__ import annotations

import pytest

from chedda_agent.errors import UnknownToken, UnknownVault
from chedda_agent.registry import (
    TOKENS,
    VAULTS,
    deposit_token,
    find_token_by_address,
    resolve_token,
    resolve_vault,
    vault_categories,
)

CATEGORIES = ("base-meme", "eth-gaming", "base-gaming", "eth-defi", "cb-assets", "weth-stables")


def test_base_sepolia_has_all_vault_categories():
    assert vault_categories("base-sepolia") == CATEGORIES


def test_resolve_vault_and_deposit_token():
    vault = resolve_vault("base-sepolia", "eth-defi")
    assert vault.address.lower() == "0x7e41ff84f262a182c2928d4817220f47eb89aecc"
    assert vault.deposit_token_symbol == "USDC"
    assert deposit_token("base-sepolia", vault).decimals == 6

    weth_vault = resolve_vault("base-sepolia", "base-meme")
    assert deposit_token("base-sepolia", weth_vault).decimals == 18


@pytest.mark.parametrize("network", ["base-sepolia", "base-mainnet"])
def test_unknown_vault_fails_on_every_network(network):
    with pytest.raises(UnknownVault, match="not-a-category"):
        resolve_vault(network, "not-a-category")


@pytest.mark.parametrize("network", ["base-sepolia", "base-mainnet"])
def test_unknown_token_fails_on_every_network(network):
    with pytest.raises(UnknownToken, match="Token DOGE not found"):
        resolve_token(network, "DOGE")


def test_unknown_network_behaves_like_empty_registry():
    assert vault_categories("mars") == ()
    with pytest.raises(UnknownVault):
        resolve_vault("mars", "eth-defi")


def test_resolve_token_is_case_insensitive():
    assert resolve_token("base-sepolia", "usdc").symbol == "USDC"
    assert resolve_token("base-mainnet", "cbbtc").decimals == 8


def test_find_token_by_address():
    token = find_token_by_address("base-sepolia", "0x036cbd53842c5426634e7929541ec2318f3dcf7e")
    assert token is not None and token.symbol == "USDC"
    assert find_token_by_address("base-sepolia", "0x" + "00" * 20) is None


def test_registry_is_read_only():
    assert set(VAULTS) == set(TOKENS) == {"base-sepolia", "base-mainnet"}
    with pytest.raises(TypeError):
        VAULTS["base-sepolia"]["new"] = None  # type: ignore[index]
    with pytest.raises(TypeError):
        TOKENS["base-sepolia"] = {}  # type: ignore[index]
