from __future__ import annotations

import pytest
from conftest import AGENT_ADDRESS, USER_ADDRESS

from chedda_agent.abi import load_lending_pool_abi
from chedda_agent.actions import dispatch
from chedda_agent.encoder import decode_function_call
from chedda_agent.formatting import WAD
from chedda_agent.registry import resolve_vault
from chedda_agent.results import (
    AccountInfo,
    CallDataResponse,
    PoolInfo,
    PortfolioInfo,
    TransactionResult,
)

ETH_DEFI = resolve_vault("base-sepolia", "eth-defi")
BASE_MEME = resolve_vault("base-sepolia", "base-meme")


def _decode(call: CallDataResponse) -> tuple[str, list]:
    return decode_function_call(load_lending_pool_abi(), call.data)


@pytest.mark.asyncio
async def test_supply_returns_calldata_for_agent(state, wallet):
    result = await dispatch(
        state,
        "supply_to_vault",
        {"category": "eth-defi", "amount": "100", "useAsCollateral": True},
    )

    assert isinstance(result, CallDataResponse)
    assert result.to == ETH_DEFI.address
    assert _decode(result) == ("supply", [100_000_000, AGENT_ADDRESS, True])
    assert result.description == "Supply 100 USDC to eth-defi vault"
    assert wallet.sent == []


@pytest.mark.asyncio
async def test_supply_in_direct_mode_submits(direct_state, wallet):
    result = await dispatch(
        direct_state, "supply_to_vault", {"category": "base-meme", "amount": "0.5"}
    )

    assert isinstance(result, TransactionResult)
    (to, data, value), = wallet.sent
    assert to == BASE_MEME.address
    assert value == 0
    assert decode_function_call(load_lending_pool_abi(), data) == (
        "supply",
        [5 * 10**17, AGENT_ADDRESS, False],
    )


@pytest.mark.asyncio
async def test_supply_for_account_needs_multisig(state):
    with pytest.raises(ValueError, match="Multisig support is not configured"):
        await dispatch(
            state,
            "supply_to_vault",
            {"category": "eth-defi", "amount": "1", "account": USER_ADDRESS},
        )


@pytest.mark.asyncio
async def test_supply_rejects_bad_account(state):
    result = await dispatch(
        state,
        "supply_to_vault",
        {"category": "eth-defi", "amount": "1", "account": "alice.base.eth"},
    )

    assert "The provided account 'alice.base.eth' is invalid" in result


@pytest.mark.asyncio
async def test_withdraw_uses_account_as_receiver_and_owner(state):
    result = await dispatch(
        state,
        "withdraw_from_vault",
        {"category": "base-meme", "amount": "1.25", "account": USER_ADDRESS},
    )

    assert _decode(result) == ("withdraw", [125 * 10**16, USER_ADDRESS, USER_ADDRESS])


@pytest.mark.asyncio
async def test_withdraw_defaults_to_agent(state):
    result = await dispatch(
        state, "withdraw_from_vault", {"category": "eth-defi", "amount": "3"}
    )

    assert _decode(result) == ("withdraw", [3_000_000, AGENT_ADDRESS, AGENT_ADDRESS])


@pytest.mark.asyncio
async def test_borrow_and_repay(state):
    borrow = await dispatch(state, "borrow_from_vault", {"category": "eth-defi", "amount": "10"})
    repay = await dispatch(state, "repay_to_vault", {"category": "eth-defi", "amount": "4.5"})

    assert _decode(borrow) == ("take", [10_000_000])
    assert _decode(repay) == ("putAmount", [4_500_000])
    assert borrow.to == repay.to == ETH_DEFI.address
    assert repay.description == "Repay 4.5 USDC to eth-defi vault"


@pytest.mark.asyncio
async def test_unknown_category_is_reported(state, wallet):
    result = await dispatch(state, "borrow_from_vault", {"category": "moon", "amount": "1"})

    assert result.startswith("No vault registered for category 'moon'")
    assert "Available categories: base-meme" in result
    assert wallet.sent == []


@pytest.mark.asyncio
async def test_pool_info_for_unknown_category_is_reported(state, wallet):
    result = await dispatch(state, "get_pool_info", {"category": "not-a-vault"})

    assert isinstance(result, str)
    assert "not-a-vault" in result
    assert wallet.read_calls == []


@pytest.mark.asyncio
async def test_get_pool_info(state, wallet):
    wallet.reads.update(
        {
            "baseSupplyAPY": 4 * 10**16,
            "baseBorrowAPY": 9 * 10**16,
            "supplied": 2_000_000,
            "borrowed": 500_000,
            "supplyCap": 10_000_000,
        }
    )

    result = await dispatch(state, "get_pool_info", {"category": "eth-defi"})

    assert isinstance(result, PoolInfo)
    assert result.deposit_token == "USDC"
    data = result.to_dict()
    assert data["utilizationRate"] == "25.00%"
    assert data["formatted"]["supplyAPY"] == "4.00%"
    assert data["formatted"]["supplyCap"] == "10.00M"
    assert {address for address, _, _ in wallet.read_calls} == {ETH_DEFI.address}


@pytest.mark.asyncio
async def test_get_account_info(state, wallet):
    def health(vault, account):
        assert account == USER_ADDRESS
        return 13 * WAD // 10

    wallet.reads.update(
        {"accountHealth": health, "assetBalance": 1_000, "accountAssetsBorrowed": 200}
    )

    result = await dispatch(
        state, "get_account_info", {"category": "eth-defi", "account": USER_ADDRESS}
    )

    assert isinstance(result, AccountInfo)
    assert (result.supplied, result.borrowed) == (1_000, 200)
    assert result.to_dict()["formatted"]["healthStatus"] == "Good"


@pytest.mark.asyncio
async def test_portfolio_keeps_only_active_positions(state, wallet):
    def only_eth_defi(amount):
        return lambda vault, account: amount if vault == ETH_DEFI.address else 0

    wallet.reads.update(
        {
            "accountHealth": 2 * WAD,
            "assetBalance": only_eth_defi(5_000),
            "accountAssetsBorrowed": only_eth_defi(1_000),
            "totalAccountCollateralValue": only_eth_defi(4_000),
        }
    )

    result = await dispatch(state, "get_portfolio", {"account": USER_ADDRESS})

    assert isinstance(result, PortfolioInfo)
    assert [p.category for p in result.positions] == ["eth-defi"]
    assert result.total_collateral == 4_000
    assert result.to_dict()["formatted"]["healthStatus"] == "Excellent"
    # one read per view per registered vault
    assert len(wallet.read_calls) == 4 * 6


@pytest.mark.asyncio
async def test_empty_portfolio(state):
    result = await dispatch(state, "get_portfolio", {"account": USER_ADDRESS})

    data = result.to_dict()
    assert data["activePositions"] == 0
    assert data["formatted"]["healthStatus"] == "No Active Positions"
    assert data["formatted"]["riskLevel"] == "None"
