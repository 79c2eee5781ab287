from __future__ import annotations

from chedda_agent.formatting import WAD
from chedda_agent.results import (
    AccountInfo,
    CallDataResponse,
    PoolInfo,
    PortfolioInfo,
    PortfolioPosition,
    TransactionResult,
)

ACCOUNT = "0x1234567890123456789012345678901234567890"


def _position(category: str, health: int, supplied: int, borrowed: int = 0) -> PortfolioPosition:
    return PortfolioPosition(
        category=category,
        deposit_token="USDC",
        health_factor=health,
        supplied=supplied,
        borrowed=borrowed,
        collateral=supplied,
    )


def test_calldata_response_to_dict():
    call = CallDataResponse(to=ACCOUNT, data=b"\xa9\x05\x9c\xbb", description="Transfer")
    assert call.to_dict() == {"to": ACCOUNT, "data": "0xa9059cbb", "description": "Transfer"}


def test_transaction_result_message_has_hash_and_link():
    result = TransactionResult(
        tx_hash="0xabc",
        description="Transfer of 1 of X to Y",
        explorer_url="https://sepolia.basescan.org/tx/0xabc",
    )
    assert "0xabc" in result.message
    assert result.to_dict()["status"] == "confirmed"


def test_pool_info_formatted_block():
    info = PoolInfo(
        supply_apy=5 * 10**16,
        borrow_apy=8 * 10**16,
        total_supplied=1_500_000,
        total_borrowed=2_500,
        supply_cap=999,
        deposit_token="USDC",
    )
    data = info.to_dict()
    assert data["totalSupplied"] == "1500000"
    assert data["utilizationRate"] == "0.17%"
    assert data["formatted"] == {
        "supplyAPY": "5.00%",
        "borrowAPY": "8.00%",
        "totalSupplied": "1.50M",
        "totalBorrowed": "2.50K",
        "supplyCap": "999",
    }


def test_account_info_formatted_block():
    data = AccountInfo(
        health_factor=2 * WAD, supplied=2_500, borrowed=0, deposit_token="WETH"
    ).to_dict()
    assert data["formatted"]["healthFactor"] == "2.00"
    assert data["formatted"]["healthStatus"] == "Excellent"
    assert data["formatted"]["riskLevel"] == "Very Low"


def test_empty_portfolio_reports_no_positions():
    portfolio = PortfolioInfo(account=ACCOUNT)
    assert portfolio.overall_health == 0
    data = portfolio.to_dict()
    assert data["overallHealth"] == "0"
    assert data["activePositions"] == 0
    assert data["formatted"]["overallHealth"] == "0.00"
    assert data["formatted"]["healthStatus"] == "No Active Positions"
    assert data["formatted"]["riskLevel"] == "None"


def test_portfolio_totals_and_integer_mean_health():
    portfolio = PortfolioInfo(
        account=ACCOUNT,
        positions=(
            _position("eth-defi", 2 * WAD, 1_000, 100),
            _position("cb-assets", WAD + 1, 500),
        ),
    )
    assert portfolio.total_supplied == 1_500
    assert portfolio.total_borrowed == 100
    assert portfolio.total_collateral == 1_500
    assert portfolio.overall_health == (3 * WAD + 1) // 2
    data = portfolio.to_dict()
    assert data["formatted"]["healthStatus"] == "Strong"
    assert [p["category"] for p in data["positions"]] == ["eth-defi", "cb-assets"]
