"""Values returned by actions to the agent runtime and the CLI."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from web3 import Web3

from .formatting import (
    NO_POSITIONS,
    format_apy,
    format_big_number,
    format_health_factor,
    health_status,
    utilization_rate,
)


@dataclass(frozen=True)
class CallDataResponse:
    """Unsigned call: target contract, ABI-encoded data and a human description."""

    to: str
    data: bytes
    description: str

    @property
    def data_hex(self) -> str:
        return Web3.to_hex(self.data)

    def to_dict(self) -> dict[str, Any]:
        return {"to": self.to, "data": self.data_hex, "description": self.description}


@dataclass(frozen=True)
class TransactionResult:
    tx_hash: str
    description: str
    explorer_url: str
    block_number: int | None = None

    @property
    def message(self) -> str:
        return f"{self.description} confirmed.\nTransaction hash: {self.tx_hash}\n{self.explorer_url}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "txHash": self.tx_hash,
            "status": "confirmed",
            "description": self.description,
            "blockNumber": self.block_number,
            "explorerUrl": self.explorer_url,
        }


@dataclass(frozen=True)
class MultisigProposalResult:
    """Outcome of routing a call through the (agent, user) multisig."""

    multisig_address: str
    safe_tx_hash: str
    description: str
    threshold: int
    owners: tuple[str, ...]
    ui_url: str

    @property
    def message(self) -> str:
        return (
            f"{self.description} proposed to multisig {self.multisig_address} "
            f"(Safe tx {self.safe_tx_hash}). Please sign the transaction with your "
            f"wallet at multisig address {self.multisig_address}; it executes once "
            f"{self.threshold} of {len(self.owners)} owners have signed.\n{self.ui_url}"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "multisigAddress": self.multisig_address,
            "safeTxHash": self.safe_tx_hash,
            "description": self.description,
            "threshold": self.threshold,
            "owners": list(self.owners),
            "safeUrl": self.ui_url,
            "message": self.message,
        }


@dataclass(frozen=True)
class PoolInfo:
    supply_apy: int
    borrow_apy: int
    total_supplied: int
    total_borrowed: int
    supply_cap: int
    deposit_token: str

    @property
    def utilization_rate(self) -> str:
        return utilization_rate(self.total_borrowed, self.total_supplied)

    def to_dict(self) -> dict[str, Any]:
        return {
            "supplyAPY": str(self.supply_apy),
            "borrowAPY": str(self.borrow_apy),
            "totalSupplied": str(self.total_supplied),
            "totalBorrowed": str(self.total_borrowed),
            "supplyCap": str(self.supply_cap),
            "utilizationRate": self.utilization_rate,
            "depositToken": self.deposit_token,
            "formatted": {
                "supplyAPY": format_apy(self.supply_apy),
                "borrowAPY": format_apy(self.borrow_apy),
                "totalSupplied": format_big_number(self.total_supplied),
                "totalBorrowed": format_big_number(self.total_borrowed),
                "supplyCap": format_big_number(self.supply_cap),
            },
        }


@dataclass(frozen=True)
class AccountInfo:
    health_factor: int
    supplied: int
    borrowed: int
    deposit_token: str

    def to_dict(self) -> dict[str, Any]:
        status = health_status(self.health_factor)
        return {
            "healthFactor": str(self.health_factor),
            "supplied": str(self.supplied),
            "borrowed": str(self.borrowed),
            "depositToken": self.deposit_token,
            "formatted": {
                "healthFactor": format_health_factor(self.health_factor),
                "supplied": format_big_number(self.supplied),
                "borrowed": format_big_number(self.borrowed),
                "healthStatus": status.status,
                "riskLevel": status.risk,
            },
        }


@dataclass(frozen=True)
class PortfolioPosition:
    category: str
    deposit_token: str
    health_factor: int
    supplied: int
    borrowed: int
    collateral: int

    @property
    def is_active(self) -> bool:
        return self.supplied > 0 or self.borrowed > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category,
            "depositToken": self.deposit_token,
            "healthFactor": str(self.health_factor),
            "supplied": str(self.supplied),
            "borrowed": str(self.borrowed),
            "collateral": str(self.collateral),
            "formatted": {
                "healthFactor": format_health_factor(self.health_factor),
                "supplied": format_big_number(self.supplied),
                "borrowed": format_big_number(self.borrowed),
                "collateral": format_big_number(self.collateral),
                "healthStatus": health_status(self.health_factor).status,
            },
        }


@dataclass(frozen=True)
class PortfolioInfo:
    account: str
    positions: tuple[PortfolioPosition, ...] = field(default_factory=tuple)

    @property
    def total_supplied(self) -> int:
        return sum(p.supplied for p in self.positions)

    @property
    def total_borrowed(self) -> int:
        return sum(p.borrowed for p in self.positions)

    @property
    def total_collateral(self) -> int:
        return sum(p.collateral for p in self.positions)

    @property
    def overall_health(self) -> int:
        """Integer mean of the positions' health factors, 0 without positions."""
        if not self.positions:
            return 0
        return sum(p.health_factor for p in self.positions) // len(self.positions)

    def to_dict(self) -> dict[str, Any]:
        status = health_status(self.overall_health) if self.positions else NO_POSITIONS
        return {
            "account": self.account,
            "totalSupplied": str(self.total_supplied),
            "totalBorrowed": str(self.total_borrowed),
            "totalCollateral": str(self.total_collateral),
            "overallHealth": str(self.overall_health),
            "activePositions": len(self.positions),
            "positions": [p.to_dict() for p in self.positions],
            "formatted": {
                "totalSupplied": format_big_number(self.total_supplied),
                "totalBorrowed": format_big_number(self.total_borrowed),
                "totalCollateral": format_big_number(self.total_collateral),
                "overallHealth": format_health_factor(self.overall_health),
                "healthStatus": status.status,
                "riskLevel": status.risk,
            },
        }
