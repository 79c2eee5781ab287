"""Value types for multisig wallets and their proposed transactions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from web3 import Web3


@dataclass(frozen=True)
class MultisigWallet:
    """A deployed Safe owned by (agent, user, coordinator)."""

    address: str
    owners: tuple[str, ...]
    threshold: int
    agent_id: str | None = None
    deployment_tx_hash: str | None = None

    def __post_init__(self) -> None:
        if not 1 <= self.threshold <= len(self.owners):
            raise ValueError(
                f"Threshold {self.threshold} must be between 1 and {len(self.owners)}"
            )

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "owners": list(self.owners),
            "threshold": self.threshold,
            "agentId": self.agent_id,
            "deploymentTxHash": self.deployment_tx_hash,
        }


@dataclass(frozen=True)
class MultisigRecord:
    """Persisted mapping of an (agent, user) pair to its Safe."""

    multisig_address: str
    agent_id: str
    agent_address: str
    user_address: str
    coordinator_address: str
    threshold: int

    @property
    def owners(self) -> tuple[str, ...]:
        return (self.agent_address, self.user_address, self.coordinator_address)


@dataclass(frozen=True)
class SafeSignature:
    signer_address: str
    signature: bytes

    @property
    def signature_hex(self) -> str:
        return Web3.to_hex(self.signature)


@dataclass
class MultisigTransactionProposal:
    """A Safe transaction as proposed to the transaction service.

    Signatures are only ever appended.
    """

    safe_address: str
    to: str
    value: int
    data: bytes
    operation: int
    nonce: int
    safe_tx_hash: str
    signatures: list[SafeSignature] = field(default_factory=list)

    def add_signature(self, signature: SafeSignature) -> None:
        signer = signature.signer_address.lower()
        if any(s.signer_address.lower() == signer for s in self.signatures):
            return
        self.signatures.append(signature)

    def to_dict(self) -> dict[str, Any]:
        return {
            "safeAddress": self.safe_address,
            "to": self.to,
            "value": str(self.value),
            "data": Web3.to_hex(self.data),
            "operation": self.operation,
            "nonce": self.nonce,
            "safeTxHash": self.safe_tx_hash,
            "signers": [s.signer_address for s in self.signatures],
        }


@dataclass(frozen=True)
class PendingTransaction:
    """A queued Safe transaction as reported by the transaction service."""

    safe_tx_hash: str
    to: str
    nonce: int
    confirmations: int
    confirmations_required: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "safeTxHash": self.safe_tx_hash,
            "to": self.to,
            "nonce": self.nonce,
            "confirmations": self.confirmations,
            "confirmationsRequired": self.confirmations_required,
        }


@dataclass(frozen=True)
class MultisigDetails:
    wallet: MultisigWallet
    nonce: int
    pending: tuple[PendingTransaction, ...] = ()
    ui_url: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.wallet.to_dict(),
            "nonce": self.nonce,
            "pendingTransactions": [tx.to_dict() for tx in self.pending],
            "safeUrl": self.ui_url,
        }


@dataclass(frozen=True)
class ConfirmationResult:
    safe_tx_hash: str
    confirmations: int
    confirmations_required: int
    executed: bool = False
    execution_tx_hash: str | None = None
    explorer_url: str | None = None

    @property
    def message(self) -> str:
        if self.executed:
            return (
                f"Safe transaction {self.safe_tx_hash} executed in {self.execution_tx_hash}"
            )
        return (
            f"Safe transaction {self.safe_tx_hash} has {self.confirmations} of "
            f"{self.confirmations_required} confirmations; waiting for more owners to sign"
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "safeTxHash": self.safe_tx_hash,
            "confirmations": self.confirmations,
            "confirmationsRequired": self.confirmations_required,
            "executed": self.executed,
            "executionTxHash": self.execution_tx_hash,
            "explorerUrl": self.explorer_url,
            "message": self.message,
        }
