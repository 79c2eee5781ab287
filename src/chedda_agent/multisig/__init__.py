"""Safe multisig support for actions executed on behalf of a user."""

from .api_client import SafeTransactionServiceClient
from .models import (
    ConfirmationResult,
    MultisigDetails,
    MultisigRecord,
    MultisigTransactionProposal,
    MultisigWallet,
)
from .orchestrator import MultisigOrchestrator
from .store import MultisigRegistryStore, SQLiteMultisigStore

__all__ = [
    "ConfirmationResult",
    "MultisigDetails",
    "MultisigOrchestrator",
    "MultisigRecord",
    "MultisigRegistryStore",
    "MultisigTransactionProposal",
    "MultisigWallet",
    "SQLiteMultisigStore",
    "SafeTransactionServiceClient",
]
