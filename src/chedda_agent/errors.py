"""Error taxonomy shared by the encoder, registry, actions and multisig layers."""

from __future__ import annotations


class AgentError(Exception):
    """Base class for every error raised by chedda_agent."""


class InvalidAddress(AgentError):
    """Raised when a string is not a canonical 0x-prefixed 20-byte hex address."""

    def __init__(self, candidate: object, field: str = "address"):
        self.candidate = candidate
        self.field = field
        super().__init__(
            f"The provided {field} '{candidate}' is invalid. Please provide a valid "
            "Ethereum address in the format 0x... (42 characters long)"
        )


class InvalidAmount(AgentError):
    """Raised when an amount is negative, non-numeric or does not fit in uint256."""

    def __init__(self, amount: object, reason: str):
        self.amount = amount
        self.reason = reason
        super().__init__(f"Invalid amount '{amount}': {reason}")


class UnknownVault(AgentError):
    """Raised on a registry miss for a vault category."""

    def __init__(self, network: str, category: str, available: tuple[str, ...] = ()):
        self.network = network
        self.category = category
        message = f"No vault registered for category '{category}' on network '{network}'"
        if available:
            message += f". Available categories: {', '.join(available)}"
        super().__init__(message)


class UnknownToken(AgentError):
    """Raised on a registry miss for a token symbol."""

    def __init__(self, network: str, symbol: str, available: tuple[str, ...] = ()):
        self.network = network
        self.symbol = symbol
        message = f"Token {symbol} not found on network {network}"
        if available:
            message += f". Available tokens: {', '.join(available)}"
        super().__init__(message)


class EncodingError(AgentError):
    """Raised when arguments do not match the ABI function they are encoded against."""


class ChainCallError(AgentError):
    """Raised when an RPC read or write fails."""


class ReceiptTimeoutError(AgentError):
    """Raised when a broadcast transaction is not confirmed within the receipt timeout."""

    def __init__(self, tx_hash: str, timeout: float, context: str = ""):
        self.tx_hash = tx_hash
        self.timeout = timeout
        message = (
            f"Transaction {tx_hash} was broadcast but not confirmed within {timeout:g}s. "
            "It may still be included; check the block explorer before retrying."
        )
        if context:
            message = f"{context}: {message}"
        super().__init__(message)


class TransactionRevertedError(AgentError):
    """Raised when a transaction was included but its receipt reports failure."""

    def __init__(self, tx_hash: str, context: str = ""):
        self.tx_hash = tx_hash
        message = f"Transaction {tx_hash} reverted on-chain"
        if context:
            message = f"{context}: {message}"
        super().__init__(message)


class MultisigCreationError(AgentError):
    """Raised when a multisig could not be deployed or persisted."""


class DuplicateMultisigError(AgentError):
    """Raised by a registry store when the (agent, user) pair already has a multisig."""

    def __init__(self, agent_address: str, user_address: str):
        self.agent_address = agent_address
        self.user_address = user_address
        super().__init__(
            f"A multisig is already registered for agent {agent_address} and user {user_address}"
        )


class MultisigServiceError(AgentError):
    """Raised when the Safe Transaction Service rejects or fails a request."""


class RegistryStoreError(AgentError):
    """Raised when the multisig registry store cannot be read or written."""
