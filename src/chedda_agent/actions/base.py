from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Any, ClassVar

from ..abi import load_erc20_abi
from ..errors import ChainCallError, ReceiptTimeoutError, TransactionRevertedError
from ..logger import get_logger
from ..registry import find_token_by_address
from ..results import CallDataResponse, TransactionResult
from ..state import AppState
from .schemas import ActionArgs

logger = get_logger(__name__)


class BaseAction(ABC):
    """Abstract base class for agent actions."""

    name: ClassVar[str]
    description: ClassVar[str]
    schema: ClassVar[type[ActionArgs]]

    def __init__(self, state: AppState):
        """Initialize the action with application state.

        Args:
            state: Settings, wallet and optional multisig orchestrator
        """
        self.state = state

    @property
    def wallet(self):
        return self.state.wallet

    @abstractmethod
    async def run(self, args: Any) -> Any:
        """Execute the action with already validated ``args``."""
        ...

    async def token_decimals(self, token_address: str) -> int:
        """Decimals from the registry, falling back to the token contract."""
        token = find_token_by_address(self.state.network_id, token_address)
        if token is not None:
            return token.decimals
        decimals = await self.wallet.read_contract(
            token_address, load_erc20_abi(), "decimals"
        )
        return int(decimals)

    async def submit(self, call: CallDataResponse) -> TransactionResult:
        """Sign, broadcast and wait for ``call`` with the agent wallet.

        Raises:
            ChainCallError: If the transaction could not be broadcast.
            ReceiptTimeoutError: If no receipt arrived within the receipt timeout.
            TransactionRevertedError: If the receipt reports failure.
        """
        settings = self.state.settings
        logger.info("Submitting: %s", call.description)
        try:
            tx_hash = await self.wallet.send_transaction(call.to, call.data)
        except ChainCallError as e:
            raise ChainCallError(f"{call.description} failed: {e}") from e

        logger.info("Submitted %s: %s", tx_hash, settings.tx_url(tx_hash))
        context = f"{call.description} ({settings.tx_url(tx_hash)})"
        try:
            async with asyncio.timeout(settings.receipt_timeout):
                receipt = await self.wallet.wait_for_transaction_receipt(
                    tx_hash, settings.receipt_timeout
                )
        except TimeoutError as e:
            raise ReceiptTimeoutError(tx_hash, settings.receipt_timeout, context) from e
        except ReceiptTimeoutError as e:
            raise ReceiptTimeoutError(tx_hash, e.timeout, context) from e

        if receipt.get("status") != 1:
            raise TransactionRevertedError(tx_hash, context)

        logger.info("Confirmed %s in block %s", tx_hash, receipt.get("blockNumber"))
        return TransactionResult(
            tx_hash=tx_hash,
            description=call.description,
            explorer_url=settings.tx_url(tx_hash),
            block_number=receipt.get("blockNumber"),
        )

    async def complete(self, call: CallDataResponse) -> CallDataResponse | TransactionResult:
        """Return calldata, or submit it when running in direct execution mode."""
        if self.state.settings.is_direct:
            return await self.submit(call)
        return call
