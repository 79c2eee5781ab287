from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class WalletNetwork:
    network_id: str
    chain_id: int


class WalletProvider(ABC):
    """Signing wallet plus chain access used by every action.

    Implementations own all network I/O; every coroutine is a suspension
    point and may raise ``ChainCallError`` on RPC failure.
    """

    @abstractmethod
    def get_address(self) -> str:
        """Checksum address of the wallet."""
        ...

    @abstractmethod
    def get_network(self) -> WalletNetwork:
        ...

    @abstractmethod
    async def read_contract(
        self,
        address: str,
        abi: list[dict],
        function_name: str,
        args: Sequence[Any] = (),
    ) -> Any:
        """Call a view function and return its decoded result."""
        ...

    @abstractmethod
    async def get_code(self, address: str) -> bytes:
        """Runtime bytecode at ``address``; empty when no contract is deployed there."""
        ...

    @abstractmethod
    async def send_transaction(self, to: str, data: bytes, value: int = 0) -> str:
        """Sign and broadcast a transaction, returning its hash once accepted by the node.

        A returned hash does not mean the transaction was included.
        """
        ...

    @abstractmethod
    async def wait_for_transaction_receipt(
        self, tx_hash: str, timeout: float
    ) -> Mapping[str, Any]:
        """Block until the receipt is available.

        Raises:
            ReceiptTimeoutError: If no receipt appears within ``timeout`` seconds.
        """
        ...
