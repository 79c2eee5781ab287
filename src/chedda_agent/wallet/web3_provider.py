from __future__ import annotations

import asyncio
from collections.abc import Mapping, Sequence
from typing import TYPE_CHECKING, Any

import backoff
import requests
from eth_account import Account
from eth_account.signers.local import LocalAccount
from eth_typing import URI
from web3 import Web3
from web3.exceptions import ProviderConnectionError, TimeExhausted, Web3Exception

from ..errors import ChainCallError, ReceiptTimeoutError
from ..logger import get_logger
from .base import WalletNetwork, WalletProvider

if TYPE_CHECKING:
    from ..settings import AgentSettings

logger = get_logger(__name__)

RPC_ERRORS = (Web3Exception, requests.RequestException)


class Web3WalletProvider(WalletProvider):
    """Local-key wallet backed by a web3 HTTP provider.

    Blocking web3 calls run in worker threads. Reads are throttled by a
    semaphore and retried on connection errors; sends are serialized so nonces
    are assigned one transaction at a time.
    """

    def __init__(
        self,
        rpc_url: str,
        private_key: str,
        network: WalletNetwork,
        *,
        max_concurrent_calls: int = 5,
        request_timeout: float = 15.0,
        poll_interval: float = 2.0,
    ):
        self.w3 = Web3(
            Web3.HTTPProvider(URI(rpc_url), request_kwargs={"timeout": request_timeout})
        )
        self.account: LocalAccount = Account.from_key(private_key)  # pyrefly: ignore
        self._network = network
        self._poll_interval = poll_interval
        self._rpc_sem = asyncio.Semaphore(max_concurrent_calls)
        self._send_lock = asyncio.Lock()

    @classmethod
    def from_settings(
        cls, settings: AgentSettings, private_key: str
    ) -> Web3WalletProvider:
        return cls(
            settings.rpc_url_required,
            private_key,
            WalletNetwork(network_id=settings.network.value, chain_id=settings.chain_id),
            max_concurrent_calls=settings.rpc_max_concurrent_calls,
            request_timeout=settings.rpc_timeout,
            poll_interval=settings.receipt_poll_interval,
        )

    @backoff.on_exception(
        backoff.expo, (ProviderConnectionError), max_time=30, jitter=backoff.full_jitter
    )
    async def _rpc(self, fn, *args, **kwargs):
        """Throttle + backoff a single RPC."""
        async with self._rpc_sem:
            return await asyncio.to_thread(fn, *args, **kwargs)

    def get_address(self) -> str:
        return self.account.address

    def get_network(self) -> WalletNetwork:
        return self._network

    async def read_contract(
        self,
        address: str,
        abi: list[dict],
        function_name: str,
        args: Sequence[Any] = (),
    ) -> Any:
        contract = self.w3.eth.contract(
            address=Web3.to_checksum_address(address), abi=abi
        )
        call = getattr(contract.functions, function_name)(*args)
        try:
            return await self._rpc(call.call)
        except RPC_ERRORS as e:
            raise ChainCallError(f"{function_name}() on {address} failed: {e}") from e

    async def get_code(self, address: str) -> bytes:
        try:
            code = await self._rpc(self.w3.eth.get_code, Web3.to_checksum_address(address))
        except RPC_ERRORS as e:
            raise ChainCallError(f"Failed to fetch code at {address}: {e}") from e
        return bytes(code)

    async def _fee_fields(self) -> dict[str, int]:
        latest = await self._rpc(self.w3.eth.get_block, "latest")
        priority_fee = await self._rpc(lambda: self.w3.eth.max_priority_fee)
        base_fee = int(latest.get("baseFeePerGas", 0))
        return {
            "maxPriorityFeePerGas": priority_fee,
            "maxFeePerGas": base_fee * 2 + priority_fee,
        }

    async def send_transaction(self, to: str, data: bytes, value: int = 0) -> str:
        sender = self.account.address
        async with self._send_lock:
            try:
                tx: dict[str, Any] = {
                    "from": sender,
                    "to": Web3.to_checksum_address(to),
                    "data": Web3.to_hex(data),
                    "value": value,
                    "chainId": self._network.chain_id,
                }
                tx["nonce"] = await self._rpc(
                    self.w3.eth.get_transaction_count, sender, "pending"
                )
                tx["gas"] = await self._rpc(self.w3.eth.estimate_gas, tx)
                tx.update(await self._fee_fields())
                tx.pop("from")

                signed = self.account.sign_transaction(tx)
                # Not retried: a resend of the same raw tx is rejected as already known
                tx_hash = await asyncio.to_thread(
                    self.w3.eth.send_raw_transaction, signed.raw_transaction
                )
            except RPC_ERRORS as e:
                raise ChainCallError(
                    f"Failed to send transaction from {sender} to {to}: {e}"
                ) from e

        tx_hash_hex = Web3.to_hex(tx_hash)
        logger.debug("Broadcast %s (nonce %d)", tx_hash_hex, tx["nonce"])
        return tx_hash_hex

    async def wait_for_transaction_receipt(
        self, tx_hash: str, timeout: float
    ) -> Mapping[str, Any]:
        try:
            receipt = await asyncio.to_thread(
                self.w3.eth.wait_for_transaction_receipt,
                tx_hash,  # pyrefly: ignore
                timeout=timeout,
                poll_latency=self._poll_interval,
            )
        except TimeExhausted as e:
            raise ReceiptTimeoutError(tx_hash, timeout) from e
        except RPC_ERRORS as e:
            raise ChainCallError(f"Failed to fetch receipt for {tx_hash}: {e}") from e
        return dict(receipt)
