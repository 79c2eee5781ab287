from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Sequence
from typing import Any
from unittest.mock import MagicMock

import pytest
import pytest_asyncio
from eth_account import Account

from chedda_agent.constants import SAFE_V141_DEPLOYMENT
from chedda_agent.multisig import (
    MultisigOrchestrator,
    SafeTransactionServiceClient,
    SQLiteMultisigStore,
)
from chedda_agent.multisig.hashing import PROXY_CREATION_TOPIC
from chedda_agent.settings import AgentSettings, ExecutionMode
from chedda_agent.state import AppState
from chedda_agent.wallet import WalletNetwork, WalletProvider

AGENT_KEY = "0x" + "11" * 32
COORDINATOR_KEY = "0x" + "22" * 32
AGENT_ADDRESS = "0x1111111111111111111111111111111111111111"
COORDINATOR_ADDRESS = Account.from_key(COORDINATOR_KEY).address
USER_ADDRESS = "0x3333333333333333333333333333333333333333"
SAFE_ADDRESS = "0x4444444444444444444444444444444444444444"
PROXY_CREATION_CODE = bytes.fromhex("608060405234801561001057600080fd5b50")

BASE_SEPOLIA = WalletNetwork(network_id="base-sepolia", chain_id=84532)


def tx_hash_for(n: int) -> str:
    return "0x" + f"{n:064x}"


def proxy_creation_receipt(safe_address: str = SAFE_ADDRESS) -> dict[str, Any]:
    factory = SAFE_V141_DEPLOYMENT["proxy_factory"]
    singleton = SAFE_V141_DEPLOYMENT["singleton"]
    return {
        "status": 1,
        "blockNumber": 100,
        "logs": [
            {"address": "0x" + "99" * 20, "topics": [b"\x01" * 32], "data": b""},
            {
                "address": factory,
                "topics": [PROXY_CREATION_TOPIC, bytes(12) + bytes.fromhex(safe_address[2:])],
                "data": bytes(12) + bytes.fromhex(singleton[2:]),
            },
        ],
    }


class FakeWalletProvider(WalletProvider):
    """In-memory wallet: canned reads, recorded sends, configurable receipts."""

    def __init__(
        self,
        address: str = AGENT_ADDRESS,
        network: WalletNetwork = BASE_SEPOLIA,
        reads: Mapping[str, Any] | None = None,
    ):
        self.address = address
        self.network = network
        # function name -> value, exception, or callable(address, *args)
        self.reads: dict[str, Any] = dict(reads or {})
        self.read_calls: list[tuple[str, str, tuple]] = []
        self.sent: list[tuple[str, bytes, int]] = []
        # lowercase address -> deployed bytecode
        self.code: dict[str, bytes] = {}
        self.receipts: dict[str, Mapping[str, Any]] = {}
        self.default_receipt: Mapping[str, Any] = {"status": 1, "blockNumber": 7, "logs": []}
        self.receipt_delay = 0.0
        self.send_delay = 0.0

    def get_address(self) -> str:
        return self.address

    def get_network(self) -> WalletNetwork:
        return self.network

    async def read_contract(
        self,
        address: str,
        abi: list[dict],
        function_name: str,
        args: Sequence[Any] = (),
    ) -> Any:
        self.read_calls.append((address, function_name, tuple(args)))
        await asyncio.sleep(0)
        value = self.reads.get(function_name, 0)
        if isinstance(value, Exception):
            raise value
        if callable(value):
            return value(address, *args)
        return value

    async def get_code(self, address: str) -> bytes:
        await asyncio.sleep(0)
        return self.code.get(address.lower(), b"")

    async def send_transaction(self, to: str, data: bytes, value: int = 0) -> str:
        if self.send_delay:
            await asyncio.sleep(self.send_delay)
        self.sent.append((to, data, value))
        return tx_hash_for(len(self.sent))

    async def wait_for_transaction_receipt(
        self, tx_hash: str, timeout: float
    ) -> Mapping[str, Any]:
        if self.receipt_delay:
            await asyncio.sleep(self.receipt_delay)
        return self.receipts.get(tx_hash, self.default_receipt)


@pytest.fixture
def settings() -> AgentSettings:
    return AgentSettings(
        agent_private_key=AGENT_KEY,
        receipt_timeout=5.0,
        _env_file=None,  # pyrefly: ignore
    )


@pytest.fixture
def direct_settings() -> AgentSettings:
    return AgentSettings(
        agent_private_key=AGENT_KEY,
        execution_mode=ExecutionMode.DIRECT,
        receipt_timeout=0.2,
        _env_file=None,  # pyrefly: ignore
    )


@pytest.fixture
def wallet() -> FakeWalletProvider:
    return FakeWalletProvider()


@pytest.fixture
def state(settings: AgentSettings, wallet: FakeWalletProvider) -> AppState:
    return AppState(settings=settings, logger=logging.getLogger("test"), wallet=wallet)


@pytest.fixture
def direct_state(direct_settings: AgentSettings, wallet: FakeWalletProvider) -> AppState:
    return AppState(settings=direct_settings, logger=logging.getLogger("test"), wallet=wallet)


@pytest.fixture
def coordinator() -> FakeWalletProvider:
    wallet = FakeWalletProvider(
        address=COORDINATOR_ADDRESS,
        reads={"nonce": 0, "proxyCreationCode": PROXY_CREATION_CODE},
    )
    wallet.default_receipt = proxy_creation_receipt()
    return wallet


@pytest.fixture
def service() -> MagicMock:
    service = MagicMock(spec=SafeTransactionServiceClient)
    service.get_pending_transactions.return_value = []
    service.get_safe_ui_url.side_effect = (
        lambda safe, tx_hash=None: f"https://app.safe.global/{safe}#{tx_hash or ''}"
    )
    return service


@pytest_asyncio.fixture
async def registry_store(tmp_path):
    async with SQLiteMultisigStore(tmp_path / "multisig.db") as store:
        yield store


@pytest.fixture
def orchestrator(registry_store, service, coordinator) -> MultisigOrchestrator:
    return MultisigOrchestrator(
        store=registry_store,
        service=service,
        coordinator=coordinator,
        coordinator_private_key=COORDINATOR_KEY,
        rpc_url="http://localhost:8545",
        threshold=3,
        proxy_factory=SAFE_V141_DEPLOYMENT["proxy_factory"],
        singleton=SAFE_V141_DEPLOYMENT["singleton"],
        fallback_handler=SAFE_V141_DEPLOYMENT["fallback_handler"],
        receipt_timeout=1.0,
        explorer_url="https://sepolia.basescan.org",
    )
