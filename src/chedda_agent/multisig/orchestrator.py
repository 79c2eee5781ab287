"""Per-(agent, user) Safe multisig lifecycle: resolve or deploy, propose, confirm."""

from __future__ import annotations

import asyncio
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any

from eth_typing import URI
from safe_eth.eth import EthereumClient
from safe_eth.safe.safe_tx import SafeTx
from web3 import Web3
from web3.exceptions import Web3Exception

from ..abi import load_safe_abi, load_safe_proxy_factory_abi
from ..addresses import validate_address
from ..constants import OPERATION_CALL, SAFE_VERSION
from ..encoder import encode_create_proxy_with_nonce, encode_safe_setup
from ..errors import (
    ChainCallError,
    DuplicateMultisigError,
    MultisigCreationError,
    MultisigServiceError,
    ReceiptTimeoutError,
    RegistryStoreError,
    TransactionRevertedError,
)
from ..logger import get_logger
from ..results import CallDataResponse
from ..wallet import WalletProvider, Web3WalletProvider
from .api_client import SafeTransactionServiceClient, pending_from_service
from .hashing import (
    PROXY_CREATION_TOPIC,
    encode_signatures,
    predict_safe_address,
    safe_tx_hash,
    salt_nonce_for_pair,
    sign_safe_tx_hash,
)
from .models import (
    ConfirmationResult,
    MultisigDetails,
    MultisigRecord,
    MultisigTransactionProposal,
    MultisigWallet,
    SafeSignature,
)
from .store import MultisigRegistryStore

if TYPE_CHECKING:
    from ..settings import AgentSettings

logger = get_logger(__name__)


def _as_bytes(value: bytes | str) -> bytes:
    if isinstance(value, str):
        return bytes.fromhex(value.removeprefix("0x"))
    return bytes(value)


def parse_proxy_creation(receipt: Mapping[str, Any], proxy_factory: str) -> str | None:
    """Address of the Safe created in a ``createProxyWithNonce`` receipt.

    Safe >= 1.3.0 indexes the proxy (``topics[1]``); older factories put it in
    the first data word.
    """
    factory = proxy_factory.lower()
    for log in receipt.get("logs", []):
        if str(log.get("address", "")).lower() != factory:
            continue
        topics = [_as_bytes(t) for t in log.get("topics", [])]
        if not topics or topics[0] != PROXY_CREATION_TOPIC:
            continue
        if len(topics) > 1:
            return Web3.to_checksum_address(topics[1][-20:])
        data = _as_bytes(log.get("data", b""))
        if len(data) >= 32:
            return Web3.to_checksum_address(data[12:32])
    return None


class MultisigOrchestrator:
    """Owns multisig creation and proposals for every (agent, user) pair.

    The coordinator wallet pays for deployments and executions and signs
    every proposal as the third owner.
    """

    def __init__(
        self,
        *,
        store: MultisigRegistryStore,
        service: SafeTransactionServiceClient,
        coordinator: WalletProvider,
        coordinator_private_key: str,
        rpc_url: str,
        threshold: int,
        proxy_factory: str,
        singleton: str,
        fallback_handler: str,
        receipt_timeout: float,
        explorer_url: str = "",
    ):
        self.store = store
        self.service = service
        self.coordinator = coordinator
        self._coordinator_key = coordinator_private_key
        self.rpc_url = rpc_url
        self.threshold = threshold
        self.proxy_factory = Web3.to_checksum_address(proxy_factory)
        self.singleton = Web3.to_checksum_address(singleton)
        self.fallback_handler = Web3.to_checksum_address(fallback_handler)
        self.receipt_timeout = receipt_timeout
        self.explorer_url = explorer_url
        self._pair_locks: dict[tuple[str, str], asyncio.Lock] = {}
        self._coordinator_tx_lock = asyncio.Lock()
        self._proxy_creation_code: bytes | None = None

    @classmethod
    def from_settings(
        cls, settings: AgentSettings, store: MultisigRegistryStore
    ) -> MultisigOrchestrator:
        coordinator_key = settings.coordinator_private_key_required
        api_key = (
            settings.safe_txn_srvc_api_key.get_secret_value()
            if settings.safe_txn_srvc_api_key
            else None
        )
        return cls(
            store=store,
            service=SafeTransactionServiceClient(
                settings.safe_service_url_required,
                settings.chain_id,
                api_key=api_key,
                request_timeout=settings.rpc_timeout,
            ),
            coordinator=Web3WalletProvider.from_settings(settings, coordinator_key),
            coordinator_private_key=coordinator_key,
            rpc_url=settings.rpc_url_required,
            threshold=settings.multisig_threshold,
            proxy_factory=settings.safe_proxy_factory,
            singleton=settings.safe_singleton,
            fallback_handler=settings.safe_fallback_handler,
            receipt_timeout=settings.receipt_timeout,
            explorer_url=settings.explorer_url,
        )

    @property
    def chain_id(self) -> int:
        return self.coordinator.get_network().chain_id

    def _wallet_from_record(self, record: MultisigRecord) -> MultisigWallet:
        return MultisigWallet(
            address=Web3.to_checksum_address(record.multisig_address),
            owners=tuple(Web3.to_checksum_address(o) for o in record.owners),
            threshold=record.threshold,
            agent_id=record.agent_id,
        )

    async def lookup(self, agent_address: str, user_address: str) -> MultisigWallet | None:
        record = await self.store.find_by_pair(agent_address, user_address)
        if record is None:
            return None
        return self._wallet_from_record(record)

    async def resolve_or_create(
        self, agent_id: str, agent_address: str, user_address: str
    ) -> MultisigWallet:
        """Return the pair's multisig, deploying it on first use.

        Concurrent callers for the same pair share one deployment; at most one
        wallet is ever registered per pair.
        """
        agent = validate_address(agent_address, "agentAddress")
        user = validate_address(user_address, "userAddress")

        lock = self._pair_locks.setdefault((agent.lower(), user.lower()), asyncio.Lock())
        async with lock:
            existing = await self.lookup(agent, user)
            if existing is not None:
                logger.debug("Multisig for %s / %s: %s", agent, user, existing.address)
                return existing
            return await self._create(agent_id, agent, user)

    async def _read_after_conflict(self, agent: str, user: str, reason: str) -> MultisigWallet:
        existing = await self.lookup(agent, user)
        if existing is None:
            raise MultisigCreationError(
                f"Failed to create multisig wallet for agent {agent} and user {user}: {reason}"
            )
        logger.info("Multisig for %s / %s registered concurrently: %s", agent, user, existing.address)
        return existing

    def _owners(self, agent: str, user: str) -> tuple[str, str, str]:
        return (agent, user, Web3.to_checksum_address(self.coordinator.get_address()))

    async def _predict(self, initializer: bytes, salt_nonce: int) -> str:
        if self._proxy_creation_code is None:
            code = await self.coordinator.read_contract(
                self.proxy_factory, load_safe_proxy_factory_abi(), "proxyCreationCode"
            )
            self._proxy_creation_code = bytes(code)
        return predict_safe_address(
            self.proxy_factory, self.singleton, initializer, salt_nonce, self._proxy_creation_code
        )

    async def predict_address(self, agent_address: str, user_address: str) -> str:
        """Address the pair's Safe is deployed at, whether or not it exists yet."""
        agent = validate_address(agent_address, "agentAddress")
        user = validate_address(user_address, "userAddress")
        initializer = encode_safe_setup(
            self._owners(agent, user), self.threshold, self.fallback_handler
        )
        return await self._predict(initializer, salt_nonce_for_pair(agent, user))

    async def _is_deployed(self, address: str) -> bool:
        return len(await self.coordinator.get_code(address)) > 0

    async def _deployed_after_failure(self, address: str) -> bool:
        try:
            return await self._is_deployed(address)
        except ChainCallError as e:
            logger.warning("Could not check %s for a deployed multisig: %s", address, e)
            return False

    async def _register(
        self,
        agent_id: str,
        owners: tuple[str, str, str],
        safe_address: str,
        tx_hash: str | None = None,
    ) -> MultisigWallet:
        agent, user, coordinator_address = owners
        record = MultisigRecord(
            multisig_address=safe_address,
            agent_id=agent_id,
            agent_address=agent,
            user_address=user,
            coordinator_address=coordinator_address,
            threshold=self.threshold,
        )
        try:
            await self.store.insert(record)
        except DuplicateMultisigError:
            return await self._read_after_conflict(agent, user, "registry conflict")
        except RegistryStoreError as e:
            raise MultisigCreationError(
                f"Multisig {safe_address} deployed but could not be registered: {e}"
            ) from e

        logger.info("Multisig %s registered for agent %s and user %s", safe_address, agent, user)
        return MultisigWallet(
            address=safe_address,
            owners=owners,
            threshold=self.threshold,
            agent_id=agent_id,
            deployment_tx_hash=tx_hash,
        )

    async def _create(self, agent_id: str, agent: str, user: str) -> MultisigWallet:
        """Predict the pair's CREATE2 address, then deploy unless a Safe is already there.

        A deployment that mined without being registered (receipt timeout, store
        failure) is picked up at the predicted address instead of redeploying,
        which would revert at the factory.
        """
        owners = self._owners(agent, user)
        initializer = encode_safe_setup(owners, self.threshold, self.fallback_handler)
        salt_nonce = salt_nonce_for_pair(agent, user)
        try:
            predicted = await self._predict(initializer, salt_nonce)
            deployed = await self._is_deployed(predicted)
        except ChainCallError as e:
            raise MultisigCreationError(
                f"Failed to create multisig wallet for agent {agent} and user {user}: {e}"
            ) from e

        if deployed:
            logger.warning(
                "Multisig %s for agent %s and user %s is deployed but unregistered; registering it",
                predicted,
                agent,
                user,
            )
            return await self._register(agent_id, owners, predicted)

        data = encode_create_proxy_with_nonce(self.singleton, initializer, salt_nonce)
        logger.info(
            "Deploying %d-of-%d multisig %s for agent %s and user %s",
            self.threshold,
            len(owners),
            predicted,
            agent,
            user,
        )
        try:
            async with self._coordinator_tx_lock:
                tx_hash = await self.coordinator.send_transaction(self.proxy_factory, data)
        except ChainCallError as e:
            raise MultisigCreationError(
                f"Failed to create multisig wallet for agent {agent} and user {user}: {e}"
            ) from e

        try:
            async with asyncio.timeout(self.receipt_timeout):
                receipt = await self.coordinator.wait_for_transaction_receipt(
                    tx_hash, self.receipt_timeout
                )
        except (TimeoutError, ReceiptTimeoutError, ChainCallError) as e:
            if await self._deployed_after_failure(predicted):
                return await self._register(agent_id, owners, predicted, tx_hash)
            raise MultisigCreationError(
                f"Multisig deployment {tx_hash} for agent {agent} and user {user} "
                f"was not confirmed within {self.receipt_timeout:g}s: {e}"
            ) from e

        if receipt.get("status") != 1:
            existing = await self.lookup(agent, user)
            if existing is not None:
                logger.info(
                    "Multisig for %s / %s registered concurrently: %s", agent, user, existing.address
                )
                return existing
            if await self._deployed_after_failure(predicted):
                return await self._register(agent_id, owners, predicted)
            raise MultisigCreationError(
                f"Failed to create multisig wallet for agent {agent} and user {user}: "
                f"deployment {tx_hash} reverted"
            )

        safe_address = parse_proxy_creation(receipt, self.proxy_factory)
        if safe_address is None:
            raise MultisigCreationError(
                f"Deployment {tx_hash} succeeded but no ProxyCreation event was found"
            )
        return await self._register(agent_id, owners, safe_address, tx_hash)

    async def _next_nonce(self, wallet: MultisigWallet) -> int:
        """On-chain nonce, bumped past anything already queued at the service."""
        onchain_nonce, pending = await asyncio.gather(
            self.coordinator.read_contract(wallet.address, load_safe_abi(), "nonce"),
            asyncio.to_thread(self.service.get_pending_transactions, wallet.address),
        )
        queued = [int(tx["nonce"]) + 1 for tx in pending]
        return max([int(onchain_nonce), *queued])

    async def propose(
        self, wallet: MultisigWallet, call: CallDataResponse
    ) -> MultisigTransactionProposal:
        """Queue ``call`` on the multisig, signed by the coordinator.

        Nothing is broadcast; the transaction executes only after enough
        owners confirm it.
        """
        nonce = await self._next_nonce(wallet)
        tx_hash = safe_tx_hash(
            self.chain_id,
            wallet.address,
            call.to,
            0,
            call.data,
            OPERATION_CALL,
            nonce,
        )
        signature = sign_safe_tx_hash(self._coordinator_key, tx_hash)
        proposal = MultisigTransactionProposal(
            safe_address=wallet.address,
            to=call.to,
            value=0,
            data=call.data,
            operation=OPERATION_CALL,
            nonce=nonce,
            safe_tx_hash=tx_hash,
        )
        proposal.add_signature(signature)

        logger.info("Proposing to %s (nonce %d): %s", wallet.address, nonce, call.description)
        await asyncio.to_thread(
            self.service.propose_transaction, proposal, signature, call.description
        )
        return proposal

    def ui_url(self, wallet: MultisigWallet, safe_tx_hash: str | None = None) -> str:
        return self.service.get_safe_ui_url(wallet.address, safe_tx_hash)

    async def describe(self, wallet: MultisigWallet) -> MultisigDetails:
        nonce, pending = await asyncio.gather(
            self.coordinator.read_contract(wallet.address, load_safe_abi(), "nonce"),
            asyncio.to_thread(self.service.get_pending_transactions, wallet.address),
        )
        return MultisigDetails(
            wallet=wallet,
            nonce=int(nonce),
            pending=tuple(pending_from_service(tx) for tx in pending),
            ui_url=self.ui_url(wallet),
        )

    def _build_safe_tx(
        self, wallet: MultisigWallet, tx: Mapping[str, Any], signatures: list[SafeSignature]
    ) -> SafeTx:
        ethereum_client = EthereumClient(URI(self.rpc_url))
        return SafeTx(
            ethereum_client=ethereum_client,
            safe_address=wallet.address,
            to=Web3.to_checksum_address(tx["to"]),
            value=int(tx.get("value") or 0),
            data=_as_bytes(tx.get("data") or b""),
            operation=int(tx.get("operation") or OPERATION_CALL),
            safe_tx_gas=int(tx.get("safeTxGas") or 0),
            base_gas=int(tx.get("baseGas") or 0),
            gas_price=int(tx.get("gasPrice") or 0),
            gas_token=Web3.to_checksum_address(tx.get("gasToken") or "0x" + "00" * 20),
            refund_receiver=Web3.to_checksum_address(
                tx.get("refundReceiver") or "0x" + "00" * 20
            ),
            signatures=encode_signatures(signatures),
            safe_nonce=int(tx["nonce"]),
            safe_version=SAFE_VERSION,
            chain_id=self.chain_id,
        )

    async def confirm_pending(self, wallet: MultisigWallet) -> ConfirmationResult | None:
        """Confirm the oldest queued proposal as coordinator, executing it at threshold.

        Returns ``None`` when nothing is queued.
        """
        pending = await asyncio.to_thread(self.service.get_pending_transactions, wallet.address)
        if not pending:
            return None

        tx = min(pending, key=lambda p: int(p["nonce"]))
        tx_hash: str = tx["safeTxHash"]
        coordinator_address = self.coordinator.get_address()

        confirmations = list(tx.get("confirmations") or [])
        if all(c["owner"].lower() != coordinator_address.lower() for c in confirmations):
            signature = sign_safe_tx_hash(self._coordinator_key, tx_hash)
            await asyncio.to_thread(self.service.confirm_transaction, tx_hash, signature)
            tx = await asyncio.to_thread(self.service.get_transaction, tx_hash)
            confirmations = list(tx.get("confirmations") or [])

        required = int(tx.get("confirmationsRequired") or wallet.threshold)
        if len(confirmations) < required:
            logger.info(
                "Safe tx %s has %d/%d confirmations", tx_hash, len(confirmations), required
            )
            return ConfirmationResult(tx_hash, len(confirmations), required)

        exec_hash = await self._execute(wallet, tx, confirmations)
        return ConfirmationResult(
            tx_hash,
            len(confirmations),
            required,
            executed=True,
            execution_tx_hash=exec_hash,
            explorer_url=f"{self.explorer_url}/tx/{exec_hash}" if self.explorer_url else None,
        )

    async def _execute(
        self, wallet: MultisigWallet, tx: Mapping[str, Any], confirmations: list[dict]
    ) -> str:
        signatures = [
            SafeSignature(Web3.to_checksum_address(c["owner"]), _as_bytes(c["signature"]))
            for c in confirmations
        ]
        safe_tx = self._build_safe_tx(wallet, tx, signatures)
        if Web3.to_hex(safe_tx.safe_tx_hash).lower() != tx["safeTxHash"].lower():
            raise MultisigServiceError(
                f"Service transaction {tx['safeTxHash']} does not match its contents"
            )

        context = f"Execution of Safe tx {tx['safeTxHash']} on {wallet.address}"
        logger.info("%s", context)
        try:
            async with self._coordinator_tx_lock:
                exec_hash, _ = await asyncio.to_thread(safe_tx.execute, self._coordinator_key)
        except Web3Exception as e:
            raise ChainCallError(f"{context} failed: {e}") from e
        exec_hash_hex = Web3.to_hex(exec_hash)

        try:
            async with asyncio.timeout(self.receipt_timeout):
                receipt = await self.coordinator.wait_for_transaction_receipt(
                    exec_hash_hex, self.receipt_timeout
                )
        except TimeoutError as e:
            raise ReceiptTimeoutError(exec_hash_hex, self.receipt_timeout, context) from e

        if receipt.get("status") != 1:
            raise TransactionRevertedError(exec_hash_hex, context)
        return exec_hash_hex
