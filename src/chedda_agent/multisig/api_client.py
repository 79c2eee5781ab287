"""Safe API client for interacting with Safe Transaction Service."""

from __future__ import annotations

import logging
from typing import Any

import backoff
import requests
from web3 import Web3

from ..constants import SAFE_UI_PREFIXES
from ..errors import MultisigServiceError
from .models import MultisigTransactionProposal, PendingTransaction, SafeSignature

logger = logging.getLogger(__name__)

RETRIABLE_STATUS_CODES = {429, 500, 502, 503, 504}


def _giveup(e: Exception) -> bool:
    return (
        isinstance(e, requests.exceptions.HTTPError)
        and e.response is not None
        and e.response.status_code not in RETRIABLE_STATUS_CODES
    )


class SafeTransactionServiceClient:
    """Client for the Safe Transaction Service REST API using requests library.

    Methods are blocking; async callers run them via ``asyncio.to_thread``.
    """

    def __init__(
        self,
        base_url: str,
        chain_id: int,
        api_key: str | None = None,
        request_timeout: float = 10.0,
    ):
        """Initialize Safe Transaction Service client.

        Args:
            base_url: Transaction service root, e.g. https://safe-transaction-base-sepolia.safe.global
            chain_id: Network chain ID (used for Safe UI links)
            api_key: Optional API key sent as a bearer token
            request_timeout: Per-request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.chain_id = chain_id
        self.request_timeout = request_timeout
        self.session = requests.Session()
        if api_key:
            self.session.headers["Authorization"] = f"Bearer {api_key}"

    @backoff.on_exception(
        backoff.expo,
        requests.exceptions.RequestException,
        max_tries=5,
        giveup=_giveup,
        jitter=backoff.full_jitter,
    )
    def _request(self, method: str, path: str, **kwargs: Any) -> requests.Response:
        response = self.session.request(
            method, f"{self.base_url}{path}", timeout=self.request_timeout, **kwargs
        )
        response.raise_for_status()
        return response

    def _call(self, action: str, method: str, path: str, **kwargs: Any) -> Any:
        try:
            response = self._request(method, path, **kwargs)
        except requests.HTTPError as e:
            body = e.response.text if e.response is not None else ""
            logger.error("Failed to %s: %s - %s", action, e, body)
            raise MultisigServiceError(f"Failed to {action}: {e} {body}".strip()) from e
        except requests.RequestException as e:
            logger.error("Failed to %s: %s", action, e)
            raise MultisigServiceError(f"Failed to {action}: {e}") from e
        if not response.content:
            return None
        return response.json()

    def propose_transaction(
        self,
        proposal: MultisigTransactionProposal,
        signature: SafeSignature,
        origin: str | None = None,
    ) -> str:
        """Propose a signed transaction to the Safe.

        Args:
            proposal: Transaction with its precomputed safe tx hash
            signature: Proposer's signature over the safe tx hash; the proposer
                is recorded as sender
            origin: Optional origin identifier

        Returns:
            Safe transaction hash
        """
        payload: dict[str, Any] = {
            "to": Web3.to_checksum_address(proposal.to),
            "value": str(proposal.value),
            "data": Web3.to_hex(proposal.data) if proposal.data else None,
            "operation": proposal.operation,
            "safeTxGas": "0",
            "baseGas": "0",
            "gasPrice": "0",
            "gasToken": None,
            "refundReceiver": None,
            "nonce": proposal.nonce,
            "contractTransactionHash": proposal.safe_tx_hash,
            "sender": Web3.to_checksum_address(signature.signer_address),
            "signature": signature.signature_hex,
        }
        if origin:
            payload["origin"] = origin

        safe = Web3.to_checksum_address(proposal.safe_address)
        self._call(
            "propose transaction",
            "POST",
            f"/api/v1/safes/{safe}/multisig-transactions/",
            json=payload,
        )
        logger.info("Transaction proposed successfully: %s", proposal.safe_tx_hash)
        return proposal.safe_tx_hash

    def get_pending_transactions(self, safe_address: str) -> list[dict[str, Any]]:
        """Queued (not executed) transactions ordered by nonce.

        A Safe the service has not indexed yet has no queue.
        """
        safe = Web3.to_checksum_address(safe_address)
        try:
            response = self._request(
                "GET",
                f"/api/v1/safes/{safe}/multisig-transactions/",
                params={"executed": "false", "ordering": "nonce"},
            )
        except requests.HTTPError as e:
            if e.response is not None and e.response.status_code == 404:
                return []
            logger.error("Failed to fetch pending transactions: %s", e)
            raise MultisigServiceError(f"Failed to fetch pending transactions: {e}") from e
        except requests.RequestException as e:
            raise MultisigServiceError(f"Failed to fetch pending transactions: {e}") from e
        return list(response.json().get("results", []))

    def get_transaction(self, safe_tx_hash: str) -> dict[str, Any]:
        return self._call(
            "fetch Safe transaction",
            "GET",
            f"/api/v1/multisig-transactions/{safe_tx_hash}/",
        )

    def confirm_transaction(self, safe_tx_hash: str, signature: SafeSignature) -> None:
        """Add an owner confirmation to a queued transaction."""
        self._call(
            "confirm transaction",
            "POST",
            f"/api/v1/multisig-transactions/{safe_tx_hash}/confirmations/",
            json={"signature": signature.signature_hex},
        )
        logger.info(
            "Confirmation by %s added to %s", signature.signer_address, safe_tx_hash
        )

    def get_safe_ui_url(self, safe_address: str, safe_tx_hash: str | None = None) -> str:
        """Generate Safe web app URL for the queue, or for one transaction."""
        network_prefix = SAFE_UI_PREFIXES.get(self.chain_id, "eth")
        safe = Web3.to_checksum_address(safe_address)
        url = f"https://app.safe.global/transactions/queue?safe={network_prefix}:{safe}"
        if safe_tx_hash:
            url += f"#{safe_tx_hash}"
        return url


def pending_from_service(tx: dict[str, Any]) -> PendingTransaction:
    return PendingTransaction(
        safe_tx_hash=tx["safeTxHash"],
        to=tx.get("to", ""),
        nonce=int(tx.get("nonce", 0)),
        confirmations=len(tx.get("confirmations") or []),
        confirmations_required=int(tx.get("confirmationsRequired") or 0),
    )
