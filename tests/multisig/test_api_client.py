from __future__ import annotations

import json
from unittest.mock import MagicMock

import pytest
import requests

from chedda_agent.errors import MultisigServiceError
from chedda_agent.multisig import MultisigTransactionProposal, SafeTransactionServiceClient
from chedda_agent.multisig.api_client import pending_from_service
from chedda_agent.multisig.models import SafeSignature

BASE_URL = "https://safe-transaction-base-sepolia.safe.global"
SAFE = "0x4444444444444444444444444444444444444444"
TARGET = "0x7e41ff84f262a182c2928d4817220f47eb89aecc"
SIGNER = "0x2222222222222222222222222222222222222222"
TX_HASH = "0x" + "ab" * 32


def _response(status: int, payload=None) -> requests.Response:
    response = requests.Response()
    response.status_code = status
    response.url = BASE_URL
    response._content = json.dumps(payload).encode() if payload is not None else b""
    return response


@pytest.fixture
def client():
    client = SafeTransactionServiceClient(BASE_URL + "/", 84532, api_key="secret")
    client.session.request = MagicMock()
    return client


def test_api_key_is_sent_as_bearer_token(client):
    assert client.base_url == BASE_URL
    assert client.session.headers["Authorization"] == "Bearer secret"


def test_propose_transaction_posts_signed_payload(client):
    client.session.request.return_value = _response(201)
    proposal = MultisigTransactionProposal(
        safe_address=SAFE,
        to=TARGET,
        value=0,
        data=b"\xa9\x05\x9c\xbb",
        operation=0,
        nonce=5,
        safe_tx_hash=TX_HASH,
    )
    signature = SafeSignature(SIGNER, b"\x01" * 65)

    assert client.propose_transaction(proposal, signature, "Supply 1 USDC") == TX_HASH

    method, url = client.session.request.call_args.args
    payload = client.session.request.call_args.kwargs["json"]
    assert method == "POST"
    assert url == f"{BASE_URL}/api/v1/safes/{SAFE}/multisig-transactions/"
    assert payload["to"].lower() == TARGET
    assert payload["data"] == "0xa9059cbb"
    assert payload["nonce"] == 5
    assert payload["contractTransactionHash"] == TX_HASH
    assert payload["sender"] == SIGNER
    assert payload["signature"] == "0x" + "01" * 65
    assert payload["origin"] == "Supply 1 USDC"


def test_rejected_proposal_raises(client):
    client.session.request.return_value = _response(400, {"nonce": ["Nonce too low"]})
    proposal = MultisigTransactionProposal(SAFE, TARGET, 0, b"", 0, 0, TX_HASH)

    with pytest.raises(MultisigServiceError, match="Failed to propose transaction"):
        client.propose_transaction(proposal, SafeSignature(SIGNER, b"\x01" * 65))
    assert client.session.request.call_count == 1


def test_pending_transactions(client):
    queued = [{"safeTxHash": TX_HASH, "to": TARGET, "nonce": 2, "confirmations": []}]
    client.session.request.return_value = _response(200, {"results": queued})

    assert client.get_pending_transactions(SAFE) == queued
    assert client.session.request.call_args.kwargs["params"] == {
        "executed": "false",
        "ordering": "nonce",
    }


def test_pending_transactions_of_unindexed_safe_is_empty(client):
    client.session.request.return_value = _response(404, {"detail": "Not found."})

    assert client.get_pending_transactions(SAFE) == []


def test_confirm_transaction(client):
    client.session.request.return_value = _response(201)

    client.confirm_transaction(TX_HASH, SafeSignature(SIGNER, b"\x02" * 65))

    method, url = client.session.request.call_args.args
    assert method == "POST"
    assert url == f"{BASE_URL}/api/v1/multisig-transactions/{TX_HASH}/confirmations/"
    assert client.session.request.call_args.kwargs["json"] == {"signature": "0x" + "02" * 65}


def test_safe_ui_url(client):
    assert client.get_safe_ui_url(SAFE) == (
        f"https://app.safe.global/transactions/queue?safe=basesep:{SAFE}"
    )
    assert client.get_safe_ui_url(SAFE, TX_HASH).endswith(f"#{TX_HASH}")


def test_pending_from_service():
    pending = pending_from_service(
        {
            "safeTxHash": TX_HASH,
            "to": TARGET,
            "nonce": "4",
            "confirmations": [{"owner": SIGNER}],
            "confirmationsRequired": 3,
        }
    )

    assert (pending.nonce, pending.confirmations, pending.confirmations_required) == (4, 1, 3)
