from __future__ import annotations

import pytest

from chedda_agent.addresses import validate_address
from chedda_agent.errors import InvalidAddress

USDC = "0x036CbD53842c5426634e7929541eC2318f3dCF7e"


def test_validate_address_returns_checksum():
    assert validate_address(USDC.lower()) == USDC
    assert validate_address(USDC) == USDC


@pytest.mark.parametrize(
    "candidate",
    [
        "0x123",
        "036CbD53842c5426634e7929541eC2318f3dCF7e",
        "0x036CbD53842c5426634e7929541eC2318f3dCF7eAA",
        "0xZZ6CbD53842c5426634e7929541eC2318f3dCF7e",
        "vitalik.eth",
        "",
        None,
        42,
    ],
)
def test_validate_address_rejects_malformed(candidate):
    with pytest.raises(InvalidAddress):
        validate_address(candidate)


def test_invalid_address_message_names_field():
    with pytest.raises(InvalidAddress) as exc_info:
        validate_address("0x123", "destination")
    message = str(exc_info.value)
    assert "destination '0x123' is invalid" in message
    assert "42 characters long" in message
