"""Address validation helpers."""

from __future__ import annotations

import re

from eth_typing import ChecksumAddress
from web3 import Web3

from .errors import InvalidAddress

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

_HEX_ADDRESS = re.compile(r"^0x[0-9a-fA-F]{40}$")


def is_hex_address(candidate: object) -> bool:
    return isinstance(candidate, str) and bool(_HEX_ADDRESS.match(candidate))


def validate_address(candidate: object, field: str = "address") -> ChecksumAddress:
    """Validate an address-like string and return its checksum form.

    Only the canonical shape (``0x`` followed by 40 hex digits) is accepted.
    ENS or Basename names are rejected here; resolving them is the wallet
    provider's job.

    Raises:
        InvalidAddress: If ``candidate`` does not have the canonical shape.
    """
    if not is_hex_address(candidate):
        raise InvalidAddress(candidate, field)
    return Web3.to_checksum_address(candidate)  # type: ignore[arg-type]
