"""Calldata encoders for ERC20, swap router, lending pool and Safe deployment calls.

Every function here is pure: arguments are checked against the ABI descriptor
before any byte is produced, and amounts are expected in base units already.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from eth_abi.abi import decode, encode, is_encodable
from eth_utils import function_signature_to_4byte_selector
from web3 import Web3

from .abi import (
    load_erc20_abi,
    load_lending_pool_abi,
    load_safe_abi,
    load_safe_proxy_factory_abi,
    load_swap_router_abi,
)
from .addresses import ZERO_ADDRESS
from .errors import EncodingError

logger = logging.getLogger(__name__)


def _function_abi(abi: list[dict], function_name: str) -> dict:
    for entry in abi:
        if entry.get("type") == "function" and entry.get("name") == function_name:
            return entry
    raise EncodingError(f"Function '{function_name}' not found in ABI")


def _input_types(fn_abi: dict) -> list[str]:
    return [item["type"] for item in fn_abi.get("inputs", [])]


def function_signature(fn_abi: dict) -> str:
    """Canonical signature, e.g. ``transfer(address,uint256)``."""
    return f"{fn_abi['name']}({','.join(_input_types(fn_abi))})"


def function_selector(abi: list[dict], function_name: str) -> bytes:
    return function_signature_to_4byte_selector(
        function_signature(_function_abi(abi, function_name))
    )


def encode_function_call(
    abi: list[dict], function_name: str, args: Sequence[Any]
) -> bytes:
    """Encode a call to ``function_name`` as selector + ABI-encoded arguments.

    Args:
        abi: ABI descriptor containing the function.
        function_name: Name of the function to call.
        args: Positional arguments, already in their on-chain representation.

    Returns:
        Calldata bytes.

    Raises:
        EncodingError: If the function is unknown, the arity is wrong, or any
            argument cannot be represented by its declared ABI type.
    """
    fn_abi = _function_abi(abi, function_name)
    types = _input_types(fn_abi)
    signature = function_signature(fn_abi)

    if len(args) != len(types):
        raise EncodingError(
            f"{signature} expects {len(types)} argument(s), got {len(args)}"
        )
    for position, (abi_type, value) in enumerate(zip(types, args)):
        if not is_encodable(abi_type, value):
            raise EncodingError(
                f"Argument {position} of {signature} is not a valid {abi_type}: {value!r}"
            )

    selector = function_signature_to_4byte_selector(signature)
    calldata = selector + encode(types, list(args))
    logger.debug("Encoded %s (%d bytes)", signature, len(calldata))
    return calldata


def _checksum_decoded(abi_type: str, value: Any) -> Any:
    if abi_type == "address":
        return Web3.to_checksum_address(value)
    if abi_type == "address[]":
        return [Web3.to_checksum_address(v) for v in value]
    return value


def decode_function_call(abi: list[dict], data: bytes) -> tuple[str, list[Any]]:
    """Decode calldata produced for one of the functions of ``abi``.

    Returns:
        Tuple of (function_name, arguments); addresses come back checksummed.

    Raises:
        EncodingError: If the selector matches no function of the ABI.
    """
    if len(data) < 4:
        raise EncodingError("Calldata is shorter than a function selector")
    selector, body = data[:4], data[4:]
    for entry in abi:
        if entry.get("type") != "function":
            continue
        if function_signature_to_4byte_selector(function_signature(entry)) != selector:
            continue
        types = _input_types(entry)
        values = decode(types, body)
        return entry["name"], [
            _checksum_decoded(t, v) for t, v in zip(types, values)
        ]
    raise EncodingError(f"Unknown function selector 0x{selector.hex()}")


def encode_transfer(recipient: str, amount: int) -> bytes:
    """ERC20 ``transfer(address,uint256)``."""
    return encode_function_call(load_erc20_abi(), "transfer", [recipient, amount])


def encode_swap_exact_tokens_for_tokens(
    amount_in: int,
    amount_out_min: int,
    path: Sequence[str],
    recipient: str,
    deadline: int,
) -> bytes:
    """Uniswap-V2-style ``swapExactTokensForTokens``.

    Raises:
        EncodingError: If ``path`` is empty.
    """
    if isinstance(path, str) or len(path) == 0:
        raise EncodingError("Swap path must be a non-empty list of token addresses")
    return encode_function_call(
        load_swap_router_abi(),
        "swapExactTokensForTokens",
        [amount_in, amount_out_min, list(path), recipient, deadline],
    )


def encode_supply(amount: int, receiver: str, use_as_collateral: bool) -> bytes:
    return encode_function_call(
        load_lending_pool_abi(), "supply", [amount, receiver, use_as_collateral]
    )


def encode_withdraw(amount: int, receiver: str, owner: str) -> bytes:
    return encode_function_call(
        load_lending_pool_abi(), "withdraw", [amount, receiver, owner]
    )


def encode_borrow(amount: int) -> bytes:
    """Lending pool ``take(uint256)``."""
    return encode_function_call(load_lending_pool_abi(), "take", [amount])


def encode_repay(amount: int) -> bytes:
    """Lending pool ``putAmount(uint256)``."""
    return encode_function_call(load_lending_pool_abi(), "putAmount", [amount])


def encode_safe_setup(
    owners: Sequence[str], threshold: int, fallback_handler: str
) -> bytes:
    """Safe ``setup`` initializer with no module call and no deployment refund."""
    if not owners:
        raise EncodingError("A Safe needs at least one owner")
    if not 1 <= threshold <= len(owners):
        raise EncodingError(
            f"Threshold {threshold} must be between 1 and the number of owners ({len(owners)})"
        )
    return encode_function_call(
        load_safe_abi(),
        "setup",
        [
            list(owners),
            threshold,
            ZERO_ADDRESS,
            b"",
            fallback_handler,
            ZERO_ADDRESS,
            0,
            ZERO_ADDRESS,
        ],
    )


def encode_create_proxy_with_nonce(
    singleton: str, initializer: bytes, salt_nonce: int
) -> bytes:
    """SafeProxyFactory ``createProxyWithNonce(address,bytes,uint256)``."""
    return encode_function_call(
        load_safe_proxy_factory_abi(),
        "createProxyWithNonce",
        [singleton, initializer, salt_nonce],
    )
