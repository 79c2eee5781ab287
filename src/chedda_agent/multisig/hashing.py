"""Safe transaction hashing, signing and CREATE2 salt derivation."""

from __future__ import annotations

from collections.abc import Iterable

from eth_account import Account
from eth_utils import keccak
from web3 import Web3

from ..addresses import ZERO_ADDRESS
from .models import SafeSignature

# EIP-712 typehashes from Safe.sol (>= 1.3.0 domain includes chainId)
DOMAIN_SEPARATOR_TYPEHASH = keccak(
    b"EIP712Domain(uint256 chainId,address verifyingContract)"
)
SAFE_TX_TYPEHASH = keccak(
    b"SafeTx(address to,uint256 value,bytes data,uint8 operation,uint256 safeTxGas,uint256 baseGas,uint256 gasPrice,address gasToken,address refundReceiver,uint256 nonce)"
)
PROXY_CREATION_TOPIC = keccak(text="ProxyCreation(address,address)")


def _address_word(address: str) -> bytes:
    return bytes.fromhex(Web3.to_checksum_address(address)[2:]).rjust(32, b"\x00")


def safe_tx_hash(
    chain_id: int,
    safe_address: str,
    to: str,
    value: int,
    data: bytes,
    operation: int,
    nonce: int,
    safe_tx_gas: int = 0,
    base_gas: int = 0,
    gas_price: int = 0,
    gas_token: str = ZERO_ADDRESS,
    refund_receiver: str = ZERO_ADDRESS,
) -> str:
    """Calculate Safe transaction hash using EIP-712.

    This follows the exact implementation from Safe.sol:getTransactionHash()

    Args:
        chain_id: Network chain ID
        safe_address: Safe that will execute the transaction
        to: Destination address
        value: ETH value to send
        data: Transaction calldata
        operation: 0 for CALL, 1 for DELEGATECALL
        nonce: Safe nonce
        safe_tx_gas: Gas for Safe transaction execution
        base_gas: Base gas cost
        gas_price: Gas price
        gas_token: Token address for gas payment
        refund_receiver: Address receiving gas refund

    Returns:
        Safe transaction hash (contractTransactionHash)
    """
    domain_separator = keccak(
        DOMAIN_SEPARATOR_TYPEHASH
        + chain_id.to_bytes(32, "big")
        + _address_word(safe_address)
    )

    safe_tx_hash_data = (
        SAFE_TX_TYPEHASH
        + _address_word(to)
        + value.to_bytes(32, "big")
        + keccak(data)
        + operation.to_bytes(32, "big")
        + safe_tx_gas.to_bytes(32, "big")
        + base_gas.to_bytes(32, "big")
        + gas_price.to_bytes(32, "big")
        + _address_word(gas_token)
        + _address_word(refund_receiver)
        + nonce.to_bytes(32, "big")
    )

    # Final EIP-712 hash: keccak256("\x19\x01" || domainSeparator || structHash)
    final_hash = keccak(b"\x19\x01" + domain_separator + keccak(safe_tx_hash_data))
    return "0x" + final_hash.hex()


def sign_safe_tx_hash(private_key: str, tx_hash: str) -> SafeSignature:
    """ECDSA-sign a Safe transaction hash directly (no eth_sign prefix)."""
    account = Account.from_key(private_key)
    signed = account.unsafe_sign_hash(bytes.fromhex(tx_hash.removeprefix("0x")))
    return SafeSignature(signer_address=account.address, signature=bytes(signed.signature))


def encode_signatures(signatures: Iterable[SafeSignature]) -> bytes:
    """Concatenate signatures sorted by signer address, as Safe.checkSignatures expects."""
    ordered = sorted(signatures, key=lambda s: int(s.signer_address, 16))
    return b"".join(s.signature for s in ordered)


def salt_nonce_for_pair(agent_address: str, user_address: str) -> int:
    """Deterministic CREATE2 salt nonce for an (agent, user) pair.

    Two deployments for the same pair collide at the factory, so only one can
    ever succeed.
    """
    digest = keccak(
        bytes.fromhex(Web3.to_checksum_address(agent_address)[2:])
        + bytes.fromhex(Web3.to_checksum_address(user_address)[2:])
    )
    return int.from_bytes(digest, "big")


def create2_address(deployer: str, salt: bytes, init_code: bytes) -> str:
    """EIP-1014: ``keccak256(0xff ++ deployer ++ salt ++ keccak256(init_code))[12:]``."""
    digest = keccak(
        b"\xff" + bytes.fromhex(Web3.to_checksum_address(deployer)[2:]) + salt + keccak(init_code)
    )
    return Web3.to_checksum_address(digest[12:])

def predict_safe_address(
    proxy_factory: str,
    singleton: str,
    initializer: bytes,
    salt_nonce: int,
    proxy_creation_code: bytes,
) -> str:
    """CREATE2 address ``createProxyWithNonce`` deploys to (SafeProxyFactory >= 1.3.0).

    The salt commits to the initializer, so a contract at this address always
    has exactly the owners and threshold encoded in ``initializer``.
    """
    salt = keccak(keccak(initializer) + salt_nonce.to_bytes(32, "big"))
    return create2_address(proxy_factory, salt, proxy_creation_code + _address_word(singleton))
