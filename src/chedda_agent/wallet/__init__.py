from .base import WalletNetwork, WalletProvider
from .web3_provider import Web3WalletProvider

__all__ = ["WalletNetwork", "WalletProvider", "Web3WalletProvider"]
