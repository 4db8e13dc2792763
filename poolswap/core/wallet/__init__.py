"""
Wallet Module

Wallet capability boundary and identity resolution.
"""

from .identity import Identity, IdentityResolver
from .provider import JsonRpcWalletProvider, WalletProvider

__all__ = [
    "Identity",
    "IdentityResolver",
    "JsonRpcWalletProvider",
    "WalletProvider",
]
