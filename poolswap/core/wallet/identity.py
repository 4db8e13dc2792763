"""Resolve the signing identity the user authorized in their wallet."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from eth_utils import is_address, to_checksum_address

from ..errors import (
    NoWalletCapability,
    NotConnected,
    ReadError,
    RpcError,
    WalletAuthorizationDenied,
)
from .provider import WalletProvider


@dataclass(frozen=True)
class Identity:
    """Connected signer. ``address`` is EIP-55 checksummed."""

    address: str

    def __str__(self) -> str:
        return self.address

    @property
    def key(self) -> str:
        return self.address.lower()


class IdentityResolver:
    """Obtains and holds the active identity for a session."""

    def __init__(
        self,
        provider: Optional[WalletProvider],
        *,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.provider = provider
        self._identity: Optional[Identity] = None
        self._logger = logger or logging.getLogger(__name__)

    @property
    def identity(self) -> Optional[Identity]:
        return self._identity

    @property
    def is_connected(self) -> bool:
        return self._identity is not None

    def require_identity(self) -> Identity:
        if self._identity is None:
            raise NotConnected()
        return self._identity

    async def connect(self) -> Identity:
        """Ask the wallet for account access.

        Calling again while connected re-resolves so an account switch in
        the wallet is picked up. Any failed resolve clears the identity.
        """
        if self.provider is None:
            raise NoWalletCapability()

        try:
            accounts = await self.provider.request("eth_requestAccounts")
        except RpcError as e:
            self._identity = None
            if e.is_user_rejection:
                raise WalletAuthorizationDenied(e.message) from e
            raise ReadError(f"Failed to resolve wallet account: {e.message}") from e

        if not accounts:
            self._identity = None
            raise WalletAuthorizationDenied("Wallet returned no authorized accounts")

        address = accounts[0]
        if not isinstance(address, str) or not is_address(address):
            self._identity = None
            raise ReadError(f"Wallet returned an invalid address: {address!r}")

        previous = self._identity
        self._identity = Identity(to_checksum_address(address))
        if previous and previous != self._identity:
            self._logger.info(f"Wallet account switched: {previous} -> {self._identity}")
        else:
            self._logger.info(f"Wallet connected: {self._identity}")
        return self._identity

    def disconnect(self) -> None:
        self._identity = None
