"""
Swap session wiring.

Builds the identity resolver, contract binder, synchronizer and orchestrator
from settings and one wallet capability, and exposes the user-level entry
points (connect, refresh, swap, add liquidity) used by the API and CLI.
"""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional, Union

from ..config import Settings, settings as default_settings
from .amounts import TokenAmount
from .errors import InvalidAmount, NoWalletCapability, NotConnected, ReadError, WalletAuthorizationDenied
from .ledger.abi import MAX_UINT256
from .ledger.contracts import ContractBinder
from .ledger.models import PoolReserves, TransactionOutcome
from .ledger.transactions import TransactionMonitor
from .swap import SwapOrchestrator, SwapRun
from .sync import PoolSnapshot, PoolStateSynchronizer
from .wallet.identity import Identity, IdentityResolver
from .wallet.provider import JsonRpcWalletProvider, WalletProvider


logger = logging.getLogger(__name__)


class SwapSession:
    """One user's connection to the pool."""

    def __init__(
        self,
        provider: Optional[WalletProvider],
        config: Optional[Settings] = None,
    ):
        self.config = config or default_settings
        self.provider = provider

        self.resolver = IdentityResolver(provider)
        self.monitor = TransactionMonitor(
            provider,
            confirmation_timeout_seconds=self.config.confirmation_timeout_seconds,
            poll_interval_seconds=self.config.receipt_poll_interval_seconds,
            required_confirmations=self.config.required_confirmations,
        )
        self.binder = ContractBinder(
            provider,
            token_address=self.config.token_address,
            pool_address=self.config.pool_address,
            monitor=self.monitor,
        )
        self.synchronizer = PoolStateSynchronizer(
            self.binder,
            default_decimals=self.config.default_token_decimals,
        )
        self.orchestrator = SwapOrchestrator(
            self.resolver,
            self.binder,
            self.synchronizer,
            confirmation_timeout_seconds=self.config.confirmation_timeout_seconds,
            default_decimals=self.config.default_token_decimals,
        )

    @classmethod
    def from_settings(cls, config: Optional[Settings] = None) -> "SwapSession":
        """Session backed by the configured JSON-RPC wallet, if any."""
        config = config or default_settings
        provider = None
        if config.has_wallet_rpc:
            provider = JsonRpcWalletProvider(config.rpc_url, timeout_s=config.request_timeout_seconds)
        return cls(provider, config)

    @property
    def identity(self) -> Optional[Identity]:
        return self.resolver.identity

    @property
    def snapshot(self) -> PoolSnapshot:
        return self.synchronizer.snapshot

    async def connect(self) -> Identity:
        """Resolve the identity and load the initial pool view.

        A zero pool/token address skips the corresponding initial read. A
        failed resolve drops the previous account's view along with it.
        """
        try:
            identity = await self.resolver.connect()
        except (ReadError, WalletAuthorizationDenied):
            self.synchronizer.clear()
            raise
        await self.synchronizer.refresh(identity.address)
        return identity

    def disconnect(self) -> None:
        self.resolver.disconnect()
        self.synchronizer.clear()

    def _require_provider(self) -> None:
        if self.provider is None:
            raise NoWalletCapability()

    async def refresh(self) -> PoolSnapshot:
        self._require_provider()
        owner = self.identity.address if self.identity else None
        return await self.synchronizer.refresh(owner)

    async def reserves(self) -> PoolReserves:
        self._require_provider()
        return await self.synchronizer.refresh_reserves()

    async def balance(self, owner: Optional[str] = None) -> TokenAmount:
        self._require_provider()
        owner = owner or (self.identity.address if self.identity else None)
        if not owner:
            raise NotConnected()
        return await self.synchronizer.refresh_balance(owner)

    async def swap(
        self,
        amount_in: Union[int, str, Decimal],
        min_amount_out: Optional[int] = None,
    ) -> SwapRun:
        if min_amount_out is None:
            min_amount_out = self.config.default_min_amount_out
        return await self.orchestrator.swap(amount_in, min_amount_out)

    async def add_liquidity(self, amount_a: int, amount_b: int) -> TransactionOutcome:
        """Submit addLiquidity, wait for it, then refresh the pool view.

        Amounts are minor units. Token approvals for the pool are the
        caller's responsibility.
        """
        identity = self.resolver.require_identity()
        for amount in (amount_a, amount_b):
            if isinstance(amount, bool) or not isinstance(amount, int) or not 0 < amount <= MAX_UINT256:
                raise InvalidAmount(f"Liquidity amount must be a positive integer: {amount!r}")

        logger.info(f"Adding liquidity for {identity}: {amount_a} / {amount_b}")
        pool = self.binder.bind(identity).pool
        outcome = await pool.add_liquidity(amount_a, amount_b)
        try:
            outcome = await pool.wait_for_confirmation(outcome)
        finally:
            await self.synchronizer.refresh(identity.address)
        return outcome

    async def close(self) -> None:
        close = getattr(self.provider, "close", None)
        if close is not None:
            await close()


# Singleton instance
_session: Optional[SwapSession] = None


def get_swap_session() -> SwapSession:
    """Get the process-wide swap session built from settings."""
    global _session
    if _session is None:
        _session = SwapSession.from_settings()
    return _session
