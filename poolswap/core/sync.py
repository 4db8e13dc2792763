"""
Pool State Synchronizer

Read-through access to pool reserves and the user's token balance. Every
call queries the ledger; the published ``PoolSnapshot`` is display state
only and a failed read clears the field to unknown instead of leaving the
previous value in place.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Coroutine, Dict, List, Optional

from .amounts import DEFAULT_DECIMALS, TokenAmount
from .errors import ReadError
from .ledger.contracts import ContractBinder
from .ledger.models import PoolReserves


SnapshotCallback = Callable[["PoolSnapshot"], Coroutine[Any, Any, None]]


@dataclass
class PoolSnapshot:
    """What the user currently sees. ``None`` means unknown."""
    reserves: Optional[PoolReserves] = None
    balance: Optional[TokenAmount] = None
    owner: Optional[str] = None
    errors: Dict[str, str] = field(default_factory=dict)
    refreshed_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "reserves": self.reserves.to_dict() if self.reserves else None,
            "balance": (
                {"raw": str(self.balance.value), "formatted": self.balance.human, "decimals": self.balance.decimals}
                if self.balance
                else None
            ),
            "owner": self.owner,
            "errors": dict(self.errors),
            "refreshed_at": self.refreshed_at.isoformat(),
        }


class PoolStateSynchronizer:
    """Fetches and republishes reserves and balance on demand."""

    def __init__(
        self,
        binder: ContractBinder,
        *,
        default_decimals: int = DEFAULT_DECIMALS,
        logger: Optional[logging.Logger] = None,
    ):
        self.binder = binder
        self.default_decimals = default_decimals
        self.logger = logger or logging.getLogger(__name__)
        self._snapshot = PoolSnapshot()
        self._callbacks: List[SnapshotCallback] = []

    @property
    def snapshot(self) -> PoolSnapshot:
        return self._snapshot

    def subscribe(self, callback: SnapshotCallback) -> None:
        """Register a callback invoked with each new snapshot."""
        self._callbacks.append(callback)

    async def refresh_reserves(self) -> PoolReserves:
        if not self.binder.pool_configured:
            raise ReadError("pool address not configured")
        return await self.binder.readonly().pool.get_reserves()

    async def refresh_balance(self, owner: str) -> TokenAmount:
        if not self.binder.token_configured:
            raise ReadError("token address not configured")
        token = self.binder.readonly().token
        decimals = await token.decimals_or_default(self.default_decimals)
        return await token.balance_of(owner, decimals=decimals)

    async def refresh(self, owner: Optional[str] = None) -> PoolSnapshot:
        """
        Refresh everything that can be refreshed and publish the result.

        Read failures are recorded per field and never raised. An
        unconfigured (zero) address skips the corresponding query.
        """
        snapshot = PoolSnapshot(owner=owner)

        if self.binder.pool_configured:
            try:
                snapshot.reserves = await self.refresh_reserves()
            except ReadError as e:
                self.logger.warning(f"Reserve refresh failed: {e.message}")
                snapshot.errors["reserves"] = e.message
        else:
            snapshot.errors["reserves"] = "pool address not configured"

        if owner and self.binder.token_configured:
            try:
                snapshot.balance = await self.refresh_balance(owner)
            except ReadError as e:
                self.logger.warning(f"Balance refresh failed for {owner}: {e.message}")
                snapshot.errors["balance"] = e.message
        elif owner:
            snapshot.errors["balance"] = "token address not configured"

        self._snapshot = snapshot
        await self._publish(snapshot)
        return snapshot

    def clear(self) -> None:
        self._snapshot = PoolSnapshot()

    async def _publish(self, snapshot: PoolSnapshot) -> None:
        for callback in self._callbacks:
            try:
                await callback(snapshot)
            except Exception as e:
                self.logger.error(f"Snapshot callback error: {e}")
