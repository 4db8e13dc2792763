"""
Ledger binding models and types.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, Optional


class TransactionType(str, Enum):
    """Write operations exposed by the bound programs."""
    APPROVE = "approve"
    SWAP = "swap"
    ADD_LIQUIDITY = "add_liquidity"


class TransactionStatus(str, Enum):
    """Transaction lifecycle status."""
    SUBMITTED = "submitted"      # Accepted by the signer, not yet final
    CONFIRMED = "confirmed"      # Mined with the required confirmations
    FAILED = "failed"            # Reverted on the ledger


@dataclass(frozen=True)
class PoolReserves:
    """Point-in-time snapshot of the pool's holdings, in minor units."""
    reserve_a: int
    reserve_b: int

    def to_dict(self) -> Dict[str, str]:
        return {"reserve_a": str(self.reserve_a), "reserve_b": str(self.reserve_b)}


@dataclass
class TransactionOutcome:
    """Result of one write operation."""
    tx_type: TransactionType
    status: TransactionStatus = TransactionStatus.SUBMITTED
    tx_hash: Optional[str] = None
    reason: Optional[str] = None

    # Confirmation details
    block_number: Optional[int] = None
    gas_used: Optional[int] = None

    submitted_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    confirmed_at: Optional[datetime] = None

    @property
    def is_confirmed(self) -> bool:
        return self.status == TransactionStatus.CONFIRMED

    @property
    def is_final(self) -> bool:
        return self.status in {TransactionStatus.CONFIRMED, TransactionStatus.FAILED}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.tx_type.value,
            "status": self.status.value,
            "tx_hash": self.tx_hash,
            "reason": self.reason,
            "block_number": self.block_number,
        }
