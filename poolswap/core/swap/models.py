"""
Swap Orchestration Models

States, failure variants and the per-request run record.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from ..ledger.models import TransactionOutcome
from ..sync import PoolSnapshot
from ..wallet.identity import Identity


class SwapState(str, Enum):
    """Orchestration states for one swap request."""
    IDLE = "idle"
    VALIDATING = "validating"
    CHECKING_ALLOWANCE = "checking_allowance"
    APPROVING = "approving"
    SWAPPING = "swapping"
    CONFIRMING = "confirming"
    DONE = "done"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (SwapState.DONE, SwapState.FAILED)


class FailureKind(str, Enum):
    """Why a run ended in FAILED."""
    NOT_CONNECTED = "not_connected"
    NOT_CONFIGURED = "not_configured"
    INVALID_AMOUNT = "invalid_amount"
    READ_ERROR = "read_error"
    APPROVAL_REJECTED = "approval_rejected"
    APPROVAL_FAILED = "approval_failed"
    SWAP_REJECTED = "swap_rejected"
    SWAP_REVERTED = "swap_reverted"
    CONFIRMATION_TIMEOUT = "confirmation_timeout"


_FAILURE_MESSAGES: Dict[FailureKind, str] = {
    FailureKind.NOT_CONNECTED: "Connect a wallet before swapping",
    FailureKind.NOT_CONFIGURED: "Pool or token address is not configured",
    FailureKind.INVALID_AMOUNT: "Invalid amount",
    FailureKind.READ_ERROR: "Could not read ledger state",
    FailureKind.APPROVAL_REJECTED: "Approval was rejected in the wallet",
    FailureKind.APPROVAL_FAILED: "Approval transaction failed",
    FailureKind.SWAP_REJECTED: "Swap was rejected in the wallet",
    FailureKind.SWAP_REVERTED: "Swap reverted",
    FailureKind.CONFIRMATION_TIMEOUT: (
        "Timed out waiting for confirmation; the transaction may still land, check balances"
    ),
}


@dataclass(frozen=True)
class SwapFailure:
    kind: FailureKind
    reason: Optional[str] = None

    @property
    def message(self) -> str:
        base = _FAILURE_MESSAGES[self.kind]
        return f"{base}: {self.reason}" if self.reason else base


@dataclass(frozen=True)
class SwapRequest:
    """
    One swap request.

    ``amount_in`` as ``int`` is taken as minor units; ``str``/``Decimal`` is
    a human amount converted with the token's decimals.
    """
    amount_in: Union[int, str, Decimal]
    min_amount_out: int = 0


@dataclass
class StateTransition:
    """Record of a state transition."""
    from_state: SwapState
    to_state: SwapState
    reason: Optional[str] = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass
class SwapRun:
    """Everything observed while orchestrating one request."""
    request: SwapRequest
    identity: Optional[Identity] = None
    state: SwapState = SwapState.IDLE
    history: List[StateTransition] = field(default_factory=list)

    # Resolved during the run
    amount_in: Optional[int] = None
    decimals: Optional[int] = None
    allowance: Optional[int] = None
    approval: Optional[TransactionOutcome] = None
    swap: Optional[TransactionOutcome] = None
    failure: Optional[SwapFailure] = None
    snapshot: Optional[PoolSnapshot] = None

    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None

    @property
    def is_terminal(self) -> bool:
        return self.state.is_terminal

    @property
    def status_message(self) -> str:
        if self.state == SwapState.DONE:
            tx_hash = self.swap.tx_hash if self.swap else None
            return f"Swap confirmed{f' in {tx_hash}' if tx_hash else ''}"
        if self.state == SwapState.FAILED and self.failure:
            return self.failure.message
        return f"Swap {self.state.value.replace('_', ' ')}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "state": self.state.value,
            "status": self.status_message,
            "identity": self.identity.address if self.identity else None,
            "amount_in": str(self.amount_in) if self.amount_in is not None else None,
            "min_amount_out": str(self.request.min_amount_out),
            "allowance": str(self.allowance) if self.allowance is not None else None,
            "approval": self.approval.to_dict() if self.approval else None,
            "swap": self.swap.to_dict() if self.swap else None,
            "failure": (
                {"kind": self.failure.kind.value, "reason": self.failure.reason}
                if self.failure
                else None
            ),
            "snapshot": self.snapshot.to_dict() if self.snapshot else None,
            "history": [
                {"from": t.from_state.value, "to": t.to_state.value, "reason": t.reason}
                for t in self.history
            ],
        }


class InvalidTransitionError(Exception):
    """Raised when attempting an invalid state transition."""

    def __init__(self, from_state: SwapState, to_state: SwapState, message: Optional[str] = None):
        self.from_state = from_state
        self.to_state = to_state
        self.message = message or f"Invalid transition from {from_state.value} to {to_state.value}"
        super().__init__(self.message)
