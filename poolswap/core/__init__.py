"""
Core swap orchestration: wallet identity, ledger bindings, amount
normalization, the swap state machine and pool state synchronization.
"""

from .amounts import DEFAULT_DECIMALS, TokenAmount, to_human_units, to_minor_units
from .errors import (
    ConfirmationTimeout,
    InvalidAmount,
    NoWalletCapability,
    NotConnected,
    OrchestrationBusy,
    PoolSwapError,
    ReadError,
    RpcError,
    TransactionFailed,
    TransactionRejected,
    WalletAuthorizationDenied,
)
from .session import SwapSession
from .swap import FailureKind, SwapOrchestrator, SwapRequest, SwapRun, SwapState
from .sync import PoolSnapshot, PoolStateSynchronizer

__all__ = [
    # Amounts
    "DEFAULT_DECIMALS",
    "TokenAmount",
    "to_human_units",
    "to_minor_units",
    # Session
    "SwapSession",
    # Orchestration
    "SwapOrchestrator",
    "SwapRequest",
    "SwapRun",
    "SwapState",
    "FailureKind",
    # Synchronization
    "PoolSnapshot",
    "PoolStateSynchronizer",
    # Errors
    "PoolSwapError",
    "NoWalletCapability",
    "WalletAuthorizationDenied",
    "NotConnected",
    "InvalidAmount",
    "ReadError",
    "RpcError",
    "TransactionRejected",
    "TransactionFailed",
    "ConfirmationTimeout",
    "OrchestrationBusy",
]
