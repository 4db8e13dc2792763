"""
Swap Orchestration Module

Allowance-gated swap state machine.
"""

from .models import (
    FailureKind,
    InvalidTransitionError,
    StateTransition,
    SwapFailure,
    SwapRequest,
    SwapRun,
    SwapState,
)
from .orchestrator import SwapOrchestrator

__all__ = [
    # Orchestrator
    "SwapOrchestrator",
    # Models
    "SwapState",
    "SwapRequest",
    "SwapRun",
    "SwapFailure",
    "FailureKind",
    "StateTransition",
    # Errors
    "InvalidTransitionError",
]
