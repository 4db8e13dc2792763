"""
Allowance-Gated Swap Orchestrator

Drives one swap request through

    IDLE -> VALIDATING -> CHECKING_ALLOWANCE -> (APPROVING ->) SWAPPING
         -> CONFIRMING -> DONE

with FAILED reachable from every non-terminal state. Each state has its
own handler returning either the next state or a ``SwapFailure``; nothing
is retried automatically.
"""

import logging
from decimal import Decimal
from typing import Any, Awaitable, Callable, Coroutine, Dict, List, Optional, Set, Union

from ..amounts import DEFAULT_DECIMALS, parse_human_amount, to_minor_units
from ..errors import (
    ConfirmationTimeout,
    InvalidAmount,
    OrchestrationBusy,
    ReadError,
    TransactionFailed,
    TransactionRejected,
)
from ..ledger.abi import MAX_UINT256
from ..ledger.contracts import BoundContracts, ContractBinder
from ..sync import PoolStateSynchronizer
from ..wallet.identity import Identity, IdentityResolver
from .models import (
    FailureKind,
    InvalidTransitionError,
    StateTransition,
    SwapFailure,
    SwapRequest,
    SwapRun,
    SwapState,
)


StepResult = Union[SwapState, SwapFailure]
StateHandler = Callable[[SwapRun, BoundContracts], Awaitable[StepResult]]
TransitionCallback = Callable[[StateTransition, SwapRun], Coroutine[Any, Any, None]]


class SwapOrchestrator:
    """
    Sequences allowance check, conditional approval, swap and confirmation.

    Features:
    - Validates transitions against an explicit transition map
    - Waits for approval confirmation before the swap is submitted
    - One in-flight run per identity; concurrent requests are rejected
    - Refreshes pool state after DONE, and after a confirmation timeout
    """

    TRANSITIONS: Dict[SwapState, Set[SwapState]] = {
        SwapState.IDLE: {
            SwapState.VALIDATING,
            SwapState.FAILED,     # Not connected
        },
        SwapState.VALIDATING: {
            SwapState.CHECKING_ALLOWANCE,
            SwapState.FAILED,
        },
        SwapState.CHECKING_ALLOWANCE: {
            SwapState.APPROVING,  # allowance < amount_in
            SwapState.SWAPPING,   # allowance >= amount_in
            SwapState.FAILED,
        },
        SwapState.APPROVING: {
            SwapState.SWAPPING,
            SwapState.FAILED,
        },
        SwapState.SWAPPING: {
            SwapState.CONFIRMING,
            SwapState.FAILED,
        },
        SwapState.CONFIRMING: {
            SwapState.DONE,
            SwapState.FAILED,
        },
        SwapState.DONE: set(),
        SwapState.FAILED: set(),
    }

    def __init__(
        self,
        resolver: IdentityResolver,
        binder: ContractBinder,
        synchronizer: PoolStateSynchronizer,
        *,
        confirmation_timeout_seconds: Optional[float] = None,
        default_decimals: int = DEFAULT_DECIMALS,
        logger: Optional[logging.Logger] = None,
    ):
        self.resolver = resolver
        self.binder = binder
        self.synchronizer = synchronizer
        self.confirmation_timeout_seconds = confirmation_timeout_seconds
        self.default_decimals = default_decimals
        self.logger = logger or logging.getLogger(__name__)

        self._active: Dict[str, SwapRun] = {}
        self._transition_callbacks: List[TransitionCallback] = []
        self._handlers: Dict[SwapState, StateHandler] = {
            SwapState.VALIDATING: self._validate,
            SwapState.CHECKING_ALLOWANCE: self._check_allowance,
            SwapState.APPROVING: self._approve,
            SwapState.SWAPPING: self._submit_swap,
            SwapState.CONFIRMING: self._confirm,
        }

    def register_transition_callback(self, callback: TransitionCallback) -> None:
        """Register a callback to be called on any transition."""
        self._transition_callbacks.append(callback)

    def is_busy(self, identity: Optional[Identity] = None) -> bool:
        identity = identity or self.resolver.identity
        return identity is not None and identity.key in self._active

    def state_for(self, identity: Optional[Identity] = None) -> SwapState:
        """Current state of the in-flight run, IDLE when there is none."""
        identity = identity or self.resolver.identity
        run = self._active.get(identity.key) if identity else None
        return run.state if run else SwapState.IDLE

    async def swap(
        self,
        amount_in: Union[int, str, Decimal],
        min_amount_out: int = 0,
    ) -> SwapRun:
        return await self.run(SwapRequest(amount_in=amount_in, min_amount_out=min_amount_out))

    async def run(self, request: SwapRequest) -> SwapRun:
        """
        Orchestrate one swap request to a terminal state.

        Raises:
            OrchestrationBusy: a run is already in flight for this identity.
        """
        run = SwapRun(request=request, identity=self.resolver.identity)

        if run.identity is None:
            await self._fail(run, SwapFailure(FailureKind.NOT_CONNECTED))
            return run

        key = run.identity.key
        if key in self._active:
            raise OrchestrationBusy(run.identity.address)
        # Claimed before the first await so concurrent callers see it
        self._active[key] = run

        try:
            contracts = self.binder.bind(run.identity)
            await self._transition(run, SwapState.VALIDATING, reason="Swap requested")

            while not run.is_terminal:
                handler = self._handlers[run.state]
                result = await handler(run, contracts)
                if isinstance(result, SwapFailure):
                    await self._fail(run, result)
                else:
                    await self._transition(run, result)

            if run.state == SwapState.DONE or (
                run.failure and run.failure.kind == FailureKind.CONFIRMATION_TIMEOUT
            ):
                # A timed-out transaction may still land; show what the ledger says
                run.snapshot = await self.synchronizer.refresh(run.identity.address)
        finally:
            self._active.pop(key, None)

        return run

    # ------------------------------------------------------------------
    # State handlers
    # ------------------------------------------------------------------

    async def _validate(self, run: SwapRun, contracts: BoundContracts) -> StepResult:
        request = run.request
        raw = request.amount_in
        min_out = request.min_amount_out

        if isinstance(min_out, bool) or not isinstance(min_out, int) or min_out < 0:
            return SwapFailure(FailureKind.INVALID_AMOUNT, f"min_amount_out must be a non-negative integer: {min_out!r}")
        if min_out > MAX_UINT256:
            return SwapFailure(FailureKind.INVALID_AMOUNT, "min_amount_out exceeds uint256")

        try:
            if isinstance(raw, int) and not isinstance(raw, bool):
                amount = raw
            else:
                # Reject malformed input before any ledger call
                parse_human_amount(raw)
                if not contracts.token.is_configured:
                    return SwapFailure(FailureKind.NOT_CONFIGURED, "token address not configured")
                run.decimals = await contracts.token.decimals_or_default(self.default_decimals)
                amount = to_minor_units(raw, run.decimals)
        except InvalidAmount as e:
            return SwapFailure(FailureKind.INVALID_AMOUNT, e.message)

        if amount <= 0:
            return SwapFailure(FailureKind.INVALID_AMOUNT, "amount must be greater than zero")
        if amount > MAX_UINT256:
            return SwapFailure(FailureKind.INVALID_AMOUNT, "amount exceeds uint256")
        if not contracts.token.is_configured or not contracts.pool.is_configured:
            return SwapFailure(FailureKind.NOT_CONFIGURED)

        run.amount_in = amount
        return SwapState.CHECKING_ALLOWANCE

    async def _check_allowance(self, run: SwapRun, contracts: BoundContracts) -> StepResult:
        try:
            run.allowance = await contracts.token.allowance(run.identity.address, contracts.pool.address)
        except ReadError as e:
            return SwapFailure(FailureKind.READ_ERROR, e.message)

        if run.allowance >= run.amount_in:
            self.logger.info(f"Allowance {run.allowance} covers {run.amount_in}; skipping approval")
            return SwapState.SWAPPING
        return SwapState.APPROVING

    async def _approve(self, run: SwapRun, contracts: BoundContracts) -> StepResult:
        try:
            run.approval = await contracts.token.approve(contracts.pool.address, run.amount_in)
        except TransactionRejected as e:
            return SwapFailure(FailureKind.APPROVAL_REJECTED, e.message)
        except TransactionFailed as e:
            return SwapFailure(FailureKind.APPROVAL_FAILED, e.reason)

        try:
            run.approval = await contracts.token.wait_for_confirmation(
                run.approval, self.confirmation_timeout_seconds
            )
        except ConfirmationTimeout as e:
            return SwapFailure(FailureKind.CONFIRMATION_TIMEOUT, e.message)

        if not run.approval.is_confirmed:
            return SwapFailure(FailureKind.APPROVAL_FAILED, run.approval.reason)
        return SwapState.SWAPPING

    async def _submit_swap(self, run: SwapRun, contracts: BoundContracts) -> StepResult:
        try:
            run.swap = await contracts.pool.swap_exact_tokens_for_tokens(
                run.amount_in, run.request.min_amount_out
            )
        except TransactionRejected as e:
            return SwapFailure(FailureKind.SWAP_REJECTED, e.message)
        except TransactionFailed as e:
            return SwapFailure(FailureKind.SWAP_REVERTED, e.reason)
        return SwapState.CONFIRMING

    async def _confirm(self, run: SwapRun, contracts: BoundContracts) -> StepResult:
        try:
            run.swap = await contracts.pool.wait_for_confirmation(
                run.swap, self.confirmation_timeout_seconds
            )
        except ConfirmationTimeout as e:
            return SwapFailure(FailureKind.CONFIRMATION_TIMEOUT, e.message)

        if not run.swap.is_confirmed:
            return SwapFailure(FailureKind.SWAP_REVERTED, run.swap.reason)
        return SwapState.DONE

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    async def _fail(self, run: SwapRun, failure: SwapFailure) -> None:
        run.failure = failure
        await self._transition(run, SwapState.FAILED, reason=failure.message)

    async def _transition(
        self,
        run: SwapRun,
        to_state: SwapState,
        reason: Optional[str] = None,
    ) -> StateTransition:
        from_state = run.state
        if to_state not in self.TRANSITIONS.get(from_state, set()):
            raise InvalidTransitionError(from_state, to_state)

        transition = StateTransition(from_state=from_state, to_state=to_state, reason=reason)
        run.state = to_state
        run.history.append(transition)
        if to_state.is_terminal:
            run.completed_at = transition.timestamp

        who = run.identity.address if run.identity else "<no identity>"
        self.logger.info(
            f"Swap {who}: {from_state.value} -> {to_state.value}"
            f"{f' ({reason})' if reason else ''}"
        )

        for callback in self._transition_callbacks:
            try:
                await callback(transition, run)
            except Exception as e:
                self.logger.error(f"Transition callback error: {e}")

        return transition
