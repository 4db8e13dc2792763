"""
Tests for the allowance-gated swap orchestrator.

Runs go through a real SwapSession wired to the in-memory ledger, so every
assertion about approvals and swaps is an assertion about what was actually
sent to the ledger and in which order.
"""

import asyncio
from typing import List

import pytest
import pytest_asyncio

from fake_ledger import OTHER_USER, POOL, FakeLedger
from poolswap.config import Settings
from poolswap.core.errors import OrchestrationBusy
from poolswap.core.ledger.abi import MAX_UINT256
from poolswap.core.ledger.models import TransactionStatus
from poolswap.core.session import SwapSession
from poolswap.core.swap import (
    FailureKind,
    InvalidTransitionError,
    StateTransition,
    SwapOrchestrator,
    SwapRequest,
    SwapRun,
    SwapState,
)
from poolswap.core.wallet import Identity


SWAP = "swapExactTokensForTokens"


def _states(run: SwapRun) -> List[SwapState]:
    return [t.to_state for t in run.history]


@pytest_asyncio.fixture
async def connected(session: SwapSession) -> SwapSession:
    await session.connect()
    return session


def _session_with(ledger: FakeLedger, settings: Settings, **overrides) -> SwapSession:
    return SwapSession(ledger, settings.model_copy(update=overrides))


# =============================================================================
# Allowance gating
# =============================================================================

class TestAllowanceGating:

    @pytest.mark.asyncio
    async def test_sufficient_allowance_skips_approval(self, ledger: FakeLedger, connected: SwapSession):
        ledger.allowances[(connected.identity.key, POOL)] = 1000

        run = await connected.swap(500)

        assert run.state == SwapState.DONE
        assert _states(run) == [
            SwapState.VALIDATING,
            SwapState.CHECKING_ALLOWANCE,
            SwapState.SWAPPING,
            SwapState.CONFIRMING,
            SwapState.DONE,
        ]
        assert ledger.sends("approve") == []
        assert [e[2] for e in ledger.sends(SWAP)] == [[500, 0]]
        assert run.approval is None
        assert run.swap.status == TransactionStatus.CONFIRMED

    @pytest.mark.asyncio
    async def test_exact_allowance_is_sufficient(self, ledger: FakeLedger, connected: SwapSession):
        ledger.allowances[(connected.identity.key, POOL)] = 500

        run = await connected.swap(500)

        assert run.state == SwapState.DONE
        assert ledger.sends("approve") == []

    @pytest.mark.asyncio
    async def test_insufficient_allowance_approves_once_before_swap(
        self, ledger: FakeLedger, connected: SwapSession
    ):
        ledger.confirm_after_polls = 3

        run = await connected.swap(500)

        assert run.state == SwapState.DONE
        assert SwapState.APPROVING in _states(run)

        approvals = ledger.sends("approve")
        assert len(approvals) == 1
        assert approvals[0][2] == [POOL, 500]

        approval_hash = run.approval.tx_hash
        approval_mined = next(
            i for i, e in enumerate(ledger.events)
            if e[0] == "receipt" and e[1] == approval_hash and e[2] == "0x1"
        )
        assert approval_mined < ledger.index_of("send", SWAP)
        assert run.approval.is_confirmed

    @pytest.mark.asyncio
    async def test_approval_is_kept_after_swap_failure(self, ledger: FakeLedger, connected: SwapSession):
        ledger.revert_on_send[SWAP] = "K"

        first = await connected.swap(500)

        assert first.state == SwapState.FAILED
        assert first.failure.kind == FailureKind.SWAP_REVERTED
        assert first.failure.reason == "K"
        assert ledger.allowance_of() == 500

        del ledger.revert_on_send[SWAP]
        second = await connected.swap(500)

        assert second.state == SwapState.DONE
        assert len(ledger.sends("approve")) == 1
        assert SwapState.APPROVING not in _states(second)

    @pytest.mark.asyncio
    async def test_done_refreshes_pool_state(self, ledger: FakeLedger, connected: SwapSession):
        before = connected.snapshot.reserves

        run = await connected.swap(500)

        assert run.snapshot is not None
        assert run.snapshot.reserves.reserve_a == before.reserve_a + 500
        assert run.snapshot.reserves.reserve_b < before.reserve_b
        assert connected.snapshot is run.snapshot


# =============================================================================
# Validation
# =============================================================================

class TestValidation:

    @pytest.mark.asyncio
    async def test_not_connected_fails_without_ledger_calls(self, ledger: FakeLedger, session: SwapSession):
        run = await session.swap(500)

        assert run.state == SwapState.FAILED
        assert run.failure.kind == FailureKind.NOT_CONNECTED
        assert _states(run) == [SwapState.FAILED]
        assert ledger.events == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", ["abc", "", "-1", "1e", "NaN", 1.5])
    async def test_malformed_amount_fails_before_any_read(self, ledger: FakeLedger, connected: SwapSession, amount):
        before = len(ledger.events)

        run = await connected.swap(amount)

        assert run.failure.kind == FailureKind.INVALID_AMOUNT
        assert len(ledger.events) == before

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", [0, -5, "0", "0.0000000000000000001"])
    async def test_zero_amount_is_invalid(self, ledger: FakeLedger, connected: SwapSession, amount):
        run = await connected.swap(amount)

        assert run.failure.kind == FailureKind.INVALID_AMOUNT
        assert ledger.sends() == []
        assert ledger.reads("allowance") == []

    @pytest.mark.asyncio
    @pytest.mark.parametrize("amount", [
        "1e1000000",
        "1e60",
        str(MAX_UINT256),
        MAX_UINT256 + 1,
    ])
    async def test_out_of_range_amount_ends_failed(self, ledger: FakeLedger, connected: SwapSession, amount):
        run = await connected.swap(amount)

        assert run.state == SwapState.FAILED
        assert run.failure.kind == FailureKind.INVALID_AMOUNT
        assert run.status_message
        assert not connected.orchestrator.is_busy(connected.identity)
        assert ledger.sends() == []
        assert ledger.reads("allowance") == []

    @pytest.mark.asyncio
    async def test_just_above_uint256_with_zero_decimals(self, ledger: FakeLedger, connected: SwapSession):
        ledger.decimals_value = 0

        run = await connected.swap(str(MAX_UINT256 + 1))

        assert run.failure.kind == FailureKind.INVALID_AMOUNT
        assert ledger.sends() == []

    @pytest.mark.asyncio
    async def test_wide_human_amount_truncates(self, ledger: FakeLedger, connected: SwapSession):
        ledger.balances[connected.identity.key] = 10**30

        run = await connected.swap("12345678901.1234567890123456789")

        assert run.amount_in == 12345678901123456789012345678
        assert ledger.sends("approve")[0][2] == [POOL, 12345678901123456789012345678]

    @pytest.mark.asyncio
    async def test_negative_min_amount_out(self, ledger: FakeLedger, connected: SwapSession):
        run = await connected.swap(500, min_amount_out=-1)

        assert run.failure.kind == FailureKind.INVALID_AMOUNT
        assert ledger.sends() == []

    @pytest.mark.asyncio
    async def test_human_amount_uses_token_decimals(self, ledger: FakeLedger, connected: SwapSession):
        ledger.decimals_value = 6

        run = await connected.swap("1.5")

        assert run.state == SwapState.DONE
        assert run.decimals == 6
        assert run.amount_in == 1_500_000
        assert ledger.sends("approve")[0][2] == [POOL, 1_500_000]

    @pytest.mark.asyncio
    async def test_human_amount_falls_back_to_default_decimals(self, ledger: FakeLedger, connected: SwapSession):
        ledger.fail_reads.add("decimals")

        run = await connected.swap("0.000000000000000002")

        assert run.decimals == 18
        assert run.amount_in == 2
        assert run.state == SwapState.DONE

    @pytest.mark.asyncio
    async def test_unconfigured_pool(self, ledger: FakeLedger, test_settings: Settings):
        session = _session_with(ledger, test_settings, pool_address="0x" + "0" * 40)
        await session.connect()

        run = await session.swap(500)

        assert run.failure.kind == FailureKind.NOT_CONFIGURED
        assert ledger.sends() == []
        assert ledger.reads("getReserves") == []

    @pytest.mark.asyncio
    async def test_unconfigured_token_with_human_amount(self, ledger: FakeLedger, test_settings: Settings):
        session = _session_with(ledger, test_settings, token_address="0x" + "0" * 40)
        await session.connect()

        run = await session.swap("1")

        assert run.failure.kind == FailureKind.NOT_CONFIGURED
        assert ledger.reads("decimals") == []


# =============================================================================
# Failures
# =============================================================================

class TestFailures:

    @pytest.mark.asyncio
    async def test_allowance_read_error(self, ledger: FakeLedger, connected: SwapSession):
        ledger.fail_reads.add("allowance")

        run = await connected.swap(500)

        assert run.failure.kind == FailureKind.READ_ERROR
        assert ledger.sends() == []

    @pytest.mark.asyncio
    async def test_approval_rejected(self, ledger: FakeLedger, connected: SwapSession):
        ledger.reject.add("approve")

        run = await connected.swap(500)

        assert run.failure.kind == FailureKind.APPROVAL_REJECTED
        assert _states(run)[-2:] == [SwapState.APPROVING, SwapState.FAILED]
        assert ledger.sends(SWAP) == []

    @pytest.mark.asyncio
    async def test_approval_reverted(self, ledger: FakeLedger, connected: SwapSession):
        ledger.revert_on_mine.add("approve")

        run = await connected.swap(500)

        assert run.failure.kind == FailureKind.APPROVAL_FAILED
        assert run.approval.status == TransactionStatus.FAILED
        assert ledger.sends(SWAP) == []

    @pytest.mark.asyncio
    async def test_swap_rejected(self, ledger: FakeLedger, connected: SwapSession):
        ledger.allowances[(connected.identity.key, POOL)] = 1000
        ledger.reject.add(SWAP)

        run = await connected.swap(500)

        assert run.failure.kind == FailureKind.SWAP_REJECTED
        assert run.swap is None
        assert "rejected" in run.status_message

    @pytest.mark.asyncio
    async def test_swap_reverted_on_ledger(self, ledger: FakeLedger, connected: SwapSession):
        ledger.allowances[(connected.identity.key, POOL)] = 1000

        run = await connected.swap(500, min_amount_out=10**30)

        assert run.failure.kind == FailureKind.SWAP_REVERTED
        assert run.swap.status == TransactionStatus.FAILED
        assert run.swap.tx_hash is not None
        assert ledger.allowance_of() == 1000

    @pytest.mark.asyncio
    async def test_swap_confirmation_timeout(self, ledger: FakeLedger, test_settings: Settings):
        session = _session_with(ledger, test_settings, confirmation_timeout_seconds=0.05)
        await session.connect()
        ledger.allowances[(session.identity.key, POOL)] = 1000
        ledger.hold_receipts = True
        reserves_before = session.snapshot.reserves

        run = await session.swap(500)

        assert run.failure.kind == FailureKind.CONFIRMATION_TIMEOUT
        assert run.swap.status == TransactionStatus.SUBMITTED
        assert "may still land" in run.status_message
        assert run.snapshot is not None
        assert not session.orchestrator.is_busy()

        # The submitted swap lands later; a manual refresh shows it
        ledger.hold_receipts = False
        await session.monitor.wait(run.swap)
        snapshot = await session.refresh()

        assert snapshot.reserves.reserve_a == reserves_before.reserve_a + 500

    @pytest.mark.asyncio
    async def test_approval_confirmation_timeout(self, ledger: FakeLedger, test_settings: Settings):
        session = _session_with(ledger, test_settings, confirmation_timeout_seconds=0.05)
        await session.connect()
        ledger.hold_receipts = True

        run = await session.swap(500)

        assert run.failure.kind == FailureKind.CONFIRMATION_TIMEOUT
        assert ledger.sends(SWAP) == []


# =============================================================================
# Concurrency
# =============================================================================

class TestConcurrency:

    @pytest.mark.asyncio
    async def test_second_request_while_in_flight_is_rejected(self, ledger: FakeLedger, connected: SwapSession):
        ledger.hold_receipts = True
        first = asyncio.create_task(connected.swap(500))
        while not connected.orchestrator.is_busy():
            await asyncio.sleep(0)
        sends_before = len(ledger.sends())

        with pytest.raises(OrchestrationBusy):
            await connected.swap(100)

        assert len(ledger.sends()) == sends_before
        assert connected.orchestrator.state_for() in {SwapState.APPROVING, SwapState.SWAPPING, SwapState.CONFIRMING}

        ledger.hold_receipts = False
        run = await first

        assert run.state == SwapState.DONE
        assert len(ledger.sends("approve")) == 1
        assert len(ledger.sends(SWAP)) == 1
        assert connected.orchestrator.state_for() == SwapState.IDLE

    @pytest.mark.asyncio
    async def test_other_identity_is_not_blocked(self, ledger: FakeLedger, connected: SwapSession):
        ledger.hold_receipts = True
        first = asyncio.create_task(connected.swap(500))
        while not connected.orchestrator.is_busy():
            await asyncio.sleep(0)

        assert not connected.orchestrator.is_busy(Identity(OTHER_USER))

        ledger.hold_receipts = False
        await first

    @pytest.mark.asyncio
    async def test_busy_released_after_failure(self, ledger: FakeLedger, connected: SwapSession):
        ledger.fail_reads.add("allowance")
        await connected.swap(500)

        assert not connected.orchestrator.is_busy()
        ledger.fail_reads.clear()
        assert (await connected.swap(500)).state == SwapState.DONE


# =============================================================================
# Transitions
# =============================================================================

class TestTransitions:

    def test_failed_reachable_from_every_non_terminal_state(self):
        for state, targets in SwapOrchestrator.TRANSITIONS.items():
            if state.is_terminal:
                assert targets == set()
            else:
                assert SwapState.FAILED in targets

    @pytest.mark.asyncio
    async def test_invalid_transition_raises(self, connected: SwapSession):
        run = SwapRun(request=SwapRequest(amount_in=1), identity=connected.identity)

        with pytest.raises(InvalidTransitionError):
            await connected.orchestrator._transition(run, SwapState.DONE)

    @pytest.mark.asyncio
    async def test_callbacks_see_every_transition(self, ledger: FakeLedger, connected: SwapSession):
        seen: List[StateTransition] = []

        async def record(transition: StateTransition, run: SwapRun) -> None:
            seen.append(transition)

        async def broken(transition: StateTransition, run: SwapRun) -> None:
            raise RuntimeError("boom")

        connected.orchestrator.register_transition_callback(broken)
        connected.orchestrator.register_transition_callback(record)

        run = await connected.swap(500)

        assert run.state == SwapState.DONE
        assert [t.to_state for t in seen] == _states(run)

    @pytest.mark.asyncio
    async def test_run_to_dict(self, connected: SwapSession):
        run = await connected.swap(500)

        data = run.to_dict()

        assert data["state"] == "done"
        assert data["amount_in"] == "500"
        assert data["approval"]["status"] == "confirmed"
        assert data["swap"]["status"] == "confirmed"
        assert data["failure"] is None
        assert data["history"][-1] == {"from": "confirming", "to": "done", "reason": None}
