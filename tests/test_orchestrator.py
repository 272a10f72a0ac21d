"""Tests for the bulk call orchestrator."""

import asyncio

import pytest

from asha_dashboard.calls.orchestrator import (
    BulkCallOrchestrator,
    CallTarget,
    dedupe_targets,
)
from asha_dashboard.clients.base import IVRDispatcher, MockIVRDispatcher
from asha_dashboard.core.exceptions import (
    CallTimedOut,
    DispatchFailure,
    UnknownOutcome,
    ValidationError,
)
from asha_dashboard.models import CallOutcome


class GatedIVRDispatcher(IVRDispatcher):
    """Every call rings until the test opens the gate."""

    def __init__(self, outcome=CallOutcome.ANSWERED):
        self.outcome = outcome
        self.gate = asyncio.Event()
        self.started: list[str] = []
        self.finished: list[str] = []

    async def place_call(self, phone, patient_id=None):
        self.started.append(phone)
        await self.gate.wait()
        self.finished.append(phone)
        return self.outcome


async def wait_until(predicate, timeout=1.0):
    """Yield to the loop until predicate() holds."""
    async def _poll():
        while not predicate():
            await asyncio.sleep(0.001)

    await asyncio.wait_for(_poll(), timeout)


@pytest.fixture
def targets():
    return [
        CallTarget("A", "+911111111111"),
        CallTarget("B", "+912222222222"),
        CallTarget("C", "+913333333333"),
    ]


class TestDedupeTargets:
    """Test duplicate target handling."""

    def test_first_occurrence_wins(self):
        targets = [
            CallTarget("A", "+911"),
            CallTarget("B", "+912"),
            CallTarget("A", "+919"),
        ]

        unique, duplicates = dedupe_targets(targets)

        assert unique == [CallTarget("A", "+911"), CallTarget("B", "+912")]
        assert duplicates == ["A"]

    def test_no_duplicates(self, targets):
        unique, duplicates = dedupe_targets(targets)

        assert unique == targets
        assert duplicates == []


class TestBulkCallOrchestrator:
    """Test fan-out, fan-in and per-target isolation."""

    @pytest.mark.asyncio
    async def test_all_answered(self, targets):
        ivr = MockIVRDispatcher(default_outcome=CallOutcome.ANSWERED)

        result = await BulkCallOrchestrator(ivr).run(targets)

        assert result.outcomes == {
            "A": CallOutcome.ANSWERED,
            "B": CallOutcome.ANSWERED,
            "C": CallOutcome.ANSWERED,
        }
        assert result.failures == {}
        assert result.dialed == 3
        assert result.completed_at is not None

    @pytest.mark.asyncio
    async def test_mixed_outcomes(self, targets):
        ivr = MockIVRDispatcher(outcomes={
            "+911111111111": CallOutcome.ANSWERED,
            "+912222222222": CallOutcome.NOT_ANSWERED,
            "+913333333333": "pressed_2",
        })

        result = await BulkCallOrchestrator(ivr).run(targets)

        assert result.outcomes == {
            "A": CallOutcome.ANSWERED,
            "B": CallOutcome.NOT_ANSWERED,
            "C": CallOutcome.PRESSED_2,
        }

    @pytest.mark.asyncio
    async def test_every_call_starts_before_any_finishes(self, targets):
        ivr = GatedIVRDispatcher()
        orchestrator = BulkCallOrchestrator(ivr)

        run = asyncio.create_task(orchestrator.run(targets))
        await wait_until(lambda: len(ivr.started) == 3)

        assert ivr.finished == []
        assert not run.done()

        ivr.gate.set()
        result = await run

        assert len(result.outcomes) == 3

    @pytest.mark.asyncio
    async def test_dispatch_failure_isolated(self):
        targets = [CallTarget("A", "+911"), CallTarget("B", "+912")]
        ivr = MockIVRDispatcher(outcomes={
            "+911": CallOutcome.NOT_ANSWERED,
            "+912": DispatchFailure("Line busy"),
        })

        result = await BulkCallOrchestrator(ivr).run(targets)

        assert result.outcomes == {"A": CallOutcome.NOT_ANSWERED}
        assert isinstance(result.failures["B"], DispatchFailure)
        assert result.dialed == 2

    @pytest.mark.asyncio
    async def test_unexpected_error_becomes_dispatch_failure(self):
        targets = [CallTarget("A", "+911"), CallTarget("B", "+912")]
        ivr = MockIVRDispatcher(outcomes={"+912": RuntimeError("socket closed")})

        result = await BulkCallOrchestrator(ivr).run(targets)

        assert result.outcomes == {"A": CallOutcome.ANSWERED}
        failure = result.failures["B"]
        assert isinstance(failure, DispatchFailure)
        assert isinstance(failure.cause, RuntimeError)

    @pytest.mark.asyncio
    async def test_unknown_outcome_excluded(self):
        targets = [CallTarget("A", "+911"), CallTarget("B", "+912")]
        ivr = MockIVRDispatcher(outcomes={"+912": "voicemail"})

        result = await BulkCallOrchestrator(ivr).run(targets)

        assert "B" not in result.outcomes
        assert isinstance(result.failures["B"], UnknownOutcome)

    @pytest.mark.asyncio
    async def test_timeout_excluded(self):
        targets = [CallTarget("A", "+911"), CallTarget("B", "+912")]
        ivr = MockIVRDispatcher(hang={"+912"})

        result = await BulkCallOrchestrator(ivr, call_timeout=0.05).run(targets)

        assert result.outcomes == {"A": CallOutcome.ANSWERED}
        assert isinstance(result.failures["B"], CallTimedOut)
        assert result.failures["B"].status_code == 504

    @pytest.mark.asyncio
    async def test_duplicate_targets_dialed_once(self):
        targets = [
            CallTarget("A", "+911"),
            CallTarget("A", "+911"),
            CallTarget("B", "+912"),
        ]
        ivr = MockIVRDispatcher()

        result = await BulkCallOrchestrator(ivr).run(targets)

        assert ivr.get_dialed().count("+911") == 1
        assert result.duplicates == ["A"]
        assert result.dialed == 2

    @pytest.mark.asyncio
    async def test_empty_targets_rejected(self):
        with pytest.raises(ValidationError):
            await BulkCallOrchestrator(MockIVRDispatcher()).run([])

    @pytest.mark.asyncio
    async def test_concurrency_cap(self):
        targets = [CallTarget(f"P{i}", f"+91000{i}") for i in range(6)]
        ivr = MockIVRDispatcher(delay_seconds=0.02)

        result = await BulkCallOrchestrator(ivr, max_concurrent_calls=2).run(targets)

        assert len(result.outcomes) == 6
        assert ivr.max_in_flight <= 2

    @pytest.mark.asyncio
    async def test_unbounded_by_default(self):
        targets = [CallTarget(f"P{i}", f"+91000{i}") for i in range(6)]
        ivr = GatedIVRDispatcher()

        run = asyncio.create_task(BulkCallOrchestrator(ivr).run(targets))
        await wait_until(lambda: len(ivr.started) == 6)
        ivr.gate.set()
        await run

        assert len(ivr.finished) == 6

    @pytest.mark.asyncio
    async def test_progress_callback(self, targets):
        seen = []
        ivr = MockIVRDispatcher(outcomes={"+912222222222": DispatchFailure("down")})

        await BulkCallOrchestrator(
            ivr, on_outcome=lambda pid, outcome: seen.append((pid, outcome))
        ).run(targets)

        assert sorted(pid for pid, _ in seen) == ["A", "B", "C"]
        outcomes = dict(seen)
        assert outcomes["A"] == CallOutcome.ANSWERED
        assert isinstance(outcomes["B"], DispatchFailure)

    @pytest.mark.asyncio
    async def test_async_progress_callback(self, targets):
        seen = []

        async def on_outcome(pid, outcome):
            seen.append(pid)

        await BulkCallOrchestrator(MockIVRDispatcher(), on_outcome=on_outcome).run(targets)

        assert sorted(seen) == ["A", "B", "C"]

    @pytest.mark.asyncio
    async def test_failing_callback_does_not_lose_outcomes(self, targets):
        def on_outcome(pid, outcome):
            raise RuntimeError("display gone")

        result = await BulkCallOrchestrator(
            MockIVRDispatcher(), on_outcome=on_outcome
        ).run(targets)

        assert len(result.outcomes) == 3

    @pytest.mark.asyncio
    async def test_cancelled_run_leaves_calls_running(self, targets):
        ivr = GatedIVRDispatcher()
        seen = []
        orchestrator = BulkCallOrchestrator(
            ivr, on_outcome=lambda pid, outcome: seen.append(pid)
        )

        run = asyncio.create_task(orchestrator.run(targets))
        await wait_until(lambda: len(ivr.started) == 3)

        run.cancel()
        with pytest.raises(asyncio.CancelledError):
            await run

        ivr.gate.set()
        await wait_until(lambda: len(ivr.finished) == 3)

        # Calls completed, but the detached run reports nothing
        assert seen == []

    @pytest.mark.asyncio
    async def test_result_to_dict(self):
        targets = [CallTarget("A", "+911"), CallTarget("B", "+912")]
        ivr = MockIVRDispatcher(outcomes={
            "+911": CallOutcome.PRESSED_2,
            "+912": DispatchFailure("Line busy"),
        })

        data = (await BulkCallOrchestrator(ivr).run(targets)).to_dict()

        assert data["outcomes"] == {"A": "pressed_2"}
        assert data["failures"]["B"]["error"] == "DISPATCH_FAILURE"
        assert data["failures"]["B"]["message"] == "Line busy"
        assert data["dialed"] == 2
