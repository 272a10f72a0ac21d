"""Tests for the flag reconciliation rule and flag updates."""

import pytest

from asha_dashboard.calls.reconciliation import apply_flags, needs_follow_up, reconcile
from asha_dashboard.core.exceptions import UpdateFailure
from asha_dashboard.models import CallOutcome


class TestReconcile:
    """Test the outcome -> flag rule."""

    def test_follow_up_outcomes(self):
        assert needs_follow_up(CallOutcome.NOT_ANSWERED)
        assert needs_follow_up(CallOutcome.PRESSED_2)
        assert not needs_follow_up(CallOutcome.ANSWERED)

    def test_mixed_outcomes(self):
        outcomes = {
            "A": CallOutcome.ANSWERED,
            "B": CallOutcome.NOT_ANSWERED,
            "C": CallOutcome.PRESSED_2,
        }
        assert reconcile(outcomes) == {"B", "C"}

    def test_every_outcome_combination(self):
        """A patient is flagged exactly when her outcome needs follow-up."""
        for a in CallOutcome:
            for b in CallOutcome:
                result = reconcile({"A": a, "B": b})
                assert ("A" in result) == (a != CallOutcome.ANSWERED)
                assert ("B" in result) == (b != CallOutcome.ANSWERED)

    def test_absent_ids_never_flagged(self):
        result = reconcile({"A": CallOutcome.NOT_ANSWERED})
        assert result == {"A"}
        assert "B" not in result

    def test_empty_map(self):
        assert reconcile({}) == set()

    def test_all_answered(self):
        assert reconcile({"A": CallOutcome.ANSWERED, "B": CallOutcome.ANSWERED}) == set()


class TestApplyFlags:
    """Test best-effort flag updates."""

    @pytest.mark.asyncio
    async def test_flags_each_patient(self, patient_store):
        report = await apply_flags(patient_store, {"A", "B"})

        assert report.all_succeeded
        assert sorted(report.updated) == ["A", "B"]
        assert (await patient_store.get_by_id("A")).flagged
        assert (await patient_store.get_by_id("B")).flagged
        # One independent update per patient, flag only
        assert sorted(patient_store.get_updates()) == [
            ("A", {"flagged": True}),
            ("B", {"flagged": True}),
        ]

    @pytest.mark.asyncio
    async def test_failure_does_not_stop_others(self, failing_store):
        store = failing_store({"B"})

        report = await apply_flags(store, {"A", "B"})

        assert not report.all_succeeded
        assert list(report.updated) == ["A"]
        assert isinstance(report.failed["B"], UpdateFailure)
        assert (await store.get_by_id("A")).flagged
        assert not (await store.get_by_id("B")).flagged

    @pytest.mark.asyncio
    async def test_unknown_patient_recorded_as_failure(self, patient_store):
        report = await apply_flags(patient_store, {"A", "missing"})

        assert list(report.updated) == ["A"]
        assert "missing" in report.failed

    @pytest.mark.asyncio
    async def test_nothing_to_flag(self, patient_store):
        report = await apply_flags(patient_store, set())

        assert report.all_succeeded
        assert report.updated == {}
        assert patient_store.get_updates() == []

    @pytest.mark.asyncio
    async def test_report_to_dict(self, failing_store):
        store = failing_store({"C"})

        report = await apply_flags(store, {"A", "C"})

        data = report.to_dict()
        assert data["flagged"] == ["A"]
        assert list(data["failed"]) == ["C"]
        assert "Rejected C" in data["failed"]["C"]
