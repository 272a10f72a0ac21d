"""Call workflows: dial, reconcile, flag.

Both the "Call All" and the single-call paths run the same three steps so
the follow-up rule lives in one place (reconciliation.reconcile):

1. Dial through the BulkCallOrchestrator
2. Reconcile outcomes into the set of patients to flag
3. Apply independent, best-effort flag updates
"""
from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from asha_dashboard.calls.orchestrator import (
    BulkCallOrchestrator,
    BulkCallResult,
    CallTarget,
    OutcomeCallback,
)
from asha_dashboard.calls.reconciliation import FlagUpdateReport, apply_flags, reconcile
from asha_dashboard.clients.base import IVRDispatcher, PatientStore
from asha_dashboard.core.log import get_logger
from asha_dashboard.models import CallOutcome, Patient

log = get_logger(__name__)


@dataclass
class CallReport:
    """Outcome of a call workflow run."""

    calls: BulkCallResult
    to_flag: set[str]
    flags: FlagUpdateReport

    def outcome_for(self, patient_id: str) -> CallOutcome | None:
        return self.calls.outcomes.get(patient_id)

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.calls.to_dict(),
            "to_flag": sorted(self.to_flag),
            "flag_updates": self.flags.to_dict(),
        }


class CallWorkflow:
    """Runs call sessions against one patient store."""

    def __init__(
        self,
        ivr: IVRDispatcher,
        patients: PatientStore,
        call_timeout: float | None = None,
        max_concurrent_calls: int | None = None,
    ) -> None:
        self._ivr = ivr
        self._patients = patients
        self._call_timeout = call_timeout
        self._max_concurrent_calls = max_concurrent_calls

    def orchestrator(self, on_outcome: OutcomeCallback | None = None) -> BulkCallOrchestrator:
        """New orchestrator for one session."""
        return BulkCallOrchestrator(
            self._ivr,
            call_timeout=self._call_timeout,
            max_concurrent_calls=self._max_concurrent_calls,
            on_outcome=on_outcome,
        )

    async def call_all(
        self,
        patients: Sequence[Patient],
        on_outcome: OutcomeCallback | None = None,
    ) -> CallReport:
        """Call every patient, then flag those needing follow-up."""
        targets = [CallTarget.from_patient(p) for p in patients]
        calls = await self.orchestrator(on_outcome).run(targets)
        return await self._reconcile(calls)

    async def call_one(self, patient: Patient) -> CallReport:
        """Call one patient; flags her only on a follow-up outcome."""
        calls = await self.orchestrator().run([CallTarget.from_patient(patient)])
        return await self._reconcile(calls)

    async def _reconcile(self, calls: BulkCallResult) -> CallReport:
        to_flag = reconcile(calls.outcomes)
        flags = await apply_flags(self._patients, to_flag)

        log.info(
            "Call session reconciled",
            dialed=calls.dialed,
            to_flag=sorted(to_flag),
            flag_failures=sorted(flags.failed),
        )
        return CallReport(calls=calls, to_flag=to_flag, flags=flags)
