"""Flag reconciliation: turning call outcomes into flag updates."""
from __future__ import annotations

import asyncio
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from asha_dashboard.clients.base import PatientStore
from asha_dashboard.core.log import get_logger
from asha_dashboard.models import CallOutcome, Patient, PatientUpdate

log = get_logger(__name__)

# Outcomes that mean the mother needs a follow-up visit
FOLLOW_UP_OUTCOMES = frozenset({CallOutcome.NOT_ANSWERED, CallOutcome.PRESSED_2})


def needs_follow_up(outcome: CallOutcome) -> bool:
    """Whether a single call outcome should flag the patient."""
    return outcome in FOLLOW_UP_OUTCOMES


def reconcile(outcomes: Mapping[str, CallOutcome]) -> set[str]:
    """Patient ids whose flag must be set.

    Only ids present in ``outcomes`` can be selected. A patient missing from
    the map (dispatch failed, timed out, never resolved) has no
    determination and keeps its current flag.
    """
    return {patient_id for patient_id, outcome in outcomes.items() if needs_follow_up(outcome)}


@dataclass
class FlagUpdateReport:
    """Result of applying flag updates."""

    updated: dict[str, Patient] = field(default_factory=dict)
    failed: dict[str, Exception] = field(default_factory=dict)

    @property
    def all_succeeded(self) -> bool:
        return not self.failed

    def to_dict(self) -> dict[str, Any]:
        return {
            "flagged": sorted(self.updated),
            "failed": {pid: str(error) for pid, error in sorted(self.failed.items())},
        }


async def apply_flags(store: PatientStore, patient_ids: Iterable[str]) -> FlagUpdateReport:
    """Set ``flagged=True`` on every patient, one independent update each.

    Updates run concurrently and are best-effort: a failure for one patient
    is logged and recorded but neither stops nor rolls back the others.
    """
    ids = sorted(set(patient_ids))
    report = FlagUpdateReport()
    if not ids:
        return report

    results = await asyncio.gather(
        *(store.update(pid, PatientUpdate(flagged=True)) for pid in ids),
        return_exceptions=True,
    )

    for patient_id, result in zip(ids, results):
        if isinstance(result, Exception):
            log.error(
                "Flag update failed",
                patient_id=patient_id,
                error=str(result),
                error_type=type(result).__name__,
            )
            report.failed[patient_id] = result
        elif isinstance(result, BaseException):
            raise result
        else:
            report.updated[patient_id] = result

    log.info(
        "Flag updates applied",
        flagged=len(report.updated),
        failed=len(report.failed),
    )
    return report
