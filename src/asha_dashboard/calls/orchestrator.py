"""Bulk Call Orchestrator.

Dials every target at once through the IVR dispatcher and collects exactly
one result per target:

- Fan-out: one task per target, all started before any is awaited
- Fan-in: the run completes when every task has an outcome or a failure
- Isolation: a dispatch failure, unknown outcome or timeout affects only
  its own target, which is left out of the reconciliation map
- No automatic retries (each dial is a real, billable phone call)
"""
from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Awaitable, Callable, Iterable, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from asha_dashboard.clients.base import IVRDispatcher
from asha_dashboard.core.exceptions import (
    CallError,
    CallTimedOut,
    DispatchFailure,
    ValidationError,
    wrap_exception,
)
from asha_dashboard.core.log import get_logger, mask_phone
from asha_dashboard.models import CallOutcome, Patient, ReconciliationMap

log = get_logger(__name__)

OutcomeCallback = Callable[[str, "CallOutcome | CallError"], Awaitable[None] | None]


@dataclass(frozen=True)
class CallTarget:
    """One patient to dial."""

    patient_id: str
    phone: str

    @classmethod
    def from_patient(cls, patient: Patient) -> CallTarget:
        return cls(patient_id=patient.id, phone=patient.phone)


@dataclass
class BulkCallResult:
    """Everything a bulk-call session produced."""

    outcomes: ReconciliationMap = field(default_factory=dict)
    failures: dict[str, CallError] = field(default_factory=dict)
    duplicates: list[str] = field(default_factory=list)
    started_at: datetime = field(default_factory=datetime.now)
    completed_at: datetime | None = None

    @property
    def dialed(self) -> int:
        """Number of distinct targets attempted."""
        return len(self.outcomes) + len(self.failures)

    def to_dict(self) -> dict[str, Any]:
        return {
            "outcomes": {pid: outcome.value for pid, outcome in sorted(self.outcomes.items())},
            "failures": {
                pid: {"error": error.error_code, "message": error.message}
                for pid, error in sorted(self.failures.items())
            },
            "duplicates": self.duplicates,
            "dialed": self.dialed,
            "started_at": self.started_at.isoformat(),
            "completed_at": self.completed_at.isoformat() if self.completed_at else None,
        }


def dedupe_targets(targets: Iterable[CallTarget]) -> tuple[list[CallTarget], list[str]]:
    """Drop repeated patient ids, keeping the first occurrence.

    Returns:
        (unique targets in input order, ids that appeared more than once)
    """
    seen: set[str] = set()
    unique: list[CallTarget] = []
    duplicates: list[str] = []
    for target in targets:
        if target.patient_id in seen:
            if target.patient_id not in duplicates:
                duplicates.append(target.patient_id)
            continue
        seen.add(target.patient_id)
        unique.append(target)
    return unique, duplicates


class BulkCallOrchestrator:
    """Concurrent IVR dispatch across a roster.

    Usage:
        orchestrator = BulkCallOrchestrator(ivr, call_timeout=120)
        result = await orchestrator.run([CallTarget("m-1", "+9198..."), ...])
        to_flag = reconcile(result.outcomes)
    """

    def __init__(
        self,
        ivr: IVRDispatcher,
        call_timeout: float | None = None,
        max_concurrent_calls: int | None = None,
        on_outcome: OutcomeCallback | None = None,
    ) -> None:
        """Initialize orchestrator.

        Args:
            ivr: Dispatcher that places calls
            call_timeout: Seconds to wait for one call's outcome (None = no limit)
            max_concurrent_calls: Cap on simultaneously ringing calls (None = no cap)
            on_outcome: Progress callback, invoked per target as results arrive
        """
        self._ivr = ivr
        self._call_timeout = call_timeout or None
        self._max_concurrent_calls = max_concurrent_calls or None
        self._on_outcome = on_outcome

        # Calls outliving a detached run, kept referenced until they finish
        self._background: set[asyncio.Task] = set()

    def detach(self) -> None:
        """Stop reporting progress. In-flight calls are not cancelled."""
        self._on_outcome = None

    async def run(self, targets: Sequence[CallTarget]) -> BulkCallResult:
        """Dial every target and wait for all of them.

        Raises:
            ValidationError: If there are no targets
        """
        if not targets:
            raise ValidationError("Bulk call needs at least one target")

        unique, duplicates = dedupe_targets(targets)
        if duplicates:
            log.warning("Duplicate call targets dropped", patient_ids=duplicates)

        result = BulkCallResult(duplicates=duplicates)
        semaphore = (
            asyncio.Semaphore(self._max_concurrent_calls)
            if self._max_concurrent_calls
            else None
        )

        log.info(
            "Bulk call started",
            targets=len(unique),
            call_timeout=self._call_timeout,
            max_concurrent_calls=self._max_concurrent_calls,
        )

        tasks = [
            asyncio.create_task(self._dial(target, semaphore), name=f"ivr-call-{target.patient_id}")
            for target in unique
        ]

        try:
            # Shielded so a cancelled caller (closed UI) leaves calls running
            settled = await asyncio.shield(asyncio.gather(*tasks))
        except asyncio.CancelledError:
            self.detach()
            for task in tasks:
                if not task.done():
                    self._background.add(task)
                    task.add_done_callback(self._background.discard)
            log.warning(
                "Bulk call detached before completion, calls continue",
                in_flight=len(self._background),
            )
            raise

        for patient_id, outcome in settled:
            if isinstance(outcome, CallOutcome):
                result.outcomes[patient_id] = outcome
            else:
                result.failures[patient_id] = outcome

        result.completed_at = datetime.now()
        log.info(
            "Bulk call completed",
            answered=sum(1 for o in result.outcomes.values() if o == CallOutcome.ANSWERED),
            outcomes=len(result.outcomes),
            failures=len(result.failures),
        )
        return result

    async def _dial(
        self,
        target: CallTarget,
        semaphore: asyncio.Semaphore | None,
    ) -> tuple[str, CallOutcome | CallError]:
        """Place one call; never raises except on cancellation."""
        outcome: CallOutcome | CallError
        try:
            async with semaphore if semaphore is not None else contextlib.nullcontext():
                raw = await asyncio.wait_for(
                    self._ivr.place_call(target.phone, patient_id=target.patient_id),
                    timeout=self._call_timeout,
                )
            outcome = CallOutcome.parse(raw)

        except asyncio.TimeoutError as e:
            outcome = CallTimedOut(
                f"No outcome within {self._call_timeout}s",
                details={"patient_id": target.patient_id},
                cause=e,
            )
        except CallError as e:
            outcome = e
        except Exception as e:
            outcome = wrap_exception(
                e, DispatchFailure, patient_id=target.patient_id
            )

        if isinstance(outcome, CallError):
            log.error(
                "Call failed",
                patient_id=target.patient_id,
                phone=mask_phone(target.phone),
                error=outcome.error_code,
                message=outcome.message,
            )
        else:
            log.info("Call outcome", patient_id=target.patient_id, outcome=outcome.value)

        await self._notify(target.patient_id, outcome)
        return target.patient_id, outcome

    async def _notify(self, patient_id: str, outcome: CallOutcome | CallError) -> None:
        if self._on_outcome is None:
            return
        try:
            maybe_awaitable = self._on_outcome(patient_id, outcome)
            if asyncio.iscoroutine(maybe_awaitable):
                await maybe_awaitable
        except Exception as e:
            # Progress display must never affect call collection
            log.warning("Progress callback failed", patient_id=patient_id, error=str(e))
