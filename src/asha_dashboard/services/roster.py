"""Roster service: the dashboard and mother-profile page logic.

Every action talks to the backend stores, and every mutating action reloads
the full roster afterwards so the displayed state matches the store.
Failures never escape to the caller: they are logged and the previously
displayed state is kept (lookups return None for "not found").

Known limitation: toggle_flag is a read-modify-write. Two sessions toggling
the same patient at once can lose one toggle; the store offers no
conditional update to guard against it.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any

from asha_dashboard.calls.orchestrator import OutcomeCallback
from asha_dashboard.calls.workflow import CallReport, CallWorkflow
from asha_dashboard.clients.factory import Backend
from asha_dashboard.config import Settings, get_settings
from asha_dashboard.core.exceptions import DashboardError, NotFoundError
from asha_dashboard.core.log import get_logger
from asha_dashboard.models import CallLogEntry, Patient, PatientUpdate
from asha_dashboard.services.export import export_filename, roster_to_csv
from asha_dashboard.services.session import AshaSession

log = get_logger(__name__)


@dataclass
class DashboardState:
    """What the dashboard currently displays."""

    mothers: list[Patient] = field(default_factory=list)
    call_logs: list[CallLogEntry] = field(default_factory=list)
    loaded: bool = False

    @property
    def flagged(self) -> list[Patient]:
        """Flagged subset, in roster order."""
        return [m for m in self.mothers if m.flagged]

    def mother_name(self, patient_id: str) -> str | None:
        for mother in self.mothers:
            if mother.id == patient_id:
                return mother.name
        return None


class RosterService:
    """Page logic for one logged-in ASHA."""

    def __init__(
        self,
        backend: Backend,
        session: AshaSession,
        settings: Settings | None = None,
    ) -> None:
        self._backend = backend
        self._session = session
        self._settings = settings or get_settings()
        self._workflow = CallWorkflow(
            backend.ivr,
            backend.patients,
            call_timeout=self._settings.call_timeout,
            max_concurrent_calls=self._settings.ivr.max_concurrent_calls,
        )
        self.state = DashboardState()

    @property
    def session(self) -> AshaSession:
        return self._session

    # ========== Loading ==========

    async def load(self) -> DashboardState:
        """Fetch roster and recent call logs together."""
        try:
            mothers, logs = await asyncio.gather(
                self._backend.patients.get_all(),
                self._backend.call_logs.get_recent(),
            )
        except DashboardError as e:
            log.error("Error loading data", asha_id=self._session.asha_id, error=str(e))
            self.state.loaded = True
            return self.state

        self.state = DashboardState(
            mothers=mothers,
            call_logs=logs[: self._settings.dashboard.recent_call_logs],
            loaded=True,
        )
        return self.state

    async def get_mother(self, patient_id: str) -> Patient | None:
        """Profile lookup; None when the patient cannot be loaded."""
        try:
            return await self._backend.patients.get_by_id(patient_id)
        except NotFoundError:
            log.warning("Mother not found", patient_id=patient_id)
        except DashboardError as e:
            log.error("Error loading mother", patient_id=patient_id, error=str(e))
        return None

    # ========== Roster mutations ==========

    async def mark_visited(self, patient_id: str) -> Patient | None:
        """Set visited and clear any flag in a single update."""
        return await self._update(
            patient_id,
            PatientUpdate(visited=True, flagged=False),
            action="marking as visited",
        )

    async def toggle_flag(self, patient_id: str) -> Patient | None:
        """Flip the flag as read from the store right now."""
        current = await self.get_mother(patient_id)
        if current is None:
            return None
        return await self._update(
            patient_id,
            PatientUpdate(flagged=not current.flagged),
            action="toggling flag",
        )

    async def _update(self, patient_id: str, changes: PatientUpdate, action: str) -> Patient | None:
        try:
            updated = await self._backend.patients.update(patient_id, changes)
        except DashboardError as e:
            log.error(f"Error {action}", patient_id=patient_id, error=str(e))
            return None

        log.info("Patient updated", patient_id=patient_id, changes=changes.to_payload())
        await self.load()
        return updated

    # ========== Calling ==========

    async def call_all(self, on_outcome: OutcomeCallback | None = None) -> CallReport | None:
        """Call every mother on the roster and flag those needing follow-up."""
        if not self.state.loaded:
            await self.load()
        if not self.state.mothers:
            log.info("Call All skipped, roster is empty")
            return None

        try:
            report = await self._workflow.call_all(self.state.mothers, on_outcome=on_outcome)
        except DashboardError as e:
            log.error("Error processing call results", error=str(e))
            return None

        await self.load()
        return report

    async def call_one(self, patient_id: str) -> CallReport | None:
        """Single-call workflow for one mother."""
        mother = await self.get_mother(patient_id)
        if mother is None:
            return None

        try:
            report = await self._workflow.call_one(mother)
        except DashboardError as e:
            log.error("Error handling call complete", patient_id=patient_id, error=str(e))
            return None

        if report.to_flag:
            await self.load()
        return report

    # ========== Export ==========

    def export_csv(self) -> tuple[str, str]:
        """(filename, CSV text) for the currently displayed roster."""
        return export_filename(), roster_to_csv(self.state.mothers)

    # ========== Views ==========

    def dashboard_view(self) -> dict[str, Any]:
        """Serializable snapshot of the dashboard page."""
        state = self.state
        return {
            "asha": self._session.asha.model_dump(),
            "header": self._session.header(len(state.mothers)),
            "mothers": [m.model_dump(mode="json") for m in state.mothers],
            "flagged": [m.model_dump(mode="json") for m in state.flagged],
            "call_logs": [
                {
                    **entry.model_dump(mode="json"),
                    "mother_name": state.mother_name(entry.mother_id),
                }
                for entry in state.call_logs
            ],
        }
