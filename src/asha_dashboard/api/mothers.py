"""Mother profile endpoints: view, mark visited, toggle flag, single call."""

from datetime import date
from typing import Any

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel

from asha_dashboard.api.rate_limits import RateLimits, limiter
from asha_dashboard.dependencies import ProfileDep
from asha_dashboard.models import Patient
from asha_dashboard.services.formatting import (
    flag_action,
    format_anc_date,
    notes_text,
    visit_status,
)
from asha_dashboard.services.roster import RosterService


router = APIRouter(prefix="/mothers")


class MotherProfileResponse(BaseModel):
    """Patient record plus the display strings of the profile page."""

    id: str
    name: str
    age: int
    phone: str
    address: str
    last_anc_date: date
    gestation_weeks: int
    flagged: bool
    visited: bool
    notes: str | None
    last_anc_date_display: str
    notes_display: str
    visit_status: str
    flag_action: str

    @classmethod
    def from_patient(cls, patient: Patient) -> "MotherProfileResponse":
        return cls(
            **patient.model_dump(),
            last_anc_date_display=format_anc_date(patient.last_anc_date),
            notes_display=notes_text(patient.notes),
            visit_status=visit_status(patient.visited),
            flag_action=flag_action(patient.flagged),
        )


async def _current_or_404(roster: RosterService, mother_id: str) -> MotherProfileResponse:
    """The mother as the store has her now; 404 when she cannot be loaded."""
    mother = await roster.get_mother(mother_id)
    if mother is None:
        raise HTTPException(status_code=404, detail="Mother not found")
    return MotherProfileResponse.from_patient(mother)


@router.get("/{mother_id}", response_model=MotherProfileResponse)
@limiter.limit(RateLimits.READ)
async def get_mother(request: Request, mother_id: str, roster: ProfileDep) -> MotherProfileResponse:
    """Profile page data."""
    return await _current_or_404(roster, mother_id)


@router.post("/{mother_id}/visited", response_model=MotherProfileResponse)
@limiter.limit(RateLimits.WRITE)
async def mark_visited(request: Request, mother_id: str, roster: ProfileDep) -> MotherProfileResponse:
    """Mark visited (also clears the flag).

    A failed update returns the unchanged record.
    """
    updated = await roster.mark_visited(mother_id)
    if updated is None:
        return await _current_or_404(roster, mother_id)
    return MotherProfileResponse.from_patient(updated)


@router.post("/{mother_id}/flag/toggle", response_model=MotherProfileResponse)
@limiter.limit(RateLimits.WRITE)
async def toggle_flag(request: Request, mother_id: str, roster: ProfileDep) -> MotherProfileResponse:
    """Flip the follow-up flag."""
    updated = await roster.toggle_flag(mother_id)
    if updated is None:
        return await _current_or_404(roster, mother_id)
    return MotherProfileResponse.from_patient(updated)


@router.post("/{mother_id}/call")
@limiter.limit(RateLimits.OUTBOUND_CALL)
async def call_mother(request: Request, mother_id: str, roster: ProfileDep) -> dict[str, Any]:
    """Place one IVR call and flag her if the outcome needs follow-up."""
    report = await roster.call_one(mother_id)
    if report is None:
        raise HTTPException(status_code=404, detail="Mother not found")

    outcome = report.outcome_for(mother_id)
    return {
        "mother_id": mother_id,
        "outcome": outcome.value if outcome else None,
        "flagged": mother_id in report.flags.updated,
        **report.to_dict(),
    }
