"""Dashboard endpoints: roster view, Call All, CSV export."""

from typing import Any

from fastapi import APIRouter, Request
from fastapi.responses import Response

from asha_dashboard.api.rate_limits import RateLimits, limiter
from asha_dashboard.dependencies import RosterDep
from asha_dashboard.services.export import CSV_MEDIA_TYPE


router = APIRouter()


@router.get("/dashboard")
@limiter.limit(RateLimits.READ)
async def get_dashboard(request: Request, roster: RosterDep) -> dict[str, Any]:
    """Roster, flagged subset and recent call logs for the logged-in ASHA."""
    view = roster.dashboard_view()
    view["roster_count"] = len(roster.state.mothers)
    return view


@router.post("/call-all")
@limiter.limit(RateLimits.BULK_CALL)
async def call_all(request: Request, roster: RosterDep) -> dict[str, Any]:
    """Call every mother on the roster, then flag those needing follow-up.

    Responds once every call has resolved. An empty roster dials nobody.
    """
    report = await roster.call_all()
    if report is None:
        return {"dialed": 0, "outcomes": {}, "failures": {}, "to_flag": []}
    return report.to_dict()


@router.get("/export.csv")
@limiter.limit(RateLimits.READ)
async def export_csv(request: Request, roster: RosterDep) -> Response:
    """Download the roster as CSV."""
    filename, content = roster.export_csv()
    return Response(
        content=content,
        media_type=CSV_MEDIA_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
