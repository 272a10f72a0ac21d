"""Dashboard services: session, roster page logic, export."""

from asha_dashboard.services.export import (
    CSV_HEADERS,
    export_filename,
    roster_to_csv,
    write_roster_csv,
)
from asha_dashboard.services.roster import DashboardState, RosterService
from asha_dashboard.services.session import AshaSession, login

__all__ = [
    "CSV_HEADERS",
    "export_filename",
    "roster_to_csv",
    "write_roster_csv",
    "DashboardState",
    "RosterService",
    "AshaSession",
    "login",
]
