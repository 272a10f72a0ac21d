"""Display formatting for roster and profile views."""
from __future__ import annotations

from datetime import date, datetime

NO_NOTES = "No notes available"

# Fixed English month names, strftime %B follows the process locale
_MONTHS = (
    "January", "February", "March", "April", "May", "June",
    "July", "August", "September", "October", "November", "December",
)


def format_anc_date(value: date | datetime | str) -> str:
    """Render a date the way the dashboard shows it: ``05 March 2024``."""
    if isinstance(value, str):
        value = date.fromisoformat(value[:10])
    return f"{value.day:02d} {_MONTHS[value.month - 1]} {value.year}"


def notes_text(notes: str | None) -> str:
    return notes or NO_NOTES


def visit_status(visited: bool) -> str:
    return "Recently Visited" if visited else "Not Yet Visited"


def flag_action(flagged: bool) -> str:
    """Label of the flag toggle button."""
    return "Unflag" if flagged else "Flag Issue"


def yes_no(value: bool) -> str:
    return "Yes" if value else "No"
