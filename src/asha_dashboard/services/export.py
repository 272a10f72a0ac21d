"""Roster CSV export.

Every field is double-quoted and embedded quotes are doubled, so notes and
addresses containing commas, quotes or newlines survive any RFC 4180 reader.
"""
from __future__ import annotations

import csv
import io
from collections.abc import Iterable
from datetime import date, datetime
from pathlib import Path

from asha_dashboard.core.log import get_logger
from asha_dashboard.models import Patient
from asha_dashboard.services.formatting import yes_no

log = get_logger(__name__)

CSV_HEADERS = [
    "Name",
    "Age",
    "Phone",
    "Address",
    "Last ANC Date",
    "Gestation Weeks",
    "Flagged",
    "Visited",
    "Notes",
]

CSV_MEDIA_TYPE = "text/csv;charset=utf-8"


def patient_row(patient: Patient) -> list[str]:
    """One CSV row, in header order."""
    return [
        patient.name,
        str(patient.age),
        patient.phone,
        patient.address,
        patient.last_anc_date.isoformat(),
        str(patient.gestation_weeks),
        yes_no(patient.flagged),
        yes_no(patient.visited),
        patient.notes or "",
    ]


def roster_to_csv(patients: Iterable[Patient]) -> str:
    """Serialize the roster (in roster order) to CSV text."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    writer.writerows(patient_row(p) for p in patients)
    # No trailing newline after the last row
    return buffer.getvalue().rstrip("\n")


def export_filename(when: date | datetime | None = None) -> str:
    """``mothers-list-YYYY-MM-DD.csv`` for the export date."""
    when = when or datetime.now()
    if isinstance(when, datetime):
        when = when.date()
    return f"mothers-list-{when.isoformat()}.csv"


def write_roster_csv(
    patients: Iterable[Patient],
    directory: str | Path = ".",
    when: date | datetime | None = None,
) -> Path:
    """Write the roster CSV into ``directory`` and return its path."""
    patients = list(patients)
    path = Path(directory) / export_filename(when)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(roster_to_csv(patients), encoding="utf-8")

    log.info("Roster exported", path=str(path), rows=len(patients))
    return path
