"""Demo roster used by the mock backend."""

from __future__ import annotations

from datetime import date, datetime, timedelta

from asha_dashboard.models import AshaProfile, CallLogEntry, CallOutcome, Patient

DEMO_ASHA = AshaProfile(id="ASHA001", name="Lakshmi Devi", phc_name="PHC Kannamma")
DEMO_PASSWORD = "asha123"


def demo_patients(today: date | None = None) -> list[Patient]:
    """Build the demo roster relative to ``today``."""
    today = today or date.today()
    rows = [
        ("m-001", "Priya Sharma", 24, "+919876543210", "12 Temple Street, Kannamma", 14, 28, False, "First pregnancy"),
        ("m-002", "Anitha Kumari", 29, "+919876543211", "4 Lake Road, Kannamma", 45, 34, True, "Mild anaemia, iron tablets given"),
        ("m-003", "Meena Rajan", 21, "+919876543212", "Ward 3, Near school", 7, 16, False, None),
        ("m-004", "Sunita Devi", 32, "+919876543213", "Bazaar Lane, House 9", 60, 38, True, "High BP at last visit, refer to PHC"),
        ("m-005", "Kavya Reddy", 26, "+919876543214", "Canal colony, Block B", 21, 22, False, "Prefers calls after 5 pm"),
    ]
    return [
        Patient(
            id=pid,
            name=name,
            age=age,
            phone=phone,
            address=address,
            last_anc_date=today - timedelta(days=days_since_anc),
            gestation_weeks=weeks,
            flagged=flagged,
            notes=notes,
        )
        for pid, name, age, phone, address, days_since_anc, weeks, flagged, notes in rows
    ]


def demo_call_logs(now: datetime | None = None) -> list[CallLogEntry]:
    """A short call history for the demo roster."""
    now = now or datetime.now()
    history = [
        ("log-1", "m-002", 1, CallOutcome.NOT_ANSWERED),
        ("log-2", "m-004", 2, CallOutcome.PRESSED_2),
        ("log-3", "m-001", 3, CallOutcome.ANSWERED),
    ]
    return [
        CallLogEntry(id=lid, mother_id=mid, timestamp=now - timedelta(hours=hours), outcome=outcome)
        for lid, mid, hours, outcome in history
    ]
