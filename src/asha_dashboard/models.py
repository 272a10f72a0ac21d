"""Data contracts shared with the backend API.

Records coming off the wire are pydantic models so malformed backend
payloads fail at the boundary instead of deep inside a view.
"""

from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, model_validator

from asha_dashboard.core.exceptions import UnknownOutcome


class CallOutcome(str, Enum):
    """Outcome of a single IVR call."""

    ANSWERED = "answered"
    NOT_ANSWERED = "not_answered"
    PRESSED_2 = "pressed_2"  # "needs follow-up" touch-tone response

    @classmethod
    def parse(cls, value: Any) -> CallOutcome:
        """Parse a raw IVR result into the closed outcome set.

        Raises:
            UnknownOutcome: If the value is not one of the known outcomes.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError as e:
            raise UnknownOutcome(
                f"Unrecognised IVR outcome: {value!r}",
                details={"value": repr(value)},
                cause=e,
            ) from e


# patient id -> outcome, one entry per patient dialed in a session
ReconciliationMap = dict[str, CallOutcome]


class Patient(BaseModel):
    """A mother on the ASHA's roster."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    age: int = Field(gt=0)
    phone: str
    address: str = ""
    last_anc_date: date
    gestation_weeks: int
    flagged: bool = False
    visited: bool = False
    notes: str | None = None


class PatientUpdate(BaseModel):
    """Partial update to a patient record.

    Only the fields explicitly set are sent to the store.
    """

    flagged: bool | None = None
    visited: bool | None = None
    notes: str | None = None

    @model_validator(mode="after")
    def _not_empty(self) -> PatientUpdate:
        if not self.model_fields_set:
            raise ValueError("Patient update must change at least one field")
        return self

    def to_payload(self) -> dict[str, Any]:
        """Fields to send, unset ones omitted."""
        return self.model_dump(exclude_unset=True)


class CallLogEntry(BaseModel):
    """One IVR call attempt recorded by the backend."""

    model_config = ConfigDict(frozen=True)

    id: str
    mother_id: str
    timestamp: datetime
    outcome: CallOutcome


class AshaProfile(BaseModel):
    """The logged-in community health worker."""

    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    phc_name: str = ""
