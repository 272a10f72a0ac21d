"""Backend Collaborator Interfaces.

Defines the abstract interfaces for the external services the dashboard
consumes, plus in-memory implementations for development and testing:

- PatientStore: backend-owned patient records (read-all, read-by-id, update)
- CallLogStore: append-only IVR call log (read-recent)
- IVRDispatcher: places a call and yields one outcome per call
- AuthProvider: verifies ASHA credentials
"""

from __future__ import annotations

import asyncio
import random
from abc import ABC, abstractmethod
from collections.abc import Iterable, Mapping
from datetime import datetime
from typing import Any
from uuid import uuid4

from asha_dashboard.core.exceptions import InvalidCredentials, NotFoundError
from asha_dashboard.core.log import get_logger, mask_phone
from asha_dashboard.models import (
    AshaProfile,
    CallLogEntry,
    CallOutcome,
    Patient,
    PatientUpdate,
)

log = get_logger(__name__)

_KNOWN_OUTCOMES = {outcome.value for outcome in CallOutcome}


class PatientStore(ABC):
    """Patient Record Store.

    The store is the sole arbiter of flag/visited state; callers never
    cache its records across sessions.
    """

    @abstractmethod
    async def get_all(self) -> list[Patient]:
        """Get every patient on the roster, in roster order."""

    @abstractmethod
    async def get_by_id(self, patient_id: str) -> Patient:
        """Get one patient.

        Raises:
            NotFoundError: If the id is unknown
        """

    @abstractmethod
    async def update(self, patient_id: str, changes: PatientUpdate) -> Patient:
        """Apply a partial update.

        Returns:
            The patient's full state after the update

        Raises:
            UpdateFailure: If the store rejected the mutation
        """


class CallLogStore(ABC):
    """Call Log Store (read-only from the dashboard's side)."""

    @abstractmethod
    async def get_recent(self) -> list[CallLogEntry]:
        """Get call log entries, newest first."""


class IVRDispatcher(ABC):
    """IVR Dispatch Service."""

    @abstractmethod
    async def place_call(self, phone: str, patient_id: str | None = None) -> Any:
        """Place a call and wait for its outcome.

        Returns the raw outcome reported by the IVR provider; callers parse
        it with CallOutcome.parse so unknown values surface as UnknownOutcome.

        Raises:
            DispatchFailure: If the call could not be initiated
        """


class AuthProvider(ABC):
    """ASHA authentication backend."""

    @abstractmethod
    async def login(self, asha_id: str, password: str) -> AshaProfile:
        """Verify credentials.

        Raises:
            InvalidCredentials: If the ASHA ID or password is wrong
        """


# =============================================================================
# In-memory implementations
# =============================================================================


class InMemoryPatientStore(PatientStore):
    """Patient store backed by a dict, for development and testing."""

    def __init__(self, patients: Iterable[Patient] = ()):
        """Initialize store with an initial roster (order is preserved)."""
        self._patients: dict[str, Patient] = {}
        for patient in patients:
            if patient.id in self._patients:
                raise ValueError(f"Duplicate patient id: {patient.id}")
            self._patients[patient.id] = patient
        self._updates: list[tuple[str, dict[str, Any]]] = []

    async def get_all(self) -> list[Patient]:
        return list(self._patients.values())

    async def get_by_id(self, patient_id: str) -> Patient:
        try:
            return self._patients[patient_id]
        except KeyError:
            raise NotFoundError(
                f"Patient {patient_id} not found",
                details={"patient_id": patient_id},
            ) from None

    async def update(self, patient_id: str, changes: PatientUpdate) -> Patient:
        current = await self.get_by_id(patient_id)
        payload = changes.to_payload()
        updated = current.model_copy(update=payload)
        self._patients[patient_id] = updated
        self._updates.append((patient_id, payload))

        log.debug("Patient updated", patient_id=patient_id, fields=sorted(payload))
        return updated

    def get_updates(self) -> list[tuple[str, dict[str, Any]]]:
        """Get every update applied so far (for testing)."""
        return self._updates.copy()


class InMemoryCallLogStore(CallLogStore):
    """Call log kept in memory, newest entry first."""

    def __init__(self, entries: Iterable[CallLogEntry] = ()):
        self._entries: list[CallLogEntry] = sorted(
            entries, key=lambda e: e.timestamp, reverse=True
        )

    async def get_recent(self) -> list[CallLogEntry]:
        return self._entries.copy()

    def append(self, mother_id: str, outcome: CallOutcome) -> CallLogEntry:
        """Record a call attempt (called by the IVR side only)."""
        entry = CallLogEntry(
            id=str(uuid4()),
            mother_id=mother_id,
            timestamp=datetime.now(),
            outcome=outcome,
        )
        self._entries.insert(0, entry)
        return entry


class MockIVRDispatcher(IVRDispatcher):
    """Scripted IVR dispatcher for development and testing.

    Outcomes are looked up by phone number. A scripted value may be a
    CallOutcome, any raw value (returned as-is so callers see unknown
    outcomes), or an exception instance to raise. Numbers listed in
    ``hang`` never resolve. Unscripted numbers get ``default_outcome``,
    or a random outcome when it is None (simulation mode).
    """

    def __init__(
        self,
        outcomes: Mapping[str, Any] | None = None,
        default_outcome: CallOutcome | None = CallOutcome.ANSWERED,
        delay_seconds: float = 0.0,
        hang: Iterable[str] = (),
        call_logs: InMemoryCallLogStore | None = None,
    ):
        self._outcomes = dict(outcomes or {})
        self._default_outcome = default_outcome
        self._delay_seconds = delay_seconds
        self._hang = set(hang)
        self._call_logs = call_logs
        self._dialed: list[str] = []
        self._in_flight = 0
        self._max_in_flight = 0

    async def place_call(self, phone: str, patient_id: str | None = None) -> Any:
        self._dialed.append(phone)
        self._in_flight += 1
        self._max_in_flight = max(self._max_in_flight, self._in_flight)

        log.info("Mock IVR call placed", phone=mask_phone(phone), patient_id=patient_id)

        try:
            if self._delay_seconds:
                await asyncio.sleep(random.uniform(0, self._delay_seconds))

            if phone in self._hang:
                await asyncio.Future()

            result = self._outcomes.get(phone, self._default_outcome)
            if result is None:
                result = random.choice(list(CallOutcome))
            if isinstance(result, Exception):
                raise result
        finally:
            self._in_flight -= 1

        if (
            self._call_logs is not None
            and patient_id is not None
            and isinstance(result, str)
            and result in _KNOWN_OUTCOMES
        ):
            self._call_logs.append(patient_id, CallOutcome(result))

        return result

    def get_dialed(self) -> list[str]:
        """Get every number dialed so far, in dial order (for testing)."""
        return self._dialed.copy()

    @property
    def max_in_flight(self) -> int:
        """Highest number of simultaneously ringing calls seen."""
        return self._max_in_flight


class InMemoryAuthProvider(AuthProvider):
    """Static credential table for development and testing."""

    def __init__(self, accounts: Mapping[str, tuple[str, AshaProfile]] | None = None):
        self._accounts = dict(accounts or {})

    async def login(self, asha_id: str, password: str) -> AshaProfile:
        account = self._accounts.get(asha_id)
        if account is None or account[0] != password:
            raise InvalidCredentials(
                "Invalid ASHA ID or password",
                details={"asha_id": asha_id},
            )
        return account[1]


__all__ = [
    "PatientStore",
    "CallLogStore",
    "IVRDispatcher",
    "AuthProvider",
    "InMemoryPatientStore",
    "InMemoryCallLogStore",
    "MockIVRDispatcher",
    "InMemoryAuthProvider",
]
