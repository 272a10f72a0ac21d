"""Pytest configuration and fixtures for ASHA Dashboard tests."""

from __future__ import annotations

import os
from datetime import date

import pytest

# Set test environment
os.environ["ASHA_ENV"] = "test"
os.environ["ASHA_JWT_SECRET_KEY"] = "test-secret-key-with-enough-length-for-hs256"

from asha_dashboard.clients.base import (  # noqa: E402
    InMemoryAuthProvider,
    InMemoryCallLogStore,
    InMemoryPatientStore,
    MockIVRDispatcher,
)
from asha_dashboard.clients.factory import Backend  # noqa: E402
from asha_dashboard.config import IVRSettings, Settings  # noqa: E402
from asha_dashboard.core.exceptions import UpdateFailure  # noqa: E402
from asha_dashboard.models import (  # noqa: E402
    AshaProfile,
    CallOutcome,
    Patient,
    PatientUpdate,
)
from asha_dashboard.services.session import AshaSession  # noqa: E402


TEST_PASSWORD = "secret"


def make_patient(patient_id: str, phone: str, **overrides) -> Patient:
    """Build a roster entry with sensible defaults."""
    fields = {
        "id": patient_id,
        "name": f"Mother {patient_id}",
        "age": 25,
        "phone": phone,
        "address": "Ward 1",
        "last_anc_date": date(2024, 3, 5),
        "gestation_weeks": 20,
    }
    fields.update(overrides)
    return Patient(**fields)


@pytest.fixture
def asha():
    """The logged-in ASHA."""
    return AshaProfile(id="ASHA-T1", name="Test Asha", phc_name="PHC Test")


@pytest.fixture
def session(asha):
    return AshaSession(asha=asha)


@pytest.fixture
def patients():
    """Three mothers A, B and C."""
    return [
        make_patient("A", "+911111111111"),
        make_patient("B", "+912222222222", notes="Needs iron"),
        make_patient("C", "+913333333333", flagged=True),
    ]


@pytest.fixture
def patient_store(patients):
    return InMemoryPatientStore(patients)


class FailingPatientStore(InMemoryPatientStore):
    """Store that rejects updates for selected patients."""

    def __init__(self, patients, fail_ids):
        super().__init__(patients)
        self._fail_ids = set(fail_ids)

    async def update(self, patient_id, changes: PatientUpdate):
        if patient_id in self._fail_ids:
            raise UpdateFailure(f"Rejected {patient_id}", details={"patient_id": patient_id})
        return await super().update(patient_id, changes)


@pytest.fixture
def failing_store(patients):
    """Factory for a roster store that rejects updates to the given ids."""
    return lambda fail_ids: FailingPatientStore(patients, fail_ids)


@pytest.fixture
def call_log_store():
    return InMemoryCallLogStore()


@pytest.fixture
def ivr(call_log_store):
    """IVR that answers every call unless a test scripts otherwise."""
    return MockIVRDispatcher(default_outcome=CallOutcome.ANSWERED, call_logs=call_log_store)


@pytest.fixture
def auth(asha):
    return InMemoryAuthProvider({asha.id: (TEST_PASSWORD, asha)})


@pytest.fixture
def backend(patient_store, call_log_store, ivr, auth):
    """In-memory backend bundle."""
    return Backend(patients=patient_store, call_logs=call_log_store, ivr=ivr, auth=auth)


@pytest.fixture
def settings():
    """Settings for tests: short call timeout, no production checks."""
    return Settings(
        environment="test",
        debug=True,
        jwt_secret_key=os.environ["ASHA_JWT_SECRET_KEY"],
        ivr=IVRSettings(call_timeout_seconds=2.0),
    )


@pytest.fixture(autouse=True)
def disable_rate_limits():
    """Rate limits are shared per process; keep them out of unrelated tests."""
    from asha_dashboard.api.rate_limits import limiter

    limiter.enabled = False
    yield
    limiter.enabled = True
