"""Clients for the backend collaborators (patients, call logs, IVR, auth)."""

from asha_dashboard.clients.base import (
    AuthProvider,
    CallLogStore,
    InMemoryAuthProvider,
    InMemoryCallLogStore,
    InMemoryPatientStore,
    IVRDispatcher,
    MockIVRDispatcher,
    PatientStore,
)
from asha_dashboard.clients.factory import (
    Backend,
    close_backend,
    create_backend,
    create_mock_backend,
    get_backend,
    set_backend,
)

__all__ = [
    "AuthProvider",
    "CallLogStore",
    "IVRDispatcher",
    "PatientStore",
    "InMemoryAuthProvider",
    "InMemoryCallLogStore",
    "InMemoryPatientStore",
    "MockIVRDispatcher",
    "Backend",
    "close_backend",
    "create_backend",
    "create_mock_backend",
    "get_backend",
    "set_backend",
]
