"""Backend Factory.

Creates the configured set of backend collaborators.

Supported providers:
- http: the real backend REST API
- mock: in-memory stores seeded with the demo roster
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

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
from asha_dashboard.config import Settings, get_settings
from asha_dashboard.core.log import get_logger

if TYPE_CHECKING:
    from asha_dashboard.clients.http import BackendClient

log = get_logger(__name__)


@dataclass
class Backend:
    """The external collaborators one dashboard instance talks to."""

    patients: PatientStore
    call_logs: CallLogStore
    ivr: IVRDispatcher
    auth: AuthProvider
    client: BackendClient | None = None  # shared HTTP session, if any

    async def aclose(self) -> None:
        """Release network resources."""
        if self.client is not None:
            await self.client.aclose()


def create_mock_backend() -> Backend:
    """Build an in-memory backend seeded with the demo roster."""
    from asha_dashboard.clients.sample_data import (
        DEMO_ASHA,
        DEMO_PASSWORD,
        demo_call_logs,
        demo_patients,
    )

    call_logs = InMemoryCallLogStore(demo_call_logs())
    return Backend(
        patients=InMemoryPatientStore(demo_patients()),
        call_logs=call_logs,
        ivr=MockIVRDispatcher(default_outcome=None, delay_seconds=1.5, call_logs=call_logs),
        auth=InMemoryAuthProvider({DEMO_ASHA.id: (DEMO_PASSWORD, DEMO_ASHA)}),
    )


def create_backend(settings: Settings | None = None) -> Backend:
    """Create backend collaborators from configuration.

    Args:
        settings: Settings to use (defaults to the cached application settings)

    Returns:
        Backend bundle for the configured provider.
    """
    settings = settings or get_settings()
    backend_config = settings.backend
    provider = backend_config.provider.lower()

    if provider == "http":
        from asha_dashboard.clients.http import (
            BackendClient,
            HTTPAuthProvider,
            HTTPCallLogStore,
            HTTPIVRDispatcher,
            HTTPPatientStore,
        )

        client = BackendClient(
            base_url=backend_config.base_url,
            api_token=backend_config.api_token or None,
            timeout=backend_config.timeout_seconds,
        )
        log.info("HTTP backend initialized", base_url=backend_config.base_url)
        return Backend(
            patients=HTTPPatientStore(client),
            call_logs=HTTPCallLogStore(client),
            ivr=HTTPIVRDispatcher(client, connect_timeout=backend_config.timeout_seconds),
            auth=HTTPAuthProvider(client),
            client=client,
        )

    if provider != "mock":
        log.warning(f"Unknown backend provider '{provider}', using mock")

    log.info("Mock backend initialized")
    return create_mock_backend()


# Singleton instance
_backend: Backend | None = None


def get_backend() -> Backend:
    """Get the configured backend (created on first use)."""
    global _backend

    if _backend is None:
        _backend = create_backend()
    return _backend


def set_backend(backend: Backend | None) -> None:
    """Replace the backend singleton (for testing)."""
    global _backend
    _backend = backend


async def close_backend() -> None:
    """Close and forget the backend singleton."""
    global _backend

    if _backend is not None:
        await _backend.aclose()
        _backend = None
