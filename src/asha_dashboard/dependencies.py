"""Dependency Injection for the dashboard API.

Usage:
    from asha_dashboard.dependencies import RosterDep

    @router.get("/endpoint")
    async def handler(roster: RosterDep):
        ...
"""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends

from asha_dashboard.api.auth import get_current_session
from asha_dashboard.clients.factory import Backend, get_backend
from asha_dashboard.config import Settings, get_settings
from asha_dashboard.services.roster import RosterService
from asha_dashboard.services.session import AshaSession


# =============================================================================
# Settings Dependency
# =============================================================================


def get_app_settings() -> Settings:
    """Get application settings.

    Returns cached settings instance.
    """
    return get_settings()


SettingsDep = Annotated[Settings, Depends(get_app_settings)]


# =============================================================================
# Backend Dependency
# =============================================================================


def get_app_backend() -> Backend:
    """Get the process-wide backend collaborators."""
    return get_backend()


BackendDep = Annotated[Backend, Depends(get_app_backend)]


# =============================================================================
# Session Dependencies
# =============================================================================


SessionDep = Annotated[AshaSession, Depends(get_current_session)]


async def get_roster_service(
    backend: BackendDep,
    session: SessionDep,
    settings: SettingsDep,
) -> RosterService:
    """Roster service for the calling ASHA, loaded fresh for this request.

    Nothing is cached between requests, so every page shows the store's
    current state.
    """
    service = RosterService(backend, session, settings)
    await service.load()
    return service


RosterDep = Annotated[RosterService, Depends(get_roster_service)]


def get_profile_service(
    backend: BackendDep,
    session: SessionDep,
    settings: SettingsDep,
) -> RosterService:
    """Roster service without the dashboard preload.

    Profile routes fetch the one patient they need; mutations still reload
    the roster afterwards.
    """
    return RosterService(backend, session, settings)


ProfileDep = Annotated[RosterService, Depends(get_profile_service)]
