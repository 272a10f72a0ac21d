"""ASHA session context.

The logged-in worker is carried as an explicit AshaSession passed to the
services that need it; nothing about the user lives in module state.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from asha_dashboard.clients.base import AuthProvider
from asha_dashboard.core.exceptions import InvalidCredentials, ValidationError
from asha_dashboard.core.log import get_logger
from asha_dashboard.models import AshaProfile

log = get_logger(__name__)


@dataclass(frozen=True)
class AshaSession:
    """Authenticated worker context."""

    asha: AshaProfile
    started_at: datetime = field(default_factory=datetime.now)

    @property
    def asha_id(self) -> str:
        return self.asha.id

    def header(self, roster_size: int) -> str:
        """Dashboard header line: name | PHC | roster size."""
        return f"{self.asha.name} | {self.asha.phc_name} | {roster_size} Assigned Mothers"


async def login(auth: AuthProvider, asha_id: str, password: str) -> AshaSession:
    """Verify credentials and open a session.

    Raises:
        ValidationError: If either field is blank
        InvalidCredentials: If the backend rejects the credentials
    """
    asha_id = asha_id.strip()
    if not asha_id or not password:
        raise ValidationError("ASHA ID and password are required")

    try:
        profile = await auth.login(asha_id, password)
    except InvalidCredentials:
        log.warning("Login rejected", asha_id=asha_id)
        raise

    log.info("ASHA logged in", asha_id=profile.id, phc_name=profile.phc_name)
    return AshaSession(asha=profile)
