"""ASHA login endpoint."""

from fastapi import APIRouter, HTTPException, Request, status
from pydantic import BaseModel, Field

from asha_dashboard.api.auth import create_access_token
from asha_dashboard.api.rate_limits import RateLimits, limiter
from asha_dashboard.core.exceptions import InvalidCredentials
from asha_dashboard.dependencies import BackendDep, SettingsDep
from asha_dashboard.models import AshaProfile
from asha_dashboard.services.session import login


router = APIRouter(prefix="/auth")


class LoginRequest(BaseModel):
    """ASHA credentials."""

    asha_id: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class LoginResponse(BaseModel):
    """Bearer token plus the profile shown in the dashboard header."""

    access_token: str
    token_type: str = "bearer"
    expires_in: int
    asha: AshaProfile


@router.post("/login", response_model=LoginResponse)
@limiter.limit(RateLimits.SENSITIVE)
async def login_asha(
    request: Request,
    body: LoginRequest,
    backend: BackendDep,
    settings: SettingsDep,
) -> LoginResponse:
    """Verify credentials against the backend and issue a session token."""
    try:
        session = await login(backend.auth, body.asha_id, body.password)
    except InvalidCredentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid ASHA ID or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return LoginResponse(
        access_token=create_access_token(session.asha),
        expires_in=settings.jwt_expiry_minutes * 60,
        asha=session.asha,
    )
