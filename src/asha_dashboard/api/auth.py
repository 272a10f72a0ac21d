"""JWT Authentication for the dashboard API.

The backend verifies the ASHA's credentials once at login; the dashboard
then issues its own short-lived bearer token carrying the ASHA profile, so
every later request rebuilds the AshaSession context from the token alone.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import jwt
from fastapi import HTTPException, Security, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from asha_dashboard.config import get_settings
from asha_dashboard.models import AshaProfile
from asha_dashboard.services.session import AshaSession


# HTTP Bearer security scheme
security_required = HTTPBearer(auto_error=True)


class TokenPayload(BaseModel):
    """JWT token payload."""

    sub: str  # ASHA ID
    exp: datetime
    iat: datetime
    type: str = "access"
    name: str
    phc_name: str = ""


def get_secret_key() -> str:
    """Get JWT secret key from settings.

    Raises:
        ValueError: If no secret key is configured in production environment.
    """
    settings = get_settings()
    secret = settings.jwt_secret_key

    if not secret:
        if settings.environment in ("production", "staging", "prod"):
            raise ValueError(
                "JWT secret key must be configured in production! "
                "Set ASHA_JWT_SECRET_KEY environment variable."
            )
        # Development-only fallback with warning
        import warnings
        warnings.warn(
            "Using insecure default JWT secret. "
            "Set ASHA_JWT_SECRET_KEY for production!",
            RuntimeWarning,
            stacklevel=2,
        )
        secret = "INSECURE-DEV-SECRET-DO-NOT-USE-IN-PRODUCTION"

    return secret


def create_access_token(
    asha: AshaProfile,
    expires_delta: timedelta | None = None,
) -> str:
    """Create a JWT access token for a logged-in ASHA.

    Args:
        asha: Profile returned by the backend at login
        expires_delta: Optional custom expiration time

    Returns:
        Encoded JWT token string
    """
    settings = get_settings()

    if expires_delta is None:
        expires_delta = timedelta(minutes=settings.jwt_expiry_minutes)

    now = datetime.now(timezone.utc)
    payload = {
        "sub": asha.id,
        "exp": now + expires_delta,
        "iat": now,
        "type": "access",
        "name": asha.name,
        "phc_name": asha.phc_name,
    }

    return jwt.encode(payload, get_secret_key(), algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> TokenPayload:
    """Decode and validate a JWT token.

    Raises:
        HTTPException: If token is invalid or expired
    """
    try:
        payload = jwt.decode(
            token,
            get_secret_key(),
            algorithms=[get_settings().jwt_algorithm],
        )
        return TokenPayload(**payload)
    except jwt.ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token has expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except jwt.InvalidTokenError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid token: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_current_session(
    credentials: HTTPAuthorizationCredentials = Security(security_required),
) -> AshaSession:
    """Dependency resolving the bearer token into an AshaSession.

    Usage:
        @router.get("/protected")
        async def endpoint(session: AshaSession = Depends(get_current_session)):
            return {"asha_id": session.asha_id}
    """
    payload = decode_token(credentials.credentials)

    return AshaSession(
        asha=AshaProfile(id=payload.sub, name=payload.name, phc_name=payload.phc_name),
        started_at=payload.iat,
    )
