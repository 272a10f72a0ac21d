"""Rate limiting configuration for API endpoints.

Login attempts and IVR calls are the two things worth throttling: the
first guards credentials, the second costs money per dial.
"""

from __future__ import annotations

from slowapi import Limiter
from slowapi.util import get_remote_address


# Rate limiter instance - shared across the application
limiter = Limiter(key_func=get_remote_address)


class RateLimits:
    """Rate limit constants for different endpoint types."""

    # Dashboard, profile and export reads
    READ = "60/minute"

    # Visit / flag updates
    WRITE = "30/minute"

    # Login
    SENSITIVE = "10/minute"

    # Single IVR call
    OUTBOUND_CALL = "5/minute"

    # Whole-roster IVR run
    BULK_CALL = "2/minute"
