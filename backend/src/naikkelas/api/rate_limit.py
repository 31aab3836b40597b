"""Rate limiting configuration for the Naikkelas API."""

from slowapi import Limiter
from slowapi.util import get_remote_address

from naikkelas.settings import settings

# Single shared limiter instance - disabled in non-production environments
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["200/minute"],
    storage_uri="memory://",
    enabled=settings.env == "production",
)

# Public code lookups and bill creation are the endpoints worth abusing
VALIDATE_CODE_LIMIT = "10/minute"
CREATE_TOPUP_LIMIT = "5/minute"
