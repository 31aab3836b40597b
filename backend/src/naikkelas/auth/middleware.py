"""Authentication dependencies for FastAPI."""

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from naikkelas.auth.models import Identity
from naikkelas.auth.tokens import decode_identity
from naikkelas.errors import AuthError

# Security scheme
security = HTTPBearer(auto_error=False)


def get_current_identity(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(security),
) -> Identity | None:
    """Get the authenticated caller, if any.

    Args:
        request: FastAPI request
        credentials: Bearer token

    Returns:
        Identity or None if no token was sent

    Raises:
        AuthError: If a token was sent but is invalid
    """
    if not credentials:
        return None

    identity = decode_identity(credentials.credentials)
    request.state.user_id = identity.user_id
    return identity


def require_auth(identity: Identity | None = Depends(get_current_identity)) -> Identity:
    """Require authentication - raises 401 if not authenticated."""
    if identity is None:
        raise AuthError("Not authenticated")
    return identity
