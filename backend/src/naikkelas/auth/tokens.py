"""Session tokens issued by the identity provider."""

from typing import Any

from jose import JWTError, jwt

from naikkelas.auth.models import Identity
from naikkelas.errors import AuthError
from naikkelas.logging_config import get_logger
from naikkelas.settings import settings

logger = get_logger(__name__)

JWT_ALGORITHM = "HS256"


def verify_token(token: str, secret_key: str | None = None, audience: str | None = None) -> dict[str, Any]:
    """Verify and decode a session JWT.

    Args:
        token: JWT token string
        secret_key: Signing secret (defaults to settings)
        audience: Expected audience (defaults to settings; unchecked when unset)

    Returns:
        Token payload

    Raises:
        AuthError: If the token is invalid or expired
    """
    secret_key = secret_key or settings.jwt_secret_key
    audience = audience or settings.jwt_audience

    try:
        return jwt.decode(
            token,
            secret_key,
            algorithms=[JWT_ALGORITHM],
            audience=audience,
            options={"verify_aud": audience is not None},
        )
    except JWTError as e:
        logger.debug("token_verification_failed", error=str(e))
        raise AuthError("Not authenticated") from e


def identity_from_claims(claims: dict[str, Any]) -> Identity:
    """Build the caller identity from verified claims.

    Raises:
        AuthError: If subject or email is missing
    """
    user_id = claims.get("sub")
    email = claims.get("email")
    if not user_id or not email:
        raise AuthError("Not authenticated")

    metadata = claims.get("user_metadata") or {}
    name = metadata.get("name") or metadata.get("full_name") or claims.get("name")
    return Identity(user_id=str(user_id), email=email, name=name)


def decode_identity(token: str) -> Identity:
    """Verify a bearer token and return who it belongs to."""
    return identity_from_claims(verify_token(token))
