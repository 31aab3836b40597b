"""Authentication: bearer session tokens from the identity provider, mirrored users."""

from naikkelas.auth.models import Identity, User
from naikkelas.auth.middleware import get_current_identity, require_auth

__all__ = [
    "Identity",
    "User",
    "get_current_identity",
    "require_auth",
]
