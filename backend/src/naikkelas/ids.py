"""Random identifiers for primary keys and referral codes."""

import secrets
import string
import time

ALPHANUMERIC = string.ascii_letters + string.digits


def random_token(length: int, alphabet: str = ALPHANUMERIC) -> str:
    """Return `length` characters drawn from `alphabet` with a CSPRNG."""
    if length <= 0:
        raise ValueError("length must be positive")
    return "".join(secrets.choice(alphabet) for _ in range(length))


def generate_id(prefix: str) -> str:
    """Generate a primary key such as ``reward_1718000000000_a9Xk2P``."""
    return f"{prefix}_{time.time_ns() // 1_000_000}_{random_token(6)}"
