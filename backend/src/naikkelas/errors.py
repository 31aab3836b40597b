"""Error taxonomy shared by the ledger services and the HTTP layer."""


class LedgerError(Exception):
    """Base error. `status_code` is what the API returns for it."""

    status_code = 500

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class ValidationError(LedgerError):
    """Bad input shape (missing package id, malformed payload)."""

    status_code = 400


class AuthError(LedgerError):
    """No authenticated user, or an invalid webhook token."""

    status_code = 401


class InsufficientBalanceError(LedgerError):
    """Raised when a user is below the minimum balance for a paid action."""

    status_code = 403

    def __init__(self, required: int, available: int):
        self.required = required
        self.available = available
        super().__init__(
            f"Insufficient credits. You need at least {required:,} tokens to chat. "
            "Please top up your account."
        )


class NotFoundError(LedgerError):
    status_code = 404


class ExternalProviderError(LedgerError):
    """Payment or generation provider call failed. Not retried here."""

    status_code = 500

    def __init__(self, message: str, provider: str, upstream_status: int | None = None):
        self.provider = provider
        self.upstream_status = upstream_status
        super().__init__(message)


class ProviderNotConfiguredError(ExternalProviderError):
    status_code = 503


class RegistryError(LedgerError):
    """Referral code could not be allocated."""


class IdempotencyConflict(LedgerError):
    """A repeated external event. Callers treat it as success."""

    status_code = 200
