"""Flip payment link integration.

Flip provides:
- Bill creation: a hosted payment page (``POST /pwf/bill``)
- Payment callbacks: form POST with a shared ``token`` and a JSON ``data`` field

API Documentation: https://docs.flip.id
"""

import hmac
import json
from datetime import datetime, timedelta, timezone

import httpx
from pydantic import BaseModel, ConfigDict, field_validator
from pydantic import ValidationError as PydanticValidationError

from naikkelas.errors import AuthError, ExternalProviderError, ProviderNotConfiguredError, ValidationError
from naikkelas.logging_config import get_logger
from naikkelas.settings import settings

logger = get_logger(__name__)

PROVIDER = "flip"
EXPIRED_DATE_FORMAT = "%Y-%m-%d %H:%M"


class FlipBill(BaseModel):
    """The part of Flip's bill response we keep."""
    link_id: str
    link_url: str

    model_config = ConfigDict(extra="ignore")

    @field_validator("link_id", mode="before")
    @classmethod
    def _link_id_to_str(cls, value):
        return str(value)

    @field_validator("link_url")
    @classmethod
    def _ensure_scheme(cls, value: str) -> str:
        # Flip sometimes returns the link without a scheme
        if value and not value.startswith("http"):
            return f"https://{value}"
        return value


class FlipCallbackPayload(BaseModel):
    """Decoded ``data`` field of a Flip payment callback."""
    bill_link_id: str
    status: str
    amount: int

    model_config = ConfigDict(extra="ignore")

    @field_validator("bill_link_id", mode="before")
    @classmethod
    def _bill_link_id_to_str(cls, value):
        if isinstance(value, (int, str)) and not isinstance(value, bool):
            return str(value)
        return value


def format_expired_date(hours_from_now: int = 24, now: datetime | None = None) -> str:
    """Bill expiry in Flip's ``YYYY-MM-DD HH:mm`` format (UTC)."""
    now = now or datetime.now(timezone.utc)
    return (now + timedelta(hours=hours_from_now)).strftime(EXPIRED_DATE_FORMAT)


def validate_callback_token(token: str | None, expected: str | None = None) -> None:
    """Check a callback token against the configured validation token.

    Args:
        token: Token from the callback form
        expected: Validation token (defaults to settings)

    Raises:
        ProviderNotConfiguredError: If no validation token is configured
        AuthError: If the token does not match
    """
    expected = settings.flip_validation_token if expected is None else expected
    if not expected:
        raise ProviderNotConfiguredError("Payment callbacks are not configured", provider=PROVIDER)

    if not token or not hmac.compare_digest(token.encode(), expected.encode()):
        logger.warning("flip_callback_invalid_token", token_present=bool(token))
        raise AuthError("Invalid token")


def parse_callback_payload(raw_payload: str | None) -> FlipCallbackPayload:
    """Decode and validate the JSON ``data`` field of a callback.

    Raises:
        ValidationError: If the payload is not JSON or lacks required fields
    """
    if not raw_payload:
        raise ValidationError("Invalid data format")

    try:
        return FlipCallbackPayload.model_validate(json.loads(raw_payload))
    except (json.JSONDecodeError, PydanticValidationError) as e:
        logger.error("flip_callback_unparseable", error=str(e))
        raise ValidationError("Invalid data format") from e


class FlipClient:
    """Client for the Flip bill API."""

    def __init__(
        self,
        secret_key: str | None = None,
        base_url: str | None = None,
        http_client: httpx.Client | None = None,
        logger=None,
    ):
        """Initialize Flip client.

        Args:
            secret_key: Flip secret key. If not provided, uses settings.
            base_url: API base URL. If not provided, uses settings.
            http_client: Optional preconfigured httpx client
            logger: Bound logger (defaults to this module's logger)
        """
        self.secret_key = secret_key or settings.flip_secret_key or ""
        self.base_url = (base_url or settings.flip_api_url).rstrip("/")
        self.http_client = http_client
        self.logger = logger or get_logger(__name__)

    @property
    def enabled(self) -> bool:
        return bool(self.secret_key)

    def create_bill(
        self,
        title: str,
        amount: int,
        sender_name: str,
        sender_email: str,
        redirect_url: str,
        expired_date: str | None = None,
    ) -> FlipBill:
        """Create a single-use payment link.

        Returns:
            FlipBill with the link ID and an https payment URL

        Raises:
            ProviderNotConfiguredError: If no secret key is configured
            ExternalProviderError: If Flip rejects the request or is unreachable
        """
        if not self.enabled:
            raise ProviderNotConfiguredError("Payment provider is not configured", provider=PROVIDER)

        form = {
            "title": title,
            "amount": str(amount),
            "type": "SINGLE",
            "expired_date": expired_date or format_expired_date(24),
            "redirect_url": redirect_url,
            "sender_name": sender_name,
            "sender_email": sender_email,
            "step": "2",  # Show payment instructions directly
        }

        self.logger.info("flip_bill_creating", title=title, amount=amount)

        client = self.http_client or httpx.Client(timeout=settings.request_timeout_seconds)
        try:
            # Basic auth: secret key as username, empty password
            response = client.post(
                f"{self.base_url}/pwf/bill",
                data=form,
                auth=(self.secret_key, ""),
            )
        except httpx.TimeoutException as e:
            raise ExternalProviderError("Payment provider timeout", provider=PROVIDER) from e
        except httpx.RequestError as e:
            raise ExternalProviderError(f"Payment provider request failed: {e}", provider=PROVIDER) from e
        finally:
            if self.http_client is None:
                client.close()

        if response.status_code >= 400:
            self.logger.error("flip_bill_failed", status=response.status_code, error=response.text[:500])
            raise ExternalProviderError(
                f"Failed to create Flip bill: {response.status_code}",
                provider=PROVIDER,
                upstream_status=response.status_code,
            )

        try:
            bill = FlipBill.model_validate(response.json())
        except (ValueError, PydanticValidationError) as e:
            raise ExternalProviderError("Unexpected payment provider response", provider=PROVIDER) from e

        self.logger.info("flip_bill_created", link_id=bill.link_id, link_url=bill.link_url)
        return bill
