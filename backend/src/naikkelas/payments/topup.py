"""Credit top-ups: bill creation and payment reconciliation."""

from dataclasses import dataclass

from sqlalchemy import select, update

from naikkelas.credits.meter import CreditMeter
from naikkelas.errors import IdempotencyConflict, NotFoundError, ValidationError
from naikkelas.ids import generate_id
from naikkelas.logging_config import get_logger
from naikkelas.payments.flip import FlipClient, parse_callback_payload, validate_callback_token
from naikkelas.payments.models import TopupStatus, TopupTransaction
from naikkelas.payments.packages import get_package
from naikkelas.settings import settings
from naikkelas.storage.db import Database, db
from naikkelas.storage.models import utcnow

# Provider statuses we act on; anything else leaves the transaction as is
_STATUS_MAP = {
    "SUCCESSFUL": TopupStatus.SUCCESSFUL,
    "FAILED": TopupStatus.FAILED,
    "CANCELLED": TopupStatus.CANCELLED,
}


@dataclass(frozen=True)
class TopupCreated:
    transaction_id: str
    bill_link: str
    bill_id: str
    amount: int
    credits: int


@dataclass(frozen=True)
class CallbackResult:
    """Outcome of one callback delivery.

    `replay` is True when the delivery changed nothing (already processed,
    or a concurrent delivery won the transition).
    """
    transaction_id: str
    status: TopupStatus
    replay: bool = False
    credited: int = 0


class TopupService:
    """Service for credit purchases through Flip.

    Operations:
    - Create a payment link for a package
    - Reconcile provider callbacks exactly once
    - Top-up history
    """

    def __init__(
        self,
        database: Database | None = None,
        flip: FlipClient | None = None,
        meter: CreditMeter | None = None,
        logger=None,
    ):
        self.db = database or db
        self.flip = flip or FlipClient()
        self.meter = meter or CreditMeter(self.db)
        self.logger = logger or get_logger(__name__)

    def create_topup(self, user_id: str, email: str, name: str | None, package_id: str | None) -> TopupCreated:
        """Create a Flip bill for a package and record it as PENDING.

        Args:
            user_id: Buyer's user ID
            email: Buyer's email (sent to Flip as sender email)
            name: Buyer's display name, if set
            package_id: Credit package ID

        Returns:
            TopupCreated with the payment link

        Raises:
            ValidationError: If package_id is missing or unknown
            ExternalProviderError: If bill creation fails (no row is written)
        """
        if not package_id:
            raise ValidationError("Package ID is required")

        package = get_package(package_id)
        if not package:
            raise ValidationError("Invalid package ID")

        bill = self.flip.create_bill(
            title=f"Naikkelas Credit Topup - {package.name} ({package.credits} credits)",
            amount=package.amount,
            sender_name=name or "User",
            sender_email=email,
            redirect_url=f"{settings.site_url}?topup=success",
        )

        transaction_id = generate_id("txn")
        with self.db.session() as s:
            s.add(TopupTransaction(
                id=transaction_id,
                user_id=user_id,
                provider_bill_id=bill.link_id,
                provider_bill_link=bill.link_url,
                amount=package.amount,
                credits=package.credits,
                status=TopupStatus.PENDING,
            ))

        self.logger.info(
            "topup_created",
            transaction_id=transaction_id,
            user_id=user_id,
            package_id=package_id,
            amount=package.amount,
            credits=package.credits,
            bill_id=bill.link_id,
        )

        return TopupCreated(
            transaction_id=transaction_id,
            bill_link=bill.link_url,
            bill_id=bill.link_id,
            amount=package.amount,
            credits=package.credits,
        )

    def handle_callback(self, raw_token: str | None, raw_payload: str | None) -> CallbackResult:
        """Apply a Flip payment callback.

        Flip retries deliveries, so the same callback may arrive more than
        once, possibly concurrently. The PENDING -> terminal transition is a
        conditional UPDATE; only the delivery that wins it credits the user,
        in the same transaction.

        Args:
            raw_token: ``token`` form field
            raw_payload: ``data`` form field (JSON)

        Returns:
            CallbackResult

        Raises:
            ProviderNotConfiguredError: If no validation token is configured
            AuthError: If the token is invalid
            ValidationError: If the payload is malformed
            NotFoundError: If no transaction matches the bill
        """
        validate_callback_token(raw_token)
        payload = parse_callback_payload(raw_payload)

        self.logger.info(
            "topup_callback_received",
            bill_id=payload.bill_link_id,
            status=payload.status,
            amount=payload.amount,
        )

        with self.db.session() as s:
            transaction = s.scalar(
                select(TopupTransaction).where(TopupTransaction.provider_bill_id == payload.bill_link_id)
            )
            if transaction is None:
                self.logger.warning("topup_callback_unknown_bill", bill_id=payload.bill_link_id)
                raise NotFoundError("Transaction not found")

            if transaction.status.is_terminal:
                self.logger.info(
                    "topup_callback_already_processed",
                    transaction_id=transaction.id,
                    status=transaction.status.value,
                )
                return CallbackResult(transaction.id, transaction.status, replay=True)

            new_status = _STATUS_MAP.get(payload.status)
            if new_status is None:
                self.logger.info(
                    "topup_callback_status_ignored",
                    transaction_id=transaction.id,
                    provider_status=payload.status,
                )
                return CallbackResult(transaction.id, transaction.status, replay=True)

            try:
                self._transition(s, transaction.id, new_status)
            except IdempotencyConflict:
                settled = s.scalar(
                    select(TopupTransaction.status).where(TopupTransaction.id == transaction.id)
                )
                self.logger.info("topup_callback_lost_race", transaction_id=transaction.id, status=settled.value)
                return CallbackResult(transaction.id, settled, replay=True)

            credited = 0
            if new_status is TopupStatus.SUCCESSFUL:
                if payload.amount != transaction.amount:
                    self.logger.error(
                        "topup_amount_mismatch",
                        transaction_id=transaction.id,
                        expected=transaction.amount,
                        received=payload.amount,
                    )
                self.meter.credit(transaction.user_id, transaction.credits, session=s)
                credited = transaction.credits

        self.logger.info(
            "topup_callback_processed",
            transaction_id=transaction.id,
            status=new_status.value,
            credited=credited,
        )
        return CallbackResult(transaction.id, new_status, credited=credited)

    @staticmethod
    def _transition(session, transaction_id: str, new_status: TopupStatus) -> None:
        """Move a PENDING transaction to `new_status`.

        Raises:
            IdempotencyConflict: If the transaction is no longer PENDING
        """
        now = utcnow()
        result = session.execute(
            update(TopupTransaction)
            .where(
                TopupTransaction.id == transaction_id,
                TopupTransaction.status == TopupStatus.PENDING,
            )
            .values(
                status=new_status,
                paid_at=now if new_status is TopupStatus.SUCCESSFUL else None,
                updated_at=now,
            )
        )
        if result.rowcount == 0:
            raise IdempotencyConflict(f"Transaction {transaction_id} is already settled")

    def get_history(self, user_id: str, limit: int = 50) -> list[TopupTransaction]:
        """Get user's top-up transactions, newest first."""
        with self.db.session() as s:
            return list(s.scalars(
                select(TopupTransaction)
                .where(TopupTransaction.user_id == user_id)
                .order_by(TopupTransaction.created_at.desc(), TopupTransaction.id.desc())
                .limit(limit)
            ))
