"""Initial ledger schema

Revision ID: 001_ledger
Revises:
Create Date: 2026-10-19

Adds tables for:
- users: Mirror of identity-provider users
- referral_codes / referrals: Codes and two-level attribution
- user_rewards / reward_transactions: Reward balance and its log
- user_credits: Token credit balance
- topup_transactions: Credit purchases through Flip
- chats / messages: Metered chat history
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = "001_ledger"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


reward_type = sa.Enum("REFERRAL_LEVEL1", "REFERRAL_LEVEL2", "REDEMPTION", name="reward_type")
topup_status = sa.Enum("PENDING", "SUCCESSFUL", "FAILED", "CANCELLED", name="topup_status")


def upgrade() -> None:
    """Create ledger tables."""

    # Users table
    op.create_table(
        "users",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("name", sa.String(255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_users_email", "users", ["email"], unique=True)

    # Referral codes table
    op.create_table(
        "referral_codes",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("code", sa.String(20), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id"),
    )
    op.create_index("ix_referral_codes_code", "referral_codes", ["code"], unique=True)

    # Referrals table (one row per referred user)
    op.create_table(
        "referrals",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("referred_user_id", sa.String(64), nullable=False),
        sa.Column("referrer_level1_id", sa.String(64), nullable=False),
        sa.Column("referrer_level2_id", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("referrer_level1_id <> referred_user_id", name="ck_referrals_no_self_referral"),
        sa.ForeignKeyConstraint(["referred_user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["referrer_level1_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["referrer_level2_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("referred_user_id"),
    )
    op.create_index("ix_referrals_referrer_level1_id", "referrals", ["referrer_level1_id"], unique=False)
    op.create_index("ix_referrals_referrer_level2_id", "referrals", ["referrer_level2_id"], unique=False)

    # Reward balance and log
    op.create_table(
        "user_rewards",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("balance", sa.Integer(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id"),
    )

    op.create_table(
        "reward_transactions",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("type", reward_type, nullable=False),
        sa.Column("referral_id", sa.String(64), nullable=True),
        sa.Column("description", sa.String(500), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.ForeignKeyConstraint(["referral_id"], ["referrals.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_reward_transactions_user_id", "reward_transactions", ["user_id"], unique=False)
    op.create_index("ix_reward_transactions_referral_id", "reward_transactions", ["referral_id"], unique=False)

    # Token credits
    op.create_table(
        "user_credits",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("credits", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_id"),
    )

    # Top-ups
    op.create_table(
        "topup_transactions",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("provider_bill_id", sa.String(64), nullable=False),
        sa.Column("provider_bill_link", sa.String(500), nullable=True),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("credits", sa.Integer(), nullable=False),
        sa.Column("status", topup_status, nullable=False),
        sa.Column("paid_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_topup_transactions_user_id", "topup_transactions", ["user_id"], unique=False)
    op.create_index("ix_topup_transactions_provider_bill_id", "topup_transactions", ["provider_bill_id"], unique=True)

    # Chat history
    op.create_table(
        "chats",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_chats_user_id", "chats", ["user_id"], unique=False)

    op.create_table(
        "messages",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("chat_id", sa.String(64), nullable=False),
        sa.Column("user_id", sa.String(64), nullable=False),
        sa.Column("role", sa.String(10), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("tokens_used", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["chat_id"], ["chats.id"]),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_messages_chat_id", "messages", ["chat_id"], unique=False)


def downgrade() -> None:
    """Drop ledger tables."""
    op.drop_table("messages")
    op.drop_table("chats")
    op.drop_table("topup_transactions")
    op.drop_table("user_credits")
    op.drop_table("reward_transactions")
    op.drop_table("user_rewards")
    op.drop_table("referrals")
    op.drop_table("referral_codes")
    op.drop_table("users")

    topup_status.drop(op.get_bind(), checkfirst=True)
    reward_type.drop(op.get_bind(), checkfirst=True)
