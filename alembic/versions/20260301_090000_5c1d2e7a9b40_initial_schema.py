"""Initial schema: users, principles, journal, subscriptions, AI and notifications

Revision ID: 5c1d2e7a9b40
Revises:
Create Date: 2026-03-01 09:00:00.000000+00:00

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "5c1d2e7a9b40"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


# Journal enums store member names, subscription enums store values
ENTRY_CATEGORY_NAMES = ("REFLECTION", "KINDNESS", "GRATITUDE", "HELP", "ANTIDOTE")
ENTRY_SOURCE_NAMES = ("WEB", "TELEGRAM")
PLAN_VALUES = ("none", "trial", "light", "plus", "pro")
BILLING_PERIOD_VALUES = ("monthly", "yearly")
SUBSCRIPTION_STATUS_VALUES = ("pending", "active", "expired", "cancelled", "replaced")

ENUM_TYPES = ("entrycategory", "entrysource", "plan", "billingperiod", "subscriptionstatus")


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    """Upgrade database schema."""

    # ------------------------------------------------------------------
    # users
    # ------------------------------------------------------------------
    op.create_table(
        "users",
        sa.Column("user_id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("telegram_id", sa.BigInteger(), nullable=True),
        sa.Column("telegram_chat_id", sa.BigInteger(), nullable=True),
        sa.Column("google_id", sa.String(255), nullable=True, unique=True),
        sa.Column("email", sa.String(255), nullable=True, unique=True),
        sa.Column("first_name", sa.String(255), nullable=True),
        sa.Column("last_name", sa.String(255), nullable=True),
        sa.Column("username", sa.String(255), nullable=True),
        sa.Column("avatar_url", sa.String(500), nullable=True),
        sa.Column("language", sa.String(5), nullable=False, server_default="uk"),
        sa.Column("timezone", sa.String(64), nullable=False, server_default="Europe/Kiev"),
        sa.Column("current_principle", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("has_completed_onboarding", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("notification_type", sa.String(20), nullable=False, server_default="daily"),
        sa.Column("reminder_mode", sa.String(20), nullable=False, server_default="balanced"),
        sa.Column("daily_principles_count", sa.Integer(), nullable=False, server_default="2"),
        sa.Column("custom_times", postgresql.JSONB(), nullable=True),
        sa.Column("reminders_enabled", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("last_reminder_sent", sa.DateTime(timezone=True), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("subscription_plan", sa.String(20), nullable=False, server_default="none"),
        *_timestamps(),
    )
    op.create_index("ix_users_telegram_id", "users", ["telegram_id"], unique=True)
    op.create_index("ix_users_is_active", "users", ["is_active"])

    # ------------------------------------------------------------------
    # principles
    # ------------------------------------------------------------------
    op.create_table(
        "principles",
        sa.Column("principle_id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column("number", sa.Integer(), nullable=False, unique=True),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("url", sa.String(500), nullable=True),
        sa.Column("reflections", postgresql.JSONB(), nullable=False, server_default="[]"),
        sa.Column("practical_steps", postgresql.JSONB(), nullable=False, server_default="[]"),
    )

    op.create_table(
        "principle_history",
        sa.Column("history_id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.user_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("principle_number", sa.Integer(), nullable=False),
        sa.Column("assigned_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("completed", sa.Boolean(), nullable=False, server_default="false"),
    )
    op.create_index("idx_principle_history_user", "principle_history", ["user_id", "assigned_at"])

    # ------------------------------------------------------------------
    # journal
    # ------------------------------------------------------------------
    op.create_table(
        "journal_entries",
        sa.Column("entry_id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.user_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "principle_number",
            sa.Integer(),
            sa.ForeignKey("principles.number"),
            nullable=False,
        ),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("category", sa.Enum(*ENTRY_CATEGORY_NAMES, name="entrycategory"), nullable=False),
        sa.Column("mood", sa.Integer(), nullable=True),
        sa.Column("energy_level", sa.Integer(), nullable=True),
        sa.Column("is_completed", sa.Boolean(), nullable=False, server_default="true"),
        sa.Column("is_skipped", sa.Boolean(), nullable=False, server_default="false"),
        sa.Column("source", sa.Enum(*ENTRY_SOURCE_NAMES, name="entrysource"), nullable=False),
        *_timestamps(),
    )
    op.create_index("idx_journal_user_created", "journal_entries", ["user_id", "created_at"])

    op.create_table(
        "user_stats",
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.user_id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("total_entries", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("streak_days", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("longest_streak", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("last_entry_date", sa.Date(), nullable=True),
        sa.Column("average_mood", sa.Float(), nullable=True),
        sa.Column("average_energy", sa.Float(), nullable=True),
        sa.Column("principle_completions", postgresql.JSONB(), nullable=False, server_default="{}"),
        sa.Column("weekly_goal", sa.Integer(), nullable=False, server_default="7"),
        sa.Column("monthly_goal", sa.Integer(), nullable=False, server_default="30"),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    op.create_table(
        "achievements",
        sa.Column("achievement_id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.user_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("type", sa.String(50), nullable=False),
        sa.Column("unlocked_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("notified", sa.Boolean(), nullable=False, server_default="false"),
        sa.UniqueConstraint("user_id", "type", name="uq_achievements_user_type"),
    )

    # ------------------------------------------------------------------
    # subscriptions
    # ------------------------------------------------------------------
    op.create_table(
        "subscriptions",
        sa.Column("subscription_id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.user_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("plan", sa.Enum(*PLAN_VALUES, name="plan"), nullable=False),
        sa.Column("billing_period", sa.Enum(*BILLING_PERIOD_VALUES, name="billingperiod"), nullable=True),
        sa.Column("status", sa.Enum(*SUBSCRIPTION_STATUS_VALUES, name="subscriptionstatus"), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("payment_order_id", sa.String(100), nullable=True, unique=True),
        sa.Column("amount", sa.Numeric(10, 2), nullable=True),
        sa.Column("currency", sa.String(3), nullable=False, server_default="EUR"),
        *_timestamps(),
    )
    op.create_index("ix_subscriptions_user_id", "subscriptions", ["user_id"])
    op.create_index("idx_subscription_user_status", "subscriptions", ["user_id", "status"])
    op.create_index(
        "idx_subscription_plan_status_expires",
        "subscriptions",
        ["plan", "status", "expires_at"],
    )

    # ------------------------------------------------------------------
    # AI
    # ------------------------------------------------------------------
    op.create_table(
        "ai_requests",
        sa.Column("request_id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.user_id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("request_type", sa.String(50), nullable=False),
        sa.Column("model", sa.String(50), nullable=False, server_default="gpt-4o"),
        sa.Column("tokens_used", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("cost", sa.Numeric(10, 4), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("idx_ai_requests_created", "ai_requests", ["created_at"])
    op.create_index("idx_ai_requests_user_created", "ai_requests", ["user_id", "created_at"])

    op.create_table(
        "ai_insights",
        sa.Column("insight_id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.user_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("principle_number", sa.Integer(), nullable=False),
        sa.Column("insight_text", sa.Text(), nullable=False),
        sa.Column("insight_date", sa.Date(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.UniqueConstraint(
            "user_id", "principle_number", "insight_date",
            name="uq_ai_insights_user_principle_date",
        ),
    )

    # ------------------------------------------------------------------
    # notifications
    # ------------------------------------------------------------------
    op.create_table(
        "reminder_schedules",
        sa.Column("schedule_id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.user_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("time", sa.String(5), nullable=False),
        sa.Column("type", sa.String(20), nullable=False, server_default="principle"),
        sa.Column("enabled", sa.Boolean(), nullable=False, server_default="true"),
        *_timestamps(),
    )
    op.create_index("idx_reminder_schedules_user", "reminder_schedules", ["user_id"])

    op.create_table(
        "push_subscriptions",
        sa.Column("push_subscription_id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "user_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("users.user_id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("endpoint", sa.Text(), nullable=False, unique=True),
        sa.Column("p256dh", sa.Text(), nullable=False),
        sa.Column("auth", sa.Text(), nullable=False),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_push_subscriptions_user_id", "push_subscriptions", ["user_id"])


def downgrade() -> None:
    """Downgrade database schema."""
    for table in (
        "push_subscriptions",
        "reminder_schedules",
        "ai_insights",
        "ai_requests",
        "subscriptions",
        "achievements",
        "user_stats",
        "journal_entries",
        "principle_history",
        "principles",
        "users",
    ):
        op.drop_table(table)

    for enum_name in ENUM_TYPES:
        op.execute(f"DROP TYPE IF EXISTS {enum_name}")
