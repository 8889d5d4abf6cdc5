"""Gamification, notifications, watchlist folders and tips.

Tables:
- user_activities
- user_streaks
- user_reputations
- badges
- user_badges
- notifications
- notification_preferences
- watchlist_folders
- token_watchlist_folder_items
- user_watchlist_folder_items
- tips
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "8e2f4a6c9d10"
down_revision: Union[str, None] = "3c1d0e5a7b21"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

UUID_DEFAULT = sa.text("uuid_generate_v4()")
NOW = sa.text("now()")

ACTIVITY_TYPES = ("comment", "post", "upvote", "downvote", "login", "prediction")
BADGE_CATEGORIES = ("streak", "content", "engagement", "voting", "reception", "quality", "token_call", "tipping")
NOTIFICATION_TYPES = (
    "streak_at_risk",
    "streak_achieved",
    "streak_broken",
    "badge_earned",
    "leaderboard_change",
    "reputation_milestone",
    "comment_reply",
    "upvote_received",
    "system",
    "token_call_verified",
    "followed_user_prediction",
    "followed_user_comment",
    "followed_user_vote",
    "comment_mention",
    "tip_received",
    "referral_success",
)


def _in_list(column: str, values: Sequence[str]) -> str:
    quoted = ",".join(f"'{v}'" for v in values)
    return f"{column} IN ({quoted})"


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
    ]


def upgrade() -> None:
    # Gamification
    op.create_table(
        "user_activities",
        sa.Column("id", sa.UUID(), primary_key=True, server_default=UUID_DEFAULT),
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column("activity_type", sa.Text(), nullable=False),
        sa.Column("entity_id", sa.Text(), nullable=True),
        sa.Column("entity_type", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.CheckConstraint(_in_list("activity_type", ACTIVITY_TYPES), name="ck_user_activities_activity_type"),
        sa.Index("ix_user_activities_user_created", "user_id", "created_at"),
    )

    op.create_table(
        "user_streaks",
        sa.Column("id", sa.UUID(), primary_key=True, server_default=UUID_DEFAULT),
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column("current_streak", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("longest_streak", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("last_activity_date", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("user_id", name="uq_user_streaks_user_id"),
    )

    op.create_table(
        "user_reputations",
        sa.Column("id", sa.UUID(), primary_key=True, server_default=UUID_DEFAULT),
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column("total_points", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("weekly_points", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("weekly_points_last_reset", sa.DateTime(timezone=True), nullable=True, server_default=NOW),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("user_id", name="uq_user_reputations_user_id"),
        sa.Index("ix_user_reputations_total_points", "total_points"),
    )

    op.create_table(
        "badges",
        sa.Column("id", sa.UUID(), primary_key=True, server_default=UUID_DEFAULT),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("category", sa.Text(), nullable=False),
        sa.Column("requirement", sa.Text(), nullable=False),
        sa.Column("threshold", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("award_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        *_timestamps(),
        sa.UniqueConstraint("name", name="uq_badges_name"),
        sa.CheckConstraint(_in_list("category", BADGE_CATEGORIES), name="ck_badges_category"),
        sa.Index("ix_badges_category", "category"),
    )

    op.create_table(
        "user_badges",
        sa.Column("id", sa.UUID(), primary_key=True, server_default=UUID_DEFAULT),
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column("badge_id", sa.UUID(), nullable=False),
        sa.Column("earned_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.Column("is_displayed", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["badge_id"], ["badges.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("user_id", "badge_id", name="uq_user_badges_user_badge"),
        sa.Index("ix_user_badges_user_id", "user_id"),
    )

    # Notifications
    op.create_table(
        "notifications",
        sa.Column("id", sa.UUID(), primary_key=True, server_default=UUID_DEFAULT),
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column("type", sa.Text(), nullable=False),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("is_read", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("related_entity_id", sa.Text(), nullable=True),
        sa.Column("related_entity_type", sa.Text(), nullable=True),
        sa.Column("related_metadata", postgresql.JSONB(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.CheckConstraint(_in_list("type", NOTIFICATION_TYPES), name="ck_notifications_type"),
        sa.Index("ix_notifications_user_read", "user_id", "is_read"),
    )

    op.create_table(
        "notification_preferences",
        sa.Column("id", sa.UUID(), primary_key=True, server_default=UUID_DEFAULT),
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column("notification_type", sa.Text(), nullable=False),
        sa.Column("in_app_enabled", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("email_enabled", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("telegram_enabled", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("user_id", "notification_type", name="uq_notification_preferences_user_type"),
    )

    # Watchlist folders
    op.create_table(
        "watchlist_folders",
        sa.Column("id", sa.UUID(), primary_key=True, server_default=UUID_DEFAULT),
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("folder_type", sa.Text(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default=sa.text("0")),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.CheckConstraint("folder_type IN ('token','user')", name="ck_watchlist_folders_folder_type"),
        sa.Index("ix_watchlist_folders_user_id", "user_id"),
    )

    op.create_table(
        "token_watchlist_folder_items",
        sa.Column("id", sa.UUID(), primary_key=True, server_default=UUID_DEFAULT),
        sa.Column("folder_id", sa.UUID(), nullable=False),
        sa.Column("token_mint_address", sa.Text(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.ForeignKeyConstraint(["folder_id"], ["watchlist_folders.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["token_mint_address"], ["tokens.mint_address"], ondelete="CASCADE"),
        sa.UniqueConstraint("folder_id", "token_mint_address", name="uq_token_folder_items_folder_token"),
        sa.Index("ix_token_watchlist_folder_items_folder_id", "folder_id"),
    )

    op.create_table(
        "user_watchlist_folder_items",
        sa.Column("id", sa.UUID(), primary_key=True, server_default=UUID_DEFAULT),
        sa.Column("folder_id", sa.UUID(), nullable=False),
        sa.Column("watched_user_id", sa.UUID(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.ForeignKeyConstraint(["folder_id"], ["watchlist_folders.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["watched_user_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("folder_id", "watched_user_id", name="uq_user_folder_items_folder_user"),
        sa.Index("ix_user_watchlist_folder_items_folder_id", "folder_id"),
    )

    # Tips
    op.create_table(
        "tips",
        sa.Column("id", sa.UUID(), primary_key=True, server_default=UUID_DEFAULT),
        sa.Column("sender_id", sa.UUID(), nullable=True),
        sa.Column("sender_wallet_address", sa.Text(), nullable=False),
        sa.Column("recipient_id", sa.UUID(), nullable=True),
        sa.Column("recipient_wallet_address", sa.Text(), nullable=False),
        sa.Column("amount", sa.Numeric(18, 6), nullable=False),
        sa.Column("transaction_signature", sa.Text(), nullable=False),
        sa.Column("content_type", sa.Text(), nullable=True),
        sa.Column("content_id", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.ForeignKeyConstraint(["sender_id"], ["users.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["recipient_id"], ["users.id"], ondelete="SET NULL"),
        sa.UniqueConstraint("transaction_signature", name="uq_tips_transaction_signature"),
        sa.CheckConstraint(
            "content_type IS NULL OR content_type IN ('comment','profile','call')",
            name="ck_tips_content_type",
        ),
        sa.Index("ix_tips_sender_id", "sender_id"),
        sa.Index("ix_tips_recipient_id", "recipient_id"),
    )


def downgrade() -> None:
    for tbl in [
        "tips",
        "user_watchlist_folder_items",
        "token_watchlist_folder_items",
        "watchlist_folders",
        "notification_preferences",
        "notifications",
        "user_badges",
        "badges",
        "user_reputations",
        "user_streaks",
        "user_activities",
    ]:
        op.drop_table(tbl)
