"""Initial schema: users, auth, wallets, follows, tokens, comments, token calls.

- users
- auth_methods
- wallets
- user_follows
- tokens
- token_watchlists
- token_calls
- user_token_call_streaks
- comments
- comment_votes
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "3c1d0e5a7b21"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

UUID_DEFAULT = sa.text("uuid_generate_v4()")
NOW = sa.text("now()")
PRICE = sa.Numeric(38, 18)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
    ]


def upgrade() -> None:
    op.execute('CREATE EXTENSION IF NOT EXISTS "uuid-ossp";')

    op.create_table(
        "users",
        sa.Column("id", sa.UUID(), primary_key=True, server_default=UUID_DEFAULT),
        sa.Column("username", sa.Text(), nullable=False),
        sa.Column("display_name", sa.Text(), nullable=False),
        sa.Column("avatar_url", sa.Text(), nullable=True),
        sa.Column("bio", sa.Text(), nullable=True),
        sa.Column("twitter_id", sa.Text(), nullable=True),
        sa.Column("is_admin", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        *_timestamps(),
        sa.UniqueConstraint("username", name="uq_users_username"),
        sa.UniqueConstraint("twitter_id", name="uq_users_twitter_id"),
    )
    op.execute("CREATE UNIQUE INDEX uq_users_username_lower ON users (lower(username));")

    op.create_table(
        "auth_methods",
        sa.Column("id", sa.UUID(), primary_key=True, server_default=UUID_DEFAULT),
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column("provider", sa.Text(), nullable=False),
        sa.Column("provider_id", sa.Text(), nullable=False),
        sa.Column("is_primary", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("provider", "provider_id", name="uq_auth_methods_provider_provider_id"),
        sa.CheckConstraint("provider IN ('wallet','twitter')", name="ck_auth_methods_provider"),
        sa.Index("ix_auth_methods_user_id", "user_id"),
    )

    op.create_table(
        "wallets",
        sa.Column("id", sa.UUID(), primary_key=True, server_default=UUID_DEFAULT),
        sa.Column("address", sa.Text(), nullable=False),
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column("is_verified", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("is_primary", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("signature", sa.Text(), nullable=True),
        sa.Column("verification_nonce", sa.Text(), nullable=True),
        sa.Column("nonce_expires_at", sa.BigInteger(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("address", name="uq_wallets_address"),
        sa.Index("ix_wallets_user_id", "user_id"),
    )

    op.create_table(
        "user_follows",
        sa.Column("follower_id", sa.UUID(), nullable=False),
        sa.Column("followed_id", sa.UUID(), nullable=False),
        sa.Column("notify_on_prediction", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("notify_on_comment", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("notify_on_vote", sa.Boolean(), nullable=False, server_default=sa.text("true")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.ForeignKeyConstraint(["follower_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["followed_id"], ["users.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("follower_id", "followed_id", name="pk_user_follows"),
        sa.CheckConstraint("follower_id <> followed_id", name="ck_user_follows_not_self"),
        sa.Index("ix_user_follows_followed_id", "followed_id"),
    )

    op.create_table(
        "tokens",
        sa.Column("mint_address", sa.Text(), primary_key=True),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("symbol", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("image_url", sa.Text(), nullable=True),
        sa.Column("website_url", sa.Text(), nullable=True),
        sa.Column("telegram_url", sa.Text(), nullable=True),
        sa.Column("twitter_handle", sa.Text(), nullable=True),
        sa.Column("views_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("creator_address", sa.Text(), nullable=True),
        sa.Column("creation_tx", sa.Text(), nullable=True),
        sa.Column("creation_time", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )

    op.create_table(
        "token_watchlists",
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column("token_mint_address", sa.Text(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["token_mint_address"], ["tokens.mint_address"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("user_id", "token_mint_address", name="pk_token_watchlists"),
    )

    op.create_table(
        "token_calls",
        sa.Column("id", sa.UUID(), primary_key=True, server_default=UUID_DEFAULT),
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column("token_mint_address", sa.Text(), nullable=False),
        sa.Column("call_timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("reference_price", PRICE, nullable=False),
        sa.Column("reference_supply", PRICE, nullable=True),
        sa.Column("target_price", PRICE, nullable=False),
        sa.Column("target_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("status", sa.Text(), nullable=False, server_default=sa.text("'PENDING'")),
        sa.Column("verification_timestamp", sa.DateTime(timezone=True), nullable=True),
        sa.Column("peak_price_during_period", PRICE, nullable=True),
        sa.Column("final_price", PRICE, nullable=True),
        sa.Column("target_hit_timestamp", sa.DateTime(timezone=True), nullable=True),
        sa.Column("time_to_hit_ratio", sa.Float(), nullable=True),
        sa.Column("explanation_comment_id", sa.UUID(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["token_mint_address"], ["tokens.mint_address"], ondelete="CASCADE"),
        sa.CheckConstraint(
            "status IN ('PENDING','VERIFIED_SUCCESS','VERIFIED_FAIL','ERROR')",
            name="ck_token_calls_status",
        ),
        sa.Index("ix_token_calls_user_id", "user_id"),
        sa.Index("ix_token_calls_token_mint_address", "token_mint_address"),
        sa.Index("ix_token_calls_status_target_date", "status", "target_date"),
    )

    op.create_table(
        "user_token_call_streaks",
        sa.Column("id", sa.UUID(), primary_key=True, server_default=UUID_DEFAULT),
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column("current_success_streak", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("longest_success_streak", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("last_verified_call_timestamp", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("user_id", name="uq_user_token_call_streaks_user_id"),
    )

    op.create_table(
        "comments",
        sa.Column("id", sa.UUID(), primary_key=True, server_default=UUID_DEFAULT),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("token_mint_address", sa.Text(), nullable=False),
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column("parent_id", sa.UUID(), nullable=True),
        sa.Column("upvotes_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("downvotes_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_edited", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("removed_by_id", sa.UUID(), nullable=True),
        sa.Column("removal_reason", sa.Text(), nullable=True),
        sa.Column("type", sa.Text(), nullable=False, server_default=sa.text("'comment'")),
        sa.Column("token_call_id", sa.UUID(), nullable=True),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["token_mint_address"], ["tokens.mint_address"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["parent_id"], ["comments.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["removed_by_id"], ["users.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["token_call_id"], ["token_calls.id"], ondelete="SET NULL"),
        sa.CheckConstraint("type IN ('comment','token_call_explanation')", name="ck_comments_type"),
        sa.Index("ix_comments_token_mint_address", "token_mint_address"),
        sa.Index("ix_comments_user_id", "user_id"),
        sa.Index("ix_comments_parent_id", "parent_id"),
        sa.Index("ix_comments_created_at", "created_at"),
    )

    op.create_table(
        "comment_votes",
        sa.Column("id", sa.UUID(), primary_key=True, server_default=UUID_DEFAULT),
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column("comment_id", sa.UUID(), nullable=False),
        sa.Column("vote_type", sa.Text(), nullable=False),
        *_timestamps(),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["comment_id"], ["comments.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("user_id", "comment_id", name="uq_comment_votes_user_comment"),
        sa.CheckConstraint("vote_type IN ('upvote','downvote')", name="ck_comment_votes_vote_type"),
        sa.Index("ix_comment_votes_comment_id", "comment_id"),
    )


def downgrade() -> None:
    for tbl in [
        "comment_votes",
        "comments",
        "user_token_call_streaks",
        "token_calls",
        "token_watchlists",
        "tokens",
        "user_follows",
        "wallets",
        "auth_methods",
        "users",
    ]:
        op.drop_table(tbl)
