"""Token sentiment votes.

Tables:
- token_sentiments
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "b7d2f1e4a9c3"
down_revision: Union[str, None] = "8e2f4a6c9d10"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

NOW = sa.text("now()")

SENTIMENT_TYPES = ("bullish", "bearish", "red_flag")


def upgrade() -> None:
    quoted = ",".join(f"'{v}'" for v in SENTIMENT_TYPES)
    op.create_table(
        "token_sentiments",
        sa.Column("id", sa.UUID(), primary_key=True, server_default=sa.text("uuid_generate_v4()")),
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column("token_mint_address", sa.Text(), nullable=False),
        sa.Column("sentiment_type", sa.Text(), nullable=False),
        sa.Column("value", sa.Integer(), server_default="1", nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=NOW, nullable=False),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["token_mint_address"], ["tokens.mint_address"], ondelete="CASCADE"),
        sa.UniqueConstraint("user_id", "token_mint_address", name="uq_token_sentiments_user_token"),
        sa.CheckConstraint(f"sentiment_type IN ({quoted})", name="ck_token_sentiments_sentiment_type"),
    )
    op.create_index("ix_token_sentiments_token_mint_address", "token_sentiments", ["token_mint_address"])


def downgrade() -> None:
    op.drop_index("ix_token_sentiments_token_mint_address", table_name="token_sentiments")
    op.drop_table("token_sentiments")
