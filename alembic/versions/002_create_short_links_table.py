"""Create short_links table.

Revision ID: 002
Revises: 001
Create Date: 2026-10-05

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the short_links table."""
    op.create_table(
        "short_links",
        sa.Column(
            "id",
            sa.UUID(),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column("profile_id", sa.UUID(), nullable=False),
        sa.Column(
            "short_code",
            sa.String(16),
            nullable=True,
            comment="Random base62 code; immutable once assigned",
        ),
        sa.Column(
            "full_url",
            sa.Text(),
            nullable=False,
            comment="Destination URL including UTM query parameters",
        ),
        sa.Column(
            "utm_params",
            postgresql.JSONB(),
            nullable=False,
            server_default=sa.text("'{}'::jsonb"),
        ),
        sa.Column(
            "clicks",
            sa.Integer(),
            nullable=False,
            server_default=sa.text("0"),
            comment="Redirect count (source of truth; the cache copy is advisory)",
        ),
        sa.Column(
            "created_at",
            sa.DateTime(),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_short_links")),
        sa.ForeignKeyConstraint(
            ["profile_id"],
            ["profiles.id"],
            name=op.f("fk_short_links_profile_id_profiles"),
            ondelete="CASCADE",
        ),
        sa.UniqueConstraint("short_code", name=op.f("uq_short_links_short_code")),
    )
    op.create_index(op.f("ix_short_links_user_id"), "short_links", ["user_id"])
    op.create_index(op.f("ix_short_links_profile_id"), "short_links", ["profile_id"])


def downgrade() -> None:
    """Drop the short_links table."""
    op.drop_index(op.f("ix_short_links_profile_id"), table_name="short_links")
    op.drop_index(op.f("ix_short_links_user_id"), table_name="short_links")
    op.drop_table("short_links")
