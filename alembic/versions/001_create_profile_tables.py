"""Create profiles and profile_blocks tables.

Revision ID: 001
Revises:
Create Date: 2026-10-05

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the profile tables read by the analytics endpoints."""
    op.create_table(
        "profiles",
        sa.Column(
            "id",
            sa.UUID(),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column(
            "user_id",
            sa.UUID(),
            nullable=False,
            comment="Owner of the profile (user id from the auth service)",
        ),
        sa.Column("slug", sa.String(100), nullable=False),
        sa.Column("title", sa.Text(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_profiles")),
        sa.UniqueConstraint("slug", name=op.f("uq_profiles_slug")),
    )
    op.create_index(op.f("ix_profiles_user_id"), "profiles", ["user_id"])

    op.create_table(
        "profile_blocks",
        sa.Column(
            "id",
            sa.UUID(),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("profile_id", sa.UUID(), nullable=False),
        sa.Column(
            "type",
            sa.String(20),
            nullable=False,
            comment="Block variant: 'link', 'text' or 'header'",
        ),
        sa.Column(
            "config",
            postgresql.JSONB(),
            nullable=False,
            comment="Variant-specific configuration",
        ),
        sa.Column(
            "position",
            sa.Integer(),
            nullable=False,
            server_default=sa.text("0"),
        ),
        sa.Column(
            "created_at",
            sa.DateTime(),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_profile_blocks")),
        sa.ForeignKeyConstraint(
            ["profile_id"],
            ["profiles.id"],
            name=op.f("fk_profile_blocks_profile_id_profiles"),
            ondelete="CASCADE",
        ),
    )
    op.create_index(
        op.f("ix_profile_blocks_profile_id"),
        "profile_blocks",
        ["profile_id"],
    )


def downgrade() -> None:
    """Drop the profile tables."""
    op.drop_index(op.f("ix_profile_blocks_profile_id"), table_name="profile_blocks")
    op.drop_table("profile_blocks")
    op.drop_index(op.f("ix_profiles_user_id"), table_name="profiles")
    op.drop_table("profiles")
