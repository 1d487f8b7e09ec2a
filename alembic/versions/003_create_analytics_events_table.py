"""Create analytics_events table.

Revision ID: 003
Revises: 002
Create Date: 2026-10-06

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create the raw analytics events table."""
    op.create_table(
        "analytics_events",
        sa.Column(
            "id",
            sa.UUID(),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("profile_id", sa.UUID(), nullable=False),
        sa.Column(
            "block_id",
            sa.UUID(),
            nullable=True,
            comment="Set for click events only",
        ),
        sa.Column(
            "event_type",
            sa.String(10),
            nullable=False,
            comment="'view' or 'click'",
        ),
        sa.Column("utm_source", sa.String(255), nullable=True),
        sa.Column("utm_medium", sa.String(255), nullable=True),
        sa.Column("utm_campaign", sa.String(255), nullable=True),
        sa.Column("utm_content", sa.String(255), nullable=True),
        sa.Column("utm_term", sa.String(255), nullable=True),
        sa.Column("referrer", sa.Text(), nullable=True),
        sa.Column("traffic_source", sa.String(50), nullable=True),
        sa.Column("user_agent", sa.Text(), nullable=True),
        sa.Column("user_agent_parsed", postgresql.JSONB(), nullable=True),
        sa.Column("device_type", sa.String(20), nullable=True),
        sa.Column(
            "ip_hash",
            sa.String(64),
            nullable=False,
            comment="SHA-256 of the client IP; the raw address is never stored",
        ),
        sa.Column(
            "country",
            sa.String(2),
            nullable=True,
            comment="ISO 3166-1 alpha-2 country code (from GeoIP)",
        ),
        sa.Column("city", sa.String(255), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id", name=op.f("pk_analytics_events")),
        sa.ForeignKeyConstraint(
            ["profile_id"],
            ["profiles.id"],
            name=op.f("fk_analytics_events_profile_id_profiles"),
            ondelete="CASCADE",
        ),
        sa.ForeignKeyConstraint(
            ["block_id"],
            ["profile_blocks.id"],
            name=op.f("fk_analytics_events_block_id_profile_blocks"),
            ondelete="CASCADE",
        ),
    )
    # Overview queries filter by profile and time window
    op.create_index(
        "ix_analytics_events_profile_id_created_at",
        "analytics_events",
        ["profile_id", "created_at"],
    )
    op.create_index(
        "ix_analytics_events_block_id",
        "analytics_events",
        ["block_id"],
    )


def downgrade() -> None:
    """Drop the analytics events table."""
    op.drop_index("ix_analytics_events_block_id", table_name="analytics_events")
    op.drop_index("ix_analytics_events_profile_id_created_at", table_name="analytics_events")
    op.drop_table("analytics_events")
