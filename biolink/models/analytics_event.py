"""Analytics event SQLAlchemy model for raw view and click events."""

from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import JSON, DateTime, ForeignKey, Index, String, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from biolink.core.database import Base, utcnow


class AnalyticsEvent(Base):
    """One enriched profile view or block click.

    Rows are append-only. They disappear only when the profile or block
    they reference is deleted.
    """

    __tablename__ = "analytics_events"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    profile_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("profiles.id", ondelete="CASCADE"),
        nullable=False,
    )
    block_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("profile_blocks.id", ondelete="CASCADE"),
        nullable=True,
        comment="Set for click events only",
    )
    event_type: Mapped[str] = mapped_column(
        String(10),
        nullable=False,
        comment="'view' or 'click'",
    )
    utm_source: Mapped[str | None] = mapped_column(String(255), nullable=True)
    utm_medium: Mapped[str | None] = mapped_column(String(255), nullable=True)
    utm_campaign: Mapped[str | None] = mapped_column(String(255), nullable=True)
    utm_content: Mapped[str | None] = mapped_column(String(255), nullable=True)
    utm_term: Mapped[str | None] = mapped_column(String(255), nullable=True)
    referrer: Mapped[str | None] = mapped_column(Text, nullable=True)
    traffic_source: Mapped[str | None] = mapped_column(String(50), nullable=True)
    user_agent: Mapped[str | None] = mapped_column(Text, nullable=True)
    user_agent_parsed: Mapped[dict[str, Any] | None] = mapped_column(
        JSON().with_variant(JSONB(), "postgresql"),
        nullable=True,
    )
    device_type: Mapped[str | None] = mapped_column(String(20), nullable=True)
    ip_hash: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        comment="SHA-256 of the client IP; the raw address is never stored",
    )
    country: Mapped[str | None] = mapped_column(
        String(2),
        nullable=True,
        comment="ISO 3166-1 alpha-2 country code (from GeoIP)",
    )
    city: Mapped[str | None] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=utcnow,
        nullable=False,
    )

    # Overview queries filter by profile and time window
    __table_args__ = (
        Index("ix_analytics_events_profile_id_created_at", "profile_id", "created_at"),
        Index("ix_analytics_events_block_id", "block_id"),
    )

    def __repr__(self) -> str:
        return f"<AnalyticsEvent {self.event_type} profile={self.profile_id} at={self.created_at}>"
